from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class IAuthSession(ABC):

    @property
    @abstractmethod
    def is_authenticated(self) -> bool:
        """Indica se um token já foi confirmado para a conta."""

    @property
    @abstractmethod
    def token(self) -> str:
        """Token bearer atual. Falha se ainda não houve autenticação."""

    @abstractmethod
    async def authenticate(self, address: str, password: str) -> str:
        """
        Obtém um token para a conta em uma única requisição a ``/token``.
        """


class IMailTmClient(ABC):
    """
    Superfície uniforme de requisições ao Mail.tm.

    Os métodos genéricos (``list``/``get``/``create``/``patch``/``delete``/
    ``download_binary``) devolvem o JSON cru; os auxiliares tipados
    devolvem os modelos de ``mailtm_flow.models``.
    """

    @abstractmethod
    async def list(self, resource: str, page: int = 1) -> Any:
        """Lista uma coleção paginada (envelope ``hydra:member``)."""

    @abstractmethod
    async def get(self, resource: str, resource_id: Optional[str] = None) -> Any:
        """Recupera um item (ou o próprio recurso, ex: ``me``)."""

    @abstractmethod
    async def create(self, resource: str, body: dict[str, Any]) -> Any:
        """Cria um item."""

    @abstractmethod
    async def patch(self, resource: str, resource_id: str, body: dict[str, Any]) -> Any:
        """Atualiza parcialmente um item (merge-patch)."""

    @abstractmethod
    async def delete(self, resource: str, resource_id: str) -> Any:
        """Remove um item."""

    @abstractmethod
    async def download_binary(self, ref: str) -> bytes:
        """Baixa um conteúdo binário a partir de uma URL de download."""

    @abstractmethod
    async def get_messages(self, page: int = 1) -> list[Any]:
        """Recupera uma página de mensagens, mais recentes primeiro."""

    @abstractmethod
    async def get_all_messages(self) -> list[Any]:
        """Recupera todas as páginas de mensagens."""

    @abstractmethod
    async def get_message(self, message_id: str) -> Any:
        """Recupera a mensagem completa (corpo e anexos)."""

    @abstractmethod
    async def delete_message(self, message_id: str) -> None:
        """Exclui uma mensagem."""

    @abstractmethod
    async def mark_message_as_seen(self, message_id: str, seen: bool = True) -> Any:
        """Atualiza o status de 'visto' de uma mensagem."""
