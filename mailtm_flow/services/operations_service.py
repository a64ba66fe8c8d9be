"""
Execução em lote de operações por recurso.

Cada requisição do lote (``recurso.operação`` + parâmetros) produz um
``ItemResult`` próprio: um valor JSON ou um erro. Uma falha não derruba os
demais itens, a menos que ``halt_on_error`` seja pedido.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from mailtm_flow.core.exceptions import (
    AuthenticationException,
    ExecutionException,
    MailFlowException,
    MissingRequiredFieldException,
    ValidationException,
    wrap_exception,
)
from mailtm_flow.infrastructure.api import AuthSession, MailTmClient
from mailtm_flow.interfaces.services import ILoggingService
from mailtm_flow.models.mailtm import ItemResult
from .base_service import BaseService


@dataclass(frozen=True)
class OperationRequest:
    """Uma operação a executar, ex: ``OperationRequest("message", "get", {"message_id": "abc"})``."""
    resource: str
    operation: str
    params: Mapping[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.resource, self.operation)

    def require(self, name: str) -> Any:
        value = self.params.get(name)
        if value is None or value == "":
            raise MissingRequiredFieldException(
                f"Parâmetro obrigatório ausente: {name}",
                details={"resource": self.resource, "operation": self.operation},
            )
        return value

    def get(self, name: str, default: Any = None) -> Any:
        return self.params.get(name, default)

    def page(self) -> int:
        """Número da página (>= 1); ausente vale 1."""
        value = self.params.get("page", 1)
        try:
            page = int(value) if not isinstance(value, bool) else 0
        except (TypeError, ValueError):
            page = 0
        if page < 1:
            raise ValidationException(
                f"Página inválida: {value!r}",
                details={"resource": self.resource, "operation": self.operation},
            )
        return page


Handler = Callable[[OperationRequest], Awaitable[Any]]

# Operações que dispensam sessão autenticada
PUBLIC_OPERATIONS = {
    ("domain", "list"),
    ("domain", "get"),
    ("account", "create"),
    ("account", "authenticate"),
}


class OperationRunner(BaseService):
    """
    Despacha operações para o ``MailTmClient``.

    Recursos e operações:

    - ``domain``: ``list`` (page), ``get`` (domain_id)
    - ``account``: ``create`` (address, password), ``authenticate`` (address,
      password), ``getMe``, ``getById`` (account_id), ``delete`` (account_id)
    - ``message``: ``list`` (page), ``get`` / ``delete`` (message_id),
      ``seen`` (message_id, seen)
    - ``source``: ``get`` (source_id)
    - ``attachment``: ``download`` (url, ou message_id + attachment_id)
    """

    def __init__(self, client: MailTmClient, *, logger: Optional[ILoggingService] = None):
        super().__init__(logger)
        self._client = client
        self._handlers: Dict[Tuple[str, str], Handler] = {
            ("domain", "list"): self._domain_list,
            ("domain", "get"): self._domain_get,
            ("account", "create"): self._account_create,
            ("account", "authenticate"): self._account_authenticate,
            ("account", "getMe"): self._account_get_me,
            ("account", "getById"): self._account_get_by_id,
            ("account", "delete"): self._account_delete,
            ("message", "list"): self._message_list,
            ("message", "get"): self._message_get,
            ("message", "delete"): self._message_delete,
            ("message", "seen"): self._message_seen,
            ("source", "get"): self._source_get,
            ("attachment", "download"): self._attachment_download,
        }

    @property
    def operations(self) -> List[Tuple[str, str]]:
        return sorted(self._handlers)

    async def execute_one(self, request: OperationRequest) -> Any:
        """
        Executa uma operação e devolve o JSON resultante.

        Raises:
            ValidationException: Recurso/operação desconhecidos ou parâmetro ausente
            AuthenticationException: Operação autenticada sem sessão
        """
        handler = self._handlers.get(request.key)
        if handler is None:
            raise ValidationException(
                f"Operação desconhecida: {request.resource}.{request.operation}",
                details={"resource": request.resource, "operation": request.operation},
            )
        if request.key not in PUBLIC_OPERATIONS:
            auth = self._client.auth
            if auth is None or not auth.is_authenticated:
                raise AuthenticationException(
                    "Operação exige sessão autenticada",
                    details={"resource": request.resource, "operation": request.operation},
                )
        return await handler(request)

    async def execute(self, requests: Iterable[OperationRequest], halt_on_error: bool = False) -> List[ItemResult[Any]]:
        """
        Executa o lote, um item por vez, na ordem recebida.

        Args:
            requests: Operações a executar
            halt_on_error: Para no primeiro erro; os itens seguintes não são tentados

        Returns:
            List[ItemResult]: Um resultado por item tentado
        """
        results: List[ItemResult[Any]] = []
        for index, request in enumerate(requests):
            error: Optional[MailFlowException] = None
            try:
                results.append(ItemResult(index, value=await self.execute_one(request)))
            except MailFlowException as e:
                error = e
            except Exception as e:
                error = wrap_exception(
                    e,
                    ExecutionException,
                    "Erro inesperado ao executar operação",
                    resource=request.resource,
                    operation=request.operation,
                )

            if error is not None:
                self.logger.erro(
                    "Falha ao executar operação",
                    indice=index,
                    operacao=f"{request.resource}.{request.operation}",
                    erro=str(error),
                )
                results.append(ItemResult(index, error=error))
                if halt_on_error:
                    break

        falhas = sum(1 for r in results if not r.ok)
        self.logger.info("Lote de operações concluído", itens=len(results), falhas=falhas)
        return results

    # --- Domínio ---

    async def _domain_list(self, request: OperationRequest) -> Any:
        return await self._client.list("domains", request.page())

    async def _domain_get(self, request: OperationRequest) -> Any:
        return await self._client.get("domains", request.require("domain_id"))

    # --- Conta ---

    async def _account_create(self, request: OperationRequest) -> Any:
        body = {"address": request.require("address"), "password": request.require("password")}
        return await self._client.create("accounts", body)

    async def _account_authenticate(self, request: OperationRequest) -> Any:
        session = AuthSession(self._client.base_url, logger=self.logger, http_client=self._client.http)
        token = await session.authenticate(request.require("address"), request.require("password"))
        return {"token": token}

    async def _account_get_me(self, request: OperationRequest) -> Any:
        return await self._client.get("me")

    async def _account_get_by_id(self, request: OperationRequest) -> Any:
        return await self._client.get("accounts", request.require("account_id"))

    async def _account_delete(self, request: OperationRequest) -> Any:
        data = await self._client.delete("accounts", request.require("account_id"))
        return {"success": True, "data": data}

    # --- Mensagem ---

    async def _message_list(self, request: OperationRequest) -> Any:
        return await self._client.list("messages", request.page())

    async def _message_get(self, request: OperationRequest) -> Any:
        return await self._client.get("messages", request.require("message_id"))

    async def _message_delete(self, request: OperationRequest) -> Any:
        data = await self._client.delete("messages", request.require("message_id"))
        return {"success": True, "data": data}

    async def _message_seen(self, request: OperationRequest) -> Any:
        return await self._client.patch("messages", request.require("message_id"), {"seen": bool(request.get("seen", True))})

    # --- Fonte e anexo ---

    async def _source_get(self, request: OperationRequest) -> Any:
        return await self._client.get("sources", request.require("source_id"))

    async def _attachment_download(self, request: OperationRequest) -> Any:
        url = request.get("url")
        if url:
            content = await self._client.download_binary(url)
        else:
            message = await self._client.get_message(request.require("message_id"))
            content = await self._client.download_attachment(message, request.require("attachment_id"))
        return {"message": "Anexo baixado com sucesso", "size": len(content), "data": content}


__all__ = ["OperationRequest", "OperationRunner", "PUBLIC_OPERATIONS"]
