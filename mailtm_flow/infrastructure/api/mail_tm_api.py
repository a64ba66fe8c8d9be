"""
Cliente assíncrono para o serviço de email temporário Mail.tm.

Expõe uma superfície genérica (``list``/``get``/``create``/``patch``/
``delete``/``download_binary``) que devolve o JSON cru, e auxiliares
tipados construídos sobre ela.
"""

from __future__ import annotations

import random
import string
from typing import Any, Dict, List, Optional

import httpx

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.core.config import MailTmAPIConfig
from mailtm_flow.core.exceptions import (
    AuthenticationException,
    InvalidAPIResponseException,
    RemoteAPIException,
    UnprocessableEntityException,
    ValidationException,
    wrap_exception,
)
from mailtm_flow.interfaces.services import ILoggingService, IMailTmClient
from mailtm_flow.models.mailtm import (
    Attachment,
    AuthenticatedSession,
    Domain,
    MailAccount,
    Message,
    MessageAddress,
    MessageSource,
    parse_timestamp,
)
from .auth_session import AuthSession
from .base_api import BaseAPIClient

MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"

# (método, recurso) que dispensam token
PUBLIC_ENDPOINTS = {
    ("GET", "domains"),
    ("POST", "accounts"),
    ("POST", "token"),
}


class MailTmHelper:
    """Helper para operações do Mail.tm."""

    @staticmethod
    def generate_random_string(length: int, alphabet: str = string.ascii_lowercase + string.digits) -> str:
        """
        Gera string aleatória para username/password.

        Args:
            length: Comprimento da string
            alphabet: Caracteres permitidos

        Returns:
            str: String aleatória
        """
        return "".join(random.choice(alphabet) for _ in range(length))

    @staticmethod
    def members(data: Any) -> List[Dict[str, Any]]:
        """Extrai ``hydra:member`` de um envelope de coleção."""
        if not isinstance(data, dict) or not isinstance(data.get("hydra:member"), list):
            raise InvalidAPIResponseException("Resposta de coleção sem 'hydra:member'")
        return data["hydra:member"]

    @staticmethod
    def parse_domain(domain_data: Dict[str, Any]) -> Domain:
        return Domain(
            id=domain_data["id"],
            domain=domain_data["domain"],
            is_active=domain_data.get("isActive", True),
            is_private=domain_data.get("isPrivate", False),
            created_at=domain_data.get("createdAt"),
            updated_at=domain_data.get("updatedAt"),
        )

    @staticmethod
    def parse_account(account_data: Dict[str, Any]) -> MailAccount:
        return MailAccount(
            id=account_data["id"],
            address=account_data["address"],
            quota=account_data.get("quota"),
            used=account_data.get("used"),
            is_disabled=account_data.get("isDisabled", False),
            is_deleted=account_data.get("isDeleted", False),
            created_at=account_data.get("createdAt"),
            updated_at=account_data.get("updatedAt"),
        )

    @staticmethod
    def parse_address(data: Optional[Dict[str, Any]]) -> MessageAddress:
        data = data or {}
        return MessageAddress(address=data.get("address", ""), name=data.get("name", ""))

    @staticmethod
    def parse_attachment(data: Dict[str, Any]) -> Attachment:
        return Attachment(
            id=data["id"],
            filename=data.get("filename", ""),
            download_url=data.get("downloadUrl", ""),
            content_type=data.get("contentType", ""),
            size=data.get("size", 0),
        )

    @classmethod
    def parse_message(cls, m: Dict[str, Any]) -> Message:
        """
        Parse de uma mensagem, seja o resumo da listagem ou a mensagem completa.

        ``html`` pode vir como lista de partes ou string única; é sempre
        normalizado para lista.
        """
        html = m.get("html") or []
        if isinstance(html, str):
            html = [html]
        return Message(
            id=m["id"],
            subject=m.get("subject") or "",
            from_address=cls.parse_address(m.get("from")),
            seen=bool(m.get("seen", False)),
            received_at=parse_timestamp(m.get("createdAt")),
            account_id=m.get("accountId", ""),
            msgid=m.get("msgid", ""),
            to=[cls.parse_address(t) for t in m.get("to") or []],
            intro=m.get("intro") or "",
            is_deleted=bool(m.get("isDeleted", False)),
            has_attachments=bool(m.get("hasAttachments", False)),
            size=m.get("size", 0),
            download_url=m.get("downloadUrl", ""),
            text=m.get("text") or "",
            html=list(html),
            attachments=[cls.parse_attachment(a) for a in m.get("attachments") or []],
            raw=m,
        )

    @staticmethod
    def parse_source(data: Dict[str, Any]) -> MessageSource:
        return MessageSource(id=data["id"], data=data.get("data", ""), download_url=data.get("downloadUrl", ""))


class MailTmClient(BaseAPIClient, IMailTmClient):
    """
    Cliente de API para Mail.tm.

    Toda chamada anexa ``Authorization: Bearer`` quando a sessão está
    autenticada. Sem token, apenas os endpoints públicos (listagem de
    domínios, criação de conta e emissão de token) são permitidos; os demais
    falham com ``AuthenticationException`` antes de qualquer requisição.

    Respostas não-2xx viram ``RemoteAPIException`` (ou uma subclasse por
    status). Não há retentativa interna.
    """

    def __init__(
        self,
        auth: Optional[AuthSession] = None,
        *,
        config: Optional[MailTmAPIConfig] = None,
        logger: Optional[ILoggingService] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = system_clock,
    ):
        """
        Inicializa o cliente Mail.tm.

        Args:
            auth: Sessão de autenticação (opcional para endpoints públicos)
            config: Configuração da API
            logger: Serviço de logging
            http_client: Cliente httpx compartilhado; por padrão reutiliza o da sessão
            clock: Relógio usado nas pausas entre tentativas
        """
        self.config = config or MailTmAPIConfig()
        if http_client is None and auth is not None:
            http_client = auth.http
        super().__init__(
            self.config.base_url,
            logger=logger,
            timeout=self.config.request_timeout,
            http_client=http_client,
        )
        self._auth = auth
        self.clock = clock
        self.helper = MailTmHelper()

    @property
    def auth(self) -> Optional[AuthSession]:
        return self._auth

    # --- Superfície genérica ---

    def _headers(self, method: str, resource: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._auth is not None and self._auth.is_authenticated:
            headers["Authorization"] = f"Bearer {self._auth.token}"
        elif (method, resource.split("/")[0]) not in PUBLIC_ENDPOINTS:
            raise AuthenticationException(
                "Token obrigatório para este recurso", details={"method": method, "resource": resource}
            )
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        resource: str,
        resource_id: Optional[str] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Método central: monta a rota, anexa o token e decodifica o JSON."""
        resource = resource.strip("/")
        path = f"/{resource}/{resource_id}" if resource_id else f"/{resource}"
        response = await self._send(
            method,
            path,
            headers=self._headers(method, resource, headers),
            params=params,
            json_body=body,
        )
        return self._parse_json(response, {"method": method, "path": path})

    async def list(self, resource: str, page: int = 1) -> Any:
        return await self._request("GET", resource, params={"page": page})

    async def get(self, resource: str, resource_id: Optional[str] = None) -> Any:
        return await self._request("GET", resource, resource_id)

    async def create(self, resource: str, body: Dict[str, Any]) -> Any:
        return await self._request("POST", resource, body=body)

    async def patch(self, resource: str, resource_id: str, body: Dict[str, Any]) -> Any:
        return await self._request(
            "PATCH", resource, resource_id, body=body, headers={"Content-Type": MERGE_PATCH_CONTENT_TYPE}
        )

    async def delete(self, resource: str, resource_id: str) -> Any:
        return await self._request("DELETE", resource, resource_id)

    async def download_binary(self, ref: str) -> bytes:
        """Baixa o conteúdo de uma URL de download (relativa ou absoluta)."""
        headers = self._headers("GET", "download")
        headers["Accept"] = "*/*"
        response = await self._send("GET", ref, headers=headers)
        return response.content

    # --- Domínios ---

    async def get_domains(self, page: int = 1) -> List[Domain]:
        """Recupera a lista de domínios disponíveis."""
        self.logger.debug("Buscando domínios disponíveis", page=page)
        data = await self.list("domains", page)
        return self._parse_each(self.helper.members(data), self.helper.parse_domain, "domínios")

    async def get_domain(self, domain_id: str) -> Domain:
        data = await self.get("domains", domain_id)
        return self._parse_one(data, self.helper.parse_domain, "domínio")

    # --- Contas ---

    async def create_account(self, address: str, password: str) -> MailAccount:
        """Cria uma nova conta. Não autentica."""
        self.logger.info("Criando conta", address=address)
        data = await self.create("accounts", {"address": address, "password": password})
        account = self._parse_one(data, self.helper.parse_account, "conta")
        self.logger.sucesso("Conta criada", address=account.address)
        return account

    async def get_account(self, account_id: str) -> MailAccount:
        data = await self.get("accounts", account_id)
        return self._parse_one(data, self.helper.parse_account, "conta")

    async def delete_account(self, account_id: str) -> None:
        self.logger.info("Excluindo conta", account_id=account_id)
        await self.delete("accounts", account_id)

    async def get_me(self) -> MailAccount:
        """Recupera os detalhes da conta autenticada (``/me``)."""
        data = await self.get("me")
        return self._parse_one(data, self.helper.parse_account, "conta")

    async def create_random_account(self, password: Optional[str] = None, retry_delay: float = 1.0) -> AuthenticatedSession:
        """
        Cria e autentica uma conta com endereço aleatório.

        Usa o primeiro domínio ativo; se o endereço já existir (422), tenta
        outro até ``max_account_attempts``. A sessão do cliente passa a ser a
        da nova conta.

        Returns:
            AuthenticatedSession: Conta, token e senha usada
        """
        domains = [d for d in await self.get_domains() if d.is_active]
        if not domains:
            raise InvalidAPIResponseException("Nenhum domínio disponível para criar conta.", details={"domains_count": 0})
        domain = domains[0].domain

        final_password = password or self.helper.generate_random_string(
            self.config.password_length, string.ascii_letters + string.digits
        )

        for attempt in range(1, self.config.max_account_attempts + 1):
            address = f"{self.helper.generate_random_string(self.config.username_length)}@{domain}"
            try:
                account = await self.create_account(address, final_password)
            except UnprocessableEntityException:
                self.logger.aviso("Endereço já existe, tentando outro", address=address, tentativa=attempt)
                await self.clock.sleep(retry_delay)
                continue

            auth = AuthSession(self.base_url, logger=self.logger, http_client=self.http)
            token = await auth.authenticate(address, final_password)
            self._auth = auth
            return AuthenticatedSession(account=account, token=token, password=final_password)

        raise RemoteAPIException(
            "Falha ao criar conta aleatória após várias tentativas.",
            status_code=422,
            details={"max_attempts": self.config.max_account_attempts, "domain": domain},
        )

    # --- Mensagens ---

    async def get_messages(self, page: int = 1) -> List[Message]:
        """Recupera uma página de mensagens, na ordem do provedor (mais recentes primeiro)."""
        self.logger.debug("Buscando mensagens", page=page)
        data = await self.list("messages", page)
        return self._parse_each(self.helper.members(data), self.helper.parse_message, "mensagens")

    async def get_all_messages(self) -> List[Message]:
        """
        Recupera todas as páginas de mensagens.

        Para quando a página vem vazia ou quando ``hydra:totalItems`` já foi
        alcançado.
        """
        messages: List[Message] = []
        page = 1
        while True:
            data = await self.list("messages", page)
            members = self.helper.members(data)
            if not members:
                break
            messages.extend(self._parse_each(members, self.helper.parse_message, "mensagens"))
            total = data.get("hydra:totalItems")
            if isinstance(total, int) and len(messages) >= total:
                break
            page += 1
        return messages

    async def get_message(self, message_id: str) -> Message:
        """Recupera a mensagem completa (texto, HTML e anexos)."""
        data = await self.get("messages", message_id)
        return self._parse_one(data, self.helper.parse_message, "mensagem")

    async def delete_message(self, message_id: str) -> None:
        await self.delete("messages", message_id)

    async def mark_message_as_seen(self, message_id: str, seen: bool = True) -> Any:
        """Atualiza o status de 'visto' de uma mensagem (merge-patch)."""
        self.logger.debug("Atualizando status de leitura", message_id=message_id, seen=seen)
        return await self.patch("messages", message_id, {"seen": seen})

    async def get_source(self, message_id: str) -> MessageSource:
        data = await self.get("sources", message_id)
        return self._parse_one(data, self.helper.parse_source, "fonte")

    async def download_attachment(self, message: Message, attachment_id: str) -> bytes:
        """
        Baixa um anexo da mensagem.

        Se ``message`` veio da listagem (sem anexos detalhados), a mensagem
        completa é buscada antes.

        Raises:
            ValidationException: A mensagem não possui o anexo informado
        """
        if not message.attachments and message.has_attachments:
            message = await self.get_message(message.id)
        attachment = message.find_attachment(attachment_id)
        if attachment is None:
            raise ValidationException(
                "Anexo não encontrado na mensagem",
                details={"message_id": message.id, "attachment_id": attachment_id},
            )
        return await self.download_binary(attachment.download_url)

    # --- Parse ---

    def _parse_one(self, data: Any, parser, what: str):
        try:
            return parser(data)
        except (KeyError, TypeError, AttributeError) as e:
            raise wrap_exception(e, InvalidAPIResponseException, f"Resposta de {what} com formato inválido")

    def _parse_each(self, items: List[Dict[str, Any]], parser, what: str) -> List[Any]:
        return [self._parse_one(item, parser, what) for item in items]


__all__ = ["MailTmClient", "MailTmHelper", "MERGE_PATCH_CONTENT_TYPE", "PUBLIC_ENDPOINTS"]
