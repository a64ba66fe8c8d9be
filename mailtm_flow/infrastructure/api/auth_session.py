"""
Sessão de autenticação de uma conta Mail.tm.
"""

from __future__ import annotations

from typing import Optional

import httpx

from mailtm_flow.core.config import DEFAULT_BASE_URL
from mailtm_flow.core.exceptions import (
    AuthenticationException,
    RemoteAPIException,
    wrap_exception,
)
from mailtm_flow.interfaces.services import IAuthSession, ILoggingService
from .base_api import BaseAPIClient


class AuthSession(BaseAPIClient, IAuthSession):
    """
    Obtém e guarda o token bearer de uma única conta.

    Uma instância corresponde ao tempo de vida do token de uma conta; para
    outra conta, crie outra sessão. Não há expiração nem renovação automática:
    o token vale até uma requisição falhar com erro de autenticação.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        logger: Optional[ILoggingService] = None,
        timeout: float = 30,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(base_url, logger=logger, timeout=timeout, http_client=http_client)
        self._token: Optional[str] = None
        self._address: Optional[str] = None

    @classmethod
    def with_token(cls, token: str, address: Optional[str] = None, **kwargs) -> "AuthSession":
        """Cria uma sessão a partir de um token já emitido."""
        if not token:
            raise AuthenticationException("Token vazio")
        session = cls(**kwargs)
        session._token = token
        session._address = address
        return session

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def token(self) -> str:
        if self._token is None:
            raise AuthenticationException("Sessão ainda não autenticada")
        return self._token

    @property
    def address(self) -> Optional[str]:
        return self._address

    async def authenticate(self, address: str, password: str) -> str:
        """
        Obtém um token JWT para a conta.

        Faz exatamente uma requisição a ``POST /token``; não há nova tentativa.

        Args:
            address: Endereço da conta
            password: Senha da conta

        Returns:
            str: Token bearer

        Raises:
            AuthenticationException: Credenciais recusadas ou resposta sem token
            NetworkException: Falha de transporte
        """
        self.logger.info("Obtendo token", address=address)
        try:
            response = await self._send("POST", "/token", json_body={"address": address, "password": password})
        except RemoteAPIException as e:
            raise wrap_exception(
                e, AuthenticationException,
                "Credenciais recusadas pelo provedor",
                address=address, status_code=e.status_code,
            )

        data = self._parse_json(response, {"address": address})
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationException("Falha ao obter o token.", details={"address": address})

        self._token = token
        self._address = address
        self.logger.sucesso("Sessão autenticada", address=address)
        return token

    def clear(self) -> None:
        """Descarta o token atual."""
        self._token = None
        self._address = None
