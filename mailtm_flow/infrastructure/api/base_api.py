"""
Classe base para clientes de API.
"""

from __future__ import annotations

import json
from abc import ABC
from typing import Any, Dict, Optional

import httpx

from mailtm_flow.core.exceptions import (
    InvalidAPIResponseException,
    NetworkException,
    RemoteAPIException,
    RequestTimeoutException,
    wrap_exception,
)
from mailtm_flow.interfaces.services import ILoggingService


class BaseAPIClient(ABC):
    """
    Classe base para clientes de API.

    Fornece funcionalidades comuns:
    - Posse (ou empréstimo) de um ``httpx.AsyncClient``
    - Logger
    - Tradução de falhas de transporte e status não-2xx em exceções do projeto

    Quando o ``http_client`` é injetado, quem injetou é responsável por
    fechá-lo; caso contrário o cliente é criado aqui e fechado em ``aclose``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        logger: Optional[ILoggingService] = None,
        timeout: float = 30,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Inicializa o cliente de API.

        Args:
            base_url: Endpoint base do provedor
            logger: Logger (opcional)
            timeout: Timeout de transporte em segundos
            http_client: Cliente httpx compartilhado (opcional)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._logger = logger or self._get_logger()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    def _get_logger(self) -> ILoggingService:
        """Obtém logger padrão."""
        from mailtm_flow.core.logging import get_logger
        return get_logger()

    @property
    def logger(self) -> ILoggingService:
        return self._logger

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    async def aclose(self) -> None:
        """Fecha o cliente httpx quando ele pertence a esta instância."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        """Resolve caminhos relativos contra ``base_url``; URLs absolutas passam direto."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
    ) -> httpx.Response:
        """
        Executa uma requisição e valida o status.

        Raises:
            RequestTimeoutException: Timeout de transporte
            NetworkException: Qualquer outra falha de transporte
            RemoteAPIException: Status fora da faixa 2xx
        """
        url = self._url(path)
        try:
            response = await self._http.request(method, url, headers=headers, params=params, json=json_body)
        except httpx.TimeoutException as e:
            self.logger.erro("Timeout ao acessar o provedor", method=method, url=url)
            raise wrap_exception(e, RequestTimeoutException, f"Timeout ao acessar {url}", method=method)
        except httpx.TransportError as e:
            self.logger.erro("Erro de conexão ao acessar o provedor", method=method, url=url, erro=str(e))
            raise wrap_exception(e, NetworkException, f"Erro de conexão ao acessar {url}", method=method)

        if not response.is_success:
            self.logger.erro("Resposta de erro da API", method=method, url=url, status=response.status_code)
            raise RemoteAPIException.from_status(response.status_code, response.text, method=method, url=url)
        return response

    def _parse_json(self, response: httpx.Response, context: Optional[Dict[str, Any]] = None) -> Any:
        """
        Decodifica resposta JSON de forma segura.

        Respostas sem corpo (ex: 204 de DELETE) viram ``None``.

        Raises:
            InvalidAPIResponseException: Se o corpo não for JSON
        """
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise wrap_exception(
                e, InvalidAPIResponseException,
                "Erro ao decodificar resposta JSON",
                status_code=response.status_code,
                **(context or {}),
            )
