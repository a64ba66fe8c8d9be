"""Sistema centralizado de exceções customizadas do mailtm_flow."""

from __future__ import annotations
from typing import Any, Optional


class MailFlowException(Exception):
    """Exceção base para todas as exceções customizadas do mailtm_flow."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            base = f"{base} ({details_str})"
        if self.cause:
            base = f"{base} | Causa: {self.cause}"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# ==================== Exceções de Rede ====================

class NetworkException(MailFlowException):
    """Falha de transporte (conexão recusada, DNS, reset...)."""
    pass


class RequestTimeoutException(NetworkException):
    """Timeout em requisição HTTP."""
    pass


# ==================== Exceções de Autenticação ====================

class AuthenticationException(MailFlowException):
    """Credenciais inválidas ou token ausente onde é obrigatório."""
    pass


# ==================== Exceções de API ====================

class RemoteAPIException(MailFlowException):
    """
    Resposta não-2xx do provedor.

    Attributes:
        status_code: Código HTTP retornado
        body: Corpo textual da resposta
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str = "",
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.body = body
        merged = {"status_code": status_code, **(details or {})}
        super().__init__(message, details=merged, cause=cause)

    @classmethod
    def from_status(cls, status_code: int, body: str = "", **details: Any) -> "RemoteAPIException":
        """
        Cria a subclasse adequada para o status recebido.

        Todas as subclasses continuam sendo ``RemoteAPIException``; o chamador
        decide se captura a classe genérica ou uma específica.
        """
        wrapper = _STATUS_EXCEPTIONS.get(status_code, cls)
        preview = body[:200] if body else "Sem corpo"
        return wrapper(
            f"Erro na API: {status_code} - {preview}",
            status_code=status_code,
            body=body,
            details=details,
        )


class UnauthorizedException(RemoteAPIException):
    """401: token ausente, inválido ou expirado."""
    pass


class ResourceNotFoundException(RemoteAPIException):
    """404: recurso não encontrado no provedor."""
    pass


class UnprocessableEntityException(RemoteAPIException):
    """400/422: payload rejeitado pelo provedor (ex: endereço já existe)."""
    pass


class RateLimitException(RemoteAPIException):
    """429: rate limit atingido."""
    pass


class InvalidAPIResponseException(MailFlowException):
    """Resposta 2xx com conteúdo inválido ou inesperado."""
    pass


_STATUS_EXCEPTIONS: dict[int, type[RemoteAPIException]] = {
    400: UnprocessableEntityException,
    401: UnauthorizedException,
    404: ResourceNotFoundException,
    422: UnprocessableEntityException,
    429: RateLimitException,
}


# ==================== Exceções de Validação ====================

class ValidationException(MailFlowException):
    """Exceção base para erros de validação."""
    pass


class MissingRequiredFieldException(ValidationException):
    """Campo obrigatório ausente."""
    pass


class InvalidRuleException(ValidationException):
    """Definição de regra malformada."""
    pass


# ==================== Exceções de Configuração ====================

class ConfigurationException(MailFlowException):
    """Exceção base para erros de configuração."""
    pass


class InvalidConfigException(ConfigurationException):
    """Configuração inválida."""
    pass


# ==================== Exceções de Execução ====================

class ExecutionException(MailFlowException):
    """Exceção base para erros de execução."""
    pass


class TriggerStateException(ExecutionException):
    """Uso do gatilho fora do ciclo de vida permitido (ex: polls concorrentes)."""
    pass


class BulkDeleteException(ExecutionException):
    """Exclusão em lote interrompida após ``deleted_count`` sucessos."""

    def __init__(self, deleted_count: int, total: int, cause: Optional[Exception] = None, message_id: Optional[str] = None):
        self.deleted_count = deleted_count
        self.total = total
        self.message_id = message_id
        super().__init__(
            f"Exclusão em lote interrompida após {deleted_count} de {total} mensagens",
            details={"deleted_count": deleted_count, "total": total, "message_id": message_id},
            cause=cause,
        )


# ==================== Helpers ====================

def wrap_exception(exc: Exception, wrapper_class: type[MailFlowException], message: str, **details: Any) -> MailFlowException:
    """
    Envolve uma exceção existente em uma exceção customizada.

    Args:
        exc: Exceção original
        wrapper_class: Classe da exceção customizada
        message: Mensagem descritiva
        **details: Detalhes adicionais

    Returns:
        Instância da exceção customizada
    """
    return wrapper_class(message, details=details, cause=exc)


__all__ = [
    # Base
    "MailFlowException",
    # Network
    "NetworkException",
    "RequestTimeoutException",
    # Authentication
    "AuthenticationException",
    # API
    "RemoteAPIException",
    "UnauthorizedException",
    "ResourceNotFoundException",
    "UnprocessableEntityException",
    "RateLimitException",
    "InvalidAPIResponseException",
    # Validation
    "ValidationException",
    "MissingRequiredFieldException",
    "InvalidRuleException",
    # Configuration
    "ConfigurationException",
    "InvalidConfigException",
    # Execution
    "ExecutionException",
    "TriggerStateException",
    "BulkDeleteException",
    # Helpers
    "wrap_exception",
]
