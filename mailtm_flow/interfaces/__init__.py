"""Contratos (ABCs) usados para injeção de dependências."""

from .services import IAuthSession, ILoggingService, IMailTmClient

__all__ = ["IAuthSession", "ILoggingService", "IMailTmClient"]
