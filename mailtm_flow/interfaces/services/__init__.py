from .ILoggingService import ILoggingService
from .IMailTmClient import IAuthSession, IMailTmClient

__all__ = ["IAuthSession", "ILoggingService", "IMailTmClient"]
