from .auth_session import AuthSession
from .base_api import BaseAPIClient
from .mail_tm_api import MailTmClient, MailTmHelper

__all__ = ["AuthSession", "BaseAPIClient", "MailTmClient", "MailTmHelper"]
