"""Adaptadores de infraestrutura (clientes HTTP)."""

from .api import AuthSession, MailTmClient

__all__ = ["AuthSession", "MailTmClient"]
