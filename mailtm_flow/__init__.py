"""API pública do pacote mailtm_flow."""

from mailtm_flow.core.config import AppConfig, get_config, reset_config, set_config
from mailtm_flow.core.logging import LoggerConfig, get_logger
from mailtm_flow.infrastructure.api import AuthSession, MailTmClient
from mailtm_flow.models import Found, Message, RuleSet, TimedOut, Watermark, parse_rules
from mailtm_flow.services import (
    BulkDeleteService,
    OperationRequest,
    OperationRunner,
    RuleEngine,
    TriggerLoop,
    WaitForMessageWorkflow,
    extract_urls,
)

__version__ = "0.1.0"

__all__ = [
    # Cliente
    "AuthSession",
    "MailTmClient",

    # Serviços
    "BulkDeleteService",
    "OperationRequest",
    "OperationRunner",
    "RuleEngine",
    "TriggerLoop",
    "WaitForMessageWorkflow",
    "extract_urls",

    # Modelos
    "Found",
    "Message",
    "RuleSet",
    "TimedOut",
    "Watermark",
    "parse_rules",

    # Configuração
    "AppConfig",
    "LoggerConfig",
    "get_config",
    "get_logger",
    "reset_config",
    "set_config",
]
