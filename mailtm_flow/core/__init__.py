"""Núcleo compartilhado: exceções, logging, configuração e relógio."""

from .clock import Clock, SystemClock, system_clock
from .config import AppConfig, ConfigLoader, get_config, reset_config, set_config
from .exceptions import MailFlowException
from .logging import LoggerConfig, MailFlowLogger, get_logger, log

__all__ = [
    "AppConfig",
    "Clock",
    "ConfigLoader",
    "LoggerConfig",
    "MailFlowException",
    "MailFlowLogger",
    "SystemClock",
    "get_config",
    "get_logger",
    "log",
    "reset_config",
    "set_config",
    "system_clock",
]
