"""
Sistema de configuração centralizado do mailtm_flow.

Carrega configurações de um arquivo YAML com suporte a override por
variáveis de ambiente (prefixo ``MAILTM_``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

from mailtm_flow.core.exceptions import InvalidConfigException, wrap_exception
from mailtm_flow.core.logging import LoggerConfig


# ============================================================================
# CONSTANTES
# ============================================================================

DEFAULT_BASE_URL = "https://api.mail.tm"

# Intervalo mínimo do gatilho (segundos)
MIN_POLL_INTERVAL = 10

# Pausa fixa entre exclusões em lote (segundos)
DEFAULT_DELETE_DELAY = 0.15

FIRST_POLL_EMIT = "emit"
FIRST_POLL_SKIP = "skip"
VALID_FIRST_POLL_POLICIES: Set[str] = {FIRST_POLL_EMIT, FIRST_POLL_SKIP}


# ============================================================================
# FUNÇÕES AUXILIARES DE VALIDAÇÃO
# ============================================================================

def validate_positive(value: float, field_name: str) -> None:
    """Valida se o valor é estritamente positivo."""
    if value <= 0:
        raise InvalidConfigException(f"{field_name} deve ser > 0", details={field_name: value})


def validate_minimum(value: float, field_name: str, min_value: float) -> None:
    """Valida se o valor é maior ou igual a ``min_value``."""
    if value < min_value:
        raise InvalidConfigException(f"{field_name} deve ser >= {min_value}", details={field_name: value})


def validate_choice(value: str, valid_choices: Set[str], field_name: str) -> None:
    """Valida se valor está entre as escolhas válidas."""
    if value not in valid_choices:
        raise InvalidConfigException(
            f"{field_name} inválido: {value}",
            details={"valid": sorted(valid_choices)},
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


# ============================================================================
# SEÇÕES
# ============================================================================

@dataclass
class MailTmAPIConfig:
    """
    Configuração da API Mail.tm.

    Attributes:
        base_url: Endpoint base do provedor
        request_timeout: Timeout de transporte (segundos)
        username_length: Tamanho da parte local em contas aleatórias
        password_length: Tamanho da senha gerada em contas aleatórias
        max_account_attempts: Tentativas ao criar conta aleatória
    """
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30
    username_length: int = 10
    password_length: int = 12
    max_account_attempts: int = 20

    def __post_init__(self):
        if not self.base_url.startswith(("http://", "https://")):
            raise InvalidConfigException(
                "base_url deve começar com http:// ou https://", details={"base_url": self.base_url}
            )
        self.base_url = self.base_url.rstrip("/")
        validate_positive(self.request_timeout, "request_timeout")
        validate_minimum(self.username_length, "username_length", 1)
        validate_minimum(self.password_length, "password_length", 1)
        validate_minimum(self.max_account_attempts, "max_account_attempts", 1)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MailTmAPIConfig:
        """Cria instância a partir de dicionário."""
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})


@dataclass
class TriggerConfig:
    """
    Configuração do gatilho de novas mensagens.

    Attributes:
        poll_interval: Intervalo entre checagens (segundos, mínimo 10)
        mark_as_read: Marca a mensagem como lida antes de emiti-la
        first_poll: ``emit`` emite a primeira página existente; ``skip`` só a usa como base
    """
    poll_interval: float = 60
    mark_as_read: bool = True
    first_poll: str = FIRST_POLL_EMIT

    def __post_init__(self):
        validate_minimum(self.poll_interval, "poll_interval", MIN_POLL_INTERVAL)
        validate_choice(self.first_poll, VALID_FIRST_POLL_POLICIES, "first_poll")

    @property
    def emit_on_first_poll(self) -> bool:
        return self.first_poll == FIRST_POLL_EMIT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TriggerConfig:
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})


@dataclass
class WorkflowConfig:
    """
    Configuração do fluxo "aguardar mensagem".

    Attributes:
        timeout: Tempo máximo de espera (segundos)
        poll_interval: Intervalo entre buscas (segundos)
    """
    timeout: float = 60
    poll_interval: float = 2.0

    def __post_init__(self):
        validate_positive(self.timeout, "timeout")
        validate_positive(self.poll_interval, "poll_interval")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WorkflowConfig:
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})


@dataclass
class BulkDeleteConfig:
    """Pausa entre exclusões sequenciais (segundos)."""
    delay: float = DEFAULT_DELETE_DELAY

    def __post_init__(self):
        if self.delay < 0:
            raise InvalidConfigException("delay deve ser >= 0", details={"delay": self.delay})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> BulkDeleteConfig:
        return cls(**{k: v for k, v in data.items() if k in cls.__annotations__})


@dataclass
class AppConfig:
    """Configuração principal, agregando todas as seções."""
    api: MailTmAPIConfig = field(default_factory=MailTmAPIConfig)
    trigger: TriggerConfig = field(default_factory=TriggerConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    bulk_delete: BulkDeleteConfig = field(default_factory=BulkDeleteConfig)
    logging: LoggerConfig = field(default_factory=LoggerConfig)


# ============================================================================
# LOADER
# ============================================================================

class ConfigLoader:
    """
    Carregador de configurações do YAML com override por variáveis de ambiente.

    Ordem de prioridade: variáveis de ambiente > arquivo > valores padrão.
    """

    DEFAULT_CONFIG_PATH = Path("mailtm.yaml")

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> AppConfig:
        """
        Carrega a configuração completa da aplicação.

        Args:
            config_path: Caminho específico para arquivo de configuração

        Returns:
            AppConfig: Configuração carregada
        """
        path = Path(config_path) if config_path else cls.DEFAULT_CONFIG_PATH
        data = cls._load_yaml(path)
        data = cls._apply_env_overrides(data)
        return cls._build_config(data)

    @classmethod
    def _load_yaml(cls, path: Path) -> Dict[str, Any]:
        """Carrega dados do YAML ou retorna dict vazio."""
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise wrap_exception(e, InvalidConfigException, "Arquivo de configuração inválido", path=str(path))
        if not isinstance(data, dict):
            raise InvalidConfigException(
                "Arquivo de configuração deve conter um mapeamento", details={"path": str(path)}
            )
        return data

    @classmethod
    def _apply_env_overrides(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Aplica overrides de variáveis de ambiente."""
        api = data.setdefault("api", {})
        if base_url := os.getenv("MAILTM_BASE_URL"):
            api["base_url"] = base_url
        if timeout := os.getenv("MAILTM_TIMEOUT"):
            api["request_timeout"] = float(timeout)

        trigger = data.setdefault("trigger", {})
        if interval := os.getenv("MAILTM_POLL_INTERVAL"):
            trigger["poll_interval"] = float(interval)
        if mark := os.getenv("MAILTM_MARK_AS_READ"):
            trigger["mark_as_read"] = _parse_bool(mark)
        if first_poll := os.getenv("MAILTM_FIRST_POLL"):
            trigger["first_poll"] = first_poll.strip().lower()

        workflow = data.setdefault("workflow", {})
        if wait_timeout := os.getenv("MAILTM_WAIT_TIMEOUT"):
            workflow["timeout"] = float(wait_timeout)
        if wait_interval := os.getenv("MAILTM_WAIT_INTERVAL"):
            workflow["poll_interval"] = float(wait_interval)

        bulk = data.setdefault("bulk_delete", {})
        if delay := os.getenv("MAILTM_DELETE_DELAY"):
            bulk["delay"] = float(delay)

        logging = data.setdefault("logging", {})
        if log_level := os.getenv("MAILTM_LOG_LEVEL"):
            logging["nivel_minimo"] = log_level.upper()
        if log_file := os.getenv("MAILTM_LOG_FILE"):
            logging["arquivo_log"] = log_file
        return data

    @classmethod
    def _build_config(cls, data: Dict[str, Any]) -> AppConfig:
        """Constrói objeto de configuração a partir do dicionário."""
        # LoggerConfig usa seu próprio from_env(); o YAML sobrescreve campos conhecidos
        logging_config = LoggerConfig.from_env()
        for key, value in (data.get("logging") or {}).items():
            if hasattr(logging_config, key):
                setattr(logging_config, key, value)
        try:
            logging_config.validate()
        except ValueError as e:
            raise wrap_exception(e, InvalidConfigException, "Configuração de logging inválida")

        return AppConfig(
            api=MailTmAPIConfig.from_dict(data.get("api") or {}),
            trigger=TriggerConfig.from_dict(data.get("trigger") or {}),
            workflow=WorkflowConfig.from_dict(data.get("workflow") or {}),
            bulk_delete=BulkDeleteConfig.from_dict(data.get("bulk_delete") or {}),
            logging=logging_config,
        )


# ============================================================================
# GERENCIAMENTO DE CONFIGURAÇÃO GLOBAL (SINGLETON)
# ============================================================================

_config_instance: Optional[AppConfig] = None


def get_config(auto_load: bool = True) -> Optional[AppConfig]:
    """
    Obtém a configuração global da aplicação.

    Args:
        auto_load: Se True, carrega automaticamente se não existir

    Returns:
        AppConfig ou None: Configuração global (None se não carregada e auto_load=False)
    """
    global _config_instance
    if _config_instance is None and auto_load:
        _config_instance = ConfigLoader.load()
    return _config_instance


def set_config(config: AppConfig) -> None:
    """Define a configuração global (útil para CLI e testes)."""
    global _config_instance
    _config_instance = config


def reset_config() -> None:
    """Descarta a configuração global; a próxima leitura recarrega do disco."""
    global _config_instance
    _config_instance = None


__all__ = [
    "AppConfig",
    "BulkDeleteConfig",
    "ConfigLoader",
    "MailTmAPIConfig",
    "TriggerConfig",
    "WorkflowConfig",
    "DEFAULT_BASE_URL",
    "DEFAULT_DELETE_DELAY",
    "FIRST_POLL_EMIT",
    "FIRST_POLL_SKIP",
    "MIN_POLL_INTERVAL",
    "get_config",
    "reset_config",
    "set_config",
]
