"""Camada de logging dos fluxos do mailtm_flow.

Interface simples, em portugues, sobre o ``rich``: logs coloridos no
terminal, escrita opcional em arquivo, contexto fixo por logger derivado e
agrupamento de etapas.

Uso tipico::

    from mailtm_flow.core.logging import log

    log.info("Gatilho iniciado", intervalo=60)

    with log.etapa("Limpeza da caixa", conta="alice@mail.tm"):
        ...

    conta_logger = log.com_contexto(conta="alice@mail.tm")
    conta_logger.sucesso("Mensagem emitida", message_id="abc")
"""

from __future__ import annotations

import atexit
import dataclasses
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from mailtm_flow.interfaces.services import ILoggingService

_LEVEL_MAP: Dict[str, int] = {
    "debug": 10,
    "info": 20,
    "sucesso": 25,
    "success": 25,
    "aviso": 30,
    "warning": 30,
    "erro": 40,
    "error": 40,
    "critico": 50,
    "critical": 50,
}

_NORMALIZED_NAMES = {
    "debug": "debug",
    "info": "info",
    "sucesso": "sucesso",
    "success": "sucesso",
    "aviso": "aviso",
    "warning": "aviso",
    "erro": "erro",
    "error": "erro",
    "critico": "critico",
    "critical": "critico",
}

_DEFAULT_THEME = Theme(
    {
        "log.time": "cyan dim",
        "log.debug": "dim",
        "log.info": "white",
        "log.sucesso": "bold green",
        "log.aviso": "yellow",
        "log.erro": "bold red",
        "log.critico": "white on red",
        "log.contexto": "bright_black",
    }
)


def _parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse de string para boolean."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def _nivel_para_valor(nivel: str | int) -> int:
    if isinstance(nivel, int):
        return nivel
    return _LEVEL_MAP.get(str(nivel).lower(), _LEVEL_MAP["info"])


@dataclass
class LoggerConfig:
    """Configuracao centralizada do logger.

    Attributes:
        nome: Nome do logger (usado no arquivo de log)
        nivel_minimo: Nível mínimo (DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)
        arquivo_log: Caminho opcional para espelhar os logs em arquivo
        sobrescrever_arquivo: Recria o arquivo a cada execução
        mostrar_tempo: Exibe o horário no console
        usar_cores: Habilita cores no console
    """

    nome: str = "mailtm_flow"
    nivel_minimo: str | int = "INFO"
    arquivo_log: str | Path | None = None
    sobrescrever_arquivo: bool = False
    mostrar_tempo: bool = True
    usar_cores: bool = True

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """Cria uma configuracao com base nas variaveis de ambiente.

        Variaveis reconhecidas:
        - LOG_LEVEL: ex. DEBUG, INFO, WARNING...
        - LOG_FILE: caminho do arquivo de log (anexa por padrao).
        - LOG_OVERWRITE: quando verdadeiro, recria o arquivo a cada execucao.
        - LOG_COLORS: habilita/desabilita cores no terminal (padrao True).
        """

        cfg = cls()
        if nivel := os.getenv("LOG_LEVEL"):
            cfg.nivel_minimo = nivel.upper()
        if arquivo := os.getenv("LOG_FILE"):
            cfg.arquivo_log = arquivo
        cfg.sobrescrever_arquivo = _parse_bool(os.getenv("LOG_OVERWRITE"), cfg.sobrescrever_arquivo)
        cfg.usar_cores = _parse_bool(os.getenv("LOG_COLORS"), cfg.usar_cores)
        return cfg

    def validate(self) -> None:
        """
        Valida a configuração.

        Raises:
            ValueError: Se o nível informado não existir
        """
        if isinstance(self.nivel_minimo, str) and self.nivel_minimo.lower() not in _LEVEL_MAP:
            raise ValueError(f"Nível inválido: {self.nivel_minimo}")


class MailFlowLogger(ILoggingService):
    """Implementacao principal do logger com API em portugues."""

    def __init__(self, config: Optional[LoggerConfig] = None, *, console: Optional[Console] = None) -> None:
        self._config = config or LoggerConfig()
        self._console = console or Console(theme=_DEFAULT_THEME, highlight=False, stderr=True)
        self._nivel_minimo = _nivel_para_valor(self._config.nivel_minimo)
        self._arquivo_handle = None
        self._atexit_registrado = False
        self._contexto_padrao: Dict[str, Any] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Configuracao e contexto
    # ------------------------------------------------------------------

    @property
    def config(self) -> LoggerConfig:
        return self._config

    def configure(self, config: LoggerConfig) -> None:
        """Aplica uma nova configuração ao logger.

        Args:
            config: Instância pronta de :class:`LoggerConfig`.
        """
        config.validate()
        with self._lock:
            self._config = config
            self._nivel_minimo = _nivel_para_valor(config.nivel_minimo)
            if config.usar_cores:
                self._console = Console(theme=_DEFAULT_THEME, highlight=False, stderr=True)
            else:
                self._console = Console(theme=_DEFAULT_THEME, highlight=False, no_color=True, stderr=True)
            self.close()

    def atualizar_contexto_padrao(self, **dados: Any) -> None:
        """Adiciona ou atualiza campos que aparecem em todos os logs."""
        with self._lock:
            self._contexto_padrao.update({k: v for k, v in dados.items() if v is not None})

    def limpar_contexto_padrao(self, *chaves: str) -> None:
        """Remove campos do contexto padrão (todos, quando nenhuma chave é dada)."""
        with self._lock:
            if not chaves:
                self._contexto_padrao.clear()
                return
            for chave in chaves:
                self._contexto_padrao.pop(chave, None)

    def com_contexto(self, **dados: Any) -> "ScopedLogger":
        """Retorna um logger derivado com contexto adicional.

        Ideal para anexar informacoes fixas (ex.: conta, componente) sem
        repetir kwargs em todas as chamadas.
        """
        return ScopedLogger(self, {k: v for k, v in dados.items() if v is not None})

    # ------------------------------------------------------------------
    # API publica de logging
    # ------------------------------------------------------------------

    def debug(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("debug", mensagem, dados, None)

    def info(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("info", mensagem, dados, None)

    def sucesso(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("sucesso", mensagem, dados, None)

    def aviso(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("aviso", mensagem, dados, None)

    def erro(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("erro", mensagem, dados, None)

    def critico(self, mensagem: str, **dados: Any) -> None:
        self.registrar_evento("critico", mensagem, dados, None)

    @contextmanager
    def etapa(
        self,
        titulo: str,
        mensagem_inicial: Optional[str] = None,
        mensagem_sucesso: Optional[str] = None,
        mensagem_falha: Optional[str] = None,
        **dados: Any,
    ):
        """Context manager que registra início, sucesso e falha de uma etapa."""
        with _etapa(self, None, titulo, mensagem_inicial, mensagem_sucesso, mensagem_falha, dados):
            yield

    # ------------------------------------------------------------------
    # Implementacao interna
    # ------------------------------------------------------------------

    def deve_emitir(self, nivel: str | int) -> bool:
        return _nivel_para_valor(nivel) >= self._nivel_minimo

    def registrar_evento(
        self,
        nivel: str | int,
        mensagem: str,
        dados: Mapping[str, Any],
        contexto_extra: Optional[Mapping[str, Any]],
    ) -> None:
        """Consolida dados, contexto e emissões em console/arquivo."""

        if not self.deve_emitir(nivel):
            return

        dados_limpos = {k: v for k, v in (dados or {}).items() if v is not None}
        if isinstance(nivel, int):
            chave_referencia = next(
                (_NORMALIZED_NAMES[nome] for nome, valor in _LEVEL_MAP.items() if valor == nivel),
                "info",
            )
        else:
            chave_referencia = _NORMALIZED_NAMES.get(str(nivel).lower(), "info")

        instante = datetime.now()

        with self._lock:
            contexto = dict(self._contexto_padrao)
            if contexto_extra:
                contexto.update({k: v for k, v in contexto_extra.items() if v is not None})

            extras = self.formatar_dict(contexto) + self.formatar_dict(dados_limpos)

            texto = Text()
            if self._config.mostrar_tempo:
                texto.append(instante.strftime("%H:%M:%S"), style="log.time")
                texto.append("  ")
            estilo = f"log.{chave_referencia}"
            texto.append(f"[{chave_referencia.upper()}]", style=estilo)
            texto.append("  ")
            texto.append(mensagem, style=estilo)
            if extras:
                texto.append("  ")
                texto.append(" ".join(extras), style="log.contexto")

            self._console.print(texto)

            if self._config.arquivo_log:
                self._escrever_arquivo(instante, chave_referencia, mensagem, contexto, dados_limpos)

    def _escrever_arquivo(
        self,
        instante: datetime,
        nivel: str,
        mensagem: str,
        contexto: Mapping[str, Any],
        dados: Mapping[str, Any],
    ) -> None:
        if self._arquivo_handle is None:
            path = Path(self._config.arquivo_log)
            path.parent.mkdir(parents=True, exist_ok=True)
            modo = "w" if self._config.sobrescrever_arquivo else "a"
            self._arquivo_handle = path.open(modo, encoding="utf-8")
            if not self._atexit_registrado:
                atexit.register(self.close)
                self._atexit_registrado = True

        partes = [instante.strftime("%Y-%m-%d %H:%M:%S"), nivel.upper(), mensagem]
        if contexto:
            partes.append("contexto=" + ",".join(self.formatar_dict(contexto)))
        if dados:
            partes.append("dados=" + ",".join(self.formatar_dict(dados)))
        self._arquivo_handle.write(" | ".join(partes) + "\n")
        self._arquivo_handle.flush()

    def close(self) -> None:
        """Fecha o arquivo de log (quando houver)."""
        with self._lock:
            if self._arquivo_handle is not None:
                self._arquivo_handle.close()
                self._arquivo_handle = None

    @staticmethod
    def formatar_valor(valor: Any) -> str:
        """Transforma valores em representação amigável para logs."""
        if isinstance(valor, (int, float)):
            return str(valor)
        if isinstance(valor, str):
            if valor.strip() == valor and " " not in valor:
                return valor
            return repr(valor)
        return repr(valor)

    @classmethod
    def formatar_dict(cls, valores: Mapping[str, Any]) -> list[str]:
        """Converte dicionários em pares ``chave=valor`` ordenados."""
        return [f"{chave}={cls.formatar_valor(valores[chave])}" for chave in sorted(valores)]


class ScopedLogger(ILoggingService):
    """Wrapper leve para adicionar contexto fixo em um logger existente."""

    def __init__(self, base: MailFlowLogger, contexto: Mapping[str, Any]) -> None:
        self._base = base
        self._contexto = dict(contexto)

    def com_contexto(self, **dados: Any) -> "ScopedLogger":
        novo = dict(self._contexto)
        novo.update({k: v for k, v in dados.items() if v is not None})
        return ScopedLogger(self._base, novo)

    def debug(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("debug", mensagem, dados, self._contexto)

    def info(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("info", mensagem, dados, self._contexto)

    def sucesso(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("sucesso", mensagem, dados, self._contexto)

    def aviso(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("aviso", mensagem, dados, self._contexto)

    def erro(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("erro", mensagem, dados, self._contexto)

    def critico(self, mensagem: str, **dados: Any) -> None:
        self._base.registrar_evento("critico", mensagem, dados, self._contexto)

    @contextmanager
    def etapa(
        self,
        titulo: str,
        mensagem_inicial: Optional[str] = None,
        mensagem_sucesso: Optional[str] = None,
        mensagem_falha: Optional[str] = None,
        **dados: Any,
    ):
        with _etapa(self._base, self._contexto, titulo, mensagem_inicial, mensagem_sucesso, mensagem_falha, dados):
            yield


@contextmanager
def _etapa(
    base: MailFlowLogger,
    contexto: Optional[Mapping[str, Any]],
    titulo: str,
    mensagem_inicial: Optional[str],
    mensagem_sucesso: Optional[str],
    mensagem_falha: Optional[str],
    dados: Mapping[str, Any],
):
    dados_limpos = {k: v for k, v in dados.items() if v is not None}
    base.registrar_evento("info", mensagem_inicial or f"Iniciando etapa: {titulo}", dados_limpos, contexto)
    try:
        yield
    except Exception as exc:
        base.registrar_evento(
            "erro", mensagem_falha or f"Falha na etapa: {titulo}", {**dados_limpos, "erro": str(exc)}, contexto
        )
        raise
    else:
        base.registrar_evento("sucesso", mensagem_sucesso or f"Etapa concluida: {titulo}", dados_limpos, contexto)


# Instancia global simples -------------------------------------------------

log = MailFlowLogger(LoggerConfig.from_env())


def get_logger() -> MailFlowLogger:
    """Retorna a instância global do logger."""
    return log


def configurar_logging(config: Optional[LoggerConfig] = None, **overrides: Any) -> MailFlowLogger:
    """Configura o logger global e o retorna para encadeamento.

    Quando nenhuma configuracao e informada, os valores sao lidos das
    variaveis de ambiente suportadas.
    """

    if config is None:
        config = LoggerConfig.from_env()
    if overrides:
        config = dataclasses.replace(config, **overrides)
    log.configure(config)
    return log


__all__ = ["LoggerConfig", "MailFlowLogger", "ScopedLogger", "configurar_logging", "get_logger", "log"]
