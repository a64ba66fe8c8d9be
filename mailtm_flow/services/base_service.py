"""
Classe base para serviços.

Define funcionalidades comuns e padrões para todos os serviços.
"""

from __future__ import annotations

from abc import ABC
from typing import Optional

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.interfaces.services import ILoggingService


class BaseService(ABC):
    """
    Classe base abstrata para os serviços de orquestração.

    Guarda o logger (contextualizado com o nome do serviço) e o relógio
    injetável usado nas pausas.
    """

    def __init__(self, logger: Optional[ILoggingService] = None, clock: Clock = system_clock):
        """
        Inicializa o serviço.

        Args:
            logger: Serviço de logging (opcional)
            clock: Relógio para medir tempo e suspender
        """
        base = logger or self._get_default_logger()
        self._logger = base.com_contexto(servico=self.__class__.__name__)
        self._clock = clock

    def _get_default_logger(self) -> ILoggingService:
        """Obtém logger padrão se nenhum foi fornecido."""
        from mailtm_flow.core.logging import get_logger
        return get_logger()

    @property
    def logger(self) -> ILoggingService:
        return self._logger

    @property
    def clock(self) -> Clock:
        return self._clock
