"""
Tarefa periódica cancelável sobre asyncio.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.core.exceptions import TriggerStateException
from mailtm_flow.interfaces.services import ILoggingService


class PeriodicTask:
    """
    Executa ``callback`` a cada ``interval`` segundos até ``stop()``.

    - ``stop()`` pode ser chamado a qualquer momento, inclusive de dentro do
      callback. Se a tarefa está dormindo, a espera é cancelada na hora; se
      um tick está em andamento, ele termina e nenhum outro começa.
    - Uma exceção no callback é registrada e o próximo tick acontece
      normalmente.
    - Por padrão o primeiro tick ocorre após um intervalo completo.
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float,
        *,
        clock: Clock = system_clock,
        logger: Optional[ILoggingService] = None,
        run_immediately: bool = False,
        name: str = "tarefa-periodica",
    ):
        if interval <= 0:
            raise ValueError("interval deve ser > 0")
        self._callback = callback
        self.interval = interval
        self.name = name
        self._clock = clock
        self._logger = logger
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self._in_tick = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> asyncio.Task:
        """Agenda a tarefa no loop corrente. Só pode ser iniciada uma vez."""
        if self._task is not None or self._stopped:
            raise TriggerStateException("Tarefa periódica já iniciada ou parada", details={"name": self.name})
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self._task

    def stop(self) -> None:
        """Impede todos os ticks futuros. Idempotente."""
        self._stopped = True
        if self._task is not None and not self._task.done() and not self._in_tick:
            self._task.cancel()

    async def join(self) -> None:
        """Aguarda o encerramento da tarefa após ``stop()``."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        first = True
        while not self._stopped:
            if not (first and self._run_immediately):
                await self._clock.sleep(self.interval)
            first = False
            if self._stopped:
                break
            self._in_tick = True
            try:
                await self._callback()
            except Exception as e:
                if self._logger is not None:
                    self._logger.erro("Falha no tick", tarefa=self.name, erro=str(e))
            finally:
                self._in_tick = False
                self.ticks += 1


__all__ = ["PeriodicTask"]
