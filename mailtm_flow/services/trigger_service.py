"""
Gatilho de novas mensagens.

Consulta periodicamente a primeira página da caixa de entrada, separa o que
é novo com a marca d'água e entrega cada mensagem nova ao ``sink``, da mais
antiga para a mais recente.
"""

from __future__ import annotations

import asyncio
import inspect
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.core.config import TriggerConfig
from mailtm_flow.core.exceptions import MailFlowException, TriggerStateException
from mailtm_flow.interfaces.services import ILoggingService, IMailTmClient
from mailtm_flow.models.mailtm import Message, Watermark
from .base_service import BaseService
from .scheduler import PeriodicTask
from .watermark import WatermarkTracker

MessageSink = Callable[[Message], Union[None, Awaitable[None]]]


class TriggerState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    EMITTING = "emitting"
    STOPPED = "stopped"


class TriggerLoop(BaseService):
    """
    Loop de gatilho para uma única caixa de entrada.

    Ciclo: ``Idle -> Polling -> Emitting -> Idle ... -> Stopped``.

    - A marca d'água é avançada antes de qualquer efeito colateral da
      emissão; uma falha ao processar uma mensagem não a torna nova de novo.
    - Uma consulta que falha é registrada e descartada; a marca d'água não
      muda e o próximo tick tenta outra vez.
    - ``first_poll="skip"`` usa a primeira consulta bem-sucedida apenas como
      base, sem emitir o conteúdo já existente.
    """

    def __init__(
        self,
        client: IMailTmClient,
        sink: MessageSink,
        config: Optional[TriggerConfig] = None,
        *,
        clock: Clock = system_clock,
        logger: Optional[ILoggingService] = None,
        watermark: Optional[Watermark] = None,
    ):
        super().__init__(logger, clock)
        self._client = client
        self._sink = sink
        self.config = config or TriggerConfig()
        self._tracker = WatermarkTracker(watermark)
        self._primed = watermark is not None and watermark.is_set
        self._state = TriggerState.IDLE
        self._task: Optional[PeriodicTask] = None
        self._stopping = False

    @property
    def state(self) -> TriggerState:
        return self._state

    @property
    def watermark(self) -> Watermark:
        return self._tracker.watermark

    @property
    def primed(self) -> bool:
        """Indica se já houve uma consulta bem-sucedida (linha de base estabelecida)."""
        return self._primed

    # --- Ciclo de vida ---

    def start(self, run_immediately: bool = False) -> asyncio.Task:
        """
        Inicia os ticks periódicos no loop asyncio corrente.

        Args:
            run_immediately: Executa o primeiro tick já, em vez de após um intervalo
        """
        if self._stopping:
            raise TriggerStateException("Gatilho parado não pode ser reiniciado")
        if self._task is not None:
            raise TriggerStateException("Gatilho já iniciado")
        self._task = PeriodicTask(
            self.poll,
            self.config.poll_interval,
            clock=self.clock,
            logger=self.logger,
            run_immediately=run_immediately,
            name="mailtm-trigger",
        )
        self.logger.info("Gatilho iniciado", intervalo=self.config.poll_interval, first_poll=self.config.first_poll)
        return self._task.start()

    def stop(self) -> None:
        """Impede ticks futuros. Seguro a qualquer momento; não interrompe uma emissão em curso."""
        if self._stopping:
            return
        self._stopping = True
        if self._task is not None:
            self._task.stop()
        if self._state == TriggerState.IDLE:
            self._state = TriggerState.STOPPED
        self.logger.info("Gatilho parado")

    async def join(self) -> None:
        if self._task is not None:
            await self._task.join()

    # --- Tick ---

    async def poll(self) -> List[Message]:
        """
        Executa um tick: consulta, detecta novas mensagens e as emite.

        Returns:
            List[Message]: Mensagens entregues ao sink nesta rodada

        Raises:
            TriggerStateException: Gatilho parado ou tick já em andamento
        """
        if self._stopping:
            raise TriggerStateException("Gatilho parado")
        if self._state != TriggerState.IDLE:
            raise TriggerStateException("Consulta concorrente não permitida", details={"state": self._state.value})

        self._state = TriggerState.POLLING
        try:
            try:
                messages = await self._client.get_messages(1)
            except MailFlowException as e:
                self.logger.aviso("Falha ao consultar mensagens; nova tentativa no próximo tick", erro=str(e))
                return []

            first_poll = not self._primed
            self._primed = True
            result = self._tracker.observe(messages)
            if not result.has_new:
                return []

            if first_poll and not self.config.emit_on_first_poll:
                self.logger.info(
                    "Primeira consulta usada como base; mensagens existentes não serão emitidas",
                    existentes=len(result.new_messages),
                    last_seen_id=self.watermark.last_seen_id,
                )
                return []

            self._state = TriggerState.EMITTING
            emitted = [message for message in result.oldest_first() if await self._emit(message)]
            self.logger.sucesso("Lote emitido", emitidas=len(emitted), novas=len(result.new_messages))
            return emitted
        finally:
            self._state = TriggerState.STOPPED if self._stopping else TriggerState.IDLE

    async def _emit(self, message: Message) -> bool:
        if self.config.mark_as_read and not message.seen:
            try:
                await self._client.mark_message_as_seen(message.id)
                message.seen = True
            except MailFlowException as e:
                self.logger.aviso("Não foi possível marcar como lida", message_id=message.id, erro=str(e))

        try:
            outcome = self._sink(message)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.logger.erro("Falha ao entregar mensagem", message_id=message.id, erro=str(e))
            return False

        self.logger.info("Nova mensagem", message_id=message.id, subject=message.subject, sender=message.sender)
        return True


__all__ = ["MessageSink", "TriggerLoop", "TriggerState"]
