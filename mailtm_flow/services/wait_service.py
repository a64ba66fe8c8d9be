"""
Fluxo "aguardar mensagem": espera limitada por uma mensagem compatível e
extração das URLs do corpo.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.core.config import WorkflowConfig
from mailtm_flow.core.exceptions import MailFlowException, ValidationException
from mailtm_flow.interfaces.services import ILoggingService, IMailTmClient
from mailtm_flow.models.mailtm import Found, Message, TimedOut, WorkflowResult
from .base_service import BaseService

# esquema:// seguido de qualquer sequência sem espaço, < > ou aspas
URL_PATTERN = re.compile(r"[a-zA-Z][a-zA-Z0-9+.-]*://[^\s<>\"']+")


def extract_urls(text: Optional[str]) -> List[str]:
    """
    Extrai URLs do texto, na ordem em que aparecem.

    >>> extract_urls("click http://a.com/x and https://b.org")
    ['http://a.com/x', 'https://b.org']
    """
    if not text:
        return []
    return URL_PATTERN.findall(text)


@dataclass(frozen=True)
class MessageFilter:
    """Predicado de espera. Sem critérios, qualquer mensagem serve."""
    subject_contains: Optional[str] = None
    from_address: Optional[str] = None

    def matches(self, message: Message) -> bool:
        if self.subject_contains and self.subject_contains not in (message.subject or ""):
            return False
        if self.from_address and message.sender != self.from_address:
            return False
        return True


class WaitForMessageWorkflow(BaseService):
    """
    Consulta a primeira página até achar uma mensagem compatível ou esgotar
    o tempo limite.

    O tempo limite é um resultado (``TimedOut``), não uma exceção. Uma
    consulta que falha conta como "nenhuma mensagem nesta rodada".
    """

    def __init__(
        self,
        client: IMailTmClient,
        config: Optional[WorkflowConfig] = None,
        *,
        clock: Clock = system_clock,
        logger: Optional[ILoggingService] = None,
    ):
        super().__init__(logger, clock)
        self._client = client
        self.config = config or WorkflowConfig()

    async def run(
        self,
        timeout_seconds: Optional[float] = None,
        subject_contains: Optional[str] = None,
        from_address: Optional[str] = None,
    ) -> WorkflowResult:
        """
        Aguarda uma mensagem compatível.

        Args:
            timeout_seconds: Tempo máximo de espera (padrão da configuração)
            subject_contains: Trecho obrigatório no assunto (sensível a maiúsculas)
            from_address: Remetente exato

        Returns:
            Found com a mensagem completa e as URLs extraídas, ou TimedOut

        Raises:
            ValidationException: ``timeout_seconds`` não positivo
        """
        timeout = self.config.timeout if timeout_seconds is None else timeout_seconds
        if timeout <= 0:
            raise ValidationException("timeout_seconds deve ser > 0", details={"timeout_seconds": timeout})

        predicate = MessageFilter(subject_contains, from_address)
        interval = self.config.poll_interval
        started = self.clock.monotonic()
        polls = 0
        self.logger.info("Aguardando mensagem", timeout=timeout, subject_contains=subject_contains, sender=from_address)

        while True:
            polls += 1
            message = await self._poll_once(predicate)
            elapsed = self.clock.monotonic() - started
            if message is not None:
                urls = extract_urls(message.body)
                self.logger.sucesso("Mensagem recebida", message_id=message.id, urls=len(urls), tempo=round(elapsed, 2))
                return Found(message=message, extracted_urls=urls, elapsed=elapsed)

            remaining = timeout - elapsed
            if remaining <= 0:
                self.logger.aviso("Nenhuma mensagem recebida dentro do tempo limite", timeout=timeout, consultas=polls)
                return TimedOut(timeout=timeout, elapsed=elapsed, polls=polls)
            await self.clock.sleep(min(interval, remaining))

    async def _poll_once(self, predicate: MessageFilter) -> Optional[Message]:
        try:
            messages = await self._client.get_messages(1)
            summary = next((m for m in messages if predicate.matches(m)), None)
            if summary is None:
                return None
            return await self._client.get_message(summary.id)
        except MailFlowException as e:
            self.logger.aviso("Erro ao buscar mensagens; tentando novamente", erro=str(e))
            return None


__all__ = ["MessageFilter", "URL_PATTERN", "WaitForMessageWorkflow", "extract_urls"]
