"""
Exclusão em lote de todas as mensagens da caixa de entrada.
"""

from __future__ import annotations

from typing import Optional

from mailtm_flow.core.clock import Clock, system_clock
from mailtm_flow.core.config import DEFAULT_DELETE_DELAY
from mailtm_flow.core.exceptions import MailFlowException
from mailtm_flow.interfaces.services import ILoggingService, IMailTmClient
from mailtm_flow.models.mailtm import BulkDeleteResult
from .base_service import BaseService


class BulkDeleteService(BaseService):
    """
    Exclui todas as mensagens, uma por vez, com pausa fixa entre exclusões.

    Não é atômico: a primeira falha interrompe o restante do lote e o
    resultado informa quantas exclusões já tinham sido concluídas.
    """

    def __init__(
        self,
        client: IMailTmClient,
        delay: float = DEFAULT_DELETE_DELAY,
        *,
        clock: Clock = system_clock,
        logger: Optional[ILoggingService] = None,
    ):
        super().__init__(logger, clock)
        if delay < 0:
            raise ValueError("delay deve ser >= 0")
        self._client = client
        self.delay = delay

    async def delete_all(self) -> BulkDeleteResult:
        """
        Busca todas as mensagens e as exclui sequencialmente.

        Falhas ao listar são propagadas (nada foi excluído ainda); falhas ao
        excluir viram ``BulkDeleteResult.error``.

        Returns:
            BulkDeleteResult: Contagem de sucessos e o erro, se houver
        """
        messages = await self._client.get_all_messages()
        total = len(messages)
        deleted = 0

        self.logger.info("Iniciando exclusão em lote", total=total)
        for index, message in enumerate(messages):
            if index:
                await self.clock.sleep(self.delay)
            try:
                await self._client.delete_message(message.id)
            except MailFlowException as e:
                self.logger.erro(
                    "Exclusão em lote interrompida",
                    message_id=message.id,
                    excluidas=deleted,
                    total=total,
                    erro=str(e),
                )
                return BulkDeleteResult(deleted_count=deleted, total=total, error=e, failed_message_id=message.id)
            deleted += 1

        self.logger.sucesso("Mensagens excluídas", excluidas=deleted, total=total)
        return BulkDeleteResult(deleted_count=deleted, total=total)


__all__ = ["BulkDeleteService"]
