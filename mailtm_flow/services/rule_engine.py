"""
Motor de regras da caixa de entrada.

Para cada mensagem, a primeira regra cuja condição casa decide a ação;
sem regra compatível, a mensagem fica intocada.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union

from mailtm_flow.core.exceptions import MailFlowException
from mailtm_flow.interfaces.services import ILoggingService, IMailTmClient
from mailtm_flow.models.mailtm import ItemResult, Message
from mailtm_flow.models.rules import Rule, RuleAction, RuleSet, parse_rules
from .base_service import BaseService


@dataclass
class RuleOutcome:
    """
    O que aconteceu com uma mensagem.

    Attributes:
        message_id: Mensagem avaliada
        rule: Regra vencedora (``None`` se nenhuma casou)
        applied: Houve efeito remoto (exclusão ou marcação)
    """
    message_id: str
    rule: Optional[Rule] = None
    applied: bool = False

    @property
    def action(self) -> Optional[RuleAction]:
        return self.rule.action if self.rule else None

    @property
    def matched(self) -> bool:
        return self.rule is not None

    def to_dict(self) -> dict:
        return {
            "message_id": self.message_id,
            "rule": self.rule.label if self.rule else None,
            "action": self.action.value if self.action else None,
            "applied": self.applied,
        }


class RuleEngine(BaseService):
    """Avalia e executa regras sobre mensagens."""

    def __init__(
        self,
        client: IMailTmClient,
        rules: Union[RuleSet, Sequence[Any]],
        *,
        logger: Optional[ILoggingService] = None,
    ):
        super().__init__(logger)
        self._client = client
        self.rules = rules if isinstance(rules, RuleSet) else parse_rules(rules)
        for rejected in self.rules.rejected:
            self.logger.aviso("Regra inválida ignorada", indice=rejected.index, motivo=rejected.reason)

    def evaluate(self, message: Message) -> Optional[Rule]:
        """Primeira regra compatível, sem efeitos colaterais."""
        return self.rules.first_match(message)

    async def apply(self, message: Message) -> RuleOutcome:
        """
        Executa a ação da regra vencedora.

        ``markAsRead`` só faz a requisição se a mensagem ainda não foi vista;
        aplicar duas vezes não repete o efeito.
        """
        rule = self.evaluate(message)
        if rule is None:
            return RuleOutcome(message.id)

        if rule.action is RuleAction.DELETE:
            await self._client.delete_message(message.id)
            message.is_deleted = True
            applied = True
        elif rule.action is RuleAction.MARK_AS_READ and not message.seen:
            await self._client.mark_message_as_seen(message.id)
            message.seen = True
            applied = True
        else:
            applied = False

        self.logger.debug("Regra aplicada", regra=rule.label, message_id=message.id, efeito=applied)
        return RuleOutcome(message.id, rule, applied)

    async def apply_all(self, messages: Iterable[Message], halt_on_error: bool = False) -> List[ItemResult[RuleOutcome]]:
        """
        Aplica as regras a cada mensagem, com resultado individual.

        Args:
            messages: Mensagens a processar
            halt_on_error: Interrompe na primeira falha (itens restantes não são tentados)

        Returns:
            List[ItemResult[RuleOutcome]]: Um resultado por mensagem processada
        """
        results: List[ItemResult[RuleOutcome]] = []
        for index, message in enumerate(messages):
            try:
                results.append(ItemResult(index, value=await self.apply(message)))
            except MailFlowException as e:
                self.logger.erro("Falha ao aplicar regra", message_id=message.id, erro=str(e))
                results.append(ItemResult(index, error=e))
                if halt_on_error:
                    break

        applied = sum(1 for r in results if r.ok and r.value.applied)
        self.logger.sucesso("Regras aplicadas", mensagens=len(results), efeitos=applied)
        return results

    async def run(self, halt_on_error: bool = False) -> List[ItemResult[RuleOutcome]]:
        """Busca todas as mensagens da caixa e aplica as regras."""
        with self.logger.etapa("Aplicando regras na caixa", regras=len(self.rules)):
            messages = await self._client.get_all_messages()
            return await self.apply_all(messages, halt_on_error=halt_on_error)


__all__ = ["RuleEngine", "RuleOutcome"]
