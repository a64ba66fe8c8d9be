"""
Detecção de mensagens novas por marca d'água.

Sem I/O: recebe a página já ordenada pelo provedor (mais recentes primeiro)
e decide o que é novo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from mailtm_flow.models.mailtm import Message, Watermark


@dataclass
class ScanResult:
    """
    Resultado de uma varredura.

    Attributes:
        new_messages: Prefixo novo da página, mais recentes primeiro
        watermark: Marca d'água a adotar após a varredura
    """
    new_messages: List[Message] = field(default_factory=list)
    watermark: Watermark = field(default_factory=Watermark)

    @property
    def has_new(self) -> bool:
        return bool(self.new_messages)

    def oldest_first(self) -> List[Message]:
        return list(reversed(self.new_messages))


def _is_behind(message: Message, watermark: Watermark) -> bool:
    if message.id == watermark.last_seen_id:
        return True
    # Mesmo segundo ainda conta como novo; createdAt tem resolução de segundos
    return (
        watermark.received_at is not None
        and message.received_at is not None
        and message.received_at < watermark.received_at
    )


def scan(messages: Sequence[Message], watermark: Watermark) -> ScanResult:
    """
    Coleta o prefixo de ``messages`` mais novo que ``watermark``.

    A varredura para na mensagem cujo id é a marca d'água ou na primeira
    mensagem mais antiga que o horário registrado. Sem marca d'água, a
    página inteira é nova.

    Args:
        messages: Página do provedor, mais recentes primeiro
        watermark: Marca d'água atual

    Returns:
        ScanResult: Mensagens novas e a próxima marca d'água
    """
    new_messages: List[Message] = []
    for message in messages:
        if watermark.is_set and _is_behind(message, watermark):
            break
        new_messages.append(message)

    if not new_messages:
        return ScanResult([], watermark)

    head = new_messages[0]
    return ScanResult(
        new_messages,
        Watermark(last_seen_id=head.id, received_at=head.received_at or watermark.received_at),
    )


class WatermarkTracker:
    """Mantém a marca d'água de uma única caixa de entrada."""

    def __init__(self, watermark: Optional[Watermark] = None):
        self._watermark = watermark or Watermark()

    @property
    def watermark(self) -> Watermark:
        return self._watermark

    @property
    def last_seen_id(self) -> Optional[str]:
        return self._watermark.last_seen_id

    def observe(self, messages: Sequence[Message]) -> ScanResult:
        """Varre a página e avança a marca d'água imediatamente, antes de qualquer efeito colateral."""
        result = scan(messages, self._watermark)
        self._watermark = result.watermark
        return result

    def reset(self) -> None:
        self._watermark = Watermark()


__all__ = ["ScanResult", "WatermarkTracker", "scan"]
