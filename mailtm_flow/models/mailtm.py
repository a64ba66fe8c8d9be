"""
Entidades do Mail.tm e resultados dos fluxos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Converte ``createdAt``/``updatedAt`` (ISO 8601) em datetime; ``None`` se inválido."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Domain:
    """Representa um domínio de e-mail disponível."""
    id: str
    domain: str
    is_active: bool = True
    is_private: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class MailAccount:
    """Representa uma conta de e-mail do Mail.tm."""
    id: str
    address: str
    quota: Optional[int] = None
    used: Optional[int] = None
    is_disabled: bool = False
    is_deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    """Endereço e senha de uma conta. Nunca persistido pelo núcleo."""
    address: str
    password: str = field(repr=False)


@dataclass
class AuthenticatedSession:
    """Agrupa os dados de uma sessão autenticada (conta + token)."""
    account: MailAccount
    token: str = field(repr=False)
    password: Optional[str] = field(default=None, repr=False)


@dataclass
class MessageAddress:
    """Representa um endereço de e-mail (remetente/destinatário) em uma mensagem."""
    address: str
    name: str = ""


@dataclass
class Attachment:
    """Anexo de uma mensagem; ``download_url`` é a referência para download binário."""
    id: str
    filename: str
    download_url: str
    content_type: str = ""
    size: int = 0


@dataclass
class Message:
    """
    Representa uma mensagem de e-mail.

    A listagem devolve apenas o resumo; ``text``, ``html`` e ``attachments``
    só vêm preenchidos em ``get_message``.
    """
    id: str
    subject: str = ""
    from_address: MessageAddress = field(default_factory=lambda: MessageAddress(address=""))
    seen: bool = False
    received_at: Optional[datetime] = None
    account_id: str = ""
    msgid: str = ""
    to: List[MessageAddress] = field(default_factory=list)
    intro: str = ""
    is_deleted: bool = False
    has_attachments: bool = False
    size: int = 0
    download_url: str = ""
    text: str = ""
    html: List[str] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def sender(self) -> str:
        return self.from_address.address

    @property
    def body(self) -> str:
        """Corpo preferencial: HTML quando existir, senão o texto puro."""
        if self.html:
            return "\n".join(self.html)
        return self.text or ""

    def find_attachment(self, attachment_id: str) -> Optional[Attachment]:
        return next((a for a in self.attachments if a.id == attachment_id), None)

    def to_dict(self) -> Dict[str, Any]:
        """JSON original da API quando disponível, senão um resumo montado."""
        if self.raw:
            return dict(self.raw)
        return {
            "id": self.id,
            "subject": self.subject,
            "from": {"address": self.from_address.address, "name": self.from_address.name},
            "seen": self.seen,
            "createdAt": self.received_at.isoformat() if self.received_at else None,
        }


@dataclass
class MessageSource:
    """Fonte bruta (RFC 822) de uma mensagem."""
    id: str
    data: str
    download_url: str = ""


@dataclass
class Watermark:
    """
    Limite de deduplicação do gatilho.

    ``last_seen_id`` é o id da mensagem mais nova já processada;
    ``received_at`` guarda o horário dela para descartar mensagens antigas
    mesmo que o id de referência tenha sumido da caixa.
    """
    last_seen_id: Optional[str] = None
    received_at: Optional[datetime] = None

    @property
    def is_set(self) -> bool:
        return self.last_seen_id is not None


# ==================== Resultados ====================

@dataclass
class Found:
    """Mensagem encontrada pelo fluxo de espera."""
    message: Message
    extracted_urls: List[str] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def found(self) -> bool:
        return True


@dataclass
class TimedOut:
    """Tempo limite esgotado sem mensagem compatível. Resultado esperado, não erro."""
    timeout: float
    elapsed: float
    polls: int = 0

    @property
    def found(self) -> bool:
        return False


WorkflowResult = Union[Found, TimedOut]


@dataclass
class BulkDeleteResult:
    """
    Resultado da exclusão em lote.

    Attributes:
        deleted_count: Exclusões concluídas com sucesso
        total: Mensagens encontradas no início da operação
        error: Erro que interrompeu o lote (``None`` quando tudo correu bem)
        failed_message_id: Mensagem cuja exclusão falhou
    """
    deleted_count: int
    total: int
    error: Optional[Exception] = None
    failed_message_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Lança ``BulkDeleteException`` se o lote foi interrompido."""
        if self.error is None:
            return
        from mailtm_flow.core.exceptions import BulkDeleteException

        raise BulkDeleteException(
            self.deleted_count, self.total, cause=self.error, message_id=self.failed_message_id
        )


@dataclass
class ItemResult(Generic[T]):
    """Resultado por item de um lote: valor ou erro, nunca os dois."""
    index: int
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"index": self.index, "error": str(self.error)}
        return {"index": self.index, "json": self.value}


__all__ = [
    "Attachment",
    "AuthenticatedSession",
    "BulkDeleteResult",
    "Credentials",
    "Domain",
    "Found",
    "ItemResult",
    "MailAccount",
    "Message",
    "MessageAddress",
    "MessageSource",
    "TimedOut",
    "Watermark",
    "WorkflowResult",
    "parse_timestamp",
]
