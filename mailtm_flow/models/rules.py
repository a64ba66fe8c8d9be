"""
Regras declarativas de caixa de entrada.

A entrada (JSON/YAML) é convertida na fronteira em variantes tipadas de
condição e ação; definições malformadas são rejeitadas aqui, nunca durante
a avaliação.

Formato canônico::

    {"name": "spam", "condition": {"type": "fromEquals", "address": "spam@x"}, "action": "delete"}

Atalhos aceitos::

    {"from": "spam@x", "action": "delete"}
    {"subjectContains": "Newsletter", "action": "markAsRead"}
    {"always": true, "action": "ignore"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, List, Literal, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from mailtm_flow.core.exceptions import InvalidRuleException, wrap_exception
from mailtm_flow.models.mailtm import Message


class FromEquals(BaseModel):
    """Remetente exatamente igual ao endereço informado."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["fromEquals"] = "fromEquals"
    address: str = Field(min_length=1)

    def matches(self, message: Message) -> bool:
        return message.sender == self.address


class SubjectContains(BaseModel):
    """Assunto contém o trecho (sensível a maiúsculas/minúsculas)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["subjectContains"] = "subjectContains"
    text: str = Field(min_length=1)

    def matches(self, message: Message) -> bool:
        return self.text in (message.subject or "")


class Always(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["always"] = "always"

    def matches(self, message: Message) -> bool:
        return True


Condition = Annotated[Union[FromEquals, SubjectContains, Always], Field(discriminator="type")]


class RuleAction(str, Enum):
    DELETE = "delete"
    MARK_AS_READ = "markAsRead"
    IGNORE = "ignore"


_SHORTHAND_KEYS = ("from", "subjectContains", "always")


class Rule(BaseModel):
    """Par condição/ação. A primeira regra compatível decide a ação da mensagem."""
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    condition: Condition
    action: RuleAction

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "condition" in data:
            return data
        present = [key for key in _SHORTHAND_KEYS if key in data]
        if len(present) != 1:
            # Sem condição (ou ambígua): deixa a validação de ``condition`` falhar
            return data
        expanded = {k: v for k, v in data.items() if k not in _SHORTHAND_KEYS}
        key = present[0]
        if key == "from":
            expanded["condition"] = {"type": "fromEquals", "address": data["from"]}
        elif key == "subjectContains":
            expanded["condition"] = {"type": "subjectContains", "text": data["subjectContains"]}
        elif data["always"] is True:
            expanded["condition"] = {"type": "always"}
        return expanded

    def matches(self, message: Message) -> bool:
        return self.condition.matches(message)

    @property
    def label(self) -> str:
        return self.name or f"{self.condition.type}->{self.action.value}"


@dataclass
class RejectedRule:
    """Definição descartada na leitura, com o motivo."""
    index: int
    raw: Any
    reason: str


@dataclass
class RuleSet:
    """Regras válidas, na ordem original, e as rejeitadas."""
    rules: List[Rule] = field(default_factory=list)
    rejected: List[RejectedRule] = field(default_factory=list)

    def first_match(self, message: Message) -> Optional[Rule]:
        return next((rule for rule in self.rules if rule.matches(message)), None)

    def __len__(self) -> int:
        return len(self.rules)


def parse_rules(raw_rules: Sequence[Any]) -> RuleSet:
    """
    Converte definições cruas em ``RuleSet``.

    Cada definição inválida (sem condição/ação, ação desconhecida, tipo
    errado) é rejeitada individualmente; as demais seguem valendo.

    Args:
        raw_rules: Lista de dicionários vindos de JSON/YAML

    Returns:
        RuleSet: Regras válidas e rejeitadas
    """
    if isinstance(raw_rules, (str, bytes)) or not isinstance(raw_rules, Sequence):
        raise InvalidRuleException("Regras devem ser uma lista", details={"type": type(raw_rules).__name__})

    rule_set = RuleSet()
    for index, raw in enumerate(raw_rules):
        try:
            rule_set.rules.append(Rule.model_validate(raw))
        except ValidationError as e:
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'rule'}: {err['msg']}" for err in e.errors()
            )
            rule_set.rejected.append(RejectedRule(index=index, raw=raw, reason=reason))
    return rule_set


def load_rules_file(path: Union[str, Path]) -> RuleSet:
    """Lê um arquivo YAML ou JSON com uma lista de regras (ou ``{"rules": [...]}``)."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise wrap_exception(e, InvalidRuleException, "Não foi possível ler o arquivo de regras", path=str(path))
    if isinstance(data, dict) and "rules" in data:
        data = data["rules"]
    if data is None:
        data = []
    return parse_rules(data)


__all__ = [
    "Always",
    "Condition",
    "FromEquals",
    "RejectedRule",
    "Rule",
    "RuleAction",
    "RuleSet",
    "SubjectContains",
    "load_rules_file",
    "parse_rules",
]
