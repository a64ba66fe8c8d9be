from .mailtm import (
    Attachment,
    AuthenticatedSession,
    BulkDeleteResult,
    Credentials,
    Domain,
    Found,
    ItemResult,
    MailAccount,
    Message,
    MessageAddress,
    MessageSource,
    TimedOut,
    Watermark,
    WorkflowResult,
)
from .rules import Rule, RuleAction, RuleSet, load_rules_file, parse_rules

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
    "Rule",
    "RuleAction",
    "RuleSet",
    "TimedOut",
    "Watermark",
    "WorkflowResult",
    "load_rules_file",
    "parse_rules",
]
