"""Serviços de orquestração sobre o cliente Mail.tm."""

from .bulk_delete_service import BulkDeleteService
from .operations_service import OperationRequest, OperationRunner
from .rule_engine import RuleEngine, RuleOutcome
from .scheduler import PeriodicTask
from .trigger_service import TriggerLoop, TriggerState
from .wait_service import MessageFilter, WaitForMessageWorkflow, extract_urls
from .watermark import ScanResult, WatermarkTracker, scan

__all__ = [
    "BulkDeleteService",
    "MessageFilter",
    "OperationRequest",
    "OperationRunner",
    "PeriodicTask",
    "RuleEngine",
    "RuleOutcome",
    "ScanResult",
    "TriggerLoop",
    "TriggerState",
    "WaitForMessageWorkflow",
    "WatermarkTracker",
    "extract_urls",
    "scan",
]
