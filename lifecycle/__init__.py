"""Invoice lifecycle core: coordinator, concurrency guard and service."""

from lifecycle.concurrency import ConcurrencyGuard
from lifecycle.config import Settings, configure_logging, get_settings
from lifecycle.coordinator import MutationOutcome, TransactionCoordinator, price_composition
from lifecycle.service import DocumentLifecycleService

__all__ = [
    "ConcurrencyGuard",
    "Settings",
    "configure_logging",
    "get_settings",
    "MutationOutcome",
    "TransactionCoordinator",
    "price_composition",
    "DocumentLifecycleService",
]
