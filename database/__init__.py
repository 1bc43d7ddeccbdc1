"""Database module for persistent storage."""

from database.models import (
    Base,
    AuditEventModel,
    DocumentModel,
    DocumentVersionModel,
    LineItemModel,
    ShipmentLinkModel,
)
from database.audit import AuditTrail
from database.history import VersionHistoryStore
from database.ledger import LedgerStore
from database.session import (
    create_ledger_engine,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_db,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "AuditEventModel",
    "DocumentModel",
    "DocumentVersionModel",
    "LineItemModel",
    "ShipmentLinkModel",
    "AuditTrail",
    "VersionHistoryStore",
    "LedgerStore",
    "create_ledger_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_db",
    "reset_engine",
    "session_scope",
]
