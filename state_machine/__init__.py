"""State machine module for document lifecycle management."""

from state_machine.document_state import (
    DocumentAction,
    DocumentFSM,
    DocumentState,
    issue_guard_failures,
    next_state,
)
from state_machine.errors import (
    ConflictingLink,
    InvalidTransition,
    LifecycleError,
    NotFound,
    PersistenceFailure,
    ValidationFailure,
    VersionConflict,
)
from state_machine.models import (
    AuditAction,
    AuditEvent,
    ClientInfo,
    Document,
    DocumentStatus,
    LineItem,
    LineItemInput,
    RecordResult,
    VersionSnapshot,
)

__all__ = [
    "DocumentAction",
    "DocumentFSM",
    "DocumentState",
    "issue_guard_failures",
    "next_state",
    "ConflictingLink",
    "InvalidTransition",
    "LifecycleError",
    "NotFound",
    "PersistenceFailure",
    "ValidationFailure",
    "VersionConflict",
    "AuditAction",
    "AuditEvent",
    "ClientInfo",
    "Document",
    "DocumentStatus",
    "LineItem",
    "LineItemInput",
    "RecordResult",
    "VersionSnapshot",
]
