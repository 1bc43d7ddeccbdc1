"""
Error taxonomy for the document lifecycle.

Hard failures abort the enclosing transaction and reach the caller:

    LifecycleError
    +-- NotFound            document or referenced shipment absent
    +-- VersionConflict     stale expected version (retry with fresh state)
    +-- InvalidTransition   state machine rejected the action
    +-- ValidationFailure   structural invariant violated
    +-- ConflictingLink     shipment already linked to another document

PersistenceFailure is soft: it describes a failed history/audit write and
travels inside a RecordResult instead of being raised past a committed
mutation.
"""

from typing import Any, Optional


class LifecycleError(Exception):
    """Base class for lifecycle errors. Subclasses set a machine code."""

    code: str = "LIFECYCLE_ERROR"
    retryable: bool = False

    def __init__(self, message: str, document_id: Optional[int] = None):
        self.document_id = document_id
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        """Extra structured fields for the error payload."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        payload = {
            "code": self.code,
            "message": str(self),
            "document_id": self.document_id,
            "retryable": self.retryable,
        }
        payload.update(self.details())
        return payload


class NotFound(LifecycleError):
    """Document, snapshot or shipment reference does not exist."""

    code = "NOT_FOUND"

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        document_id: Optional[int] = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found", document_id)

    def details(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type, "entity_id": self.entity_id}


class VersionConflict(LifecycleError):
    """Expected version no longer matches the stored one."""

    code = "VERSION_CONFLICT"
    retryable = True

    def __init__(
        self,
        document_id: int,
        expected_version: int,
        actual_version: Optional[int] = None,
    ):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Document {document_id} was modified by another writer "
            f"(expected version {expected_version}, found {actual_version})",
            document_id,
        )

    def details(self) -> dict[str, Any]:
        return {
            "expected_version": self.expected_version,
            "actual_version": self.actual_version,
        }


class InvalidTransition(LifecycleError):
    """The state machine rejected an action from the current state."""

    code = "INVALID_TRANSITION"

    def __init__(
        self,
        message: str,
        current_state: str,
        attempted_action: str,
        document_id: Optional[int] = None,
        failed_guards: Optional[list[str]] = None,
    ):
        self.current_state = current_state
        self.attempted_action = attempted_action
        self.failed_guards = failed_guards or []
        super().__init__(message, document_id)

    def details(self) -> dict[str, Any]:
        return {
            "current_state": self.current_state,
            "attempted_action": self.attempted_action,
            "failed_guards": list(self.failed_guards),
        }


class ValidationFailure(LifecycleError):
    """Requested composition breaks a structural rule."""

    code = "VALIDATION_FAILURE"

    def __init__(self, errors: list[str], document_id: Optional[int] = None):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed", document_id)

    def details(self) -> dict[str, Any]:
        return {"errors": list(self.errors)}


class ConflictingLink(LifecycleError):
    """A shipment reference is already linked to another document."""

    code = "CONFLICTING_LINK"

    def __init__(
        self,
        shipment_ref: str,
        document_id: Optional[int] = None,
        linked_document_id: Optional[int] = None,
    ):
        self.shipment_ref = shipment_ref
        self.linked_document_id = linked_document_id
        super().__init__(
            f"Shipment '{shipment_ref}' is already linked to another document",
            document_id,
        )

    def details(self) -> dict[str, Any]:
        return {
            "shipment_ref": self.shipment_ref,
            "linked_document_id": self.linked_document_id,
        }


class PersistenceFailure(LifecycleError):
    """A history or audit write failed. Never aborts the primary mutation."""

    code = "PERSISTENCE_FAILURE"

    def __init__(self, channel: str, reason: str, document_id: Optional[int] = None):
        self.channel = channel
        self.reason = reason
        super().__init__(f"Could not write {channel}: {reason}", document_id)

    def details(self) -> dict[str, Any]:
        return {"channel": self.channel, "reason": self.reason}
