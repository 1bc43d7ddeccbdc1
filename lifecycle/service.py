"""
Document lifecycle service.

The operations collaborators call. Mutations go through the transaction
coordinator and return the committed Document; failed history/audit writes
are logged here and otherwise ignored.
"""

import logging
from typing import Any, Callable, Optional

from sqlalchemy.orm import sessionmaker

from database.audit import AuditTrail
from database.history import VersionHistoryStore
from database.ledger import LedgerStore
from database.session import create_ledger_engine, create_session_factory, init_db
from lifecycle.config import Settings, get_settings
from lifecycle.coordinator import (
    ENTITY_TYPE,
    ClientLike,
    ItemLike,
    MutationOutcome,
    TransactionCoordinator,
)
from state_machine.errors import NotFound, ValidationFailure
from state_machine.models import AuditEvent, Document, DocumentStatus, VersionSnapshot

logger = logging.getLogger(__name__)


class DocumentLifecycleService:
    """Entry point for creating, editing, issuing and inspecting documents."""

    def __init__(
        self,
        ledger: LedgerStore,
        history: VersionHistoryStore,
        audit: AuditTrail,
        coordinator: Optional[TransactionCoordinator] = None,
        settings: Optional[Settings] = None,
    ):
        self.ledger = ledger
        self.history = history
        self.audit = audit
        self.coordinator = coordinator or TransactionCoordinator(
            ledger, history, audit, settings=settings
        )

    @classmethod
    def from_session_factory(
        cls,
        session_factory: sessionmaker,
        settings: Optional[Settings] = None,
        shipment_exists: Optional[Callable[[str], bool]] = None,
    ) -> "DocumentLifecycleService":
        """Wire every store onto one session factory."""
        ledger = LedgerStore(session_factory)
        history = VersionHistoryStore(session_factory)
        audit = AuditTrail(session_factory)
        coordinator = TransactionCoordinator(
            ledger,
            history,
            audit,
            settings=settings,
            shipment_exists=shipment_exists,
        )
        return cls(ledger, history, audit, coordinator=coordinator, settings=settings)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DocumentLifecycleService":
        """Create the schema at ``settings.database_url`` and wire a service."""
        settings = settings or get_settings()
        engine = create_ledger_engine(settings.database_url, echo=settings.sql_echo)
        init_db(engine=engine)
        return cls.from_session_factory(create_session_factory(engine), settings=settings)

    def _report(self, action: str, outcome: MutationOutcome) -> Document:
        if not outcome.side_effects_ok:
            for result in (outcome.history, outcome.audit):
                if result is not None and not result.success:
                    logger.warning(
                        f"{action} of document {outcome.document.id} committed, "
                        f"but {result.channel} write failed: {result.error}"
                    )
        return outcome.document

    # Mutations

    def create_document(
        self,
        client: Optional[ClientLike],
        items: list[ItemLike],
        shipment_refs: Optional[list[str]] = None,
        tax: Any = "0",
        actor: Optional[str] = None,
    ) -> Document:
        """
        Create a DRAFT document at version 1.

        Raises:
            ValidationFailure, ConflictingLink, NotFound
        """
        outcome = self.coordinator.create_composition(
            client, items, shipment_refs or [], tax, actor=actor
        )
        return self._report("Create", outcome)

    def update_document(
        self,
        document_id: int,
        client: Optional[ClientLike],
        items: list[ItemLike],
        shipment_refs: Optional[list[str]],
        tax: Any,
        expected_version: Optional[int],
        actor: Optional[str] = None,
    ) -> Document:
        """
        Replace a DRAFT document's composition.

        Raises:
            NotFound, VersionConflict, InvalidTransition, ValidationFailure,
            ConflictingLink
        """
        outcome = self.coordinator.replace_composition(
            document_id,
            client,
            items,
            shipment_refs or [],
            tax,
            expected_version,
            actor=actor,
        )
        return self._report("Update", outcome)

    def issue_document(
        self,
        document_id: int,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Document:
        """
        Issue a DRAFT document.

        Raises:
            NotFound, InvalidTransition, VersionConflict
        """
        outcome = self.coordinator.issue(document_id, expected_version, actor=actor)
        return self._report("Issue", outcome)

    # Queries

    def get_document(self, document_id: int) -> Document:
        document = self.ledger.get_document(document_id)
        if document is None:
            raise NotFound(ENTITY_TYPE, document_id, document_id=document_id)
        return document

    def list_by_status(self, status: DocumentStatus) -> list[Document]:
        """
        Documents in ``status``, newest first.

        Raises:
            ValidationFailure: If ``status`` is not a known status.
        """
        try:
            status = DocumentStatus(status)
        except ValueError as e:
            raise ValidationFailure([f"unknown status '{status}'"]) from e
        return self.ledger.list_documents(status=status.value)

    def list_documents(self) -> list[Document]:
        return self.ledger.list_documents()

    def get_history(self, document_id: int) -> list[VersionSnapshot]:
        """Snapshots of a document, newest version first."""
        return self.history.get_history(document_id)

    def get_history_version(self, document_id: int, version: int) -> VersionSnapshot:
        snapshot = self.history.get_version(document_id, version)
        if snapshot is None:
            raise NotFound("VersionSnapshot", f"{document_id}@{version}", document_id=document_id)
        return snapshot

    def get_latest_version(self, document_id: int) -> Optional[VersionSnapshot]:
        return self.history.get_latest(document_id)

    def count_versions(self, document_id: int) -> int:
        return self.history.count(document_id)

    def get_audit_log(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        """Audit events of an entity, newest first."""
        return self.audit.for_entity(entity_type, entity_id)
