"""Append-only version history for documents."""

import logging
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from database.models import DocumentVersionModel
from database.session import session_scope
from state_machine.errors import PersistenceFailure
from state_machine.models import RecordResult, VersionSnapshot

logger = logging.getLogger(__name__)

CHANNEL = "version_history"


def _to_snapshot(row: DocumentVersionModel) -> VersionSnapshot:
    return VersionSnapshot(
        id=row.id,
        document_id=row.document_id,
        version=row.version,
        document_number=row.document_number,
        external_folio=row.external_folio,
        payload=row.payload,
        actor=row.actor,
        created_at=row.created_at,
        superseded_by_revert=row.superseded_by_revert,
    )


class VersionHistoryStore:
    """
    Snapshots of document states superseded by a mutation.

    Writes are best-effort: a failure is logged and returned as a failed
    RecordResult, never raised.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def snapshot(
        self,
        document_id: int,
        version: int,
        state: dict[str, Any],
        actor: Optional[str] = None,
    ) -> RecordResult:
        """
        Store the state a document had at ``version``.

        Args:
            document_id: The document identifier.
            version: Version being replaced.
            state: Serialized document as it was at ``version``.
            actor: Who triggered the superseding mutation.

        Returns:
            RecordResult describing the write.
        """
        try:
            with session_scope(self._session_factory) as session:
                row = DocumentVersionModel(
                    document_id=document_id,
                    version=version,
                    document_number=state["document_number"],
                    external_folio=state.get("external_folio"),
                    payload=state,
                    actor=actor,
                )
                session.add(row)
                session.flush()
                record_id = row.id
        except Exception as e:
            failure = PersistenceFailure(CHANNEL, str(e), document_id=document_id)
            logger.error(
                f"Could not save snapshot v{version} of document {document_id}: {e}",
                exc_info=True,
            )
            return RecordResult.failed(CHANNEL, failure.to_dict())

        logger.debug(f"Saved snapshot v{version} of document {document_id}")
        return RecordResult.ok(CHANNEL, record_id)

    def get_history(self, document_id: int) -> list[VersionSnapshot]:
        """All snapshots of a document, newest version first."""
        with session_scope(self._session_factory) as session:
            rows = (
                session.query(DocumentVersionModel)
                .filter(DocumentVersionModel.document_id == document_id)
                .order_by(DocumentVersionModel.version.desc())
                .all()
            )
            return [_to_snapshot(row) for row in rows]

    def get_version(self, document_id: int, version: int) -> Optional[VersionSnapshot]:
        with session_scope(self._session_factory) as session:
            row = (
                session.query(DocumentVersionModel)
                .filter(
                    DocumentVersionModel.document_id == document_id,
                    DocumentVersionModel.version == version,
                )
                .first()
            )
            return _to_snapshot(row) if row else None

    def get_latest(self, document_id: int) -> Optional[VersionSnapshot]:
        with session_scope(self._session_factory) as session:
            row = (
                session.query(DocumentVersionModel)
                .filter(DocumentVersionModel.document_id == document_id)
                .order_by(DocumentVersionModel.version.desc())
                .first()
            )
            return _to_snapshot(row) if row else None

    def count(self, document_id: int) -> int:
        with session_scope(self._session_factory) as session:
            return (
                session.query(DocumentVersionModel)
                .filter(DocumentVersionModel.document_id == document_id)
                .count()
            )
