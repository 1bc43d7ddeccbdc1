"""Append-only audit trail of document lifecycle events."""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Query, sessionmaker

from database.models import AuditEventModel
from database.session import session_scope
from state_machine.errors import PersistenceFailure
from state_machine.models import AuditAction, AuditEvent, RecordResult

logger = logging.getLogger(__name__)

CHANNEL = "audit_trail"


def _to_event(row: AuditEventModel) -> AuditEvent:
    return AuditEvent(
        id=row.id,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        action=AuditAction(row.action),
        actor=row.actor,
        before=row.before,
        after=row.after,
        summary=row.summary,
        created_at=row.created_at,
    )


class AuditTrail:
    """
    Records domain events with before/after payloads.

    Every path uses the same best-effort policy: failures are logged and
    returned as a failed RecordResult.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def record(
        self,
        entity_type: str,
        entity_id: int,
        action: AuditAction,
        actor: Optional[str] = None,
        before: Optional[dict[str, Any]] = None,
        after: Optional[dict[str, Any]] = None,
        summary: Optional[str] = None,
    ) -> RecordResult:
        """
        Append one audit event.

        Args:
            entity_type: Kind of entity, e.g. "Document".
            entity_id: Entity identifier.
            action: The audited action.
            actor: Who performed it.
            before: Serialized state before the action.
            after: Serialized state after the action.
            summary: Free-text description.

        Returns:
            RecordResult describing the write.
        """
        try:
            with session_scope(self._session_factory) as session:
                row = AuditEventModel(
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action=AuditAction(action).value,
                    actor=actor,
                    before=before,
                    after=after,
                    summary=summary,
                )
                session.add(row)
                session.flush()
                record_id = row.id
        except Exception as e:
            failure = PersistenceFailure(CHANNEL, str(e), document_id=entity_id)
            logger.error(
                f"Could not log audit event {action} for {entity_type} {entity_id}: {e}",
                exc_info=True,
            )
            return RecordResult.failed(CHANNEL, failure.to_dict())

        return RecordResult.ok(CHANNEL, record_id)

    def _newest_first(self, query: Query) -> Query:
        return query.order_by(AuditEventModel.created_at.desc(), AuditEventModel.id.desc())

    def for_entity(self, entity_type: str, entity_id: int) -> list[AuditEvent]:
        """Events of one entity, newest first."""
        with session_scope(self._session_factory) as session:
            query = session.query(AuditEventModel).filter(
                AuditEventModel.entity_type == entity_type,
                AuditEventModel.entity_id == entity_id,
            )
            return [_to_event(row) for row in self._newest_first(query).all()]

    def by_action(self, action: AuditAction) -> list[AuditEvent]:
        with session_scope(self._session_factory) as session:
            query = session.query(AuditEventModel).filter(
                AuditEventModel.action == AuditAction(action).value
            )
            return [_to_event(row) for row in self._newest_first(query).all()]

    def by_actor(self, actor: str) -> list[AuditEvent]:
        with session_scope(self._session_factory) as session:
            query = session.query(AuditEventModel).filter(AuditEventModel.actor == actor)
            return [_to_event(row) for row in self._newest_first(query).all()]

    def between(self, start: datetime, end: datetime) -> list[AuditEvent]:
        """Events created in [start, end], newest first."""
        with session_scope(self._session_factory) as session:
            query = session.query(AuditEventModel).filter(
                AuditEventModel.created_at >= start,
                AuditEventModel.created_at <= end,
            )
            return [_to_event(row) for row in self._newest_first(query).all()]
