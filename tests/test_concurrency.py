"""Tests for optimistic concurrency on the document version."""

from decimal import Decimal

import pytest

from database import create_ledger_engine, create_session_factory, init_db
from database.models import DocumentModel
from database.session import session_scope
from lifecycle import ConcurrencyGuard, DocumentLifecycleService
from state_machine.errors import VersionConflict
from state_machine.models import DocumentStatus


@pytest.fixture
def file_session_factory(tmp_path):
    """File-backed SQLite so two sessions use separate connections."""
    engine = create_ledger_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine=engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def file_service(file_session_factory, settings) -> DocumentLifecycleService:
    return DocumentLifecycleService.from_session_factory(file_session_factory, settings=settings)


class TestCheckVersion:
    """Pre-check against the loaded header."""

    def test_none_skips_check(self, service, session_factory, client, items) -> None:
        document = service.create_document(client, items, [], "0")

        with session_scope(session_factory) as session:
            header = session.get(DocumentModel, document.id)
            ConcurrencyGuard().check_version(header, None)

    def test_mismatch(self, service, session_factory, client, items) -> None:
        document = service.create_document(client, items, [], "0")

        with session_scope(session_factory) as session:
            header = session.get(DocumentModel, document.id)
            with pytest.raises(VersionConflict) as exc_info:
                ConcurrencyGuard().check_version(header, 5)

        assert exc_info.value.to_dict()["code"] == "VERSION_CONFLICT"
        assert exc_info.value.to_dict()["retryable"] is True


class TestAdvance:
    """Compare-and-swap of the version counter."""

    def test_advance_bumps_version(self, service, session_factory, client, items) -> None:
        document = service.create_document(client, items, [], "0")

        with session_scope(session_factory) as session:
            new_version = ConcurrencyGuard().advance(
                session, document.id, 1, {"observations": "checked"}
            )

        assert new_version == 2
        stored = service.get_document(document.id)
        assert stored.version == 2
        assert stored.observations == "checked"

    def test_lost_race(self, file_service, file_session_factory, client, items) -> None:
        """Two writers read version 1; only the first commit wins."""
        document = file_service.create_document(client, items, [], "0")
        guard = ConcurrencyGuard()

        with pytest.raises(VersionConflict) as exc_info:
            with session_scope(file_session_factory) as session:
                header = session.get(DocumentModel, document.id)
                guard.check_version(header, 1)

                file_service.update_document(document.id, client, items, [], "9.00", 1)

                guard.advance(session, document.id, 1, {"tax": Decimal("1.00")})

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        stored = file_service.get_document(document.id)
        assert stored.version == 2
        assert stored.tax == Decimal("9.00")

    def test_lost_race_on_issue(self, file_service, file_session_factory, client, items) -> None:
        document = file_service.create_document(client, items, [], "0")

        with pytest.raises(VersionConflict):
            with session_scope(file_session_factory) as session:
                session.get(DocumentModel, document.id)

                file_service.issue_document(document.id)

                ConcurrencyGuard().advance(
                    session, document.id, 1, {"status": DocumentStatus.ISSUED.value}
                )

        stored = file_service.get_document(document.id)
        assert stored.version == 2
        assert stored.status == DocumentStatus.ISSUED

    def test_sequential_writers(self, file_service, client, items) -> None:
        document = file_service.create_document(client, items, [], "0")

        first = file_service.update_document(document.id, client, items, [], "1.00", 1)
        with pytest.raises(VersionConflict):
            file_service.update_document(document.id, client, items, [], "2.00", 1)
        second = file_service.update_document(document.id, client, items, [], "2.00", first.version)

        assert second.version == 3
        assert second.tax == Decimal("2.00")
