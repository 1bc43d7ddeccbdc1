"""Tests for database storage."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from database import LedgerStore, init_db, reset_engine
from database.models import DocumentModel, ShipmentLinkModel
from database.session import get_session_factory, session_scope
from state_machine.errors import ConflictingLink, NotFound
from state_machine.models import DocumentStatus


def header_values(number: str, status: str = "DRAFT") -> dict:
    now = datetime.utcnow()
    return {
        "document_number": number,
        "client_name": "Acme",
        "status": status,
        "version": 1,
        "subtotal": Decimal("10.00"),
        "tax": Decimal("0.00"),
        "total": Decimal("10.00"),
        "created_at": now,
        "updated_at": now,
    }


def item_values(description: str, quantity: int = 1, unit_price: str = "10.00") -> dict:
    price = Decimal(unit_price)
    return {
        "description": description,
        "quantity": quantity,
        "unit_price": price,
        "total_price": price * quantity,
        "shipment_ref": None,
    }


@pytest.fixture
def db_store():
    """Ledger store on the global engine with a fresh in-memory database."""
    reset_engine()
    init_db("sqlite:///:memory:")

    store = LedgerStore()
    yield store

    reset_engine()


class TestLedgerStore:
    """Test LedgerStore operations."""

    def test_insert_and_get(self, db_store) -> None:
        """Test writing a header with items and links, then reading it back."""
        with session_scope() as session:
            header = db_store.insert_header(session, header_values("INV-001"))
            db_store.insert_items(session, header.id, [item_values("Freight")])
            db_store.insert_links(session, header.id, ["SHP-1"])
            document_id = header.id

        document = db_store.get_document(document_id)

        assert document.document_number == "INV-001"
        assert document.status == DocumentStatus.DRAFT
        assert document.subtotal == Decimal("10.00")
        assert [item.description for item in document.items] == ["Freight"]
        assert document.shipment_refs == ["SHP-1"]

    def test_get_nonexistent(self, db_store) -> None:
        assert db_store.get_document(404) is None

    def test_items_ordered_by_position(self, db_store) -> None:
        with session_scope() as session:
            header = db_store.insert_header(session, header_values("INV-002"))
            db_store.insert_items(
                session, header.id, [item_values("First"), item_values("Second"), item_values("Third")]
            )
            document_id = header.id

        document = db_store.get_document(document_id)

        assert [item.position for item in document.items] == [1, 2, 3]
        assert [item.description for item in document.items] == ["First", "Second", "Third"]

    def test_duplicate_link_rejected_by_index(self, db_store) -> None:
        """Test that the unique index on shipment refs maps to ConflictingLink."""
        with session_scope() as session:
            first = db_store.insert_header(session, header_values("INV-003"))
            db_store.insert_links(session, first.id, ["SHP-7"])

        with pytest.raises(ConflictingLink) as exc_info:
            with session_scope() as session:
                second = db_store.insert_header(session, header_values("INV-004"))
                db_store.insert_links(session, second.id, ["SHP-7"])

        assert exc_info.value.shipment_ref == "SHP-7"
        assert [d.document_number for d in db_store.list_documents()] == ["INV-003"]

    def test_find_link_owner(self, db_store) -> None:
        with session_scope() as session:
            header = db_store.insert_header(session, header_values("INV-005"))
            db_store.insert_links(session, header.id, ["SHP-1"])

            assert db_store.find_link_owner(session, "SHP-1") == header.id
            assert db_store.find_link_owner(session, "SHP-2") is None

    def test_delete_composition_frees_links(self, db_store) -> None:
        """Test that deleted links are visible to later writes in the same session."""
        with session_scope() as session:
            header = db_store.insert_header(session, header_values("INV-006"))
            db_store.insert_items(session, header.id, [item_values("Freight")])
            db_store.insert_links(session, header.id, ["SHP-1"])

            db_store.delete_composition(session, header.id)

            assert db_store.find_link_owner(session, "SHP-1") is None
            db_store.insert_links(session, header.id, ["SHP-1"])
            document = db_store.refresh_document(session, header.id)

        assert document.items == []
        assert document.shipment_refs == ["SHP-1"]

    def test_refresh_missing_document(self, db_store) -> None:
        with pytest.raises(NotFound):
            with session_scope() as session:
                db_store.refresh_document(session, 404)

    def test_list_documents_by_status(self, db_store) -> None:
        with session_scope() as session:
            db_store.insert_header(session, header_values("INV-007"))
            db_store.insert_header(session, header_values("INV-008", status="ISSUED"))
            db_store.insert_header(session, header_values("INV-009"))

        drafts = db_store.list_documents(status="DRAFT")
        everything = db_store.list_documents()

        assert [d.document_number for d in drafts] == ["INV-009", "INV-007"]
        assert len(everything) == 3

    def test_document_number_unique(self, db_store) -> None:
        with session_scope() as session:
            db_store.insert_header(session, header_values("INV-010"))

        with pytest.raises(IntegrityError):
            with session_scope() as session:
                db_store.insert_header(session, header_values("INV-010"))

    def test_rollback_discards_everything(self, db_store) -> None:
        """Test that a failure inside session_scope leaves no rows behind."""
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                header = db_store.insert_header(session, header_values("INV-011"))
                db_store.insert_links(session, header.id, ["SHP-1"])
                raise RuntimeError("abort")

        with session_scope() as session:
            assert session.query(DocumentModel).count() == 0
            assert session.query(ShipmentLinkModel).count() == 0

    def test_uses_global_factory(self, db_store) -> None:
        assert db_store.session_factory is None
        assert get_session_factory() is not None
