"""
Pytest configuration and fixtures.

Environment variables are loaded here, before test collection, so LEDGER_*
settings from a local .env apply to every test.
"""

from decimal import Decimal

import pytest
from dotenv import load_dotenv

from database import (
    AuditTrail,
    LedgerStore,
    VersionHistoryStore,
    create_ledger_engine,
    create_session_factory,
    init_db,
)
from lifecycle import DocumentLifecycleService, Settings
from state_machine.models import ClientInfo, LineItemInput

load_dotenv()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite:///:memory:", default_currency="USD")


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database for each test."""
    engine = create_ledger_engine("sqlite:///:memory:")
    init_db(engine=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def ledger(session_factory) -> LedgerStore:
    return LedgerStore(session_factory)


@pytest.fixture
def history(session_factory) -> VersionHistoryStore:
    return VersionHistoryStore(session_factory)


@pytest.fixture
def audit(session_factory) -> AuditTrail:
    return AuditTrail(session_factory)


@pytest.fixture
def service(session_factory, settings) -> DocumentLifecycleService:
    return DocumentLifecycleService.from_session_factory(session_factory, settings=settings)


@pytest.fixture
def client() -> ClientInfo:
    return ClientInfo(
        client_name="Acme Logistics",
        client_tax_id="900123456",
        client_email="billing@acme.test",
        payment_method="TRANSFER",
    )


@pytest.fixture
def items() -> list[LineItemInput]:
    """Items of the reference scenario: 2 x 10.00 and 1 x 5.00."""
    return [
        LineItemInput(description="Freight Bogota-Medellin", quantity=2, unit_price=Decimal("10.00")),
        LineItemInput(description="Handling", quantity=1, unit_price=Decimal("5.00")),
    ]
