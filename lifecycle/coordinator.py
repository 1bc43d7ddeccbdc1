"""
Transaction coordinator for document mutations.

Each mutation (create, replace composition, issue) runs in exactly one
session. Any failure rolls the whole unit back. History and audit writes
happen after the commit and report through their own RecordResult.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session, sessionmaker

from database.audit import AuditTrail
from database.history import VersionHistoryStore
from database.ledger import LedgerStore
from database.session import session_scope
from lifecycle.concurrency import ConcurrencyGuard
from lifecycle.config import Settings, get_settings
from lifecycle.numbering import generate_document_number, generate_folio
from state_machine.document_state import DocumentAction, DocumentFSM, next_state
from state_machine.errors import ConflictingLink, NotFound, ValidationFailure
from state_machine.models import (
    AuditAction,
    ClientInfo,
    Document,
    LineItemInput,
    RecordResult,
)

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Document"
CENT = Decimal("0.01")
# Largest amount a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")

ItemLike = Union[LineItemInput, dict[str, Any]]
ClientLike = Union[ClientInfo, dict[str, Any]]


@dataclass
class MutationOutcome:
    """Committed document plus the results of its side-channel writes."""

    document: Document
    audit: RecordResult
    history: Optional[RecordResult] = None

    @property
    def side_effects_ok(self) -> bool:
        results = [self.audit] + ([self.history] if self.history else [])
        return all(result.success for result in results)


@dataclass
class PricedComposition:
    """Validated items with derived amounts."""

    items: list[dict[str, Any]]
    shipment_refs: list[str]
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _has_sub_cent_digits(amount: Decimal) -> bool:
    return amount != amount.quantize(CENT)


def price_composition(
    items: list[ItemLike],
    shipment_refs: list[str],
    tax: Any,
    document_id: Optional[int] = None,
) -> PricedComposition:
    """
    Validate a requested composition and compute its amounts.

    Raises:
        ValidationFailure: Listing every rule the request breaks.
    """
    errors: list[str] = []
    parsed: list[LineItemInput] = []

    if not items:
        errors.append("at least one line item is required")

    for index, raw in enumerate(items or [], start=1):
        try:
            item = raw if isinstance(raw, LineItemInput) else LineItemInput.model_validate(raw)
        except ValidationError as e:
            errors.append(f"item {index}: {e.errors()[0]['msg']}")
            continue

        if not item.description or not item.description.strip():
            errors.append(f"item {index}: description is required")
        if item.quantity < 1:
            errors.append(f"item {index}: quantity must be at least 1")
        if not item.unit_price.is_finite() or item.unit_price <= 0:
            errors.append(f"item {index}: unit price must be positive")
        elif item.unit_price > MAX_AMOUNT:
            errors.append(f"item {index}: unit price exceeds {MAX_AMOUNT}")
        elif _has_sub_cent_digits(item.unit_price):
            errors.append(f"item {index}: unit price has more than two decimal places")
        elif item.quantity >= 1 and item.unit_price * item.quantity > MAX_AMOUNT:
            errors.append(f"item {index}: line total exceeds {MAX_AMOUNT}")
        parsed.append(item)

    tax_amount = _as_decimal(tax)
    if tax_amount is None:
        errors.append("tax is required")
    elif tax_amount < 0:
        errors.append("tax must not be negative")
    elif tax_amount > MAX_AMOUNT:
        errors.append(f"tax exceeds {MAX_AMOUNT}")
    elif _has_sub_cent_digits(tax_amount):
        errors.append("tax has more than two decimal places")

    refs = list(shipment_refs or [])
    if any(not ref or not str(ref).strip() for ref in refs):
        errors.append("shipment references must not be blank")
    duplicates = sorted({ref for ref in refs if refs.count(ref) > 1})
    if duplicates:
        errors.append(f"duplicate shipment references: {', '.join(duplicates)}")

    if errors:
        logger.warning(f"Rejected composition for document {document_id}: {errors}")
        raise ValidationFailure(errors, document_id=document_id)

    priced_items = []
    for item in parsed:
        unit_price = item.unit_price.quantize(CENT)
        priced_items.append(
            {
                "description": item.description.strip(),
                "quantity": item.quantity,
                "unit_price": unit_price,
                "total_price": (unit_price * item.quantity).quantize(CENT),
                "shipment_ref": item.shipment_ref,
            }
        )

    subtotal = sum((item["total_price"] for item in priced_items), Decimal("0.00"))
    tax_amount = tax_amount.quantize(CENT)
    if subtotal + tax_amount > MAX_AMOUNT:
        logger.warning(f"Rejected composition for document {document_id}: total too large")
        raise ValidationFailure([f"total exceeds {MAX_AMOUNT}"], document_id=document_id)

    return PricedComposition(
        items=priced_items,
        shipment_refs=refs,
        subtotal=subtotal,
        tax=tax_amount,
        total=subtotal + tax_amount,
    )


class TransactionCoordinator:
    """
    Applies document mutations atomically.

    Collaborators are injected; nothing is looked up globally except the
    session factory fallback used by session_scope.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        history: VersionHistoryStore,
        audit: AuditTrail,
        guard: Optional[ConcurrencyGuard] = None,
        settings: Optional[Settings] = None,
        shipment_exists: Optional[Callable[[str], bool]] = None,
        session_factory: Optional[sessionmaker] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            ledger: Document storage.
            history: Version history store.
            audit: Audit trail.
            guard: Concurrency guard (default: new instance).
            settings: Numbering and default values.
            shipment_exists: Optional lookup used to reject unknown
                shipment references with NotFound.
            session_factory: Factory for mutation sessions; defaults to the
                ledger's factory.
        """
        self.ledger = ledger
        self.history = history
        self.audit = audit
        self.guard = guard or ConcurrencyGuard()
        self.settings = settings or get_settings()
        self._shipment_exists = shipment_exists
        self._session_factory = session_factory or ledger.session_factory

    # Helpers

    def _client_values(self, client: Optional[ClientLike]) -> dict[str, Any]:
        if client is None:
            info = ClientInfo()
        elif isinstance(client, ClientInfo):
            info = client
        else:
            try:
                info = ClientInfo.model_validate(client)
            except ValidationError as e:
                raise ValidationFailure(
                    [f"client: {error['msg']}" for error in e.errors()]
                ) from e

        values = info.model_dump()
        values["client_name"] = (info.client_name or "").strip()
        values["invoice_date"] = info.invoice_date or date.today()
        values["currency"] = info.currency or self.settings.default_currency
        return values

    def _check_links(
        self,
        session: Session,
        document_id: Optional[int],
        shipment_refs: list[str],
    ) -> None:
        """All-or-nothing check that every reference is free and known."""
        for shipment_ref in shipment_refs:
            if self._shipment_exists and not self._shipment_exists(shipment_ref):
                raise NotFound("Shipment", shipment_ref, document_id=document_id)
            owner = self.ledger.find_link_owner(session, shipment_ref)
            if owner is not None and owner != document_id:
                logger.warning(
                    f"Shipment '{shipment_ref}' already linked to document {owner}"
                )
                raise ConflictingLink(
                    shipment_ref,
                    document_id=document_id,
                    linked_document_id=owner,
                )

    def _check_item_shipments(
        self,
        document_id: Optional[int],
        items: list[dict[str, Any]],
    ) -> None:
        """Item shipment references must exist; they need not be unique."""
        if not self._shipment_exists:
            return
        for item in items:
            shipment_ref = item["shipment_ref"]
            if shipment_ref is not None and not self._shipment_exists(shipment_ref):
                raise NotFound("Shipment", shipment_ref, document_id=document_id)

    def _load_for_update(
        self,
        session: Session,
        document_id: int,
        expected_version: Optional[int],
    ) -> Document:
        header = self.ledger.load_header(session, document_id)
        if not header:
            raise NotFound(ENTITY_TYPE, document_id, document_id=document_id)
        self.guard.check_version(header, expected_version)
        return self.ledger.load_document(session, document_id)

    # Mutations

    def create_composition(
        self,
        client: Optional[ClientLike],
        items: list[ItemLike],
        shipment_refs: list[str],
        tax: Any,
        actor: Optional[str] = None,
    ) -> MutationOutcome:
        """Create a DRAFT document at version 1 with its items and links."""
        priced = price_composition(items, shipment_refs, tax)
        values = self._client_values(client)
        self._check_item_shipments(None, priced.items)

        with session_scope(self._session_factory) as session:
            self._check_links(session, None, priced.shipment_refs)

            now = datetime.utcnow()
            header = self.ledger.insert_header(
                session,
                {
                    **values,
                    "document_number": generate_document_number(
                        self.settings.document_number_prefix
                    ),
                    "status": next_state(None, DocumentAction.CREATE),
                    "version": 1,
                    "subtotal": priced.subtotal,
                    "tax": priced.tax,
                    "total": priced.total,
                    "created_by": actor,
                    "created_at": now,
                    "updated_at": now,
                },
            )
            self.ledger.insert_items(session, header.id, priced.items)
            self.ledger.insert_links(session, header.id, priced.shipment_refs)
            document = self.ledger.refresh_document(session, header.id)

        logger.info(
            f"Draft document {document.id} ({document.document_number}) created "
            f"with {len(document.items)} item(s), total {document.total}"
        )

        audit = self.audit.record(
            ENTITY_TYPE,
            document.id,
            AuditAction.CREATE,
            actor=actor,
            after=document.serialize(),
            summary="Created draft document",
        )
        return MutationOutcome(document=document, audit=audit)

    def replace_composition(
        self,
        document_id: int,
        client: Optional[ClientLike],
        items: list[ItemLike],
        shipment_refs: list[str],
        tax: Any,
        expected_version: Optional[int],
        actor: Optional[str] = None,
    ) -> MutationOutcome:
        """
        Replace a DRAFT document's header, items and links atomically.

        Raises:
            NotFound, VersionConflict, InvalidTransition, ValidationFailure,
            ConflictingLink: The store is left exactly as before the call.
        """
        with session_scope(self._session_factory) as session:
            before = self._load_for_update(session, document_id, expected_version)
            DocumentFSM.for_document(before).ensure_editable()

            priced = price_composition(items, shipment_refs, tax, document_id)
            values = self._client_values(client)
            self._check_item_shipments(document_id, priced.items)

            self.ledger.delete_composition(session, document_id)
            self._check_links(session, document_id, priced.shipment_refs)
            self.ledger.insert_items(session, document_id, priced.items)
            self.ledger.insert_links(session, document_id, priced.shipment_refs)

            self.guard.advance(
                session,
                document_id,
                before.version,
                {
                    **values,
                    "subtotal": priced.subtotal,
                    "tax": priced.tax,
                    "total": priced.total,
                    "updated_at": datetime.utcnow(),
                },
            )
            document = self.ledger.refresh_document(session, document_id)

        logger.info(f"Draft document {document_id} updated to version {document.version}")

        previous = before.serialize()
        history = self.history.snapshot(document_id, before.version, previous, actor)
        audit = self.audit.record(
            ENTITY_TYPE,
            document_id,
            AuditAction.UPDATE,
            actor=actor,
            before=previous,
            after=document.serialize(),
            summary="Updated draft document",
        )
        return MutationOutcome(document=document, audit=audit, history=history)

    def issue(
        self,
        document_id: int,
        expected_version: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> MutationOutcome:
        """
        Move a DRAFT document to ISSUED, assigning its external folio once.

        Raises:
            NotFound, VersionConflict, InvalidTransition
        """
        with session_scope(self._session_factory) as session:
            before = self._load_for_update(session, document_id, expected_version)

            fsm = DocumentFSM.for_document(before)
            fsm.trigger(DocumentAction.ISSUE)

            values: dict[str, Any] = {
                "status": fsm.current_state,
                "updated_at": datetime.utcnow(),
            }
            if before.external_folio is None:
                values["external_folio"] = generate_folio(self.settings.folio_prefix)

            self.guard.advance(session, document_id, before.version, values)
            document = self.ledger.refresh_document(session, document_id)

        logger.info(
            f"Document {document_id} issued with folio {document.external_folio} "
            f"(version {document.version})"
        )

        previous = before.serialize()
        history = self.history.snapshot(document_id, before.version, previous, actor)
        audit = self.audit.record(
            ENTITY_TYPE,
            document_id,
            AuditAction.ISSUE,
            actor=actor,
            before=previous,
            after=document.serialize(),
            summary="Issued document",
        )
        return MutationOutcome(document=document, audit=audit, history=history)
