"""Core domain models for the invoice lifecycle core."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    """Document statuses matching state machine states."""

    DRAFT = "DRAFT"
    ISSUED = "ISSUED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class AuditAction(str, Enum):
    """Auditable domain actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ISSUE = "ISSUE"
    REVERT = "REVERT"
    PUBLISH = "PUBLISH"


class ClientInfo(BaseModel):
    """Client and commercial details carried on a document header."""

    client_name: str = ""
    client_tax_id: Optional[str] = None
    client_address: Optional[str] = None
    client_email: Optional[str] = None
    payment_method: Optional[str] = None
    observations: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    currency: Optional[str] = Field(default=None, max_length=10)


class LineItemInput(BaseModel):
    """A requested line item, validated by the coordinator."""

    description: str
    quantity: int
    unit_price: Decimal
    shipment_ref: Optional[str] = None


class LineItem(BaseModel):
    """Stored line item. Holds only its owner's id."""

    id: int
    document_id: int
    position: int
    description: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    shipment_ref: Optional[str] = None

    class Config:
        frozen = True


class Document(BaseModel):
    """Billable document with its current composition."""

    id: int
    document_number: str
    external_folio: Optional[str] = None
    status: DocumentStatus
    version: int
    client_name: str
    client_tax_id: Optional[str] = None
    client_address: Optional[str] = None
    client_email: Optional[str] = None
    payment_method: Optional[str] = None
    observations: Optional[str] = None
    invoice_date: date
    due_date: Optional[date] = None
    currency: str
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    items: list[LineItem] = Field(default_factory=list)
    shipment_refs: list[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True

    def serialize(self) -> dict[str, Any]:
        """JSON-safe copy used for snapshots and audit payloads."""
        return self.model_dump(mode="json")


class VersionSnapshot(BaseModel):
    """Immutable copy of a document as it was before a mutation."""

    id: int
    document_id: int
    version: int
    document_number: str
    external_folio: Optional[str] = None
    payload: dict[str, Any]
    actor: Optional[str] = None
    created_at: datetime
    superseded_by_revert: bool = False

    class Config:
        frozen = True


class AuditEvent(BaseModel):
    """Append-only domain event."""

    id: int
    entity_type: str
    entity_id: int
    action: AuditAction
    actor: Optional[str] = None
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    summary: Optional[str] = None
    created_at: datetime

    class Config:
        frozen = True


class RecordResult(BaseModel):
    """
    Outcome of a best-effort history or audit write.

    Kept separate from the primary mutation result so a failed side-channel
    write never masks or undoes a committed change.
    """

    success: bool
    channel: str
    record_id: Optional[int] = None
    error: Optional[dict[str, Any]] = None

    @classmethod
    def ok(cls, channel: str, record_id: Optional[int]) -> "RecordResult":
        return cls(success=True, channel=channel, record_id=record_id)

    @classmethod
    def failed(cls, channel: str, error: dict[str, Any]) -> "RecordResult":
        return cls(success=False, channel=channel, error=error)
