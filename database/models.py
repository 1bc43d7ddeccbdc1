"""
SQLAlchemy models for the invoice lifecycle core.

Tables:
- documents: Document headers with status and version counter
- line_items: Items owned by a document
- shipment_links: Shipment references claimed by a document (unique)
- document_versions: Snapshots of superseded document states
- audit_events: Append-only domain event log
"""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DocumentModel(Base):
    """Document header table."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_number = Column(String(100), unique=True, nullable=False, index=True)
    external_folio = Column(String(100), unique=True, nullable=True)

    # Client details
    client_name = Column(String(255), nullable=False, default="")
    client_tax_id = Column(String(50), nullable=True)
    client_address = Column(Text, nullable=True)
    client_email = Column(String(255), nullable=True)
    payment_method = Column(String(50), nullable=True)
    observations = Column(Text, nullable=True)
    invoice_date = Column(Date, default=date.today, nullable=False)
    due_date = Column(Date, nullable=True)
    currency = Column(String(10), default="USD", nullable=False)

    # Amounts
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)

    # State machine and optimistic lock
    status = Column(String(20), default="DRAFT", nullable=False, index=True)
    version = Column(Integer, default=1, nullable=False)

    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_documents_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Document {self.document_number} status={self.status} v{self.version}>"


class LineItemModel(Base):
    """Line items. Rows reference their document by id only."""

    __tablename__ = "line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    # Informational only, not unique
    shipment_ref = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<LineItem doc={self.document_id} #{self.position}>"


class ShipmentLinkModel(Base):
    """Shipment references linked to a document."""

    __tablename__ = "shipment_links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, ForeignKey("documents.id"), nullable=False, index=True)
    # A shipment belongs to at most one document at a time
    shipment_ref = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("shipment_ref", name="uq_shipment_links_shipment_ref"),
    )

    def __repr__(self) -> str:
        return f"<ShipmentLink {self.shipment_ref} -> doc={self.document_id}>"


class DocumentVersionModel(Base):
    """Snapshots of document states superseded by a mutation."""

    __tablename__ = "document_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Integer, nullable=False, index=True)
    version = Column(Integer, nullable=False)
    document_number = Column(String(100), nullable=False)
    external_folio = Column(String(100), nullable=True)
    payload = Column(JSON, nullable=False)
    actor = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    superseded_by_revert = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_versions_doc_version"),
    )

    def __repr__(self) -> str:
        return f"<DocumentVersion doc={self.document_id} v{self.version}>"


class AuditEventModel(Base):
    """Append-only audit log."""

    __tablename__ = "audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(Integer, nullable=False)
    action = Column(String(20), nullable=False, index=True)
    actor = Column(String(255), nullable=True, index=True)
    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    summary = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        Index("ix_audit_entity", "entity_type", "entity_id", "created_at"),
        Index("ix_audit_action_created", "action", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Audit {self.action} {self.entity_type}:{self.entity_id}>"
