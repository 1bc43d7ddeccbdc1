"""
Ledger store: durable storage for documents, line items and shipment links.

Write helpers take the caller's Session so that a whole mutation runs in one
transaction; read helpers open their own session.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from database.models import DocumentModel, LineItemModel, ShipmentLinkModel
from database.session import session_scope
from state_machine.errors import ConflictingLink, NotFound
from state_machine.models import Document, DocumentStatus, LineItem

logger = logging.getLogger(__name__)


def document_from_rows(
    header: DocumentModel,
    items: list[LineItemModel],
    links: list[ShipmentLinkModel],
) -> Document:
    """Assemble the read model from its rows."""
    return Document(
        id=header.id,
        document_number=header.document_number,
        external_folio=header.external_folio,
        status=DocumentStatus(header.status),
        version=header.version,
        client_name=header.client_name,
        client_tax_id=header.client_tax_id,
        client_address=header.client_address,
        client_email=header.client_email,
        payment_method=header.payment_method,
        observations=header.observations,
        invoice_date=header.invoice_date,
        due_date=header.due_date,
        currency=header.currency,
        subtotal=Decimal(header.subtotal),
        tax=Decimal(header.tax),
        total=Decimal(header.total),
        items=[
            LineItem(
                id=item.id,
                document_id=item.document_id,
                position=item.position,
                description=item.description,
                quantity=item.quantity,
                unit_price=Decimal(item.unit_price),
                total_price=Decimal(item.total_price),
                shipment_ref=item.shipment_ref,
            )
            for item in items
        ],
        shipment_refs=sorted(link.shipment_ref for link in links),
        created_by=header.created_by,
        created_at=header.created_at,
        updated_at=header.updated_at,
    )


class LedgerStore:
    """
    SQLAlchemy-backed ledger.

    Items and links are stored in their own tables keyed by document id;
    a document's composition is always read and replaced as a whole.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize the ledger store.

        Args:
            session_factory: Factory for read sessions. Uses the global
                factory if not provided.
        """
        self._session_factory = session_factory

    @property
    def session_factory(self) -> Optional[sessionmaker]:
        return self._session_factory

    # Reads

    def load_header(self, session: Session, document_id: int) -> Optional[DocumentModel]:
        return (
            session.query(DocumentModel)
            .filter(DocumentModel.id == document_id)
            .first()
        )

    def load_document(self, session: Session, document_id: int) -> Optional[Document]:
        """Read a document and its composition inside ``session``."""
        header = self.load_header(session, document_id)
        if not header:
            return None
        return self._assemble(session, header)

    def _assemble(self, session: Session, header: DocumentModel) -> Document:
        items = (
            session.query(LineItemModel)
            .filter(LineItemModel.document_id == header.id)
            .order_by(LineItemModel.position)
            .all()
        )
        links = (
            session.query(ShipmentLinkModel)
            .filter(ShipmentLinkModel.document_id == header.id)
            .all()
        )
        return document_from_rows(header, items, links)

    def get_document(self, document_id: int) -> Optional[Document]:
        """
        Get a document by id.

        Returns:
            Document or None if not found.
        """
        with session_scope(self._session_factory) as session:
            return self.load_document(session, document_id)

    def list_documents(self, status: Optional[str] = None) -> list[Document]:
        """
        List documents, newest first.

        Args:
            status: Optional status filter.
        """
        with session_scope(self._session_factory) as session:
            query = session.query(DocumentModel)
            if status:
                query = query.filter(DocumentModel.status == status)
            query = query.order_by(DocumentModel.created_at.desc(), DocumentModel.id.desc())
            return [self._assemble(session, header) for header in query.all()]

    def find_link_owner(self, session: Session, shipment_ref: str) -> Optional[int]:
        """Id of the document currently holding ``shipment_ref``, if any."""
        link = (
            session.query(ShipmentLinkModel)
            .filter(ShipmentLinkModel.shipment_ref == shipment_ref)
            .first()
        )
        return link.document_id if link else None

    # Writes

    def insert_header(self, session: Session, values: dict[str, Any]) -> DocumentModel:
        """Insert a new header row and flush to obtain its id."""
        header = DocumentModel(**values)
        session.add(header)
        session.flush()
        return header

    def delete_composition(self, session: Session, document_id: int) -> None:
        """
        Delete all items and links of a document.

        Flushes before returning so later link checks see the deletion.
        """
        session.query(LineItemModel).filter(
            LineItemModel.document_id == document_id
        ).delete(synchronize_session="fetch")
        session.query(ShipmentLinkModel).filter(
            ShipmentLinkModel.document_id == document_id
        ).delete(synchronize_session="fetch")
        session.flush()

    def insert_items(
        self,
        session: Session,
        document_id: int,
        items: list[dict[str, Any]],
    ) -> None:
        for position, values in enumerate(items, start=1):
            session.add(
                LineItemModel(document_id=document_id, position=position, **values)
            )
        session.flush()

    def insert_links(
        self,
        session: Session,
        document_id: int,
        shipment_refs: list[str],
    ) -> None:
        """
        Insert shipment links one flush at a time.

        Raises:
            ConflictingLink: If the unique index rejects a reference.
        """
        for shipment_ref in shipment_refs:
            session.add(ShipmentLinkModel(document_id=document_id, shipment_ref=shipment_ref))
            try:
                session.flush()
            except IntegrityError as e:
                logger.warning(
                    f"Unique index rejected shipment '{shipment_ref}' "
                    f"for document {document_id}"
                )
                raise ConflictingLink(shipment_ref, document_id=document_id) from e

    def refresh_document(self, session: Session, document_id: int) -> Document:
        """Re-read a document after in-session writes."""
        session.flush()
        session.expire_all()
        document = self.load_document(session, document_id)
        if document is None:
            raise NotFound("Document", document_id, document_id=document_id)
        return document
