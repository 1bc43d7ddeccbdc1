"""Document lifecycle tools returning structured results."""

import logging
from typing import Any, Optional

from tools.base import BaseDocumentTool, ToolResult

logger = logging.getLogger(__name__)


class CreateDocumentTool(BaseDocumentTool):
    """Tool to create a draft document."""

    name = "create_document"
    description = "Create a DRAFT document from client details, line items and shipment references."

    def _execute(
        self,
        client: Optional[dict[str, Any]] = None,
        items: Optional[list[dict[str, Any]]] = None,
        shipment_refs: Optional[list[str]] = None,
        tax: Any = "0",
        actor: Optional[str] = None,
        **kwargs: Any,
    ) -> ToolResult:
        document = self.service.create_document(
            client, items or [], shipment_refs, tax, actor=actor
        )
        return ToolResult(
            success=True,
            message=f"Draft {document.document_number} created.",
            data={"document": document.serialize()},
        )


class UpdateDocumentTool(BaseDocumentTool):
    """Tool to replace a draft document's composition."""

    name = "update_document"
    description = (
        "Replace the header, items and shipment links of a DRAFT document. "
        "Requires the version the caller last read."
    )

    def _execute(
        self,
        document_id: int,
        expected_version: Optional[int],
        client: Optional[dict[str, Any]] = None,
        items: Optional[list[dict[str, Any]]] = None,
        shipment_refs: Optional[list[str]] = None,
        tax: Any = "0",
        actor: Optional[str] = None,
        **kwargs: Any,
    ) -> ToolResult:
        document = self.service.update_document(
            document_id,
            client,
            items or [],
            shipment_refs,
            tax,
            expected_version,
            actor=actor,
        )
        return ToolResult(
            success=True,
            message=f"Document {document.document_number} is now at version {document.version}.",
            data={"document": document.serialize()},
        )


class IssueDocumentTool(BaseDocumentTool):
    """Tool to issue a draft document."""

    name = "issue_document"
    description = "Issue a DRAFT document and assign its external folio."

    def _execute(
        self,
        document_id: int,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
        **kwargs: Any,
    ) -> ToolResult:
        document = self.service.issue_document(
            document_id, actor=actor, expected_version=expected_version
        )
        return ToolResult(
            success=True,
            message=f"Document {document.document_number} issued with folio {document.external_folio}.",
            data={"document": document.serialize()},
        )


class GetDocumentTool(BaseDocumentTool):
    """Tool to read one document."""

    name = "get_document"
    description = "Get a document with its items, shipment links, status and version."

    def _execute(self, document_id: int, **kwargs: Any) -> ToolResult:
        document = self.service.get_document(document_id)
        return ToolResult(
            success=True,
            message=f"Document {document.document_number} is {document.status.value}.",
            data={"document": document.serialize()},
        )


class ListDocumentsTool(BaseDocumentTool):
    """Tool to list documents, optionally by status."""

    name = "list_documents"
    description = "List documents, newest first, optionally filtered by status."

    def _execute(self, status: Optional[str] = None, **kwargs: Any) -> ToolResult:
        if status:
            documents = self.service.list_by_status(status)
        else:
            documents = self.service.list_documents()

        return ToolResult(
            success=True,
            message=f"Found {len(documents)} document(s).",
            data={
                "documents": [document.serialize() for document in documents],
                "total": len(documents),
                "filter": status,
            },
        )


class GetHistoryTool(BaseDocumentTool):
    """Tool to read version history."""

    name = "get_history"
    description = "List a document's version snapshots, or fetch one version."

    def _execute(
        self,
        document_id: int,
        version: Optional[int] = None,
        **kwargs: Any,
    ) -> ToolResult:
        if version is not None:
            snapshot = self.service.get_history_version(document_id, version)
            return ToolResult(
                success=True,
                message=f"Version {version} of document {document_id}.",
                data={"snapshot": snapshot.model_dump(mode="json")},
            )

        snapshots = self.service.get_history(document_id)
        return ToolResult(
            success=True,
            message=f"Document {document_id} has {len(snapshots)} snapshot(s).",
            data={
                "snapshots": [snapshot.model_dump(mode="json") for snapshot in snapshots],
                "total": len(snapshots),
            },
        )


class GetAuditLogTool(BaseDocumentTool):
    """Tool to read the audit log of an entity."""

    name = "get_audit_log"
    description = "List audit events of an entity, newest first."

    def _execute(
        self,
        entity_id: int,
        entity_type: str = "Document",
        **kwargs: Any,
    ) -> ToolResult:
        events = self.service.get_audit_log(entity_type, entity_id)
        return ToolResult(
            success=True,
            message=f"{len(events)} audit event(s) for {entity_type} {entity_id}.",
            data={
                "events": [event.model_dump(mode="json") for event in events],
                "total": len(events),
            },
        )
