"""Structured-result tools for document lifecycle operations."""

from tools.base import BaseDocumentTool, ToolResult
from tools.document_tools import (
    CreateDocumentTool,
    GetAuditLogTool,
    GetDocumentTool,
    GetHistoryTool,
    IssueDocumentTool,
    ListDocumentsTool,
    UpdateDocumentTool,
)

__all__ = [
    "BaseDocumentTool",
    "ToolResult",
    "CreateDocumentTool",
    "GetAuditLogTool",
    "GetDocumentTool",
    "GetHistoryTool",
    "IssueDocumentTool",
    "ListDocumentsTool",
    "UpdateDocumentTool",
]
