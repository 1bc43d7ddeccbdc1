"""Base tool class for document operations."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel

from lifecycle.service import DocumentLifecycleService
from state_machine.errors import LifecycleError

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    """Standardized tool result."""

    success: bool
    message: str
    data: Optional[dict[str, Any]] = None
    error: Optional[dict[str, Any]] = None

    def to_json(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
        }
        if self.data:
            result["data"] = self.data
        if self.error:
            result["error"] = self.error
        return result


class BaseDocumentTool(ABC):
    """
    Base class for document tools.

    All tools:
    1. Delegate to the lifecycle service
    2. Return structured JSON
    3. Report lifecycle errors by code so callers can decide to retry,
       fix their input, or give up
    """

    name: str
    description: str

    def __init__(self, service: DocumentLifecycleService):
        """
        Initialize the tool.

        Args:
            service: Lifecycle service the tool operates on.
        """
        self.service = service

    def _error_result(self, e: LifecycleError) -> ToolResult:
        return ToolResult(
            success=False,
            message=str(e),
            error=e.to_dict(),
        )

    @abstractmethod
    def _execute(self, **kwargs: Any) -> ToolResult:
        """
        Execute the tool operation.

        Returns:
            ToolResult with operation outcome
        """
        ...

    def run(self, **kwargs: Any) -> dict[str, Any]:
        """
        Run the tool and return JSON result.

        Returns:
            JSON-serializable dictionary
        """
        logger.info(f"Tool '{self.name}' executing")

        try:
            result = self._execute(**kwargs)
        except LifecycleError as e:
            logger.warning(f"Tool '{self.name}' {e.code}: {e}")
            result = self._error_result(e)
        except Exception as e:
            logger.exception(f"Tool '{self.name}' unexpected error: {e}")
            result = ToolResult(
                success=False,
                message=f"Unexpected error: {str(e)}",
                error={
                    "code": "INTERNAL_ERROR",
                    "message": str(e),
                    "retryable": False,
                },
            )

        return result.to_json()
