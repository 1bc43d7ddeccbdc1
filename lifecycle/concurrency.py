"""Optimistic concurrency control on the document version counter."""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from database.models import DocumentModel
from state_machine.errors import VersionConflict

logger = logging.getLogger(__name__)


class ConcurrencyGuard:
    """
    Validates and advances a document's version.

    The advance is a single conditional UPDATE, so two writers that read the
    same version cannot both commit.
    """

    def check_version(
        self,
        document: DocumentModel,
        expected_version: Optional[int],
    ) -> None:
        """
        Compare the caller's expected version with the stored one.

        Args:
            document: The loaded header row.
            expected_version: Version the caller read; None skips the check.

        Raises:
            VersionConflict: On mismatch.
        """
        if expected_version is None:
            return
        if expected_version != document.version:
            logger.warning(
                f"Version conflict on document {document.id}: "
                f"expected {expected_version}, stored {document.version}"
            )
            raise VersionConflict(document.id, expected_version, document.version)

    def advance(
        self,
        session: Session,
        document_id: int,
        expected_version: int,
        values: dict[str, Any],
    ) -> int:
        """
        Write header ``values`` and bump the version in one statement.

        Returns:
            The new version.

        Raises:
            VersionConflict: If another writer committed first.
        """
        updated = (
            session.query(DocumentModel)
            .filter(
                DocumentModel.id == document_id,
                DocumentModel.version == expected_version,
            )
            .update(
                {**values, "version": DocumentModel.version + 1},
                synchronize_session=False,
            )
        )
        if updated != 1:
            actual = (
                session.query(DocumentModel.version)
                .filter(DocumentModel.id == document_id)
                .scalar()
            )
            logger.warning(
                f"Compare-and-swap lost on document {document_id} at version {expected_version}"
            )
            raise VersionConflict(document_id, expected_version, actual)
        return expected_version + 1
