"""Identifier generation for document numbers and external folios."""

import time
from uuid import uuid4


def _millis() -> int:
    return time.time_ns() // 1_000_000


def generate_document_number(prefix: str = "INV") -> str:
    """Random component plus a millisecond timestamp, e.g. INV-1A2B3C4D-1700000000000."""
    return f"{prefix}-{uuid4().hex[:8].upper()}-{_millis()}"


def generate_folio(prefix: str = "FOLIO") -> str:
    """External folio assigned once at issuance."""
    return f"{prefix}-{uuid4().hex[:16].upper()}-{_millis()}"
