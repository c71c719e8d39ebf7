"""
Error taxonomy for statement ingestion and customer ledgers.

Row-level problems (``ParseError``) end up recorded on the upload as well as
raised; ``ValidationError`` rejects a whole batch before any row is touched.
"""

from __future__ import annotations

from typing import Any


class LedgerlineError(Exception):
    """Base class for all ledgerline errors."""


class ValidationError(LedgerlineError, ValueError):
    """A batch or request is structurally invalid (e.g. missing CSV columns)."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


class ParseError(LedgerlineError, ValueError):
    """A single row holds a value that cannot be parsed."""

    def __init__(self, message: str, row: int | None = None, field: str | None = None) -> None:
        if row is not None:
            message = f"Row {row}: {message}"
        super().__init__(message)
        self.row = row
        self.field = field


class NotFoundError(LedgerlineError, LookupError):
    """A referenced upload, transaction or customer does not exist."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id
