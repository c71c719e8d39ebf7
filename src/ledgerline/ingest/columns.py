"""
Column mapping — resolve arbitrary CSV headers to logical statement fields.

Each logical field has an ordered list of accepted aliases. Headers are
compared after normalization (lowercase, alphanumerics only): an exact alias
match wins, otherwise the first header that *contains* an alias is taken, so
``"Customer Name"`` resolves to ``customer_name`` and ``"Debit Amount"`` to
``debit``. A header is never assigned to two fields.

Resolution happens once per upload, from the first row's keys.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ledgerline.config import DEFAULT_BANK_COLUMNS, DEFAULT_REVENUE_COLUMNS
from ledgerline.exceptions import ValidationError

logger = logging.getLogger("ledgerline.ingest.columns")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_header(name: Any) -> str:
    """``"Transaction Date"`` -> ``"transactiondate"``."""
    return _NON_ALNUM.sub("", str(name).lower())


@dataclass
class ResolvedColumns:
    """Logical field -> actual row key, for one upload."""

    keys: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> str | None:
        return self.keys.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.keys

    def value(self, row: Mapping[str, Any], name: str) -> Any:
        """The row's value for a logical field, or ``None`` when unmapped."""
        key = self.keys.get(name)
        if key is None:
            return None
        return row.get(key)


@dataclass
class ColumnMapping:
    """Declarative alias configuration for one kind of upload."""

    fields: dict[str, list[str]]
    required: list[str] = field(default_factory=list)
    # Each group needs at least one resolved member.
    any_of: list[list[str]] = field(default_factory=list)
    kind: str = "statement"

    @classmethod
    def bank(cls, fields: dict[str, list[str]] | None = None) -> ColumnMapping:
        return cls(
            fields=fields or DEFAULT_BANK_COLUMNS,
            required=["date", "description"],
            any_of=[["amount", "debit", "credit"]],
            kind="bank statement",
        )

    @classmethod
    def revenue(cls, fields: dict[str, list[str]] | None = None) -> ColumnMapping:
        return cls(
            fields=fields or DEFAULT_REVENUE_COLUMNS,
            required=["date", "customer_name", "revenue", "cost"],
            kind="revenue",
        )

    def resolve(self, headers: Iterable[Any]) -> ResolvedColumns:
        """Map every logical field that can be matched to a header."""
        normalized = [(h, normalize_header(h)) for h in headers]
        taken: set[Any] = set()
        keys: dict[str, str] = {}

        # Exact matches first so that containment never steals an exact header.
        for name, aliases in self.fields.items():
            for alias in (normalize_header(a) for a in aliases):
                hit = next((h for h, n in normalized if n == alias and h not in taken), None)
                if hit is not None:
                    keys[name] = hit
                    taken.add(hit)
                    break

        for name, aliases in self.fields.items():
            if name in keys:
                continue
            for alias in (normalize_header(a) for a in aliases):
                hit = next((h for h, n in normalized if alias and alias in n and h not in taken), None)
                if hit is not None:
                    keys[name] = hit
                    taken.add(hit)
                    break

        return ResolvedColumns(keys=keys)

    def missing(self, resolved: ResolvedColumns) -> list[str]:
        errors = [f"Missing required field: {name}" for name in self.required if name not in resolved]
        for group in self.any_of:
            if not any(name in resolved for name in group):
                errors.append(f"Missing required amount column: one of {', '.join(group)}")
        return errors

    def validate(self, first_row: Mapping[str, Any]) -> ResolvedColumns:
        """Resolve from the first row, rejecting the whole batch if fields are missing."""
        resolved = self.resolve(first_row.keys())
        errors = self.missing(resolved)
        if errors:
            raise ValidationError(
                f"Invalid {self.kind} CSV: {'; '.join(errors)}",
                errors=errors,
            )
        logger.debug("Resolved %s columns: %s", self.kind, resolved.keys)
        return resolved
