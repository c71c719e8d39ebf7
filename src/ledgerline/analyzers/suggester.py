"""
Categorization Suggester — propose customers, vendors and expense categories
for a bank transaction from its description.

Two strategies, both plain text matching:
1. Name overlap: a party or category name occurs in the description, or the
   description occurs in the name.
2. Keyword families: a category whose name contains a family (``"rent"``,
   ``"utilities"`` ...) matches when the description mentions one of that
   family's keywords. Only the first family found in the category name is
   consulted.

Results keep the input order (name order from storage) and are capped per
kind. They are advisory: no score, and an empty result is not an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol

from ledgerline.config import DEFAULT_KEYWORD_FAMILIES, KeywordFamily
from ledgerline.models.records import Candidate, Suggestions

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger("ledgerline.analyzers.suggester")


class Named(Protocol):
    id: int
    name: str


def names_overlap(name: str, text: str) -> bool:
    """Bidirectional, case-insensitive substring test.

    Both sides are stripped first, and a blank side never matches. A plain
    ``in`` test would let an empty description match every name.
    """
    name = name.strip().lower()
    text = text.strip().lower()
    if not name or not text:
        return False
    return name in text or text in name


class CategorizationSuggester:
    """
    Suggest categorization candidates for free-text bank descriptions.

    Example usage:
        suggester = CategorizationSuggester()
        result = suggester.suggest("Payment to Acme Corp", 120.0, customers, vendors, categories)
        print([c.name for c in result.vendors])
    """

    def __init__(
        self,
        keyword_families: Sequence[KeywordFamily] | None = None,
        limit: int = 5,
    ):
        self.keyword_families = list(keyword_families or DEFAULT_KEYWORD_FAMILIES)
        self.limit = limit

    def suggest(
        self,
        description: str,
        amount: Decimal | float,
        customers: Iterable[Named],
        vendors: Iterable[Named],
        categories: Iterable[Named],
    ) -> Suggestions:
        """
        Match a description against the company's parties and categories.

        Args:
            description: Transaction description as printed on the statement.
            amount: Unsigned transaction amount. Matching is by text only.
            customers: Candidate customers, in the order results should keep.
            vendors: Candidate vendors.
            categories: Active expense categories.

        Returns:
            Suggestions with at most ``limit`` entries per kind.
        """
        text = (description or "").lower()
        if not text.strip():
            return Suggestions()

        return Suggestions(
            customers=self._take(c for c in customers if names_overlap(c.name, text)),
            vendors=self._take(v for v in vendors if names_overlap(v.name, text)),
            categories=self._take(
                c for c in categories
                if names_overlap(c.name, text) or self.match_category_keywords(text, c.name)
            ),
        )

    def match_category_keywords(self, description: str, category_name: str) -> bool:
        """True when the first family named in ``category_name`` has a keyword in ``description``."""
        description = description.lower()
        category_name = category_name.lower()
        for family in self.keyword_families:
            if family.family.lower() in category_name:
                return any(keyword.lower() in description for keyword in family.keywords)
        return False

    def suggest_for_company(
        self,
        db: Session,
        company_id: int,
        description: str,
        amount: Decimal | float = 0,
    ) -> Suggestions:
        """Run :meth:`suggest` against the company's current records."""
        customers, vendors, categories = load_candidates(db, company_id)
        return self.suggest(description, amount, customers, vendors, categories)

    def _take(self, matches: Iterable[Named]) -> list[Candidate]:
        picked: list[Candidate] = []
        for match in matches:
            picked.append(Candidate(id=match.id, name=match.name))
            if len(picked) >= self.limit:
                break
        return picked


def load_candidates(db: Session, company_id: int) -> tuple[list, list, list]:
    """Customers, vendors and active categories of a company, in name order."""
    from ledgerline.db import crud

    return (
        crud.get_customers(db, company_id),
        crud.get_vendors(db, company_id),
        crud.get_expense_categories(db, company_id),
    )


# Convenience function
def suggest(
    description: str,
    customers: Iterable[Named] = (),
    vendors: Iterable[Named] = (),
    categories: Iterable[Named] = (),
    amount: Decimal | float = 0,
) -> Suggestions:
    """Quick suggestion with the default keyword table."""
    return CategorizationSuggester().suggest(description, amount, customers, vendors, categories)
