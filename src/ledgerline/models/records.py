"""
Statement and ledger records — normalized rows, suggestions, summaries.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """Quantize a value to cents; ``None`` counts as zero."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT)


class UploadStatus(str, Enum):
    """Lifecycle of a bank or revenue upload."""

    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class FileFormat(str, Enum):
    """Statement file formats accepted at upload time."""

    CSV = "CSV"
    OFX = "OFX"
    QIF = "QIF"


class LineType(str, Enum):
    """Kinds of entries on a customer statement."""

    REVENUE = "REVENUE"
    COST = "COST"
    PAYMENT = "PAYMENT"
    BANK_TRANSACTION = "BANK_TRANSACTION"
    OPENING_BALANCE = "OPENING_BALANCE"
    CLOSING_BALANCE = "CLOSING_BALANCE"


class NormalizedRow(BaseModel):
    """One bank statement row after column resolution and parsing."""

    date: date
    description: str = ""
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    statement_balance: Decimal = ZERO

    @property
    def amount(self) -> Decimal:
        """Unsigned amount used when asking for suggestions."""
        return self.debit + self.credit


class RevenueRow(BaseModel):
    """One revenue sheet row after column resolution and parsing."""

    date: date
    customer_name: str
    revenue: Decimal = ZERO
    cost: Decimal = ZERO

    @property
    def netting_balance(self) -> Decimal:
        return self.revenue - self.cost


class Categorization(BaseModel):
    """A user's categorization of a bank statement transaction."""

    category_id: int | None = None
    customer_id: int | None = None
    vendor_id: int | None = None
    notes: str | None = None


class Candidate(BaseModel):
    """A suggested customer, vendor or expense category."""

    id: int
    name: str


class Suggestions(BaseModel):
    """Advisory matches for a transaction description, in name order."""

    customers: list[Candidate] = Field(default_factory=list)
    vendors: list[Candidate] = Field(default_factory=list)
    categories: list[Candidate] = Field(default_factory=list)

    @property
    def top_customer_id(self) -> int | None:
        return self.customers[0].id if self.customers else None

    @property
    def top_vendor_id(self) -> int | None:
        return self.vendors[0].id if self.vendors else None

    @property
    def top_category_id(self) -> int | None:
        return self.categories[0].id if self.categories else None

    @property
    def is_empty(self) -> bool:
        return not (self.customers or self.vendors or self.categories)


class StatementLineView(BaseModel):
    """A customer statement line with its recomputed running balance."""

    id: int
    line_date: date
    line_type: LineType
    description: str
    revenue: Decimal = ZERO
    cost: Decimal = ZERO
    netting_balance: Decimal = ZERO
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    running_balance: Decimal = ZERO
    stored_running_balance: Decimal = ZERO

    @property
    def impact(self) -> Decimal:
        """Change this line makes to the customer's balance."""
        return self.revenue - self.cost + self.debit - self.credit

    @property
    def has_drift(self) -> bool:
        return self.running_balance != self.stored_running_balance


class StatementSummary(BaseModel):
    """Totals and folded running balances for a customer's statement."""

    customer_id: int
    customer_name: str
    start_date: date | None = None
    end_date: date | None = None
    opening_balance: Decimal = ZERO
    total_revenue: Decimal = ZERO
    total_cost: Decimal = ZERO
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO
    closing_balance: Decimal = ZERO
    lines: list[StatementLineView] = Field(default_factory=list)

    @property
    def net_movement(self) -> Decimal:
        return self.closing_balance - self.opening_balance


class BalanceBreak(BaseModel):
    """A statement row whose printed balance does not follow from the previous one."""

    transaction_id: int
    transaction_date: date
    description: str
    expected_balance: Decimal
    printed_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.printed_balance - self.expected_balance
