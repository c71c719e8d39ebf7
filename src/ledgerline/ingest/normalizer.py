"""
Row normalizer — turn one raw statement row into a normalized record.

Amount resolution for bank rows, in priority order:

1. Both ``debit`` and ``credit`` columns present: each is parsed on its own
   (empty means zero) and stored as a positive amount.
2. A single ``amount`` column: positive is a credit, negative a debit.
3. Otherwise a lone resolved ``debit`` or ``credit`` column (``Withdrawal``,
   ``Money In`` ...) fills its own side. Failing that, the first parseable
   value under any header containing ``debit``, ``credit`` or ``amount`` is
   treated like rule 2. No hit means a zero row.

Amounts must fit the stored ``Numeric(12, 2)`` columns.

The printed ``balance`` is carried through untouched.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from ledgerline.exceptions import ParseError
from ledgerline.ingest.columns import ColumnMapping, ResolvedColumns, normalize_header
from ledgerline.models.records import ZERO, NormalizedRow, RevenueRow, to_money

_CURRENCY_NOISE = re.compile(r"[\s$€£¥,]")
_EMPTY_MARKERS = {"", "nan", "none", "null", "-"}
_AMOUNT_TOKENS = ("debit", "credit", "amount")
# Largest magnitude a Numeric(12, 2) column holds.
_MAX_AMOUNT = Decimal("9999999999.99")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip().lower() in _EMPTY_MARKERS


def parse_date(value: Any, field: str = "date", row: int | None = None) -> date:
    """Parse a calendar date from a string or date-like value."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _is_blank(value):
        raise ParseError(f"Missing {field}", row=row, field=field)

    text = str(value).strip()
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError) as e:
        raise ParseError(f"Invalid date format: {text}", row=row, field=field) from e
    if pd.isna(parsed):
        raise ParseError(f"Invalid date format: {text}", row=row, field=field)
    return parsed.date()


def parse_amount(value: Any, field: str = "amount", row: int | None = None) -> Decimal:
    """Parse a money amount; blanks are zero.

    Accepts currency symbols, thousands separators, ``(12.50)`` and
    ``12.50-`` for negatives.
    """
    if _is_blank(value):
        return ZERO
    if isinstance(value, bool):
        raise ParseError(f"Invalid {field} value: {value!r}", row=row, field=field)
    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and math.isinf(value):
            raise ParseError(f"Invalid {field} value: {value!r}", row=row, field=field)
        return _checked_money(value, value, field, row)

    text = str(value).strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative, text = True, text[1:-1]
    text = _CURRENCY_NOISE.sub("", text)
    if text.endswith("-"):
        negative, text = True, text[:-1]

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ParseError(f"Invalid {field} value: {value!r}", row=row, field=field) from e
    if not amount.is_finite():
        raise ParseError(f"Invalid {field} value: {value!r}", row=row, field=field)
    return _checked_money(-amount if negative else amount, value, field, row)


def _checked_money(amount: Any, raw: Any, field: str, row: int | None) -> Decimal:
    try:
        money = to_money(amount)
    except InvalidOperation as e:
        raise ParseError(f"Invalid {field} value: {raw!r}", row=row, field=field) from e
    if abs(money) > _MAX_AMOUNT:
        raise ParseError(f"{field} value out of range: {raw!r}", row=row, field=field)
    return money


def _split_signed(amount: Decimal) -> tuple[Decimal, Decimal]:
    """Signed amount -> (debit, credit)."""
    if amount > 0:
        return ZERO, amount
    return abs(amount), ZERO


def _scan_amount(
    raw_row: Mapping[str, Any], columns: ResolvedColumns, row: int | None
) -> tuple[Decimal, Decimal]:
    reserved = {columns.get(name) for name in ("date", "description", "balance")}
    for key, value in raw_row.items():
        if key in reserved or _is_blank(value):
            continue
        header = normalize_header(key)
        if not any(token in header for token in _AMOUNT_TOKENS):
            continue
        try:
            amount = parse_amount(value, field=str(key), row=row)
        except ParseError:
            continue
        return _split_signed(amount)
    return ZERO, ZERO


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def normalize_row(
    raw_row: Mapping[str, Any],
    columns: ResolvedColumns | None = None,
    row: int | None = None,
) -> NormalizedRow:
    """Normalize one bank statement row.

    Args:
        raw_row: Row as parsed from the CSV, arbitrary header names.
        columns: Columns resolved once for the upload; resolved from this
            row's own keys when omitted.
        row: 1-based row number, used in error messages.

    Raises:
        ParseError: The date, an amount or the balance cannot be parsed.
    """
    if columns is None:
        columns = ColumnMapping.bank().resolve(raw_row.keys())

    date_key = columns.get("date")
    if date_key is None:
        raise ParseError("No date column", row=row, field="date")
    txn_date = parse_date(raw_row.get(date_key), row=row)

    description = _text(columns.value(raw_row, "description"))

    debit_key, credit_key, amount_key = columns.get("debit"), columns.get("credit"), columns.get("amount")
    if debit_key in raw_row and credit_key in raw_row:
        debit = abs(parse_amount(raw_row.get(debit_key), field="debit", row=row))
        credit = abs(parse_amount(raw_row.get(credit_key), field="credit", row=row))
    elif amount_key in raw_row:
        debit, credit = _split_signed(parse_amount(raw_row.get(amount_key), field="amount", row=row))
    elif debit_key in raw_row and not _is_blank(raw_row.get(debit_key)):
        debit = abs(parse_amount(raw_row.get(debit_key), field="debit", row=row))
        credit = ZERO
    elif credit_key in raw_row and not _is_blank(raw_row.get(credit_key)):
        debit = ZERO
        credit = abs(parse_amount(raw_row.get(credit_key), field="credit", row=row))
    else:
        debit, credit = _scan_amount(raw_row, columns, row)

    balance_key = columns.get("balance")
    balance = ZERO
    if balance_key in raw_row:
        balance = parse_amount(raw_row.get(balance_key), field="balance", row=row)

    return NormalizedRow(
        date=txn_date,
        description=description,
        debit=debit,
        credit=credit,
        statement_balance=balance,
    )


def normalize_revenue_row(
    raw_row: Mapping[str, Any],
    columns: ResolvedColumns | None = None,
    row: int | None = None,
) -> RevenueRow:
    """Normalize one revenue sheet row (date, customer, revenue, cost)."""
    if columns is None:
        columns = ColumnMapping.revenue().resolve(raw_row.keys())

    line_date = parse_date(columns.value(raw_row, "date"), row=row)
    customer_name = _text(columns.value(raw_row, "customer_name"))
    if not customer_name:
        raise ParseError("Missing customer name", row=row, field="customer_name")

    return RevenueRow(
        date=line_date,
        customer_name=customer_name,
        revenue=parse_amount(columns.value(raw_row, "revenue"), field="revenue", row=row),
        cost=parse_amount(columns.value(raw_row, "cost"), field="cost", row=row),
    )
