"""Tests for the row normalizer."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerline.exceptions import ParseError
from ledgerline.ingest.columns import ResolvedColumns
from ledgerline.ingest.normalizer import (
    normalize_revenue_row,
    normalize_row,
    parse_amount,
    parse_date,
)


class TestParseAmount:
    def test_plain_and_signed(self) -> None:
        assert parse_amount("42.5") == Decimal("42.50")
        assert parse_amount("-42.50") == Decimal("-42.50")

    def test_currency_noise(self) -> None:
        assert parse_amount("$1,200.50") == Decimal("1200.50")
        assert parse_amount(" £ 75 ") == Decimal("75.00")

    def test_accounting_negatives(self) -> None:
        assert parse_amount("(45.00)") == Decimal("-45.00")
        assert parse_amount("12.50-") == Decimal("-12.50")

    def test_blank_is_zero(self) -> None:
        assert parse_amount("") == Decimal("0")
        assert parse_amount(None) == Decimal("0")
        assert parse_amount("  ") == Decimal("0")

    def test_numeric_input(self) -> None:
        assert parse_amount(19.999) == Decimal("20.00")
        assert parse_amount(7) == Decimal("7.00")

    def test_invalid(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_amount("abc", field="debit", row=3)
        assert exc_info.value.row == 3
        assert exc_info.value.field == "debit"
        assert str(exc_info.value).startswith("Row 3:")

    def test_beyond_decimal_precision(self) -> None:
        with pytest.raises(ParseError, match="Row 2: Invalid amount value"):
            parse_amount("1e30", row=2)

    def test_beyond_column_range(self) -> None:
        with pytest.raises(ParseError, match="out of range"):
            parse_amount("12345678901.00")
        with pytest.raises(ParseError, match="out of range"):
            parse_amount(1e12)
        assert parse_amount("9,999,999,999.99") == Decimal("9999999999.99")


class TestParseDate:
    def test_iso(self) -> None:
        assert parse_date("2024-03-15") == date(2024, 3, 15)

    def test_us_format(self) -> None:
        assert parse_date("03/15/2024") == date(2024, 3, 15)

    def test_date_objects_pass_through(self) -> None:
        assert parse_date(date(2024, 1, 2)) == date(2024, 1, 2)

    def test_missing(self) -> None:
        with pytest.raises(ParseError, match="Missing date"):
            parse_date("")

    def test_invalid(self) -> None:
        with pytest.raises(ParseError, match="Invalid date format: not-a-date"):
            parse_date("not-a-date")


class TestNormalizeRow:
    """Amount resolution rules for bank rows."""

    def test_debit_and_credit_columns(self) -> None:
        row = normalize_row(
            {"Date": "2024-03-01", "Description": "Acme invoice", "Debit": "100.00", "Credit": ""}
        )
        assert row.date == date(2024, 3, 1)
        assert row.description == "Acme invoice"
        assert row.debit == Decimal("100.00")
        assert row.credit == Decimal("0")

    def test_debit_and_credit_are_never_negative(self) -> None:
        row = normalize_row({"Date": "2024-03-01", "Description": "x", "Debit": "-20", "Credit": "(5)"})
        assert row.debit == Decimal("20.00")
        assert row.credit == Decimal("5.00")

    def test_debit_credit_ignores_amount_column(self) -> None:
        row = normalize_row(
            {"Date": "2024-03-01", "Description": "x", "Debit": "10", "Credit": "", "Amount": "-99"}
        )
        assert row.debit == Decimal("10.00")
        assert row.credit == Decimal("0")

    def test_negative_amount_is_debit(self) -> None:
        row = normalize_row({"date": "2024-01-05", "description": "Fuel", "amount": "-42.50"})
        assert row.debit == Decimal("42.50")
        assert row.credit == Decimal("0")

    def test_positive_amount_is_credit(self) -> None:
        row = normalize_row({"date": "2024-01-05", "description": "Deposit", "amount": "42.50"})
        assert row.debit == Decimal("0")
        assert row.credit == Decimal("42.50")

    def test_scan_for_amount_like_header(self) -> None:
        columns = ResolvedColumns(keys={"date": "Date", "description": "Memo"})
        row = normalize_row(
            {"Date": "2024-02-01", "Memo": "Refund", "Reference": "A1", "Net Amount": "-15.00"},
            columns,
        )
        assert row.debit == Decimal("15.00")
        assert row.credit == Decimal("0")

    def test_lone_debit_alias_is_debit(self) -> None:
        row = normalize_row({"Date": "2024-03-01", "Description": "ATM", "Withdrawal": "50.00"})
        assert row.debit == Decimal("50.00")
        assert row.credit == Decimal("0")

    def test_lone_credit_alias_is_credit(self) -> None:
        row = normalize_row({"Date": "2024-03-01", "Description": "Refund", "Deposit": "(12.00)"})
        assert row.debit == Decimal("0")
        assert row.credit == Decimal("12.00")

    def test_resolved_column_wins_over_scan(self) -> None:
        columns = ResolvedColumns(keys={"date": "Date", "description": "Memo", "debit": "Money Out"})
        row = normalize_row(
            {"Date": "2024-02-01", "Memo": "Rent", "Net Amount": "5", "Money Out": "800"}, columns
        )
        assert row.debit == Decimal("800.00")
        assert row.credit == Decimal("0")

    def test_scan_without_hit_is_zero(self) -> None:
        columns = ResolvedColumns(keys={"date": "Date", "description": "Memo"})
        row = normalize_row({"Date": "2024-02-01", "Memo": "Note", "Other": "12"}, columns)
        assert row.amount == Decimal("0")

    def test_balance_carried_through(self) -> None:
        row = normalize_row(
            {"Date": "2024-03-01", "Description": "x", "Amount": "-5", "Balance": "1,234.56"}
        )
        assert row.statement_balance == Decimal("1234.56")

    def test_missing_balance_is_zero(self) -> None:
        row = normalize_row({"Date": "2024-03-01", "Description": "x", "Amount": "-5"})
        assert row.statement_balance == Decimal("0")

    def test_amount_is_unsigned_sum(self) -> None:
        row = normalize_row({"Date": "2024-03-01", "Description": "x", "Debit": "3", "Credit": "4"})
        assert row.amount == Decimal("7.00")

    def test_bad_date_reports_row(self) -> None:
        with pytest.raises(ParseError, match="Row 4: Invalid date format"):
            normalize_row({"Date": "31st of never", "Description": "x", "Amount": "1"}, row=4)

    def test_bad_amount(self) -> None:
        with pytest.raises(ParseError, match="amount"):
            normalize_row({"Date": "2024-03-01", "Description": "x", "Amount": "twelve"})


class TestNormalizeRevenueRow:
    def test_revenue_row(self) -> None:
        row = normalize_revenue_row(
            {"Date": "2024-01-31", "Customer Name": "Acme Corp", "Revenue": "500", "Cost": "120.25"}
        )
        assert row.customer_name == "Acme Corp"
        assert row.revenue == Decimal("500.00")
        assert row.cost == Decimal("120.25")
        assert row.netting_balance == Decimal("379.75")

    def test_missing_customer(self) -> None:
        with pytest.raises(ParseError, match="Missing customer name"):
            normalize_revenue_row({"Date": "2024-01-31", "Customer": " ", "Revenue": "1", "Cost": "0"})
