"""Tests for customer ledgers: categorization, summaries, drift and rebuilds."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from ledgerline.analyzers.ledger import fold_running_balances, line_impact
from ledgerline.exceptions import NotFoundError, ValidationError
from ledgerline.models.records import Categorization, LineType


def _ingest(books, seeded, *rows: tuple[str, str, str, str]) -> dict[str, int]:
    """Ingest (date, description, debit, credit) rows; return transaction ids by description."""
    upload = books.create_bank_upload(
        seeded.company_id,
        seeded.account_id,
        "statement.csv",
        rows=[
            {"Date": d, "Description": desc, "Debit": debit, "Credit": credit}
            for d, desc, debit, credit in rows
        ],
    )
    assert upload.status == "PROCESSED"
    transactions = sorted(books.bank_transactions(seeded.company_id, upload.id), key=lambda t: t.id)
    return {t.description: t.id for t in transactions}


class TestLineImpact:
    def test_fold_from_opening_balance(self) -> None:
        class Line:
            def __init__(self, line_id, revenue="0", cost="0", debit="0", credit="0") -> None:
                self.id = line_id
                self.line_date = date(2024, 1, line_id)
                self.line_type = "REVENUE"
                self.description = "line"
                self.revenue = Decimal(revenue)
                self.cost = Decimal(cost)
                self.netting_balance = self.revenue - self.cost
                self.debit_amount = Decimal(debit)
                self.credit_amount = Decimal(credit)
                self.running_balance = Decimal("0")

        lines = [Line(1, revenue="500", cost="120"), Line(2, debit="100"), Line(3, credit="30")]
        assert line_impact(lines[0]) == Decimal("380.00")

        views = fold_running_balances(Decimal("50"), lines)
        assert [v.running_balance for v in views] == [
            Decimal("430.00"),
            Decimal("530.00"),
            Decimal("500.00"),
        ]
        assert all(v.has_drift for v in views)


class TestCategorize:
    def test_end_to_end_running_balance(self, books, seeded) -> None:
        txns = _ingest(
            books,
            seeded,
            ("2024-03-01", "Invoice settlement", "100.00", ""),
            ("2024-03-02", "Customer refund", "", "30.00"),
        )
        customer_id = seeded.customers["Acme Corp"]

        books.categorize_transaction(txns["Invoice settlement"], {"customer_id": customer_id})
        lines = books.statement_lines(seeded.company_id, customer_id)
        assert len(lines) == 1
        assert lines[0].running_balance == Decimal("100.00")

        books.categorize_transaction(txns["Customer refund"], {"customer_id": customer_id})
        lines = books.statement_lines(seeded.company_id, customer_id)
        assert len(lines) == 2
        assert lines[1].running_balance == Decimal("70.00")

    def test_line_fields(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-01", "Invoice settlement", "100.00", ""))
        customer_id = seeded.customers["Acme Corp"]

        txn = books.categorize_transaction(
            txns["Invoice settlement"], Categorization(customer_id=customer_id, notes="March")
        )
        assert txn.customer_id == customer_id
        assert txn.notes == "March"

        (line,) = books.statement_lines(seeded.company_id, customer_id)
        assert line.line_type == LineType.BANK_TRANSACTION.value
        assert line.description == "Bank Transaction: Invoice settlement"
        assert line.line_date == date(2024, 3, 1)
        assert line.debit_amount == Decimal("100.00")
        assert line.bank_statement_transaction_id == txn.id
        assert line.bank_statement_upload_id == txn.bank_statement_upload_id

    def test_opening_balance_seeds_first_line(self, books, seeded) -> None:
        customer = books.add_customer(seeded.company_id, "Initech", opening_balance="250.00")
        txns = _ingest(books, seeded, ("2024-03-01", "Initech wire", "100.00", ""))

        books.categorize_transaction(txns["Initech wire"], {"customer_id": customer.id})
        (line,) = books.statement_lines(seeded.company_id, customer.id)
        assert line.running_balance == Decimal("350.00")

    def test_out_of_order_seeds_from_latest_line(self, books, seeded) -> None:
        txns = _ingest(
            books,
            seeded,
            ("2024-01-01", "January work", "20.00", ""),
            ("2024-02-01", "February work", "50.00", ""),
        )
        customer_id = seeded.customers["Acme Corp"]

        books.categorize_transaction(txns["February work"], {"customer_id": customer_id})
        books.categorize_transaction(txns["January work"], {"customer_id": customer_id})

        january, february = books.statement_lines(seeded.company_id, customer_id)
        assert january.line_date == date(2024, 1, 1)
        assert february.running_balance == Decimal("50.00")
        # Seeded from the February line, not from the opening balance
        assert january.running_balance == Decimal("70.00")

    def test_partial_fields_keep_existing(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-01", "Invoice settlement", "100.00", ""))
        customer_id = seeded.customers["Acme Corp"]
        books.categorize_transaction(txns["Invoice settlement"], {"customer_id": customer_id})

        txn = books.categorize_transaction(txns["Invoice settlement"], {"notes": "checked"})
        assert txn.customer_id == customer_id
        assert txn.notes == "checked"
        # Only a customer assignment appends to the ledger
        assert len(books.statement_lines(seeded.company_id, customer_id)) == 1

    def test_vendor_only(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-01", "Acme hardware", "60.00", ""))
        txn = books.categorize_transaction(txns["Acme hardware"], {"vendor_id": seeded.vendors["Acme"]})
        assert txn.vendor_id == seeded.vendors["Acme"]
        assert books.expense_transactions(seeded.company_id) == []

    def test_unknown_transaction(self, books, seeded) -> None:
        with pytest.raises(NotFoundError, match="Bank statement transaction not found: 999"):
            books.categorize_transaction(999, {"customer_id": seeded.customers["Acme Corp"]})

    def test_unknown_customer(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-01", "Invoice settlement", "100.00", ""))
        with pytest.raises(NotFoundError, match="Customer not found"):
            books.categorize_transaction(txns["Invoice settlement"], {"customer_id": 999})

        (txn,) = books.bank_transactions(seeded.company_id)
        assert txn.customer_id is None

    def test_customer_from_other_company(self, books, seeded) -> None:
        other = books.add_company("Other Co")
        stranger = books.add_customer(other.id, "Stranger")
        txns = _ingest(books, seeded, ("2024-03-01", "Invoice settlement", "100.00", ""))

        with pytest.raises(ValidationError):
            books.categorize_transaction(txns["Invoice settlement"], {"customer_id": stranger.id})
        assert books.statement_lines(other.id, stranger.id) == []


class TestExpenseOnCategorize:
    def test_category_creates_expense(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-01", "Staples - printer paper", "45.00", ""))
        txn_id = txns["Staples - printer paper"]

        books.categorize_transaction(
            txn_id,
            {"category_id": seeded.categories["Office Supplies"], "vendor_id": seeded.vendors["Staples"]},
        )

        (expense,) = books.expense_transactions(seeded.company_id)
        assert expense.payee == "Staples"
        assert expense.description == "Staples - printer paper"
        assert expense.total_amount == Decimal("45.00")
        assert expense.amount_before_tax == Decimal("45.00")
        assert expense.expense_category_id == seeded.categories["Office Supplies"]
        assert expense.vendor_id == seeded.vendors["Staples"]
        assert expense.bank_statement_transaction_id == txn_id
        assert expense.notes == f"Auto-created from bank transaction ID {txn_id}"

    def test_credit_amount_used_when_no_debit(self, books, seeded) -> None:
        txns = _ingest(books, seeded, ("2024-03-05", "Landlord refund", "", "80.00"))
        books.categorize_transaction(
            txns["Landlord refund"], {"category_id": seeded.categories["Rent"], "notes": "deposit back"}
        )

        (expense,) = books.expense_transactions(seeded.company_id)
        assert expense.payee == "Landlord refund"
        assert expense.total_amount == Decimal("80.00")
        assert expense.notes == "deposit back"

    def test_expense_failure_does_not_fail_categorization(
        self, books, seeded, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        from ledgerline.db import crud

        def broken(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(crud, "create_expense_transaction", broken)
        txns = _ingest(books, seeded, ("2024-03-01", "Staples - toner", "30.00", ""))

        txn = books.categorize_transaction(
            txns["Staples - toner"], {"category_id": seeded.categories["Office Supplies"]}
        )
        assert txn.category_id == seeded.categories["Office Supplies"]
        assert "Error creating expense transaction" in caplog.text


class TestStatementSummary:
    def test_fold_matches_sum_of_impacts(self, books, seeded) -> None:
        customer_id = seeded.customers["Acme Corp"]
        books.create_revenue_upload(
            seeded.company_id,
            "january.csv",
            rows=[{"Date": "2024-01-31", "Customer Name": "Acme Corp", "Revenue": "500", "Cost": "120"}],
        )
        txns = _ingest(
            books,
            seeded,
            ("2024-03-01", "Invoice settlement", "100.00", ""),
            ("2024-03-02", "Customer refund", "", "30.00"),
        )
        for txn_id in txns.values():
            books.categorize_transaction(txn_id, {"customer_id": customer_id})

        summary = books.get_customer_statement_summary(seeded.company_id, customer_id)
        assert summary.customer_name == "Acme Corp"
        assert summary.opening_balance == Decimal("0")
        assert summary.total_revenue == Decimal("500.00")
        assert summary.total_cost == Decimal("120.00")
        assert summary.total_debits == Decimal("100.00")
        assert summary.total_credits == Decimal("30.00")
        assert summary.closing_balance == Decimal("450.00")
        assert summary.net_movement == Decimal("450.00")
        assert [line.running_balance for line in summary.lines] == [
            Decimal("380.00"),
            Decimal("480.00"),
            Decimal("450.00"),
        ]

    def test_empty_ledger(self, books, seeded) -> None:
        customer = books.add_customer(seeded.company_id, "Initech", opening_balance="75.50")
        summary = books.get_customer_statement_summary(seeded.company_id, customer.id)
        assert summary.lines == []
        assert summary.closing_balance == Decimal("75.50")

    def test_date_range_carries_earlier_lines(self, books, seeded) -> None:
        customer_id = seeded.customers["Globex"]
        txns = _ingest(
            books,
            seeded,
            ("2024-01-05", "Globex retainer", "100.00", ""),
            ("2024-03-01", "Globex credit note", "", "30.00"),
            ("2024-05-01", "Globex extra work", "10.00", ""),
        )
        for txn_id in txns.values():
            books.categorize_transaction(txn_id, {"customer_id": customer_id})

        summary = books.get_customer_statement_summary(
            seeded.company_id, customer_id, start_date=date(2024, 2, 1), end_date=date(2024, 3, 31)
        )
        assert summary.opening_balance == Decimal("100.00")
        assert len(summary.lines) == 1
        assert summary.total_credits == Decimal("30.00")
        assert summary.total_debits == Decimal("0")
        assert summary.closing_balance == Decimal("70.00")

    def test_summary_does_not_write_back(self, books, seeded) -> None:
        customer_id = seeded.customers["Acme Corp"]
        txns = _ingest(
            books,
            seeded,
            ("2024-01-01", "January work", "20.00", ""),
            ("2024-02-01", "February work", "50.00", ""),
        )
        books.categorize_transaction(txns["February work"], {"customer_id": customer_id})
        books.categorize_transaction(txns["January work"], {"customer_id": customer_id})

        summary = books.get_customer_statement_summary(seeded.company_id, customer_id)
        assert [line.running_balance for line in summary.lines] == [Decimal("20.00"), Decimal("70.00")]
        stored = [line.running_balance for line in books.statement_lines(seeded.company_id, customer_id)]
        assert stored == [Decimal("70.00"), Decimal("50.00")]

    def test_unknown_customer(self, books, seeded) -> None:
        with pytest.raises(NotFoundError):
            books.get_customer_statement_summary(seeded.company_id, 999)

    def test_customer_of_other_company(self, books, seeded) -> None:
        other = books.add_company("Other Co")
        with pytest.raises(NotFoundError):
            books.get_customer_statement_summary(other.id, seeded.customers["Acme Corp"])


class TestDriftAndRebuild:
    def _out_of_order(self, books, seeded) -> int:
        customer_id = seeded.customers["Acme Corp"]
        txns = _ingest(
            books,
            seeded,
            ("2024-01-01", "January work", "20.00", ""),
            ("2024-02-01", "February work", "50.00", ""),
        )
        books.categorize_transaction(txns["February work"], {"customer_id": customer_id})
        books.categorize_transaction(txns["January work"], {"customer_id": customer_id})
        return customer_id

    def test_no_drift_in_order(self, books, seeded) -> None:
        customer_id = seeded.customers["Acme Corp"]
        txns = _ingest(books, seeded, ("2024-01-01", "January work", "20.00", ""))
        books.categorize_transaction(txns["January work"], {"customer_id": customer_id})
        assert books.ledger_drift(seeded.company_id, customer_id) == []

    def test_drift_after_out_of_order_categorization(self, books, seeded) -> None:
        customer_id = self._out_of_order(books, seeded)
        drift = books.ledger_drift(seeded.company_id, customer_id)
        assert [(d.running_balance, d.stored_running_balance) for d in drift] == [
            (Decimal("20.00"), Decimal("70.00")),
            (Decimal("70.00"), Decimal("50.00")),
        ]

    def test_rebuild_restamps(self, books, seeded) -> None:
        customer_id = self._out_of_order(books, seeded)

        changed = books.rebuild_ledger(seeded.company_id, customer_id)
        assert changed == {customer_id: 2}
        stored = [line.running_balance for line in books.statement_lines(seeded.company_id, customer_id)]
        assert stored == [Decimal("20.00"), Decimal("70.00")]
        assert books.ledger_drift(seeded.company_id, customer_id) == []

        # A second rebuild has nothing left to fix
        assert books.rebuild_ledger(seeded.company_id, customer_id) == {customer_id: 0}

    def test_rebuild_whole_company(self, books, seeded) -> None:
        customer_id = self._out_of_order(books, seeded)
        changed = books.rebuild_ledger(seeded.company_id)
        assert changed == {customer_id: 2, seeded.customers["Globex"]: 0}


class TestCascade:
    def test_deleting_customer_removes_lines(self, books, seeded) -> None:
        from ledgerline.db import crud

        customer_id = seeded.customers["Acme Corp"]
        txns = _ingest(books, seeded, ("2024-03-01", "Invoice settlement", "100.00", ""))
        books.categorize_transaction(txns["Invoice settlement"], {"customer_id": customer_id})

        with books.database.session() as db:
            # Transaction still points at the customer; clear it before deleting.
            txn = crud.get_bank_statement_transaction(db, txns["Invoice settlement"])
            txn.customer_id = None
            assert crud.delete_customer(db, customer_id) is True
            db.commit()

        assert books.statement_lines(seeded.company_id, customer_id) == []
