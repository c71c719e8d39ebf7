"""
Ledgerline — Main entry point.

The Bookkeeper class ties the storage layer, the statement ingestor, the
categorization suggester and the customer ledger together behind one object.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ledgerline.analyzers.ledger import CustomerLedger
from ledgerline.analyzers.suggester import CategorizationSuggester
from ledgerline.config import LedgerlineConfig
from ledgerline.db import crud
from ledgerline.db.database import Database
from ledgerline.db.tables import (
    BankAccount,
    BankStatementTransaction,
    BankStatementUpload,
    Company,
    Customer,
    CustomerStatementLine,
    ExpenseCategory,
    ExpenseTransaction,
    RevenueUpload,
    Vendor,
)
from ledgerline.exceptions import NotFoundError
from ledgerline.ingest.csv_reader import read_csv_rows, read_csv_text
from ledgerline.ingest.pipeline import StatementIngestor
from ledgerline.models.records import (
    ZERO,
    BalanceBreak,
    Categorization,
    FileFormat,
    StatementLineView,
    StatementSummary,
    Suggestions,
    to_money,
)

logger = logging.getLogger("ledgerline")


@dataclass
class Bookkeeper:
    """Top-level entry point for Ledgerline.

    Usage::

        from ledgerline import Bookkeeper

        books = Bookkeeper.from_config("ledgerline.yaml")
        books.init_db()
        upload = books.import_bank_csv(company_id=1, bank_account_id=1, path="march.csv")
        books.categorize_transaction(42, {"customer_id": 7})
        print(books.get_customer_statement_summary(1, 7).closing_balance)

    The Bookkeeper coordinates:
    - **Ingestor**: bank statement and revenue uploads.
    - **Suggester**: customer / vendor / category candidates per description.
    - **Ledger**: per-customer statement lines and running balances.
    """

    config: LedgerlineConfig = field(default_factory=LedgerlineConfig)
    database: Database | None = field(default=None, repr=False)
    suggester: CategorizationSuggester = field(init=False, repr=False)
    ingestor: StatementIngestor = field(init=False, repr=False)
    ledger: CustomerLedger = field(init=False, repr=False)

    @classmethod
    def from_config(cls, config_path: str | None = None, **overrides: Any) -> Bookkeeper:
        """Create a Bookkeeper from a config file or keyword arguments."""
        return cls(config=LedgerlineConfig.load(config_path, **overrides))

    def __post_init__(self) -> None:
        if self.database is None:
            self.database = Database(self.config.database.url, echo=self.config.database.echo)
        self.suggester = CategorizationSuggester(
            keyword_families=self.config.suggestions.keyword_families,
            limit=self.config.suggestions.limit,
        )
        self.ingestor = StatementIngestor(self.database, self.config, self.suggester)
        self.ledger = CustomerLedger(self.database)
        logger.debug("Bookkeeper ready on %s", self.config.database.url)

    def init_db(self) -> None:
        self.database.create_all()

    # ------------------------------------------------------------------
    # Companies, parties and categories
    # ------------------------------------------------------------------

    def add_company(self, name: str, default_currency: str = "USD") -> Company:
        with self.database.session() as db:
            company = crud.create_company(db, name, default_currency)
            db.commit()
            return company

    def add_customer(
        self,
        company_id: int,
        name: str,
        opening_balance: Decimal | int | str = ZERO,
        payment_terms: str | None = None,
        email: str | None = None,
    ) -> Customer:
        with self.database.session() as db:
            self._require_company(db, company_id)
            customer = crud.create_customer(
                db,
                company_id,
                name,
                opening_balance=opening_balance,
                payment_terms=payment_terms or self.config.ingest.default_payment_terms,
                email=email,
            )
            db.commit()
            return customer

    def add_vendor(self, company_id: int, name: str, email: str | None = None) -> Vendor:
        with self.database.session() as db:
            self._require_company(db, company_id)
            vendor = crud.create_vendor(db, company_id, name, email)
            db.commit()
            return vendor

    def add_bank_account(
        self,
        company_id: int,
        account_name: str,
        bank_name: str | None = None,
        account_number: str | None = None,
    ) -> BankAccount:
        with self.database.session() as db:
            self._require_company(db, company_id)
            account = crud.create_bank_account(db, company_id, account_name, bank_name, account_number)
            db.commit()
            return account

    def add_category(self, company_id: int, name: str, description: str = "") -> ExpenseCategory:
        with self.database.session() as db:
            self._require_company(db, company_id)
            category = crud.create_expense_category(db, company_id, name, description)
            db.commit()
            return category

    def customers(self, company_id: int) -> list[Customer]:
        with self.database.session() as db:
            return crud.get_customers(db, company_id)

    def expense_transactions(self, company_id: int) -> list[ExpenseTransaction]:
        with self.database.session() as db:
            return crud.get_expense_transactions(db, company_id)

    # ------------------------------------------------------------------
    # Suggestions and uploads
    # ------------------------------------------------------------------

    def suggest(self, company_id: int, description: str, amount: Decimal | float = 0) -> Suggestions:
        """Candidate customers, vendors and categories for a description."""
        with self.database.session() as db:
            return self.suggester.suggest_for_company(db, company_id, description, amount)

    def create_bank_upload(
        self,
        company_id: int,
        bank_account_id: int,
        file_name: str,
        file_format: FileFormat | str = FileFormat.CSV,
        rows: Sequence[Mapping[str, Any]] | None = None,
        raw_csv: str | None = None,
    ) -> BankStatementUpload:
        return self.ingestor.create_bank_upload(
            company_id, bank_account_id, file_name, file_format, rows=rows, raw_csv=raw_csv
        )

    def process_bank_upload(
        self, upload_id: int, rows: Sequence[Mapping[str, Any]], resume: bool = False
    ) -> BankStatementUpload:
        return self.ingestor.process_bank_upload(upload_id, rows, resume=resume)

    def import_bank_csv(
        self, company_id: int, bank_account_id: int, path: str | Path
    ) -> BankStatementUpload:
        """Read a statement file and ingest it as a new upload; the raw text is kept."""
        path = Path(path)
        rows = read_csv_rows(path)
        return self.ingestor.create_bank_upload(
            company_id,
            bank_account_id,
            path.name,
            FileFormat.CSV,
            rows=rows,
            raw_csv=read_csv_text(path),
        )

    def create_revenue_upload(
        self,
        company_id: int,
        file_name: str,
        rows: Sequence[Mapping[str, Any]] | None = None,
    ) -> RevenueUpload:
        return self.ingestor.create_revenue_upload(company_id, file_name, rows=rows)

    def process_revenue_upload(
        self, upload_id: int, rows: Sequence[Mapping[str, Any]], resume: bool = False
    ) -> RevenueUpload:
        return self.ingestor.process_revenue_upload(upload_id, rows, resume=resume)

    def import_revenue_csv(self, company_id: int, path: str | Path) -> RevenueUpload:
        path = Path(path)
        rows = read_csv_rows(path)
        return self.ingestor.create_revenue_upload(company_id, path.name, rows=rows)

    def bank_transactions(
        self, company_id: int, upload_id: int | None = None
    ) -> list[BankStatementTransaction]:
        with self.database.session() as db:
            return crud.get_bank_statement_transactions(db, company_id, upload_id)

    def balance_breaks(self, upload_id: int) -> list[BalanceBreak]:
        return self.ingestor.balance_breaks(upload_id)

    # ------------------------------------------------------------------
    # Categorization and customer ledgers
    # ------------------------------------------------------------------

    def categorize_transaction(
        self,
        transaction_id: int,
        categorization: Categorization | dict[str, Any],
    ) -> BankStatementTransaction:
        """Categorize a bank transaction and, for expense categories, record the expense.

        The expense record is best-effort: a storage error there is logged
        and the categorization still stands.
        """
        if not isinstance(categorization, Categorization):
            categorization = Categorization.model_validate(categorization)
        txn = self.ledger.categorize(transaction_id, categorization)
        if categorization.category_id is not None:
            self._record_expense(txn, categorization)
        return txn

    def _record_expense(
        self, txn: BankStatementTransaction, categorization: Categorization
    ) -> ExpenseTransaction | None:
        debit = to_money(txn.debit_amount)
        amount = debit if debit != ZERO else to_money(txn.credit_amount)
        payee = txn.description.split(" - ")[0] or txn.description
        try:
            with self.database.session() as db:
                expense = crud.create_expense_transaction(
                    db,
                    company_id=txn.company_id,
                    expense_category_id=categorization.category_id,
                    vendor_id=categorization.vendor_id,
                    bank_statement_transaction_id=txn.id,
                    transaction_date=txn.transaction_date,
                    transaction_type="EXPENSE",
                    payee=payee,
                    description=txn.description,
                    amount_before_tax=amount,
                    sales_tax=ZERO,
                    total_amount=amount,
                    notes=categorization.notes or f"Auto-created from bank transaction ID {txn.id}",
                )
                db.commit()
        except SQLAlchemyError:
            logger.exception("Error creating expense transaction for bank transaction %d", txn.id)
            return None

        logger.info("Created expense transaction %d for bank transaction %d", expense.id, txn.id)
        return expense

    def get_customer_statement_summary(
        self,
        company_id: int,
        customer_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> StatementSummary:
        return self.ledger.get_customer_statement_summary(company_id, customer_id, start_date, end_date)

    def statement_lines(
        self,
        company_id: int,
        customer_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[CustomerStatementLine]:
        return self.ledger.list_statement_lines(company_id, customer_id, start_date, end_date)

    def ledger_drift(self, company_id: int, customer_id: int) -> list[StatementLineView]:
        return self.ledger.find_ledger_drift(company_id, customer_id)

    def rebuild_ledger(self, company_id: int, customer_id: int | None = None) -> dict[int, int]:
        """Restamp running balances for one customer, or every customer of the company.

        Returns lines changed per customer id.
        """
        if customer_id is not None:
            ids = [customer_id]
        else:
            ids = [c.id for c in self.customers(company_id)]
        return {cid: self.ledger.rebuild_running_balances(company_id, cid) for cid in ids}

    def _require_company(self, db: Any, company_id: int) -> None:
        if crud.get_company(db, company_id) is None:
            raise NotFoundError("Company", company_id)


