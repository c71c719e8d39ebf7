"""
Statement Ingest Pipeline — turn uploaded rows into stored records.

Bank uploads yield one ``BankStatementTransaction`` per row, with the top
suggestion of each kind attached. Revenue uploads yield one ``REVENUE``
customer statement line per row, creating unknown customers on the way.

Progress contract: each row is committed together with the upload's
``processed_rows`` counter. A failing row stops the batch, marks the upload
``FAILED`` with the error text and re-raises; rows committed before it stay.
``resume=True`` restarts after the last committed row instead of at row one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ledgerline.analyzers.balance_check import find_balance_breaks, log_balance_breaks
from ledgerline.analyzers.ledger import append_statement_line
from ledgerline.analyzers.suggester import CategorizationSuggester, load_candidates
from ledgerline.config import LedgerlineConfig
from ledgerline.db import crud
from ledgerline.exceptions import NotFoundError, ParseError, ValidationError
from ledgerline.ingest.columns import ColumnMapping
from ledgerline.ingest.normalizer import normalize_revenue_row, normalize_row
from ledgerline.models.records import (
    BalanceBreak,
    FileFormat,
    LineType,
    UploadStatus,
    to_money,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from ledgerline.db.database import Database
    from ledgerline.db.tables import BankStatementUpload, RevenueUpload

logger = logging.getLogger("ledgerline.ingest.pipeline")

Row = Mapping[str, Any]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _error_text(error: BaseException) -> str:
    return str(error) or type(error).__name__


class StatementIngestor:
    """Process bank statement and revenue uploads.

    Usage::

        ingestor = StatementIngestor(database, config)
        upload = ingestor.create_bank_upload(
            company_id=1, bank_account_id=1, file_name="march.csv", rows=rows
        )
        print(upload.status, upload.processed_rows)
    """

    def __init__(
        self,
        database: Database,
        config: LedgerlineConfig | None = None,
        suggester: CategorizationSuggester | None = None,
    ) -> None:
        self.database = database
        self.config = config or LedgerlineConfig()
        self.suggester = suggester or CategorizationSuggester(
            keyword_families=self.config.suggestions.keyword_families,
            limit=self.config.suggestions.limit,
        )
        self.bank_columns = ColumnMapping.bank(self.config.ingest.bank_columns)
        self.revenue_columns = ColumnMapping.revenue(self.config.ingest.revenue_columns)

    # ------------------------------------------------------------------
    # Bank statements
    # ------------------------------------------------------------------

    def create_bank_upload(
        self,
        company_id: int,
        bank_account_id: int,
        file_name: str,
        file_format: FileFormat | str = FileFormat.CSV,
        rows: Sequence[Row] | None = None,
        raw_csv: str | None = None,
    ) -> BankStatementUpload:
        """Record a new upload and, when rows are given, process them.

        A row that fails to parse leaves the upload ``FAILED`` and the upload
        is still returned; a batch with missing columns raises.
        """
        file_format = FileFormat(str(getattr(file_format, "value", file_format)).upper())
        with self.database.session() as db:
            account = crud.get_bank_account(db, bank_account_id)
            if account is None:
                raise NotFoundError("Bank account", bank_account_id)
            if account.company_id != company_id:
                raise ValidationError(
                    f"Bank account {bank_account_id} does not belong to company {company_id}"
                )
            upload = crud.create_bank_statement_upload(
                db,
                company_id=company_id,
                bank_account_id=bank_account_id,
                file_name=file_name,
                file_format=file_format.value,
                status=UploadStatus.PENDING.value,
                total_rows=len(rows) if rows is not None else None,
                processed_rows=0,
                csv_data=raw_csv,
            )
            db.commit()
            upload_id = upload.id

        if rows is not None:
            try:
                self.process_bank_upload(upload_id, rows)
            except ParseError as e:
                logger.warning("Upload %d stored as FAILED: %s", upload_id, e)

        return self.get_bank_upload(upload_id)

    def get_bank_upload(self, upload_id: int) -> BankStatementUpload:
        with self.database.session() as db:
            upload = crud.get_bank_statement_upload(db, upload_id)
            if upload is None:
                raise NotFoundError("Bank statement upload", upload_id)
            return upload

    def process_bank_upload(
        self, upload_id: int, rows: Sequence[Row], resume: bool = False
    ) -> BankStatementUpload:
        """
        Normalize, suggest and store every row of a bank statement upload.

        Args:
            upload_id: Existing upload to process.
            rows: Parsed CSV rows, arbitrary header names.
            resume: Skip rows already committed by an earlier attempt.

        Raises:
            NotFoundError: The upload does not exist.
            ValidationError: The first row lacks a required column.
            ParseError: A row's date or amount cannot be parsed.
        """
        with self.database.session() as db:
            upload = crud.get_bank_statement_upload(db, upload_id)
            if upload is None:
                raise NotFoundError("Bank statement upload", upload_id)
            start = self._start_row(upload, resume, len(rows))
            if start is None:
                return upload

            company_id = upload.company_id
            bank_account_id = upload.bank_account_id
            logger.info("Processing %d rows for upload %d", len(rows) - start, upload_id)

            def ingest(index: int, raw: Row, columns: Any) -> None:
                row = normalize_row(raw, columns, row=index + 1)
                suggestions = self.suggester.suggest(
                    row.description, row.amount, customers, vendors, categories
                )
                crud.create_bank_statement_transaction(
                    db,
                    company_id=company_id,
                    bank_account_id=bank_account_id,
                    bank_statement_upload_id=upload_id,
                    transaction_date=row.date,
                    description=row.description,
                    debit_amount=row.debit,
                    credit_amount=row.credit,
                    running_balance=row.statement_balance,
                    is_reconciled=False,
                    suggested_customer_id=suggestions.top_customer_id,
                    suggested_vendor_id=suggestions.top_vendor_id,
                    suggested_category_id=suggestions.top_category_id,
                )
                logger.debug("Upload %d row %d: %s", upload_id, index + 1, row)

            customers, vendors, categories = load_candidates(db, company_id)
            self._run(
                db,
                upload_id,
                rows,
                start,
                self.bank_columns,
                ingest,
                crud.update_bank_statement_upload,
            )

            if self.config.ingest.warn_on_balance_breaks:
                log_balance_breaks(
                    upload_id, find_balance_breaks(crud.get_upload_transactions_in_order(db, upload_id))
                )
            db.refresh(upload)
            return upload

    def balance_breaks(self, upload_id: int) -> list[BalanceBreak]:
        """Rows of an upload whose printed balance does not follow from the previous row."""
        with self.database.session() as db:
            if crud.get_bank_statement_upload(db, upload_id) is None:
                raise NotFoundError("Bank statement upload", upload_id)
            return find_balance_breaks(crud.get_upload_transactions_in_order(db, upload_id))

    # ------------------------------------------------------------------
    # Revenue sheets
    # ------------------------------------------------------------------

    def create_revenue_upload(
        self,
        company_id: int,
        file_name: str,
        rows: Sequence[Row] | None = None,
    ) -> RevenueUpload:
        """Record a revenue upload and, when rows are given, process them."""
        with self.database.session() as db:
            if crud.get_company(db, company_id) is None:
                raise NotFoundError("Company", company_id)
            upload = crud.create_revenue_upload(
                db,
                company_id=company_id,
                file_name=file_name,
                status=UploadStatus.PENDING.value,
                total_rows=len(rows) if rows is not None else None,
                processed_rows=0,
            )
            db.commit()
            upload_id = upload.id

        if rows is not None:
            try:
                self.process_revenue_upload(upload_id, rows)
            except ParseError as e:
                logger.warning("Revenue upload %d stored as FAILED: %s", upload_id, e)

        return self.get_revenue_upload(upload_id)

    def get_revenue_upload(self, upload_id: int) -> RevenueUpload:
        with self.database.session() as db:
            upload = crud.get_revenue_upload(db, upload_id)
            if upload is None:
                raise NotFoundError("Revenue upload", upload_id)
            return upload

    def process_revenue_upload(
        self, upload_id: int, rows: Sequence[Row], resume: bool = False
    ) -> RevenueUpload:
        """
        Store one ``REVENUE`` statement line per row.

        Customers are matched by exact name within the company and created
        with default terms and a zero opening balance when missing. Unless
        ``ledger.fold_revenue_lines`` is set, a line's running balance is its
        own netting balance.
        """
        fold = self.config.ledger.fold_revenue_lines
        terms = self.config.ingest.default_payment_terms

        with self.database.session() as db:
            upload = crud.get_revenue_upload(db, upload_id)
            if upload is None:
                raise NotFoundError("Revenue upload", upload_id)
            start = self._start_row(upload, resume, len(rows))
            if start is None:
                return upload

            company_id = upload.company_id
            description = f"Revenue entry from {upload.file_name}"
            logger.info("Processing %d revenue rows for upload %d", len(rows) - start, upload_id)

            def ingest(index: int, raw: Row, columns: Any) -> None:
                row = normalize_revenue_row(raw, columns, row=index + 1)
                customer = crud.find_customer_by_name(db, company_id, row.customer_name)
                if customer is None:
                    customer = crud.create_customer(
                        db, company_id, row.customer_name, payment_terms=terms
                    )
                    logger.info("Created customer %r for revenue upload %d", customer.name, upload_id)

                if fold:
                    customer = crud.get_customer_for_update(db, customer.id)
                    append_statement_line(
                        db,
                        customer,
                        line_date=row.date,
                        line_type=LineType.REVENUE,
                        description=description,
                        revenue=row.revenue,
                        cost=row.cost,
                        revenue_upload_id=upload_id,
                    )
                else:
                    crud.create_customer_statement_line(
                        db,
                        company_id=company_id,
                        customer_id=customer.id,
                        line_date=row.date,
                        line_type=LineType.REVENUE.value,
                        description=description,
                        revenue=row.revenue,
                        cost=row.cost,
                        netting_balance=to_money(row.netting_balance),
                        debit_amount=to_money(0),
                        credit_amount=to_money(0),
                        running_balance=to_money(row.netting_balance),
                        revenue_upload_id=upload_id,
                    )

            self._run(
                db,
                upload_id,
                rows,
                start,
                self.revenue_columns,
                ingest,
                crud.update_revenue_upload,
            )
            db.refresh(upload)
            return upload

    # ------------------------------------------------------------------
    # Shared loop
    # ------------------------------------------------------------------

    def _start_row(self, upload: Any, resume: bool, total: int) -> int | None:
        """First row index to process, or ``None`` when there is nothing to do."""
        if not resume:
            return 0
        if upload.status == UploadStatus.PROCESSED.value:
            logger.info("Upload %d already processed; nothing to resume", upload.id)
            return None
        start = upload.processed_rows or 0
        if start > total:
            raise ValidationError(
                f"Upload {upload.id} checkpoint is at row {start} but only {total} rows were given"
            )
        return start

    def _run(
        self,
        db: Session,
        upload_id: int,
        rows: Sequence[Row],
        start: int,
        mapping: ColumnMapping,
        ingest: Callable[[int, Row, Any], None],
        update: Callable[..., Any],
    ) -> None:
        processed = start
        try:
            columns = mapping.validate(rows[0]) if rows else None
            for index in range(start, len(rows)):
                ingest(index, rows[index], columns)
                processed = index + 1
                update(db, upload_id, processed_rows=processed)
                db.commit()
        except Exception as e:
            db.rollback()
            update(
                db,
                upload_id,
                status=UploadStatus.FAILED.value,
                error_message=_error_text(e),
                processed_rows=processed,
            )
            db.commit()
            logger.error("Error processing upload %d after %d rows: %s", upload_id, processed, e)
            raise

        update(
            db,
            upload_id,
            status=UploadStatus.PROCESSED.value,
            processed_date=_now(),
            processed_rows=len(rows),
            total_rows=len(rows),
            error_message=None,
        )
        db.commit()
        logger.info("Successfully processed %d rows for upload %d", len(rows), upload_id)
