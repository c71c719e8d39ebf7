"""
Customer Ledger — per-customer statement lines and running balances.

Every line moves the customer's balance by
``revenue - cost + debit - credit``; the ledger starts at the customer's
opening balance. Two ways of arriving at a running balance exist:

- **Append** (categorization, optional for revenue import): the new line's
  balance is the latest line's stored balance (by ``line_date`` then ``id``)
  plus the line's impact. The read and the insert run in one database
  transaction holding a lock on the customer row. Lines categorized out of
  date order are therefore stamped relative to the newest line, not their
  chronological predecessor.
- **Fold** (statement summary, drift check, rebuild): walk every line in
  ``(line_date, id)`` order from the opening balance.

Only :meth:`CustomerLedger.rebuild_running_balances` writes folded values back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ledgerline.db import crud
from ledgerline.exceptions import NotFoundError, ValidationError
from ledgerline.models.records import (
    ZERO,
    Categorization,
    LineType,
    StatementLineView,
    StatementSummary,
    to_money,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from ledgerline.db.database import Database
    from ledgerline.db.tables import BankStatementTransaction, Customer, CustomerStatementLine

logger = logging.getLogger("ledgerline.analyzers.ledger")


def line_impact(line: Any) -> Decimal:
    """Balance change of one stored statement line."""
    return (
        to_money(line.revenue)
        - to_money(line.cost)
        + to_money(line.debit_amount)
        - to_money(line.credit_amount)
    )


def fold_running_balances(
    opening_balance: Decimal, lines: Iterable[CustomerStatementLine]
) -> list[StatementLineView]:
    """Recompute running balances from ``opening_balance`` over lines already in date order."""
    running = to_money(opening_balance)
    views: list[StatementLineView] = []
    for line in lines:
        running += line_impact(line)
        views.append(
            StatementLineView(
                id=line.id,
                line_date=line.line_date,
                line_type=LineType(line.line_type),
                description=line.description,
                revenue=to_money(line.revenue),
                cost=to_money(line.cost),
                netting_balance=to_money(line.netting_balance),
                debit=to_money(line.debit_amount),
                credit=to_money(line.credit_amount),
                running_balance=running,
                stored_running_balance=to_money(line.running_balance),
            )
        )
    return views


def current_running_balance(db: Session, customer: Customer) -> Decimal:
    """Stored balance of the customer's latest line, or the opening balance."""
    latest = crud.get_latest_statement_line(db, customer.id)
    if latest is None:
        return to_money(customer.opening_balance)
    return to_money(latest.running_balance)


def append_statement_line(
    db: Session,
    customer: Customer,
    *,
    line_date: date,
    line_type: LineType,
    description: str,
    revenue: Decimal = ZERO,
    cost: Decimal = ZERO,
    debit: Decimal = ZERO,
    credit: Decimal = ZERO,
    **links: Any,
) -> CustomerStatementLine:
    """Insert a line stamped from the customer's current balance.

    The caller must hold the customer row lock and commit.
    """
    impact = revenue - cost + debit - credit
    running = current_running_balance(db, customer) + impact
    return crud.create_customer_statement_line(
        db,
        company_id=customer.company_id,
        customer_id=customer.id,
        line_date=line_date,
        line_type=line_type.value,
        description=description,
        revenue=to_money(revenue),
        cost=to_money(cost),
        netting_balance=to_money(revenue - cost),
        debit_amount=to_money(debit),
        credit_amount=to_money(credit),
        running_balance=running,
        **links,
    )


class CustomerLedger:
    """
    Maintain customer statement ledgers.

    Example usage:
        ledger = CustomerLedger(database)
        ledger.categorize(42, Categorization(customer_id=7))
        summary = ledger.get_customer_statement_summary(company_id=1, customer_id=7)
        print(summary.closing_balance)
    """

    def __init__(self, database: Database):
        self.database = database

    def categorize(
        self,
        transaction_id: int,
        categorization: Categorization | dict[str, Any],
    ) -> BankStatementTransaction:
        """
        Apply a user's categorization to a bank transaction.

        Fields given in ``categorization`` are written onto the transaction.
        When a customer is assigned, a ``BANK_TRANSACTION`` line is appended
        to that customer's ledger with impact ``debit - credit``.

        Raises:
            NotFoundError: Unknown transaction or customer.
            ValidationError: The customer belongs to another company.
        """
        if not isinstance(categorization, Categorization):
            categorization = Categorization.model_validate(categorization)
        values = categorization.model_dump(exclude_unset=True)

        with self.database.session() as db:
            txn = crud.get_bank_statement_transaction(db, transaction_id)
            if txn is None:
                raise NotFoundError("Bank statement transaction", transaction_id)

            customer = None
            if categorization.customer_id is not None:
                customer = crud.get_customer_for_update(db, categorization.customer_id)
                if customer is None:
                    raise NotFoundError("Customer", categorization.customer_id)
                if customer.company_id != txn.company_id:
                    raise ValidationError(
                        f"Customer {customer.id} does not belong to company {txn.company_id}"
                    )

            for key, value in values.items():
                setattr(txn, key, value)

            if customer is not None:
                line = append_statement_line(
                    db,
                    customer,
                    line_date=txn.transaction_date,
                    line_type=LineType.BANK_TRANSACTION,
                    description=f"Bank Transaction: {txn.description}",
                    debit=to_money(txn.debit_amount),
                    credit=to_money(txn.credit_amount),
                    bank_statement_transaction_id=txn.id,
                    bank_statement_upload_id=txn.bank_statement_upload_id,
                )
                logger.info(
                    "Customer %d ledger: line %d on %s, running balance %s",
                    customer.id,
                    line.id,
                    line.line_date,
                    line.running_balance,
                )

            db.commit()
            db.refresh(txn)
            return txn

    def list_statement_lines(
        self,
        company_id: int,
        customer_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[CustomerStatementLine]:
        """Stored lines in ``(line_date, id)`` order."""
        with self.database.session() as db:
            return crud.get_customer_statement_lines(db, company_id, customer_id, start_date, end_date)

    def get_customer_statement_summary(
        self,
        company_id: int,
        customer_id: int,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> StatementSummary:
        """
        Fold the customer's ledger from the opening balance.

        With ``start_date``, lines before it are folded into the period's
        opening balance. Returned running balances are recomputed; nothing
        is written back.
        """
        with self.database.session() as db:
            customer = self._get_customer(db, company_id, customer_id)
            opening = to_money(customer.opening_balance)

            if start_date is not None:
                earlier = crud.get_customer_statement_lines(
                    db, company_id, customer_id, end_date=start_date - timedelta(days=1)
                )
                opening += sum((line_impact(line) for line in earlier), ZERO)

            lines = crud.get_customer_statement_lines(db, company_id, customer_id, start_date, end_date)
            views = fold_running_balances(opening, lines)

            return StatementSummary(
                customer_id=customer.id,
                customer_name=customer.name,
                start_date=start_date,
                end_date=end_date,
                opening_balance=opening,
                total_revenue=sum((v.revenue for v in views), ZERO),
                total_cost=sum((v.cost for v in views), ZERO),
                total_debits=sum((v.debit for v in views), ZERO),
                total_credits=sum((v.credit for v in views), ZERO),
                closing_balance=views[-1].running_balance if views else opening,
                lines=views,
            )

    def find_ledger_drift(self, company_id: int, customer_id: int) -> list[StatementLineView]:
        """Lines whose stored running balance differs from the folded one."""
        summary = self.get_customer_statement_summary(company_id, customer_id)
        return [view for view in summary.lines if view.has_drift]

    def rebuild_running_balances(self, company_id: int, customer_id: int) -> int:
        """Persist folded running balances for every line; returns lines changed."""
        with self.database.session() as db:
            customer = self._get_customer(db, company_id, customer_id, lock=True)
            lines = crud.get_customer_statement_lines(db, company_id, customer_id)
            changed = 0
            for line, view in zip(lines, fold_running_balances(customer.opening_balance, lines)):
                if to_money(line.running_balance) != view.running_balance:
                    line.running_balance = view.running_balance
                    changed += 1
            db.commit()

        if changed:
            logger.warning("Customer %d ledger: restamped %d running balances", customer_id, changed)
        return changed

    def _get_customer(
        self, db: Session, company_id: int, customer_id: int, lock: bool = False
    ) -> Customer:
        customer = crud.get_customer_for_update(db, customer_id) if lock else crud.get_customer(db, customer_id)
        if customer is None or customer.company_id != company_id:
            raise NotFoundError("Customer", customer_id)
        return customer
