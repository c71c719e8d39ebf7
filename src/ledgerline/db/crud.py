# ledgerline/db/crud.py
#
# Helpers add and flush so new rows get their ids; committing is left to the
# caller, which owns the transaction boundary.

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

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


def _add(db: Session, obj: Any) -> Any:
    db.add(obj)
    db.flush()
    return obj


def _apply(obj: Any, values: dict[str, Any]) -> Any:
    for key, value in values.items():
        if not hasattr(obj, key):
            raise AttributeError(f"{type(obj).__name__} has no field '{key}'")
        setattr(obj, key, value)
    return obj


# Companies and parties

def create_company(db: Session, name: str, default_currency: str = "USD") -> Company:
    return _add(db, Company(name=name, default_currency=default_currency))


def get_company(db: Session, company_id: int) -> Company | None:
    return db.get(Company, company_id)


def create_customer(
    db: Session,
    company_id: int,
    name: str,
    opening_balance: Decimal | int | str = Decimal("0.00"),
    payment_terms: str = "Net 30",
    email: str | None = None,
    opening_balance_date: date | None = None,
) -> Customer:
    return _add(
        db,
        Customer(
            company_id=company_id,
            name=name,
            opening_balance=Decimal(str(opening_balance)),
            payment_terms=payment_terms,
            email=email,
            opening_balance_date=opening_balance_date,
        ),
    )


def get_customer(db: Session, customer_id: int) -> Customer | None:
    return db.get(Customer, customer_id)


def get_customer_for_update(db: Session, customer_id: int) -> Customer | None:
    """Load a customer holding a row lock until the current transaction ends."""
    return db.scalar(
        select(Customer)
        .where(Customer.id == customer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def get_customers(db: Session, company_id: int) -> list[Customer]:
    return list(
        db.scalars(
            select(Customer).where(Customer.company_id == company_id).order_by(Customer.name, Customer.id)
        )
    )


def find_customer_by_name(db: Session, company_id: int, name: str) -> Customer | None:
    return db.scalar(
        select(Customer)
        .where(Customer.company_id == company_id, Customer.name == name)
        .order_by(Customer.id)
        .limit(1)
    )


def delete_customer(db: Session, customer_id: int) -> bool:
    customer = db.get(Customer, customer_id)
    if customer is None:
        return False
    db.delete(customer)
    db.flush()
    return True


def create_vendor(db: Session, company_id: int, name: str, email: str | None = None) -> Vendor:
    return _add(db, Vendor(company_id=company_id, name=name, email=email))


def get_vendors(db: Session, company_id: int) -> list[Vendor]:
    return list(
        db.scalars(select(Vendor).where(Vendor.company_id == company_id).order_by(Vendor.name, Vendor.id))
    )


def create_bank_account(
    db: Session,
    company_id: int,
    account_name: str,
    bank_name: str | None = None,
    account_number: str | None = None,
) -> BankAccount:
    return _add(
        db,
        BankAccount(
            company_id=company_id,
            account_name=account_name,
            bank_name=bank_name,
            account_number=account_number,
        ),
    )


def get_bank_account(db: Session, bank_account_id: int) -> BankAccount | None:
    return db.get(BankAccount, bank_account_id)


# Expense categories

def create_expense_category(
    db: Session, company_id: int, name: str, description: str = ""
) -> ExpenseCategory:
    return _add(db, ExpenseCategory(company_id=company_id, name=name, description=description))


def get_expense_categories(db: Session, company_id: int) -> list[ExpenseCategory]:
    """Active categories only, in name order."""
    return list(
        db.scalars(
            select(ExpenseCategory)
            .where(ExpenseCategory.company_id == company_id, ExpenseCategory.is_active.is_(True))
            .order_by(ExpenseCategory.name, ExpenseCategory.id)
        )
    )


def deactivate_expense_category(db: Session, category_id: int) -> None:
    category = db.get(ExpenseCategory, category_id)
    if category is not None:
        category.is_active = False
        db.flush()


def create_expense_transaction(db: Session, **values: Any) -> ExpenseTransaction:
    return _add(db, ExpenseTransaction(**values))


def get_expense_transactions(db: Session, company_id: int) -> list[ExpenseTransaction]:
    return list(
        db.scalars(
            select(ExpenseTransaction)
            .where(ExpenseTransaction.company_id == company_id)
            .order_by(ExpenseTransaction.transaction_date.desc(), ExpenseTransaction.id.desc())
        )
    )


# Bank statement uploads and transactions

def create_bank_statement_upload(db: Session, **values: Any) -> BankStatementUpload:
    return _add(db, BankStatementUpload(**values))


def get_bank_statement_upload(db: Session, upload_id: int) -> BankStatementUpload | None:
    return db.get(BankStatementUpload, upload_id)


def get_bank_statement_uploads(db: Session, company_id: int) -> list[BankStatementUpload]:
    return list(
        db.scalars(
            select(BankStatementUpload)
            .where(BankStatementUpload.company_id == company_id)
            .order_by(BankStatementUpload.upload_date.desc(), BankStatementUpload.id.desc())
        )
    )


def update_bank_statement_upload(db: Session, upload_id: int, **values: Any) -> BankStatementUpload:
    upload = db.get(BankStatementUpload, upload_id)
    if upload is None:
        raise NotFoundError("Bank statement upload", upload_id)
    _apply(upload, values)
    db.flush()
    return upload


def create_bank_statement_transaction(db: Session, **values: Any) -> BankStatementTransaction:
    return _add(db, BankStatementTransaction(**values))


def get_bank_statement_transaction(db: Session, transaction_id: int) -> BankStatementTransaction | None:
    return db.get(BankStatementTransaction, transaction_id)


def get_bank_statement_transactions(
    db: Session, company_id: int, upload_id: int | None = None
) -> list[BankStatementTransaction]:
    """Newest transaction date first."""
    q = select(BankStatementTransaction).where(BankStatementTransaction.company_id == company_id)
    if upload_id is not None:
        q = q.where(BankStatementTransaction.bank_statement_upload_id == upload_id)
    q = q.order_by(BankStatementTransaction.transaction_date.desc(), BankStatementTransaction.id.desc())
    return list(db.scalars(q))


def get_upload_transactions_in_order(db: Session, upload_id: int) -> list[BankStatementTransaction]:
    """Transactions of one upload in the order their rows were ingested."""
    return list(
        db.scalars(
            select(BankStatementTransaction)
            .where(BankStatementTransaction.bank_statement_upload_id == upload_id)
            .order_by(BankStatementTransaction.id)
        )
    )


# Revenue uploads

def create_revenue_upload(db: Session, **values: Any) -> RevenueUpload:
    return _add(db, RevenueUpload(**values))


def get_revenue_upload(db: Session, upload_id: int) -> RevenueUpload | None:
    return db.get(RevenueUpload, upload_id)


def get_revenue_uploads(db: Session, company_id: int) -> list[RevenueUpload]:
    return list(
        db.scalars(
            select(RevenueUpload)
            .where(RevenueUpload.company_id == company_id)
            .order_by(RevenueUpload.upload_date.desc(), RevenueUpload.id.desc())
        )
    )


def update_revenue_upload(db: Session, upload_id: int, **values: Any) -> RevenueUpload:
    upload = db.get(RevenueUpload, upload_id)
    if upload is None:
        raise NotFoundError("Revenue upload", upload_id)
    _apply(upload, values)
    db.flush()
    return upload


# Customer statement lines

def create_customer_statement_line(db: Session, **values: Any) -> CustomerStatementLine:
    return _add(db, CustomerStatementLine(**values))


def get_customer_statement_lines(
    db: Session,
    company_id: int,
    customer_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[CustomerStatementLine]:
    """Lines ordered by (line_date, id), optionally within an inclusive date range."""
    q = select(CustomerStatementLine).where(
        CustomerStatementLine.company_id == company_id,
        CustomerStatementLine.customer_id == customer_id,
    )
    if start_date is not None:
        q = q.where(CustomerStatementLine.line_date >= start_date)
    if end_date is not None:
        q = q.where(CustomerStatementLine.line_date <= end_date)
    q = q.order_by(CustomerStatementLine.line_date, CustomerStatementLine.id)
    return list(db.scalars(q))


def get_latest_statement_line(db: Session, customer_id: int) -> CustomerStatementLine | None:
    """Most recent line by (line_date desc, id desc)."""
    return db.scalar(
        select(CustomerStatementLine)
        .where(CustomerStatementLine.customer_id == customer_id)
        .order_by(CustomerStatementLine.line_date.desc(), CustomerStatementLine.id.desc())
        .limit(1)
    )
