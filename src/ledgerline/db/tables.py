from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgerline.db.database import Base

Money = Numeric(12, 2)


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_currency: Mapped[str] = mapped_column(String(3), default="USD")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    customers: Mapped[list["Customer"]] = relationship("Customer", back_populates="company")
    vendors: Mapped[list["Vendor"]] = relationship("Vendor", back_populates="company")
    bank_accounts: Mapped[list["BankAccount"]] = relationship("BankAccount", back_populates="company")


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_terms: Mapped[str] = mapped_column(String(50), default="Net 30")
    opening_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    opening_balance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="customers")
    statement_lines: Mapped[list["CustomerStatementLine"]] = relationship(
        "CustomerStatementLine",
        back_populates="customer",
        cascade="all, delete-orphan",
    )


class Vendor(Base):
    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    opening_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="vendors")


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bank_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_type: Mapped[str] = mapped_column(String(20), default="Checking")

    # Relationships
    company: Mapped["Company"] = relationship("Company", back_populates="bank_accounts")


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ExpenseTransaction(Base):
    __tablename__ = "expense_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    expense_category_id: Mapped[int] = mapped_column(ForeignKey("expense_categories.id"), nullable=False)
    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("vendors.id"), nullable=True)
    bank_statement_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("bank_statement_transactions.id"), nullable=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(20), default="EXPENSE")
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    amount_before_tax: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    sales_tax: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class BankStatementUpload(Base):
    __tablename__ = "bank_statement_uploads"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    bank_account_id: Mapped[int] = mapped_column(ForeignKey("bank_accounts.id"), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_format: Mapped[str] = mapped_column(String(10), default="CSV")  # CSV/OFX/QIF
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    processed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(10), default="PENDING")  # PENDING/PROCESSED/FAILED
    total_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processed_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    csv_data: Mapped[str | None] = mapped_column(Text, nullable=True)  # raw text, kept for audit

    # Relationships
    transactions: Mapped[list["BankStatementTransaction"]] = relationship(
        "BankStatementTransaction", back_populates="upload"
    )


class BankStatementTransaction(Base):
    __tablename__ = "bank_statement_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    bank_account_id: Mapped[int] = mapped_column(ForeignKey("bank_accounts.id"), nullable=False)
    bank_statement_upload_id: Mapped[int] = mapped_column(
        ForeignKey("bank_statement_uploads.id"), nullable=False, index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    debit_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    credit_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    running_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))  # as printed

    category_id: Mapped[int | None] = mapped_column(ForeignKey("expense_categories.id"), nullable=True)
    customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    vendor_id: Mapped[int | None] = mapped_column(ForeignKey("vendors.id"), nullable=True)
    suggested_category_id: Mapped[int | None] = mapped_column(
        ForeignKey("expense_categories.id"), nullable=True
    )
    suggested_customer_id: Mapped[int | None] = mapped_column(ForeignKey("customers.id"), nullable=True)
    suggested_vendor_id: Mapped[int | None] = mapped_column(ForeignKey("vendors.id"), nullable=True)

    is_reconciled: Mapped[bool] = mapped_column(Boolean, default=False)
    reconciled_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    upload: Mapped["BankStatementUpload"] = relationship(
        "BankStatementUpload", back_populates="transactions"
    )


class RevenueUpload(Base):
    __tablename__ = "revenue_uploads"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    processed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(10), default="PENDING")
    total_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    processed_rows: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)


class CustomerStatementLine(Base):
    __tablename__ = "customer_statement_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_date: Mapped[date] = mapped_column(Date, nullable=False)
    line_type: Mapped[str] = mapped_column(String(20), nullable=False)  # REVENUE/BANK_TRANSACTION/...
    description: Mapped[str] = mapped_column(Text, nullable=False)
    revenue: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    netting_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    debit_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    credit_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    running_balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00"))
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    revenue_upload_id: Mapped[int | None] = mapped_column(ForeignKey("revenue_uploads.id"), nullable=True)
    bank_statement_upload_id: Mapped[int | None] = mapped_column(
        ForeignKey("bank_statement_uploads.id"), nullable=True
    )
    bank_statement_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("bank_statement_transactions.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    customer: Mapped["Customer"] = relationship("Customer", back_populates="statement_lines")
