"""Shared fixtures: an in-memory database with one seeded company."""

from types import SimpleNamespace

import pytest

from ledgerline.bookkeeper import Bookkeeper
from ledgerline.config import LedgerlineConfig


@pytest.fixture
def config() -> LedgerlineConfig:
    return LedgerlineConfig(database={"url": "sqlite://"})


@pytest.fixture
def books(config: LedgerlineConfig):
    """A Bookkeeper on a fresh in-memory database."""
    bookkeeper = Bookkeeper(config=config)
    bookkeeper.init_db()
    yield bookkeeper
    bookkeeper.database.dispose()


@pytest.fixture
def seeded(books: Bookkeeper) -> SimpleNamespace:
    """Company "Acme Books" with a bank account, customers, vendors and categories."""
    company = books.add_company("Acme Books")
    account = books.add_bank_account(company.id, "Operating Account", bank_name="First Bank")
    customers = {
        name: books.add_customer(company.id, name).id
        for name in ("Acme Corp", "Globex")
    }
    vendors = {
        name: books.add_vendor(company.id, name).id
        for name in ("Acme", "Staples")
    }
    categories = {
        name: books.add_category(company.id, name).id
        for name in ("Office Supplies", "Rent", "Utilities")
    }
    return SimpleNamespace(
        company_id=company.id,
        account_id=account.id,
        customers=customers,
        vendors=vendors,
        categories=categories,
    )


@pytest.fixture
def bank_rows() -> list[dict[str, str]]:
    return [
        {"Date": "2024-03-01", "Description": "Staples - printer paper", "Amount": "-45.00", "Balance": "955.00"},
        {"Date": "2024-03-02", "Description": "Payment from Globex", "Amount": "300.00", "Balance": "1255.00"},
        {"Date": "2024-03-03", "Description": "Monthly lease", "Amount": "-800.00", "Balance": "455.00"},
    ]
