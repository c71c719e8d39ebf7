"""
Ledgerline CLI — command-line interface.

Usage:
    ledgerline init-db --config ledgerline.yaml
    ledgerline seed-company "Acme Books" --customer "Acme Corp" --category "Office Supplies"
    ledgerline import-bank march.csv --company 1 --account 1
    ledgerline categorize 42 --customer 7
    ledgerline statement 1 7 --start 2024-01-01
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ledgerline import __version__
from ledgerline.exceptions import LedgerlineError

app = typer.Typer(
    name="ledgerline",
    help="Ledgerline — bank statement ingestion and customer ledgers",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

CONFIG_OPTION = typer.Option(
    "ledgerline.yaml",
    "--config",
    "-c",
    help="Path to config file (missing file means defaults)",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold]Ledgerline[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Ledgerline — Import. Suggest. Reconcile."""


def _open(config: str):  # noqa: ANN202
    """Load config, set up logging and return a Bookkeeper."""
    from ledgerline.bookkeeper import Bookkeeper
    from ledgerline.config import LedgerlineConfig

    settings = LedgerlineConfig.load(config)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return Bookkeeper(config=settings)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


def _parse_day(value: str | None, option: str) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}", param_hint=option)


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


@app.command("init-db")
def init_db(config: str = CONFIG_OPTION) -> None:
    """Create the database tables."""
    books = _open(config)
    books.init_db()
    console.print(f"[green]✓[/green] Database ready at [bold]{books.config.database.url}[/bold]")


@app.command("seed-company")
def seed_company(
    name: str = typer.Argument(..., help="Company name"),
    customer: Optional[List[str]] = typer.Option(None, "--customer", help="Customer name (repeatable)"),
    vendor: Optional[List[str]] = typer.Option(None, "--vendor", help="Vendor name (repeatable)"),
    category: Optional[List[str]] = typer.Option(None, "--category", help="Expense category (repeatable)"),
    account: str = typer.Option("Operating Account", "--account", help="Bank account name"),
    config: str = CONFIG_OPTION,
) -> None:
    """Create a company with a bank account, customers, vendors and categories."""
    books = _open(config)
    books.init_db()
    try:
        company = books.add_company(name)
        bank_account = books.add_bank_account(company.id, account)
        for customer_name in customer or []:
            books.add_customer(company.id, customer_name)
        for vendor_name in vendor or []:
            books.add_vendor(company.id, vendor_name)
        for category_name in category or []:
            books.add_category(company.id, category_name)
    except LedgerlineError as e:
        _fail(e)

    table = Table(title=f"Company {company.name}")
    table.add_column("Record", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Company ID", str(company.id))
    table.add_row("Bank Account ID", str(bank_account.id))
    table.add_row("Customers", str(len(customer or [])))
    table.add_row("Vendors", str(len(vendor or [])))
    table.add_row("Categories", str(len(category or [])))
    console.print(table)


@app.command("import-bank")
def import_bank(
    csv: str = typer.Argument(..., help="Path to the bank statement CSV"),
    company: int = typer.Option(..., "--company", help="Company ID"),
    account: int = typer.Option(..., "--account", help="Bank account ID"),
    config: str = CONFIG_OPTION,
) -> None:
    """Import a bank statement CSV and attach suggestions to every row."""
    books = _open(config)
    try:
        with console.status("[bold green]Importing statement...[/bold green]"):
            upload = books.import_bank_csv(company, account, csv)
        transactions = books.bank_transactions(company, upload.id)
    except (LedgerlineError, FileNotFoundError) as e:
        _fail(e)

    _display_upload("Bank Upload", upload)

    if transactions:
        table = Table(title="Transactions")
        table.add_column("ID", justify="right")
        table.add_column("Date")
        table.add_column("Description")
        table.add_column("Debit", justify="right")
        table.add_column("Credit", justify="right")
        table.add_column("Suggested", style="cyan")
        for txn in reversed(transactions):
            suggested = ", ".join(
                f"{kind} #{value}"
                for kind, value in (
                    ("customer", txn.suggested_customer_id),
                    ("vendor", txn.suggested_vendor_id),
                    ("category", txn.suggested_category_id),
                )
                if value is not None
            )
            table.add_row(
                str(txn.id),
                txn.transaction_date.isoformat(),
                txn.description,
                _money(txn.debit_amount),
                _money(txn.credit_amount),
                suggested or "-",
            )
        console.print(table)

    if upload.status == "FAILED":
        raise typer.Exit(1)


@app.command("import-revenue")
def import_revenue(
    csv: str = typer.Argument(..., help="Path to the revenue CSV"),
    company: int = typer.Option(..., "--company", help="Company ID"),
    config: str = CONFIG_OPTION,
) -> None:
    """Import a revenue sheet into customer statement lines."""
    books = _open(config)
    try:
        upload = books.import_revenue_csv(company, csv)
    except (LedgerlineError, FileNotFoundError) as e:
        _fail(e)

    _display_upload("Revenue Upload", upload)
    if upload.status == "FAILED":
        raise typer.Exit(1)


@app.command()
def suggest(
    description: str = typer.Argument(..., help="Transaction description"),
    company: int = typer.Option(..., "--company", help="Company ID"),
    amount: float = typer.Option(0.0, "--amount", help="Transaction amount"),
    config: str = CONFIG_OPTION,
) -> None:
    """Show candidate customers, vendors and categories for a description."""
    books = _open(config)
    result = books.suggest(company, description, amount)

    if result.is_empty:
        console.print("[dim]No suggestions.[/dim]")
        return

    table = Table(title="Suggestions")
    table.add_column("Kind", style="bold")
    table.add_column("ID", justify="right")
    table.add_column("Name")
    for kind, candidates in (
        ("customer", result.customers),
        ("vendor", result.vendors),
        ("category", result.categories),
    ):
        for candidate in candidates:
            table.add_row(kind, str(candidate.id), candidate.name)
    console.print(table)


@app.command()
def categorize(
    transaction_id: int = typer.Argument(..., help="Bank statement transaction ID"),
    customer: Optional[int] = typer.Option(None, "--customer", help="Customer ID"),
    vendor: Optional[int] = typer.Option(None, "--vendor", help="Vendor ID"),
    category: Optional[int] = typer.Option(None, "--category", help="Expense category ID"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-text notes"),
    config: str = CONFIG_OPTION,
) -> None:
    """Assign a customer, vendor and/or category to a bank transaction."""
    books = _open(config)
    values = {
        key: value
        for key, value in (
            ("customer_id", customer),
            ("vendor_id", vendor),
            ("category_id", category),
            ("notes", notes),
        )
        if value is not None
    }
    if not values:
        console.print("[red]Error: Provide at least one of --customer, --vendor, --category, --notes[/red]")
        raise typer.Exit(1)

    try:
        txn = books.categorize_transaction(transaction_id, values)
    except LedgerlineError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Transaction {txn.id} categorized: {txn.description}")
    if customer is not None:
        summary = books.get_customer_statement_summary(txn.company_id, customer)
        console.print(f"  {summary.customer_name} balance: [bold]{_money(summary.closing_balance)}[/bold]")


@app.command()
def statement(
    company: int = typer.Argument(..., help="Company ID"),
    customer: int = typer.Argument(..., help="Customer ID"),
    start: Optional[str] = typer.Option(None, "--start", help="First day (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", help="Last day (YYYY-MM-DD)"),
    config: str = CONFIG_OPTION,
) -> None:
    """Print a customer statement with recomputed running balances."""
    start_date = _parse_day(start, "--start")
    end_date = _parse_day(end, "--end")
    books = _open(config)
    try:
        summary = books.get_customer_statement_summary(company, customer, start_date, end_date)
    except LedgerlineError as e:
        _fail(e)

    console.print(Panel.fit(f"[bold blue]{summary.customer_name}[/bold blue] — Customer Statement"))

    table = Table(show_lines=False)
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Description")
    table.add_column("Impact", justify="right")
    table.add_column("Balance", justify="right", style="bold")
    for line in summary.lines:
        balance = _money(line.running_balance)
        if line.has_drift:
            balance += f" [yellow](stored {_money(line.stored_running_balance)})[/yellow]"
        table.add_row(
            line.line_date.isoformat(),
            line.line_type.value,
            line.description,
            _money(line.impact),
            balance,
        )
    console.print(table)

    totals = Table(title="Totals", show_lines=True)
    totals.add_column("Metric", style="bold")
    totals.add_column("Value", justify="right")
    totals.add_row("Opening Balance", _money(summary.opening_balance))
    totals.add_row("Revenue", _money(summary.total_revenue))
    totals.add_row("Cost", _money(summary.total_cost))
    totals.add_row("Debits", _money(summary.total_debits))
    totals.add_row("Credits", _money(summary.total_credits))
    totals.add_row("Closing Balance", _money(summary.closing_balance))
    console.print(totals)


@app.command("rebuild-ledger")
def rebuild_ledger(
    company: int = typer.Argument(..., help="Company ID"),
    customer: Optional[int] = typer.Option(None, "--customer", help="Only this customer"),
    config: str = CONFIG_OPTION,
) -> None:
    """Restamp stored running balances from a full recompute."""
    books = _open(config)
    try:
        changed = books.rebuild_ledger(company, customer)
    except LedgerlineError as e:
        _fail(e)

    table = Table(title="Ledger Rebuild")
    table.add_column("Customer ID", justify="right")
    table.add_column("Lines Restamped", justify="right")
    for customer_id, count in changed.items():
        table.add_row(str(customer_id), str(count))
    console.print(table)


def _display_upload(title: str, upload) -> None:  # noqa: ANN001
    """Display upload status in the terminal."""
    color = {"PROCESSED": "green", "FAILED": "red"}.get(upload.status, "yellow")
    table = Table(title=title, show_lines=True)
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Upload ID", str(upload.id))
    table.add_row("File", upload.file_name)
    table.add_row("Status", f"[{color}]{upload.status}[/{color}]")
    table.add_row("Rows", f"{upload.processed_rows or 0}/{upload.total_rows or 0}")
    if upload.error_message:
        table.add_row("Error", upload.error_message)
    console.print(table)


if __name__ == "__main__":
    app()
