"""
Statement balance check — do the printed balances on a bank statement chain?

Each row's printed balance should equal the previous printed balance plus
the row's credit minus its debit. Rows printed without a balance (zero)
restart the chain. The check is advisory: the printed balance is stored as
given and never compared against customer ledgers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from ledgerline.models.records import ZERO, BalanceBreak, to_money

logger = logging.getLogger("ledgerline.analyzers.balance_check")


def find_balance_breaks(transactions: Iterable[Any]) -> list[BalanceBreak]:
    """Walk transactions in statement order and report rows that do not chain."""
    breaks: list[BalanceBreak] = []
    previous: Decimal | None = None

    for txn in transactions:
        printed = to_money(txn.running_balance)
        if printed == ZERO:
            previous = None
            continue

        if previous is not None:
            expected = previous + to_money(txn.credit_amount) - to_money(txn.debit_amount)
            if expected != printed:
                breaks.append(
                    BalanceBreak(
                        transaction_id=txn.id,
                        transaction_date=txn.transaction_date,
                        description=txn.description,
                        expected_balance=expected,
                        printed_balance=printed,
                    )
                )
        previous = printed

    return breaks


def log_balance_breaks(upload_id: int, breaks: list[BalanceBreak]) -> None:
    for brk in breaks:
        logger.warning(
            "Upload %d: printed balance %s on %s (%s) differs from expected %s by %s",
            upload_id,
            brk.printed_balance,
            brk.transaction_date,
            brk.description,
            brk.expected_balance,
            brk.difference,
        )
