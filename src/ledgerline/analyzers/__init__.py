"""Analyzers package — categorization suggestions, customer ledgers, balance checks."""
from ledgerline.analyzers.balance_check import find_balance_breaks
from ledgerline.analyzers.ledger import CustomerLedger, fold_running_balances
from ledgerline.analyzers.suggester import CategorizationSuggester

__all__ = [
    "CategorizationSuggester",
    "CustomerLedger",
    "find_balance_breaks",
    "fold_running_balances",
]
