"""
Ledgerline — bank statement ingestion and customer ledgers for small businesses.

Import. Suggest. Reconcile.
"""

__version__ = "0.3.0"
__all__ = ["Bookkeeper"]

from ledgerline.bookkeeper import Bookkeeper  # noqa: E402
