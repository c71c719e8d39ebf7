"""Models package — statement, suggestion and ledger records."""
from ledgerline.models.records import (
    BalanceBreak,
    Candidate,
    Categorization,
    FileFormat,
    LineType,
    NormalizedRow,
    RevenueRow,
    StatementLineView,
    StatementSummary,
    Suggestions,
    UploadStatus,
    to_money,
)

__all__ = [
    "BalanceBreak",
    "Candidate",
    "Categorization",
    "FileFormat",
    "LineType",
    "NormalizedRow",
    "RevenueRow",
    "StatementLineView",
    "StatementSummary",
    "Suggestions",
    "UploadStatus",
    "to_money",
]
