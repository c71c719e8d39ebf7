"""Ingest package — CSV reading, column resolution, row normalization, upload processing."""
from ledgerline.ingest.columns import ColumnMapping
from ledgerline.ingest.csv_reader import read_csv_rows
from ledgerline.ingest.normalizer import normalize_revenue_row, normalize_row
from ledgerline.ingest.pipeline import StatementIngestor

__all__ = [
    "ColumnMapping",
    "StatementIngestor",
    "normalize_revenue_row",
    "normalize_row",
    "read_csv_rows",
]
