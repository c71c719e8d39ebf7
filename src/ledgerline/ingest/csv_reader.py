"""
CSV reader — load a statement file into row maps for the ingest pipeline.

Every cell is kept as text (blank cells become ``""``); parsing dates and
amounts is the normalizer's job.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from ledgerline.exceptions import ValidationError

logger = logging.getLogger("ledgerline.ingest.csv")


def read_csv_text(path: str | Path, encoding: str = "utf-8") -> str:
    """Raw file contents, kept on the upload for audit."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    return path.read_text(encoding=encoding)


def read_csv_rows(
    source: str | Path,
    encoding: str = "utf-8",
    delimiter: str = ",",
) -> list[dict[str, Any]]:
    """Parse a CSV file path or raw CSV text into a list of row dicts.

    Raises:
        FileNotFoundError: ``source`` is a ``Path`` that does not exist.
        ValidationError: The input has no header row.
    """
    options: dict[str, Any] = {
        "dtype": str,
        "keep_default_na": False,
        "skipinitialspace": True,
        "delimiter": delimiter,
    }

    if isinstance(source, Path):
        if not source.exists():
            raise FileNotFoundError(f"CSV file not found: {source}")
        handle: Any = source
        options["encoding"] = encoding
        label = source.name
    else:
        handle = io.StringIO(source)
        label = "<text>"

    try:
        df = pd.read_csv(handle, **options)
    except pd.errors.EmptyDataError as e:
        raise ValidationError("CSV file is empty") from e

    df.columns = [str(c).strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].str.strip()

    rows = df.to_dict(orient="records")
    logger.info("Read %d rows from %s", len(rows), label)
    return rows
