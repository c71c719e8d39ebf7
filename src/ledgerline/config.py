"""
Ledgerline configuration management.

Supports loading from YAML files, environment variables, and keyword overrides.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

# Ordered aliases per logical field. Matching is done on normalized header
# names (lowercase, alphanumerics only), exact alias first, then containment.
DEFAULT_BANK_COLUMNS: dict[str, list[str]] = {
    "date": ["date", "transactiondate", "valuedate", "posteddate", "postingdate"],
    "description": ["description", "particulars", "details", "narrative", "memo", "reference"],
    "debit": ["debit", "withdrawal", "moneyout"],
    "credit": ["credit", "deposit", "moneyin"],
    "amount": ["amount", "value", "netamount"],
    "balance": ["balance", "runningbalance", "closingbalance"],
}

DEFAULT_REVENUE_COLUMNS: dict[str, list[str]] = {
    "date": ["date", "transactiondate", "valuedate"],
    "customer_name": ["customername", "customer", "name"],
    "revenue": ["revenue", "income", "sales"],
    "cost": ["cost", "costs", "expense", "expenses"],
}


class KeywordFamily(BaseModel):
    """Keywords that point at any category whose name contains ``family``."""

    family: str
    keywords: list[str] = Field(default_factory=list)


DEFAULT_KEYWORD_FAMILIES: list[KeywordFamily] = [
    KeywordFamily(family="rent", keywords=["rent", "lease", "property"]),
    KeywordFamily(family="utilities", keywords=["electric", "gas", "water", "internet", "phone"]),
    KeywordFamily(family="travel", keywords=["hotel", "flight", "uber", "taxi", "fuel", "gas"]),
    KeywordFamily(family="office", keywords=["office", "supplies", "equipment", "furniture"]),
    KeywordFamily(
        family="marketing",
        keywords=["advertising", "marketing", "promotion", "social media"],
    ),
    KeywordFamily(family="insurance", keywords=["insurance", "premium", "coverage"]),
    KeywordFamily(family="legal", keywords=["legal", "attorney", "lawyer", "court"]),
    KeywordFamily(family="accounting", keywords=["accounting", "bookkeeping", "tax", "cpa"]),
]


class DatabaseConfig(BaseModel):
    """Relational store settings (any SQLAlchemy URL)."""

    url: str = Field(default="sqlite:///./ledgerline.db", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Log every SQL statement")


class IngestConfig(BaseModel):
    """Statement upload processing settings."""

    bank_columns: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_BANK_COLUMNS.items()}
    )
    revenue_columns: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_REVENUE_COLUMNS.items()}
    )
    default_payment_terms: str = Field(
        default="Net 30",
        description="Payment terms for customers created while importing revenue",
    )
    warn_on_balance_breaks: bool = Field(
        default=True,
        description="Log a warning when printed statement balances do not chain",
    )


class SuggestionConfig(BaseModel):
    """Categorization suggestion settings."""

    limit: int = Field(default=5, ge=1, description="Maximum candidates per kind")
    keyword_families: list[KeywordFamily] = Field(
        default_factory=lambda: [f.model_copy(deep=True) for f in DEFAULT_KEYWORD_FAMILIES]
    )


class LedgerConfig(BaseModel):
    """Customer ledger settings."""

    fold_revenue_lines: bool = Field(
        default=False,
        description=(
            "Fold imported revenue lines onto the customer's latest running balance "
            "instead of storing the line's netting balance"
        ),
    )


class LedgerlineConfig(BaseModel):
    """Root configuration for Ledgerline."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    suggestions: SuggestionConfig = Field(default_factory=SuggestionConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)

    log_level: str = Field(default="INFO")

    @classmethod
    def load(cls, config_path: str | None = None, **overrides: Any) -> LedgerlineConfig:
        """Load configuration from file, env vars, and overrides.

        Priority: overrides > env vars > config file > defaults.
        """
        data: dict[str, Any] = {}

        # 1. Load from YAML file if provided
        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    data = yaml.safe_load(f) or {}

        # 2. Override from environment variables
        env_url = os.environ.get("LEDGERLINE_DATABASE_URL")
        env_level = os.environ.get("LEDGERLINE_LOG_LEVEL")

        if env_url:
            database = data.get("database", {})
            database["url"] = env_url
            data["database"] = database

        if env_level:
            data["log_level"] = env_level.upper()

        # 3. Apply keyword overrides
        data.update(overrides)

        return cls.model_validate(data)
