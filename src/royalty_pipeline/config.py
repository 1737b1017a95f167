"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the MongoDB connection details and pipeline limits from the environment
(including a check that `TRANSACTION_LIMIT` is a positive integer).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_TRANSACTION_LIMIT = 1000

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI.
        mongo_db: Target MongoDB database name.
        mongo_tls: Whether to connect with TLS using the certifi CA bundle.
        statement_dir: Local directory where uploaded statement CSVs live.
        transaction_limit: Maximum transactions fetched for one summary.
    """
    mongo_uri: str
    mongo_db: str
    mongo_tls: bool
    statement_dir: Path
    transaction_limit: int


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `TRANSACTION_LIMIT` is not a positive integer.
    """
    mongo_uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db = os.getenv("MONGO_DB", "royalties")
    mongo_tls = os.getenv("MONGO_TLS", "false").strip().lower() in _TRUTHY
    statement_dir = Path(os.getenv("STATEMENT_DIR", "data/statements"))
    raw_limit = os.getenv("TRANSACTION_LIMIT", str(DEFAULT_TRANSACTION_LIMIT)).strip()

    try:
        transaction_limit = int(raw_limit)
    except ValueError:
        transaction_limit = 0

    if transaction_limit <= 0:
        raise RuntimeError(
            f"TRANSACTION_LIMIT must be a positive integer, got {raw_limit!r}. "
            "Set it in .env (example: 'TRANSACTION_LIMIT=1000')."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        mongo_tls=mongo_tls,
        statement_dir=statement_dir,
        transaction_limit=transaction_limit,
    )
