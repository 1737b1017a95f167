"""Parsing helpers for royalty statement CSV files.

Distributors export statements with differing headers for the same field
(e.g. `Service`, `Platform`, `DSP` or `Store` for the platform name).
`row_to_transaction` maps one row to a transaction document using the first
non-empty value among the known aliases, and `parse_statement` applies it to
a whole statement while collecting per-row errors.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from royalty_pipeline.clean.validate import validate_transaction

log = logging.getLogger(__name__)

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "title": (
        "Title", "Track Name", "Release Title", "Release", "Song Title",
        "Child Asset Title/Name", "Parent Asset Title/Name",
    ),
    "artist": ("Artist", "Artist Name", "Primary Artist"),
    "isrc": ("ISRC", "isrc", "International Standard Recording Code", "Child Asset Identifier"),
    "upc": ("UPC", "upc", "Universal Product Code", "Parent Asset Identifier"),
    "serviceType": ("Service", "Platform", "DSP", "Store", "Partner"),
    "territory": ("Country", "Territory", "Region"),
    "transactionType": ("Type", "Transaction Type", "Channel"),
    "quantity": ("Quantity", "Streams", "Units", "Plays", "Count"),
    "currency": ("Currency",),
    "revenue": ("Gross Revenue in USD", "Revenue", "Earnings", "Amount"),
    "revenueUSD": (
        "Amount Due in USD", "Net Revenue in USD", "Revenue (USD)",
        "Earnings (USD)", "USD Amount", "Amount",
    ),
    "label": ("Label", "Label Name"),
    "transactionDate": ("Transaction Month", "Date", "Transaction Date"),
    "assetType": ("Asset Type", "Content Type"),
    "notes": ("Notes",),
}


def read_statement(path: Path) -> pd.DataFrame:
    """Read a statement CSV with every column as text.

    Empty cells stay empty strings (no NaN conversion) so header aliases can
    fall through to the next candidate.
    """
    return pd.read_csv(
        path,
        dtype=str,
        keep_default_na=False,
        skipinitialspace=True,
        encoding="utf-8-sig",
    )


def _first(row: dict[str, Any], field: str, default: str = "") -> str:
    for header in FIELD_ALIASES[field]:
        value = row.get(header)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return default


def _parse_float(text: str) -> float:
    """Parse a statement number; malformed or non-finite values count as 0."""
    try:
        number = float(text.replace(",", "").replace("$", ""))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _parse_int(text: str) -> int:
    return int(_parse_float(text))


def _parse_date(text: str, now: datetime) -> datetime:
    """Parse a statement date; rows without one are dated at ingest time."""
    if not text:
        return now
    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        raise ValueError(f"invalid transaction date {text!r}")
    return ts.to_pydatetime()


def transaction_id(upload_id: str, row_number: int) -> str:
    return f"TRANS-{upload_id}-{row_number}"


def row_to_transaction(
    row: dict[str, Any],
    upload_id: str,
    row_number: int,
    now: datetime,
) -> dict[str, Any]:
    """Map one statement row to a (not yet validated) transaction document.

    Args:
        row: CSV row as a header -> text dict.
        upload_id: Id of the `csvuploads` record the row belongs to.
        row_number: 1-based position of the row in the statement.
        now: Timestamp used when the row carries no date.

    Returns:
        Dict with the camelCase transaction fields plus `rawData`.

    Raises:
        ValueError: if the row's date cannot be parsed.
    """
    return {
        "csvUploadId": upload_id,
        "rowNumber": row_number,
        "transactionId": transaction_id(upload_id, row_number),
        "title": _first(row, "title"),
        "artist": _first(row, "artist"),
        "isrc": _first(row, "isrc"),
        "upc": _first(row, "upc"),
        "serviceType": _first(row, "serviceType"),
        "territory": _first(row, "territory"),
        "transactionType": _first(row, "transactionType", "stream"),
        "assetType": _first(row, "assetType"),
        "quantity": _parse_int(_first(row, "quantity", "0")),
        "currency": _first(row, "currency", "USD"),
        "revenue": _parse_float(_first(row, "revenue", "0")),
        "revenueUSD": _parse_float(_first(row, "revenueUSD", "0")),
        "label": _first(row, "label"),
        "transactionDate": _parse_date(_first(row, "transactionDate"), now),
        "notes": _first(row, "notes"),
        "rawData": dict(row),
        "createdAt": now,
    }


def parse_statement(
    pdf: pd.DataFrame,
    upload_id: str,
    now: datetime | None = None,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Convert a statement DataFrame into validated transaction documents.

    A bad row is reported and skipped; it never stops the rest of the file.

    Args:
        pdf: Statement rows as read by `read_statement`.
        upload_id: Id of the owning upload.
        now: Fallback date for undated rows (defaults to the current UTC time).

    Returns:
        A tuple of (documents, error_messages).
    """
    now = now or datetime.now(timezone.utc)
    docs: list[dict[str, Any]] = []
    errors: list[str] = []

    for row_number, row in enumerate(pdf.to_dict(orient="records"), start=1):
        if row_number == 1:
            log.debug("Statement first row structure: %s", row)
        try:
            doc = row_to_transaction(row, upload_id, row_number, now)
            docs.append(validate_transaction(doc))
        except ValueError as e:
            errors.append(f"Error processing row {row_number}: {e}")

    log.info("Parsed %d transactions (%d row errors)", len(docs), len(errors))
    return docs, errors
