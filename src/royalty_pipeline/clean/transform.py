"""Partition-wise preparation of transaction data.

This module contains transformations that are applied partition-wise using
Dask. The output is a Dask DataFrame whose schema is stable and suitable for
the grouped transaction report.
"""
from __future__ import annotations

import pandas as pd
import logging
from typing import Any

log = logging.getLogger(__name__)

UNKNOWN = "Unknown"

_DEFAULTS: dict[str, Any] = {
    "serviceType": "",
    "territory": "",
    "revenueUSD": 0.0,
    "quantity": 0,
    "transactionDate": None,
}


def _prepare_partition(pdf: pd.DataFrame) -> pd.DataFrame:
    """Partition-level preparation applied via map_partitions.

    Args:
        pdf: Pandas DataFrame for the partition.

    Returns:
        Prepared Pandas DataFrame.
    """
    pdf = pdf.copy()

    for col, default in _DEFAULTS.items():
        if col not in pdf.columns:
            pdf[col] = default

    # -----------------------------
    # Numbers: malformed -> 0
    # -----------------------------
    pdf["revenueUSD"] = pd.to_numeric(pdf["revenueUSD"], errors="coerce").fillna(0.0).astype("float64")
    pdf["quantity"] = pd.to_numeric(pdf["quantity"], errors="coerce").fillna(0).astype("int64")

    # -----------------------------
    # Group keys: blank -> Unknown
    # -----------------------------
    for col in ("serviceType", "territory"):
        pdf[col] = (
            pdf[col]
            .fillna("")
            .astype(str)
            .str.strip()
            .replace({"": UNKNOWN})
        )

    # -----------------------------
    # Dates and derived periods
    # -----------------------------
    dates = pd.to_datetime(pdf["transactionDate"], errors="coerce", utc=True, format="ISO8601")
    pdf["transactionDate"] = dates.dt.tz_localize(None)
    pdf["year"] = pdf["transactionDate"].dt.year.astype("float64")
    pdf["month"] = pdf["transactionDate"].dt.month.astype("float64")

    return pdf


def prepare_transactions_ddf(ddf: Any) -> Any:
    """Prepare stored transactions for grouping.

    Coerces `revenueUSD` and `quantity` to numbers (0 when malformed), fills
    blank `serviceType`/`territory` with "Unknown", parses `transactionDate`
    and derives `year` and `month` columns (NaN for undated rows).

    Returns:
        Transformed Dask DataFrame with a stable schema for downstream steps.
    """
    log.info("Starting prepare_transactions_ddf transformation")

    meta = _prepare_partition(ddf._meta)
    return ddf.map_partitions(_prepare_partition, meta=meta)
