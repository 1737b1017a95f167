"""Transaction report functions.

Functions in this module build the server-side transaction report (totals,
revenue by service, revenue by territory, revenue by month) from the stored
transactions. Grouped outputs are small: they are computed with Dask and
materialized to plain lists of dicts for JSON output.

Expectations:
- Input: a Dask DataFrame already passed through
  `prepare_transactions_ddf` (columns `serviceType`, `territory`,
  `revenueUSD`, `quantity`, `transactionDate`, `year`, `month`).
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any
from typing import cast, Any as TypingAny

import pandas as pd
from dask import compute  # type: ignore[attr-defined]

DEFAULT_TOP_N = 10


def filter_by_date(
    ddf: Any,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
) -> Any:
    """Restrict the frame to `start <= transactionDate <= end` (either bound optional).

    Rows without a parseable date are dropped whenever a bound is given.
    """
    if start is not None:
        ddf = ddf[ddf["transactionDate"] >= pd.Timestamp(start)]
    if end is not None:
        ddf = ddf[ddf["transactionDate"] <= pd.Timestamp(end)]
    return ddf


def report_totals(ddf: Any) -> dict[str, Any]:
    """Return total revenue, total streams and the transaction count."""
    revenue, streams, count = cast(TypingAny, compute)(
        ddf["revenueUSD"].sum(),
        ddf["quantity"].sum(),
        ddf.shape[0],
    )
    return {
        "totalRevenue": float(revenue),
        "totalStreams": int(streams),
        "transactionCount": int(count),
    }


def _revenue_by(ddf: Any, key: str, label: str, top_n: int) -> list[dict[str, Any]]:
    """Return the `top_n` groups of `key` by revenue, largest first.

    Args:
        ddf: Prepared Dask DataFrame.
        key: Column to group by.
        label: Output name of the group column.
        top_n: Number of groups to keep.

    Returns:
        List of `{label, revenue, streams}` dicts.
    """
    grouped = (
        ddf.groupby(key)
        .agg({"revenueUSD": "sum", "quantity": "sum"})
        .reset_index()
    )
    top = grouped.nlargest(top_n, "revenueUSD").compute()
    return [
        {label: str(row[key]), "revenue": float(row["revenueUSD"]), "streams": int(row["quantity"])}
        for row in top.to_dict("records")
    ]


def service_revenue(ddf: Any, top_n: int = DEFAULT_TOP_N) -> list[dict[str, Any]]:
    """Revenue and streams per platform (`serviceType`)."""
    return _revenue_by(ddf, "serviceType", "service", top_n)


def territory_revenue(ddf: Any, top_n: int = DEFAULT_TOP_N) -> list[dict[str, Any]]:
    """Revenue and streams per territory."""
    return _revenue_by(ddf, "territory", "territory", top_n)


def monthly_revenue(ddf: Any) -> list[dict[str, Any]]:
    """Revenue and streams per calendar month, oldest first.

    Undated rows are left out.
    """
    dated = ddf[ddf["year"].notnull()]
    pdf = (
        dated.groupby(["year", "month"])
        .agg({"revenueUSD": "sum", "quantity": "sum"})
        .compute()
    )
    if pdf.empty:
        return []

    pdf = pdf.reset_index().sort_values(["year", "month"])
    return [
        {
            "year": int(row["year"]),
            "month": int(row["month"]),
            "revenue": float(row["revenueUSD"]),
            "streams": int(row["quantity"]),
        }
        for row in pdf.to_dict("records")
    ]


def build_report(
    ddf: Any,
    start: date | datetime | None = None,
    end: date | datetime | None = None,
    top_n: int = DEFAULT_TOP_N,
) -> dict[str, Any]:
    """Return the full transaction report for an optional date window.

    Returns:
        Dict with `summary`, `serviceRevenue`, `territoryRevenue` and
        `monthlyRevenue` keys.
    """
    ddf = filter_by_date(ddf, start, end)
    return {
        "summary": report_totals(ddf),
        "serviceRevenue": service_revenue(ddf, top_n),
        "territoryRevenue": territory_revenue(ddf, top_n),
        "monthlyRevenue": monthly_revenue(ddf),
    }
