"""Transaction analytics aggregation.

`aggregate_transactions` turns a flat list of royalty transactions into the
`AnalyticsSummary` consumed by the dashboard cards and charts: balance, last
transaction, revenue share by platform and country, monthly performance and
yearly revenue.

Expectations:
- Input: transaction documents as stored in MongoDB (camelCase keys such as
  `serviceType`, `revenueUSD`, `transactionDate`) or `Transaction` models.
- Malformed numbers count as 0 and blank platform/territory values group
  under "Unknown"; the function never raises on bad field values.
- The input is only read, never mutated.
"""
from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, Mapping

import pandas as pd
from pydantic import BaseModel

from royalty_pipeline.models import PLACEHOLDER, AnalyticsSummary, LastTransaction

UNKNOWN = "Unknown"

# Display precision of the share percentages
PERCENT_DECIMALS = 1

PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])")

_COLUMNS = ["platform", "territory", "period", "year", "revenue", "streams"]


# =========================================================
# FIELD COERCION
# =========================================================

def _to_float(value: Any) -> float:
    """Return `value` as a finite float, or 0.0 when it is missing or malformed."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: Any) -> int:
    return int(_to_float(value))


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def _group_label(value: Any) -> str:
    return _text(value) or UNKNOWN


def _date_text(value: Any) -> str:
    """Return an ISO string for a stored date (datetime or ISO text)."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return ""


def _asset_kind(asset_type: Any, service_type: Any) -> str | None:
    """Classify a row as music or video.

    Rows without an asset type count as video when their platform is a video
    service (YouTube or any name containing "video").
    """
    text = _text(asset_type).lower()
    if not text:
        service = _text(service_type).lower()
        return "video" if "youtube" in service or "video" in service else None
    if "audio" in text or "music" in text:
        return "music"
    if "video" in text:
        return "video"
    return None


def _as_mapping(tx: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(tx, BaseModel):
        return tx.model_dump(by_alias=True)
    return tx


# =========================================================
# GROUPING
# =========================================================

def _revenue_shares(
    frame: pd.DataFrame,
    key: str,
    total_revenue: float,
    label: str,
) -> list[dict[str, Any]]:
    """Return each group's share of total revenue, largest first.

    Groups keep first-seen order among equal percentages.
    """
    if frame.empty:
        return []

    grouped = frame.groupby(key, sort=False)["revenue"].sum()
    if total_revenue != 0:
        pct = (grouped / total_revenue * 100.0).round(PERCENT_DECIMALS)
    else:
        pct = pd.Series(0.0, index=grouped.index)

    pct = pct.sort_values(ascending=False, kind="stable")
    return [{label: str(name), "percentage": float(value)} for name, value in pct.items()]


def _monthly_performance(frame: pd.DataFrame) -> list[dict[str, Any]]:
    dated = frame[frame["period"].notna()]
    if dated.empty:
        return []

    monthly = dated.groupby("period", sort=True).agg(
        revenue=("revenue", "sum"),
        streams=("streams", "sum"),
    )
    return [
        {"month": str(period), "revenue": float(row["revenue"]), "streams": int(row["streams"])}
        for period, row in monthly.iterrows()
    ]


def _yearly_revenue(frame: pd.DataFrame) -> list[dict[str, Any]]:
    dated = frame[frame["year"].notna()]
    if dated.empty:
        return []

    yearly = dated.groupby("year", sort=True)["revenue"].sum()
    return [{"year": str(year), "revenue": float(revenue)} for year, revenue in yearly.items()]


# =========================================================
# SUMMARY
# =========================================================

def empty_summary() -> AnalyticsSummary:
    """Return the zero/placeholder summary.

    Used for an empty transaction list and by callers as the degraded state
    when transactions could not be fetched.
    """
    return AnalyticsSummary()


def aggregate_transactions(
    transactions: Iterable[Mapping[str, Any] | BaseModel],
) -> AnalyticsSummary:
    """Aggregate royalty transactions into the dashboard `AnalyticsSummary`.

    The last transaction is the one with the greatest `transactionDate`
    (ISO string comparison). When several share that date the one appearing
    last in the input wins.

    Args:
        transactions: Transaction documents or models; may be empty.

    Returns:
        AnalyticsSummary. `totalBalance` and `totalRoyalty` both equal
        `totalRevenue`; percentages are rounded to one decimal.
    """
    rows: list[dict[str, Any]] = []
    last: Mapping[str, Any] | None = None
    last_key = ""
    last_period: str | None = None
    music = 0
    videos = 0

    for tx in transactions:
        doc = _as_mapping(tx)
        when = _date_text(doc.get("transactionDate"))
        m = PERIOD_RE.match(when)
        period = f"{m.group(1)}-{m.group(2)}" if m else None

        rows.append(
            {
                "platform": _group_label(doc.get("serviceType")),
                "territory": _group_label(doc.get("territory")),
                "period": period,
                "year": m.group(1) if m else None,
                "revenue": _to_float(doc.get("revenueUSD")),
                "streams": _to_int(doc.get("quantity")),
            }
        )

        # >= so that ties go to the later record
        if last is None or when >= last_key:
            last, last_key, last_period = doc, when, period

        kind = _asset_kind(doc.get("assetType"), doc.get("serviceType"))
        if kind == "music":
            music += 1
        elif kind == "video":
            videos += 1

    if last is None:
        return empty_summary()

    frame = pd.DataFrame(rows, columns=_COLUMNS)
    total_revenue = float(sum(r["revenue"] for r in rows))
    total_streams = int(sum(r["streams"] for r in rows))

    last_card = LastTransaction(
        artist=_text(last.get("artist")) or PLACEHOLDER,
        title=_text(last.get("title")) or PLACEHOLDER,
        service=_text(last.get("serviceType")) or PLACEHOLDER,
        territory=_text(last.get("territory")) or PLACEHOLDER,
        date=last_key[:10] or PLACEHOLDER,
        amount=_to_float(last.get("revenueUSD")),
    )

    return AnalyticsSummary(
        total_balance=total_revenue,
        last_transaction=last_card,
        last_statement_period=last_period or PLACEHOLDER,
        total_revenue=total_revenue,
        total_streams=total_streams,
        transaction_count=len(rows),
        performance_data=_monthly_performance(frame),
        country_data=_revenue_shares(frame, "territory", total_revenue, "country"),
        platform_data=_revenue_shares(frame, "platform", total_revenue, "platform"),
        yearly_revenue_data=_yearly_revenue(frame),
        total_music=music,
        total_videos=videos,
        total_royalty=total_revenue,
    )
