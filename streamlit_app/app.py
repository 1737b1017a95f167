from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt
from pymongo.errors import PyMongoError

from royalty_pipeline.aggregate.load_summary import load_summary
from royalty_pipeline.config import get_settings
from royalty_pipeline.db import CSV_UPLOADS, TRANSACTIONS, get_client, get_db

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="Royalty Analytics", layout="wide")
st.title("🎵 Royalty Analytics Dashboard")

# =====================================================
# MongoDB connection
# =====================================================
try:
    settings = get_settings()
except RuntimeError as exc:
    st.error(str(exc))
    st.stop()

try:
    client = get_client(settings.mongo_uri, tls=settings.mongo_tls)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    db = get_db(client, settings.mongo_db)
except PyMongoError as exc:
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()

# =====================================================
# Helpers
# =====================================================
def kpi(label: str, value) -> None:
    """Display a simple KPI metric in the dashboard."""
    st.metric(label, value)


def money(value: float) -> str:
    return f"${value:,.2f}"


def share_chart(df: pd.DataFrame, field: str, title: str) -> alt.Chart:
    """Bar chart of revenue share percentages, largest first.

    Args:
        df: Frame with `field` and `percentage` columns.
        field: Name of the group column.
        title: Axis title for the group column.
    """
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{field}:N", sort=alt.SortField("percentage", order="descending"), title=title),
            y=alt.Y("percentage:Q", title="% of Revenue"),
            tooltip=[f"{field}:N", "percentage:Q"],
        )
        .properties(height=300)
    )


summary = load_summary(db[TRANSACTIONS], settings.transaction_limit)
last = summary.last_transaction

# =====================================================
# SECTION 0: OVERVIEW
# =====================================================
st.header("📌 Overview")

c1, c2, c3, c4 = st.columns(4)
with c1:
    kpi("Total Balance", money(summary.total_balance))
with c2:
    kpi("Total Streams", f"{summary.total_streams:,}")
with c3:
    kpi("Transactions", summary.transaction_count)
with c4:
    kpi("Last Statement", summary.last_statement_period)

c5, c6 = st.columns(2)
with c5:
    kpi("Music Assets", summary.total_music)
with c6:
    kpi("Video Assets", summary.total_videos)

st.subheader("Last Transaction")
st.write(
    f"**{last.title}** by {last.artist} on {last.service} "
    f"({last.territory}, {last.date}): {money(last.amount)}"
)

st.divider()

# =====================================================
# SECTION 1: MONTHLY PERFORMANCE
# =====================================================
st.header("📈 Monthly Performance")

df_perf = pd.DataFrame([p.model_dump() for p in summary.performance_data])

if df_perf.empty:
    st.info("No dated transactions yet. Ingest a statement first.")
else:
    metric = st.radio("Metric", ["revenue", "streams"], horizontal=True)
    chart = (
        alt.Chart(df_perf)
        .mark_line(point=True)
        .encode(
            x=alt.X("month:O", title="Month"),
            y=alt.Y(f"{metric}:Q", title=metric.title()),
            tooltip=["month:O", "revenue:Q", "streams:Q"],
        )
        .properties(height=320)
    )
    st.altair_chart(chart, width="stretch")

st.divider()

# =====================================================
# SECTION 2: REVENUE SHARE
# =====================================================
st.header("🌍 Revenue Share")

left, right = st.columns(2)
with left:
    df_platform = pd.DataFrame([p.model_dump() for p in summary.platform_data])
    if df_platform.empty:
        st.info("Platform data not available.")
    else:
        st.altair_chart(share_chart(df_platform, "platform", "Platform"), width="stretch")

with right:
    df_country = pd.DataFrame([c.model_dump() for c in summary.country_data])
    if df_country.empty:
        st.info("Country data not available.")
    else:
        st.altair_chart(share_chart(df_country, "country", "Country"), width="stretch")

st.divider()

# =====================================================
# SECTION 3: YEARLY REVENUE
# =====================================================
st.header("📅 Yearly Revenue")

df_yearly = pd.DataFrame([y.model_dump() for y in summary.yearly_revenue_data])

if df_yearly.empty:
    st.info("Yearly revenue not available.")
else:
    chart_yearly = (
        alt.Chart(df_yearly)
        .mark_bar()
        .encode(
            x=alt.X("year:O", title="Year"),
            y=alt.Y("revenue:Q", title="Revenue (USD)"),
            tooltip=["year:O", "revenue:Q"],
        )
        .properties(height=300)
    )
    st.altair_chart(chart_yearly, width="stretch")

st.divider()

# =====================================================
# SECTION 4: RECENT UPLOADS
# =====================================================
st.header("📂 Recent Uploads")

uploads = list(
    db[CSV_UPLOADS]
    .find({}, {"_id": 0, "originalFileName": 1, "status": 1, "processedRows": 1,
               "totalRows": 1, "createdAt": 1, "errorMessage": 1})
    .sort("createdAt", -1)
    .limit(20)
)

if not uploads:
    st.info("No statements uploaded yet.")
else:
    st.dataframe(pd.DataFrame(uploads), width="stretch")

# =====================================================
# Footer
# =====================================================
st.caption("Royalty statements • MongoDB • Dask • Streamlit")
