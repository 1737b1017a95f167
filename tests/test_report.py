from __future__ import annotations

from datetime import date

import pandas as pd
import dask.dataframe as dd
from royalty_pipeline.aggregate.build_report import (
    build_report,
    monthly_revenue,
    report_totals,
    service_revenue,
    territory_revenue,
)
from royalty_pipeline.clean.transform import prepare_transactions_ddf


def _ddf() -> dd.DataFrame:
    pdf = pd.DataFrame([
        {"serviceType": "Spotify", "territory": "US", "revenueUSD": 10.0, "quantity": 100, "transactionDate": "2024-01-15"},
        {"serviceType": "Spotify", "territory": "DE", "revenueUSD": 5.0, "quantity": 50, "transactionDate": "2024-02-01"},
        {"serviceType": "Apple", "territory": "US", "revenueUSD": 7.0, "quantity": 30, "transactionDate": "2024-02-20"},
        {"serviceType": "", "territory": None, "revenueUSD": "oops", "quantity": 5, "transactionDate": "2023-12-31"},
    ])
    return prepare_transactions_ddf(dd.from_pandas(pdf, npartitions=2))


def test_prepare_fills_unknown_and_coerces_numbers() -> None:
    out = _ddf().compute().reset_index(drop=True)
    assert out.loc[3, "serviceType"] == "Unknown"
    assert out.loc[3, "territory"] == "Unknown"
    assert out.loc[3, "revenueUSD"] == 0.0
    assert out.loc[0, "year"] == 2024
    assert out.loc[0, "month"] == 1


def test_prepare_adds_missing_columns() -> None:
    pdf = pd.DataFrame([{"revenueUSD": 1.0}])
    out = prepare_transactions_ddf(dd.from_pandas(pdf, npartitions=1)).compute()
    assert out.loc[0, "serviceType"] == "Unknown"
    assert out.loc[0, "quantity"] == 0
    assert pd.isna(out.loc[0, "year"])


def test_report_totals() -> None:
    totals = report_totals(_ddf())
    assert totals == {"totalRevenue": 22.0, "totalStreams": 185, "transactionCount": 4}


def test_service_revenue_is_descending_and_limited() -> None:
    ddf = _ddf()
    rows = service_revenue(ddf)
    assert rows[0] == {"service": "Spotify", "revenue": 15.0, "streams": 150}
    assert [r["service"] for r in rows] == ["Spotify", "Apple", "Unknown"]
    assert len(service_revenue(ddf, top_n=1)) == 1


def test_territory_revenue() -> None:
    rows = territory_revenue(_ddf())
    assert rows[0] == {"territory": "US", "revenue": 17.0, "streams": 130}


def test_monthly_revenue_is_chronological() -> None:
    rows = monthly_revenue(_ddf())
    assert [(r["year"], r["month"]) for r in rows] == [(2023, 12), (2024, 1), (2024, 2)]
    assert rows[-1]["revenue"] == 12.0
    assert rows[-1]["streams"] == 80


def test_build_report_applies_date_window() -> None:
    report = build_report(_ddf(), start=date(2024, 1, 1), end=date(2024, 1, 31))
    assert report["summary"]["transactionCount"] == 1
    assert report["serviceRevenue"] == [{"service": "Spotify", "revenue": 10.0, "streams": 100}]
    assert report["monthlyRevenue"] == [{"year": 2024, "month": 1, "revenue": 10.0, "streams": 100}]
