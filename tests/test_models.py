from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError
from royalty_pipeline.models import AnalyticsSummary, CsvUpload, Transaction


def test_transaction_validates_by_alias() -> None:
    tx = Transaction.model_validate({
        "csvUploadId": "u1",
        "rowNumber": 2,
        "transactionId": "TRANS-u1-2",
        "serviceType": "Spotify",
        "revenueUSD": 0.5,
        "transactionDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
    })
    assert tx.service_type == "Spotify"
    assert tx.transaction_type == "stream"
    assert tx.currency == "USD"


def test_transaction_rejects_negative_quantity() -> None:
    with pytest.raises(ValidationError):
        Transaction.model_validate({
            "csvUploadId": "u1",
            "rowNumber": 1,
            "transactionId": "TRANS-u1-1",
            "quantity": -1,
            "transactionDate": datetime(2024, 1, 1),
        })


def test_csv_upload_progress_is_bounded() -> None:
    with pytest.raises(ValidationError):
        CsvUpload(
            file_name="a.csv",
            original_file_name="a.csv",
            file_path="/tmp/a.csv",
            file_size=10,
            progress=101,
            created_at=datetime.now(timezone.utc),
        )


def test_summary_serializes_camel_case() -> None:
    out = AnalyticsSummary().model_dump(by_alias=True)
    assert set(out) == {
        "totalBalance",
        "lastTransaction",
        "lastStatementPeriod",
        "totalRevenue",
        "totalStreams",
        "transactionCount",
        "performanceData",
        "countryData",
        "platformData",
        "yearlyRevenueData",
        "totalMusic",
        "totalVideos",
        "totalRoyalty",
    }
    assert set(out["lastTransaction"]) == {"artist", "title", "service", "territory", "date", "amount"}
