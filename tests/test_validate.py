from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError
from royalty_pipeline.clean.validate import validate_records, validate_transaction
from royalty_pipeline.models import Withdrawal


def test_validate_transaction_returns_camel_case_document() -> None:
    doc = validate_transaction({
        "csvUploadId": "u1",
        "rowNumber": 1,
        "transactionId": "TRANS-u1-1",
        "serviceType": "Spotify",
        "revenueUSD": "1.25",
        "transactionDate": "2024-01-01T00:00:00",
        "unexpected": "dropped",
    })
    assert doc["revenueUSD"] == 1.25
    assert doc["transactionDate"] == datetime(2024, 1, 1)
    assert doc["serviceType"] == "Spotify"
    assert "unexpected" not in doc
    assert "service_type" not in doc


def test_validate_transaction_requires_date() -> None:
    with pytest.raises(ValidationError):
        validate_transaction({"csvUploadId": "u1", "rowNumber": 1, "transactionId": "t"})


def test_validate_records_skips_bad_rows() -> None:
    records = [
        {"user": "u1", "amount": 10, "paymentMethod": "paypal"},
        {"user": "u1", "amount": 0, "paymentMethod": "paypal"},
        {"user": "u1", "amount": 5, "paymentMethod": "cheque"},
        {"user": "u1", "amount": 3, "status": "approved", "paymentMethod": "stripe"},
    ]
    good, bad = validate_records(records, Withdrawal)
    assert bad == 2
    assert [w.amount for w in good] == [10, 3]
    assert good[1].status == "approved"
