from __future__ import annotations

from unittest.mock import MagicMock

from pymongo import DESCENDING
from pymongo.errors import ServerSelectionTimeoutError
from royalty_pipeline.aggregate.analytics import empty_summary
from royalty_pipeline.aggregate.load_summary import SUMMARY_PROJECTION, load_summary


def test_load_summary_reads_recent_transactions() -> None:
    collection = MagicMock()
    cursor = collection.find.return_value.sort.return_value.limit.return_value
    cursor.__iter__.return_value = iter([
        {"serviceType": "Spotify", "revenueUSD": 4.0, "quantity": 40, "transactionDate": "2024-01-01"},
    ])

    summary = load_summary(collection, 50)

    collection.find.assert_called_once_with({}, SUMMARY_PROJECTION)
    collection.find.return_value.sort.assert_called_once_with("createdAt", DESCENDING)
    collection.find.return_value.sort.return_value.limit.assert_called_once_with(50)
    assert summary.total_revenue == 4.0
    assert summary.total_streams == 40


def test_load_summary_falls_back_on_database_error() -> None:
    collection = MagicMock()
    collection.find.side_effect = ServerSelectionTimeoutError("no servers")

    assert load_summary(collection, 10) == empty_summary()
