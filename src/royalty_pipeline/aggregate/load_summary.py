"""Fetch transactions from MongoDB and aggregate them into a summary.

The summary itself is never written back; it is recomputed on every call.
A failed fetch degrades to the zero/placeholder summary instead of raising.
"""

from __future__ import annotations

from typing import Any
import logging

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from royalty_pipeline.aggregate.analytics import aggregate_transactions, empty_summary
from royalty_pipeline.models import AnalyticsSummary

log = logging.getLogger(__name__)

# rawData can be large and is not needed for aggregation
SUMMARY_PROJECTION = {"_id": False, "rawData": False}


def fetch_transactions(
    collection: Collection[dict[str, Any]],
    limit: int,
    query: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Return up to `limit` transactions, most recently created first.

    Args:
        collection: The `transactions` collection.
        limit: Maximum number of documents to read.
        query: Optional Mongo filter.
    """
    cursor = (
        collection.find(query or {}, SUMMARY_PROJECTION)
        .sort("createdAt", DESCENDING)
        .limit(limit)
    )
    return list(cursor)


def load_summary(
    collection: Collection[dict[str, Any]],
    limit: int,
    query: dict[str, Any] | None = None,
) -> AnalyticsSummary:
    """Fetch transactions and aggregate them.

    Returns:
        The aggregated summary, or `empty_summary()` when the fetch fails.
    """
    try:
        transactions = fetch_transactions(collection, limit, query)
    except PyMongoError as e:
        log.warning("Could not fetch transactions, falling back to empty summary: %s", e)
        return empty_summary()

    log.info("Aggregating %d transactions", len(transactions))
    return aggregate_transactions(transactions)
