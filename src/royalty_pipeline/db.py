"""MongoDB helpers and bulk upsert utility.

Centralizes creation of Mongo clients, the names of the collections shared
with the dashboard service, and the batched upsert used when loading
statement transactions.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable
from pymongo import ASCENDING, MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

import certifi

log = logging.getLogger(__name__)

TRANSACTIONS = "transactions"
CSV_UPLOADS = "csvuploads"
WITHDRAWALS = "withdrawals"

TRANSACTION_INDEXES = (
    "csvUploadId",
    "transactionId",
    "artist",
    "title",
    "serviceType",
    "territory",
    "transactionDate",
)


def get_client(uri: str, tls: bool = False) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    Args:
        uri: MongoDB connection URI.
        tls: Connect over TLS using the certifi CA bundle.

    Returns:
        Configured MongoClient instance.
    """
    options: dict[str, Any] = {
        "serverSelectionTimeoutMS": 30000,
        "socketTimeoutMS": 30000,
        "connectTimeoutMS": 30000,
    }
    if tls:
        options.update(tls=True, tlsCAFile=certifi.where())
    return MongoClient(uri, **options)


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient.

    Args:
        client: PyMongo MongoClient.
        db_name: Database name.

    Returns:
        A Database object.
    """
    return client[db_name]


def ensure_transaction_indexes(collection: Collection[dict[str, Any]]) -> None:
    """Create the single-field indexes the transaction queries rely on."""
    for field in TRANSACTION_INDEXES:
        collection.create_index([(field, ASCENDING)])


def bulk_upsert(
    collection: Collection[dict[str, Any]],
    docs: Iterable[dict[str, Any]],
    key_field: str,
    batch_size: int = 1000,
) -> int:
    """Bulk upsert documents using `key_field` as the selector.

    Writes in batches; a failed batch is logged and skipped so one bad batch
    does not abort the whole statement. Documents without `key_field` are
    ignored.

    Args:
        collection: Target PyMongo collection.
        docs: Iterable of document dictionaries to upsert.
        key_field: Document key to use for upsert selector.
        batch_size: Number of ops per bulk_write call.

    Returns:
        Number of documents written in batches that succeeded.
    """
    ops: list[UpdateOne] = []
    written = 0

    def _flush() -> int:
        try:
            collection.bulk_write(ops, ordered=False)
        except PyMongoError as e:
            log.warning("bulk_upsert batch of %d failed: %s", len(ops), e)
            return 0
        return len(ops)

    for d in docs:
        if key_field not in d:
            continue

        ops.append(
            UpdateOne(
                {key_field: d[key_field]},
                {"$set": d},
                upsert=True,
            )
        )

        if len(ops) >= batch_size:
            written += _flush()
            ops = []

    if ops:
        written += _flush()

    return written
