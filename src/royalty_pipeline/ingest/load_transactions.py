"""Statement loading: upload records and transaction upserts.

Module notes:
- Each statement gets a `csvuploads` record that moves through
  pending -> processing -> completed / completed_with_errors / failed.
- Transactions are upserted in batches keyed on `transactionId`, so
  re-processing the same upload overwrites rather than duplicates rows.
- Progress (`processedRows`, `progress`) is written after every batch.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, List

from bson import ObjectId
from pymongo.collection import Collection
from pymongo.database import Database

from royalty_pipeline.db import CSV_UPLOADS, TRANSACTIONS, bulk_upsert
from royalty_pipeline.ingest.parse_statement import parse_statement, read_statement
from royalty_pipeline.models import CsvUpload, CsvUploadStatus

log = logging.getLogger(__name__)

BATCH_SIZE = 1000
MAX_STORED_ERRORS = 10


def _chunks(data: List[dict[str, Any]], size: int) -> Iterable[List[dict[str, Any]]]:
    """Yield lists of documents in batches.

    Args:
        data: List of dict documents.
        size: Batch size.
    """
    for i in range(0, len(data), size):
        yield data[i : i + size]


def _upload_filter(upload_id: str) -> dict[str, Any]:
    if ObjectId.is_valid(upload_id):
        return {"_id": ObjectId(upload_id)}
    return {"_id": upload_id}


def _update_upload(collection: Collection[dict[str, Any]], upload_id: str, **fields: Any) -> None:
    collection.update_one(_upload_filter(upload_id), {"$set": fields})


def format_errors(errors: list[str], limit: int = MAX_STORED_ERRORS) -> str | None:
    """Join the first `limit` errors, noting how many more were left out."""
    if not errors:
        return None
    message = "\n".join(errors[:limit])
    if len(errors) > limit:
        message += f"\n...and {len(errors) - limit} more errors"
    return message


def create_upload(
    collection: Collection[dict[str, Any]],
    path: Path,
    uploaded_by: str | None = None,
) -> str:
    """Insert a pending upload record for the statement at `path`.

    Returns:
        The new upload id as a string.
    """
    upload = CsvUpload(
        file_name=path.name,
        original_file_name=path.name,
        file_path=str(path),
        file_size=path.stat().st_size,
        uploaded_by=uploaded_by,
        created_at=datetime.now(timezone.utc),
    )
    result = collection.insert_one(upload.model_dump(by_alias=True))
    log.info("Registered upload %s for %s", result.inserted_id, path)
    return str(result.inserted_id)


def load_transactions(
    collection: Collection[dict[str, Any]],
    docs: List[dict[str, Any]],
    batch_size: int = BATCH_SIZE,
    on_progress: Callable[[int], None] | None = None,
) -> int:
    """Upsert transaction documents in batches.

    Args:
        collection: The `transactions` collection.
        docs: Validated transaction documents.
        batch_size: Documents per bulk write.
        on_progress: Called with the running count of written documents
            after each batch.

    Returns:
        Number of documents written.
    """
    written = 0
    for batch in _chunks(docs, batch_size):
        written += bulk_upsert(collection, batch, "transactionId", batch_size=batch_size)
        if on_progress is not None:
            on_progress(written)
    return written


def process_statement(
    db: Database[dict[str, Any]],
    upload_id: str,
    path: Path,
    batch_size: int = BATCH_SIZE,
) -> CsvUploadStatus:
    """Parse a statement and load its transactions, tracking upload status.

    Args:
        db: Target database.
        upload_id: Id returned by `create_upload`.
        path: Location of the statement CSV.
        batch_size: Documents per bulk write.

    Returns:
        The final upload status.
    """
    uploads = db[CSV_UPLOADS]
    _update_upload(uploads, upload_id, status=CsvUploadStatus.PROCESSING.value)

    try:
        pdf = read_statement(path)
    except (OSError, ValueError) as e:
        log.error("Could not read statement %s: %s", path, e)
        _update_upload(
            uploads,
            upload_id,
            status=CsvUploadStatus.FAILED.value,
            errorMessage=str(e),
        )
        return CsvUploadStatus.FAILED

    total_rows = len(pdf)
    _update_upload(uploads, upload_id, totalRows=total_rows)

    docs, errors = parse_statement(pdf, upload_id)

    def _progress(written: int) -> None:
        progress = int(written / total_rows * 100) if total_rows else 100
        _update_upload(uploads, upload_id, processedRows=written, progress=progress)

    written = load_transactions(db[TRANSACTIONS], docs, batch_size, _progress)
    if written < len(docs):
        errors.append(f"{len(docs) - written} transactions could not be written")

    status = CsvUploadStatus.COMPLETED_WITH_ERRORS if errors else CsvUploadStatus.COMPLETED
    _update_upload(
        uploads,
        upload_id,
        status=status.value,
        processedRows=written,
        progress=100,
        errorMessage=format_errors(errors),
        completedAt=datetime.now(timezone.utc),
    )

    log.info(
        "Statement processing completed. Total rows: %d, Processed: %d, Errors: %d",
        total_rows,
        written,
        len(errors),
    )
    return status


def ingest_statement(
    db: Database[dict[str, Any]],
    path: Path,
    uploaded_by: str | None = None,
) -> tuple[str, CsvUploadStatus]:
    """Register and process one statement file."""
    upload_id = create_upload(db[CSV_UPLOADS], path, uploaded_by)
    return upload_id, process_statement(db, upload_id, path)
