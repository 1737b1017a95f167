"""Validation utilities for transaction and withdrawal documents.

Documents are validated against the Pydantic models in
`royalty_pipeline.models` before they are written (transactions) or used in
balance calculations (withdrawals).
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from royalty_pipeline.models import Transaction

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate_transaction(doc: dict[str, Any]) -> dict[str, Any]:
    """Validate one transaction document and return it in stored (camelCase) form.

    Raises:
        pydantic.ValidationError: if the document does not match `Transaction`.
    """
    return Transaction.model_validate(doc).model_dump(by_alias=True)


def validate_records(records: Iterable[dict[str, Any]], model: type[M]) -> tuple[list[M], int]:
    """Validate records against `model`, skipping the ones that fail.

    Args:
        records: Raw documents (e.g. read from MongoDB).
        model: Pydantic model class to validate against.

    Returns:
        A tuple of (list_of_validated_models, bad_count).
    """
    good: list[M] = []
    bad = 0

    for rec in records:
        try:
            good.append(model.model_validate(rec))
        except ValidationError as e:
            log.debug("Skipping invalid %s record: %s", model.__name__, e)
            bad += 1

    if bad:
        log.warning("Skipped %d invalid %s records", bad, model.__name__)
    return good, bad
