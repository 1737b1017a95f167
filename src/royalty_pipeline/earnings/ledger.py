"""Server-side earnings balance.

The analytics summary reports `totalBalance` as plain revenue. The ledger
here is the accounting view: revenue minus withdrawals that were approved or
paid out, with pending requests held back from what can still be withdrawn.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from bson import ObjectId
from pymongo.database import Database

from royalty_pipeline.aggregate.load_summary import load_summary
from royalty_pipeline.clean.validate import validate_records
from royalty_pipeline.db import TRANSACTIONS, WITHDRAWALS
from royalty_pipeline.models import Withdrawal, WithdrawalStatus

log = logging.getLogger(__name__)

SETTLED_STATUSES = {WithdrawalStatus.APPROVED.value, WithdrawalStatus.COMPLETED.value}


class WithdrawalError(ValueError):
    """Raised when a withdrawal request cannot be covered by the balance."""


@dataclass(frozen=True)
class Balance:
    """Earnings balance for one user.

    Attributes:
        total_revenue: Revenue from transactions.
        withdrawn: Sum of approved and completed withdrawals.
        pending: Sum of withdrawals still awaiting review.
    """
    total_revenue: float
    withdrawn: float = 0.0
    pending: float = 0.0

    @property
    def balance(self) -> float:
        return self.total_revenue - self.withdrawn

    @property
    def available(self) -> float:
        """Amount that can still be requested."""
        return self.balance - self.pending


def compute_balance(total_revenue: float, withdrawals: Iterable[Withdrawal]) -> Balance:
    """Combine revenue and withdrawal history into a `Balance`.

    Rejected withdrawals are ignored.
    """
    withdrawn = 0.0
    pending = 0.0
    for w in withdrawals:
        status = WithdrawalStatus(w.status).value
        if status in SETTLED_STATUSES:
            withdrawn += w.amount
        elif status == WithdrawalStatus.PENDING.value:
            pending += w.amount
    return Balance(total_revenue=total_revenue, withdrawn=withdrawn, pending=pending)


def check_withdrawal(balance: Balance, amount: float) -> None:
    """Validate a new withdrawal request against `balance`.

    Raises:
        WithdrawalError: if `amount` is not positive or exceeds the available balance.
    """
    if amount <= 0:
        raise WithdrawalError(f"Withdrawal amount must be positive, got {amount}")
    if amount > balance.available:
        raise WithdrawalError(
            f"Withdrawal of {amount:.2f} exceeds available balance {balance.available:.2f}"
        )


def _user_query(user_id: str) -> dict[str, Any]:
    if ObjectId.is_valid(user_id):
        return {"user": {"$in": [user_id, ObjectId(user_id)]}}
    return {"user": user_id}


def load_balance(db: Database[dict[str, Any]], user_id: str, limit: int) -> Balance:
    """Compute a user's balance from stored transactions and withdrawals.

    Transactions carry no owner, so revenue is the same aggregated revenue
    the dashboard shows; withdrawals are the user's own.

    Args:
        db: Database holding `transactions` and `withdrawals`.
        user_id: Id of the requesting user.
        limit: Maximum transactions read for the revenue figure.
    """
    summary = load_summary(db[TRANSACTIONS], limit)

    docs = (
        {**doc, "user": str(doc.get("user"))}
        for doc in db[WITHDRAWALS].find(_user_query(user_id), {"_id": False})
    )
    withdrawals, bad = validate_records(docs, Withdrawal)
    log.info("Loaded %d withdrawals for user %s (%d invalid)", len(withdrawals), user_id, bad)

    return compute_balance(summary.total_revenue, withdrawals)
