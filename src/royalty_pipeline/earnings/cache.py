"""Per-user optimistic earnings cache.

`EarningsCache` holds the earnings figures shown to one user and applies
withdrawal requests optimistically: creating a withdrawal lowers the cached
balance at once, rejecting it restores the amount, approving or completing
it keeps the reduction. `reconcile` replaces the cached figures with a
server snapshot and re-applies the withdrawals that are still pending.

State is persisted as JSON in a caller-supplied mutable mapping, so the
cache survives restarts when given a durable store and stays in memory
otherwise. Instances are created and passed around explicitly; there is no
module-level registry.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, MutableMapping

from royalty_pipeline.models import WithdrawalStatus

log = logging.getLogger(__name__)

Listener = Callable[[], None]


@dataclass(frozen=True)
class EarningsSnapshot:
    """Earnings figures as reported by the server."""
    total_earnings: float = 0.0
    last_payout: float = 0.0
    pending_payments: float = 0.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EarningsSnapshot":
        """Build from the camelCase API payload; missing values count as 0."""
        return cls(
            total_earnings=float(data.get("totalEarnings") or 0),
            last_payout=float(data.get("lastPayout") or 0),
            pending_payments=float(data.get("pendingPayments") or 0),
        )

    def to_mapping(self) -> dict[str, float]:
        return {
            "totalEarnings": self.total_earnings,
            "lastPayout": self.last_payout,
            "pendingPayments": self.pending_payments,
        }


class EarningsCache:
    """Optimistic earnings state for a single user."""

    def __init__(self, user_id: str, store: MutableMapping[str, str] | None = None):
        self.user_id = user_id
        self._store: MutableMapping[str, str] = store if store is not None else {}
        self._snapshot = EarningsSnapshot()
        self._pending: dict[str, float] = {}
        self._listeners: list[Listener] = []
        self._load()

    # -----------------------------
    # Persistence
    # -----------------------------
    @property
    def earnings_key(self) -> str:
        return f"userEarnings_{self.user_id}"

    @property
    def withdrawals_key(self) -> str:
        return f"pendingWithdrawals_{self.user_id}"

    def _load(self) -> None:
        stored = self._store.get(self.earnings_key)
        if stored:
            try:
                self._snapshot = EarningsSnapshot.from_mapping(json.loads(stored))
            except (ValueError, TypeError, AttributeError) as e:
                log.warning("Ignoring unreadable cached earnings for user %s: %s", self.user_id, e)

        stored = self._store.get(self.withdrawals_key)
        if stored:
            try:
                self._pending = {str(wid): float(amount) for wid, amount in json.loads(stored)}
            except (ValueError, TypeError) as e:
                log.warning("Ignoring unreadable pending withdrawals for user %s: %s", self.user_id, e)

    def _save(self) -> None:
        self._store[self.earnings_key] = json.dumps(self._snapshot.to_mapping())
        self._store[self.withdrawals_key] = json.dumps(list(self._pending.items()))

    def _changed(self) -> None:
        self._save()
        for listener in list(self._listeners):
            listener()

    # -----------------------------
    # Reads
    # -----------------------------
    @property
    def snapshot(self) -> EarningsSnapshot:
        return self._snapshot

    @property
    def total_earnings(self) -> float:
        """Cached balance after pending withdrawals."""
        return self._snapshot.total_earnings

    @property
    def pending_withdrawals(self) -> dict[str, float]:
        return dict(self._pending)

    # -----------------------------
    # Withdrawals
    # -----------------------------
    def _adjust(self, delta: float) -> None:
        self._snapshot = replace(
            self._snapshot,
            total_earnings=self._snapshot.total_earnings + delta,
        )

    def create_withdrawal(self, withdrawal_id: str, amount: float) -> None:
        """Record a new withdrawal and lower the cached balance.

        Raises:
            ValueError: if `amount` is not positive.
        """
        if amount <= 0:
            raise ValueError(f"Withdrawal amount must be positive, got {amount}")
        if withdrawal_id in self._pending:
            log.debug("Withdrawal %s already pending for user %s", withdrawal_id, self.user_id)
            return

        log.info("User %s: creating withdrawal %s for %.2f", self.user_id, withdrawal_id, amount)
        self._pending[withdrawal_id] = amount
        self._adjust(-amount)
        self._changed()

    def confirm_withdrawal(self, withdrawal_id: str) -> None:
        """Drop an approved/completed withdrawal from pending; the balance stays reduced."""
        if self._pending.pop(withdrawal_id, None) is None:
            return
        log.info("User %s: confirmed withdrawal %s", self.user_id, withdrawal_id)
        self._changed()

    def reject_withdrawal(self, withdrawal_id: str) -> None:
        """Drop a rejected withdrawal from pending and restore its amount."""
        amount = self._pending.pop(withdrawal_id, None)
        if amount is None:
            return
        log.info("User %s: rejected withdrawal %s, restoring %.2f", self.user_id, withdrawal_id, amount)
        self._adjust(amount)
        self._changed()

    def apply_status(self, withdrawal_id: str, status: WithdrawalStatus | str) -> None:
        """Apply a withdrawal status reported by the server."""
        status = WithdrawalStatus(status)
        if status in (WithdrawalStatus.APPROVED, WithdrawalStatus.COMPLETED):
            self.confirm_withdrawal(withdrawal_id)
        elif status is WithdrawalStatus.REJECTED:
            self.reject_withdrawal(withdrawal_id)

    def reconcile(self, snapshot: EarningsSnapshot | Mapping[str, Any]) -> None:
        """Replace cached figures with the server's, keeping pending withdrawals applied."""
        if not isinstance(snapshot, EarningsSnapshot):
            snapshot = EarningsSnapshot.from_mapping(snapshot)

        self._snapshot = snapshot
        self._adjust(-sum(self._pending.values()))
        log.info(
            "User %s: reconciled, balance %.2f (%d pending)",
            self.user_id,
            self._snapshot.total_earnings,
            len(self._pending),
        )
        self._changed()

    # -----------------------------
    # Listeners
    # -----------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` to run after every state change.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
