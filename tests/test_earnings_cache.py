from __future__ import annotations

import json

import pytest
from royalty_pipeline.earnings.cache import EarningsCache, EarningsSnapshot


def _cache(store: dict | None = None, total: float = 100.0) -> EarningsCache:
    cache = EarningsCache("u1", store if store is not None else {})
    cache.reconcile({"totalEarnings": total, "lastPayout": 20, "pendingPayments": 0})
    return cache


def test_create_withdrawal_lowers_balance() -> None:
    cache = _cache()
    cache.create_withdrawal("w1", 30.0)
    assert cache.total_earnings == 70.0
    assert cache.pending_withdrawals == {"w1": 30.0}


def test_create_withdrawal_rejects_non_positive_amount() -> None:
    cache = _cache()
    with pytest.raises(ValueError):
        cache.create_withdrawal("w1", 0)
    assert cache.total_earnings == 100.0


def test_duplicate_withdrawal_is_ignored() -> None:
    cache = _cache()
    cache.create_withdrawal("w1", 30.0)
    cache.create_withdrawal("w1", 30.0)
    assert cache.total_earnings == 70.0


def test_reject_restores_and_confirm_keeps_reduction() -> None:
    cache = _cache()
    cache.create_withdrawal("w1", 30.0)
    cache.create_withdrawal("w2", 10.0)

    cache.apply_status("w1", "rejected")
    cache.apply_status("w2", "approved")

    assert cache.total_earnings == 90.0
    assert cache.pending_withdrawals == {}


def test_unknown_withdrawal_ids_are_noops() -> None:
    cache = _cache()
    calls: list[int] = []
    cache.subscribe(lambda: calls.append(1))
    cache.confirm_withdrawal("nope")
    cache.reject_withdrawal("nope")
    cache.apply_status("nope", "pending")
    assert cache.total_earnings == 100.0
    assert calls == []


def test_reconcile_reapplies_pending_withdrawals() -> None:
    cache = _cache()
    cache.create_withdrawal("w1", 25.0)
    cache.reconcile(EarningsSnapshot(total_earnings=200.0, last_payout=0.0, pending_payments=25.0))
    assert cache.total_earnings == 175.0
    assert cache.snapshot.pending_payments == 25.0


def test_state_survives_reload_from_store() -> None:
    store: dict[str, str] = {}
    cache = _cache(store)
    cache.create_withdrawal("w1", 40.0)

    reloaded = EarningsCache("u1", store)
    assert reloaded.total_earnings == 60.0
    assert reloaded.pending_withdrawals == {"w1": 40.0}
    assert json.loads(store["userEarnings_u1"])["lastPayout"] == 20


def test_unreadable_store_is_ignored() -> None:
    store = {"userEarnings_u1": "{not json", "pendingWithdrawals_u1": "[1, 2]"}
    cache = EarningsCache("u1", store)
    assert cache.total_earnings == 0.0
    assert cache.pending_withdrawals == {}


def test_subscribe_and_unsubscribe() -> None:
    cache = _cache()
    calls: list[float] = []
    unsubscribe = cache.subscribe(lambda: calls.append(cache.total_earnings))

    cache.create_withdrawal("w1", 5.0)
    unsubscribe()
    cache.reject_withdrawal("w1")

    assert calls == [95.0]
    assert cache.total_earnings == 100.0
