"""Earnings balance and withdrawal tracking.

`ledger` computes balances from revenue and withdrawal history; `cache`
holds the optimistic per-user earnings view.
"""
