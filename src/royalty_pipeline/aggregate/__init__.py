"""Aggregation of stored transactions.

This package contains the pure analytics aggregator that turns a transaction
list into the dashboard summary, the MongoDB fetch wrapper around it, and the
Dask-computed transaction report (totals, revenue by service, territory and
month).
"""
