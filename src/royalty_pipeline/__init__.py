"""royalty_pipeline package.

Contains modules for ingesting royalty statement CSVs into MongoDB as
transaction records, aggregating those transactions into the analytics
summary shown on the dashboard, and tracking earnings against withdrawals.

Architecture:
- Statement CSV → `transactions` collection (one document per row)
- Pure aggregation of a transaction list into an `AnalyticsSummary`
- Dask is used for the partitioned transaction report
- Pydantic models validate transactions, uploads, withdrawals and summaries
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
