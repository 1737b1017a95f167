"""Statement ingestion: CSV parsing and transaction loading."""
