"""Command-line interface for the royalty pipeline.

Provides subcommands: `ingest`, `summary`, `report`, and `balance`. Each
command is implemented as a `cmd_*` function that accepts an argparse
namespace.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, List
from typing import cast, Any as TypingAny

from dotenv import load_dotenv
import pandas as pd
import dask.dataframe as dd

from royalty_pipeline.config import Settings, get_settings
from royalty_pipeline.logging_config import configure_logging
from royalty_pipeline.db import (
    TRANSACTIONS,
    ensure_transaction_indexes,
    get_client,
    get_db,
)

# INGEST
from royalty_pipeline.ingest.load_transactions import ingest_statement

# CLEAN
from royalty_pipeline.clean.transform import prepare_transactions_ddf

# AGGREGATE
from royalty_pipeline.aggregate.load_summary import load_summary
from royalty_pipeline.aggregate.build_report import DEFAULT_TOP_N, build_report

# EARNINGS
from royalty_pipeline.earnings.ledger import WithdrawalError, check_withdrawal, load_balance

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _connect(s: Settings) -> Any:
    """Return the configured database handle."""
    client = get_client(s.mongo_uri, tls=s.mongo_tls)
    return get_db(client, s.mongo_db)


def _emit(payload: Any, output: Path | None = None) -> None:
    """Print `payload` as JSON, or write it to `output` when given."""
    text = json.dumps(payload, indent=2, default=str)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    log.info("Wrote %s", output)


def _resolve_statements(paths: List[Path], statement_dir: Path) -> List[Path]:
    """Expand directories to the CSV files they contain; relative names fall back to `statement_dir`."""
    resolved: List[Path] = []
    for p in paths:
        if not p.exists() and not p.is_absolute() and (statement_dir / p).exists():
            p = statement_dir / p
        if p.is_dir():
            resolved.extend(sorted(p.glob("*.csv")))
        else:
            resolved.append(p)
    return resolved


def _load_collection_to_ddf(
    collection: Any,
    projection: dict[str, Any],
    batch_size: int = 50_000,
) -> Any:
    """Safely load a MongoDB collection into a Dask DataFrame using batched reads."""
    cursor = collection.find({}, projection).batch_size(batch_size)

    pdf_batches: List[pd.DataFrame] = []
    buffer: List[dict[str, Any]] = []

    for doc in cursor:
        buffer.append(doc)
        if len(buffer) >= batch_size:
            pdf_batches.append(pd.DataFrame(buffer))
            buffer.clear()

    if buffer:
        pdf_batches.append(pd.DataFrame(buffer))

    dd_mod = cast(TypingAny, dd)
    if not pdf_batches:
        return dd_mod.from_pandas(pd.DataFrame(), npartitions=1)

    pdf = pd.concat(pdf_batches, ignore_index=True)
    nparts = max(1, len(pdf) // 200_000)

    log.info("Loaded %d documents into %d Dask partitions", len(pdf), nparts)
    return dd_mod.from_pandas(pdf, npartitions=nparts)


# --------------------------------------------------
# INGEST
# --------------------------------------------------
def cmd_ingest(args: argparse.Namespace) -> None:
    """Register and process each statement CSV into `transactions`.

    Args:
        args: argparse namespace with `paths` and `uploaded_by`.
    """
    s = get_settings()
    db = _connect(s)
    ensure_transaction_indexes(db[TRANSACTIONS])

    statements = _resolve_statements(args.paths, s.statement_dir)
    if not statements:
        raise RuntimeError("No statement files found.")

    for path in statements:
        if not path.is_file():
            log.error("Statement not found: %s", path)
            continue
        upload_id, status = ingest_statement(db, path, args.uploaded_by)
        log.info("Upload %s (%s): %s", upload_id, path.name, status.value)

    log.info("Ingest completed.")


# --------------------------------------------------
# SUMMARY
# --------------------------------------------------
def cmd_summary(args: argparse.Namespace) -> None:
    """Aggregate the most recent transactions into the dashboard summary."""
    s = get_settings()
    db = _connect(s)

    limit = args.limit or s.transaction_limit
    summary = load_summary(db[TRANSACTIONS], limit)
    _emit(summary.model_dump(by_alias=True), args.output)


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> None:
    """Compute the Dask transaction report over all stored transactions."""
    s = get_settings()
    db = _connect(s)

    ddf = _load_collection_to_ddf(db[TRANSACTIONS], {"_id": False, "rawData": False})
    ddf = prepare_transactions_ddf(ddf)

    report = build_report(ddf, start=args.start, end=args.end, top_n=args.top_n)
    _emit(report, args.output)


# --------------------------------------------------
# BALANCE
# --------------------------------------------------
def cmd_balance(args: argparse.Namespace) -> None:
    """Print a user's ledger balance.

    With `--amount`, also reports whether a withdrawal of that amount would
    be accepted.
    """
    s = get_settings()
    db = _connect(s)

    b = load_balance(db, args.user_id, s.transaction_limit)
    payload: dict[str, Any] = {
        "userId": args.user_id,
        "totalRevenue": b.total_revenue,
        "withdrawn": b.withdrawn,
        "pending": b.pending,
        "balance": b.balance,
        "available": b.available,
    }

    if args.amount is not None:
        try:
            check_withdrawal(b, args.amount)
        except WithdrawalError as e:
            log.warning("Withdrawal check failed for user %s: %s", args.user_id, e)
            payload["withdrawal"] = {"amount": args.amount, "allowed": False, "reason": str(e)}
        else:
            payload["withdrawal"] = {"amount": args.amount, "allowed": True, "reason": None}

    _emit(payload)


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    The returned parser has subcommands `ingest`, `summary`, `report`, and
    `balance`.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="royalty_pipeline")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ingest = sub.add_parser("ingest")
    p_ingest.add_argument("paths", nargs="+", type=Path)
    p_ingest.add_argument("--uploaded-by", default=None)

    p_summary = sub.add_parser("summary")
    p_summary.add_argument("--limit", type=int, default=None)
    p_summary.add_argument("--output", type=Path, default=None)

    p_report = sub.add_parser("report")
    p_report.add_argument("--start", type=date.fromisoformat, default=None)
    p_report.add_argument("--end", type=date.fromisoformat, default=None)
    p_report.add_argument("--top-n", type=int, default=DEFAULT_TOP_N)
    p_report.add_argument("--output", type=Path, default=None)

    p_balance = sub.add_parser("balance")
    p_balance.add_argument("user_id")
    p_balance.add_argument("--amount", type=float, default=None)

    return p


def main() -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    configure_logging(Path("logs/pipeline.log"), stream=sys.stderr)

    args = build_parser().parse_args()

    if args.cmd == "ingest":
        cmd_ingest(args)
    elif args.cmd == "summary":
        cmd_summary(args)
    elif args.cmd == "report":
        cmd_report(args)
    elif args.cmd == "balance":
        cmd_balance(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
