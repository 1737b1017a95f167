from __future__ import annotations

import json
import logging
import sys
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from royalty_pipeline import cli
from royalty_pipeline.aggregate.build_report import DEFAULT_TOP_N
from royalty_pipeline.cli import _resolve_statements, build_parser
from royalty_pipeline.config import Settings
from royalty_pipeline.earnings.ledger import Balance


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        mongo_uri="mongodb://localhost:27017",
        mongo_db="royalties_test",
        mongo_tls=False,
        statement_dir=tmp_path,
        transaction_limit=100,
    )


def test_parser_report_dates() -> None:
    args = build_parser().parse_args(["report", "--start", "2024-01-01", "--end", "2024-06-30"])
    assert args.cmd == "report"
    assert args.start == date(2024, 1, 1)
    assert args.end == date(2024, 6, 30)
    assert args.top_n == DEFAULT_TOP_N


def test_parser_ingest_and_summary() -> None:
    p = build_parser()
    args = p.parse_args(["ingest", "a.csv", "b.csv", "--uploaded-by", "u1"])
    assert args.paths == [Path("a.csv"), Path("b.csv")]
    assert args.uploaded_by == "u1"

    args = p.parse_args(["summary", "--limit", "5"])
    assert args.limit == 5
    assert args.output is None


def test_resolve_statements_expands_directories(tmp_path: Path) -> None:
    (tmp_path / "b.csv").write_text("x\n", encoding="utf-8")
    (tmp_path / "a.csv").write_text("x\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("x\n", encoding="utf-8")

    assert _resolve_statements([tmp_path], tmp_path) == [tmp_path / "a.csv", tmp_path / "b.csv"]


@pytest.mark.parametrize(
    "amount, allowed",
    [(30.0, True), (80.0, False)],
)
def test_balance_checks_requested_withdrawal(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
    amount: float,
    allowed: bool,
) -> None:
    monkeypatch.setattr(cli, "get_settings", lambda: _settings(tmp_path))
    monkeypatch.setattr(cli, "_connect", lambda s: MagicMock())
    monkeypatch.setattr(
        cli,
        "load_balance",
        lambda db, user_id, limit: Balance(total_revenue=100.0, withdrawn=20.0, pending=10.0),
    )

    cli.cmd_balance(build_parser().parse_args(["balance", "u1", "--amount", str(amount)]))

    out = json.loads(capsys.readouterr().out)
    assert out["available"] == 70.0
    assert out["withdrawal"]["amount"] == amount
    assert out["withdrawal"]["allowed"] is allowed


def test_summary_stdout_is_pure_json(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    monkeypatch.setattr(sys, "argv", ["royalty-pipeline", "summary"])
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "get_settings", lambda: _settings(tmp_path))
    collection = MagicMock()
    collection.find.return_value.sort.return_value.limit.return_value.__iter__.return_value = iter([
        {"serviceType": "Spotify", "revenueUSD": 2.0, "quantity": 3, "transactionDate": "2024-01-01"},
    ])
    db = MagicMock()
    db.__getitem__.return_value = collection
    monkeypatch.setattr(cli, "_connect", lambda s: db)

    cli.main()
    captured = capsys.readouterr()

    assert json.loads(captured.out)["totalRevenue"] == 2.0
    assert "Aggregating 1 transactions" in captured.err

    for handler in logging.getLogger().handlers:
        handler.close()
    logging.getLogger().handlers.clear()
