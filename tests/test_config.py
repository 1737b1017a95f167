from __future__ import annotations

from pathlib import Path

import pytest
from royalty_pipeline.config import DEFAULT_TRANSACTION_LIMIT, get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("MONGO_URI", "MONGO_DB", "MONGO_TLS", "STATEMENT_DIR", "TRANSACTION_LIMIT"):
        monkeypatch.delenv(name, raising=False)

    s = get_settings()
    assert s.mongo_uri == "mongodb://localhost:27017"
    assert s.mongo_db == "royalties"
    assert s.mongo_tls is False
    assert s.statement_dir == Path("data/statements")
    assert s.transaction_limit == DEFAULT_TRANSACTION_LIMIT


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_DB", "royalties_test")
    monkeypatch.setenv("MONGO_TLS", "True")
    monkeypatch.setenv("TRANSACTION_LIMIT", " 250 ")

    s = get_settings()
    assert s.mongo_db == "royalties_test"
    assert s.mongo_tls is True
    assert s.transaction_limit == 250


@pytest.mark.parametrize("raw", ["0", "-5", "many"])
def test_settings_reject_bad_limit(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("TRANSACTION_LIMIT", raw)
    with pytest.raises(RuntimeError):
        get_settings()
