from __future__ import annotations

import io
import logging
from pathlib import Path

from royalty_pipeline.logging_config import configure_logging


def test_configure_logging_adds_stream_handler() -> None:
    # Ensure configuring logging doesn't raise and attaches a StreamHandler
    configure_logging(None)
    root = logging.getLogger()
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_configure_logging_writes_file_and_quiets_driver(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "pipeline.log"
    configure_logging(log_path)

    logging.getLogger("royalty_pipeline.test").info("hello statement")
    for h in logging.getLogger().handlers:
        h.flush()

    assert "hello statement" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("pymongo").level == logging.WARNING

    configure_logging(None)


def test_configure_logging_uses_given_stream() -> None:
    buf = io.StringIO()
    configure_logging(None, stream=buf)

    logging.getLogger("royalty_pipeline.test").info("to the side channel")

    assert "to the side channel" in buf.getvalue()
    configure_logging(None)
