"""Tests for logging utilities."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from sitesync import logging_utils


def _reset_logger() -> logging.Logger:
    logger = logging.getLogger("sitesync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    return logger


def test_setup_logging_creates_rotating_file(tmp_path: Path):
    logger = _reset_logger()
    log_path = logging_utils.setup_logging(tmp_path, level="INFO", structured=False)

    assert log_path == tmp_path / "logs" / "sitesync.log"
    assert log_path.exists()

    file_handlers = [
        handler for handler in logger.handlers if isinstance(handler, RotatingFileHandler)
    ]
    assert len(file_handlers) == 1
    assert file_handlers[0].baseFilename == str(log_path)
    assert logger.level == logging.INFO
    _reset_logger()


def test_setup_logging_is_idempotent(tmp_path: Path):
    logger = _reset_logger()
    logging_utils.setup_logging(tmp_path, level="INFO")
    handler_count = len(logger.handlers)

    logging_utils.setup_logging(tmp_path, level="INFO")
    assert len(logger.handlers) == handler_count
    _reset_logger()


def test_structured_log_carries_extra(tmp_path: Path):
    logger = _reset_logger()
    logging_utils.setup_logging(tmp_path, level="INFO", structured=True)

    logging.getLogger("sitesync.deploy.engine").info(
        "deploy submitted", extra={"extra": {"site_id": "abc", "deploy_id": "d1"}}
    )
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "logs" / "sitesync.jsonl").read_text(encoding="utf-8").splitlines()
    entry = json.loads(lines[-1])
    assert entry["message"] == "deploy submitted"
    assert entry["logger"] == "sitesync.deploy.engine"
    assert entry["extra"] == {"site_id": "abc", "deploy_id": "d1"}
    _reset_logger()


def test_setup_logging_falls_back_when_permission_denied(tmp_path: Path, monkeypatch):
    _reset_logger()
    home_dir = tmp_path / "home"
    primary_parent = home_dir / "logs"
    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):
        if str(self).startswith(str(primary_parent)):
            raise PermissionError
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)
    fallback_root = tmp_path / "fallback"
    monkeypatch.setattr(logging_utils, "FALLBACK_ROOT", fallback_root)

    log_path = logging_utils.setup_logging(home_dir, level="INFO")
    expected = fallback_root / "logs" / "sitesync.log"

    assert log_path == expected
    assert expected.exists()
    assert (fallback_root / "logs" / "sitesync.jsonl").exists()
    _reset_logger()


def test_setup_logging_only_configures_sitesync_logger(tmp_path: Path):
    _reset_logger()
    other = logging.getLogger("urllib3")
    before = other.level

    logging_utils.setup_logging(tmp_path, level="DEBUG")

    assert other.level == before
    assert logging.getLogger("sitesync").propagate is False
    _reset_logger()
