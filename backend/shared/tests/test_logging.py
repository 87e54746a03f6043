import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1

        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_no_log_file_under_pytest(self, tmp_path):
        assert setup_logging(log_dir=tmp_path / "engine") is None
        assert not (tmp_path / "engine").exists()

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "engine"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_log_file_has_datetime_in_name(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "engine")

        assert log_path is not None
        assert log_path.name == "2025-03-15_10-30-45.log"

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=str(tmp_path / "nested" / "dir"))

        structlog.get_logger("test.writes_to_file").info("hello from test")

        assert log_path is not None
        assert "hello from test" in log_path.read_text()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    @pytest.mark.usefixtures("_allow_file_logging")
    def test_json_mode_produces_valid_json(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "engine")

        structlog.contextvars.bind_contextvars(game_id="g1")
        structlog.get_logger("test.json").info("action applied", status=_Status.X_WON, version=3)
        structlog.contextvars.clear_contextvars()

        assert log_path is not None
        lines = log_path.read_text().strip().splitlines()
        parsed = json.loads(lines[0])
        assert parsed["event"] == "action applied"
        assert parsed["game_id"] == "g1"
        assert parsed["status"] == "X_won"
        assert parsed["version"] == 3

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "invalid_value")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class _Status(Enum):
    X_WON = "X_won"
    DRAW = "draw"


class TestSerializeEnums:
    def test_replaces_enum_with_value(self):
        result = _serialize_enums(None, "", {"status": _Status.DRAW, "msg": "hello"})
        assert result == {"status": "draw", "msg": "hello"}

    def test_replaces_enum_inside_dict_value(self):
        result = _serialize_enums(None, "", {"data": {"status": _Status.X_WON, "count": 3}})
        assert result["data"] == {"status": "X_won", "count": 3}

    def test_replaces_enum_inside_sequence(self):
        result = _serialize_enums(None, "", {"statuses": (_Status.X_WON, _Status.DRAW)})
        assert result["statuses"] == ["X_won", "draw"]

    def test_leaves_non_enum_values_unchanged(self):
        result = _serialize_enums(None, "", {"count": 42, "name": "test"})
        assert result == {"count": 42, "name": "test"}
