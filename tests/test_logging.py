"""Tests for structured logging."""
import json

from memweave.logging import LogLevel, get_logger


def _messages(caplog, name):
    return [record.getMessage() for record in caplog.records if record.name == name]


class TestStructuredLogger:
    """JSON and text records."""

    def test_json_record(self, caplog):
        logger = get_logger("memweave.test.json", session="s1")

        logger.info("Selected items", kept=3)

        [message] = _messages(caplog, "memweave.test.json")
        payload = json.loads(message)
        assert payload["level"] == "info"
        assert payload["message"] == "Selected items"
        assert payload["session"] == "s1"
        assert payload["kept"] == 3
        assert "timestamp" in payload

    def test_text_record(self, caplog):
        logger = get_logger("memweave.test.text", json_format=False)

        logger.warning("Budget tight", remaining=12)

        assert _messages(caplog, "memweave.test.text") == ["Budget tight remaining=12"]

    def test_level_filters(self, caplog):
        logger = get_logger("memweave.test.level", level=LogLevel.WARNING)

        logger.debug("hidden")
        logger.info("hidden")
        logger.error("shown")

        assert len(_messages(caplog, "memweave.test.level")) == 1

    def test_log_window(self, caplog):
        logger = get_logger("memweave.test.window")

        logger.log_window(total_items=4, total_tokens=120, budget_total=128000, truncated=False)

        payload = json.loads(_messages(caplog, "memweave.test.window")[0])
        assert payload["message"] == "Context window built"
        assert payload["total_tokens"] == 120
        assert payload["truncated"] is False
