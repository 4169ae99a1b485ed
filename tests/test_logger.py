"""Tests for logging helpers."""

import json
import logging
from pathlib import Path

from chefsocial_voice.utils.logger import SensitiveFormatter, SessionLogger, get_logger


class TestSessionLogger:
    """Test SessionLogger functionality."""

    def test_init(self, temp_session_dir):
        """Test SessionLogger initialization."""
        logger = SessionLogger(temp_session_dir)

        assert logger.session_dir == Path(temp_session_dir)
        assert logger.transcript_log_path == Path(temp_session_dir) / "transcripts.jsonl"
        assert logger.content_log_path == Path(temp_session_dir) / "content.jsonl"
        assert logger.validation_log_path == Path(temp_session_dir) / "validations.jsonl"
        assert logger.error_log_path == Path(temp_session_dir) / "errors.log"

    def test_init_creates_directory(self, tmp_path):
        """Test that init creates the session directory."""
        session_dir = tmp_path / "new_session_dir"
        assert not session_dir.exists()

        SessionLogger(str(session_dir))
        assert session_dir.is_dir()

    def test_log_transcription(self, temp_session_dir):
        """Test logging a transcription."""
        logger = SessionLogger(temp_session_dir)

        logger.log_transcription({"text": "Fresh truffle risotto", "confidence": 0.9})

        with open(logger.transcript_log_path) as f:
            record = json.loads(f.read().strip())
        assert record["text"] == "Fresh truffle risotto"
        assert record["confidence"] == 0.9
        assert "logged_at" in record

    def test_log_content_multiple(self, temp_session_dir):
        """Test logging several posts appends lines."""
        logger = SessionLogger(temp_session_dir)

        for platform in ("instagram", "tiktok", "facebook"):
            logger.log_content({"platform": platform, "content": "Tonight only"})

        with open(logger.content_log_path) as f:
            lines = f.readlines()
        assert [json.loads(line)["platform"] for line in lines] == ["instagram", "tiktok", "facebook"]

    def test_log_validation(self, temp_session_dir):
        """Test logging a validation outcome."""
        logger = SessionLogger(temp_session_dir)

        logger.log_validation("tiktok", {"valid": False, "issues": ["Too many hashtags"]})

        with open(logger.validation_log_path) as f:
            record = json.loads(f.readline())
        assert record["platform"] == "tiktok"
        assert record["valid"] is False

    def test_log_error(self, temp_session_dir):
        """Test logging error messages."""
        logger = SessionLogger(temp_session_dir)

        logger.log_error("Transcription failed", ValueError("timeout"))

        content = logger.error_log_path.read_text()
        assert "Transcription failed" in content
        assert "ValueError: timeout" in content

    def test_log_error_without_exception(self, temp_session_dir):
        """Test logging error without exception."""
        logger = SessionLogger(temp_session_dir)

        logger.log_error("Simple error")

        content = logger.error_log_path.read_text()
        assert "Simple error" in content
        assert "Exception:" not in content

    def test_get_session_info(self, temp_session_dir):
        """Test getting session info."""
        logger = SessionLogger(temp_session_dir)
        info = logger.get_session_info()

        assert info["session_dir"] == temp_session_dir
        assert info["content_log_path"].endswith("content.jsonl")

    def test_unicode_content(self, temp_session_dir):
        """Test logging with unicode characters."""
        logger = SessionLogger(temp_session_dir)

        logger.log_content({"content": "Crème brûlée night 🍮"})

        with open(logger.content_log_path, encoding="utf-8") as f:
            assert "Crème brûlée night 🍮" in f.read()


class TestSensitiveFormatter:
    """Test masking of secrets in log output."""

    def _format(self, message: str) -> str:
        formatter = SensitiveFormatter("%(message)s")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
        return formatter.format(record)

    def test_masks_openai_key(self):
        """Test sk- keys are redacted."""
        output = self._format("Using key sk-abcdefghijklmnopqrstuvwxyz123456")
        assert "abcdefghijklmnopqrstuvwxyz" not in output
        assert "REDACTED" in output

    def test_masks_api_key_assignment(self):
        """Test api_key=value pairs are redacted."""
        output = self._format("api_key=secret-value")
        assert "secret-value" not in output

    def test_masks_bearer_token(self):
        """Test bearer tokens are redacted."""
        output = self._format("Authorization: Bearer abc.def.ghi")
        assert "abc.def.ghi" not in output

    def test_plain_message_unchanged(self):
        """Test messages without secrets pass through."""
        assert self._format("Recording started") == "Recording started"


def test_get_logger_cached():
    """Test loggers are cached and configured once."""
    first = get_logger("chefsocial_voice.test")
    second = get_logger("chefsocial_voice.test")

    assert first is second
    assert len(first.handlers) == 1
    assert first.level == logging.INFO
