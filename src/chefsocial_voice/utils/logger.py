"""Logging helpers: masked console loggers and JSONL session logs."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

# Cache for loggers
_loggers: dict[str, logging.Logger] = {}


class SensitiveFormatter(logging.Formatter):
    """Formatter that masks sensitive information like API keys and passwords."""

    # Patterns for sensitive data (key names and their values)
    SENSITIVE_PATTERNS = [
        (r'(api_key|api-key|apiKey|secret|token|password|credential|auth_key|auth-key)'
         r'[\'"]?\s*[:=]\s*[\'"]?([^\s\'",}]+)', r'\1=***REDACTED***'),
        (r'Bearer\s+([A-Za-z0-9\-._~+/]+)', r'Bearer ***REDACTED***'),
        (r'(sk-[a-zA-Z0-9_\-]{20,})', r'sk-***REDACTED***'),
    ]

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record and mask sensitive information.

        Args:
            record: Log record to format

        Returns:
            Formatted and sanitized log message
        """
        original = super().format(record)
        return self._mask_sensitive(original)

    def _mask_sensitive(self, text: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
        return text


def get_logger(name: str, use_sensitive_formatter: bool = True) -> logging.Logger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name (usually __name__)
        use_sensitive_formatter: Whether to use SensitiveFormatter to mask sensitive data

    Returns:
        Configured logger instance
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        if use_sensitive_formatter:
            handler.setFormatter(SensitiveFormatter(fmt))
        else:
            handler.setFormatter(logging.Formatter(fmt))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    _loggers[name] = logger
    return logger


class SessionLogger:
    """Per-run audit log with JSONL output.

    One directory per run, one JSONL file per record kind, plus a plain
    text error log.
    """

    def __init__(self, session_dir: str):
        """
        Initialize session logger.

        Args:
            session_dir: Directory for session logs
        """
        self.session_dir = Path(session_dir)
        self.session_dir.mkdir(parents=True, exist_ok=True)

        self.transcript_log_path = self.session_dir / "transcripts.jsonl"
        self.content_log_path = self.session_dir / "content.jsonl"
        self.validation_log_path = self.session_dir / "validations.jsonl"
        self.error_log_path = self.session_dir / "errors.log"

        self._logger = get_logger(f"session.{id(self)}")

    def _append(self, path: Path, record: dict[str, Any]) -> None:
        record = {"logged_at": datetime.now().isoformat(), **record}
        with open(path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(record, ensure_ascii=False) + '\n')

    def log_transcription(self, transcription: dict[str, Any]) -> None:
        """
        Log a transcription result.

        Args:
            transcription: Transcription dictionary (``TranscriptionResult.to_dict()``)
        """
        self._append(self.transcript_log_path, transcription)

    def log_content(self, content: dict[str, Any]) -> None:
        """
        Log one generated post.

        Args:
            content: Content dictionary (``GeneratedContent.to_dict()``)
        """
        self._append(self.content_log_path, content)

    def log_validation(self, platform: str, validation: dict[str, Any]) -> None:
        """Log a validation outcome for a platform."""
        self._append(self.validation_log_path, {"platform": platform, **validation})

    def log_error(self, message: str, exception: Exception | None = None) -> None:
        """
        Log error to error file.

        Args:
            message: Error message
            exception: Optional exception object
        """
        timestamp = datetime.now().isoformat()
        error_msg = f"[{timestamp}] {message}"
        if exception:
            error_msg += f"\n  Exception: {type(exception).__name__}: {exception}"

        with open(self.error_log_path, 'a', encoding='utf-8') as f:
            f.write(error_msg + '\n')

    def get_session_info(self) -> dict[str, Any]:
        """
        Get session information.

        Returns:
            Session info dictionary
        """
        return {
            "session_dir": str(self.session_dir),
            "transcript_log_path": str(self.transcript_log_path),
            "content_log_path": str(self.content_log_path),
            "validation_log_path": str(self.validation_log_path),
            "error_log_path": str(self.error_log_path),
        }

    # Delegate standard logging methods to the internal logger
    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        self._logger.error(msg, *args, **kwargs)
