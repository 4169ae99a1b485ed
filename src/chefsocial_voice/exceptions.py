"""Custom exceptions for the ChefSocial voice pipeline.

Provides a hierarchy of exceptions for proper error handling
and differentiation of error types.
"""

from datetime import datetime
from typing import Any

# ============================================================================
# Base Exception
# ============================================================================

class ChefSocialError(Exception):
    """Base exception for all ChefSocial voice errors.

    Attributes:
        message: Human-readable error message
        context: Dictionary with additional error context
        cause: Original exception that caused this error
        timestamp: When the error occurred
        error_code: Unique error code for this exception type
    """

    error_code: str = "CS000"

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize ChefSocialError.

        Args:
            message: Human-readable error message
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

    def __str__(self) -> str:
        """Return string representation with context."""
        parts = [self.message]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"[{context_str}]")

        if self.cause:
            parts.append(f"caused by: {type(self.cause).__name__}: {self.cause}")

        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "cause": type(self.cause).__name__ if self.cause else None,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> dict[str, Any]:
        """Convert exception to JSON-serializable dictionary for API responses.

        Returns:
            Dictionary containing error_code, error_type, and message.
        """
        return {
            "error_code": self.error_code,
            "error_type": self.__class__.__name__,
            "message": str(self),
        }


# ============================================================================
# Voice Errors
# ============================================================================

class VoiceError(ChefSocialError):
    """Base exception for capture, processing and transcription errors.

    Every voice error maps onto the ``{type, message, recoverable}`` payload
    that is emitted to session listeners and returned to UI callers.

    Attributes:
        error_type: Short category name (permission, quality, ...)
        recoverable: Whether the user can retry within the same flow
    """

    error_code: str = "CS100"
    error_type: str = "processing"
    recoverable: bool = False

    def to_payload(self) -> dict[str, Any]:
        """Structured payload for event listeners."""
        return {
            "type": self.error_type,
            "message": self.message,
            "recoverable": self.recoverable,
        }


class PermissionDeniedError(VoiceError):
    """Microphone access was denied or the device could not be opened."""

    error_code: str = "CS101"
    error_type: str = "permission"
    recoverable: bool = True


# Alias matching the capture error taxonomy
PermissionError = PermissionDeniedError


class DeviceBusyError(PermissionDeniedError):
    """The capture device is already held by another session."""

    error_code: str = "CS102"


class QualityError(VoiceError):
    """Recording too short or audio unusable."""

    error_code: str = "CS110"
    error_type: str = "quality"
    recoverable: bool = True


class ProcessingError(VoiceError):
    """Codec, encoding or device stream failure."""

    error_code: str = "CS120"
    error_type: str = "processing"
    recoverable: bool = False


class EmptyInputError(ProcessingError):
    """No audio chunks were available to assemble."""

    error_code: str = "CS121"


class TranscriptionError(VoiceError):
    """Speech-to-text provider failed after all retry attempts.

    Attributes:
        attempts: Number of attempts made before giving up
    """

    error_code: str = "CS130"
    error_type: str = "transcription"
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize TranscriptionError.

        Args:
            message: Human-readable error message
            attempts: Number of attempts made
            context: Additional context
            cause: Provider error from the final attempt
        """
        context = context or {}
        context.update({"attempts": attempts})

        super().__init__(message, context=context, cause=cause)
        self.attempts = attempts


class ValidationError(VoiceError):
    """Audio file or generated content violates a constraint.

    Attributes:
        issues: Every violated rule, in detection order
    """

    error_code: str = "CS140"
    error_type: str = "validation"
    recoverable: bool = True

    def __init__(
        self,
        message: str,
        issues: list[str] | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize ValidationError.

        Args:
            message: Human-readable error message
            issues: List of violated rules
            context: Additional context
            cause: Original exception
        """
        super().__init__(message, context=context, cause=cause)
        self.issues = list(issues or [])

    def to_payload(self) -> dict[str, Any]:
        """Structured payload including the violated rules."""
        payload = super().to_payload()
        payload["issues"] = self.issues
        return payload


# ============================================================================
# Content Errors
# ============================================================================

class ContentGenerationError(ChefSocialError):
    """Text generation failed for a platform or for the whole batch.

    Attributes:
        platform: Platform name, None for batch-level failures
    """

    error_code: str = "CS300"

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize ContentGenerationError.

        Args:
            message: Human-readable error message
            platform: Platform that failed
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        context.update({"platform": platform})

        super().__init__(message, context=context, cause=cause)
        self.platform = platform


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigError(ChefSocialError):
    """Error in configuration.

    Attributes:
        config_key: Configuration key that caused the error
        config_file: Configuration file path (if applicable)
    """

    error_code: str = "CS700"

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_file: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None
    ):
        """Initialize ConfigError.

        Args:
            message: Human-readable error message
            config_key: Configuration key
            config_file: Configuration file path
            context: Additional context
            cause: Original exception
        """
        context = context or {}
        context.update({
            "config_key": config_key,
            "config_file": config_file,
        })

        super().__init__(message, context=context, cause=cause)
        self.config_key = config_key
        self.config_file = config_file


__all__ = [
    # Base
    "ChefSocialError",
    # Voice
    "VoiceError",
    "PermissionDeniedError",
    "DeviceBusyError",
    "QualityError",
    "ProcessingError",
    "EmptyInputError",
    "TranscriptionError",
    "ValidationError",
    # Content
    "ContentGenerationError",
    # Config
    "ConfigError",
]
