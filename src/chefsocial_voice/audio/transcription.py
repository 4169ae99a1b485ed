"""Speech-to-text client using the OpenAI Whisper API.

Uploads a recording with bounded retry/backoff and normalizes the provider
response into a ``TranscriptionResult``.
"""

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from chefsocial_voice.audio.models import AudioFile, TranscriptionResult, TranscriptionSegment
from chefsocial_voice.constants import (
    DEFAULT_SEGMENT_CONFIDENCE,
    DEFAULT_STT_LANGUAGE,
    DEFAULT_STT_MODEL,
    TRANSCRIPTION_BASE_DELAY_S,
    TRANSCRIPTION_MAX_ATTEMPTS,
    TRANSCRIPTION_TIMEOUT_S,
)
from chefsocial_voice.exceptions import ConfigError, TranscriptionError
from chefsocial_voice.utils.logger import get_logger
from chefsocial_voice.utils.retry import call_with_retry

logger = get_logger(__name__)


@dataclass(frozen=True)
class TranscriptionConfig:
    """Transcription settings."""
    model: str = DEFAULT_STT_MODEL
    language: str = DEFAULT_STT_LANGUAGE
    prompt: str | None = None
    temperature: float = 0.0
    max_attempts: int = TRANSCRIPTION_MAX_ATTEMPTS
    base_delay: float = TRANSCRIPTION_BASE_DELAY_S
    timeout: float = TRANSCRIPTION_TIMEOUT_S

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")


class TranscriptionClient:
    """
    Speech-to-text client.

    Each attempt is an independent upload bounded by ``timeout``; failed
    attempts are retried after 1s, 2s, ... (doubling). When every attempt
    fails a ``TranscriptionError`` is raised with the last provider error as
    its cause.

    Example:
        client = TranscriptionClient(AsyncOpenAI(api_key=key))
        result = await client.transcribe(audio_file)
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        config: TranscriptionConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        """
        Initialize transcription client.

        Args:
            client: Configured OpenAI client
            config: Transcription settings
            sleep: Awaitable sleep used between attempts
        """
        self.client = client
        self.config = config or TranscriptionConfig()
        self._sleep = sleep

    async def transcribe(self, audio: AudioFile, language: str | None = None) -> TranscriptionResult:
        """
        Transcribe a recording.

        Args:
            audio: File to upload
            language: Language override (None to use config)

        Returns:
            TranscriptionResult

        Raises:
            TranscriptionError: Every attempt failed
        """
        lang = language or self.config.language
        start_time = time.time()
        attempts = 0

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await asyncio.wait_for(
                self._request(audio, lang),
                timeout=self.config.timeout
            )

        try:
            response = await call_with_retry(
                attempt,
                max_retries=self.config.max_attempts - 1,
                base_delay=self.config.base_delay,
                sleep=self._sleep,
                name="transcription"
            )
        except Exception as e:
            raise TranscriptionError(
                f"Transcription failed after {attempts} attempts",
                attempts=attempts,
                context={"file": audio.name, "size": audio.size},
                cause=e
            ) from e

        processing_time = (time.time() - start_time) * 1000
        result = normalize_response(response, lang, processing_time)
        logger.info(
            f"Transcribed {audio.name} in {processing_time:.0f}ms "
            f"({len(result.segments)} segments, confidence {result.confidence:.2f})"
        )
        return result

    async def _request(self, audio: AudioFile, language: str) -> Any:
        return await self.client.audio.transcriptions.create(
            model=self.config.model,
            file=(audio.name, audio.data, audio.mime_type.split(";", 1)[0]),
            language=language,
            prompt=self.config.prompt,
            temperature=self.config.temperature,
            response_format="verbose_json",
            timestamp_granularities=["segment"]
        )


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def segment_confidence(segment: Any) -> float:
    """
    Confidence for one provider segment.

    Uses an explicit ``confidence`` when present, otherwise ``exp(avg_logprob)``,
    otherwise the default.
    """
    confidence = _field(segment, "confidence")
    if confidence is not None:
        return min(max(float(confidence), 0.0), 1.0)

    avg_logprob = _field(segment, "avg_logprob")
    if avg_logprob is not None:
        return min(max(math.exp(float(avg_logprob)), 0.0), 1.0)

    return DEFAULT_SEGMENT_CONFIDENCE


def normalize_response(response: Any, language: str, processing_time: float = 0.0) -> TranscriptionResult:
    """
    Map a provider response onto ``TranscriptionResult``.

    Args:
        response: verbose_json response object, dict or plain string
        language: Requested language, used when the provider omits one
        processing_time: Elapsed milliseconds

    Returns:
        TranscriptionResult
    """
    if isinstance(response, str):
        return TranscriptionResult(
            text=response.strip(),
            confidence=DEFAULT_SEGMENT_CONFIDENCE,
            language=language,
            processing_time=processing_time,
        )

    segments = tuple(
        TranscriptionSegment(
            text=str(_field(seg, "text", "")).strip(),
            start=float(_field(seg, "start", 0.0)),
            end=float(_field(seg, "end", 0.0)),
            confidence=segment_confidence(seg),
        )
        for seg in (_field(response, "segments") or [])
    )

    if segments:
        confidence = sum(s.confidence for s in segments) / len(segments)
    else:
        confidence = DEFAULT_SEGMENT_CONFIDENCE

    return TranscriptionResult(
        text=str(_field(response, "text", "")).strip(),
        confidence=confidence,
        language=_field(response, "language") or language,
        segments=segments,
        processing_time=processing_time,
    )


def create_transcription_client(
    api_key: str | None,
    config: TranscriptionConfig | None = None
) -> TranscriptionClient:
    """
    Create a TranscriptionClient with its own OpenAI client.

    Raises:
        ConfigError: No API key
    """
    if not api_key:
        raise ConfigError(
            "OpenAI API key is required for transcription",
            config_key="OPENAI_API_KEY"
        )
    return TranscriptionClient(AsyncOpenAI(api_key=api_key), config=config)
