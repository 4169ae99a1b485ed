"""Data structures shared by the capture, processing and transcription stages."""

import time
from dataclasses import asdict, dataclass, field
from typing import Any

from chefsocial_voice.audio.quality import AudioQuality
from chefsocial_voice.constants import (
    DEFAULT_CHANNEL_COUNT,
    DEFAULT_MAX_DURATION_S,
    DEFAULT_MIN_DURATION_S,
    DEFAULT_QUALITY_THRESHOLD,
    DEFAULT_SAMPLE_RATE,
)


@dataclass(frozen=True)
class VoiceRecorderConfig:
    """Recorder settings, fixed for the lifetime of a session."""
    max_duration: float = DEFAULT_MAX_DURATION_S  # seconds
    min_duration: float = DEFAULT_MIN_DURATION_S  # seconds
    quality_threshold: float = DEFAULT_QUALITY_THRESHOLD  # 0-100
    auto_stop: bool = True
    noise_reduction: bool = True
    echo_cancellation: bool = True
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channel_count: int = DEFAULT_CHANNEL_COUNT

    def __post_init__(self):
        if self.max_duration <= 0:
            raise ValueError("max_duration must be positive")
        if self.min_duration < 0:
            raise ValueError("min_duration must be >= 0")
        if self.sample_rate <= 0 or self.channel_count <= 0:
            raise ValueError("sample_rate and channel_count must be positive")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class AudioChunk:
    """One slice of captured 16-bit PCM."""
    data: bytes
    quality: AudioQuality
    duration: float  # seconds since capture start when the chunk was cut
    timestamp: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        """Payload size in bytes."""
        return len(self.data)


@dataclass(frozen=True)
class AudioFile:
    """An encoded recording ready for validation and upload.

    ``chunk_boundaries`` holds the byte offset (within ``data``) at which
    each source chunk starts, so the payload can be split back into its
    chunks. ``header_size`` is the container header length preceding the
    first chunk.
    """
    data: bytes
    mime_type: str
    name: str = "recording.wav"
    sample_rate: int | None = None
    channels: int | None = None
    chunk_boundaries: tuple[int, ...] = ()
    header_size: int = 0

    @property
    def size(self) -> int:
        """File size in bytes."""
        return len(self.data)

    @property
    def duration(self) -> float | None:
        """Duration in seconds for PCM payloads, None when unknown."""
        if not self.sample_rate or not self.channels:
            return None
        payload = self.size - self.header_size
        return payload / (self.sample_rate * self.channels * 2)

    def split_chunks(self) -> list[bytes]:
        """Split the payload back into the chunks it was assembled from."""
        if not self.chunk_boundaries:
            return [self.data[self.header_size:]] if self.size > self.header_size else []

        edges = list(self.chunk_boundaries) + [self.size]
        return [self.data[start:end] for start, end in zip(edges, edges[1:])]


@dataclass(frozen=True)
class TranscriptionSegment:
    """Timestamped piece of a transcript."""
    text: str
    start: float
    end: float
    confidence: float


@dataclass(frozen=True)
class TranscriptionResult:
    """Normalized speech-to-text output."""
    text: str
    confidence: float
    language: str
    segments: tuple[TranscriptionSegment, ...] = ()
    processing_time: float = 0.0  # ms

    @property
    def is_empty(self) -> bool:
        """True when no speech was recognized."""
        return not self.text.strip()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "language": self.language,
            "segments": [asdict(s) for s in self.segments],
            "processing_time": self.processing_time,
        }
