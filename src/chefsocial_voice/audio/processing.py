"""Post-capture audio processing.

Turns captured chunks into one WAV file, optionally shrinks it for upload
(mono, 16kHz, dynamic-range compressed) and checks it against the upload
constraints of the speech-to-text provider.
"""

import io
import math
import mimetypes
import wave
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from scipy.signal import resample_poly

from chefsocial_voice.audio.models import AudioChunk, AudioFile, VoiceRecorderConfig
from chefsocial_voice.constants import (
    COMPRESSION_THRESHOLD_BYTES,
    COMPRESSOR_ATTACK_S,
    COMPRESSOR_KNEE_DB,
    COMPRESSOR_RATIO,
    COMPRESSOR_RELEASE_S,
    COMPRESSOR_THRESHOLD_DB,
    MAX_FILE_DURATION_S,
    MAX_UPLOAD_BYTES,
    MIN_UPLOAD_BYTES,
    SUPPORTED_AUDIO_TYPES,
    TRANSCRIPTION_SAMPLE_RATE,
)
from chefsocial_voice.exceptions import EmptyInputError, ProcessingError
from chefsocial_voice.utils.logger import get_logger

logger = get_logger(__name__)

WAV_MIME_TYPES = ("audio/wav", "audio/x-wav", "audio/wave")

_EXTENSION_TYPES = {
    ".wav": "audio/wav",
    ".webm": "audio/webm",
    ".mp3": "audio/mpeg",
    ".mp4": "audio/mp4",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
}


@dataclass(frozen=True)
class FileValidationResult:
    """Outcome of an upload constraint check."""
    valid: bool
    errors: list[str] = field(default_factory=list)


class AudioPostProcessor:
    """
    Assemble, compress and validate recordings.

    Example:
        processor = AudioPostProcessor(recorder_config)
        audio = processor.prepare_for_upload(chunks)
        result = processor.validate(audio)
    """

    def __init__(
        self,
        config: VoiceRecorderConfig | None = None,
        target_sample_rate: int = TRANSCRIPTION_SAMPLE_RATE,
        compression_threshold: int = COMPRESSION_THRESHOLD_BYTES,
        max_bytes: int = MAX_UPLOAD_BYTES,
        min_bytes: int = MIN_UPLOAD_BYTES,
        max_duration: float = MAX_FILE_DURATION_S,
        supported_types: Sequence[str] = SUPPORTED_AUDIO_TYPES
    ):
        """
        Initialize post-processor.

        Args:
            config: Recorder configuration (sample rate and channels of the PCM)
            target_sample_rate: Sample rate after compression
            compression_threshold: Files above this size are compressed for upload
            max_bytes: Largest accepted file
            min_bytes: Smallest accepted file
            max_duration: Longest accepted duration in seconds
            supported_types: Accepted MIME types
        """
        self.config = config or VoiceRecorderConfig()
        self.target_sample_rate = target_sample_rate
        self.compression_threshold = compression_threshold
        self.max_bytes = max_bytes
        self.min_bytes = min_bytes
        self.max_duration = max_duration
        self.supported_types = tuple(supported_types)

    def assemble(self, chunks: Sequence[AudioChunk]) -> AudioFile:
        """
        Concatenate chunk payloads in capture order into a WAV file.

        Args:
            chunks: Captured chunks

        Returns:
            WAV AudioFile recording where each chunk starts

        Raises:
            EmptyInputError: No chunks given
        """
        if not chunks:
            raise EmptyInputError("No audio recorded")

        pcm = b"".join(chunk.data for chunk in chunks)
        data = encode_wav(pcm, self.config.sample_rate, self.config.channel_count)
        header_size = len(data) - len(pcm)

        boundaries = []
        offset = header_size
        for chunk in chunks:
            boundaries.append(offset)
            offset += len(chunk.data)

        logger.debug(f"Assembled {len(chunks)} chunks into {format_file_size(len(data))}")
        return AudioFile(
            data=data,
            mime_type="audio/wav",
            name="recording.wav",
            sample_rate=self.config.sample_rate,
            channels=self.config.channel_count,
            chunk_boundaries=tuple(boundaries),
            header_size=header_size,
        )

    def compress(self, audio: AudioFile, quality_hint: float = 0.7) -> AudioFile:
        """
        Shrink a WAV recording for transcription.

        Downmixes to mono, resamples to the target rate, evens out loudness
        with a soft-knee compressor and peak-normalizes.

        Args:
            audio: WAV file
            quality_hint: 0-1, scales the normalization peak

        Returns:
            New 16-bit mono WAV AudioFile

        Raises:
            ProcessingError: Input is not decodable WAV
        """
        if base_mime_type(audio.mime_type) not in WAV_MIME_TYPES:
            raise ProcessingError(
                f"Cannot compress {audio.mime_type} audio",
                context={"mime_type": audio.mime_type}
            )

        samples, sample_rate = decode_wav(audio.data)

        mono = samples.mean(axis=1) if samples.ndim > 1 else samples
        if sample_rate != self.target_sample_rate and mono.size:
            divisor = math.gcd(self.target_sample_rate, sample_rate)
            mono = resample_poly(mono, self.target_sample_rate // divisor, sample_rate // divisor)

        compressed = apply_compressor(mono, self.target_sample_rate)

        peak = float(np.max(np.abs(compressed))) if compressed.size else 0.0
        if peak > 0:
            hint = min(max(quality_hint, 0.0), 1.0)
            compressed = compressed * ((0.5 + 0.45 * hint) / peak)

        pcm = (np.clip(compressed, -1.0, 1.0) * 32767.0).astype("<i2").tobytes()
        data = encode_wav(pcm, self.target_sample_rate, 1)

        logger.info(f"Audio compressed: {audio.size} -> {len(data)} bytes")
        return AudioFile(
            data=data,
            mime_type="audio/wav",
            name=audio.name,
            sample_rate=self.target_sample_rate,
            channels=1,
            chunk_boundaries=(),
            header_size=len(data) - len(pcm),
        )

    def prepare_for_upload(
        self,
        chunks: Sequence[AudioChunk],
        compress: bool = True,
        quality_hint: float = 0.7
    ) -> AudioFile:
        """
        Assemble chunks and compress the result when it is large.

        Args:
            chunks: Captured chunks
            compress: Allow compression
            quality_hint: Passed to ``compress``

        Returns:
            File ready for validation and upload
        """
        audio = self.assemble(chunks)
        if compress and audio.size > self.compression_threshold:
            return self.compress(audio, quality_hint)
        return audio

    def validate(self, audio: AudioFile) -> FileValidationResult:
        """
        Check upload constraints, reporting every violation.

        Args:
            audio: File to check

        Returns:
            FileValidationResult
        """
        errors = []

        if base_mime_type(audio.mime_type) not in self.supported_types:
            errors.append(f"Unsupported audio format: {audio.mime_type}")

        if audio.size > self.max_bytes:
            errors.append(
                f"File too large: {audio.size / 1024 / 1024:.1f}MB "
                f"(max: {self.max_bytes // (1024 * 1024)}MB)"
            )

        if audio.size < self.min_bytes:
            errors.append("File too small: May be corrupted")

        duration = audio.duration
        if duration is not None and duration > self.max_duration:
            errors.append(
                f"Recording too long: {format_duration(duration)} "
                f"(max: {format_duration(self.max_duration)})"
            )

        return FileValidationResult(valid=not errors, errors=errors)


# ============================================================================
# WAV helpers
# ============================================================================

def base_mime_type(mime_type: str) -> str:
    """Strip codec parameters: ``audio/webm;codecs=opus`` -> ``audio/webm``."""
    return mime_type.split(";", 1)[0].strip().lower()


def encode_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap 16-bit little-endian PCM into a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def decode_wav(data: bytes) -> tuple[np.ndarray, int]:
    """
    Decode a PCM WAV file into float samples.

    Returns:
        Tuple of (samples shaped (frames,) or (frames, channels), sample rate)

    Raises:
        ProcessingError: Not a PCM WAV file
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            sample_rate = wav.getframerate()
            frames = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as e:
        raise ProcessingError("Failed to decode WAV audio", cause=e) from e

    if width == 1:
        samples = (np.frombuffer(frames, dtype=np.uint8).astype(np.float64) - 128.0) / 128.0
    elif width == 2:
        samples = np.frombuffer(frames, dtype="<i2").astype(np.float64) / 32768.0
    elif width == 4:
        samples = np.frombuffer(frames, dtype="<i4").astype(np.float64) / 2147483648.0
    else:
        raise ProcessingError(
            f"Unsupported WAV sample width: {width * 8} bits",
            context={"sample_width": width}
        )

    if channels > 1:
        samples = samples[: samples.size - samples.size % channels].reshape(-1, channels)
    return samples, sample_rate


def apply_compressor(
    samples: np.ndarray,
    sample_rate: int,
    threshold_db: float = COMPRESSOR_THRESHOLD_DB,
    knee_db: float = COMPRESSOR_KNEE_DB,
    ratio: float = COMPRESSOR_RATIO,
    attack_s: float = COMPRESSOR_ATTACK_S,
    release_s: float = COMPRESSOR_RELEASE_S,
    frame_ms: float = 5.0
) -> np.ndarray:
    """
    Soft-knee downward compressor.

    Gain is computed per ``frame_ms`` frame from the RMS level and smoothed
    with separate attack and release time constants.
    """
    if samples.size == 0:
        return samples

    frame = max(1, int(sample_rate * frame_ms / 1000))
    n_frames = math.ceil(samples.size / frame)
    padded = np.zeros(n_frames * frame)
    padded[: samples.size] = samples

    rms = np.sqrt(np.mean(padded.reshape(n_frames, frame) ** 2, axis=1))
    level_db = 20.0 * np.log10(np.maximum(rms, 1e-10))

    over = level_db - threshold_db
    slope = 1.0 - 1.0 / ratio
    reduction = np.where(
        over <= -knee_db / 2,
        0.0,
        np.where(
            over >= knee_db / 2,
            over * slope,
            slope * (over + knee_db / 2) ** 2 / (2 * knee_db),
        ),
    )

    frame_s = frame / sample_rate
    attack = math.exp(-frame_s / attack_s)
    release = math.exp(-frame_s / release_s)
    smoothed = np.empty_like(reduction)
    current = 0.0
    for i, target in enumerate(reduction):
        coeff = attack if target > current else release
        current = coeff * current + (1.0 - coeff) * target
        smoothed[i] = current

    gain = np.repeat(10.0 ** (-smoothed / 20.0), frame)[: samples.size]
    return samples * gain


# ============================================================================
# File helpers
# ============================================================================

def load_audio_file(path: str | Path) -> AudioFile:
    """
    Read an audio file from disk.

    WAV headers are parsed so that ``duration`` is known.

    Raises:
        ProcessingError: File cannot be read
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ProcessingError(f"Cannot read audio file: {path}", cause=e) from e

    mime_type = _EXTENSION_TYPES.get(path.suffix.lower())
    if mime_type is None:
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

    if mime_type not in WAV_MIME_TYPES:
        return AudioFile(data=data, mime_type=mime_type, name=path.name)

    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            sample_rate = wav.getframerate()
            channels = wav.getnchannels()
            payload = wav.getnframes() * channels * wav.getsampwidth()
            width = wav.getsampwidth()
    except (wave.Error, EOFError) as e:
        logger.warning(f"Could not parse WAV header of {path.name}: {e}")
        return AudioFile(data=data, mime_type=mime_type, name=path.name)

    # AudioFile.duration assumes 16-bit samples
    if width != 2:
        return AudioFile(data=data, mime_type=mime_type, name=path.name)

    return AudioFile(
        data=data,
        mime_type=mime_type,
        name=path.name,
        sample_rate=sample_rate,
        channels=channels,
        header_size=max(0, len(data) - payload),
    )


def format_file_size(size: int) -> str:
    """Human-readable size: ``1536`` -> ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def format_duration(seconds: float) -> str:
    """``m:ss`` display: ``75`` -> ``1:15``."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
