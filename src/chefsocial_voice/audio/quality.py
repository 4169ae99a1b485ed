"""Audio quality analysis from frequency-domain snapshots.

The analyzer works on byte-scaled frequency bins (0-255 per bin), the same
representation a browser analyser node exposes. ``spectrum_to_bins`` builds
that snapshot from raw PCM so the capture device and the analyzer agree on
scale.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from chefsocial_voice.constants import (
    ANALYSER_MAX_DB,
    ANALYSER_MIN_DB,
    ANALYSER_SMOOTHING,
    FFT_SIZE,
)


class QualityLevel(Enum):
    """Ordinal audio quality level, best first."""
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"
    UNUSABLE = "unusable"

    @property
    def rank(self) -> int:
        """0 for excellent up to 3 for unusable."""
        return _LEVEL_ORDER.index(self)

    @classmethod
    def worst(cls, *levels: "QualityLevel") -> "QualityLevel":
        """Return the worst of the given levels."""
        return max(levels, key=lambda level: level.rank)


_LEVEL_ORDER = [
    QualityLevel.EXCELLENT,
    QualityLevel.GOOD,
    QualityLevel.POOR,
    QualityLevel.UNUSABLE,
]


WARNING_LOW_VOLUME = "Microphone level too low"
WARNING_CLIPPING = "Audio may be clipping"
WARNING_NOISE = "High background noise detected"
WARNING_CLARITY = "Poor audio clarity"


@dataclass(frozen=True)
class AudioQuality:
    """Quality snapshot for one monitoring tick."""
    level: QualityLevel
    volume: float
    noise_level: float
    clarity: float
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_degraded(self) -> bool:
        """True when the level is poor or unusable."""
        return self.level in (QualityLevel.POOR, QualityLevel.UNUSABLE)

    @property
    def score(self) -> float:
        """Single 0-100 figure comparable to ``quality_threshold``."""
        return (self.volume + (100.0 - self.noise_level) + self.clarity) / 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "level": self.level.value,
            "volume": round(self.volume, 2),
            "noise_level": round(self.noise_level, 2),
            "clarity": round(self.clarity, 2),
            "warnings": list(self.warnings),
        }


# Snapshot used before any signal is available
NEUTRAL_QUALITY = AudioQuality(
    level=QualityLevel.GOOD,
    volume=0.0,
    noise_level=0.0,
    clarity=75.0,
)


@dataclass(frozen=True)
class QualityThresholds:
    """Warning and level thresholds.

    Level thresholds are (unusable, poor, good) boundaries per metric;
    crossing a boundary degrades that metric's level by one step.
    """
    warn_volume_low: float = 10.0
    warn_volume_high: float = 90.0
    warn_noise: float = 30.0
    warn_clarity: float = 40.0
    volume_levels: tuple[float, float, float] = (5.0, 15.0, 25.0)
    noise_levels: tuple[float, float, float] = (80.0, 40.0, 25.0)
    clarity_levels: tuple[float, float, float] = (20.0, 50.0, 70.0)


def _level_below(value: float, bounds: tuple[float, float, float]) -> QualityLevel:
    unusable, poor, good = bounds
    if value < unusable:
        return QualityLevel.UNUSABLE
    if value < poor:
        return QualityLevel.POOR
    if value < good:
        return QualityLevel.GOOD
    return QualityLevel.EXCELLENT


def _level_above(value: float, bounds: tuple[float, float, float]) -> QualityLevel:
    unusable, poor, good = bounds
    if value > unusable:
        return QualityLevel.UNUSABLE
    if value > poor:
        return QualityLevel.POOR
    if value > good:
        return QualityLevel.GOOD
    return QualityLevel.EXCELLENT


class AudioQualityAnalyzer:
    """
    Derive volume, noise and clarity from a frequency-bin snapshot.

    Band edges are expressed as fractions of a 128-bin spectrum so the same
    analyzer works with 128- or 256-bin snapshots:

    - low band  (0 .. 10/128):   noise proxy (hum, rumble)
    - mid band  (10/128 .. 50/128) and
      high band (50/128 .. 100/128): clarity proxy (speech presence)
    """

    LOW_BAND_END = 10 / 128
    MID_BAND_END = 50 / 128
    HIGH_BAND_END = 100 / 128
    FULL_SCALE = 255.0

    def __init__(self, thresholds: QualityThresholds | None = None):
        """
        Initialize analyzer.

        Args:
            thresholds: Warning and level thresholds
        """
        self.thresholds = thresholds or QualityThresholds()

    def analyze(self, frequency_bins: np.ndarray | bytes | list[int] | None) -> AudioQuality:
        """
        Compute a quality snapshot.

        Args:
            frequency_bins: Byte-scaled magnitudes (0-255), lowest frequency first

        Returns:
            AudioQuality for this snapshot
        """
        if frequency_bins is None:
            return NEUTRAL_QUALITY

        if isinstance(frequency_bins, (bytes, bytearray)):
            bins = np.frombuffer(frequency_bins, dtype=np.uint8).astype(np.float64)
        else:
            bins = np.asarray(frequency_bins, dtype=np.float64)

        if bins.size == 0:
            return NEUTRAL_QUALITY

        n = bins.size
        low_end = max(1, round(n * self.LOW_BAND_END))
        mid_end = max(low_end, round(n * self.MID_BAND_END))
        high_end = max(mid_end, round(n * self.HIGH_BAND_END))

        rms = float(np.sqrt(np.mean(bins ** 2)))
        volume = min(100.0, rms / self.FULL_SCALE * 100.0)

        low = bins[:low_end]
        noise_level = min(100.0, float(low.sum()) / (low.size * self.FULL_SCALE) * 100.0)

        clarity_band = bins[low_end:high_end]
        if clarity_band.size:
            clarity = min(
                100.0,
                float(clarity_band.sum()) / (clarity_band.size * self.FULL_SCALE) * 100.0
            )
        else:
            clarity = 0.0

        return self.assess(volume, noise_level, clarity)

    def assess(self, volume: float, noise_level: float, clarity: float) -> AudioQuality:
        """
        Build an AudioQuality from already computed metrics.

        Args:
            volume: 0-100
            noise_level: 0-100
            clarity: 0-100

        Returns:
            AudioQuality with warnings and level
        """
        t = self.thresholds
        warnings = []
        if volume < t.warn_volume_low:
            warnings.append(WARNING_LOW_VOLUME)
        if volume > t.warn_volume_high:
            warnings.append(WARNING_CLIPPING)
        if noise_level > t.warn_noise:
            warnings.append(WARNING_NOISE)
        if clarity < t.warn_clarity:
            warnings.append(WARNING_CLARITY)

        return AudioQuality(
            level=self.classify(volume, noise_level, clarity),
            volume=volume,
            noise_level=noise_level,
            clarity=clarity,
            warnings=tuple(warnings),
        )

    def classify(self, volume: float, noise_level: float, clarity: float) -> QualityLevel:
        """Worst per-metric level wins."""
        t = self.thresholds
        return QualityLevel.worst(
            _level_below(volume, t.volume_levels),
            _level_above(noise_level, t.noise_levels),
            _level_below(clarity, t.clarity_levels),
        )


def spectrum_to_bins(
    samples: np.ndarray,
    fft_size: int = FFT_SIZE,
    previous: np.ndarray | None = None,
    smoothing: float = ANALYSER_SMOOTHING,
    min_db: float = ANALYSER_MIN_DB,
    max_db: float = ANALYSER_MAX_DB
) -> tuple[np.ndarray, np.ndarray]:
    """
    Convert the most recent PCM samples into byte frequency bins.

    Args:
        samples: Float samples in [-1, 1]; the last ``fft_size`` are used
        fft_size: FFT window length (bins = fft_size // 2)
        previous: Previous smoothed magnitudes, for time smoothing
        smoothing: Time constant in [0, 1)
        min_db: Magnitude mapped to 0
        max_db: Magnitude mapped to 255

    Returns:
        Tuple of (uint8 bins, smoothed linear magnitudes to pass back as ``previous``)
    """
    window = np.zeros(fft_size, dtype=np.float64)
    tail = np.asarray(samples, dtype=np.float64)[-fft_size:]
    window[fft_size - tail.size:] = tail

    spectrum = np.abs(np.fft.rfft(window * np.hanning(fft_size)))[: fft_size // 2] / fft_size

    if previous is not None and previous.shape == spectrum.shape:
        spectrum = smoothing * previous + (1.0 - smoothing) * spectrum

    with np.errstate(divide="ignore"):
        db = 20.0 * np.log10(spectrum)
    scaled = (db - min_db) / (max_db - min_db) * 255.0
    bins = np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)

    return bins, spectrum
