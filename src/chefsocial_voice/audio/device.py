"""Audio input devices.

``AudioInputDevice`` is the seam between a capture session and the audio
hardware. ``SoundDeviceInput`` implements it on top of a PortAudio input
stream (``sounddevice``); tests supply their own implementations.
"""

import threading
from typing import Any, Protocol, runtime_checkable

import numpy as np
from scipy.signal import lfilter

from chefsocial_voice.audio.models import VoiceRecorderConfig
from chefsocial_voice.audio.quality import spectrum_to_bins
from chefsocial_voice.constants import (
    FFT_SIZE,
    NOISE_GATE_ATTACK_MS,
    NOISE_GATE_RELEASE_MS,
    NOISE_GATE_THRESHOLD,
)
from chefsocial_voice.exceptions import DeviceBusyError, PermissionDeniedError
from chefsocial_voice.utils.logger import get_logger

logger = get_logger(__name__)


@runtime_checkable
class AudioInputDevice(Protocol):
    """Capture device consumed by a recording session."""

    def open(self, config: VoiceRecorderConfig) -> None:
        """Acquire the device and start buffering PCM."""
        ...

    def read(self) -> bytes:
        """Drain PCM (16-bit little-endian) buffered since the last read."""
        ...

    def frequency_bins(self) -> np.ndarray | None:
        """Current byte-scaled frequency snapshot, None before any signal."""
        ...

    def close(self) -> None:
        """Release the device. Safe to call more than once."""
        ...


class NoiseGate:
    """
    Envelope-following noise gate.

    The envelope is the larger of two one-pole followers of the rectified
    signal: a fast one with the attack time constant and a slow one with
    the release time constant. It therefore rises at the attack rate and
    falls no faster than the release rate. While the envelope is under the
    threshold the signal is attenuated to ``floor_gain``.
    """

    def __init__(
        self,
        sample_rate: int,
        threshold: float = NOISE_GATE_THRESHOLD,
        attack_ms: float = NOISE_GATE_ATTACK_MS,
        release_ms: float = NOISE_GATE_RELEASE_MS,
        floor_gain: float = 0.01
    ):
        self.threshold = threshold
        self.floor_gain = floor_gain
        self._attack_coeff = float(np.exp(-1.0 / (attack_ms * sample_rate / 1000)))
        self._release_coeff = float(np.exp(-1.0 / (release_ms * sample_rate / 1000)))
        self.reset()

    @property
    def is_open(self) -> bool:
        """Whether the gate currently passes signal."""
        return self._envelope >= self.threshold

    @staticmethod
    def _follow(level: np.ndarray, coeff: float, state: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        # y[n] = (1 - c) * x[n] + c * y[n - 1]
        return lfilter([1.0 - coeff], [1.0, -coeff], level, zi=state)

    def process(self, samples: np.ndarray) -> np.ndarray:
        """
        Gate a block of float samples.

        Filter state carries over between calls, so a stream may be fed in
        blocks of any size.

        Args:
            samples: Float samples in [-1, 1]

        Returns:
            Gated samples (same shape and dtype)
        """
        if samples.size == 0:
            return samples.copy()

        level = np.abs(samples).astype(np.float64)
        fast, self._fast_state = self._follow(level, self._attack_coeff, self._fast_state)
        slow, self._slow_state = self._follow(level, self._release_coeff, self._slow_state)
        envelope = np.maximum(fast, slow)

        gain = np.where(envelope >= self.threshold, 1.0, self.floor_gain)
        self._envelope = float(envelope[-1])
        return (samples * gain).astype(samples.dtype, copy=False)

    def reset(self) -> None:
        """Close the gate."""
        self._fast_state = np.zeros(1)
        self._slow_state = np.zeros(1)
        self._envelope = 0.0


class SoundDeviceInput:
    """
    Microphone input backed by a ``sounddevice`` input stream.

    The stream callback runs on the PortAudio thread and only appends to a
    lock-protected buffer. Only one open stream per device index is allowed
    process-wide.
    """

    _active_devices: set[Any] = set()
    _registry_lock = threading.Lock()

    def __init__(self, device_index: int | None = None, fft_size: int = FFT_SIZE):
        """
        Initialize device input.

        Args:
            device_index: PortAudio input device index (None for default)
            fft_size: Window length for the frequency snapshot
        """
        self.device_index = device_index
        self.fft_size = fft_size

        self._sd: Any | None = None
        self._stream: Any | None = None
        self._config: VoiceRecorderConfig | None = None
        self._gate: NoiseGate | None = None

        self._lock = threading.Lock()
        self._pending: list[np.ndarray] = []
        self._recent = np.zeros(fft_size, dtype=np.float32)
        self._smoothed: np.ndarray | None = None
        self._has_signal = False

    @property
    def is_open(self) -> bool:
        """Whether the stream is live."""
        return self._stream is not None

    def open(self, config: VoiceRecorderConfig) -> None:
        """
        Acquire the device and start the input stream.

        Raises:
            DeviceBusyError: The device is already held by another session
            PermissionDeniedError: The stream could not be opened
        """
        key = self._registry_key()
        with self._registry_lock:
            if key in self._active_devices:
                raise DeviceBusyError(
                    "Audio input device is already in use",
                    context={"device": key}
                )
            self._active_devices.add(key)

        try:
            self._sd = self._import_sounddevice()
            self._config = config
            self._gate = NoiseGate(config.sample_rate) if config.noise_reduction else None
            if config.echo_cancellation:
                logger.debug("Echo cancellation is not available for PortAudio streams")

            self._stream = self._sd.InputStream(
                samplerate=config.sample_rate,
                channels=config.channel_count,
                dtype=np.float32,
                device=self.device_index,
                callback=self._on_audio
            )
            self._stream.start()
            logger.info(
                f"Audio input started (device={key}, sr={config.sample_rate}, "
                f"channels={config.channel_count})"
            )

        except Exception as e:
            self._stream = None
            with self._registry_lock:
                self._active_devices.discard(key)
            raise PermissionDeniedError(
                "Failed to access microphone. Please check permissions.",
                context={"device": key},
                cause=e
            ) from e

    def read(self) -> bytes:
        """Drain buffered PCM as 16-bit little-endian bytes."""
        with self._lock:
            pending, self._pending = self._pending, []

        if not pending:
            return b""

        samples = np.concatenate(pending)
        pcm = np.clip(samples, -1.0, 1.0) * 32767.0
        return pcm.astype("<i2").tobytes()

    def frequency_bins(self) -> np.ndarray | None:
        """Byte frequency snapshot of the most recent window."""
        with self._lock:
            if not self._has_signal:
                return None
            recent = self._recent.copy()

        bins, self._smoothed = spectrum_to_bins(
            recent, fft_size=self.fft_size, previous=self._smoothed
        )
        return bins

    def close(self) -> None:
        """Stop the stream and release the device."""
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning(f"Error closing stream: {e}")

            with self._registry_lock:
                self._active_devices.discard(self._registry_key())
            logger.info("Audio input stopped")

        with self._lock:
            self._pending = []
            self._has_signal = False
        self._smoothed = None
        if self._gate:
            self._gate.reset()

    def _on_audio(self, indata, frames, time_info, status) -> None:
        if status:
            logger.warning(f"Sounddevice callback status: {status}")

        block = np.asarray(indata, dtype=np.float32)
        mono = block.mean(axis=1) if block.ndim > 1 else block
        if self._gate is not None:
            gated = self._gate.process(mono)
            if block.ndim > 1:
                gain = np.divide(gated, mono, out=np.ones_like(mono), where=mono != 0)
                block = block * gain[:, None]
            else:
                block = gated
            mono = gated

        with self._lock:
            self._pending.append(block.reshape(-1).copy())
            self._recent = np.concatenate([self._recent, mono])[-self.fft_size:]
            self._has_signal = True

    def _registry_key(self) -> Any:
        return "default" if self.device_index is None else self.device_index

    @staticmethod
    def _import_sounddevice() -> Any:
        import sounddevice as sd
        return sd

    @staticmethod
    def list_devices() -> list[dict[str, Any]]:
        """
        List available audio input devices.

        Returns:
            List of device information dictionaries
        """
        import sounddevice as sd

        devices = []
        for i, info in enumerate(sd.query_devices()):
            if info.get('max_input_channels', 0) > 0:
                devices.append({
                    'index': i,
                    'name': info.get('name', f'Device {i}'),
                    'channels': info.get('max_input_channels', 0),
                    'sample_rate': info.get('default_samplerate', 0)
                })
        return devices
