"""Voice capture session.

A session owns one audio input device for its lifetime. It cuts the device's
PCM stream into roughly one-second chunks, samples audio quality on a
shorter interval and stops itself once the maximum duration is reached.

State machine::

    idle -> recording -> (paused <-> recording) -> stopped

Every periodic task is an ``asyncio.Task`` owned by the session and is
cancelled on pause, stop, error and cleanup.
"""

import asyncio
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from chefsocial_voice.audio.device import AudioInputDevice
from chefsocial_voice.audio.events import EventChannel, Listener, SessionEvent
from chefsocial_voice.audio.models import AudioChunk, VoiceRecorderConfig
from chefsocial_voice.audio.quality import AudioQuality, AudioQualityAnalyzer, NEUTRAL_QUALITY
from chefsocial_voice.constants import CHUNK_INTERVAL_S, QUALITY_MONITOR_INTERVAL_S
from chefsocial_voice.exceptions import (
    DeviceBusyError,
    PermissionDeniedError,
    ProcessingError,
    QualityError,
    VoiceError,
)
from chefsocial_voice.utils.logger import get_logger

logger = get_logger(__name__)


class SessionState(Enum):
    """Capture session state."""
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


class VoiceCaptureSession:
    """
    Recording lifecycle for one voice memo.

    Example:
        session = VoiceCaptureSession(SoundDeviceInput())
        session.on("quality_warning", lambda e: print(e["warning"]))
        await session.start()
        ...
        chunks = await session.stop()
    """

    def __init__(
        self,
        device: AudioInputDevice,
        config: VoiceRecorderConfig | None = None,
        analyzer: AudioQualityAnalyzer | None = None,
        events: EventChannel | None = None,
        clock: Callable[[], float] = time.monotonic,
        chunk_interval: float = CHUNK_INTERVAL_S,
        monitor_interval: float = QUALITY_MONITOR_INTERVAL_S
    ):
        """
        Initialize capture session.

        Args:
            device: Audio input device
            config: Recorder configuration
            analyzer: Quality analyzer
            events: Event channel (a new one is created if omitted)
            clock: Monotonic time source in seconds
            chunk_interval: Seconds between chunks
            monitor_interval: Seconds between quality checks
        """
        self.device = device
        self.config = config or VoiceRecorderConfig()
        self.analyzer = analyzer or AudioQualityAnalyzer()
        self.events = events or EventChannel()

        self._clock = clock
        self._chunk_interval = chunk_interval
        self._monitor_interval = monitor_interval

        self._state = SessionState.IDLE
        self._chunks: list[AudioChunk] = []
        self._last_quality: AudioQuality = NEUTRAL_QUALITY
        self.last_error: VoiceError | None = None

        # Duration bookkeeping; paused time is excluded
        self._elapsed = 0.0
        self._resumed_at: float | None = None

        self._chunk_task: asyncio.Task | None = None
        self._monitor_task: asyncio.Task | None = None
        self._auto_stop_task: asyncio.Task | None = None
        self._device_open = False

    # ============================================================================
    # Properties
    # ============================================================================

    @property
    def state(self) -> SessionState:
        """Current state."""
        return self._state

    @property
    def is_recording(self) -> bool:
        """True while actively recording (not paused)."""
        return self._state == SessionState.RECORDING

    @property
    def duration(self) -> float:
        """Recorded seconds, excluding paused time."""
        if self._resumed_at is None:
            return self._elapsed
        return self._elapsed + (self._clock() - self._resumed_at)

    @property
    def chunks(self) -> list[AudioChunk]:
        """Chunks captured so far."""
        return list(self._chunks)

    def on(self, event: SessionEvent | str, listener: Listener) -> None:
        """Register an event listener."""
        self.events.on(event, listener)

    def off(self, event: SessionEvent | str, listener: Listener) -> None:
        """Remove an event listener."""
        self.events.off(event, listener)

    # ============================================================================
    # Lifecycle
    # ============================================================================

    async def start(self) -> None:
        """
        Acquire the device and begin recording.

        Raises:
            DeviceBusyError: Session already started, or device held elsewhere
            PermissionDeniedError: Device could not be acquired
        """
        if self._state != SessionState.IDLE:
            raise DeviceBusyError(
                f"Cannot start a session that is {self._state.value}",
                context={"state": self._state.value}
            )

        try:
            self.device.open(self.config)
        except PermissionDeniedError as e:
            self._report(e, "start_recording")
            raise
        except Exception as e:
            error = PermissionDeniedError(
                "Failed to access microphone. Please check permissions.",
                cause=e
            )
            self._report(error, "start_recording")
            raise error from e

        self._device_open = True
        self._state = SessionState.RECORDING
        self._resumed_at = self._clock()
        self._start_tasks()

        self.events.emit(SessionEvent.RECORDING_STARTED, {
            "timestamp": time.time(),
            "config": self.config.to_dict(),
        })
        logger.info("Recording started")

    def pause(self) -> None:
        """Pause recording. No-op unless recording."""
        if self._state != SessionState.RECORDING:
            return

        self._cancel_tasks()
        try:
            self._cut_chunk()
        except Exception as e:
            self._fail(ProcessingError("Audio device read failed", cause=e), "pause")
            return

        self._elapsed = self.duration
        self._resumed_at = None
        self._state = SessionState.PAUSED
        logger.info(f"Recording paused at {self._elapsed:.1f}s")

    def resume(self) -> None:
        """Resume recording. No-op unless paused."""
        if self._state != SessionState.PAUSED:
            return

        try:
            # Drop anything the device buffered while paused
            self.device.read()
        except Exception as e:
            self._fail(ProcessingError("Audio device read failed", cause=e), "resume")
            return

        self._state = SessionState.RECORDING
        self._resumed_at = self._clock()
        self._start_tasks()
        logger.info("Recording resumed")

    async def stop(self) -> list[AudioChunk]:
        """
        Stop recording and return the captured chunks.

        The device and all timers are released whether or not the recording
        is accepted.

        Returns:
            Chunks in capture order

        Raises:
            QualityError: Recording is shorter than ``min_duration``
            ProcessingError: The final device read failed
        """
        if self._state not in (SessionState.RECORDING, SessionState.PAUSED):
            return list(self._chunks)

        self._elapsed = self.duration
        self._resumed_at = None
        self._state = SessionState.STOPPED
        self._cancel_tasks()

        try:
            self._cut_chunk()
        except Exception as e:
            error = ProcessingError("Audio device read failed", cause=e)
            self._report(error, "stop_recording")
            raise error from e
        finally:
            self.cleanup()

        duration = self._elapsed
        quality = self._last_quality
        self.events.emit(SessionEvent.RECORDING_STOPPED, {
            "duration": duration,
            "quality": quality,
            "below_threshold": quality.score < self.config.quality_threshold,
        })
        logger.info(f"Recording stopped: {duration:.1f}s, {len(self._chunks)} chunks")

        if duration < self.config.min_duration:
            error = QualityError(
                f"Recording too short. Minimum {self.config.min_duration} seconds required.",
                context={"duration": round(duration, 3)}
            )
            self._report(error, "duration_check")
            raise error

        return list(self._chunks)

    def cleanup(self) -> None:
        """Cancel timers and release the device. Idempotent."""
        self._cancel_tasks()
        if self._device_open:
            self._device_open = False
            try:
                self.device.close()
            except Exception as e:
                logger.warning(f"Error releasing audio device: {e}")

    def get_quality(self) -> AudioQuality:
        """Analyze the device's current frequency snapshot."""
        if not self._device_open:
            return self._last_quality
        self._last_quality = self.analyzer.analyze(self.device.frequency_bins())
        return self._last_quality

    async def __aenter__(self) -> "VoiceCaptureSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
        if self._state in (SessionState.RECORDING, SessionState.PAUSED):
            self._elapsed = self.duration
            self._resumed_at = None
            self._state = SessionState.STOPPED

    # ============================================================================
    # Periodic tasks
    # ============================================================================

    def _start_tasks(self) -> None:
        self._chunk_task = asyncio.create_task(self._chunk_loop())
        self._monitor_task = asyncio.create_task(self._monitor_loop())

        if self.config.auto_stop:
            remaining = max(0.0, self.config.max_duration - self._elapsed)
            self._auto_stop_task = asyncio.create_task(self._auto_stop(remaining))

    def _cancel_tasks(self) -> None:
        current = asyncio.current_task() if self._in_loop() else None
        for name in ("_chunk_task", "_monitor_task", "_auto_stop_task"):
            task = getattr(self, name)
            setattr(self, name, None)
            if task is not None and task is not current and not task.done():
                task.cancel()

    async def _chunk_loop(self) -> None:
        while True:
            await asyncio.sleep(self._chunk_interval)
            if self._chunk_task is not asyncio.current_task():
                return
            try:
                self._cut_chunk()
            except Exception as e:
                self._fail(ProcessingError("Audio device read failed", cause=e), "media_recorder")
                return

    async def _monitor_loop(self) -> None:
        while True:
            await asyncio.sleep(self._monitor_interval)
            if self._monitor_task is not asyncio.current_task():
                return
            try:
                quality = self.get_quality()
            except Exception as e:
                self._fail(ProcessingError("Audio analysis failed", cause=e), "quality_monitor")
                return

            if quality.is_degraded:
                warning = quality.warnings[0] if quality.warnings else f"Audio quality is {quality.level.value}"
                self.events.emit(SessionEvent.QUALITY_WARNING, {
                    "warning": warning,
                    "quality": quality,
                })

    async def _auto_stop(self, delay: float) -> None:
        await asyncio.sleep(delay)
        logger.info("Maximum duration reached, stopping")
        try:
            await self.stop()
        except VoiceError as e:
            logger.warning(f"Auto-stop rejected recording: {e}")

    # ============================================================================
    # Helpers
    # ============================================================================

    def _cut_chunk(self) -> AudioChunk | None:
        data = self.device.read()
        if not data:
            return None

        quality = self.get_quality()
        chunk = AudioChunk(data=data, quality=quality, duration=self.duration)
        self._chunks.append(chunk)
        return chunk

    def _fail(self, error: VoiceError, context: str) -> None:
        logger.error(f"Capture session failed during {context}: {error}")
        if self._state in (SessionState.RECORDING, SessionState.PAUSED):
            self._elapsed = self.duration
            self._resumed_at = None
            self._state = SessionState.STOPPED
        self.cleanup()
        self._report(error, context)

    def _report(self, error: VoiceError, context: str) -> None:
        self.last_error = error
        self.events.emit(SessionEvent.ERROR_OCCURRED, {
            "error": error.to_payload(),
            "context": context,
        })

    @staticmethod
    def _in_loop() -> bool:
        try:
            asyncio.get_running_loop()
            return True
        except RuntimeError:
            return False


def describe(session: VoiceCaptureSession) -> dict[str, Any]:
    """Summary of a session for logs and the CLI."""
    return {
        "state": session.state.value,
        "duration": round(session.duration, 2),
        "chunks": len(session.chunks),
        "bytes": sum(c.size for c in session.chunks),
        "quality": session.get_quality().to_dict(),
    }
