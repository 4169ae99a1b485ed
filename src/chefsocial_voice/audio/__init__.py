"""Audio capture, processing and transcription."""

from .device import AudioInputDevice, NoiseGate, SoundDeviceInput
from .events import EventChannel, SessionEvent
from .models import (
    AudioChunk,
    AudioFile,
    TranscriptionResult,
    TranscriptionSegment,
    VoiceRecorderConfig,
)
from .processing import AudioPostProcessor, FileValidationResult, load_audio_file
from .quality import AudioQuality, AudioQualityAnalyzer, QualityLevel, QualityThresholds
from .session import SessionState, VoiceCaptureSession
from .transcription import TranscriptionClient, TranscriptionConfig, create_transcription_client

__all__ = [
    'AudioInputDevice', 'NoiseGate', 'SoundDeviceInput',
    'EventChannel', 'SessionEvent',
    'AudioChunk', 'AudioFile', 'TranscriptionResult', 'TranscriptionSegment', 'VoiceRecorderConfig',
    'AudioPostProcessor', 'FileValidationResult', 'load_audio_file',
    'AudioQuality', 'AudioQualityAnalyzer', 'QualityLevel', 'QualityThresholds',
    'SessionState', 'VoiceCaptureSession',
    'TranscriptionClient', 'TranscriptionConfig', 'create_transcription_client',
]
