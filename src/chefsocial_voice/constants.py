"""Application-wide constants.

This module centralizes magic numbers and configuration values
to improve code maintainability and reduce hard-coded values.
"""

# ============================================================================
# Recording
# ============================================================================

DEFAULT_MAX_DURATION_S = 300
DEFAULT_MIN_DURATION_S = 1
DEFAULT_QUALITY_THRESHOLD = 60
DEFAULT_SAMPLE_RATE = 48000
DEFAULT_CHANNEL_COUNT = 1

CHUNK_INTERVAL_S = 1.0  # One AudioChunk per second of recording
QUALITY_MONITOR_INTERVAL_S = 0.5

# Frequency analysis (analyser-node semantics)
FFT_SIZE = 256  # Yields FFT_SIZE // 2 = 128 bins
ANALYSER_MIN_DB = -100.0
ANALYSER_MAX_DB = -30.0
ANALYSER_SMOOTHING = 0.8

# Noise gate applied when noise reduction is enabled
NOISE_GATE_THRESHOLD = 0.01
NOISE_GATE_ATTACK_MS = 5.0
NOISE_GATE_RELEASE_MS = 50.0

# ============================================================================
# Audio files
# ============================================================================

MAX_UPLOAD_BYTES = 25 * 1024 * 1024
MIN_UPLOAD_BYTES = 1024
COMPRESSION_THRESHOLD_BYTES = 1024 * 1024
MAX_FILE_DURATION_S = 300
TRANSCRIPTION_SAMPLE_RATE = 16000  # Whisper-friendly

SUPPORTED_AUDIO_TYPES = (
    "audio/webm",
    "audio/mp4",
    "audio/wav",
    "audio/ogg",
    "audio/mpeg",
    "audio/mp3",
)

# Dynamic-range compressor
COMPRESSOR_THRESHOLD_DB = -24.0
COMPRESSOR_KNEE_DB = 30.0
COMPRESSOR_RATIO = 12.0
COMPRESSOR_ATTACK_S = 0.003
COMPRESSOR_RELEASE_S = 0.25

# ============================================================================
# Transcription
# ============================================================================

DEFAULT_STT_MODEL = "whisper-1"
DEFAULT_STT_LANGUAGE = "en"
TRANSCRIPTION_MAX_ATTEMPTS = 3
TRANSCRIPTION_BASE_DELAY_S = 1.0
TRANSCRIPTION_TIMEOUT_S = 60.0
DEFAULT_SEGMENT_CONFIDENCE = 0.95

# ============================================================================
# Content generation
# ============================================================================

DEFAULT_GENERATION_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
GENERATION_TIMEOUT_S = 60.0
GENERATION_RATE_LIMIT_CALLS = 60
GENERATION_RATE_LIMIT_PERIOD_S = 60.0

MAX_ENGAGEMENT_HOOKS = 3

# Virality heuristic (uncalibrated weights carried over as-is)
VIRALITY_BASE = 50
VIRALITY_QUESTION_BONUS = 10
VIRALITY_EMOJI_BONUS = 15
VIRALITY_OPTIMAL_LENGTH_BONUS = 10
VIRALITY_SUPERLATIVE_BONUS = 10
VIRALITY_EXCLUSIVITY_BONUS = 15
VIRALITY_TOO_LONG_PENALTY = 10
VIRALITY_HASHTAG_PENALTY = 10
VIRALITY_OPTIMAL_LENGTH = (50, 200)
VIRALITY_TOO_LONG_LENGTH = 300
VIRALITY_MAX_HASHTAGS = 8
VIRALITY_MIN_SCORE = 10
VIRALITY_MAX_SCORE = 95

REACH_BASE = {
    "instagram": 800,
    "tiktok": 1200,
    "facebook": 600,
    "twitter": 400,
    "linkedin": 300,
}
REACH_DEFAULT_BASE = 500
REACH_JITTER = 0.3

# ============================================================================
# Pipeline
# ============================================================================

USAGE_METRIC_VOICE_MINUTES = "voice_minutes_used"
TRANSCRIPTION_COST_PER_MB = 0.006
GENERATION_COST_PER_PLATFORM = 0.02
SLOW_PROCESSING_WARNING_MS = 30000

# ============================================================================
# File Paths (defaults)
# ============================================================================

DEFAULT_SETTINGS_FILE = "./configs/settings.yaml"
