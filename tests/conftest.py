"""Common fixtures for tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from chefsocial_voice.content.models import (  # noqa: E402
    PlatformCustomization,
    RestaurantContext,
    SocialPlatform,
)
from chefsocial_voice.exceptions import DeviceBusyError  # noqa: E402


# ============================================================================
# Capture Fakes
# ============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDevice:
    """In-memory audio input device."""

    def __init__(self, blocks=None, bins=None, fail_open=None, fail_read=None):
        self.blocks = list(blocks or [])
        self.bins = bins
        self.fail_open = fail_open
        self.fail_read = fail_read
        self.is_open = False
        self.open_count = 0
        self.close_count = 0
        self.config = None

    def open(self, config):
        if self.is_open:
            raise DeviceBusyError("Audio input device is already in use")
        if self.fail_open is not None:
            raise self.fail_open
        self.is_open = True
        self.open_count += 1
        self.config = config

    def read(self) -> bytes:
        if self.fail_read is not None:
            raise self.fail_read
        if not self.blocks:
            return b""
        return self.blocks.pop(0)

    def frequency_bins(self):
        return self.bins

    def close(self):
        self.is_open = False
        self.close_count += 1


def make_pcm(seconds: float = 1.0, sample_rate: int = 48000, frequency: float = 440.0,
             amplitude: float = 0.5) -> bytes:
    """Sine wave as 16-bit little-endian PCM."""
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    wave = amplitude * np.sin(2 * np.pi * frequency * t)
    return (wave * 32767).astype("<i2").tobytes()


@pytest.fixture
def fake_clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def device_factory():
    """Factory for fake audio devices."""
    return FakeDevice


@pytest.fixture
def fake_device() -> FakeDevice:
    """Fake device that yields one short PCM block per read."""
    return FakeDevice(blocks=[make_pcm(0.1)] * 50)


@pytest.fixture
def pcm_factory():
    """Factory for sine-wave PCM payloads."""
    return make_pcm


@pytest.fixture
def good_bins() -> np.ndarray:
    """Frequency snapshot of clear speech."""
    bins = np.zeros(128, dtype=np.uint8)
    bins[:10] = 40
    bins[10:100] = 200
    bins[100:] = 60
    return bins


@pytest.fixture
def noisy_bins() -> np.ndarray:
    """Frequency snapshot dominated by low-frequency hum."""
    bins = np.zeros(128, dtype=np.uint8)
    bins[:10] = 250
    bins[10:100] = 20
    return bins


# ============================================================================
# Content Fixtures
# ============================================================================

@pytest.fixture
def bistro_context() -> RestaurantContext:
    """Restaurant context used across content tests."""
    return RestaurantContext(
        name="Bistro Luna",
        cuisine="Italian",
        location="Portland",
        brand_voice="Warm and rustic",
        specialties=("Risotto", "Handmade pasta"),
        target_audience=("Date-night couples", "Food lovers"),
    )


@pytest.fixture
def instagram() -> SocialPlatform:
    """Instagram with a required call-to-action."""
    return SocialPlatform(
        name="instagram",
        customization=PlatformCustomization(
            max_length=2200, hashtag_count=30, emoji_style="moderate",
            tone="casual", include_cta_button=True,
        ),
    )


@pytest.fixture
def tiktok() -> SocialPlatform:
    """TikTok with tight limits."""
    return SocialPlatform(
        name="tiktok",
        customization=PlatformCustomization(
            max_length=300, hashtag_count=5, emoji_style="extensive",
            tone="trendy", include_cta_button=True,
        ),
    )


# ============================================================================
# OpenAI Client Fakes
# ============================================================================

def make_chat_response(text):
    """Chat completion response carrying ``text``."""
    message = MagicMock()
    message.content = text
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def chat_response():
    """Factory for chat completion responses."""
    return make_chat_response


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """AsyncOpenAI stand-in with async transcription and chat endpoints."""
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def no_sleep():
    """Async sleep replacement that records requested delays."""
    delays = []

    async def _sleep(delay):
        delays.append(delay)

    _sleep.delays = delays
    return _sleep


# ============================================================================
# Logging Fixtures
# ============================================================================

@pytest.fixture
def temp_session_dir(tmp_path) -> str:
    """Temporary directory for session logs."""
    session_dir = tmp_path / "session"
    session_dir.mkdir()
    return str(session_dir)
