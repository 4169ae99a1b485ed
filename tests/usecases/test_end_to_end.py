#!/usr/bin/env python3
"""End-to-end use cases for chefsocial-voice.

Each test walks one user-facing flow from the microphone (or a captured
recording) through to saved social posts:
1. Recording Use Cases (UC-001 to UC-003)
2. Provider Failure Use Cases (UC-010 to UC-012)
3. Platform Rule Use Cases (UC-020 to UC-021)
"""

import asyncio
import json
from dataclasses import replace

import pytest

from chefsocial_voice.audio.events import SessionEvent
from chefsocial_voice.audio.models import AudioChunk, VoiceRecorderConfig
from chefsocial_voice.audio.processing import AudioPostProcessor
from chefsocial_voice.audio.quality import NEUTRAL_QUALITY
from chefsocial_voice.audio.session import VoiceCaptureSession
from chefsocial_voice.audio.transcription import TranscriptionClient
from chefsocial_voice.collaborators import (
    InMemoryApprovalDispatcher,
    InMemoryContentStore,
    InMemoryUsageTracker,
)
from chefsocial_voice.content.generator import ContentGenerationEngine
from chefsocial_voice.content.models import Mood
from chefsocial_voice.content.scoring import ReachEstimator
from chefsocial_voice.exceptions import ContentGenerationError, QualityError, TranscriptionError
from chefsocial_voice.pipeline import VoiceContentPipeline

TRANSCRIPT = {
    "text": "Tonight's special is a wild mushroom truffle risotto with aged parmesan.",
    "language": "english",
    "segments": [
        {"text": "Tonight's special is a wild mushroom truffle risotto", "start": 0.0, "end": 1.0,
         "avg_logprob": -0.05},
        {"text": "with aged parmesan.", "start": 1.0, "end": 1.8, "avg_logprob": -0.15},
    ],
}

RISOTTO_POST = json.dumps({
    "content": "Our wild mushroom truffle risotto is back tonight! Have you tried it? Book a table.",
    "hashtags": ["risotto", "truffle", "portlandeats"],
    "engagementHooks": ["Have you tried it?"],
})


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def openai_client(mock_openai_client, chat_response):
    """Provider returning the risotto memo and post."""
    mock_openai_client.audio.transcriptions.create.return_value = TRANSCRIPT
    mock_openai_client.chat.completions.create.return_value = chat_response(RISOTTO_POST)
    return mock_openai_client


@pytest.fixture
def services():
    """In-memory collaborators."""
    return {
        "store": InMemoryContentStore(),
        "usage": InMemoryUsageTracker(),
        "approvals": InMemoryApprovalDispatcher(),
    }


@pytest.fixture
def pipeline(openai_client, services, no_sleep):
    """Pipeline wired to the mock provider."""
    return VoiceContentPipeline(
        transcriber=TranscriptionClient(openai_client, sleep=no_sleep),
        generator=ContentGenerationEngine(openai_client, reach_estimator=ReachEstimator(jitter=0.0)),
        **services,
    )


# =============================================================================
# Recording Use Cases
# =============================================================================

class TestRecordingUseCases:
    """UC-001 to UC-003: from the microphone to saved posts."""

    @pytest.mark.asyncio
    async def test_uc001_record_and_publish(self, device_factory, pcm_factory, good_bins, fake_clock,
                                            pipeline, services, bistro_context, instagram, tiktok):
        """UC-001: Chef records a memo about the special and gets posts for two platforms."""
        device = device_factory(blocks=[pcm_factory(0.1) for _ in range(20)], bins=good_bins)
        session = VoiceCaptureSession(
            device,
            VoiceRecorderConfig(min_duration=1),
            clock=fake_clock,
            chunk_interval=0.01,
            monitor_interval=0.01,
        )
        warnings = []
        session.on(SessionEvent.QUALITY_WARNING, warnings.append)

        await session.start()
        await asyncio.sleep(0.05)
        fake_clock.advance(2.0)
        chunks = await session.stop()

        assert chunks
        assert warnings == []
        assert not device.is_open

        audio = AudioPostProcessor(session.config).prepare_for_upload(chunks)
        assert audio.split_chunks() == [chunk.data for chunk in chunks]

        result = await pipeline.process(
            "chef-luna", audio, bistro_context, [instagram, tiktok],
            mood=Mood.PREMIUM,
            approval_destination="+15035550100",
        )

        assert [c.platform for c in result.generated_content] == ["instagram", "tiktok"]
        assert all(v.valid for v in result.validations.values())
        assert result.generated_content[0].engagement_hooks == ("Have you tried it?",)
        assert len(services["store"].for_user("chef-luna")) == 2
        assert services["usage"].get("chef-luna", "voice_minutes_used") == 1
        assert len(services["approvals"].sent) == 2

    @pytest.mark.asyncio
    async def test_uc002_long_memo_compressed(self, openai_client, pcm_factory, pipeline,
                                              bistro_context, instagram):
        """UC-002: A long memo is shrunk to 16 kHz mono before upload."""
        chunks = [
            AudioChunk(data=pcm_factory(4.0), quality=NEUTRAL_QUALITY, duration=4.0 * (i + 1))
            for i in range(3)
        ]

        audio = AudioPostProcessor().prepare_for_upload(chunks)

        assert audio.sample_rate == 16000
        assert audio.duration == pytest.approx(12.0, abs=0.01)
        assert audio.size < 1024 * 1024

        result = await pipeline.process("chef-luna", audio, bistro_context, [instagram])

        upload = openai_client.audio.transcriptions.create.call_args.kwargs["file"]
        assert upload[0] == "recording.wav"
        assert upload[2] == "audio/wav"
        assert result.estimated_cost == 0.03

    @pytest.mark.asyncio
    async def test_uc003_too_short_memo(self, device_factory, pcm_factory, fake_clock):
        """UC-003: A memo under a second is rejected and the microphone released."""
        device = device_factory(blocks=[pcm_factory(0.1)])
        session = VoiceCaptureSession(device, VoiceRecorderConfig(min_duration=1), clock=fake_clock)
        errors = []
        session.on(SessionEvent.ERROR_OCCURRED, errors.append)

        await session.start()
        fake_clock.advance(0.4)

        with pytest.raises(QualityError, match="Recording too short"):
            await session.stop()

        assert errors[0]["error"]["type"] == "quality"
        assert errors[0]["error"]["recoverable"] is True
        assert not device.is_open


# =============================================================================
# Provider Failure Use Cases
# =============================================================================

class TestProviderFailureUseCases:
    """UC-010 to UC-012: provider outages."""

    @pytest.fixture
    def recording(self, pcm_factory):
        chunk = AudioChunk(data=pcm_factory(1.5), quality=NEUTRAL_QUALITY, duration=1.5)
        return AudioPostProcessor().assemble([chunk])

    @pytest.mark.asyncio
    async def test_uc010_transient_transcription_failure(self, openai_client, no_sleep, pipeline,
                                                         recording, bistro_context, instagram):
        """UC-010: Two provider hiccups are retried with backoff."""
        openai_client.audio.transcriptions.create.side_effect = [
            RuntimeError("502 Bad Gateway"),
            RuntimeError("503 Service Unavailable"),
            TRANSCRIPT,
        ]

        result = await pipeline.process("chef-luna", recording, bistro_context, [instagram])

        assert result.transcript.text.startswith("Tonight's special")
        assert no_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_uc011_transcription_outage(self, openai_client, pipeline, services,
                                              recording, bistro_context, instagram):
        """UC-011: A persistent outage fails the run without saving anything."""
        openai_client.audio.transcriptions.create.side_effect = RuntimeError("503 Service Unavailable")

        with pytest.raises(TranscriptionError) as exc_info:
            await pipeline.process("chef-luna", recording, bistro_context, [instagram])

        assert exc_info.value.attempts == 3
        assert exc_info.value.to_payload()["type"] == "transcription"
        assert services["store"].items == {}

    @pytest.mark.asyncio
    async def test_uc012_one_platform_down(self, openai_client, chat_response, pipeline, services,
                                           recording, bistro_context, instagram, tiktok):
        """UC-012: One platform failing still delivers the others."""
        async def complete(**kwargs):
            if "PLATFORM: INSTAGRAM" in kwargs["messages"][0]["content"]:
                raise RuntimeError("rate limited")
            return chat_response(RISOTTO_POST)

        openai_client.chat.completions.create.side_effect = complete

        result = await pipeline.process("chef-luna", recording, bistro_context, [instagram, tiktok])

        assert [c.platform for c in result.generated_content] == ["tiktok"]
        assert list(result.content_ids) == ["tiktok"]

        openai_client.chat.completions.create.side_effect = RuntimeError("provider down")
        with pytest.raises(ContentGenerationError):
            await pipeline.process("chef-luna", recording, bistro_context, [instagram, tiktok])


# =============================================================================
# Platform Rule Use Cases
# =============================================================================

class TestPlatformRuleUseCases:
    """UC-020 to UC-021: per-platform constraints."""

    @pytest.mark.asyncio
    async def test_uc020_long_post_flagged_for_tiktok(self, openai_client, chat_response, pipeline,
                                                      pcm_factory, bistro_context, instagram, tiktok):
        """UC-020: A long caption passes Instagram but is flagged for TikTok."""
        long_post = "Slow-cooked for hours with wild mushrooms. " * 9 + "Book a table."
        openai_client.chat.completions.create.return_value = chat_response(
            json.dumps({"content": long_post, "hashtags": ["risotto"]})
        )
        chunk = AudioChunk(data=pcm_factory(1.5), quality=NEUTRAL_QUALITY, duration=1.5)
        audio = AudioPostProcessor().assemble([chunk])

        result = await pipeline.process("chef-luna", audio, bistro_context, [instagram, tiktok])

        assert result.validations["instagram"].valid
        assert result.validations["tiktok"].issues == ["Content exceeds 300 character limit"]

    @pytest.mark.asyncio
    async def test_uc021_disabled_platform_skipped(self, openai_client, pipeline, pcm_factory,
                                                   bistro_context, instagram, tiktok):
        """UC-021: Disabled platforms get no request and no post."""
        chunk = AudioChunk(data=pcm_factory(1.5), quality=NEUTRAL_QUALITY, duration=1.5)
        audio = AudioPostProcessor().assemble([chunk])

        result = await pipeline.process(
            "chef-luna", audio, bistro_context, [instagram, replace(tiktok, enabled=False)]
        )

        assert [c.platform for c in result.generated_content] == ["instagram"]
        assert openai_client.chat.completions.create.await_count == 1
