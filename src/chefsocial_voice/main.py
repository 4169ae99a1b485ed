#!/usr/bin/env python3
"""Command line entry point for chefsocial-voice."""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from openai import AsyncOpenAI

from chefsocial_voice.audio.device import SoundDeviceInput
from chefsocial_voice.audio.events import SessionEvent
from chefsocial_voice.audio.models import AudioFile
from chefsocial_voice.audio.processing import AudioPostProcessor, format_duration, format_file_size, load_audio_file
from chefsocial_voice.audio.session import VoiceCaptureSession, describe
from chefsocial_voice.audio.transcription import TranscriptionClient
from chefsocial_voice.collaborators import (
    InMemoryApprovalDispatcher,
    InMemoryContentStore,
    InMemoryUsageTracker,
)
from chefsocial_voice.config import Settings, load_settings
from chefsocial_voice.content.generator import ContentGenerationEngine
from chefsocial_voice.content.models import ContentType, Mood
from chefsocial_voice.exceptions import ChefSocialError
from chefsocial_voice.pipeline import ProcessingResult, VoiceContentPipeline
from chefsocial_voice.utils.logger import SessionLogger, get_logger

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="chefsocial-voice",
        description="Turn restaurant voice memos into social media posts"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to settings file"
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output directory for session logs"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    process = commands.add_parser("process", help="Generate posts from an audio file")
    process.add_argument("audio", type=str, help="Path to audio file")
    _add_generation_args(process)

    record = commands.add_parser("record", help="Record a voice memo from the microphone")
    record.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to record (capped by the configured maximum)"
    )
    record.add_argument(
        "--save",
        type=str,
        default=None,
        help="Write the recording to this WAV file"
    )
    record.add_argument(
        "--no-process",
        action="store_true",
        help="Only record, do not generate posts"
    )
    _add_generation_args(record)

    commands.add_parser("devices", help="List audio input devices")

    return parser.parse_args(argv)


def _add_generation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--user", type=str, default="local", help="User id for saved content")
    parser.add_argument(
        "--platform",
        action="append",
        default=None,
        help="Only generate for this platform (repeatable)"
    )
    parser.add_argument(
        "--content-type",
        type=str,
        default=ContentType.DISH_DESCRIPTION.value,
        choices=[t.value for t in ContentType],
        help="Kind of post"
    )
    parser.add_argument(
        "--mood",
        type=str,
        default=Mood.CASUAL.value,
        choices=[m.value for m in Mood],
        help="Mood of the post"
    )
    parser.add_argument("--image-description", type=str, default=None, help="Describe an accompanying photo")
    parser.add_argument("--approval-to", type=str, default=None, help="Send drafts for approval to this destination")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")


def build_pipeline(settings: Settings, session_logger: SessionLogger | None) -> VoiceContentPipeline:
    """Wire the pipeline from settings."""
    client = AsyncOpenAI(api_key=settings.require_api_key())
    return VoiceContentPipeline(
        transcriber=TranscriptionClient(client, settings.transcription.to_transcription_config()),
        generator=ContentGenerationEngine(
            client,
            config=settings.generation.to_generation_config(),
            weights=settings.scoring.to_weights(),
            reach_estimator=settings.scoring.to_reach_estimator(),
        ),
        store=InMemoryContentStore(),
        usage=InMemoryUsageTracker(),
        approvals=InMemoryApprovalDispatcher(),
        processor=AudioPostProcessor(settings.recorder.to_recorder_config()),
        session_logger=session_logger,
    )


async def run_process(
    args: argparse.Namespace,
    settings: Settings,
    audio: AudioFile,
    session_logger: SessionLogger | None
) -> ProcessingResult:
    """Run the pipeline for one file."""
    platforms = settings.get_platforms()
    if args.platform:
        wanted = {name.lower() for name in args.platform}
        platforms = [p for p in platforms if p.name in wanted]
        if not platforms:
            raise ChefSocialError(f"No configured platform matches {sorted(wanted)}")

    pipeline = build_pipeline(settings, session_logger)
    return await pipeline.process(
        args.user,
        audio,
        settings.restaurant.to_context(),
        platforms,
        content_type=ContentType(args.content_type),
        mood=Mood(args.mood),
        image_description=args.image_description,
        approval_destination=args.approval_to,
    )


async def run_record(args: argparse.Namespace, settings: Settings) -> AudioFile:
    """Record from the microphone and return the upload-ready file."""
    config = settings.recorder.to_recorder_config()
    duration = min(args.duration, config.max_duration)
    config = replace(config, max_duration=max(duration, config.min_duration))

    session = VoiceCaptureSession(SoundDeviceInput(settings.recorder.device_index), config)
    session.on(SessionEvent.QUALITY_WARNING, lambda e: logger.warning(f"Quality: {e['warning']}"))
    session.on(SessionEvent.ERROR_OCCURRED, lambda e: logger.error(f"Recording error: {e['error']['message']}"))

    await session.start()
    logger.info(f"Recording for {format_duration(duration)}...")
    try:
        await asyncio.sleep(duration)
        chunks = await session.stop()
    finally:
        session.cleanup()

    logger.info(f"Recording summary: {describe(session)}")

    audio = AudioPostProcessor(config).prepare_for_upload(chunks)
    logger.info(f"Recording ready: {format_file_size(audio.size)}")

    if args.save:
        Path(args.save).write_bytes(audio.data)
        logger.info(f"Saved recording to {args.save}")

    return audio


def print_result(result: ProcessingResult, as_json: bool) -> None:
    """Print a processing result."""
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"Transcript ({result.transcript.confidence:.0%}): {result.transcript.text}\n")
    for content in result.generated_content:
        validation = result.validations.get(content.platform)
        print(f"=== {content.platform.upper()} (virality {content.virality_score}, "
              f"reach ~{content.estimated_reach}) ===")
        print(content.caption)
        if validation and not validation.valid:
            for issue in validation.issues:
                print(f"  ! {issue}")
        print()
    print(f"Processing time: {result.processing_time:.0f}ms, estimated cost: ${result.estimated_cost:.2f}")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        if args.command == "devices":
            for device in SoundDeviceInput.list_devices():
                print(f"[{device['index']}] {device['name']} "
                      f"({device['channels']} ch, {device['sample_rate']:.0f} Hz)")
            return 0

        settings = load_settings(args.config)
        out_dir = args.out or settings.log_dir
        session_logger = SessionLogger(out_dir) if out_dir else None

        if args.command == "record":
            audio = asyncio.run(run_record(args, settings))
            if args.no_process:
                return 0
        else:
            audio = load_audio_file(args.audio)

        result = asyncio.run(run_process(args, settings, audio, session_logger))
        print_result(result, args.json)
        return 0

    except ChefSocialError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
