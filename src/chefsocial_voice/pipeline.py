"""Voice memo to social posts.

``VoiceContentPipeline`` runs one recording through validation,
transcription, generation and validation of the drafts, then hands the
drafts to the persistence, usage and approval collaborators.
"""

import math
import time
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from chefsocial_voice.audio.models import AudioFile, TranscriptionResult
from chefsocial_voice.audio.processing import AudioPostProcessor
from chefsocial_voice.audio.transcription import TranscriptionClient
from chefsocial_voice.collaborators import ApprovalDispatcher, ContentStore, UsageTracker
from chefsocial_voice.constants import (
    GENERATION_COST_PER_PLATFORM,
    SLOW_PROCESSING_WARNING_MS,
    TRANSCRIPTION_COST_PER_MB,
    USAGE_METRIC_VOICE_MINUTES,
)
from chefsocial_voice.content.generator import ContentGenerationEngine
from chefsocial_voice.content.models import (
    ContentType,
    ContentValidationResult,
    GeneratedContent,
    Mood,
    RestaurantContext,
    SocialPlatform,
)
from chefsocial_voice.content.validator import ContentValidator
from chefsocial_voice.exceptions import ContentGenerationError, QualityError, ValidationError
from chefsocial_voice.utils.logger import SessionLogger, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessingQualityMetrics:
    """Summary figures for one processing run (0-100 except speed)."""
    transcription_accuracy: float
    content_relevance: float
    brand_alignment: float
    engagement_potential: float
    processing_speed: float  # ms


@dataclass(frozen=True)
class ProcessingResult:
    """Everything produced for one recording."""
    transcript: TranscriptionResult
    generated_content: tuple[GeneratedContent, ...]
    validations: dict[str, ContentValidationResult]
    content_ids: dict[str, str]
    processing_time: float  # ms
    quality_metrics: ProcessingQualityMetrics
    estimated_cost: float
    approvals: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "transcript": self.transcript.to_dict(),
            "generated_content": [c.to_dict() for c in self.generated_content],
            "validations": {
                platform: {"valid": v.valid, "issues": list(v.issues)}
                for platform, v in self.validations.items()
            },
            "content_ids": dict(self.content_ids),
            "approvals": dict(self.approvals),
            "processing_time": self.processing_time,
            "quality_metrics": asdict(self.quality_metrics),
            "estimated_cost": self.estimated_cost,
        }


def calculate_quality_metrics(
    transcription: TranscriptionResult,
    contents: Sequence[GeneratedContent],
    processing_time: float
) -> ProcessingQualityMetrics:
    """Quality figures for a finished run."""
    scores = [c.virality_score for c in contents]
    return ProcessingQualityMetrics(
        transcription_accuracy=min(100.0, transcription.confidence * 100),
        content_relevance=sum(scores) / len(scores) if scores else 0.0,
        brand_alignment=85.0 if scores else 0.0,
        engagement_potential=float(max(scores)) if scores else 0.0,
        processing_speed=processing_time,
    )


def estimate_processing_cost(file_size: int, platform_count: int) -> float:
    """Provider cost in dollars: per started MB of audio plus per platform."""
    transcription_cost = math.ceil(file_size / (1024 * 1024)) * TRANSCRIPTION_COST_PER_MB
    generation_cost = platform_count * GENERATION_COST_PER_PLATFORM
    return round(transcription_cost + generation_cost, 2)


def voice_minutes(duration: float | None) -> int:
    """Billable minutes for a recording; at least one."""
    if not duration or duration <= 0:
        return 1
    return max(1, math.ceil(duration / 60))


class VoiceContentPipeline:
    """
    Orchestrates one voice memo end to end.

    Example:
        pipeline = VoiceContentPipeline(transcriber, engine, store, usage)
        result = await pipeline.process("user-1", audio, context, platforms)
    """

    def __init__(
        self,
        transcriber: TranscriptionClient,
        generator: ContentGenerationEngine,
        store: ContentStore,
        usage: UsageTracker,
        approvals: ApprovalDispatcher | None = None,
        processor: AudioPostProcessor | None = None,
        validator: ContentValidator | None = None,
        session_logger: SessionLogger | None = None
    ):
        """
        Initialize pipeline.

        Args:
            transcriber: Speech-to-text client
            generator: Content generation engine
            store: Content persistence
            usage: Usage tracking
            approvals: Approval delivery (optional)
            processor: Audio validator
            validator: Content validator
            session_logger: JSONL audit log (optional)
        """
        self.transcriber = transcriber
        self.generator = generator
        self.store = store
        self.usage = usage
        self.approvals = approvals
        self.processor = processor or AudioPostProcessor()
        self.validator = validator or ContentValidator()
        self.session_logger = session_logger

    async def process(
        self,
        user_id: str,
        audio: AudioFile,
        context: RestaurantContext,
        platforms: Sequence[SocialPlatform],
        *,
        content_type: ContentType = ContentType.DISH_DESCRIPTION,
        mood: Mood = Mood.CASUAL,
        include_hashtags: bool = True,
        include_emojis: bool = True,
        image_description: str | None = None,
        image_url: str | None = None,
        approval_destination: str | None = None
    ) -> ProcessingResult:
        """
        Run a recording through the whole pipeline.

        Args:
            user_id: Owner of the recording
            audio: Recording
            context: Restaurant context
            platforms: Target platforms
            content_type: Kind of post
            mood: Mood of the post
            include_hashtags: Ask for hashtags
            include_emojis: Ask for emoji
            image_description: Description of an accompanying photo
            image_url: Stored with each saved post
            approval_destination: Send each draft for approval here

        Returns:
            ProcessingResult

        Raises:
            ValidationError: Audio violates upload constraints
            TranscriptionError: Transcription failed after retries
            QualityError: No speech recognized
            ContentGenerationError: No platform produced a draft
        """
        start_time = time.time()

        try:
            file_check = self.processor.validate(audio)
            if not file_check.valid:
                raise ValidationError(
                    "Audio file rejected",
                    issues=file_check.errors,
                    context={"file": audio.name, "size": audio.size}
                )

            transcript = await self.transcriber.transcribe(audio)
            self._log("log_transcription", transcript.to_dict())
            if transcript.is_empty:
                raise QualityError("No speech detected")

            contents = await self.generator.generate(
                transcript.text,
                context,
                platforms,
                image_description,
                content_type=content_type,
                mood=mood,
                include_hashtags=include_hashtags,
                include_emojis=include_emojis,
            )
            if not contents:
                raise ContentGenerationError("Failed to generate content for any platform")

        except Exception as e:
            self._log("log_error", f"Voice processing failed for {user_id}", e)
            raise

        by_name = {p.name: p for p in platforms}
        validations = {}
        for content in contents:
            result = self.validator.validate(content, by_name[content.platform])
            validations[content.platform] = result
            self._log("log_content", content.to_dict())
            self._log("log_validation", content.platform, {"valid": result.valid, "issues": result.issues})
            if not result.valid:
                logger.info(f"{content.platform} draft has issues: {'; '.join(result.issues)}")

        content_ids = await self._save_all(user_id, contents, content_type, transcript, image_url)

        await self.usage.track(user_id, USAGE_METRIC_VOICE_MINUTES, voice_minutes(self._duration(audio, transcript)))

        approvals = {}
        if approval_destination and self.approvals is not None:
            approvals = await self._dispatch_all(contents, approval_destination)

        processing_time = (time.time() - start_time) * 1000
        if processing_time > SLOW_PROCESSING_WARNING_MS:
            logger.warning(
                f"Voice processing took {processing_time:.0f}ms - exceeds "
                f"{SLOW_PROCESSING_WARNING_MS // 1000}s target"
            )

        return ProcessingResult(
            transcript=transcript,
            generated_content=tuple(contents),
            validations=validations,
            content_ids=content_ids,
            approvals=approvals,
            processing_time=processing_time,
            quality_metrics=calculate_quality_metrics(transcript, contents, processing_time),
            estimated_cost=estimate_processing_cost(audio.size, len(contents)),
        )

    async def _save_all(
        self,
        user_id: str,
        contents: Sequence[GeneratedContent],
        content_type: ContentType,
        transcript: TranscriptionResult,
        image_url: str | None
    ) -> dict[str, str]:
        saved = {}
        for content in contents:
            try:
                saved[content.platform] = await self.store.save(
                    user_id,
                    content.platform,
                    ContentType(content_type).value,
                    content.content,
                    list(content.hashtags),
                    image_url=image_url,
                    transcript=transcript.text,
                    viral_score=content.virality_score,
                )
            except Exception as e:
                logger.error(f"Failed to save {content.platform} content for {user_id}: {e}")
                self._log("log_error", f"Save failed for {content.platform}", e)

        logger.info(f"Saved {len(saved)}/{len(contents)} drafts for {user_id}")
        return saved

    async def _dispatch_all(
        self,
        contents: Sequence[GeneratedContent],
        destination: str
    ) -> dict[str, str]:
        workflows = {}
        for content in contents:
            try:
                workflows[content.platform] = await self.approvals.send_for_approval(content, destination)
            except Exception as e:
                logger.error(f"Failed to send {content.platform} draft for approval: {e}")
                self._log("log_error", f"Approval dispatch failed for {content.platform}", e)
        return workflows

    @staticmethod
    def _duration(audio: AudioFile, transcript: TranscriptionResult) -> float | None:
        if audio.duration is not None:
            return audio.duration
        if transcript.segments:
            return transcript.segments[-1].end
        return None

    def _log(self, method: str, *args: Any) -> None:
        if self.session_logger is not None:
            getattr(self.session_logger, method)(*args)
