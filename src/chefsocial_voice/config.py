"""Application settings.

Settings are read from a YAML file and validated with pydantic models. The
OpenAI API key is only ever taken from the environment.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from chefsocial_voice import constants
from chefsocial_voice.audio.models import VoiceRecorderConfig
from chefsocial_voice.audio.transcription import TranscriptionConfig
from chefsocial_voice.content.generator import GenerationConfig
from chefsocial_voice.content.models import (
    DEMO_CONTEXT,
    PlatformCustomization,
    RestaurantContext,
    SocialPlatform,
    default_platforms,
)
from chefsocial_voice.content.scoring import ReachEstimator, ViralityWeights
from chefsocial_voice.exceptions import ConfigError
from chefsocial_voice.utils.logger import get_logger

logger = get_logger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"


class RecorderSettings(BaseModel):
    """Recorder section."""
    model_config = ConfigDict(extra="forbid")

    max_duration: float = Field(default=constants.DEFAULT_MAX_DURATION_S, gt=0)
    min_duration: float = Field(default=constants.DEFAULT_MIN_DURATION_S, ge=0)
    quality_threshold: float = Field(default=constants.DEFAULT_QUALITY_THRESHOLD, ge=0, le=100)
    auto_stop: bool = True
    noise_reduction: bool = True
    echo_cancellation: bool = True
    sample_rate: int = Field(default=constants.DEFAULT_SAMPLE_RATE, gt=0)
    channel_count: int = Field(default=constants.DEFAULT_CHANNEL_COUNT, ge=1, le=2)
    device_index: int | None = None

    @model_validator(mode="after")
    def check_durations(self) -> "RecorderSettings":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        return self

    def to_recorder_config(self) -> VoiceRecorderConfig:
        """Build the immutable recorder config."""
        return VoiceRecorderConfig(**self.model_dump(exclude={"device_index"}))


class TranscriptionSettings(BaseModel):
    """Transcription section."""
    model_config = ConfigDict(extra="forbid")

    model: str = constants.DEFAULT_STT_MODEL
    language: str = constants.DEFAULT_STT_LANGUAGE
    prompt: str | None = None
    max_attempts: int = Field(default=constants.TRANSCRIPTION_MAX_ATTEMPTS, ge=1)
    base_delay: float = Field(default=constants.TRANSCRIPTION_BASE_DELAY_S, ge=0)
    timeout: float = Field(default=constants.TRANSCRIPTION_TIMEOUT_S, gt=0)

    def to_transcription_config(self) -> TranscriptionConfig:
        """Build the transcription client config."""
        return TranscriptionConfig(**self.model_dump())


class GenerationSettings(BaseModel):
    """Generation section."""
    model_config = ConfigDict(extra="forbid")

    model: str = constants.DEFAULT_GENERATION_MODEL
    temperature: float = Field(default=constants.DEFAULT_TEMPERATURE, ge=0, le=2)
    max_tokens: int = Field(default=constants.DEFAULT_MAX_TOKENS, gt=0)
    timeout: float = Field(default=constants.GENERATION_TIMEOUT_S, gt=0)
    rate_limit_calls: int = Field(default=constants.GENERATION_RATE_LIMIT_CALLS, gt=0)
    rate_limit_period: float = Field(default=constants.GENERATION_RATE_LIMIT_PERIOD_S, gt=0)
    json_response: bool = True

    def to_generation_config(self) -> GenerationConfig:
        """Build the generation engine config."""
        return GenerationConfig(**self.model_dump())


class ViralitySettings(BaseModel):
    """Virality weights, all optional."""
    model_config = ConfigDict(extra="forbid")

    base: int = constants.VIRALITY_BASE
    question_bonus: int = constants.VIRALITY_QUESTION_BONUS
    emoji_bonus: int = constants.VIRALITY_EMOJI_BONUS
    optimal_length_bonus: int = constants.VIRALITY_OPTIMAL_LENGTH_BONUS
    superlative_bonus: int = constants.VIRALITY_SUPERLATIVE_BONUS
    exclusivity_bonus: int = constants.VIRALITY_EXCLUSIVITY_BONUS
    too_long_penalty: int = constants.VIRALITY_TOO_LONG_PENALTY
    hashtag_penalty: int = constants.VIRALITY_HASHTAG_PENALTY
    optimal_length: tuple[int, int] = constants.VIRALITY_OPTIMAL_LENGTH
    too_long_length: int = Field(default=constants.VIRALITY_TOO_LONG_LENGTH, gt=0)
    max_hashtags: int = Field(default=constants.VIRALITY_MAX_HASHTAGS, ge=0)
    min_score: int = constants.VIRALITY_MIN_SCORE
    max_score: int = constants.VIRALITY_MAX_SCORE

    @model_validator(mode="after")
    def check_ranges(self) -> "ViralitySettings":
        low, high = self.optimal_length
        if low > high:
            raise ValueError("optimal_length must be [low, high]")
        if self.min_score > self.max_score:
            raise ValueError("min_score must not exceed max_score")
        return self


class ScoringSettings(BaseModel):
    """Scoring section: virality weights and reach estimate."""
    model_config = ConfigDict(extra="forbid")

    virality: ViralitySettings = Field(default_factory=ViralitySettings)
    reach_base: dict[str, int] = Field(default_factory=lambda: dict(constants.REACH_BASE))
    reach_default_base: int = Field(default=constants.REACH_DEFAULT_BASE, gt=0)
    reach_jitter: float = Field(default=constants.REACH_JITTER, ge=0, lt=1)

    def to_weights(self) -> ViralityWeights:
        """Build virality weights."""
        return ViralityWeights(**self.virality.model_dump())

    def to_reach_estimator(self) -> ReachEstimator:
        """Build the reach estimator."""
        return ReachEstimator(
            bases={k.lower(): v for k, v in self.reach_base.items()},
            default_base=self.reach_default_base,
            jitter=self.reach_jitter,
        )


class PlatformSettings(BaseModel):
    """One entry of the platforms list."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    enabled: bool = True
    max_length: int = Field(default=2200, gt=0)
    hashtag_count: int = Field(default=10, ge=0)
    emoji_style: str = "moderate"
    tone: str = "casual"
    include_cta_button: bool = True

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("emoji_style")
    @classmethod
    def validate_emoji_style(cls, value: str) -> str:
        if value not in ("minimal", "moderate", "extensive"):
            raise ValueError("emoji_style must be minimal, moderate or extensive")
        return value

    def to_platform(self) -> SocialPlatform:
        """Build the platform definition."""
        return SocialPlatform(
            name=self.name,
            enabled=self.enabled,
            customization=PlatformCustomization(
                max_length=self.max_length,
                hashtag_count=self.hashtag_count,
                emoji_style=self.emoji_style,
                tone=self.tone,
                include_cta_button=self.include_cta_button,
            ),
        )


class RestaurantSettings(BaseModel):
    """Default restaurant context."""
    model_config = ConfigDict(extra="forbid")

    name: str = DEMO_CONTEXT.name
    cuisine: str = DEMO_CONTEXT.cuisine
    location: str = DEMO_CONTEXT.location
    brand_voice: str = DEMO_CONTEXT.brand_voice
    specialties: list[str] = Field(default_factory=lambda: list(DEMO_CONTEXT.specialties))
    target_audience: list[str] = Field(default_factory=lambda: list(DEMO_CONTEXT.target_audience))

    def to_context(self) -> RestaurantContext:
        """Build the restaurant context."""
        return RestaurantContext(
            name=self.name,
            cuisine=self.cuisine,
            location=self.location,
            brand_voice=self.brand_voice,
            specialties=tuple(self.specialties),
            target_audience=tuple(self.target_audience),
        )


def _default_platform_settings() -> list[PlatformSettings]:
    return [
        PlatformSettings(
            name=p.name,
            enabled=p.enabled,
            max_length=p.customization.max_length,
            hashtag_count=p.customization.hashtag_count,
            emoji_style=p.customization.emoji_style,
            tone=p.customization.tone,
            include_cta_button=p.customization.include_cta_button,
        )
        for p in default_platforms()
    ]


class Settings(BaseModel):
    """Top-level settings file."""
    model_config = ConfigDict(extra="forbid")

    recorder: RecorderSettings = Field(default_factory=RecorderSettings)
    transcription: TranscriptionSettings = Field(default_factory=TranscriptionSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    platforms: list[PlatformSettings] = Field(default_factory=_default_platform_settings)
    restaurant: RestaurantSettings = Field(default_factory=RestaurantSettings)
    log_dir: str | None = None

    def get_platforms(self) -> list[SocialPlatform]:
        """Configured platforms."""
        return [p.to_platform() for p in self.platforms]

    @staticmethod
    def api_key() -> str | None:
        """OpenAI API key from the environment."""
        return os.getenv(API_KEY_ENV) or None

    def require_api_key(self) -> str:
        """
        OpenAI API key, required.

        Raises:
            ConfigError: Key not set
        """
        key = self.api_key()
        if not key:
            raise ConfigError(
                f"{API_KEY_ENV} environment variable is not set",
                config_key=API_KEY_ENV
            )
        return key


def load_settings(path: str | Path | None = None) -> Settings:
    """
    Load settings from YAML.

    Args:
        path: Settings file. When omitted the default file is used if it
            exists, otherwise built-in defaults apply.

    Returns:
        Validated Settings

    Raises:
        ConfigError: File missing (explicit path), unreadable or invalid
    """
    explicit = path is not None
    config_path = Path(path) if explicit else Path(constants.DEFAULT_SETTINGS_FILE)

    if not config_path.exists():
        if explicit:
            raise ConfigError(
                f"Settings file not found: {config_path}",
                config_file=str(config_path)
            )
        logger.debug("No settings file, using defaults")
        return Settings()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Malformed settings file: {config_path}",
            config_file=str(config_path),
            cause=e
        ) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read settings file: {config_path}",
            config_file=str(config_path),
            cause=e
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            "Settings file must contain a mapping",
            config_file=str(config_path)
        )

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid settings: {e.error_count()} error(s)",
            config_file=str(config_path),
            context={"errors": [err["msg"] for err in e.errors()]},
            cause=e
        ) from e

    logger.info(f"Loaded settings from {config_path}")
    return settings
