"""Social post generation with the OpenAI chat completions API."""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from openai import AsyncOpenAI

from chefsocial_voice.constants import (
    DEFAULT_GENERATION_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    GENERATION_RATE_LIMIT_CALLS,
    GENERATION_RATE_LIMIT_PERIOD_S,
    GENERATION_TIMEOUT_S,
)
from chefsocial_voice.content.models import (
    ContentRequest,
    ContentType,
    GeneratedContent,
    Mood,
    RestaurantContext,
    SocialPlatform,
)
from chefsocial_voice.content.parsing import (
    FreeformResponse,
    ParsedResponse,
    StructuredResponse,
    extract_emojis,
    extract_engagement_hooks,
    extract_hashtags,
    parse_response,
)
from chefsocial_voice.content.prompts import build_system_prompt, build_user_prompt
from chefsocial_voice.content.scoring import (
    ReachEstimator,
    ViralityWeights,
    calculate_virality_score,
    clamp_score,
    generate_posting_suggestions,
)
from chefsocial_voice.exceptions import ConfigError, ContentGenerationError
from chefsocial_voice.utils.logger import get_logger
from chefsocial_voice.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    """Text-generation settings."""
    model: str = DEFAULT_GENERATION_MODEL
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = GENERATION_TIMEOUT_S
    rate_limit_calls: int = GENERATION_RATE_LIMIT_CALLS
    rate_limit_period: float = GENERATION_RATE_LIMIT_PERIOD_S
    json_response: bool = True


class ContentGenerationEngine:
    """
    Draft one social post per enabled platform.

    Platforms are generated concurrently. A platform whose request or
    parsing fails is logged and left out of the result; the others are
    returned in input order.

    Example:
        engine = ContentGenerationEngine(AsyncOpenAI(api_key=key))
        posts = await engine.generate(transcript, context, platforms)
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        config: GenerationConfig | None = None,
        weights: ViralityWeights | None = None,
        reach_estimator: ReachEstimator | None = None,
        rate_limiter: RateLimiter | None = None
    ):
        """
        Initialize generation engine.

        Args:
            client: Configured OpenAI client
            config: Generation settings
            weights: Virality heuristic weights
            reach_estimator: Reach estimator (owns the jitter RNG)
            rate_limiter: Limiter shared by all generation calls
        """
        self.client = client
        self.config = config or GenerationConfig()
        self.weights = weights or ViralityWeights()
        self.reach_estimator = reach_estimator or ReachEstimator()
        self.rate_limiter = rate_limiter or RateLimiter(
            max_calls=self.config.rate_limit_calls,
            period_seconds=self.config.rate_limit_period,
            name=f"OpenAI.{self.config.model}"
        )

    async def generate(
        self,
        transcript: str,
        context: RestaurantContext,
        platforms: Sequence[SocialPlatform],
        image_description: str | None = None,
        *,
        content_type: ContentType = ContentType.DISH_DESCRIPTION,
        mood: Mood = Mood.CASUAL,
        include_hashtags: bool = True,
        include_emojis: bool = True,
        max_length: int | None = None
    ) -> list[GeneratedContent]:
        """
        Draft posts for every enabled platform.

        Args:
            transcript: Voice memo transcript
            context: Restaurant context
            platforms: Target platforms (disabled ones are skipped)
            image_description: Optional description of an accompanying photo
            content_type: Kind of post
            mood: Mood of the post
            include_hashtags: Ask for hashtags
            include_emojis: Ask for emoji
            max_length: Extra length cap on top of the platform limit

        Returns:
            Drafts for the platforms that succeeded, in input order
        """
        request = ContentRequest(
            transcript=transcript,
            context=context,
            platforms=tuple(platforms),
            content_type=ContentType(content_type),
            mood=Mood(mood),
            include_hashtags=include_hashtags,
            include_emojis=include_emojis,
            max_length=max_length,
            image_description=image_description,
        )
        return await self.generate_request(request)

    async def generate_request(self, request: ContentRequest) -> list[GeneratedContent]:
        """Draft posts for a prepared request."""
        enabled = [p for p in request.platforms if p.enabled]
        if not enabled:
            logger.warning("No enabled platforms; nothing to generate")
            return []

        outcomes = await asyncio.gather(
            *(self.generate_for_platform(request, p) for p in enabled),
            return_exceptions=True
        )

        results = []
        for platform, outcome in zip(enabled, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(f"Failed to generate content for {platform.name}: {outcome}")
                continue
            results.append(outcome)

        logger.info(f"Generated content for {len(results)}/{len(enabled)} platforms")
        return results

    async def generate_for_platform(
        self,
        request: ContentRequest,
        platform: SocialPlatform
    ) -> GeneratedContent:
        """
        Draft one post.

        Raises:
            ContentGenerationError: Provider failure, timeout or empty output
        """
        messages = [
            {"role": "system", "content": build_system_prompt(request.context, platform)},
            {"role": "user", "content": build_user_prompt(request, platform)},
        ]

        start_time = time.time()
        try:
            await self.rate_limiter.acquire()
            response = await asyncio.wait_for(
                self._complete(messages),
                timeout=self.config.timeout
            )
        except Exception as e:
            raise ContentGenerationError(
                f"Content generation failed for {platform.name}",
                platform=platform.name,
                cause=e
            ) from e

        text = _response_text(response)
        if not text or not text.strip():
            raise ContentGenerationError("No content generated", platform=platform.name)

        logger.debug(
            f"{platform.name} generation took {(time.time() - start_time) * 1000:.0f}ms"
        )
        return self.build_content(parse_response(text), platform)

    def build_content(self, parsed: ParsedResponse, platform: SocialPlatform) -> GeneratedContent:
        """
        Turn a parsed response into ``GeneratedContent``.

        Fields the model did not supply are derived from the post text.
        """
        if isinstance(parsed, StructuredResponse):
            content = parsed.content
            hashtags = parsed.hashtags if parsed.hashtags is not None else tuple(extract_hashtags(content))
            emojis = parsed.emojis if parsed.emojis is not None else tuple(extract_emojis(content))
            hooks = (
                parsed.engagement_hooks
                if parsed.engagement_hooks is not None
                else tuple(extract_engagement_hooks(content))
            )
            if parsed.virality_score is not None:
                score = clamp_score(parsed.virality_score, self.weights)
            else:
                score = calculate_virality_score(content, hashtags, self.weights)
            if parsed.estimated_reach and parsed.estimated_reach > 0:
                reach = parsed.estimated_reach
            else:
                reach = self.reach_estimator.estimate(platform.name)
            suggestions = (
                parsed.posting_suggestions
                if parsed.posting_suggestions
                else tuple(generate_posting_suggestions(platform))
            )
        elif isinstance(parsed, FreeformResponse):
            content = parsed.text.strip()
            hashtags = tuple(extract_hashtags(content))
            emojis = tuple(extract_emojis(content))
            hooks = tuple(extract_engagement_hooks(content))
            score = calculate_virality_score(content, hashtags, self.weights)
            reach = self.reach_estimator.estimate(platform.name)
            suggestions = tuple(generate_posting_suggestions(platform))
        else:
            raise TypeError(f"Unexpected response type: {type(parsed).__name__}")

        return GeneratedContent(
            platform=platform.name,
            content=content,
            hashtags=tuple(hashtags),
            emojis=tuple(emojis),
            engagement_hooks=tuple(hooks),
            virality_score=score,
            estimated_reach=int(reach),
            posting_suggestions=tuple(suggestions),
        )

    async def _complete(self, messages: list[dict[str, str]]) -> Any:
        params: dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if self.config.json_response:
            params["response_format"] = {"type": "json_object"}
        return await self.client.chat.completions.create(**params)


def _response_text(response: Any) -> str | None:
    try:
        return response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None


def create_generation_engine(
    api_key: str | None,
    config: GenerationConfig | None = None,
    weights: ViralityWeights | None = None,
    reach_estimator: ReachEstimator | None = None
) -> ContentGenerationEngine:
    """
    Create a ContentGenerationEngine with its own OpenAI client.

    Raises:
        ConfigError: No API key
    """
    if not api_key:
        raise ConfigError(
            "OpenAI API key is required for content generation",
            config_key="OPENAI_API_KEY"
        )
    return ContentGenerationEngine(
        AsyncOpenAI(api_key=api_key),
        config=config,
        weights=weights,
        reach_estimator=reach_estimator
    )
