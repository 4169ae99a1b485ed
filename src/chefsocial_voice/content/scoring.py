"""Heuristic engagement scoring.

The weights and reach bases are uncalibrated defaults; they are exposed as
configuration rather than tuned.
"""

import random
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from chefsocial_voice.constants import (
    REACH_BASE,
    REACH_DEFAULT_BASE,
    REACH_JITTER,
    VIRALITY_BASE,
    VIRALITY_EMOJI_BONUS,
    VIRALITY_EXCLUSIVITY_BONUS,
    VIRALITY_HASHTAG_PENALTY,
    VIRALITY_MAX_HASHTAGS,
    VIRALITY_MAX_SCORE,
    VIRALITY_MIN_SCORE,
    VIRALITY_OPTIMAL_LENGTH,
    VIRALITY_OPTIMAL_LENGTH_BONUS,
    VIRALITY_QUESTION_BONUS,
    VIRALITY_SUPERLATIVE_BONUS,
    VIRALITY_TOO_LONG_LENGTH,
    VIRALITY_TOO_LONG_PENALTY,
)
from chefsocial_voice.content.models import PostingSuggestion, SocialPlatform
from chefsocial_voice.content.parsing import extract_emojis, extract_hashtags

SUPERLATIVE_PATTERN = re.compile(r"(amazing|incredible|perfect|delicious|mouth-watering)", re.IGNORECASE)
EXCLUSIVITY_PATTERN = re.compile(r"(secret|exclusive|limited|special)", re.IGNORECASE)

TIMING_ADVICE = {
    "instagram": "Post between 11 AM - 1 PM for maximum engagement",
    "tiktok": "Best posted in the evening (6-10 PM) when users are most active",
    "facebook": "Optimal posting time is 1-3 PM on weekdays",
    "twitter": "Tweet during lunch hours (12-1 PM) for food content",
    "linkedin": "Share during business hours (9 AM - 5 PM)",
}

ENGAGEMENT_ADVICE = "Add a call-to-action asking followers to share their favorite dishes"
CAROUSEL_ADVICE = "Consider creating a carousel post with multiple food angles"


@dataclass(frozen=True)
class ViralityWeights:
    """Additive virality heuristic weights."""
    base: int = VIRALITY_BASE
    question_bonus: int = VIRALITY_QUESTION_BONUS
    emoji_bonus: int = VIRALITY_EMOJI_BONUS
    optimal_length_bonus: int = VIRALITY_OPTIMAL_LENGTH_BONUS
    superlative_bonus: int = VIRALITY_SUPERLATIVE_BONUS
    exclusivity_bonus: int = VIRALITY_EXCLUSIVITY_BONUS
    too_long_penalty: int = VIRALITY_TOO_LONG_PENALTY
    hashtag_penalty: int = VIRALITY_HASHTAG_PENALTY
    optimal_length: tuple[int, int] = VIRALITY_OPTIMAL_LENGTH
    too_long_length: int = VIRALITY_TOO_LONG_LENGTH
    max_hashtags: int = VIRALITY_MAX_HASHTAGS
    min_score: int = VIRALITY_MIN_SCORE
    max_score: int = VIRALITY_MAX_SCORE


def clamp_score(score: float, weights: ViralityWeights | None = None) -> int:
    """Clamp a score into the allowed range."""
    weights = weights or ViralityWeights()
    return int(min(weights.max_score, max(weights.min_score, round(score))))


def calculate_virality_score(
    content: str,
    hashtags: Sequence[str] | None = None,
    weights: ViralityWeights | None = None
) -> int:
    """
    Score a post on engagement signals.

    Args:
        content: Post text
        hashtags: Hashtags of the post (extracted from ``content`` if omitted)
        weights: Heuristic weights

    Returns:
        Score clamped to [min_score, max_score]
    """
    w = weights or ViralityWeights()
    score = w.base

    if "?" in content:
        score += w.question_bonus
    if extract_emojis(content):
        score += w.emoji_bonus

    low, high = w.optimal_length
    if low <= len(content) < high:
        score += w.optimal_length_bonus
    if SUPERLATIVE_PATTERN.search(content):
        score += w.superlative_bonus
    if EXCLUSIVITY_PATTERN.search(content):
        score += w.exclusivity_bonus

    if len(content) > w.too_long_length:
        score -= w.too_long_penalty

    tags = list(hashtags) if hashtags is not None else extract_hashtags(content)
    if len(tags) > w.max_hashtags:
        score -= w.hashtag_penalty

    return clamp_score(score, w)


@dataclass
class ReachEstimator:
    """Per-platform reach estimate with random jitter."""
    bases: Mapping[str, int] = field(default_factory=lambda: dict(REACH_BASE))
    default_base: int = REACH_DEFAULT_BASE
    jitter: float = REACH_JITTER
    rng: random.Random = field(default_factory=random.Random)

    def estimate(self, platform: str) -> int:
        """Base reach for the platform, varied by up to ``jitter`` either way."""
        base = self.bases.get(platform.lower(), self.default_base)
        return int(base * (1 + self.rng.uniform(-self.jitter, self.jitter)))


def generate_posting_suggestions(platform: SocialPlatform) -> list[PostingSuggestion]:
    """Fixed advice for a platform."""
    suggestions = []

    timing = TIMING_ADVICE.get(platform.name.lower())
    if timing:
        suggestions.append(PostingSuggestion(type="timing", message=timing, impact="medium"))

    suggestions.append(PostingSuggestion(type="engagement", message=ENGAGEMENT_ADVICE, impact="high"))

    if platform.name.lower() == "instagram":
        suggestions.append(PostingSuggestion(type="format", message=CAROUSEL_ADVICE, impact="medium"))

    return suggestions
