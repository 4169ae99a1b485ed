"""Data structures for content generation."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class ContentType(str, Enum):
    """Kind of post requested."""
    DISH_DESCRIPTION = "dish_description"
    SPECIAL_EVENT = "special_event"
    BEHIND_SCENES = "behind_scenes"
    PROMOTION = "promotion"


class Mood(str, Enum):
    """Requested mood of the post."""
    PROFESSIONAL = "professional"
    CASUAL = "casual"
    EXCITED = "excited"
    PREMIUM = "premium"
    PLAYFUL = "playful"


@dataclass(frozen=True)
class PlatformCustomization:
    """Per-platform constraints."""
    max_length: int = 2200
    hashtag_count: int = 10
    emoji_style: str = "moderate"  # minimal, moderate, extensive
    tone: str = "casual"
    include_cta_button: bool = True


@dataclass(frozen=True)
class SocialPlatform:
    """Target social network."""
    name: str
    enabled: bool = True
    customization: PlatformCustomization = field(default_factory=PlatformCustomization)


@dataclass(frozen=True)
class RestaurantContext:
    """Brand context embedded in every prompt."""
    name: str
    cuisine: str
    location: str = ""
    brand_voice: str = ""
    specialties: tuple[str, ...] = ()
    target_audience: tuple[str, ...] = ()
    previous_content: tuple[str, ...] = ()


@dataclass(frozen=True)
class PostingSuggestion:
    """Advice attached to a generated post."""
    type: str  # timing, audience, format, engagement
    message: str
    impact: str = "medium"  # low, medium, high


@dataclass(frozen=True)
class GeneratedContent:
    """One drafted post for one platform."""
    platform: str
    content: str
    hashtags: tuple[str, ...] = ()
    emojis: tuple[str, ...] = ()
    engagement_hooks: tuple[str, ...] = ()
    virality_score: int = 50
    estimated_reach: int = 0
    posting_suggestions: tuple[PostingSuggestion, ...] = ()

    @property
    def caption(self) -> str:
        """Post text with hashtags appended."""
        if not self.hashtags:
            return self.content
        return f"{self.content}\n\n" + " ".join(f"#{tag}" for tag in self.hashtags)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        for key in ("hashtags", "emojis", "engagement_hooks", "posting_suggestions"):
            data[key] = list(data[key])
        return data


@dataclass(frozen=True)
class ContentRequest:
    """Everything needed to draft posts from one transcript."""
    transcript: str
    context: RestaurantContext
    platforms: tuple[SocialPlatform, ...]
    content_type: ContentType = ContentType.DISH_DESCRIPTION
    mood: Mood = Mood.CASUAL
    include_hashtags: bool = True
    include_emojis: bool = True
    max_length: int | None = None
    image_description: str | None = None


@dataclass(frozen=True)
class ContentValidationResult:
    """Outcome of a platform constraint check."""
    valid: bool
    issues: list[str] = field(default_factory=list)


def default_platforms() -> tuple[SocialPlatform, ...]:
    """Platforms enabled when the caller does not choose any."""
    return (
        SocialPlatform(
            name="instagram",
            customization=PlatformCustomization(
                max_length=2200, hashtag_count=20, emoji_style="moderate",
                tone="casual", include_cta_button=True,
            ),
        ),
        SocialPlatform(
            name="tiktok",
            customization=PlatformCustomization(
                max_length=300, hashtag_count=5, emoji_style="extensive",
                tone="trendy", include_cta_button=True,
            ),
        ),
        SocialPlatform(
            name="facebook",
            customization=PlatformCustomization(
                max_length=2000, hashtag_count=10, emoji_style="minimal",
                tone="professional", include_cta_button=True,
            ),
        ),
    )


DEMO_CONTEXT = RestaurantContext(
    name="Demo Restaurant",
    cuisine="Modern American",
    location="Downtown",
    brand_voice="Friendly and passionate about food",
    specialties=("Farm-to-table", "Artisan cuisine", "Seasonal ingredients"),
    target_audience=("Food enthusiasts", "Local diners", "Social media users"),
)
