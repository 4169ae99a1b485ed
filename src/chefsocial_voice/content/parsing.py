"""Parsing of text-generation responses.

A response is either the JSON object requested in the system prompt
(``StructuredResponse``) or free text (``FreeformResponse``). The
extraction helpers recover hashtags, emoji and engagement hooks from text
in both cases.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chefsocial_voice.constants import MAX_ENGAGEMENT_HOOKS
from chefsocial_voice.content.models import PostingSuggestion

HASHTAG_PATTERN = re.compile(r"#\w+")

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\u2600-\u26FF"
    "\u2700-\u27BF"
    "]"
)

QUESTION_PATTERN = re.compile(r"[^.!?]*\?")

HOOK_PATTERNS = [
    re.compile(r"tag a friend", re.IGNORECASE),
    re.compile(r"share if", re.IGNORECASE),
    re.compile(r"comment below", re.IGNORECASE),
    re.compile(r"what's your favorite", re.IGNORECASE),
    re.compile(r"have you tried", re.IGNORECASE),
]

_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class SuggestionPayload(BaseModel):
    """Posting suggestion as returned by the model."""
    model_config = ConfigDict(extra="ignore")

    type: str = "engagement"
    message: str
    impact: str = "medium"


def _string_list(value: Any) -> list[str] | None:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, str)]


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class ContentPayload(BaseModel):
    """Expected JSON shape of a generation response.

    Fields are coerced one at a time; a field that cannot be read becomes
    None and is derived from ``content`` later.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    content: str | None = None
    hashtags: list[str] | None = None
    emojis: list[str] | None = None
    engagement_hooks: list[str] | None = Field(default=None, alias="engagementHooks")
    virality_score: float | None = None
    estimated_reach: int | None = None
    posting_suggestions: list[SuggestionPayload] | None = None

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None

    @field_validator("hashtags", mode="before")
    @classmethod
    def coerce_hashtags(cls, value: Any) -> list[str] | None:
        # "#a #b" and "a, b" are both seen in the wild
        if isinstance(value, str):
            value = re.split(r"[\s,]+", value)
        tags = _string_list(value)
        if tags is None:
            return None
        return [tag.strip().lstrip("#") for tag in tags if tag.strip().lstrip("#")]

    @field_validator("emojis", "engagement_hooks", mode="before")
    @classmethod
    def coerce_strings(cls, value: Any) -> list[str] | None:
        return _string_list(value)

    @field_validator("virality_score", mode="before")
    @classmethod
    def coerce_score(cls, value: Any) -> float | None:
        return _number(value)

    @field_validator("estimated_reach", mode="before")
    @classmethod
    def coerce_reach(cls, value: Any) -> int | None:
        number = _number(value)
        return round(number) if number is not None else None

    @field_validator("posting_suggestions", mode="before")
    @classmethod
    def coerce_suggestions(cls, value: Any) -> list[SuggestionPayload] | None:
        if not isinstance(value, list):
            return None
        suggestions = []
        for item in value:
            if isinstance(item, str):
                if item.strip():
                    suggestions.append(SuggestionPayload(message=item.strip()))
                continue
            try:
                suggestions.append(SuggestionPayload.model_validate(item))
            except ValidationError:
                continue
        return suggestions


@dataclass(frozen=True)
class StructuredResponse:
    """Response that matched the requested JSON shape."""
    raw: str
    content: str
    hashtags: tuple[str, ...] | None = None
    emojis: tuple[str, ...] | None = None
    engagement_hooks: tuple[str, ...] | None = None
    virality_score: float | None = None
    estimated_reach: int | None = None
    posting_suggestions: tuple[PostingSuggestion, ...] | None = None


@dataclass(frozen=True)
class FreeformResponse:
    """Response that is plain text."""
    text: str


ParsedResponse = StructuredResponse | FreeformResponse


def _strip_fence(text: str) -> str:
    match = _FENCE_PATTERN.match(text)
    return match.group(1) if match else text


def _as_tuple(values: list | None) -> tuple | None:
    return tuple(values) if values is not None else None


def parse_response(text: str) -> ParsedResponse:
    """
    Classify a generation response.

    Args:
        text: Raw model output

    Returns:
        StructuredResponse when the text is a JSON object with a non-empty
        string ``content``, FreeformResponse otherwise
    """
    try:
        data = json.loads(_strip_fence(text))
    except (json.JSONDecodeError, TypeError):
        return FreeformResponse(text=text)

    if not isinstance(data, dict):
        return FreeformResponse(text=text)

    payload = ContentPayload.model_validate(data)
    if not payload.content or not payload.content.strip():
        return FreeformResponse(text=text)

    suggestions = None
    if payload.posting_suggestions is not None:
        suggestions = tuple(
            PostingSuggestion(type=s.type, message=s.message, impact=s.impact)
            for s in payload.posting_suggestions
        )

    return StructuredResponse(
        raw=text,
        content=payload.content,
        hashtags=_as_tuple(payload.hashtags),
        emojis=_as_tuple(payload.emojis),
        engagement_hooks=_as_tuple(payload.engagement_hooks),
        virality_score=payload.virality_score,
        estimated_reach=payload.estimated_reach,
        posting_suggestions=suggestions,
    )


def extract_hashtags(text: str) -> list[str]:
    """Hashtags in order of appearance, without the ``#``."""
    return [tag[1:] for tag in HASHTAG_PATTERN.findall(text)]


def extract_emojis(text: str) -> list[str]:
    """Emoji characters in order of appearance."""
    return EMOJI_PATTERN.findall(text)


def extract_engagement_hooks(text: str, limit: int = MAX_ENGAGEMENT_HOOKS) -> list[str]:
    """
    Questions and call-to-action phrases, at most ``limit``.

    Questions come first, in order of appearance, followed by matched
    phrases.
    """
    hooks = [q.strip() for q in QUESTION_PATTERN.findall(text) if q.strip()]

    for pattern in HOOK_PATTERNS:
        match = pattern.search(text)
        if match:
            hooks.append(match.group(0))

    return hooks[:limit]
