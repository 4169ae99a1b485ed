"""Contracts for the services the pipeline hands its results to.

Persistence, usage tracking and approval delivery live outside this
package. The pipeline depends only on the protocols below; the in-memory
implementations back the CLI and the tests.
"""

import random
import string
import time
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from chefsocial_voice.content.models import GeneratedContent


@runtime_checkable
class ContentStore(Protocol):
    """Saves generated posts."""

    async def save(
        self,
        user_id: str,
        platform: str,
        content_type: str,
        caption: str,
        hashtags: Sequence[str],
        image_url: str | None = None,
        transcript: str | None = None,
        viral_score: int = 0
    ) -> str:
        """Persist a post and return its id."""
        ...


@runtime_checkable
class UsageTracker(Protocol):
    """Records metered usage."""

    async def track(self, user_id: str, metric: str, amount: float) -> None:
        """Add ``amount`` to a usage metric."""
        ...


@runtime_checkable
class ApprovalDispatcher(Protocol):
    """Sends drafts to a person for approval (SMS, voice call, ...)."""

    async def send_for_approval(self, content: GeneratedContent, destination: str) -> str:
        """Dispatch a draft and return the workflow id."""
        ...


def generate_id(prefix: str, tag: str | None = None, rng: random.Random | None = None) -> str:
    """
    Time-ordered id: ``{prefix}_{ms}[_{tag}]_{random}``.

    Args:
        prefix: Id prefix, e.g. ``content``
        tag: Optional short tag, e.g. the first two letters of the platform
        rng: Random source for the suffix
    """
    rng = rng or random
    suffix = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(9))
    parts = [prefix, str(int(time.time() * 1000))]
    if tag:
        parts.append(tag)
    parts.append(suffix)
    return "_".join(parts)


@dataclass
class InMemoryContentStore:
    """Key-value content store."""
    items: dict[str, dict[str, Any]] = field(default_factory=dict)

    async def save(
        self,
        user_id: str,
        platform: str,
        content_type: str,
        caption: str,
        hashtags: Sequence[str],
        image_url: str | None = None,
        transcript: str | None = None,
        viral_score: int = 0
    ) -> str:
        content_id = generate_id("content", platform[:2].lower())
        self.items[content_id] = {
            "id": content_id,
            "user_id": user_id,
            "platform": platform,
            "content_type": content_type,
            "caption": caption,
            "hashtags": list(hashtags),
            "image_url": image_url,
            "transcript": transcript,
            "viral_score": viral_score,
            "created_at": time.time(),
        }
        return content_id

    def for_user(self, user_id: str) -> list[dict[str, Any]]:
        """Saved items of one user, oldest first."""
        return [item for item in self.items.values() if item["user_id"] == user_id]


@dataclass
class InMemoryUsageTracker:
    """Usage totals per (user, metric)."""
    totals: dict[tuple[str, str], float] = field(default_factory=lambda: defaultdict(float))

    async def track(self, user_id: str, metric: str, amount: float) -> None:
        self.totals[(user_id, metric)] += amount

    def get(self, user_id: str, metric: str) -> float:
        """Current total."""
        return self.totals.get((user_id, metric), 0)


@dataclass
class InMemoryApprovalDispatcher:
    """Records approval requests instead of delivering them."""
    sent: list[dict[str, Any]] = field(default_factory=list)

    async def send_for_approval(self, content: GeneratedContent, destination: str) -> str:
        workflow_id = generate_id("approval")
        self.sent.append({
            "workflow_id": workflow_id,
            "destination": destination,
            "platform": content.platform,
            "content": content.content,
        })
        return workflow_id
