"""Platform constraint checks for generated posts."""

import re

from chefsocial_voice.content.models import ContentValidationResult, GeneratedContent, SocialPlatform
from chefsocial_voice.exceptions import ValidationError

CTA_PATTERNS = [
    re.compile(r"visit us", re.IGNORECASE),
    re.compile(r"try it", re.IGNORECASE),
    re.compile(r"order now", re.IGNORECASE),
    re.compile(r"book a table", re.IGNORECASE),
    re.compile(r"call us", re.IGNORECASE),
    re.compile(r"check us out", re.IGNORECASE),
    re.compile(r"come hungry", re.IGNORECASE),
    re.compile(r"taste the difference", re.IGNORECASE),
]


def has_call_to_action(text: str) -> bool:
    """Whether the text contains a recognized call-to-action phrase."""
    return any(pattern.search(text) for pattern in CTA_PATTERNS)


class ContentValidator:
    """Check drafts against per-platform length, hashtag and CTA rules."""

    def validate(self, content: GeneratedContent, platform: SocialPlatform) -> ContentValidationResult:
        """
        Check every rule and report all violations.

        Args:
            content: Drafted post
            platform: Platform the post targets

        Returns:
            ContentValidationResult
        """
        custom = platform.customization
        issues = []

        if len(content.content) > custom.max_length:
            issues.append(f"Content exceeds {custom.max_length} character limit")

        if len(content.hashtags) > custom.hashtag_count:
            issues.append(f"Too many hashtags: {len(content.hashtags)} (max: {custom.hashtag_count})")

        if custom.include_cta_button and not has_call_to_action(content.content):
            issues.append("Missing call-to-action element")

        return ContentValidationResult(valid=not issues, issues=issues)

    def validate_or_raise(self, content: GeneratedContent, platform: SocialPlatform) -> None:
        """
        Raise when the draft violates any rule.

        Raises:
            ValidationError: With every violated rule in ``issues``
        """
        result = self.validate(content, platform)
        if not result.valid:
            raise ValidationError(
                f"Content for {platform.name} violates platform constraints",
                issues=result.issues,
                context={"platform": platform.name}
            )
