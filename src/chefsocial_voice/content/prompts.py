"""Prompt templates for social post generation."""

from chefsocial_voice.content.models import ContentRequest, RestaurantContext, SocialPlatform

SYSTEM_TEMPLATE = """You are an expert social media content creator specializing in restaurant marketing.

RESTAURANT CONTEXT:
- Name: {name}
- Cuisine: {cuisine}
- Location: {location}
- Brand Voice: {brand_voice}
- Specialties: {specialties}
- Target Audience: {target_audience}
{previous_content}
PLATFORM: {platform}
PLATFORM REQUIREMENTS:
- Max Length: {max_length} characters
- Hashtag Count: {hashtag_count}
- Emoji Style: {emoji_style}
- Tone: {tone}
- CTA Button: {cta}

RESPONSE FORMAT (Return ONLY valid JSON):
{{
  "content": "Main post content without hashtags",
  "hashtags": ["hashtag1", "hashtag2"],
  "emojis": ["\U0001F37D️", "✨"],
  "engagementHooks": ["Hook 1", "Hook 2"],
  "virality_score": 85,
  "estimated_reach": 1500,
  "posting_suggestions": [
    {{"type": "timing", "message": "Best posted during lunch hours", "impact": "medium"}}
  ]
}}

CREATE COMPELLING, AUTHENTIC CONTENT THAT DRIVES ENGAGEMENT."""

USER_TEMPLATE = """Create {platform} content based on this voice description:

TRANSCRIPT: "{transcript}"
{image}
CONTENT TYPE: {content_type}
MOOD: {mood}
INCLUDE HASHTAGS: {include_hashtags}
INCLUDE EMOJIS: {include_emojis}
{max_length}
Make it engaging, authentic, and optimized for {platform}. Focus on storytelling and emotional connection."""


def build_system_prompt(context: RestaurantContext, platform: SocialPlatform) -> str:
    """
    System prompt carrying brand context and platform constraints.

    Args:
        context: Restaurant context
        platform: Target platform

    Returns:
        Prompt text
    """
    custom = platform.customization

    previous = ""
    if context.previous_content:
        recent = "\n".join(f"  - {item}" for item in context.previous_content[-3:])
        previous = f"- Recent Posts (avoid repeating):\n{recent}\n"

    return SYSTEM_TEMPLATE.format(
        name=context.name,
        cuisine=context.cuisine,
        location=context.location,
        brand_voice=context.brand_voice,
        specialties=", ".join(context.specialties),
        target_audience=", ".join(context.target_audience),
        previous_content=previous,
        platform=platform.name.upper(),
        max_length=custom.max_length,
        hashtag_count=custom.hashtag_count,
        emoji_style=custom.emoji_style,
        tone=custom.tone,
        cta="Include" if custom.include_cta_button else "Exclude",
    )


def build_user_prompt(request: ContentRequest, platform: SocialPlatform) -> str:
    """
    User prompt carrying the transcript and the request options.

    Args:
        request: Content request
        platform: Target platform

    Returns:
        Prompt text
    """
    image = ""
    if request.image_description:
        image = f"IMAGE: {request.image_description}\n"

    max_length = ""
    if request.max_length:
        limit = min(request.max_length, platform.customization.max_length)
        max_length = f"MAX LENGTH: {limit} characters\n"

    return USER_TEMPLATE.format(
        platform=platform.name,
        transcript=request.transcript,
        image=image,
        content_type=request.content_type.value,
        mood=request.mood.value,
        include_hashtags=str(request.include_hashtags).lower(),
        include_emojis=str(request.include_emojis).lower(),
        max_length=max_length,
    )
