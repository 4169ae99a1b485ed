"""Social post generation, scoring and validation."""

from .generator import ContentGenerationEngine, GenerationConfig, create_generation_engine
from .models import (
    ContentRequest,
    ContentType,
    ContentValidationResult,
    GeneratedContent,
    Mood,
    PlatformCustomization,
    PostingSuggestion,
    RestaurantContext,
    SocialPlatform,
    default_platforms,
)
from .parsing import FreeformResponse, StructuredResponse, parse_response
from .scoring import ReachEstimator, ViralityWeights, calculate_virality_score
from .validator import ContentValidator, has_call_to_action

__all__ = [
    'ContentGenerationEngine', 'GenerationConfig', 'create_generation_engine',
    'ContentRequest', 'ContentType', 'ContentValidationResult', 'GeneratedContent', 'Mood',
    'PlatformCustomization', 'PostingSuggestion', 'RestaurantContext', 'SocialPlatform',
    'default_platforms',
    'FreeformResponse', 'StructuredResponse', 'parse_response',
    'ReachEstimator', 'ViralityWeights', 'calculate_virality_score',
    'ContentValidator', 'has_call_to_action',
]
