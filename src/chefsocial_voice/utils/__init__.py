"""Utility modules for chefsocial_voice."""

from .logger import SessionLogger, get_logger
from .rate_limiter import RateLimiter
from .retry import call_with_retry, compute_delay

__all__ = ['SessionLogger', 'get_logger', 'RateLimiter', 'call_with_retry', 'compute_delay']
