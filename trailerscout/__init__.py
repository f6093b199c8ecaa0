"""
trailerscout - Trailer resolution and caching engine

Resolves a media title (and optional release year) to a single playable
trailer reference by querying upstream providers in priority order, with
bounded retries and an in-process TTL cache.
"""

__version__ = "1.0.0"

from .api_client import (
    TrailerDataClient,
    BackoffPolicy,
    ErrorKind,
    ErrorClassification,
    classify_error,
    APIError,
    AuthError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    UpstreamError,
    NetworkError,
)
from .cache import TrailerCache, CacheEntry, derive_key
from .config import ResolverConfig
from .preloader import preload_trailers
from .resolver import TrailerResolver, ALL_SOURCES_FAILED
from .schemas import MediaRef, ProviderOutcome, ResolutionResult, Source, TrailerReference

__all__ = [
    "TrailerDataClient",
    "BackoffPolicy",
    "ErrorKind",
    "ErrorClassification",
    "classify_error",
    "APIError",
    "AuthError",
    "NotFoundError",
    "RateLimitError",
    "RequestTimeoutError",
    "UpstreamError",
    "NetworkError",
    "TrailerCache",
    "CacheEntry",
    "derive_key",
    "ResolverConfig",
    "preload_trailers",
    "TrailerResolver",
    "ALL_SOURCES_FAILED",
    "MediaRef",
    "ProviderOutcome",
    "ResolutionResult",
    "Source",
    "TrailerReference",
]
