"""
Prometheus metrics for trailerscout.

This module provides metrics collection for monitoring trailer resolution,
upstream provider usage, retry behavior, and caching effectiveness.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from functools import wraps
import time

import structlog

from trailerscout.logging_config import log_event


logger = structlog.get_logger()


# Resolution Metrics
resolutions_total = Counter(
    'trailerscout_resolutions_total',
    'Total number of trailer resolutions',
    ['source', 'outcome']  # outcome: cached, resolved, failed
)

# Provider Call Metrics
provider_calls_total = Counter(
    'trailerscout_provider_calls_total',
    'Total number of provider lookups',
    ['provider', 'status']
)

provider_duration_seconds = Histogram(
    'trailerscout_provider_duration_seconds',
    'Provider lookup duration in seconds',
    ['provider']
)

http_retries_total = Counter(
    'trailerscout_http_retries_total',
    'Total number of HTTP retries scheduled by the backoff policy',
    ['api_name', 'error_kind']
)

# Cache Metrics
cache_hits_total = Counter(
    'trailerscout_cache_hits_total',
    'Total number of trailer cache hits'
)

cache_misses_total = Counter(
    'trailerscout_cache_misses_total',
    'Total number of trailer cache misses'
)

cache_evictions_total = Counter(
    'trailerscout_cache_evictions_total',
    'Total number of trailer cache evictions',
    ['reason']  # expired, capacity, manual
)

cache_size = Gauge(
    'trailerscout_cache_size',
    'Current number of entries in the trailer cache'
)


def track_provider_call(func):
    """
    Decorator to track provider lookup metrics.

    The wrapped method must belong to an object with a ``name`` attribute
    and return an object with an ``ok`` attribute (a ProviderOutcome).

    Usage:
        class MyProvider(TrailerProvider):
            @track_provider_call
            def fetch_trailer(self, title, year=None):
                ...
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        start_time = time.time()
        status = 'error'
        try:
            outcome = func(self, *args, **kwargs)
            if getattr(outcome, 'ok', False):
                status = 'success'
            elif getattr(outcome, 'error_kind', None) is not None:
                status = outcome.error_kind.value
            return outcome
        finally:
            duration = time.time() - start_time
            provider_calls_total.labels(provider=self.name, status=status).inc()
            provider_duration_seconds.labels(provider=self.name).observe(duration)
            log_event(
                logger, "debug", "provider_call",
                provider=self.name,
                status=status,
                duration_ms=round(duration * 1000, 2)
            )
    return wrapper


def track_resolution(source, outcome):
    """
    Record a finished resolution.

    Args:
        source: Source tag of the result (e.g., 'kinocheck', 'tmdb')
        outcome: One of 'cached', 'resolved', 'failed'
    """
    resolutions_total.labels(source=source, outcome=outcome).inc()


def track_http_retry(api_name, error_kind):
    """Record a retry scheduled by the HTTP client."""
    http_retries_total.labels(api_name=api_name, error_kind=error_kind).inc()


def track_cache_operation(hit=True):
    """
    Record a cache hit or miss.

    Args:
        hit: True for cache hit, False for cache miss
    """
    if hit:
        cache_hits_total.inc()
    else:
        cache_misses_total.inc()


def track_cache_eviction(reason, count=1):
    """Record evicted cache entries ('expired', 'capacity' or 'manual')."""
    if count > 0:
        cache_evictions_total.labels(reason=reason).inc(count)


def update_cache_size(size):
    """Update the cache size gauge."""
    cache_size.set(size)


def get_metrics():
    """
    Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics_text, content_type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
