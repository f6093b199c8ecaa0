"""
Trailer resolution: cache first, then providers in priority order.

Usage Example:
    >>> from trailerscout import TrailerResolver, ResolverConfig
    >>> resolver = TrailerResolver.from_config(ResolverConfig.from_env())
    >>> result = resolver.resolve({"id": 438631, "title": "Dune", "release_date": "2021-09-15"})
    >>> if result.success:
    ...     print(result.source.value, result.trailer_url)
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from trailerscout.api_client import TrailerDataClient
from trailerscout.cache import TrailerCache, derive_key
from trailerscout.config import ResolverConfig
from trailerscout.logging_config import get_logger, log_event
from trailerscout.metrics import track_resolution
from trailerscout.preloader import preload_trailers
from trailerscout.providers import KinoCheckProvider, OMDbProvider, TMDBProvider, TrailerProvider
from trailerscout.providers.kinocheck import KINOCHECK_TIMEOUT
from trailerscout.providers.omdb import OMDB_TIMEOUT
from trailerscout.providers.tmdb import TMDB_TIMEOUT
from trailerscout.schemas import (
    MediaInput,
    ResolutionResult,
    Source,
    TrailerReference,
    to_media_ref,
)

logger = get_logger(__name__)

ALL_SOURCES_FAILED = "All trailer sources failed"

# Source tag reported on a failed resolution
FALLBACK_SOURCE = Source.OMDB


class TrailerResolver:
    """
    Resolves a media title to a single playable trailer reference.

    Providers are consulted strictly one after another, in the order given.
    Any provider failure, whatever its kind, moves on to the next provider;
    the resolution fails only when every provider has failed. Nothing raised
    by a provider reaches the caller.

    Concurrent misses on the same key are not coalesced: each traverses the
    providers and the last cache write wins.
    """

    def __init__(
        self,
        providers: Sequence[TrailerProvider],
        cache: Optional[TrailerCache] = None,
        config: Optional[ResolverConfig] = None
    ):
        self.config = config or ResolverConfig()
        self.providers: List[TrailerProvider] = list(providers)
        if cache is None:
            cache = TrailerCache(
                max_size=self.config.max_cache_size,
                ttl=self.config.cache_ttl,
            )
        self.cache = cache
        self._log(
            "trailer_resolver_initialized",
            providers=[p.name for p in self.providers],
            max_cache_size=self.cache.max_size,
            cache_ttl=self.cache.ttl,
        )

    @classmethod
    def from_config(cls, config: Optional[ResolverConfig] = None,
                    cache: Optional[TrailerCache] = None) -> "TrailerResolver":
        """
        Build a resolver with the default provider chain: KinoCheck, OMDb, TMDB.

        Providers without a configured credential are left out.
        """
        config = config or ResolverConfig.from_env()
        providers: List[TrailerProvider] = []

        if config.kinocheck_api_key:
            providers.append(KinoCheckProvider(
                config.kinocheck_api_key,
                client=_build_client(config, KINOCHECK_TIMEOUT),
            ))
        if config.omdb_api_key:
            providers.append(OMDbProvider(
                config.omdb_api_key,
                client=_build_client(config, OMDB_TIMEOUT),
            ))
        if config.tmdb_api_key:
            providers.append(TMDBProvider(
                config.tmdb_api_key,
                client=_build_client(config, TMDB_TIMEOUT),
            ))

        if not providers:
            log_event(logger, "warning", "trailer_resolver_no_providers")
        return cls(providers, cache=cache, config=config)

    def _log(self, event: str, level: str = "info", **fields: Any) -> None:
        if not self.config.enable_logging:
            return
        log_event(logger, level, event, **fields)

    def resolve(self, media: MediaInput, year: Optional[int] = None) -> ResolutionResult:
        """
        Resolve the best available trailer for a title.

        Args:
            media: MediaRef, catalog dict, or bare title string
            year: Release year, only used with a bare title

        Returns:
            ResolutionResult; ``success`` is False only when every provider failed

        Raises:
            pydantic.ValidationError: If the media descriptor is invalid
        """
        ref = to_media_ref(media, year)
        key = derive_key(ref.title, ref.year)

        entry = self.cache.get(key)
        if entry is not None:
            self._log("trailer_cache_hit", title=ref.title, key=key, source=entry.source.value)
            track_resolution(entry.source.value, "cached")
            return ResolutionResult(
                success=True,
                source=entry.source,
                cached=True,
                reference=TrailerReference(url=entry.reference.url, source=entry.source, cached=True),
            )

        self._log("trailer_resolution_started", title=ref.title, year=ref.year, key=key)

        for provider in self.providers:
            try:
                outcome = provider.fetch_trailer(ref.title, ref.year)
            except Exception as e:
                self._log(
                    "trailer_provider_crashed",
                    level="error",
                    provider=provider.name,
                    title=ref.title,
                    error=f"{type(e).__name__}: {e}",
                )
                continue

            if outcome.ok and outcome.reference is not None:
                reference = outcome.reference
                self.cache.put(key, reference, media_id=ref.media_id, title=ref.title)
                self._log(
                    "trailer_resolved",
                    title=ref.title,
                    key=key,
                    source=reference.source.value,
                )
                track_resolution(reference.source.value, "resolved")
                return ResolutionResult(
                    success=True,
                    source=reference.source,
                    cached=False,
                    reference=reference,
                )

            self._log(
                "trailer_provider_failed",
                level="warning",
                provider=provider.name,
                title=ref.title,
                error_kind=outcome.error_kind.value if outcome.error_kind else None,
                error=outcome.message,
            )

        self._log("trailer_resolution_failed", level="warning", title=ref.title, key=key)
        track_resolution(FALLBACK_SOURCE.value, "failed")
        return ResolutionResult(
            success=False,
            source=FALLBACK_SOURCE,
            cached=False,
            error=ALL_SOURCES_FAILED,
        )

    def preload(self, items: Sequence[MediaInput], max_workers: Optional[int] = None) -> Dict[str, int]:
        """Warm the cache for many titles at once; see ``preload_trailers``."""
        return preload_trailers(self, items, max_workers=max_workers)

    def clear_expired_cache(self) -> int:
        """Sweep expired entries; returns how many were removed."""
        removed = self.cache.cleanup_expired()
        if removed:
            self._log("trailer_cache_expired_cleared", count=removed)
        return removed

    def clear_cache(self) -> None:
        self.cache.clear()
        self._log("trailer_cache_cleared")

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats()

    def validate_services(self) -> Dict[str, Union[bool, List[str]]]:
        """
        Check every provider's credential.

        Returns:
            ``{<provider name>: bool, ..., "errors": [str, ...]}``
        """
        report: Dict[str, Union[bool, List[str]]] = {}
        errors: List[str] = []
        for provider in self.providers:
            try:
                valid = provider.validate_api_key()
            except Exception as e:
                valid = False
                errors.append(f"{provider.name} validation error: {e}")
            else:
                if not valid:
                    errors.append(f"{provider.name} API key validation failed")
            report[provider.name] = valid
        report["errors"] = errors
        return report


def _build_client(config: ResolverConfig, default_timeout: float) -> TrailerDataClient:
    return TrailerDataClient(
        timeout=config.request_timeout or default_timeout,
        max_attempts=config.max_attempts_per_provider,
        backoff_base=config.backoff_base,
    )
