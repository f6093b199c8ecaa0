"""
Tests for TrailerResolver: cache short-circuit, fallback order, expiry,
all-fail outcome and service validation.
"""

import pytest
from unittest.mock import patch
from pydantic import ValidationError

from trailerscout.api_client import ErrorKind, TrailerDataClient
from trailerscout.cache import TrailerCache, derive_key
from trailerscout.config import ResolverConfig
from trailerscout.providers import KinoCheckProvider, OMDbProvider, TMDBProvider
from trailerscout.resolver import TrailerResolver, ALL_SOURCES_FAILED
from trailerscout.schemas import MediaRef, Source
from tests.conftest import FakeProvider, ok, fail, make_response


@pytest.fixture
def resolver_factory(cache):
    def build(*providers, **config):
        return TrailerResolver(list(providers), cache=cache, config=ResolverConfig(**config))
    return build


class TestCacheShortCircuit:
    """Resolution is served from cache within the TTL window."""

    def test_cold_then_cached(self, resolver_factory, call_log):
        provider_a = FakeProvider("A", Source.KINOCHECK, [ok("https://k/dune")], call_log)
        resolver = resolver_factory(provider_a)

        first = resolver.resolve(MediaRef(title="Dune", year=2021))
        assert first.success is True
        assert first.cached is False
        assert first.source == Source.KINOCHECK
        assert first.trailer_url == "https://k/dune"

        second = resolver.resolve(MediaRef(title="Dune", year=2021))
        assert second.success is True
        assert second.cached is True
        assert second.reference.cached is True
        assert second.trailer_url == "https://k/dune"
        assert provider_a.calls == 1

    def test_equivalent_titles_share_entry(self, resolver_factory):
        provider = FakeProvider("A", Source.KINOCHECK, [ok("https://k/matrix")])
        resolver = resolver_factory(provider)

        resolver.resolve("The Matrix", year=1999)
        result = resolver.resolve("the   matrix!!", year=1999)

        assert result.cached is True
        assert provider.calls == 1

    def test_repeated_within_ttl_is_idempotent(self, resolver_factory, clock):
        provider = FakeProvider("A", Source.TMDB, [ok("https://y/1", Source.TMDB), ok("https://y/2", Source.TMDB)])
        resolver = resolver_factory(provider)

        urls = []
        for _ in range(5):
            urls.append(resolver.resolve("Dune", year=2021).trailer_url)
            clock.advance(10)

        assert urls == ["https://y/1"] * 5
        assert provider.calls == 1


class TestExpiry:
    """Expired entries behave exactly like absent ones."""

    def test_expired_entry_triggers_provider_path(self, resolver_factory, cache, clock):
        provider = FakeProvider("A", Source.KINOCHECK, [ok("https://k/old"), ok("https://k/new")])
        resolver = resolver_factory(provider)

        resolver.resolve("Dune", year=2021)
        clock.advance(cache.ttl + 1)
        result = resolver.resolve("Dune", year=2021)

        assert result.cached is False
        assert result.trailer_url == "https://k/new"
        assert provider.calls == 2


class TestFallbackOrder:
    """Providers are attempted in order and any failure falls through."""

    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_a_fails_b_succeeds(self, resolver_factory, call_log, kind):
        provider_a = FakeProvider("A", Source.KINOCHECK, [fail(kind)], call_log)
        provider_b = FakeProvider("B", Source.TMDB, [ok("https://y/b", Source.TMDB)], call_log)
        resolver = resolver_factory(provider_a, provider_b)

        result = resolver.resolve("Dune", year=2021)

        assert result.success is True
        assert result.source == Source.TMDB
        assert [name for name, _, _ in call_log] == ["A", "B"]

    def test_first_success_stops_chain(self, resolver_factory, call_log):
        provider_a = FakeProvider("A", Source.KINOCHECK, [ok("https://k/a")], call_log)
        provider_b = FakeProvider("B", Source.TMDB, [ok("https://y/b", Source.TMDB)], call_log)
        resolver = resolver_factory(provider_a, provider_b)

        resolver.resolve("Dune", year=2021)

        assert provider_b.calls == 0

    def test_provider_exception_does_not_escape(self, resolver_factory, call_log):
        provider_a = FakeProvider("A", Source.KINOCHECK, [RuntimeError("kaboom")], call_log)
        provider_b = FakeProvider("B", Source.TMDB, [ok("https://y/b", Source.TMDB)], call_log)
        resolver = resolver_factory(provider_a, provider_b)

        result = resolver.resolve("Dune", year=2021)

        assert result.success is True
        assert result.source == Source.TMDB

    def test_title_and_year_passed_to_providers(self, resolver_factory, call_log):
        provider = FakeProvider("A", Source.KINOCHECK, [ok("https://k")], call_log)
        resolver = resolver_factory(provider)

        resolver.resolve({"id": 550, "title": "Fight Club", "release_date": "1999-10-15"})

        assert call_log == [("A", "Fight Club", 1999)]


class TestAllFail:
    """Resolution fails only when every provider fails."""

    def test_all_fail(self, resolver_factory, cache):
        provider_a = FakeProvider("A", Source.KINOCHECK, [fail(ErrorKind.NOT_FOUND)])
        provider_b = FakeProvider("B", Source.TMDB, [fail(ErrorKind.TIMEOUT)])
        resolver = resolver_factory(provider_a, provider_b)

        result = resolver.resolve("Unreleased Film")

        assert result.success is False
        assert result.error == ALL_SOURCES_FAILED == "All trailer sources failed"
        assert result.reference is None
        assert result.cached is False
        assert len(cache) == 0

    def test_failure_not_cached(self, resolver_factory):
        provider = FakeProvider("A", Source.KINOCHECK, [fail(), ok("https://k/later")])
        resolver = resolver_factory(provider)

        assert resolver.resolve("Dune").success is False
        assert resolver.resolve("Dune").success is True
        assert provider.calls == 2

    def test_no_providers(self, resolver_factory):
        result = resolver_factory().resolve("Dune")
        assert result.success is False
        assert result.error == ALL_SOURCES_FAILED

    def test_to_dict(self, resolver_factory):
        result = resolver_factory(FakeProvider("A", Source.KINOCHECK, [fail()])).resolve("Dune")
        assert result.to_dict() == {
            "success": False,
            "source": "omdb",
            "cached": False,
            "error": ALL_SOURCES_FAILED,
        }


class TestCacheBookkeeping:
    """Cache entries and management helpers."""

    def test_entry_records_media_metadata(self, resolver_factory, cache):
        resolver = resolver_factory(FakeProvider("A", Source.KINOCHECK, [ok("https://k")]))
        resolver.resolve({"id": 438631, "title": "Dune", "release_date": "2021-09-15"})

        entry = cache.get(derive_key("Dune", 2021))
        assert entry.media_id == "438631"
        assert entry.title == "Dune"
        assert entry.expires_at == entry.inserted_at + cache.ttl

    def test_clear_expired_cache(self, resolver_factory, cache, clock):
        resolver = resolver_factory(FakeProvider("A", Source.KINOCHECK, [ok("https://k")]))
        resolver.resolve("Dune", year=2021)
        clock.advance(cache.ttl + 1)

        assert resolver.clear_expired_cache() == 1
        assert resolver.get_cache_stats()["size"] == 0

    def test_clear_cache(self, resolver_factory):
        resolver = resolver_factory(FakeProvider("A", Source.KINOCHECK, [ok("https://k")]))
        resolver.resolve("Dune")
        resolver.clear_cache()
        assert resolver.get_cache_stats()["size"] == 0

    def test_default_cache_built_from_config(self):
        resolver = TrailerResolver([], config=ResolverConfig(max_cache_size=7, cache_ttl=30))
        assert resolver.cache.max_size == 7
        assert resolver.cache.ttl == 30

    def test_injected_empty_cache_is_kept(self):
        cache = TrailerCache(max_size=3)
        resolver = TrailerResolver([], cache=cache)
        assert resolver.cache is cache


class TestInputValidation:
    """Invalid media descriptors are rejected before any lookup."""

    def test_blank_title(self, resolver_factory):
        provider = FakeProvider("A", Source.KINOCHECK, [ok("https://k")])
        with pytest.raises(ValidationError):
            resolver_factory(provider).resolve("   ")
        assert provider.calls == 0

    def test_unsupported_type(self, resolver_factory):
        with pytest.raises(TypeError):
            resolver_factory().resolve(42)


class TestLogging:
    """Diagnostic logging is optional and never fails a resolution."""

    def test_logging_failure_is_harmless(self, resolver_factory):
        resolver = resolver_factory(FakeProvider("A", Source.KINOCHECK, [ok("https://k")]))
        with patch("trailerscout.resolver.logger") as mock_logger:
            mock_logger.info.side_effect = RuntimeError("log sink down")
            mock_logger.warning.side_effect = RuntimeError("log sink down")
            result = resolver.resolve("Dune")
        assert result.success is True

    def test_provider_and_metrics_logging_failure_is_harmless(self, resolver_factory):
        provider = KinoCheckProvider("kc-test-key", client=TrailerDataClient(sleep=lambda s: None))
        routes = {
            "/search/movies": make_response(200, {"results": [{"id": 11, "year": 2021}]}),
            "/movies/11": make_response(200, {"id": 11}),
            "/movies/11/trailers": make_response(200, {"results": [{"type": "trailer", "url": "https://k/11"}]}),
        }

        def get(url, **kwargs):
            return next(resp for suffix, resp in routes.items() if url.endswith(suffix))

        resolver = resolver_factory(provider)
        with patch.object(provider.client.session, 'get', side_effect=get), \
                patch("trailerscout.providers.base.logger") as provider_logger, \
                patch("trailerscout.metrics.logger") as metrics_logger:
            provider_logger.debug.side_effect = RuntimeError("log sink down")
            metrics_logger.debug.side_effect = RuntimeError("log sink down")
            result = resolver.resolve("Dune", 2021)

        assert result.success is True
        assert result.source == Source.KINOCHECK
        assert result.trailer_url == "https://k/11"

    def test_logging_disabled(self, resolver_factory):
        resolver = resolver_factory(
            FakeProvider("A", Source.KINOCHECK, [ok("https://k")]), enable_logging=False
        )
        with patch("trailerscout.resolver.logger") as mock_logger:
            resolver.resolve("Dune")
        mock_logger.info.assert_not_called()


class TestFromConfig:
    """Default provider chain construction."""

    def test_priority_order(self):
        resolver = TrailerResolver.from_config(ResolverConfig(
            kinocheck_api_key="kc", omdb_api_key="om", tmdb_api_key="tm", max_attempts_per_provider=2
        ))
        assert [type(p) for p in resolver.providers] == [KinoCheckProvider, OMDbProvider, TMDBProvider]
        assert resolver.providers[0].client.timeout == 15.0
        assert resolver.providers[1].client.timeout == 10.0
        assert resolver.providers[2].client.timeout == 10.0
        assert resolver.providers[0].client.max_attempts == 2
        assert resolver.providers[1].api_key == "om"

    def test_omdb_only(self):
        resolver = TrailerResolver.from_config(ResolverConfig(omdb_api_key="om"))
        assert [p.name for p in resolver.providers] == ["omdb"]
        assert resolver.providers[0].source == Source.OMDB

    def test_missing_credentials_skip_provider(self):
        resolver = TrailerResolver.from_config(ResolverConfig(tmdb_api_key="tm"))
        assert [p.name for p in resolver.providers] == ["tmdb"]

    def test_request_timeout_override(self):
        resolver = TrailerResolver.from_config(ResolverConfig(kinocheck_api_key="kc", request_timeout=2.5))
        assert resolver.providers[0].client.timeout == 2.5


class TestValidateServices:
    """Credential validation report."""

    def test_report(self, resolver_factory):
        good = FakeProvider("A", Source.KINOCHECK, [ok("https://k")])
        bad = FakeProvider("B", Source.TMDB, [ok("https://y")])
        bad.validate_api_key = lambda: False
        broken = FakeProvider("C", Source.OMDB, [ok("https://o")])

        def explode():
            raise ConnectionError("down")
        broken.validate_api_key = explode

        report = resolver_factory(good, bad, broken).validate_services()

        assert report["A"] is True
        assert report["B"] is False
        assert report["C"] is False
        assert report["errors"] == [
            "B API key validation failed",
            "C validation error: down",
        ]
