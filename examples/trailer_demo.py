"""
Demo script resolving trailers for a few well-known movies.

Reads KINOCHECK_API_KEY / OMDB_API_KEY / TMDB_API_KEY (and the other TRAILER_* options)
from the environment and talks to the live providers.
"""

import time

from trailerscout import ResolverConfig, TrailerResolver


DEMO_MOVIES = [
    {"id": 550, "title": "Fight Club", "release_date": "1999-10-15"},
    {"id": 13, "title": "Forrest Gump", "release_date": "1994-07-06"},
    {"id": 680, "title": "Pulp Fiction", "release_date": "1994-10-14"},
]


def demo_resolution(resolver):
    """Resolve each movie cold, then again from cache."""
    print("\n" + "=" * 60)
    print("1. Resolving trailers")
    print("=" * 60)

    for movie in DEMO_MOVIES:
        for attempt in ("cold", "warm"):
            start = time.perf_counter()
            result = resolver.resolve(movie)
            duration_ms = (time.perf_counter() - start) * 1000

            print(f"\n{movie['title']} ({attempt})")
            print(f"  Duration: {duration_ms:.0f}ms")
            print(f"  Success:  {result.success}")
            print(f"  Source:   {result.source.value}")
            print(f"  Cached:   {result.cached}")
            print(f"  Trailer:  {result.trailer_url or result.error}")


def demo_preload(resolver):
    """Warm the cache for a batch of titles."""
    print("\n" + "=" * 60)
    print("2. Preloading a batch")
    print("=" * 60)

    summary = resolver.preload(["Dune", "Arrival", "Sicario", "Blade Runner 2049"])
    print(f"\nPreload summary: {summary}")


def demo_service_check(resolver):
    """Validate provider credentials."""
    print("\n" + "=" * 60)
    print("3. Validating services")
    print("=" * 60)

    report = resolver.validate_services()
    for name, value in report.items():
        print(f"  {name}: {value}")


def main():
    resolver = TrailerResolver.from_config(ResolverConfig.from_env())
    if not resolver.providers:
        print("Set KINOCHECK_API_KEY, OMDB_API_KEY or TMDB_API_KEY to run this demo.")
        return

    demo_resolution(resolver)
    demo_preload(resolver)
    demo_service_check(resolver)

    stats = resolver.get_cache_stats()
    print(f"\nCache: {stats['size']}/{stats['max_size']} entries, hit ratio {stats['hit_ratio']:.0%}")


if __name__ == "__main__":
    main()
