"""
KinoCheck trailer provider.

KinoCheck is a dedicated trailer database; it is the first source tried.

Endpoints used:
- GET /search/movies?query=<title>&year=<year>
- GET /movies/<id>
- GET /movies/<id>/trailers
- GET /movies/imdb/<imdb id>
- GET /status
"""

from typing import Any, Dict, List, Optional

from trailerscout.api_client import ErrorKind, TrailerDataClient
from trailerscout.providers.base import TrailerProvider
from trailerscout.schemas import ProviderOutcome, Source

KINOCHECK_BASE_URL = "https://api.kinocheck.com"
KINOCHECK_TIMEOUT = 15.0
USER_AGENT = "trailerscout/1.0"


class KinoCheckProvider(TrailerProvider):
    """Trailer lookups against the KinoCheck API."""

    name = "kinocheck"
    source = Source.KINOCHECK

    def __init__(self, api_key: str, client: Optional[TrailerDataClient] = None,
                 base_url: str = KINOCHECK_BASE_URL):
        super().__init__(api_key, client or TrailerDataClient(timeout=KINOCHECK_TIMEOUT))
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-API-Key": self.api_key,
            "User-Agent": USER_AGENT,
        }

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.client.get_json(
            f"{self.base_url}{path}",
            params=params,
            headers=self._headers(),
            api_name="KinoCheck",
        )

    def search(self, title: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"query": title}
        if year is not None:
            params["year"] = str(year)
        data = self._get("/search/movies", params) or {}
        candidates = []
        for movie in data.get("results") or []:
            if movie.get("id") is None:
                continue
            candidates.append({
                "id": movie["id"],
                "title": movie.get("title"),
                "year": _as_year(movie.get("year")),
            })
        return candidates

    def get_record(self, record_id: Any) -> Dict[str, Any]:
        return self._get(f"/movies/{record_id}") or {}

    def list_trailers(self, record_id: Any,
                      record: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        data = self._get(f"/movies/{record_id}/trailers") or {}
        return [
            {"type": trailer.get("type"), "url": trailer.get("url")}
            for trailer in data.get("results") or []
        ]

    def get_trailer_by_imdb_id(self, imdb_id: str) -> ProviderOutcome:
        """
        Look a movie up by IMDb id, skipping the title search.

        Never raises, like ``fetch_trailer``.
        """
        def lookup():
            record = self._get(f"/movies/imdb/{imdb_id}") or {}
            if not record.get("id"):
                return ProviderOutcome.failure(ErrorKind.NOT_FOUND, "Movie not found by IMDb ID"), None
            return self._select(record["id"], record)

        return self._guarded(imdb_id, lookup)

    def get_api_status(self) -> Dict[str, Any]:
        """API status and rate limit info; errors propagate as ``APIError``."""
        data = self._get("/status") or {}
        return {"status": "active", "rate_limit": data.get("rate_limit")}


def _as_year(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
