"""
TMDB trailer provider.

Uses The Movie Database's video listings. TMDB does not host video itself;
each listing points at a third-party site, so only YouTube and Vimeo
listings are turned into watch URLs.

Endpoints used:
- GET /search/movie?query=<title>&year=<year>
- GET /movie/<id>
- GET /movie/<id>/videos
"""

from typing import Any, Dict, List, Optional

from trailerscout.api_client import TrailerDataClient
from trailerscout.providers.base import TrailerProvider
from trailerscout.schemas import Source

TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_TIMEOUT = 10.0

VIDEO_SITE_URLS = {
    "youtube": "https://www.youtube.com/watch?v={key}",
    "vimeo": "https://vimeo.com/{key}",
}


def build_video_url(video: Dict[str, Any]) -> Optional[str]:
    """Watch URL for a TMDB video listing, or None for unsupported sites."""
    key = video.get("key")
    template = VIDEO_SITE_URLS.get(str(video.get("site") or "").lower())
    if not key or not template:
        return None
    return template.format(key=key)


class TMDBProvider(TrailerProvider):
    """Trailer lookups against the TMDB v3 API using a bearer read token."""

    name = "tmdb"
    source = Source.TMDB

    def __init__(self, api_key: str, client: Optional[TrailerDataClient] = None,
                 base_url: str = TMDB_BASE_URL, language: str = "en-US"):
        super().__init__(api_key, client or TrailerDataClient(timeout=TMDB_TIMEOUT))
        self.base_url = base_url.rstrip("/")
        self.language = language

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = {"language": self.language}
        query.update(params or {})
        return self.client.get_json(
            f"{self.base_url}{path}",
            params=query,
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            api_name="TMDB",
        )

    def search(self, title: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"query": title, "include_adult": "false"}
        if year is not None:
            params["year"] = str(year)
        data = self._get("/search/movie", params) or {}
        candidates = []
        for movie in data.get("results") or []:
            if movie.get("id") is None:
                continue
            release_year = (movie.get("release_date") or "")[:4]
            candidates.append({
                "id": movie["id"],
                "title": movie.get("title"),
                "year": int(release_year) if release_year.isdigit() else None,
            })
        return candidates

    def get_record(self, record_id: Any) -> Dict[str, Any]:
        return self._get(f"/movie/{record_id}") or {}

    def list_trailers(self, record_id: Any,
                      record: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        data = self._get(f"/movie/{record_id}/videos") or {}
        return [
            {"type": video.get("type"), "url": build_video_url(video)}
            for video in data.get("results") or []
        ]
