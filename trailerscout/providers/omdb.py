"""
OMDb trailer provider.

OMDb has no video listings of its own. It confirms the title exists and
supplies its canonical title and year; the trailer reference is a YouTube
search for "<title> <year> official trailer".

Endpoints used:
- GET /?t=<title>&y=<year>&type=movie
- GET /?i=<imdb id>
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from trailerscout.api_client import NotFoundError, TrailerDataClient
from trailerscout.providers.base import TrailerProvider
from trailerscout.schemas import Source

OMDB_BASE_URL = "https://www.omdbapi.com/"
OMDB_TIMEOUT = 10.0
YOUTUBE_SEARCH_URL = "https://www.youtube.com/results?search_query={query}"


def build_youtube_search_url(title: str, year: Any = None) -> str:
    """YouTube results page for a title's official trailer."""
    parts = [title, str(year) if year else "", "official trailer"]
    query = " ".join(p for p in parts if p)
    return YOUTUBE_SEARCH_URL.format(query=quote(query, safe=""))


class OMDbProvider(TrailerProvider):
    """Trailer lookups backed by OMDb title data."""

    name = "omdb"
    source = Source.OMDB

    def __init__(self, api_key: str, client: Optional[TrailerDataClient] = None,
                 base_url: str = OMDB_BASE_URL):
        super().__init__(api_key, client or TrailerDataClient(timeout=OMDB_TIMEOUT))
        self.base_url = base_url

    def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        # OMDb reports a missing title as HTTP 200 with Response "False"
        return self.client.get_json(
            self.base_url,
            params={"apikey": self.api_key, **params},
            headers={"Accept": "application/json"},
            api_name="OMDb",
        ) or {}

    def search(self, title: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"t": title, "type": "movie", "plot": "short"}
        if year is not None:
            params["y"] = str(year)
        data = self._get(params)
        if data.get("Response") == "False" or not data.get("imdbID"):
            return []
        return [{
            "id": data["imdbID"],
            "title": data.get("Title"),
            "year": _as_year(data.get("Year")),
        }]

    def get_record(self, record_id: Any) -> Dict[str, Any]:
        data = self._get({"i": record_id})
        if data.get("Response") == "False":
            raise NotFoundError(f"{record_id} not found in OMDb: {data.get('Error')}")
        return {
            "id": data.get("imdbID", record_id),
            "title": data.get("Title"),
            "year": _as_year(data.get("Year")),
        }

    def list_trailers(self, record_id: Any,
                      record: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        record = record or {}
        if not record.get("title"):
            return []
        return [{
            "type": "trailer",
            "url": build_youtube_search_url(record["title"], record.get("year")),
        }]


def _as_year(value: Any) -> Optional[int]:
    # Series years look like "2011–2019"
    try:
        return int(str(value)[:4])
    except (TypeError, ValueError):
        return None
