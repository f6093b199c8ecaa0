"""
Base class for trailer providers.

A provider answers "does this title have a trailer, and where" by running a
fixed three-step lookup against one upstream service:

    search(title, year) -> pick a candidate -> get_record(id) -> list_trailers(id, record)

and picking the best listing. Subclasses implement the three network steps
and the normalization of provider-native payloads; the control flow, the
selection policies and the conversion of every failure into a
``ProviderOutcome`` live here.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from trailerscout.api_client import APIError, ErrorKind, TrailerDataClient
from trailerscout.logging_config import get_logger, log_event
from trailerscout.metrics import track_provider_call
from trailerscout.schemas import ProviderOutcome, Source, TrailerReference

logger = get_logger(__name__)

# Listing types, best first
TRAILER_TYPE_PRIORITY = ("trailer", "teaser", "clip", "featurette")

# Outcome plus the listing it was built from
LookupResult = Tuple[ProviderOutcome, Optional[Dict[str, Any]]]


def select_best_trailer(listings: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the preferred listing: trailer > teaser > clip > featurette.

    Type names are compared case-insensitively. Falls back to the first
    listing when none carries a known type; returns None for an empty list.
    """
    if not listings:
        return None
    for wanted in TRAILER_TYPE_PRIORITY:
        for listing in listings:
            if str(listing.get("type") or "").lower() == wanted:
                return listing
    return listings[0]


def pick_best_match(candidates: Sequence[Dict[str, Any]], year: Optional[int]) -> Dict[str, Any]:
    """Prefer the first candidate whose year equals ``year``; otherwise the first candidate."""
    if year is not None:
        for candidate in candidates:
            if candidate.get("year") == year:
                return candidate
    return candidates[0]


class TrailerProvider(ABC):
    """
    One upstream trailer source.

    Subclasses set ``name`` and ``source`` and implement the three lookup
    steps. Each step goes through ``self.client``, which applies the retry
    policy and raises a classified ``APIError`` once a step has failed for
    good.
    """

    name: str = "provider"
    source: Source

    def __init__(self, api_key: str, client: Optional[TrailerDataClient] = None):
        self.api_key = api_key
        self.client = client or TrailerDataClient()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @abstractmethod
    def search(self, title: str, year: Optional[int] = None) -> List[Dict[str, Any]]:
        """Search candidates; each dict carries at least ``id`` and ``year``."""

    @abstractmethod
    def get_record(self, record_id: Any) -> Dict[str, Any]:
        """Fetch the canonical record for a candidate id."""

    @abstractmethod
    def list_trailers(self, record_id: Any,
                      record: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        List trailers; each dict carries ``type`` and ``url`` (may be None).

        ``record`` is the payload ``get_record`` returned for ``record_id``.
        """

    @track_provider_call
    def fetch_trailer(self, title: str, year: Optional[int] = None) -> ProviderOutcome:
        """
        Run the full lookup for one title.

        Never raises: every failure is returned as a ``ProviderOutcome``.
        """
        return self._guarded(title, lambda: self._lookup(title, year))

    def _guarded(self, title: str, lookup: Callable[[], LookupResult]) -> ProviderOutcome:
        """Run a lookup, turning every failure into an outcome."""
        try:
            outcome, best = lookup()
        except APIError as e:
            log_event(
                logger, "warning", "trailer_provider_step_failed",
                provider=self.name,
                title=title,
                error_kind=e.error_kind.value,
                status_code=e.status_code,
                error=e.message,
            )
            return ProviderOutcome.failure(e.error_kind, e.message)
        except Exception as e:
            log_event(
                logger, "error", "trailer_provider_unexpected_error",
                provider=self.name,
                title=title,
                error=f"{type(e).__name__}: {e}",
            )
            return ProviderOutcome.failure(ErrorKind.NETWORK, f"{self.name} lookup failed: {e}")

        if outcome.ok:
            log_event(
                logger, "debug", "trailer_provider_match",
                provider=self.name,
                title=title,
                trailer_type=best.get("type"),
            )
        return outcome

    def _lookup(self, title: str, year: Optional[int]) -> LookupResult:
        candidates = self.search(title, year)
        if not candidates:
            return ProviderOutcome.failure(
                ErrorKind.NOT_FOUND, f"Movie not found in {self.name} database"
            ), None

        match = pick_best_match(candidates, year)
        record = self.get_record(match["id"])
        record_id = record.get("id", match["id"])

        return self._select(record_id, record)

    def _select(self, record_id: Any, record: Dict[str, Any]) -> LookupResult:
        listings = [t for t in self.list_trailers(record_id, record) if t.get("url")]
        best = select_best_trailer(listings)
        if best is None:
            return ProviderOutcome.failure(
                ErrorKind.NOT_FOUND, "No trailers found for this movie"
            ), None

        return ProviderOutcome.success(TrailerReference(url=best["url"], source=self.source)), best

    def validate_api_key(self) -> bool:
        """
        Check the credential with a cheap search.

        Returns False only when the provider rejects the credential; other
        failures propagate to the caller.
        """
        try:
            self.search("The Matrix")
        except APIError as e:
            if e.error_kind == ErrorKind.AUTH:
                return False
            raise
        return True
