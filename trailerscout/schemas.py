"""
Data schemas for trailerscout.

The inbound media descriptor is a Pydantic model so that catalog data is
validated once at the boundary. The values produced by the engine itself
(references, provider outcomes, resolution results) are small immutable
dataclasses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any, Union

from pydantic import BaseModel, Field, field_validator, ConfigDict

from trailerscout.api_client import ErrorKind, RETRYABLE_KINDS


class Source(str, Enum):
    """Upstream provider that produced a trailer reference."""
    KINOCHECK = "kinocheck"
    TMDB = "tmdb"
    OMDB = "omdb"


@dataclass(frozen=True)
class TrailerReference:
    """
    A resolved, playable video locator.

    Attributes:
        url: Opaque video locator (watch URL or embeddable identifier)
        source: Provider that produced it
        cached: Whether the value was served from the cache
    """
    url: str
    source: Source
    cached: bool = False


@dataclass(frozen=True)
class ProviderOutcome:
    """
    Normalized result of one provider lookup. Never stored.

    Exactly one of ``reference`` (when ``ok``) or ``error_kind``/``message``
    (when not ``ok``) is meaningful.
    """
    ok: bool
    reference: Optional[TrailerReference] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    retryable: bool = False

    @classmethod
    def success(cls, reference: TrailerReference) -> "ProviderOutcome":
        return cls(ok=True, reference=reference)

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "ProviderOutcome":
        return cls(
            ok=False,
            error_kind=error_kind,
            message=message,
            retryable=error_kind in RETRYABLE_KINDS,
        )


@dataclass(frozen=True)
class ResolutionResult:
    """
    Uniform result returned to callers of the resolver.

    Attributes:
        success: Whether a trailer was resolved
        source: Source of the reference (or the last-resort tag on failure)
        cached: Whether the reference came from the cache
        reference: The resolved reference when ``success`` is True
        error: Human-readable failure description when ``success`` is False
    """
    success: bool
    source: Source
    cached: bool = False
    reference: Optional[TrailerReference] = None
    error: Optional[str] = None

    @property
    def trailer_url(self) -> Optional[str]:
        return self.reference.url if self.reference else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary, excluding empty fields."""
        data: Dict[str, Any] = {
            "success": self.success,
            "source": self.source.value,
            "cached": self.cached,
        }
        if self.success:
            data["trailer_url"] = self.trailer_url
        else:
            data["error"] = self.error
        return data


class MediaRef(BaseModel):
    """
    Media descriptor supplied by the catalog layer.

    Only ``title`` and ``year`` participate in lookups; ``media_id`` is kept
    for cache bookkeeping.
    """
    title: str = Field(..., description="Display title", min_length=1)
    year: Optional[int] = Field(None, description="Four-digit release year")
    media_id: Optional[str] = Field(None, description="Stable catalog identifier")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "title": "Dune",
                "year": 2021,
                "media_id": "438631"
            }
        }
    )

    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        """Reject titles that are empty once whitespace is stripped."""
        v = v.strip()
        if not v:
            raise ValueError('Title must not be blank')
        return v

    @field_validator('year', mode='before')
    @classmethod
    def validate_year(cls, v):
        """Accept 1999 or "1999"; anything else that is set must be four digits."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            v = v.strip()
            if not (len(v) == 4 and v.isdigit()):
                raise ValueError('Year must be a four-digit number')
            return int(v)
        if isinstance(v, int) and not isinstance(v, bool) and 1000 <= v <= 9999:
            return v
        raise ValueError('Year must be a four-digit number')

    @field_validator('media_id', mode='before')
    @classmethod
    def stringify_media_id(cls, v):
        return None if v is None else str(v)

    @classmethod
    def from_catalog_item(cls, item: Dict[str, Any]) -> "MediaRef":
        """
        Build a MediaRef from a catalog record.

        Movies carry ``title``/``release_date``; TV shows carry
        ``name``/``first_air_date``.

        Examples:
            >>> MediaRef.from_catalog_item({"id": 550, "title": "Fight Club", "release_date": "1999-10-15"})
            MediaRef(title='Fight Club', year=1999, media_id='550')
        """
        title = item.get("title") or item.get("name") or ""
        date_str = item.get("release_date") or item.get("first_air_date")
        year = None
        if isinstance(date_str, str) and len(date_str) >= 4 and date_str[:4].isdigit():
            year = int(date_str[:4])
        return cls(title=title, year=year, media_id=item.get("id"))


MediaInput = Union[MediaRef, Dict[str, Any], str]


def to_media_ref(media: MediaInput, year: Optional[int] = None) -> MediaRef:
    """
    Coerce any accepted media input into a MediaRef.

    Args:
        media: MediaRef, catalog dict, or bare title string
        year: Release year, only used with a bare title

    Raises:
        pydantic.ValidationError: If the title is blank or the year malformed
        TypeError: For unsupported input types
    """
    if isinstance(media, MediaRef):
        return media
    if isinstance(media, dict):
        if "year" in media and "release_date" not in media and "first_air_date" not in media:
            return MediaRef(
                title=media.get("title") or media.get("name") or "",
                year=media.get("year"),
                media_id=media.get("media_id", media.get("id")),
            )
        return MediaRef.from_catalog_item(media)
    if isinstance(media, str):
        return MediaRef(title=media, year=year)
    raise TypeError(f"Unsupported media input: {type(media).__name__}")
