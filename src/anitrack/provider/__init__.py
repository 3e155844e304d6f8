"""Metadata provider protocol and the summary record it returns.

The provider's schema is not under our control, so every field of
AnimeSummary is optional and summary_from_media applies all defaults in
one place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

UNKNOWN = "Unknown"

_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"</?[^>]+(>|$)")


@dataclass
class AnimeSummary:
    """Denormalized anime metadata from the provider."""

    id: str
    title: str = UNKNOWN
    title_romaji: str = ""
    title_native: str = ""
    description: str = ""
    genres: list[str] = field(default_factory=list)
    thumbnail: str = ""
    banner: str = ""
    rating: float = 0.0
    popularity: int = 0
    episodes: int = 0
    duration: int = 0
    status: str = UNKNOWN
    season: str = UNKNOWN
    start_date: str | None = None
    end_date: str | None = None
    country: str = UNKNOWN
    is_adult: bool = False
    studios: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase shape used in stored records and JSON output."""
        return {
            "id": self.id,
            "title": self.title,
            "titleRomaji": self.title_romaji,
            "titleNative": self.title_native,
            "description": self.description,
            "genres": list(self.genres),
            "thumbnail": self.thumbnail,
            "banner": self.banner,
            "rating": self.rating,
            "popularity": self.popularity,
            "episodeCount": self.episodes or UNKNOWN,
            "duration": self.duration or UNKNOWN,
            "status": self.status,
            "season": self.season,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "country": self.country,
            "isAdult": self.is_adult,
            "studios": list(self.studios),
        }


def format_fuzzy_date(value: Any) -> str | None:
    """Format an AniList FuzzyDate ({year, month, day}) as YYYY-MM-DD.

    Missing month or day default to 01; a missing year yields None.
    """
    if not isinstance(value, dict) or not value.get("year"):
        return None
    month = value.get("month") or 1
    day = value.get("day") or 1
    return f"{int(value['year']):04d}-{int(month):02d}-{int(day):02d}"


def clean_description(text: Any) -> str:
    """Turn an HTML description into plain text."""
    if not text:
        return ""
    text = _BREAK_RE.sub("\n", str(text))
    return _TAG_RE.sub("", text).strip()


def _int_or_zero(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def summary_from_media(media: dict[str, Any]) -> AnimeSummary:
    """Map an AniList Media object to an AnimeSummary.

    Args:
        media: The 'Media' object (or one element of Page.media)

    Returns:
        AnimeSummary with defaults for every absent or null field

    Raises:
        ValueError: If the object has no id
    """
    if not isinstance(media, dict) or media.get("id") is None:
        raise ValueError("Media object has no id")

    titles = _mapping(media.get("title"))
    english, romaji, native = (_text(titles.get(k)) for k in ("english", "romaji", "native"))

    cover = _mapping(media.get("coverImage"))
    studios = _mapping(media.get("studios")).get("nodes")
    if not isinstance(studios, list):
        studios = []
    genres = media.get("genres")
    if not isinstance(genres, list):
        genres = []
    average = media.get("averageScore")

    return AnimeSummary(
        id=str(media["id"]),
        title=english or romaji or native or UNKNOWN,
        title_romaji=romaji or "",
        title_native=native or "",
        description=clean_description(media.get("description")),
        genres=[str(g) for g in genres if g is not None],
        thumbnail=_text(cover.get("large")) or "",
        banner=media.get("bannerImage") or "",
        rating=(average / 10) if isinstance(average, (int, float)) else 0.0,
        popularity=_int_or_zero(media.get("popularity")),
        episodes=_int_or_zero(media.get("episodes")),
        duration=_int_or_zero(media.get("duration")),
        status=media.get("status") or UNKNOWN,
        season=media.get("season") or UNKNOWN,
        start_date=format_fuzzy_date(media.get("startDate")),
        end_date=format_fuzzy_date(media.get("endDate")),
        country=media.get("countryOfOrigin") or UNKNOWN,
        is_adult=bool(media.get("isAdult")),
        studios=[s["name"] for s in studios if isinstance(s, dict) and s.get("name")],
    )


@runtime_checkable
class MetadataProvider(Protocol):
    """Protocol for metadata providers.

    fetch_by_id returns None when the provider answers that the id does not
    exist, and raises ProviderUnavailableError when it cannot answer.
    """

    def fetch_by_id(self, anime_id: int) -> AnimeSummary | None:
        ...

    def search(self, text: str, page: int = 1, per_page: int = 10) -> list[AnimeSummary]:
        ...

    def ping(self) -> bool:
        ...
