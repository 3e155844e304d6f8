"""
Record shapes for the three collections.

Records are plain dicts with camelCase keys, exactly as stored on disk.
The builders here are the only place new records are assembled.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from anitrack.core.repository import Record, now_iso

# Link field every episode must carry
REQUIRED_LINK_FIELD = "server2Url"
OPTIONAL_LINK_FIELD = "iframeSrc"

# Fields an operator may patch on an anime
ANIME_EDITABLE_FIELDS = frozenset({"title", "thumbnail", "scheduleDate", "notes", "isDub"})


class ScheduleType(str, Enum):
    """Kind of record a scheduled release was derived from."""

    ANIME = "anime"
    EPISODE = "episode"


def stub_title(anime_id: str) -> str:
    """Placeholder title for an anime the provider could not describe."""
    return f"Anime #{anime_id}"


def default_episode_title(number: int) -> str:
    return f"Episode {number}"


def build_anime_record(
    anime_id: str,
    title: str,
    thumbnail: str = "",
    schedule_date: str | None = None,
    notes: str | None = None,
    is_dub: bool = False,
) -> Record:
    """Assemble a new AnimeEntry record."""
    record: Record = {
        "id": str(anime_id),
        "title": title,
        "thumbnail": thumbnail,
        "dateAdded": now_iso(),
    }
    if schedule_date:
        record["scheduleDate"] = schedule_date
    if notes:
        record["notes"] = notes
    if is_dub:
        record["isDub"] = True
    return record


def build_episode_record(
    episode_id: str,
    anime: Record,
    number: int,
    fields: dict[str, Any],
    release_date: str | None = None,
) -> Record:
    """Assemble a new Episode record from validated input."""
    record: Record = {
        "id": episode_id,
        "animeId": str(anime["id"]),
        "animeTitle": anime.get("title") or "Unknown Anime",
        "title": fields.get("title") or default_episode_title(number),
        "number": number,
        OPTIONAL_LINK_FIELD: fields.get(OPTIONAL_LINK_FIELD) or "",
        REQUIRED_LINK_FIELD: fields[REQUIRED_LINK_FIELD],
        "dateAdded": now_iso(),
    }
    if release_date:
        record["releaseDate"] = release_date
    return record


def anime_release(anime: Record) -> Record:
    """ScheduledRelease derived from an anime's scheduleDate."""
    return {
        "id": str(anime["id"]),
        "type": ScheduleType.ANIME.value,
        "sourceId": str(anime["id"]),
        "animeId": str(anime["id"]),
        "title": anime.get("title", ""),
        "animeTitle": anime.get("title", ""),
        "releaseDate": anime["scheduleDate"],
        "lastUpdated": now_iso(),
    }


def episode_release(episode: Record) -> Record:
    """ScheduledRelease derived from an episode's releaseDate."""
    anime_title = episode.get("animeTitle", "")
    return {
        "id": str(episode["id"]),
        "type": ScheduleType.EPISODE.value,
        "sourceId": str(episode["id"]),
        "animeId": str(episode["animeId"]),
        "title": f"{anime_title} - {episode.get('title', '')}".strip(" -"),
        "animeTitle": anime_title,
        "episodeNumber": episode.get("number"),
        "episodeTitle": episode.get("title", ""),
        "releaseDate": episode["releaseDate"],
        "lastUpdated": now_iso(),
    }
