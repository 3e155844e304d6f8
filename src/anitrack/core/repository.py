"""
In-memory collections with typed CRUD and query helpers.

A Collection owns the list of records loaded from the Store. It never
touches the disk itself; the Library decides when to persist.
"""

from __future__ import annotations

import secrets
import time
from collections.abc import Callable, Iterator
from datetime import date, datetime, timezone
from typing import Any

from anitrack.core.errors import DuplicateKeyError, InvalidValueError, NotFoundError

Record = dict[str, Any]
Predicate = Callable[[Record], bool]


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def new_record_id() -> str:
    """Generate a time-ordered record id.

    Millisecond timestamp plus a random suffix, so ids created in the same
    millisecond (bulk inserts) stay distinct.
    """
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def parse_date(value: Any) -> date | None:
    """Parse an ISO date or datetime string into a date.

    Returns:
        date, or None for empty values

    Raises:
        InvalidValueError: If the value is not an ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise InvalidValueError(f"Not an ISO date: {value!r}", value=value) from None


def is_upcoming(value: Any, today: date | None = None) -> bool:
    """True if the date is today or later."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed >= (today or date.today())


def coerce_number(value: Any) -> int:
    """Interpret an episode number.

    Raises:
        InvalidValueError: If the value is not a positive integer
    """
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidValueError(f"Episode number must be an integer, got {value!r}") from None
    if number < 1:
        raise InvalidValueError(f"Episode number must be positive, got {number}")
    return number


class Collection:
    """An ordered list of records keyed by their 'id' field."""

    def __init__(self, name: str, records: list[Record] | None = None):
        self.name = name
        self._records: list[Record] = list(records or [])

    @property
    def records(self) -> list[Record]:
        """The live record list, in persisted order."""
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    def __contains__(self, record_id: object) -> bool:
        return self.find_by_id(str(record_id)) is not None

    def _index_of(self, record_id: str) -> int:
        record_id = str(record_id)
        for i, record in enumerate(self._records):
            if str(record.get("id")) == record_id:
                return i
        return -1

    def find_by_id(self, record_id: str) -> Record | None:
        """Get a record by id, or None."""
        index = self._index_of(record_id)
        return self._records[index] if index >= 0 else None

    def get(self, record_id: str) -> Record:
        """Get a record by id.

        Raises:
            NotFoundError: If no record has that id
        """
        record = self.find_by_id(record_id)
        if record is None:
            raise NotFoundError(f"{self.name}: no record with id {record_id}", id=record_id)
        return record

    def find_where(self, predicate: Predicate) -> list[Record]:
        """Return every record matching the predicate, in order."""
        return [r for r in self._records if predicate(r)]

    def insert_unique(self, record: Record, key: str = "id") -> Record:
        """Append a record whose key value is not already present.

        Raises:
            DuplicateKeyError: If another record has the same key value
        """
        value = record.get(key)
        if value is None:
            raise InvalidValueError(f"{self.name}: record has no '{key}'")
        if any(r.get(key) == value for r in self._records):
            raise DuplicateKeyError(
                f"{self.name}: a record with {key}={value} already exists", **{key: value}
            )
        self._records.append(record)
        return record

    def update_by_id(self, record_id: str, patch: dict[str, Any]) -> Record:
        """Merge a patch into a record.

        Provided fields overwrite, None values remove the field, and the id
        never changes. Stamps lastUpdated.

        Raises:
            NotFoundError: If no record has that id
        """
        index = self._index_of(record_id)
        if index < 0:
            raise NotFoundError(f"{self.name}: no record with id {record_id}", id=record_id)

        updated = dict(self._records[index])
        for field_name, value in patch.items():
            if field_name == "id":
                continue
            if value is None:
                updated.pop(field_name, None)
            else:
                updated[field_name] = value
        updated["id"] = self._records[index]["id"]
        updated["lastUpdated"] = now_iso()

        self._records[index] = updated
        return updated

    def delete_by_id(self, record_id: str) -> Record:
        """Remove a record.

        Raises:
            NotFoundError: If no record has that id
        """
        index = self._index_of(record_id)
        if index < 0:
            raise NotFoundError(f"{self.name}: no record with id {record_id}", id=record_id)
        return self._records.pop(index)

    def delete_where(self, predicate: Predicate) -> list[Record]:
        """Remove every matching record and return them."""
        removed = [r for r in self._records if predicate(r)]
        if removed:
            self._records = [r for r in self._records if not predicate(r)]
        return removed

    def replace_all(self, records: list[Record]) -> None:
        """Swap the whole record list."""
        self._records = list(records)


class AnimeCollection(Collection):
    """The tracked anime list."""

    def __init__(self, records: list[Record] | None = None):
        super().__init__("anime", records)


class EpisodeCollection(Collection):
    """Episodes of all tracked anime."""

    def __init__(self, records: list[Record] | None = None):
        super().__init__("episodes", records)

    def for_anime(self, anime_id: str) -> list[Record]:
        """Episodes of one anime sorted by number."""
        anime_id = str(anime_id)
        episodes = self.find_where(lambda e: str(e.get("animeId")) == anime_id)
        return sorted(episodes, key=_episode_number)

    def numbers(self, anime_id: str, exclude_id: str | None = None) -> set[int]:
        """Episode numbers in use for an anime."""
        return {
            _episode_number(e)
            for e in self.for_anime(anime_id)
            if exclude_id is None or str(e.get("id")) != str(exclude_id)
        }

    def number_taken(self, anime_id: str, number: int, exclude_id: str | None = None) -> bool:
        return number in self.numbers(anime_id, exclude_id)

    def find_by_number(self, anime_id: str, number: int) -> Record | None:
        for episode in self.for_anime(anime_id):
            if _episode_number(episode) == number:
                return episode
        return None

    def next_number(self, anime_id: str) -> int:
        """Next free number: highest existing plus one, or 1."""
        numbers = self.numbers(anime_id)
        return max(numbers) + 1 if numbers else 1

    def released_between(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Record]:
        """Episodes whose release date (or date added) falls in a range.

        Bounds are inclusive. A missing lower bound means the beginning of
        time, a missing upper bound means today.
        """
        low = date_from or date.min
        high = date_to or date.today()

        def in_range(episode: Record) -> bool:
            try:
                when = parse_date(episode.get("releaseDate") or episode.get("dateAdded"))
            except InvalidValueError:
                return False
            return when is not None and low <= when <= high

        return self.find_where(in_range)


class ScheduleCollection(Collection):
    """Derived scheduled releases, one per (type, sourceId)."""

    def __init__(self, records: list[Record] | None = None):
        super().__init__("scheduled_releases", records)

    def find_by_source(self, release_type: str, source_id: str) -> Record | None:
        source_id = str(source_id)
        for record in self._records:
            if record.get("type") == release_type and str(record.get("sourceId")) == source_id:
                return record
        return None

    def upsert_by_source(self, record: Record) -> Record:
        """Create or replace the entry for record's (type, sourceId)."""
        release_type = record["type"]
        source_id = str(record["sourceId"])
        for i, existing in enumerate(self._records):
            if existing.get("type") == release_type and str(existing.get("sourceId")) == source_id:
                merged = {**existing, **record, "lastUpdated": now_iso()}
                self._records[i] = merged
                return merged
        self._records.append(record)
        return record

    def remove_by_source(self, release_type: str, source_id: str) -> Record | None:
        source_id = str(source_id)
        removed = self.delete_where(
            lambda r: r.get("type") == release_type and str(r.get("sourceId")) == source_id
        )
        return removed[0] if removed else None

    def for_anime(self, anime_id: str) -> list[Record]:
        anime_id = str(anime_id)
        return self.find_where(lambda r: str(r.get("animeId")) == anime_id)

    def upcoming(self, today: date | None = None) -> list[Record]:
        """Entries dated today or later, soonest first."""
        today = today or date.today()
        entries = [r for r in self._records if _safe_upcoming(r.get("releaseDate"), today)]
        return sorted(entries, key=lambda r: str(r.get("releaseDate")))

    def expired(self, today: date | None = None) -> list[Record]:
        """Entries whose date has passed (or cannot be read)."""
        today = today or date.today()
        return [r for r in self._records if not _safe_upcoming(r.get("releaseDate"), today)]


def _episode_number(episode: Record) -> int:
    try:
        return int(episode.get("number") or 0)
    except (TypeError, ValueError):
        return 0


def _safe_upcoming(value: Any, today: date) -> bool:
    try:
        return is_upcoming(value, today)
    except InvalidValueError:
        return False
