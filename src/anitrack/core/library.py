"""
Cross-collection coordinator.

The Library owns the anime, episode and scheduled-release collections and
is the only writer of all three. Every mutation runs the same way:

    lock touched collections -> validate -> mutate in memory -> persist each
    touched collection in order -> raise PersistenceError if any save failed

A failed save is not rolled back in memory; the caller learns about it and
the files on disk stay whole thanks to the Store's atomic writes.
"""

from __future__ import annotations

import copy
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

from anitrack.core.cache import DEFAULT_TTL_SECONDS, MetadataCache
from anitrack.core.errors import (
    AnitrackError,
    DuplicateKeyError,
    DuplicateNumberError,
    ErrorKind,
    InvalidValueError,
    MissingFieldError,
    NotFoundError,
    PersistenceError,
    ProviderUnavailableError,
)
from anitrack.core.models import (
    ANIME_EDITABLE_FIELDS,
    REQUIRED_LINK_FIELD,
    ScheduleType,
    anime_release,
    build_anime_record,
    build_episode_record,
    default_episode_title,
    episode_release,
    stub_title,
)
from anitrack.core.repository import (
    AnimeCollection,
    Collection,
    EpisodeCollection,
    Record,
    ScheduleCollection,
    coerce_number,
    is_upcoming,
    new_record_id,
    now_iso,
    parse_date,
)
from anitrack.core.store import Store
from anitrack.provider import AnimeSummary, MetadataProvider

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"
ANIME = "anime"
EPISODES = "episodes"
SCHEDULE = "scheduled_releases"
ALL_COLLECTIONS = (ANIME, EPISODES, SCHEDULE)
DEFAULT_MAX_WORKERS = 4


@dataclass
class RemovalResult:
    """Outcome of removing an anime and its dependents."""

    anime: Record
    removed_episodes: int = 0
    removed_schedules: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.anime.get("id"),
            "title": self.anime.get("title"),
            "removedEpisodes": self.removed_episodes,
            "removedSchedules": self.removed_schedules,
        }


@dataclass
class BulkError:
    """Why one item of a bulk insert was rejected."""

    index: int
    kind: ErrorKind
    message: str
    number: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "number": self.number,
            "error": self.kind.value,
            "message": self.message,
        }


@dataclass
class BulkResult:
    """Outcome of a bulk episode insert (partial success allowed)."""

    added: int = 0
    replaced: int = 0
    episodes: list[Record] = field(default_factory=list)
    errors: list[BulkError] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def forget(self, episode_id: str) -> None:
        """Drop an episode of this batch that a later item replaced."""
        kept = [e for e in self.episodes if e["id"] != episode_id]
        self.added -= len(self.episodes) - len(kept)
        self.episodes = kept

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": self.added,
            "failed": self.failed,
            "replaced": self.replaced,
            "episodes": self.episodes,
            "errors": [e.to_dict() for e in self.errors],
        }


def _normalize_date(value: Any) -> str | None:
    """Validate a date input and store it as YYYY-MM-DD (None clears)."""
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def _upcoming(value: Any) -> bool:
    """is_upcoming that treats unreadable stored dates as absent."""
    try:
        return is_upcoming(value)
    except InvalidValueError:
        return False


def _merge_summary(record: Record, summary: AnimeSummary | None) -> Record:
    """Overlay the stored record on provider metadata."""
    if summary is None:
        merged = dict(record)
        merged.setdefault("title", stub_title(record.get("id", "?")))
        merged["metadata"] = "stored"
        return merged
    merged = summary.to_dict()
    merged.update(record)
    merged["metadata"] = "provider"
    return merged


class Library:
    """Owns the three collections and enforces the rules between them."""

    def __init__(
        self,
        store: Store,
        provider: MetadataProvider | None = None,
        cache: MetadataCache | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """Initialize library.

        Args:
            store: Backing store for the collections
            provider: Metadata provider (None disables remote lookups)
            cache: Summary cache (a fresh one-hour cache if not provided)
            max_workers: Upper bound on concurrent provider calls
        """
        self.store = store
        self.provider = provider
        self.cache = cache if cache is not None else MetadataCache(DEFAULT_TTL_SECONDS)
        self.max_workers = max(1, max_workers)
        self.anime = AnimeCollection()
        self.episodes = EpisodeCollection()
        self.schedule = ScheduleCollection()
        self._loaded = False

    # ---- persistence ----

    def load(self) -> Library:
        """Materialize all three collections from the store."""
        with self.store.lock(*ALL_COLLECTIONS):
            self.anime.replace_all(self.store.load(ANIME))
            self.episodes.replace_all(self.store.load(EPISODES))
            self.schedule.replace_all(self.store.load(SCHEDULE))
        self._loaded = True
        logger.debug(
            "Loaded %d anime, %d episodes, %d scheduled releases",
            len(self.anime), len(self.episodes), len(self.schedule),
        )
        return self

    def _collection(self, name: str) -> Collection:
        return {ANIME: self.anime, EPISODES: self.episodes, SCHEDULE: self.schedule}[name]

    def persist(self, *names: str) -> None:
        """Save each named collection in order.

        Raises:
            PersistenceError: If any save failed (earlier saves stay written)
        """
        failed = [name for name in names if not self.store.save(name, self._collection(name).records)]
        if failed:
            raise PersistenceError(f"Failed to persist: {', '.join(failed)}", collections=failed)

    # ---- provider access ----

    def _fetch_summary(self, anime_id: str) -> AnimeSummary | None:
        """Summary from the cache or the provider, None if unavailable."""
        cached = self.cache.get(anime_id)
        if cached is not None:
            return cached
        if self.provider is None:
            return None
        try:
            summary = self.provider.fetch_by_id(int(anime_id))
        except ProviderUnavailableError as e:
            logger.warning("Provider unavailable for anime %s: %s", anime_id, e.message)
            return None
        except ValueError:
            logger.warning("Anime id %s is not numeric, skipping provider lookup", anime_id)
            return None
        if summary is not None:
            self.cache.put(anime_id, summary)
        return summary

    def _fetch_many(self, anime_ids: list[str]) -> dict[str, AnimeSummary | None]:
        """Fetch several summaries with bounded concurrency."""
        results: dict[str, AnimeSummary | None] = {}
        missing = []
        for anime_id in anime_ids:
            cached = self.cache.get(anime_id)
            if cached is not None:
                results[anime_id] = cached
            else:
                missing.append(anime_id)

        if not missing or self.provider is None:
            results.update({anime_id: None for anime_id in missing})
            return results

        workers = min(self.max_workers, len(missing))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._fetch_summary, anime_id): anime_id for anime_id in missing}
            for future in as_completed(futures):
                anime_id = futures[future]
                try:
                    results[anime_id] = future.result()
                except Exception as e:
                    logger.warning("Fetching anime %s failed: %s", anime_id, e)
                    results[anime_id] = None
        return results

    def search(
        self,
        text: str,
        page: int = 1,
        per_page: int = 10,
        include_adult: bool = False,
    ) -> list[AnimeSummary]:
        """Search the provider. Returns [] if it cannot answer."""
        if not text or not text.strip():
            raise MissingFieldError("Search text is required")
        if self.provider is None:
            return []
        try:
            results = self.provider.search(text.strip(), page=page, per_page=per_page)
        except ProviderUnavailableError as e:
            logger.warning("Search failed: %s", e.message)
            return []
        for summary in results:
            self.cache.put(summary.id, summary)
        if include_adult:
            return results
        return [s for s in results if not s.is_adult]

    # ---- schedule derivation ----

    def _sync_anime_schedule(self, anime: Record) -> bool:
        """Upsert or remove the anime's scheduled release. Returns True if touched."""
        if _upcoming(anime.get("scheduleDate")):
            self.schedule.upsert_by_source(anime_release(anime))
            return True
        return self.schedule.remove_by_source(ScheduleType.ANIME.value, anime["id"]) is not None

    def _sync_episode_schedule(self, episode: Record) -> bool:
        """Upsert or remove the episode's scheduled release. Returns True if touched."""
        if _upcoming(episode.get("releaseDate")):
            self.schedule.upsert_by_source(episode_release(episode))
            return True
        return self.schedule.remove_by_source(ScheduleType.EPISODE.value, episode["id"]) is not None

    # ---- anime ----

    def add_anime(
        self,
        external_id: Any,
        schedule_date: Any = None,
        notes: str | None = None,
        title: str | None = None,
        is_dub: bool = False,
    ) -> Record:
        """Start tracking an anime by its provider id.

        If the provider cannot be reached the anime is stored with a stub
        title. If the provider answers that the id does not exist, the add
        is rejected.

        Raises:
            MissingFieldError: If no id was given
            InvalidValueError: If the id is not numeric or the date is invalid
            DuplicateKeyError: If the anime is already tracked
            NotFoundError: If the provider reports no such anime
            PersistenceError: If the save failed
        """
        if external_id is None or str(external_id).strip() == "":
            raise MissingFieldError("AniList ID is required")
        try:
            anime_id = str(int(str(external_id).strip()))
        except ValueError:
            raise InvalidValueError(f"AniList ID must be numeric, got {external_id!r}") from None
        schedule = _normalize_date(schedule_date)

        if anime_id in self.anime:
            raise DuplicateKeyError("Anime already exists in the list", id=anime_id)

        summary = None
        if self.provider is not None:
            try:
                summary = self.provider.fetch_by_id(int(anime_id))
            except ProviderUnavailableError as e:
                logger.warning("Provider unavailable, adding stub for %s: %s", anime_id, e.message)
            else:
                if summary is None:
                    raise NotFoundError(f"AniList has no anime with id {anime_id}", id=anime_id)
                self.cache.put(anime_id, summary)

        record = build_anime_record(
            anime_id,
            title=summary.title if summary else (title or stub_title(anime_id)),
            thumbnail=summary.thumbnail if summary else "",
            schedule_date=schedule,
            notes=notes,
            is_dub=is_dub,
        )

        with self.store.lock(ANIME, SCHEDULE):
            self.anime.insert_unique(record)
            touched = self._sync_anime_schedule(record)
            self.persist(ANIME, *([SCHEDULE] if touched else []))

        logger.info("Added anime %s (%s)", anime_id, record["title"])
        return record

    def get_anime(self, anime_id: str) -> Record:
        """Stored anime merged with provider metadata (stored snapshot on failure)."""
        record = self.anime.get(str(anime_id))
        return _merge_summary(record, self._fetch_summary(str(anime_id)))

    def list_anime(self, with_metadata: bool = True) -> list[Record]:
        """All tracked anime, optionally merged with provider metadata."""
        records = list(self.anime)
        if not with_metadata:
            return [dict(r) for r in records]
        summaries = self._fetch_many([str(r["id"]) for r in records])
        return [_merge_summary(r, summaries.get(str(r["id"]))) for r in records]

    def update_anime(self, anime_id: str, patch: dict[str, Any]) -> Record:
        """Merge-patch an anime's local fields.

        Re-derives its scheduled release and, if the title changed, the
        denormalized titles on its episodes and scheduled releases.
        """
        anime_id = str(anime_id)
        unknown = set(patch) - ANIME_EDITABLE_FIELDS - {"id"}
        if unknown:
            raise InvalidValueError(f"Cannot update anime field(s): {', '.join(sorted(unknown))}")
        patch = dict(patch)
        if "scheduleDate" in patch:
            patch["scheduleDate"] = _normalize_date(patch["scheduleDate"])
        if "isDub" in patch and patch["isDub"] is not None:
            patch["isDub"] = bool(patch["isDub"])

        with self.store.lock(*ALL_COLLECTIONS):
            before = self.anime.get(anime_id)
            updated = self.anime.update_by_id(anime_id, patch)
            touched = [ANIME]

            new_title = updated.get("title")
            if new_title and new_title != before.get("title"):
                for episode in self.episodes.for_anime(anime_id):
                    self.episodes.update_by_id(episode["id"], {"animeTitle": new_title})
                    if _upcoming(episode.get("releaseDate")):
                        self._sync_episode_schedule(self.episodes.get(episode["id"]))
                touched += [EPISODES, SCHEDULE]

            if self._sync_anime_schedule(updated) and SCHEDULE not in touched:
                touched.append(SCHEDULE)
            self.persist(*touched)

        return updated

    def remove_anime(self, anime_id: str) -> RemovalResult:
        """Stop tracking an anime, cascading to its episodes and schedule entries.

        Raises:
            NotFoundError: If the anime is not tracked
            PersistenceError: If any of the three saves failed
        """
        anime_id = str(anime_id)
        with self.store.lock(*ALL_COLLECTIONS):
            anime = self.anime.delete_by_id(anime_id)
            episodes = self.episodes.delete_where(lambda e: str(e.get("animeId")) == anime_id)
            schedules = self.schedule.delete_where(lambda r: str(r.get("animeId")) == anime_id)
            self.cache.invalidate(anime_id)
            self.persist(ANIME, EPISODES, SCHEDULE)

        logger.info(
            "Removed anime %s with %d episodes and %d scheduled releases",
            anime_id, len(episodes), len(schedules),
        )
        return RemovalResult(anime=anime, removed_episodes=len(episodes), removed_schedules=len(schedules))

    # ---- episodes ----

    def _build_episode(self, anime: Record, fields: dict[str, Any]) -> Record:
        """Validate input and assemble an episode for an anime.

        Raises:
            MissingFieldError, InvalidValueError, DuplicateNumberError
        """
        if not fields.get(REQUIRED_LINK_FIELD):
            raise MissingFieldError(f"{REQUIRED_LINK_FIELD} is required")

        anime_id = str(anime["id"])
        raw_number = fields.get("number")
        if raw_number is None or raw_number == "":
            number = self.episodes.next_number(anime_id)
        else:
            number = coerce_number(raw_number)
            if self.episodes.number_taken(anime_id, number):
                raise DuplicateNumberError(
                    f"Episode number {number} already exists for this anime",
                    animeId=anime_id, number=number,
                )

        release_date = _normalize_date(fields.get("releaseDate"))
        return build_episode_record(new_record_id(), anime, number, fields, release_date)

    def add_episode(self, anime_id: Any, fields: dict[str, Any]) -> Record:
        """Add one episode to a tracked anime.

        Raises:
            MissingFieldError: If animeId or the required link is absent
            NotFoundError: If the anime is not tracked
            DuplicateNumberError: If the number is already used for the anime
            PersistenceError: If the save failed
        """
        if anime_id is None or str(anime_id).strip() == "":
            raise MissingFieldError("Anime ID is required")
        anime_id = str(anime_id).strip()

        with self.store.lock(*ALL_COLLECTIONS):
            anime = self.anime.find_by_id(anime_id)
            if anime is None:
                raise NotFoundError("Anime not found in our list", id=anime_id)
            episode = self._build_episode(anime, fields)
            self.episodes.insert_unique(episode)
            touched = self._sync_episode_schedule(episode)
            self.persist(EPISODES, *([SCHEDULE] if touched else []))

        logger.info("Added episode %s of anime %s", episode["number"], anime_id)
        return episode

    def get_episode(self, episode_id: str) -> Record:
        return self.episodes.get(str(episode_id))

    def list_episodes(self, anime_id: str) -> list[Record]:
        """Episodes of one anime by number (empty if the anime is unknown)."""
        return self.episodes.for_anime(str(anime_id))

    def list_all_episodes(self, date_from: Any = None, date_to: Any = None) -> list[Record]:
        """Every episode, or those released (or added) within a date range."""
        if date_from is None and date_to is None:
            return list(self.episodes)
        return self.episodes.released_between(parse_date(date_from), parse_date(date_to))

    def update_episode(self, episode_id: str, patch: dict[str, Any]) -> Record:
        """Merge-patch an episode; id is immutable.

        Re-evaluates the episode's scheduled release: an upcoming date
        upserts it, a cleared or past date removes it.
        """
        episode_id = str(episode_id)
        patch = {k: v for k, v in patch.items() if k != "id"}

        with self.store.lock(*ALL_COLLECTIONS):
            current = self.episodes.get(episode_id)
            target_anime_id = str(current.get("animeId"))

            if "animeId" in patch:
                if patch["animeId"] is None or str(patch["animeId"]).strip() == "":
                    raise MissingFieldError("Anime ID is required")
                target_anime_id = str(patch["animeId"]).strip()
                anime = self.anime.find_by_id(target_anime_id)
                if anime is None:
                    raise NotFoundError("Anime not found in our list", id=target_anime_id)
                patch["animeId"] = target_anime_id
                patch["animeTitle"] = anime.get("title") or "Unknown Anime"

            if REQUIRED_LINK_FIELD in patch and not patch[REQUIRED_LINK_FIELD]:
                raise MissingFieldError(f"{REQUIRED_LINK_FIELD} is required")

            if "number" in patch:
                if patch["number"] is None or patch["number"] == "":
                    raise MissingFieldError("Episode number cannot be cleared")
                patch["number"] = coerce_number(patch["number"])
            number = patch.get("number", current.get("number"))
            if (
                ("number" in patch or "animeId" in patch)
                and self.episodes.number_taken(target_anime_id, int(number), exclude_id=episode_id)
            ):
                raise DuplicateNumberError(
                    f"Episode number {number} already exists for this anime",
                    animeId=target_anime_id, number=number,
                )

            # a cleared title, or a generated one whose number moved, follows the number
            if "title" in patch:
                if not patch["title"]:
                    patch["title"] = default_episode_title(number)
            elif "number" in patch and current.get("title") == default_episode_title(current.get("number")):
                patch["title"] = default_episode_title(number)

            if "releaseDate" in patch:
                patch["releaseDate"] = _normalize_date(patch["releaseDate"])

            updated = self.episodes.update_by_id(episode_id, patch)
            touched = self._sync_episode_schedule(updated)
            self.persist(EPISODES, *([SCHEDULE] if touched else []))

        return updated

    def delete_episode(self, episode_id: str) -> Record:
        """Delete one episode and its scheduled release."""
        episode_id = str(episode_id)
        with self.store.lock(EPISODES, SCHEDULE):
            removed = self.episodes.delete_by_id(episode_id)
            touched = self.schedule.remove_by_source(ScheduleType.EPISODE.value, episode_id) is not None
            self.persist(EPISODES, *([SCHEDULE] if touched else []))
        return removed

    def bulk_add_episodes(
        self,
        anime_id: str,
        episodes: list[dict[str, Any]],
        replace_existing: bool = False,
    ) -> BulkResult:
        """Add many episodes, validating each independently.

        With replace_existing, every prior episode of the anime (and its
        scheduled release) is removed before the batch is applied, and a
        later item with an explicit number replaces an earlier one.

        Raises:
            NotFoundError: If the anime is not tracked
            InvalidValueError: If episodes is not a list
            PersistenceError: If the save failed
        """
        if not isinstance(episodes, list):
            raise InvalidValueError("Episodes must be a list")
        anime_id = str(anime_id)
        result = BulkResult()

        with self.store.lock(*ALL_COLLECTIONS):
            anime = self.anime.find_by_id(anime_id)
            if anime is None:
                raise NotFoundError("Anime not found in our list", id=anime_id)

            if replace_existing:
                removed = self.episodes.delete_where(lambda e: str(e.get("animeId")) == anime_id)
                for episode in removed:
                    self.schedule.remove_by_source(ScheduleType.EPISODE.value, episode["id"])
                result.replaced = len(removed)

            for index, fields in enumerate(episodes):
                number = fields.get("number") if isinstance(fields, dict) else None
                try:
                    if not isinstance(fields, dict):
                        raise InvalidValueError("Episode entry must be an object")
                    if replace_existing and number not in (None, ""):
                        dropped = self._drop_episode_number(anime_id, coerce_number(number))
                        if dropped is not None:
                            result.forget(dropped["id"])
                    episode = self._build_episode(anime, fields)
                    self.episodes.insert_unique(episode)
                    self._sync_episode_schedule(episode)
                except AnitrackError as e:
                    result.errors.append(BulkError(index, e.kind, e.message, number))
                    continue
                result.episodes.append(episode)
                result.added += 1

            if result.added or result.replaced:
                self.persist(EPISODES, SCHEDULE)

        logger.info(
            "Bulk add for anime %s: %d added, %d failed, %d replaced",
            anime_id, result.added, result.failed, result.replaced,
        )
        return result

    def _drop_episode_number(self, anime_id: str, number: int) -> Record | None:
        existing = self.episodes.find_by_number(anime_id, number)
        if existing is not None:
            self.episodes.delete_by_id(existing["id"])
            self.schedule.remove_by_source(ScheduleType.EPISODE.value, existing["id"])
        return existing

    # ---- scheduled releases ----

    def list_scheduled(self, today: date | None = None) -> list[Record]:
        """Scheduled releases dated today or later, soonest first."""
        return self.schedule.upcoming(today)

    def schedule_release(self, release_type: str, source_id: str, release_date: Any) -> Record | None:
        """Set (or clear, with None) the release date of an anime or episode.

        Goes through the source record so there is never more than one
        scheduled release per source.

        Returns:
            The scheduled release, or None if the date is cleared or past
        """
        try:
            kind = ScheduleType(release_type)
        except ValueError:
            raise InvalidValueError(f"Unknown release type: {release_type!r}") from None

        if kind is ScheduleType.ANIME:
            self.update_anime(source_id, {"scheduleDate": release_date})
        else:
            self.update_episode(source_id, {"releaseDate": release_date})
        return self.schedule.find_by_source(kind.value, str(source_id))

    def prune_schedule(self, today: date | None = None) -> list[Record]:
        """Drop scheduled releases whose date has passed."""
        with self.store.lock(SCHEDULE):
            expired = {(r.get("type"), str(r.get("sourceId"))) for r in self.schedule.expired(today)}
            removed = self.schedule.delete_where(
                lambda r: (r.get("type"), str(r.get("sourceId"))) in expired
            )
            if removed:
                self.persist(SCHEDULE)
        return removed

    # ---- export / import ----

    def export(self) -> dict[str, Any]:
        """Bundle all three collections for backup."""
        return {
            "schemaVersion": SCHEMA_VERSION,
            "exportedAt": now_iso(),
            "anime": copy.deepcopy(self.anime.records),
            "episodes": copy.deepcopy(self.episodes.records),
            "scheduledReleases": copy.deepcopy(self.schedule.records),
        }

    def import_all(
        self,
        anime: list[Record],
        episodes: list[Record],
        scheduled: list[Record],
    ) -> dict[str, int]:
        """Replace all three collections wholesale.

        The input is trusted (no invariant re-validation); only its shape is
        checked. Clears the metadata cache.
        """
        for name, records in (("anime", anime), ("episodes", episodes), ("scheduledReleases", scheduled)):
            if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
                raise InvalidValueError(f"'{name}' must be a list of objects")

        with self.store.lock(*ALL_COLLECTIONS):
            self.anime.replace_all(copy.deepcopy(anime))
            self.episodes.replace_all(copy.deepcopy(episodes))
            self.schedule.replace_all(copy.deepcopy(scheduled))
            self.cache.clear()
            self.persist(ANIME, EPISODES, SCHEDULE)

        counts = {"anime": len(anime), "episodes": len(episodes), "scheduledReleases": len(scheduled)}
        logger.info("Imported %s", counts)
        return counts

    def import_bundle(self, bundle: Any) -> dict[str, int]:
        """Import an export bundle produced by export()."""
        if not isinstance(bundle, dict):
            raise InvalidValueError("Import data must be a JSON object")
        version = str(bundle.get("schemaVersion", SCHEMA_VERSION))
        if version.split(".")[0] != SCHEMA_VERSION.split(".")[0]:
            raise InvalidValueError(f"Unsupported schema version {version}")
        return self.import_all(
            bundle.get("anime", []),
            bundle.get("episodes", []),
            bundle.get("scheduledReleases", []),
        )


def open_library(data_root: Path | None = None, provider: MetadataProvider | None = None) -> Library:
    """Build and load a Library from the configured data root and settings."""
    from anitrack.config.commands import get_setting
    from anitrack.core.config import get_paths
    from anitrack.provider.anilist import AniListClient

    paths = get_paths(data_root)
    store = Store(
        paths.data_dir,
        backup_root=paths.backups,
        create_backups=bool(get_setting("backup.enabled")),
        keep_backups=int(get_setting("backup.keep_count")),
        keep_days=int(get_setting("backup.keep_days")),
    )
    if provider is None:
        provider = AniListClient(
            api_url=str(get_setting("provider.api_url")),
            timeout=float(get_setting("provider.timeout")),
        )
    library = Library(
        store,
        provider=provider,
        cache=MetadataCache(ttl=float(get_setting("cache.ttl_seconds"))),
        max_workers=int(get_setting("provider.max_workers")),
    )
    return library.load()
