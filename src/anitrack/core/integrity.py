"""
Cross-collection integrity checker.

Validates the relationships the Library maintains between anime, episodes
and scheduled releases, and repairs what can be derived again. Useful
after a hand edit, a rollback of a single collection or an import.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from anitrack.core.errors import InvalidValueError
from anitrack.core.library import ANIME, EPISODES, SCHEDULE, Library
from anitrack.core.models import REQUIRED_LINK_FIELD, ScheduleType, anime_release, episode_release
from anitrack.core.repository import Record, is_upcoming, parse_date

logger = logging.getLogger(__name__)


class IssueType(Enum):
    """Types of integrity issues."""

    DUPLICATE_ID = "duplicate_id"  # Two records share an id
    DUPLICATE_NUMBER = "duplicate_number"  # Two episodes of one anime share a number
    ORPHANED_EPISODE = "orphaned_episode"  # Episode of an anime that is not tracked
    MISSING_FIELD = "missing_field"  # Required field absent or empty
    INVALID_DATE = "invalid_date"  # Date that cannot be parsed
    ORPHANED_RELEASE = "orphaned_release"  # Scheduled release whose source is gone
    STALE_RELEASE = "stale_release"  # Scheduled release out of step with its source
    MISSING_RELEASE = "missing_release"  # Upcoming source date with no scheduled release
    EXPIRED_RELEASE = "expired_release"  # Scheduled release dated in the past
    DUPLICATE_RELEASE = "duplicate_release"  # More than one release for one source


class IssueSeverity(Enum):
    """Severity levels for integrity issues."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class IntegrityIssue:
    """A single integrity issue."""

    collection: str
    entry_id: str
    issue_type: IssueType
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    fixable: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        result: dict[str, Any] = {
            "collection": self.collection,
            "entry_id": self.entry_id,
            "issue_type": self.issue_type.value,
            "message": self.message,
            "severity": self.severity.value,
            "fixable": self.fixable,
        }
        if self.extra:
            result["extra"] = self.extra
        return result


@dataclass
class IntegrityResult:
    """Result of an integrity check."""

    issues: list[IntegrityIssue] = field(default_factory=list)
    checked: dict[str, int] = field(default_factory=dict)  # collection -> records checked

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "issues": [i.to_dict() for i in self.issues],
            "checked": self.checked,
            "by_collection": self.group_by_collection(),
            "by_severity": self.group_by_severity(),
            "fixable_count": len(self.fixable_issues()),
        }

    def group_by_collection(self) -> dict[str, int]:
        return dict(Counter(i.collection for i in self.issues))

    def group_by_severity(self) -> dict[str, int]:
        return dict(Counter(i.severity.value for i in self.issues))

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == IssueSeverity.ERROR for i in self.issues)

    @property
    def has_fixable(self) -> bool:
        return any(i.fixable for i in self.issues)

    def errors(self) -> list[IntegrityIssue]:
        """Get only error-level issues."""
        return [i for i in self.issues if i.severity == IssueSeverity.ERROR]

    def fixable_issues(self) -> list[IntegrityIssue]:
        """Get only fixable issues."""
        return [i for i in self.issues if i.fixable]


def _date_or_invalid(value: Any) -> tuple[str | None, bool]:
    """Normalized date string and whether the raw value was unreadable."""
    try:
        parsed = parse_date(value)
    except InvalidValueError:
        return None, True
    return (parsed.isoformat() if parsed else None), False


class IntegrityChecker:
    """Checks and repairs the relationships between the three collections."""

    def __init__(self, library: Library):
        self.library = library

    def check_all(self) -> IntegrityResult:
        """Run all integrity checks.

        Returns:
            IntegrityResult with all issues found
        """
        result = IntegrityResult()
        self._check_anime(result)
        self._check_episodes(result)
        self._check_schedule(result)
        return result

    def _duplicate_ids(self, records: list[Record], collection: str, result: IntegrityResult) -> None:
        counts = Counter(str(r.get("id")) for r in records)
        for record_id, count in counts.items():
            if count > 1:
                result.issues.append(IntegrityIssue(
                    collection=collection,
                    entry_id=record_id,
                    issue_type=IssueType.DUPLICATE_ID,
                    message=f"{count} records share id '{record_id}'",
                ))

    def _check_anime(self, result: IntegrityResult) -> None:
        anime = self.library.anime.records
        self._duplicate_ids(anime, ANIME, result)

        for record in anime:
            anime_id = str(record.get("id"))
            if not record.get("title"):
                result.issues.append(IntegrityIssue(
                    collection=ANIME,
                    entry_id=anime_id,
                    issue_type=IssueType.MISSING_FIELD,
                    message="Anime has no title",
                    severity=IssueSeverity.WARNING,
                    extra={"field": "title"},
                ))

            schedule_date, invalid = _date_or_invalid(record.get("scheduleDate"))
            if invalid:
                result.issues.append(IntegrityIssue(
                    collection=ANIME,
                    entry_id=anime_id,
                    issue_type=IssueType.INVALID_DATE,
                    message=f"Unreadable scheduleDate {record.get('scheduleDate')!r}",
                    severity=IssueSeverity.WARNING,
                ))
            elif schedule_date and is_upcoming(schedule_date):
                self._expect_release(ScheduleType.ANIME, anime_id, schedule_date, result)

        result.checked[ANIME] = len(anime)

    def _check_episodes(self, result: IntegrityResult) -> None:
        episodes = self.library.episodes.records
        self._duplicate_ids(episodes, EPISODES, result)

        numbers: Counter[tuple[str, Any]] = Counter()
        for episode in episodes:
            episode_id = str(episode.get("id"))
            anime_id = str(episode.get("animeId"))
            numbers[(anime_id, episode.get("number"))] += 1

            if anime_id not in self.library.anime:
                result.issues.append(IntegrityIssue(
                    collection=EPISODES,
                    entry_id=episode_id,
                    issue_type=IssueType.ORPHANED_EPISODE,
                    message=f"Episode belongs to anime '{anime_id}' which is not tracked",
                    fixable=True,
                    extra={"animeId": anime_id},
                ))

            if not episode.get(REQUIRED_LINK_FIELD):
                result.issues.append(IntegrityIssue(
                    collection=EPISODES,
                    entry_id=episode_id,
                    issue_type=IssueType.MISSING_FIELD,
                    message=f"Episode has no {REQUIRED_LINK_FIELD}",
                    severity=IssueSeverity.WARNING,
                    extra={"field": REQUIRED_LINK_FIELD},
                ))

            release_date, invalid = _date_or_invalid(episode.get("releaseDate"))
            if invalid:
                result.issues.append(IntegrityIssue(
                    collection=EPISODES,
                    entry_id=episode_id,
                    issue_type=IssueType.INVALID_DATE,
                    message=f"Unreadable releaseDate {episode.get('releaseDate')!r}",
                    severity=IssueSeverity.WARNING,
                ))
            elif release_date and is_upcoming(release_date):
                self._expect_release(ScheduleType.EPISODE, episode_id, release_date, result)

        for (anime_id, number), count in numbers.items():
            if count > 1:
                result.issues.append(IntegrityIssue(
                    collection=EPISODES,
                    entry_id=anime_id,
                    issue_type=IssueType.DUPLICATE_NUMBER,
                    message=f"{count} episodes of anime '{anime_id}' are numbered {number}",
                    extra={"animeId": anime_id, "number": number},
                ))

        result.checked[EPISODES] = len(episodes)

    def _expect_release(
        self,
        kind: ScheduleType,
        source_id: str,
        release_date: str,
        result: IntegrityResult,
    ) -> None:
        """Flag a source with an upcoming date whose release is absent or out of step."""
        release = self.library.schedule.find_by_source(kind.value, source_id)
        if release is None:
            result.issues.append(IntegrityIssue(
                collection=SCHEDULE,
                entry_id=source_id,
                issue_type=IssueType.MISSING_RELEASE,
                message=f"{kind.value} '{source_id}' is dated {release_date} but not scheduled",
                severity=IssueSeverity.WARNING,
                fixable=True,
                extra={"type": kind.value, "sourceId": source_id},
            ))
        elif str(release.get("releaseDate"))[:10] != release_date:
            result.issues.append(IntegrityIssue(
                collection=SCHEDULE,
                entry_id=source_id,
                issue_type=IssueType.STALE_RELEASE,
                message=(
                    f"Scheduled for {release.get('releaseDate')} but "
                    f"{kind.value} '{source_id}' is dated {release_date}"
                ),
                severity=IssueSeverity.WARNING,
                fixable=True,
                extra={"type": kind.value, "sourceId": source_id},
            ))

    def _source_of(self, release: Record) -> Record | None:
        source_id = str(release.get("sourceId"))
        if release.get("type") == ScheduleType.ANIME.value:
            return self.library.anime.find_by_id(source_id)
        if release.get("type") == ScheduleType.EPISODE.value:
            return self.library.episodes.find_by_id(source_id)
        return None

    def _check_schedule(self, result: IntegrityResult) -> None:
        releases = self.library.schedule.records
        by_source = Counter((r.get("type"), str(r.get("sourceId"))) for r in releases)

        for (release_type, source_id), count in by_source.items():
            if count > 1:
                result.issues.append(IntegrityIssue(
                    collection=SCHEDULE,
                    entry_id=source_id,
                    issue_type=IssueType.DUPLICATE_RELEASE,
                    message=f"{count} scheduled releases for {release_type} '{source_id}'",
                    fixable=True,
                    extra={"type": release_type, "sourceId": source_id},
                ))

        for release in releases:
            source_id = str(release.get("sourceId"))
            extra = {"type": release.get("type"), "sourceId": source_id}
            source = self._source_of(release)
            if source is None:
                result.issues.append(IntegrityIssue(
                    collection=SCHEDULE,
                    entry_id=source_id,
                    issue_type=IssueType.ORPHANED_RELEASE,
                    message=f"Scheduled release points at missing {release.get('type')} '{source_id}'",
                    fixable=True,
                    extra=extra,
                ))
                continue

            date_field = "scheduleDate" if release.get("type") == ScheduleType.ANIME.value else "releaseDate"
            source_date, invalid = _date_or_invalid(source.get(date_field))
            if invalid:
                continue
            if source_date is None or not is_upcoming(source_date):
                try:
                    upcoming = is_upcoming(release.get("releaseDate"))
                except InvalidValueError:
                    upcoming = False
                result.issues.append(IntegrityIssue(
                    collection=SCHEDULE,
                    entry_id=source_id,
                    issue_type=IssueType.STALE_RELEASE if upcoming else IssueType.EXPIRED_RELEASE,
                    message=(
                        f"Scheduled release dated {release.get('releaseDate')} but source "
                        f"{'has no date' if source_date is None else f'is dated {source_date}'}"
                    ),
                    severity=IssueSeverity.WARNING if upcoming else IssueSeverity.INFO,
                    fixable=True,
                    extra=extra,
                ))

        result.checked[SCHEDULE] = len(releases)

    def fix_issues(self, issues: list[IntegrityIssue], dry_run: bool = False) -> tuple[int, int]:
        """Fix fixable integrity issues.

        Orphaned episodes are deleted; scheduled releases are removed or
        re-derived from their source.

        Args:
            issues: List of issues to fix
            dry_run: Count fixes without making changes

        Returns:
            Tuple of (fixed_count, failed_count)

        Raises:
            PersistenceError: If saving the repaired collections failed
        """
        fixable = [i for i in issues if i.fixable]
        if dry_run:
            return len(fixable), 0

        library = self.library
        fixed = 0
        failed = 0
        touched: set[str] = set()

        with library.store.lock(ANIME, EPISODES, SCHEDULE):
            for issue in fixable:
                if issue.issue_type == IssueType.ORPHANED_EPISODE:
                    removed = library.episodes.delete_where(lambda e: str(e.get("id")) == issue.entry_id)
                    library.schedule.remove_by_source(ScheduleType.EPISODE.value, issue.entry_id)
                    touched.update({EPISODES, SCHEDULE})
                    fixed += 1 if removed else 0
                    continue

                release_type = issue.extra.get("type")
                source_id = str(issue.extra.get("sourceId"))
                try:
                    self._resync_release(release_type, source_id)
                except (KeyError, InvalidValueError) as e:
                    logger.warning("Could not fix %s for %s: %s", issue.issue_type.value, source_id, e)
                    failed += 1
                    continue
                touched.add(SCHEDULE)
                fixed += 1

            if touched:
                library.persist(*[name for name in (ANIME, EPISODES, SCHEDULE) if name in touched])

        logger.info("Integrity fix: %d fixed, %d failed", fixed, failed)
        return fixed, failed

    def _resync_release(self, release_type: Any, source_id: str) -> None:
        """Drop every release for a source, then derive it again if still due."""
        schedule = self.library.schedule
        schedule.remove_by_source(release_type, source_id)

        if release_type == ScheduleType.ANIME.value:
            anime = self.library.anime.find_by_id(source_id)
            if anime is not None and is_upcoming(anime.get("scheduleDate")):
                schedule.upsert_by_source(anime_release(anime))
        elif release_type == ScheduleType.EPISODE.value:
            episode = self.library.episodes.find_by_id(source_id)
            if episode is not None and is_upcoming(episode.get("releaseDate")):
                schedule.upsert_by_source(episode_release(episode))
