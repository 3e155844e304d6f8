"""Tests for anitrack.core.library module."""

import json
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from anitrack.core.cache import MetadataCache
from anitrack.core.errors import (
    DuplicateKeyError,
    DuplicateNumberError,
    ErrorKind,
    InvalidValueError,
    MissingFieldError,
    NotFoundError,
    PersistenceError,
)
from anitrack.core.library import SCHEMA_VERSION, Library, open_library
from anitrack.core.store import Store
from anitrack.provider import AnimeSummary

FUTURE = "2099-01-01"
PAST = "2000-01-01"
LINK = "https://stream.example/ep"


def _tomorrow() -> str:
    return (date.today() + timedelta(days=1)).isoformat()


@pytest.fixture
def tracked(library):
    """Library already tracking Frieren and SPY x FAMILY."""
    library.add_anime("154587")
    library.add_anime("140960")
    return library


class TestAddAnime:
    """Tests for Library.add_anime."""

    def test_uses_provider_title(self, library, read_collection):
        """Test that the stored title and thumbnail come from the provider."""
        record = library.add_anime("154587", notes="rewatch")

        assert record["title"] == "Frieren: Beyond Journey's End"
        assert record["thumbnail"] == "https://img.example/frieren.jpg"
        assert record["notes"] == "rewatch"
        assert "dateAdded" in record
        assert read_collection("anime") == [record]

    def test_int_id_stored_as_string(self, library):
        """Test that numeric input ids are normalized to strings."""
        assert library.add_anime(154587)["id"] == "154587"

    def test_duplicate_rejected(self, library, read_collection):
        """Test that adding the same id twice yields DuplicateKey."""
        library.add_anime("154587")

        with pytest.raises(DuplicateKeyError) as exc:
            library.add_anime("154587")

        assert exc.value.kind is ErrorKind.DUPLICATE_KEY
        assert len(read_collection("anime")) == 1

    def test_missing_id(self, library):
        """Test that an empty id is a MissingField error."""
        with pytest.raises(MissingFieldError):
            library.add_anime("")
        with pytest.raises(MissingFieldError):
            library.add_anime(None)

    def test_non_numeric_id(self, library):
        """Test that a non-numeric id is rejected."""
        with pytest.raises(InvalidValueError):
            library.add_anime("frieren")

    def test_unknown_to_provider(self, library):
        """Test that an id AniList does not know is NotFound."""
        with pytest.raises(NotFoundError):
            library.add_anime("424242")
        assert len(library.anime) == 0

    def test_stub_when_provider_unavailable(self, library, fake_provider):
        """Test that an unreachable provider still lets the add succeed."""
        fake_provider.available = False

        record = library.add_anime("154587")

        assert record["title"] == "Anime #154587"
        assert record["thumbnail"] == ""

    def test_stub_uses_fallback_title(self, library, fake_provider):
        """Test that a caller-supplied title is used for the stub."""
        fake_provider.available = False

        assert library.add_anime("154587", title="Frieren")["title"] == "Frieren"

    def test_upcoming_schedule_creates_release(self, library, read_collection):
        """Test that a future scheduleDate derives an anime release."""
        library.add_anime("154587", schedule_date=FUTURE)

        releases = read_collection("scheduled_releases")
        assert len(releases) == 1
        assert releases[0]["type"] == "anime"
        assert releases[0]["sourceId"] == "154587"
        assert releases[0]["releaseDate"] == FUTURE

    def test_past_schedule_no_release(self, library):
        """Test that a past scheduleDate is stored but not scheduled."""
        record = library.add_anime("154587", schedule_date=PAST)

        assert record["scheduleDate"] == PAST
        assert library.list_scheduled() == []

    def test_invalid_schedule_date(self, library):
        """Test that an unparseable date is rejected before anything is stored."""
        with pytest.raises(InvalidValueError):
            library.add_anime("154587", schedule_date="soon")
        assert len(library.anime) == 0


class TestReadAnime:
    """Tests for get_anime and list_anime."""

    def test_get_merges_metadata(self, tracked):
        """Test that stored fields are merged over provider metadata."""
        entry = tracked.get_anime("154587")

        assert entry["metadata"] == "provider"
        assert entry["genres"] == ["Adventure", "Drama", "Fantasy"]
        assert entry["episodeCount"] == 28
        assert "dateAdded" in entry

    def test_get_unknown(self, tracked):
        """Test that an untracked id is NotFound."""
        with pytest.raises(NotFoundError):
            tracked.get_anime("1")

    def test_cache_avoids_refetch(self, tracked, fake_provider):
        """Test that a second read within the ttl hits the cache."""
        tracked.get_anime("154587")
        calls = len(fake_provider.fetch_calls)

        tracked.get_anime("154587")

        assert len(fake_provider.fetch_calls) == calls

    def test_cache_expiry_refetches(self, tracked, fake_provider, fake_clock):
        """Test that an expired entry is fetched again."""
        tracked.get_anime("154587")
        calls = len(fake_provider.fetch_calls)

        fake_clock.advance(3601)
        tracked.get_anime("154587")

        assert len(fake_provider.fetch_calls) == calls + 1

    def test_stored_snapshot_when_unavailable(self, tracked, fake_provider):
        """Test that reads degrade to the stored record instead of failing."""
        tracked.cache.clear()
        fake_provider.available = False

        entries = tracked.list_anime()

        assert len(entries) == 2
        assert {e["metadata"] for e in entries} == {"stored"}
        assert entries[0]["title"] == "Frieren: Beyond Journey's End"

    def test_list_without_metadata(self, tracked, fake_provider):
        """Test that offline listing makes no provider calls."""
        tracked.cache.clear()
        calls = len(fake_provider.fetch_calls)

        entries = tracked.list_anime(with_metadata=False)

        assert len(entries) == 2
        assert len(fake_provider.fetch_calls) == calls

    def test_list_fetches_concurrently(self, store):
        """Test that every tracked anime gets merged when fetched in parallel."""
        summaries = [AnimeSummary(id=str(i), title=f"Show {i}") for i in range(1, 13)]
        provider = MagicMock()
        provider.fetch_by_id.side_effect = lambda anime_id: summaries[int(anime_id) - 1]
        library = Library(store, provider=provider, max_workers=4).load()
        for s in summaries:
            library.add_anime(s.id)
        library.cache.clear()

        entries = library.list_anime()

        assert sorted(e["title"] for e in entries) == sorted(s.title for s in summaries)
        assert all(e["metadata"] == "provider" for e in entries)


class TestSearch:
    """Tests for Library.search."""

    def test_filters_adult(self, library):
        """Test that adult titles are hidden by default."""
        assert [s.id for s in library.search("spy")] == ["140960"]
        assert {s.id for s in library.search("sp", include_adult=True)} == {"140960", "999"}

    def test_empty_when_unavailable(self, library, fake_provider):
        """Test that a failing provider yields no results rather than an error."""
        fake_provider.available = False
        assert library.search("frieren") == []

    def test_requires_text(self, library):
        """Test that blank search text is rejected."""
        with pytest.raises(MissingFieldError):
            library.search("  ")


class TestUpdateAnime:
    """Tests for Library.update_anime."""

    def test_patch_and_clear(self, tracked):
        """Test merge-patch semantics on anime fields."""
        tracked.update_anime("154587", {"notes": "great", "isDub": 1})
        updated = tracked.update_anime("154587", {"notes": None})

        assert "notes" not in updated
        assert updated["isDub"] is True
        assert "lastUpdated" in updated

    def test_unknown_field_rejected(self, tracked):
        """Test that non-editable fields are refused."""
        with pytest.raises(InvalidValueError):
            tracked.update_anime("154587", {"dateAdded": "2000-01-01"})

    def test_schedule_lifecycle(self, tracked):
        """Test set, move and clear of an anime's release."""
        tracked.update_anime("154587", {"scheduleDate": FUTURE})
        tracked.update_anime("154587", {"scheduleDate": "2098-05-05"})
        assert [r["releaseDate"] for r in tracked.list_scheduled()] == ["2098-05-05"]

        tracked.update_anime("154587", {"scheduleDate": None})
        assert tracked.list_scheduled() == []

    def test_title_change_propagates(self, tracked, read_collection):
        """Test that a new title is copied to episodes and their releases."""
        tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE})

        tracked.update_anime("154587", {"title": "Frieren"})

        assert read_collection("episodes")[0]["animeTitle"] == "Frieren"
        assert read_collection("scheduled_releases")[0]["animeTitle"] == "Frieren"

    def test_unknown_anime(self, tracked):
        """Test that updating an untracked anime is NotFound."""
        with pytest.raises(NotFoundError):
            tracked.update_anime("1", {"notes": "x"})


class TestRemoveAnime:
    """Tests for Library.remove_anime cascade."""

    def test_cascade(self, tracked, read_collection):
        """Test that episodes and releases of the anime are removed with it."""
        tracked.update_anime("154587", {"scheduleDate": FUTURE})
        for n in range(3):
            tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE if n == 0 else None})
        other = tracked.add_episode("140960", {"server2Url": LINK, "releaseDate": FUTURE})

        result = tracked.remove_anime("154587")

        assert result.removed_episodes == 3
        assert result.removed_schedules == 2
        assert [a["id"] for a in read_collection("anime")] == ["140960"]
        assert [e["id"] for e in read_collection("episodes")] == [other["id"]]
        assert [r["sourceId"] for r in read_collection("scheduled_releases")] == [other["id"]]

    def test_invalidates_cache(self, tracked):
        """Test that the removed anime's metadata leaves the cache."""
        tracked.get_anime("154587")
        tracked.remove_anime("154587")

        assert tracked.cache.get("154587") is None

    def test_unknown_anime(self, tracked):
        """Test that removing an untracked anime is NotFound."""
        with pytest.raises(NotFoundError):
            tracked.remove_anime("1")


class TestEpisodes:
    """Tests for single-episode operations."""

    def test_auto_numbering(self, tracked):
        """Test max+1 numbering, starting at 1."""
        numbers = [tracked.add_episode("154587", {"server2Url": LINK})["number"] for _ in range(3)]
        assert numbers == [1, 2, 3]

        assert tracked.add_episode("154587", {"server2Url": LINK})["number"] == 4
        assert tracked.add_episode("140960", {"server2Url": LINK})["number"] == 1

    def test_defaults(self, tracked):
        """Test default title, denormalized anime title and link fields."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "number": "2"})

        assert episode["number"] == 2
        assert episode["title"] == "Episode 2"
        assert episode["animeTitle"] == "Frieren: Beyond Journey's End"
        assert episode["iframeSrc"] == ""
        assert episode["server2Url"] == LINK

    def test_duplicate_number(self, tracked):
        """Test that a taken number is DuplicateNumber."""
        tracked.add_episode("154587", {"server2Url": LINK, "number": 1})

        with pytest.raises(DuplicateNumberError):
            tracked.add_episode("154587", {"server2Url": LINK, "number": 1})

    def test_missing_link(self, tracked):
        """Test that server2Url is required."""
        with pytest.raises(MissingFieldError):
            tracked.add_episode("154587", {"iframeSrc": LINK})

    def test_unknown_anime(self, tracked):
        """Test that an untracked anime is NotFound."""
        with pytest.raises(NotFoundError):
            tracked.add_episode("1", {"server2Url": LINK})

    def test_bad_number(self, tracked):
        """Test that a non-positive number is rejected."""
        with pytest.raises(InvalidValueError):
            tracked.add_episode("154587", {"server2Url": LINK, "number": 0})

    def test_list_unknown_anime_empty(self, tracked):
        """Test that listing episodes of an untracked anime is empty."""
        assert tracked.list_episodes("1") == []

    def test_list_all_by_date(self, tracked):
        """Test the cross-anime date filter."""
        tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": "2026-01-05"})
        tracked.add_episode("140960", {"server2Url": LINK, "releaseDate": "2026-03-05"})

        found = tracked.list_all_episodes("2026-01-01", "2026-01-31")

        assert [e["animeId"] for e in found] == ["154587"]
        assert len(tracked.list_all_episodes()) == 2


class TestUpdateEpisode:
    """Tests for Library.update_episode."""

    def test_schedule_derivation(self, tracked, read_collection):
        """Test that release dates create, remove and re-create one release."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        tracked.update_episode(episode["id"], {"releaseDate": FUTURE})
        releases = read_collection("scheduled_releases")
        assert len(releases) == 1
        assert releases[0]["id"] == episode["id"]
        assert releases[0]["type"] == "episode"

        tracked.update_episode(episode["id"], {"releaseDate": None})
        assert read_collection("scheduled_releases") == []

        tracked.update_episode(episode["id"], {"releaseDate": "2098-02-02", "title": "Finale"})
        releases = read_collection("scheduled_releases")
        assert len(releases) == 1
        assert releases[0]["releaseDate"] == "2098-02-02"
        assert releases[0]["episodeTitle"] == "Finale"

    def test_past_date_removes_release(self, tracked):
        """Test that moving a release into the past unschedules it."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE})

        tracked.update_episode(episode["id"], {"releaseDate": PAST})

        assert tracked.list_scheduled() == []

    def test_id_immutable(self, tracked):
        """Test that a patched id is ignored."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        updated = tracked.update_episode(episode["id"], {"id": "other", "title": "Pilot"})

        assert updated["id"] == episode["id"]
        assert updated["title"] == "Pilot"

    def test_renumber_moves_generated_title(self, tracked):
        """Test that an 'Episode N' title follows a new number."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "number": 3})

        updated = tracked.update_episode(episode["id"], {"number": 4})

        assert updated["title"] == "Episode 4"

    def test_renumber_keeps_custom_title(self, tracked):
        """Test that a user-chosen title survives renumbering."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "number": 3, "title": "Pilot"})

        assert tracked.update_episode(episode["id"], {"number": 4})["title"] == "Pilot"

    @pytest.mark.parametrize("cleared", [None, ""])
    def test_cleared_title_restores_default(self, tracked, cleared):
        """Test that clearing the title falls back to 'Episode N'."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "number": 2, "title": "Pilot"})

        updated = tracked.update_episode(episode["id"], {"title": cleared})

        assert updated["title"] == "Episode 2"
        assert tracked.get_episode(episode["id"])["title"] == "Episode 2"

    def test_number_conflict(self, tracked):
        """Test that renumbering onto a taken number fails."""
        tracked.add_episode("154587", {"server2Url": LINK})
        second = tracked.add_episode("154587", {"server2Url": LINK})

        with pytest.raises(DuplicateNumberError):
            tracked.update_episode(second["id"], {"number": 1})
        assert tracked.update_episode(second["id"], {"number": 2})["number"] == 2

    def test_move_to_other_anime(self, tracked):
        """Test that changing animeId re-denormalizes the anime title."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        moved = tracked.update_episode(episode["id"], {"animeId": "140960"})

        assert moved["animeTitle"] == "SPY x FAMILY"
        assert tracked.list_episodes("154587") == []

    def test_move_to_unknown_anime(self, tracked):
        """Test that moving to an untracked anime fails."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        with pytest.raises(NotFoundError):
            tracked.update_episode(episode["id"], {"animeId": "1"})

    def test_clearing_link_rejected(self, tracked):
        """Test that server2Url cannot be emptied."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        with pytest.raises(MissingFieldError):
            tracked.update_episode(episode["id"], {"server2Url": ""})

    def test_delete_episode(self, tracked):
        """Test that deleting an episode drops its release too."""
        episode = tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE})

        tracked.delete_episode(episode["id"])

        assert tracked.list_episodes("154587") == []
        assert tracked.list_scheduled() == []
        with pytest.raises(NotFoundError):
            tracked.get_episode(episode["id"])


class TestBulkAddEpisodes:
    """Tests for Library.bulk_add_episodes."""

    def test_partial_success(self, tracked):
        """Test that bad items are reported while good items are added."""
        tracked.add_episode("154587", {"server2Url": LINK, "number": 1})

        result = tracked.bulk_add_episodes("154587", [
            {"server2Url": LINK},
            {"server2Url": LINK, "number": 1},
            {"title": "No link"},
            "not an object",
            {"server2Url": LINK, "number": 10, "releaseDate": FUTURE},
        ])

        assert result.added == 2
        assert result.failed == 3
        assert [e.index for e in result.errors] == [1, 2, 3]
        assert result.errors[0].kind is ErrorKind.DUPLICATE_NUMBER
        assert result.errors[1].kind is ErrorKind.MISSING_FIELD
        assert [e["number"] for e in tracked.list_episodes("154587")] == [1, 2, 10]
        assert len(tracked.list_scheduled()) == 1

    def test_ids_unique(self, tracked):
        """Test that a large batch gets distinct ids."""
        result = tracked.bulk_add_episodes("154587", [{"server2Url": LINK} for _ in range(200)])

        assert result.added == 200
        assert len({e["id"] for e in result.episodes}) == 200

    def test_replace_existing(self, tracked):
        """Test that replace mode drops prior episodes and their releases."""
        tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE})
        tracked.add_episode("154587", {"server2Url": LINK})
        tracked.add_episode("140960", {"server2Url": LINK})

        result = tracked.bulk_add_episodes(
            "154587",
            [{"server2Url": "https://new/1", "number": 1}, {"server2Url": "https://new/1b", "number": 1}],
            replace_existing=True,
        )

        episodes = tracked.list_episodes("154587")
        assert result.replaced == 2
        assert result.failed == 0
        assert result.added == 1
        assert [e["server2Url"] for e in result.episodes] == ["https://new/1b"]
        assert [e["id"] for e in result.episodes] == [e["id"] for e in episodes]
        assert [e["server2Url"] for e in episodes] == ["https://new/1b"]
        assert tracked.list_scheduled() == []
        assert len(tracked.list_episodes("140960")) == 1

    def test_replace_within_batch_reports_survivors(self, tracked):
        """Test that an item replaced later in the same batch is not reported as added."""
        result = tracked.bulk_add_episodes(
            "154587",
            [
                {"server2Url": "https://a", "number": 1},
                {"server2Url": "https://b", "number": 2},
                {"server2Url": "https://c", "number": 1},
            ],
            replace_existing=True,
        )

        stored = tracked.list_episodes("154587")
        assert result.added == len(stored) == 2
        assert sorted(e["server2Url"] for e in result.episodes) == ["https://b", "https://c"]
        assert result.to_dict()["added"] == 2

    def test_unknown_anime(self, tracked):
        """Test that the whole batch fails for an untracked anime."""
        with pytest.raises(NotFoundError):
            tracked.bulk_add_episodes("1", [{"server2Url": LINK}])

    def test_not_a_list(self, tracked):
        """Test that a non-list payload is rejected."""
        with pytest.raises(InvalidValueError):
            tracked.bulk_add_episodes("154587", {"server2Url": LINK})


class TestSchedule:
    """Tests for schedule operations."""

    def test_schedule_release_routes_through_source(self, tracked):
        """Test that scheduling an episode updates the episode itself."""
        episode = tracked.add_episode("154587", {"server2Url": LINK})

        release = tracked.schedule_release("episode", episode["id"], FUTURE)

        assert release["sourceId"] == episode["id"]
        assert tracked.get_episode(episode["id"])["releaseDate"] == FUTURE

    def test_schedule_release_clear(self, tracked):
        """Test that a None date unschedules."""
        tracked.schedule_release("anime", "154587", FUTURE)

        assert tracked.schedule_release("anime", "154587", None) is None
        assert "scheduleDate" not in tracked.anime.get("154587")

    def test_unknown_type(self, tracked):
        """Test that an unknown release type is rejected."""
        with pytest.raises(InvalidValueError):
            tracked.schedule_release("movie", "154587", FUTURE)

    def test_list_sorted(self, tracked):
        """Test that upcoming releases are ordered soonest first."""
        tracked.schedule_release("anime", "154587", "2099-05-01")
        tracked.schedule_release("anime", "140960", "2098-05-01")

        assert [r["sourceId"] for r in tracked.list_scheduled()] == ["140960", "154587"]

    def test_prune(self, tracked, read_collection):
        """Test that past releases are removed and future ones kept."""
        tracked.schedule_release("anime", "154587", FUTURE)
        tracked.schedule.upsert_by_source({
            "id": "old", "type": "episode", "sourceId": "old", "animeId": "140960", "releaseDate": PAST,
        })

        removed = tracked.prune_schedule()

        assert [r["sourceId"] for r in removed] == ["old"]
        assert [r["sourceId"] for r in read_collection("scheduled_releases")] == ["154587"]


class TestExportImport:
    """Tests for export and import."""

    def test_round_trip(self, tracked, store, fake_provider, fake_clock):
        """Test that importing an export reproduces all collections and clears the cache."""
        tracked.update_anime("154587", {"scheduleDate": FUTURE})
        tracked.add_episode("154587", {"server2Url": LINK, "releaseDate": FUTURE})
        tracked.get_anime("154587")
        bundle = tracked.export()

        assert bundle["schemaVersion"] == SCHEMA_VERSION
        tracked.remove_anime("140960")
        tracked.get_anime("154587")
        assert len(tracked.cache) == 1

        counts = tracked.import_bundle(json.loads(json.dumps(bundle)))

        assert counts == {"anime": 2, "episodes": 1, "scheduledReleases": 2}
        assert len(tracked.cache) == 0
        reloaded = Library(store, provider=fake_provider, cache=MetadataCache(clock=fake_clock)).load()
        assert reloaded.anime.records == bundle["anime"]
        assert reloaded.episodes.records == bundle["episodes"]
        assert reloaded.schedule.records == bundle["scheduledReleases"]

    def test_export_is_a_copy(self, tracked):
        """Test that mutating an export does not touch the library."""
        bundle = tracked.export()
        bundle["anime"][0]["title"] = "changed"

        assert tracked.anime.get(bundle["anime"][0]["id"])["title"] != "changed"

    def test_rejects_bad_shape(self, tracked):
        """Test that non-list collections are refused and nothing changes."""
        with pytest.raises(InvalidValueError):
            tracked.import_all([{"id": "1"}], "nope", [])
        assert len(tracked.anime) == 2

    def test_rejects_future_major_version(self, tracked):
        """Test that bundles from an incompatible schema are refused."""
        with pytest.raises(InvalidValueError):
            tracked.import_bundle({"schemaVersion": "2.0", "anime": [], "episodes": [], "scheduledReleases": []})


class TestPersistenceFailure:
    """Tests for save failures surfacing as PersistenceError."""

    def test_failed_save_raises(self, library, monkeypatch):
        """Test that a failed store write is reported to the caller."""
        monkeypatch.setattr(library.store, "save", lambda name, records: False)

        with pytest.raises(PersistenceError) as exc:
            library.add_anime("154587")

        assert exc.value.kind is ErrorKind.PERSISTENCE_FAILURE
        assert exc.value.extra["collections"] == ["anime"]

    def test_persist_saves_named_collections(self, tracked, store, monkeypatch):
        """Test that persist writes exactly the collections it is given, in order."""
        saved = []
        monkeypatch.setattr(store, "save", lambda name, records: saved.append(name) or True)

        tracked.persist("episodes", "anime")

        assert saved == ["episodes", "anime"]

    def test_persist_reports_every_failure(self, tracked, store, monkeypatch):
        monkeypatch.setattr(store, "save", lambda name, records: name == "anime")

        with pytest.raises(PersistenceError) as exc:
            tracked.persist("anime", "episodes", "scheduled_releases")

        assert exc.value.extra["collections"] == ["episodes", "scheduled_releases"]


class TestOpenLibrary:
    """Tests for open_library."""

    def test_opens_configured_root(self, mock_data_root, fake_provider):
        """Test that open_library loads collections under the data root."""
        (mock_data_root / ".anitrack" / "anime.json").write_text(json.dumps([{"id": "1", "title": "X"}]))

        library = open_library(provider=fake_provider)

        assert isinstance(library.store, Store)
        assert library.anime.get("1")["title"] == "X"
        assert library.provider is fake_provider


class TestExampleScenario:
    """End-to-end walk through the main operations."""

    def test_add_schedule_and_cascade(self, store):
        """Test add anime, add episode, schedule it, then remove everything."""
        provider = MagicMock()
        provider.fetch_by_id.return_value = AnimeSummary(id="101", title="Example Show")
        library = Library(store, provider=provider).load()

        library.add_anime("101")
        library.add_episode("101", {"number": 1, "server2Url": "http://x"})

        episodes = library.list_episodes("101")
        assert len(episodes) == 1
        assert episodes[0]["number"] == 1
        assert episodes[0]["title"] == "Episode 1"

        library.update_episode(episodes[0]["id"], {"releaseDate": _tomorrow()})
        scheduled = library.list_scheduled()
        assert len(scheduled) == 1
        assert scheduled[0]["type"] == "episode"
        assert scheduled[0]["animeId"] == "101"

        library.remove_anime("101")
        assert library.list_episodes("101") == []
        assert library.list_scheduled() == []
