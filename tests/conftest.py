"""Shared test fixtures for anitrack package."""

import json

import pytest

from anitrack.core.cache import MetadataCache
from anitrack.core.errors import ProviderUnavailableError
from anitrack.core.library import Library
from anitrack.core.store import Store
from anitrack.provider import AnimeSummary


class FakeClock:
    """Manually advanced time source for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """In-memory MetadataProvider.

    Knows a fixed set of summaries; set available=False to make every call
    fail the way an unreachable AniList does.
    """

    def __init__(self, summaries=None):
        self.summaries = {s.id: s for s in (summaries or [])}
        self.available = True
        self.fetch_calls = []
        self.search_calls = []

    def fetch_by_id(self, anime_id):
        self.fetch_calls.append(str(anime_id))
        if not self.available:
            raise ProviderUnavailableError("AniList timed out after 10s")
        return self.summaries.get(str(anime_id))

    def search(self, text, page=1, per_page=10):
        self.search_calls.append(text)
        if not self.available:
            raise ProviderUnavailableError("AniList timed out after 10s")
        hits = [s for s in self.summaries.values() if text.lower() in s.title.lower()]
        return hits[:per_page]

    def ping(self):
        return self.available


@pytest.fixture
def sample_summaries():
    """AniList summaries known to the fake provider."""
    return [
        AnimeSummary(
            id="154587",
            title="Frieren: Beyond Journey's End",
            title_romaji="Sousou no Frieren",
            genres=["Adventure", "Drama", "Fantasy"],
            thumbnail="https://img.example/frieren.jpg",
            rating=9.1,
            episodes=28,
            status="FINISHED",
            season="FALL",
        ),
        AnimeSummary(
            id="140960",
            title="SPY x FAMILY",
            genres=["Action", "Comedy"],
            thumbnail="https://img.example/spy.jpg",
            episodes=12,
            status="FINISHED",
        ),
        AnimeSummary(id="999", title="Spicy Title", is_adult=True),
    ]


@pytest.fixture
def fake_provider(sample_summaries):
    """Provider that answers from sample_summaries."""
    return FakeProvider(sample_summaries)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path):
    """Empty .anitrack/ data directory."""
    path = tmp_path / ".anitrack"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir):
    """Store over the temporary data directory."""
    return Store(data_dir)


@pytest.fixture
def library(store, fake_provider, fake_clock):
    """Loaded Library with the fake provider and a controllable cache clock."""
    return Library(store, provider=fake_provider, cache=MetadataCache(ttl=3600, clock=fake_clock)).load()


@pytest.fixture
def read_collection(data_dir):
    """Read a collection file straight from disk."""
    def _read(name: str):
        return json.loads((data_dir / f"{name}.json").read_text(encoding="utf-8"))

    return _read


@pytest.fixture
def mock_data_root(tmp_path, monkeypatch):
    """Create a mock data root with an initialized .anitrack/ directory."""
    data_path = tmp_path / ".anitrack"
    data_path.mkdir(exist_ok=True)
    for name in ("anime", "episodes", "scheduled_releases"):
        (data_path / "backups" / name).mkdir(parents=True)
        (data_path / f"{name}.json").write_text("[]", encoding="utf-8")

    monkeypatch.delenv("ANITRACK_DATA_ROOT", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))

    # Mock get_data_root to return our tmp_path
    from anitrack.core import config
    # Clear the lru_cache first
    config.get_data_root.cache_clear()
    monkeypatch.setattr(config, "get_data_root", lambda: tmp_path)

    return tmp_path


@pytest.fixture
def cli_provider(fake_provider, monkeypatch):
    """Make CLI commands talk to the fake provider instead of AniList."""
    from anitrack.provider import anilist

    monkeypatch.setattr(anilist, "AniListClient", lambda *args, **kwargs: fake_provider)
    return fake_provider
