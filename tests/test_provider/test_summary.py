"""Tests for the provider-neutral AnimeSummary mapping."""

from __future__ import annotations

import pytest

from anitrack.provider import (
    UNKNOWN,
    AnimeSummary,
    MetadataProvider,
    clean_description,
    format_fuzzy_date,
    summary_from_media,
)

# ---------------------------------------------------------------------------
# Sample AniList Media object
# ---------------------------------------------------------------------------

SAMPLE_MEDIA = {
    "id": 154587,
    "title": {
        "english": "Frieren: Beyond Journey's End",
        "romaji": "Sousou no Frieren",
        "native": "葬送のフリーレン",
    },
    "description": "The adventure is over.<br><br>But life goes on for an <i>elf</i> mage.",
    "genres": ["Adventure", "Drama", "Fantasy"],
    "coverImage": {"large": "https://img.example/frieren.jpg"},
    "bannerImage": "https://img.example/banner.jpg",
    "averageScore": 91,
    "popularity": 350000,
    "episodes": 28,
    "duration": 24,
    "status": "FINISHED",
    "startDate": {"year": 2023, "month": 9, "day": 29},
    "endDate": {"year": 2024, "month": 3, "day": 22},
    "season": "FALL",
    "studios": {"nodes": [{"name": "Madhouse"}]},
    "countryOfOrigin": "JP",
    "isAdult": False,
}


class TestSummaryFromMedia:
    """Tests for summary_from_media."""

    def test_full_media(self):
        """All fields are mapped from a complete Media object."""
        summary = summary_from_media(SAMPLE_MEDIA)

        assert summary.id == "154587"
        assert summary.title == "Frieren: Beyond Journey's End"
        assert summary.title_native == "葬送のフリーレン"
        assert summary.rating == pytest.approx(9.1)
        assert summary.episodes == 28
        assert summary.start_date == "2023-09-29"
        assert summary.studios == ["Madhouse"]
        assert summary.description == "The adventure is over.\n\nBut life goes on for an elf mage."

    def test_title_fallback_order(self):
        """English, then romaji, then native, then Unknown."""
        assert summary_from_media({"id": 1, "title": {"romaji": "R", "native": "N"}}).title == "R"
        assert summary_from_media({"id": 1, "title": {"native": "N"}}).title == "N"
        assert summary_from_media({"id": 1}).title == UNKNOWN

    def test_defaults_for_missing_fields(self):
        """Absent or null fields fall back to documented defaults."""
        summary = summary_from_media({"id": 7, "averageScore": None, "episodes": None, "studios": None})

        assert summary.rating == 0.0
        assert summary.episodes == 0
        assert summary.status == UNKNOWN
        assert summary.season == UNKNOWN
        assert summary.genres == []
        assert summary.start_date is None
        assert summary.thumbnail == ""

    @pytest.mark.parametrize(
        "field, value",
        [
            ("title", "Plain string"),
            ("coverImage", "http://img.example/cover.jpg"),
            ("studios", [{"name": "Madhouse"}]),
            ("studios", {"nodes": {"name": "Madhouse"}}),
            ("genres", "Drama"),
        ],
    )
    def test_unexpected_shapes_treated_as_absent(self, field, value):
        """Nested objects of the wrong type map to defaults instead of failing."""
        summary = summary_from_media({"id": 5, field: value})

        assert summary.id == "5"
        assert summary.title == UNKNOWN
        assert summary.thumbnail == ""
        assert summary.studios == []
        assert summary.genres == []

    def test_non_string_title_variants_skipped(self):
        summary = summary_from_media({"id": 5, "title": {"english": {"x": 1}, "romaji": "R"}})

        assert summary.title == "R"

    def test_missing_id_rejected(self):
        """A Media object without id is not a summary."""
        with pytest.raises(ValueError):
            summary_from_media({"title": {"english": "X"}})

    def test_to_dict_camel_case(self):
        """to_dict uses the stored record's camelCase keys."""
        data = summary_from_media(SAMPLE_MEDIA).to_dict()

        assert data["titleRomaji"] == "Sousou no Frieren"
        assert data["episodeCount"] == 28
        assert data["isAdult"] is False
        assert AnimeSummary(id="1").to_dict()["episodeCount"] == UNKNOWN


class TestHelpers:
    """Tests for the mapping helpers."""

    def test_fuzzy_date_partial(self):
        """Missing month/day default to 01; missing year is None."""
        assert format_fuzzy_date({"year": 2024, "month": None, "day": None}) == "2024-01-01"
        assert format_fuzzy_date({"year": None, "month": 4}) is None
        assert format_fuzzy_date(None) is None

    def test_clean_description(self):
        """HTML tags are stripped and breaks become newlines."""
        assert clean_description("a<br/>b <b>c</b>") == "a\nb c"
        assert clean_description(None) == ""


class TestProtocol:
    """Tests for the MetadataProvider protocol."""

    def test_fake_provider_satisfies_protocol(self, fake_provider):
        """The test double is a structural MetadataProvider."""
        assert isinstance(fake_provider, MetadataProvider)

    def test_anilist_client_satisfies_protocol(self):
        """AniListClient is a structural MetadataProvider."""
        from anitrack.provider.anilist import AniListClient

        assert isinstance(AniListClient(), MetadataProvider)
