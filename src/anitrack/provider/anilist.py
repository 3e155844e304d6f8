"""
AniList GraphQL client.

API Documentation: https://docs.anilist.co/

Usage:
    client = AniListClient(timeout=10)

    summary = client.fetch_by_id(21)        # AnimeSummary or None
    results = client.search("frieren")      # list[AnimeSummary]
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from anitrack.core.errors import ProviderUnavailableError
from anitrack.provider import AnimeSummary, summary_from_media

logger = logging.getLogger(__name__)

ANILIST_API = "https://graphql.anilist.co"
DEFAULT_TIMEOUT = 10

_MEDIA_FIELDS = """
    id
    title { english romaji native }
    description
    genres
    coverImage { large }
    bannerImage
    averageScore
    popularity
    episodes
    duration
    status
    startDate { year month day }
    endDate { year month day }
    season
    studios { nodes { name } }
    countryOfOrigin
    isAdult
"""

MEDIA_QUERY = f"""
query ($id: Int) {{
  Media(id: $id, type: ANIME) {{{_MEDIA_FIELDS}  }}
}}
"""

SEARCH_QUERY = f"""
query ($search: String, $page: Int, $perPage: Int) {{
  Page(page: $page, perPage: $perPage) {{
    media(search: $search, type: ANIME) {{{_MEDIA_FIELDS}    }}
  }}
}}
"""

PING_QUERY = "{ SiteStatistics { anime(perPage: 1) { nodes { count } } } }"


class AniListClient:
    """Client for the AniList GraphQL API."""

    # Retry config for 429 rate-limit responses
    MAX_RETRIES = 2
    RETRY_BACKOFF_BASE = 2.0  # seconds; doubles each retry
    MAX_RETRY_WAIT = 10.0

    def __init__(
        self,
        api_url: str = ANILIST_API,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ):
        """Initialize client.

        Args:
            api_url: GraphQL endpoint
            timeout: Per-request timeout in seconds
            session: Optional preconfigured session (tests inject one)
        """
        self.api_url = api_url
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def _request(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """POST a GraphQL query.

        Returns:
            The 'data' object, or None if AniList answered 404

        Raises:
            ProviderUnavailableError: On transport errors, timeouts, non-404
                error statuses or malformed payloads
        """
        logger.debug("AniList request: %s", variables)
        payload = {"query": query, "variables": variables or {}}

        for attempt in range(1 + self.MAX_RETRIES):
            try:
                response = self._session.post(self.api_url, json=payload, timeout=self.timeout)
            except requests.Timeout as e:
                raise ProviderUnavailableError(f"AniList timed out after {self.timeout}s") from e
            except requests.RequestException as e:
                raise ProviderUnavailableError(f"AniList request failed: {e}") from e

            if response.status_code == 429 and attempt < self.MAX_RETRIES:
                wait = self._retry_wait(response, attempt)
                logger.warning(
                    "AniList rate limited, retrying in %.0fs (attempt %d/%d)",
                    wait, attempt + 1, self.MAX_RETRIES,
                )
                time.sleep(wait)
                continue

            break

        logger.debug("AniList response status: %s", response.status_code)

        if response.status_code == 404:
            return None

        if not response.ok:
            raise ProviderUnavailableError(
                f"AniList error ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderUnavailableError("AniList returned invalid JSON") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise ProviderUnavailableError(
                f"AniList returned no data: {body.get('errors') if isinstance(body, dict) else body}"
            )
        return data

    def _retry_wait(self, response: requests.Response, attempt: int) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return min(float(retry_after), self.MAX_RETRY_WAIT)
            except ValueError:
                pass
        return min(self.RETRY_BACKOFF_BASE * (2 ** attempt), self.MAX_RETRY_WAIT)

    def fetch_by_id(self, anime_id: int) -> AnimeSummary | None:
        """Fetch one anime by its AniList id.

        Returns:
            AnimeSummary, or None if AniList has no such anime
        """
        data = self._request(MEDIA_QUERY, {"id": int(anime_id)})
        if data is None or not data.get("Media"):
            return None
        try:
            return summary_from_media(data["Media"])
        except ValueError as e:
            raise ProviderUnavailableError(f"Malformed media for id {anime_id}: {e}") from e

    def search(self, text: str, page: int = 1, per_page: int = 10) -> list[AnimeSummary]:
        """Search anime by free text."""
        data = self._request(SEARCH_QUERY, {"search": text, "page": page, "perPage": per_page})
        if data is None:
            return []
        media_list = (data.get("Page") or {}).get("media") or []

        results = []
        for media in media_list:
            try:
                results.append(summary_from_media(media))
            except ValueError:
                logger.debug("Skipping malformed search hit: %s", media)
        return results

    def ping(self) -> bool:
        """Check that AniList answers at all."""
        try:
            self._request(PING_QUERY)
            return True
        except ProviderUnavailableError as e:
            logger.warning("AniList ping failed: %s", e)
            return False
