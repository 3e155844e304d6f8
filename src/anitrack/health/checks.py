"""Data and provider health checker.

Reports whether the collection files are present and readable and whether
the metadata provider answers.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from anitrack.core.config import COLLECTION_FILES, DataPaths
from anitrack.provider import MetadataProvider

OK = "ok"
WARNING = "warning"


class HealthChecker:
    """Runs health checks against a data root and a provider."""

    def __init__(self, paths: DataPaths, provider: MetadataProvider | None = None):
        self.paths = paths
        self.provider = provider

    def check_collection(self, name: str) -> dict[str, Any]:
        """Inspect one collection file.

        Returns dict: name, path, exists, records, error.
        """
        path = self.paths.collection(name)
        info: dict[str, Any] = {
            "name": name,
            "path": str(path),
            "exists": path.is_file(),
            "records": None,
            "error": None,
        }
        if not info["exists"]:
            return info
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            info["error"] = str(e)
            return info
        if isinstance(data, list):
            info["records"] = len(data)
        else:
            info["error"] = f"expected a JSON array, found {type(data).__name__}"
        return info

    def check_collections(self) -> list[dict[str, Any]]:
        return [self.check_collection(name) for name in COLLECTION_FILES]

    def check_provider(self) -> bool | None:
        """True/False for ping result, None when no provider is configured."""
        if self.provider is None:
            return None
        return self.provider.ping()

    def run(self) -> dict[str, Any]:
        """Run every check and summarize.

        Status is 'ok' when every collection is readable and the provider
        answers, 'warning' otherwise.
        """
        collections = self.check_collections()
        provider_ok = self.check_provider()
        healthy = all(c["exists"] and c["error"] is None for c in collections) and provider_ok is not False
        return {
            "status": OK if healthy else WARNING,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "dataRoot": str(self.paths.root),
            "collections": collections,
            "provider": {
                "configured": provider_ok is not None,
                "reachable": bool(provider_ok),
            },
        }
