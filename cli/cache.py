"""Last-result cache for the serp-scout CLI.

``scan`` stores its batch response in ``<workspace>/last_results.json`` so
``last`` can re-render it without another network round.  Nothing else is
persisted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from serpscout.config import settings


def _get_cache_path() -> Path:
    """Return the path to the cached batch response."""
    return settings.last_results_path


def save_last_results(response: dict[str, Any]) -> Path:
    """Write *response* to the cache and return the file path."""
    settings.ensure_workspace()
    path = _get_cache_path()
    path.write_text(json.dumps(response, indent=2), encoding="utf-8")
    return path


def load_last_results() -> Optional[dict[str, Any]]:
    """Load the cached response.  Returns ``None`` if missing or corrupt."""
    path = _get_cache_path()
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None
