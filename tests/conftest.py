"""Shared fixtures.

Every test runs against a patched ``settings`` singleton: a fake provider
key and base URL, zero block-retry backoff, short timeouts, an empty
blacklist and a temporary CLI workspace.  No test touches the network.
"""

from __future__ import annotations

import pytest

from serpscout.config import settings
from serpscout.scraper.blacklist import Blacklist, set_blacklist

SERPAPI_BASE = "https://serpapi.test"


@pytest.fixture(autouse=True)
def scout_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "serpapi_key", "test-key")
    monkeypatch.setattr(settings, "serpapi_base_url", SERPAPI_BASE)
    monkeypatch.setattr(settings, "block_retry_backoff", 0.0)
    monkeypatch.setattr(settings, "fast_fetch_timeout", 2.0)
    monkeypatch.setattr(settings, "fast_body_timeout", 2.0)
    monkeypatch.setattr(settings, "slow_fetch_timeout", 2.0)
    monkeypatch.setattr(settings, "slow_body_timeout", 2.0)
    monkeypatch.setattr(settings, "retry_fetch_timeout", 2.0)
    monkeypatch.setattr(settings, "retry_body_timeout", 2.0)
    monkeypatch.setattr(settings, "global_deadline", 30.0)
    monkeypatch.setattr(settings, "drain_grace", 5.0)
    monkeypatch.setattr(settings, "brand_source", "source")
    monkeypatch.setattr(settings, "workspace_dir", tmp_path / "workspace")
    set_blacklist(Blacklist())
    yield settings
    set_blacklist(None)


def page_html(title: str, description: str = "A description.", heading: str = "Heading") -> str:
    """Minimal competitor page with all four signals present."""
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{title}</title>"
        f'<meta name="description" content="{description}">'
        "</head><body>"
        f"<h1>{heading}</h1>"
        "<p>Licensed plumbers serving the whole area.</p>"
        "</body></html>"
    )


def serp_payload(*links: str, sources: dict[str, str] | None = None) -> dict:
    """SerpAPI-shaped payload with one organic result per link."""
    sources = sources or {}
    results = []
    for position, link in enumerate(links, start=1):
        item = {"position": position, "link": link}
        if link in sources:
            item["source"] = sources[link]
        results.append(item)
    return {"search_metadata": {"status": "Success"}, "organic_results": results}
