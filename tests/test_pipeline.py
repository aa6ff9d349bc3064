"""End-to-end tests for the scan pipeline with the network mocked by respx."""

from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from serpscout.engine import pipeline
from serpscout.engine.emitter import PLACEHOLDER_DESCRIPTION
from serpscout.engine.pipeline import (
    KEEPALIVE,
    derive_brand,
    prepare_run,
    retry_one,
    run_batch,
    stream_events,
)
from serpscout.errors import ConfigurationError, UpstreamProviderError
from serpscout.scraper.blacklist import Blacklist, set_blacklist
from serpscout.scraper.models import Success
from tests.conftest import page_html, serp_payload


def _mock_serp(*links: str, sources: dict[str, str] | None = None) -> respx.Route:
    return respx.get(host="serpapi.test", path="/search.json").mock(
        return_value=httpx.Response(200, json=serp_payload(*links, sources=sources))
    )


def _mock_page(url: str, title: str) -> respx.Route:
    return respx.get(url).mock(return_value=httpx.Response(200, html=page_html(title)))


class TestPrepareRun:
    def test_ranks_and_splits(self) -> None:
        entries = [
            {"link": "https://alpha.test/", "source": "Alpha"},
            {"link": "https://www.yelp.com/search?q=x", "source": "Yelp"},
            {"link": "https://beta.test/", "source": None},
        ]
        prepared = prepare_run(entries, Blacklist(["yelp.com"]))

        assert [r.rank for r in prepared.requests] == [1, 2, 3]
        assert [r.rank for r in prepared.to_fetch] == [1, 3]
        assert [r.rank for r in prepared.excluded] == [2]
        assert prepared.requests[0].brand == "Alpha"
        assert prepared.requests[2].brand == "beta.test"

    def test_domain_brand_source(self) -> None:
        assert derive_brand("https://www.alpha.test/x", "Alpha", "domain") == "alpha.test"
        assert derive_brand("https://www.alpha.test/x", "Alpha", "source") == "Alpha"


class TestRunBatch:
    @respx.mock
    async def test_all_pages_scraped_in_rank_order(self) -> None:
        links = ["https://alpha.test/", "https://beta.test/", "https://gamma.test/"]
        _mock_serp(*links, sources={links[0]: "Alpha Plumbing"})
        for link, title in zip(links, ["Alpha", "Beta", "Gamma"]):
            _mock_page(link, title)

        response = await run_batch("plumber", "Bend, OR")

        results = response["results"]
        assert [r["rank"] for r in results] == [1, 2, 3]
        assert [r["title"] for r in results] == ["Alpha", "Beta", "Gamma"]
        assert results[0]["brand"] == "Alpha Plumbing"
        assert results[1]["brand"] == "beta.test"
        assert all(r["status"] == "ok" for r in results)
        assert all(r["metaDescription"] == "A description." for r in results)

        stats = response["stats"]
        assert stats["total"] == 3
        assert stats["successful"] == 3
        assert stats["blacklisted"] == 0
        assert stats["notAttempted"] == 0
        assert stats["abandoned"] == 0
        assert response["logs"]["serp_raw"]["organic_results"][0]["link"] == links[0]
        assert len(response["logs"]["scraped_raw"]) == 3

    @respx.mock
    async def test_blacklisted_hosts_become_placeholders(self) -> None:
        set_blacklist(Blacklist(["yelp.com", "angi.com"]))
        links = [
            "https://alpha.test/",
            "https://www.yelp.com/biz/x",
            "https://beta.test/",
            "https://angi.com/companylist",
            "https://gamma.test/",
        ]
        _mock_serp(*links)
        for link, title in [(links[0], "Alpha"), (links[2], "Beta"), (links[4], "Gamma")]:
            _mock_page(link, title)

        response = await run_batch("plumber", "Bend, OR")

        results = response["results"]
        assert [r["rank"] for r in results] == [1, 2, 3, 4, 5]
        placeholders = [r for r in results if r["isBlacklisted"]]
        assert [r["rank"] for r in placeholders] == [2, 4]
        assert placeholders[0]["title"] == "yelp.com (Directory/Listicle)"
        assert placeholders[0]["metaDescription"] == PLACEHOLDER_DESCRIPTION
        assert placeholders[0]["wordCount"] == 0
        assert response["stats"]["scraped"] == 3
        assert response["stats"]["blacklisted"] == 2
        assert response["stats"]["successful"] == 3

    @respx.mock
    async def test_blocked_page_has_no_title(self) -> None:
        _mock_serp("https://alpha.test/", "https://guarded.test/")
        _mock_page("https://alpha.test/", "Alpha")
        guarded = respx.get("https://guarded.test/").mock(
            return_value=httpx.Response(403, html="<title>Access Denied</title>Incapsula incident ID")
        )

        response = await run_batch("plumber", "Bend, OR")

        row = response["results"][1]
        assert row["status"] == "blocked"
        assert row["title"] is None
        assert row["error"] == "Blocked by site (HTTP 403)"
        # two identities on the fast tier, then both again on the slow tier
        assert guarded.call_count == 4
        assert response["stats"]["blocked"] == 1

    @respx.mock
    async def test_unreachable_page_is_failed_row(self) -> None:
        _mock_serp("https://down.test/")
        respx.get("https://down.test/").mock(side_effect=httpx.ConnectError("refused"))

        response = await run_batch("plumber", "Bend, OR")

        row = response["results"][0]
        assert row["status"] == "failed"
        assert row["error"].startswith("fetch failed:")
        assert row["errorKind"] == "transport"
        assert response["stats"]["failed"] == 1

    @respx.mock
    async def test_upstream_failure_raises(self) -> None:
        respx.get(host="serpapi.test", path="/search.json").mock(return_value=httpx.Response(503))
        with pytest.raises(UpstreamProviderError):
            await run_batch("plumber", "Bend, OR")

    async def test_missing_key_raises_configuration_error(self, scout_settings) -> None:
        scout_settings.serpapi_key = ""
        with pytest.raises(ConfigurationError):
            await run_batch("plumber", "Bend, OR")


class TestStreamEvents:
    @respx.mock
    async def test_placeholders_first_then_results_then_done(self) -> None:
        set_blacklist(Blacklist(["yelp.com"]))
        _mock_serp("https://alpha.test/", "https://www.yelp.com/x")
        _mock_page("https://alpha.test/", "Alpha")

        events = [pair async for pair in stream_events("plumber", "Bend, OR", keepalive_interval=5)]

        names = [name for name, _ in events]
        assert names == ["result", "result", "done"]
        assert events[0][1]["isBlacklisted"] is True
        assert events[1][1]["title"] == "Alpha"
        assert events[2][1]["total"] == 2
        assert events[2][1]["blacklisted"] == 1

    @respx.mock
    async def test_upstream_failure_is_single_error_event(self) -> None:
        respx.get(host="serpapi.test", path="/search.json").mock(return_value=httpx.Response(500))

        events = [pair async for pair in stream_events("plumber", "Bend, OR")]

        assert len(events) == 1
        assert events[0][0] == "error"
        assert "HTTP 500" in events[0][1]["error"]

    @respx.mock
    async def test_keepalive_while_pool_is_idle(self, monkeypatch) -> None:
        _mock_serp("https://slow.test/")

        async def slow_fetch(url, timeouts=None, *, client=None, backoff=None):
            await asyncio.sleep(0.3)
            return Success(
                final_url=url,
                response_time_ms=300,
                title_raw="Slow",
                meta_description_raw=None,
                h1_raw=None,
                word_count=1,
            )

        monkeypatch.setattr(pipeline, "fetch_page", slow_fetch)

        events = [pair async for pair in stream_events("plumber", "Bend, OR", keepalive_interval=0.05)]

        names = [name for name, _ in events]
        assert KEEPALIVE in names
        assert names[-2:] == ["result", "done"]


class TestRetryOne:
    @respx.mock
    async def test_success_returns_cleaned_row(self) -> None:
        respx.get("https://alpha.test/").mock(return_value=httpx.Response(200, html=page_html("Alpha")))

        payload = await retry_one("https://alpha.test/")

        result = payload["result"]
        assert result["title"] == "Alpha"
        assert result["brand"] == "alpha.test"
        assert result["rank"] is None
        assert result["error"] is None

    @respx.mock
    async def test_failure_reports_error(self) -> None:
        respx.get("https://down.test/").mock(side_effect=httpx.ConnectError("refused"))

        payload = await retry_one("https://down.test/")

        assert payload == {
            "result": {
                "finalUrl": "https://down.test/",
                "error": payload["result"]["error"],
                "errorKind": "transport",
            }
        }
        assert payload["result"]["error"].startswith("fetch failed:")
