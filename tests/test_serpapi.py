"""Tests for the SerpAPI provider client."""

from __future__ import annotations

import httpx
import pytest
import respx

from serpscout.errors import ConfigurationError, UpstreamProviderError
from serpscout.providers.serpapi import SerpApiClient, organic_entries
from tests.conftest import serp_payload


def _search_route():
    return respx.get(host="serpapi.test", path="/search.json")


class TestOrganicEntries:
    def test_keeps_order_and_source(self) -> None:
        payload = serp_payload(
            "https://a.test/", "https://b.test/",
            sources={"https://a.test/": "Alpha Plumbing"},
        )
        assert organic_entries(payload) == [
            {"link": "https://a.test/", "source": "Alpha Plumbing"},
            {"link": "https://b.test/", "source": None},
        ]

    def test_drops_entries_without_link(self) -> None:
        payload = {"organic_results": [{"title": "no link"}, {"link": 42}, {"link": "https://c.test/"}]}
        assert [e["link"] for e in organic_entries(payload)] == ["https://c.test/"]

    def test_respects_limit(self) -> None:
        payload = serp_payload(*(f"https://s{i}.test/" for i in range(30)))
        assert len(organic_entries(payload, limit=20)) == 20

    def test_missing_results_is_empty(self) -> None:
        assert organic_entries({}) == []

    def test_malformed_results_raise(self) -> None:
        with pytest.raises(UpstreamProviderError):
            organic_entries({"organic_results": "nope"})


class TestSearch:
    def test_missing_key_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            SerpApiClient("")

    @respx.mock
    async def test_sends_query_and_key(self) -> None:
        route = _search_route().mock(return_value=httpx.Response(200, json=serp_payload("https://a.test/")))

        payload = await SerpApiClient.from_settings().search("plumber", "Bend, OR")

        assert payload["organic_results"][0]["link"] == "https://a.test/"
        params = route.calls.last.request.url.params
        assert params["q"] == "plumber"
        assert params["location"] == "Bend, OR"
        assert params["engine"] == "google"
        assert params["api_key"] == "test-key"

    @respx.mock
    async def test_http_error_status(self) -> None:
        _search_route().mock(return_value=httpx.Response(500, text="boom"))
        with pytest.raises(UpstreamProviderError, match="HTTP 500"):
            await SerpApiClient.from_settings().search("plumber", "Bend, OR")

    @respx.mock
    async def test_transport_error(self) -> None:
        _search_route().mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(UpstreamProviderError, match="SerpAPI fetch failed"):
            await SerpApiClient.from_settings().search("plumber", "Bend, OR")

    @respx.mock
    async def test_error_field(self) -> None:
        _search_route().mock(return_value=httpx.Response(200, json={"error": "Invalid API key."}))
        with pytest.raises(UpstreamProviderError, match="Invalid API key"):
            await SerpApiClient.from_settings().search("plumber", "Bend, OR")

    @respx.mock
    async def test_invalid_json(self) -> None:
        _search_route().mock(return_value=httpx.Response(200, text="<html>not json</html>"))
        with pytest.raises(UpstreamProviderError, match="invalid JSON"):
            await SerpApiClient.from_settings().search("plumber", "Bend, OR")

    @respx.mock
    async def test_non_object_payload(self) -> None:
        _search_route().mock(return_value=httpx.Response(200, json=["a", "b"]))
        with pytest.raises(UpstreamProviderError, match="malformed"):
            await SerpApiClient.from_settings().search("plumber", "Bend, OR")


class TestLocations:
    @respx.mock
    async def test_returns_raw_response(self) -> None:
        body = [{"name": "Bend", "canonical_name": "Bend,Oregon,United States"}]
        route = respx.get(host="serpapi.test", path="/locations.json").mock(
            return_value=httpx.Response(200, json=body)
        )

        response = await SerpApiClient.from_settings().locations("Ben")

        assert response.status_code == 200
        assert response.json() == body
        assert route.calls.last.request.url.params["q"] == "Ben"
