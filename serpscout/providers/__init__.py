"""Upstream ranked-list providers."""

from serpscout.providers.serpapi import SerpApiClient, organic_entries

__all__ = ["SerpApiClient", "organic_entries"]
