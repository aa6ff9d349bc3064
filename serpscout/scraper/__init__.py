"""Scraper package: fetch, block detection, extraction and host filtering."""

from serpscout.scraper.blacklist import Blacklist, is_blacklisted
from serpscout.scraper.extractor import PageSignals, extract
from serpscout.scraper.fetcher import FetchTimeouts, detect_block, fetch_page
from serpscout.scraper.models import (
    Blocked,
    CleanedResult,
    Failed,
    FetchOutcome,
    FetchRequest,
    Success,
)

__all__ = [
    "Blacklist",
    "Blocked",
    "CleanedResult",
    "Failed",
    "FetchOutcome",
    "FetchRequest",
    "FetchTimeouts",
    "PageSignals",
    "Success",
    "detect_block",
    "extract",
    "fetch_page",
    "is_blacklisted",
]
