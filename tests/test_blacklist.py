"""Tests for the host deny-list and its process-wide cache."""

from __future__ import annotations

from pathlib import Path

import pytest

from serpscout.config import settings
from serpscout.scraper import blacklist as blacklist_mod
from serpscout.scraper.blacklist import Blacklist, get_blacklist, is_blacklisted, set_blacklist


@pytest.fixture()
def deny() -> Blacklist:
    return Blacklist(["yelp.com", "Reddit.com", "bbb.org"])


class TestIsBlacklisted:
    @pytest.mark.parametrize(
        "host",
        ["yelp.com", "www.yelp.com", "YELP.COM", "m.yelp.com", "old.reddit.com", "a.b.bbb.org"],
    )
    def test_matches_exact_and_subdomains(self, deny: Blacklist, host: str) -> None:
        assert deny.is_blacklisted(host) is True

    @pytest.mark.parametrize(
        "host",
        ["notyelp.com", "yelp.com.evil.net", "reddit.co", "example.com", "org"],
    )
    def test_does_not_match_lookalikes(self, deny: Blacklist, host: str) -> None:
        assert deny.is_blacklisted(host) is False

    @pytest.mark.parametrize("host", [None, "", "   ", 42])
    def test_malformed_input_fails_open(self, deny: Blacklist, host) -> None:
        assert deny.is_blacklisted(host) is False

    def test_only_leading_www_is_stripped(self) -> None:
        deny = Blacklist(["www2.example.com"])
        assert deny.is_blacklisted("www2.example.com") is True
        assert deny.is_blacklisted("example.com") is False

    def test_contains_operator(self, deny: Blacklist) -> None:
        assert "www.bbb.org" in deny
        assert "example.com" not in deny


class TestFromFile:
    def test_skips_blank_lines_and_comments(self, tmp_path: Path) -> None:
        path = tmp_path / "blacklist.txt"
        path.write_text("# directories\n\nYelp.com\r\n  angi.com  \n# reddit.com\n", encoding="utf-8")
        deny = Blacklist.from_file(path)
        assert len(deny) == 2
        assert deny.is_blacklisted("yelp.com")
        assert deny.is_blacklisted("angi.com")
        assert not deny.is_blacklisted("reddit.com")


class TestCache:
    def test_loads_once_from_settings_path(self, tmp_path: Path, monkeypatch) -> None:
        path = tmp_path / "blacklist.txt"
        path.write_text("thumbtack.com\n", encoding="utf-8")
        monkeypatch.setattr(settings, "blacklist_path", path)
        set_blacklist(None)

        first = get_blacklist()
        path.write_text("angi.com\n", encoding="utf-8")
        assert get_blacklist() is first
        assert is_blacklisted("www.thumbtack.com") is True
        assert is_blacklisted("angi.com") is False

    def test_missing_file_degrades_to_empty(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setattr(settings, "blacklist_path", tmp_path / "missing.txt")
        set_blacklist(None)

        assert len(get_blacklist()) == 0
        assert is_blacklisted("yelp.com") is False

    def test_bundled_blacklist_parses(self) -> None:
        bundled = Path(blacklist_mod.__file__).resolve().parents[2] / "blacklist.txt"
        deny = Blacklist.from_file(bundled)
        assert deny.is_blacklisted("www.yelp.com")
