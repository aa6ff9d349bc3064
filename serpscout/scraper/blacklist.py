"""Host deny-list for directory / listicle sites.

The list is loaded once per process from ``settings.blacklist_path`` and then
only read.  Two concurrent first loads are harmless: both produce the same
set and whichever assignment lands last is kept.  Any load failure is logged
and degrades to an empty list, so a missing file never blocks a request.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from serpscout.config import settings

logger = logging.getLogger(__name__)

_WWW_RE = re.compile(r"^www\.")


def normalise_host(hostname: str) -> str:
    """Lower-case *hostname* and drop a leading ``www.``."""
    return _WWW_RE.sub("", hostname.strip().lower())


class Blacklist:
    """Immutable set of banned hostnames with subdomain matching."""

    def __init__(self, entries: Iterable[str] = ()) -> None:
        self._entries = frozenset(
            e.strip().lower() for e in entries if e and e.strip()
        )

    @classmethod
    def from_file(cls, path: Path) -> "Blacklist":
        """Parse one hostname per line; blank lines and ``#`` comments are skipped."""
        raw = Path(path).read_text(encoding="utf-8")
        lines = (line.strip().lower() for line in raw.splitlines())
        return cls(line for line in lines if line and not line.startswith("#"))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, hostname: object) -> bool:
        return isinstance(hostname, str) and self.is_blacklisted(hostname)

    def is_blacklisted(self, hostname: Optional[str]) -> bool:
        """``True`` if *hostname* equals an entry or is a subdomain of one.

        ``old.reddit.com`` matches ``reddit.com``; ``notreddit.com`` does not.
        Empty or non-string input is never blacklisted.
        """
        if not hostname or not isinstance(hostname, str):
            return False
        host = normalise_host(hostname)
        if not host:
            return False
        if host in self._entries:
            return True
        # Walk parent domains: a.b.c → b.c → c
        labels = host.split(".")
        return any(".".join(labels[i:]) in self._entries for i in range(1, len(labels)))


# ---------------------------------------------------------------------------
# Process-scoped cache
# ---------------------------------------------------------------------------
_cached: Optional[Blacklist] = None


def load_blacklist(path: Optional[Path] = None) -> Blacklist:
    """Read the deny-list from disk, falling back to an empty list on error."""
    path = Path(path or settings.blacklist_path)
    try:
        blacklist = Blacklist.from_file(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("[BLACKLIST] could not load %s: %s; continuing with an empty list", path, exc)
        return Blacklist()
    logger.info("[BLACKLIST] loaded %d host(s) from %s", len(blacklist), path)
    return blacklist


def get_blacklist() -> Blacklist:
    """Return the cached deny-list, loading it on first use."""
    global _cached
    if _cached is None:
        _cached = load_blacklist()
    return _cached


def set_blacklist(blacklist: Optional[Blacklist]) -> None:
    """Replace (or with ``None``, drop) the cached deny-list."""
    global _cached
    _cached = blacklist


def is_blacklisted(hostname: Optional[str]) -> bool:
    """Check *hostname* against the process-wide deny-list."""
    return get_blacklist().is_blacklisted(hostname)
