"""SEO signal extraction: turns raw page markup into :class:`PageSignals`.

Pure pattern matching with no DOM and no JavaScript.  Missing fields come back as
``None``; malformed markup never raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from serpscout.scraper.text import decode_entities

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------
_TITLE_RE = re.compile(r"<title\b[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_H1_RE = re.compile(r"<h1\b[^>]*>(.*?)</h1\s*>", re.IGNORECASE | re.DOTALL)
_META_TAG_RE = re.compile(r"<meta\b[^>]*>", re.IGNORECASE)
_META_NAME_RE = re.compile(r"""\bname\s*=\s*(["'])\s*description\s*\1""", re.IGNORECASE)
_META_CONTENT_RE = re.compile(r"""\bcontent\s*=\s*(["'])(.*?)\1""", re.IGNORECASE | re.DOTALL)
_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"\w+")


@dataclass(frozen=True)
class PageSignals:
    title_raw: Optional[str]
    meta_description_raw: Optional[str]
    h1_raw: Optional[str]
    word_count: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _first_group(pattern: re.Pattern[str], markup: str) -> Optional[str]:
    """Return the trimmed first capture of *pattern*, or ``None`` if empty."""
    match = pattern.search(markup)
    if match:
        value = match.group(1).strip()
        if value:
            return value
    return None


def _extract_title(markup: str) -> Optional[str]:
    title = _first_group(_TITLE_RE, markup)
    return decode_entities(title) if title else None


def _extract_meta_description(markup: str) -> Optional[str]:
    """First ``<meta>`` tag with ``name="description"``, either attribute order."""
    for tag in _META_TAG_RE.finditer(markup):
        tag_text = tag.group(0)
        if not _META_NAME_RE.search(tag_text):
            continue
        content = _META_CONTENT_RE.search(tag_text)
        if content is None:
            continue
        value = content.group(2).strip()
        return decode_entities(value) if value else None
    return None


def _extract_h1(markup: str) -> Optional[str]:
    block = _first_group(_H1_RE, markup)
    if not block:
        return None
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", block)).strip()
    return decode_entities(text) or None


def _count_words(markup: str) -> int:
    text = _SCRIPT_STYLE_RE.sub(" ", markup)
    text = _WS_RE.sub(" ", _TAG_RE.sub(" ", text))
    return len(_WORD_RE.findall(text))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract(markup: Optional[str]) -> PageSignals:
    """Extract title, meta description, first ``<h1>`` and word count."""
    markup = markup or ""
    return PageSignals(
        title_raw=_extract_title(markup),
        meta_description_raw=_extract_meta_description(markup),
        h1_raw=_extract_h1(markup),
        word_count=_count_words(markup),
    )
