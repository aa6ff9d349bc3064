"""Small text helpers shared by the extractor and the result emitter."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

_ENTITY_RE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z]+);")
_NAMED_ENTITIES = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
}
_LINE_BREAKS_RE = re.compile(r"[\r\n]+")
_WWW_RE = re.compile(r"^www\.", re.IGNORECASE)

ELLIPSIS = "…"


def _replace_entity(match: re.Match[str]) -> str:
    entity = match.group(1)
    if entity[0] == "#":
        if entity[1] in "xX":
            code = int(entity[2:], 16)
        else:
            code = int(entity[1:])
        # Out-of-range and surrogate code points are left as written.
        if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            return match.group(0)
        return chr(code)
    return _NAMED_ENTITIES.get(entity.lower(), match.group(0))


def decode_entities(text: Optional[str]) -> str:
    """Decode numeric references and the six common named entities.

    Decoding is a single pass, so ``&amp;lt;`` becomes ``&lt;`` and not ``<``.
    Unknown named entities pass through unchanged.
    """
    if not text:
        return ""
    return _ENTITY_RE.sub(_replace_entity, text)


def clean_text(text: Optional[str], max_len: Optional[int] = None) -> str:
    """Collapse line breaks, trim, and truncate to *max_len* with an ellipsis.

    A truncated result is ``max_len - 1`` characters of the trimmed input
    (trimmed again) plus ``…``, so it never exceeds *max_len*.  A *max_len*
    below 1 leaves no room for anything and yields ``""``.
    """
    if not text:
        return ""
    t = _LINE_BREAKS_RE.sub(" ", text).strip()
    if max_len is not None and max_len < 1:
        return ""
    if max_len is not None and len(t) > max_len:
        return t[: max_len - 1].strip() + ELLIPSIS
    return t


def hostname_of(url: Optional[str]) -> Optional[str]:
    """Return the lower-cased hostname of *url*, or ``None`` if unparseable."""
    if not url:
        return None
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def domain_from_url(url: str = "") -> str:
    """Hostname of *url* without a leading ``www.``; *url* itself if unparseable."""
    host = hostname_of(url)
    if not host:
        return url
    return _WWW_RE.sub("", host)
