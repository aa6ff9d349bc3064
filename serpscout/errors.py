"""Error taxonomy.

Only :class:`UpstreamProviderError` and :class:`ConfigurationError` are fatal
for a whole request.  The per-item errors are raised inside the fetcher and
turned into ``Failed`` / ``Blocked`` outcomes before they reach the pool; the
``kind`` tag survives on the outcome as ``error_kind``.
"""

from __future__ import annotations


class ScoutError(Exception):
    """Base class for every error raised by serp-scout."""

    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UpstreamProviderError(ScoutError):
    """The ranked-list provider failed or returned a malformed payload."""

    kind = "upstream"


class BlockedError(ScoutError):
    """Bot-defense triggered on both the primary and the alternate identity."""

    kind = "blocked"


class FetchTimeoutError(ScoutError):
    """A fetch attempt exceeded its budget.

    ``phase`` is ``"fetch"`` when no response arrived in time and ``"body"``
    when the response arrived but its body could not be read in time.
    The fetcher copies it onto ``Failed.phase``.
    """

    kind = "timeout"

    def __init__(self, message: str, phase: str = "fetch") -> None:
        self.phase = phase
        super().__init__(message)


class TransportError(ScoutError):
    """DNS, connection, TLS or protocol failure."""

    kind = "transport"


class ConfigurationError(ScoutError):
    """A required server-side credential is missing."""

    kind = "configuration"
