"""Centralised settings for the serp-scout service.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Every timing and sizing constant of the scrape engine lives here rather than
at the call site: the policy (two-tier timeouts, bounded pool, single
block-retry, fail-open blacklist) is fixed, the numbers are not.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Load .env from the project root (one level up from this package)
load_dotenv(_PROJECT_ROOT / ".env", override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Upstream search-result provider (SerpAPI)
    # ------------------------------------------------------------------
    serpapi_key: str = field(
        default_factory=lambda: os.environ.get("SERPAPI_KEY", "")
    )
    serpapi_base_url: str = field(
        default_factory=lambda: os.environ.get("SERPAPI_BASE_URL", "https://serpapi.com")
    )
    serpapi_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SERPAPI_TIMEOUT", "15.0"))
    )
    serp_max_results: int = field(
        default_factory=lambda: int(os.environ.get("SERP_MAX_RESULTS", "20"))
    )
    # "source" → provider's source label (domain fallback); "domain" → URL host
    brand_source: str = field(
        default_factory=lambda: os.environ.get("BRAND_SOURCE", "source")
    )

    # ------------------------------------------------------------------
    # Blacklist
    # ------------------------------------------------------------------
    blacklist_path: Path = field(
        default_factory=lambda: Path(
            os.environ.get("BLACKLIST_PATH", _PROJECT_ROOT / "blacklist.txt")
        )
    )

    # ------------------------------------------------------------------
    # Scrape pool
    # ------------------------------------------------------------------
    pool_size: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_POOL_SIZE", "4"))
    )
    # Admission stops at global_deadline; the run itself closes no later than
    # global_deadline + drain_grace (59 s with the defaults).
    global_deadline: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_DEADLINE", "45.0"))
    )
    drain_grace: float = field(
        default_factory=lambda: float(os.environ.get("SCRAPE_DRAIN_GRACE", "14.0"))
    )

    # ------------------------------------------------------------------
    # Fetcher timeouts (seconds)
    # ------------------------------------------------------------------
    fast_fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FAST_FETCH_TIMEOUT", "6.0"))
    )
    fast_body_timeout: float = field(
        default_factory=lambda: float(os.environ.get("FAST_BODY_TIMEOUT", "3.0"))
    )
    slow_fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SLOW_FETCH_TIMEOUT", "10.0"))
    )
    slow_body_timeout: float = field(
        default_factory=lambda: float(os.environ.get("SLOW_BODY_TIMEOUT", "5.0"))
    )
    retry_fetch_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_FETCH_TIMEOUT", "30.0"))
    )
    retry_body_timeout: float = field(
        default_factory=lambda: float(os.environ.get("RETRY_BODY_TIMEOUT", "8.0"))
    )
    block_retry_backoff: float = field(
        default_factory=lambda: float(os.environ.get("BLOCK_RETRY_BACKOFF", "0.15"))
    )

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------
    keepalive_interval: float = field(
        default_factory=lambda: float(os.environ.get("KEEPALIVE_INTERVAL", "10.0"))
    )

    # ------------------------------------------------------------------
    # Display limits for cleaned text
    # ------------------------------------------------------------------
    title_max_len: int = field(
        default_factory=lambda: int(os.environ.get("TITLE_MAX_LEN", "120"))
    )
    meta_max_len: int = field(
        default_factory=lambda: int(os.environ.get("META_MAX_LEN", "160"))
    )
    h1_max_len: int = field(
        default_factory=lambda: int(os.environ.get("H1_MAX_LEN", "100"))
    )

    # ------------------------------------------------------------------
    # Logging / CLI workspace
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SCOUT_WORKSPACE", Path.home() / ".serpscout")
        )
    )

    @property
    def last_results_path(self) -> Path:
        """Absolute path to the CLI's cached copy of the last batch response."""
        return self.workspace_dir / "last_results.json"

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from serpscout.config import settings
settings = Settings()
