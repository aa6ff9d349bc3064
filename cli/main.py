"""serp-scout CLI entry-point for scans outside the HTTP server.

Usage:
    python cli/main.py --help

Commands:
    scan             → batch scan, printed as a table (cached for ``last``)
    stream           → streamed scan, rows printed as they complete
    retry            → re-fetch one URL with generous timeouts
    blacklist-check  → test a hostname against the deny-list
    last             → re-print the cached result of the last ``scan``
    serve            → run the FastAPI app under uvicorn
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from serpscout.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import Any, Optional

import typer

from cli.cache import load_last_results, save_last_results
from serpscout.engine.pipeline import KEEPALIVE, retry_one, run_batch, stream_events
from serpscout.errors import ConfigurationError, UpstreamProviderError
from serpscout.log import configure_logging
from serpscout.scraper.blacklist import get_blacklist, normalise_host

app = typer.Typer(
    name="serpscout",
    help="Competitor SERP scanner.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    configure_logging(log_level)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _format_row(row: dict[str, Any]) -> str:
    rank = row.get("rank")
    label = f"#{rank:<2}" if rank is not None else "#- "
    brand = row.get("brand") or ""
    if row.get("isBlacklisted"):
        return f"  {label} {brand:<28} [blacklisted]"
    if row.get("error"):
        return f"  {label} {brand:<28} ✗ {row['error']}"
    return (
        f"  {label} {brand:<28} {row.get('responseTimeMs', 0):>6}ms "
        f"{row.get('wordCount', 0):>6}w  {row.get('title') or ''}"
    )


def _print_response(response: dict[str, Any]) -> None:
    typer.echo(f"🔍 {response.get('query')!r} in {response.get('location')!r}")
    for row in response.get("results", []):
        typer.echo(_format_row(row))
    stats = response.get("stats") or {}
    if stats:
        typer.echo(
            f"✅ {stats.get('successful', 0)}/{stats.get('scraped', 0)} scraped, "
            f"{stats.get('blacklisted', 0)} blacklisted, "
            f"{stats.get('notAttempted', 0)} not attempted "
            f"in {stats.get('totalMs', 0)}ms"
        )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command("scan")
def scan(
    q: str = typer.Option(..., "--q", help="Search keyword."),
    location: str = typer.Option(..., "--location", help="Search location, e.g. 'Bend, OR'."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response as JSON."),
    save: bool = typer.Option(True, "--save/--no-save", help="Cache the response for `last`."),
) -> None:
    """Scan every ranked competitor and print the rows by rank."""
    try:
        response = asyncio.run(run_batch(q, location))
    except (ConfigurationError, UpstreamProviderError) as exc:
        typer.echo(f"[scan] {exc.message}", err=True)
        raise typer.Exit(1)

    if save:
        save_last_results(response)
    if as_json:
        typer.echo(json.dumps(response, indent=2))
    else:
        _print_response(response)


@app.command("stream")
def stream(
    q: str = typer.Option(..., "--q", help="Search keyword."),
    location: str = typer.Option(..., "--location", help="Search location."),
) -> None:
    """Print each row the moment it completes, then the summary."""

    async def _consume() -> int:
        async for event, data in stream_events(q, location):
            if event == KEEPALIVE:
                continue
            if event == "result":
                typer.echo(_format_row(data))
            elif event == "done":
                typer.echo(f"[done] {json.dumps(data)}")
            elif event == "error":
                typer.echo(f"[error] {data['error']}", err=True)
                return 1
        return 0

    try:
        code = asyncio.run(_consume())
    except ConfigurationError as exc:
        typer.echo(f"[stream] {exc.message}", err=True)
        raise typer.Exit(1)
    if code:
        raise typer.Exit(code)


@app.command("retry")
def retry(url: str = typer.Argument(..., help="Page to re-fetch.")) -> None:
    """Re-fetch a single URL with the generous retry timeouts."""
    result = asyncio.run(retry_one(url))["result"]
    if result.get("error"):
        typer.echo(f"[retry] ✗ {result['finalUrl']}: {result['error']}")
        raise typer.Exit(1)
    typer.echo(_format_row(result))


@app.command("blacklist-check")
def blacklist_check(hostname: str = typer.Argument(..., help="Hostname to test.")) -> None:
    """Report whether *hostname* is excluded by the deny-list."""
    if get_blacklist().is_blacklisted(hostname):
        typer.echo(f"[blacklist] {normalise_host(hostname)} is blacklisted")
    else:
        typer.echo(f"[blacklist] {normalise_host(hostname)} is allowed")


@app.command("last")
def last() -> None:
    """Re-print the response cached by the last `scan`."""
    response = load_last_results()
    if response is None:
        typer.echo("[last] No cached results. Run `scan` first.")
        raise typer.Exit(1)
    _print_response(response)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address."),
    port: int = typer.Option(8000, help="Bind port."),
    reload: bool = typer.Option(False, help="Auto-reload on code changes."),
) -> None:
    """Run the HTTP API under uvicorn."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run("serpscout.api.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
