"""Command line interface for the flatsatpcm.com unit watcher."""
from __future__ import annotations

import asyncio
import logging
import os
import time

import typer

from adapters.ntfy import NtfyNotifier
from crawl import run_once
from flats.browser import BrowserSession
from flats.config import load_config
from flats.discover import discover

app = typer.Typer(add_completion=False, help="Studio and 1BR availability watcher")
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
for noisy in ("httpx", "httpcore"):
    logging.getLogger(noisy).setLevel(logging.WARNING)


@app.command()
def run(
    ignore_database: bool = typer.Option(
        False, "--ignore-database", help="Notify for every unit found and skip the record store."
    ),
) -> None:
    """Scrape once, notify about new units and sync the database."""
    try:
        summary = asyncio.run(run_once(ignore_database=ignore_database))
    except Exception as exc:
        typer.echo(f"Run failed: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Run complete. {len(summary.found)} units found, {len(summary.new)} new.")


@app.command()
def watch(
    interval_hours: float = typer.Option(2.0, help="Hours between runs."),
    ignore_database: bool = typer.Option(False, "--ignore-database"),
) -> None:
    """Run the job on a fixed interval until interrupted."""
    typer.echo(f"Watching every {interval_hours:g}h")
    while True:
        try:
            asyncio.run(run_once(ignore_database=ignore_database))
        except Exception as exc:
            logging.getLogger(__name__).error("Scheduled run failed: %s", exc)
        time.sleep(interval_hours * 3600)


@app.command("test-notify")
def test_notify() -> None:
    """Send a test push through ntfy."""

    async def _send() -> bool:
        notifier = NtfyNotifier()
        try:
            return await notifier.send_test()
        finally:
            await notifier.close()

    ok = asyncio.run(_send())
    typer.echo(f"Test notification: {'PASS' if ok else 'FAIL'}")
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def check() -> None:
    """Run a fast canary: discover floorplans without extracting units."""
    config = load_config()
    typer.echo(f"Checking {config.index_url}")

    async def _discover():
        async with BrowserSession(config.browser) as session:
            page = await session.new_page()
            return await discover(page, config)

    candidates = asyncio.run(_discover())
    for candidate in candidates:
        typer.echo(f"  {candidate.bedroom_count}BR {candidate.title} -> {candidate.detail_url}")
    typer.echo(f"Discovery check: {'PASS' if candidates else 'FAIL'} ({len(candidates)} floorplans)")
    if not candidates:
        typer.echo("Card or price selectors in config/site.yml may be stale.")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
