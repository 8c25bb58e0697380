from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .errors import ConfigError


app = typer.Typer(add_completion=False)
console = Console(stderr=True)

logger = logging.getLogger("conciergewatch")


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # urllib3 is chatty at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@app.command()
def run(
    env_file: Optional[Path] = typer.Option(None, help="KEY=VALUE file loaded before reading the environment."),
) -> None:
    """Check the page once, post new requests, update the ledger."""
    from .alerts.discord import DiscordWebhook
    from .config import load_config
    from .page_fetch import fetch_records
    from .watch import run_once

    try:
        cfg = load_config(env_file)
    except ConfigError as e:
        configure_logging()
        logger.error("%s", e)
        raise typer.Exit(1)

    configure_logging(cfg.debug)
    try:
        run_once(
            cfg,
            fetch=fetch_records,
            sink=DiscordWebhook(cfg.webhook_url, timeout_s=cfg.http_timeout_s),
        )
    except Exception:
        logger.exception("Fatal error")
        raise typer.Exit(1)


@app.command()
def preview(
    env_file: Optional[Path] = typer.Option(None, help="KEY=VALUE file loaded before reading the environment."),
) -> None:
    """Fetch and print parsed requests. Does not post or touch the ledger."""
    from .config import load_config
    from .fingerprint import primary_fingerprint
    from .page_fetch import fetch_records

    cfg = load_config(env_file, require_webhook=False)
    configure_logging(cfg.debug)
    records = fetch_records(cfg)

    table = Table(title=f"{len(records)} request(s) on {cfg.page_url}", expand=True)
    table.add_column("Fingerprint", no_wrap=True)
    table.add_column("Price")
    table.add_column("User")
    table.add_column("When")
    table.add_column("Description")
    table.add_column("Link")
    for r in records:
        table.add_row(primary_fingerprint(r), r.price, r.user, r.when, r.description[:80], r.link)
    Console().print(table)


if __name__ == "__main__":
    app()
