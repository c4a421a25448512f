"""
Command line entry point for the ROI payout job.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from roi_payouts.core.config import Settings
from roi_payouts.core.exceptions import ConfigurationError
from roi_payouts.core.logging import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)
app = typer.Typer(help="Daily ROI payout job")


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)


def _build_store(config: Settings):
    from roi_payouts.services.payout_job import build_record_store

    try:
        return build_record_store(config)
    except ConfigurationError as e:
        logger.error("Fatal configuration error", error=e.message, details=e.details)
        console.print(f"[red]Configuration error:[/red] {e.message}")
        raise typer.Exit(code=1)


@app.command()
def run():
    """Run one payout pass and exit (for an external daily cron)."""
    from roi_payouts.services.payouts.core import PayoutCycleProcessor

    config = _load_settings()
    setup_logging(config)
    store = _build_store(config)

    async def _run():
        async with store:
            processor = PayoutCycleProcessor(store, config)
            return await processor.run()

    try:
        stats = asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]Payout run failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print(
        f"✅ Payout run complete: {stats.processed} processed, "
        f"{stats.skipped} skipped, {stats.failed} failed, "
        f"{stats.total_paid:.2f} paid"
    )


@app.command()
def schedule(
    run_now: bool = typer.Option(False, "--run-now", help="Run once immediately before waiting for the daily slot"),
):
    """Keep running and trigger the payout pass once a day."""
    from roi_payouts.scheduler.main import main

    config = _load_settings()
    setup_logging(config)
    # Fail fast on bad credentials before the first slot
    _build_store(config)

    asyncio.run(main(config, run_now=run_now))


@app.command("init-db")
def init_db():
    """Create the document table."""
    config = _load_settings()
    setup_logging(config)
    store = _build_store(config)

    async def _init():
        async with store:
            await store.database.create_tables()

    asyncio.run(_init())
    console.print("✅ Database initialized successfully!")


@app.command()
def seed(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file: {collection: {id: document}}"),
):
    """Load documents from a JSON file (creates or replaces them)."""
    config = _load_settings()
    setup_logging(config)
    store = _build_store(config)

    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON in {path}:[/red] {e}")
        raise typer.Exit(code=1)

    if not isinstance(payload, dict) or not all(isinstance(v, dict) for v in payload.values()):
        console.print("[red]Expected an object of collections mapping ids to documents[/red]")
        raise typer.Exit(code=1)

    async def _seed() -> int:
        count = 0
        async with store:
            await store.database.create_tables()
            for collection, documents in payload.items():
                for doc_id, data in documents.items():
                    await store.put(collection, str(doc_id), data)
                    count += 1
        return count

    count = asyncio.run(_seed())
    console.print(f"✅ Seeded {count} documents")


@app.command()
def show(
    collection: Optional[str] = typer.Argument(None, help="Collection name (investments collection by default)"),
):
    """Print every document of a collection."""
    config = _load_settings()
    setup_logging(config)
    store = _build_store(config)
    collection = collection or config.investments_collection

    async def _fetch():
        async with store:
            return await store.fetch_all(collection)

    documents = asyncio.run(_fetch())

    table = Table(title=f"{collection} ({len(documents)})")
    table.add_column("ID", style="cyan")
    table.add_column("Document")
    for doc_id, data in documents:
        table.add_row(doc_id, json.dumps(data, sort_keys=True, default=str))
    console.print(table)


if __name__ == "__main__":
    app()
