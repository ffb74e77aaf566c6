"""
CLI: ``bandmate-ingest`` — submit ingestion tasks and check the broker.

Collaborators come from ``INGEST_COLLABORATORS_FACTORY``, the same way the
Celery worker is wired. Commands run until in-process work has drained, so
in fallback mode an artist submission blocks until every song is ingested.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from bandmate_ingest import api
from bandmate_ingest.core.errors import ConfigError
from bandmate_ingest.core.settings import IngestSettings, get_settings
from bandmate_ingest.execution.monitor import BrokerMonitor

app = typer.Typer(no_args_is_help=True)
console = Console()
err_console = Console(stderr=True)


async def _submit_and_drain(coro_factory) -> None:
    try:
        api.configure_from_settings()
    except ConfigError as exc:
        err_console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=2)
    await coro_factory()
    await api.shutdown()


@app.command("artist")
def artist(
    name: str = typer.Argument(..., help="Artist to discover recordings for"),
    submitter: str = typer.Option(..., "--submitter", "-s", help="Submitting user id"),
) -> None:
    """Discover an artist's recordings and ingest each of them.

    Example::

        bandmate-ingest artist "Test Artist" --submitter user-1
    """
    console.print(f"[bold green]Submitting artist ingest[/bold green] for {name!r}")
    asyncio.run(_submit_and_drain(lambda: api.submit_artist(name, submitter)))


@app.command("song")
def song(
    recording_id: str = typer.Argument(..., help="MusicBrainz recording id"),
    submitter: str = typer.Option(..., "--submitter", "-s", help="Submitting user id"),
    force: bool = typer.Option(False, "--force", help="Ingest even if an arrangement exists"),
) -> None:
    """Ingest a single recording."""
    console.print(f"[bold green]Submitting song ingest[/bold green] for {recording_id}")
    asyncio.run(_submit_and_drain(lambda: api.submit_song(recording_id, submitter, force=force)))


@app.command("probe")
def probe() -> None:
    """Report which execution mode this configuration would run in."""
    settings: IngestSettings = get_settings()
    monitor = BrokerMonitor(settings)
    monitor.start()
    if monitor.mode.is_broker:
        monitor.probe()
    if monitor.mode.is_broker:
        console.print("[green]broker[/green] reachable; tasks will be enqueued")
    else:
        reason = monitor.mode.reason or "no broker configured"
        console.print(f"[yellow]fallback[/yellow] ({reason}); tasks run in-process")
        monitor.close()
        raise typer.Exit(code=1)
    monitor.close()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
