from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Awaitable, Optional

import typer

from bizmap.capture.flow import AdminCaptureFlow
from bizmap.config import get_settings
from bizmap.directory.state import DirectoryState
from bizmap.domain.models import ALL_CATEGORIES, PowerType
from bizmap.errors import ConfigMissing
from bizmap.infrastructure.db_factory import describe_store
from bizmap.infrastructure.record_store import store_from_settings
from bizmap.mapview.adapter import MapViewAdapter
from bizmap.mapview.engine import GeoJsonEngine
from bizmap.mapview.page import render_map_page
from bizmap.mapview.view import MapOptions, ViewState
from bizmap.reporter import print_categories, print_directory
from bizmap.utils.logging import configure_logging

app = typer.Typer(help="bizmap: map-based business directory.")

VIA_RELAY = typer.Option(
    False,
    "--via-relay",
    help="Go through the relay (RELAY_URL) instead of the datastore directly.",
)


def _run(coro: Awaitable[Any]) -> Any:
    """Run a coroutine, turning missing configuration into exit code 2."""
    try:
        return asyncio.run(coro)
    except ConfigMissing as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


async def _load_directory(via_relay: bool) -> DirectoryState:
    store = store_from_settings(get_settings(), via_relay=via_relay)
    async with store:
        directory = DirectoryState(store)
        await directory.refresh()
    return directory


@app.command()
def info() -> None:
    """
    Show effective configuration values (secrets omitted).
    """
    settings = get_settings()
    typer.echo(
        f"store={describe_store(settings)} table={settings.store_table} "
        f"key={'set' if settings.store_key else 'MISSING'} | "
        f"relay={settings.relay_url or '-'} listen={settings.relay_host}:{settings.relay_port} | "
        f"map token={'set' if settings.map_access_token else 'MISSING'} "
        f"view={ViewState.from_settings(settings).describe()}"
    )


@app.command()
def serve() -> None:
    """
    Run the relay service.
    """
    import uvicorn

    from bizmap.relay.app import create_app

    _setup()
    settings = get_settings()
    try:
        relay = create_app(settings)
    except ConfigMissing as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    uvicorn.run(relay, host=settings.relay_host, port=settings.relay_port, log_config=None)


@app.command("list")
def list_businesses(
    search: str = typer.Option("", "--search", "-s", help="Substring of name or category."),
    category: str = typer.Option(ALL_CATEGORIES, "--category", "-c", help="Exact category or 'all'."),
    via_relay: bool = VIA_RELAY,
) -> None:
    """
    Load the directory and print the matching businesses.
    """
    _setup()
    directory = _run(_load_directory(via_relay))
    if directory.last_error:
        typer.echo(f"Store unavailable: {directory.last_error}", err=True)
    print_directory(directory.filtered(search, category), stats=directory.stats())


@app.command()
def categories(via_relay: bool = VIA_RELAY) -> None:
    """
    Print the distinct categories, "all" first.
    """
    _setup()
    directory = _run(_load_directory(via_relay))
    print_categories(directory.distinct_categories())


async def _add(
    name: str,
    lng: float,
    lat: float,
    category: str,
    power_type: PowerType,
    card: bool,
    photo_url: Optional[str],
    via_relay: bool,
) -> AdminCaptureFlow:
    settings = get_settings()
    store = store_from_settings(settings, via_relay=via_relay)
    async with store:
        directory = DirectoryState(store)
        engine = GeoJsonEngine()
        adapter = MapViewAdapter(engine, ViewState.from_settings(settings))
        adapter.mount()
        flow = AdminCaptureFlow(store=store, directory=directory, is_admin=True)
        flow.bind(adapter)
        try:
            flow.open_panel()
            engine.emit_click(lng, lat)
            flow.update_form(
                name=name,
                category=category,
                power_type=power_type,
                accepts_card_payment=card,
                photo_url=photo_url,
            )
            await flow.save()
        finally:
            flow.unbind()
            adapter.unmount()
    return flow


@app.command()
def add(
    name: str = typer.Option(..., "--name", "-n"),
    lng: float = typer.Option(..., "--lng"),
    lat: float = typer.Option(..., "--lat"),
    category: str = typer.Option("", "--category", "-c"),
    power_type: PowerType = typer.Option(PowerType.THREE_PHASE, "--power-type"),
    card: bool = typer.Option(False, "--card/--no-card"),
    photo_url: Optional[str] = typer.Option(None, "--photo-url"),
    via_relay: bool = VIA_RELAY,
) -> None:
    """
    Add a business at the given coordinates (runs the admin capture flow).
    """
    _setup()
    flow = _run(_add(name, lng, lat, category, power_type, card, photo_url, via_relay))
    if flow.last_created is None:
        typer.echo(f"Save failed: {flow.error}", err=True)
        raise typer.Exit(code=1)
    created = flow.last_created
    typer.echo(f"Created {created.id}: {created.name} ({created.category}) at {created.lng}, {created.lat}")
    typer.echo(f"Directory now holds {flow.directory.count()} businesses.")


@app.command()
def page(
    out: Path = typer.Option(Path("map.html"), "--out", "-o", help="Where to write the page."),
    admin: bool = typer.Option(False, "--admin", help="Include the admin capture panel."),
    via_relay: bool = VIA_RELAY,
) -> None:
    """
    Write the HTML map page with the current directory embedded.
    """
    _setup()
    settings = get_settings()
    try:
        settings.require_map()
    except ConfigMissing as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)

    directory = _run(_load_directory(via_relay))
    engine = GeoJsonEngine()
    adapter = MapViewAdapter(engine, ViewState.from_settings(settings))
    adapter.mount()
    adapter.render_markers(directory.records)
    html = render_map_page(
        features=engine.feature_collection(),
        categories=directory.distinct_categories(),
        access_token=settings.map_access_token,
        view=adapter.view,
        options=MapOptions.from_settings(settings),
        admin=admin,
        api_base=settings.relay_url or "",
    )
    adapter.unmount()
    out.write_text(html, encoding="utf-8")
    typer.echo(f"Wrote {out} ({directory.count()} businesses).")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
