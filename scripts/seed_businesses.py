"""
Sample data seeding script for bizmap.

Generates deterministic pseudo-random businesses scattered around the default
map center and inserts them one at a time through the record store client,
so every row goes through the same path as an admin submission.
"""

from __future__ import annotations

import asyncio
import json
import random
import sys
import time
from pathlib import Path

import typer

from bizmap.config import get_settings
from bizmap.domain.models import NewBusinessRecord, PowerType
from bizmap.infrastructure.record_store import PostgresRecordStore

app = typer.Typer(help="Generate sample businesses and insert them into the datastore.")

CATEGORIES = ["Market", "Restaurant", "Pharmacy", "Salon", "Hardware", "Tailor", "Bar"]
NAME_PARTS = ["Ana's", "Joe", "Mama", "Kroo Town", "Lumley", "Aberdeen", "Wilberforce", "Congo Cross"]
NAME_SUFFIXES = ["Shop", "Bar", "Store", "Kitchen", "Corner", "Depot", "Services"]


def _generate_records(
    rows: int,
    seed: int,
    center_lng: float,
    center_lat: float,
    spread: float = 0.03,
) -> list[NewBusinessRecord]:
    rng = random.Random(seed)
    records = []
    for _ in range(rows):
        records.append(
            NewBusinessRecord(
                name=f"{rng.choice(NAME_PARTS)} {rng.choice(NAME_SUFFIXES)}",
                category=rng.choice(CATEGORIES),
                lng=round(center_lng + rng.uniform(-spread, spread), 6),
                lat=round(center_lat + rng.uniform(-spread, spread), 6),
                power_type=rng.choice(list(PowerType)),
                accepts_card_payment=rng.random() < 0.4,
            )
        )
    return records


async def _insert_all(records: list[NewBusinessRecord], dsn: str | None) -> int:
    inserted = 0
    async with PostgresRecordStore(dsn_override=dsn) as store:
        for record in records:
            await store.insert(record)
            inserted += 1
    return inserted


@app.command()
def main(
    rows: int = typer.Option(
        25,
        "--rows",
        "-r",
        help="Number of businesses to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Also write the generated records as a JSON array.",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        False,
        "--no-load",
        help="Only generate; skip inserting into the datastore.",
    ),
) -> None:
    """
    Generate sample businesses and optionally insert them.
    """
    settings = get_settings()
    start = time.perf_counter()
    records = _generate_records(rows, seed, settings.map_center_lng, settings.map_center_lat)
    typer.echo(f"Generated {len(records)} businesses around {settings.map_center_lng}, {settings.map_center_lat}")

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps([r.to_wire() for r in records], indent=2), encoding="utf-8")
        typer.echo(f"Wrote {output}")

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    inserted = asyncio.run(_insert_all(records, dsn))
    typer.echo(f"Inserted {inserted} businesses in {time.perf_counter() - start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
