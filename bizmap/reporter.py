from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from bizmap.domain.models import BusinessRecord
from bizmap.mapview.adapter import MarkerColor, marker_color

_COLOR_STYLES = {
    MarkerColor.GREEN: "green",
    MarkerColor.BLUE: "blue",
    MarkerColor.AMBER: "yellow",
}


def build_directory_table(
    records: Sequence[BusinessRecord],
    title: str = "Business Directory",
    stats: Optional[Dict[str, int]] = None,
) -> Table:
    """
    Build a rich table of directory records.

    The marker column uses the same color rule as the map so the listing and
    the map agree.
    """
    caption = None
    if stats:
        caption = " │ ".join(f"{key}: {value}" for key, value in sorted(stats.items()))

    table = Table(title=title, box=box.ROUNDED, caption=caption)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Category", style="magenta")
    table.add_column("Lng", justify="right")
    table.add_column("Lat", justify="right")
    table.add_column("Power", justify="center")
    table.add_column("Card", justify="center")
    table.add_column("Marker", justify="center")

    for record in records:
        color = marker_color(record)
        table.add_row(
            record.name,
            record.category,
            f"{record.lng:.5f}",
            f"{record.lat:.5f}",
            record.power_type.value,
            "yes" if record.accepts_card_payment else "no",
            f"[{_COLOR_STYLES[color]}]●[/{_COLOR_STYLES[color]}]",
        )
    return table


def print_directory(
    records: Sequence[BusinessRecord],
    title: str = "Business Directory",
    stats: Optional[Dict[str, int]] = None,
    console: Optional[Console] = None,
) -> None:
    console = console or Console()
    if not records:
        console.print("[yellow]No businesses to display.[/yellow]")
        return
    console.print(build_directory_table(records, title=title, stats=stats))


def print_categories(categories: List[str], console: Optional[Console] = None) -> None:
    console = console or Console()
    for category in categories:
        console.print(f"• {category}")


__all__ = ["build_directory_table", "print_categories", "print_directory"]
