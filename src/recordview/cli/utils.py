"""
CLI utility helpers: loading input files, parsing option strings, output.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from recordview.core.errors import RecordViewError
from recordview.core.records import MISSING, IdentifiedRecord

console = Console()
err_console = Console(stderr=True)


# ── Input ────────────────────────────────────────────────────────────────


def load_records(path: Path, *, as_csv: bool = False) -> list[dict[str, Any]]:
    """Read a JSON array of objects, or a CSV file with a header row."""
    if as_csv or path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8") as fh:
            return [{key: parse_scalar(value) for key, value in row.items()} for row in csv.DictReader(fh)]
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        fail(f"{path} must contain a JSON array of objects")
    return data


def parse_scalar(text: str) -> Any:
    """``42`` → 42, ``true`` → True, ``null`` → None, anything else stays a string."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def parse_range(spec: str) -> tuple[str, dict[str, Any]]:
    """``Amount:100:500`` → an inclusive range on Amount; an empty bound is open."""
    parts = spec.split(":")
    if len(parts) != 3 or not parts[0]:
        fail(f"invalid --range {spec!r} (expected field:min:max)")
    field, low, high = parts
    bounds: dict[str, Any] = {"include_min": True, "include_max": True}
    if low:
        bounds["min"] = low
    if high:
        bounds["max"] = high
    return field, bounds


def parse_equals(spec: str) -> tuple[str, Any]:
    field, sep, value = spec.partition("=")
    if not sep or not field:
        fail(f"invalid --equals {spec!r} (expected field=value)")
    return field, parse_scalar(value)


def parse_sort(spec: str) -> tuple[str, str]:
    field, _, order = spec.partition(":")
    if not field:
        fail(f"invalid --sort {spec!r} (expected field[:asc|desc|original])")
    return field, (order or "asc").upper()


# ── Output ───────────────────────────────────────────────────────────────


def fail(message: str) -> None:
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


def fail_with(error: RecordViewError) -> None:
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    raise typer.Exit(code=1)


def _cell(value: Any) -> str:
    if value is MISSING:
        return ""
    if value is None:
        return "null"
    return str(value)


def print_page(
    items: list[IdentifiedRecord],
    columns: list[str],
    *,
    page_number: int,
    page_count: int,
    total: int,
) -> None:
    """Render one page of records as a Rich table."""
    if not items:
        console.print("[dim]No matching records.[/dim]")
        return
    table = Table(show_lines=False, pad_edge=False)
    table.add_column("#", style="dim", justify="right")
    for col in columns:
        table.add_column(col, overflow="fold")
    for record in items:
        table.add_row(str(record.identity), *(_cell(record.get(col)) for col in columns))
    console.print(table)
    console.print(f"\n[dim]Page {page_number} of {page_count} ({total} matching)[/dim]")


def print_page_json(
    items: list[IdentifiedRecord],
    *,
    page_number: int,
    page_size: int,
    page_count: int,
    total: int,
) -> None:
    payload = {
        "items": [record.to_dict() for record in items],
        "page": page_number,
        "page_size": page_size,
        "page_count": page_count,
        "total": total,
    }
    typer.echo(json.dumps(payload, default=str))
