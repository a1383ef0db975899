"""
Root Typer application for the recordview CLI.

``recordview query`` loads a file into a :class:`RecordTable`, applies
the requested filter stages in a fixed order (string query, number
ranges, exact values) and sort levels in the order given, then prints
one page.
"""

from __future__ import annotations

from pathlib import Path

import typer

from recordview.cli.utils import (
    err_console,
    fail_with,
    load_records,
    parse_equals,
    parse_range,
    parse_sort,
    print_page,
    print_page_json,
)
from recordview.core.errors import InvalidReferenceError, RecordViewError
from recordview.core.logging import configure_logging
from recordview.core.settings import get_settings

app = typer.Typer(
    name="recordview",
    help="recordview: filter, sort and page through records from JSON or CSV files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("recordview")
        except PackageNotFoundError:
            from recordview import __version__ as v
        typer.echo(f"recordview {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline activity at DEBUG."),
) -> None:
    """recordview CLI: query record files through the search/sort pipeline."""
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )


# ── query ────────────────────────────────────────────────────────────────


@app.command()
def query(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON or CSV file"),
    as_csv: bool = typer.Option(False, "--csv", help="Read PATH as CSV regardless of suffix."),
    text: str | None = typer.Option(None, "--query", "-q", help="String query."),
    fields: list[str] | None = typer.Option(None, "--field", "-f", help="Field the query searches (repeatable)."),
    word_match: str | None = typer.Option(None, "--word-match", help="ExactMatch, Contains, StartsWith or EndsWith."),
    ranges: list[str] | None = typer.Option(None, "--range", "-r", help="field:min:max, inclusive (repeatable)."),
    equals: list[str] | None = typer.Option(None, "--equals", "-e", help="field=value (repeatable)."),
    scope: str | None = typer.Option(None, "--scope", help="All or Prev, for every stage."),
    sorts: list[str] | None = typer.Option(None, "--sort", "-s", help="field[:asc|desc|original] (repeatable)."),
    page: int = typer.Option(1, "--page", "-p", min=1),
    page_size: int | None = typer.Option(None, "--page-size", "-n", help="Negative shows everything."),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Filter, sort and print one page of PATH."""
    from recordview.table import RecordTable

    records = load_records(path, as_csv=as_csv)
    warnings: list[InvalidReferenceError] = []
    common = {"scope": scope} if scope else {}

    try:
        table = RecordTable(records, page_size=page_size, on_warning=warnings.append)

        if text is not None:
            options = {"query": text, **common}
            if fields:
                options["include_fields"] = fields
            if word_match:
                options["word_match"] = word_match
            table.search("string_query", options)

        if ranges:
            per_field: dict[str, list[dict]] = {}
            for spec in ranges:
                field, bounds = parse_range(spec)
                per_field.setdefault(field, []).append(bounds)
            table.search("number_ranges", {"ranges": per_field, **common})

        if equals:
            values: dict[str, list] = {}
            for spec in equals:
                field, value = parse_equals(spec)
                values.setdefault(field, []).append(value)
            table.search("exact_values", {"values": values, **common})

        for spec in sorts or []:
            field, order = parse_sort(spec)
            table.sort(field, order)

        table.paginator.set_page_number(page)
    except RecordViewError as e:
        fail_with(e)

    for warning in warnings:
        err_console.print(f"[yellow]Warning[/yellow]: {warning.message} (ignored)")

    paginator = table.paginator
    if json_out:
        print_page_json(
            paginator.items,
            page_number=paginator.page_number,
            page_size=paginator.page_size,
            page_count=paginator.page_count,
            total=len(table.view),
        )
        return
    print_page(
        paginator.items,
        table.fields.keys(),
        page_number=paginator.page_number,
        page_count=paginator.page_count,
        total=len(table.view),
    )
