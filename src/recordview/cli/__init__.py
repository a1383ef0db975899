"""
CLI layer for recordview.

A Typer application that loads a JSON or CSV file into a
:class:`~recordview.table.RecordTable`, applies filter stages and sort
levels from the command line, and prints one page. All query logic lives
in the library; this package handles only argument parsing and output.

Entry point::

    recordview --help
"""

from recordview.cli.app import app

__all__ = ["app"]
