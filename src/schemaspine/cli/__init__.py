"""
CLI layer for schema-spine.

Provides a Typer application whose commands delegate to
``MigrationRunner`` and the adapter version store. This package handles
only terminal transport: argument parsing, coloured output, and table
formatting.

Entry point::

    schemaspine --help
"""

from schemaspine.cli.app import app

__all__ = ["app"]
