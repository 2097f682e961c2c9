"""Command line: header-only templates and import dry runs."""

from __future__ import annotations

import importlib
import logging
import sys
from typing import Any

import click

from . import api
from .errors import FoxsheetError
from .exporter import SheetData
from .handlers import HandlerRegistry

EXIT_OK = 0
EXIT_INVALID_ROWS = 1
EXIT_FATAL = 2


def resolve_object(path: str) -> Any:
    """Import ``package.module:attribute`` and return the attribute."""
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Expected 'package.module:attribute', got '{path}'")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from None


def template_command(output: str, models: list[str]) -> None:
    """Write a workbook holding only the header rows of ``models``."""
    try:
        sheets = [SheetData(resolve_object(path), []) for path in models]
        api.write(sheets, output)
    except (ImportError, ValueError, FoxsheetError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(EXIT_FATAL)
    click.echo(f"Template written to {output}")


def check_command(
    source: str,
    models: list[str],
    *,
    registry: str,
    error_output: str | None = None,
) -> int:
    """Import ``source`` through the handlers of ``registry``; return the exit code."""
    try:
        handler_registry = resolve_object(registry)
        if not isinstance(handler_registry, HandlerRegistry):
            raise ValueError(f"'{registry}' is not a HandlerRegistry")
        model_types = [resolve_object(path) for path in models]
        result = api.read(
            source,
            *model_types,
            registry=handler_registry,
            error_destination=error_output,
        )
    except (ImportError, OSError, ValueError, FoxsheetError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        return EXIT_FATAL

    for sheet in result.sheets:
        color = "red" if sheet.has_errors else "green"
        click.secho(
            f"{sheet.sheet.name}: {len(sheet.valid)} valid, {len(sheet.invalid)} invalid",
            fg=color,
        )

    if result.succeeded:
        click.secho("Import accepted", fg="green")
        return EXIT_OK

    reason = "rejected by acceptance check" if result.rejected else "invalid rows found"
    click.secho(f"Import failed: {reason}", fg="red")
    if result.error_report_name:
        click.echo(f"Error workbook: {error_output or result.error_report_name}")
    return EXIT_INVALID_ROWS


@click.group("foxsheet")
@click.option("--verbose", "-v", is_flag=True, help="Log run progress to stderr.")
def foxsheet_group(verbose: bool) -> None:
    """Spreadsheet import/export tools."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@foxsheet_group.command("template")
@click.argument("output", type=click.Path(dir_okay=False))
@click.argument("models", nargs=-1, required=True)
def template_cli(output: str, models: tuple[str, ...]) -> None:
    """Write an empty workbook with the headers of MODELS.

    Examples:\n
        foxsheet template staff.xlsx myapp.rows:PersonRow myapp.rows:PositionRow\n
    """
    template_command(output, list(models))


@foxsheet_group.command("check")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.argument("models", nargs=-1, required=True)
@click.option(
    "--registry",
    required=True,
    help="HandlerRegistry import path, e.g. myapp.handlers:registry",
)
@click.option(
    "--error-output",
    type=click.Path(dir_okay=False),
    default=None,
    help="Where to write the error workbook (default: next to SOURCE)",
)
def check_cli(source: str, models: tuple[str, ...], registry: str, error_output: str | None) -> None:
    """Import SOURCE and report valid/invalid rows per sheet.

    Exit code 0 when the import is accepted, 1 when rows failed validation,
    2 on fatal errors (bad headers, missing sheets, unknown handlers).
    """
    sys.exit(check_command(source, list(models), registry=registry, error_output=error_output))


def main() -> None:
    foxsheet_group()
