"""One-call entry points for exporting and importing workbooks."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Type

from pydantic import BaseModel

from .config import ExcelSettings
from .document import Destination, Source
from .exporter import SheetExporter, SheetInput
from .handlers import HandlerRegistry
from .importer import AcceptanceCheck, ImportResult, SheetImporter, default_error_name

logger = logging.getLogger(__name__)

__all__ = ["default_error_name", "read", "write"]


def write(
    sheets: Iterable[SheetInput],
    destination: Destination,
    *,
    config: ExcelSettings | None = None,
) -> SheetExporter:
    """Write ``sheets`` into one workbook at ``destination``.

    Example:
        >>> write([(PersonRow, people), SheetData(PositionRow, [])], "staff.xlsx")
    """
    exporter = SheetExporter(config).export(sheets)
    exporter.save(destination)
    return exporter


def read(
    source: Source,
    *models: Type[BaseModel],
    registry: HandlerRegistry,
    error_destination: Destination | None = None,
    acceptance: AcceptanceCheck | None = None,
    config: ExcelSettings | None = None,
    file_name: str | None = None,
) -> ImportResult:
    """Import ``models`` (one sheet each) from ``source``.

    When the run yields an error workbook it is returned in
    ``result.error_report`` and also written to ``error_destination``. For a
    filesystem ``source`` without an explicit destination it is written next
    to the source as ``<error_name_prefix><source name>``.
    """
    importer = SheetImporter(source, registry, config=config, file_name=file_name)
    result = importer.import_data(models, acceptance=acceptance)

    if result.error_report is None:
        return result

    if error_destination is None and isinstance(source, (str, os.PathLike)):
        error_destination = Path(source).with_name(result.error_report_name)

    if error_destination is not None:
        importer.error_exporter.save(error_destination)
        logger.info(
            "Error workbook saved",
            extra={"destination": str(error_destination), "file": importer.file_name},
        )

    return result
