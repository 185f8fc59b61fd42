from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..models.config_models import ImportSettings
from ..models.import_result import ImportDebugInfo
from ..models.shipment_row import RowError, RowWarning, ShipmentRow
from .disambiguate import ColumnResolution, MissingColumnsError, missing_required, resolve_columns
from .header import HeaderDetectionResult, SheetHeaderError, detect_header
from .normalize import normalize_text
from .reader import WorkbookSource, open_workbook, read_sheet_matrix, select_sheet
from .row_parser import parse_rows
from .synonyms import REQUIRED_FIELDS

"""Shipment spreadsheet parsing pipeline.

raw upload -> sheet selection -> cell matrix -> header detection ->
column disambiguation -> required-column check -> row parsing.

Header / required-column failures are batch-fatal and raised before any row
is parsed; row problems come back in ``errors``.
"""

__all__ = [
    "ShipmentParseResult",
    "build_debug_info",
    "parse_shipment_matrix",
    "parse_shipment_workbook",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShipmentParseResult:
    sheet_name: str
    detection: HeaderDetectionResult
    resolution: ColumnResolution
    debug: ImportDebugInfo
    rows: list[ShipmentRow] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    warnings: list[RowWarning] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)


def build_debug_info(
    sheet_name: str,
    detection: HeaderDetectionResult,
    resolution: ColumnResolution,
    header_limit: int = 30,
) -> ImportDebugInfo:
    headers = list(detection.headers[:header_limit])
    return ImportDebugInfo(
        sheet_name=sheet_name,
        header_row=detection.header_row_number,
        header_score=detection.score,
        required_count=len(REQUIRED_FIELDS),
        matched_fields=detection.matched_fields,
        merged_header=detection.merged,
        headers_original=headers,
        headers_normalized=[normalize_text(h) for h in headers],
        column_mapping=dict(resolution),
        missing_fields=missing_required(resolution),
    )


def _log_debug_block(debug: ImportDebugInfo) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("[Excel Parsing Debug Info] sheet=%s", debug.sheet_name)
    logger.debug(
        "header row=%s merged=%s score=%d/%d matched=%s",
        debug.header_row, debug.merged_header, debug.header_score, debug.required_count, debug.matched_fields,
    )
    logger.debug("headers (original): %s", debug.headers_original)
    logger.debug("headers (normalized): %s", debug.headers_normalized)
    logger.debug("column mapping: %s", debug.column_mapping)
    logger.debug("missing required columns: %s", debug.missing_fields)


def parse_shipment_matrix(
    matrix: list[list[Any]],
    sheet_name: str,
    *,
    year: int | None = None,
    settings: ImportSettings | None = None,
) -> ShipmentParseResult:
    """Run detection, resolution and row parsing on an in-memory matrix."""
    settings = settings or ImportSettings()
    try:
        detection = detect_header(matrix, scan_rows=settings.header_scan_rows)
    except SheetHeaderError as e:
        raise SheetHeaderError(f"sheet '{sheet_name}': {e}", sheet_name=sheet_name) from e
    resolution = resolve_columns(detection, matrix, sample_size=settings.sample_rows)
    debug = build_debug_info(sheet_name, detection, resolution, settings.debug_header_limit)
    _log_debug_block(debug)

    if debug.missing_fields:
        raise MissingColumnsError(debug.missing_fields, debug=debug)

    outcome = parse_rows(
        matrix,
        resolution,
        detection.data_start,
        year=year,
        sheet_name=sheet_name,
        date_order=settings.date_order,
    )
    logger.debug(
        "sheet=%s parsed=%d errors=%d warnings=%d",
        sheet_name, len(outcome.rows), len(outcome.errors), len(outcome.warnings),
    )
    return ShipmentParseResult(
        sheet_name=sheet_name,
        detection=detection,
        resolution=resolution,
        debug=debug,
        rows=outcome.rows,
        errors=outcome.errors,
        warnings=outcome.warnings,
        row_numbers=outcome.row_numbers,
    )


def parse_shipment_workbook(
    source: WorkbookSource,
    *,
    year: int | None = None,
    settings: ImportSettings | None = None,
) -> ShipmentParseResult:
    """Parse an uploaded shipment workbook (bytes, stream or path)."""
    settings = settings or ImportSettings()
    with open_workbook(source) as workbook:
        sheet_name = select_sheet(workbook.sheet_names, year=year, keywords=settings.sheet_keywords)
        matrix = read_sheet_matrix(workbook, sheet_name, keep_na_strings=settings.keep_na_strings)
    return parse_shipment_matrix(matrix, sheet_name, year=year, settings=settings)
