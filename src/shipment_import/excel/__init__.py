"""Tolerant spreadsheet column mapping for shipment uploads."""

from .dates import normalize_date, parse_date
from .disambiguate import MissingColumnsError, resolve_column, resolve_columns
from .header import HeaderDetectionResult, SheetHeaderError, detect_header
from .normalize import normalize_text
from .reader import WorkbookReadError
from .row_parser import parse_rows
from .shipment_parser import ShipmentParseResult, parse_shipment_matrix, parse_shipment_workbook

__all__ = [
    "normalize_text",
    "normalize_date",
    "parse_date",
    "detect_header",
    "HeaderDetectionResult",
    "resolve_column",
    "resolve_columns",
    "parse_rows",
    "parse_shipment_matrix",
    "parse_shipment_workbook",
    "ShipmentParseResult",
    "SheetHeaderError",
    "MissingColumnsError",
    "WorkbookReadError",
]
