from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, BinaryIO

import psycopg2

from ..db.shipments import (
    ImportLogEntry,
    ShipmentStoreError,
    file_already_imported,
    new_import_id,
    record_import,
    upsert_shipments,
)
from ..excel.disambiguate import MissingColumnsError
from ..excel.header import SheetHeaderError
from ..excel.reader import WorkbookReadError
from ..excel.shipment_parser import ShipmentParseResult, parse_shipment_workbook
from ..excel.synonyms import REQUIRED_FIELDS
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import ImportSettings
from ..models.import_result import ImportDebugInfo, ImportResult, ImportStatus
from ..models.shipment_row import RowError

"""Shipment import service: one uploaded file -> one ImportResult.

Transaction boundary is the file. With a cursor the whole file runs between
BEGIN and COMMIT and any batch-level failure rolls everything back. Without a
cursor (mock mode) the file is parsed and the parsed rows are counted as
inserted; nothing is written.
"""

__all__ = [
    "FILE_LEVEL_SHEET",
    "file_hash",
    "import_shipments",
]

logger = logging.getLogger(__name__)

FILE_LEVEL_SHEET = "<FILE_LEVEL>"
REQUIRED_COUNT = len(REQUIRED_FIELDS)


def file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _read_bytes(source: bytes | bytearray | BinaryIO | Path | str) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        try:
            return Path(source).read_bytes()
        except OSError as e:
            raise WorkbookReadError(f"cannot read {source}: {e}") from e
    return source.read()


def _execute(cursor: Any, stmt: str) -> None:
    if cursor is not None:
        cursor.execute(stmt)


def _rollback_quietly(cursor: Any, file_name: str, error_log: ErrorLogBuffer | None) -> None:
    if cursor is None:
        return
    try:
        cursor.execute("ROLLBACK")
    except psycopg2.Error as e:
        logger.warning("rollback failed file=%s: %s", file_name, e)
        if error_log is not None:
            error_log.append(ErrorRecord.create(
                file=file_name, sheet=FILE_LEVEL_SHEET, row=-1,
                error_type="TRANSACTION_ROLLBACK_ERROR", message=str(e),
            ))


def _failed(
    file_name: str,
    error: str,
    *,
    errors: list[RowError] | None = None,
    debug: ImportDebugInfo | None = None,
    limit: int = 50,
    year: int | None = None,
) -> ImportResult:
    errors = errors or []
    return ImportResult(
        file_name=file_name,
        status=ImportStatus.FAILED,
        errors=errors[:limit],
        error_count=len(errors),
        header_row=debug.header_row if debug is not None else None,
        header_score=debug.header_score if debug is not None else 0,
        required_count=REQUIRED_COUNT,
        matched_fields=list(debug.matched_fields) if debug is not None else [],
        year=year,
        error=error,
        debug=debug,
    )


def _log_file_error(
    error_log: ErrorLogBuffer | None, file_name: str, sheet: str, error_type: str, message: str
) -> None:
    if error_log is not None:
        error_log.append(ErrorRecord.create(
            file=file_name, sheet=sheet, row=-1, error_type=error_type, message=message,
        ))


def import_shipments(
    source: bytes | bytearray | BinaryIO | Path | str,
    file_name: str,
    *,
    year: int | None = None,
    skip_duplicate: bool = False,
    cursor: Any = None,
    settings: ImportSettings | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Import one shipment workbook.

    Args:
        source: workbook bytes, binary stream or path
        file_name: name recorded in the import log and error log
        year: explicit year for every row (otherwise sheet name / row date)
        skip_duplicate: return without writing when the same file content
            was already imported (requires a cursor)
        cursor: psycopg2 cursor, None = mock mode
        settings: mapper settings (defaults when None)
        error_log: JSON Lines buffer receiving row and file level errors

    Returns:
        ImportResult; batch-level problems come back with status "failed"
        instead of raising.
    """
    settings = settings or ImportSettings()
    limit = settings.error_display_limit

    try:
        data = _read_bytes(source)
    except WorkbookReadError as e:
        _log_file_error(error_log, file_name, FILE_LEVEL_SHEET, "READ_ERROR", str(e))
        return _failed(file_name, str(e), limit=limit, year=year)
    digest = file_hash(data)

    if cursor is not None:
        try:
            cursor.execute("BEGIN")
        except psycopg2.Error as e:
            _log_file_error(error_log, file_name, FILE_LEVEL_SHEET, "TRANSACTION_BEGIN_ERROR", str(e))
            return _failed(file_name, f"failed to begin transaction: {e}", limit=limit, year=year)

    try:
        if skip_duplicate and cursor is not None and file_already_imported(cursor, digest):
            _execute(cursor, "ROLLBACK")
            logger.info("duplicate file skipped: %s", file_name)
            return ImportResult(
                file_name=file_name,
                status=ImportStatus.DUPLICATE,
                year=year,
                message="the same file has already been imported",
            )

        try:
            parsed = parse_shipment_workbook(data, year=year, settings=settings)
        except MissingColumnsError as e:
            _rollback_quietly(cursor, file_name, error_log)
            sheet = e.debug.sheet_name if e.debug is not None else FILE_LEVEL_SHEET
            score = e.debug.header_score if e.debug is not None else 0
            message = f"required column match failed: {score}/{REQUIRED_COUNT} ({e})"
            _log_file_error(error_log, file_name, sheet, "MISSING_REQUIRED_COLUMNS", message)
            return _failed(file_name, message, debug=e.debug, limit=limit, year=year)
        except SheetHeaderError as e:
            _rollback_quietly(cursor, file_name, error_log)
            _log_file_error(error_log, file_name, e.sheet_name or FILE_LEVEL_SHEET, "HEADER_NOT_FOUND", str(e))
            return _failed(file_name, str(e), limit=limit, year=year)
        except WorkbookReadError as e:
            _rollback_quietly(cursor, file_name, error_log)
            _log_file_error(error_log, file_name, FILE_LEVEL_SHEET, "READ_ERROR", str(e))
            return _failed(file_name, str(e), limit=limit, year=year)

        if error_log is not None:
            error_log.extend_row_errors(file_name, parsed.sheet_name, parsed.errors)
        for w in parsed.warnings:
            logger.warning("file=%s sheet=%s row=%d %s", file_name, parsed.sheet_name, w.row, w.message)

        if not parsed.rows:
            _rollback_quietly(cursor, file_name, error_log)
            message = "no valid shipment rows found"
            _log_file_error(error_log, file_name, parsed.sheet_name, "NO_VALID_ROWS", message)
            return _failed(
                file_name, message, errors=parsed.errors, debug=parsed.debug, limit=limit, year=year,
            )

        return _store(parsed, file_name, digest, year, cursor, settings, error_log)
    except (ShipmentStoreError, psycopg2.Error) as e:
        _rollback_quietly(cursor, file_name, error_log)
        _log_file_error(error_log, file_name, FILE_LEVEL_SHEET, "DB_ERROR", str(e))
        return _failed(file_name, str(e), limit=limit, year=year)


def _store(
    parsed: ShipmentParseResult,
    file_name: str,
    digest: str,
    year: int | None,
    cursor: Any,
    settings: ImportSettings,
    error_log: ErrorLogBuffer | None,
) -> ImportResult:
    resolved_year = year if year is not None else parsed.rows[0].year
    import_id = new_import_id()
    errors = list(parsed.errors)

    if cursor is None:
        inserted, updated, skipped = len(parsed.rows), 0, 0
        logger.debug("mock mode: %d rows counted as inserted (file=%s)", inserted, file_name)
    else:
        upserted = upsert_shipments(cursor, parsed.rows, import_id, row_numbers=parsed.row_numbers)
        inserted, updated, skipped = upserted.inserted, upserted.updated, upserted.skipped
        errors.extend(upserted.errors)
        if error_log is not None:
            error_log.extend_row_errors(file_name, parsed.sheet_name, upserted.errors)
        record_import(cursor, ImportLogEntry(
            import_id=import_id,
            year=resolved_year,
            file_name=file_name,
            file_hash=digest,
            row_count=len(parsed.rows),
            inserted=inserted,
            updated=updated,
            skipped=skipped,
            errors=errors,
        ), error_limit=settings.error_display_limit)
        cursor.execute("COMMIT")

    limit = settings.error_display_limit
    return ImportResult(
        file_name=file_name,
        status=ImportStatus.SUCCESS,
        inserted=inserted,
        updated=updated,
        skipped=skipped,
        errors=errors[:limit],
        error_count=len(errors),
        warnings=list(parsed.warnings),
        header_row=parsed.detection.header_row_number,
        header_score=parsed.detection.score,
        required_count=REQUIRED_COUNT,
        matched_fields=parsed.detection.matched_fields,
        year=resolved_year,
        import_id=import_id,
        debug=parsed.debug,
    )
