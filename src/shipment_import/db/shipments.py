from __future__ import annotations

import json
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import psycopg2

from ..models.shipment_row import RowError, ShipmentRow

"""Shipment persistence (psycopg2 cursor based).

The caller owns the connection and the transaction (BEGIN / COMMIT /
ROLLBACK); this module only issues statements on the cursor it is given.

Insert-or-update by natural key (year, part_no, change_seq, invoice_no). A row
without invoice number matches stored rows whose invoice number is NULL or
empty. Each row runs inside a SAVEPOINT so that one failing row is skipped
without aborting the surrounding transaction.
"""

__all__ = [
    "ShipmentStoreError",
    "UpsertResult",
    "ImportLogEntry",
    "ensure_schema",
    "file_already_imported",
    "upsert_shipments",
    "record_import",
    "new_import_id",
]

SCHEMA_SQL = (
    """
    CREATE TABLE IF NOT EXISTS shipments (
        id VARCHAR(64) PRIMARY KEY,
        year INTEGER NOT NULL,
        shipment_date DATE,
        customer_name VARCHAR(200),
        item_name VARCHAR(200) NOT NULL,
        part_no VARCHAR(100) NOT NULL,
        change_seq VARCHAR(100) NOT NULL,
        shipment_qty NUMERIC NOT NULL,
        invoice_no VARCHAR(100),
        invoice_seq VARCHAR(100),
        invoice_date DATE,
        source_file_id VARCHAR(64),
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_shipments_natural_key ON shipments (year, part_no, change_seq)",
    """
    CREATE TABLE IF NOT EXISTS shipment_imports (
        id VARCHAR(64) PRIMARY KEY,
        year INTEGER,
        file_name VARCHAR(255) NOT NULL,
        file_hash VARCHAR(64) NOT NULL,
        row_count INTEGER NOT NULL DEFAULT 0,
        inserted_count INTEGER NOT NULL DEFAULT 0,
        updated_count INTEGER NOT NULL DEFAULT 0,
        skipped_count INTEGER NOT NULL DEFAULT 0,
        errors_json TEXT,
        created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_shipment_imports_hash ON shipment_imports (file_hash)",
)

_SELECT_WITH_INVOICE = (
    "SELECT id FROM shipments WHERE year = %s AND part_no = %s AND change_seq = %s AND invoice_no = %s"
)
_SELECT_WITHOUT_INVOICE = (
    "SELECT id FROM shipments WHERE year = %s AND part_no = %s AND change_seq = %s"
    " AND (invoice_no IS NULL OR invoice_no = '')"
)
_UPDATE = (
    "UPDATE shipments SET shipment_date = %s, customer_name = %s, item_name = %s, shipment_qty = %s,"
    " invoice_no = %s, invoice_seq = %s, invoice_date = %s, source_file_id = %s,"
    " updated_at = CURRENT_TIMESTAMP WHERE id = %s"
)
_INSERT = (
    "INSERT INTO shipments (id, year, shipment_date, customer_name, item_name, part_no, change_seq,"
    " shipment_qty, invoice_no, invoice_seq, invoice_date, source_file_id)"
    " VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)"
)
_INSERT_IMPORT = (
    "INSERT INTO shipment_imports (id, year, file_name, file_hash, row_count, inserted_count,"
    " updated_count, skipped_count, errors_json) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)"
)
_SAVEPOINT = "shipment_row"


class ShipmentStoreError(Exception):
    pass


@dataclass
class UpsertResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)


@dataclass(frozen=True)
class ImportLogEntry:
    import_id: str
    year: int | None
    file_name: str
    file_hash: str
    row_count: int
    inserted: int
    updated: int
    skipped: int
    errors: list[RowError]


def new_import_id(prefix: str = "import") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


def ensure_schema(cursor: Any) -> None:
    try:
        for stmt in SCHEMA_SQL:
            cursor.execute(stmt)
    except psycopg2.Error as e:
        raise ShipmentStoreError(f"schema creation failed: {e}") from e


def file_already_imported(cursor: Any, file_hash: str) -> bool:
    try:
        cursor.execute("SELECT id FROM shipment_imports WHERE file_hash = %s", (file_hash,))
        return cursor.fetchone() is not None
    except psycopg2.Error as e:
        raise ShipmentStoreError(f"duplicate check failed: {e}") from e


def _upsert_one(cursor: Any, row: ShipmentRow, import_id: str) -> bool:
    """Returns True when a new row was inserted, False when updated."""
    if row.invoice_no:
        cursor.execute(_SELECT_WITH_INVOICE, (row.year, row.part_no, row.change_seq, row.invoice_no))
    else:
        cursor.execute(_SELECT_WITHOUT_INVOICE, (row.year, row.part_no, row.change_seq))
    existing = cursor.fetchone()
    if existing is not None:
        cursor.execute(_UPDATE, (
            row.shipment_date, row.customer_name, row.item_name, row.shipment_qty,
            row.invoice_no, row.invoice_seq, row.invoice_date, import_id, existing[0],
        ))
        return False
    cursor.execute(_INSERT, (
        new_import_id("shipment"), row.year, row.shipment_date, row.customer_name, row.item_name,
        row.part_no, row.change_seq, row.shipment_qty, row.invoice_no, row.invoice_seq,
        row.invoice_date, import_id,
    ))
    return True


def upsert_shipments(
    cursor: Any,
    rows: Sequence[ShipmentRow],
    import_id: str,
    row_numbers: Sequence[int] | None = None,
) -> UpsertResult:
    """Insert or update ``rows``; failing rows are skipped and reported.

    row_numbers: sheet row number per row, used in RowError (-1 when omitted)
    """
    result = UpsertResult()
    for i, row in enumerate(rows):
        row_num = row_numbers[i] if row_numbers is not None else -1
        try:
            cursor.execute(f"SAVEPOINT {_SAVEPOINT}")
            if _upsert_one(cursor, row, import_id):
                result.inserted += 1
            else:
                result.updated += 1
            cursor.execute(f"RELEASE SAVEPOINT {_SAVEPOINT}")
        except psycopg2.Error as e:
            try:
                cursor.execute(f"ROLLBACK TO SAVEPOINT {_SAVEPOINT}")
            except psycopg2.Error as rollback_error:
                raise ShipmentStoreError(f"savepoint rollback failed: {rollback_error}") from e
            result.skipped += 1
            result.errors.append(RowError(
                row=row_num,
                reason=str(e).strip() or type(e).__name__,
                values=row.to_dict(),
                code="DB_ERROR",
            ))
    return result


def record_import(cursor: Any, entry: ImportLogEntry, error_limit: int = 50) -> None:
    errors_json = json.dumps([e.to_dict() for e in entry.errors[:error_limit]], ensure_ascii=False)
    try:
        cursor.execute(_INSERT_IMPORT, (
            entry.import_id, entry.year, entry.file_name, entry.file_hash, entry.row_count,
            entry.inserted, entry.updated, entry.skipped, errors_json,
        ))
    except psycopg2.Error as e:
        raise ShipmentStoreError(f"import log insert failed: {e}") from e

