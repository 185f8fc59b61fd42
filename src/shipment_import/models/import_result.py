from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .shipment_row import RowError, RowWarning

"""Import result models for the shipment importer.

ImportDebugInfo is the operator troubleshooting payload (why did a column not
map?). ImportResult is what one file import returns to its caller; the CLI
renders it, a web layer would serialize it with ``to_dict``.
"""

__all__ = [
    "ImportDebugInfo",
    "ImportResult",
    "ImportStatus",
]


class ImportStatus:
    SUCCESS = "success"
    FAILED = "failed"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class ImportDebugInfo:
    """Header detection / column mapping snapshot of one sheet."""
    sheet_name: str
    header_row: int | None  # 1-based, None when no header row was found
    header_score: int
    required_count: int
    matched_fields: list[str]
    merged_header: bool = False
    headers_original: list[str] = field(default_factory=list)
    headers_normalized: list[str] = field(default_factory=list)
    column_mapping: dict[str, int | None] = field(default_factory=dict)
    missing_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sheetName": self.sheet_name,
            "headerRow": self.header_row,
            "headerMatchScore": self.header_score,
            "requiredCount": self.required_count,
            "headerMatchedFields": list(self.matched_fields),
            "mergedHeader": self.merged_header,
            "headersOriginal": list(self.headers_original),
            "headersNormalized": list(self.headers_normalized),
            "mappingResult": dict(self.column_mapping),
            "missingFields": list(self.missing_fields),
        }


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing one spreadsheet file."""
    file_name: str
    status: str
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)  # 表示用に件数上限あり
    error_count: int = 0  # 上限適用前の総数
    warnings: list[RowWarning] = field(default_factory=list)
    header_row: int | None = None
    header_score: int = 0
    required_count: int = 4
    matched_fields: list[str] = field(default_factory=list)
    year: int | None = None
    import_id: str | None = None
    message: str | None = None
    error: str | None = None  # batch-level failure reason
    debug: ImportDebugInfo | None = None

    @property
    def ok(self) -> bool:
        return self.status != ImportStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "status": self.status,
            "insertedCount": self.inserted,
            "updatedCount": self.updated,
            "skippedCount": self.skipped,
            "errorRows": [e.to_dict() for e in self.errors],
            "errorCount": self.error_count,
            "warnings": [w.to_dict() for w in self.warnings],
            "headerRow": self.header_row,
            "headerMatchScore": self.header_score,
            "requiredCount": self.required_count,
            "headerMatchedFields": list(self.matched_fields),
            "year": self.year,
            "importId": self.import_id,
            "message": self.message,
            "error": self.error,
            "debugInfo": self.debug.to_dict() if self.debug is not None else None,
        }
