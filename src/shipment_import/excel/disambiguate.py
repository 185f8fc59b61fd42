from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .header import HeaderDetectionResult
from .synonyms import FIELD_NAMES, FIELDS, PROFILE_LETTERS, PROFILE_NUMBER, REQUIRED_FIELDS, field_label
from .values import cell_text, parse_number

"""Column disambiguation.

Substring matching is tolerant on purpose, so one field can end up with several
candidate columns ("Mã hàng" twice, "Số #" also hitting "Số lượng bán"). When
that happens the data rows under the header decide: every candidate column is
scored against the content profile of its field and the best one wins (first
candidate on ties).
"""

__all__ = [
    "DEFAULT_SAMPLE_ROWS",
    "MissingColumnsError",
    "ColumnResolution",
    "score_cell",
    "resolve_column",
    "resolve_columns",
    "missing_required",
]

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_ROWS = 30

# field -> resolved column index (None = unmapped)
ColumnResolution = dict[str, int | None]


class MissingColumnsError(Exception):
    """Raised when required fields stay unmapped after disambiguation.

    ``missing_fields`` holds field names; ``debug`` is filled in by the
    pipeline with the ImportDebugInfo of the sheet.
    """

    def __init__(self, missing_fields: Sequence[str], debug: Any = None) -> None:
        self.missing_fields = list(missing_fields)
        self.debug = debug
        labels = ", ".join(field_label(f) for f in self.missing_fields)
        super().__init__(f"missing required columns: {labels}")


def score_cell(profile: str, value: Any) -> int:
    text = cell_text(value)
    if not text:
        return 0
    if profile == PROFILE_LETTERS:
        return 1 if any(ch.isalpha() for ch in text) else 0
    if profile == PROFILE_NUMBER:
        return 1 if parse_number(value) is not None else 0
    # mixed: 英数字を含めば 1 点 (数値のみでも同点)
    return 1 if any(ch.isalnum() for ch in text) else 0


def resolve_column(field: str, candidates: Sequence[int], sample_rows: Sequence[Sequence[Any]]) -> int | None:
    """Pick the best candidate column for ``field``."""
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]
    profile = FIELDS[field].profile
    best_col = candidates[0]
    best_score = -1
    for col in candidates:
        score = sum(score_cell(profile, row[col]) for row in sample_rows if col < len(row))
        if score > best_score:
            best_col, best_score = col, score
    logger.debug("field=%s candidates=%s -> column %d (score=%d)", field, list(candidates), best_col, best_score)
    return best_col


def resolve_columns(
    detection: HeaderDetectionResult,
    matrix: Sequence[Sequence[Any]],
    sample_size: int = DEFAULT_SAMPLE_ROWS,
) -> ColumnResolution:
    sample = matrix[detection.data_start:detection.data_start + sample_size]
    return {name: resolve_column(name, detection.candidates.get(name, ()), sample) for name in FIELD_NAMES}


def missing_required(resolution: Mapping[str, int | None]) -> list[str]:
    return [f for f in REQUIRED_FIELDS if resolution.get(f) is None]
