from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from functools import reduce
from types import MappingProxyType
from typing import Any

from .normalize import normalize_text
from .synonyms import FIELD_NAMES, FIELDS, REQUIRED_FIELDS
from .values import cell_text

"""Header row detection.

The header row of a shipment export is neither fixed nor always a single row:
there may be title rows above it, and some exports use a two-row header
("category" row over a "column name" row). Every row of the scan window is
tried both as a single header and merged with the row below; the hypothesis
with the highest required-field score wins, first found on ties. A merged pair
whose upper row adds no candidate column (blank or title rows) is the lower
row on its own, so the real header row is the one reported.
"""

__all__ = [
    "SheetHeaderError",
    "HeaderCandidateMap",
    "HeaderDetectionResult",
    "DEFAULT_SCAN_ROWS",
    "match_header_cells",
    "detect_header",
]

logger = logging.getLogger(__name__)

DEFAULT_SCAN_ROWS = 60

# field -> ordered candidate column indices
HeaderCandidateMap = Mapping[str, tuple[int, ...]]


class SheetHeaderError(Exception):
    """Raised when no header row can be located in the sheet."""

    def __init__(self, message: str, sheet_name: str | None = None) -> None:
        super().__init__(message)
        self.sheet_name = sheet_name


@dataclass(frozen=True)
class HeaderDetectionResult:
    row_index: int  # 0-based; first row of a merged header
    score: int  # required fields with at least one candidate
    merged: bool
    data_start: int  # 0-based index of the first data row
    headers: tuple[str, ...]  # header text per column (merged text for two-row headers)
    candidates: HeaderCandidateMap
    matches: tuple[tuple[str, str], ...]  # (field, synonym) first hit per field

    @property
    def header_row_number(self) -> int:
        """1-based sheet row number of the (first) header row."""
        return self.row_index + 1

    @property
    def matched_fields(self) -> list[str]:
        return [f for f in REQUIRED_FIELDS if self.candidates.get(f)]


def match_header_cells(headers: Sequence[str]) -> tuple[dict[str, tuple[int, ...]], list[tuple[str, str]]]:
    """Build candidate columns per field for one header hypothesis.

    Candidates are ordered by exact match first, then synonym rank, then
    column index ("Số #" before "Số hóa đơn" for the change sequence).
    """
    normalized = [normalize_text(h) for h in headers]
    candidates: dict[str, tuple[int, ...]] = {}
    matches: list[tuple[str, str]] = []
    for name in FIELD_NAMES:
        synonyms = FIELDS[name].synonyms
        ranked: list[tuple[int, int, int, str]] = []
        for idx, key in enumerate(normalized):
            if not key:
                continue
            hits = [(0 if s == key else 1, rank, s) for rank, s in enumerate(synonyms) if s in key]
            if hits:
                exact, rank, synonym = min(hits)
                ranked.append((exact, rank, idx, synonym))
        ranked.sort()
        candidates[name] = tuple(idx for _, _, idx, _ in ranked)
        if ranked:
            matches.append((name, ranked[0][3]))
    return candidates, matches


def _row_texts(matrix: Sequence[Sequence[Any]], r: int) -> list[str]:
    return [cell_text(v) for v in matrix[r]]


def _merge_texts(upper: list[str], lower: list[str]) -> list[str]:
    width = max(len(upper), len(lower))
    upper = upper + [""] * (width - len(upper))
    lower = lower + [""] * (width - len(lower))
    return [" ".join(p for p in (u, w) if p) for u, w in zip(upper, lower, strict=True)]


def _build(r: int, headers: list[str], merged: bool) -> HeaderDetectionResult:
    candidates, matches = match_header_cells(headers)
    score = sum(1 for f in REQUIRED_FIELDS if candidates[f])
    return HeaderDetectionResult(
        row_index=r,
        score=score,
        merged=merged,
        data_start=r + (2 if merged else 1),
        headers=tuple(headers),
        candidates=MappingProxyType(candidates),
        matches=tuple(matches),
    )


def _adds_candidates(merged: HeaderDetectionResult, lower: HeaderDetectionResult) -> bool:
    return any(set(merged.candidates[f]) - set(lower.candidates[f]) for f in FIELD_NAMES)


def _hypotheses(matrix: Sequence[Sequence[Any]], scan_rows: int) -> Iterator[HeaderDetectionResult]:
    window = min(max(scan_rows, 1), len(matrix))
    texts = [_row_texts(matrix, r) for r in range(min(window + 1, len(matrix)))]
    singles = [_build(r, t, merged=False) for r, t in enumerate(texts)]
    for r in range(window):
        yield singles[r]
        if r + 1 < len(texts):
            merged = _build(r, _merge_texts(texts[r], texts[r + 1]), merged=True)
            # 上の行が候補列を増やさない結合は下の行単独と同じ扱い
            yield merged if _adds_candidates(merged, singles[r + 1]) else singles[r + 1]


def _better(best: HeaderDetectionResult, candidate: HeaderDetectionResult) -> HeaderDetectionResult:
    # 同点は先勝ち (strictly greater のみ置換)
    return candidate if candidate.score > best.score else best


def detect_header(matrix: Sequence[Sequence[Any]], scan_rows: int = DEFAULT_SCAN_ROWS) -> HeaderDetectionResult:
    """Locate the header row of a raw cell matrix.

    Raises:
        SheetHeaderError: the matrix is empty or no hypothesis matches any
            required field.
    """
    if not matrix:
        raise SheetHeaderError("sheet has no rows")
    best = reduce(_better, _hypotheses(matrix, scan_rows))
    if best.score == 0:
        raise SheetHeaderError(
            f"no header row found in the first {min(scan_rows, len(matrix))} rows "
            f"(0/{len(REQUIRED_FIELDS)} required columns matched)"
        )
    logger.debug(
        "header detected row=%d merged=%s score=%d/%d matched=%s",
        best.header_row_number, best.merged, best.score, len(REQUIRED_FIELDS), best.matched_fields,
    )
    return best
