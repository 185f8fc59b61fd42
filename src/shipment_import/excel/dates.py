from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from ..models.config_models import DateOrder
from .values import is_blank

"""Date normalization for shipment / invoice date cells.

Strategies are tried in a fixed order and each one returns a ParsedDate or
None:

1. date / datetime / pandas.Timestamp objects
2. year-first strings  ``YYYY<sep>M<sep>D``
3. year-last strings   ``D<sep>M<sep>YYYY`` (day-first unless configured)

Anything else is "no date": the row keeps going without it.

Spreadsheet serial numbers are not handled here; the row parser knows when a
cell was numeric and converts it with ``excel_serial_to_date`` first.
"""

__all__ = [
    "ParsedDate",
    "parse_date",
    "normalize_date",
    "excel_serial_to_date",
]

_SEP = r"[./-]"
_YEAR_FIRST = re.compile(rf"^(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})\.?(?:[ T].*)?$")
_YEAR_LAST = re.compile(rf"^(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})\.?(?:[ T].*)?$")

EXCEL_EPOCH = datetime(1899, 12, 30)
# 9999-12-31 が Excel の上限シリアル
_MAX_SERIAL = 2958465


@dataclass(frozen=True)
class ParsedDate:
    value: str  # YYYY-MM-DD
    ambiguous: bool = False

    @property
    def year(self) -> int:
        return int(self.value[:4])


def _format(y: int, m: int, d: int) -> str | None:
    try:
        return date(y, m, d).isoformat()
    except ValueError:
        return None


def _from_date_object(value: Any, order: DateOrder) -> ParsedDate | None:
    if isinstance(value, (date, datetime)):
        return ParsedDate(f"{value.year:04d}-{value.month:02d}-{value.day:02d}")
    return None


def _from_year_first(value: Any, order: DateOrder) -> ParsedDate | None:
    if not isinstance(value, str):
        return None
    m = _YEAR_FIRST.match(value.strip())
    if m is None:
        return None
    y, mo, d = (int(g) for g in m.groups())
    iso = _format(y, mo, d)
    return ParsedDate(iso) if iso is not None else None


def _from_year_last(value: Any, order: DateOrder) -> ParsedDate | None:
    if not isinstance(value, str):
        return None
    m = _YEAR_LAST.match(value.strip())
    if m is None:
        return None
    first, second, y = (int(g) for g in m.groups())
    day_first = _format(y, second, first)
    month_first = _format(y, first, second)
    chosen = day_first if order is DateOrder.DAY_FIRST else month_first
    if chosen is None:
        return None
    other = month_first if order is DateOrder.DAY_FIRST else day_first
    return ParsedDate(chosen, ambiguous=other is not None and other != chosen)


_STRATEGIES: tuple[Callable[[Any, DateOrder], ParsedDate | None], ...] = (
    _from_date_object,
    _from_year_first,
    _from_year_last,
)


def parse_date(value: Any, order: DateOrder = DateOrder.DAY_FIRST) -> ParsedDate | None:
    """Parse a raw date cell; None when no strategy accepts it."""
    if is_blank(value):
        return None
    for strategy in _STRATEGIES:
        parsed = strategy(value, order)
        if parsed is not None:
            return parsed
    return None


def normalize_date(value: Any, order: DateOrder = DateOrder.DAY_FIRST) -> str | None:
    """Return ``YYYY-MM-DD`` or None."""
    parsed = parse_date(value, order)
    return parsed.value if parsed is not None else None


def excel_serial_to_date(serial: Any) -> datetime | None:
    """Convert a spreadsheet serial day number (1899-12-30 epoch)."""
    if isinstance(serial, bool) or not isinstance(serial, (int, float)):
        return None
    if not 1 <= serial <= _MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=float(serial))
