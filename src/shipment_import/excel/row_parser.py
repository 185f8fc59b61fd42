from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..models.config_models import DateOrder
from ..models.shipment_row import RowError, RowWarning, ShipmentRow
from .dates import ParsedDate, excel_serial_to_date, parse_date
from .synonyms import REQUIRED_FIELDS, field_label
from .values import cell_text, is_blank, parse_number

"""Row parsing & validation beneath a detected header.

Row-level problems never abort the batch: a row missing a required value or
carrying an unparseable quantity becomes a RowError and the next row is
processed. Blank rows (every mapped cell empty) are neither parsed nor
reported.
"""

__all__ = [
    "RowParseOutcome",
    "parse_rows",
    "resolve_year",
    "year_from_sheet_name",
]

_SHEET_YEAR = re.compile(r"20\d{2}")


@dataclass
class RowParseOutcome:
    rows: list[ShipmentRow] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)
    warnings: list[RowWarning] = field(default_factory=list)
    row_numbers: list[int] = field(default_factory=list)  # rows と同じ並び


def year_from_sheet_name(sheet_name: str) -> int | None:
    m = _SHEET_YEAR.search(sheet_name or "")
    return int(m.group(0)) if m else None


def resolve_year(
    explicit: int | None,
    sheet_name: str,
    row_date: ParsedDate | None,
    today: Callable[[], date] = date.today,
) -> int:
    """Year of a row: explicit > sheet name > row date > current year."""
    strategies: tuple[Callable[[], int | None], ...] = (
        lambda: explicit,
        lambda: year_from_sheet_name(sheet_name),
        lambda: row_date.year if row_date is not None else None,
    )
    for strategy in strategies:
        year = strategy()
        if year is not None:
            return year
    return today().year


def _cell(row: Sequence[Any], col: int | None) -> Any:
    if col is None or col >= len(row):
        return None
    return row[col]


def _optional_text(row: Sequence[Any], col: int | None) -> str | None:
    text = cell_text(_cell(row, col))
    return text or None


def _parse_date_cell(raw: Any, order: DateOrder) -> ParsedDate | None:
    # 数値セルは Excel シリアル日付として扱う
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        converted = excel_serial_to_date(raw)
        if converted is None:
            return None
        raw = converted
    return parse_date(raw, order)


def parse_rows(
    matrix: Sequence[Sequence[Any]],
    resolution: Mapping[str, int | None],
    data_start: int,
    *,
    year: int | None = None,
    sheet_name: str = "",
    date_order: DateOrder = DateOrder.DAY_FIRST,
) -> RowParseOutcome:
    """Parse every data row from ``data_start`` on.

    ``resolution`` must map every required field to a column (checked by the
    caller before any row is touched).
    """
    outcome = RowParseOutcome()
    mapped_cols = [c for c in resolution.values() if c is not None]

    for idx in range(data_start, len(matrix)):
        row = matrix[idx]
        row_num = idx + 1  # 実際の Excel 行番号
        if all(is_blank(_cell(row, c)) for c in mapped_cols):
            continue

        values = {
            "item_name": cell_text(_cell(row, resolution["item_name"])),
            "part_no": cell_text(_cell(row, resolution["part_no"])),
            "change_seq": cell_text(_cell(row, resolution["change_seq"])),
        }
        qty_raw = _cell(row, resolution["shipment_qty"])
        values["shipment_qty"] = None if is_blank(qty_raw) else qty_raw

        # 数量 0 は欠落ではないので None 判定
        missing = [f for f in REQUIRED_FIELDS if values[f] is None or values[f] == ""]
        if missing:
            outcome.errors.append(RowError(
                row=row_num,
                reason="missing required fields: " + ", ".join(field_label(f) for f in missing),
                values=values,
                code="MISSING_REQUIRED_FIELDS",
            ))
            continue

        qty = parse_number(qty_raw)
        if qty is None:
            outcome.errors.append(RowError(
                row=row_num,
                reason="quantity is not a valid number",
                values={"shipment_qty": qty_raw},
                code="INVALID_QUANTITY",
            ))
            continue

        date_raw = _cell(row, resolution.get("date"))
        parsed_date = _parse_date_cell(date_raw, date_order)
        if parsed_date is not None and parsed_date.ambiguous:
            outcome.warnings.append(RowWarning(
                row=row_num,
                message=f"ambiguous day/month order, read as {parsed_date.value} ({date_order.value})",
                value=date_raw,
            ))
        iso = parsed_date.value if parsed_date is not None else None

        outcome.rows.append(ShipmentRow(
            year=resolve_year(year, sheet_name, parsed_date),
            item_name=values["item_name"],
            part_no=values["part_no"],
            change_seq=values["change_seq"],
            shipment_qty=qty,
            shipment_date=iso,
            customer_name=_optional_text(row, resolution.get("customer_name")),
            invoice_no=_optional_text(row, resolution.get("invoice_no")),
            invoice_seq=_optional_text(row, resolution.get("invoice_seq")),
            invoice_date=iso,
        ))
        outcome.row_numbers.append(row_num)

    return outcome
