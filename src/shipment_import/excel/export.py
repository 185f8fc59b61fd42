from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from ..models.shipment_row import ShipmentRow

"""Normalized workbook export.

Writes parsed rows back out with one fixed, single-row header so the file maps
in one pass on re-import, whatever the layout of the original upload.
"""

__all__ = [
    "NORMALIZED_SHEET_NAME",
    "NORMALIZED_HEADER",
    "write_normalized_workbook",
]

NORMALIZED_SHEET_NAME = "출하현황"
# (header, ShipmentRow attribute)
NORMALIZED_HEADER: tuple[tuple[str, str], ...] = (
    ("품명", "item_name"),
    ("품번", "part_no"),
    ("LOT/No", "change_seq"),
    ("출하수량", "shipment_qty"),
    ("출하일자", "shipment_date"),
    ("고객사", "customer_name"),
    ("Invoice No", "invoice_no"),
    ("Invoice Date", "invoice_date"),
)


def write_normalized_workbook(rows: Iterable[ShipmentRow], path: Path) -> Path:
    """Write ``rows`` to ``path`` (.xlsx) and return the path."""
    records = [[getattr(r, attr) for _, attr in NORMALIZED_HEADER] for r in rows]
    df = pd.DataFrame(records, columns=[h for h, _ in NORMALIZED_HEADER])
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=NORMALIZED_SHEET_NAME, index=False)
    return path
