from __future__ import annotations

import pandas as pd

from shipment_import.excel.export import NORMALIZED_SHEET_NAME, write_normalized_workbook
from shipment_import.excel.shipment_parser import parse_shipment_workbook
from shipment_import.models.shipment_row import ShipmentRow


def test_normalized_workbook_round_trip(tmp_path):
    rows = [
        ShipmentRow(
            year=2025, item_name="Bracket", part_no="P-100", change_seq="L1", shipment_qty=150,
            shipment_date="2025-03-04", customer_name="ACME", invoice_no="INV-1", invoice_date="2025-03-04",
        ),
        ShipmentRow(year=2025, item_name="Cover", part_no="P-200", change_seq="L2", shipment_qty=20),
    ]
    path = write_normalized_workbook(rows, tmp_path / "out" / "normalized.xlsx")
    assert path.exists()
    assert pd.ExcelFile(path, engine="openpyxl").sheet_names == [NORMALIZED_SHEET_NAME]

    result = parse_shipment_workbook(path)
    assert result.detection.score == 4
    assert result.detection.row_index == 0
    assert result.debug.missing_fields == []
    assert result.resolution["invoice_no"] == 6
    assert result.resolution["customer_name"] == 5
    assert [(r.part_no, r.shipment_qty, r.customer_name) for r in result.rows] == [
        ("P-100", 150, "ACME"),
        ("P-200", 20, None),
    ]
    assert result.rows[0].invoice_no == "INV-1"
