from __future__ import annotations

import pytest

from shipment_import.excel.header import SheetHeaderError
from shipment_import.excel.reader import WorkbookReadError, open_workbook, read_sheet_matrix, select_sheet
from shipment_import.models.config_models import DEFAULT_SHEET_KEYWORDS


def test_select_sheet_prefers_shipping_keyword():
    names = ["Summary", "2025 Forecast", "2025출하"]
    assert select_sheet(names, year=2025, keywords=DEFAULT_SHEET_KEYWORDS) == "2025출하"


def test_select_sheet_vietnamese_keyword_without_marks():
    assert select_sheet(["Tổng hợp", "Xuat hang"], keywords=DEFAULT_SHEET_KEYWORDS) == "Xuat hang"


def test_select_sheet_falls_back_to_year_then_first():
    assert select_sheet(["Summary", "2024", "2025"], year=2025) == "2025"
    assert select_sheet(["Summary", "Data"], year=2025) == "Summary"
    with pytest.raises(WorkbookReadError):
        select_sheet([])


def test_open_workbook_rejects_garbage():
    with pytest.raises(WorkbookReadError):
        open_workbook(b"not a spreadsheet")


def test_open_workbook_missing_file(tmp_path):
    with pytest.raises(WorkbookReadError):
        open_workbook(tmp_path / "missing.xlsx")


def test_read_sheet_matrix_raw_cells(make_workbook):
    path = make_workbook({"출하": [
        ["title", None, None],
        ["품명", "품번", "수량"],
        ["Bracket", "P-1", 5],
        ["Cover", None, "N/A"],
    ]})
    with open_workbook(path.read_bytes()) as wb:
        matrix = read_sheet_matrix(wb, "출하")
    assert matrix[0] == ["title", None, None]
    assert matrix[2] == ["Bracket", "P-1", 5]
    assert isinstance(matrix[2][2], int)
    # 既定では "N/A" は欠損扱い
    assert matrix[3] == ["Cover", None, None]


def test_read_sheet_matrix_keep_na_strings(make_workbook):
    path = make_workbook({"출하": [["품명", "수량"], ["Cover", "N/A"]]})
    with open_workbook(path) as wb:
        matrix = read_sheet_matrix(wb, "출하", keep_na_strings=["N/A"])
    assert matrix[1] == ["Cover", "N/A"]


def test_read_sheet_matrix_needs_two_rows(make_workbook):
    path = make_workbook({"Only": [["품명", "품번"]]})
    with open_workbook(path) as wb, pytest.raises(SheetHeaderError) as ei:
        read_sheet_matrix(wb, "Only")
    assert ei.value.sheet_name == "Only"
