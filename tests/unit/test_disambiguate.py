from __future__ import annotations

import pytest

from shipment_import.excel.disambiguate import (
    MissingColumnsError,
    missing_required,
    resolve_column,
    resolve_columns,
    score_cell,
)
from shipment_import.excel.header import detect_header
from shipment_import.excel.synonyms import PROFILE_LETTERS, PROFILE_MIXED, PROFILE_NUMBER


@pytest.mark.parametrize(
    "profile, value, expected",
    [
        (PROFILE_LETTERS, "Bracket", 1),
        (PROFILE_LETTERS, "12345", 0),
        (PROFILE_NUMBER, "1,200", 1),
        (PROFILE_NUMBER, "abc", 0),
        (PROFILE_MIXED, "L1", 1),
        (PROFILE_MIXED, 150, 1),
        (PROFILE_MIXED, "--", 0),
        (PROFILE_MIXED, None, 0),
    ],
)
def test_score_cell(profile, value, expected):
    assert score_cell(profile, value) == expected


def test_quantity_column_with_numbers_wins():
    rows = [
        ["pcs", "1,200"],
        ["pcs", "300"],
        ["box", 45],
    ]
    assert resolve_column("shipment_qty", [0, 1], rows) == 1


def test_tie_keeps_first_candidate():
    rows = [[1, 2], [3, 4]]
    assert resolve_column("shipment_qty", [0, 1], rows) == 0


def test_single_and_empty_candidates():
    assert resolve_column("part_no", [4], []) == 4
    assert resolve_column("part_no", [], [["x"]]) is None


def test_resolve_columns_prefers_exact_lot_header_over_quantity():
    matrix = [
        ["Tên hàng", "Mã hàng", "Số #", "Số lượng bán"],
        ["Bracket", "P-100", "L1", 150],
        ["Cover", "P-200", "L2", 20],
    ]
    det = detect_header(matrix)
    resolution = resolve_columns(det, matrix)
    assert resolution["change_seq"] == 2
    assert resolution["shipment_qty"] == 3
    assert resolution["date"] is None
    assert missing_required(resolution) == []


def test_missing_columns_error_lists_labels():
    err = MissingColumnsError(["part_no", "shipment_qty"])
    assert err.missing_fields == ["part_no", "shipment_qty"]
    assert "part number" in str(err)
    assert "quantity" in str(err)


def test_numeric_lot_column_keeps_exact_header_over_invoice_column():
    matrix = [
        ["Tên hàng", "Mã hàng", "Số #", "Số lượng bán", "Số hóa đơn"],
        ["Bracket", "P-100", 1, 150, "HD001"],
        ["Cover", "P-200", 2, 20, "HD002"],
    ]
    resolution = resolve_columns(detect_header(matrix), matrix)
    assert resolution["change_seq"] == 2
    assert resolution["shipment_qty"] == 3
    assert resolution["invoice_no"] == 4


def test_invoice_column_before_lot_column():
    matrix = [
        ["Số hóa đơn", "Tên hàng", "Mã hàng", "Số #", "Số lượng bán"],
        ["HD001", "Bracket", "P-100", "L1", 150],
    ]
    det = detect_header(matrix)
    assert det.candidates["change_seq"][0] == 3
    resolution = resolve_columns(det, matrix)
    assert resolution["change_seq"] == 3
    assert resolution["invoice_no"] == 0
    assert resolution["item_name"] == 1
