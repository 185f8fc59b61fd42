from __future__ import annotations

import pytest

from shipment_import.excel.header import SheetHeaderError, detect_header, match_header_cells


def test_header_on_first_row():
    matrix = [
        ["품명", "품번", "명칭변경차수", "출하수량"],
        ["Bracket", "P-100", "A", 10],
    ]
    det = detect_header(matrix)
    assert det.score == 4
    assert det.merged is False
    assert det.row_index == 0
    assert det.header_row_number == 1
    assert det.data_start == 1
    assert det.matched_fields == ["item_name", "part_no", "change_seq", "shipment_qty"]


def test_header_below_title_rows():
    matrix = [
        ["2025 출하현황", None, None, None],
        [None, None, None, None],
        ["품명", "품번", "명칭변경차수", "출하수량"],
        ["Bracket", "P-100", "A", 10],
    ]
    det = detect_header(matrix)
    assert det.score == 4
    assert det.data_start == 3
    assert (det.row_index, det.merged) == (2, False)
    assert det.header_row_number == 3


def test_full_match_beats_earlier_partial_rows():
    matrix = [
        ["품명", "비고"],  # 1/4
        ["x", "y"],
        ["x", "y"],
        ["Item Name", "Part No", "Lot No", "Qty"],
        ["A", "B", "C", 1],
    ]
    det = detect_header(matrix)
    assert det.score == 4
    assert det.data_start == 4


def test_two_row_header_is_merged():
    matrix = [
        ["Tên", "Mã", "Lot", "Số lượng"],
        ["hàng", "hàng", "No", "bán"],
        ["Bracket", "P-100", "L1", 5],
    ]
    # 単独行では "Tên" / "Mã" が一致しない
    det = detect_header(matrix)
    assert det.merged is True
    assert det.row_index == 0
    assert det.data_start == 2
    assert det.score == 4
    assert det.headers[0] == "Tên hàng"


def test_tie_keeps_first_hypothesis():
    matrix = [
        ["Part No", "Qty"],
        ["Part No", "Qty"],
        ["P-1", 1],
    ]
    det = detect_header(matrix)
    assert det.score == 2
    assert det.row_index == 0
    assert det.merged is False


def test_scan_window_limits_rows():
    matrix = [["x"] for _ in range(5)] + [["품명", "품번", "LOT", "수량"], ["a", "b", "c", 1]]
    with pytest.raises(SheetHeaderError):
        detect_header(matrix, scan_rows=3)
    det = detect_header(matrix, scan_rows=10)
    assert det.score == 4
    assert det.data_start == 6


def test_no_header_raises():
    with pytest.raises(SheetHeaderError):
        detect_header([["foo", "bar"], [1, 2]])
    with pytest.raises(SheetHeaderError):
        detect_header([])


def test_substring_match_collects_all_candidate_columns():
    candidates, matches = match_header_cells(["Tên hàng", "Mã hàng", "Số #", "Số lượng bán (Kg)"])
    assert candidates["change_seq"] == (2, 3)
    assert candidates["shipment_qty"] == (3,)
    assert ("item_name", "tenhang") in matches
    assert candidates["customer_name"] == ()


def test_title_row_over_header_is_not_reported_as_merged():
    matrix = [
        ["BÁO CÁO XUẤT HÀNG", None, None, None],
        ["Tên hàng", "Mã hàng", "Số #", "Số lượng bán"],
        ["Bracket", "P-100", "L1", 150],
    ]
    det = detect_header(matrix)
    assert det.header_row_number == 2
    assert det.merged is False
    assert det.data_start == 2


def test_candidates_prefer_exact_header_then_synonym_rank():
    candidates, matches = match_header_cells(["Số hóa đơn", "Tên hàng", "Mã hàng", "Số #", "Số lượng bán"])
    assert candidates["change_seq"] == (3, 0, 4)
    assert ("change_seq", "so") in matches
    assert candidates["invoice_no"] == (0,)
