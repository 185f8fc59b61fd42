from __future__ import annotations

import json
from pathlib import Path

from shipment_import.cli.__main__ import main as cli_main

"""End-to-end CLI runs on real workbooks (mock mode, DISABLE_DB_CONNECT=1)."""


def _korean_rows() -> list[list[object]]:
    return [
        ["2026년 출하현황", None, None, None, None, None, None],
        [None, None, None, None, None, None, None],
        ["품명", "품번", "명칭변경차수", "출하수량", "출하일자", "고객사", "Invoice No"],
        ["브라켓", "PN-100", "A", 1200, "2026-01-05", "현대", "INV-001"],
        ["커버", 20455, 2, "300", "05/01/2026", "기아", "INV-002"],
        ["하우징", "PN-300", "B", "많음", "2026-01-06", "현대", None],
    ]


def test_multi_file_run_with_config(temp_workdir: Path, write_config: Path, make_workbook, vietnamese_rows, capsys):
    data = temp_workdir / "data"
    make_workbook({"요약": [["x"], ["y"]], "2026 출하": _korean_rows()}, name="kr.xlsx", directory=data)
    make_workbook({"Xuất hàng": vietnamese_rows}, name="vn.xlsx", directory=data)

    assert cli_main(["data", "--config", str(write_config)]) == 0
    out = capsys.readouterr().out
    assert "file=kr.xlsx status=success" in out
    assert "year=2026" in out
    assert "file=vn.xlsx status=success" in out
    summary = [line for line in out.splitlines() if line.startswith("SUMMARY ")][0]
    assert "files=2 success=2 failed=0 inserted=4" in summary
    assert "errors=2" in summary

    log_file = next((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    by_file = {(r["file"], r["error_type"], r["row"]) for r in records}
    assert ("kr.xlsx", "INVALID_QUANTITY", 6) in by_file
    assert ("vn.xlsx", "MISSING_REQUIRED_FIELDS", 7) in by_file


def test_keep_na_strings_reports_invalid_quantity(temp_workdir: Path, make_workbook, capsys):
    (temp_workdir / "config" / "import.yml").write_text("keep_na_strings: ['N/A']\n", encoding="utf-8")
    rows = [["품명", "품번", "LOT", "수량"], ["A", "P-1", "L1", 5], ["B", "P-2", "L2", "N/A"]]
    make_workbook({"출하": rows}, name="na.xlsx", directory=temp_workdir / "data")
    assert cli_main(["data"]) == 0
    log_file = next((temp_workdir / "logs").glob("errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
    assert record["error_type"] == "INVALID_QUANTITY"
    assert record["row"] == 3


def test_export_then_reimport(temp_workdir: Path, make_workbook, vietnamese_rows, capsys):
    make_workbook({"Xuất hàng": vietnamese_rows}, name="vn.xlsx", directory=temp_workdir / "data")
    assert cli_main(["data", "--export-normalized", "normalized"]) == 0
    exported = temp_workdir / "normalized" / "vn_normalized.xlsx"
    assert exported.exists()
    capsys.readouterr()

    assert cli_main([str(exported)]) == 0
    out = capsys.readouterr().out
    assert "header_row=1 score=4/4" in out
    assert "inserted=2" in out
    assert "errors=0" in out
