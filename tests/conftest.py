# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import psycopg2
import pytest

from shipment_import.logging.init import reset_logging


@pytest.fixture(autouse=True)
def fresh_logging():
    # ハンドラが古い sys.stdout を握らないように毎テスト再生成
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """header_scan_rows: 40
sample_rows: 20
error_display_limit: 10
date_order: day_first
sheet_keywords: [출하, shipment]
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: apqp
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def _write_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def make_workbook(tmp_path: Path) -> Callable[..., Path]:
    """Build a real .xlsx from raw rows (no pandas header row)."""
    def _make(sheets: dict[str, list[list[object]]], name: str = "shipments.xlsx", directory: Path | None = None) -> Path:
        return _write_workbook((directory or tmp_path) / name, sheets)
    return _make


@pytest.fixture()
def vietnamese_rows() -> list[list[object]]:
    """Two-row header export (category row over column names) with a title row."""
    return [
        ["BÁO CÁO XUẤT HÀNG", None, None, None, None, None],
        ["Thông tin", None, None, "Xuất", None, None],
        ["Tên hàng", "Mã hàng", "Số #", "Số lượng bán", "Ngày", "Tên công ty"],
        ["Bracket", "P-100", "L1", 150, "04-03-2025", "ACME"],
        ["Cover", "P-200", "L2", "1,200", "2025-03-05", "ACME"],
        [None, None, None, None, None, None],
        ["Housing", "P-300", "L3", None, "2025-03-06", "Beta"],
    ]


class FakeCursor:
    """Records SQL; answers natural-key lookups from an in-memory table.

    fail_on: part numbers whose INSERT raises psycopg2.IntegrityError
    imported_hashes: file hashes already present in shipment_imports
    """

    def __init__(self, fail_on: set[str] | None = None, imported_hashes: set[str] | None = None) -> None:
        self.statements: list[tuple[str, Any]] = []
        self.shipments: dict[tuple[Any, ...], list[Any]] = {}
        self.imports: list[tuple[Any, ...]] = []
        self.fail_on = fail_on or set()
        self.imported_hashes = imported_hashes or set()
        self._result: tuple[Any, ...] | None = None

    def execute(self, sql: str, params: Any = None) -> None:
        self.statements.append((sql, params))
        self._result = None
        if sql.startswith("SELECT id FROM shipment_imports"):
            self._result = ("import-x",) if params[0] in self.imported_hashes else None
        elif sql.startswith("SELECT id FROM shipments"):
            key = tuple(params[:3]) + ((params[3] if len(params) > 3 else None),)
            row = self.shipments.get(key)
            self._result = (row[0],) if row is not None else None
        elif sql.startswith("INSERT INTO shipments"):
            if params[5] in self.fail_on:
                raise psycopg2.IntegrityError(f"duplicate key for {params[5]}")
            self.shipments[(params[1], params[5], params[6], params[8])] = list(params)
        elif sql.startswith("INSERT INTO shipment_imports"):
            self.imports.append(params)

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._result

    def sql_heads(self) -> list[str]:
        return [s.strip().split()[0].upper() for s, _ in self.statements]


@pytest.fixture()
def fake_cursor() -> type[FakeCursor]:
    return FakeCursor
