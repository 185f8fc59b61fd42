from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, BinaryIO

import numpy as np
import pandas as pd

from .header import SheetHeaderError
from .normalize import normalize_text
from .values import is_blank

"""Workbook reading and sheet selection.

Header position is unknown up front, so sheets are read raw (``header=None``)
into a plain cell matrix; header detection runs on the matrix afterwards.

The whole sheet is loaded into memory. Expected uploads are hundreds to a few
thousand rows.
"""

__all__ = [
    "WorkbookReadError",
    "open_workbook",
    "select_sheet",
    "read_sheet_matrix",
]

WorkbookSource = bytes | bytearray | BinaryIO | Path | str


class WorkbookReadError(Exception):
    """Raised when the upload cannot be opened as a spreadsheet."""


def open_workbook(source: WorkbookSource) -> pd.ExcelFile:
    """Open an .xlsx upload given as bytes, a binary stream or a path."""
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return pd.ExcelFile(source, engine="openpyxl")
    except FileNotFoundError as e:
        raise WorkbookReadError(f"file not found: {e.filename}") from e
    except Exception as e:  # zipfile.BadZipFile, openpyxl InvalidFileException ...
        raise WorkbookReadError(f"cannot read spreadsheet: {e}") from e


def select_sheet(
    sheet_names: Sequence[str],
    year: int | None = None,
    keywords: Iterable[str] = (),
) -> str:
    """Pick the shipment sheet.

    Order: first sheet whose name contains a shipping keyword (e.g. "2026출하"),
    then the first containing the requested year, then the first sheet.
    """
    names = [str(n) for n in sheet_names]
    if not names:
        raise WorkbookReadError("workbook has no sheets")
    keys = [k for k in (normalize_text(kw) for kw in keywords) if k]
    for name in names:
        norm = normalize_text(name)
        if any(k in norm for k in keys):
            return name
    if year is not None:
        for name in names:
            if str(year) in name:
                return name
    return names[0]


def _to_python(value: Any) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


def read_sheet_matrix(
    workbook: pd.ExcelFile,
    sheet_name: str,
    keep_na_strings: Iterable[str] | None = None,
) -> list[list[Any]]:
    """Read one sheet as a list of rows (NaN -> None).

    keep_na_strings: strings excluded from pandas' default NaN conversion
        (e.g. "N/A" in a quantity column should be reported as an invalid
        number, not as a missing value).
    """
    # pandas._libs.parsers.STR_NA_VALUES には既定のNA文字列集合が格納されている
    import pandas._libs.parsers as parsers

    keep = set(keep_na_strings or ())
    if keep:
        na_values = list(parsers.STR_NA_VALUES - keep)
        keep_default_na = False
    else:
        na_values = None
        keep_default_na = True

    try:
        df = workbook.parse(sheet_name, header=None, keep_default_na=keep_default_na, na_values=na_values)
    except Exception as e:
        raise WorkbookReadError(f"cannot read sheet '{sheet_name}': {e}") from e

    matrix = [[_to_python(v) for v in raw] for raw in df.itertuples(index=False, name=None)]
    if len(matrix) < 2:
        raise SheetHeaderError(
            f"sheet '{sheet_name}' has fewer than 2 rows (header + data required)", sheet_name=sheet_name
        )
    return matrix
