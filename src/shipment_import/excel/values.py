from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

import pandas as pd

"""Cell value helpers shared by the column disambiguator and the row parser."""

__all__ = [
    "is_blank",
    "cell_text",
    "parse_number",
]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def cell_text(value: Any) -> str:
    """Trimmed text of a cell; "" for blanks.

    Integral floats lose their ".0" (a part number typed as 12345 must not
    become "12345.0"). Dates render as ISO strings.
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.hour == value.minute == value.second == value.microsecond == 0:
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def parse_number(value: Any) -> int | float | None:
    """Parse a quantity-like cell.

    Strings may carry thousands separators ("1,200") and spaces. Returns None
    for blanks, booleans, non-finite values and unparseable text.
    """
    if isinstance(value, bool) or is_blank(value):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).replace(",", "")
        text = "".join(text.split())
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    if isinstance(value, int):
        return value
    return int(number) if number.is_integer() else number
