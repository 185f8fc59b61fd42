from __future__ import annotations

import re
import unicodedata
from typing import Any

"""Header text normalization.

Comparison keys only; never shown to end users. Korean, Vietnamese and English
headers go through the same rules so that "Mã hàng", "Ma hang" and "MA-HANG"
collapse to one key ("mahang").
"""

__all__ = [
    "normalize_text",
]

# U+0300..U+036F: combining diacritical marks (Vietnamese tone/vowel marks)
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")
_STRIP_CHARS = re.compile(r"[\s/#.,\-_()]")


def normalize_text(value: Any) -> str:
    """Return the canonical comparison key of a header cell.

    Non-string input (None, NaN, numbers) yields "". Render non-string cells
    with ``cell_text`` first when their text matters.
    """
    if not isinstance(value, str):
        return ""
    s = unicodedata.normalize("NFD", value.lower())
    s = _COMBINING_MARKS.sub("", s)
    # đ は分解しても横棒が残らないため明示変換
    s = s.replace("đ", "d").replace("Đ", "d")
    # Hangul は NFD で字母に分解されるので再合成
    s = unicodedata.normalize("NFC", s)
    return _STRIP_CHARS.sub("", s)
