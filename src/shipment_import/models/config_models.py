from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Config dataclasses for the shipment importer.

ImportSettings carries every tunable of the column mapper; its defaults are the
values used when no config file is given. DatabaseConfig is the fallback used
when no connection environment variables are set.
"""

DEFAULT_SHEET_KEYWORDS: tuple[str, ...] = ("출", "shipment", "xuất")


class DateOrder(Enum):
    """Reading of ambiguous ``D-M-YYYY`` / ``M-D-YYYY`` strings.

    The source spreadsheets come from Korean and Vietnamese sites, which write
    day before month, so DAY_FIRST is the default.
    """
    DAY_FIRST = "day_first"
    MONTH_FIRST = "month_first"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback (environment variables take precedence)."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportSettings:
    """Root configuration object for an import run."""
    header_scan_rows: int = 60  # ヘッダ探索行数
    sample_rows: int = 30  # 列判定に使うデータ行サンプル数
    error_display_limit: int = 50
    debug_header_limit: int = 30
    date_order: DateOrder = DateOrder.DAY_FIRST
    sheet_keywords: tuple[str, ...] = DEFAULT_SHEET_KEYWORDS
    keep_na_strings: tuple[str, ...] = ()
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
