from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""ShipmentRow / RowError / RowWarning models for the shipment importer.

ShipmentRow is one validated record produced by the row parser. It is never
mutated after creation and is handed straight to the persistence layer
(insert-or-update by natural key).

RowError / RowWarning are row-level findings. They are values, not exceptions:
a single bad row never aborts the batch.
"""

__all__ = [
    "ShipmentRow",
    "RowError",
    "RowWarning",
]


@dataclass(frozen=True)
class ShipmentRow:
    """One parsed shipment line.

    Dates are canonical ``YYYY-MM-DD`` strings or None. ``shipment_date`` and
    ``invoice_date`` come from the same detected date column.
    """
    year: int
    item_name: str  # 품명 / Tên hàng
    part_no: str  # 품번 / Mã hàng
    change_seq: str  # LOT/No, 명칭변경차수
    shipment_qty: int | float
    shipment_date: str | None = None
    customer_name: str | None = None
    invoice_no: str | None = None
    invoice_seq: str | None = None
    invoice_date: str | None = None

    @property
    def natural_key(self) -> tuple[int, str, str, str | None]:
        """Key used by the store to decide insert vs update."""
        return (self.year, self.part_no, self.change_seq, self.invoice_no or None)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RowError:
    """Rejected data row.

    Attributes:
        row: 1-based sheet row number (-1 when unknown)
        reason: human readable reason
        values: raw extracted values that triggered the rejection
        code: UPPER_SNAKE classification (error log error_type)
    """
    row: int
    reason: str
    values: dict[str, Any]
    code: str = "ROW_ERROR"

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "code": self.code, "reason": self.reason, "values": _jsonable(self.values)}


@dataclass(frozen=True)
class RowWarning:
    """Accepted row with a value the operator should double check."""
    row: int
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "message": self.message, "value": _jsonable(self.value)}


def _jsonable(value: Any) -> Any:
    # datetime / Decimal 等は JSON 化できないので文字列に落とす
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
