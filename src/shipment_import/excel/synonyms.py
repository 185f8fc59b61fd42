from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from .normalize import normalize_text

"""Static synonym dictionaries for shipment spreadsheet headers.

Each semantic field lists the header spellings seen in customer / ERP exports
(Korean, Vietnamese with and without diacritics, English). Synonyms are
normalized once at import time; the header matcher tests whether a normalized
header cell *contains* one of them, so "Số lượng bán (Kg)" still matches
"Số lượng bán".
"""

__all__ = [
    "FieldSpec",
    "FIELDS",
    "FIELD_NAMES",
    "REQUIRED_FIELDS",
    "PROFILE_LETTERS",
    "PROFILE_NUMBER",
    "PROFILE_MIXED",
    "field_label",
]

PROFILE_LETTERS = "letters"
PROFILE_NUMBER = "number"
PROFILE_MIXED = "mixed"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    profile: str
    required: bool
    synonyms: tuple[str, ...]  # normalized, original order kept


def _field(name: str, label: str, profile: str, required: bool, raw: list[str]) -> FieldSpec:
    seen: list[str] = []
    for s in raw:
        key = normalize_text(s)
        if key and key not in seen:
            seen.append(key)
    return FieldSpec(name=name, label=label, profile=profile, required=required, synonyms=tuple(seen))


_SPECS = [
    _field("item_name", "item name", PROFILE_LETTERS, True, [
        "Tên hàng", "Tên hàng hóa", "Ten hang", "Ten hang hoa",
        "품명", "부품명", "품목명",
        "Item Name", "Part Name", "Product Name",
    ]),
    _field("part_no", "part number", PROFILE_LETTERS, True, [
        "Mã hàng", "Ma hang", "Mã SP", "Ma SP",
        "품번", "부품번호", "품목번호",
        "Part No", "PartNo", "Part Number", "Part Code",
    ]),
    _field("change_seq", "change sequence", PROFILE_MIXED, True, [
        "Số #", "So #",
        "LOT / No", "LOT/No", "Lot No", "Lot Number", "LOT",
        "명칭변경차수", "변경차수", "차수",
    ]),
    _field("shipment_qty", "quantity", PROFILE_NUMBER, True, [
        "Số lượng bán", "So luong ban", "Số lượng", "So luong",
        "출하수량", "수량",
        "Shipment Qty", "Ship Qty", "Quantity", "Qty",
    ]),
    _field("customer_name", "customer", PROFILE_LETTERS, False, [
        "Tên công ty", "Ten cong ty", "Tên khách hàng", "Ten khach hang", "Khách hàng",
        "고객사", "고객사명", "거래처",
        "Customer", "Customer Name", "Company Name", "Client",
    ]),
    _field("date", "date", PROFILE_MIXED, False, [
        "Ngày hóa đơn", "Ngay hoa don", "Ngày kiểm tra", "Ngay kiem tra",
        "Ngày xuất", "Ngày", "Ngay",
        "출하일자", "출하일", "인보이스일자", "일자",
        "Invoice Date", "Shipment Date", "Ship Date", "Delivery Date", "Date",
    ]),
    _field("invoice_no", "invoice number", PROFILE_LETTERS, False, [
        "Số hóa đơn", "So hoa don", "Hóa đơn", "Hoa don",
        "인보이스번호", "인보이스",
        "Invoice No", "Invoice Number", "Inv No", "Invoice",
    ]),
    _field("invoice_seq", "invoice sequence", PROFILE_MIXED, False, [
        "Invoice Seq", "Sequence", "Seq", "STT",
    ]),
]

FIELDS: MappingProxyType[str, FieldSpec] = MappingProxyType({s.name: s for s in _SPECS})
FIELD_NAMES: tuple[str, ...] = tuple(s.name for s in _SPECS)
REQUIRED_FIELDS: tuple[str, ...] = tuple(s.name for s in _SPECS if s.required)


def field_label(name: str) -> str:
    spec = FIELDS.get(name)
    return spec.label if spec is not None else name
