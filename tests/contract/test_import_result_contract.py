from __future__ import annotations

import json

from shipment_import.models.import_result import ImportDebugInfo, ImportResult, ImportStatus
from shipment_import.models.shipment_row import RowError, RowWarning

"""Import result payload contract (keys consumed by the upload screen)."""

RESULT_KEYS = {
    "fileName", "status", "insertedCount", "updatedCount", "skippedCount", "errorRows", "errorCount",
    "warnings", "headerRow", "headerMatchScore", "requiredCount", "headerMatchedFields", "year",
    "importId", "message", "error", "debugInfo",
}
DEBUG_KEYS = {
    "sheetName", "headerRow", "headerMatchScore", "requiredCount", "headerMatchedFields", "mergedHeader",
    "headersOriginal", "headersNormalized", "mappingResult", "missingFields",
}


def test_result_dict_keys_and_json_safe():
    debug = ImportDebugInfo(
        sheet_name="출하", header_row=3, header_score=3, required_count=4,
        matched_fields=["item_name", "part_no", "shipment_qty"],
        headers_original=["품명", "품번", "수량"], headers_normalized=["품명", "품번", "수량"],
        column_mapping={"item_name": 0, "part_no": 1, "change_seq": None, "shipment_qty": 2},
        missing_fields=["change_seq"],
    )
    result = ImportResult(
        file_name="a.xlsx", status=ImportStatus.FAILED,
        errors=[RowError(row=5, reason="missing required fields: quantity", values={"shipment_qty": None})],
        error_count=1,
        warnings=[RowWarning(row=6, message="ambiguous", value="03-04-2025")],
        error="required column match failed: 3/4", debug=debug,
    )
    data = result.to_dict()
    assert set(data) == RESULT_KEYS
    assert set(data["debugInfo"]) == DEBUG_KEYS
    assert data["errorRows"][0] == {
        "row": 5, "code": "ROW_ERROR", "reason": "missing required fields: quantity", "values": {"shipment_qty": None},
    }
    json.dumps(data, ensure_ascii=False)


def test_ok_flag():
    assert ImportResult("a", ImportStatus.SUCCESS).ok
    assert ImportResult("a", ImportStatus.DUPLICATE).ok
    assert not ImportResult("a", ImportStatus.FAILED).ok
