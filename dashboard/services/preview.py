"""
Preview payloads for uploaded PO files.

Single-PO vendors:

    {"header": {...}, "lines": [...], "detectedVendor": "zepto",
     "totalItems": 3, "totalQuantity": 120, "totalAmount": "5310.00",
     "skippedLines": 0}

Multi-PO vendors (Blinkit):

    {"poList": [{"header": ..., "lines": ..., "totalItems": 2,
                 "totalQuantity": 30, "totalAmount": "2520.00"}, ...],
     "detectedVendor": "blinkit", "totalPOs": 2, "skippedLines": 0}

The preview is what the UI shows and posts back to the import endpoint, so
header and line dicts use the model field names.
"""
import re
from typing import Any

from models import Detection, ParsedPO
from pipeline.totals import format_amount

# Free-text header fields that parsers sometimes fill with a neighbouring cell
DISPLAY_NAME_FIELDS = ("vendor_name", "supplier_name")

_DATE_LIKE = re.compile(r"^\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}")
_PLACEHOLDERS = {"", "n/a", "na", "-", "nil", "none", "null"}


def is_garbled_name(value: Any) -> bool:
    """True for a name cell that clearly holds something other than a name."""
    if value is None:
        return True
    text = str(value).strip()
    if text.lower() in _PLACEHOLDERS:
        return True
    if text.endswith(":") or _DATE_LIKE.match(text):
        return True
    lowered = text.lower()
    return "days" in lowered and any(ch.isdigit() for ch in lowered)


def _clean_header(header: dict) -> dict:
    for name in DISPLAY_NAME_FIELDS:
        if name in header and is_garbled_name(header[name]):
            header[name] = None
    return header


def po_payload(po: ParsedPO) -> dict:
    data = po.model_dump(mode="json")
    return {"header": _clean_header(data["header"]), "lines": data["lines"]}


def _with_totals(po: ParsedPO) -> dict:
    payload = po_payload(po)
    payload.update(
        totalItems=po.total_items,
        totalQuantity=po.header.total_quantity,
        totalAmount=format_amount(po.header.total_amount or 0),
    )
    return payload


def build_preview(detection: Detection) -> dict:
    if detection.multi_po:
        return {
            "poList": [_with_totals(po) for po in detection.pos],
            "detectedVendor": detection.vendor,
            "totalPOs": len(detection.pos),
            "skippedLines": detection.skipped_lines,
        }

    po = detection.pos[0]
    payload = _with_totals(po)
    payload.update(detectedVendor=detection.vendor, skippedLines=po.skipped_lines)
    return payload
