"""
Swiggy Instamart PO parser (XLSX or Excel 2003 XML).

The sheet is a printed PO form: label cells ("PO No :", "PO Date :",
"Vendor Name :" ...) with their values somewhere to the right, then an
item table whose header spans two rows ("S." / "No").  Item columns are
positional.
"""
import logging
import re
from decimal import Decimal
from typing import Any, Optional

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, label_of, optional_text, parse_date, parse_line_number
from ..totals import synthetic_po_number, to_decimal
from ..workbook import Grid, find_row, is_blank, read_rows, value_after
from .base import LineBuilder, finish_po

logger = logging.getLogger(__name__)

VENDOR = "swiggy"
PO_PREFIX = "SW"
HEADER_SCAN_ROWS = 20
MIN_ROW_CELLS = 10
PO_NUMBER_PREFIXES = ("JCNPO", "SOTY-")

_DATE_LABELS = {
    "po date": "order_date",
    "po release date": "po_release_date",
    "expected delivery date": "expected_delivery_date",
    "po expiry date": "expiry_date",
}
_LABEL_WORDS = ("PO", "Date", "Payment", "Expected", "Vendor")
_DATE_LIKE = re.compile(r"\d{1,4}[-/.]\d{1,2}[-/.]\d{2,4}|^[A-Za-z]{3,9}\.? \d{1,2}, \d{4}$")

# Positional item columns
COL_SERIAL, COL_CODE, COL_DESC, COL_HSN, COL_QTY, COL_MRP = 0, 1, 2, 4, 5, 6
COL_BASE_COST, COL_TAXABLE = 8, 9
COL_CGST_RATE, COL_CGST_AMT, COL_SGST_RATE, COL_SGST_AMT = 10, 12, 13, 15
COL_IGST_RATE, COL_IGST_AMT, COL_CESS_RATE, COL_CESS_AMT = 16, 17, 19, 20
COL_ADDITIONAL_CESS, COL_LINE_TOTAL = 21, 22


def _cell(row: list, index: int) -> Any:
    return row[index] if index < len(row) else None


def _not_label(text: str) -> bool:
    return not text.endswith(":")


def _is_po_number(text: str) -> bool:
    return text.startswith(PO_NUMBER_PREFIXES)


def _plausible_name(text: str) -> bool:
    """A vendor name, not a label, date or payment-terms value."""
    if len(text) <= 3 or ":" in text or "Days" in text:
        return False
    if _DATE_LIKE.search(text):
        return False
    return not any(word in text for word in _LABEL_WORDS)


def _read_vendor_block(text: str) -> dict:
    """'Vendor Name : Acme\\nStreet\\nCity\\nGSTIN : 29AAA...' -> name, address, gstin."""
    parts = [p.strip() for p in text.splitlines() if p.strip()]
    fields: dict[str, Optional[str]] = {}
    name = re.sub(r"(?i)^vendor name\s*:?", "", parts[0]).strip()
    fields["vendor_name"] = name or None
    address = []
    for part in parts[1:]:
        if part.upper().startswith("GSTIN"):
            fields["vendor_gstin"] = part.split(":", 1)[-1].strip() or None
        else:
            address.append(part)
    fields["vendor_address"] = ", ".join(address) or None
    return fields


def _read_header(rows: Grid) -> dict:
    fields: dict[str, Any] = {}
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        for j, cell in enumerate(row):
            text = cell_text(cell)
            if not text:
                continue
            label = label_of(text)

            if _is_po_number(text):
                fields.setdefault("po_number", text)
            elif label == "po no":
                value = value_after(row, j, accept=_is_po_number)
                if value is not None:
                    fields["po_number"] = cell_text(value)
            elif label in _DATE_LABELS:
                value = value_after(row, j, max_gap=4, accept=_not_label)
                if value is not None:
                    fields.setdefault(_DATE_LABELS[label], parse_date(value))
            elif label.startswith("payment terms"):
                value = value_after(
                    row, j, accept=lambda t: "PO" not in t and "Date" not in t
                )
                if value is not None:
                    fields.setdefault("payment_terms", cell_text(value))
            elif label.startswith("vendor name"):
                if "\n" in text:
                    fields.update({k: v for k, v in _read_vendor_block(text).items() if v})
                    continue
                value = value_after(row, j, accept=_plausible_name)
                if value is None and i + 1 < len(rows):
                    below = _cell(rows[i + 1], j)
                    if _plausible_name(cell_text(below)):
                        value = below
                if value is not None:
                    fields.setdefault("vendor_name", cell_text(value))

    if fields.get("vendor_name"):
        fields.setdefault("supplier_name", fields["vendor_name"])
    if fields.get("vendor_gstin"):
        fields.setdefault("supplier_gstin", fields["vendor_gstin"])
    return fields


def _is_table_header(row: list) -> bool:
    cells = {cell_text(c) for c in row}
    return "S." in cells and "Item Code" in cells and "Item Desc" in cells


def _is_total_row(row: list) -> bool:
    first = next((cell_text(c) for c in row if cell_text(c)), "")
    return first.lower().startswith("total")


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    header = _read_header(rows)
    if not header.get("po_number"):
        header["po_number"] = synthetic_po_number(PO_PREFIX)
        logger.warning("Swiggy PO number not found, using %s", header["po_number"])

    table_at = find_row(rows, _is_table_header)
    if table_at is None:
        raise POParseError("Item table header (S. / Item Code / Item Desc) not found", vendor=VENDOR)

    builder = LineBuilder(VENDOR, uploaded_by)
    stated: dict = {}
    # Header spans two rows ("S." above "No"); items start after both
    for i in range(table_at + 2, len(rows)):
        row = rows[i]
        if is_blank(row):
            continue
        if _is_total_row(row):
            stated = {
                "total_taxable_value": _cell(row, COL_TAXABLE),
                "total_amount": _cell(row, COL_LINE_TOTAL),
            }
            break
        if len(row) < MIN_ROW_CELLS:
            continue

        serial = parse_line_number(row[COL_SERIAL])
        if serial is None:
            builder.skip(i, f"non-numeric serial {cell_text(row[COL_SERIAL])!r}")
            continue
        item_code = optional_text(_cell(row, COL_CODE))
        quantity = to_decimal(_cell(row, COL_QTY))
        if not item_code or quantity <= 0:
            builder.skip(i, "no item code or zero quantity")
            continue

        components = [_cell(row, c) for c in (COL_CGST_AMT, COL_SGST_AMT, COL_IGST_AMT, COL_CESS_AMT, COL_ADDITIONAL_CESS)]
        tax = sum((to_decimal(v) for v in components), Decimal(0))
        builder.add(i, {
            "line_number": serial,
            "item_code": item_code,
            "description": cell_text(_cell(row, COL_DESC)).replace("\n", " ") or None,
            "hsn_code": _cell(row, COL_HSN),
            "quantity": _cell(row, COL_QTY),
            "mrp": _cell(row, COL_MRP),
            "cost_price": _cell(row, COL_BASE_COST),
            "taxable_value": _cell(row, COL_TAXABLE),
            "cgst_rate": _cell(row, COL_CGST_RATE),
            "cgst_amount": _cell(row, COL_CGST_AMT),
            "sgst_rate": _cell(row, COL_SGST_RATE),
            "sgst_amount": _cell(row, COL_SGST_AMT),
            "igst_rate": _cell(row, COL_IGST_RATE),
            "igst_amount": _cell(row, COL_IGST_AMT),
            "cess_rate": _cell(row, COL_CESS_RATE),
            "cess_amount": _cell(row, COL_CESS_AMT),
            "additional_cess": _cell(row, COL_ADDITIONAL_CESS),
            "tax_amount": str(tax),
            "total_amount": _cell(row, COL_LINE_TOTAL),
        })

    stated = {k: v for k, v in stated.items() if cell_text(v)}
    return finish_po(VENDOR, header, builder, uploaded_by, stated_totals=stated)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_rows(read_rows(content), uploaded_by)


def sniff(rows: Grid) -> int:
    seen: set[str] = set()
    for row in rows[:HEADER_SCAN_ROWS]:
        for cell in row:
            text = cell_text(cell)
            label = label_of(text)
            if _is_po_number(text):
                seen.add("po number")
            elif label in ("po no", "vendor name") or label in _DATE_LABELS or label.startswith("payment terms"):
                seen.add(label)
    score = len(seen)
    if find_row(rows, _is_table_header) is not None:
        score += 2
    return score
