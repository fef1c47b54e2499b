"""
Flipkart Grocery PO parser (CSV).

Layout: a block of label/value rows at the top (PO#, SUPPLIER NAME,
Billed by, BILLED TO ADDRESS, MODE OF PAYMENT ...), then a line-item table
whose header row starts with "S. no." and contains "HSN/SA Code".  Table
columns are positional (26 of them).
"""
import logging
from typing import Any

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, label_of, optional_text, parse_date, parse_int, parse_line_number
from ..workbook import Grid, find_row, is_blank, read_rows, value_after
from .base import LineBuilder, finish_po

logger = logging.getLogger(__name__)

VENDOR = "flipkart"
HEADER_SCAN_ROWS = 10
MIN_ROW_CELLS = 5
TABLE_TERMINATORS = ("total quantity", "important notification")

# label -> header field, for values sitting in the cell after the label
_LABELLED = {
    "nature of supply": "nature_of_supply",
    "nature of transaction": "nature_of_transaction",
    "po expiry": "expiry_date",
    "category": "category",
    "order date": "order_date",
    "supplier address": "supplier_address",
    "supplier contact": "supplier_contact",
    "email": "supplier_email",
    "contract ref id": "contract_ref_id",
    "contract version": "contract_version",
    "credit term": "credit_term",
}
_MARKERS = {
    "po#", "supplier name", "billed by", "billed to address",
    "shipped to address", "mode of payment", "gstin",
} | set(_LABELLED)

# Positional line-item columns
COL_LINE, COL_HSN, COL_FSN, COL_QTY, COL_PENDING, COL_UOM, COL_TITLE = 0, 1, 2, 3, 4, 5, 6
COL_BRAND, COL_TYPE, COL_EAN, COL_VERTICAL, COL_REQUIRED_BY = 8, 9, 10, 11, 12
COL_MRP, COL_PRICE, COL_TAXABLE = 13, 14, 15
COL_IGST_RATE, COL_IGST_UNIT, COL_SGST_RATE, COL_SGST_UNIT = 16, 17, 18, 19
COL_CGST_RATE, COL_CGST_UNIT, COL_CESS_RATE, COL_CESS_UNIT = 20, 21, 22, 23
COL_TAX, COL_TOTAL = 24, 25


def _is_value(text: str) -> bool:
    return label_of(text) not in _MARKERS


def _cell(row: list, index: int) -> Any:
    return row[index] if index < len(row) else None


def _read_header(rows: Grid) -> dict:
    fields: dict[str, Any] = {}
    for row in rows[:HEADER_SCAN_ROWS]:
        if not row:
            continue
        first = cell_text(row[0])
        first_label = label_of(first)

        if "PURCHASE ORDER #" in first.upper():
            fields["po_number"] = first.split("#", 1)[1].strip()
        elif first_label == "po#" and len(row) > 1 and cell_text(row[1]):
            fields["po_number"] = cell_text(row[1])
        elif first_label == "supplier name" and len(row) > 1:
            fields["supplier_name"] = optional_text(row[1])
        elif first_label == "billed to address":
            fields["billed_to_address"] = optional_text(value_after(row, 0, accept=_is_value))
        elif first_label == "mode of payment":
            fields["mode_of_payment"] = optional_text(value_after(row, 0, accept=_is_value))

        gstins_seen = 0
        for j, cell in enumerate(row):
            label = label_of(cell)
            if label in _LABELLED:
                value = value_after(row, j, max_gap=3, accept=_is_value)
                if value is not None:
                    fields.setdefault(_LABELLED[label], value)
            elif label == "shipped to address":
                fields["shipped_to_address"] = optional_text(value_after(row, j, max_gap=3, accept=_is_value))
            elif label == "gstin":
                value = optional_text(value_after(row, j, max_gap=3, accept=_is_value))
                if first_label == "billed by":
                    fields.setdefault("supplier_gstin", value)
                elif first_label == "billed to address":
                    key = "billed_to_gstin" if gstins_seen == 0 else "shipped_to_gstin"
                    fields.setdefault(key, value)
                    gstins_seen += 1

    for key in ("order_date", "expiry_date"):
        if key in fields:
            fields[key] = parse_date(fields[key])
    for key, value in list(fields.items()):
        if key not in ("order_date", "expiry_date") and value is not None:
            fields[key] = cell_text(value) or None
    return fields


def _is_table_header(row: list) -> bool:
    return label_of(row[0]) == "s. no." and any(cell_text(c) == "HSN/SA Code" for c in row)


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    header = _read_header(rows)
    if not header.get("po_number"):
        raise POParseError("No PO number (PO# / PURCHASE ORDER #) found in Flipkart PO", vendor=VENDOR)

    table_at = find_row(rows, _is_table_header)
    if table_at is None:
        raise POParseError("Line-item table header (S. no. / HSN/SA Code) not found", vendor=VENDOR)

    builder = LineBuilder(VENDOR, uploaded_by)
    for i in range(table_at + 1, len(rows)):
        row = rows[i]
        first = cell_text(row[0]) if row else ""
        if is_blank(row) or not first:
            break
        if any(t in first.lower() for t in TABLE_TERMINATORS):
            break
        if len(row) < MIN_ROW_CELLS:
            builder.skip(i, f"only {len(row)} cells")
            continue
        line_number = parse_line_number(first)
        if line_number is None:
            builder.skip(i, f"non-numeric line number {first!r}")
            continue

        builder.add(i, {
            "line_number": line_number,
            "hsn_code": _cell(row, COL_HSN),
            "fsn_isbn": optional_text(_cell(row, COL_FSN)),
            "item_code": optional_text(_cell(row, COL_FSN)),
            "quantity": _cell(row, COL_QTY),
            "pending_quantity": parse_int(_cell(row, COL_PENDING)) or 0,
            "uom": optional_text(_cell(row, COL_UOM)),
            "description": optional_text(_cell(row, COL_TITLE)),
            "brand": optional_text(_cell(row, COL_BRAND)),
            "type": optional_text(_cell(row, COL_TYPE)),
            "ean": _cell(row, COL_EAN),
            "vertical": optional_text(_cell(row, COL_VERTICAL)),
            "required_by_date": _cell(row, COL_REQUIRED_BY),
            "mrp": _cell(row, COL_MRP),
            "cost_price": _cell(row, COL_PRICE),
            "taxable_value": _cell(row, COL_TAXABLE),
            "igst_rate": _cell(row, COL_IGST_RATE),
            "igst_amount_per_unit": _cell(row, COL_IGST_UNIT),
            "sgst_rate": _cell(row, COL_SGST_RATE),
            "sgst_amount_per_unit": _cell(row, COL_SGST_UNIT),
            "cgst_rate": _cell(row, COL_CGST_RATE),
            "cgst_amount_per_unit": _cell(row, COL_CGST_UNIT),
            "cess_rate": _cell(row, COL_CESS_RATE),
            "cess_amount_per_unit": _cell(row, COL_CESS_UNIT),
            "tax_amount": _cell(row, COL_TAX),
            "total_amount": _cell(row, COL_TOTAL),
        })

    return finish_po(VENDOR, header, builder, uploaded_by)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_rows(read_rows(content), uploaded_by)


def sniff(rows: Grid) -> int:
    """Number of Flipkart layout sentinels present."""
    score = 0
    seen: set[str] = set()
    for row in rows[:HEADER_SCAN_ROWS]:
        if not row:
            continue
        first = cell_text(row[0])
        label = label_of(first)
        if "PURCHASE ORDER #" in first.upper():
            seen.add("purchase order")
        elif label in ("po#", "supplier name", "billed by", "billed to address", "mode of payment"):
            seen.add(label)
    score += len(seen)
    if find_row(rows, _is_table_header) is not None:
        score += 2
    return score
