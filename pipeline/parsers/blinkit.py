"""
Blinkit PO parser (CSV or XLSX) -- several POs per file.

Rows are line items for any number of POs; they are grouped by the
po_number column in first-seen order and each group becomes its own
ParsedPO.  Rows with a blank po_number are collected under one synthetic
BL_<timestamp> PO rather than rejecting the file.
"""
import logging

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, optional_text
from ..totals import synthetic_po_number
from ..workbook import Grid, columnar, read_rows
from .base import LineBuilder, finish_po

logger = logging.getLogger(__name__)

VENDOR = "blinkit"
PO_PREFIX = "BL"
REQUIRED_COLUMNS = ("po_number", "item_id", "name", "remaining_quantity")
OPTIONAL_SENTINELS = ("po_state", "landing_rate", "margin_percentage", "uom_text", "upc")


def parse_rows(rows: Grid, uploaded_by: str = "system") -> list[ParsedPO]:
    columns, data = columnar(rows)
    missing = [name for name in REQUIRED_COLUMNS if not columns.has(name)]
    if missing:
        raise POParseError(f"Missing required headers: {', '.join(missing)}", vendor=VENDOR)
    if not data:
        raise POParseError("Blinkit file has no data rows", vendor=VENDOR)

    groups: dict[str, list[tuple[int, list]]] = {}
    fallback_number = None
    for i, row in enumerate(data):
        po_number = cell_text(columns.get(row, "po_number"))
        if not po_number:
            if fallback_number is None:
                fallback_number = synthetic_po_number(PO_PREFIX)
                logger.warning("Blinkit rows without po_number grouped under %s", fallback_number)
            po_number = fallback_number
        groups.setdefault(po_number, []).append((i, row))

    pos: list[ParsedPO] = []
    for po_number, group in groups.items():
        builder = LineBuilder(VENDOR, uploaded_by)
        for i, row in group:
            builder.add(i, {
                "line_number": len(builder.lines) + 1,
                "item_code": optional_text(columns.get(row, "item_id")),
                "ean": columns.get(row, "upc"),
                "hsn_code": columns.get(row, "hsn_code"),
                "description": optional_text(columns.get(row, "name")),
                "uom": optional_text(columns.get(row, "uom_text")),
                "quantity": columns.get(row, "remaining_quantity"),
                "cost_price": columns.get(row, "cost_price"),
                "mrp": columns.get(row, "mrp"),
                "cgst_rate": columns.get(row, "cgst_value"),
                "sgst_rate": columns.get(row, "sgst_value"),
                "igst_rate": columns.get(row, "igst_value"),
                "cess_rate": columns.get(row, "cess_value"),
                "tax_amount": columns.get(row, "tax_value"),
                "landing_rate": columns.get(row, "landing_rate"),
                "margin_percent": columns.get(row, "margin_percentage"),
                "total_amount": columns.get(row, "total_amount"),
                "status": optional_text(columns.get(row, "po_state")) or "Active",
            })
        if not builder.lines:
            logger.warning("Blinkit PO %s has no valid lines, dropped", po_number)
            continue
        pos.append(finish_po(VENDOR, {"po_number": po_number}, builder, uploaded_by))

    if not pos:
        raise POParseError("No valid line items found in Blinkit file", vendor=VENDOR)
    logger.info("Blinkit file contained %d PO(s)", len(pos))
    return pos


def parse(content: bytes | str, uploaded_by: str = "system") -> list[ParsedPO]:
    return parse_rows(read_rows(content), uploaded_by)


def sniff(rows: Grid) -> int:
    columns, _ = columnar(rows)
    return sum(1 for name in REQUIRED_COLUMNS + OPTIONAL_SENTINELS if columns.has(name))
