"""
City Mall PO parser (CSV, also accepted as XLSX).

Columnar export with a trailing "Total" row.  IGST and cess share a cell,
one value per line: "IGST (%) cess (%)" holds the rates, "IGST (₹) cess"
the amounts.  The export carries no PO number unless a PO Number column
was added, so most files get a synthetic CM_<timestamp> number.
"""
import logging

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, optional_text, parse_int, parse_line_number
from ..totals import format_amount, sum_decimals, synthetic_po_number
from ..workbook import Grid, columnar, read_rows
from .base import LineBuilder, combined_pair, finish_po

logger = logging.getLogger(__name__)

VENDOR = "citymall"
PO_PREFIX = "CM"

SERIAL = ("S.No", "S. No.", "Sr No")
PO_NUMBER = ("PO Number", "PO No.")
SENTINELS = (SERIAL, ("Base Amount (₹)",), ("IGST (₹) cess",), ("Base Cost Price (₹)",))


def _is_total_row(columns, row) -> bool:
    return (
        cell_text(columns.get(row, *SERIAL)) == ""
        and cell_text(columns.get(row, "Article Id")).lower() == "total"
    )


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    columns, data = columnar(rows)
    if not (columns.has("Article Id") and columns.has("Quantity")):
        raise POParseError("City Mall PO needs 'Article Id' and 'Quantity' columns", vendor=VENDOR)

    po_number = next(
        (cell_text(columns.get(row, *PO_NUMBER)) for row in data if cell_text(columns.get(row, *PO_NUMBER))),
        None,
    ) if columns.has(*PO_NUMBER) else None
    if not po_number:
        po_number = synthetic_po_number(PO_PREFIX)
        logger.info("City Mall PO carries no PO number, using %s", po_number)

    builder = LineBuilder(VENDOR, uploaded_by)
    hsn_codes: list[str] = []
    stated: dict = {}
    for i, row in enumerate(data):
        if _is_total_row(columns, row):
            stated = {
                "total_quantity": cell_text(columns.get(row, "Quantity")) or None,
                "total_amount": columns.get(row, "Total Amount (₹)", "Total Amount"),
            }
            stated = {k: v for k, v in stated.items() if v is not None}
            continue

        serial = cell_text(columns.get(row, *SERIAL))
        if serial:
            line_number = parse_line_number(serial)
            if line_number is None:
                builder.skip(i, f"non-numeric S.No {serial!r}")
                continue
        else:
            line_number = len(builder.lines) + 1

        igst_rate, cess_rate = combined_pair(columns.get(row, "IGST (%) cess (%)"))
        igst_amount, cess_amount = combined_pair(columns.get(row, "IGST (₹) cess"))
        line = builder.add(i, {
            "line_number": line_number,
            "item_code": optional_text(columns.get(row, "Article Id")),
            "description": optional_text(columns.get(row, "Article Name")),
            "hsn_code": columns.get(row, "HSN Code"),
            "mrp": columns.get(row, "MRP (₹)", "MRP"),
            "cost_price": columns.get(row, "Base Cost Price (₹)"),
            "quantity": columns.get(row, "Quantity"),
            "taxable_value": columns.get(row, "Base Amount (₹)"),
            "igst_rate": igst_rate,
            "cess_rate": cess_rate,
            "igst_amount": igst_amount,
            "cess_amount": cess_amount,
            "total_amount": columns.get(row, "Total Amount (₹)", "Total Amount"),
        })
        if line is not None and line.hsn_code and line.hsn_code not in hsn_codes:
            hsn_codes.append(line.hsn_code)

    if "total_quantity" in stated:
        quantity = parse_int(stated.pop("total_quantity"))
        if quantity is not None:
            stated["total_quantity"] = quantity

    lines = builder.lines
    header = {
        "po_number": po_number,
        "unique_hsn_codes": hsn_codes,
        "total_base_amount": format_amount(sum_decimals(l.taxable_value for l in lines)),
        "total_igst_amount": format_amount(sum_decimals(l.igst_amount for l in lines)),
        "total_cess_amount": format_amount(sum_decimals(l.cess_amount for l in lines)),
    }
    return finish_po(VENDOR, header, builder, uploaded_by, stated_totals=stated)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_rows(read_rows(content), uploaded_by)


def sniff(rows: Grid) -> int:
    columns, data = columnar(rows)
    score = sum(1 for names in SENTINELS if columns.has(*names))
    if any(_is_total_row(columns, row) for row in data[-3:]):
        score += 1
    return score
