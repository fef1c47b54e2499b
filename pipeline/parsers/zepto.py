"""
Zepto PO parser (CSV, also accepted as XLSX).

One header row, one PO per file.  The PO number is repeated on every row
("PO No."); files without it get a synthetic ZP_<timestamp> number.
"""
import logging
from decimal import Decimal

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, first_word, optional_text, parse_int
from ..totals import format_amount, synthetic_po_number, to_decimal
from ..workbook import Grid, columnar, read_rows
from .base import LineBuilder, combined_pair, finish_po

logger = logging.getLogger(__name__)

VENDOR = "zepto"
PO_PREFIX = "ZP"

PO_NUMBER = ("PO No.", "PO Number")
ARTICLE_NAME = ("Article Name",)
ARTICLE_ID = ("Article Id",)
QUANTITY = ("PO Qty", "Quantity")
TOTAL = ("Total Value", "Total Amount (₹)", "Total Amount")

# Column names only Zepto exports use
SENTINELS = (PO_NUMBER, ("SKU Id",), ("EAN No.",), ("PO Qty",), ("Brand",), ("ASN Qty",), ("GRN Qty",))


def _or_default(value, default):
    return default if value is None else value


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    columns, data = columnar(rows)
    if not columns.has(*QUANTITY):
        raise POParseError("Zepto PO has no quantity column (PO Qty / Quantity)", vendor=VENDOR)
    if not data:
        raise POParseError("Zepto PO has no data rows", vendor=VENDOR)

    po_number = next(
        (cell_text(columns.get(row, *PO_NUMBER)) for row in data if cell_text(columns.get(row, *PO_NUMBER))),
        None,
    )
    if not po_number:
        po_number = synthetic_po_number(PO_PREFIX)
        logger.warning("Zepto PO has no 'PO No.' column value, using %s", po_number)

    builder = LineBuilder(VENDOR, uploaded_by)
    brands: list[str] = []
    cost_value = Decimal(0)
    for i, row in enumerate(data):
        name = optional_text(columns.get(row, *ARTICLE_NAME))
        article_id = optional_text(columns.get(row, *ARTICLE_ID))
        if name is None and article_id is None and cell_text(row[0]).lower() == "total":
            continue
        quantity = parse_int(columns.get(row, *QUANTITY))
        if quantity is None:
            builder.skip(i, f"unparseable quantity {cell_text(columns.get(row, *QUANTITY))!r}")
            continue

        igst_rate, cess_rate = combined_pair(columns.get(row, "IGST (%) cess (%)"))
        brand = optional_text(columns.get(row, "Brand")) or first_word(name)
        line = builder.add(i, {
            "line_number": len(builder.lines) + 1,
            "item_code": article_id,
            "description": name,
            "brand": brand,
            "sku_id": optional_text(columns.get(row, "SKU Id")),
            "sap_id": article_id,
            "hsn_code": columns.get(row, "HSN Code"),
            "ean": columns.get(row, "EAN No.", "EAN"),
            "quantity": quantity,
            "asn_qty": parse_int(columns.get(row, "ASN Qty")) or 0,
            "grn_qty": parse_int(columns.get(row, "GRN Qty")) or 0,
            "remaining_qty": _or_default(parse_int(columns.get(row, "Remaining Qty")), quantity),
            "cost_price": columns.get(row, "Base Cost Price (₹)", "Cost Price"),
            "mrp": columns.get(row, "MRP (₹)", "MRP"),
            "cgst_rate": columns.get(row, "CGST (%)"),
            "sgst_rate": columns.get(row, "SGST (%)"),
            "igst_rate": igst_rate if igst_rate is not None else columns.get(row, "IGST (%)"),
            "cess_rate": cess_rate,
            "tax_amount": columns.get(row, "Tax Amount (₹)", "Tax Amount"),
            "total_amount": columns.get(row, *TOTAL),
        })
        if line is None:
            continue
        if brand and brand not in brands:
            brands.append(brand)
        cost_value += to_decimal(line.cost_price) * line.quantity

    header = {
        "po_number": po_number,
        "unique_brands": brands,
        "total_cost_value": format_amount(cost_value),
    }
    return finish_po(VENDOR, header, builder, uploaded_by)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_rows(read_rows(content), uploaded_by)


def sniff(rows: Grid) -> int:
    columns, _ = columnar(rows)
    return sum(1 for names in SENTINELS if columns.has(*names))
