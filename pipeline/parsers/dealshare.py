"""Dealshare PO parser (XLSX form with a named-column item table)."""
from models import ParsedPO
from ..workbook import Grid
from .labelled import LabelledLayout, parse_content, parse_layout, sniff_layout

LAYOUT = LabelledLayout(
    vendor="dealshare",
    label="Dealshare",
    po_number_labels=("PO No", "PO No.", "PO Number"),
    header_labels={
        "order_date": ("PO Date",),
        "expiry_date": ("PO Expiry Date", "PO Expiry"),
        "delivery_date": ("Delivery Date",),
        "supplier_name": ("Vendor Name", "Supplier Name"),
        "supplier_gstin": ("Vendor GSTIN", "Supplier GSTIN"),
        "supplier_address": ("Vendor Address", "Supplier Address"),
        "delivery_address": ("Delivery Address", "Warehouse Address"),
        "payment_terms": ("Payment Terms",),
    },
    date_fields=("order_date", "expiry_date", "delivery_date"),
    table_columns=("SKU", "Product Name", "Qty"),
    line_columns={
        "line_number": ("Sr. No", "Sr No", "S.No"),
        "item_code": ("SKU",),
        "description": ("Product Name",),
        "hsn_code": ("HSN Code", "HSN"),
        "ean": ("EAN",),
        "quantity": ("Qty",),
        "mrp": ("MRP",),
        "cost_price": ("Buying Price", "Unit Cost"),
        "taxable_value": ("Taxable Amount",),
        "cgst_rate": ("CGST %",),
        "sgst_rate": ("SGST %",),
        "igst_rate": ("IGST %",),
        "cess_rate": ("Cess %",),
        "tax_amount": ("Tax Amount",),
        "total_amount": ("Total Amount",),
    },
    total_labels={
        "total_quantity": ("Total Qty", "Total Quantity"),
        "total_amount": ("Net amount", "Grand Total"),
    },
)


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    return parse_layout(rows, LAYOUT, uploaded_by)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_content(content, LAYOUT, uploaded_by)


def sniff(rows: Grid) -> int:
    return sniff_layout(rows, LAYOUT)
