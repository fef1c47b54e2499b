"""BigBasket PO parser (XLSX form with a named-column item table)."""
from models import ParsedPO
from ..workbook import Grid
from .labelled import LabelledLayout, parse_content, parse_layout, sniff_layout

LAYOUT = LabelledLayout(
    vendor="bigbasket",
    label="BigBasket",
    po_number_labels=("PO Number", "PO No", "PO No."),
    header_labels={
        "order_date": ("PO Date", "Order Date"),
        "expiry_date": ("PO Expiry Date", "Expiry Date"),
        "delivery_date": ("Delivery Date", "Expected Delivery Date"),
        "supplier_name": ("Supplier Name", "Vendor Name"),
        "supplier_gstin": ("Supplier GSTIN", "Vendor GSTIN"),
        "supplier_address": ("Supplier Address", "Vendor Address"),
        "delivery_address": ("Delivery Address", "Ship To Address"),
    },
    date_fields=("order_date", "expiry_date", "delivery_date"),
    table_columns=("SKU Code", "Description", "Quantity"),
    line_columns={
        "line_number": ("S.No", "S. No.", "Sr. No."),
        "item_code": ("SKU Code",),
        "hsn_code": ("HSN Code",),
        "ean": ("EAN Code", "EAN"),
        "description": ("Description",),
        "quantity": ("Quantity",),
        "mrp": ("MRP",),
        "cost_price": ("Basic Cost", "Base Cost"),
        "taxable_value": ("Taxable Value",),
        "cgst_rate": ("CGST %",),
        "cgst_amount": ("CGST Amount",),
        "sgst_rate": ("SGST %",),
        "sgst_amount": ("SGST Amount",),
        "igst_rate": ("IGST %",),
        "igst_amount": ("IGST Amount",),
        "cess_rate": ("Cess %",),
        "cess_amount": ("Cess Amount",),
        "total_amount": ("Total Value", "Total Amount"),
    },
    total_labels={
        "total_quantity": ("Total Quantity",),
        "total_amount": ("Net amount", "Grand Total"),
    },
)


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    return parse_layout(rows, LAYOUT, uploaded_by)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_content(content, LAYOUT, uploaded_by)


def sniff(rows: Grid) -> int:
    return sniff_layout(rows, LAYOUT)
