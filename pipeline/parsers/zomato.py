"""Zomato (Hyperpure) PO parser (XLSX form with a named-column item table)."""
from models import ParsedPO
from ..workbook import Grid
from .labelled import LabelledLayout, parse_content, parse_layout, sniff_layout

LAYOUT = LabelledLayout(
    vendor="zomato",
    label="Zomato",
    po_number_labels=("Purchase Order No", "Purchase Order Number", "PO Number"),
    header_labels={
        "order_date": ("PO Date", "Purchase Order Date"),
        "expiry_date": ("PO Expiry Date", "Expiry Date"),
        "delivery_date": ("Delivery Date", "Expected Delivery Date"),
        "supplier_name": ("Vendor Name", "Supplier Name"),
        "supplier_gstin": ("Vendor GSTIN", "Supplier GSTIN"),
        "ship_to_address": ("Ship To", "Shipping Address"),
        "payment_terms": ("Payment Terms",),
    },
    date_fields=("order_date", "expiry_date", "delivery_date"),
    table_columns=("Product Number", "Product Name", "Quantity Ordered"),
    line_columns={
        "line_number": ("Line No", "S No"),
        "item_code": ("Product Number",),
        "description": ("Product Name",),
        "hsn_code": ("HSN Code",),
        "uom": ("UoM", "Unit"),
        "quantity": ("Quantity Ordered",),
        "cost_price": ("Price Per Unit", "Unit Price"),
        "taxable_value": ("Taxable Amount", "Amount"),
        "cgst_rate": ("CGST Rate",),
        "sgst_rate": ("SGST Rate",),
        "igst_rate": ("IGST Rate",),
        "cess_rate": ("Cess Rate",),
        "tax_amount": ("Tax Amount",),
        "total_amount": ("Line Total", "Total Amount"),
    },
    total_labels={
        "total_quantity": ("Total Quantity",),
        "total_tax_amount": ("Total Tax",),
        "total_amount": ("Grand Total",),
    },
)


def parse_rows(rows: Grid, uploaded_by: str = "system") -> ParsedPO:
    return parse_layout(rows, LAYOUT, uploaded_by)


def parse(content: bytes | str, uploaded_by: str = "system") -> ParsedPO:
    return parse_content(content, LAYOUT, uploaded_by)


def sniff(rows: Grid) -> int:
    return sniff_layout(rows, LAYOUT)
