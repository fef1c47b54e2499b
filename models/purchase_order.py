from datetime import date
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator

from pipeline.normalize import parse_date, parse_decimal
from pipeline.totals import format_amount

POStatus = Literal["Open", "Closed", "Cancelled", "Expired", "Duplicate"]
PO_STATUSES = ("Open", "Closed", "Cancelled", "Expired", "Duplicate")

# Decimal-valued columns are stored as canonical strings ("1200.5"), never floats
LINE_DECIMAL_FIELDS = (
    "mrp", "cost_price", "taxable_value",
    "cgst_rate", "cgst_amount", "sgst_rate", "sgst_amount",
    "igst_rate", "igst_amount", "cess_rate", "cess_amount",
    "tax_amount", "total_amount",
)
HEADER_DECIMAL_FIELDS = ("total_taxable_value", "total_tax_amount", "total_amount")


def decimal_field(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return parse_decimal(value)


def amount_field(value: Any) -> Optional[str]:
    """Header money total as a 2-decimal string ('177.00')."""
    text = decimal_field(value)
    return format_amount(text) if text is not None else None


def date_field(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_date(value)


class POLine(BaseModel):
    """
    A single line item on a platform PO.

    Tax components are independent: a line may carry CGST, SGST, IGST and
    cess together even when only one of them is non-zero.
    """
    model_config = ConfigDict(extra="ignore")

    line_number: int = Field(ge=1)
    item_code: Optional[str] = None         # vendor SKU / article / item id
    hsn_code: Optional[str] = None
    ean: Optional[str] = None               # EAN / UPC barcode
    description: Optional[str] = None
    uom: Optional[str] = None
    quantity: int = 0

    mrp: Optional[str] = None
    cost_price: Optional[str] = None        # per-unit base cost
    taxable_value: Optional[str] = None
    cgst_rate: Optional[str] = None
    cgst_amount: Optional[str] = None
    sgst_rate: Optional[str] = None
    sgst_amount: Optional[str] = None
    igst_rate: Optional[str] = None
    igst_amount: Optional[str] = None
    cess_rate: Optional[str] = None
    cess_amount: Optional[str] = None
    tax_amount: Optional[str] = None
    total_amount: Optional[str] = None

    status: str = "Pending"
    created_by: Optional[str] = None

    @field_validator(*LINE_DECIMAL_FIELDS, mode="before")
    @classmethod
    def _decimal(cls, value: Any) -> Optional[str]:
        return decimal_field(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> int:
        text = parse_decimal(value)
        return int(float(text)) if text is not None else 0

    @field_validator("item_code", "hsn_code", "ean", mode="before")
    @classmethod
    def _code(cls, value: Any) -> Optional[str]:
        # Spreadsheet cells hand codes over as floats (8901234567890.0)
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class POHeader(BaseModel):
    """
    Header of a platform PO.

    Totals are derived from the lines (see pipeline.totals.compute_totals);
    any totals row in the source file is only a cross-check.
    """
    model_config = ConfigDict(extra="ignore")

    vendor: str
    po_number: str
    status: POStatus = "Open"
    order_date: Optional[date] = None
    expiry_date: Optional[date] = None

    total_quantity: int = 0
    total_taxable_value: Optional[str] = None
    total_tax_amount: Optional[str] = None
    total_amount: Optional[str] = None

    supplier_name: Optional[str] = None
    supplier_gstin: Optional[str] = None
    created_by: Optional[str] = None
    uploaded_by: Optional[str] = None

    @field_validator(*HEADER_DECIMAL_FIELDS, mode="before")
    @classmethod
    def _decimal(cls, value: Any) -> Optional[str]:
        return amount_field(value)

    @field_validator("order_date", "expiry_date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> Optional[date]:
        return date_field(value)

    @field_validator("po_number", mode="before")
    @classmethod
    def _po_number(cls, value: Any) -> str:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip() if value is not None else ""


class ParsedPO(BaseModel):
    """One PO as produced by a vendor parser or rebuilt by the importer."""
    header: SerializeAsAny[POHeader]
    lines: List[SerializeAsAny[POLine]] = Field(default_factory=list)
    skipped_lines: int = 0                  # malformed rows dropped while parsing

    @property
    def vendor(self) -> str:
        return self.header.vendor

    @property
    def po_number(self) -> str:
        return self.header.po_number

    @property
    def total_items(self) -> int:
        return len(self.lines)
