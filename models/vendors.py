"""
Per-vendor header and line models.

Every vendor shares the POHeader / POLine shape and adds the columns its
export carries.  The `vendor` literal is the discriminator; VENDOR_MODELS
maps a vendor key to its (header, line) pair so stored JSON can be
re-validated into the right variant.
"""
from datetime import date
from typing import Any, List, Literal, Optional

from pydantic import field_validator

from .purchase_order import POHeader, POLine, amount_field, date_field, decimal_field


# ---------------------------------------------------------------------------
# Flipkart Grocery
# ---------------------------------------------------------------------------

class FlipkartHeader(POHeader):
    vendor: Literal["flipkart"] = "flipkart"
    supplier_address: Optional[str] = None
    supplier_contact: Optional[str] = None
    supplier_email: Optional[str] = None
    billed_to_address: Optional[str] = None
    billed_to_gstin: Optional[str] = None
    shipped_to_address: Optional[str] = None
    shipped_to_gstin: Optional[str] = None
    nature_of_supply: Optional[str] = None
    nature_of_transaction: Optional[str] = None
    category: Optional[str] = None
    mode_of_payment: Optional[str] = None
    contract_ref_id: Optional[str] = None
    contract_version: Optional[str] = None
    credit_term: Optional[str] = None


class FlipkartLine(POLine):
    fsn_isbn: Optional[str] = None
    pending_quantity: int = 0
    brand: Optional[str] = None
    type: Optional[str] = None
    vertical: Optional[str] = None
    required_by_date: Optional[date] = None
    igst_amount_per_unit: Optional[str] = None
    sgst_amount_per_unit: Optional[str] = None
    cgst_amount_per_unit: Optional[str] = None
    cess_amount_per_unit: Optional[str] = None

    @field_validator(
        "igst_amount_per_unit", "sgst_amount_per_unit",
        "cgst_amount_per_unit", "cess_amount_per_unit",
        mode="before",
    )
    @classmethod
    def _per_unit(cls, value: Any) -> Optional[str]:
        return decimal_field(value)

    @field_validator("required_by_date", mode="before")
    @classmethod
    def _required_by(cls, value: Any) -> Optional[date]:
        return date_field(value)


# ---------------------------------------------------------------------------
# Zepto
# ---------------------------------------------------------------------------

class ZeptoHeader(POHeader):
    vendor: Literal["zepto"] = "zepto"
    total_cost_value: Optional[str] = None   # sum of cost price x quantity
    unique_brands: List[str] = []

    @field_validator("total_cost_value", mode="before")
    @classmethod
    def _cost(cls, value: Any) -> Optional[str]:
        return amount_field(value)


class ZeptoLine(POLine):
    brand: Optional[str] = None
    sku_id: Optional[str] = None
    sap_id: Optional[str] = None
    asn_qty: int = 0
    grn_qty: int = 0
    remaining_qty: int = 0


# ---------------------------------------------------------------------------
# City Mall
# ---------------------------------------------------------------------------

class CityMallHeader(POHeader):
    vendor: Literal["citymall"] = "citymall"
    total_base_amount: Optional[str] = None
    total_igst_amount: Optional[str] = None
    total_cess_amount: Optional[str] = None
    unique_hsn_codes: List[str] = []

    @field_validator("total_base_amount", "total_igst_amount", "total_cess_amount", mode="before")
    @classmethod
    def _totals(cls, value: Any) -> Optional[str]:
        return amount_field(value)


class CityMallLine(POLine):
    pass


# ---------------------------------------------------------------------------
# Blinkit
# ---------------------------------------------------------------------------

class BlinkitHeader(POHeader):
    vendor: Literal["blinkit"] = "blinkit"


class BlinkitLine(POLine):
    landing_rate: Optional[str] = None
    margin_percent: Optional[str] = None
    additional_cess: Optional[str] = None

    @field_validator("landing_rate", "margin_percent", "additional_cess", mode="before")
    @classmethod
    def _extra_decimals(cls, value: Any) -> Optional[str]:
        return decimal_field(value)


# ---------------------------------------------------------------------------
# Swiggy Instamart
# ---------------------------------------------------------------------------

class SwiggyHeader(POHeader):
    vendor: Literal["swiggy"] = "swiggy"
    po_release_date: Optional[date] = None
    expected_delivery_date: Optional[date] = None
    payment_terms: Optional[str] = None
    vendor_name: Optional[str] = None
    vendor_address: Optional[str] = None
    vendor_gstin: Optional[str] = None

    @field_validator("po_release_date", "expected_delivery_date", mode="before")
    @classmethod
    def _dates(cls, value: Any) -> Optional[date]:
        return date_field(value)


class SwiggyLine(POLine):
    additional_cess: Optional[str] = None

    @field_validator("additional_cess", mode="before")
    @classmethod
    def _additional_cess(cls, value: Any) -> Optional[str]:
        return decimal_field(value)


# ---------------------------------------------------------------------------
# BigBasket, Zomato (Hyperpure), Dealshare
# ---------------------------------------------------------------------------

class BigBasketHeader(POHeader):
    vendor: Literal["bigbasket"] = "bigbasket"
    delivery_date: Optional[date] = None
    supplier_address: Optional[str] = None
    delivery_address: Optional[str] = None

    @field_validator("delivery_date", mode="before")
    @classmethod
    def _delivery(cls, value: Any) -> Optional[date]:
        return date_field(value)


class BigBasketLine(POLine):
    pass


class ZomatoHeader(POHeader):
    vendor: Literal["zomato"] = "zomato"
    delivery_date: Optional[date] = None
    ship_to_address: Optional[str] = None
    payment_terms: Optional[str] = None

    @field_validator("delivery_date", mode="before")
    @classmethod
    def _delivery(cls, value: Any) -> Optional[date]:
        return date_field(value)


class ZomatoLine(POLine):
    pass


class DealshareHeader(POHeader):
    vendor: Literal["dealshare"] = "dealshare"
    delivery_date: Optional[date] = None
    supplier_address: Optional[str] = None
    delivery_address: Optional[str] = None
    payment_terms: Optional[str] = None

    @field_validator("delivery_date", mode="before")
    @classmethod
    def _delivery(cls, value: Any) -> Optional[date]:
        return date_field(value)


class DealshareLine(POLine):
    pass


VENDOR_MODELS: dict[str, tuple[type[POHeader], type[POLine]]] = {
    "flipkart":  (FlipkartHeader, FlipkartLine),
    "zepto":     (ZeptoHeader, ZeptoLine),
    "citymall":  (CityMallHeader, CityMallLine),
    "blinkit":   (BlinkitHeader, BlinkitLine),
    "swiggy":    (SwiggyHeader, SwiggyLine),
    "bigbasket": (BigBasketHeader, BigBasketLine),
    "zomato":    (ZomatoHeader, ZomatoLine),
    "dealshare": (DealshareHeader, DealshareLine),
}
