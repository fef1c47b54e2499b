from .purchase_order import POHeader, POLine, ParsedPO, POStatus, PO_STATUSES
from .vendors import (
    VENDOR_MODELS,
    FlipkartHeader, FlipkartLine,
    ZeptoHeader, ZeptoLine,
    CityMallHeader, CityMallLine,
    BlinkitHeader, BlinkitLine,
    SwiggyHeader, SwiggyLine,
    BigBasketHeader, BigBasketLine,
    ZomatoHeader, ZomatoLine,
    DealshareHeader, DealshareLine,
)
from .result import Detection, ImportOutcome, ImportReport

__all__ = [
    "POHeader", "POLine", "ParsedPO", "POStatus", "PO_STATUSES",
    "VENDOR_MODELS",
    "FlipkartHeader", "FlipkartLine", "ZeptoHeader", "ZeptoLine",
    "CityMallHeader", "CityMallLine", "BlinkitHeader", "BlinkitLine",
    "SwiggyHeader", "SwiggyLine", "BigBasketHeader", "BigBasketLine",
    "ZomatoHeader", "ZomatoLine", "DealshareHeader", "DealshareLine",
    "Detection", "ImportOutcome", "ImportReport",
]
