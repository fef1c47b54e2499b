"""
Vendor detection for uploaded PO files.

Order of precedence:

  1. an explicit platform chosen by the user
  2. a vendor keyword in the filename ("zepto_po_0804.csv")
  3. content sniffing: every parser scores how many of its layout
     sentinels the grid contains, and candidates are tried from the best
     score down (ties keep registry order); the first one that parses wins.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from models import Detection, ParsedPO
from .errors import POParseError
from .parsers import bigbasket, blinkit, citymall, dealshare, flipkart, swiggy, zepto, zomato
from .workbook import Grid, read_rows

logger = logging.getLogger(__name__)

ParseResult = Union[ParsedPO, list[ParsedPO]]

# What a parser raises on a grid laid out for some other vendor
REJECTED = (POParseError, ValueError, IndexError, KeyError, TypeError, ArithmeticError)


@dataclass(frozen=True)
class VendorSpec:
    key: str
    label: str
    keywords: tuple[str, ...]            # lower-case filename substrings
    parse_rows: Callable[[Grid, str], ParseResult]
    sniff: Callable[[Grid], int]
    multi_po: bool = False


VENDORS: dict[str, VendorSpec] = {
    spec.key: spec
    for spec in (
        VendorSpec("flipkart", "Flipkart Grocery", ("flipkart", "grocery"), flipkart.parse_rows, flipkart.sniff),
        VendorSpec("zepto", "Zepto", ("zepto",), zepto.parse_rows, zepto.sniff),
        VendorSpec("citymall", "City Mall", ("city", "mall"), citymall.parse_rows, citymall.sniff),
        VendorSpec("blinkit", "Blinkit", ("blinkit",), blinkit.parse_rows, blinkit.sniff, multi_po=True),
        VendorSpec("swiggy", "Swiggy Instamart", ("swiggy", "soty"), swiggy.parse_rows, swiggy.sniff),
        VendorSpec("bigbasket", "BigBasket", ("bigbasket",), bigbasket.parse_rows, bigbasket.sniff),
        VendorSpec("zomato", "Zomato Hyperpure", ("zomato", "hyperpure"), zomato.parse_rows, zomato.sniff),
        VendorSpec("dealshare", "Dealshare", ("dealshare",), dealshare.parse_rows, dealshare.sniff),
    )
}


def vendor_from_filename(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    name = filename.lower()
    for spec in VENDORS.values():
        if any(keyword in name for keyword in spec.keywords):
            return spec.key
    return None


def _run(spec: VendorSpec, rows: Grid, uploaded_by: str) -> list[ParsedPO]:
    result = spec.parse_rows(rows, uploaded_by)
    return result if isinstance(result, list) else [result]


def rank_candidates(rows: Grid) -> list[tuple[str, int]]:
    """(vendor, score) pairs, best first; ties keep registry order."""
    scores = [(key, spec.sniff(rows)) for key, spec in VENDORS.items()]
    return sorted(scores, key=lambda pair: -pair[1])


def detect_and_parse(
    content: bytes | str,
    filename: Optional[str] = None,
    uploaded_by: str = "system",
    platform: Optional[str] = None,
) -> Detection:
    """
    Pick the vendor parser for an uploaded file and run it.

    Raises POParseError when the platform is unknown, when the chosen
    parser rejects the file, or when no parser accepts it.
    """
    rows = read_rows(content, filename)

    if platform:
        key = platform.strip().lower()
        if key not in VENDORS:
            raise POParseError(f"Unknown platform: {platform}")
        spec = VENDORS[key]
        return Detection(vendor=key, method="platform", pos=_run(spec, rows, uploaded_by), multi_po=spec.multi_po)

    key = vendor_from_filename(filename)
    if key:
        spec = VENDORS[key]
        logger.info("Detected %s from filename %s", key, filename)
        return Detection(vendor=key, method="filename", pos=_run(spec, rows, uploaded_by), multi_po=spec.multi_po)

    failures: list[str] = []
    for key, score in rank_candidates(rows):
        spec = VENDORS[key]
        try:
            pos = _run(spec, rows, uploaded_by)
        except REJECTED as exc:
            logger.debug("%s parser rejected %s (score=%d): %s", key, filename, score, exc)
            failures.append(f"{key}: {exc}")
            continue
        logger.info("Detected %s from content (score=%d)", key, score)
        return Detection(vendor=key, method="content", pos=pos, multi_po=spec.multi_po)

    logger.warning("No parser accepted %s: %s", filename, "; ".join(failures))
    raise POParseError("Unable to parse file format")
