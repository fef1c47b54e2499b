"""
Vendor-agnostic cell normalisation.

Every parser funnels raw spreadsheet cells through these helpers, so the
rules for what counts as a number or a date live in one place:

  parse_decimal      "₹ 1,200.50" -> "1200.5"   (canonical string, never float)
  parse_int          "10 pcs"     -> 10
  parse_line_number  "3"          -> 3, "3a" -> None
  parse_date         "01-01-49"   -> 2049-01-01, "01-01-50" -> 1950-01-01

None of them raise on bad input; unparseable cells come back as None so
callers can exclude them from totals instead of failing the whole file.
"""
import logging
import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from dateutil import parser as date_parser
from openpyxl.utils.datetime import from_excel

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d.\-]")
_LINE_NUMBER = re.compile(r"^\d+(?:\.0+)?$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2}|\d{4})$")
_WHITESPACE = re.compile(r"\s+")

# 2-digit years below the pivot are 20xx, the rest 19xx
TWO_DIGIT_YEAR_PIVOT = 50

# Plausible Excel serial day numbers (1954 .. 2119)
_EXCEL_SERIAL_RANGE = (20000, 80000)


def _canonical(value: Decimal) -> str:
    if value == 0:
        return "0"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def parse_decimal(raw: Any) -> Optional[str]:
    """
    Return *raw* as a canonical decimal string, or None.

    Everything except digits, '.' and '-' is stripped first, so currency
    symbols, thousands separators and stray whitespace are tolerated.
    The result round-trips: parse_decimal(parse_decimal(x)) == parse_decimal(x).
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, Decimal)):
        value = Decimal(raw)
    elif isinstance(raw, float):
        if math.isnan(raw) or math.isinf(raw):
            return None
        value = Decimal(repr(raw))
    else:
        cleaned = _NON_NUMERIC.sub("", str(raw))
        if not cleaned:
            return None
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None
    if not value.is_finite():
        return None
    return _canonical(value)


def parse_int(raw: Any) -> Optional[int]:
    """Integer part of a numeric cell (truncated), or None."""
    text = parse_decimal(raw)
    if text is None:
        return None
    return int(Decimal(text))


def parse_line_number(raw: Any) -> Optional[int]:
    """Strict positive line number; anything else (text, 0, 2.5) is None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() and raw > 0 else None
    text = str(raw).strip()
    if not _LINE_NUMBER.match(text):
        return None
    number = int(Decimal(text))
    return number if number > 0 else None


def parse_date(raw: Any) -> Optional[date]:
    """
    Parse a vendor date cell.

    Handles native date/datetime cells, Excel serial numbers,
    DD-MM-YY / DD-MM-YYYY (also with '/' or '.'), ISO 8601, and free text
    such as "Aug 4, 2025" (day-first).  Returns None instead of raising.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        low, high = _EXCEL_SERIAL_RANGE
        if low <= raw <= high:
            return from_excel(raw).date()
        return None

    text = str(raw).strip()
    if not text:
        return None

    match = _DAY_MONTH_YEAR.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        if year < 100:
            year += 2000 if year < TWO_DIGIT_YEAR_PIVOT else 1900
        try:
            return date(year, month, day)
        except ValueError:
            logger.debug("Impossible calendar date: %r", text)
            return None

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, OverflowError):
        logger.debug("Unparseable date: %r", text)
        return None


# ---------------------------------------------------------------------------
# Cell text helpers
# ---------------------------------------------------------------------------

def cell_text(value: Any) -> str:
    """Display text of a cell: '' for empty, 10 for 10.0, ISO for dates."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    text = cell_text(value)
    return text or None


def label_of(value: Any) -> str:
    """Normalise a label cell: 'PO Date :' -> 'po date'."""
    text = _WHITESPACE.sub(" ", cell_text(value))
    return text.rstrip(": ").strip().lower()


def split_multiline(value: Any) -> list[str]:
    """Split a multi-line cell ('18\\n0') into stripped parts."""
    return [part.strip() for part in cell_text(value).splitlines()]


def first_word(text: Optional[str]) -> Optional[str]:
    if not text or not text.strip():
        return None
    return text.strip().split()[0]
