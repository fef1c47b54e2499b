"""
Header totals derived from line items.

Header totals are always recomputed from the lines; a totals row in the
source file is only used as a cross-check (see reconcile_total).
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from .normalize import parse_decimal

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")
_TAX_COMPONENTS = ("cgst_amount", "sgst_amount", "igst_amount", "cess_amount")

# Header money totals that a totals row (or an approved preview) may state
TOTAL_FIELDS = ("total_taxable_value", "total_tax_amount", "total_amount")


def _get(line: Any, name: str) -> Any:
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


def to_decimal(raw: Any) -> Decimal:
    """Decimal value of a cell; unparseable or empty counts as zero."""
    text = parse_decimal(raw)
    return Decimal(text) if text is not None else Decimal(0)


def sum_decimals(values: Iterable[Any]) -> Decimal:
    total = Decimal(0)
    for value in values:
        total += to_decimal(value)
    return total


def format_amount(value: Any) -> str:
    """Two-decimal string: 177 -> '177.00'."""
    if not isinstance(value, Decimal):
        value = to_decimal(value)
    return str(value.quantize(_TWO_PLACES))


def line_tax(line: Any) -> Decimal:
    """
    Tax on one line: the explicit tax_amount when present, otherwise the
    sum of its CGST/SGST/IGST/cess components.
    """
    explicit = parse_decimal(_get(line, "tax_amount"))
    if explicit is not None:
        return Decimal(explicit)
    return sum_decimals(_get(line, name) for name in _TAX_COMPONENTS)


def compute_totals(lines: Iterable[Any]) -> dict:
    """
    Aggregate header totals from *lines* (models or dicts).

    Returns total_quantity (int) and total_taxable_value, total_tax_amount,
    total_amount as 2-decimal strings.
    """
    quantity = 0
    taxable = tax = amount = Decimal(0)
    for line in lines:
        quantity += int(_get(line, "quantity") or 0)
        taxable += to_decimal(_get(line, "taxable_value"))
        tax += line_tax(line)
        amount += to_decimal(_get(line, "total_amount"))
    return {
        "total_quantity": quantity,
        "total_taxable_value": format_amount(taxable),
        "total_tax_amount": format_amount(tax),
        "total_amount": format_amount(amount),
    }


def reconcile_total(computed: Any, stated: Any, field: str) -> str:
    """
    Cross-check a computed total against a totals row from the file.

    The computed value wins; the stated one is used only when the lines
    summed to zero but the file states a non-zero total.
    """
    computed_value = to_decimal(computed)
    stated_text = parse_decimal(stated)
    if stated_text is None:
        return format_amount(computed_value)

    stated_value = Decimal(stated_text)
    if computed_value == 0 and stated_value != 0:
        logger.info("%s: lines sum to zero, using stated total %s", field, stated_value)
        return format_amount(stated_value)
    if abs(computed_value - stated_value) > _TWO_PLACES:
        logger.warning(
            "%s mismatch: computed %s, file states %s (keeping computed)",
            field, format_amount(computed_value), format_amount(stated_value),
        )
    return format_amount(computed_value)


def synthetic_po_number(prefix: str, now: Optional[datetime] = None) -> str:
    """Placeholder PO number for files that carry none: 'ZP_20250804103000'."""
    now = now or datetime.now()
    return f"{prefix}_{now.strftime('%Y%m%d%H%M%S')}"
