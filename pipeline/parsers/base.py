"""
Plumbing shared by the vendor parsers.

A parser locates header values and table rows in its own way, then hands
plain dicts to LineBuilder and finish_po(), which validate them into the
vendor's models, recompute header totals from the lines and enforce the
"at least one line" rule.
"""
import logging
from typing import Any, Optional

from pydantic import ValidationError

from models import VENDOR_MODELS, ParsedPO, POLine
from ..errors import POParseError
from ..totals import TOTAL_FIELDS, compute_totals, reconcile_total

logger = logging.getLogger(__name__)


class LineBuilder:
    """Validates raw line dicts for one vendor and counts the rows it drops."""

    def __init__(self, vendor: str, uploaded_by: str):
        self.vendor = vendor
        self.uploaded_by = uploaded_by
        self.line_model = VENDOR_MODELS[vendor][1]
        self.lines: list[POLine] = []
        self.skipped = 0

    def skip(self, row_index: int, reason: str) -> None:
        self.skipped += 1
        logger.warning("%s: skipping row %d (%s)", self.vendor, row_index + 1, reason)

    def add(self, row_index: int, fields: dict) -> Optional[POLine]:
        fields.setdefault("created_by", self.uploaded_by)
        try:
            line = self.line_model(**fields)
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ()))
            self.skip(row_index, f"{where}: {first.get('msg')}")
            return None
        self.lines.append(line)
        return line


def finish_po(
    vendor: str,
    header_fields: dict,
    builder: LineBuilder,
    uploaded_by: str,
    stated_totals: Optional[dict] = None,
) -> ParsedPO:
    """
    Build the ParsedPO for one parsed file.

    Header totals come from compute_totals(lines); *stated_totals* (values
    read from a totals row) are only used through reconcile_total().
    """
    if not builder.lines:
        raise POParseError(
            f"No valid line items found in {vendor} PO "
            f"({builder.skipped} row(s) skipped)",
            vendor=vendor,
        )

    totals = compute_totals(builder.lines)
    stated_totals = stated_totals or {}
    stated_qty = stated_totals.get("total_quantity")
    if stated_qty is not None and int(stated_qty) != totals["total_quantity"]:
        logger.warning(
            "%s total_quantity mismatch: computed %d, file states %s",
            vendor, totals["total_quantity"], stated_qty,
        )
    for name in TOTAL_FIELDS:
        if name in stated_totals:
            totals[name] = reconcile_total(totals[name], stated_totals[name], name)

    header_model = VENDOR_MODELS[vendor][0]
    fields = {**header_fields, **totals}
    fields.setdefault("created_by", uploaded_by)
    fields.setdefault("uploaded_by", uploaded_by)
    try:
        header = header_model(**fields)
    except ValidationError as exc:
        raise POParseError(f"Invalid {vendor} PO header: {exc}", vendor=vendor) from exc

    logger.info(
        "Parsed %s PO %s: %d line(s), %d skipped",
        vendor, header.po_number, len(builder.lines), builder.skipped,
    )
    return ParsedPO(header=header, lines=builder.lines, skipped_lines=builder.skipped)


def combined_pair(value: Any) -> tuple[Any, Any]:
    """Split a two-line cell such as '18\\n0' (IGST / cess) into its parts."""
    if value is None:
        return None, None
    parts = str(value).splitlines()
    first = parts[0].strip() if parts else None
    second = parts[1].strip() if len(parts) > 1 else None
    return first or None, second or None
