"""
Generic parser for "form + table" XLSX purchase orders.

BigBasket, Zomato (Hyperpure) and Dealshare all send a sheet with label
cells at the top ("PO Number", "PO Date", "Vendor Name" ...), a line-item
table with a named header row, and a few totals rows underneath.  They only
differ in wording, so each vendor module describes its layout with a
LabelledLayout and this module does the scanning.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from models import ParsedPO
from ..errors import POParseError
from ..normalize import cell_text, label_of, optional_text, parse_date, parse_int, parse_line_number
from ..workbook import ColumnMap, Grid, count_labels, is_blank, labelled_value, read_rows
from .base import LineBuilder, finish_po

logger = logging.getLogger(__name__)

TOTAL_PREFIXES = ("total", "grand total", "net amount", "sub total", "subtotal")


@dataclass
class LabelledLayout:
    vendor: str
    label: str                                   # display name used in messages
    po_number_labels: tuple[str, ...]
    # header field -> candidate label texts
    header_labels: dict[str, tuple[str, ...]]
    date_fields: tuple[str, ...]
    # column names that identify the line-item header row
    table_columns: tuple[str, ...]
    # line field -> candidate column names
    line_columns: dict[str, tuple[str, ...]]
    # header total field -> candidate label texts in the totals rows
    total_labels: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def all_labels(self) -> list[str]:
        labels = list(self.po_number_labels)
        for names in self.header_labels.values():
            labels.extend(names)
        return labels


def _not_label(layout: LabelledLayout):
    known = {label_of(l) for l in layout.all_labels()}

    def accept(text: str) -> bool:
        return label_of(text) not in known

    return accept


def _find_table(rows: Grid, layout: LabelledLayout) -> Optional[tuple[int, ColumnMap]]:
    for i, row in enumerate(rows):
        if is_blank(row):
            continue
        columns = ColumnMap(row)
        if all(columns.has(name) for name in layout.table_columns):
            return i, columns
    return None


def _read_header(rows: Grid, layout: LabelledLayout, limit: int) -> dict:
    accept = _not_label(layout)
    fields: dict[str, Any] = {}
    po_number = labelled_value(rows, layout.po_number_labels, limit=limit, accept=accept)
    if po_number is not None:
        fields["po_number"] = cell_text(po_number)
    for name, labels in layout.header_labels.items():
        value = labelled_value(rows, labels, limit=limit, accept=accept)
        if value is None:
            continue
        fields[name] = parse_date(value) if name in layout.date_fields else optional_text(value)
    return fields


def _is_totals_row(row: list) -> bool:
    first = next((label_of(c) for c in row if cell_text(c)), "")
    return first.startswith(TOTAL_PREFIXES)


def _read_stated_totals(rows: Grid, layout: LabelledLayout) -> dict:
    stated: dict[str, Any] = {}
    for name, labels in layout.total_labels.items():
        value = labelled_value(rows, labels)
        if value is None:
            continue
        if name == "total_quantity":
            quantity = parse_int(value)
            if quantity is not None:
                stated[name] = quantity
        else:
            stated[name] = value
    return stated


def parse_layout(rows: Grid, layout: LabelledLayout, uploaded_by: str = "system") -> ParsedPO:
    found = _find_table(rows, layout)
    header_limit = found[0] if found else len(rows)
    header = _read_header(rows, layout, header_limit)
    if not header.get("po_number"):
        raise POParseError(f"No PO number found in {layout.label} PO", vendor=layout.vendor)
    if found is None:
        raise POParseError(
            f"{layout.label} line-item table ({', '.join(layout.table_columns)}) not found",
            vendor=layout.vendor,
        )
    table_at, columns = found

    builder = LineBuilder(layout.vendor, uploaded_by)
    table_end = len(rows)
    for i in range(table_at + 1, len(rows)):
        row = rows[i]
        if is_blank(row) or _is_totals_row(row):
            table_end = i
            break

        fields = {name: columns.get(row, *names) for name, names in layout.line_columns.items()}
        raw_number = fields.pop("line_number", None)
        if cell_text(raw_number):
            line_number = parse_line_number(raw_number)
            if line_number is None:
                builder.skip(i, f"non-numeric line number {cell_text(raw_number)!r}")
                continue
        else:
            line_number = len(builder.lines) + 1
        for key in ("item_code", "description", "uom"):
            if key in fields:
                fields[key] = optional_text(fields[key])
        builder.add(i, {"line_number": line_number, **fields})

    stated = _read_stated_totals(rows[table_end:], layout)
    return finish_po(layout.vendor, header, builder, uploaded_by, stated_totals=stated)


def parse_content(content: bytes | str, layout: LabelledLayout, uploaded_by: str = "system") -> ParsedPO:
    return parse_layout(read_rows(content), layout, uploaded_by)


def sniff_layout(rows: Grid, layout: LabelledLayout) -> int:
    score = count_labels(rows, layout.all_labels())
    if _find_table(rows, layout) is not None:
        score += 2
    return score
