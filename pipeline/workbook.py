"""
Spreadsheet loading and cell-location helpers.

read_rows() turns an uploaded file into a plain grid (list of rows, each a
list of cell values) regardless of whether the vendor sent CSV, XLSX or the
Excel 2003 XML variant.  The parsers then locate header labels and the
line-item table inside that grid with the small helpers below.
"""
import csv
import io
import logging
import re
from typing import Any, Callable, Iterable, Optional, Sequence
from xml.etree import ElementTree

from openpyxl import load_workbook
from rapidfuzz import fuzz

from .errors import POParseError
from .normalize import cell_text, label_of

logger = logging.getLogger(__name__)

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
SPREADSHEET_NS = "urn:schemas-microsoft-com:office:spreadsheet"
_SS = f"{{{SPREADSHEET_NS}}}"

# Minimum rapidfuzz ratio for a header to count as the same column;
# "cgst value" vs "sgst value" scores exactly 90 and must not match
COLUMN_FUZZY_THRESHOLD = 92

Row = list
Grid = list[list]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def decode_text(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("File is not valid UTF-8, decoding as cp1252")
        return content.decode("cp1252", errors="replace")


def read_rows(content: bytes | str, filename: Optional[str] = None) -> Grid:
    """
    Load the first sheet of an uploaded file as a grid of cell values.

    Format is sniffed from the bytes, not the filename: XLSX (zip),
    Excel 2003 XML (SpreadsheetML), otherwise delimited text.  Trailing
    empty cells are trimmed from every row.
    """
    if isinstance(content, str):
        return _read_csv(content)

    if content.startswith(XLSX_MAGIC):
        return _read_xlsx(content)
    if content.startswith(XLS_MAGIC):
        raise POParseError(
            f"Legacy .xls workbooks are not supported ({filename or 'upload'}); "
            "save the file as .xlsx or .csv"
        )
    head = content[:4096].decode("utf-8", errors="ignore")
    if "<Workbook" in head and SPREADSHEET_NS in head:
        return _read_spreadsheet_xml(content)
    return _read_csv(decode_text(content))


def _trim(row: Iterable[Any]) -> Row:
    cells = list(row)
    while cells and cell_text(cells[-1]) == "":
        cells.pop()
    return cells


def _read_csv(text: str) -> Grid:
    reader = csv.reader(io.StringIO(text))
    return [_trim(row) for row in reader]


def _read_xlsx(content: bytes) -> Grid:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise POParseError(f"Unreadable workbook: {exc}") from exc
    try:
        sheet = workbook.worksheets[0]
        return [_trim(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _spreadsheet_value(data: Optional[ElementTree.Element]) -> Any:
    if data is None:
        return None
    text = "".join(data.itertext())
    kind = data.get(f"{_SS}Type")
    if kind == "Number":
        try:
            return float(text)
        except ValueError:
            return text
    return text


def _read_spreadsheet_xml(content: bytes) -> Grid:
    """Read the first worksheet of an Excel 2003 XML (SpreadsheetML) file."""
    try:
        root = ElementTree.fromstring(content)
    except ElementTree.ParseError as exc:
        raise POParseError(f"Unreadable Excel XML workbook: {exc}") from exc

    table = root.find(f"{_SS}Worksheet/{_SS}Table")
    if table is None:
        raise POParseError("Excel XML workbook has no worksheet table")

    grid: Grid = []
    for row_el in table.findall(f"{_SS}Row"):
        row_index = row_el.get(f"{_SS}Index")
        if row_index:
            while len(grid) < int(row_index) - 1:
                grid.append([])
        cells: Row = []
        for cell in row_el.findall(f"{_SS}Cell"):
            cell_index = cell.get(f"{_SS}Index")
            if cell_index:
                while len(cells) < int(cell_index) - 1:
                    cells.append(None)
            cells.append(_spreadsheet_value(cell.find(f"{_SS}Data")))
            merged = int(cell.get(f"{_SS}MergeAcross") or 0)
            cells.extend([None] * merged)
        grid.append(_trim(cells))
    return grid


# ---------------------------------------------------------------------------
# Locating things inside a grid
# ---------------------------------------------------------------------------

def is_blank(row: Optional[Sequence[Any]]) -> bool:
    return not row or all(cell_text(c) == "" for c in row)


def row_labels(row: Sequence[Any]) -> list[str]:
    return [label_of(c) for c in row]


def find_row(
    rows: Grid,
    predicate: Callable[[Row], bool],
    start: int = 0,
    limit: Optional[int] = None,
) -> Optional[int]:
    """Index of the first row (from *start*, at most *limit* rows) matching *predicate*."""
    stop = len(rows) if limit is None else min(len(rows), start + limit)
    for i in range(start, stop):
        if rows[i] and predicate(rows[i]):
            return i
    return None


def value_after(
    row: Sequence[Any],
    index: int,
    max_gap: int = 10,
    accept: Optional[Callable[[str], bool]] = None,
) -> Optional[Any]:
    """
    Return the first non-empty cell to the right of *index* (within
    *max_gap* cells) that *accept* allows, or None.
    """
    for k in range(index + 1, min(len(row), index + 1 + max_gap)):
        text = cell_text(row[k])
        if text and (accept is None or accept(text)):
            return row[k]
    return None


def labelled_value(
    rows: Grid,
    labels: Iterable[str],
    limit: Optional[int] = None,
    accept: Optional[Callable[[str], bool]] = None,
) -> Optional[Any]:
    """
    Find the first cell whose normalised label is one of *labels* and
    return the value next to it (same row, or the cell below when the
    row has nothing to its right).
    """
    wanted = {label_of(label) for label in labels}
    stop = len(rows) if limit is None else min(len(rows), limit)
    for i in range(stop):
        row = rows[i]
        for j, cell in enumerate(row):
            if label_of(cell) not in wanted:
                continue
            value = value_after(row, j, accept=accept)
            if value is not None:
                return value
            if i + 1 < len(rows) and j < len(rows[i + 1]):
                below = rows[i + 1][j]
                if cell_text(below) and label_of(below) not in wanted:
                    return below
    return None


def count_labels(rows: Grid, labels: Iterable[str], limit: int = 60) -> int:
    """How many of *labels* appear anywhere in the first *limit* rows."""
    wanted = {label_of(label) for label in labels}
    seen: set[str] = set()
    for row in rows[:limit]:
        for cell in row:
            label = label_of(cell)
            if label in wanted:
                seen.add(label)
    return len(seen)


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

_CURRENCY = re.compile(r"\(₹\)|₹|\(rs\.?\)|\(inr\)")
_HEADER_JUNK = re.compile(r"[^a-z0-9%#/]+")


def normalise_header(name: Any) -> str:
    text = _CURRENCY.sub("", cell_text(name).lower())
    return _HEADER_JUNK.sub(" ", text).strip()


class ColumnMap:
    """
    Resolves vendor column names to positions in a header row.

    Exact (normalised) matches win; otherwise the closest header by
    rapidfuzz ratio is accepted when it scores at least
    COLUMN_FUZZY_THRESHOLD, which absorbs small spelling and punctuation
    drift between export versions ("PO No." vs "PO No").
    """

    def __init__(self, headers: Sequence[Any], threshold: int = COLUMN_FUZZY_THRESHOLD):
        self.headers = [cell_text(h) for h in headers]
        self.threshold = threshold
        self._normalised = [normalise_header(h) for h in headers]
        self._cache: dict[tuple[str, ...], Optional[int]] = {}

    def index(self, *candidates: str) -> Optional[int]:
        if candidates in self._cache:
            return self._cache[candidates]
        result = self._resolve(candidates)
        self._cache[candidates] = result
        return result

    def _resolve(self, candidates: tuple[str, ...]) -> Optional[int]:
        wanted = [normalise_header(c) for c in candidates]
        for name in wanted:
            if name in self._normalised:
                return self._normalised.index(name)

        best_score, best_index = 0.0, None
        for name in wanted:
            for i, have in enumerate(self._normalised):
                if not have:
                    continue
                score = fuzz.ratio(name, have)
                if score > best_score:
                    best_score, best_index = score, i
        if best_index is not None and best_score >= self.threshold:
            logger.debug(
                "Column %r fuzzy-matched to %r (score=%.0f)",
                candidates[0], self.headers[best_index], best_score,
            )
            return best_index
        return None

    def has(self, *candidates: str) -> bool:
        return self.index(*candidates) is not None

    def get(self, row: Sequence[Any], *candidates: str) -> Any:
        idx = self.index(*candidates)
        if idx is None or idx >= len(row):
            return None
        return row[idx]


def columnar(rows: Grid) -> tuple[ColumnMap, Grid]:
    """
    Split a header-row file into (ColumnMap, data rows).

    The first non-blank row is the header; blank rows below it are dropped.
    """
    header_index = find_row(rows, lambda r: not is_blank(r))
    if header_index is None:
        return ColumnMap([]), []
    data = [row for row in rows[header_index + 1:] if not is_blank(row)]
    return ColumnMap(rows[header_index]), data
