"""
Unit tests for spreadsheet loading, cell location and column resolution.
"""
import pytest

from pipeline.errors import POParseError
from pipeline.workbook import (
    ColumnMap,
    columnar,
    count_labels,
    labelled_value,
    normalise_header,
    read_rows,
    value_after,
)


@pytest.mark.unit
class TestReadRows:
    """Tests for read_rows format sniffing."""

    def test_csv_with_bom_and_trailing_cells(self):
        """Test a UTF-8 BOM is dropped and trailing empty cells are trimmed."""
        rows = read_rows("\ufeffa,b,,\n1,2,3\n".encode("utf-8"))
        assert rows == [["a", "b"], ["1", "2", "3"]]

    def test_cp1252_fallback(self):
        """Test non-UTF-8 text still decodes."""
        rows = read_rows("name\nCaf\xe9\n".encode("cp1252"))
        assert rows[1] == ["Café"]

    def test_xlsx(self, to_xlsx):
        """Test the first sheet of an XLSX workbook is read with native values."""
        rows = read_rows(to_xlsx([["PO Number", "BB-1"], [1, 2.5, None]]))
        assert rows == [["PO Number", "BB-1"], [1, 2.5]]

    def test_spreadsheet_xml(self, to_spreadsheet_xml):
        """Test Excel 2003 XML numbers become floats and strings stay text."""
        rows = read_rows(to_spreadsheet_xml([["PO No :", None, "SOTY-1"], [1, "x"]]))
        assert rows[0] == ["PO No :", None, "SOTY-1"]
        assert rows[1] == [1.0, "x"]

    def test_spreadsheet_xml_honours_indexes(self):
        """Test ss:Index on rows and cells leaves gaps where Excel skipped them."""
        content = (
            '<?xml version="1.0"?>'
            '<Workbook xmlns="urn:schemas-microsoft-com:office:spreadsheet" '
            'xmlns:ss="urn:schemas-microsoft-com:office:spreadsheet">'
            '<Worksheet ss:Name="S"><Table>'
            '<Row><Cell ss:MergeAcross="1"><Data ss:Type="String">A</Data></Cell>'
            '<Cell><Data ss:Type="String">B</Data></Cell></Row>'
            '<Row ss:Index="3"><Cell ss:Index="2"><Data ss:Type="Number">5</Data></Cell></Row>'
            '</Table></Worksheet></Workbook>'
        ).encode("utf-8")
        assert read_rows(content) == [["A", None, "B"], [], [None, 5.0]]

    def test_legacy_xls_rejected(self):
        """Test BIFF .xls files raise a parse error naming the file."""
        with pytest.raises(POParseError, match="old.xls"):
            read_rows(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64, "old.xls")

    def test_corrupt_xlsx(self):
        """Test a zip that is not a workbook raises a parse error."""
        with pytest.raises(POParseError):
            read_rows(b"PK\x03\x04not really a zip")


@pytest.mark.unit
class TestLocating:
    """Tests for label and value lookup helpers."""

    def test_value_after_skips_gaps_and_rejected_cells(self):
        """Test the first accepted non-empty cell to the right is returned."""
        row = ["PO Date :", None, "", "Vendor Name :", "04-08-2025"]
        assert value_after(row, 0) == "Vendor Name :"
        assert value_after(row, 0, accept=lambda t: not t.endswith(":")) == "04-08-2025"
        assert value_after(row, 0, max_gap=2) is None

    def test_labelled_value_same_row_or_below(self):
        """Test a label's value is taken from its row, or the cell below."""
        rows = [
            ["PO Number", "BB-1"],
            ["Supplier Name"],
            ["Acme Foods"],
        ]
        assert labelled_value(rows, ["PO No", "PO Number"]) == "BB-1"
        assert labelled_value(rows, ["Supplier Name"]) == "Acme Foods"
        assert labelled_value(rows, ["Missing"]) is None

    def test_count_labels(self):
        """Test each distinct label is counted once."""
        rows = [["PO No :", "X", "PO Date"], ["PO No"]]
        assert count_labels(rows, ["PO No", "PO Date", "Vendor Name"]) == 2


@pytest.mark.unit
class TestColumnMap:
    """Tests for header resolution."""

    def test_normalise_header(self):
        """Test currency markers and punctuation are folded away."""
        assert normalise_header("Base Cost Price (₹)") == "base cost price"
        assert normalise_header("IGST (%) cess (%)") == "igst % cess %"
        assert normalise_header("po_number") == "po number"

    def test_exact_match_wins(self):
        """Test exact normalised matches resolve to the column position."""
        columns = ColumnMap(["PO No.", "PO Qty", "Total Value"])
        assert columns.index("PO No") == 0
        assert columns.index("Quantity", "PO Qty") == 1
        assert columns.get(["ZP-1", "10", "100"], "Total Value") == "100"

    def test_fuzzy_match_absorbs_typos(self):
        """Test a near-identical header is accepted."""
        columns = ColumnMap(["Article Nme", "Quantity"])
        assert columns.index("Article Name") == 0

    def test_similar_tax_columns_do_not_collide(self):
        """Test cgst_value is not mistaken for sgst_value."""
        columns = ColumnMap(["cgst_value"])
        assert not columns.has("sgst_value")

    def test_get_beyond_short_row(self):
        """Test a column past the end of a trimmed row reads as None."""
        columns = ColumnMap(["a", "b", "c"])
        assert columns.get(["1"], "c") is None

    def test_columnar_drops_blank_rows(self):
        """Test the first non-blank row is the header and blank data rows vanish."""
        columns, data = columnar([[], ["a", "b"], ["1", "2"], [], ["3"]])
        assert columns.headers == ["a", "b"]
        assert data == [["1", "2"], ["3"]]
