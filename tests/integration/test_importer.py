"""
Integration tests for POImporter against a real SQLite store.
"""
import pytest

from pipeline.detector import detect_and_parse
from pipeline.errors import DuplicatePOError, InvalidPOError
from pipeline.importer import POImporter
from dashboard.services import build_preview


@pytest.fixture
def importer(test_db) -> POImporter:
    return POImporter(test_db)


@pytest.mark.integration
class TestImportPO:
    """Tests for single-PO import."""

    def test_import_recomputes_totals(self, importer, test_db, sample_header, sample_lines):
        """Test the stored header totals come from the lines."""
        header = dict(sample_header, total_amount="999", total_quantity=1)
        po_id = importer.import_po("zepto", header, sample_lines, actor="ops")

        rec = test_db.get_po(po_id)
        assert rec["header"]["total_quantity"] == 14
        assert rec["header"]["total_taxable_value"] == "140.00"
        assert rec["header"]["total_tax_amount"] == "7.00"
        assert rec["header"]["total_amount"] == "147.50"
        assert rec["header"]["order_date"] == "2025-08-04"
        assert rec["header"]["uploaded_by"] == "ops"
        assert [line["line_number"] for line in rec["lines"]] == [1, 2]

    def test_duplicate_rejected(self, importer, test_db, sample_header, sample_lines):
        """Test importing the same PO twice leaves one stored copy."""
        importer.import_po("zepto", sample_header, sample_lines)

        with pytest.raises(DuplicatePOError) as exc_info:
            importer.import_po("zepto", sample_header, sample_lines)

        assert exc_info.value.po_number == "PO-1001"
        assert test_db.count_pos() == 1

    def test_same_number_other_vendor_allowed(self, importer, test_db, sample_header, sample_lines):
        """Test PO numbers are unique per vendor only."""
        importer.import_po("zepto", sample_header, sample_lines)
        importer.import_po("citymall", sample_header, sample_lines)
        assert test_db.count_pos() == 2

    def test_duplicate_detected_at_insert(self, importer, test_db, sample_header, sample_lines, monkeypatch):
        """Test the unique key still reports a duplicate when the pre-check misses it."""
        importer.import_po("zepto", sample_header, sample_lines)
        monkeypatch.setattr(test_db, "get_po_by_number", lambda vendor, po_number: None)

        with pytest.raises(DuplicatePOError):
            importer.import_po("zepto", sample_header, sample_lines)
        assert test_db.get_stats()["total_lines"] == 2

    @pytest.mark.parametrize("vendor,header,lines,message", [
        ("zepto", {}, [{"quantity": 1}], "PO number is not available"),
        ("zepto", {"po_number": "  "}, [{"quantity": 1}], "PO number is not available"),
        ("zepto", {"po_number": "ZP-9"}, [], "no line items"),
        ("amazon", {"po_number": "AM-1"}, [{"quantity": 1}], "Unknown vendor"),
        ("zepto", {"po_number": "ZP-9"}, [{"line_number": "x"}], "line 1"),
    ])
    def test_invalid_payloads(self, importer, test_db, vendor, header, lines, message):
        """Test rejected payloads never reach the database."""
        with pytest.raises(InvalidPOError, match=message):
            importer.import_po(vendor, header, lines)
        assert test_db.count_pos() == 0

    def test_unparseable_date_becomes_none(self, importer, test_db, sample_lines):
        """Test a junk date is dropped instead of failing the import."""
        po_id = importer.import_po("zepto", {"po_number": "ZP-7", "order_date": "soon"}, sample_lines)
        assert test_db.get_po(po_id)["header"]["order_date"] is None

    def test_stated_total_kept_when_lines_have_no_amounts(self, importer, test_db):
        """Test the previewed total from a totals row is the total that gets stored."""
        content = (
            "S.No,Article Id,Article Name,HSN Code,MRP (₹),Base Cost Price (₹),Quantity,"
            "Base Amount (₹),IGST (%) cess (%),IGST (₹) cess,Total Amount (₹)\n"
            "1,CM001,Atta 5kg,1101,250,100,5\n"
            ",Total,,,,,5,,,,500.00\n"
        ).encode("utf-8")
        preview = build_preview(detect_and_parse(content, filename="citymall.csv"))
        assert preview["totalAmount"] == "500.00"

        po_id = importer.import_po("citymall", preview["header"], preview["lines"])
        assert test_db.get_po(po_id)["header"]["total_amount"] == "500.00"

    def test_preview_round_trip(self, importer, test_db, zepto_csv):
        """Test a preview payload imports unchanged."""
        preview = build_preview(detect_and_parse(zepto_csv, filename="zepto.csv"))
        po_id = importer.import_po("zepto", preview["header"], preview["lines"])

        rec = test_db.get_po(po_id)
        assert rec["header"]["total_amount"] == "177.00"
        assert rec["header"]["unique_brands"] == ["Aashirvaad", "Tata", "Fortune"]
        assert len(rec["lines"]) == 3


@pytest.mark.integration
class TestImportBatch:
    """Tests for multi-PO import."""

    def test_partial_failure_continues(self, importer, test_db, sample_lines):
        """Test one bad PO in a batch does not stop the others."""
        importer.import_po("blinkit", {"po_number": "BLK-1"}, sample_lines)
        report = importer.import_batch("blinkit", [
            {"header": {"po_number": "BLK-1"}, "lines": sample_lines},
            {"header": {"po_number": "BLK-2"}, "lines": sample_lines},
            {"header": {"po_number": "BLK-3"}, "lines": sample_lines},
        ])

        assert report.message == "Imported 2 of 3 POs"
        assert [r.status for r in report.results] == ["failed", "success", "success"]
        assert report.results[0].error == "PO already exists"
        assert report.results[1].id is not None
        assert test_db.count_pos(vendor="blinkit") == 3

    def test_invalid_entry_reported(self, importer, sample_lines):
        """Test validation errors are reported per PO."""
        report = importer.import_batch("blinkit", [
            {"header": {"po_number": "BLK-1"}, "lines": []},
            {"header": {"po_number": "BLK-2"}, "lines": sample_lines},
        ])
        assert report.imported == 1
        assert "no line items" in report.results[0].error

    def test_blinkit_preview_batch(self, importer, test_db, blinkit_csv):
        """Test every PO from a Blinkit preview is stored."""
        preview = build_preview(detect_and_parse(blinkit_csv, filename="blinkit.csv"))
        report = importer.import_batch("blinkit", preview["poList"])

        assert report.message == "Imported 2 of 2 POs"
        assert test_db.get_stats()["total_lines"] == 3


@pytest.mark.integration
class TestUpdatePO:
    """Tests for POImporter.update_po."""

    def test_replace_lines(self, importer, sample_header, sample_lines):
        """Test new lines replace the old set and totals follow them."""
        po_id = importer.import_po("zepto", sample_header, sample_lines)

        rec = importer.update_po(po_id, {"supplier_name": "New Supplier"}, [
            {"item_code": "A9", "quantity": 3, "total_amount": "30"},
        ])

        assert rec["header"]["supplier_name"] == "New Supplier"
        assert rec["header"]["po_number"] == "PO-1001"
        assert rec["header"]["total_quantity"] == 3
        assert rec["header"]["total_amount"] == "30.00"
        assert [line["item_code"] for line in rec["lines"]] == ["A9"]

    def test_header_only_keeps_lines(self, importer, sample_header, sample_lines):
        """Test a header-only update keeps the stored lines."""
        po_id = importer.import_po("zepto", sample_header, sample_lines)
        rec = importer.update_po(po_id, {"order_date": "10-08-2025"})

        assert rec["header"]["order_date"] == "2025-08-10"
        assert len(rec["lines"]) == 2
        assert rec["header"]["total_amount"] == "147.50"

    def test_renumber_onto_existing_po(self, importer, sample_header, sample_lines):
        """Test renaming a PO to another stored number is a duplicate."""
        importer.import_po("zepto", sample_header, sample_lines)
        other = importer.import_po("zepto", {"po_number": "PO-2002"}, sample_lines)

        with pytest.raises(DuplicatePOError):
            importer.update_po(other, {"po_number": "PO-1001"})

    def test_missing_po(self, importer):
        """Test updating an unknown id returns None."""
        assert importer.update_po(404, {"po_number": "X"}) is None
