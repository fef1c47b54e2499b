"""
Pytest configuration and shared fixtures for the PO ingestion test suite.
"""
import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator
from xml.sax.saxutils import escape

import pytest
from openpyxl import Workbook

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="po_ingest_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    # Keep a real config/po_settings.json out of the tests
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    config = Config()
    config.output_dir = temp_dir / "output"
    config.db_path = temp_dir / "output" / "po.db"
    config.ensure_output_dir()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from pipeline.database import Database
    return Database(test_config.db_path)


# ---------------------------------------------------------------------------
# Sample vendor files
# ---------------------------------------------------------------------------

ZEPTO_CSV = """PO No.,SKU Id,Article Id,Article Name,EAN No.,HSN Code,PO Qty,Base Cost Price (₹),MRP (₹),Total Value
ZP-500,SKU-1,A1001,Aashirvaad Atta 5kg,8901234567890,1101,10,9.00,12,100.00
ZP-500,SKU-2,A1002,Tata Salt 1kg,8901234567891,2501,5,10.00,15,55.00
ZP-500,SKU-3,A1003,Fortune Oil 1L,8901234567892,1507,2,10.00,14,22.00
"""

CITYMALL_CSV = (
    "S.No,Article Id,Article Name,HSN Code,MRP (₹),Base Cost Price (₹),Quantity,"
    "Base Amount (₹),IGST (%) cess (%),IGST (₹) cess,Total Amount (₹)\n"
    '1,CM001,Atta 5kg,1101,250,200,10,2000,"5\n0","100\n0",2100\n'
    '2,CM002,Salt 1kg,2501,25,20,20,400,"5\n0","20\n0",420\n'
    ",Total,,,,,30,2400,,,2520\n"
)

BLINKIT_CSV = (
    "po_number,po_state,item_id,name,upc,uom_text,hsn_code,remaining_quantity,cost_price,mrp,"
    "cgst_value,sgst_value,igst_value,cess_value,tax_value,landing_rate,margin_percentage,total_amount\n"
    "BLK-1,Created,1001,Atta 5kg,8901234567890,5 kg,1101,10,200,250,2.5,2.5,0,0,100,210,16,2100\n"
    "BLK-1,Created,1002,Salt 1kg,8901234567891,1 kg,2501,20,20,25,2.5,2.5,0,0,20,21,16,420\n"
    "BLK-2,Created,1003,Oil 1L,8901234567892,1 l,1507,5,150,180,2.5,2.5,0,0,37.5,157.5,12.5,787.5\n"
)

FLIPKART_TABLE_HEADER = (
    "S. no.,HSN/SA Code,FSN/ISBN13,Quantity,Pending Quantity,UOM,Title,Image,Brand,Type,EAN,"
    "Vertical,Required by Date,Supplier MRP,Supplier Price,Taxable Value,IGST Rate,IGST Amount/Unit,"
    "SGST Rate,SGST Amount/Unit,CGST Rate,CGST Amount/Unit,CESS Rate,CESS Amount/Unit,Tax Amount,Total Amount"
)

FLIPKART_HEADER_BLOCK = """PURCHASE ORDER # FKPO0001
PO#,FKPO0001,,NATURE OF SUPPLY,Goods,NATURE OF TRANSACTION,Intra-State,PO EXPIRY,15-08-25,CATEGORY,Grocery,ORDER DATE,01-08-25
SUPPLIER NAME,Acme Foods Pvt Ltd,,SUPPLIER ADDRESS,12 MG Road Bengaluru,,SUPPLIER CONTACT,9876543210,,EMAIL,sales@acme.in
Billed by,,GSTIN,29AAACA1234A1Z5
BILLED TO ADDRESS,Flipkart Warehouse Bhiwandi,GSTIN,27AAACF1234B1Z6,SHIPPED TO ADDRESS,Flipkart FC Bhiwandi,GSTIN,27AAACF9999B1Z6
MODE OF PAYMENT,NEFT,,CONTRACT REF ID,CR-9,CONTRACT VERSION,2,CREDIT TERM,30 days
"""


def flipkart_line(number, quantity, taxable, tax, total, fsn="FSN001", title="Atta 5kg") -> str:
    """One 26-column Flipkart line-item row."""
    cells = [
        number, "1101", fsn, quantity, quantity, "EA", title, "", "Aashirvaad", "Atta",
        "8901234567890", "Flour", "10-08-25", "250", "200", taxable,
        "0", "0", "2.5", "5", "2.5", "5", "0", "0", tax, total,
    ]
    return ",".join(str(c) for c in cells)


def flipkart_csv(lines: list[str]) -> str:
    return (
        FLIPKART_HEADER_BLOCK
        + "\n"
        + FLIPKART_TABLE_HEADER + "\n"
        + "".join(line + "\n" for line in lines)
        + "Total Quantity,30\n"
    )


FLIPKART_LINES = [
    flipkart_line(1, 10, 2000, 100, 2100),
    flipkart_line(2, 5, 1000, 50, 1050, fsn="FSN002", title="Salt 1kg"),
    flipkart_line(3, 15, 3000, 150, 3150, fsn="FSN003", title="Oil 1L"),
]


def _swiggy_row(serial, code, desc, hsn, qty, mrp, cost, taxable, cgst, cgst_amt, sgst, sgst_amt, total):
    row = [None] * 23
    row[0], row[1], row[2], row[4], row[5], row[6] = serial, code, desc, hsn, qty, mrp
    row[8], row[9] = cost, taxable
    row[10], row[12], row[13], row[15] = cgst, cgst_amt, sgst, sgst_amt
    row[16], row[17], row[19], row[20], row[21] = 0, 0, 0, 0, 0
    row[22] = total
    return row


def swiggy_grid() -> list[list]:
    table_header = [None] * 23
    table_header[0], table_header[1], table_header[2] = "S.", "Item Code", "Item Desc"
    table_header[4], table_header[5], table_header[6] = "HSN", "Qty", "MRP"
    total_row = [None] * 23
    total_row[0], total_row[9], total_row[22] = "Total", 1200, 1286
    return [
        ["Purchase Order"],
        ["PO No :", None, "SOTY-PO-12345"],
        ["PO Date :", None, "04-08-2025", None, "PO Expiry Date :", None, "20-08-2025"],
        ["Payment Terms :", None, "30 Days"],
        ["Vendor Name :", None, "Acme Foods Pvt Ltd"],
        [],
        table_header,
        ["No"],
        _swiggy_row(1, "SW001", "Atta 5kg", 1101, 10, 250, 100, 1000, 2.5, 25, 2.5, 25, 1050),
        _swiggy_row(2, "SW002", "Salt 1kg", 2501, 4, 25, 50, 200, 9, 18, 9, 18, 236),
        total_row,
    ]


def spreadsheet_xml(grid: list[list]) -> bytes:
    """Render a grid as an Excel 2003 XML (SpreadsheetML) workbook."""
    rows = []
    for row in grid:
        cells = []
        for value in row:
            if value is None:
                cells.append("<Cell/>")
            elif isinstance(value, (int, float)):
                cells.append(f'<Cell><Data ss:Type="Number">{value}</Data></Cell>')
            else:
                cells.append(f'<Cell><Data ss:Type="String">{escape(value)}</Data></Cell>')
        rows.append("<Row>" + "".join(cells) + "</Row>")
    return (
        '<?xml version="1.0"?>\n'
        '<Workbook xmlns="urn:schemas-microsoft-com:office:spreadsheet" '
        'xmlns:ss="urn:schemas-microsoft-com:office:spreadsheet">\n'
        '<Worksheet ss:Name="PO"><Table>\n'
        + "\n".join(rows)
        + "\n</Table></Worksheet></Workbook>\n"
    ).encode("utf-8")


def bigbasket_grid() -> list[list]:
    return [
        ["BigBasket Purchase Order"],
        ["PO Number", "BB-77001", None, "PO Date", "05-08-2025"],
        ["Supplier Name", "Acme Foods Pvt Ltd", None, "Delivery Date", "12-08-2025"],
        ["Supplier GSTIN", "29AAACA1234A1Z5"],
        [],
        ["S.No", "SKU Code", "Description", "HSN Code", "EAN Code", "Quantity", "MRP", "Basic Cost",
         "Taxable Value", "CGST %", "CGST Amount", "SGST %", "SGST Amount", "Total Value"],
        [1, "BB1", "Atta 5kg", "1101", "8901234567890", 10, 250, 200, 2000, 2.5, 50, 2.5, 50, 2100],
        [2, "BB2", "Salt 1kg", "2501", "8901234567891", 20, 25, 20, 400, 2.5, 10, 2.5, 10, 420],
        ["Total Quantity", 30, None, "Grand Total", 2520],
    ]


def xlsx_bytes(grid: list[list]) -> bytes:
    """Write a grid to an in-memory XLSX workbook."""
    workbook = Workbook()
    sheet = workbook.active
    for row in grid:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def zepto_csv() -> bytes:
    return ZEPTO_CSV.encode("utf-8")


@pytest.fixture
def citymall_csv() -> bytes:
    return CITYMALL_CSV.encode("utf-8")


@pytest.fixture
def blinkit_csv() -> bytes:
    return BLINKIT_CSV.encode("utf-8")


@pytest.fixture
def flipkart_po_csv() -> bytes:
    return flipkart_csv(FLIPKART_LINES).encode("utf-8")


@pytest.fixture
def swiggy_xml() -> bytes:
    return spreadsheet_xml(swiggy_grid())


@pytest.fixture
def bigbasket_xlsx() -> bytes:
    return xlsx_bytes(bigbasket_grid())


@pytest.fixture
def make_flipkart_csv():
    """Build a Flipkart CSV around the given line rows (see flipkart_row)."""
    return lambda lines: flipkart_csv(lines).encode("utf-8")


@pytest.fixture
def flipkart_row():
    return flipkart_line


@pytest.fixture
def swiggy_rows() -> list[list]:
    return swiggy_grid()


@pytest.fixture
def bigbasket_rows() -> list[list]:
    return bigbasket_grid()


@pytest.fixture
def to_spreadsheet_xml():
    return spreadsheet_xml


@pytest.fixture
def to_xlsx():
    return xlsx_bytes


@pytest.fixture
def sample_header() -> dict:
    """A manual-entry header as the UI posts it."""
    return {
        "po_number": "PO-1001",
        "order_date": "04-08-2025",
        "supplier_name": "Acme Foods Pvt Ltd",
    }


@pytest.fixture
def sample_lines() -> list[dict]:
    return [
        {"item_code": "A1", "description": "Atta 5kg", "quantity": 10,
         "taxable_value": "100", "tax_amount": "5", "total_amount": "105"},
        {"item_code": "A2", "description": "Salt 1kg", "quantity": "4",
         "taxable_value": "40", "tax_amount": "2", "total_amount": "42.50"},
    ]


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
    config.addinivalue_line("markers", "slow: Slow tests")
