"""
Exception types shared by the parsers, the importer and the HTTP layer.

  POParseError      structural problem with an uploaded file (400)
  InvalidPOError    import payload rejected before any write (400)
  DuplicatePOError  po_number already stored for the vendor (409)
  POImportError     persistence / transaction failure (500)
"""
from typing import Optional


class POParseError(ValueError):
    """The uploaded file does not have the layout the parser expects."""

    def __init__(self, message: str, vendor: Optional[str] = None):
        super().__init__(message)
        self.vendor = vendor


class InvalidPOError(ValueError):
    """A header/lines payload that cannot be stored as-is."""

    def __init__(self, message: str, po_number: Optional[str] = None):
        super().__init__(message)
        self.po_number = po_number


class DuplicatePOError(Exception):
    def __init__(self, vendor: str, po_number: str):
        super().__init__(f"PO {po_number} already exists in {vendor} records")
        self.vendor = vendor
        self.po_number = po_number


class POImportError(Exception):
    def __init__(self, message: str, vendor: Optional[str] = None, po_number: Optional[str] = None):
        super().__init__(message)
        self.vendor = vendor
        self.po_number = po_number
