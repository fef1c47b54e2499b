"""
PO ingestion pipeline: file reading, vendor parsers, detection, import
and SQLite persistence.

Only the exception types are re-exported here; models/ imports the
normalisation helpers from this package, so the heavier modules are
imported from their own submodules (pipeline.detector, pipeline.importer,
pipeline.database).
"""
from .errors import DuplicatePOError, InvalidPOError, POImportError, POParseError

__all__ = ["POParseError", "InvalidPOError", "DuplicatePOError", "POImportError"]
