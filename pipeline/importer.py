"""
Import of previewed or hand-entered POs into the database.

The importer takes the JSON the preview endpoint returned (possibly edited
by the user), rebuilds it through the vendor's models, recomputes the header
totals from the lines and writes header + lines in a single transaction.

    importer = POImporter(db)
    po_id = importer.import_po("zepto", header, lines, actor="ops@example.com")
"""
import logging
import sqlite3
from typing import Optional, Sequence

from pydantic import ValidationError

from models import VENDOR_MODELS, ImportOutcome, ImportReport, ParsedPO
from .database import Database
from .errors import DuplicatePOError, InvalidPOError, POImportError
from .totals import TOTAL_FIELDS, compute_totals, reconcile_total

logger = logging.getLogger(__name__)


def _first_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    where = ".".join(str(p) for p in first.get("loc", ()))
    return f"{where}: {first.get('msg')}" if where else str(first.get("msg"))


class POImporter:
    """Validates PO payloads and stores them through an injected Database."""

    def __init__(self, db: Database):
        self.db = db

    def build(
        self,
        vendor: str,
        header: dict,
        lines: Sequence[dict],
        actor: str = "system",
    ) -> ParsedPO:
        """
        Validate one PO payload into the vendor's models.

        Lines without a line_number are numbered by position.  Dates that do
        not parse become None.  Header totals are recomputed from the lines and
        reconciled against the payload's totals the same way a parse is.

        Raises:
            InvalidPOError: unknown vendor, missing PO number, no lines or a
                            field that fails validation.
        """
        if vendor not in VENDOR_MODELS:
            raise InvalidPOError(f"Unknown vendor: {vendor}")
        header_model, line_model = VENDOR_MODELS[vendor]

        header = dict(header or {})
        po_number = str(header.get("po_number") or "").strip()
        if not po_number:
            raise InvalidPOError("PO number is not available")
        if not lines:
            raise InvalidPOError(f"PO {po_number} has no line items", po_number=po_number)

        built_lines = []
        for position, raw in enumerate(lines, start=1):
            fields = {k: v for k, v in dict(raw).items() if k != "id"}
            if fields.get("line_number") in (None, ""):
                fields["line_number"] = position
            fields.setdefault("created_by", actor)
            try:
                built_lines.append(line_model(**fields))
            except ValidationError as exc:
                raise InvalidPOError(
                    f"PO {po_number} line {position}: {_first_error(exc)}", po_number=po_number
                ) from exc

        fields = {k: v for k, v in header.items() if k not in ("id", "created_at", "updated_at")}
        totals = compute_totals(built_lines)
        # A stated total only stands when the lines carry no amounts
        for name in TOTAL_FIELDS:
            totals[name] = reconcile_total(totals[name], header.get(name), name)
        fields.update(totals)
        fields.update(vendor=vendor, po_number=po_number)
        fields.setdefault("created_by", actor)
        fields.setdefault("uploaded_by", actor)
        try:
            built_header = header_model(**fields)
        except ValidationError as exc:
            raise InvalidPOError(f"PO {po_number}: {_first_error(exc)}", po_number=po_number) from exc

        return ParsedPO(header=built_header, lines=built_lines)

    def import_po(
        self,
        vendor: str,
        header: dict,
        lines: Sequence[dict],
        actor: str = "system",
    ) -> int:
        """
        Validate and store one PO.  Returns the new PO id.

        Raises:
            InvalidPOError:   payload rejected before any write.
            DuplicatePOError: (vendor, po_number) already stored.
            POImportError:    the insert failed and was rolled back.
        """
        po = self.build(vendor, header, lines, actor)

        if self.db.get_po_by_number(vendor, po.po_number) is not None:
            raise DuplicatePOError(vendor, po.po_number)

        try:
            po_id = self.db.create_po(po.header, po.lines, actor=actor)
        except sqlite3.IntegrityError as exc:
            # A concurrent import won the race for the unique key
            if "UNIQUE" in str(exc).upper():
                raise DuplicatePOError(vendor, po.po_number) from exc
            raise POImportError(
                f"Failed to import {vendor} PO {po.po_number}: {exc}",
                vendor=vendor, po_number=po.po_number,
            ) from exc
        except sqlite3.Error as exc:
            logger.error("Import of %s PO %s failed: %s", vendor, po.po_number, exc)
            raise POImportError(
                f"Failed to import {vendor} PO {po.po_number}: {exc}",
                vendor=vendor, po_number=po.po_number,
            ) from exc

        logger.info("Imported %s PO %s (id=%d) by %s", vendor, po.po_number, po_id, actor)
        return po_id

    def import_batch(self, vendor: str, po_list: Sequence[dict], actor: str = "system") -> ImportReport:
        """
        Import every {header, lines} entry of a multi-PO upload.

        Each PO is its own transaction; a failed PO is reported and the rest
        of the batch continues.
        """
        report = ImportReport(vendor=vendor)
        for entry in po_list:
            header = entry.get("header") or {}
            po_number = str(header.get("po_number") or "").strip()
            try:
                po_id = self.import_po(vendor, header, entry.get("lines") or [], actor)
            except DuplicatePOError:
                report.results.append(ImportOutcome(po_number=po_number, status="failed", error="PO already exists"))
            except (InvalidPOError, POImportError) as exc:
                report.results.append(ImportOutcome(po_number=po_number, status="failed", error=str(exc)))
            else:
                report.results.append(ImportOutcome(po_number=po_number, status="success", id=po_id))

        logger.info("%s batch import: %s", vendor, report.message)
        return report

    def update_po(
        self,
        po_id: int,
        header: dict,
        lines: Optional[Sequence[dict]] = None,
        actor: str = "system",
    ) -> Optional[dict]:
        """
        Replace a stored PO's header and, when given, all of its lines.

        Without *lines* the stored lines are kept and the totals are
        recomputed from them.  Returns the updated record, or None if no PO
        has that id.
        """
        existing = self.db.get_po(po_id)
        if existing is None:
            return None

        vendor = existing["vendor"]
        merged = {**existing["header"], **(header or {})}
        merged.setdefault("po_number", existing["header"]["po_number"])
        po = self.build(vendor, merged, lines if lines is not None else existing["lines"], actor)

        other = self.db.get_po_by_number(vendor, po.po_number)
        if other is not None and other["id"] != po_id:
            raise DuplicatePOError(vendor, po.po_number)

        try:
            self.db.update_po(po_id, po.header, po.lines if lines is not None else None, actor=actor)
        except sqlite3.IntegrityError as exc:
            raise DuplicatePOError(vendor, po.po_number) from exc
        except sqlite3.Error as exc:
            raise POImportError(
                f"Failed to update {vendor} PO {po.po_number}: {exc}",
                vendor=vendor, po_number=po.po_number,
            ) from exc
        return self.db.get_po(po_id)
