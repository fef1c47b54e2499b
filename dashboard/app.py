"""
PO Ingestion Dashboard — FastAPI backend.

Staff upload platform PO exports, preview the normalised result, import it,
and then browse, edit and close the stored POs.

All PO state lives in a single SQLite database (output/po.db).

Endpoints
---------
  GET    /api/health                  → liveness probe
  GET    /api/stats                   → PO counts by status and vendor
  GET    /api/vendors                 → supported vendors
  POST   /api/po/preview              → parse an uploaded file (multipart `file`, optional `platform`)
  POST   /api/po/import/{vendor}      → import a previewed PO ({header, lines}) or batch ({poList})
  POST   /api/pos/{vendor}            → manual PO entry ({header, lines})
  GET    /api/pos                     → list summaries (?vendor= ?status= ?search= ?date_from= ?date_to=)
  GET    /api/pos/{id}                → header + lines for one PO
  PUT    /api/pos/{id}                → replace header and, if given, all lines
  PATCH  /api/pos/{id}/status         → set status
  DELETE /api/pos/{id}                → delete PO and its lines
  GET    /api/pos/{id}/audit          → audit trail for one PO
"""
import logging
from datetime import date
from typing import Optional

from fastapi import FastAPI, File, Form, Header, HTTPException, Query, UploadFile

from config import Config
from pipeline.database import Database
from pipeline.detector import VENDORS, detect_and_parse
from pipeline.errors import DuplicatePOError, InvalidPOError, POImportError, POParseError
from pipeline.importer import POImporter

from .models import ImportRequest, POPayload, POUpdate, StatusUpdate
from .services import build_preview

logger = logging.getLogger(__name__)

PARSE_FAILED = "Failed to parse file. Please check the format."

# ---------------------------------------------------------------------------
# Config + database (lazy: opened on first request so importing the app
# never touches the filesystem)
# ---------------------------------------------------------------------------
_config: Optional[Config] = None
_db: Optional[Database] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_db() -> Database:
    global _db
    if _db is None:
        config = get_config()
        config.ensure_output_dir()
        _db = Database(config.db_path)
    return _db


def get_importer() -> POImporter:
    return POImporter(get_db())


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="PO Ingestion Dashboard", docs_url=None, redoc_url=None)


# ── Helpers ──────────────────────────────────────────────────────────────────

def _require_vendor(vendor: str) -> str:
    key = vendor.strip().lower()
    if key not in VENDORS:
        raise HTTPException(400, f"Unknown vendor: {vendor}")
    return key


def _actor(x_user: Optional[str]) -> str:
    return (x_user or "").strip() or get_config().default_uploaded_by


def _import_one(vendor: str, header: dict, lines: list[dict], actor: str) -> dict:
    try:
        po_id = get_importer().import_po(vendor, header, lines, actor)
    except InvalidPOError as exc:
        raise HTTPException(400, str(exc))
    except DuplicatePOError as exc:
        raise HTTPException(409, {
            "type": "duplicate_po",
            "message": str(exc),
            "vendor": exc.vendor,
            "po_number": exc.po_number,
        })
    except POImportError as exc:
        raise HTTPException(500, {
            "message": str(exc),
            "vendor": exc.vendor,
            "po_number": exc.po_number,
        })
    return {
        "id": po_id,
        "vendor": vendor,
        "po_number": str(header.get("po_number")).strip(),
        "message": "PO imported successfully",
    }


# ── Routes ───────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    config = get_config()
    return {
        "status": "ok",
        "db_path":   str(config.db_path),
        "db_exists": config.db_path.exists(),
    }


@app.get("/api/stats")
def stats():
    return get_db().get_stats()


@app.get("/api/vendors")
def vendors():
    return [
        {"key": spec.key, "label": spec.label, "multiPO": spec.multi_po}
        for spec in VENDORS.values()
    ]


@app.post("/api/po/preview")
async def preview_po(
    file: UploadFile = File(...),
    platform: Optional[str] = Form(default=None),
    platform_query: Optional[str] = Query(default=None, alias="platform"),
    x_user: Optional[str] = Header(default=None),
):
    """
    Parse an uploaded PO file without storing anything.

    The vendor is taken from `platform` (form field or query string), else
    detected from the filename, else from the file content.
    """
    contents = await file.read()
    if len(contents) == 0:
        raise HTTPException(400, "Uploaded file is empty")
    limit = get_config().max_upload_bytes
    if len(contents) > limit:
        raise HTTPException(413, f"File exceeds the {limit} byte upload limit")

    try:
        detection = detect_and_parse(
            contents,
            filename=file.filename,
            uploaded_by=_actor(x_user),
            platform=platform or platform_query,
        )
    except POParseError as exc:
        logger.info("Preview of %s failed: %s", file.filename, exc)
        raise HTTPException(400, {"message": PARSE_FAILED, "error": str(exc)})

    logger.info(
        "Preview %s: %s (%s), %d PO(s)",
        file.filename, detection.vendor, detection.method, len(detection.pos),
    )
    return build_preview(detection)


@app.post("/api/po/import/{vendor}", status_code=201)
def import_po(vendor: str, body: ImportRequest, x_user: Optional[str] = Header(default=None)):
    """Store a previewed PO, or every PO of a multi-PO preview."""
    key = _require_vendor(vendor)
    actor = _actor(x_user)

    if body.poList is not None:
        entries = [entry.model_dump() for entry in body.poList]
        report = get_importer().import_batch(key, entries, actor)
        return {
            "vendor": key,
            "message": report.message,
            "results": [r.model_dump() for r in report.results],
        }

    if body.header is None:
        raise HTTPException(400, "Request must contain header and lines, or poList")
    return _import_one(key, body.header, body.lines or [], actor)


@app.post("/api/pos/{vendor}", status_code=201)
def create_po(vendor: str, body: POPayload, x_user: Optional[str] = Header(default=None)):
    """Manual PO entry."""
    key = _require_vendor(vendor)
    return _import_one(key, body.header, body.lines, _actor(x_user))


@app.get("/api/pos")
def list_pos(
    vendor: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    db = get_db()
    filters = dict(
        vendor=vendor or None,
        status=status or None,
        search=search or None,
        date_from=date_from,
        date_to=date_to,
    )
    return {
        "total": db.count_pos(**filters),
        "items": db.list_pos(limit=limit, offset=offset, **filters),
    }


@app.get("/api/pos/{po_id}")
def get_po(po_id: int):
    rec = get_db().get_po(po_id)
    if not rec:
        raise HTTPException(404, f"PO not found: {po_id}")
    return rec


@app.put("/api/pos/{po_id}")
def update_po(po_id: int, body: POUpdate, x_user: Optional[str] = Header(default=None)):
    """
    Replace a PO's header fields and, when `lines` is present, its whole
    line set.  Totals are recomputed from the resulting lines.
    """
    try:
        rec = get_importer().update_po(po_id, body.header, body.lines, actor=_actor(x_user))
    except InvalidPOError as exc:
        raise HTTPException(400, str(exc))
    except DuplicatePOError as exc:
        raise HTTPException(409, {"type": "duplicate_po", "message": str(exc)})
    except POImportError as exc:
        raise HTTPException(500, {"message": str(exc), "vendor": exc.vendor, "po_number": exc.po_number})
    if rec is None:
        raise HTTPException(404, f"PO not found: {po_id}")
    return rec


@app.patch("/api/pos/{po_id}/status")
def update_status(po_id: int, body: StatusUpdate, x_user: Optional[str] = Header(default=None)):
    try:
        found = get_db().update_status(po_id, body.status, actor=_actor(x_user))
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    if not found:
        raise HTTPException(404, f"PO not found: {po_id}")
    return {"id": po_id, "status": body.status}


@app.delete("/api/pos/{po_id}")
def delete_po(po_id: int, x_user: Optional[str] = Header(default=None)):
    if not get_db().delete_po(po_id, actor=_actor(x_user)):
        raise HTTPException(404, f"PO not found: {po_id}")
    return {"id": po_id, "deleted": True}


@app.get("/api/pos/{po_id}/audit")
def audit_log(po_id: int):
    db = get_db()
    if db.get_po(po_id) is None:
        raise HTTPException(404, f"PO not found: {po_id}")
    return db.get_audit_log(po_id)
