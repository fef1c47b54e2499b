"""
SQLite persistence for platform purchase orders.

One generic store for every vendor (output/po.db):

  po_headers  one row per PO.  Fields the list views filter and sort on are
              real columns; the complete vendor-specific header (whatever
              its model carries) is kept in header_data as JSON.
              UNIQUE(vendor, po_number) is the duplicate guarantee.
  po_lines    line items, ON DELETE CASCADE from po_headers.  Full line
              payload in line_data.
  audit_log   who did what to which PO.

Every public write runs inside one _conn() block, which commits on success
and rolls back on any exception, so a header is never stored without its
lines.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from models import PO_STATUSES, POHeader, POLine

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS po_headers (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    vendor              TEXT    NOT NULL,
    po_number           TEXT    NOT NULL,
    status              TEXT    NOT NULL DEFAULT 'Open',

    -- Key fields (denormalised for fast filtering / sorting)
    order_date          TEXT,
    expiry_date         TEXT,
    total_quantity      INTEGER NOT NULL DEFAULT 0,
    total_taxable_value TEXT,
    total_tax_amount    TEXT,
    total_amount        TEXT,
    supplier_name       TEXT,

    created_by          TEXT,
    uploaded_by         TEXT,
    created_at          TEXT    NOT NULL,
    updated_at          TEXT    NOT NULL,

    -- Full vendor header (models.vendors.<Vendor>Header) as JSON
    header_data         TEXT    NOT NULL,

    UNIQUE (vendor, po_number)
);

CREATE INDEX IF NOT EXISTS idx_po_headers_vendor     ON po_headers (vendor);
CREATE INDEX IF NOT EXISTS idx_po_headers_status     ON po_headers (status);
CREATE INDEX IF NOT EXISTS idx_po_headers_order_date ON po_headers (order_date);
CREATE INDEX IF NOT EXISTS idx_po_headers_created_at ON po_headers (created_at DESC);

CREATE TABLE IF NOT EXISTS po_lines (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    header_id     INTEGER NOT NULL REFERENCES po_headers (id) ON DELETE CASCADE,
    line_number   INTEGER NOT NULL,
    item_code     TEXT,
    description   TEXT,
    quantity      INTEGER NOT NULL DEFAULT 0,
    total_amount  TEXT,
    status        TEXT,
    line_data     TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_po_lines_header ON po_lines (header_id);

CREATE TABLE IF NOT EXISTS audit_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    po_id       INTEGER,
    vendor      TEXT,
    po_number   TEXT,
    timestamp   TEXT    NOT NULL,   -- ISO-8601 UTC
    action      TEXT    NOT NULL,   -- created | updated | status_changed | deleted
    actor       TEXT    NOT NULL DEFAULT 'system',
    detail      TEXT                -- optional JSON blob with action-specific context
);

CREATE INDEX IF NOT EXISTS idx_audit_po        ON audit_log (po_id);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log (timestamp DESC);
"""

_SUMMARY_COLUMNS = """
    h.id, h.vendor, h.po_number, h.status, h.order_date, h.expiry_date,
    h.total_quantity, h.total_taxable_value, h.total_tax_amount, h.total_amount,
    h.supplier_name, h.created_by, h.uploaded_by, h.created_at, h.updated_at
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class Database:
    """Thin wrapper around an SQLite database file holding platform POs."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self):
        conn = sqlite3.connect(str(self.db_path), timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    @staticmethod
    def _header_params(header: POHeader) -> dict:
        data = header.model_dump(mode="json")
        return {
            "vendor":              header.vendor,
            "po_number":           header.po_number,
            "status":              header.status,
            "order_date":          _iso(header.order_date),
            "expiry_date":         _iso(header.expiry_date),
            "total_quantity":      header.total_quantity,
            "total_taxable_value": header.total_taxable_value,
            "total_tax_amount":    header.total_tax_amount,
            "total_amount":        header.total_amount,
            "supplier_name":       header.supplier_name,
            "created_by":          header.created_by,
            "uploaded_by":         header.uploaded_by,
            "header_data":         json.dumps(data),
        }

    @staticmethod
    def _insert_lines(conn: sqlite3.Connection, header_id: int, lines: Sequence[POLine]) -> None:
        conn.executemany(
            """
            INSERT INTO po_lines (
                header_id, line_number, item_code, description,
                quantity, total_amount, status, line_data
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    header_id,
                    line.line_number,
                    line.item_code,
                    line.description,
                    line.quantity,
                    line.total_amount,
                    line.status,
                    json.dumps(line.model_dump(mode="json")),
                )
                for line in lines
            ],
        )

    @staticmethod
    def _audit(
        conn: sqlite3.Connection,
        po_id: Optional[int],
        vendor: Optional[str],
        po_number: Optional[str],
        action: str,
        actor: str,
        detail: Optional[dict],
    ) -> None:
        conn.execute(
            """INSERT INTO audit_log (po_id, vendor, po_number, timestamp, action, actor, detail)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                po_id, vendor, po_number, _now(), action, actor,
                json.dumps(detail) if detail is not None else None,
            ),
        )

    def create_po(self, header: POHeader, lines: Sequence[POLine], actor: str = "system") -> int:
        """
        Insert a header and all of its lines in one transaction.

        Returns the new po_headers.id.  A second PO with the same
        (vendor, po_number) raises sqlite3.IntegrityError and nothing is
        written.
        """
        params = self._header_params(header)
        now = _now()
        params.update(created_at=now, updated_at=now)

        with self._conn() as conn:
            cur = conn.execute(
                """
                INSERT INTO po_headers (
                    vendor, po_number, status, order_date, expiry_date,
                    total_quantity, total_taxable_value, total_tax_amount, total_amount,
                    supplier_name, created_by, uploaded_by, created_at, updated_at,
                    header_data
                ) VALUES (
                    :vendor, :po_number, :status, :order_date, :expiry_date,
                    :total_quantity, :total_taxable_value, :total_tax_amount, :total_amount,
                    :supplier_name, :created_by, :uploaded_by, :created_at, :updated_at,
                    :header_data
                )
                """,
                params,
            )
            po_id = cur.lastrowid
            self._insert_lines(conn, po_id, lines)
            self._audit(
                conn, po_id, header.vendor, header.po_number, "created", actor,
                {"lines": len(lines), "total_amount": header.total_amount},
            )

        logger.info("DB created: %s PO %s (id=%d, %d lines)", header.vendor, header.po_number, po_id, len(lines))
        return po_id

    def update_po(
        self,
        po_id: int,
        header: POHeader,
        lines: Optional[Sequence[POLine]] = None,
        actor: str = "system",
    ) -> bool:
        """
        Replace a PO's header and, when *lines* is given, its whole line set
        (delete and reinsert, no per-line diffing).  Returns True if found.
        """
        params = self._header_params(header)
        params.update(id=po_id, updated_at=_now())

        with self._conn() as conn:
            conn.execute(
                """
                UPDATE po_headers SET
                    po_number           = :po_number,
                    status              = :status,
                    order_date          = :order_date,
                    expiry_date         = :expiry_date,
                    total_quantity      = :total_quantity,
                    total_taxable_value = :total_taxable_value,
                    total_tax_amount    = :total_tax_amount,
                    total_amount        = :total_amount,
                    supplier_name       = :supplier_name,
                    uploaded_by         = :uploaded_by,
                    updated_at          = :updated_at,
                    header_data         = :header_data
                WHERE id = :id
                """,
                params,
            )
            if conn.execute("SELECT changes()").fetchone()[0] == 0:
                return False
            if lines is not None:
                conn.execute("DELETE FROM po_lines WHERE header_id = ?", (po_id,))
                self._insert_lines(conn, po_id, lines)
            self._audit(
                conn, po_id, header.vendor, header.po_number, "updated", actor,
                {"lines_replaced": lines is not None},
            )
        return True

    def update_status(self, po_id: int, status: str, actor: str = "system") -> bool:
        """Set the status of a PO.  Returns True if the record was found."""
        if status not in PO_STATUSES:
            raise ValueError(f"Invalid status {status!r}. Must be one of {PO_STATUSES}")

        with self._conn() as conn:
            row = conn.execute(
                "SELECT vendor, po_number, status, header_data FROM po_headers WHERE id = ?",
                (po_id,),
            ).fetchone()
            if row is None:
                return False
            data = json.loads(row["header_data"])
            data["status"] = status
            conn.execute(
                "UPDATE po_headers SET status = ?, header_data = ?, updated_at = ? WHERE id = ?",
                (status, json.dumps(data), _now(), po_id),
            )
            self._audit(
                conn, po_id, row["vendor"], row["po_number"], "status_changed", actor,
                {"from": row["status"], "to": status},
            )
        return True

    def delete_po(self, po_id: int, actor: str = "system") -> bool:
        """Delete a PO; its lines go with it (ON DELETE CASCADE)."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT vendor, po_number FROM po_headers WHERE id = ?", (po_id,)
            ).fetchone()
            if row is None:
                return False
            conn.execute("DELETE FROM po_headers WHERE id = ?", (po_id,))
            self._audit(conn, po_id, row["vendor"], row["po_number"], "deleted", actor, None)
        logger.info("DB deleted: %s PO %s (id=%d)", row["vendor"], row["po_number"], po_id)
        return True

    def log_audit(
        self,
        po_id: Optional[int],
        action: str,
        actor: str = "system",
        detail: Optional[dict] = None,
        vendor: Optional[str] = None,
        po_number: Optional[str] = None,
    ) -> None:
        """Append one entry to the audit log."""
        with self._conn() as conn:
            self._audit(conn, po_id, vendor, po_number, action, actor, detail)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    @staticmethod
    def _header_dict(row: sqlite3.Row) -> dict:
        header = json.loads(row["header_data"])
        header.update(
            id=row["id"],
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
        return header

    def get_po(self, po_id: int) -> Optional[dict]:
        """Return {"id", "vendor", "header", "lines"} for one PO, or None."""
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM po_headers WHERE id = ?", (po_id,)).fetchone()
            if row is None:
                return None
            line_rows = conn.execute(
                "SELECT id, line_data FROM po_lines WHERE header_id = ? ORDER BY line_number, id",
                (po_id,),
            ).fetchall()

        lines = []
        for line_row in line_rows:
            line = json.loads(line_row["line_data"])
            line["id"] = line_row["id"]
            lines.append(line)
        return {
            "id": row["id"],
            "vendor": row["vendor"],
            "header": self._header_dict(row),
            "lines": lines,
        }

    def get_po_by_number(self, vendor: str, po_number: str) -> Optional[dict]:
        """Return the stored header for (vendor, po_number), or None."""
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM po_headers WHERE vendor = ? AND po_number = ?",
                (vendor, po_number),
            ).fetchone()
        return self._header_dict(row) if row else None

    @staticmethod
    def _filters(
        vendor: Optional[str],
        status: Optional[str],
        search: Optional[str],
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> tuple[str, list]:
        clauses: list[str] = []
        params: list = []
        if vendor:
            clauses.append("h.vendor = ?")
            params.append(vendor)
        if status:
            clauses.append("h.status = ?")
            params.append(status)
        if search:
            clauses.append("(h.po_number LIKE ? OR h.supplier_name LIKE ?)")
            like = f"%{search}%"
            params.extend([like, like])
        if date_from:
            clauses.append("h.order_date >= ?")
            params.append(_iso(date_from))
        if date_to:
            clauses.append("h.order_date <= ?")
            params.append(_iso(date_to))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def list_pos(
        self,
        vendor: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[dict]:
        """
        Return PO summaries (no JSON payloads) ordered newest-first.

        Args:
            vendor:     Restrict to one vendor key.
            status:     Filter by status value.
            search:     Case-insensitive substring match on po_number or
                        supplier_name.
            date_from:  Inclusive lower bound on order_date.
            date_to:    Inclusive upper bound on order_date.
            limit:      Max rows to return.
            offset:     Pagination offset.
        """
        where, params = self._filters(vendor, status, search, date_from, date_to)
        params.extend([limit, offset])
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS},
                       (SELECT COUNT(*) FROM po_lines l WHERE l.header_id = h.id) AS line_count
                FROM po_headers h
                {where}
                ORDER BY h.created_at DESC, h.id DESC
                LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
        return [dict(r) for r in rows]

    def count_pos(
        self,
        vendor: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        where, params = self._filters(vendor, status, search, date_from, date_to)
        with self._conn() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM po_headers h {where}", params).fetchone()[0]

    def get_stats(self) -> dict:
        """Return PO counts in total, by status and by vendor."""
        with self._conn() as conn:
            total = conn.execute("SELECT COUNT(*) FROM po_headers").fetchone()[0]
            by_status = conn.execute(
                "SELECT status, COUNT(*) AS n FROM po_headers GROUP BY status"
            ).fetchall()
            by_vendor = conn.execute(
                "SELECT vendor, COUNT(*) AS n FROM po_headers GROUP BY vendor"
            ).fetchall()
            lines = conn.execute("SELECT COUNT(*) FROM po_lines").fetchone()[0]
        return {
            "total": total,
            "total_lines": lines,
            "by_status": {r["status"]: r["n"] for r in by_status},
            "by_vendor": {r["vendor"]: r["n"] for r in by_vendor},
        }

    def get_audit_log(self, po_id: Optional[int] = None, limit: int = 200) -> list[dict]:
        """Audit entries for one PO (oldest first), or the most recent across all POs."""
        with self._conn() as conn:
            if po_id is not None:
                rows = conn.execute(
                    """SELECT id, po_id, vendor, po_number, timestamp, action, actor, detail
                       FROM audit_log WHERE po_id = ?
                       ORDER BY timestamp ASC, id ASC""",
                    (po_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """SELECT id, po_id, vendor, po_number, timestamp, action, actor, detail
                       FROM audit_log
                       ORDER BY timestamp DESC, id DESC
                       LIMIT ?""",
                    (limit,),
                ).fetchall()
        return [dict(r) for r in rows]
