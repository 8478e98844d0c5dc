"""SQLite storage for saved invoices.

The app keeps working without a database: an ``InvoiceStore`` that could not
be opened reports ``available == False`` and the caller skips persistence.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing, contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import List, Optional

from .calculator import LineItem, compute_item
from .models import Invoice, InvoiceSummary

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS invoices(
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_no TEXT NOT NULL UNIQUE,
    bill_to TEXT NOT NULL,
    invoice_date TEXT NOT NULL,
    due_date TEXT NOT NULL,
    total REAL NOT NULL,
    received REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS invoice_items(
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    name TEXT NOT NULL,
    qty REAL NOT NULL,
    unit TEXT NOT NULL,
    rate REAL NOT NULL,
    discount TEXT NOT NULL,
    amount REAL NOT NULL
);
"""


class StoreError(Exception):
    """A database operation failed."""


class StoreUnavailableError(StoreError):
    """The store has no usable database."""


class DuplicateInvoiceError(StoreError):
    def __init__(self, invoice_no: str):
        super().__init__(f"Invoice {invoice_no} already exists")
        self.invoice_no = invoice_no


@dataclass(frozen=True)
class ConnectionStatus:
    connected: bool
    reason: Optional[str] = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InvoiceStore:
    def __init__(self, path: str, status: ConnectionStatus):
        self.path = path
        self.status = status

    @classmethod
    def open(cls, path: Optional[str]) -> "InvoiceStore":
        """Create the schema at ``path``; never raises.

        An empty path or an unusable database gives a store in PDF-only mode.
        """
        if not path:
            logger.warning("No database configured - running in PDF-only mode")
            return cls("", ConnectionStatus(False, "no database configured"))
        store = cls(path, ConnectionStatus(True))
        try:
            with store._connect() as conn:
                conn.executescript(SCHEMA)
        except (sqlite3.Error, StoreError) as exc:
            logger.warning("Database %s unavailable (%s) - running in PDF-only mode", path, exc)
            return cls(path, ConnectionStatus(False, str(exc)))
        logger.info("Connected to database %s", path)
        return store

    @property
    def available(self) -> bool:
        return self.status.connected

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(self.path, timeout=5)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        with closing(conn):
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

    def _require_available(self):
        if not self.available:
            raise StoreUnavailableError(self.status.reason or "database not available")

    def save(self, invoice: Invoice, original_invoice_no: Optional[str] = None) -> str:
        """Create or update ``invoice``; returns "created" or "updated".

        With ``original_invoice_no`` the matching record is updated in place,
        which also allows renaming it. If it no longer exists a new record is
        created instead.
        """
        self._require_available()
        try:
            with self._connect() as conn:
                if original_invoice_no:
                    row = conn.execute(
                        "SELECT id FROM invoices WHERE invoice_no = ?", (original_invoice_no,)
                    ).fetchone()
                    if row is not None:
                        self._update(conn, row["id"], invoice)
                        logger.info("Updated invoice %s (was %s)", invoice.invoice_no, original_invoice_no)
                        return "updated"
                    logger.info("Invoice %s not found for update, creating new one", original_invoice_no)
                self._insert(conn, invoice)
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" not in str(exc):
                raise StoreError(str(exc)) from exc
            raise DuplicateInvoiceError(invoice.invoice_no) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        logger.info("Saved invoice %s", invoice.invoice_no)
        return "created"

    def _insert(self, conn, invoice: Invoice):
        now = _now()
        c = conn.execute(
            "INSERT INTO invoices(invoice_no, bill_to, invoice_date, due_date, total, received, created_at, updated_at)"
            " VALUES (?,?,?,?,?,?,?,?)",
            (
                invoice.invoice_no,
                invoice.bill_to,
                invoice.date.isoformat(),
                invoice.due_date.isoformat(),
                invoice.total,
                invoice.received,
                now,
                now,
            ),
        )
        self._insert_items(conn, c.lastrowid, invoice)

    def _update(self, conn, invoice_id: int, invoice: Invoice):
        conn.execute(
            "UPDATE invoices SET invoice_no = ?, bill_to = ?, invoice_date = ?, due_date = ?,"
            " total = ?, received = ?, updated_at = ? WHERE id = ?",
            (
                invoice.invoice_no,
                invoice.bill_to,
                invoice.date.isoformat(),
                invoice.due_date.isoformat(),
                invoice.total,
                invoice.received,
                _now(),
                invoice_id,
            ),
        )
        conn.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (invoice_id,))
        self._insert_items(conn, invoice_id, invoice)

    def _insert_items(self, conn, invoice_id: int, invoice: Invoice):
        conn.executemany(
            "INSERT INTO invoice_items(invoice_id, position, name, qty, unit, rate, discount, amount)"
            " VALUES (?,?,?,?,?,?,?,?)",
            [
                (invoice_id, position, item.name, item.qty, item.unit, item.rate, item.discount, item.net_amount)
                for position, item in enumerate(invoice.items)
            ],
        )

    def get(self, invoice_no: str) -> Optional[Invoice]:
        self._require_available()
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM invoices WHERE invoice_no = ?", (invoice_no,)).fetchone()
                if row is None:
                    return None
                items = conn.execute(
                    "SELECT * FROM invoice_items WHERE invoice_id = ? ORDER BY position", (row["id"],)
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

        return Invoice(
            invoice_no=row["invoice_no"],
            bill_to=row["bill_to"],
            date=date.fromisoformat(row["invoice_date"]),
            due_date=date.fromisoformat(row["due_date"]),
            # Recomputed so the total always matches the stored line values.
            items=tuple(
                compute_item(LineItem(i["name"], i["qty"], i["unit"], i["rate"], i["discount"])) for i in items
            ),
            received=row["received"],
        )

    def list_recent(self, limit: int = 50) -> List[InvoiceSummary]:
        self._require_available()
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT invoice_no, bill_to, total, created_at FROM invoices"
                    " ORDER BY created_at DESC, id DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return [
            InvoiceSummary(
                invoice_no=row["invoice_no"],
                bill_to=row["bill_to"],
                total=row["total"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def delete(self, invoice_no: str) -> bool:
        self._require_available()
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT id FROM invoices WHERE invoice_no = ?", (invoice_no,)).fetchone()
                if row is None:
                    return False
                conn.execute("DELETE FROM invoice_items WHERE invoice_id = ?", (row["id"],))
                conn.execute("DELETE FROM invoices WHERE id = ?", (row["id"],))
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        logger.info("Deleted invoice %s", invoice_no)
        return True
