"""Data access for persisted quotes.

Responsibilities
----------------
- Append one quote row under a caller-supplied deadline, giving up (and rolling
  back) instead of outliving it.
- Read persisted rows back as `QuoteRecord`s for diagnostics.

Each call opens its own connection; SQLite serializes concurrent writers.
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from quote_relay.core.deadlines import Deadline
from quote_relay.models import Quote, QuoteRecord
from .schema import QUOTE_COLUMNS, QUOTES_TABLE

_INSERT_SQL = "INSERT INTO {table} ({cols}) VALUES ({marks})".format(
    table=QUOTES_TABLE,
    cols=", ".join(col for _, col in QUOTE_COLUMNS),
    marks=", ".join("?" for _ in QUOTE_COLUMNS),
)
_SELECT_SQL = "SELECT id, {cols} FROM {table} ORDER BY id".format(
    table=QUOTES_TABLE,
    cols=", ".join(col for _, col in QUOTE_COLUMNS),
)

# VM instructions between progress-handler checks
_PROGRESS_STEPS = 100


class WriteTicket:
    """Commit-or-abandon decision shared by the writer thread and its awaiter.

    Exactly one side wins: the writer moves it to committing, or the awaiter
    moves it to abandoned. Both transitions happen under one lock.
    """

    PENDING = "pending"
    COMMITTING = "committing"
    ABANDONED = "abandoned"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.state = self.PENDING

    @property
    def abandoned(self) -> bool:
        return self.state == self.ABANDONED

    def begin_commit(self, deadline: Deadline) -> bool:
        with self._lock:
            if self.state == self.PENDING and not deadline.expired:
                self.state = self.COMMITTING
                return True
            self.state = self.ABANDONED
            return False

    def abandon(self) -> bool:
        """Returns False when the writer already started committing."""
        with self._lock:
            if self.state == self.COMMITTING:
                return False
            self.state = self.ABANDONED
            return True


def _discard_outcome(fut: "asyncio.Future[int]") -> None:
    # outcome of an abandoned write is already reported as a timeout
    if not fut.cancelled():
        fut.exception()


class QuoteStore:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    def _connect(self, timeout: float = 5.0) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=timeout)
        conn.row_factory = sqlite3.Row
        return conn

    # ------------------------------------------------------------------
    # Writes
    async def insert(self, quote: Quote, deadline: Deadline) -> int:
        """Insert `quote` and return the new row id.

        Raises `TimeoutError` when the deadline passes first and `sqlite3.Error`
        on storage failures. Never retries. A row exists if and only if this
        returns an id.
        """
        ticket = WriteTicket()
        worker = asyncio.ensure_future(asyncio.to_thread(self._write, quote, deadline, ticket))
        worker.add_done_callback(_discard_outcome)
        try:
            async with deadline.scope():
                return await asyncio.shield(worker)
        except TimeoutError:
            if ticket.abandon():
                raise
            # the worker won the race and is committing; its outcome stands
            return await worker
        except BaseException:
            ticket.abandon()
            raise

    def _write(self, quote: Quote, deadline: Deadline, ticket: WriteTicket) -> int:
        if ticket.abandoned or deadline.expired:
            raise TimeoutError("persist deadline expired before write started")
        conn = self._connect(timeout=deadline.remaining())
        try:
            # WAL + NORMAL: commit does not wait on fsync
            conn.execute("PRAGMA synchronous=NORMAL")
            # non-zero return aborts the running statement with OperationalError
            conn.set_progress_handler(
                lambda: int(ticket.abandoned or deadline.expired), _PROGRESS_STEPS
            )
            cur = conn.execute(_INSERT_SQL, _row_values(quote))
            if not ticket.begin_commit(deadline):
                conn.rollback()
                raise TimeoutError("persist deadline expired before commit")
            # committing is final from here on
            conn.set_progress_handler(None, 0)
            conn.commit()
            return int(cur.lastrowid)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Reads
    def list_records(self, limit: Optional[int] = None) -> List[QuoteRecord]:
        sql = _SELECT_SQL
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (limit,)
        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [_to_record(r) for r in rows]

    def count(self) -> int:
        conn = self._connect()
        try:
            return int(conn.execute(f"SELECT COUNT(*) FROM {QUOTES_TABLE}").fetchone()[0])
        finally:
            conn.close()


def _row_values(quote: Quote) -> tuple:
    return tuple(getattr(quote, attr) for attr, _ in QUOTE_COLUMNS)


def _to_record(row: sqlite3.Row) -> QuoteRecord:
    quote = Quote(**{attr: row[col] for attr, col in QUOTE_COLUMNS})
    return QuoteRecord(id=row["id"], quote=quote)
