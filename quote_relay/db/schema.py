"""Database schema DDL and initialization.

Tables:
  - cotacoes: append-only log of fetched quotes, one row per successful
    persistence attempt. Column names follow the provider's wire names.
"""

from __future__ import annotations
import sqlite3
from pathlib import Path

QUOTES_TABLE = "cotacoes"

# Quote attribute -> column, in insertion order
QUOTE_COLUMNS = (
    ("code", "code"),
    ("codein", "codein"),
    ("name", "name"),
    ("high", "high"),
    ("low", "low"),
    ("var_bid", "varBid"),
    ("pct_change", "pctChange"),
    ("bid", "bid"),
    ("ask", "ask"),
    ("timestamp", "timestamp"),
    ("create_date", "create_date"),
)

QUOTES_DDL = f"""
CREATE TABLE IF NOT EXISTS {QUOTES_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT,
    codein TEXT,
    name TEXT,
    high TEXT,
    low TEXT,
    varBid TEXT,
    pctChange TEXT,
    bid TEXT NOT NULL,
    ask TEXT,
    timestamp TEXT,
    create_date TEXT
);
"""


def init_db(db_path: Path) -> None:
    """Create the quotes table if missing. Safe to call on every startup."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        # WAL lets readers proceed while a writer holds the lock
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(QUOTES_DDL)
        conn.commit()
    finally:
        conn.close()
