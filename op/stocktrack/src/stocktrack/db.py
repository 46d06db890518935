# db.py
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    username TEXT,
    created_at INTEGER NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email ON users(email);

CREATE TABLE IF NOT EXISTS stocks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL,
    exchange_short_name TEXT,
    exchange TEXT,
    type TEXT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_stocks_name_symbol ON stocks(name, symbol);

CREATE TABLE IF NOT EXISTS holdings (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    shares REAL NOT NULL CHECK (shares >= 0),
    cost_per_share REAL NOT NULL CHECK (cost_per_share >= 0),
    cost_in_eur REAL NOT NULL CHECK (cost_in_eur >= 0),
    trading_currency TEXT NOT NULL,
    purchase_date TEXT NOT NULL,
    notes TEXT NOT NULL DEFAULT '',
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_holdings_user ON holdings(user_id);
"""


class Database:
    """Process-wide SQLite handle, connected lazily and reused.

    ``connect`` is idempotent through a check-then-act on ``_conn``. That is
    fine for the single startup path that calls it, but two threads racing
    the very first call could both open a connection; a multi-threaded
    initialiser would need a lock or a one-time-init primitive instead.

    All threads share one connection and therefore one transaction; writes
    must go through ``transaction``, which holds the write lock until the
    commit or rollback is done.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._conn: Optional[sqlite3.Connection] = None
        self._write_lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn = conn
        logger.info("database connected at %s", self.path)
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connect()
        with self._write_lock, conn:
            yield conn

    def init_schema(self) -> None:
        conn = self.connect()
        conn.executescript(_SCHEMA)
        conn.commit()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


def fetchone_dict(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    return dict(row) if row else None
