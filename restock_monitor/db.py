"""SQLite stock ledger: the in-stock URLs per source from the last run."""

from __future__ import annotations

import datetime as _dt
import sqlite3
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Set

from .config import LEDGER_DB_PATH

Snapshot = Dict[str, Set[str]]


class LedgerError(Exception):
    """Raised when the ledger cannot be read or written."""


class StockLedger:
    """Baseline store, read once at the start of a run and replaced at the end.

    Single writer only: two runs sharing one database file are not supported.
    """

    def __init__(self, path: str = LEDGER_DB_PATH) -> None:
        self.path = path

    def _get_connection(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path)

    def _init_db(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
          CREATE TABLE IF NOT EXISTS stock (
            source_key TEXT NOT NULL,
            url TEXT NOT NULL,
            PRIMARY KEY (source_key, url)
          )
        """)
        conn.execute("""
          CREATE TABLE IF NOT EXISTS ledger_meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
          )
        """)

    def load(self, source_keys: Iterable[str]) -> Snapshot:
        """Return the stored snapshot restricted to `source_keys`.

        Every requested key is present; sources with no record (or a brand
        new database) map to an empty set.
        """
        snapshot: Snapshot = {key: set() for key in source_keys}
        try:
            conn = self._get_connection()
            try:
                self._init_db(conn)
                conn.commit()
                for source_key, url in conn.execute("SELECT source_key, url FROM stock"):
                    if source_key in snapshot:
                        snapshot[source_key].add(url)
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise LedgerError(f"Cannot load stock ledger {self.path}: {e}") from e
        return snapshot

    def save(self, snapshot: Mapping[str, Iterable[str]]) -> None:
        """Replace the whole stored snapshot in a single transaction."""
        now = _dt.datetime.now(_dt.timezone.utc).isoformat()
        rows = [(str(key), str(url)) for key, urls in snapshot.items() for url in set(urls)]
        try:
            conn = self._get_connection()
            try:
                with conn:
                    self._init_db(conn)
                    conn.execute("DELETE FROM stock")
                    conn.executemany("INSERT INTO stock (source_key, url) VALUES (?, ?)", rows)
                    conn.execute(
                        "INSERT INTO ledger_meta (key, value) VALUES ('saved_at', ?) "
                        "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                        (now,),
                    )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise LedgerError(f"Cannot save stock ledger {self.path}: {e}") from e

    def last_saved_at(self) -> Optional[str]:
        """ISO timestamp of the last successful save, or None."""
        if not Path(self.path).exists():
            return None
        try:
            conn = self._get_connection()
            try:
                self._init_db(conn)
                row = conn.execute("SELECT value FROM ledger_meta WHERE key = 'saved_at'").fetchone()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise LedgerError(f"Cannot read stock ledger {self.path}: {e}") from e
        return row[0] if row else None


__all__ = ["Snapshot", "LedgerError", "StockLedger"]
