"""
The content store: one SQLite file holding published works and reader reviews.
"""

import sqlite3
import threading
from pathlib import Path

SCHEMA = """
------------------------------------------------------------
-- 1.  Published works (poetry / novel)
------------------------------------------------------------
CREATE TABLE IF NOT EXISTS content (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    title       TEXT NOT NULL,
    body        TEXT NOT NULL,
    type        TEXT NOT NULL,          -- 'poetry' or 'novel'
    pdf_data    TEXT,                   -- data:application/pdf;base64,...
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);

------------------------------------------------------------
-- 2.  Reader reviews
------------------------------------------------------------
CREATE TABLE IF NOT EXISTS reviews (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    comment     TEXT NOT NULL,
    rating      INTEGER DEFAULT 5,
    created_at  DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

DEFAULT_RATING = 5


class ContentStore:
    """
    A single long-lived connection shared by every request.

    • Each public method runs exactly one statement.
    • Rows come back as plain dicts so they serialize straight to JSON.
    • ``sqlite3.Error`` is never caught here – the caller decides.
    """

    def __init__(self, path: str | Path):
        self.path = str(path)
        self.db = sqlite3.connect(self.path, check_same_thread=False)
        self.db.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    def init_schema(self) -> None:
        with self._lock:
            self.db.executescript(SCHEMA)
            self.db.commit()

    def close(self) -> None:
        with self._lock:
            self.db.close()

    # ------------------------------------------------------------------
    # low-level helpers
    # ------------------------------------------------------------------
    def _rows(self, sql: str, params: tuple = ()) -> list[dict]:
        with self._lock:
            rows = self.db.execute(sql, params).fetchall()
        return [dict(r) for r in rows]

    def _write(self, sql: str, params: tuple) -> sqlite3.Cursor:
        with self._lock:
            cur = self.db.execute(sql, params)
            self.db.commit()
        return cur

    def _count(self, table: str) -> int:
        with self._lock:
            return self.db.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]

    # ------------------------------------------------------------------
    # works
    # ------------------------------------------------------------------
    def list_works(self) -> list[dict]:
        # CURRENT_TIMESTAMP has one-second resolution → id breaks ties
        return self._rows("SELECT * FROM content ORDER BY created_at DESC, id DESC")

    def create_work(
        self, title: str, body: str, kind: str, attachment: str | None = None
    ) -> int:
        cur = self._write(
            "INSERT INTO content (title, body, type, pdf_data) VALUES (?,?,?,?)",
            (title, body, kind, attachment),
        )
        return cur.lastrowid

    def delete_work(self, work_id: int) -> bool:
        cur = self._write("DELETE FROM content WHERE id=?", (work_id,))
        return cur.rowcount > 0

    def count_works(self) -> int:
        return self._count("content")

    # ------------------------------------------------------------------
    # reviews
    # ------------------------------------------------------------------
    def list_reviews(self) -> list[dict]:
        return self._rows("SELECT * FROM reviews ORDER BY created_at DESC, id DESC")

    def create_review(self, name: str, comment: str, rating: int = DEFAULT_RATING) -> int:
        cur = self._write(
            "INSERT INTO reviews (name, comment, rating) VALUES (?,?,?)",
            (name, comment, rating),
        )
        return cur.lastrowid

    def delete_review(self, review_id: int) -> bool:
        cur = self._write("DELETE FROM reviews WHERE id=?", (review_id,))
        return cur.rowcount > 0

    def count_reviews(self) -> int:
        return self._count("reviews")
