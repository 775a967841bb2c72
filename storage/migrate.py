"""SQLite schema migrations."""
from __future__ import annotations

from typing import Iterable

from .sqlite import Database

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS documents (
  collection TEXT NOT NULL,
  doc_id TEXT NOT NULL,
  body TEXT NOT NULL,
  version INTEGER NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  PRIMARY KEY (collection, doc_id)
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_documents_created
  ON documents (collection, created_at);
""",
]


def migrate(db: Database) -> None:
    """Apply schema migrations to the SQLite database."""

    with db.connect() as conn:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)


if __name__ == "__main__":
    from config.settings import settings

    migrate(Database(settings.DB_PATH))
