"""Document-oriented persistence over SQLite JSON columns."""
from __future__ import annotations

import datetime as dt
import json
import re
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel

from .sqlite import Database

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ConflictError(RuntimeError):
    """Raised when a replace targets a stale document version."""


class StoredDocument(BaseModel):
    doc_id: str
    version: int
    body: Dict[str, Any]
    created_at: str
    updated_at: str


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _row_to_doc(row) -> StoredDocument:
    return StoredDocument(
        doc_id=row["doc_id"],
        version=row["version"],
        body=json.loads(row["body"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _filter_clause(field: str, value: Any) -> tuple[str, tuple]:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Unsupported filter field: {field!r}")
    if value is None:
        return f"json_extract(body, '$.{field}') IS NULL", ()
    if isinstance(value, bool):
        value = int(value)
    return f"json_extract(body, '$.{field}') = ?", (value,)


class DocumentStore:
    """Get/find/create/replace of JSON documents grouped by collection.

    Every document carries a version that ``replace`` checks, so a
    read-modify-write built on a stale read fails with ``ConflictError``
    instead of overwriting a concurrent change.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._db.connect() as conn:
            row = conn.execute(
                """SELECT doc_id, version, body, created_at, updated_at
                   FROM documents WHERE collection = ? AND doc_id = ?""",
                (collection, doc_id),
            ).fetchone()
        return _row_to_doc(row) if row is not None else None

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> List[StoredDocument]:
        ids = sorted(set(doc_ids))
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        with self._db.connect() as conn:
            rows = conn.execute(
                f"""SELECT doc_id, version, body, created_at, updated_at
                    FROM documents
                    WHERE collection = ? AND doc_id IN ({placeholders})
                    ORDER BY created_at DESC, rowid DESC""",
                (collection, *ids),
            ).fetchall()
        return [_row_to_doc(row) for row in rows]

    def find(self, collection: str, **filters: Any) -> List[StoredDocument]:
        """Return documents whose top-level fields equal ``filters``, newest first."""

        clauses = ["collection = ?"]
        params: List[Any] = [collection]
        for field, value in filters.items():
            clause, extra = _filter_clause(field, value)
            clauses.append(clause)
            params.extend(extra)
        with self._db.connect() as conn:
            rows = conn.execute(
                f"""SELECT doc_id, version, body, created_at, updated_at
                    FROM documents
                    WHERE {' AND '.join(clauses)}
                    ORDER BY created_at DESC, rowid DESC""",
                params,
            ).fetchall()
        return [_row_to_doc(row) for row in rows]

    def create(self, collection: str, doc_id: str, body: Dict[str, Any]) -> StoredDocument:
        now = _now()
        with self._db.connect() as conn:
            conn.execute(
                """INSERT INTO documents (collection, doc_id, body, version, created_at, updated_at)
                   VALUES (?, ?, ?, 1, ?, ?)""",
                (collection, doc_id, json.dumps(body, ensure_ascii=False), now, now),
            )
        return StoredDocument(doc_id=doc_id, version=1, body=body, created_at=now, updated_at=now)

    def replace(
        self,
        collection: str,
        doc_id: str,
        body: Dict[str, Any],
        *,
        expected_version: int,
    ) -> StoredDocument:
        """Replace the whole document if it is still at ``expected_version``."""

        now = _now()
        with self._db.connect() as conn:
            cur = conn.execute(
                """UPDATE documents
                   SET body = ?, version = version + 1, updated_at = ?
                   WHERE collection = ? AND doc_id = ? AND version = ?""",
                (json.dumps(body, ensure_ascii=False), now, collection, doc_id, expected_version),
            )
            if cur.rowcount == 0:
                row = conn.execute(
                    "SELECT version FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                ).fetchone()
                if row is None:
                    raise KeyError(f"Document '{collection}/{doc_id}' not found")
                raise ConflictError(
                    f"Document '{collection}/{doc_id}' is at version {row['version']}, expected {expected_version}"
                )
            row = conn.execute(
                """SELECT doc_id, version, body, created_at, updated_at
                   FROM documents WHERE collection = ? AND doc_id = ?""",
                (collection, doc_id),
            ).fetchone()
        return _row_to_doc(row)


T = TypeVar("T", bound=BaseModel)


class ModelStore(Generic[T]):
    """Typed view over one collection; models carry ``id`` and ``version`` fields."""

    collection: str
    model: Type[T]

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents

    def _load(self, doc: StoredDocument) -> T:
        data = dict(doc.body)
        data["id"] = doc.doc_id
        data["version"] = doc.version
        return self.model.model_validate(data)

    def _dump(self, item: T) -> Dict[str, Any]:
        return item.model_dump(mode="json", exclude={"id", "version"})

    def get(self, item_id: str) -> Optional[T]:
        doc = self._documents.get(self.collection, item_id)
        return self._load(doc) if doc is not None else None

    def get_many(self, item_ids: Iterable[str]) -> List[T]:
        return [self._load(doc) for doc in self._documents.get_many(self.collection, item_ids)]

    def find(self, **filters: Any) -> List[T]:
        return [self._load(doc) for doc in self._documents.find(self.collection, **filters)]

    def create(self, item: T) -> T:
        doc = self._documents.create(self.collection, item.id, self._dump(item))  # type: ignore[attr-defined]
        return self._load(doc)

    def save(self, item: T) -> T:
        """Persist ``item`` over the revision it was loaded from."""

        doc = self._documents.replace(
            self.collection,
            item.id,  # type: ignore[attr-defined]
            self._dump(item),
            expected_version=item.version,  # type: ignore[attr-defined]
        )
        return self._load(doc)


__all__ = ["ConflictError", "DocumentStore", "ModelStore", "StoredDocument"]
