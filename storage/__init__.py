"""Persistence layer: SQLite connection factory and document store."""
from .documents import ConflictError, DocumentStore, ModelStore, StoredDocument
from .migrate import migrate
from .sqlite import Database

__all__ = ["ConflictError", "Database", "DocumentStore", "ModelStore", "StoredDocument", "migrate"]
