"""
Persistence for the account index and the audit trail.

DocumentStore / AppendLog interfaces with JSON-file and SQLAlchemy backends.
"""

from rent_reclaim.database.factory import open_stores
from rent_reclaim.database.json_store import JsonAppendLog, JsonDocumentStore
from rent_reclaim.database.sql_store import SqlAppendLog, SqlDocumentStore
from rent_reclaim.database.store import AppendLog, DocumentStore

__all__ = [
    "AppendLog",
    "DocumentStore",
    "JsonAppendLog",
    "JsonDocumentStore",
    "SqlAppendLog",
    "SqlDocumentStore",
    "open_stores",
]
