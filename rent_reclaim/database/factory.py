"""
Pick the persistence backend for a run: SQL when a database URL is
configured, the operator-readable JSON files otherwise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rent_reclaim.database.json_store import JsonAppendLog, JsonDocumentStore
from rent_reclaim.database.sql_store import SqlAppendLog, SqlDocumentStore
from rent_reclaim.database.store import AppendLog, DocumentStore
from rent_reclaim.reclaim_logging import get_logger

if TYPE_CHECKING:
    from rent_reclaim.config.settings import ReclaimSettings

logger = get_logger(__name__)


def open_stores(settings: ReclaimSettings) -> tuple[DocumentStore, AppendLog]:
    """Return (index store, audit log) for the configured backend."""
    if settings.db_url:
        logger.info("stores_opened", backend="sql")
        return SqlDocumentStore(settings.db_url), SqlAppendLog(settings.db_url)
    logger.info("stores_opened", backend="json", index=settings.index_path, audit=settings.audit_log_path)
    return JsonDocumentStore(settings.index_path), JsonAppendLog(settings.audit_log_path)
