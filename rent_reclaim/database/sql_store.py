"""
SQLAlchemy-backed stores: transactional alternative to the JSON files.

Uses RECLAIM_DB_URL (any SQLAlchemy URL; SQLite by default) so that several
sharded pipeline instances can share one index with real compare-and-swap.
Documents are stored as canonical JSON text (sorted keys), which makes the
compare step a plain equality in the UPDATE's WHERE clause.
"""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import Column, Integer, String, Text, UniqueConstraint, create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from rent_reclaim.core.exceptions import AuditWriteError, StoreError
from rent_reclaim.database.store import AppendLog, Document, DocumentStore
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()

# -----------------------------------------------------------------------------
# SQLAlchemy models
# -----------------------------------------------------------------------------


class StoredDocument(Base):
    """One keyed document per row; `collection` separates the index from other users."""

    __tablename__ = "reclaim_documents"
    __table_args__ = (UniqueConstraint("collection", "key", name="uq_collection_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False, index=True)
    key = Column(String(128), nullable=False, index=True)
    body = Column(Text, nullable=False)
    updated_at = Column(Integer, nullable=False)  # Unix


class AuditRow(Base):
    """
    Audit trail row (append-only). Never updated or deleted.
    """

    __tablename__ = "reclaim_audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(64), nullable=False, index=True)
    account = Column(String(64), nullable=True, index=True)
    timestamp = Column(Integer, nullable=False, index=True)  # Unix
    body = Column(Text, nullable=False)


def _canonical(doc: Document) -> str:
    return json.dumps(doc, sort_keys=True, separators=(",", ":"))


class _SqlBackend:
    """Engine + session factory for one database URL."""

    def __init__(self, url: str) -> None:
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.url = url
        self.engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
        Base.metadata.create_all(self.engine)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        logger.info("sql_store_engine", url=url.split("?")[0].split("//")[-1])

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Context manager for a single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


class SqlDocumentStore(DocumentStore):
    def __init__(self, url: str, collection: str = "tracked_accounts") -> None:
        self._backend = _SqlBackend(url)
        self.collection = collection

    def get(self, key: str) -> Document | None:
        try:
            with self._backend.session_scope() as session:
                row = (
                    session.query(StoredDocument)
                    .filter(StoredDocument.collection == self.collection, StoredDocument.key == key)
                    .first()
                )
                return json.loads(row.body) if row else None
        except SQLAlchemyError as e:
            raise StoreError(f"get {key} failed: {e}") from e

    def list(self) -> list[Document]:
        try:
            with self._backend.session_scope() as session:
                rows = (
                    session.query(StoredDocument)
                    .filter(StoredDocument.collection == self.collection)
                    .order_by(StoredDocument.id)
                    .all()
                )
                return [json.loads(r.body) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"list failed: {e}") from e

    def insert_if_absent(self, key: str, doc: Document) -> bool:
        try:
            with self._backend.session_scope() as session:
                session.add(
                    StoredDocument(
                        collection=self.collection,
                        key=key,
                        body=_canonical(doc),
                        updated_at=int(time.time()),
                    )
                )
            return True
        except IntegrityError:
            return False
        except SQLAlchemyError as e:
            raise StoreError(f"insert {key} failed: {e}") from e

    def compare_and_swap(self, key: str, expected: Document, new: Document) -> bool:
        try:
            with self._backend.session_scope() as session:
                updated = (
                    session.query(StoredDocument)
                    .filter(
                        StoredDocument.collection == self.collection,
                        StoredDocument.key == key,
                        StoredDocument.body == _canonical(expected),
                    )
                    .update(
                        {"body": _canonical(new), "updated_at": int(time.time())},
                        synchronize_session=False,
                    )
                )
                return updated == 1
        except SQLAlchemyError as e:
            raise StoreError(f"compare_and_swap {key} failed: {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with self._backend.session_scope() as session:
                deleted = (
                    session.query(StoredDocument)
                    .filter(StoredDocument.collection == self.collection, StoredDocument.key == key)
                    .delete(synchronize_session=False)
                )
                return deleted > 0
        except SQLAlchemyError as e:
            raise StoreError(f"delete {key} failed: {e}") from e

    def close(self) -> None:
        self._backend.dispose()


class SqlAppendLog(AppendLog):
    def __init__(self, url: str) -> None:
        self._backend = _SqlBackend(url)

    def append(self, doc: Document) -> None:
        try:
            with self._backend.session_scope() as session:
                session.add(
                    AuditRow(
                        action=str(doc.get("action") or ""),
                        account=doc.get("account"),
                        timestamp=int(doc.get("unix_timestamp") or time.time()),
                        body=_canonical(doc),
                    )
                )
        except SQLAlchemyError as e:
            logger.error("sql_audit_append_failed", error=str(e))
            raise AuditWriteError(f"audit append failed: {e}") from e

    def read_all(self) -> list[Document]:
        try:
            with self._backend.session_scope() as session:
                rows = session.query(AuditRow).order_by(AuditRow.id).all()
                return [json.loads(r.body) for r in rows]
        except SQLAlchemyError as e:
            raise StoreError(f"audit read failed: {e}") from e

    def close(self) -> None:
        self._backend.dispose()
