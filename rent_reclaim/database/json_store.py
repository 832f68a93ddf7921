"""
JSON-file backends for the index and audit trail.

On-disk formats are plain JSON arrays (records / audit entries) so operators
can inspect and hand-edit them. Each mutation is a read-modify-write done
under a thread lock plus an advisory file lock (filelock), and lands through
a temp file + os.replace so a crash never leaves a truncated file.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from rent_reclaim.core.exceptions import AuditWriteError, StoreError
from rent_reclaim.database.store import AppendLog, Document, DocumentStore
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

LOCK_TIMEOUT_SEC = 10.0


class _JsonArrayFile:
    """A JSON array on disk with locked, atomic rewrites."""

    def __init__(self, path: str | Path, error_cls: type[StoreError] = StoreError) -> None:
        self.path = Path(path)
        self._error_cls = error_cls
        self._thread_lock = threading.RLock()
        self._file_lock = FileLock(str(self.path) + ".lock", timeout=LOCK_TIMEOUT_SEC)

    def read(self) -> list[Document]:
        if not self.path.exists():
            return []
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise self._error_cls(f"cannot read {self.path}: {e}") from e
        if not text.strip():
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise self._error_cls(f"corrupt JSON store {self.path}: {e}") from e
        if not isinstance(data, list):
            raise self._error_cls(f"{self.path} must contain a JSON array")
        return data

    def _write(self, docs: list[Document]) -> None:
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(docs, fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def mutate(self, fn: Any) -> Any:
        """
        Run fn(docs) under both locks. fn returns (changed, result); the file is
        rewritten only when changed is true.
        """
        with self._thread_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self._file_lock:
                    docs = self.read()
                    changed, result = fn(docs)
                    if changed:
                        self._write(docs)
                    return result
            except Timeout as e:
                raise self._error_cls(f"timed out waiting for lock on {self.path}") from e
            except OSError as e:
                logger.error("json_store_write_failed", path=str(self.path), error=str(e))
                raise self._error_cls(f"cannot write {self.path}: {e}") from e


class JsonDocumentStore(DocumentStore):
    """Documents keyed by `key_field`, stored as one JSON array."""

    def __init__(self, path: str | Path, key_field: str = "address") -> None:
        self._file = _JsonArrayFile(path)
        self.key_field = key_field

    @property
    def path(self) -> Path:
        return self._file.path

    def _find(self, docs: list[Document], key: str) -> int:
        for i, doc in enumerate(docs):
            if doc.get(self.key_field) == key:
                return i
        return -1

    def get(self, key: str) -> Document | None:
        docs = self._file.read()
        i = self._find(docs, key)
        return dict(docs[i]) if i >= 0 else None

    def list(self) -> list[Document]:
        return [dict(d) for d in self._file.read()]

    def insert_if_absent(self, key: str, doc: Document) -> bool:
        def op(docs: list[Document]) -> tuple[bool, bool]:
            if self._find(docs, key) >= 0:
                return False, False
            docs.append({**doc, self.key_field: key})
            return True, True

        return self._file.mutate(op)

    def compare_and_swap(self, key: str, expected: Document, new: Document) -> bool:
        def op(docs: list[Document]) -> tuple[bool, bool]:
            i = self._find(docs, key)
            if i < 0 or docs[i] != expected:
                return False, False
            docs[i] = {**new, self.key_field: key}
            return True, True

        return self._file.mutate(op)

    def delete(self, key: str) -> bool:
        def op(docs: list[Document]) -> tuple[bool, bool]:
            i = self._find(docs, key)
            if i < 0:
                return False, False
            del docs[i]
            return True, True

        return self._file.mutate(op)


class JsonAppendLog(AppendLog):
    """Audit entries as one JSON array. Write failures raise AuditWriteError."""

    def __init__(self, path: str | Path) -> None:
        self._file = _JsonArrayFile(path, error_cls=AuditWriteError)

    @property
    def path(self) -> Path:
        return self._file.path

    def append(self, doc: Document) -> None:
        def op(docs: list[Document]) -> tuple[bool, None]:
            docs.append(dict(doc))
            return True, None

        self._file.mutate(op)

    def read_all(self) -> list[Document]:
        return self._file.read()
