"""
Registry of sponsored accounts: the only owner of TrackedAccountRecord.

Records are created on register/import, mutated only to bump last_checked_at,
and removed only after a confirmed reclaim. Registration is idempotent: an
address that is already tracked is left untouched, never overwritten.
"""

from __future__ import annotations

import json
import time
from collections import Counter
from pathlib import Path
from typing import Any, Iterable

from rent_reclaim.audit.sink import AuditAction, AuditSink
from rent_reclaim.core.exceptions import InvalidRecordError, StoreError
from rent_reclaim.database.store import DocumentStore
from rent_reclaim.indexer.models import TrackedAccountRecord, validate_pubkey
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

TOUCH_MAX_ATTEMPTS = 3


class AccountIndex:
    def __init__(self, store: DocumentStore, audit: AuditSink | None = None) -> None:
        self._store = store
        self._audit = audit

    # -------------------------------------------------------------------------
    # Core contract
    # -------------------------------------------------------------------------

    def register(self, record: TrackedAccountRecord) -> bool:
        """
        Insert if absent. Returns True when newly tracked, False for a duplicate.

        The record is re-validated first; InvalidRecordError for a bad instance.
        """
        record = TrackedAccountRecord.from_dict(record.to_dict())
        inserted = self._store.insert_if_absent(record.address, record.to_dict())
        if not inserted:
            logger.debug("account_already_tracked", account=short_address(record.address))
            return False
        logger.info(
            "account_indexed",
            account=short_address(record.address),
            owner=short_address(record.claimed_owner_program),
            rent_lamports=record.rent_paid_at_creation,
        )
        if self._audit is not None:
            self._audit.append(
                AuditAction.INDEXED,
                record.address,
                {
                    "owner": record.claimed_owner_program,
                    "rent_lamports": record.rent_paid_at_creation,
                    "creation_slot": record.creation_height,
                },
            )
        return True

    def list(self) -> list[TrackedAccountRecord]:
        out: list[TrackedAccountRecord] = []
        for raw in self._store.list():
            try:
                out.append(TrackedAccountRecord.from_dict(raw))
            except InvalidRecordError as e:
                # Hand-edited index files can hold junk; never let one row hide the rest
                logger.warning("index_record_invalid", error=str(e), raw=str(raw)[:120])
        return out

    def get(self, address: str) -> TrackedAccountRecord | None:
        raw = self._store.get(address)
        if raw is None:
            return None
        try:
            return TrackedAccountRecord.from_dict(raw)
        except InvalidRecordError as e:
            logger.warning("index_record_invalid", account=short_address(address), error=str(e))
            return None

    def remove(self, address: str, reason: str = "reclaim_confirmed") -> bool:
        removed = self._store.delete(address)
        if removed:
            logger.info("account_removed_from_index", account=short_address(address), reason=reason)
            if self._audit is not None:
                self._audit.append(AuditAction.REMOVED_FROM_INDEX, address, {"reason": reason})
        return removed

    def import_bulk(self, records: Iterable[Any]) -> int:
        """
        Validate and register each record independently.

        Accepts TrackedAccountRecord instances or raw dicts (snake_case or
        camelCase). Invalid entries are logged and skipped; the batch never
        aborts. Returns the count of newly tracked accounts.
        """
        imported = 0
        skipped = 0
        for i, item in enumerate(records):
            try:
                raw = item.to_dict() if isinstance(item, TrackedAccountRecord) else item
                record = TrackedAccountRecord.from_dict(raw)
            except InvalidRecordError as e:
                skipped += 1
                logger.warning("import_record_invalid", position=i, error=str(e))
                continue
            try:
                if self.register(record):
                    imported += 1
            except StoreError as e:
                skipped += 1
                logger.error("import_record_store_failed", account=short_address(record.address), error=str(e))
        logger.info("import_bulk_done", imported=imported, skipped=skipped)
        return imported

    # -------------------------------------------------------------------------
    # Extras
    # -------------------------------------------------------------------------

    def touch(self, address: str, at: int | None = None) -> bool:
        """Set last_checked_at via compare-and-swap; retried when another writer got in first."""
        at = int(time.time()) if at is None else int(at)
        for _ in range(TOUCH_MAX_ATTEMPTS):
            current = self._store.get(address)
            if current is None:
                return False
            updated = {**current, "last_checked_at": at}
            if self._store.compare_and_swap(address, current, updated):
                return True
        logger.warning("index_touch_contended", account=short_address(address))
        return False

    def import_file(self, path: str | Path) -> int:
        """Read a JSON array (or {"sponsoredAccounts": [...]}) and import it."""
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"cannot read import file {p}: {e}") from e
        if isinstance(data, dict):
            data = data.get("sponsoredAccounts") or data.get("accounts") or []
        if not isinstance(data, list):
            raise StoreError(f"{p} must contain a JSON array of account records")
        logger.info("import_file_loaded", path=str(p), records=len(data))
        return self.import_bulk(data)

    def export_file(self, path: str | Path) -> int:
        records = self.list()
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps([r.to_dict() for r in records], indent=2) + "\n", encoding="utf-8")
        logger.info("index_exported", path=str(p), records=len(records))
        return len(records)

    def contains(self, address: str) -> bool:
        try:
            address = validate_pubkey(address, "address")
        except InvalidRecordError:
            return False
        return self._store.get(address) is not None

    def statistics(self) -> dict[str, Any]:
        records = self.list()
        created = [r.created_at for r in records]
        return {
            "total_tracked": len(records),
            "total_rent_locked": sum(r.rent_paid_at_creation for r in records),
            "by_owner_program": dict(Counter(r.claimed_owner_program for r in records)),
            "oldest_created_at": min(created) if created else None,
            "newest_created_at": max(created) if created else None,
        }
