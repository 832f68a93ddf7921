"""
Append-only audit trail: every index change, verdict and reclaim transition.

The audit log is the source of truth for reporting and the dashboard. There
is no update or delete. A write failure is fatal (AuditWriteError): a run that
cannot record what it does must not keep doing it.
"""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from rent_reclaim.core.exceptions import AuditWriteError, StoreError
from rent_reclaim.database.store import AppendLog
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)


class AuditAction(str, Enum):
    INDEXED = "INDEXED"
    ANALYZED = "ANALYZED"
    SKIPPED = "SKIPPED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RECLAIM_SIMULATED = "RECLAIM_SIMULATED"
    RECLAIM_SUBMITTED = "RECLAIM_SUBMITTED"
    RECLAIM_CONFIRMED = "RECLAIM_CONFIRMED"
    RECLAIM_FAILED = "RECLAIM_FAILED"
    REMOVED_FROM_INDEX = "REMOVED_FROM_INDEX"


@dataclass(frozen=True)
class AuditEntry:
    unix_timestamp: int
    iso_timestamp: str
    action: str
    account: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> AuditEntry:
        return cls(
            unix_timestamp=int(raw.get("unix_timestamp") or 0),
            iso_timestamp=str(raw.get("iso_timestamp") or ""),
            action=str(raw.get("action") or ""),
            account=raw.get("account"),
            details=dict(raw.get("details") or {}),
        )


class AuditSink:
    """Typed front for an AppendLog."""

    def __init__(self, log: AppendLog) -> None:
        self._log = log

    def append(
        self,
        action: AuditAction | str,
        account: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Record one entry. Raises AuditWriteError if the store cannot be written."""
        now = time.time()
        entry = AuditEntry(
            unix_timestamp=int(now),
            iso_timestamp=datetime.fromtimestamp(now, tz=timezone.utc).isoformat(),
            action=AuditAction(action).value,
            account=account,
            details=dict(details or {}),
        )
        try:
            self._log.append(entry.to_dict())
        except AuditWriteError:
            logger.error("audit_write_failed", action=entry.action, account=short_address(account))
            raise
        except (StoreError, OSError) as e:
            logger.error("audit_write_failed", action=entry.action, account=short_address(account), error=str(e))
            raise AuditWriteError(f"audit append failed: {e}") from e
        logger.debug("audit_appended", action=entry.action, account=short_address(account))
        return entry

    def entries(self) -> list[AuditEntry]:
        return [AuditEntry.from_dict(raw) for raw in self._log.read_all()]

    def for_account(self, account: str) -> list[AuditEntry]:
        return [e for e in self.entries() if e.account == account]

    def recent(self, limit: int = 100, action: str | None = None) -> list[AuditEntry]:
        """Newest first, optionally filtered by action."""
        items = self.entries()
        if action:
            items = [e for e in items if e.action == action]
        items.reverse()
        return items[: max(0, limit)]

    def summary(self) -> dict[str, int]:
        """Entry counts grouped by action."""
        return dict(Counter(e.action for e in self.entries()))

    def total_reclaimed_lamports(self) -> int:
        return sum(
            int(e.details.get("amount") or 0)
            for e in self.entries()
            if e.action == AuditAction.RECLAIM_CONFIRMED.value
        )
