"""
Pytest tests for AuditSink: append-only trail, summaries, fatal write failures.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from rent_reclaim.audit.sink import AuditAction, AuditSink
from rent_reclaim.core.exceptions import AuditWriteError, StoreError
from rent_reclaim.database.json_store import JsonAppendLog


def test_append_and_read_back(audit, make_address):
    addr = make_address(1)
    entry = audit.append(AuditAction.ANALYZED, addr, {"flags": []})
    assert entry.action == "ANALYZED"
    assert entry.unix_timestamp > 0
    assert entry.iso_timestamp.endswith("+00:00")
    entries = audit.entries()
    assert len(entries) == 1
    assert entries[0].account == addr
    assert entries[0].details == {"flags": []}


def test_unknown_action_is_rejected(audit):
    with pytest.raises(ValueError):
        audit.append("DELETED", None)


def test_summary_and_reclaimed_total(audit, make_address):
    audit.append(AuditAction.INDEXED, make_address(1))
    audit.append(AuditAction.INDEXED, make_address(2))
    audit.append(AuditAction.RECLAIM_CONFIRMED, make_address(1), {"amount": 1_000})
    audit.append(AuditAction.RECLAIM_CONFIRMED, make_address(2), {"amount": 2_500})
    audit.append(AuditAction.RECLAIM_SIMULATED, make_address(3), {"amount": 9_999})
    assert audit.summary() == {"INDEXED": 2, "RECLAIM_CONFIRMED": 2, "RECLAIM_SIMULATED": 1}
    assert audit.total_reclaimed_lamports() == 3_500


def test_recent_is_newest_first_and_filterable(audit, make_address):
    for i in range(5):
        audit.append(AuditAction.ANALYZED, make_address(i + 1))
    audit.append(AuditAction.REJECTED, make_address(1))
    recent = audit.recent(limit=3)
    assert [e.action for e in recent] == ["REJECTED", "ANALYZED", "ANALYZED"]
    assert recent[1].account == make_address(5)
    assert [e.account for e in audit.recent(action="REJECTED")] == [make_address(1)]
    assert len(audit.for_account(make_address(1))) == 2


def test_unwritable_store_raises_audit_write_error(tmp_path):
    target = tmp_path / "audit-log.json"
    target.mkdir()
    sink = AuditSink(JsonAppendLog(target))
    with pytest.raises(AuditWriteError):
        sink.append(AuditAction.INDEXED, None)


@pytest.mark.parametrize("error", [OSError("disk full"), StoreError("backend gone")])
def test_backend_errors_become_audit_write_error(error):
    log = MagicMock()
    log.append.side_effect = error
    with pytest.raises(AuditWriteError, match="audit append failed"):
        AuditSink(log).append(AuditAction.SKIPPED, None, {"reason": "x"})
