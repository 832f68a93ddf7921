"""
Pytest tests for the batch scheduler: partitioning, batch retry, sharded and periodic runs.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from rent_reclaim.core.exceptions import AuditWriteError, ConfigError
from rent_reclaim.core.constants import SYSTEM_PROGRAM_ID_STR
from rent_reclaim.pipeline.report import BatchSummary
from rent_reclaim.pipeline.runner import MODE_DRY_RUN, ReclaimPipeline
from rent_reclaim.scheduler.engine import MAX_SHARDS, partition, run_periodic, run_sharded, run_with_retry


def test_partition_is_disjoint_and_ordered():
    items = [f"a{i}" for i in range(10)]
    shards = partition(items, 3)
    assert shards == [items[0:4], items[4:7], items[7:10]]
    assert partition(items, 1) == [items]
    assert partition([], 4) == []
    # More shards than items: no empty shards
    assert partition(["x", "y"], 5) == [["x"], ["y"]]
    assert len(partition([str(i) for i in range(100)], 100)) == MAX_SHARDS


def test_run_with_retry_backs_off_then_succeeds():
    sleeps: list[float] = []
    op = MagicMock(side_effect=[RuntimeError("blip"), RuntimeError("blip"), "done"])
    assert run_with_retry(op, attempts=3, backoff_sec=2, sleep=sleeps.append) == "done"
    assert sleeps == [2, 4]


def test_run_with_retry_reraises_last_error():
    op = MagicMock(side_effect=RuntimeError("still down"))
    with pytest.raises(RuntimeError, match="still down"):
        run_with_retry(op, attempts=2, backoff_sec=0, sleep=lambda s: None)
    assert op.call_count == 2


@pytest.mark.parametrize("error", [ConfigError("bad"), AuditWriteError("disk")])
def test_run_with_retry_never_retries_fatal_errors(error):
    op = MagicMock(side_effect=error)
    with pytest.raises(type(error)):
        run_with_retry(op, attempts=5, backoff_sec=0, sleep=lambda s: None)
    assert op.call_count == 1


def test_run_sharded_processes_every_address_once(tmp_path, settings, fetcher, chain, make_address, make_record):
    """Shards over a SQL store cover every address exactly once; summaries are merged."""
    from rent_reclaim.audit.sink import AuditSink
    from rent_reclaim.database.sql_store import SqlAppendLog, SqlDocumentStore
    from rent_reclaim.indexer.account_index import AccountIndex

    url = f"sqlite:///{tmp_path / 'shards.db'}"
    seed_index = AccountIndex(SqlDocumentStore(url))
    addresses = [make_address(n) for n in range(1, 8)]
    for addr in addresses:
        seed_index.register(make_record(addr))
        chain.put(addr, 1_000_000, SYSTEM_PROGRAM_ID_STR)

    def factory() -> ReclaimPipeline:
        audit = AuditSink(SqlAppendLog(url))
        return ReclaimPipeline(settings, AccountIndex(SqlDocumentStore(url), audit), audit, fetcher)

    summary = run_sharded(factory, addresses, MODE_DRY_RUN, 3)
    assert summary.processed == len(addresses)
    assert summary.simulated == len(addresses)
    assert sorted(a.address for a in summary.actions) == sorted(addresses)
    assert summary.simulated_lamports == 7_000_000


def test_run_sharded_single_shard_uses_one_pipeline(make_address):
    pipeline = MagicMock()
    pipeline.process_batch.return_value = BatchSummary(mode=MODE_DRY_RUN, processed=2)
    summary = run_sharded(lambda: pipeline, [make_address(1), make_address(2)], MODE_DRY_RUN, 1)
    assert summary.processed == 2
    pipeline.process_batch.assert_called_once_with([make_address(1), make_address(2)], MODE_DRY_RUN)


def test_run_periodic_stops_after_max_ticks_and_survives_failures():
    calls = []

    def job():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first tick fails")

    stop = threading.Event()
    # Interval is floored at 1s; keep the test short with two ticks
    assert run_periodic(job, 1, stop, max_ticks=2) == 2
    assert len(calls) == 2


def test_run_periodic_respects_stop_event():
    stop = threading.Event()
    stop.set()
    job = MagicMock()
    assert run_periodic(job, 60, stop) == 0
    job.assert_not_called()


def test_run_periodic_stops_on_config_error():
    stop = threading.Event()
    job = MagicMock(side_effect=ConfigError("bad config"))
    with pytest.raises(ConfigError):
        run_periodic(job, 60, stop)


def test_merge_summaries():
    a = BatchSummary(mode="dry-run", processed=2, rejected=1, rejection_reasons={"RECENTLY_ACTIVE": 1}, finished_at=5.0)
    b = BatchSummary(mode="dry-run", processed=3, rejected=2, rejection_reasons={"RECENTLY_ACTIVE": 1, "UNKNOWN_OWNER": 1})
    merged = BatchSummary.merge([a, b], "dry-run")
    assert merged.processed == 5
    assert merged.rejected == 3
    assert merged.rejection_reasons == {"RECENTLY_ACTIVE": 2, "UNKNOWN_OWNER": 1}
    assert merged.finished_at == 5.0
