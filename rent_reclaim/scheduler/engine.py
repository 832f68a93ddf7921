"""
Batch scheduling: when and how many pipelines run at once.

- partition: split addresses into disjoint, order-preserving shards.
- run_with_retry: batch-level retry with exponential backoff (separate from
  the per-RPC retries inside the fetcher). ConfigError and AuditWriteError
  are never retried.
- run_sharded: one independent pipeline per shard in a thread pool, each with
  its own connection; shard summaries are merged.
- run_periodic: run a job every interval until stop_event is set. A failing
  tick is logged and the loop goes on.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Callable, Sequence, TypeVar

from rent_reclaim.core.exceptions import AuditWriteError, ConfigError
from rent_reclaim.pipeline.report import BatchSummary
from rent_reclaim.reclaim_logging import get_logger

if TYPE_CHECKING:
    from rent_reclaim.pipeline.runner import ReclaimPipeline

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_BATCH_RETRY_ATTEMPTS = 2
DEFAULT_BATCH_RETRY_BACKOFF_SEC = 5.0
MAX_SHARDS = 16

# Errors that a retry cannot fix
NON_RETRYABLE = (ConfigError, AuditWriteError)


def partition(addresses: Sequence[str], shards: int) -> list[list[str]]:
    """
    Split into at most `shards` contiguous, disjoint chunks (order kept).
    Empty chunks are dropped.
    """
    items = list(addresses)
    shards = max(1, min(int(shards), MAX_SHARDS))
    if not items:
        return []
    size, extra = divmod(len(items), shards)
    out: list[list[str]] = []
    start = 0
    for i in range(shards):
        end = start + size + (1 if i < extra else 0)
        if end > start:
            out.append(items[start:end])
        start = end
    return out


def run_with_retry(
    operation: Callable[[], T],
    attempts: int = DEFAULT_BATCH_RETRY_ATTEMPTS,
    backoff_sec: float = DEFAULT_BATCH_RETRY_BACKOFF_SEC,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run operation, retrying on failure. Re-raises the last error when attempts run out."""
    attempts = max(1, int(attempts))
    for attempt in range(attempts):
        try:
            return operation()
        except NON_RETRYABLE:
            raise
        except Exception as e:
            if attempt >= attempts - 1:
                logger.error("batch_operation_failed", attempts=attempts, error=str(e))
                raise
            backoff = backoff_sec * (2 ** attempt)
            logger.warning("batch_operation_retry", attempt=attempt + 1, attempts=attempts, backoff_sec=backoff, error=str(e))
            sleep(backoff)
    raise RuntimeError("unreachable")


def run_sharded(
    pipeline_factory: Callable[[], ReclaimPipeline],
    addresses: Sequence[str],
    mode: str,
    shards: int,
) -> BatchSummary:
    """
    Run disjoint shards concurrently, one fresh pipeline per shard.

    Use a transactional store (RECLAIM_DB_URL) when shards > 1: JSON files are
    locked per write but every shard rewrites the same file.
    """
    chunks = partition(addresses, shards)
    if len(chunks) <= 1:
        return pipeline_factory().process_batch(chunks[0] if chunks else [], mode)
    logger.info("sharded_run_start", shards=len(chunks), accounts=len(addresses), mode=mode)

    def _run(chunk: list[str]) -> BatchSummary:
        return pipeline_factory().process_batch(chunk, mode)

    with ThreadPoolExecutor(max_workers=len(chunks), thread_name_prefix="reclaim-shard") as pool:
        futures = [pool.submit(_run, chunk) for chunk in chunks]
        summaries = [f.result() for f in futures]
    merged = BatchSummary.merge(summaries, mode)
    logger.info("sharded_run_done", shards=len(chunks), **merged.counts())
    return merged


def run_periodic(
    job: Callable[[], object],
    interval_sec: float,
    stop_event: threading.Event,
    max_ticks: int | None = None,
) -> int:
    """
    Call job every interval_sec until stop_event is set (or max_ticks reached).
    Returns the number of ticks run. ConfigError ends the loop.
    """
    interval = max(1.0, float(interval_sec))
    logger.info("periodic_runner_started", interval_sec=interval)
    tick_count = 0
    while not stop_event.is_set():
        tick_start = time.monotonic()
        tick_count += 1
        try:
            job()
            logger.info("periodic_tick_done", tick=tick_count)
        except NON_RETRYABLE as e:
            logger.error("periodic_runner_fatal", tick=tick_count, error=str(e))
            raise
        except Exception as e:
            logger.exception("periodic_tick_failed", tick=tick_count, error=str(e))
        if max_ticks is not None and tick_count >= max_ticks:
            break
        # Sleep until next tick; wake periodically to check stop_event
        deadline = tick_start + interval
        while not stop_event.is_set() and time.monotonic() < deadline:
            stop_event.wait(timeout=min(1.0, max(0, deadline - time.monotonic())))
    logger.info("periodic_runner_stopped", tick_count=tick_count)
    return tick_count
