"""
Scheduling: sharded and periodic invocation of the reclaim pipeline.
"""

from rent_reclaim.scheduler.engine import partition, run_periodic, run_sharded, run_with_retry

__all__ = ["partition", "run_periodic", "run_sharded", "run_with_retry"]
