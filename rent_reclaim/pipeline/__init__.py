"""
Pipeline orchestration: batch processing and run reports.
"""

from rent_reclaim.pipeline.report import BatchSummary, format_audit_report, format_report
from rent_reclaim.pipeline.runner import MODE_DRY_RUN, MODE_LIVE, ReclaimPipeline, build_pipeline

__all__ = [
    "MODE_DRY_RUN",
    "MODE_LIVE",
    "BatchSummary",
    "ReclaimPipeline",
    "build_pipeline",
    "format_audit_report",
    "format_report",
]
