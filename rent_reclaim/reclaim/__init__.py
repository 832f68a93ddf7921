"""
Reclaim execution: instruction building, submitters and the executor.
"""

from rent_reclaim.reclaim.executor import ReclaimExecutor
from rent_reclaim.reclaim.instructions import build_transfer_instruction
from rent_reclaim.reclaim.models import ReclaimAction, ReclaimStatus
from rent_reclaim.reclaim.submitters import DryRunSubmitter, SolanaSubmitter, Submitter

__all__ = [
    "DryRunSubmitter",
    "ReclaimAction",
    "ReclaimExecutor",
    "ReclaimStatus",
    "SolanaSubmitter",
    "Submitter",
    "build_transfer_instruction",
]
