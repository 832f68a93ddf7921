"""
Sponsored account index: which accounts the operator paid for, and when.
"""

from rent_reclaim.indexer.account_index import AccountIndex
from rent_reclaim.indexer.models import TrackedAccountRecord

__all__ = ["AccountIndex", "TrackedAccountRecord"]
