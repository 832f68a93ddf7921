"""
Structured logging for Rent Reclaim.

JSON logs with timestamp, account, event_type. Use get_logger() in all modules.
"""

from rent_reclaim.reclaim_logging.logger import bind_account, get_logger

__all__ = ["bind_account", "get_logger"]
