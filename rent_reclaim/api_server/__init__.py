"""
Read-only HTTP dashboard over the index and audit trail.
"""

from rent_reclaim.api_server.server import create_app

__all__ = ["create_app"]
