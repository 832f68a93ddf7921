"""
Application-level exceptions.

Only ConfigError and AuditWriteError are allowed to halt a reclaim run. Every
other failure is caught per account, audited, and turned into a skip or a
failed ReclaimAction.
"""

from __future__ import annotations


class ReclaimError(Exception):
    """Base class for all rent_reclaim errors."""


class ConfigError(ReclaimError):
    """Fatal configuration problem (missing keypair, invalid treasury, ...)."""


class StoreError(ReclaimError):
    """Persistence layer could not read or write a store."""


class AuditWriteError(StoreError):
    """Audit trail is unwritable. Fatal: a run without an audit trail must stop."""


class InvalidRecordError(ReclaimError, ValueError):
    """A tracked account record failed validation."""


class RpcUnavailableError(ReclaimError):
    """RPC call still failing after all retries and endpoints were exhausted."""

    def __init__(self, method: str, attempts: int, last_error: BaseException | None = None) -> None:
        self.method = method
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error is not None else ""
        super().__init__(f"{method} failed after {attempts} attempts{detail}")


class InvalidTransitionError(ReclaimError):
    """Illegal ReclaimAction status change."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"cannot move reclaim action from {current} to {requested}")
