"""
ReclaimAction and its status machine.

    pending -> simulated                   (dry-run)
    pending -> submitted -> confirmed
    pending -> submitted -> failed         (network reported an execution error / timeout)
    pending -> failed                      (error before a signature exists)

simulated, confirmed and failed are terminal. Actions are immutable; every
transition returns a new action.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from rent_reclaim.core.exceptions import InvalidTransitionError


class ReclaimStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    SIMULATED = "simulated"


_TRANSITIONS: dict[ReclaimStatus, frozenset[ReclaimStatus]] = {
    ReclaimStatus.PENDING: frozenset({ReclaimStatus.SIMULATED, ReclaimStatus.SUBMITTED, ReclaimStatus.FAILED}),
    ReclaimStatus.SUBMITTED: frozenset({ReclaimStatus.CONFIRMED, ReclaimStatus.FAILED}),
    ReclaimStatus.CONFIRMED: frozenset(),
    ReclaimStatus.FAILED: frozenset(),
    ReclaimStatus.SIMULATED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, nxt in _TRANSITIONS.items() if not nxt)


@dataclass(frozen=True)
class ReclaimAction:
    address: str
    destination: str
    amount: int
    status: ReclaimStatus = ReclaimStatus.PENDING
    signature: str | None = None
    error_detail: str | None = None
    created_at: float = 0.0
    executed_at: float | None = None

    @classmethod
    def pending(cls, address: str, destination: str, amount: int) -> ReclaimAction:
        return cls(address=address, destination=destination, amount=int(amount), created_at=time.time())

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, status: ReclaimStatus, **changes: Any) -> ReclaimAction:
        """Move to status, raising InvalidTransitionError for any edge not in the table."""
        status = ReclaimStatus(status)
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, status.value)
        executed_at = self.executed_at
        if executed_at is None and status != ReclaimStatus.PENDING:
            executed_at = time.time()
        return replace(self, status=status, executed_at=executed_at, **changes)

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["status"] = self.status.value
        return out
