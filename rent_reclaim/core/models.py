"""
Data model shared by the decision stages: account types, risk flags,
observed on-chain state and the safety verdict.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class AccountType(str, Enum):
    NATIVE = "NATIVE"
    TOKEN_MINT = "TOKEN_MINT"
    TOKEN_HOLDING = "TOKEN_HOLDING"
    PROGRAM_OWNED = "PROGRAM_OWNED"
    UNKNOWN = "UNKNOWN"


class RiskFlag(str, Enum):
    """Closed set of risk tags. Any one of them blocks a reclaim."""

    PROGRAM_DERIVED_SUSPECT = "PROGRAM_DERIVED_SUSPECT"
    UNKNOWN_OWNER = "UNKNOWN_OWNER"
    HAS_TOKEN_BALANCE = "HAS_TOKEN_BALANCE"
    RECENTLY_ACTIVE = "RECENTLY_ACTIVE"
    NON_EMPTY_PAYLOAD = "NON_EMPTY_PAYLOAD"


# Stable ordering for reasons and logs
RISK_FLAG_ORDER = tuple(RiskFlag)


def sorted_flags(flags: frozenset[RiskFlag] | set[RiskFlag]) -> list[RiskFlag]:
    return [f for f in RISK_FLAG_ORDER if f in flags]


@dataclass(frozen=True)
class ObservedAccountState:
    """
    Snapshot of one account, recomputed each pass and never persisted.

    When exists is False every other field stays zero/empty; fetch_error tells
    a failed lookup apart from an account that is really gone.
    """

    address: str
    exists: bool = False
    balance: int = 0
    owner: str = ""
    data: bytes = b""
    rent_exempt_minimum: int = 0
    account_type: AccountType = AccountType.UNKNOWN
    is_program_derived_suspect: bool = False
    fetch_error: str | None = None

    @classmethod
    def not_found(cls, address: str, fetch_error: str | None = None) -> ObservedAccountState:
        return cls(address=address, fetch_error=fetch_error)

    @property
    def data_len(self) -> int:
        return len(self.data)

    def classified(self, account_type: AccountType, program_derived_suspect: bool) -> ObservedAccountState:
        if not self.exists:
            return self
        return replace(self, account_type=account_type, is_program_derived_suspect=program_derived_suspect)


@dataclass(frozen=True)
class SafetyVerdict:
    """
    Gate output. `approved` and `reason` are derived from `flags`, so an
    approval next to a non-empty flag set cannot be constructed.
    """

    address: str
    flags: frozenset[RiskFlag] = field(default_factory=frozenset)

    APPROVED_REASON = "all checks passed"

    @property
    def approved(self) -> bool:
        return not self.flags

    @property
    def reason(self) -> str:
        if not self.flags:
            return self.APPROVED_REASON
        return ", ".join(f.value for f in sorted_flags(self.flags))

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "approved": self.approved,
            "reason": self.reason,
            "flags": [f.value for f in sorted_flags(self.flags)],
        }
