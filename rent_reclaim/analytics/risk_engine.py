"""
Risk engine: derive risk flags from classified state and the tracked record.

Flags only accumulate. A program-derived suspect short-circuits: nothing else
needs checking once the account may hold program state, except that a token
holding with a nonzero amount also reports HAS_TOKEN_BALANCE. Non-existent accounts
get no flags at all and are reported as not eligible instead, since a closed
account is not a safety failure.
"""

from __future__ import annotations

from typing import Iterable

from rent_reclaim.analytics.account_classifier import decode_token_amount
from rent_reclaim.core.constants import SYSTEM_PROGRAM_ID_STR
from rent_reclaim.core.models import AccountType, ObservedAccountState, RiskFlag, sorted_flags
from rent_reclaim.indexer.models import TrackedAccountRecord
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

NOT_ELIGIBLE_MISSING = "account does not exist"
NOT_ELIGIBLE_FETCH_FAILED = "state unavailable"
NOT_ELIGIBLE_EMPTY = "zero balance"


def eligibility(state: ObservedAccountState) -> tuple[bool, str]:
    """
    (eligible, reason). Missing, unfetchable or already-empty accounts are
    skipped before any risk assessment.
    """
    if not state.exists:
        if state.fetch_error:
            return False, f"{NOT_ELIGIBLE_FETCH_FAILED}: {state.fetch_error}"
        return False, NOT_ELIGIBLE_MISSING
    if state.balance <= 0:
        return False, NOT_ELIGIBLE_EMPTY
    return True, ""


class RiskAssessor:
    def __init__(self, min_inactivity_slots: int, allowed_programs: Iterable[str] = ()) -> None:
        self.min_inactivity_slots = int(min_inactivity_slots)
        self.allowed_programs = frozenset(allowed_programs)

    def assess(
        self,
        state: ObservedAccountState,
        record: TrackedAccountRecord,
        current_height: int | None,
    ) -> frozenset[RiskFlag]:
        """
        Flags for one account. current_height None (slot unknown) counts as
        recently active.
        """
        if not state.exists:
            return frozenset()

        if state.is_program_derived_suspect:
            suspect = {RiskFlag.PROGRAM_DERIVED_SUSPECT}
            if self._has_token_balance(state):
                suspect.add(RiskFlag.HAS_TOKEN_BALANCE)
            result = frozenset(suspect)
            self._log(state, result)
            return result

        flags: set[RiskFlag] = set()

        claimed = self.allowed_programs | {record.claimed_owner_program}
        if state.owner != SYSTEM_PROGRAM_ID_STR and state.owner not in claimed:
            flags.add(RiskFlag.UNKNOWN_OWNER)

        if self._has_token_balance(state):
            flags.add(RiskFlag.HAS_TOKEN_BALANCE)

        if current_height is None:
            flags.add(RiskFlag.RECENTLY_ACTIVE)
        elif current_height - record.creation_height < self.min_inactivity_slots:
            flags.add(RiskFlag.RECENTLY_ACTIVE)

        if state.account_type == AccountType.NATIVE and state.data_len > 0:
            flags.add(RiskFlag.NON_EMPTY_PAYLOAD)

        result = frozenset(flags)
        self._log(state, result)
        return result

    @staticmethod
    def _has_token_balance(state: ObservedAccountState) -> bool:
        return state.account_type == AccountType.TOKEN_HOLDING and decode_token_amount(state.data) > 0

    def _log(self, state: ObservedAccountState, flags: frozenset[RiskFlag]) -> None:
        logger.debug(
            "risk_assessed",
            account=short_address(state.address),
            account_type=state.account_type.value,
            flags=[f.value for f in sorted_flags(flags)],
        )
