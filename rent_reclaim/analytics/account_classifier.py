"""
Account type classification from raw on-chain state.

Runs before risk assessment. The type comes from the owner and the payload
layout; an owner other than the system program that the operator did not
record (or allow-list) makes the account PROGRAM_OWNED. Every existing account
the system program does not own is marked program-derived suspect, whatever
its type: only plain native accounts are ever reclaimable. When curve_check is
on, an off-curve address is also marked suspect; the check only ever adds
suspicion, it never clears the owner heuristic.
"""

from __future__ import annotations

from typing import Iterable

from rent_reclaim.analytics.pda import is_off_curve
from rent_reclaim.core.constants import (
    SYSTEM_PROGRAM_ID_STR,
    TOKEN_2022_PROGRAM_ID_STR,
    TOKEN_AMOUNT_LEN,
    TOKEN_AMOUNT_OFFSET,
    TOKEN_HOLDING_ACCOUNT_LEN,
    TOKEN_MINT_ACCOUNT_LEN,
    TOKEN_PROGRAM_IDS,
)
from rent_reclaim.core.models import AccountType, ObservedAccountState
from rent_reclaim.indexer.models import TrackedAccountRecord
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

# Token-2022 accounts with extensions: base layout padded to 165, then AccountType byte
_TOKEN_2022_ACCOUNT_TYPE_OFFSET = TOKEN_HOLDING_ACCOUNT_LEN
_TOKEN_2022_TYPE_MINT = 1
_TOKEN_2022_TYPE_ACCOUNT = 2


def _token_layout(owner: str, data: bytes) -> AccountType | None:
    """Mint / holding layout for a token-program account, None when unrecognised."""
    n = len(data)
    if n == TOKEN_MINT_ACCOUNT_LEN:
        return AccountType.TOKEN_MINT
    if n == TOKEN_HOLDING_ACCOUNT_LEN:
        return AccountType.TOKEN_HOLDING
    if owner == TOKEN_2022_PROGRAM_ID_STR and n > TOKEN_HOLDING_ACCOUNT_LEN:
        kind = data[_TOKEN_2022_ACCOUNT_TYPE_OFFSET]
        if kind == _TOKEN_2022_TYPE_MINT:
            return AccountType.TOKEN_MINT
        if kind == _TOKEN_2022_TYPE_ACCOUNT:
            return AccountType.TOKEN_HOLDING
    return None


def decode_token_amount(data: bytes) -> int:
    """Token balance of a holding account: little-endian u64 at offset 64. 0 if too short."""
    end = TOKEN_AMOUNT_OFFSET + TOKEN_AMOUNT_LEN
    if len(data) < end:
        return 0
    return int.from_bytes(data[TOKEN_AMOUNT_OFFSET:end], "little")


class AccountClassifier:
    def __init__(self, allowed_programs: Iterable[str] = (), curve_check: bool = True) -> None:
        self.allowed_programs = frozenset(allowed_programs)
        self.curve_check = curve_check

    def claimed_owners(self, record: TrackedAccountRecord) -> frozenset[str]:
        return self.allowed_programs | {record.claimed_owner_program}

    def classify(
        self, state: ObservedAccountState, record: TrackedAccountRecord
    ) -> tuple[AccountType, bool]:
        """
        Return (account_type, is_program_derived_suspect). Order of checks matters.

        Non-existent accounts come back as (UNKNOWN, False); the caller skips them.
        """
        if not state.exists:
            return AccountType.UNKNOWN, False

        owner = state.owner
        account_type: AccountType | None = None

        if owner == SYSTEM_PROGRAM_ID_STR:
            account_type = AccountType.NATIVE
        elif owner in TOKEN_PROGRAM_IDS:
            account_type = _token_layout(owner, state.data)

        if account_type is None:
            if owner not in self.claimed_owners(record):
                account_type = AccountType.PROGRAM_OWNED
            else:
                account_type = AccountType.UNKNOWN

        suspect = owner != SYSTEM_PROGRAM_ID_STR

        if self.curve_check and not suspect and is_off_curve(state.address):
            suspect = True
            logger.info("off_curve_address", account=short_address(state.address), account_type=account_type.value)

        logger.debug(
            "account_classified",
            account=short_address(state.address),
            account_type=account_type.value,
            program_derived_suspect=suspect,
        )
        return account_type, suspect

    def apply(self, state: ObservedAccountState, record: TrackedAccountRecord) -> ObservedAccountState:
        """State with account_type and is_program_derived_suspect filled in."""
        account_type, suspect = self.classify(state, record)
        return state.classified(account_type, suspect)
