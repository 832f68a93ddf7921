"""
Pytest tests for RiskAssessor and eligibility.
"""

from __future__ import annotations

from rent_reclaim.analytics.account_classifier import AccountClassifier
from rent_reclaim.analytics.risk_engine import (
    NOT_ELIGIBLE_EMPTY,
    NOT_ELIGIBLE_MISSING,
    RiskAssessor,
    eligibility,
)
from rent_reclaim.core.constants import SYSTEM_PROGRAM_ID_STR, TOKEN_PROGRAM_ID_STR
from rent_reclaim.core.models import AccountType, ObservedAccountState, RiskFlag

OTHER_PROGRAM = "Stake11111111111111111111111111111111111111"
CURRENT_HEIGHT = 500_000


def _native(address: str, data: bytes = b"", balance: int = 890_880) -> ObservedAccountState:
    return ObservedAccountState(
        address=address, exists=True, balance=balance, owner=SYSTEM_PROGRAM_ID_STR,
        data=data, account_type=AccountType.NATIVE,
    )


def test_clean_native_account_has_no_flags(make_address, make_record):
    addr = make_address(1)
    flags = RiskAssessor(1_000).assess(_native(addr), make_record(addr), CURRENT_HEIGHT)
    assert flags == frozenset()


def test_non_existent_account_has_no_flags(make_address, make_record):
    addr = make_address(2)
    state = ObservedAccountState.not_found(addr)
    assert RiskAssessor(1_000).assess(state, make_record(addr), CURRENT_HEIGHT) == frozenset()
    assert eligibility(state) == (False, NOT_ELIGIBLE_MISSING)


def test_program_derived_suspect_short_circuits(make_address, make_record):
    """Suspect accounts get exactly PROGRAM_DERIVED_SUSPECT regardless of other fields."""
    addr = make_address(3)
    state = ObservedAccountState(
        address=addr, exists=True, balance=1, owner=OTHER_PROGRAM, data=bytes(165),
        account_type=AccountType.PROGRAM_OWNED, is_program_derived_suspect=True,
    )
    flags = RiskAssessor(10**9).assess(state, make_record(addr, creation_height=CURRENT_HEIGHT), CURRENT_HEIGHT)
    assert flags == frozenset({RiskFlag.PROGRAM_DERIVED_SUSPECT})


def test_token_holding_with_balance(make_address, make_record):
    addr = make_address(4)
    data = bytes(64) + (500).to_bytes(8, "little") + bytes(93)
    state = ObservedAccountState(
        address=addr, exists=True, balance=2_039_280, owner=TOKEN_PROGRAM_ID_STR,
        data=data, account_type=AccountType.TOKEN_HOLDING,
    )
    record = make_record(addr, claimed_owner_program=TOKEN_PROGRAM_ID_STR)
    assert RiskAssessor(1_000).assess(state, record, CURRENT_HEIGHT) == frozenset({RiskFlag.HAS_TOKEN_BALANCE})


def test_unknown_owner_for_token_account_not_claimed(make_address, make_record):
    addr = make_address(5)
    state = ObservedAccountState(
        address=addr, exists=True, balance=2_039_280, owner=TOKEN_PROGRAM_ID_STR,
        data=bytes(165), account_type=AccountType.TOKEN_HOLDING,
    )
    flags = RiskAssessor(1_000).assess(state, make_record(addr), CURRENT_HEIGHT)
    assert flags == frozenset({RiskFlag.UNKNOWN_OWNER})


def test_allow_listed_token_holding_is_never_clean(make_address, make_record):
    """Allow-listing the token program clears UNKNOWN_OWNER, but the classified holding stays suspect."""
    addr = make_address(11)
    raw = ObservedAccountState(
        address=addr, exists=True, balance=2_039_280, owner=TOKEN_PROGRAM_ID_STR, data=bytes(165),
    )
    state = AccountClassifier(allowed_programs=[TOKEN_PROGRAM_ID_STR]).apply(raw, make_record(addr))
    allowed = RiskAssessor(1_000, allowed_programs=[TOKEN_PROGRAM_ID_STR])
    assert allowed.assess(state, make_record(addr), CURRENT_HEIGHT) == frozenset({RiskFlag.PROGRAM_DERIVED_SUSPECT})


def test_suspect_token_holding_keeps_balance_flag(make_address, make_record):
    addr = make_address(12)
    data = bytes(64) + (500).to_bytes(8, "little") + bytes(93)
    raw = ObservedAccountState(address=addr, exists=True, balance=2_039_280, owner=TOKEN_PROGRAM_ID_STR, data=data)
    record = make_record(addr, claimed_owner_program=TOKEN_PROGRAM_ID_STR)
    state = AccountClassifier().apply(raw, record)
    flags = RiskAssessor(1_000).assess(state, record, CURRENT_HEIGHT)
    assert flags == frozenset({RiskFlag.PROGRAM_DERIVED_SUSPECT, RiskFlag.HAS_TOKEN_BALANCE})


def test_recently_active(make_address, make_record):
    addr = make_address(6)
    record = make_record(addr, creation_height=CURRENT_HEIGHT - 999)
    assert RiskAssessor(1_000).assess(_native(addr), record, CURRENT_HEIGHT) == frozenset({RiskFlag.RECENTLY_ACTIVE})
    # Exactly at the threshold is old enough
    record = make_record(addr, creation_height=CURRENT_HEIGHT - 1_000)
    assert RiskAssessor(1_000).assess(_native(addr), record, CURRENT_HEIGHT) == frozenset()


def test_unknown_height_counts_as_recently_active(make_address, make_record):
    addr = make_address(7)
    flags = RiskAssessor(1_000).assess(_native(addr), make_record(addr), None)
    assert RiskFlag.RECENTLY_ACTIVE in flags


def test_native_with_payload(make_address, make_record):
    addr = make_address(8)
    flags = RiskAssessor(1_000).assess(_native(addr, data=b"\x01"), make_record(addr), CURRENT_HEIGHT)
    assert flags == frozenset({RiskFlag.NON_EMPTY_PAYLOAD})


def test_flags_accumulate(make_address, make_record):
    addr = make_address(9)
    record = make_record(addr, creation_height=CURRENT_HEIGHT)
    flags = RiskAssessor(1_000).assess(_native(addr, data=b"\x01\x02"), record, CURRENT_HEIGHT)
    assert flags == frozenset({RiskFlag.RECENTLY_ACTIVE, RiskFlag.NON_EMPTY_PAYLOAD})


def test_eligibility_reasons(make_address):
    addr = make_address(10)
    assert eligibility(_native(addr)) == (True, "")
    assert eligibility(_native(addr, balance=0)) == (False, NOT_ELIGIBLE_EMPTY)
    eligible, reason = eligibility(ObservedAccountState.not_found(addr, fetch_error="timeout"))
    assert eligible is False
    assert reason.startswith("state unavailable")
