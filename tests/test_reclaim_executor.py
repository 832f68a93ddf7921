"""
Pytest tests for ReclaimExecutor, the ReclaimAction state machine and the submitters.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from rent_reclaim.audit.sink import AuditAction
from rent_reclaim.core.constants import SYSTEM_PROGRAM_ID_STR
from rent_reclaim.core.exceptions import InvalidTransitionError
from rent_reclaim.core.models import AccountType, ObservedAccountState
from rent_reclaim.reclaim.executor import ReclaimExecutor
from rent_reclaim.reclaim.instructions import build_transfer_instruction
from rent_reclaim.reclaim.models import ReclaimAction, ReclaimStatus
from rent_reclaim.reclaim.submitters import ConfirmationResult, DryRunSubmitter, SolanaSubmitter

SIGNATURE = str(Signature.default())


def _approved_state(address: str, balance: int = 890_880) -> ObservedAccountState:
    return ObservedAccountState(
        address=address, exists=True, balance=balance, owner=SYSTEM_PROGRAM_ID_STR, account_type=AccountType.NATIVE
    )


def _live_submitter(confirmed: bool = True, error: str | None = None) -> MagicMock:
    submitter = MagicMock()
    submitter.simulated = False
    submitter.send.return_value = SIGNATURE
    submitter.confirm.return_value = ConfirmationResult(confirmed=confirmed, error=error)
    return submitter


def _actions(audit) -> list[str]:
    return [e.action for e in audit.entries()]


def test_dry_run_produces_simulated_action(audit, treasury, make_address):
    """Dry run builds the transfer, never submits, and returns `simulated` for the full balance."""
    submitter = DryRunSubmitter()
    executor = ReclaimExecutor(treasury, submitter, audit)
    action = executor.execute(_approved_state(make_address(1)))
    assert action.status == ReclaimStatus.SIMULATED
    assert action.amount == 890_880
    assert action.destination == treasury
    assert action.signature is None
    assert len(submitter.instructions) == 1
    assert _actions(audit) == [AuditAction.RECLAIM_SIMULATED.value]


def test_live_confirmed(audit, treasury, make_address):
    submitter = _live_submitter()
    seen = []
    executor = ReclaimExecutor(treasury, submitter, audit, listeners=[seen.append])
    action = executor.execute(_approved_state(make_address(2), balance=1_234_567))
    assert action.status == ReclaimStatus.CONFIRMED
    assert action.amount == 1_234_567
    assert action.signature == SIGNATURE
    assert action.executed_at is not None
    submitter.confirm.assert_called_once_with(SIGNATURE)
    assert _actions(audit) == [AuditAction.RECLAIM_SUBMITTED.value, AuditAction.RECLAIM_CONFIRMED.value]
    assert [a.status for a in seen] == [ReclaimStatus.SUBMITTED, ReclaimStatus.CONFIRMED]


def test_listener_error_does_not_change_outcome(audit, treasury, make_address):
    """A raising listener is logged; the action still confirms and later listeners still run."""
    seen = []
    broken = MagicMock(side_effect=RuntimeError("listener down"))
    executor = ReclaimExecutor(treasury, _live_submitter(), audit, listeners=[broken, seen.append])
    action = executor.execute(_approved_state(make_address(9)))
    assert action.status == ReclaimStatus.CONFIRMED
    assert broken.call_count == 2
    assert [a.status for a in seen] == [ReclaimStatus.SUBMITTED, ReclaimStatus.CONFIRMED]
    assert _actions(audit) == [AuditAction.RECLAIM_SUBMITTED.value, AuditAction.RECLAIM_CONFIRMED.value]


def test_live_execution_error_during_confirmation(audit, treasury, make_address):
    submitter = _live_submitter(confirmed=False, error="InstructionError(0, Custom(1))")
    action = ReclaimExecutor(treasury, submitter, audit).execute(_approved_state(make_address(3)))
    assert action.status == ReclaimStatus.FAILED
    assert action.signature == SIGNATURE
    assert "InstructionError" in action.error_detail
    assert _actions(audit) == [AuditAction.RECLAIM_SUBMITTED.value, AuditAction.RECLAIM_FAILED.value]
    failed = audit.entries()[-1]
    assert failed.details["error_detail"] == action.error_detail


def test_send_failure_goes_straight_to_failed(audit, treasury, make_address):
    submitter = _live_submitter()
    submitter.send.side_effect = ConnectionError("refused")
    action = ReclaimExecutor(treasury, submitter, audit).execute(_approved_state(make_address(4)))
    assert action.status == ReclaimStatus.FAILED
    assert action.signature is None
    assert action.error_detail == "ConnectionError: refused"
    submitter.confirm.assert_not_called()
    assert _actions(audit) == [AuditAction.RECLAIM_FAILED.value]


def test_invalid_instruction_fails_without_submitting(audit, treasury, make_address):
    submitter = _live_submitter()
    action = ReclaimExecutor(treasury, submitter, audit).execute(_approved_state(make_address(5), balance=0))
    assert action.status == ReclaimStatus.FAILED
    assert "positive" in action.error_detail
    submitter.send.assert_not_called()


def test_transition_table():
    action = ReclaimAction.pending("a", "b", 10)
    assert action.status == ReclaimStatus.PENDING
    assert action.is_terminal is False
    simulated = action.transition(ReclaimStatus.SIMULATED)
    assert simulated.is_terminal is True
    with pytest.raises(InvalidTransitionError):
        simulated.transition(ReclaimStatus.SUBMITTED)
    with pytest.raises(InvalidTransitionError):
        action.transition(ReclaimStatus.CONFIRMED)
    submitted = action.transition(ReclaimStatus.SUBMITTED, signature="s")
    assert submitted.transition(ReclaimStatus.FAILED, error_detail="x").error_detail == "x"
    # Original is untouched
    assert action.status == ReclaimStatus.PENDING


def test_build_transfer_instruction(make_address, treasury):
    ix = build_transfer_instruction(make_address(6), treasury, 5_000)
    assert str(ix.program_id) == SYSTEM_PROGRAM_ID_STR
    assert [str(m.pubkey) for m in ix.accounts] == [make_address(6), treasury]
    with pytest.raises(ValueError):
        build_transfer_instruction("bad", treasury, 5_000)


# -----------------------------------------------------------------------------
# SolanaSubmitter against a mocked client
# -----------------------------------------------------------------------------


def _status(err=None, confirmation_status=TransactionConfirmationStatus.Confirmed):
    return SimpleNamespace(err=err, confirmation_status=confirmation_status)


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def test_solana_submitter_signs_and_sends(treasury):
    kp = Keypair.from_seed(bytes([7] * 32))
    client = MagicMock()
    client.get_latest_blockhash.return_value.value.blockhash = Hash.default()
    client.send_transaction.return_value = SimpleNamespace(value=Signature.default())
    submitter = SolanaSubmitter(lambda: client, kp)
    ix = build_transfer_instruction(str(kp.pubkey()), treasury, 1_000)
    assert submitter.send(ix) == SIGNATURE
    tx = client.send_transaction.call_args[0][0]
    assert tx.message.account_keys[0] == kp.pubkey()
    assert submitter.operator == str(kp.pubkey())


def test_solana_submitter_confirm_outcomes():
    clock = _Clock()
    client = MagicMock()
    submitter = SolanaSubmitter(
        lambda: client, Keypair.from_seed(bytes([7] * 32)), confirm_timeout_sec=10, poll_interval_sec=2,
        sleep=clock.sleep, monotonic=clock.monotonic,
    )
    client.get_signature_statuses.return_value = SimpleNamespace(value=[None])
    # Never seen: times out
    result = submitter.confirm(SIGNATURE)
    assert result.confirmed is False
    assert "timeout" in result.error

    clock.now = 0.0
    client.get_signature_statuses.return_value = SimpleNamespace(value=[_status(err="InstructionError")])
    result = submitter.confirm(SIGNATURE)
    assert result == ConfirmationResult(confirmed=False, error="InstructionError")

    clock.now = 0.0
    client.get_signature_statuses.side_effect = [
        OSError("poll failed"),
        SimpleNamespace(value=[_status(confirmation_status=TransactionConfirmationStatus.Processed)]),
        SimpleNamespace(value=[_status(confirmation_status=TransactionConfirmationStatus.Finalized)]),
    ]
    assert submitter.confirm(SIGNATURE).confirmed is True
