"""
Reclaim executor: approved account -> transfer of its whole balance to the treasury.

Only called for approved verdicts; it trusts the gate and re-checks nothing.
Every failure becomes a terminal `failed` action with error_detail, never an
exception into the batch loop. Audit writes are the exception: AuditWriteError
propagates because the run must stop without an audit trail.
"""

from __future__ import annotations

from typing import Callable

from rent_reclaim.audit.sink import AuditAction, AuditSink
from rent_reclaim.core.models import ObservedAccountState
from rent_reclaim.reclaim.instructions import build_transfer_instruction
from rent_reclaim.reclaim.models import ReclaimAction, ReclaimStatus
from rent_reclaim.reclaim.submitters import Submitter
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

ActionListener = Callable[[ReclaimAction], None]


def _error_text(e: BaseException) -> str:
    text = str(e).strip()
    return f"{type(e).__name__}: {text}" if text else type(e).__name__


class ReclaimExecutor:
    def __init__(
        self,
        treasury: str,
        submitter: Submitter,
        audit: AuditSink,
        listeners: list[ActionListener] | None = None,
    ) -> None:
        self.treasury = treasury
        self.submitter = submitter
        self._audit = audit
        self._listeners = list(listeners or [])

    @property
    def simulated(self) -> bool:
        return self.submitter.simulated

    def add_listener(self, listener: ActionListener) -> None:
        self._listeners.append(listener)

    def _emit(self, action: ReclaimAction) -> None:
        for listener in self._listeners:
            try:
                listener(action)
            except Exception as e:
                logger.warning(
                    "action_listener_error",
                    account=short_address(action.address),
                    status=action.status.value,
                    error=_error_text(e)[:200],
                )

    def _audit_action(self, kind: AuditAction, action: ReclaimAction) -> None:
        self._audit.append(kind, action.address, action.to_dict())
        self._emit(action)

    def _fail(self, action: ReclaimAction, error: str) -> ReclaimAction:
        failed = action.transition(ReclaimStatus.FAILED, error_detail=error)
        logger.error(
            "reclaim_failed",
            account=short_address(action.address),
            status_before=action.status.value,
            error=error[:300],
        )
        self._audit_action(AuditAction.RECLAIM_FAILED, failed)
        return failed

    def execute(self, state: ObservedAccountState) -> ReclaimAction:
        """Reclaim state.balance from state.address. Returns the terminal action."""
        action = ReclaimAction.pending(state.address, self.treasury, state.balance)
        try:
            instruction = build_transfer_instruction(action.address, action.destination, action.amount)
        except ValueError as e:
            return self._fail(action, _error_text(e))

        if self.submitter.simulated:
            self.submitter.send(instruction)
            simulated = action.transition(ReclaimStatus.SIMULATED)
            logger.info(
                "reclaim_simulated",
                account=short_address(action.address),
                amount=action.amount,
                destination=short_address(action.destination),
            )
            self._audit_action(AuditAction.RECLAIM_SIMULATED, simulated)
            return simulated

        try:
            signature = self.submitter.send(instruction)
        except Exception as e:
            return self._fail(action, _error_text(e))

        submitted = action.transition(ReclaimStatus.SUBMITTED, signature=signature)
        logger.info("reclaim_submitted", account=short_address(action.address), signature=signature, amount=action.amount)
        self._audit_action(AuditAction.RECLAIM_SUBMITTED, submitted)

        try:
            outcome = self.submitter.confirm(signature)
        except Exception as e:
            return self._fail(submitted, _error_text(e))
        if not outcome.confirmed:
            return self._fail(submitted, outcome.error or "not confirmed")

        confirmed = submitted.transition(ReclaimStatus.CONFIRMED)
        logger.info(
            "reclaim_confirmed",
            account=short_address(action.address),
            signature=signature,
            amount=action.amount,
        )
        self._audit_action(AuditAction.RECLAIM_CONFIRMED, confirmed)
        return confirmed
