"""
Submitters: what happens to a built reclaim instruction.

DryRunSubmitter never touches the network. SolanaSubmitter signs with the
operator keypair, sends, and polls signature status until confirmed, failed
or the confirmation timeout runs out. Chosen by the caller, so the executor
holds no dry-run/live branching of its own.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIRM_TIMEOUT_SEC = 30.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 2.0
DRY_RUN_SIGNATURE_PLACEHOLDER = "dry_run"

_CONFIRMED_STATUSES = (TransactionConfirmationStatus.Confirmed, TransactionConfirmationStatus.Finalized)


@dataclass(frozen=True)
class ConfirmationResult:
    confirmed: bool
    error: str | None = None


class Submitter(ABC):
    simulated: bool = False

    @abstractmethod
    def send(self, instruction: Instruction) -> str:
        """Sign and submit; return the transaction signature. Raises on any failure."""

    @abstractmethod
    def confirm(self, signature: str) -> ConfirmationResult:
        """Wait (bounded) for the outcome of a submitted transaction."""


class DryRunSubmitter(Submitter):
    """No-op submitter: records what would have been sent."""

    simulated = True

    def __init__(self) -> None:
        self.instructions: list[Instruction] = []

    def send(self, instruction: Instruction) -> str:
        self.instructions.append(instruction)
        return DRY_RUN_SIGNATURE_PLACEHOLDER

    def confirm(self, signature: str) -> ConfirmationResult:
        return ConfirmationResult(confirmed=False, error="dry run: nothing submitted")


class SolanaSubmitter(Submitter):
    def __init__(
        self,
        client_provider: Callable[[], Any],
        keypair: Keypair,
        confirm_timeout_sec: float = DEFAULT_CONFIRM_TIMEOUT_SEC,
        poll_interval_sec: float = DEFAULT_CONFIRM_POLL_INTERVAL_SEC,
        *,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_provider = client_provider
        self._keypair = keypair
        self.confirm_timeout_sec = confirm_timeout_sec
        self.poll_interval_sec = poll_interval_sec
        self._sleep = sleep
        self._monotonic = monotonic

    @property
    def operator(self) -> str:
        return str(self._keypair.pubkey())

    def send(self, instruction: Instruction) -> str:
        client = self._client_provider()
        blockhash = client.get_latest_blockhash().value.blockhash
        message = Message([instruction], self._keypair.pubkey())
        tx = Transaction([self._keypair], message, blockhash)
        signature = str(client.send_transaction(tx).value)
        logger.info("reclaim_tx_sent", signature=signature)
        return signature

    def confirm(self, signature: str) -> ConfirmationResult:
        """Poll for tx confirmation until timeout. Poll errors are logged and retried."""
        client = self._client_provider()
        sig = Signature.from_string(signature)
        deadline = self._monotonic() + self.confirm_timeout_sec
        while self._monotonic() < deadline:
            try:
                statuses = client.get_signature_statuses([sig]).value
            except Exception as e:
                logger.warning("reclaim_tx_confirm_poll_error", signature=signature, error=str(e))
                self._sleep(self.poll_interval_sec)
                continue
            st = statuses[0] if statuses else None
            if st is not None:
                if st.err is not None:
                    logger.warning("reclaim_tx_confirm_failed", signature=signature, reason="transaction_failed", err=str(st.err))
                    return ConfirmationResult(confirmed=False, error=str(st.err))
                if st.confirmation_status in _CONFIRMED_STATUSES:
                    logger.info("reclaim_tx_confirmed", signature=signature, confirmation_status=str(st.confirmation_status))
                    return ConfirmationResult(confirmed=True)
            self._sleep(self.poll_interval_sec)
        logger.warning("reclaim_tx_confirm_failed", signature=signature, reason="timeout", timeout_sec=self.confirm_timeout_sec)
        return ConfirmationResult(confirmed=False, error=f"confirmation timeout after {self.confirm_timeout_sec}s")
