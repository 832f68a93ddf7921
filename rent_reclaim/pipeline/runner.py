"""
Reclaim pipeline: tracked address -> state -> type -> flags -> verdict -> action.

Strictly sequential within one batch: each account goes through every stage
before the next starts, so the audit trail orders itself and RPC load stays
flat. The slot height is read once per batch and shared by all accounts.

Only ConfigError (before any account is touched) and AuditWriteError stop a
batch. Everything else that goes wrong for one account is logged, audited and
turned into a skip or a failed action.
"""

from __future__ import annotations

import time
from typing import Iterable

from rent_reclaim.alerts.engine import AlertEngine
from rent_reclaim.analytics.account_classifier import AccountClassifier
from rent_reclaim.analytics.risk_engine import RiskAssessor, eligibility
from rent_reclaim.analytics.safety_gate import SafetyGate
from rent_reclaim.audit.sink import AuditAction, AuditSink
from rent_reclaim.config.settings import ReclaimSettings
from rent_reclaim.core.exceptions import AuditWriteError, ConfigError
from rent_reclaim.core.models import sorted_flags
from rent_reclaim.database.factory import open_stores
from rent_reclaim.indexer.account_index import AccountIndex
from rent_reclaim.pipeline.report import BatchSummary
from rent_reclaim.reclaim.executor import ReclaimExecutor
from rent_reclaim.reclaim.models import ReclaimStatus
from rent_reclaim.reclaim.submitters import DryRunSubmitter, SolanaSubmitter, Submitter
from rent_reclaim.reclaim_logging import bind_account, get_logger
from rent_reclaim.reclaim_logging.logger import short_address
from rent_reclaim.solana_client.fetcher import StateFetcher
from rent_reclaim.solana_client.keypair import load_keypair_file

logger = get_logger(__name__)

MODE_DRY_RUN = "dry-run"
MODE_LIVE = "live"
VALID_MODES = (MODE_DRY_RUN, MODE_LIVE)

SKIP_NOT_TRACKED = "not tracked"


class ReclaimPipeline:
    def __init__(
        self,
        settings: ReclaimSettings,
        index: AccountIndex,
        audit: AuditSink,
        fetcher: StateFetcher,
        *,
        classifier: AccountClassifier | None = None,
        assessor: RiskAssessor | None = None,
        gate: SafetyGate | None = None,
        alerts: AlertEngine | None = None,
        submitter: Submitter | None = None,
    ) -> None:
        self.settings = settings
        self.index = index
        self.audit = audit
        self.fetcher = fetcher
        self.classifier = classifier or AccountClassifier(settings.allowed_programs, settings.curve_check)
        self.assessor = assessor or RiskAssessor(settings.min_inactivity_slots, settings.allowed_programs)
        self.gate = gate or SafetyGate()
        self.alerts = alerts
        self._submitter = submitter

    def _make_submitter(self, mode: str) -> Submitter:
        if self._submitter is not None:
            return self._submitter
        if mode == MODE_DRY_RUN:
            return DryRunSubmitter()
        keypair = load_keypair_file(self.settings.keypair_path)
        return SolanaSubmitter(
            self.fetcher.client,
            keypair,
            confirm_timeout_sec=self.settings.confirm_timeout_sec,
            poll_interval_sec=self.settings.confirm_poll_interval_sec,
        )

    def _make_executor(self, mode: str) -> ReclaimExecutor:
        submitter = self._make_submitter(mode)
        if mode == MODE_LIVE and submitter.simulated:
            raise ConfigError("live mode requires a signing submitter")
        executor = ReclaimExecutor(self.settings.treasury_address, submitter, self.audit)
        if self.alerts is not None:
            executor.add_listener(self.alerts.on_action)
        return executor

    def process_batch(self, addresses: Iterable[str] | None = None, mode: str | None = None) -> BatchSummary:
        """
        Run every address through the pipeline. addresses None means the whole index.

        Raises ConfigError before touching any account; AuditWriteError at any point.
        """
        mode = mode or self.settings.mode
        if mode not in VALID_MODES:
            raise ConfigError(f"mode must be one of {VALID_MODES}, got {mode!r}")
        self.settings.validate(live=(mode == MODE_LIVE))
        executor = self._make_executor(mode)

        if addresses is None:
            addresses = [r.address for r in self.index.list()]
        addresses = list(addresses)

        summary = BatchSummary(mode=mode)
        current_height = self.fetcher.current_height()
        logger.info("batch_start", mode=mode, accounts=len(addresses), current_height=current_height)

        for address in addresses:
            summary.processed += 1
            try:
                self._process_one(address, current_height, executor, summary)
            except (AuditWriteError, ConfigError):
                raise
            except Exception as e:
                logger.exception("account_processing_error", account=short_address(address), error=str(e))
                reason = f"error: {type(e).__name__}"
                summary.record_skip(reason)
                self.audit.append(AuditAction.SKIPPED, address, {"reason": reason, "error": str(e)[:500]})

        summary.finished_at = time.time()
        logger.info("batch_done", mode=mode, **summary.counts(), reclaimed_lamports=summary.reclaimed_lamports)
        if self.alerts is not None:
            self.alerts.on_batch_completed(summary)
        return summary

    def _process_one(
        self,
        address: str,
        current_height: int | None,
        executor: ReclaimExecutor,
        summary: BatchSummary,
    ) -> None:
        record = self.index.get(address)
        if record is None:
            summary.record_skip(SKIP_NOT_TRACKED)
            self.audit.append(AuditAction.SKIPPED, address, {"reason": SKIP_NOT_TRACKED})
            return

        state = self.fetcher.fetch(address)
        eligible, reason = eligibility(state)
        if not eligible:
            summary.record_skip(reason)
            self.audit.append(AuditAction.SKIPPED, address, {"reason": reason})
            bind_account(address).info("account_skipped", reason=reason)
            self.index.touch(address)
            return

        state = self.classifier.apply(state, record)
        flags = self.assessor.assess(state, record, current_height)
        verdict = self.gate.evaluate(flags, address)
        self.audit.append(
            AuditAction.ANALYZED,
            address,
            {
                "account_type": state.account_type.value,
                "balance": state.balance,
                "owner": state.owner,
                "data_len": state.data_len,
                "rent_exempt_minimum": state.rent_exempt_minimum,
                "program_derived_suspect": state.is_program_derived_suspect,
                "current_height": current_height,
                "flags": [f.value for f in sorted_flags(verdict.flags)],
            },
        )

        if not verdict.approved:
            summary.record_rejection(verdict.reason)
            self.audit.append(AuditAction.REJECTED, address, verdict.to_dict())
            if self.alerts is not None:
                self.alerts.on_rejection(verdict, state)
            self.index.touch(address)
            return

        summary.approved += 1
        self.audit.append(AuditAction.APPROVED, address, {**verdict.to_dict(), "amount": state.balance})
        action = executor.execute(state)
        summary.record_action(action)
        if action.status == ReclaimStatus.CONFIRMED:
            self.index.remove(address, reason="reclaim_confirmed")
        else:
            self.index.touch(address)


def build_pipeline(
    settings: ReclaimSettings,
    alerts: AlertEngine | None = None,
    submitter: Submitter | None = None,
) -> ReclaimPipeline:
    """Wire stores, fetcher and stages from settings. The pipeline owns its own connection."""
    store, log = open_stores(settings)
    audit = AuditSink(log)
    index = AccountIndex(store, audit)
    fetcher = StateFetcher(settings.rpc_urls, settings.rpc_max_retries, settings.rpc_retry_delay_sec)
    return ReclaimPipeline(settings, index, audit, fetcher, alerts=alerts, submitter=submitter)
