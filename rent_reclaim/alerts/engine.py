"""
Alert engine: pipeline events -> threshold-filtered alerts with cooldown dedup.

Listens to reclaim action transitions, safety rejections above a materiality
threshold (lamports), and batch completion. Delivery problems are logged and
dropped: alerting must never block or fail a reclaim run.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from rent_reclaim.alerts.notifier import Alert, AlertSeverity, AlertType, Notifier, NullNotifier, TelegramNotifier
from rent_reclaim.core.constants import lamports_to_sol
from rent_reclaim.core.models import ObservedAccountState, SafetyVerdict
from rent_reclaim.reclaim.models import ReclaimAction, ReclaimStatus
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

if TYPE_CHECKING:
    from rent_reclaim.config.settings import ReclaimSettings
    from rent_reclaim.pipeline.report import BatchSummary

logger = get_logger(__name__)

# Cooldown: don't send the same (type, account) within this many seconds
DEFAULT_ALERT_COOLDOWN_SEC = 3600
# Max reason length sent
MAX_REASON_LENGTH = 500


@dataclass
class AlertConfig:
    """Thresholds and dedup for the alert engine."""

    min_lamports: int = 0
    """Only alert on reclaims / rejections worth at least this many lamports."""
    cooldown_sec: int = DEFAULT_ALERT_COOLDOWN_SEC
    """Don't send duplicate (type, account) within this window."""
    alert_on_simulated: bool = False
    alert_on_rejection: bool = True


def _reason_truncate(reason: str) -> str:
    if len(reason) <= MAX_REASON_LENGTH:
        return reason
    return reason[: MAX_REASON_LENGTH - 3] + "..."


class AlertEngine:
    def __init__(
        self,
        notifier: Notifier | None = None,
        config: AlertConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.notifier = notifier or NullNotifier()
        self.config = config or AlertConfig()
        self._clock = clock
        self._last_sent: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()
        self.sent = 0
        self.dropped = 0

    def _is_duplicate(self, alert: Alert) -> bool:
        key = (alert.type.value, alert.account or "")
        now = self._clock()
        with self._lock:
            last = self._last_sent.get(key)
            if last is not None and now - last < self.config.cooldown_sec:
                return True
            self._last_sent[key] = now
        return False

    def dispatch(self, alert: Alert) -> bool:
        """Send unless deduplicated. Never raises."""
        if self._is_duplicate(alert):
            logger.debug("alert_deduplicated", alert_type=alert.type.value, account=short_address(alert.account))
            return False
        try:
            ok = self.notifier.send(alert)
        except Exception as e:
            ok = False
            logger.warning("alert_delivery_error", alert_type=alert.type.value, error=str(e)[:200])
        if ok:
            self.sent += 1
            logger.info("alert_sent", alert_type=alert.type.value, severity=alert.severity.value)
        else:
            self.dropped += 1
        return ok

    # -------------------------------------------------------------------------
    # Pipeline event handlers
    # -------------------------------------------------------------------------

    def on_action(self, action: ReclaimAction) -> None:
        details = {"amount_sol": f"{lamports_to_sol(action.amount):.6f}", "destination": action.destination}
        if action.status == ReclaimStatus.CONFIRMED:
            if action.amount < self.config.min_lamports:
                return
            details["signature"] = action.signature or ""
            self.dispatch(
                Alert(AlertType.RENT_RECLAIMED, AlertSeverity.INFO, "Rent reclaimed",
                      f"Reclaimed {lamports_to_sol(action.amount):.6f} SOL", action.address, details)
            )
        elif action.status == ReclaimStatus.FAILED:
            details["error"] = _reason_truncate(action.error_detail or "")
            self.dispatch(
                Alert(AlertType.RECLAIM_FAILED, AlertSeverity.ERROR, "Reclaim failed",
                      "Reclaim transaction did not confirm", action.address, details)
            )
        elif action.status == ReclaimStatus.SIMULATED and self.config.alert_on_simulated:
            if action.amount < self.config.min_lamports:
                return
            self.dispatch(
                Alert(AlertType.RECLAIM_SIMULATED, AlertSeverity.DEBUG, "Reclaim simulated",
                      f"Dry run would reclaim {lamports_to_sol(action.amount):.6f} SOL", action.address, details)
            )

    def on_rejection(self, verdict: SafetyVerdict, state: ObservedAccountState) -> None:
        if not self.config.alert_on_rejection or verdict.approved:
            return
        if state.balance < self.config.min_lamports:
            return
        self.dispatch(
            Alert(
                AlertType.SAFETY_CHECK_FAILED,
                AlertSeverity.WARNING,
                "Safety check failed",
                _reason_truncate(verdict.reason),
                verdict.address,
                {"locked_sol": f"{lamports_to_sol(state.balance):.6f}"},
            )
        )

    def on_batch_completed(self, summary: BatchSummary) -> None:
        severity = AlertSeverity.WARNING if summary.failed else AlertSeverity.INFO
        self.dispatch(
            Alert(
                AlertType.ANALYSIS_COMPLETED,
                severity,
                "Reclaim batch completed",
                f"{summary.processed} accounts processed in {summary.mode} mode",
                None,
                summary.counts(),
            )
        )

    def on_error(self, message: str) -> None:
        self.dispatch(Alert(AlertType.SYSTEM_ERROR, AlertSeverity.CRITICAL, "Reclaim run error", _reason_truncate(message)))


def build_alert_engine(settings: ReclaimSettings) -> AlertEngine | None:
    """AlertEngine for settings, or None when alerting is off or not configured."""
    if not settings.alert_enabled:
        return None
    if not (settings.telegram_bot_token and settings.telegram_chat_id):
        logger.warning("alert_engine_disabled", reason="missing telegram credentials")
        return None
    notifier = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    config = AlertConfig(min_lamports=settings.alert_min_lamports, cooldown_sec=settings.alert_cooldown_sec)
    return AlertEngine(notifier, config)
