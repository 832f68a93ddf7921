"""
Batch summary and the human-readable run report.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from rent_reclaim.core.constants import lamports_to_sol
from rent_reclaim.reclaim.models import ReclaimAction, ReclaimStatus

RULE_WIDE = "═" * 70
RULE_THIN = "─" * 70


@dataclass
class BatchSummary:
    mode: str
    processed: int = 0
    approved: int = 0
    rejected: int = 0
    simulated: int = 0
    confirmed: int = 0
    failed: int = 0
    skipped: int = 0
    reclaimed_lamports: int = 0
    simulated_lamports: int = 0
    rejection_reasons: dict[str, int] = field(default_factory=dict)
    skip_reasons: dict[str, int] = field(default_factory=dict)
    actions: list[ReclaimAction] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)
    finished_at: float | None = None

    def record_skip(self, reason: str) -> None:
        self.skipped += 1
        self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + 1

    def record_rejection(self, reason: str) -> None:
        self.rejected += 1
        self.rejection_reasons[reason] = self.rejection_reasons.get(reason, 0) + 1

    def record_action(self, action: ReclaimAction) -> None:
        self.actions.append(action)
        if action.status == ReclaimStatus.CONFIRMED:
            self.confirmed += 1
            self.reclaimed_lamports += action.amount
        elif action.status == ReclaimStatus.SIMULATED:
            self.simulated += 1
            self.simulated_lamports += action.amount
        elif action.status == ReclaimStatus.FAILED:
            self.failed += 1

    def counts(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "approved": self.approved,
            "rejected": self.rejected,
            "simulated": self.simulated,
            "confirmed": self.confirmed,
            "failed": self.failed,
            "skipped": self.skipped,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            **self.counts(),
            "reclaimed_lamports": self.reclaimed_lamports,
            "simulated_lamports": self.simulated_lamports,
            "rejection_reasons": dict(self.rejection_reasons),
            "skip_reasons": dict(self.skip_reasons),
            "actions": [a.to_dict() for a in self.actions],
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }

    @classmethod
    def merge(cls, summaries: Iterable[BatchSummary], mode: str) -> BatchSummary:
        """Combine shard summaries into one."""
        out = cls(mode=mode)
        items = list(summaries)
        if items:
            out.started_at = min(s.started_at for s in items)
            finished = [s.finished_at for s in items if s.finished_at is not None]
            out.finished_at = max(finished) if finished else None
        for s in items:
            for name in ("processed", "approved", "rejected", "simulated", "confirmed", "failed", "skipped",
                         "reclaimed_lamports", "simulated_lamports"):
                setattr(out, name, getattr(out, name) + getattr(s, name))
            for reason, n in s.rejection_reasons.items():
                out.rejection_reasons[reason] = out.rejection_reasons.get(reason, 0) + n
            for reason, n in s.skip_reasons.items():
                out.skip_reasons[reason] = out.skip_reasons.get(reason, 0) + n
            out.actions.extend(s.actions)
        return out


def _sol(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):.4f} SOL"


def format_report(summary: BatchSummary) -> str:
    """Plain-text run report: totals, rejection reasons, confirmed and failed reclaims."""
    generated = datetime.fromtimestamp(summary.finished_at or time.time(), tz=timezone.utc).isoformat()
    lines = [
        "",
        RULE_WIDE,
        "RENT RECLAIM - RUN REPORT",
        RULE_WIDE,
        "",
        f"Report Generated: {generated}",
        f"Mode: {summary.mode.upper()}",
        "",
        RULE_THIN,
        "SUMMARY",
        RULE_THIN,
        f"Accounts Processed:   {summary.processed}",
        f"Skipped:              {summary.skipped}",
        f"Approved:             {summary.approved}",
        f"Rejected:             {summary.rejected}",
        f"Simulated:            {summary.simulated}",
        f"Confirmed:            {summary.confirmed}",
        f"Failed:               {summary.failed}",
        "",
        f"Total Reclaimed:      {_sol(summary.reclaimed_lamports)}",
        f"Would Reclaim:        {_sol(summary.simulated_lamports)}",
        "",
    ]
    if summary.rejection_reasons:
        lines += [RULE_THIN, "REASONS FOR REJECTION", RULE_THIN]
        for reason, count in sorted(summary.rejection_reasons.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"{str(count).ljust(3)} accounts: {reason}")
        lines.append("")
    if summary.skip_reasons:
        lines += [RULE_THIN, "SKIPPED", RULE_THIN]
        for reason, count in sorted(summary.skip_reasons.items(), key=lambda kv: (-kv[1], kv[0])):
            lines.append(f"{str(count).ljust(3)} accounts: {reason}")
        lines.append("")
    confirmed = [a for a in summary.actions if a.status == ReclaimStatus.CONFIRMED]
    if confirmed:
        lines += [RULE_THIN, "CONFIRMED RECLAIMS", RULE_THIN]
        for a in confirmed:
            lines += [f"  Account: {a.address}", f"  Amount:  {_sol(a.amount)} ({a.amount} lamports)", f"  Tx:      {a.signature}", ""]
    failed = [a for a in summary.actions if a.status == ReclaimStatus.FAILED]
    if failed:
        lines += [RULE_THIN, "FAILED RECLAIMS", RULE_THIN]
        for a in failed:
            lines += [f"  Account: {a.address}", f"  Amount:  {_sol(a.amount)}", f"  Error:   {a.error_detail}", ""]
    lines.append(RULE_WIDE)
    return "\n".join(lines)


def format_audit_report(audit_counts: dict[str, int], index_stats: dict[str, Any], reclaimed_lamports: int) -> str:
    """Report over the whole audit history (the `report` command)."""
    lines = [
        "",
        RULE_WIDE,
        "RENT RECLAIM - AUDIT SUMMARY",
        RULE_WIDE,
        f"Tracked accounts:     {index_stats.get('total_tracked', 0)}",
        f"Rent locked:          {_sol(int(index_stats.get('total_rent_locked') or 0))}",
        f"Total reclaimed:      {_sol(reclaimed_lamports)}",
        "",
        RULE_THIN,
        "AUDIT ENTRIES BY ACTION",
        RULE_THIN,
    ]
    for action, count in sorted(audit_counts.items()):
        lines.append(f"{action.ljust(22)}{count}")
    lines.append(RULE_WIDE)
    return "\n".join(lines)
