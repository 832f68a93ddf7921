"""
Safety gate: risk flags -> one fail-closed verdict.

Pure, no I/O. approved holds exactly when the flag set is empty (the verdict
type derives it from the flags). Anything the gate does not recognise is
mapped onto UNKNOWN_OWNER so that surprises reject instead of approve.
"""

from __future__ import annotations

from typing import Any, Iterable

from rent_reclaim.core.models import RiskFlag, SafetyVerdict
from rent_reclaim.reclaim_logging import get_logger
from rent_reclaim.reclaim_logging.logger import short_address

logger = get_logger(__name__)

FALLBACK_FLAG = RiskFlag.UNKNOWN_OWNER


def _coerce_flag(value: Any) -> RiskFlag:
    if isinstance(value, RiskFlag):
        return value
    try:
        return RiskFlag(str(value).strip().upper())
    except ValueError:
        logger.warning("unrecognized_risk_flag", value=str(value)[:64])
        return FALLBACK_FLAG


def evaluate(flags: Iterable[Any] | None, address: str = "") -> SafetyVerdict:
    """Verdict for a flag set. None (no assessment available) is rejected."""
    if flags is None:
        logger.warning("missing_risk_assessment", account=short_address(address))
        return SafetyVerdict(address=address, flags=frozenset({FALLBACK_FLAG}))
    coerced = frozenset(_coerce_flag(f) for f in flags)
    return SafetyVerdict(address=address, flags=coerced)


class SafetyGate:
    def evaluate(self, flags: Iterable[Any] | None, address: str = "") -> SafetyVerdict:
        verdict = evaluate(flags, address)
        if verdict.approved:
            logger.info("safety_approved", account=short_address(address))
        else:
            logger.info("safety_rejected", account=short_address(address), reason=verdict.reason)
        return verdict
