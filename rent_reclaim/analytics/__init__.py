"""
Decision stages: classification, risk assessment and the safety gate.
"""

from rent_reclaim.analytics.account_classifier import AccountClassifier, decode_token_amount
from rent_reclaim.analytics.pda import is_off_curve
from rent_reclaim.analytics.risk_engine import RiskAssessor, eligibility
from rent_reclaim.analytics.safety_gate import SafetyGate, evaluate

__all__ = [
    "AccountClassifier",
    "RiskAssessor",
    "SafetyGate",
    "decode_token_amount",
    "eligibility",
    "evaluate",
    "is_off_curve",
]
