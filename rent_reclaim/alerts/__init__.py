"""
Alerting: threshold-filtered notifications about reclaim outcomes.
"""

from rent_reclaim.alerts.engine import AlertConfig, AlertEngine, build_alert_engine
from rent_reclaim.alerts.notifier import Alert, AlertSeverity, AlertType, Notifier, NullNotifier, TelegramNotifier

__all__ = [
    "Alert",
    "AlertConfig",
    "AlertEngine",
    "AlertSeverity",
    "AlertType",
    "Notifier",
    "NullNotifier",
    "TelegramNotifier",
    "build_alert_engine",
]
