"""
Alert delivery channels.

TelegramNotifier posts HTML messages to the Bot API with requests.
NullNotifier drops everything (alerts disabled).
"""

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import requests

from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
DEFAULT_TIMEOUT_SEC = 10.0
MAX_MESSAGE_LENGTH = 4000


class AlertType(str, Enum):
    RENT_RECLAIMED = "RENT_RECLAIMED"
    RECLAIM_SIMULATED = "RECLAIM_SIMULATED"
    RECLAIM_FAILED = "RECLAIM_FAILED"
    SAFETY_CHECK_FAILED = "SAFETY_CHECK_FAILED"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    ANALYSIS_COMPLETED = "ANALYSIS_COMPLETED"


class AlertSeverity(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_SEVERITY_ICON = {
    AlertSeverity.DEBUG: "🔍",
    AlertSeverity.INFO: "ℹ️",
    AlertSeverity.WARNING: "⚠️",
    AlertSeverity.ERROR: "❌",
    AlertSeverity.CRITICAL: "🚨",
}


@dataclass(frozen=True)
class Alert:
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    account: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=lambda: datetime.now(timezone.utc).timestamp())


def format_alert_html(alert: Alert) -> str:
    lines = [
        f"{_SEVERITY_ICON.get(alert.severity, '')} <b>{html.escape(alert.title)}</b>",
        html.escape(alert.message),
    ]
    if alert.account:
        lines.append(f"<code>{html.escape(alert.account)}</code>")
    for key, value in alert.details.items():
        lines.append(f"• {html.escape(str(key))}: {html.escape(str(value))}")
    ts = datetime.fromtimestamp(alert.timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    lines.append(f"<i>{ts}</i>")
    text = "\n".join(lines)
    return text if len(text) <= MAX_MESSAGE_LENGTH else text[: MAX_MESSAGE_LENGTH - 3] + "..."


class Notifier(ABC):
    @abstractmethod
    def send(self, alert: Alert) -> bool:
        """Deliver one alert. Returns True on success."""


class NullNotifier(Notifier):
    def send(self, alert: Alert) -> bool:
        return True


class TelegramNotifier(Notifier):
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        session: requests.Session | None = None,
    ) -> None:
        if not bot_token or not chat_id:
            raise ValueError("TelegramNotifier requires bot_token and chat_id")
        self._url = TELEGRAM_API_URL.format(token=bot_token)
        self.chat_id = chat_id
        self.timeout_sec = timeout_sec
        self._session = session or requests.Session()

    def send(self, alert: Alert) -> bool:
        payload = {
            "chat_id": self.chat_id,
            "text": format_alert_html(alert),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        resp = self._session.post(self._url, json=payload, timeout=self.timeout_sec)
        if resp.status_code != 200:
            logger.warning("telegram_send_failed", status=resp.status_code, body=resp.text[:200])
            return False
        body = resp.json()
        if not body.get("ok", False):
            logger.warning("telegram_send_failed", description=str(body.get("description"))[:200])
            return False
        logger.debug("telegram_alert_sent", alert_type=alert.type.value)
        return True
