"""
Application settings for the reclaim pipeline.

Responsibilities:
- Default every setting from environment variables (.env honoured).
- Overlay an optional JSON config file, with ${ENV_VAR} placeholders expanded.
- Validate before any account is touched: ConfigError is the only way a
  misconfigured run stops.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from solders.pubkey import Pubkey

from rent_reclaim.config.env import (
    get_solana_network,
    get_solana_rpc_url,
    load_reclaim_env,
    parse_bool_env,
    parse_float_env,
    parse_int_env,
    split_rpc_urls,
)
from rent_reclaim.core.constants import sol_to_lamports
from rent_reclaim.core.exceptions import ConfigError
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MIN_INACTIVITY_SLOTS = 100_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SEC = 1.0
DEFAULT_CONFIRM_TIMEOUT_SEC = 30.0

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# JSON key -> settings attribute. snake_case attribute names are accepted as-is.
_JSON_KEYS = {
    "rpcUrl": "rpc_url",
    "cluster": "network",
    "keypairPath": "keypair_path",
    "treasuryAddress": "treasury_address",
    "indexPath": "index_path",
    "auditLogPath": "audit_log_path",
    "dbUrl": "db_url",
    "minInactivitySlots": "min_inactivity_slots",
    "maxRetries": "rpc_max_retries",
    "retryDelayMs": "rpc_retry_delay_sec",
    "confirmTimeoutSec": "confirm_timeout_sec",
    "allowedPrograms": "allowed_programs",
    "dryRun": "dry_run",
    "curveCheck": "curve_check",
    "logLevel": "log_level",
}


def _env_list(key: str) -> list[str]:
    return [p.strip() for p in (os.getenv(key) or "").split(",") if p.strip()]


@dataclass
class ReclaimSettings:
    """Settings for one pipeline run. Every field defaults from env."""

    rpc_url: str = field(default_factory=get_solana_rpc_url)
    network: str = field(default_factory=get_solana_network)
    keypair_path: str = field(
        default_factory=lambda: (os.getenv("RECLAIM_KEYPAIR_PATH") or "").strip()
    )
    treasury_address: str = field(
        default_factory=lambda: (os.getenv("RECLAIM_TREASURY_ADDRESS") or "").strip()
    )
    index_path: str = field(
        default_factory=lambda: (os.getenv("RECLAIM_INDEX_PATH") or "data/index.json").strip()
    )
    audit_log_path: str = field(
        default_factory=lambda: (os.getenv("RECLAIM_AUDIT_LOG_PATH") or "data/audit-log.json").strip()
    )
    db_url: str = field(default_factory=lambda: (os.getenv("RECLAIM_DB_URL") or "").strip())
    min_inactivity_slots: int = field(
        default_factory=lambda: parse_int_env("MIN_INACTIVITY_SLOTS", DEFAULT_MIN_INACTIVITY_SLOTS)
    )
    rpc_max_retries: int = field(
        default_factory=lambda: parse_int_env("RPC_MAX_RETRIES", DEFAULT_MAX_RETRIES)
    )
    rpc_retry_delay_sec: float = field(
        default_factory=lambda: parse_float_env("RPC_RETRY_DELAY_SEC", DEFAULT_RETRY_DELAY_SEC)
    )
    confirm_timeout_sec: float = field(
        default_factory=lambda: parse_float_env("CONFIRM_TIMEOUT_SEC", DEFAULT_CONFIRM_TIMEOUT_SEC)
    )
    confirm_poll_interval_sec: float = field(
        default_factory=lambda: parse_float_env("CONFIRM_POLL_INTERVAL_SEC", 2.0)
    )
    allowed_programs: list[str] = field(default_factory=lambda: _env_list("RECLAIM_ALLOWED_PROGRAMS"))
    dry_run: bool = field(default_factory=lambda: parse_bool_env("DRY_RUN", True))
    curve_check: bool = field(default_factory=lambda: parse_bool_env("RECLAIM_CURVE_CHECK", True))
    log_level: str = field(default_factory=lambda: (os.getenv("LOG_LEVEL") or "INFO").strip().upper())
    # Alerting
    alert_enabled: bool = field(default_factory=lambda: parse_bool_env("ALERT_ENABLED", False))
    alert_min_lamports: int = field(default_factory=lambda: parse_int_env("ALERT_MIN_LAMPORTS", 0))
    alert_cooldown_sec: int = field(default_factory=lambda: parse_int_env("ALERT_COOLDOWN_SEC", 3600))
    telegram_bot_token: str = field(
        default_factory=lambda: (os.getenv("TELEGRAM_BOT_TOKEN") or "").strip()
    )
    telegram_chat_id: str = field(default_factory=lambda: (os.getenv("TELEGRAM_CHAT_ID") or "").strip())
    # Dashboard
    dashboard_host: str = field(default_factory=lambda: (os.getenv("DASHBOARD_HOST") or "127.0.0.1").strip())
    dashboard_port: int = field(default_factory=lambda: parse_int_env("DASHBOARD_PORT", 8000))

    @property
    def rpc_urls(self) -> list[str]:
        return split_rpc_urls(self.rpc_url)

    @property
    def mode(self) -> str:
        return "dry-run" if self.dry_run else "live"

    def validate(self, live: bool | None = None) -> None:
        """
        Raise ConfigError on anything that must stop a run before it starts.

        The keypair is only required when signing (live mode).
        """
        live = (not self.dry_run) if live is None else live
        if not self.rpc_urls:
            raise ConfigError("rpc_url must be a non-empty string")
        if not self.treasury_address:
            raise ConfigError("treasury_address is required")
        try:
            Pubkey.from_string(self.treasury_address)
        except ValueError as e:
            raise ConfigError(f"treasury_address is not a valid Solana public key: {self.treasury_address}") from e
        for program in self.allowed_programs:
            try:
                Pubkey.from_string(program)
            except ValueError as e:
                raise ConfigError(f"Invalid program address in allowed_programs: {program}") from e
        if self.min_inactivity_slots < 0:
            raise ConfigError("min_inactivity_slots must be >= 0")
        if self.rpc_max_retries < 1:
            raise ConfigError("rpc_max_retries must be >= 1")
        if self.rpc_retry_delay_sec < 0 or self.confirm_timeout_sec <= 0:
            raise ConfigError("retry delay must be >= 0 and confirm timeout > 0")
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")
        if not self.index_path.strip() or not self.audit_log_path.strip():
            raise ConfigError("index_path and audit_log_path must be non-empty")
        if live:
            if not self.keypair_path:
                raise ConfigError("keypair_path is required for live reclaim")
            if not Path(self.keypair_path).is_file():
                raise ConfigError(f"Keypair file not found: {self.keypair_path}")
        if self.alert_enabled and not (self.telegram_bot_token and self.telegram_chat_id):
            logger.warning("alerts_enabled_without_telegram_credentials")


def _expand_placeholders(value: Any) -> Any:
    """Replace ${ENV_VAR} in every string of a parsed JSON document (missing vars become "")."""
    if isinstance(value, str):
        return _PLACEHOLDER.sub(lambda m: os.getenv(m.group(1), ""), value)
    if isinstance(value, list):
        return [_expand_placeholders(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_placeholders(v) for k, v in value.items()}
    return value


def _overrides_from_json(raw: dict[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(ReclaimSettings)}
    out: dict[str, Any] = {}
    for key, value in raw.items():
        attr = _JSON_KEYS.get(key, key)
        if key == "retryDelayMs" and value is not None:
            value = float(value) / 1000.0
        if attr in known:
            out[attr] = value
    telegram = raw.get("telegram") or {}
    if isinstance(telegram, dict) and telegram:
        out["alert_enabled"] = bool(telegram.get("enabled", False))
        out["telegram_bot_token"] = str(telegram.get("botToken") or "")
        out["telegram_chat_id"] = str(telegram.get("chatId") or "")
        threshold = (telegram.get("alerts") or {}).get("reclaimThreshold")
        if threshold is not None:
            out["alert_min_lamports"] = sol_to_lamports(float(threshold))
    dashboard = raw.get("dashboard") or {}
    if isinstance(dashboard, dict) and dashboard:
        out["dashboard_host"] = str(dashboard.get("host") or "127.0.0.1")
        out["dashboard_port"] = int(dashboard.get("port") or 8000)
    if "network" in out and out["network"] == "mainnet-beta":
        out["network"] = "mainnet"
    if "log_level" in out:
        level = str(out["log_level"]).upper()
        out["log_level"] = "WARNING" if level == "WARN" else level
    return out


def load_settings(path: str | Path | None = None) -> ReclaimSettings:
    """
    Build settings from env, then overlay the JSON config file at `path` if given.

    Raises ConfigError when the file is missing or is not a JSON object.
    """
    load_reclaim_env()
    settings = ReclaimSettings()
    if path is None:
        return settings
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {p}")
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a JSON object")
    overrides = _overrides_from_json(_expand_placeholders(raw))
    settings = replace(settings, **overrides)
    logger.info(
        "config_loaded",
        path=str(p),
        network=settings.network,
        mode=settings.mode,
        endpoints=len(settings.rpc_urls),
    )
    return settings


EXAMPLE_CONFIG: dict[str, Any] = {
    "rpcUrl": "https://api.devnet.solana.com",
    "cluster": "devnet",
    "keypairPath": "./keypair.json",
    "treasuryAddress": "${RECLAIM_TREASURY_ADDRESS}",
    "indexPath": "./data/index.json",
    "auditLogPath": "./data/audit-log.json",
    "minInactivitySlots": DEFAULT_MIN_INACTIVITY_SLOTS,
    "maxRetries": DEFAULT_MAX_RETRIES,
    "retryDelayMs": int(DEFAULT_RETRY_DELAY_SEC * 1000),
    "allowedPrograms": [],
    "dryRun": True,
    "logLevel": "info",
    "telegram": {
        "enabled": False,
        "botToken": "${TELEGRAM_BOT_TOKEN}",
        "chatId": "${TELEGRAM_CHAT_ID}",
        "alerts": {"reclaimThreshold": 0.1},
    },
    "dashboard": {"enabled": False, "port": 8000, "host": "127.0.0.1"},
}


def write_example_config(path: str | Path, overwrite: bool = False) -> Path:
    """Write EXAMPLE_CONFIG to `path`. Refuses to clobber an existing file unless overwrite."""
    p = Path(path)
    if p.exists() and not overwrite:
        raise ConfigError(f"Refusing to overwrite existing config: {p}")
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(EXAMPLE_CONFIG, indent=2) + "\n", encoding="utf-8")
    logger.info("example_config_written", path=str(p))
    return p
