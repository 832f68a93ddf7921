"""
Operator keypair loading: Solana CLI JSON array file, or a base58 secret.
"""

from __future__ import annotations

import json
from pathlib import Path

import base58
from solders.keypair import Keypair

from rent_reclaim.core.exceptions import ConfigError
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)


def load_keypair(secret: str) -> Keypair:
    """Load Keypair from a JSON array of 64 bytes or a base58 string."""
    raw = (secret or "").strip()
    if not raw:
        raise ConfigError("empty keypair secret")
    if raw.startswith("["):
        try:
            arr = json.loads(raw)
            if isinstance(arr, list) and len(arr) >= 64:
                return Keypair.from_bytes(bytes(arr[:64]))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid keypair JSON: {e}") from e
        raise ConfigError("Keypair JSON array must hold 64 bytes")
    try:
        return Keypair.from_bytes(base58.b58decode(raw))
    except ValueError as e:
        logger.warning("keypair_load_failed", error=str(e))
        raise ConfigError("Invalid base58 keypair secret") from e


def load_keypair_file(path: str | Path) -> Keypair:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read keypair file {p}: {e}") from e
    keypair = load_keypair(text)
    logger.info("operator_keypair_loaded", pubkey=str(keypair.pubkey())[:16] + "...")
    return keypair
