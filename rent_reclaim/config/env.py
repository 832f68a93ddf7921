"""
Environment variable loading for Rent Reclaim.

- SOLANA_NETWORK: devnet | testnet | mainnet (default: devnet)
- RECLAIM_RPC_URL / SOLANA_RPC_URL: RPC endpoint(s); several may be given
  separated by "|" or ","
- RECLAIM_DB_URL: optional SQLAlchemy URL; JSON files are used when unset
- Loads .env from the working directory when available.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv

from rent_reclaim.core.constants import DEVNET_RPC_URL, MAINNET_RPC_URL, TESTNET_RPC_URL

_RPC_SEPARATORS = re.compile(r"[|,]")


def load_reclaim_env(path: str | Path | None = None) -> None:
    """Load .env (working directory by default). Safe to call multiple times; never overrides real env."""
    load_dotenv(path or Path.cwd() / ".env", override=False)


def parse_bool_env(key: str, default: bool = False) -> bool:
    raw = (os.getenv(key) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def parse_int_env(key: str, default: int) -> int:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def parse_float_env(key: str, default: float) -> float:
    raw = (os.getenv(key) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_solana_network() -> str:
    """
    Return SOLANA_NETWORK from env: devnet | testnet | mainnet.
    Default: devnet.
    """
    load_reclaim_env()
    raw = (os.getenv("SOLANA_NETWORK") or os.getenv("SOLANA_CLUSTER") or "devnet").strip().lower()
    if raw in ("mainnet", "mainnet-beta"):
        return "mainnet"
    if raw == "testnet":
        return "testnet"
    return "devnet"


def default_rpc_url(network: str) -> str:
    if network == "mainnet":
        return MAINNET_RPC_URL
    if network == "testnet":
        return TESTNET_RPC_URL
    return DEVNET_RPC_URL


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: RECLAIM_RPC_URL > SOLANA_RPC_URL > public endpoint for SOLANA_NETWORK.
    """
    load_reclaim_env()
    url = (os.getenv("RECLAIM_RPC_URL") or os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    return default_rpc_url(get_solana_network())


def split_rpc_urls(raw: str) -> list[str]:
    """Split a failover list ("https://a|https://b") into endpoints, order kept, blanks dropped."""
    return [part.strip() for part in _RPC_SEPARATORS.split(raw or "") if part.strip()]
