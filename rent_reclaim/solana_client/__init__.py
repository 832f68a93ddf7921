"""
Solana RPC access: state fetching with failover, operator keypair loading.
"""

from rent_reclaim.solana_client.fetcher import StateFetcher
from rent_reclaim.solana_client.keypair import load_keypair, load_keypair_file

__all__ = ["StateFetcher", "load_keypair", "load_keypair_file"]
