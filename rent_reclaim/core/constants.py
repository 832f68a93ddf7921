"""
Solana program ids and account layouts used by classification and execution.
"""

from __future__ import annotations

SYSTEM_PROGRAM_ID_STR = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID_STR = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID_STR = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
TOKEN_PROGRAM_IDS = frozenset({TOKEN_PROGRAM_ID_STR, TOKEN_2022_PROGRAM_ID_STR})

# SPL token layouts (bytes)
TOKEN_MINT_ACCOUNT_LEN = 82
TOKEN_HOLDING_ACCOUNT_LEN = 165
# TokenAccount: 32 mint + 32 owner + 8 amount (u64 LE)
TOKEN_AMOUNT_OFFSET = 64
TOKEN_AMOUNT_LEN = 8

LAMPORTS_PER_SOL = 1_000_000_000

DEVNET_RPC_URL = "https://api.devnet.solana.com"
TESTNET_RPC_URL = "https://api.testnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"


def lamports_to_sol(lamports: int) -> float:
    return lamports / LAMPORTS_PER_SOL


def sol_to_lamports(sol: float) -> int:
    return int(sol * LAMPORTS_PER_SOL)
