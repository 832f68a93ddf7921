"""
Reclaim instruction construction. Pure: no network, no signing.
"""

from __future__ import annotations

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer


def build_transfer_instruction(source: str, destination: str, lamports: int) -> Instruction:
    """
    System transfer of `lamports` from source to destination.

    Raises ValueError for an invalid address or a non-positive amount.
    """
    if int(lamports) <= 0:
        raise ValueError(f"transfer amount must be positive, got {lamports}")
    return transfer(
        TransferParams(
            from_pubkey=Pubkey.from_string(source),
            to_pubkey=Pubkey.from_string(destination),
            lamports=int(lamports),
        )
    )
