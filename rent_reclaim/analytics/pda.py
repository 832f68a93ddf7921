"""
Program-derived address check.

A PDA is derived so that it is NOT a valid ed25519 point: no private key can
exist for it, so only its program can move its lamports. Pubkey.is_on_curve
gives the exact answer for a given address without any network access.
"""

from __future__ import annotations

from solders.pubkey import Pubkey


def is_off_curve(address: str) -> bool:
    """
    True when address is not on the ed25519 curve (i.e. could be a PDA).

    Unparseable addresses count as off-curve.
    """
    try:
        return not Pubkey.from_string(address).is_on_curve()
    except ValueError:
        return True
