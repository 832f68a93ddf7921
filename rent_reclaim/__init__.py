"""
Rent Reclaim: automated recovery of rent-exempt balances from sponsored Solana accounts.

Tracks accounts an operator paid to create, inspects their on-chain state,
classifies and risk-flags them, and only ever empties an account back to the
treasury when every safety check passes. Every step lands in an append-only
audit trail.
"""

__version__ = "0.1.0"
