"""
TrackedAccountRecord: what was known about an account when the operator paid for it.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any

from solders.pubkey import Pubkey

from rent_reclaim.core.exceptions import InvalidRecordError

# External indexer exports use camelCase; the persisted index uses snake_case.
_CAMEL_ALIASES = {
    "address": ("address", "publicKey", "public_key"),
    "claimed_owner_program": ("claimed_owner_program", "ownerProgram", "claimedOwnerProgram", "owner_program"),
    "rent_paid_at_creation": ("rent_paid_at_creation", "rentLamportsAtCreation", "rentPaidAtCreation"),
    "creation_height": ("creation_height", "creationSlot", "creationHeight", "creation_slot"),
    "creation_proof_ref": ("creation_proof_ref", "creationTxSignature", "creationProofRef"),
    "created_at": ("created_at", "createdAt"),
    "last_checked_at": ("last_checked_at", "lastCheckedAt"),
}


def _pick(raw: dict[str, Any], attr: str) -> Any:
    for key in _CAMEL_ALIASES[attr]:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def validate_pubkey(value: Any, field_name: str) -> str:
    """Return the canonical base58 string, or raise InvalidRecordError."""
    text = str(value or "").strip()
    if not text:
        raise InvalidRecordError(f"{field_name} must be non-empty")
    try:
        return str(Pubkey.from_string(text))
    except ValueError as e:
        raise InvalidRecordError(f"Invalid {field_name}: {text}") from e


def _non_negative_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; a JSON true is never a valid amount
    if isinstance(value, bool):
        raise InvalidRecordError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(f"{field_name} must be an integer") from e
    if isinstance(value, float) and value != number:
        raise InvalidRecordError(f"{field_name} must be an integer")
    if number < 0:
        raise InvalidRecordError(f"{field_name} must be >= 0")
    return number


def _unix_seconds(value: Any) -> int:
    """Accept seconds or JS-style milliseconds."""
    number = _non_negative_int(value, "created_at")
    return number // 1000 if number > 10_000_000_000 else number


@dataclass(frozen=True)
class TrackedAccountRecord:
    address: str
    claimed_owner_program: str
    rent_paid_at_creation: int
    creation_height: int
    creation_proof_ref: str = ""
    created_at: int = 0
    last_checked_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TrackedAccountRecord:
        """
        Build and validate a record from persisted or imported JSON.

        Raises InvalidRecordError on any invalid field.
        """
        if not isinstance(raw, dict):
            raise InvalidRecordError("record must be a JSON object")
        address = validate_pubkey(_pick(raw, "address"), "address")
        owner = validate_pubkey(_pick(raw, "claimed_owner_program"), "claimed_owner_program")
        rent = _non_negative_int(_pick(raw, "rent_paid_at_creation"), "rent_paid_at_creation")
        height = _non_negative_int(_pick(raw, "creation_height"), "creation_height")
        created = _pick(raw, "created_at")
        checked = _pick(raw, "last_checked_at")
        return cls(
            address=address,
            claimed_owner_program=owner,
            rent_paid_at_creation=rent,
            creation_height=height,
            creation_proof_ref=str(_pick(raw, "creation_proof_ref") or ""),
            created_at=_unix_seconds(created) if created is not None else int(time.time()),
            last_checked_at=_unix_seconds(checked) if checked is not None else None,
        )
