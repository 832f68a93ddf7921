"""
Pytest fixtures for rent_reclaim tests. JSON stores live under tmp_path; the
RPC client is a MagicMock so no test touches the network.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from rent_reclaim.core.constants import SYSTEM_PROGRAM_ID_STR


def address_for(seed: int) -> str:
    """Deterministic on-curve address (a real keypair's public key)."""
    return str(Keypair.from_seed(bytes([seed] * 32)).pubkey())


class FakeChain:
    """
    In-memory ledger behind a MagicMock solana Client.

    accounts maps address -> (lamports, owner, data). slot is what get_slot returns.
    """

    RENT_EXEMPT_MINIMUM = 890_880

    def __init__(self, slot: int = 500_000) -> None:
        self.accounts: dict[str, tuple[int, str, bytes]] = {}
        self.slot = slot
        self.client = MagicMock(name="solana_client")
        self.client.get_slot.side_effect = lambda *a, **k: SimpleNamespace(value=self.slot)
        self.client.get_account_info.side_effect = self._get_account_info
        self.client.get_minimum_balance_for_rent_exemption.side_effect = (
            lambda n, *a, **k: SimpleNamespace(value=self.RENT_EXEMPT_MINIMUM)
        )

    def put(self, address: str, lamports: int, owner: str = SYSTEM_PROGRAM_ID_STR, data: bytes = b"") -> None:
        self.accounts[address] = (lamports, owner, data)

    def _get_account_info(self, pubkey, *args, **kwargs) -> SimpleNamespace:
        entry = self.accounts.get(str(pubkey))
        if entry is None:
            return SimpleNamespace(value=None)
        lamports, owner, data = entry
        return SimpleNamespace(value=SimpleNamespace(lamports=lamports, owner=Pubkey.from_string(owner), data=data))


@pytest.fixture
def make_address():
    return address_for


@pytest.fixture
def treasury() -> str:
    return address_for(250)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fetcher(chain):
    from rent_reclaim.solana_client.fetcher import StateFetcher

    return StateFetcher(
        ["http://rpc.test"],
        max_retries=2,
        retry_delay_sec=0,
        client_factory=lambda url: chain.client,
        sleep=lambda s: None,
    )


@pytest.fixture
def index_store(tmp_path):
    from rent_reclaim.database.json_store import JsonDocumentStore

    return JsonDocumentStore(tmp_path / "index.json")


@pytest.fixture
def audit_log(tmp_path):
    from rent_reclaim.database.json_store import JsonAppendLog

    return JsonAppendLog(tmp_path / "audit-log.json")


@pytest.fixture
def audit(audit_log):
    from rent_reclaim.audit.sink import AuditSink

    return AuditSink(audit_log)


@pytest.fixture
def index(index_store, audit):
    from rent_reclaim.indexer.account_index import AccountIndex

    return AccountIndex(index_store, audit)


@pytest.fixture
def make_record():
    """Factory for valid TrackedAccountRecord instances (system-owned, created at slot 1000)."""
    from rent_reclaim.indexer.models import TrackedAccountRecord

    def _make(address: str, **overrides) -> TrackedAccountRecord:
        values = {
            "address": address,
            "claimed_owner_program": SYSTEM_PROGRAM_ID_STR,
            "rent_paid_at_creation": 890_880,
            "creation_height": 1_000,
            "creation_proof_ref": "",
            "created_at": 1_700_000_000,
        }
        values.update(overrides)
        return TrackedAccountRecord(**values)

    return _make


@pytest.fixture
def settings(tmp_path, treasury, monkeypatch):
    """Dry-run settings over tmp_path JSON files. Env vars that would leak in are cleared."""
    for key in ("RECLAIM_DB_URL", "RECLAIM_ALLOWED_PROGRAMS", "ALERT_ENABLED", "DRY_RUN"):
        monkeypatch.delenv(key, raising=False)
    from rent_reclaim.config.settings import ReclaimSettings

    return ReclaimSettings(
        rpc_url="http://rpc.test",
        network="devnet",
        keypair_path="",
        treasury_address=treasury,
        index_path=str(tmp_path / "index.json"),
        audit_log_path=str(tmp_path / "audit-log.json"),
        db_url="",
        min_inactivity_slots=1_000,
        allowed_programs=[],
        dry_run=True,
        curve_check=True,
        log_level="INFO",
        alert_enabled=False,
    )


@pytest.fixture
def operator_keypair(tmp_path):
    """Operator keypair written as a Solana CLI JSON file; returns (keypair, path)."""
    kp = Keypair.from_seed(bytes([7] * 32))
    path = tmp_path / "keypair.json"
    path.write_text(str(list(bytes(kp))), encoding="utf-8")
    return kp, path


@pytest.fixture
def client(index, audit):
    """FastAPI TestClient over the tmp_path index and audit trail."""
    from fastapi.testclient import TestClient

    from rent_reclaim.api_server.server import create_app

    return TestClient(create_app(index, audit))
