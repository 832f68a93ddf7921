"""
FastAPI dashboard: read-only view over the account index and audit trail.

GET /health, /api/accounts, /api/accounts/{address}, /api/audit, /api/summary.
Issues no writes and never triggers a reclaim.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rent_reclaim import __version__
from rent_reclaim.audit.sink import AuditAction, AuditEntry, AuditSink
from rent_reclaim.indexer.account_index import AccountIndex
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger(__name__)

DEFAULT_AUDIT_LIMIT = 100
MAX_AUDIT_LIMIT = 1000


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """One tracked account plus the latest audit action recorded for it."""

    address: str = Field(..., description="Account address (base58)")
    claimed_owner_program: str = Field(..., description="Owner program recorded at sponsorship time")
    rent_paid_at_creation: int = Field(..., ge=0, description="Lamports paid at creation")
    creation_height: int = Field(..., ge=0, description="Slot of account creation")
    creation_proof_ref: str = Field("", description="Creation transaction signature")
    created_at: int = Field(..., description="Unix timestamp of registration")
    last_checked_at: int | None = Field(None, description="Unix timestamp of last analysis")
    last_action: str | None = Field(None, description="Latest audit action for this account")


class AuditEntryResponse(BaseModel):
    unix_timestamp: int
    iso_timestamp: str
    action: str
    account: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AccountDetailResponse(BaseModel):
    """GET /api/accounts/{address}: record (null once reclaimed) and its audit timeline."""

    address: str
    tracked: bool = Field(..., description="Still present in the index")
    account: AccountResponse | None = None
    timeline: list[AuditEntryResponse] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    total_tracked: int = Field(..., description="Accounts in the index")
    total_rent_locked: int = Field(..., description="Rent paid at creation across tracked accounts (lamports)")
    by_owner_program: dict[str, int] = Field(default_factory=dict)
    audit_counts: dict[str, int] = Field(default_factory=dict, description="Audit entries by action")
    total_reclaimed_lamports: int = Field(0, description="Sum of confirmed reclaim amounts")


def _entry_response(entry: AuditEntry) -> AuditEntryResponse:
    return AuditEntryResponse(**entry.to_dict())


def create_app(index: AccountIndex, audit: AuditSink) -> FastAPI:
    """Build the dashboard app over an index and audit sink (read access only)."""
    app = FastAPI(
        title="Rent Reclaim Dashboard",
        description="Read-only view over tracked accounts and the reclaim audit trail.",
        version=__version__,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    @app.get("/api/accounts", response_model=list[AccountResponse])
    def list_accounts() -> list[AccountResponse]:
        last_action: dict[str, str] = {}
        for entry in audit.entries():
            if entry.account:
                last_action[entry.account] = entry.action
        return [
            AccountResponse(**record.to_dict(), last_action=last_action.get(record.address))
            for record in index.list()
        ]

    @app.get("/api/accounts/{address}", response_model=AccountDetailResponse)
    def get_account(address: str) -> AccountDetailResponse:
        """
        Record and audit timeline for one address. 404 when the address is
        neither tracked nor present in the audit trail.
        """
        address = address.strip()
        if not address:
            raise HTTPException(status_code=400, detail="address must be non-empty")
        record = index.get(address)
        timeline = audit.for_account(address)
        if record is None and not timeline:
            raise HTTPException(status_code=404, detail=f"Unknown account {address[:8]}...")
        account = None
        if record is not None:
            account = AccountResponse(
                **record.to_dict(),
                last_action=timeline[-1].action if timeline else None,
            )
        return AccountDetailResponse(
            address=address,
            tracked=record is not None,
            account=account,
            timeline=[_entry_response(e) for e in timeline],
        )

    @app.get("/api/audit", response_model=list[AuditEntryResponse])
    def list_audit(
        limit: int = Query(DEFAULT_AUDIT_LIMIT, ge=1, le=MAX_AUDIT_LIMIT),
        action: str | None = Query(None, description="Filter by audit action"),
    ) -> list[AuditEntryResponse]:
        """Newest entries first."""
        if action is not None:
            action = action.strip().upper()
            if action not in {a.value for a in AuditAction}:
                raise HTTPException(status_code=400, detail=f"Unknown audit action: {action}")
        return [_entry_response(e) for e in audit.recent(limit=limit, action=action)]

    @app.get("/api/summary", response_model=SummaryResponse)
    def summary() -> SummaryResponse:
        stats = index.statistics()
        return SummaryResponse(
            total_tracked=stats["total_tracked"],
            total_rent_locked=stats["total_rent_locked"],
            by_owner_program=stats["by_owner_program"],
            audit_counts=audit.summary(),
            total_reclaimed_lamports=audit.total_reclaimed_lamports(),
        )

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    logger.info("dashboard_app_created")
    return app
