"""Dependency injection for FastAPI endpoints"""

import uuid
from datetime import date
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from payables_gateway.config import settings
from payables_gateway.domain.exceptions import AuthenticationError, IdentityProviderError
from payables_gateway.domain.models import Principal
from payables_gateway.domain.reconciliation import ReconciliationService
from payables_gateway.infrastructure.clients.identity import IdentityClient
from payables_gateway.infrastructure.clients.notifier import ChangeNotifier, build_change_event
from payables_gateway.infrastructure.database.repositories import SqlRecordStore
from payables_gateway.infrastructure.database.session import get_db
from payables_gateway.infrastructure.observability.metrics import identity_failures_counter


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_today() -> date:
    """Reference date for derived statuses; overridden in tests"""
    return date.today()


def get_identity_client() -> IdentityClient:
    """Provide identity provider client instance"""
    return IdentityClient()


def get_change_notifier() -> ChangeNotifier:
    """Provide change webhook client instance"""
    return ChangeNotifier()


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    identity_client: IdentityClient = Depends(get_identity_client),
) -> Principal:
    """Resolve the caller's tenant and role from the bearer token"""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    try:
        return await identity_client.get_principal(token)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except IdentityProviderError:
        identity_failures_counter.inc()
        raise HTTPException(status_code=503, detail="Identity service unavailable")


def get_record_store(db: Session = Depends(get_db)) -> SqlRecordStore:
    return SqlRecordStore(db)


def get_reconciliation_service(
    background_tasks: BackgroundTasks,
    store: SqlRecordStore = Depends(get_record_store),
    notifier: ChangeNotifier = Depends(get_change_notifier),
) -> ReconciliationService:
    """Service whose change events are delivered after the response is sent"""

    def on_change(tenant_id: str, event: str, payload: dict) -> None:
        if settings.change_webhook_enabled:
            background_tasks.add_task(notifier.send_change_event, build_change_event(tenant_id, event, payload))

    return ReconciliationService(store, on_change=on_change)


def parse_uuid(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID format")
