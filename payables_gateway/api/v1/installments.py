"""/v1/installments - List installments and mark them paid"""

import time
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from payables_gateway.api.dependencies import (
    get_principal,
    get_reconciliation_service,
    get_request_id,
    get_today,
    parse_uuid,
)
from payables_gateway.api.errors import to_http_exception
from payables_gateway.api.v1.schemas import InstallmentListResponse, MarkPaidResponse
from payables_gateway.api.v1.transactions import installment_schema
from payables_gateway.domain.exceptions import DomainException
from payables_gateway.domain.models import Principal
from payables_gateway.domain.reconciliation import ReconciliationService
from payables_gateway.infrastructure.observability.logging import log_operation
from payables_gateway.infrastructure.observability.metrics import record_installment_paid

router = APIRouter()


@router.get("/installments", response_model=InstallmentListResponse)
def list_installments(
    request: Request,
    status: Optional[Literal["pending", "paid", "overdue"]] = Query(None, description="Effective status filter"),
    search: Optional[str] = Query(None, description="Matches transaction description or installment number"),
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
    today: date = Depends(get_today),
):
    """Tenant's installments ordered by due date"""
    try:
        views = service.list_installments(principal.tenant_id, today, status=status, search=search)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return InstallmentListResponse(
        tenant_id=principal.tenant_id,
        installments=[installment_schema(v) for v in views],
    )


@router.post("/installments/{installment_id}/pay", response_model=MarkPaidResponse)
def mark_installment_paid(
    installment_id: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Mark an installment paid and re-derive its transaction status.

    Repeating the call on a paid installment succeeds with already_paid=true.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    installment_uuid = parse_uuid(installment_id, "installment")

    try:
        result = service.mark_installment_paid(installment_uuid, principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    record_installment_paid(result.already_paid)
    log_operation(
        request_id,
        principal.tenant_id,
        "installment_paid",
        (time.time() - start_time) * 1000,
        outcome="already_paid" if result.already_paid else "paid",
        resource_id=installment_id,
    )

    return MarkPaidResponse(
        installment_id=str(result.installment_id),
        transaction_id=str(result.transaction_id),
        already_paid=result.already_paid,
        transaction_status=result.transaction_status,
    )
