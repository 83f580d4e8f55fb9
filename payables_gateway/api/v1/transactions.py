"""/v1/transactions - Create, list, fetch and delete transactions"""

import time
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from payables_gateway.api.dependencies import (
    get_principal,
    get_reconciliation_service,
    get_request_id,
    get_today,
    parse_uuid,
)
from payables_gateway.api.errors import to_http_exception
from payables_gateway.api.v1.schedules import to_drafts
from payables_gateway.api.v1.schemas import (
    InstallmentSchema,
    TransactionCreateRequest,
    TransactionCreatedResponse,
    TransactionListResponse,
    TransactionSchema,
)
from payables_gateway.domain.exceptions import DomainException
from payables_gateway.domain.models import (
    InstallmentView,
    Principal,
    ScheduleInput,
    TransactionDraft,
    TransactionView,
)
from payables_gateway.domain.reconciliation import ReconciliationService
from payables_gateway.infrastructure.observability.logging import log_operation
from payables_gateway.infrastructure.observability.metrics import (
    record_transaction_created,
    transactions_deleted_counter,
)

router = APIRouter()


def installment_schema(view: InstallmentView) -> InstallmentSchema:
    i = view.record
    return InstallmentSchema(
        id=str(i.id),
        transaction_id=str(i.transaction_id),
        installment_number=i.installment_number,
        due_date=i.due_date,
        emission_date=i.emission_date,
        value=i.value,
        status=i.status,
        effective_status=view.effective_status,
    )


def transaction_schema(view: TransactionView) -> TransactionSchema:
    t = view.record
    return TransactionSchema(
        id=str(t.id),
        direction=t.direction,
        description=t.description,
        amount=t.amount,
        party_id=t.party_id,
        payment_method=t.payment_method,
        due_date=t.due_date,
        category=t.category,
        status=t.status,
        effective_status=view.effective_status,
        settlement_state=view.settlement_state,
        created_at=t.created_at.isoformat(),
        installments=[installment_schema(i) for i in view.installments],
    )


@router.post("/transactions", response_model=TransactionCreatedResponse, status_code=201)
def create_transaction(
    request_body: TransactionCreateRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
    today: date = Depends(get_today),
):
    """
    Create a transaction, optionally split into installments.

    Flow:
    1. Without schedule or installments: save the transaction alone
    2. With a schedule: generate installments (or take the edited list)
    3. Require installment values to add up to the amount exactly
    4. Save transaction + installments atomically
    """
    start_time = time.time()
    request_id = get_request_id(request)

    draft = TransactionDraft(
        direction=request_body.direction,
        description=request_body.description,
        amount=request_body.amount,
        party_id=request_body.party_id,
        payment_method=request_body.payment_method,
        due_date=request_body.due_date,
        category=request_body.category,
    )
    scheduled = request_body.schedule is not None or request_body.installments is not None

    try:
        if not scheduled:
            transaction_id = service.create_simple_transaction(principal.tenant_id, draft)
            installment_count = 0
        else:
            schedule_input = None
            if request_body.schedule is not None:
                schedule_input = ScheduleInput(
                    total=request_body.amount,
                    num_installments=request_body.schedule.num_installments,
                    first_due_date=request_body.schedule.first_due_date,
                    interval_days=request_body.schedule.interval_days,
                    emission_date=request_body.schedule.emission_date or today,
                )
            installments = to_drafts(request_body.installments) if request_body.installments is not None else None

            transaction_id = service.create_transaction_with_schedule(
                principal.tenant_id,
                draft,
                schedule_input=schedule_input,
                installments=installments,
            )
            installment_count = (
                len(installments) if installments is not None else request_body.schedule.num_installments
            )
    except DomainException as e:
        raise to_http_exception(e, request_id)

    duration_ms = (time.time() - start_time) * 1000
    record_transaction_created(request_body.direction, scheduled)
    log_operation(request_id, principal.tenant_id, "transaction_create", duration_ms, resource_id=str(transaction_id))

    return TransactionCreatedResponse(transaction_id=str(transaction_id), installment_count=installment_count)


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    request: Request,
    limit: int = Query(100, ge=1, le=1000, description="Maximum transactions to return"),
    direction: Optional[Literal["payable", "receivable"]] = Query(None),
    status: Optional[Literal["pending", "paid", "overdue"]] = Query(None, description="Effective status filter"),
    search: Optional[str] = Query(None, description="Case-insensitive match on description"),
    created_from: Optional[date] = Query(None, description="Inclusive lower bound on creation date"),
    created_to: Optional[date] = Query(None, description="Inclusive upper bound on creation date"),
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
    today: date = Depends(get_today),
):
    """Tenant's transactions, newest first, with derived statuses"""
    if created_from is not None and created_to is not None and created_from > created_to:
        raise HTTPException(status_code=400, detail="created_from must not be after created_to")

    try:
        views = service.list_transactions(
            principal.tenant_id,
            today,
            limit=limit,
            direction=direction,
            status=status,
            search=search,
            created_from=created_from,
            created_to=created_to,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return TransactionListResponse(
        tenant_id=principal.tenant_id,
        transactions=[transaction_schema(v) for v in views],
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionSchema)
def get_transaction(
    transaction_id: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
    today: date = Depends(get_today),
):
    """Retrieve one transaction with its installment schedule"""
    transaction_uuid = parse_uuid(transaction_id, "transaction")

    try:
        view = service.get_transaction(transaction_uuid, principal.tenant_id, today)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return transaction_schema(view)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: str,
    request: Request,
    principal: Principal = Depends(get_principal),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Delete a transaction together with all of its installments"""
    start_time = time.time()
    request_id = get_request_id(request)
    transaction_uuid = parse_uuid(transaction_id, "transaction")

    try:
        service.delete_transaction(transaction_uuid, principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, request_id)

    transactions_deleted_counter.inc()
    log_operation(
        request_id,
        principal.tenant_id,
        "transaction_delete",
        (time.time() - start_time) * 1000,
        resource_id=transaction_id,
    )
    return Response(status_code=204)
