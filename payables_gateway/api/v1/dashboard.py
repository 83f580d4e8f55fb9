"""GET /v1/dashboard/* - Read-only aggregate views"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from payables_gateway.api.dependencies import get_principal, get_record_store, get_request_id, get_today
from payables_gateway.api.errors import to_http_exception
from payables_gateway.api.v1.schemas import (
    AgingBucketSchema,
    CashFlowPointSchema,
    CategoryTotalSchema,
    KPIResponse,
    StatusBucketSchema,
    TimelinePointSchema,
)
from payables_gateway.domain import aggregates
from payables_gateway.domain.exceptions import DomainException
from payables_gateway.domain.models import Principal
from payables_gateway.infrastructure.database.repositories import SqlRecordStore
from payables_gateway.utils.date_utils import add_months

router = APIRouter()


@router.get("/dashboard/kpis", response_model=KPIResponse)
def get_kpis(
    request: Request,
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
    today: date = Depends(get_today),
):
    """Month income/expenses, balance, open totals and overdue counts"""
    try:
        transactions = store.list_transactions(principal.tenant_id)
        installments = store.list_installments(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    kpis = aggregates.kpi_summary(transactions, installments, today)
    return KPIResponse(**vars(kpis))


@router.get("/dashboard/aging", response_model=List[AgingBucketSchema])
def get_aging(
    request: Request,
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
    today: date = Depends(get_today),
):
    """Unpaid receivables and payables by days past due"""
    try:
        transactions = store.list_transactions(principal.tenant_id)
        installments = store.list_installments(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return [AgingBucketSchema(**vars(b)) for b in aggregates.aging_buckets(transactions, installments, today)]


@router.get("/dashboard/installments/status", response_model=List[StatusBucketSchema])
def get_installment_status(
    request: Request,
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
    today: date = Depends(get_today),
):
    try:
        installments = store.list_installments(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return [StatusBucketSchema(**vars(b)) for b in aggregates.installment_status_breakdown(installments, today)]


@router.get("/dashboard/installments/timeline", response_model=List[TimelinePointSchema])
def get_installment_timeline(
    request: Request,
    months: int = Query(6, ge=1, le=36),
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
    today: date = Depends(get_today),
):
    """Installment status counts per due month, oldest first"""
    try:
        installments = store.list_installments(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return [TimelinePointSchema(**vars(p)) for p in aggregates.installment_timeline(installments, today, months)]


@router.get("/dashboard/categories", response_model=List[CategoryTotalSchema])
def get_categories(
    request: Request,
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
):
    try:
        transactions = store.list_transactions(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return [CategoryTotalSchema(**vars(c)) for c in aggregates.category_totals(transactions)]


@router.get("/dashboard/cash-flow", response_model=List[CashFlowPointSchema])
def get_cash_flow(
    request: Request,
    start: Optional[date] = Query(None, description="Default: five months before end"),
    end: Optional[date] = Query(None, description="Default: today"),
    principal: Principal = Depends(get_principal),
    store: SqlRecordStore = Depends(get_record_store),
    today: date = Depends(get_today),
):
    """Receivable vs payable per creation month"""
    end = end or today
    start = start or add_months(end, -5)
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    try:
        transactions = store.list_transactions(principal.tenant_id)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return [CashFlowPointSchema(**vars(p)) for p in aggregates.cash_flow(transactions, start, end)]
