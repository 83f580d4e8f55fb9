"""POST /v1/schedules/* - Stateless schedule preview and editing"""

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from payables_gateway.api.dependencies import get_principal, get_request_id, get_today
from payables_gateway.api.errors import to_http_exception
from payables_gateway.api.v1.schemas import (
    InstallmentDraftSchema,
    ScheduleEditRequest,
    SchedulePreviewRequest,
    ScheduleResponse,
    SumCheckSchema,
)
from payables_gateway.config import settings
from payables_gateway.domain import schedule_editor
from payables_gateway.domain.exceptions import DomainException
from payables_gateway.domain.installments import generate_schedule
from payables_gateway.domain.models import InstallmentDraft, Principal

router = APIRouter()


def to_drafts(items: List[InstallmentDraftSchema]) -> List[InstallmentDraft]:
    return [InstallmentDraft(**item.model_dump()) for item in items]


def to_schedule_response(drafts: List[InstallmentDraft], total) -> ScheduleResponse:
    check = schedule_editor.check_sum(drafts, total, epsilon_cents=settings.edit_tolerance_cents)
    return ScheduleResponse(
        installments=[
            InstallmentDraftSchema(
                installment_number=d.installment_number,
                due_date=d.due_date,
                value=d.value,
                emission_date=d.emission_date,
                status=d.status,
            )
            for d in drafts
        ],
        sum_check=SumCheckSchema(
            total=check.total,
            scheduled=check.scheduled,
            drift=check.drift,
            within_tolerance=check.within_tolerance,
            exact=check.exact,
        ),
    )


@router.post("/schedules/preview", response_model=ScheduleResponse)
def preview_schedule(
    request_body: SchedulePreviewRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    today: date = Depends(get_today),
):
    """
    Generate a draft schedule without saving anything.

    The last installment absorbs the rounding remainder.
    """
    try:
        drafts = generate_schedule(
            total=request_body.total,
            num_installments=request_body.num_installments,
            first_due_date=request_body.first_due_date,
            interval_days=request_body.interval_days,
            emission_date=request_body.emission_date or today,
        )
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return to_schedule_response(drafts, request_body.total)


@router.post("/schedules/edit", response_model=ScheduleResponse)
def edit_schedule(
    request_body: ScheduleEditRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    today: date = Depends(get_today),
):
    """
    Apply one edit to a draft schedule and report the resulting sum drift.

    Drift does not block further edits; it only blocks the commit.
    """
    drafts = to_drafts(request_body.installments)
    index = request_body.index

    try:
        if request_body.operation == "insert":
            edited = schedule_editor.insert(drafts, today=today)
        elif index is None:
            raise HTTPException(status_code=422, detail=f"index is required for {request_body.operation}")
        elif request_body.operation == "remove":
            edited = schedule_editor.remove(drafts, index)
        elif request_body.operation == "set_value":
            if request_body.value is None:
                raise HTTPException(status_code=422, detail="value is required for set_value")
            edited = schedule_editor.set_value(drafts, index, request_body.value)
        else:
            if request_body.due_date is None:
                raise HTTPException(status_code=422, detail="due_date is required for set_due_date")
            edited = schedule_editor.set_due_date(drafts, index, request_body.due_date)
    except DomainException as e:
        raise to_http_exception(e, get_request_id(request))

    return to_schedule_response(edited, request_body.total)
