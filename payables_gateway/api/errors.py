"""Translation of domain exceptions into HTTP errors"""

import logging
from fastapi import HTTPException

from payables_gateway.domain.exceptions import (
    AuthenticationError,
    CannotRemoveLastInstallment,
    DomainException,
    IdentityProviderError,
    InvalidScheduleInput,
    NotFoundError,
    ScheduleSumMismatch,
    StoreUnavailable,
    TenantMismatch,
)
from payables_gateway.infrastructure.observability.metrics import (
    identity_failures_counter,
    schedule_rejection_counter,
    store_failures_counter,
    tenant_mismatch_counter,
)


def to_http_exception(error: DomainException, request_id: str) -> HTTPException:
    """Map a domain error to its status code, recording metrics on the way"""
    if isinstance(error, InvalidScheduleInput):
        schedule_rejection_counter.labels(reason="invalid_input").inc()
        return HTTPException(status_code=422, detail=str(error))

    if isinstance(error, ScheduleSumMismatch):
        schedule_rejection_counter.labels(reason="sum_mismatch").inc()
        return HTTPException(
            status_code=422,
            detail={
                "message": str(error),
                "expected": str(error.expected),
                "scheduled": str(error.scheduled),
            },
        )

    if isinstance(error, CannotRemoveLastInstallment):
        schedule_rejection_counter.labels(reason="last_installment").inc()
        return HTTPException(status_code=409, detail=str(error))

    if isinstance(error, TenantMismatch):
        tenant_mismatch_counter.labels(resource=error.resource).inc()
        return HTTPException(status_code=403, detail="Forbidden")

    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))

    if isinstance(error, StoreUnavailable):
        store_failures_counter.inc()
        logging.error(f"Record store error: {error}", extra={"request_id": request_id})
        return HTTPException(status_code=503, detail="Record store unavailable")

    if isinstance(error, AuthenticationError):
        return HTTPException(status_code=401, detail=str(error))

    if isinstance(error, IdentityProviderError):
        identity_failures_counter.inc()
        return HTTPException(status_code=503, detail="Identity service unavailable")

    logging.error(f"Unhandled domain error: {error}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
