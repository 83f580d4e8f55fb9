"""Installment schedule generation for payables and receivables"""

from datetime import date, timedelta
from decimal import Decimal
from typing import List

from payables_gateway.config import settings
from payables_gateway.domain.exceptions import InvalidScheduleInput
from payables_gateway.domain.models import InstallmentDraft, ScheduleInput, PENDING
from payables_gateway.domain.money import apportion, to_cents


def generate_schedule(
    total: Decimal,
    num_installments: int,
    first_due_date: date,
    interval_days: int = 30,
    emission_date: date | None = None,
) -> List[InstallmentDraft]:
    """
    Split a total into dated installments.

    Requirements:
    - Installments numbered 1..n
    - Due dates first_due_date + (i-1) * interval_days
    - Last installment absorbs rounding remainder so the values sum to total exactly

    Args:
        total: Transaction amount to split (> 0)
        num_installments: Number of payments (1..max_installments)
        first_due_date: Due date of installment #1
        interval_days: Days between consecutive due dates (>= 1)
        emission_date: Issue date stamped on every installment (default: today)

    Returns:
        List of pending InstallmentDraft objects

    Raises:
        InvalidScheduleInput: On a non-positive total, count or interval

    Example:
        100.00 in 3 → [33.33, 33.33, 33.34]
    """
    if isinstance(num_installments, bool) or not isinstance(num_installments, int) or num_installments < 1:
        raise InvalidScheduleInput("Installment count must be an integer of at least 1")

    if num_installments > settings.max_installments:
        raise InvalidScheduleInput(f"Installment count cannot exceed {settings.max_installments}")

    if isinstance(interval_days, bool) or not isinstance(interval_days, int) or interval_days < 1:
        raise InvalidScheduleInput("Interval must be an integer of at least 1 day")

    if to_cents(total) <= 0:
        raise InvalidScheduleInput("Total amount must be greater than zero")

    if emission_date is None:
        emission_date = date.today()

    values = apportion(total, num_installments)

    return [
        InstallmentDraft(
            installment_number=i + 1,
            due_date=first_due_date + timedelta(days=i * interval_days),
            value=value,
            emission_date=emission_date,
            status=PENDING,
        )
        for i, value in enumerate(values)
    ]


def generate_from_input(schedule: ScheduleInput) -> List[InstallmentDraft]:
    """Generate a schedule from a ScheduleInput"""
    return generate_schedule(
        total=schedule.total,
        num_installments=schedule.num_installments,
        first_due_date=schedule.first_due_date,
        interval_days=schedule.interval_days,
        emission_date=schedule.emission_date,
    )
