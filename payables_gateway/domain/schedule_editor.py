"""
Editing of draft installment schedules before commit.

Every operation returns a new list and leaves its input untouched, so a caller
can cancel an edit by discarding the result. Values are never rebalanced: sum
drift is reported through check_sum and only blocks the final commit.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import List

from payables_gateway.domain.exceptions import CannotRemoveLastInstallment, InvalidScheduleInput
from payables_gateway.domain.models import InstallmentDraft, SumCheck, PENDING
from payables_gateway.domain.money import from_cents, sum_cents, to_cents


def _check_index(drafts: List[InstallmentDraft], index: int) -> None:
    if index < 0 or index >= len(drafts):
        raise InvalidScheduleInput(f"Installment index {index} out of range (0..{len(drafts) - 1})")


def set_value(drafts: List[InstallmentDraft], index: int, value: Decimal) -> List[InstallmentDraft]:
    """Replace one installment's value without touching the others"""
    _check_index(drafts, index)
    if to_cents(value) < 0:
        raise InvalidScheduleInput("Installment value cannot be negative")

    edited = list(drafts)
    edited[index] = replace(drafts[index], value=from_cents(to_cents(value)))
    return edited


def set_due_date(drafts: List[InstallmentDraft], index: int, due_date: date) -> List[InstallmentDraft]:
    """Replace one installment's due date; no ordering against siblings is enforced"""
    _check_index(drafts, index)

    edited = list(drafts)
    edited[index] = replace(drafts[index], due_date=due_date)
    return edited


def insert(drafts: List[InstallmentDraft], today: date | None = None) -> List[InstallmentDraft]:
    """Append an empty pending installment due today"""
    today = today or date.today()
    return list(drafts) + [
        InstallmentDraft(
            installment_number=len(drafts) + 1,
            due_date=today,
            value=from_cents(0),
            emission_date=today,
            status=PENDING,
        )
    ]


def renumber(drafts: List[InstallmentDraft]) -> List[InstallmentDraft]:
    """Number installments 1..n in their current order"""
    return [replace(d, installment_number=i + 1) for i, d in enumerate(drafts)]


def remove(drafts: List[InstallmentDraft], index: int) -> List[InstallmentDraft]:
    """
    Delete one installment and renumber the rest.

    Due dates and values of the remaining installments are kept as they are.

    Raises:
        CannotRemoveLastInstallment: When the schedule has a single installment
    """
    if len(drafts) <= 1:
        raise CannotRemoveLastInstallment("A schedule must keep at least one installment")
    _check_index(drafts, index)

    return renumber(drafts[:index] + drafts[index + 1:])


def check_sum(drafts: List[InstallmentDraft], total: Decimal, epsilon_cents: int = 0) -> SumCheck:
    """Compare the scheduled values against the transaction total"""
    scheduled = sum_cents(d.value for d in drafts)
    expected = to_cents(total)
    drift = scheduled - expected

    return SumCheck(
        total=from_cents(expected),
        scheduled=from_cents(scheduled),
        drift=from_cents(drift),
        within_tolerance=abs(drift) <= epsilon_cents,
        exact=drift == 0,
    )
