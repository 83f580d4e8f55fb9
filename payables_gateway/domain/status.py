"""
Derived payment status.

Overdue is never stored: it is recomputed from (stored status, due date, today)
on every read. Callers always pass ``today`` explicitly.
"""

from datetime import date
from typing import Iterable, List

from payables_gateway.domain.models import (
    InstallmentRecord,
    TransactionRecord,
    OVERDUE,
    PAID,
    PENDING,
)

# Settlement states of a transaction
CREATED = "created"
SCHEDULED = "scheduled"
PARTIALLY_SETTLED = "partially_settled"
SETTLED = "settled"


def effective_status(stored_status: str, due_date: date | None, today: date) -> str:
    """paid if stored as paid, overdue if due strictly before today, else pending"""
    if stored_status == PAID:
        return PAID
    if due_date is not None and due_date < today:
        return OVERDUE
    return PENDING


def roll_up(installment_statuses: Iterable[str], current_status: str) -> str:
    """
    Derive a transaction's stored status from its installments.

    paid only when every installment is paid; any unpaid installment keeps the
    transaction pending. Without installments the current status is kept.
    """
    statuses = list(installment_statuses)
    if not statuses:
        return current_status
    return PAID if all(s == PAID for s in statuses) else PENDING


def settlement_state(installment_statuses: Iterable[str]) -> str:
    statuses = list(installment_statuses)
    if not statuses:
        return CREATED

    paid = sum(1 for s in statuses if s == PAID)
    if paid == 0:
        return SCHEDULED
    if paid == len(statuses):
        return SETTLED
    return PARTIALLY_SETTLED


def transaction_effective_status(
    transaction: TransactionRecord,
    installments: List[InstallmentRecord],
    today: date,
) -> str:
    """
    Effective status of a whole transaction.

    Scheduled transactions are overdue when any installment is overdue;
    unscheduled ones use their own due date.
    """
    if not installments:
        return effective_status(transaction.status, transaction.due_date, today)

    statuses = [effective_status(i.status, i.due_date, today) for i in installments]
    if all(s == PAID for s in statuses):
        return PAID
    if any(s == OVERDUE for s in statuses):
        return OVERDUE
    return PENDING
