"""
Reconciliation service - orchestrates schedule validation and persistence.

All writes go through the record store inside ``atomic()`` so a transaction
and its installments are never observable half-written. Nothing derived
(overdue, roll-up) is cached here: every read recomputes from stored rows.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from payables_gateway.domain.exceptions import (
    AuthenticationError,
    InstallmentNotFound,
    InvalidScheduleInput,
    ScheduleSumMismatch,
    TenantMismatch,
    TransactionNotFound,
)
from payables_gateway.domain.installments import generate_from_input
from payables_gateway.domain.models import (
    InstallmentDraft,
    InstallmentRecord,
    InstallmentView,
    MarkPaidResult,
    ScheduleInput,
    TransactionDraft,
    TransactionRecord,
    TransactionView,
    DIRECTIONS,
    PAID,
    STORED_STATUSES,
)
from payables_gateway.domain.money import from_cents, sum_cents, sum_equals, to_cents
from payables_gateway.domain.ports import RecordStore
from payables_gateway.domain.status import (
    effective_status,
    roll_up,
    settlement_state,
    transaction_effective_status,
)

logger = logging.getLogger(__name__)

ChangeHook = Callable[[str, str, Dict[str, Any]], None]


def validate_transaction_draft(draft: TransactionDraft) -> None:
    """Reject drafts that can never be persisted"""
    if draft.direction not in DIRECTIONS:
        raise InvalidScheduleInput(f"Direction must be one of {', '.join(DIRECTIONS)}")
    if not draft.description or not draft.description.strip():
        raise InvalidScheduleInput("Description is required")
    if to_cents(draft.amount) <= 0:
        raise InvalidScheduleInput("Transaction amount must be greater than zero")
    if draft.status not in STORED_STATUSES:
        raise InvalidScheduleInput(f"Status must be one of {', '.join(STORED_STATUSES)}")


def validate_installment_drafts(drafts: List[InstallmentDraft]) -> None:
    """Structural checks on a schedule about to be committed"""
    if not drafts:
        raise InvalidScheduleInput("A schedule needs at least one installment")

    numbers = [d.installment_number for d in drafts]
    if numbers != list(range(1, len(drafts) + 1)):
        raise InvalidScheduleInput("Installments must be numbered 1..n without gaps")

    for d in drafts:
        if to_cents(d.value) < 0:
            raise InvalidScheduleInput(f"Installment {d.installment_number} has a negative value")
        if d.status not in STORED_STATUSES:
            raise InvalidScheduleInput(f"Installment {d.installment_number} has invalid status {d.status!r}")


class ReconciliationService:
    """Tenant-scoped write and read operations on transactions and installments"""

    def __init__(self, store: RecordStore, on_change: Optional[ChangeHook] = None):
        self.store = store
        self.on_change = on_change

    # Writes

    def create_transaction_with_schedule(
        self,
        tenant_id: str,
        draft: TransactionDraft,
        schedule_input: Optional[ScheduleInput] = None,
        installments: Optional[List[InstallmentDraft]] = None,
    ) -> uuid.UUID:
        """
        Persist a transaction together with its installment schedule.

        The schedule is generated from schedule_input unless an edited list of
        installments is supplied. Either way the values must add up to the
        transaction amount exactly.

        Raises:
            InvalidScheduleInput: Bad schedule parameters or malformed drafts
            ScheduleSumMismatch: Installment values differ from the amount
        """
        self._require_tenant(tenant_id)
        validate_transaction_draft(draft)

        if schedule_input is None and installments is None:
            raise InvalidScheduleInput("Either schedule parameters or installments are required")

        generated = generate_from_input(schedule_input) if schedule_input is not None else None
        drafts = installments if installments is not None else generated
        validate_installment_drafts(drafts)

        values = [d.value for d in drafts]
        if not sum_equals(values, draft.amount, epsilon_cents=0):
            raise ScheduleSumMismatch(from_cents(to_cents(draft.amount)), from_cents(sum_cents(values)))

        stored = replace(draft, status=roll_up([d.status for d in drafts], draft.status))

        with self.store.atomic():
            transaction_id = self.store.insert_transaction(tenant_id, stored)
            self.store.insert_installments(tenant_id, transaction_id, drafts)

        logger.info(
            "Transaction created with schedule",
            extra={
                "tenant_id": tenant_id,
                "transaction_id": str(transaction_id),
                "direction": draft.direction,
                "installments": len(drafts),
            },
        )
        self._notify(tenant_id, "transaction.created", {"transaction_id": str(transaction_id)})
        return transaction_id

    def create_simple_transaction(self, tenant_id: str, draft: TransactionDraft) -> uuid.UUID:
        """Persist a transaction without installments"""
        self._require_tenant(tenant_id)
        validate_transaction_draft(draft)

        with self.store.atomic():
            transaction_id = self.store.insert_transaction(tenant_id, draft)

        logger.info(
            "Transaction created",
            extra={"tenant_id": tenant_id, "transaction_id": str(transaction_id), "direction": draft.direction},
        )
        self._notify(tenant_id, "transaction.created", {"transaction_id": str(transaction_id)})
        return transaction_id

    def mark_installment_paid(self, installment_id: uuid.UUID, tenant_id: str) -> MarkPaidResult:
        """
        Mark an installment paid and re-derive its transaction's status.

        Idempotent: an installment that is already paid is left alone and the
        call succeeds. Payers of the same transaction are serialized on the
        parent row, and the roll-up is recomputed from the siblings read
        under that lock, so concurrent payers converge on the right status.

        Raises:
            InstallmentNotFound: No installment with this id
            TenantMismatch: Installment belongs to another tenant
        """
        self._require_tenant(tenant_id)
        self._authorize("installment", installment_id, self.store.installment_owner(installment_id), tenant_id)

        with self.store.atomic():
            installment = self.store.get_installment(tenant_id, installment_id)
            if installment is None:
                raise InstallmentNotFound(f"Installment {installment_id} not found")

            transaction = self.store.lock_transaction(tenant_id, installment.transaction_id)
            if transaction is None:
                raise TransactionNotFound(f"Transaction {installment.transaction_id} not found")

            # Another payer may have committed while we waited for the lock
            installment = self.store.get_installment(tenant_id, installment_id)
            if installment is None:
                raise InstallmentNotFound(f"Installment {installment_id} not found")

            already_paid = installment.status == PAID
            if not already_paid:
                self.store.update_installment_status(tenant_id, installment_id, PAID)

            siblings = self.store.query_installments(tenant_id, installment.transaction_id)
            transaction_status = roll_up([s.status for s in siblings], transaction.status)
            if transaction_status != transaction.status:
                self.store.update_transaction_status(tenant_id, transaction.id, transaction_status)

        logger.info(
            "Installment marked paid",
            extra={
                "tenant_id": tenant_id,
                "installment_id": str(installment_id),
                "transaction_id": str(installment.transaction_id),
                "already_paid": already_paid,
                "transaction_status": transaction_status,
            },
        )
        if not already_paid:
            self._notify(
                tenant_id,
                "installment.paid",
                {"installment_id": str(installment_id), "transaction_id": str(installment.transaction_id)},
            )

        return MarkPaidResult(
            installment_id=installment_id,
            transaction_id=installment.transaction_id,
            already_paid=already_paid,
            transaction_status=transaction_status,
        )

    def delete_transaction(self, transaction_id: uuid.UUID, tenant_id: str) -> None:
        """Delete a transaction and all of its installments as one unit"""
        self._require_tenant(tenant_id)
        self._authorize("transaction", transaction_id, self.store.transaction_owner(transaction_id), tenant_id)

        with self.store.atomic():
            if self.store.lock_transaction(tenant_id, transaction_id) is None:
                raise TransactionNotFound(f"Transaction {transaction_id} not found")
            self.store.delete_transaction_cascade(tenant_id, transaction_id)

        logger.info("Transaction deleted", extra={"tenant_id": tenant_id, "transaction_id": str(transaction_id)})
        self._notify(tenant_id, "transaction.deleted", {"transaction_id": str(transaction_id)})

    # Reads

    def get_transaction(self, transaction_id: uuid.UUID, tenant_id: str, today: date) -> TransactionView:
        self._require_tenant(tenant_id)
        self._authorize("transaction", transaction_id, self.store.transaction_owner(transaction_id), tenant_id)

        transaction = self.store.get_transaction(tenant_id, transaction_id)
        if transaction is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")

        installments = self.store.query_installments(tenant_id, transaction_id)
        return _transaction_view(transaction, installments, today)

    def list_transactions(
        self,
        tenant_id: str,
        today: date,
        limit: int | None = None,
        direction: str | None = None,
        status: str | None = None,
        search: str | None = None,
        created_from: date | None = None,
        created_to: date | None = None,
    ) -> List[TransactionView]:
        """
        Tenant's transactions, newest first, with derived statuses.

        direction is filtered by the store; effective status, description
        search and the inclusive creation-date range are applied here, before
        the limit.
        """
        self._require_tenant(tenant_id)
        filtered_here = any(f is not None for f in (status, search, created_from, created_to))
        transactions = self.store.list_transactions(
            tenant_id,
            limit=None if filtered_here else limit,
            direction=direction,
        )

        if search:
            needle = search.strip().lower()
            transactions = [t for t in transactions if needle in (t.description or "").lower()]
        if created_from is not None:
            transactions = [t for t in transactions if t.created_at.date() >= created_from]
        if created_to is not None:
            transactions = [t for t in transactions if t.created_at.date() <= created_to]

        by_transaction: Dict[uuid.UUID, List[InstallmentRecord]] = defaultdict(list)
        for installment in self.store.list_installments(tenant_id):
            by_transaction[installment.transaction_id].append(installment)

        views = [_transaction_view(t, by_transaction.get(t.id, []), today) for t in transactions]
        if status is not None:
            views = [v for v in views if v.effective_status == status]
        return views[:limit] if limit is not None else views

    def list_installments(
        self,
        tenant_id: str,
        today: date,
        status: str | None = None,
        search: str | None = None,
    ) -> List[InstallmentView]:
        """
        Installments of the tenant ordered by due date.

        status filters on effective status; search matches the parent
        transaction's description or the installment number.
        """
        self._require_tenant(tenant_id)
        views = [
            InstallmentView(record=i, effective_status=effective_status(i.status, i.due_date, today))
            for i in self.store.list_installments(tenant_id)
        ]
        if status is not None:
            views = [v for v in views if v.effective_status == status]
        if search:
            needle = search.strip().lower()
            descriptions = {t.id: (t.description or "").lower() for t in self.store.list_transactions(tenant_id)}
            views = [
                v
                for v in views
                if needle in descriptions.get(v.record.transaction_id, "") or needle == str(v.record.installment_number)
            ]
        return sorted(views, key=lambda v: (v.record.due_date, v.record.installment_number))

    # Helpers

    @staticmethod
    def _require_tenant(tenant_id: str) -> None:
        if not tenant_id:
            raise AuthenticationError("Caller has no tenant")

    @staticmethod
    def _authorize(resource: str, resource_id: uuid.UUID, owner: Optional[str], tenant_id: str) -> None:
        if owner is None:
            if resource == "installment":
                raise InstallmentNotFound(f"Installment {resource_id} not found")
            raise TransactionNotFound(f"Transaction {resource_id} not found")

        if owner != tenant_id:
            logger.warning(
                "Cross-tenant access refused",
                extra={
                    "security_event": "tenant_mismatch",
                    "tenant_id": tenant_id,
                    "resource": resource,
                    "resource_id": str(resource_id),
                },
            )
            raise TenantMismatch(resource, resource_id)

    def _notify(self, tenant_id: str, event: str, payload: Dict[str, Any]) -> None:
        if self.on_change is not None:
            self.on_change(tenant_id, event, payload)


def _transaction_view(
    transaction: TransactionRecord,
    installments: List[InstallmentRecord],
    today: date,
) -> TransactionView:
    ordered = sorted(installments, key=lambda i: i.installment_number)
    return TransactionView(
        record=transaction,
        effective_status=transaction_effective_status(transaction, ordered, today),
        settlement_state=settlement_state(i.status for i in ordered),
        installments=[
            InstallmentView(record=i, effective_status=effective_status(i.status, i.due_date, today))
            for i in ordered
        ],
    )
