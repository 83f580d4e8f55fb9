"""Interfaces the domain layer consumes from infrastructure"""

import uuid
from typing import ContextManager, List, Optional, Protocol

from payables_gateway.domain.models import (
    InstallmentDraft,
    InstallmentRecord,
    TransactionDraft,
    TransactionRecord,
)


class RecordStore(Protocol):
    """
    Tenant-scoped persistence for transactions and installments.

    Every call takes the caller's tenant_id explicitly; rows of other tenants
    are never returned or modified. Writes issued inside ``atomic()`` are
    applied together or not at all.
    """

    def atomic(self) -> ContextManager[None]: ...

    def insert_transaction(self, tenant_id: str, draft: TransactionDraft) -> uuid.UUID: ...

    def insert_installments(
        self, tenant_id: str, transaction_id: uuid.UUID, drafts: List[InstallmentDraft]
    ) -> List[uuid.UUID]: ...

    def update_installment_status(self, tenant_id: str, installment_id: uuid.UUID, status: str) -> None: ...

    def update_transaction_status(self, tenant_id: str, transaction_id: uuid.UUID, status: str) -> None: ...

    def delete_transaction_cascade(self, tenant_id: str, transaction_id: uuid.UUID) -> None: ...

    def query_installments(self, tenant_id: str, transaction_id: uuid.UUID) -> List[InstallmentRecord]: ...

    # Ownership lookups, used only to tell "missing" apart from "foreign"
    def installment_owner(self, installment_id: uuid.UUID) -> Optional[str]: ...

    def transaction_owner(self, transaction_id: uuid.UUID) -> Optional[str]: ...

    def get_installment(self, tenant_id: str, installment_id: uuid.UUID) -> Optional[InstallmentRecord]: ...

    def get_transaction(self, tenant_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRecord]: ...

    def lock_transaction(self, tenant_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRecord]:
        """Read the transaction and hold a row lock on it until the enclosing atomic() ends"""
        ...

    def list_transactions(
        self, tenant_id: str, limit: int | None = None, direction: str | None = None
    ) -> List[TransactionRecord]: ...

    def list_installments(self, tenant_id: str) -> List[InstallmentRecord]: ...
