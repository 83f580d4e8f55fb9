"""Data access layer for transactions and installments"""

import functools
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from payables_gateway.domain.exceptions import InstallmentNotFound, StoreUnavailable, TransactionNotFound
from payables_gateway.domain.models import (
    InstallmentDraft,
    InstallmentRecord,
    TransactionDraft,
    TransactionRecord,
)
from payables_gateway.infrastructure.database.models import InstallmentRow, TransactionRow


def _is_unavailable(error: DBAPIError) -> bool:
    return isinstance(error, OperationalError) or error.connection_invalidated


def translate_store_errors(method):
    """Surface connection-level database failures as StoreUnavailable"""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except DBAPIError as e:
            if _is_unavailable(e):
                raise StoreUnavailable(f"Record store unavailable: {e.orig}") from e
            raise

    return wrapper


def _to_transaction(row: TransactionRow) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        direction=row.direction,
        description=row.description,
        amount=row.amount,
        status=row.status,
        created_at=row.created_at,
        party_id=row.party_id,
        payment_method=row.payment_method,
        due_date=row.due_date,
        category=row.category,
    )


def _to_installment(row: InstallmentRow) -> InstallmentRecord:
    return InstallmentRecord(
        id=row.id,
        transaction_id=row.transaction_id,
        tenant_id=row.tenant_id,
        installment_number=row.installment_number,
        due_date=row.due_date,
        emission_date=row.emission_date,
        value=row.value,
        status=row.status,
        created_at=row.created_at,
    )


class SqlRecordStore:
    """
    Tenant-scoped record store backed by a SQLAlchemy session.

    Every query filters on tenant_id except the two ownership lookups, which
    return only the owning tenant id.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Commit everything written inside the block, or nothing"""
        try:
            yield
            self.db.commit()
        except DBAPIError as e:
            self.db.rollback()
            if _is_unavailable(e):
                raise StoreUnavailable(f"Record store unavailable: {e.orig}") from e
            raise
        except Exception:
            self.db.rollback()
            raise

    # Writes

    def insert_transaction(self, tenant_id: str, draft: TransactionDraft) -> uuid.UUID:
        row = TransactionRow(
            tenant_id=tenant_id,
            direction=draft.direction,
            description=draft.description,
            amount=draft.amount,
            party_id=draft.party_id,
            payment_method=draft.payment_method,
            due_date=draft.due_date,
            category=draft.category,
            status=draft.status,
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row.id

    def insert_installments(
        self,
        tenant_id: str,
        transaction_id: uuid.UUID,
        drafts: List[InstallmentDraft],
    ) -> List[uuid.UUID]:
        rows = [
            InstallmentRow(
                transaction_id=transaction_id,
                tenant_id=tenant_id,
                installment_number=d.installment_number,
                due_date=d.due_date,
                emission_date=d.emission_date,
                value=d.value,
                status=d.status,
            )
            for d in drafts
        ]
        self.db.add_all(rows)
        self.db.flush()
        return [row.id for row in rows]

    def update_installment_status(self, tenant_id: str, installment_id: uuid.UUID, status: str) -> None:
        row = self._installment_row(tenant_id, installment_id)
        if row is None:
            raise InstallmentNotFound(f"Installment {installment_id} not found")
        row.status = status
        self.db.flush()

    def update_transaction_status(self, tenant_id: str, transaction_id: uuid.UUID, status: str) -> None:
        row = self._transaction_row(tenant_id, transaction_id)
        if row is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        row.status = status
        self.db.flush()

    def delete_transaction_cascade(self, tenant_id: str, transaction_id: uuid.UUID) -> None:
        """Delete installments first, then the transaction; the caller wraps both in atomic()"""
        self.db.query(InstallmentRow).filter(
            InstallmentRow.transaction_id == transaction_id,
            InstallmentRow.tenant_id == tenant_id,
        ).delete(synchronize_session=False)

        deleted = self.db.query(TransactionRow).filter(
            TransactionRow.id == transaction_id,
            TransactionRow.tenant_id == tenant_id,
        ).delete(synchronize_session=False)

        if deleted == 0:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        self.db.flush()

    # Reads

    @translate_store_errors
    def query_installments(self, tenant_id: str, transaction_id: uuid.UUID) -> List[InstallmentRecord]:
        rows = (
            self.db.query(InstallmentRow)
            .filter(InstallmentRow.transaction_id == transaction_id, InstallmentRow.tenant_id == tenant_id)
            .order_by(InstallmentRow.installment_number)
            .populate_existing()
            .all()
        )
        return [_to_installment(r) for r in rows]

    @translate_store_errors
    def installment_owner(self, installment_id: uuid.UUID) -> Optional[str]:
        return self.db.query(InstallmentRow.tenant_id).filter(InstallmentRow.id == installment_id).scalar()

    @translate_store_errors
    def transaction_owner(self, transaction_id: uuid.UUID) -> Optional[str]:
        return self.db.query(TransactionRow.tenant_id).filter(TransactionRow.id == transaction_id).scalar()

    @translate_store_errors
    def get_installment(self, tenant_id: str, installment_id: uuid.UUID) -> Optional[InstallmentRecord]:
        row = self._installment_row(tenant_id, installment_id)
        return _to_installment(row) if row is not None else None

    @translate_store_errors
    def get_transaction(self, tenant_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRecord]:
        row = self._transaction_row(tenant_id, transaction_id)
        return _to_transaction(row) if row is not None else None

    @translate_store_errors
    def lock_transaction(self, tenant_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRecord]:
        """SELECT ... FOR UPDATE on the transaction; the lock is released when atomic() ends"""
        row = (
            self.db.query(TransactionRow)
            .filter(TransactionRow.id == transaction_id, TransactionRow.tenant_id == tenant_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return _to_transaction(row) if row is not None else None

    @translate_store_errors
    def list_transactions(
        self,
        tenant_id: str,
        limit: int | None = None,
        direction: str | None = None,
    ) -> List[TransactionRecord]:
        """Fetch the tenant's transactions, newest first"""
        query = self.db.query(TransactionRow).filter(TransactionRow.tenant_id == tenant_id)
        if direction is not None:
            query = query.filter(TransactionRow.direction == direction)
        query = query.order_by(TransactionRow.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return [_to_transaction(r) for r in query.all()]

    @translate_store_errors
    def list_installments(self, tenant_id: str) -> List[InstallmentRecord]:
        rows = (
            self.db.query(InstallmentRow)
            .filter(InstallmentRow.tenant_id == tenant_id)
            .order_by(InstallmentRow.due_date, InstallmentRow.installment_number)
            .all()
        )
        return [_to_installment(r) for r in rows]

    def _installment_row(self, tenant_id: str, installment_id: uuid.UUID) -> Optional[InstallmentRow]:
        return (
            self.db.query(InstallmentRow)
            .filter(InstallmentRow.id == installment_id, InstallmentRow.tenant_id == tenant_id)
            .populate_existing()
            .first()
        )

    def _transaction_row(self, tenant_id: str, transaction_id: uuid.UUID) -> Optional[TransactionRow]:
        return (
            self.db.query(TransactionRow)
            .filter(TransactionRow.id == transaction_id, TransactionRow.tenant_id == tenant_id)
            .first()
        )
