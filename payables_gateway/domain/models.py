"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

# Transaction direction
PAYABLE = "payable"
RECEIVABLE = "receivable"
DIRECTIONS = (PAYABLE, RECEIVABLE)

# Stored statuses; OVERDUE is derived at read time and never persisted
PENDING = "pending"
PAID = "paid"
OVERDUE = "overdue"
STORED_STATUSES = (PENDING, PAID)
EFFECTIVE_STATUSES = (PENDING, PAID, OVERDUE)


@dataclass
class TransactionDraft:
    """Transaction as submitted by the caller, before persistence"""

    direction: str  # "payable" or "receivable"
    description: str
    amount: Decimal
    party_id: Optional[str] = None
    payment_method: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    status: str = PENDING


@dataclass
class ScheduleInput:
    """Parameters for splitting a total into dated installments"""

    total: Decimal
    num_installments: int
    first_due_date: date
    interval_days: int = 30
    emission_date: Optional[date] = None


@dataclass
class InstallmentDraft:
    """Installment that has not been committed yet"""

    installment_number: int
    due_date: date
    value: Decimal
    emission_date: date
    status: str = PENDING


@dataclass
class TransactionRecord:
    """Persisted transaction"""

    id: uuid.UUID
    tenant_id: str
    direction: str
    description: str
    amount: Decimal
    status: str
    created_at: datetime
    party_id: Optional[str] = None
    payment_method: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None


@dataclass
class InstallmentRecord:
    """Persisted installment"""

    id: uuid.UUID
    transaction_id: uuid.UUID
    tenant_id: str
    installment_number: int
    due_date: date
    emission_date: date
    value: Decimal
    status: str
    created_at: Optional[datetime] = None


@dataclass
class Principal:
    """Caller identity resolved by the identity provider"""

    user_id: str
    tenant_id: str
    role: str


@dataclass
class SumCheck:
    """Result of comparing a draft schedule against its transaction amount"""

    total: Decimal
    scheduled: Decimal
    drift: Decimal  # scheduled - total
    within_tolerance: bool
    exact: bool


@dataclass
class MarkPaidResult:
    """Outcome of marking an installment as paid"""

    installment_id: uuid.UUID
    transaction_id: uuid.UUID
    already_paid: bool
    transaction_status: str


@dataclass
class InstallmentView:
    """Installment with its effective status applied"""

    record: InstallmentRecord
    effective_status: str


@dataclass
class TransactionView:
    """Transaction with derived status and its installments"""

    record: TransactionRecord
    effective_status: str
    settlement_state: str
    installments: List[InstallmentView] = field(default_factory=list)


@dataclass
class KPISummary:
    """Headline dashboard figures"""

    month_income: Decimal
    month_expenses: Decimal
    balance: Decimal
    open_receivable: Decimal
    open_payable: Decimal
    overdue_installments: int
    overdue_transactions: int


@dataclass
class AgingBucket:
    """Unpaid amounts grouped by how long they are past due"""

    label: str
    receivable: Decimal
    payable: Decimal


@dataclass
class StatusBucket:
    """Installment count and value for one effective status"""

    status: str
    count: int
    value: Decimal


@dataclass
class TimelinePoint:
    """Installment status counts for one due month"""

    month: str  # YYYY-MM
    pending: int
    paid: int
    overdue: int


@dataclass
class CategoryTotal:
    """Payable total for one expense category"""

    category: str
    amount: Decimal


@dataclass
class CashFlowPoint:
    """Receivable vs payable for one month"""

    month: str  # YYYY-MM
    receivable: Decimal
    payable: Decimal
    balance: Decimal
