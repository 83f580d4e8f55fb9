"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import List, Literal, Optional


class ScheduleRequest(BaseModel):
    """Installment parameters; the total is the transaction amount"""

    num_installments: int = Field(..., description="Number of installments")
    first_due_date: date
    interval_days: int = Field(30, description="Days between due dates")
    emission_date: Optional[date] = None


class SchedulePreviewRequest(ScheduleRequest):
    """Request body for POST /v1/schedules/preview"""

    total: Decimal = Field(..., gt=0, decimal_places=2)


class InstallmentDraftSchema(BaseModel):
    """Installment of a schedule that has not been committed"""

    installment_number: int
    due_date: date
    value: Decimal = Field(..., decimal_places=2)
    emission_date: date
    status: Literal["pending", "paid"] = "pending"


class SumCheckSchema(BaseModel):
    total: Decimal
    scheduled: Decimal
    drift: Decimal
    within_tolerance: bool
    exact: bool


class ScheduleResponse(BaseModel):
    """Draft schedule plus how far its sum is from the total"""

    installments: List[InstallmentDraftSchema]
    sum_check: SumCheckSchema


class ScheduleEditRequest(BaseModel):
    """Request body for POST /v1/schedules/edit"""

    total: Decimal = Field(..., gt=0, decimal_places=2)
    installments: List[InstallmentDraftSchema] = Field(..., min_length=1)
    operation: Literal["set_value", "set_due_date", "insert", "remove"]
    index: Optional[int] = Field(None, description="0-based position of the installment to change")
    value: Optional[Decimal] = Field(None, decimal_places=2)
    due_date: Optional[date] = None


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    direction: Literal["payable", "receivable"]
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    party_id: Optional[str] = None
    payment_method: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    schedule: Optional[ScheduleRequest] = None
    installments: Optional[List[InstallmentDraftSchema]] = Field(
        None, description="Edited schedule; replaces the generated one"
    )


class TransactionCreatedResponse(BaseModel):
    transaction_id: str
    installment_count: int


class InstallmentSchema(BaseModel):
    """Persisted installment with its derived status"""

    id: str
    transaction_id: str
    installment_number: int
    due_date: date
    emission_date: date
    value: Decimal
    status: str
    effective_status: str


class TransactionSchema(BaseModel):
    """Persisted transaction with derived status"""

    id: str
    direction: str
    description: str
    amount: Decimal
    party_id: Optional[str] = None
    payment_method: Optional[str] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    status: str
    effective_status: str
    settlement_state: str
    created_at: str
    installments: List[InstallmentSchema]


class TransactionListResponse(BaseModel):
    tenant_id: str
    transactions: List[TransactionSchema]


class InstallmentListResponse(BaseModel):
    tenant_id: str
    installments: List[InstallmentSchema]


class MarkPaidResponse(BaseModel):
    """Response for POST /v1/installments/{installment_id}/pay"""

    installment_id: str
    transaction_id: str
    already_paid: bool
    transaction_status: str


class KPIResponse(BaseModel):
    month_income: Decimal
    month_expenses: Decimal
    balance: Decimal
    open_receivable: Decimal
    open_payable: Decimal
    overdue_installments: int
    overdue_transactions: int


class AgingBucketSchema(BaseModel):
    label: str
    receivable: Decimal
    payable: Decimal


class StatusBucketSchema(BaseModel):
    status: str
    count: int
    value: Decimal


class TimelinePointSchema(BaseModel):
    month: str
    pending: int
    paid: int
    overdue: int


class CategoryTotalSchema(BaseModel):
    category: str
    amount: Decimal


class CashFlowPointSchema(BaseModel):
    month: str
    receivable: Decimal
    payable: Decimal
    balance: Decimal
