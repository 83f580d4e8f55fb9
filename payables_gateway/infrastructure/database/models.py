"""SQLAlchemy ORM models for transactions and their installments"""

import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class TransactionRow(Base):
    """Payable or receivable obligation owned by one tenant"""

    __tablename__ = "transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False, index=True)
    direction = Column(Text, nullable=False)  # payable | receivable
    description = Column(Text, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    party_id = Column(Text, nullable=True)
    payment_method = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    category = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")  # pending | paid
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "InstallmentRow",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="InstallmentRow.installment_number",
    )


class InstallmentRow(Base):
    """Scheduled payment belonging to one transaction"""

    __tablename__ = "installments"
    __table_args__ = (UniqueConstraint("transaction_id", "installment_number", name="uq_installment_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Text, nullable=False, index=True)  # Copied from the parent transaction
    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    emission_date = Column(Date, nullable=False)
    value = Column(Numeric(14, 2), nullable=False)
    status = Column(Text, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    transaction = relationship("TransactionRow", back_populates="installments")
