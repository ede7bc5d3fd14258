"""SQLAlchemy ORM models for the financial records the engine reads"""

from sqlalchemy import Column, Date, DateTime, Float, Index, Numeric, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# Amounts are stored as exact decimals and read back as floats (dollars)
Money = Numeric(12, 2, asdecimal=False)


class TransactionRecord(Base):
    """Single income or expense entry"""

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_owner_date", "owner_id", "occurred_at"),)

    id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)  # expense | income
    amount = Column(Money, nullable=False)
    category = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    occurred_at = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LoanRecord(Base):
    """Money borrowed (received) or lent out (given)"""

    __tablename__ = "loans"

    id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    direction = Column(Text, nullable=False)  # given | received
    principal = Column(Money, nullable=False)
    remaining_balance = Column(Money, nullable=False)
    interest_rate_annual = Column(Float, nullable=True)  # percent, e.g. 6.5
    due_date = Column(Date, nullable=True)
    installment_amount = Column(Money, nullable=True)
    installment_frequency = Column(Text, nullable=True)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class BudgetRecord(Base):
    __tablename__ = "budgets"

    id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    category = Column(Text, nullable=False)
    period = Column(Text, nullable=False, default="monthly")
    period_amount = Column(Money, nullable=False)
    spent_amount = Column(Money, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SavingsGoalRecord(Base):
    __tablename__ = "savings_goals"

    id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False, default="Savings goal")
    target_amount = Column(Money, nullable=False)
    current_amount = Column(Money, nullable=False, default=0)
    target_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class RecurringBillRecord(Base):
    __tablename__ = "recurring_bills"

    id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False, default="Bill")
    amount = Column(Money, nullable=False)
    frequency = Column(Text, nullable=False, default="monthly")
    next_due_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Partnership(Base):
    """Link between two owners who share a household; stored once per pair"""

    __tablename__ = "partnerships"

    owner_id = Column(Text, primary_key=True)
    partner_id = Column(Text, primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
