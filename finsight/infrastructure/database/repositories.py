"""Data access layer for financial records"""

import functools
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from finsight.domain.categories import matches_category
from finsight.domain.exceptions import DataUnavailable, InvalidRecordError
from finsight.domain.models import (
    Budget,
    BudgetPeriod,
    Frequency,
    Loan,
    LoanDirection,
    RecurringBill,
    SavingsGoal,
    Transaction,
    TransactionKind,
)
from finsight.infrastructure.database.models import (
    BudgetRecord,
    LoanRecord,
    Partnership,
    RecurringBillRecord,
    SavingsGoalRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


def _store_errors(method):
    """Surface database and mapping failures as DataUnavailable"""

    @functools.wraps(method)
    def wrapper(self, owner_id, *args, **kwargs):
        try:
            return method(self, owner_id, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.warning("Record query failed", extra={"owner_id": owner_id, "operation": method.__name__})
            raise DataUnavailable(f"Database error reading {method.__name__}") from e
        except (InvalidRecordError, ValueError) as e:
            raise DataUnavailable(f"Invalid {method.__name__} record: {e}") from e

    return wrapper


class SqlRecordStore:
    """Read-only record store backed by the SQL tables"""

    def __init__(self, db: Session):
        self.db = db

    @_store_errors
    def transactions(
        self,
        owner_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        kind: Optional[TransactionKind] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        """Owner's transactions in [start, end], oldest first"""
        query = self.db.query(TransactionRecord).filter(TransactionRecord.owner_id == owner_id)
        if start is not None:
            query = query.filter(TransactionRecord.occurred_at >= start)
        if end is not None:
            query = query.filter(TransactionRecord.occurred_at <= end)
        if kind is not None:
            query = query.filter(TransactionRecord.kind == kind.value)

        rows = query.order_by(TransactionRecord.occurred_at, TransactionRecord.id).all()
        records = [
            Transaction(
                id=row.id,
                owner_id=row.owner_id,
                kind=TransactionKind(row.kind),
                amount=float(row.amount),
                category=row.category or "",
                occurred_at=row.occurred_at,
                description=row.description or "",
            )
            for row in rows
        ]
        # Category aliases are resolved in Python, not SQL
        if category:
            records = [t for t in records if matches_category(t.category, category)]
        return records

    @_store_errors
    def loans(self, owner_id: str) -> List[Loan]:
        rows = self.db.query(LoanRecord).filter(LoanRecord.owner_id == owner_id).order_by(LoanRecord.id).all()
        return [
            Loan(
                id=row.id,
                owner_id=row.owner_id,
                direction=LoanDirection(row.direction),
                principal=float(row.principal),
                remaining_balance=float(row.remaining_balance),
                interest_rate_annual=row.interest_rate_annual,
                due_date=row.due_date,
                installment_amount=float(row.installment_amount) if row.installment_amount is not None else None,
                installment_frequency=Frequency(row.installment_frequency) if row.installment_frequency else None,
                description=row.description or "",
            )
            for row in rows
        ]

    @_store_errors
    def budgets(self, owner_id: str) -> List[Budget]:
        rows = (
            self.db.query(BudgetRecord).filter(BudgetRecord.owner_id == owner_id).order_by(BudgetRecord.id).all()
        )
        return [
            Budget(
                id=row.id,
                owner_id=row.owner_id,
                category=row.category,
                period_amount=float(row.period_amount),
                spent_amount=float(row.spent_amount or 0),
                period=BudgetPeriod(row.period or "monthly"),
            )
            for row in rows
        ]

    @_store_errors
    def savings_goals(self, owner_id: str) -> List[SavingsGoal]:
        rows = (
            self.db.query(SavingsGoalRecord)
            .filter(SavingsGoalRecord.owner_id == owner_id)
            .order_by(SavingsGoalRecord.id)
            .all()
        )
        return [
            SavingsGoal(
                id=row.id,
                owner_id=row.owner_id,
                target_amount=float(row.target_amount),
                current_amount=float(row.current_amount or 0),
                target_date=row.target_date,
                name=row.name or "Savings goal",
            )
            for row in rows
        ]

    @_store_errors
    def recurring_bills(self, owner_id: str) -> List[RecurringBill]:
        rows = (
            self.db.query(RecurringBillRecord)
            .filter(RecurringBillRecord.owner_id == owner_id)
            .order_by(RecurringBillRecord.next_due_date, RecurringBillRecord.id)
            .all()
        )
        return [
            RecurringBill(
                id=row.id,
                owner_id=row.owner_id,
                amount=float(row.amount),
                frequency=Frequency(row.frequency or "monthly"),
                next_due_date=row.next_due_date,
                name=row.name or "Bill",
            )
            for row in rows
        ]

    @_store_errors
    def partner_of(self, owner_id: str) -> Optional[str]:
        """Linked partner, whichever side of the pair the owner was stored on"""
        link = (
            self.db.query(Partnership)
            .filter(or_(Partnership.owner_id == owner_id, Partnership.partner_id == owner_id))
            .order_by(Partnership.created_at)
            .first()
        )
        if link is None:
            return None
        return link.partner_id if link.owner_id == owner_id else link.owner_id
