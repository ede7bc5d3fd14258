"""Record builders and an in-memory record store shared by the test suites"""

from datetime import date
from typing import Dict, List, Optional

from finsight.domain.categories import matches_category
from finsight.domain.exceptions import DataUnavailable
from finsight.domain.models import (
    Budget,
    Frequency,
    Loan,
    LoanDirection,
    RecurringBill,
    SavingsGoal,
    Transaction,
    TransactionKind,
)

AS_OF = date(2024, 3, 20)
OWNER = "owner_1"
PARTNER = "owner_2"


def expense(txn_id: str, amount: float, category: str, day: date, description: str = "", owner: str = OWNER):
    return Transaction(txn_id, owner, TransactionKind.EXPENSE, amount, category, day, description)


def income(txn_id: str, amount: float, day: date, category: str = "Salary", owner: str = OWNER):
    return Transaction(txn_id, owner, TransactionKind.INCOME, amount, category, day, "Payroll")


def debt(
    loan_id: str,
    balance: float,
    rate: Optional[float] = None,
    installment: Optional[float] = None,
    due: Optional[date] = None,
    principal: Optional[float] = None,
    description: str = "",
):
    return Loan(
        id=loan_id,
        owner_id=OWNER,
        direction=LoanDirection.RECEIVED,
        principal=principal if principal is not None else balance,
        remaining_balance=balance,
        interest_rate_annual=rate,
        due_date=due,
        installment_amount=installment,
        installment_frequency=Frequency.MONTHLY if installment else None,
        description=description,
    )


def budget(budget_id: str, category: str, amount: float, spent: float):
    return Budget(budget_id, OWNER, category, amount, spent)


def goal(goal_id: str, target: float, current: float, name: str = "Savings goal", target_date: Optional[date] = None):
    return SavingsGoal(goal_id, OWNER, target, current, target_date, name)


def bill(bill_id: str, amount: float, due: date, name: str = "Bill", frequency: Frequency = Frequency.MONTHLY):
    return RecurringBill(bill_id, OWNER, amount, frequency, due, name)


class InMemoryRecordStore:
    """RecordStore over plain lists; counts calls and can be told to fail"""

    def __init__(
        self,
        transactions: Optional[List[Transaction]] = None,
        loans: Optional[List[Loan]] = None,
        budgets: Optional[List[Budget]] = None,
        goals: Optional[List[SavingsGoal]] = None,
        bills: Optional[List[RecurringBill]] = None,
        partners: Optional[Dict[str, str]] = None,
        fail: bool = False,
    ):
        self._transactions = list(transactions or [])
        self._loans = list(loans or [])
        self._budgets = list(budgets or [])
        self._goals = list(goals or [])
        self._bills = list(bills or [])
        self._partners = dict(partners or {})
        self.fail = fail
        self.calls: List[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise DataUnavailable("records offline")

    def transactions(self, owner_id, start=None, end=None, kind=None, category=None):
        self._record("transactions")
        return [
            t
            for t in sorted(self._transactions, key=lambda t: (t.occurred_at, t.id))
            if t.owner_id == owner_id
            and (start is None or t.occurred_at >= start)
            and (end is None or t.occurred_at <= end)
            and (kind is None or t.kind == kind)
            and (not category or matches_category(t.category, category))
        ]

    def loans(self, owner_id):
        self._record("loans")
        return [l for l in self._loans if l.owner_id == owner_id]

    def budgets(self, owner_id):
        self._record("budgets")
        return [b for b in self._budgets if b.owner_id == owner_id]

    def savings_goals(self, owner_id):
        self._record("savings_goals")
        return [g for g in self._goals if g.owner_id == owner_id]

    def recurring_bills(self, owner_id):
        self._record("recurring_bills")
        return [b for b in self._bills if b.owner_id == owner_id]

    def partner_of(self, owner_id):
        self._record("partner_of")
        return self._partners.get(owner_id)
