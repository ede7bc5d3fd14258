"""Data aggregator - fetches and pre-aggregates the slice of records an intent needs.

Only filtering, summing and grouping happens here; every financial rule lives
in the calculators.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from finsight.domain.categories import matches_category
from finsight.domain.exceptions import QueryCancelled
from finsight.domain.models import (
    AggregatedView,
    Budget,
    CategoryTotal,
    DateRange,
    Intent,
    Loan,
    MonthBucket,
    RecurringBill,
    SavingsGoal,
    Transaction,
    TransactionKind,
)
from finsight.utils.date_utils import add_months, month_end, month_sequence, month_start

logger = logging.getLogger(__name__)

AVERAGE_WINDOW_MONTHS = 3


class RecordStore(Protocol):
    """Read-only access to an owner's financial records"""

    def transactions(
        self,
        owner_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        kind: Optional[TransactionKind] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]: ...

    def loans(self, owner_id: str) -> List[Loan]: ...

    def budgets(self, owner_id: str) -> List[Budget]: ...

    def savings_goals(self, owner_id: str) -> List[SavingsGoal]: ...

    def recurring_bills(self, owner_id: str) -> List[RecurringBill]: ...

    def partner_of(self, owner_id: str) -> Optional[str]: ...


@dataclass(frozen=True)
class Needs:
    """Aggregations an intent declares before its calculator runs"""

    totals: bool = False
    previous: bool = False
    categories: bool = False
    income_categories: bool = False
    expense_list: bool = False
    by_category: bool = False  # narrow expense_list to the query's category
    series_months: int = 0
    trailing_months: int = 0  # fixed window regardless of the requested range
    year_to_date: bool = False
    monthly_averages: bool = False
    loans: bool = False
    budgets: bool = False
    goals: bool = False
    bills: bool = False
    partner: bool = False

    @property
    def reads_transactions(self) -> bool:
        return any(
            (
                self.totals,
                self.previous,
                self.categories,
                self.income_categories,
                self.expense_list,
                self.series_months,
                self.trailing_months,
                self.year_to_date,
                self.monthly_averages,
            )
        )


# What the suggestion generator looks at
SNAPSHOT = Needs(
    totals=True,
    categories=True,
    series_months=12,
    loans=True,
    budgets=True,
    goals=True,
    bills=True,
)


def default_range(as_of: date) -> DateRange:
    """Current calendar month up to as_of"""
    return DateRange(month_start(as_of), as_of)


def previous_range(current: DateRange) -> DateRange:
    """Previous full calendar month for month ranges, else the equal-length window before"""
    if current.start.day == 1 and (current.start.year, current.start.month) == (
        current.end.year,
        current.end.month,
    ):
        start = add_months(current.start, -1)
        return DateRange(start, month_end(start))
    end = current.start - timedelta(days=1)
    return DateRange(end - timedelta(days=current.days - 1), end)


def group_by_category(transactions: Sequence[Transaction]) -> List[CategoryTotal]:
    """Totals per category, largest first, with share of the overall total"""
    amounts: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for txn in transactions:
        key = txn.category.strip() or "Uncategorized"
        amounts[key] += txn.amount
        counts[key] += 1

    grand_total = sum(amounts.values())
    ordered = sorted(amounts.items(), key=lambda item: (-item[1], item[0]))
    return [
        CategoryTotal(
            category=category,
            amount=round(amount, 2),
            percentage=round(amount / grand_total * 100, 2) if grand_total > 0 else 0.0,
            count=counts[category],
        )
        for category, amount in ordered
    ]


def monthly_series(transactions: Sequence[Transaction], as_of: date, months: int) -> List[MonthBucket]:
    """Fixed series of `months` buckets ending at as_of's month; empty months are zero"""
    totals: Dict[Tuple[int, int], float] = {key: 0.0 for key in month_sequence(as_of, months)}
    for txn in transactions:
        key = (txn.occurred_at.year, txn.occurred_at.month)
        if key in totals:
            totals[key] += txn.amount
    return [MonthBucket(year, month, round(total, 2)) for (year, month), total in totals.items()]


def _sum(transactions: Sequence[Transaction]) -> float:
    return round(sum(t.amount for t in transactions), 2)


def _split(transactions: Sequence[Transaction]) -> Tuple[List[Transaction], List[Transaction]]:
    expenses = [t for t in transactions if t.kind == TransactionKind.EXPENSE]
    income = [t for t in transactions if t.kind == TransactionKind.INCOME]
    return expenses, income


class Aggregator:
    """Builds an AggregatedView for one owner from a RecordStore"""

    def __init__(self, store: RecordStore):
        self.store = store

    def aggregate(
        self,
        owner_id: str,
        intent: Intent,
        date_range: Optional[DateRange] = None,
        *,
        needs: Needs,
        as_of: date,
        category: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> AggregatedView:
        """
        Fetch and pre-aggregate records for one intent.

        Raises:
            DataUnavailable: propagated unchanged from the store
            QueryCancelled: cancel_event was set before aggregation finished
        """
        date_range = date_range or default_range(as_of)
        view = AggregatedView(
            owner_id=owner_id,
            as_of=as_of,
            date_range=date_range,
            intent=intent,
            category=category if needs.by_category else None,
        )

        if needs.reads_transactions:
            start, end = self._transaction_window(needs, date_range, as_of)
            records = self.store.transactions(owner_id, start=start, end=end)
            _check_cancelled(cancel_event)
            self._fill_transactions(view, records, needs)

        if needs.loans:
            view.loans = list(self.store.loans(owner_id))
            _check_cancelled(cancel_event)
        if needs.budgets:
            view.budgets = list(self.store.budgets(owner_id))
            _check_cancelled(cancel_event)
        if needs.goals:
            view.goals = list(self.store.savings_goals(owner_id))
            _check_cancelled(cancel_event)
        if needs.bills:
            view.bills = list(self.store.recurring_bills(owner_id))
            _check_cancelled(cancel_event)
        if needs.partner:
            view.partner_id = self.store.partner_of(owner_id)
            _check_cancelled(cancel_event)

        return view

    def _transaction_window(self, needs: Needs, date_range: DateRange, as_of: date) -> Tuple[date, date]:
        starts = [date_range.start]
        if needs.previous:
            starts.append(previous_range(date_range).start)
        if needs.series_months:
            starts.append(month_start(add_months(as_of, -(needs.series_months - 1))))
        if needs.trailing_months:
            starts.append(add_months(as_of, -needs.trailing_months))
        if needs.year_to_date:
            starts.append(as_of.replace(month=1, day=1))
        if needs.monthly_averages:
            starts.append(month_start(add_months(as_of, -(AVERAGE_WINDOW_MONTHS - 1))))
        return min(starts), max(date_range.end, as_of)

    def _fill_transactions(self, view: AggregatedView, records: List[Transaction], needs: Needs) -> None:
        as_of = view.as_of
        in_range = [t for t in records if view.date_range.contains(t.occurred_at)]
        expenses, income = _split(in_range)

        view.total_expenses = _sum(expenses)
        view.total_income = _sum(income)
        view.expense_count = len(expenses)
        view.income_count = len(income)

        if needs.categories:
            view.expense_categories = group_by_category(expenses)
        if needs.income_categories:
            view.income_categories = group_by_category(income)

        if needs.expense_list:
            listed = expenses
            if view.category:
                listed = [t for t in expenses if matches_category(t.category, view.category)]
            view.transactions = sorted(listed, key=lambda t: (t.occurred_at, t.id))

        if needs.previous:
            view.previous_range = previous_range(view.date_range)
            previous = [t for t in records if view.previous_range.contains(t.occurred_at)]
            prev_expenses, prev_income = _split(previous)
            view.previous_expenses = _sum(prev_expenses)
            view.previous_income = _sum(prev_income)
            view.previous_expense_categories = group_by_category(prev_expenses)

        all_expenses, _ = _split(records)
        if needs.series_months:
            view.monthly_series = monthly_series(all_expenses, as_of, needs.series_months)

        if needs.trailing_months or needs.year_to_date:
            if needs.trailing_months:
                window = DateRange(add_months(as_of, -needs.trailing_months), as_of)
            else:
                window = DateRange(as_of.replace(month=1, day=1), as_of)
            view.window_transactions = sorted(
                (t for t in all_expenses if window.contains(t.occurred_at)),
                key=lambda t: (t.occurred_at, t.id),
            )

        if needs.monthly_averages:
            window = DateRange(month_start(add_months(as_of, -(AVERAGE_WINDOW_MONTHS - 1))), as_of)
            recent = [t for t in records if window.contains(t.occurred_at)]
            recent_expenses, recent_income = _split(recent)
            view.active_months = len({(t.occurred_at.year, t.occurred_at.month) for t in recent})
            months = max(view.active_months, 1)
            view.monthly_income = round(_sum(recent_income) / months, 2)
            view.monthly_expenses = round(_sum(recent_expenses) / months, 2)
            view.monthly_expense_categories = [
                CategoryTotal(c.category, round(c.amount / months, 2), c.percentage, c.count)
                for c in group_by_category(recent_expenses)
            ]


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Query cancelled during aggregation")
        raise QueryCancelled("Query cancelled before aggregation completed")
