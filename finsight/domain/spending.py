"""Spending, income, budget, goal and bill calculators"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from finsight.domain.categories import canonical_category, matches_category
from finsight.domain.loans import months_until
from finsight.domain.models import (
    AggregatedView,
    CategoryTotal,
    DateRange,
    MonthBucket,
    RecurringBill,
)
from finsight.domain.projections import future_value
from finsight.utils.date_utils import days_in_month

TOP_EXPENSE_LIMIT = 5
TOP_CATEGORY_LIMIT = 5
INSIGHT_CATEGORY_LIMIT = 3
TREND_THRESHOLD = 10.0
PREDICTION_WARNING_THRESHOLD = 15.0
HISTORY_WEIGHT = 0.3
BUDGET_AT_RISK = 0.8
SAVE_MONEY_REDUCTION = 0.15
REDUCTION_PERCENTAGES = (5, 10, 15, 20, 25)
OPTIMIZATION_PERCENTAGES = (10, 20, 30, 50)
INVESTMENT_RETURN = 0.05
BALANCED_PARTNER_GAP = 10.0
UPCOMING_BILL_DAYS = 30

CATEGORY_TIPS = {
    "groceries": "Plan meals for the week and shop with a list.",
    "dining": "Swap two restaurant meals a week for home cooking.",
    "transport": "Combine errands and compare fuel prices before filling up.",
    "entertainment": "Rotate streaming services instead of keeping them all.",
    "shopping": "Wait 48 hours before any non-essential purchase.",
    "utilities": "Check your plans once a year and switch to cheaper providers.",
    "health": "Use generic medicines and in-network providers.",
    "housing": "Review insurance and energy costs tied to your home.",
    "travel": "Book early and travel off-season.",
}
DEFAULT_TIP = "Track this category weekly and set a spending cap."


def pct_change(current: float, previous: float) -> Optional[float]:
    if previous <= 0:
        return None
    return round((current - previous) / previous * 100, 1)


def elapsed_days(date_range: DateRange, as_of: date) -> int:
    """Days of the range already lived through"""
    end = min(date_range.end, as_of)
    return max((end - date_range.start).days + 1, 1)


@dataclass
class SpendingSummary:
    total: float
    count: int
    average_transaction: float
    daily_average: float
    previous_total: float
    change_pct: Optional[float]


def spending_summary(view: AggregatedView) -> SpendingSummary:
    total = view.total_expenses
    return SpendingSummary(
        total=total,
        count=view.expense_count,
        average_transaction=round(total / view.expense_count, 2) if view.expense_count else 0.0,
        daily_average=round(total / elapsed_days(view.date_range, view.as_of), 2),
        previous_total=view.previous_expenses,
        change_pct=pct_change(total, view.previous_expenses),
    )


@dataclass
class CategorySpending:
    category: str
    amount: float
    share: float
    count: int
    average_transaction: float
    previous_amount: float
    change_pct: Optional[float]
    transaction_ids: List[str] = field(default_factory=list)


def category_spending(view: AggregatedView, category: str) -> CategorySpending:
    amount = round(sum(t.amount for t in view.transactions), 2)
    count = len(view.transactions)
    previous = round(
        sum(c.amount for c in view.previous_expense_categories if matches_category(c.category, category)), 2
    )
    return CategorySpending(
        category=category,
        amount=amount,
        share=round(amount / view.total_expenses * 100, 1) if view.total_expenses > 0 else 0.0,
        count=count,
        average_transaction=round(amount / count, 2) if count else 0.0,
        previous_amount=previous,
        change_pct=pct_change(amount, previous),
        transaction_ids=[t.id for t in view.transactions],
    )


@dataclass
class DailyAverage:
    total: float
    days: int
    daily_average: float
    projected_month: float


def daily_average(view: AggregatedView) -> DailyAverage:
    days = elapsed_days(view.date_range, view.as_of)
    average = view.total_expenses / days
    return DailyAverage(
        total=view.total_expenses,
        days=days,
        daily_average=round(average, 2),
        projected_month=round(average * days_in_month(view.as_of), 2),
    )


@dataclass
class IncomeSummary:
    total: float
    count: int
    sources: List[CategoryTotal]
    previous_total: float
    change_pct: Optional[float]


def income_summary(view: AggregatedView) -> IncomeSummary:
    return IncomeSummary(
        total=view.total_income,
        count=view.income_count,
        sources=view.income_categories[:TOP_CATEGORY_LIMIT],
        previous_total=view.previous_income,
        change_pct=pct_change(view.total_income, view.previous_income),
    )


@dataclass
class BalanceSummary:
    income: float
    expenses: float
    net: float
    savings_rate: float


def balance_summary(view: AggregatedView) -> BalanceSummary:
    income = view.total_income
    return BalanceSummary(
        income=income,
        expenses=view.total_expenses,
        net=round(view.net, 2),
        savings_rate=round(view.net / income * 100, 1) if income > 0 else 0.0,
    )


@dataclass(frozen=True)
class CategoryChange:
    category: str
    current: float
    previous: float
    change: float


@dataclass
class MonthComparison:
    current_range: DateRange
    previous_range: DateRange
    current_total: float
    previous_total: float
    difference: float
    change_pct: Optional[float]
    movers: List[CategoryChange]


def compare_months(view: AggregatedView) -> MonthComparison:
    """Period totals vs the previous period, with the three biggest category movers"""
    current = {c.category: c.amount for c in view.expense_categories}
    previous = {c.category: c.amount for c in view.previous_expense_categories}
    changes = [
        CategoryChange(name, current.get(name, 0.0), previous.get(name, 0.0), round(current.get(name, 0.0) - previous.get(name, 0.0), 2))
        for name in sorted(set(current) | set(previous))
    ]
    changes.sort(key=lambda c: (-abs(c.change), c.category))
    return MonthComparison(
        current_range=view.date_range,
        previous_range=view.previous_range or view.date_range,
        current_total=view.total_expenses,
        previous_total=view.previous_expenses,
        difference=round(view.total_expenses - view.previous_expenses, 2),
        change_pct=pct_change(view.total_expenses, view.previous_expenses),
        movers=[c for c in changes if c.change != 0][:INSIGHT_CATEGORY_LIMIT],
    )


@dataclass(frozen=True)
class TopExpense:
    transaction_id: str
    description: str
    category: str
    amount: float
    occurred_at: date
    share: float


@dataclass
class TopExpenses:
    items: List[TopExpense]
    total: float


def top_expenses(view: AggregatedView, limit: int = TOP_EXPENSE_LIMIT) -> TopExpenses:
    ranked = sorted(view.transactions, key=lambda t: (-t.amount, t.occurred_at, t.id))[:limit]
    total = view.total_expenses
    return TopExpenses(
        items=[
            TopExpense(
                transaction_id=t.id,
                description=t.description or t.category,
                category=t.category,
                amount=t.amount,
                occurred_at=t.occurred_at,
                share=round(t.amount / total * 100, 1) if total > 0 else 0.0,
            )
            for t in ranked
        ],
        total=total,
    )


@dataclass
class CategoryBreakdown:
    total: float
    categories: List[CategoryTotal]

    @property
    def top(self) -> Optional[CategoryTotal]:
        return self.categories[0] if self.categories else None


def top_categories(view: AggregatedView, limit: int = TOP_CATEGORY_LIMIT) -> CategoryBreakdown:
    return CategoryBreakdown(total=view.total_expenses, categories=view.expense_categories[:limit])


@dataclass
class SpendingTrend:
    months: List[MonthBucket]
    average: float
    latest: MonthBucket
    change_vs_average: Optional[float]
    direction: str  # up | down | steady


def spending_trends(view: AggregatedView) -> SpendingTrend:
    """Latest complete month against the series average"""
    series = view.monthly_series
    complete = series[:-1] if len(series) > 1 else series
    average = sum(b.total for b in complete) / len(complete) if complete else 0.0
    latest = complete[-1] if complete else MonthBucket(view.as_of.year, view.as_of.month, 0.0)
    change = pct_change(latest.total, average)

    direction = "steady"
    if change is not None and change > TREND_THRESHOLD:
        direction = "up"
    elif change is not None and change < -TREND_THRESHOLD:
        direction = "down"

    return SpendingTrend(
        months=list(series),
        average=round(average, 2),
        latest=latest,
        change_vs_average=change,
        direction=direction,
    )


@dataclass
class SpendingInsights:
    income: float
    expenses: float
    net: float
    savings_rate: float
    top_categories: List[CategoryTotal]
    projected_month_end: float
    recent_average: Optional[float]
    projection_change_pct: Optional[float]


def _history_average(series: Sequence[MonthBucket]) -> Optional[float]:
    """Average of the months before the current one, ignoring months without spending"""
    history = [b.total for b in series[:-1] if b.total > 0]
    if not history:
        return None
    return sum(history) / len(history)


def spending_insights(view: AggregatedView) -> SpendingInsights:
    balance = balance_summary(view)
    projected = daily_average(view).projected_month
    history = _history_average(view.monthly_series)
    return SpendingInsights(
        income=balance.income,
        expenses=balance.expenses,
        net=balance.net,
        savings_rate=balance.savings_rate,
        top_categories=view.expense_categories[:INSIGHT_CATEGORY_LIMIT],
        projected_month_end=projected,
        recent_average=round(history, 2) if history is not None else None,
        projection_change_pct=pct_change(projected, history) if history else None,
    )


@dataclass(frozen=True)
class SavingOpportunity:
    category: str
    amount: float
    potential_savings: float
    tip: str


@dataclass
class SavingPlan:
    opportunities: List[SavingOpportunity]
    total_potential: float
    reduction: float = SAVE_MONEY_REDUCTION


def saving_opportunities(view: AggregatedView) -> SavingPlan:
    """Where a 15% cut in the biggest categories would free the most money"""
    opportunities = [
        SavingOpportunity(
            category=c.category,
            amount=c.amount,
            potential_savings=round(c.amount * SAVE_MONEY_REDUCTION, 2),
            tip=CATEGORY_TIPS.get(canonical_category(c.category), DEFAULT_TIP),
        )
        for c in view.expense_categories[:INSIGHT_CATEGORY_LIMIT]
    ]
    return SavingPlan(
        opportunities=opportunities,
        total_potential=round(sum(o.potential_savings for o in opportunities), 2),
    )


@dataclass
class SpendingForecast:
    spent_so_far: float
    days_elapsed: int
    days_in_month: int
    linear_projection: float
    historical_average: Optional[float]
    blended_projection: float
    conservative_projection: float
    exceeds_history_pct: Optional[float]
    category_projections: List[CategoryTotal]

    @property
    def is_concerning(self) -> bool:
        return self.exceeds_history_pct is not None and self.exceeds_history_pct > PREDICTION_WARNING_THRESHOLD


def predict_spending(view: AggregatedView) -> SpendingForecast:
    """
    Month-end spending forecast.

    Requirements:
    - Linear: spend so far / elapsed days x days in month
    - Blended: 0.7 x linear + 0.3 x average of prior months, when history exists
    - Conservative: the larger of the two
    """
    days = elapsed_days(view.date_range, view.as_of)
    month_days = days_in_month(view.as_of)
    linear = view.total_expenses / days * month_days
    history = _history_average(view.monthly_series)
    blended = linear if history is None else (1 - HISTORY_WEIGHT) * linear + HISTORY_WEIGHT * history

    scale = month_days / days
    categories = [
        CategoryTotal(c.category, round(c.amount * scale, 2), c.percentage, c.count)
        for c in view.expense_categories[:INSIGHT_CATEGORY_LIMIT]
    ]
    return SpendingForecast(
        spent_so_far=view.total_expenses,
        days_elapsed=days,
        days_in_month=month_days,
        linear_projection=round(linear, 2),
        historical_average=round(history, 2) if history is not None else None,
        blended_projection=round(blended, 2),
        conservative_projection=round(max(linear, blended), 2),
        exceeds_history_pct=pct_change(linear, history) if history else None,
        category_projections=categories,
    )


@dataclass(frozen=True)
class ReductionScenario:
    percent: float
    monthly_savings: float
    yearly_savings: float
    five_year_value: float
    ten_year_value: float
    goal_months_sooner: Optional[int]


@dataclass
class WhatIfReport:
    monthly_spending: float
    monthly_net: float
    scenarios: List[ReductionScenario]
    custom: Optional[ReductionScenario]
    goal_name: Optional[str]


def _months_needed(remaining: float, monthly: float) -> Optional[int]:
    if remaining <= 0:
        return 0
    if monthly <= 0:
        return None
    return math.ceil(remaining / monthly)


def what_if_reduce(view: AggregatedView, amount: Optional[float] = None, is_percent: bool = False) -> WhatIfReport:
    """
    Effect of cutting average monthly spending.

    Savings are projected at 5% annual return, compounded monthly. Goal impact
    is measured on the open goal with the largest remaining amount.
    """
    monthly = view.monthly_expenses
    net = round(view.monthly_income - monthly, 2)
    open_goals = sorted((g for g in view.goals if g.remaining > 0), key=lambda g: (-g.remaining, g.id))
    goal = open_goals[0] if open_goals else None
    months_now = _months_needed(goal.remaining, net) if goal else None

    def scenario(percent: float, saving: float) -> ReductionScenario:
        sooner = None
        if goal is not None and months_now is not None:
            months_after = _months_needed(goal.remaining, net + saving)
            sooner = months_now - months_after if months_after is not None else None
        return ReductionScenario(
            percent=round(percent, 1),
            monthly_savings=round(saving, 2),
            yearly_savings=round(saving * 12, 2),
            five_year_value=future_value(saving, INVESTMENT_RETURN, 5),
            ten_year_value=future_value(saving, INVESTMENT_RETURN, 10),
            goal_months_sooner=sooner,
        )

    scenarios = [scenario(p, monthly * p / 100) for p in REDUCTION_PERCENTAGES]

    custom = None
    if amount and amount > 0:
        if is_percent:
            custom = scenario(amount, monthly * min(amount, 100) / 100)
        else:
            saving = min(amount, monthly)
            custom = scenario(saving / monthly * 100 if monthly > 0 else 0.0, saving)

    return WhatIfReport(
        monthly_spending=monthly,
        monthly_net=net,
        scenarios=scenarios,
        custom=custom,
        goal_name=goal.name if goal else None,
    )


@dataclass(frozen=True)
class ReductionLevel:
    percent: int
    monthly_savings: float
    yearly_savings: float


@dataclass
class CategoryOptimization:
    category: str
    amount: float
    transaction_count: int
    average_transaction: float
    levels: List[ReductionLevel]
    tip: str


def category_optimization(view: AggregatedView, category: str) -> CategoryOptimization:
    amount = round(sum(t.amount for t in view.transactions), 2)
    count = len(view.transactions)
    return CategoryOptimization(
        category=category,
        amount=amount,
        transaction_count=count,
        average_transaction=round(amount / count, 2) if count else 0.0,
        levels=[
            ReductionLevel(p, round(amount * p / 100, 2), round(amount * p / 100 * 12, 2))
            for p in OPTIMIZATION_PERCENTAGES
        ],
        tip=CATEGORY_TIPS.get(canonical_category(category), DEFAULT_TIP),
    )


@dataclass(frozen=True)
class BudgetLine:
    budget_id: str
    category: str
    period: str
    budgeted: float
    spent: float
    remaining: float
    usage_pct: float
    status: str  # over | at_risk | on_track


@dataclass
class BudgetReport:
    lines: List[BudgetLine]
    total_budgeted: float
    total_spent: float
    total_remaining: float
    days_left: int
    daily_allowance: float
    focus: Optional[BudgetLine] = None

    @property
    def over(self) -> List[BudgetLine]:
        return [l for l in self.lines if l.status == "over"]

    @property
    def at_risk(self) -> List[BudgetLine]:
        return [l for l in self.lines if l.status == "at_risk"]


def budget_status(view: AggregatedView, category: Optional[str] = None) -> BudgetReport:
    lines = []
    for budget in sorted(view.budgets, key=lambda b: (-b.usage_ratio, b.category, b.id)):
        if budget.is_over_budget:
            status = "over"
        elif budget.usage_ratio > BUDGET_AT_RISK:
            status = "at_risk"
        else:
            status = "on_track"
        lines.append(
            BudgetLine(
                budget_id=budget.id,
                category=budget.category,
                period=budget.period.value,
                budgeted=budget.period_amount,
                spent=budget.spent_amount,
                remaining=round(budget.remaining, 2),
                usage_pct=round(budget.usage_ratio * 100, 1),
                status=status,
            )
        )

    remaining = round(sum(l.remaining for l in lines), 2)
    days_left = days_in_month(view.as_of) - view.as_of.day + 1
    focus = None
    if category:
        focus = next((l for l in lines if matches_category(l.category, category)), None)

    return BudgetReport(
        lines=lines,
        total_budgeted=round(sum(l.budgeted for l in lines), 2),
        total_spent=round(sum(l.spent for l in lines), 2),
        total_remaining=remaining,
        days_left=days_left,
        daily_allowance=round(remaining / days_left, 2),
        focus=focus,
    )


@dataclass(frozen=True)
class GoalLine:
    goal_id: str
    name: str
    target: float
    current: float
    progress_pct: float
    remaining: float
    target_date: Optional[date]
    months_left: Optional[int]
    monthly_needed: Optional[float]


@dataclass
class GoalReport:
    goals: List[GoalLine]
    total_target: float
    total_saved: float
    overall_progress_pct: float

    @property
    def completed(self) -> List[GoalLine]:
        return [g for g in self.goals if g.remaining <= 0]


def savings_goals(view: AggregatedView) -> GoalReport:
    lines = []
    for goal in sorted(view.goals, key=lambda g: (g.display_progress, g.name, g.id)):
        months_left = None
        monthly_needed = None
        if goal.target_date and goal.target_date > view.as_of and goal.remaining > 0:
            months_left = max(months_until(view.as_of, goal.target_date), 1)
            monthly_needed = round(goal.remaining / months_left, 2)
        lines.append(
            GoalLine(
                goal_id=goal.id,
                name=goal.name,
                target=goal.target_amount,
                current=goal.current_amount,
                progress_pct=round(goal.display_progress * 100, 1),
                remaining=round(goal.remaining, 2),
                target_date=goal.target_date,
                months_left=months_left,
                monthly_needed=monthly_needed,
            )
        )

    total_target = round(sum(g.target_amount for g in view.goals), 2)
    total_saved = round(sum(g.current_amount for g in view.goals), 2)
    overall = min(total_saved / total_target, 1.0) * 100 if total_target > 0 else 0.0
    return GoalReport(
        goals=lines,
        total_target=total_target,
        total_saved=total_saved,
        overall_progress_pct=round(overall, 1),
    )


@dataclass(frozen=True)
class BillLine:
    bill_id: str
    name: str
    amount: float
    frequency: str
    next_due_date: date
    days_until: int


@dataclass
class BillReport:
    due_soon: List[BillLine]
    all_bills: List[BillLine]
    due_soon_total: float
    monthly_commitment: float

    @property
    def next_bill(self) -> Optional[BillLine]:
        return self.all_bills[0] if self.all_bills else None


def _bill_line(bill: RecurringBill, as_of: date) -> BillLine:
    return BillLine(
        bill_id=bill.id,
        name=bill.name,
        amount=bill.amount,
        frequency=bill.frequency.value,
        next_due_date=bill.next_due_date,
        days_until=(bill.next_due_date - as_of).days,
    )


def upcoming_bills(view: AggregatedView, horizon_days: int = UPCOMING_BILL_DAYS) -> BillReport:
    """Bills by next due date; overdue bills count as due soon"""
    lines = [_bill_line(b, view.as_of) for b in sorted(view.bills, key=lambda b: (b.next_due_date, b.name, b.id))]
    due_soon = [l for l in lines if l.days_until <= horizon_days]
    return BillReport(
        due_soon=due_soon,
        all_bills=lines,
        due_soon_total=round(sum(l.amount for l in due_soon), 2),
        monthly_commitment=round(sum(b.monthly_amount for b in view.bills), 2),
    )


@dataclass(frozen=True)
class PartnerSide:
    owner_id: str
    total: float
    share_pct: float
    top_categories: List[CategoryTotal]


@dataclass
class PartnerComparison:
    me: PartnerSide
    partner: PartnerSide
    household_total: float
    difference: float
    fair_share: float
    higher_spender: Optional[str]  # "me" | "partner"
    balanced: bool


def compare_partners(own: AggregatedView, partner: AggregatedView) -> PartnerComparison:
    """Spending split between two linked owners over the same period"""
    household = round(own.total_expenses + partner.total_expenses, 2)

    def side(view: AggregatedView) -> PartnerSide:
        return PartnerSide(
            owner_id=view.owner_id,
            total=view.total_expenses,
            share_pct=round(view.total_expenses / household * 100, 1) if household > 0 else 0.0,
            top_categories=view.expense_categories[:INSIGHT_CATEGORY_LIMIT],
        )

    me, them = side(own), side(partner)
    difference = round(abs(me.total - them.total), 2)
    balanced = household == 0 or difference / household * 100 < BALANCED_PARTNER_GAP

    higher = None
    if me.total > them.total:
        higher = "me"
    elif them.total > me.total:
        higher = "partner"

    return PartnerComparison(
        me=me,
        partner=them,
        household_total=household,
        difference=difference,
        fair_share=round(household / 2, 2),
        higher_spender=higher,
        balanced=balanced,
    )
