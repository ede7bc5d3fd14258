"""Financial health scoring and ratio analysis - banded benchmarks over trailing monthly figures"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from finsight.domain.categories import HOUSING_CATEGORIES, canonical_category
from finsight.domain.loans import monthly_payment_for
from finsight.domain.models import AggregatedView, Budget, SavingsGoal

SUB_SCORE_MAX = 20
NO_BUDGETS_SCORE = 10
NO_EXPENSES_COVERAGE_MONTHS = 12.0

CATEGORY_BENCHMARKS = {
    "groceries": 15.0,
    "transport": 15.0,
    "housing": 28.0,
    "utilities": 5.0,
    "insurance": 10.0,
    "entertainment": 5.0,
    "dining": 5.0,
    "health": 5.0,
}
DEFAULT_CATEGORY_BENCHMARK = 10.0
RATIO_CATEGORY_LIMIT = 5


class Tier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    NEEDS_IMPROVEMENT = "needs_improvement"
    CRITICAL = "critical"


@dataclass(frozen=True)
class SubScore:
    name: str
    score: int
    value: Optional[float]  # measured metric the score was derived from


@dataclass
class HealthScore:
    total: int
    grade: str
    savings_rate: SubScore
    debt_to_income: SubScore
    budget_adherence: SubScore
    emergency_fund: SubScore
    goal_progress: SubScore

    @property
    def sub_scores(self) -> List[SubScore]:
        return [
            self.savings_rate,
            self.debt_to_income,
            self.budget_adherence,
            self.emergency_fund,
            self.goal_progress,
        ]


@dataclass(frozen=True)
class RatioResult:
    name: str
    value: Optional[float]
    benchmark: str
    tier: Tier


@dataclass(frozen=True)
class CategoryRatio:
    category: str
    share: float
    benchmark: float
    tier: Tier


@dataclass
class FinancialRatios:
    monthly_income: float
    monthly_expenses: float
    savings_rate: RatioResult
    debt_to_income: RatioResult
    housing: RatioResult
    emergency_fund: RatioResult
    categories: List[CategoryRatio]


def savings_rate(monthly_income: float, monthly_expenses: float) -> float:
    """(income - expenses) / income as a percentage; 0 without income"""
    if monthly_income <= 0:
        return 0.0
    return round((monthly_income - monthly_expenses) / monthly_income * 100, 2)


def debt_to_income(monthly_debt_payments: float, monthly_income: float) -> Optional[float]:
    """Monthly debt payments / monthly income as a percentage; None when debt exists without income"""
    if monthly_debt_payments <= 0:
        return 0.0
    if monthly_income <= 0:
        return None
    return round(monthly_debt_payments / monthly_income * 100, 2)


def emergency_months(liquid_savings: float, monthly_expenses: float) -> float:
    if monthly_expenses <= 0:
        return NO_EXPENSES_COVERAGE_MONTHS if liquid_savings > 0 else 0.0
    return round(liquid_savings / monthly_expenses, 2)


def score_savings_rate(rate: float) -> int:
    if rate >= 20:
        return 20
    elif rate >= 15:
        return 16
    elif rate >= 10:
        return 12
    elif rate >= 5:
        return 8
    elif rate > 0:
        return 4
    return 0


def score_debt_to_income(dti: Optional[float]) -> int:
    if dti is None:
        return 0
    if dti == 0:
        return 20
    elif dti < 20:
        return 16
    elif dti < 36:
        return 12
    elif dti < 50:
        return 8
    return 4


def score_budget_adherence(budgets: Sequence[Budget]) -> int:
    """Share of budgets not overspent, scaled to 20; neutral without budgets"""
    if not budgets:
        return NO_BUDGETS_SCORE
    on_track = sum(1 for b in budgets if not b.is_over_budget)
    return round(SUB_SCORE_MAX * on_track / len(budgets))


def score_emergency_fund(months: float) -> int:
    if months >= 6:
        return 20
    elif months >= 3:
        return 15
    elif months >= 1:
        return 10
    elif months > 0:
        return 5
    return 0


def average_goal_progress(goals: Sequence[SavingsGoal]) -> float:
    if not goals:
        return 0.0
    return sum(g.display_progress for g in goals) / len(goals)


def score_goal_progress(goals: Sequence[SavingsGoal]) -> int:
    if not goals:
        return 0
    return round(SUB_SCORE_MAX * average_goal_progress(goals))


def letter_grade(total: int) -> str:
    if total >= 90:
        return "A"
    elif total >= 80:
        return "B"
    elif total >= 70:
        return "C"
    elif total >= 60:
        return "D"
    return "F"


def _monthly_debt_payments(view: AggregatedView) -> float:
    return sum(monthly_payment_for(loan, view.as_of) for loan in view.debts)


def health_score(view: AggregatedView) -> HealthScore:
    """
    Overall financial health from 0 to 100.

    Requirements:
    - Five sub-scores of 0-20 each: savings rate, debt-to-income, budget
      adherence, emergency-fund coverage, savings-goal progress
    - Income and expenses are trailing monthly averages
    - Letter grade from fixed cutoffs
    """
    rate = savings_rate(view.monthly_income, view.monthly_expenses)
    dti = debt_to_income(_monthly_debt_payments(view), view.monthly_income)
    coverage = emergency_months(view.liquid_savings, view.monthly_expenses)
    adherence = (
        sum(1 for b in view.budgets if not b.is_over_budget) / len(view.budgets) * 100
        if view.budgets
        else None
    )

    parts = [
        SubScore("savings_rate", score_savings_rate(rate), rate),
        SubScore("debt_to_income", score_debt_to_income(dti), dti),
        SubScore("budget_adherence", score_budget_adherence(view.budgets), adherence),
        SubScore("emergency_fund", score_emergency_fund(coverage), coverage),
        SubScore(
            "goal_progress",
            score_goal_progress(view.goals),
            round(average_goal_progress(view.goals) * 100, 2) if view.goals else None,
        ),
    ]
    total = sum(p.score for p in parts)

    return HealthScore(total, letter_grade(total), *parts)


def savings_rate_tier(rate: float) -> Tier:
    if rate >= 20:
        return Tier.EXCELLENT
    elif rate >= 15:
        return Tier.GOOD
    elif rate >= 10:
        return Tier.ACCEPTABLE
    elif rate >= 5:
        return Tier.NEEDS_IMPROVEMENT
    return Tier.CRITICAL


def debt_to_income_tier(dti: Optional[float]) -> Tier:
    if dti is None:
        return Tier.CRITICAL
    if dti < 20:
        return Tier.EXCELLENT
    elif dti < 36:
        return Tier.GOOD
    elif dti < 43:
        return Tier.ACCEPTABLE
    elif dti < 50:
        return Tier.NEEDS_IMPROVEMENT
    return Tier.CRITICAL


def housing_tier(ratio: Optional[float]) -> Tier:
    if ratio is None:
        return Tier.CRITICAL
    if ratio < 28:
        return Tier.EXCELLENT
    elif ratio < 33:
        return Tier.GOOD
    elif ratio < 40:
        return Tier.ACCEPTABLE
    elif ratio < 50:
        return Tier.NEEDS_IMPROVEMENT
    return Tier.CRITICAL


def emergency_tier(months: float) -> Tier:
    if months >= 6:
        return Tier.EXCELLENT
    elif months >= 3:
        return Tier.GOOD
    elif months >= 1:
        return Tier.ACCEPTABLE
    elif months > 0:
        return Tier.NEEDS_IMPROVEMENT
    return Tier.CRITICAL


def category_tier(share: float, benchmark: float) -> Tier:
    relative = share / benchmark if benchmark > 0 else 0.0
    if relative <= 0.8:
        return Tier.EXCELLENT
    elif relative <= 1.0:
        return Tier.GOOD
    elif relative <= 1.2:
        return Tier.ACCEPTABLE
    elif relative <= 1.5:
        return Tier.NEEDS_IMPROVEMENT
    return Tier.CRITICAL


def financial_ratios(view: AggregatedView) -> FinancialRatios:
    """
    Key ratios compared against a fixed benchmark table.

    Category distribution is each category's share of spending, benchmarked
    per canonical category.
    """
    income = view.monthly_income
    expenses = view.monthly_expenses

    rate = savings_rate(income, expenses)
    dti = debt_to_income(_monthly_debt_payments(view), income)

    housing_spend = sum(
        c.amount for c in view.monthly_expense_categories if canonical_category(c.category) in HOUSING_CATEGORIES
    )
    if housing_spend <= 0:
        housing_ratio: Optional[float] = 0.0
    elif income > 0:
        housing_ratio = round(housing_spend / income * 100, 2)
    else:
        housing_ratio = None

    coverage = emergency_months(view.liquid_savings, expenses)

    categories = []
    for total in view.monthly_expense_categories[:RATIO_CATEGORY_LIMIT]:
        benchmark = CATEGORY_BENCHMARKS.get(canonical_category(total.category), DEFAULT_CATEGORY_BENCHMARK)
        categories.append(
            CategoryRatio(
                category=total.category,
                share=total.percentage,
                benchmark=benchmark,
                tier=category_tier(total.percentage, benchmark),
            )
        )

    return FinancialRatios(
        monthly_income=income,
        monthly_expenses=expenses,
        savings_rate=RatioResult("savings_rate", rate, "20% or more", savings_rate_tier(rate)),
        debt_to_income=RatioResult("debt_to_income", dti, "under 36%", debt_to_income_tier(dti)),
        housing=RatioResult("housing", housing_ratio, "under 28%", housing_tier(housing_ratio)),
        emergency_fund=RatioResult("emergency_fund", coverage, "6 months", emergency_tier(coverage)),
        categories=categories,
    )
