"""Savings projections - compound growth, milestones and long-term wealth"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from finsight.domain.models import AggregatedView
from finsight.utils.date_utils import add_months

MAX_PERIODS = 600
RETURN_RATES = (0.02, 0.05, 0.07, 0.10)
HORIZON_YEARS = (5, 10, 20, 30)
WEALTH_TARGETS = (100_000.0, 250_000.0, 500_000.0, 1_000_000.0)
TARGET_RETURN_RATE = 0.07
EMERGENCY_FUND_MONTHS = (1, 3, 6)
SAVINGS_MILESTONES = (10_000.0, 25_000.0, 50_000.0, 100_000.0)


@dataclass(frozen=True)
class Milestone:
    name: str
    target: float
    reached: bool
    months: Optional[int]
    eta: Optional[date]


@dataclass
class MilestoneReport:
    current_savings: float
    monthly_savings: float
    milestones: List[Milestone]

    @property
    def next_milestone(self) -> Optional[Milestone]:
        return next((m for m in self.milestones if not m.reached), None)


@dataclass(frozen=True)
class GrowthPoint:
    years: int
    value: float


@dataclass(frozen=True)
class GrowthScenario:
    annual_rate: float
    points: List[GrowthPoint]


@dataclass(frozen=True)
class WealthTarget:
    target: float
    months: Optional[int]
    eta: Optional[date]


@dataclass
class WealthProjection:
    current_savings: float
    monthly_contribution: float
    scenarios: List[GrowthScenario]
    targets: List[WealthTarget]


def future_value(monthly: float, annual_rate: float, years: int, present: float = 0.0) -> float:
    """Monthly-compounded value of a present sum plus level monthly contributions"""
    periods = years * 12
    rate = annual_rate / 12
    growth = (1 + rate) ** periods
    contributions = monthly * periods if rate == 0 else monthly * (growth - 1) / rate
    return round(present * growth + contributions, 2)


def months_to_reach(
    present: float,
    monthly: float,
    annual_rate: float,
    target: float,
    max_periods: int = MAX_PERIODS,
) -> Optional[int]:
    """Months until a growing balance reaches target; None if not within max_periods"""
    if present >= target:
        return 0
    balance = present
    rate = annual_rate / 12
    for month in range(1, max_periods + 1):
        balance = balance * (1 + rate) + monthly
        if balance >= target:
            return month
    return None


def _eta(as_of: date, months: Optional[int]) -> Optional[date]:
    return add_months(as_of, months) if months is not None else None


def financial_milestones(view: AggregatedView, max_periods: int = MAX_PERIODS) -> MilestoneReport:
    """Emergency-fund and round-number milestones from current savings and average monthly net"""
    current = view.liquid_savings
    monthly_savings = round(view.monthly_income - view.monthly_expenses, 2)

    targets = [(f"{m}-month emergency fund", round(view.monthly_expenses * m, 2)) for m in EMERGENCY_FUND_MONTHS]
    targets += [(f"${amount:,.0f} saved", amount) for amount in SAVINGS_MILESTONES]

    milestones = []
    for name, target in targets:
        if target <= 0:
            continue
        reached = current >= target
        months = 0 if reached else None
        if not reached and monthly_savings > 0:
            months = months_to_reach(current, monthly_savings, 0.0, target, max_periods)
        milestones.append(Milestone(name, target, reached, months, _eta(view.as_of, months)))

    return MilestoneReport(current_savings=round(current, 2), monthly_savings=monthly_savings, milestones=milestones)


def wealth_projection(view: AggregatedView, max_periods: int = MAX_PERIODS) -> WealthProjection:
    """Growth of current savings plus the average monthly surplus under several return rates"""
    current = view.liquid_savings
    contribution = max(round(view.monthly_income - view.monthly_expenses, 2), 0.0)

    scenarios = [
        GrowthScenario(
            annual_rate=rate,
            points=[GrowthPoint(years, future_value(contribution, rate, years, current)) for years in HORIZON_YEARS],
        )
        for rate in RETURN_RATES
    ]
    targets = []
    for target in WEALTH_TARGETS:
        months = months_to_reach(current, contribution, TARGET_RETURN_RATE, target, max_periods)
        targets.append(WealthTarget(target, months, _eta(view.as_of, months)))

    return WealthProjection(
        current_savings=round(current, 2),
        monthly_contribution=contribution,
        scenarios=scenarios,
        targets=targets,
    )
