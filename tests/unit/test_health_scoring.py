"""Unit tests for financial health scoring and ratio analysis"""

import pytest
from datetime import date
from finsight.domain.models import AggregatedView, CategoryTotal, DateRange
from finsight.domain.scoring import (
    Tier,
    category_tier,
    debt_to_income,
    emergency_months,
    financial_ratios,
    health_score,
    letter_grade,
    savings_rate,
    score_budget_adherence,
    score_debt_to_income,
    score_emergency_fund,
    score_savings_rate,
)
from tests.factories import AS_OF, OWNER, budget, debt, goal


def make_view(**kwargs) -> AggregatedView:
    return AggregatedView(owner_id=OWNER, as_of=AS_OF, date_range=DateRange(date(2024, 3, 1), AS_OF), **kwargs)


@pytest.mark.parametrize(
    "rate,expected",
    [(35.0, 20), (20.0, 20), (15.0, 16), (12.5, 12), (5.0, 8), (0.1, 4), (0.0, 0), (-40.0, 0)],
)
def test_score_savings_rate_bands(rate: float, expected: int):
    """Test savings rate bands"""
    assert score_savings_rate(rate) == expected


@pytest.mark.parametrize("dti,expected", [(None, 0), (0.0, 20), (10.0, 16), (30.0, 12), (45.0, 8), (80.0, 4)])
def test_score_debt_to_income_bands(dti, expected: int):
    """Test debt-to-income bands, with debt but no income scoring zero"""
    assert score_debt_to_income(dti) == expected


@pytest.mark.parametrize("months,expected", [(8.0, 20), (6.0, 20), (3.0, 15), (1.5, 10), (0.5, 5), (0.0, 0)])
def test_score_emergency_fund_bands(months: float, expected: int):
    """Test emergency fund coverage bands"""
    assert score_emergency_fund(months) == expected


def test_score_budget_adherence():
    """Test share of budgets on track, neutral without budgets"""
    assert score_budget_adherence([]) == 10
    assert score_budget_adherence([budget("a", "Dining", 100, 50), budget("b", "Food", 100, 150)]) == 10
    assert score_budget_adherence([budget("a", "Dining", 100, 100)]) == 20


@pytest.mark.parametrize("total,grade", [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (75, "C"), (60, "D"), (59, "F"), (0, "F")])
def test_letter_grade_cutoffs(total: int, grade: str):
    """Test letter grade cutoffs"""
    assert letter_grade(total) == grade


def test_ratio_helpers_guard_zero_denominators():
    """Test no division by zero without income or expenses"""
    assert savings_rate(0, 500) == 0.0
    assert debt_to_income(0, 0) == 0.0
    assert debt_to_income(300, 0) is None
    assert emergency_months(1000, 0) == 12.0
    assert emergency_months(0, 0) == 0.0


def test_health_score_strong_finances():
    """Test a healthy profile scores a B"""
    view = make_view(
        monthly_income=5000,
        monthly_expenses=3000,
        goals=[goal("g1", 20000, 18000)],
    )

    score = health_score(view)

    assert score.savings_rate.score == 20
    assert score.debt_to_income.score == 20
    assert score.budget_adherence.score == 10
    assert score.emergency_fund.score == 20
    assert score.goal_progress.score == 18
    assert score.total == 88
    assert score.grade == "B"


def test_health_score_empty_view_is_bounded():
    """Test an owner with no data still gets a score within 0-100"""
    score = health_score(make_view())

    assert 0 <= score.total <= 100
    assert score.total == sum(s.score for s in score.sub_scores)
    assert all(0 <= s.score <= 20 for s in score.sub_scores)


def test_health_score_debt_without_income():
    """Test debt with no income scores zero on debt-to-income"""
    view = make_view(monthly_expenses=800, loans=[debt("car", 5000, rate=6.0, installment=200)])

    score = health_score(view)

    assert score.debt_to_income.score == 0
    assert score.debt_to_income.value is None


def test_category_tier_relative_to_benchmark():
    """Test category share tiers relative to the benchmark"""
    assert category_tier(4.0, 5.0) == Tier.EXCELLENT
    assert category_tier(5.0, 5.0) == Tier.GOOD
    assert category_tier(6.0, 5.0) == Tier.ACCEPTABLE
    assert category_tier(7.5, 5.0) == Tier.NEEDS_IMPROVEMENT
    assert category_tier(10.0, 5.0) == Tier.CRITICAL


def test_financial_ratios():
    """Test ratios against benchmarks for a household with rent and a car loan"""
    view = make_view(
        monthly_income=4000,
        monthly_expenses=2500,
        monthly_expense_categories=[
            CategoryTotal("Rent", 1500, 60.0, 3),
            CategoryTotal("Dining", 500, 20.0, 9),
            CategoryTotal("Groceries", 500, 20.0, 6),
        ],
        loans=[debt("car", 10000, rate=6.0, installment=400)],
        goals=[goal("g1", 10000, 5000)],
    )

    ratios = financial_ratios(view)

    assert ratios.savings_rate.value == 37.5
    assert ratios.savings_rate.tier == Tier.EXCELLENT
    assert ratios.debt_to_income.value == 10.0
    assert ratios.housing.value == 37.5
    assert ratios.housing.tier == Tier.ACCEPTABLE
    assert ratios.emergency_fund.value == 2.0
    assert ratios.emergency_fund.tier == Tier.ACCEPTABLE
    assert ratios.categories[1].category == "Dining"
    assert ratios.categories[1].tier == Tier.CRITICAL


def test_financial_ratios_are_idempotent():
    """Test repeated calculation over the same view gives the same result"""
    view = make_view(monthly_income=3000, monthly_expenses=2900)

    assert financial_ratios(view) == financial_ratios(view)


@pytest.mark.parametrize(
    "view",
    [
        make_view(monthly_income=1000, monthly_expenses=200, goals=[goal("g1", 100, 10000), goal("g2", 50, 500)]),
        make_view(monthly_income=500, monthly_expenses=25000, goals=[goal("g1", 1000, -400)]),
        make_view(monthly_income=0, monthly_expenses=3000),
        make_view(monthly_income=2000, monthly_expenses=1500, budgets=[budget(f"b{i}", "Dining", 10, 999) for i in range(4)]),
        make_view(monthly_income=100, monthly_expenses=50, loans=[debt("huge", 900000, rate=29.9, installment=45000)]),
        make_view(monthly_expenses=800, loans=[debt("car", 5000, rate=6.0, installment=300)]),
        make_view(goals=[goal("g1", 0, 0), goal("g2", 0, 250)]),
        make_view(),
    ],
    ids=["overfunded_goals", "deep_negative_savings", "no_income", "all_budgets_over", "huge_dti", "debt_without_income", "zero_target_goals", "empty"],
)
def test_health_score_stays_bounded(view: AggregatedView):
    """Test every sub-score stays within 0-20 and the total within 0-100"""
    score = health_score(view)

    assert all(0 <= part.score <= 20 for part in score.sub_scores)
    assert 0 <= score.total <= 100
    assert score.total == sum(part.score for part in score.sub_scores)
    assert score.grade == letter_grade(score.total)
