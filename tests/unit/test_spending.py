"""Unit tests for spending, budget, goal and bill calculators"""

import pytest
from datetime import date
from finsight.domain import spending
from finsight.domain.models import AggregatedView, CategoryTotal, DateRange, MonthBucket
from finsight.domain.projections import financial_milestones, future_value, months_to_reach, wealth_projection
from tests.factories import AS_OF, OWNER, PARTNER, bill, budget, expense, goal


def make_view(owner: str = OWNER, **kwargs) -> AggregatedView:
    kwargs.setdefault("date_range", DateRange(date(2024, 3, 1), AS_OF))
    return AggregatedView(owner_id=owner, as_of=AS_OF, **kwargs)


def test_pct_change():
    """Test percentage change needs a positive base"""
    assert spending.pct_change(110, 100) == 10.0
    assert spending.pct_change(50, 0) is None


def test_spending_summary():
    """Test totals, daily average and change from the previous period"""
    summary = spending.spending_summary(make_view(total_expenses=300, expense_count=3, previous_expenses=200))

    assert summary.average_transaction == 100
    assert summary.daily_average == 15.0
    assert summary.change_pct == 50.0


def test_daily_average_for_a_past_month():
    """Test a finished period divides by all of its days"""
    view = make_view(date_range=DateRange(date(2024, 2, 1), date(2024, 2, 29)), total_expenses=290)

    result = spending.daily_average(view)

    assert result.days == 29
    assert result.daily_average == 10.0


def test_compare_months_movers():
    """Test the biggest category changes in either direction"""
    view = make_view(
        total_expenses=900,
        previous_expenses=600,
        previous_range=DateRange(date(2024, 2, 1), date(2024, 2, 29)),
        expense_categories=[CategoryTotal("Dining", 500, 55.6, 5), CategoryTotal("Rent", 400, 44.4, 1)],
        previous_expense_categories=[CategoryTotal("Rent", 400, 66.7, 1), CategoryTotal("Travel", 200, 33.3, 1)],
    )

    result = spending.compare_months(view)

    assert result.change_pct == 50.0
    assert result.difference == 300
    assert [(m.category, m.change) for m in result.movers] == [("Dining", 500), ("Travel", -200)]


def test_top_expenses_ranked_by_amount():
    """Test largest transactions first with their share of spending"""
    view = make_view(
        total_expenses=1000,
        transactions=[
            expense("a", 100, "Dining", date(2024, 3, 2), "Bistro"),
            expense("b", 600, "Rent", date(2024, 3, 1), "Landlord"),
            expense("c", 300, "Groceries", date(2024, 3, 3)),
        ],
    )

    result = spending.top_expenses(view, limit=2)

    assert [e.transaction_id for e in result.items] == ["b", "c"]
    assert result.items[0].share == 60.0
    assert result.items[1].description == "Groceries"


def test_spending_trends_compares_last_complete_month():
    """Test the in-progress month is excluded from the trend"""
    series = [MonthBucket(2023, 12, 100), MonthBucket(2024, 1, 100), MonthBucket(2024, 2, 200), MonthBucket(2024, 3, 50)]

    trend = spending.spending_trends(make_view(monthly_series=series))

    assert trend.latest.month == 2
    assert trend.average == pytest.approx(133.33)
    assert trend.direction == "up"


def test_predict_spending_blends_history():
    """Test linear, blended and conservative month-end projections"""
    series = [MonthBucket(2024, 1, 1500), MonthBucket(2024, 2, 1500), MonthBucket(2024, 3, 1000)]
    view = make_view(total_expenses=1000, monthly_series=series)

    forecast = spending.predict_spending(view)

    assert forecast.days_elapsed == 20
    assert forecast.linear_projection == 1550
    assert forecast.historical_average == 1500
    assert forecast.blended_projection == 1535
    assert forecast.conservative_projection == 1550
    assert forecast.exceeds_history_pct == pytest.approx(3.3)
    assert forecast.is_concerning is False


def test_what_if_reduce_shortens_goal():
    """Test reduction scenarios and their effect on the largest open goal"""
    view = make_view(monthly_income=4000, monthly_expenses=3000, goals=[goal("g1", 6000, 1000, "House")])

    report = spending.what_if_reduce(view, amount=500)

    assert report.monthly_net == 1000
    assert report.goal_name == "House"
    ten = next(s for s in report.scenarios if s.percent == 10)
    assert ten.monthly_savings == 300
    assert ten.yearly_savings == 3600
    assert ten.goal_months_sooner == 1
    assert report.custom.monthly_savings == 500
    assert report.custom.percent == pytest.approx(16.7)


def test_category_optimization_levels():
    """Test reduction levels for one category"""
    view = make_view(transactions=[expense("a", 120, "Dining", date(2024, 3, 2)), expense("b", 80, "Dining", date(2024, 3, 9))])

    result = spending.category_optimization(view, "dining")

    assert result.amount == 200
    assert result.average_transaction == 100
    assert [(l.percent, l.monthly_savings) for l in result.levels] == [(10, 20), (20, 40), (30, 60), (50, 100)]
    assert result.tip == spending.CATEGORY_TIPS["dining"]


def test_budget_status():
    """Test over, at-risk and on-track budgets with the daily allowance"""
    view = make_view(
        budgets=[
            budget("b1", "Groceries", 250, 300),
            budget("b2", "Dining", 150, 80),
            budget("b3", "Transport", 100, 90),
        ]
    )

    report = spending.budget_status(view, "food")

    assert [l.status for l in report.lines] == ["over", "at_risk", "on_track"]
    assert report.days_left == 12
    assert report.total_remaining == 80
    assert report.daily_allowance == pytest.approx(6.67)
    assert report.focus.budget_id == "b1"


def test_savings_goals_monthly_needed():
    """Test progress and the monthly amount needed to hit a target date"""
    view = make_view(goals=[goal("g1", 3000, 600, "Vacation", date(2024, 12, 31)), goal("g2", 1000, 1200, "Laptop")])

    report = spending.savings_goals(view)

    vacation = next(g for g in report.goals if g.goal_id == "g1")
    assert vacation.progress_pct == 20.0
    assert vacation.months_left == 9
    assert vacation.monthly_needed == pytest.approx(266.67)
    assert [g.goal_id for g in report.completed] == ["g2"]
    assert report.overall_progress_pct == 45.0


def test_upcoming_bills_include_overdue():
    """Test overdue bills are due soon and later bills are listed separately"""
    view = make_view(
        bills=[
            bill("rent", 1500, date(2024, 3, 25), "Rent"),
            bill("phone", 40, date(2024, 3, 18), "Phone"),
            bill("insurance", 600, date(2024, 5, 1), "Insurance"),
        ]
    )

    report = spending.upcoming_bills(view)

    assert [b.bill_id for b in report.due_soon] == ["phone", "rent"]
    assert report.due_soon[0].days_until == -2
    assert report.due_soon_total == 1540
    assert report.next_bill.bill_id == "phone"


def test_compare_partners():
    """Test household split between two owners"""
    me = make_view(total_expenses=600, expense_categories=[CategoryTotal("Rent", 600, 100.0, 1)])
    partner = make_view(PARTNER, total_expenses=200)

    result = spending.compare_partners(me, partner)

    assert result.household_total == 800
    assert result.me.share_pct == 75.0
    assert result.higher_spender == "me"
    assert result.balanced is False
    assert result.fair_share == 400


def test_compare_partners_with_no_spending():
    """Test two empty sides are balanced without dividing by zero"""
    result = spending.compare_partners(make_view(), make_view(PARTNER))

    assert result.balanced is True
    assert result.higher_spender is None
    assert result.me.share_pct == 0.0


def test_future_value_and_months_to_reach():
    """Test compounding helpers"""
    assert future_value(100, 0.0, 1) == 1200
    assert future_value(0, 0.12, 1, present=1000) == pytest.approx(1126.83, abs=0.01)
    assert months_to_reach(0, 100, 0.0, 1000) == 10
    assert months_to_reach(5000, 0, 0.0, 1000) == 0
    assert months_to_reach(0, 0, 0.0, 1000, max_periods=24) is None


def test_financial_milestones():
    """Test emergency-fund milestones from savings and monthly surplus"""
    view = make_view(monthly_income=4000, monthly_expenses=3000, goals=[goal("g1", 10000, 2500)])

    report = financial_milestones(view)

    one_month = report.milestones[0]
    assert one_month.name == "1-month emergency fund"
    assert one_month.months == 1
    assert report.milestones[1].months == 7
    assert report.monthly_savings == 1000
    assert report.next_milestone == one_month


def test_wealth_projection_without_surplus():
    """Test a negative surplus contributes nothing and targets may be unreachable"""
    view = make_view(monthly_income=1000, monthly_expenses=1500)

    projection = wealth_projection(view)

    assert projection.monthly_contribution == 0
    assert all(t.months is None for t in projection.targets)
    assert all(p.value == 0 for s in projection.scenarios for p in s.points)
