"""Unit tests for loan amortization and debt payoff planning"""

import pytest
from datetime import date
from finsight.domain.loans import (
    debt_free_plan,
    loan_status,
    monthly_payment_for,
    order_debts,
    payoff_scenarios,
    required_payment,
    simulate_payoff,
)
from finsight.domain.models import Frequency, Loan, LoanDirection
from tests.factories import AS_OF, OWNER, debt


def test_simulate_payoff_standard_loan():
    """Test $10,000 at 6% with $300/month clears in 37 months"""
    result = simulate_payoff(10000, 0.06, 300)

    assert result.paid_off is True
    assert result.months == 37
    assert result.total_interest == pytest.approx(966.83, abs=1.0)
    assert result.total_paid == pytest.approx(10000 + result.total_interest, abs=0.05)


def test_simulate_payoff_schedule_ends_at_zero():
    """Test amortization rows sum to the balance and the last payment is partial"""
    result = simulate_payoff(1000, 0.12, 200, keep_schedule=True)

    assert len(result.schedule) == result.months
    assert result.schedule[-1].balance == 0
    assert result.schedule[-1].payment < 200
    assert sum(row.principal for row in result.schedule) == pytest.approx(1000, abs=0.05)


def test_simulate_payoff_zero_rate():
    """Test an interest-free balance is simple division"""
    result = simulate_payoff(1200, 0.0, 100)

    assert result.months == 12
    assert result.total_interest == 0


def test_simulate_payoff_payment_below_interest_terminates():
    """Test a payment that never covers interest stops instead of looping"""
    result = simulate_payoff(10000, 0.24, 100)

    assert result.paid_off is False
    assert result.months == 0


def test_simulate_payoff_respects_period_cap():
    """Test the simulation never runs past max_periods"""
    result = simulate_payoff(1000, 0.0, 1, max_periods=12)

    assert result.paid_off is False
    assert result.months == 12


def test_required_payment():
    """Test level payment for a fixed term"""
    assert required_payment(1200, 0.0, 12) == pytest.approx(100)
    payment = required_payment(10000, 0.06, 36)
    assert simulate_payoff(10000, 0.06, payment + 0.01).months == 36


def test_monthly_payment_fallbacks():
    """Test installment, due-date and flat-default payment assumptions"""
    with_installment = debt("a", 1000, rate=5.0, installment=120)
    with_due_date = debt("b", 1200, due=date(2025, 3, 20))
    bare = debt("c", 500)
    weekly = Loan(
        id="d",
        owner_id=OWNER,
        direction=LoanDirection.RECEIVED,
        principal=1000,
        remaining_balance=1000,
        installment_amount=30,
        installment_frequency=Frequency.WEEKLY,
    )

    assert monthly_payment_for(with_installment, AS_OF) == 120
    assert monthly_payment_for(with_due_date, AS_OF) == pytest.approx(100)
    assert monthly_payment_for(bare, AS_OF) == 100.0
    assert monthly_payment_for(weekly, AS_OF) == pytest.approx(130)


def test_order_debts_by_strategy():
    """Test avalanche orders by rate and snowball by balance"""
    card = debt("card", 2000, rate=22.0)
    car = debt("car", 9000, rate=6.0)
    store = debt("store", 500, rate=12.0)

    assert [l.id for l in order_debts([card, car, store], "avalanche")] == ["card", "store", "car"]
    assert [l.id for l in order_debts([card, car, store], "snowball")] == ["store", "card", "car"]


def test_debt_free_plan_compares_strategies():
    """Test avalanche never pays more interest than snowball on the same budget"""
    loans = [
        debt("card", 3000, rate=22.0, installment=90),
        debt("car", 8000, rate=5.0, installment=250),
        debt("store", 600, rate=10.0, installment=40),
    ]

    avalanche = debt_free_plan(loans, AS_OF, "avalanche")
    snowball = debt_free_plan(loans, AS_OF, "snowball")

    assert avalanche.paid_off and snowball.paid_off
    assert avalanche.monthly_budget == 380
    assert avalanche.total_interest <= snowball.total_interest
    assert avalanche.alternative.strategy == "snowball"
    assert avalanche.alternative.total_interest == snowball.total_interest
    assert {c.loan_id for c in avalanche.payoff_order} == {"card", "car", "store"}
    assert avalanche.debt_free_date == avalanche.payoff_order[-1].payoff_date


def test_debt_free_plan_accelerations_save_time():
    """Test larger budgets never take longer"""
    loans = [debt("car", 8000, rate=5.0, installment=250)]

    plan = debt_free_plan(loans, AS_OF)

    months = [a.months for a in plan.accelerations]
    assert months == sorted(months, reverse=True)
    assert all(a.months <= plan.months for a in plan.accelerations)
    assert plan.accelerations[-1].months_saved > 0


def test_debt_free_plan_unpayable():
    """Test a budget below accrued interest reports not paid off"""
    loans = [debt("card", 10000, rate=30.0, installment=50)]

    plan = debt_free_plan(loans, AS_OF)

    assert plan.paid_off is False
    assert plan.debt_free_date is None


def test_payoff_scenarios_include_requested_extra():
    """Test the requested extra payment is simulated alongside the fixed steps"""
    loans = [debt("car", 10000, rate=6.0, installment=300)]

    report = payoff_scenarios(loans, AS_OF, extra=150)

    plan = report.plans[0]
    assert plan.baseline.months == 37
    assert [s.extra for s in plan.scenarios] == [50.0, 100.0, 150.0, 200.0]
    assert all(s.months_saved > 0 and s.interest_saved > 0 for s in plan.scenarios)


def test_payoff_scenarios_skip_lent_and_closed_loans():
    """Test only active borrowed loans are simulated"""
    lent = Loan("lent", OWNER, LoanDirection.GIVEN, 500, 500)
    closed = debt("closed", 0, principal=1000)

    report = payoff_scenarios([lent, closed, debt("car", 1000, rate=5.0)], AS_OF)

    assert [p.loan_id for p in report.plans] == ["car"]
    assert report.total_balance == 1000


def test_loan_status_next_payment():
    """Test totals and the nearest due date"""
    loans = [
        debt("car", 10000, rate=6.0, installment=300, due=date(2024, 4, 1), principal=12000),
        debt("card", 1500, rate=19.9, installment=75, due=date(2024, 3, 22)),
        Loan("lent", OWNER, LoanDirection.GIVEN, 800, 400),
    ]

    summary = loan_status(loans, AS_OF)

    assert summary.active_count == 3
    assert summary.total_owed == 11500
    assert summary.total_lent == 400
    assert summary.monthly_commitment == 375
    assert summary.next_payment.loan_id == "card"
    assert summary.next_payment.days_until == 2
    assert summary.loans[0].paid_percentage == pytest.approx(16.7)
