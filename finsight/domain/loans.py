"""Loan calculators - amortization, payoff scenarios and debt-free planning"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from finsight.domain.models import Loan, LoanDirection
from finsight.utils.date_utils import add_months

MAX_PERIODS = 600
DEFAULT_MONTHLY_PAYMENT = 100.0
EXTRA_PAYMENT_STEPS = (50.0, 100.0, 200.0)
ACCELERATION_STEPS = (50.0, 100.0, 200.0, 500.0)
PAYOFF_LOAN_LIMIT = 3

_CENT = 0.005


@dataclass(frozen=True)
class AmortizationRow:
    period: int
    payment: float
    interest: float
    principal: float
    balance: float


@dataclass
class PayoffResult:
    months: int
    total_interest: float
    total_paid: float
    paid_off: bool
    schedule: List[AmortizationRow] = field(default_factory=list)


@dataclass(frozen=True)
class PayoffScenario:
    extra: float
    monthly_payment: float
    months: int
    total_interest: float
    payoff_date: Optional[date]
    paid_off: bool
    months_saved: int = 0
    interest_saved: float = 0.0


@dataclass
class LoanPayoffPlan:
    loan_id: str
    label: str
    balance: float
    interest_rate_annual: float
    baseline: PayoffScenario
    scenarios: List[PayoffScenario]


@dataclass
class PayoffReport:
    plans: List[LoanPayoffPlan]
    total_balance: float


@dataclass(frozen=True)
class ClearedLoan:
    loan_id: str
    label: str
    month: int
    payoff_date: date
    interest_paid: float


@dataclass(frozen=True)
class DebtPlanSummary:
    strategy: str
    months: int
    total_interest: float
    paid_off: bool


@dataclass
class DebtFreePlan:
    strategy: str
    monthly_budget: float
    total_debt: float
    months: int
    total_interest: float
    paid_off: bool
    debt_free_date: Optional[date]
    payoff_order: List[ClearedLoan]
    alternative: Optional[DebtPlanSummary] = None
    accelerations: List[PayoffScenario] = field(default_factory=list)


@dataclass(frozen=True)
class NextPayment:
    loan_id: str
    label: str
    due_date: date
    amount: float
    days_until: int

    @property
    def overdue(self) -> bool:
        return self.days_until < 0


@dataclass(frozen=True)
class LoanLine:
    loan_id: str
    label: str
    direction: str
    principal: float
    remaining_balance: float
    paid_percentage: float
    interest_rate_annual: Optional[float]
    due_date: Optional[date]


@dataclass
class LoanSummary:
    active_count: int
    total_owed: float
    total_lent: float
    monthly_commitment: float
    loans: List[LoanLine]
    next_payment: Optional[NextPayment] = None


def simulate_payoff(
    balance: float,
    annual_rate: float,
    payment: float,
    *,
    max_periods: int = MAX_PERIODS,
    keep_schedule: bool = False,
) -> PayoffResult:
    """
    Run a fixed monthly payment against a balance until it is cleared.

    Requirements:
    - Periodic interest = balance x (annual_rate / 12)
    - Principal portion = payment - interest; the last payment only covers what is left
    - Stops early (paid_off=False) once the payment no longer covers interest,
      and never runs more than max_periods
    """
    monthly_rate = annual_rate / 12
    months = 0
    total_interest = 0.0
    total_paid = 0.0
    schedule: List[AmortizationRow] = []

    while balance > _CENT and months < max_periods:
        interest = balance * monthly_rate
        principal = payment - interest
        if principal <= 0:
            # Payment doesn't cover interest: balance would never shrink
            break

        principal = min(principal, balance)
        balance -= principal
        months += 1
        total_interest += interest
        total_paid += principal + interest

        if keep_schedule:
            schedule.append(
                AmortizationRow(
                    period=months,
                    payment=round(principal + interest, 2),
                    interest=round(interest, 2),
                    principal=round(principal, 2),
                    balance=round(max(balance, 0.0), 2),
                )
            )

    return PayoffResult(
        months=months,
        total_interest=round(total_interest, 2),
        total_paid=round(total_paid, 2),
        paid_off=balance <= _CENT,
        schedule=schedule,
    )


def required_payment(balance: float, annual_rate: float, months: int) -> float:
    """Level monthly payment that clears balance in exactly `months` periods"""
    if months <= 0:
        return balance
    monthly_rate = annual_rate / 12
    if monthly_rate == 0:
        return balance / months
    return balance * monthly_rate / (1 - (1 + monthly_rate) ** -months)


def months_until(as_of: date, target: date) -> int:
    return (target.year - as_of.year) * 12 + (target.month - as_of.month)


def monthly_payment_for(loan: Loan, as_of: date) -> float:
    """
    Payment assumed for a loan in projections.

    Installment normalized to monthly; otherwise the level payment that reaches
    the due date; otherwise a flat default.
    """
    if loan.monthly_installment:
        return loan.monthly_installment
    if loan.due_date and loan.due_date > as_of:
        months = max(months_until(as_of, loan.due_date), 1)
        return required_payment(loan.remaining_balance, loan.annual_rate, months)
    return DEFAULT_MONTHLY_PAYMENT


def _scenario(
    result: PayoffResult, extra: float, payment: float, as_of: date, baseline: Optional[PayoffResult] = None
) -> PayoffScenario:
    months_saved = 0
    interest_saved = 0.0
    if baseline is not None and baseline.paid_off and result.paid_off:
        months_saved = baseline.months - result.months
        interest_saved = round(baseline.total_interest - result.total_interest, 2)
    return PayoffScenario(
        extra=extra,
        monthly_payment=round(payment, 2),
        months=result.months,
        total_interest=result.total_interest,
        payoff_date=add_months(as_of, result.months) if result.paid_off else None,
        paid_off=result.paid_off,
        months_saved=max(months_saved, 0),
        interest_saved=max(interest_saved, 0.0),
    )


def payoff_scenarios(
    loans: Sequence[Loan],
    as_of: date,
    extra: Optional[float] = None,
    *,
    max_periods: int = MAX_PERIODS,
) -> PayoffReport:
    """Baseline vs extra-payment runs for the largest active debts"""
    debts = _active_debts(loans)
    largest = sorted(debts, key=lambda l: (-l.remaining_balance, l.id))[:PAYOFF_LOAN_LIMIT]

    extras = set(EXTRA_PAYMENT_STEPS)
    if extra and extra > 0:
        extras.add(round(extra, 2))

    plans = []
    for loan in largest:
        payment = monthly_payment_for(loan, as_of)
        base = simulate_payoff(loan.remaining_balance, loan.annual_rate, payment, max_periods=max_periods)
        scenarios = []
        for step in sorted(extras):
            run = simulate_payoff(
                loan.remaining_balance, loan.annual_rate, payment + step, max_periods=max_periods
            )
            scenarios.append(_scenario(run, step, payment + step, as_of, baseline=base))
        plans.append(
            LoanPayoffPlan(
                loan_id=loan.id,
                label=loan.label,
                balance=loan.remaining_balance,
                interest_rate_annual=loan.interest_rate_annual or 0.0,
                baseline=_scenario(base, 0.0, payment, as_of),
                scenarios=scenarios,
            )
        )

    return PayoffReport(plans=plans, total_balance=round(sum(l.remaining_balance for l in debts), 2))


def order_debts(loans: Sequence[Loan], strategy: str) -> List[Loan]:
    """Avalanche: highest rate first. Snowball: lowest balance first."""
    if strategy == "snowball":
        return sorted(loans, key=lambda l: (l.remaining_balance, -l.annual_rate, l.id))
    return sorted(loans, key=lambda l: (-l.annual_rate, l.remaining_balance, l.id))


def simulate_debt_plan(
    loans: Sequence[Loan],
    strategy: str,
    monthly_budget: float,
    as_of: date,
    *,
    max_periods: int = MAX_PERIODS,
) -> Tuple[int, float, bool, List[ClearedLoan]]:
    """
    Apply a fixed monthly budget across all debts.

    Every open loan receives its minimum payment; whatever is left goes to the
    front loan of the chosen ordering. Payments of cleared loans stay in the
    budget and roll onto the next loan.

    Returns: (months, total_interest, paid_off, clear order)
    """
    ordered = order_debts(loans, strategy)
    balances: Dict[str, float] = {l.id: l.remaining_balance for l in ordered}
    minimums: Dict[str, float] = {l.id: monthly_payment_for(l, as_of) for l in ordered}
    interest_paid: Dict[str, float] = {l.id: 0.0 for l in ordered}
    cleared: List[ClearedLoan] = []
    month = 0

    while any(b > _CENT for b in balances.values()) and month < max_periods:
        month += 1
        before = sum(balances.values())

        for loan in ordered:
            if balances[loan.id] > _CENT:
                interest = balances[loan.id] * loan.annual_rate / 12
                balances[loan.id] += interest
                interest_paid[loan.id] += interest

        budget = monthly_budget
        for loan in ordered:
            if balances[loan.id] > _CENT:
                payment = min(minimums[loan.id], balances[loan.id], budget)
                balances[loan.id] -= payment
                budget -= payment

        for loan in ordered:
            if budget <= 0:
                break
            if balances[loan.id] > _CENT:
                payment = min(balances[loan.id], budget)
                balances[loan.id] -= payment
                budget -= payment

        for loan in ordered:
            if balances[loan.id] <= _CENT and loan.id not in {c.loan_id for c in cleared}:
                balances[loan.id] = 0.0
                cleared.append(
                    ClearedLoan(
                        loan_id=loan.id,
                        label=loan.label,
                        month=month,
                        payoff_date=add_months(as_of, month),
                        interest_paid=round(interest_paid[loan.id], 2),
                    )
                )

        if sum(balances.values()) >= before:
            # Budget no longer covers accrued interest
            break

    paid_off = all(b <= _CENT for b in balances.values())
    return month, round(sum(interest_paid.values()), 2), paid_off, cleared


def debt_free_plan(
    loans: Sequence[Loan],
    as_of: date,
    strategy: str = "avalanche",
    extra: float = 0.0,
    *,
    max_periods: int = MAX_PERIODS,
) -> DebtFreePlan:
    """Debt-free date for the chosen strategy, the other strategy's totals and speed-up options"""
    debts = _active_debts(loans)
    budget = sum(monthly_payment_for(l, as_of) for l in debts) + max(extra or 0.0, 0.0)

    months, interest, paid_off, order = simulate_debt_plan(
        debts, strategy, budget, as_of, max_periods=max_periods
    )

    other = "snowball" if strategy == "avalanche" else "avalanche"
    alt_months, alt_interest, alt_paid_off, _ = simulate_debt_plan(
        debts, other, budget, as_of, max_periods=max_periods
    )

    accelerations = []
    for step in ACCELERATION_STEPS:
        run_months, run_interest, run_paid_off, _ = simulate_debt_plan(
            debts, strategy, budget + step, as_of, max_periods=max_periods
        )
        accelerations.append(
            PayoffScenario(
                extra=step,
                monthly_payment=round(budget + step, 2),
                months=run_months,
                total_interest=run_interest,
                payoff_date=add_months(as_of, run_months) if run_paid_off else None,
                paid_off=run_paid_off,
                months_saved=max(months - run_months, 0) if run_paid_off and paid_off else 0,
                interest_saved=max(round(interest - run_interest, 2), 0.0) if run_paid_off and paid_off else 0.0,
            )
        )

    return DebtFreePlan(
        strategy=strategy,
        monthly_budget=round(budget, 2),
        total_debt=round(sum(l.remaining_balance for l in debts), 2),
        months=months,
        total_interest=interest,
        paid_off=paid_off,
        debt_free_date=add_months(as_of, months) if paid_off else None,
        payoff_order=order,
        alternative=DebtPlanSummary(other, alt_months, alt_interest, alt_paid_off),
        accelerations=accelerations,
    )


def loan_status(loans: Sequence[Loan], as_of: date) -> LoanSummary:
    """Outstanding debt, money lent out and the next due payment"""
    active = [l for l in loans if l.is_active]
    debts = [l for l in active if l.direction == LoanDirection.RECEIVED]
    lent = [l for l in active if l.direction == LoanDirection.GIVEN]

    lines = [
        LoanLine(
            loan_id=l.id,
            label=l.label,
            direction=l.direction.value,
            principal=l.principal,
            remaining_balance=l.remaining_balance,
            paid_percentage=round((1 - l.remaining_balance / l.principal) * 100, 1) if l.principal > 0 else 0.0,
            interest_rate_annual=l.interest_rate_annual,
            due_date=l.due_date,
        )
        for l in sorted(active, key=lambda l: (-l.remaining_balance, l.id))
    ]

    next_payment = None
    dated = sorted((l for l in debts if l.due_date), key=lambda l: (l.due_date, l.id))
    if dated:
        loan = dated[0]
        next_payment = NextPayment(
            loan_id=loan.id,
            label=loan.label,
            due_date=loan.due_date,
            amount=round(loan.installment_amount or monthly_payment_for(loan, as_of), 2),
            days_until=(loan.due_date - as_of).days,
        )

    return LoanSummary(
        active_count=len(active),
        total_owed=round(sum(l.remaining_balance for l in debts), 2),
        total_lent=round(sum(l.remaining_balance for l in lent), 2),
        monthly_commitment=round(sum(monthly_payment_for(l, as_of) for l in debts), 2),
        loans=lines,
        next_payment=next_payment,
    )


def _active_debts(loans: Sequence[Loan]) -> List[Loan]:
    return [l for l in loans if l.direction == LoanDirection.RECEIVED and l.is_active]
