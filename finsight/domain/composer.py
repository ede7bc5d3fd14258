"""Response composer - turns calculator payloads into EngineResponse envelopes"""

import dataclasses
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from finsight.domain import loans, projections, recurring, scoring, seasonal, spending, tax
from finsight.domain.categories import is_known_category
from finsight.domain.classifier import classify
from finsight.domain.models import DateRange, EngineResponse, Intent, ResponseType, Source
from finsight.utils.date_utils import format_months
from finsight.utils.formatting import format_approx, format_currency, format_percent

MAX_SOURCES = 5

FALLBACK_TEXT = "I'm not sure I understood that. Here are a few things you can ask me:"

REDUCE_CATEGORY = "How can I reduce my {category} spending?"

# Per-intent follow-ups; templates with a placeholder are skipped when the value is missing
QUICK_ACTIONS: Dict[Intent, Sequence[str]] = {
    Intent.HELP: ("How much did I spend this month?", "What's my financial health score?", "Analyze my subscriptions"),
    Intent.MONEY_TIPS: ("How can I save money?", "What's my financial health score?"),
    Intent.FINANCIAL_HEALTH_SCORE: ("Show my financial ratios", "How can I save money?", "When will I be debt-free?"),
    Intent.FINANCIAL_RATIOS: ("What's my financial health score?", "Show spending by category"),
    Intent.TAX_DEDUCTIONS: ("Show spending by category", "Give me a money tip"),
    Intent.DEBT_FREE_TIMELINE: (
        "Compare the {other_strategy} strategy",
        "What if I pay $100 extra on my loan?",
        "Show my loans",
    ),
    Intent.LOAN_PAYOFF_SCENARIO: ("When will I be debt-free?", "Show my loans"),
    Intent.UPCOMING_BILLS: ("Analyze my subscriptions", "Show my budgets"),
    Intent.NEXT_PAYMENT: ("Show my loans", "When will I be debt-free?"),
    Intent.LOAN_STATUS: ("When will I be debt-free?", "What if I pay $100 extra on my loan?", "When is my next payment?"),
    Intent.SUBSCRIPTION_ANALYSIS: ("Show my upcoming bills", "How can I save money?"),
    Intent.SEASONAL_SPENDING: ("Show my spending trends", "Predict my spending for this month"),
    Intent.CATEGORY_OPTIMIZATION: ("Show my budgets", "Show spending by category"),
    Intent.WHAT_IF_REDUCE_SPENDING: ("Project my wealth", "How are my savings goals doing?"),
    Intent.WEALTH_PROJECTION: ("What are my financial milestones?", "What's my savings rate?"),
    Intent.FINANCIAL_MILESTONES: ("Project my wealth", "What if I cut my spending by 10%?"),
    Intent.PREDICT_SPENDING: ("Show my budgets", "How can I save money?"),
    Intent.COMPARE_PARTNERS: ("Show spending by category", "Show my spending trends"),
    Intent.COMPARE_MONTHS: ("Show my spending trends", "Show spending by category"),
    Intent.BUDGET_STATUS: ("How can I save money?", "Show my top expenses"),
    Intent.SAVINGS_GOALS: ("What are my financial milestones?", "What if I cut my spending by 10%?"),
    Intent.TOP_EXPENSES: ("Show spending by category", "Analyze my subscriptions"),
    Intent.TOP_CATEGORIES: (REDUCE_CATEGORY, "Compare with last month"),
    Intent.SPENDING_TRENDS: ("Show my seasonal spending", "Predict my spending for this month"),
    Intent.DAILY_AVERAGE: ("Predict my spending for this month", "Show spending by category"),
    Intent.CATEGORY_SPENDING: (
        "Compare with last month",
        REDUCE_CATEGORY,
        "Show my budgets",
    ),
    Intent.TOTAL_INCOME: ("What's my current balance?", "What's my savings rate?"),
    Intent.CURRENT_BALANCE: ("How can I save money?", "What's my financial health score?"),
    Intent.SPENDING_INSIGHTS: ("What's my financial health score?", "How can I save money?"),
    Intent.SAVE_MONEY: ("Analyze my subscriptions", "What if I cut my spending by 10%?"),
    Intent.TOTAL_SPENDING: ("Show spending by category", "Compare with last month", "What's my daily average?"),
}

EMPTY_ACTIONS = ("What can you do?", "Give me a money tip")

EMPTY_MESSAGES: Dict[Intent, str] = {
    Intent.FINANCIAL_HEALTH_SCORE: "I need some income, expenses, budgets or goals before I can score your financial health.",
    Intent.FINANCIAL_RATIOS: "There isn't enough recent income or spending to calculate your ratios yet.",
    Intent.TAX_DEDUCTIONS: "You haven't recorded any expenses this year, so there's nothing to check for deductions.",
    Intent.DEBT_FREE_TIMELINE: "You have no active debts. You're already debt-free 🎉",
    Intent.LOAN_PAYOFF_SCENARIO: "You have no active loans to pay off 🎉",
    Intent.UPCOMING_BILLS: "You don't have any recurring bills set up.",
    Intent.NEXT_PAYMENT: "You have no active loans right now 🎉",
    Intent.LOAN_STATUS: "You have no active loans right now 🎉",
    Intent.SUBSCRIPTION_ANALYSIS: "You have no expenses in the last 3 months to check for subscriptions.",
    Intent.SEASONAL_SPENDING: "You have no expenses in the last 12 months to analyze.",
    Intent.CATEGORY_OPTIMIZATION: "I couldn't find any {category} spending this month.",
    Intent.WHAT_IF_REDUCE_SPENDING: "You have no recent spending to build scenarios from.",
    Intent.WEALTH_PROJECTION: "Add some income, expenses or savings goals and I can project your wealth.",
    Intent.FINANCIAL_MILESTONES: "Add some income, expenses or savings goals and I can map your milestones.",
    Intent.PREDICT_SPENDING: "You haven't spent anything this month yet, so there's nothing to project.",
    Intent.COMPARE_PARTNERS: "You're not linked with a partner yet.",
    Intent.COMPARE_MONTHS: "You have no expenses {period} or the period before to compare.",
    Intent.BUDGET_STATUS: "You haven't set up any budgets yet.",
    Intent.SAVINGS_GOALS: "You haven't created any savings goals yet.",
    Intent.TOP_EXPENSES: "You have no expenses {period}.",
    Intent.TOP_CATEGORIES: "You have no expenses {period} to break down.",
    Intent.SPENDING_TRENDS: "You have no expenses in the last 6 months to show a trend.",
    Intent.DAILY_AVERAGE: "You have no expenses {period}.",
    Intent.CATEGORY_SPENDING: "You haven't spent anything on {category} {period}.",
    Intent.TOTAL_INCOME: "You haven't recorded any income {period}.",
    Intent.CURRENT_BALANCE: "You haven't recorded any income or expenses {period}.",
    Intent.SPENDING_INSIGHTS: "You haven't recorded any income or expenses {period}.",
    Intent.SAVE_MONEY: "You have no expenses {period} to look for savings in.",
    Intent.TOTAL_SPENDING: "You haven't recorded any expenses {period}.",
}
DEFAULT_EMPTY_MESSAGE = "I don't have any data to answer that yet."

TIER_LABELS = {
    scoring.Tier.EXCELLENT: "✅ excellent",
    scoring.Tier.GOOD: "🟢 good",
    scoring.Tier.ACCEPTABLE: "⚪ acceptable",
    scoring.Tier.NEEDS_IMPROVEMENT: "🟡 needs improvement",
    scoring.Tier.CRITICAL: "🔴 critical",
}

SUB_SCORE_LABELS = {
    "savings_rate": "Savings rate",
    "debt_to_income": "Debt-to-income",
    "budget_adherence": "Budget adherence",
    "emergency_fund": "Emergency fund",
    "goal_progress": "Goal progress",
}


def quick_actions(intent: Intent, **values: Optional[str]) -> List[str]:
    present = {key: value for key, value in values.items() if value}
    # A category outside the vocabulary, or one that reads as another topic, gets no category follow-up
    category = present.get("category")
    if category and not (
        is_known_category(category)
        and classify(REDUCE_CATEGORY.format(category=category)) == Intent.CATEGORY_OPTIMIZATION
    ):
        del present["category"]
    actions = []
    for template in QUICK_ACTIONS.get(intent, ()):
        try:
            actions.append(template.format(**present))
        except KeyError:
            continue
    return actions


def _data(payload: Any) -> Optional[Dict[str, Any]]:
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    return None


def _date(day: date) -> str:
    return f"{day:%b} {day.day}, {day.year}"


def _month(day: Optional[date]) -> str:
    return f"{day:%B %Y}" if day else "not within 50 years"


def _range(period: DateRange) -> str:
    return f"{period.start:%b} {period.start.day} to {period.end:%b} {period.end.day}, {period.end.year}"


def _change(change_pct: Optional[float], noun: str) -> Optional[str]:
    if change_pct is None:
        return None
    if change_pct == 0:
        return f"That's the same as {noun}."
    direction = "up" if change_pct > 0 else "down"
    return f"That's {direction} {format_percent(abs(change_pct))} from {noun}."


def _response(
    text_lines: Sequence[Optional[str]],
    kind: ResponseType,
    intent: Intent,
    sources: Optional[List[Source]] = None,
    **action_values: Optional[str],
) -> EngineResponse:
    return EngineResponse(
        text="\n".join(line for line in text_lines if line),
        type=kind,
        quick_actions=quick_actions(intent, **action_values),
        sources=sources or None,
        intent=intent,
    )


def compose_help(payload) -> EngineResponse:
    lines = ["I can answer questions about your spending, income, budgets, goals, loans and bills. Try asking:"]
    lines += [f"• {example}" for example in payload.examples]
    return _response(lines, ResponseType.TEXT, Intent.HELP)


def compose_money_tips(payload) -> EngineResponse:
    lines = ["💡 Money tips for today:"]
    lines += [f"{i}. {tip}" for i, tip in enumerate(payload.tips, 1)]
    return _response(lines, ResponseType.SUGGESTION, Intent.MONEY_TIPS)


def _sub_score_value(sub: scoring.SubScore) -> str:
    if sub.name == "debt_to_income":
        return "debt without income" if sub.value is None else format_percent(sub.value)
    if sub.name == "budget_adherence":
        return "no budgets yet" if sub.value is None else f"{format_percent(sub.value, 0)} on track"
    if sub.name == "emergency_fund":
        return f"{sub.value:.1f} months covered"
    if sub.name == "goal_progress":
        return "no goals yet" if sub.value is None else f"{format_percent(sub.value, 0)} average progress"
    return format_percent(sub.value or 0.0)


def compose_health_score(payload: scoring.HealthScore) -> EngineResponse:
    lines = [f"Your financial health score is {payload.total}/100 (grade {payload.grade})."]
    lines += [
        f"• {SUB_SCORE_LABELS[sub.name]}: {sub.score}/20 ({_sub_score_value(sub)})" for sub in payload.sub_scores
    ]
    weakest = min(payload.sub_scores, key=lambda s: s.score)
    if weakest.score < scoring.SUB_SCORE_MAX:
        lines.append(f"Biggest opportunity: {SUB_SCORE_LABELS[weakest.name].lower()}.")
    kind = ResponseType.INSIGHT if payload.total >= 70 else ResponseType.WARNING
    return _response(lines, kind, Intent.FINANCIAL_HEALTH_SCORE)


def compose_ratios(payload: scoring.FinancialRatios) -> EngineResponse:
    dti = payload.debt_to_income
    housing = payload.housing
    lines = [
        f"Based on average monthly income of {format_currency(payload.monthly_income)} "
        f"and spending of {format_currency(payload.monthly_expenses)}:",
        f"• Savings rate: {format_percent(payload.savings_rate.value)} "
        f"({TIER_LABELS[payload.savings_rate.tier]}, target {payload.savings_rate.benchmark})",
        f"• Debt-to-income: {'n/a' if dti.value is None else format_percent(dti.value)} "
        f"({TIER_LABELS[dti.tier]}, target {dti.benchmark})",
        f"• Housing: {'n/a' if housing.value is None else format_percent(housing.value)} of income "
        f"({TIER_LABELS[housing.tier]}, target {housing.benchmark})",
        f"• Emergency fund: {payload.emergency_fund.value:.1f} months "
        f"({TIER_LABELS[payload.emergency_fund.tier]}, target {payload.emergency_fund.benchmark})",
    ]
    if payload.categories:
        lines.append("Spending mix:")
        lines += [
            f"• {c.category}: {format_percent(c.share)} of spending (benchmark {format_percent(c.benchmark, 0)}, "
            f"{TIER_LABELS[c.tier]})"
            for c in payload.categories
        ]
    main = (payload.savings_rate, dti, housing, payload.emergency_fund)
    kind = ResponseType.WARNING if any(r.tier == scoring.Tier.CRITICAL for r in main) else ResponseType.INSIGHT
    return _response(lines, kind, Intent.FINANCIAL_RATIOS)


def compose_tax(payload: tax.TaxEstimate) -> EngineResponse:
    if not payload.buckets:
        lines = [f"I didn't find any potentially deductible expenses from {_range(payload.period)}.", payload.disclaimer]
        return _response(lines, ResponseType.TEXT, Intent.TAX_DEDUCTIONS)

    lines = [f"Potentially deductible expenses from {_range(payload.period)}:"]
    lines += [f"• {b.name}: {format_currency(b.total)} ({b.count} transactions)" for b in payload.buckets]
    lines.append(
        f"Total {format_currency(payload.total_deductible)}, which could save roughly "
        f"{format_currency(payload.estimated_saving)} at a {format_percent(payload.bracket_rate * 100, 0)} bracket."
    )
    lines.append(payload.disclaimer)
    return _response(lines, ResponseType.INSIGHT, Intent.TAX_DEDUCTIONS)


def compose_debt_free(payload: loans.DebtFreePlan) -> EngineResponse:
    other = payload.alternative.strategy if payload.alternative else None
    sources = [Source(c.loan_id, c.label) for c in payload.payoff_order]
    if not payload.paid_off:
        lines = [
            f"At {format_currency(payload.monthly_budget)}/month your debts of {format_currency(payload.total_debt)} "
            "won't be cleared: the payments don't keep up with the interest.",
        ]
        lines += [
            f"• Adding {format_currency(a.extra)}/month: debt-free by {_month(a.payoff_date)}"
            for a in payload.accelerations
            if a.paid_off
        ]
        return _response(lines, ResponseType.WARNING, Intent.DEBT_FREE_TIMELINE, sources, other_strategy=other)

    lines = [
        f"Using the {payload.strategy} method with {format_currency(payload.monthly_budget)}/month, you'll be "
        f"debt-free in {format_months(payload.months)} ({_month(payload.debt_free_date)}), paying "
        f"{format_currency(payload.total_interest)} in interest.",
        "Payoff order:",
    ]
    lines += [
        f"{i}. {c.label}: cleared in month {c.month} ({_month(c.payoff_date)})"
        for i, c in enumerate(payload.payoff_order, 1)
    ]
    alt = payload.alternative
    if alt is not None and alt.paid_off:
        lines.append(
            f"The {alt.strategy} method would take {format_months(alt.months)} and cost "
            f"{format_currency(alt.total_interest)} in interest."
        )
    lines += [
        f"• Adding {format_currency(a.extra)}/month: {a.months_saved} months sooner, "
        f"saving {format_currency(a.interest_saved)}"
        for a in payload.accelerations
        if a.paid_off and a.months_saved > 0
    ]
    return _response(lines, ResponseType.INSIGHT, Intent.DEBT_FREE_TIMELINE, sources, other_strategy=other)


def compose_loan_payoff(payload: loans.PayoffReport) -> EngineResponse:
    lines = [f"You owe {format_currency(payload.total_balance)} in total."]
    stuck = False
    for plan in payload.plans:
        base = plan.baseline
        header = f"{plan.label}: {format_currency(plan.balance)} at {format_percent(plan.interest_rate_annual)}."
        if base.paid_off:
            lines.append(
                f"{header} Paying {format_currency(base.monthly_payment)}/month clears it in "
                f"{format_months(base.months)} ({_month(base.payoff_date)}) with "
                f"{format_currency(base.total_interest)} interest."
            )
        else:
            stuck = True
            lines.append(
                f"{header} Your current {format_currency(base.monthly_payment)}/month doesn't cover the interest."
            )
        for scenario in plan.scenarios:
            if not scenario.paid_off:
                continue
            saved = (
                f", saving {scenario.months_saved} months and {format_currency(scenario.interest_saved)}"
                if base.paid_off
                else ""
            )
            lines.append(
                f"• +{format_currency(scenario.extra)}/month: paid off in {format_months(scenario.months)}{saved}"
            )
    sources = [Source(p.loan_id, p.label) for p in payload.plans]
    kind = ResponseType.WARNING if stuck else ResponseType.INSIGHT
    return _response(lines, kind, Intent.LOAN_PAYOFF_SCENARIO, sources)


def _due(days_until: int) -> str:
    if days_until < 0:
        return f"overdue by {-days_until} days"
    if days_until == 0:
        return "due today"
    return f"in {days_until} days"


def compose_bills(payload: spending.BillReport) -> EngineResponse:
    lines = []
    if payload.due_soon:
        lines.append(f"You have {len(payload.due_soon)} bills due in the next 30 days, totalling {format_currency(payload.due_soon_total)}:")
        lines += [
            f"• {b.name}: {format_currency(b.amount)} on {_date(b.next_due_date)} ({_due(b.days_until)})"
            for b in payload.due_soon
        ]
    else:
        nxt = payload.next_bill
        lines.append(f"Nothing is due in the next 30 days. Next up is {nxt.name} on {_date(nxt.next_due_date)}.")
    lines.append(f"Your recurring bills add up to {format_currency(payload.monthly_commitment)} per month.")
    overdue = any(b.days_until < 0 for b in payload.due_soon)
    sources = [Source(b.bill_id, b.name) for b in payload.due_soon[:MAX_SOURCES]]
    return _response(lines, ResponseType.WARNING if overdue else ResponseType.TEXT, Intent.UPCOMING_BILLS, sources)


def compose_next_payment(payload: loans.LoanSummary) -> EngineResponse:
    nxt = payload.next_payment
    if nxt is None:
        lines = [
            f"None of your loans has a due date set. You owe {format_currency(payload.total_owed)} "
            f"across {payload.active_count} active loans."
        ]
        return _response(lines, ResponseType.TEXT, Intent.NEXT_PAYMENT)

    lines = [
        f"Your next payment is {format_currency(nxt.amount)} for {nxt.label}, due {_date(nxt.due_date)} ({_due(nxt.days_until)}).",
        f"Your loan payments come to about {format_currency(payload.monthly_commitment)} per month.",
    ]
    kind = ResponseType.WARNING if nxt.days_until <= 3 else ResponseType.TEXT
    return _response(lines, kind, Intent.NEXT_PAYMENT, [Source(nxt.loan_id, nxt.label)])


def compose_loan_status(payload: loans.LoanSummary) -> EngineResponse:
    lines = [f"You have {payload.active_count} active loans."]
    if payload.total_owed > 0:
        lines.append(
            f"You owe {format_currency(payload.total_owed)}, paying about "
            f"{format_currency(payload.monthly_commitment)} per month."
        )
    if payload.total_lent > 0:
        lines.append(f"Others owe you {format_currency(payload.total_lent)}.")
    for loan in payload.loans:
        owed_by = "you owe" if loan.direction == "received" else "owed to you"
        lines.append(
            f"• {loan.label}: {format_currency(loan.remaining_balance)} {owed_by} of "
            f"{format_currency(loan.principal)} ({format_percent(loan.paid_percentage)} repaid)"
        )
    if payload.next_payment:
        nxt = payload.next_payment
        lines.append(f"Next payment: {format_currency(nxt.amount)} for {nxt.label} on {_date(nxt.due_date)}.")
    sources = [Source(l.loan_id, l.label) for l in payload.loans[:MAX_SOURCES]]
    return _response(lines, ResponseType.TEXT, Intent.LOAN_STATUS, sources)


def compose_subscriptions(payload: recurring.SubscriptionReport) -> EngineResponse:
    if not payload.candidates:
        lines = ["I didn't find any recurring subscriptions in your last 3 months of spending."]
        return _response(lines, ResponseType.TEXT, Intent.SUBSCRIPTION_ANALYSIS)

    lines = [
        f"I found {len(payload.candidates)} likely subscriptions costing "
        f"{format_approx(payload.monthly_total)}/mo ({format_approx(payload.yearly_total)}/yr):"
    ]
    lines += [
        f"• {c.name}, {format_approx(c.monthly_cost)}/mo, {format_approx(c.yearly_cost)}/yr "
        f"({format_percent(c.share_of_spend)} of spending)"
        for c in payload.candidates
    ]
    lines += [
        f"Cancelling {format_percent(p.share * 100, 0)} of them would save about "
        f"{format_currency(p.monthly_savings)}/month ({format_currency(p.yearly_savings)}/year)."
        for p in payload.projections
        if p.monthly_savings > 0
    ]
    sources = [Source(c.transaction_ids[-1], c.name) for c in payload.candidates[:MAX_SOURCES]]
    kind = ResponseType.WARNING if payload.is_high else ResponseType.INSIGHT
    return _response(lines, kind, Intent.SUBSCRIPTION_ANALYSIS, sources)


def compose_seasonal(payload: seasonal.SeasonalReport) -> EngineResponse:
    lines = [f"Over the last 12 months you spent {format_currency(payload.average)} per month on average."]
    if payload.highest is not None and payload.highest.total > 0:
        lines.append(
            f"Your most expensive month was {payload.highest.label} at {format_currency(payload.highest.total)} "
            f"({format_percent(payload.highest.variance_pct)} vs average)."
        )
    for month in payload.months:
        marker = {"high": "🔴", "elevated": "🟡", "low": "🟢"}.get(month.level)
        if marker is None:
            continue
        line = f"{marker} {month.label}: {format_currency(month.total)} ({format_percent(month.variance_pct)})"
        if month.note and month.level in ("high", "elevated"):
            line += f", often {month.note}"
        lines.append(line)
    return _response(lines, ResponseType.INSIGHT, Intent.SEASONAL_SPENDING)


def compose_category_optimization(payload: spending.CategoryOptimization) -> EngineResponse:
    lines = [
        f"You spent {format_currency(payload.amount)} on {payload.category} this month across "
        f"{payload.transaction_count} transactions (avg {format_currency(payload.average_transaction)})."
    ]
    lines += [
        f"• Cut {level.percent}%: save {format_currency(level.monthly_savings)}/month, "
        f"{format_currency(level.yearly_savings)}/year"
        for level in payload.levels
    ]
    lines.append(f"Tip: {payload.tip}")
    return _response(lines, ResponseType.SUGGESTION, Intent.CATEGORY_OPTIMIZATION)


def _reduction_line(s: spending.ReductionScenario) -> str:
    return (
        f"• Cut {format_percent(s.percent, 0)}: save {format_currency(s.monthly_savings)}/month, "
        f"{format_currency(s.yearly_savings)}/year, {format_currency(s.ten_year_value)} after 10 years at 5%"
    )


def compose_what_if(payload: spending.WhatIfReport) -> EngineResponse:
    lines = [f"You spend about {format_currency(payload.monthly_spending)} per month."]
    if payload.custom is not None:
        lines.append("Your scenario:")
        lines.append(_reduction_line(payload.custom))
        lines.append("Other options:")
    lines += [_reduction_line(s) for s in payload.scenarios]
    ten = next((s for s in payload.scenarios if s.percent == 10), None)
    if payload.goal_name and ten is not None and ten.goal_months_sooner:
        lines.append(f"A 10% cut would reach your {payload.goal_name} goal {ten.goal_months_sooner} months sooner.")
    return _response(lines, ResponseType.SUGGESTION, Intent.WHAT_IF_REDUCE_SPENDING)


def compose_wealth(payload: projections.WealthProjection) -> EngineResponse:
    lines = [
        f"Starting from {format_currency(payload.current_savings)} and adding "
        f"{format_currency(payload.monthly_contribution)} per month:"
    ]
    for scenario in payload.scenarios:
        points = ", ".join(f"{p.years}y {format_currency(p.value)}" for p in scenario.points)
        lines.append(f"• At {format_percent(scenario.annual_rate * 100, 0)}: {points}")
    for target in payload.targets:
        when = f"in {format_months(target.months)}" if target.months is not None else "not within 50 years"
        lines.append(f"{format_currency(target.target)} at 7%: {when}")
    if payload.monthly_contribution <= 0:
        lines.append("You aren't saving anything monthly right now, so only your current savings grow.")
    return _response(lines, ResponseType.INSIGHT, Intent.WEALTH_PROJECTION)


def compose_milestones(payload: projections.MilestoneReport) -> EngineResponse:
    lines = [
        f"You have {format_currency(payload.current_savings)} saved and put away about "
        f"{format_currency(payload.monthly_savings)} per month."
    ]
    for milestone in payload.milestones:
        if milestone.reached:
            lines.append(f"✅ {milestone.name}")
        elif milestone.months is not None:
            lines.append(f"• {milestone.name}: {format_months(milestone.months)} ({_month(milestone.eta)})")
        else:
            lines.append(f"• {milestone.name}: out of reach at your current savings rate")
    upcoming = payload.next_milestone
    if upcoming is not None and upcoming.months is not None:
        lines.append(f"Next up: {upcoming.name}.")
    kind = ResponseType.WARNING if payload.monthly_savings <= 0 else ResponseType.INSIGHT
    return _response(lines, kind, Intent.FINANCIAL_MILESTONES)


def compose_prediction(payload: spending.SpendingForecast) -> EngineResponse:
    lines = [
        f"You've spent {format_currency(payload.spent_so_far)} in the first {payload.days_elapsed} days. "
        f"At this pace you'll spend about {format_currency(payload.linear_projection)} this month."
    ]
    if payload.historical_average is not None:
        lines.append(
            f"Your recent monthly average is {format_currency(payload.historical_average)}, so a blended "
            f"estimate is {format_currency(payload.blended_projection)}."
        )
    if payload.is_concerning:
        lines.append(
            f"⚠️ That's {format_percent(payload.exceeds_history_pct)} above your usual month."
        )
    lines += [f"• {c.category}: ~{format_currency(c.amount)}" for c in payload.category_projections]
    kind = ResponseType.WARNING if payload.is_concerning else ResponseType.INSIGHT
    return _response(lines, kind, Intent.PREDICT_SPENDING)


def compose_partners(payload: spending.PartnerComparison) -> EngineResponse:
    me, partner = payload.me, payload.partner
    lines = [
        f"You spent {format_currency(me.total)} ({format_percent(me.share_pct)}) and your partner spent "
        f"{format_currency(partner.total)} ({format_percent(partner.share_pct)}), "
        f"{format_currency(payload.household_total)} together.",
    ]
    if payload.balanced:
        lines.append("Your spending is well balanced.")
    else:
        who = "You" if payload.higher_spender == "me" else "Your partner"
        lines.append(
            f"{who} spent {format_currency(payload.difference)} more. An even split would be "
            f"{format_currency(payload.fair_share)} each."
        )
    if me.top_categories:
        lines.append("Your top categories: " + ", ".join(c.category for c in me.top_categories))
    if partner.top_categories:
        lines.append("Your partner's top categories: " + ", ".join(c.category for c in partner.top_categories))
    return _response(lines, ResponseType.INSIGHT, Intent.COMPARE_PARTNERS)


def compose_compare_months(payload: spending.MonthComparison) -> EngineResponse:
    lines = [
        f"You spent {format_currency(payload.current_total)} from {_range(payload.current_range)}, compared with "
        f"{format_currency(payload.previous_total)} from {_range(payload.previous_range)}.",
        _change(payload.change_pct, "the previous period"),
    ]
    if payload.movers:
        lines.append("Biggest changes:")
        lines += [
            f"• {m.category}: {'+' if m.change > 0 else ''}{format_currency(m.change)}" for m in payload.movers
        ]
    rising = payload.change_pct is not None and payload.change_pct > 10
    return _response(lines, ResponseType.WARNING if rising else ResponseType.INSIGHT, Intent.COMPARE_MONTHS)


def compose_budgets(payload: spending.BudgetReport) -> EngineResponse:
    lines = []
    if payload.focus is not None:
        f = payload.focus
        lines.append(
            f"{f.category}: {format_currency(f.spent)} of {format_currency(f.budgeted)} "
            f"({format_percent(f.usage_pct)}), {format_currency(f.remaining)} left."
        )
    lines.append(
        f"You've spent {format_currency(payload.total_spent)} of {format_currency(payload.total_budgeted)} "
        f"across {len(payload.lines)} budgets ({format_currency(payload.total_remaining)} left)."
    )
    lines += [
        f"⚠️ Over budget: {l.category}, {format_currency(l.spent)} of {format_currency(l.budgeted)} "
        f"({format_percent(l.usage_pct)})"
        for l in payload.over
    ]
    lines += [f"🟡 At risk: {l.category} at {format_percent(l.usage_pct)}" for l in payload.at_risk]
    lines.append(
        f"That leaves {format_currency(payload.daily_allowance)} per day for the next {payload.days_left} days."
    )
    sources = [Source(l.budget_id, l.category) for l in (payload.over + payload.at_risk)[:MAX_SOURCES]]
    kind = ResponseType.WARNING if payload.over else ResponseType.INSIGHT
    return _response(lines, kind, Intent.BUDGET_STATUS, sources)


def compose_goals(payload: spending.GoalReport) -> EngineResponse:
    lines = [
        f"You've saved {format_currency(payload.total_saved)} of {format_currency(payload.total_target)} "
        f"({format_percent(payload.overall_progress_pct)}) across {len(payload.goals)} goals."
    ]
    for goal in payload.goals:
        line = (
            f"• {goal.name}: {format_percent(goal.progress_pct)} "
            f"({format_currency(goal.current)} of {format_currency(goal.target)})"
        )
        if goal.monthly_needed is not None:
            line += f", save {format_currency(goal.monthly_needed)}/month to finish by {_month(goal.target_date)}"
        lines.append(line)
    if payload.completed:
        lines.append(f"🎉 {len(payload.completed)} goals completed.")
    sources = [Source(g.goal_id, g.name) for g in payload.goals[:MAX_SOURCES]]
    return _response(lines, ResponseType.INSIGHT, Intent.SAVINGS_GOALS, sources)


def compose_top_expenses(payload: spending.TopExpenses, period: str) -> EngineResponse:
    lines = [f"Your biggest expenses {period}:"]
    lines += [
        f"{i}. {e.description} ({e.category}): {format_currency(e.amount)} on {_date(e.occurred_at)}, "
        f"{format_percent(e.share)} of spending"
        for i, e in enumerate(payload.items, 1)
    ]
    sources = [Source(e.transaction_id, e.description) for e in payload.items]
    return _response(lines, ResponseType.TEXT, Intent.TOP_EXPENSES, sources)


def compose_top_categories(payload: spending.CategoryBreakdown, period: str) -> EngineResponse:
    lines = [f"You spent {format_currency(payload.total)} {period}. By category:"]
    lines += [
        f"• {c.category}: {format_currency(c.amount)} ({format_percent(c.percentage)})" for c in payload.categories
    ]
    top = payload.top.category.lower() if payload.top else None
    return _response(lines, ResponseType.INSIGHT, Intent.TOP_CATEGORIES, category=top)


def compose_trends(payload: spending.SpendingTrend) -> EngineResponse:
    lines = [f"Your average monthly spending is {format_currency(payload.average)}."]
    if payload.change_vs_average is not None:
        word = {"up": "above", "down": "below"}.get(payload.direction, "in line with")
        lines.append(
            f"{payload.latest.label} came in at {format_currency(payload.latest.total)}, {word} average "
            f"({format_percent(payload.change_vs_average)})."
        )
    lines += [f"• {m.label}: {format_currency(m.total)}" for m in payload.months]
    kind = ResponseType.WARNING if payload.direction == "up" else ResponseType.INSIGHT
    return _response(lines, kind, Intent.SPENDING_TRENDS)


def compose_daily_average(payload: spending.DailyAverage, period: str) -> EngineResponse:
    lines = [
        f"You're spending {format_currency(payload.daily_average)} per day on average {period} "
        f"({format_currency(payload.total)} over {payload.days} days).",
        f"At this pace that's about {format_currency(payload.projected_month)} for the month.",
    ]
    return _response(lines, ResponseType.TEXT, Intent.DAILY_AVERAGE)


def compose_category_spending(payload: spending.CategorySpending, period: str) -> EngineResponse:
    lines = [
        f"You spent {format_currency(payload.amount)} on {payload.category} {period} "
        f"({payload.count} transactions, {format_percent(payload.share)} of your spending).",
        _change(payload.change_pct, "the period before"),
    ]
    sources = [Source(t, payload.category) for t in payload.transaction_ids[:MAX_SOURCES]]
    return _response(lines, ResponseType.TEXT, Intent.CATEGORY_SPENDING, sources, category=payload.category)


def compose_income(payload: spending.IncomeSummary, period: str) -> EngineResponse:
    lines = [f"Your income {period} is {format_currency(payload.total)} from {payload.count} deposits."]
    lines += [f"• {s.category}: {format_currency(s.amount)} ({format_percent(s.percentage)})" for s in payload.sources]
    lines.append(_change(payload.change_pct, "the period before"))
    return _response(lines, ResponseType.TEXT, Intent.TOTAL_INCOME)


def compose_balance(payload: spending.BalanceSummary, period: str) -> EngineResponse:
    lines = [
        f"Income {period}: {format_currency(payload.income)}. Expenses: {format_currency(payload.expenses)}.",
        f"Net: {format_currency(payload.net)}.",
    ]
    if payload.income > 0:
        lines.append(f"You're saving {format_percent(payload.savings_rate)} of your income.")
    if payload.net < 0:
        lines.append("⚠️ You're spending more than you earn.")
    kind = ResponseType.WARNING if payload.net < 0 else ResponseType.INSIGHT
    return _response(lines, kind, Intent.CURRENT_BALANCE)


def compose_insights(payload: spending.SpendingInsights, period: str) -> EngineResponse:
    lines = [
        f"{period.capitalize()} you earned {format_currency(payload.income)} and spent "
        f"{format_currency(payload.expenses)} (net {format_currency(payload.net)}).",
    ]
    if payload.income > 0:
        lines.append(f"Savings rate: {format_percent(payload.savings_rate)}.")
    if payload.top_categories:
        lines.append(
            "Top categories: "
            + ", ".join(f"{c.category} {format_currency(c.amount)}" for c in payload.top_categories)
        )
    lines.append(f"Projected month-end spending: {format_currency(payload.projected_month_end)}.")
    if payload.recent_average is not None:
        lines.append(
            f"Your recent monthly average is {format_currency(payload.recent_average)}."
        )
    rising = payload.projection_change_pct is not None and payload.projection_change_pct > spending.PREDICTION_WARNING_THRESHOLD
    kind = ResponseType.WARNING if payload.net < 0 or rising else ResponseType.INSIGHT
    return _response(lines, kind, Intent.SPENDING_INSIGHTS)


def compose_save_money(payload: spending.SavingPlan, period: str) -> EngineResponse:
    lines = [f"Here's where a {format_percent(payload.reduction * 100, 0)} cut would save the most, based on {period}:"]
    lines += [
        f"• {o.category}: save {format_currency(o.potential_savings)} of {format_currency(o.amount)}. {o.tip}"
        for o in payload.opportunities
    ]
    lines.append(f"Together that's {format_currency(payload.total_potential)} per month.")
    return _response(lines, ResponseType.SUGGESTION, Intent.SAVE_MONEY)


def compose_total_spending(payload: spending.SpendingSummary, period: str) -> EngineResponse:
    lines = [
        f"You spent {format_currency(payload.total)} {period} across {payload.count} transactions.",
        f"That's {format_currency(payload.daily_average)} per day on average.",
        _change(payload.change_pct, "the period before"),
    ]
    return _response(lines, ResponseType.TEXT, Intent.TOTAL_SPENDING)


_COMPOSERS: Dict[Intent, Callable[..., EngineResponse]] = {
    Intent.HELP: compose_help,
    Intent.MONEY_TIPS: compose_money_tips,
    Intent.FINANCIAL_HEALTH_SCORE: compose_health_score,
    Intent.FINANCIAL_RATIOS: compose_ratios,
    Intent.TAX_DEDUCTIONS: compose_tax,
    Intent.DEBT_FREE_TIMELINE: compose_debt_free,
    Intent.LOAN_PAYOFF_SCENARIO: compose_loan_payoff,
    Intent.UPCOMING_BILLS: compose_bills,
    Intent.NEXT_PAYMENT: compose_next_payment,
    Intent.LOAN_STATUS: compose_loan_status,
    Intent.SUBSCRIPTION_ANALYSIS: compose_subscriptions,
    Intent.SEASONAL_SPENDING: compose_seasonal,
    Intent.CATEGORY_OPTIMIZATION: compose_category_optimization,
    Intent.WHAT_IF_REDUCE_SPENDING: compose_what_if,
    Intent.WEALTH_PROJECTION: compose_wealth,
    Intent.FINANCIAL_MILESTONES: compose_milestones,
    Intent.PREDICT_SPENDING: compose_prediction,
    Intent.COMPARE_PARTNERS: compose_partners,
    Intent.COMPARE_MONTHS: compose_compare_months,
    Intent.BUDGET_STATUS: compose_budgets,
    Intent.SAVINGS_GOALS: compose_goals,
    Intent.TOP_EXPENSES: compose_top_expenses,
    Intent.TOP_CATEGORIES: compose_top_categories,
    Intent.SPENDING_TRENDS: compose_trends,
    Intent.DAILY_AVERAGE: compose_daily_average,
    Intent.CATEGORY_SPENDING: compose_category_spending,
    Intent.TOTAL_INCOME: compose_income,
    Intent.CURRENT_BALANCE: compose_balance,
    Intent.SPENDING_INSIGHTS: compose_insights,
    Intent.SAVE_MONEY: compose_save_money,
    Intent.TOTAL_SPENDING: compose_total_spending,
}

# Templates that mention the requested period
_PERIOD_AWARE = frozenset(
    {
        Intent.TOP_EXPENSES,
        Intent.TOP_CATEGORIES,
        Intent.DAILY_AVERAGE,
        Intent.CATEGORY_SPENDING,
        Intent.TOTAL_INCOME,
        Intent.CURRENT_BALANCE,
        Intent.SPENDING_INSIGHTS,
        Intent.SAVE_MONEY,
        Intent.TOTAL_SPENDING,
    }
)


def compose(intent: Intent, payload: Any, period: str = "this month") -> EngineResponse:
    """Format a calculator payload for one intent"""
    composer = _COMPOSERS[intent]
    response = composer(payload, period) if intent in _PERIOD_AWARE else composer(payload)
    response.data = _data(payload)
    return response


def compose_empty(intent: Intent, period: str = "this month", category: Optional[str] = None) -> EngineResponse:
    """Dedicated response for an intent whose aggregated data is empty"""
    template = EMPTY_MESSAGES.get(intent, DEFAULT_EMPTY_MESSAGE)
    return EngineResponse(
        text=template.format(period=period, category=category or "that category"),
        type=ResponseType.TEXT,
        quick_actions=list(EMPTY_ACTIONS),
        intent=intent,
    )


def compose_unknown(suggestions: Sequence[str]) -> EngineResponse:
    """Friendly fallback for text no pattern matched"""
    lines = [FALLBACK_TEXT] + [f"• {s}" for s in suggestions]
    return EngineResponse(
        text="\n".join(lines),
        type=ResponseType.TEXT,
        quick_actions=list(suggestions),
        intent=Intent.UNKNOWN,
    )
