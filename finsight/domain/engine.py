"""Reasoning engine - classify, aggregate, calculate, compose"""

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from finsight.config import Settings, settings as default_settings
from finsight.domain import composer, loans, projections, recurring, scoring, seasonal, spending, tax
from finsight.domain.aggregator import SNAPSHOT, Aggregator, Needs, RecordStore, default_range
from finsight.domain.classifier import classify_query
from finsight.domain.models import (
    AggregatedView,
    ChatMessage,
    DateRange,
    EngineResponse,
    Intent,
    QueryContext,
    QueryParams,
)
from finsight.domain.suggestions import fallback_suggestions, help_topics, suggest
from finsight.domain.tips import daily_rng, tips_of_the_day

logger = logging.getLogger(__name__)

Calculator = Callable[[AggregatedView, QueryParams, Settings], Any]


@dataclass(frozen=True)
class IntentHandler:
    """What an intent reads, how it is calculated and when its data counts as empty"""

    needs: Needs
    calculate: Calculator
    has_data: Callable[[AggregatedView], bool]
    uses_range: bool = False  # honour the period named in the query
    partner_needs: Optional[Needs] = None  # also aggregate the linked partner with these needs


def _always(view: AggregatedView) -> bool:
    return True


def _has_expenses(view: AggregatedView) -> bool:
    return view.expense_count > 0


def _has_series(view: AggregatedView) -> bool:
    return any(bucket.total > 0 for bucket in view.monthly_series)


def _has_debts(view: AggregatedView) -> bool:
    return bool(view.debts)


def _has_averages(view: AggregatedView) -> bool:
    return view.monthly_income > 0 or view.monthly_expenses > 0


def _extra_payment(params: QueryParams) -> Optional[float]:
    return None if params.is_percent else params.amount


def _year_to_date(view: AggregatedView) -> DateRange:
    return DateRange(view.as_of.replace(month=1, day=1), view.as_of)


_AVERAGES = Needs(monthly_averages=True, loans=True, budgets=True, goals=True)

HANDLERS: Dict[Intent, IntentHandler] = {
    Intent.HELP: IntentHandler(
        Needs(),
        lambda view, params, cfg: help_topics(),
        _always,
    ),
    Intent.MONEY_TIPS: IntentHandler(
        Needs(),
        lambda view, params, cfg: tips_of_the_day(daily_rng(view.owner_id, view.as_of), cfg.tips_per_response),
        _always,
    ),
    Intent.FINANCIAL_HEALTH_SCORE: IntentHandler(
        _AVERAGES,
        lambda view, params, cfg: scoring.health_score(view),
        lambda view: _has_averages(view) or bool(view.budgets or view.goals or view.debts),
    ),
    Intent.FINANCIAL_RATIOS: IntentHandler(
        _AVERAGES,
        lambda view, params, cfg: scoring.financial_ratios(view),
        _has_averages,
    ),
    Intent.TAX_DEDUCTIONS: IntentHandler(
        Needs(year_to_date=True),
        lambda view, params, cfg: tax.estimate_deductions(
            view.window_transactions, _year_to_date(view), cfg.assumed_tax_bracket
        ),
        lambda view: bool(view.window_transactions),
    ),
    Intent.DEBT_FREE_TIMELINE: IntentHandler(
        Needs(loans=True),
        lambda view, params, cfg: loans.debt_free_plan(
            view.loans,
            view.as_of,
            params.strategy,
            _extra_payment(params) or 0.0,
            max_periods=cfg.max_amortization_periods,
        ),
        _has_debts,
    ),
    Intent.LOAN_PAYOFF_SCENARIO: IntentHandler(
        Needs(loans=True),
        lambda view, params, cfg: loans.payoff_scenarios(
            view.loans, view.as_of, _extra_payment(params), max_periods=cfg.max_amortization_periods
        ),
        _has_debts,
    ),
    Intent.UPCOMING_BILLS: IntentHandler(
        Needs(bills=True),
        lambda view, params, cfg: spending.upcoming_bills(view),
        lambda view: bool(view.bills),
    ),
    Intent.NEXT_PAYMENT: IntentHandler(
        Needs(loans=True),
        lambda view, params, cfg: loans.loan_status(view.loans, view.as_of),
        _has_debts,
    ),
    Intent.LOAN_STATUS: IntentHandler(
        Needs(loans=True),
        lambda view, params, cfg: loans.loan_status(view.loans, view.as_of),
        lambda view: any(loan.is_active for loan in view.loans),
    ),
    Intent.SUBSCRIPTION_ANALYSIS: IntentHandler(
        Needs(trailing_months=recurring.WINDOW_MONTHS),
        lambda view, params, cfg: recurring.detect_subscriptions(
            view.window_transactions, tolerance=cfg.subscription_amount_tolerance
        ),
        lambda view: bool(view.window_transactions),
    ),
    Intent.SEASONAL_SPENDING: IntentHandler(
        Needs(series_months=seasonal.SERIES_MONTHS),
        lambda view, params, cfg: seasonal.seasonal_analysis(view.monthly_series),
        _has_series,
    ),
    Intent.CATEGORY_OPTIMIZATION: IntentHandler(
        Needs(totals=True, expense_list=True, by_category=True),
        lambda view, params, cfg: spending.category_optimization(view, params.category),
        lambda view: bool(view.transactions),
    ),
    Intent.WHAT_IF_REDUCE_SPENDING: IntentHandler(
        Needs(monthly_averages=True, goals=True),
        lambda view, params, cfg: spending.what_if_reduce(view, params.amount, params.is_percent),
        lambda view: view.monthly_expenses > 0,
    ),
    Intent.WEALTH_PROJECTION: IntentHandler(
        Needs(monthly_averages=True, goals=True),
        lambda view, params, cfg: projections.wealth_projection(view, cfg.max_amortization_periods),
        lambda view: _has_averages(view) or view.liquid_savings > 0,
    ),
    Intent.FINANCIAL_MILESTONES: IntentHandler(
        Needs(monthly_averages=True, goals=True),
        lambda view, params, cfg: projections.financial_milestones(view, cfg.max_amortization_periods),
        lambda view: _has_averages(view) or view.liquid_savings > 0,
    ),
    Intent.PREDICT_SPENDING: IntentHandler(
        Needs(totals=True, categories=True, series_months=4),
        lambda view, params, cfg: spending.predict_spending(view),
        _has_expenses,
    ),
    Intent.COMPARE_PARTNERS: IntentHandler(
        Needs(totals=True, categories=True, partner=True),
        lambda view, params, cfg: spending.compare_partners(view, view.partner_view),
        lambda view: view.partner_id is not None,
        uses_range=True,
        partner_needs=Needs(totals=True, categories=True),
    ),
    Intent.COMPARE_MONTHS: IntentHandler(
        Needs(totals=True, previous=True, categories=True),
        lambda view, params, cfg: spending.compare_months(view),
        lambda view: view.expense_count > 0 or view.previous_expenses > 0,
        uses_range=True,
    ),
    Intent.BUDGET_STATUS: IntentHandler(
        Needs(budgets=True),
        lambda view, params, cfg: spending.budget_status(view, params.category),
        lambda view: bool(view.budgets),
    ),
    Intent.SAVINGS_GOALS: IntentHandler(
        Needs(goals=True),
        lambda view, params, cfg: spending.savings_goals(view),
        lambda view: bool(view.goals),
    ),
    Intent.TOP_EXPENSES: IntentHandler(
        Needs(totals=True, expense_list=True),
        lambda view, params, cfg: spending.top_expenses(view),
        _has_expenses,
        uses_range=True,
    ),
    Intent.TOP_CATEGORIES: IntentHandler(
        Needs(totals=True, categories=True),
        lambda view, params, cfg: spending.top_categories(view),
        _has_expenses,
        uses_range=True,
    ),
    Intent.SPENDING_TRENDS: IntentHandler(
        Needs(series_months=6),
        lambda view, params, cfg: spending.spending_trends(view),
        _has_series,
    ),
    Intent.DAILY_AVERAGE: IntentHandler(
        Needs(totals=True),
        lambda view, params, cfg: spending.daily_average(view),
        _has_expenses,
        uses_range=True,
    ),
    Intent.CATEGORY_SPENDING: IntentHandler(
        Needs(totals=True, previous=True, categories=True, expense_list=True, by_category=True),
        lambda view, params, cfg: spending.category_spending(view, params.category),
        lambda view: bool(view.transactions),
        uses_range=True,
    ),
    Intent.TOTAL_INCOME: IntentHandler(
        Needs(totals=True, previous=True, income_categories=True),
        lambda view, params, cfg: spending.income_summary(view),
        lambda view: view.income_count > 0,
        uses_range=True,
    ),
    Intent.CURRENT_BALANCE: IntentHandler(
        Needs(totals=True),
        lambda view, params, cfg: spending.balance_summary(view),
        lambda view: view.has_transactions,
        uses_range=True,
    ),
    Intent.SPENDING_INSIGHTS: IntentHandler(
        Needs(totals=True, categories=True, series_months=4),
        lambda view, params, cfg: spending.spending_insights(view),
        lambda view: view.has_transactions,
        uses_range=True,
    ),
    Intent.SAVE_MONEY: IntentHandler(
        Needs(totals=True, categories=True),
        lambda view, params, cfg: spending.saving_opportunities(view),
        _has_expenses,
        uses_range=True,
    ),
    Intent.TOTAL_SPENDING: IntentHandler(
        Needs(totals=True, previous=True),
        lambda view, params, cfg: spending.spending_summary(view),
        _has_expenses,
        uses_range=True,
    ),
}

# Intents that cannot run without a category fall back to their broader sibling
CATEGORY_FALLBACKS = {
    Intent.CATEGORY_SPENDING: Intent.TOTAL_SPENDING,
    Intent.CATEGORY_OPTIMIZATION: Intent.SAVE_MONEY,
}


class ReasoningEngine:
    """
    Answers natural-language finance questions from one owner's records.

    Every answer is a pure function of the question, the records the store
    returns and the injected clock.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], date] = date.today,
        config: Optional[Settings] = None,
        handlers: Optional[Dict[Intent, IntentHandler]] = None,
    ):
        self.aggregator = Aggregator(store)
        self.clock = clock
        self.config = config or default_settings
        self.handlers = handlers or HANDLERS

    def answer(
        self,
        owner_id: str,
        text: str,
        history: Optional[Sequence[ChatMessage]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EngineResponse:
        """
        Answer one query.

        Raises:
            DataUnavailable: the record store could not be read
            QueryCancelled: cancel_event was set while records were being read
        """
        as_of = self.clock()
        classification = classify_query(text, as_of, history)
        intent = classification.intent
        params = classification.params
        context = QueryContext(
            raw_text=text,
            prior_messages=list(history or []),
            resolved_intent=intent,
            date_range=params.date_range,
        )
        logger.debug(
            "Answering query",
            extra={"intent": context.resolved_intent.value, "history_turns": len(context.prior_messages)},
        )

        if intent == Intent.UNKNOWN:
            logger.info("Unrecognized query", extra={"owner_id": owner_id})
            return composer.compose_unknown(fallback_suggestions(classification.text))

        if intent in CATEGORY_FALLBACKS and not params.category:
            intent = CATEGORY_FALLBACKS[intent]
            context.resolved_intent = intent

        handler = self.handlers[intent]
        date_range = params.date_range if handler.uses_range else None
        period = params.period_label if handler.uses_range else "this month"

        view = self.aggregator.aggregate(
            owner_id,
            intent,
            date_range,
            needs=handler.needs,
            as_of=as_of,
            category=params.category,
            cancel_event=cancel_event,
        )

        if not handler.has_data(view):
            return composer.compose_empty(intent, period, params.category)

        if handler.partner_needs is not None:
            view.partner_view = self.aggregator.aggregate(
                view.partner_id,
                intent,
                view.date_range,
                needs=handler.partner_needs,
                as_of=as_of,
                cancel_event=cancel_event,
            )

        payload = handler.calculate(view, params, self.config)

        return composer.compose(intent, payload, period)

    def suggestions(self, owner_id: str, limit: Optional[int] = None) -> List[str]:
        """Personalized follow-up questions built from a snapshot of the owner's records"""
        as_of = self.clock()
        view = self.aggregator.aggregate(
            owner_id,
            Intent.UNKNOWN,
            default_range(as_of),
            needs=SNAPSHOT,
            as_of=as_of,
        )
        return suggest(view, self.config.suggestion_limit if limit is None else limit)
