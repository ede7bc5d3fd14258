"""Unit tests for the reasoning engine pipeline"""

import re
import pytest
import threading
from datetime import date
from finsight.domain import spending
from finsight.domain.aggregator import Needs
from finsight.domain.engine import HANDLERS, IntentHandler, ReasoningEngine
from finsight.domain.exceptions import DataUnavailable, QueryCancelled
from finsight.domain.models import ChatMessage, Intent, ResponseType
from tests.factories import AS_OF, OWNER, InMemoryRecordStore, expense

ONE_PER_INTENT = [
    ("What can you do?", Intent.HELP),
    ("Give me a money tip", Intent.MONEY_TIPS),
    ("What's my financial health score?", Intent.FINANCIAL_HEALTH_SCORE),
    ("What's my debt-to-income ratio?", Intent.FINANCIAL_RATIOS),
    ("Any tax deductions I can claim?", Intent.TAX_DEDUCTIONS),
    ("When will I be debt-free?", Intent.DEBT_FREE_TIMELINE),
    ("What if I pay $200 extra on my car loan?", Intent.LOAN_PAYOFF_SCENARIO),
    ("Show my upcoming bills", Intent.UPCOMING_BILLS),
    ("When is my next payment?", Intent.NEXT_PAYMENT),
    ("Show my loans", Intent.LOAN_STATUS),
    ("Analyze my subscriptions", Intent.SUBSCRIPTION_ANALYSIS),
    ("What are my seasonal spending patterns?", Intent.SEASONAL_SPENDING),
    ("How can I reduce my dining costs?", Intent.CATEGORY_OPTIMIZATION),
    ("What if I cut my spending by 10%?", Intent.WHAT_IF_REDUCE_SPENDING),
    ("What will my net worth be in 10 years?", Intent.WEALTH_PROJECTION),
    ("What are my financial milestones?", Intent.FINANCIAL_MILESTONES),
    ("Predict my spending for this month", Intent.PREDICT_SPENDING),
    ("Who spent more, me or my partner?", Intent.COMPARE_PARTNERS),
    ("Compare with last month", Intent.COMPARE_MONTHS),
    ("Am I over budget?", Intent.BUDGET_STATUS),
    ("How are my savings goals doing?", Intent.SAVINGS_GOALS),
    ("Show my top expenses", Intent.TOP_EXPENSES),
    ("Show spending by category", Intent.TOP_CATEGORIES),
    ("Show my spending trends", Intent.SPENDING_TRENDS),
    ("What's my daily average?", Intent.DAILY_AVERAGE),
    ("How much did I spend on groceries last month?", Intent.CATEGORY_SPENDING),
    ("What's my income this month?", Intent.TOTAL_INCOME),
    ("What's my current balance?", Intent.CURRENT_BALANCE),
    ("Give me spending insights", Intent.SPENDING_INSIGHTS),
    ("How can I save money?", Intent.SAVE_MONEY),
    ("How much did I spend this month?", Intent.TOTAL_SPENDING),
]

NOT_A_NUMBER = re.compile(r"\b(?:nan|inf|infinity)\b", re.IGNORECASE)


def test_every_intent_has_a_handler():
    """Test the handler table covers every answerable intent"""
    assert set(HANDLERS) == set(Intent) - {Intent.UNKNOWN}
    assert {intent for _, intent in ONE_PER_INTENT} == set(HANDLERS)


@pytest.mark.parametrize("text,intent", ONE_PER_INTENT)
def test_new_owner_gets_a_clean_answer(text: str, intent: Intent):
    """Test an owner with no records gets readable text for every intent"""
    engine = ReasoningEngine(InMemoryRecordStore(), clock=lambda: AS_OF)

    response = engine.answer(OWNER, text)

    assert response.intent == intent
    assert response.text
    assert not NOT_A_NUMBER.search(response.text)
    assert response.quick_actions


@pytest.mark.parametrize("text,intent", ONE_PER_INTENT)
def test_household_answers(reasoning_engine: ReasoningEngine, text: str, intent: Intent):
    """Test every intent answers from a populated household without NaN or infinity"""
    response = reasoning_engine.answer(OWNER, text)

    assert response.intent == intent
    assert not NOT_A_NUMBER.search(response.text)
    assert response.type in set(ResponseType)


def test_total_spending(reasoning_engine: ReasoningEngine):
    """Test this month's spending total"""
    response = reasoning_engine.answer(OWNER, "How much did I spend this month?")

    assert response.text.startswith("You spent $1,895.99 this month across 4 transactions.")
    assert response.type == ResponseType.TEXT
    assert response.data["total"] == pytest.approx(1895.99)


def test_category_spending_last_month(reasoning_engine: ReasoningEngine):
    """Test category and period are both honoured"""
    response = reasoning_engine.answer(OWNER, "How much did I spend on groceries last month?")

    assert "$450.00 on groceries last month" in response.text
    assert [s.id for s in response.sources] == ["e5"]


def test_follow_up_question(reasoning_engine: ReasoningEngine):
    """Test a short follow-up reuses the previous question's topic"""
    history = [ChatMessage(role="user", text="How much did I spend on groceries")]

    response = reasoning_engine.answer(OWNER, "and last month?", history=history)

    assert response.intent == Intent.CATEGORY_SPENDING
    assert "$450.00 on groceries last month" in response.text


def test_category_intent_without_category_falls_back(reasoning_engine: ReasoningEngine):
    """Test a category question without a usable category answers the overall total"""
    response = reasoning_engine.answer(OWNER, "How much did I spend for that?")

    assert response.intent == Intent.TOTAL_SPENDING


def test_partner_comparison(reasoning_engine: ReasoningEngine):
    """Test both owners' spending over the same period"""
    response = reasoning_engine.answer(OWNER, "Who spent more, me or my partner?")

    assert "You spent $1,895.99" in response.text
    assert "your partner spent $250.00" in response.text
    assert response.data["higher_spender"] == "me"


def test_budget_warning(reasoning_engine: ReasoningEngine):
    """Test an overspent budget is a warning"""
    response = reasoning_engine.answer(OWNER, "Am I over budget?")

    assert response.type == ResponseType.WARNING
    assert "Over budget: Groceries" in response.text


def test_debt_free_offers_other_strategy(reasoning_engine: ReasoningEngine):
    """Test the debt plan suggests comparing the other strategy"""
    response = reasoning_engine.answer(OWNER, "When will I be debt-free?")

    assert "Compare the snowball strategy" in response.quick_actions
    assert response.data["strategy"] == "avalanche"


def test_subscription_scenario():
    """Test a stable monthly charge is reported with rounded costs"""
    store = InMemoryRecordStore(
        transactions=[
            expense("f1", 200, "Food", date(2024, 1, 5)),
            expense("f2", 200, "Food", date(2024, 2, 5)),
            expense("f3", 205, "Food", date(2024, 3, 5)),
        ]
    )
    engine = ReasoningEngine(store, clock=lambda: date(2024, 3, 31))

    response = engine.answer(OWNER, "Analyze my subscriptions")

    assert "~$200/mo, ~$2,420/yr" in response.text
    assert response.type == ResponseType.WARNING


def test_unknown_query_never_reads_records(household_store: InMemoryRecordStore):
    """Test unrecognized text gets three suggestions without touching the store"""
    engine = ReasoningEngine(household_store, clock=lambda: AS_OF)

    response = engine.answer(OWNER, "Tell me a joke")

    assert response.intent == Intent.UNKNOWN
    assert response.type == ResponseType.TEXT
    assert len(response.quick_actions) == 3
    assert household_store.calls == []


def test_help_never_reads_records(household_store: InMemoryRecordStore):
    """Test help is answered without records"""
    ReasoningEngine(household_store, clock=lambda: AS_OF).answer(OWNER, "help")

    assert household_store.calls == []


def test_answers_are_deterministic(reasoning_engine: ReasoningEngine):
    """Test the same question on the same day gives the same answer"""
    for text in ("Give me a money tip", "What's my financial health score?", "Predict my spending for this month"):
        assert reasoning_engine.answer(OWNER, text) == reasoning_engine.answer(OWNER, text)


def test_store_failure_propagates():
    """Test DataUnavailable reaches the caller"""
    engine = ReasoningEngine(InMemoryRecordStore(fail=True), clock=lambda: AS_OF)

    with pytest.raises(DataUnavailable):
        engine.answer(OWNER, "How much did I spend this month?")


def test_cancelled_query(household_store: InMemoryRecordStore):
    """Test a cancel event aborts the query"""
    cancel = threading.Event()
    cancel.set()
    engine = ReasoningEngine(household_store, clock=lambda: AS_OF)

    with pytest.raises(QueryCancelled):
        engine.answer(OWNER, "How much did I spend this month?", cancel_event=cancel)


def test_suggestions_are_personalized(reasoning_engine: ReasoningEngine):
    """Test suggestions lead with the owner's own records"""
    suggestions = reasoning_engine.suggestions(OWNER, limit=8)

    assert suggestions[0] == "How much did I spend on rent this month?"
    assert "Am I over budget on groceries?" in suggestions
    assert "When will I be debt-free?" in suggestions
    assert len(suggestions) == 8


def test_suggestions_default_limit(reasoning_engine: ReasoningEngine):
    """Test the configured limit applies when none is given"""
    assert len(reasoning_engine.suggestions(OWNER)) == 6


def test_category_word_inside_another_category_is_not_counted():
    """Test spending on "Party supplies" is not reported as spending on art"""
    store = InMemoryRecordStore(transactions=[expense("p1", 500, "Party supplies", date(2024, 3, 10))])
    engine = ReasoningEngine(store, clock=lambda: AS_OF)

    response = engine.answer(OWNER, "How much did I spend on art?")

    assert response.intent == Intent.CATEGORY_SPENDING
    assert "$500.00" not in response.text
    assert "You haven't spent anything on art" in response.text


def test_partner_view_comes_from_the_handler_table(household_store: InMemoryRecordStore):
    """Test any handler declaring partner needs gets the partner's view, without engine changes"""
    handlers = dict(HANDLERS)
    handlers[Intent.TOTAL_SPENDING] = IntentHandler(
        Needs(totals=True, partner=True),
        lambda view, params, cfg: spending.spending_summary(view.partner_view),
        lambda view: view.partner_id is not None,
        uses_range=True,
        partner_needs=Needs(totals=True, previous=True),
    )
    engine = ReasoningEngine(household_store, clock=lambda: AS_OF, handlers=handlers)

    response = engine.answer(OWNER, "How much did I spend this month?")

    assert "$250.00" in response.text


def test_partner_not_aggregated_without_link():
    """Test the partner fetch is skipped when no partner is linked"""
    store = InMemoryRecordStore(transactions=[expense("e1", 40, "Dining", date(2024, 3, 3))])
    engine = ReasoningEngine(store, clock=lambda: AS_OF)

    response = engine.answer(OWNER, "Who spent more, me or my partner?")

    assert response.text == "You're not linked with a partner yet."
    assert store.calls.count("transactions") <= 1
