"""Suggested questions - personalized from an owner's snapshot, padded with generic ones"""

import calendar
import re
from dataclasses import dataclass
from typing import List

from finsight.domain.categories import is_known_category
from finsight.domain.classifier import classify
from finsight.domain.models import AggregatedView, Intent

DEFAULT_LIMIT = 6

HELP_EXAMPLES = (
    "How much did I spend this month?",
    "How much did I spend on groceries last month?",
    "Compare with last month",
    "Am I over budget?",
    "When will I be debt-free?",
    "Analyze my subscriptions",
    "What's my financial health score?",
    "Predict my spending for this month",
    "Give me a money tip",
)

GENERIC_SUGGESTIONS = (
    "How much did I spend this month?",
    "Show spending by category",
    "Compare with last month",
    "What's my financial health score?",
    "How can I save money?",
    "Analyze my subscriptions",
    "Show my spending trends",
    "Give me a money tip",
)


@dataclass
class HelpTopics:
    examples: List[str]


def help_topics() -> HelpTopics:
    return HelpTopics(examples=list(HELP_EXAMPLES))


def _personalized(view: AggregatedView) -> List[str]:
    """Questions about the owner's own largest category, costliest month, bills, budgets, goals and debt"""
    candidates = []

    if view.expense_categories:
        top = view.expense_categories[0].category
        if is_known_category(top):
            candidates.append((f"How much did I spend on {top.lower()} this month?", Intent.CATEGORY_SPENDING))

    if any(b.total > 0 for b in view.monthly_series):
        peak = max(reversed(view.monthly_series), key=lambda b: b.total)
        candidates.append(
            (f"How does {calendar.month_name[peak.month]} compare in my seasonal spending?", Intent.SEASONAL_SPENDING)
        )

    if view.bills:
        soonest = min(view.bills, key=lambda b: (b.next_due_date, b.name, b.id))
        candidates.append((f"When is my {soonest.name.lower()} bill due?", Intent.UPCOMING_BILLS))

    stretched = sorted((b for b in view.budgets if b.is_over_budget), key=lambda b: (-b.usage_ratio, b.id))
    if stretched:
        candidates.append((f"Am I over budget on {stretched[0].category.lower()}?", Intent.BUDGET_STATUS))

    open_goals = sorted((g for g in view.goals if g.remaining > 0), key=lambda g: (-g.display_progress, g.id))
    if open_goals:
        candidates.append((f"How close am I to my {open_goals[0].name.lower()} goal?", Intent.SAVINGS_GOALS))

    if view.debts:
        candidates.append(("When will I be debt-free?", Intent.DEBT_FREE_TIMELINE))

    # Record names are free text; drop any question they would steer to another intent
    return [question for question, intent in candidates if classify(question) == intent]


def suggest(view: AggregatedView, limit: int = DEFAULT_LIMIT) -> List[str]:
    """
    Suggested questions for one owner.

    Requirements:
    - Deterministic for the same snapshot
    - Personalized questions first, then generic ones, without duplicates
    - Every suggestion resolves to a known intent
    """
    suggestions: List[str] = []
    for question in _personalized(view) + list(GENERIC_SUGGESTIONS):
        if question not in suggestions:
            suggestions.append(question)
    return suggestions[: max(limit, 0)]


FALLBACK_LIMIT = 3
DEFAULT_FALLBACK = (
    "How much did I spend this month?",
    "What's my current balance?",
    "Give me spending insights",
)

# Nudges for text no intent matched, keyed by the loose topic it mentions
FALLBACK_TOPICS = (
    (
        re.compile(r"\b(?:money|costs?|price|paid|purchases?|bought)\b"),
        ("How much did I spend this month?", "Show my top expenses", "Show spending by category"),
    ),
    (
        re.compile(r"\b(?:saved|savings|left|afford|cushion)\b"),
        ("What's my current balance?", "How are my savings goals doing?", "What are my financial milestones?"),
    ),
    (
        re.compile(r"\b(?:payments?|pay|owing|credit|mortgage)\b"),
        ("Show my loans", "When is my next payment?", "When will I be debt-free?"),
    ),
    (
        re.compile(r"\b(?:limits?|overspend(?:ing)?|plan|planning)\b"),
        ("Show my budgets", "Predict my spending for this month", "How can I save money?"),
    ),
    (
        re.compile(r"\b(?:job|work|wages?|paycheque|raise)\b"),
        ("What's my income this month?", "What's my savings rate?", "What's my current balance?"),
    ),
)


def fallback_suggestions(text: str, limit: int = FALLBACK_LIMIT) -> List[str]:
    """Static suggestions for an unrecognized query, steered by any topic words it contains"""
    lowered = text.casefold()
    for pattern, questions in FALLBACK_TOPICS:
        if pattern.search(lowered):
            return list(questions[:limit])
    return list(DEFAULT_FALLBACK[:limit])
