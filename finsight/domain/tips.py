"""Tips of the day - rotating content picked with an explicit RNG"""

import random
from dataclasses import dataclass
from datetime import date
from typing import List

MONEY_TIPS = (
    "Pay yourself first: move savings out on payday before you spend.",
    "Keep three to six months of expenses in an emergency fund.",
    "Review subscriptions every quarter and cancel what you no longer use.",
    "Use the 50/30/20 rule: needs, wants, then savings and debt.",
    "Pay more than the minimum on your highest-interest debt first.",
    "Automate bill payments to avoid late fees.",
    "Wait 48 hours before any non-essential purchase over $50.",
    "Plan meals for the week to cut grocery waste.",
    "Compare insurance quotes once a year.",
    "Put windfalls like bonuses or refunds straight toward a goal.",
    "Negotiate recurring bills such as internet and phone plans.",
    "Track every expense for one month to find leaks.",
    "Set a separate savings goal for each big purchase.",
    "Buy generic brands for staples.",
    "Use cash envelopes for categories you tend to overspend in.",
    "Increase your savings rate by 1% every time your income rises.",
    "Check your budget weekly, not just at the end of the month.",
    "Keep credit card balances low relative to their limits.",
    "Plan for annual expenses by saving a little each month.",
    "Celebrate milestones with small, planned rewards.",
)


@dataclass
class TipSelection:
    tips: List[str]


def daily_rng(owner_id: str, day: date) -> random.Random:
    """RNG seeded per owner and day, so the same tips show all day"""
    return random.Random(f"{owner_id}:{day.isoformat()}")


def tips_of_the_day(rng: random.Random, count: int = 5) -> TipSelection:
    return TipSelection(tips=rng.sample(MONEY_TIPS, k=min(max(count, 0), len(MONEY_TIPS))))
