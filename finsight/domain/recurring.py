"""Subscription detection - near-identical charges recurring roughly monthly"""

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Sequence, Tuple

from finsight.domain.models import Transaction

WINDOW_MONTHS = 3
MIN_OCCURRENCES = 3
MIN_GAP_DAYS = 25
MAX_GAP_DAYS = 35
DEFAULT_AMOUNT_TOLERANCE = 0.05
CANCEL_SHARES = (0.25, 0.50)
HIGH_MONTHLY_TOTAL = 200.0

_NOISE_RE = re.compile(r"[^a-z\s]")


@dataclass(frozen=True)
class SubscriptionCandidate:
    name: str
    key: str
    category: str
    monthly_cost: float
    yearly_cost: float
    occurrences: int
    last_charged: date
    next_expected: date
    share_of_spend: float
    transaction_ids: Tuple[str, ...]


@dataclass(frozen=True)
class CancelProjection:
    share: float
    monthly_savings: float
    yearly_savings: float


@dataclass
class SubscriptionReport:
    candidates: List[SubscriptionCandidate]
    monthly_total: float
    yearly_total: float
    window_spend: float
    projections: List[CancelProjection]

    @property
    def is_high(self) -> bool:
        return self.monthly_total > HIGH_MONTHLY_TOTAL


def subscription_key(txn: Transaction) -> str:
    """Description lower-cased without digits or punctuation, else the category"""
    key = " ".join(_NOISE_RE.sub(" ", txn.description.lower()).split())
    return key or txn.category.strip().lower()


def _is_monthly(charges: Sequence[Transaction]) -> bool:
    gaps = [(later.occurred_at - earlier.occurred_at).days for earlier, later in zip(charges, charges[1:])]
    return all(MIN_GAP_DAYS <= gap <= MAX_GAP_DAYS for gap in gaps)


def _is_stable(charges: Sequence[Transaction], mean: float, tolerance: float) -> bool:
    return all(abs(c.amount - mean) <= mean * tolerance for c in charges)


def detect_subscriptions(
    transactions: Sequence[Transaction],
    *,
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
    min_occurrences: int = MIN_OCCURRENCES,
) -> SubscriptionReport:
    """
    Flag likely subscriptions in a window of expense transactions.

    Requirements:
    - Group by normalized description key
    - At least min_occurrences charges
    - Every charge within tolerance of the group mean
    - Every gap between consecutive charges 25-35 days
    """
    expenses = [t for t in transactions if t.is_expense]
    window_spend = round(sum(t.amount for t in expenses), 2)

    groups: Dict[str, List[Transaction]] = defaultdict(list)
    for txn in expenses:
        groups[subscription_key(txn)].append(txn)

    candidates = []
    for key, charges in sorted(groups.items()):
        if len(charges) < min_occurrences:
            continue
        charges = sorted(charges, key=lambda t: (t.occurred_at, t.id))
        mean = sum(c.amount for c in charges) / len(charges)
        if mean <= 0 or not _is_stable(charges, mean, tolerance) or not _is_monthly(charges):
            continue

        latest = charges[-1]
        span = (latest.occurred_at - charges[0].occurred_at).days
        average_gap = round(span / (len(charges) - 1))
        group_total = sum(c.amount for c in charges)
        candidates.append(
            SubscriptionCandidate(
                name=latest.description.strip() or latest.category.strip() or key,
                key=key,
                category=latest.category,
                monthly_cost=round(mean, 2),
                yearly_cost=round(mean * 12, 2),
                occurrences=len(charges),
                last_charged=latest.occurred_at,
                next_expected=latest.occurred_at + timedelta(days=average_gap),
                share_of_spend=round(group_total / window_spend * 100, 2) if window_spend > 0 else 0.0,
                transaction_ids=tuple(c.id for c in charges),
            )
        )

    candidates.sort(key=lambda c: (-c.monthly_cost, c.name))
    monthly_total = round(sum(c.monthly_cost for c in candidates), 2)
    projections = [
        CancelProjection(share, round(monthly_total * share, 2), round(monthly_total * share * 12, 2))
        for share in CANCEL_SHARES
    ]
    return SubscriptionReport(
        candidates=candidates,
        monthly_total=monthly_total,
        yearly_total=round(monthly_total * 12, 2),
        window_spend=window_spend,
        projections=projections,
    )
