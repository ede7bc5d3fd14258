"""Tax-deduction estimator - an estimate from keyword buckets, not tax advice"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from finsight.domain.models import DateRange, Transaction

DEFAULT_BRACKET_RATE = 0.22

# Checked in order; a transaction lands in the first bucket it matches
DEDUCTION_BUCKETS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Medical & health", ("health", "medical", "pharmacy", "doctor", "dental", "hospital")),
    ("Home office", ("home office", "office supplies", "coworking")),
    ("Charitable donations", ("charity", "donation", "church", "nonprofit")),
    ("Education", ("education", "tuition", "course", "books")),
    ("Childcare", ("childcare", "daycare")),
)

DISCLAIMER = "This is a rough estimate, not tax advice. Check with a tax professional before filing."


@dataclass(frozen=True)
class DeductionBucket:
    name: str
    total: float
    count: int
    estimated_saving: float
    transaction_ids: Tuple[str, ...]


@dataclass
class TaxEstimate:
    period: DateRange
    buckets: List[DeductionBucket]
    total_deductible: float
    estimated_saving: float
    bracket_rate: float
    disclaimer: str = DISCLAIMER


def deduction_bucket_for(txn: Transaction) -> Optional[str]:
    """Bucket name for a transaction, matching the category before the description"""
    for text in (txn.category.lower(), txn.description.lower()):
        for name, keywords in DEDUCTION_BUCKETS:
            if any(keyword in text for keyword in keywords):
                return name
    return None


def estimate_deductions(
    transactions: Sequence[Transaction],
    period: DateRange,
    bracket_rate: float = DEFAULT_BRACKET_RATE,
) -> TaxEstimate:
    """Sum potentially deductible expenses per bucket and estimate saving = sum x bracket rate"""
    matched = {name: [] for name, _ in DEDUCTION_BUCKETS}
    for txn in transactions:
        if not txn.is_expense or not period.contains(txn.occurred_at):
            continue
        bucket = deduction_bucket_for(txn)
        if bucket:
            matched[bucket].append(txn)

    buckets = []
    for name, _ in DEDUCTION_BUCKETS:
        txns = matched[name]
        if not txns:
            continue
        total = round(sum(t.amount for t in txns), 2)
        buckets.append(
            DeductionBucket(
                name=name,
                total=total,
                count=len(txns),
                estimated_saving=round(total * bracket_rate, 2),
                transaction_ids=tuple(t.id for t in txns),
            )
        )

    total_deductible = round(sum(b.total for b in buckets), 2)
    return TaxEstimate(
        period=period,
        buckets=buckets,
        total_deductible=total_deductible,
        estimated_saving=round(total_deductible * bracket_rate, 2),
        bracket_rate=bracket_rate,
    )
