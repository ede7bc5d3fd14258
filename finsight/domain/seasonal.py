"""Seasonal spending analysis over a zero-filled 12-month series"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from finsight.domain.models import MonthBucket

SERIES_MONTHS = 12
HIGH_THRESHOLD = 15.0
ELEVATED_THRESHOLD = 5.0
LOW_THRESHOLD = -15.0

MONTH_NOTES = {
    1: "post-holiday bills and New Year resets",
    7: "summer vacations and travel",
    8: "back-to-school shopping",
    11: "Black Friday and early holiday shopping",
    12: "holiday gifts, travel and celebrations",
}


@dataclass(frozen=True)
class SeasonalMonth:
    year: int
    month: int
    label: str
    total: float
    variance_pct: float
    level: str  # high | elevated | normal | low
    note: Optional[str]


@dataclass
class SeasonalReport:
    months: List[SeasonalMonth]
    average: float
    highest: Optional[SeasonalMonth]
    lowest: Optional[SeasonalMonth]

    @property
    def high_months(self) -> List[SeasonalMonth]:
        return [m for m in self.months if m.level == "high"]


def _level(variance_pct: float) -> str:
    if variance_pct > HIGH_THRESHOLD:
        return "high"
    elif variance_pct > ELEVATED_THRESHOLD:
        return "elevated"
    elif variance_pct < LOW_THRESHOLD:
        return "low"
    return "normal"


def seasonal_analysis(series: Sequence[MonthBucket]) -> SeasonalReport:
    """
    Per-month variance from the series mean.

    Months more than 15% above the mean are high; more than 15% below are low.
    """
    if not series:
        return SeasonalReport(months=[], average=0.0, highest=None, lowest=None)

    average = sum(b.total for b in series) / len(series)
    months = []
    for bucket in series:
        variance = (bucket.total - average) / average * 100 if average > 0 else 0.0
        months.append(
            SeasonalMonth(
                year=bucket.year,
                month=bucket.month,
                label=bucket.label,
                total=bucket.total,
                variance_pct=round(variance, 1),
                level=_level(variance),
                note=MONTH_NOTES.get(bucket.month),
            )
        )

    # Ties resolve to the most recent month
    highest = max(reversed(months), key=lambda m: m.total)
    lowest = min(reversed(months), key=lambda m: m.total)
    return SeasonalReport(months=months, average=round(average, 2), highest=highest, lowest=lowest)
