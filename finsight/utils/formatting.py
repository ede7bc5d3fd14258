"""Currency and percentage formatting for response text"""

import math


def safe_number(value: float) -> float:
    """Coerce NaN/inf to 0 so they never reach displayed text"""
    if value is None or not math.isfinite(value):
        return 0.0
    return value


def format_currency(amount: float) -> str:
    amount = safe_number(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_approx(amount: float, step: int = 10) -> str:
    """Rounded figure for rough estimates, e.g. ~$2,420"""
    amount = safe_number(amount)
    rounded = int(round(amount / step)) * step
    sign = "-" if rounded < 0 else ""
    return f"~{sign}${abs(rounded):,}"


def format_percent(value: float, digits: int = 1) -> str:
    """Format a value already expressed in percent (12.34 -> 12.3%)"""
    return f"{safe_number(value):.{digits}f}%"
