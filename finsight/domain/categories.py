"""Spending category vocabulary shared by query parsing, aggregation and benchmarks"""

import re
from typing import Dict

# alias -> canonical category
CATEGORY_ALIASES: Dict[str, str] = {
    "groceries": "groceries",
    "grocery": "groceries",
    "food": "groceries",
    "supermarket": "groceries",
    "dining": "dining",
    "restaurant": "dining",
    "restaurants": "dining",
    "eating out": "dining",
    "takeout": "dining",
    "coffee": "dining",
    "transport": "transport",
    "transportation": "transport",
    "gas": "transport",
    "fuel": "transport",
    "car": "transport",
    "taxi": "transport",
    "transit": "transport",
    "commute": "transport",
    "entertainment": "entertainment",
    "movies": "entertainment",
    "games": "entertainment",
    "streaming": "entertainment",
    "shopping": "shopping",
    "clothes": "shopping",
    "clothing": "shopping",
    "utilities": "utilities",
    "utility": "utilities",
    "bills": "utilities",
    "electricity": "utilities",
    "water": "utilities",
    "internet": "utilities",
    "phone": "utilities",
    "health": "health",
    "healthcare": "health",
    "medical": "health",
    "doctor": "health",
    "pharmacy": "health",
    "fitness": "health",
    "gym": "health",
    "housing": "housing",
    "rent": "housing",
    "mortgage": "housing",
    "home": "housing",
    "insurance": "insurance",
    "education": "education",
    "tuition": "education",
    "school": "education",
    "books": "education",
    "travel": "travel",
    "vacation": "travel",
    "flights": "travel",
    "hotels": "travel",
}

# Regex alternation of every alias, longest first so "restaurants" beats "restaurant"
CATEGORY_WORDS = "|".join(
    sorted((alias.replace(" ", r"\s") for alias in CATEGORY_ALIASES), key=len, reverse=True)
)

HOUSING_CATEGORIES = frozenset({"housing"})


def canonical_category(name: str) -> str:
    key = name.strip().lower()
    return CATEGORY_ALIASES.get(key, key)


def is_known_category(name: str) -> bool:
    """True for names in the category vocabulary, the only ones safe to echo back in a question"""
    return canonical_category(name) in CATEGORY_ALIASES


def matches_category(category: str, wanted: str) -> bool:
    """True when a record's category belongs to the requested category"""
    have = category.strip().lower()
    want = wanted.strip().lower()
    if not have or not want:
        return False
    if have == want or canonical_category(have) == canonical_category(want):
        return True
    # Whole words only: "art" must not match "Party supplies"
    return re.search(rf"\b{re.escape(want)}\b", have) is not None
