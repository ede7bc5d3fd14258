"""Query classifier - ordered pattern table, first match wins"""

import difflib
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Pattern, Sequence, Tuple

from finsight.domain.categories import CATEGORY_ALIASES, CATEGORY_WORDS, canonical_category
from finsight.domain.models import ChatMessage, DateRange, Intent, QueryParams
from finsight.utils.date_utils import add_months, month_end, month_start

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternGroup:
    """One row of the intent table"""

    intent: Intent
    patterns: Tuple[Pattern[str], ...]

    def search(self, text: str) -> Optional[re.Match]:
        for pattern in self.patterns:
            match = pattern.search(text)
            if match:
                return match
        return None


@dataclass(frozen=True)
class Classification:
    intent: Intent
    params: QueryParams
    text: str  # normalized text that was matched, including any history keywords


def pattern_group(intent: Intent, *patterns: str) -> PatternGroup:
    return PatternGroup(intent, tuple(re.compile(p) for p in patterns))


_CAT = CATEGORY_WORDS

# Registration order is the match order. A group that overlaps a broader one
# (category_spending vs total_spending, loan_payoff_scenario vs loan_status)
# must be listed first.
PATTERN_TABLE: Tuple[PatternGroup, ...] = (
    pattern_group(
        Intent.HELP,
        r"^(?:help|menu|commands)\W*$",
        r"\bwhat can you do\b",
        r"\bwhat (?:can|should) i ask\b",
        r"\bhow do(?:es)? (?:this|you) work\b",
    ),
    pattern_group(
        Intent.MONEY_TIPS,
        r"\b(?:money|financial|finance) (?:tips?|advice|hacks?)\b",
        r"\btips? of the day\b",
        r"\bgive me (?:a |some )?tips?\b",
    ),
    pattern_group(
        Intent.FINANCIAL_HEALTH_SCORE,
        r"\bfinancial health\b",
        r"\bhealth score\b",
        r"\bhow am i doing financially\b",
        r"\b(?:rate|grade|score) my finances\b",
        r"\bfinancial (?:grade|report card|check-?up)\b",
    ),
    pattern_group(
        Intent.FINANCIAL_RATIOS,
        r"\bdebt[- ]to[- ]income\b",
        r"\bsavings rate\b",
        r"\bhousing (?:cost )?ratio\b",
        r"\bemergency fund\b",
        r"\bratios?\b",
    ),
    pattern_group(
        Intent.TAX_DEDUCTIONS,
        r"\btax(?:es)?\b",
        r"\bdeductions?\b",
        r"\bdeductible\b",
        r"\bwrite[- ]offs?\b",
    ),
    pattern_group(
        Intent.DEBT_FREE_TIMELINE,
        r"\bdebt[- ]free\b",
        r"\bpay off all (?:of )?(?:my )?(?:debts?|loans)\b",
        r"\b(?:snowball|avalanche)\b",
        r"\b(?:eliminate|clear) (?:all )?(?:of )?(?:my )?(?:debts?|loans)\b",
        r"\bdebt (?:payoff )?(?:plan|strategy|timeline)\b",
    ),
    pattern_group(
        Intent.LOAN_PAYOFF_SCENARIO,
        r"\bextra\b.*\b(?:loans?|debts?)\b",
        r"\b(?:loans?|debts?)\b.*\bextra\b",
        r"\bwhat if i (?:pay|paid)\b.*\b(?:loans?|debts?|more)\b",
        r"\bhow long\b.*\bpay (?:off|back)\b",
        r"\bpayoff (?:time|scenarios?|date)\b",
        r"\bamorti[sz]ation\b",
    ),
    pattern_group(
        Intent.UPCOMING_BILLS,
        r"\bbills?\b.*\b(?:due|upcoming|coming up|next)\b",
        r"\b(?:upcoming|next|due) bills?\b",
        r"\brecurring bills?\b",
        r"\bmy bills\b",
    ),
    pattern_group(
        Intent.NEXT_PAYMENT,
        r"\bnext (?:loan )?payments?\b",
        r"\bpayments? (?:is |are )?due\b",
        r"\bwhen (?:is|do) (?:my|i) (?:next )?(?:loan )?payment\b",
        r"\bupcoming (?:loan )?payments?\b",
    ),
    pattern_group(
        Intent.LOAN_STATUS,
        r"\bloans?\b",
        r"\bdebts?\b",
        r"\bowe\b",
        r"\blent\b",
        r"\bborrowed\b",
    ),
    pattern_group(
        Intent.SUBSCRIPTION_ANALYSIS,
        r"\bsubscriptions?\b",
        r"\brecurring (?:expenses|charges|payments|costs)\b",
        r"\bmemberships?\b",
    ),
    pattern_group(
        Intent.SEASONAL_SPENDING,
        r"\bseasonal\b",
        r"\bseasons?\b",
        r"\bholiday spending\b",
        r"\bspending by month\b",
        r"\bmonth[- ]by[- ]month\b",
        r"\bwhich months?\b.*\b(?:spend|spent|expensive)\b",
        r"\bmost expensive months?\b",
    ),
    pattern_group(
        Intent.CATEGORY_OPTIMIZATION,
        rf"\b(?:optimi[sz]e|reduce|cut|lower|minimi[sz]e|trim)\b.*\b({_CAT})\b",
    ),
    pattern_group(
        Intent.WHAT_IF_REDUCE_SPENDING,
        r"\bwhat if i (?:reduce|cut|lower|spend less|saved?)\b",
        r"\bif i (?:reduce|cut|lower) (?:my )?(?:spending|expenses)\b",
        r"\b(?:reduce|cut) (?:my )?(?:spending|expenses) by\b",
    ),
    pattern_group(
        Intent.WEALTH_PROJECTION,
        r"\bwealth\b",
        r"\bnet worth\b",
        r"\bcompound(?:ing)? interest\b",
        r"\bretire(?:ment)?\b",
        r"\binvest(?:ing|ment|ments)?\b",
        r"\bgrow my (?:money|savings)\b",
    ),
    pattern_group(
        Intent.FINANCIAL_MILESTONES,
        r"\bmilestones?\b",
        r"\bwhen (?:can|will) i (?:afford|reach|have)\b",
        r"\bhow long until\b",
    ),
    pattern_group(
        Intent.PREDICT_SPENDING,
        r"\b(?:predict|forecast|projected?)\b.*\b(?:spend|spending|expenses)\b",
        r"\bend of (?:the )?month\b",
        r"\bwill i spend\b",
        r"\bon track to spend\b",
    ),
    pattern_group(
        Intent.COMPARE_PARTNERS,
        r"\bpartners?\b",
        r"\b(?:spouse|wife|husband|girlfriend|boyfriend)\b",
        r"\bwho (?:spent|spends|paid|pays) more\b",
        r"\bbetween (?:us|the two of us)\b",
    ),
    pattern_group(
        Intent.COMPARE_MONTHS,
        r"\bcompare\b",
        r"\bcompared? (?:to|with) (?:last|previous) month\b",
        r"\b(?:vs\.?|versus) (?:last|previous) month\b",
        r"\bthan (?:last|previous) month\b",
        r"\bmonth over month\b",
    ),
    pattern_group(
        Intent.BUDGET_STATUS,
        r"\bbudgets? (?:for|on) (?:my |the )?(\w+)",
        r"\bbudgets?\b",
        r"\bover ?spent\b",
        r"\bspending limits?\b",
    ),
    pattern_group(
        Intent.SAVINGS_GOALS,
        r"\bgoals?\b",
        r"\bsaving (?:for|towards?)\b",
        r"\bsavings targets?\b",
    ),
    pattern_group(
        Intent.TOP_EXPENSES,
        r"\b(?:top|biggest|largest|highest|major) (?:\d+ )?(?:expenses|purchases|transactions|payments)\b",
        r"\bmost expensive (?:purchases?|things?)\b",
    ),
    pattern_group(
        Intent.TOP_CATEGORIES,
        r"\bcategor(?:y|ies)\b",
        r"\bwhere (?:did|does|do) (?:all )?(?:my|the) money go\b",
        r"\bwhere (?:did|do) i spend\b",
        r"\bspen(?:d|t|ding) the most on\b",
    ),
    pattern_group(
        Intent.SPENDING_TRENDS,
        r"\btrend(?:s|ing)?\b",
        r"\bspending (?:patterns?|history)\b",
        r"\bover time\b",
        r"\bover the (?:last|past) (?:\d+|few|six|three|twelve) months\b",
    ),
    pattern_group(
        Intent.DAILY_AVERAGE,
        r"\bdaily\b",
        r"\bper day\b",
        r"\ba day\b",
        r"\beach day\b",
    ),
    pattern_group(
        Intent.CATEGORY_SPENDING,
        r"\bspen(?:d|t|ding) (?:on|for|at) (?:the |my )?(\w+)",
        r"\b(?:paid|pay) for (?:the |my )?(\w+)",
        r"\bexpenses? (?:on|for) (?:the |my )?(\w+)",
        rf"\b({_CAT})\b.*\b(?:spending|expenses|spend|spent|costs?)\b",
        rf"\b(?:spending|expenses|spend|spent)\b.*\b({_CAT})\b",
    ),
    pattern_group(
        Intent.TOTAL_INCOME,
        r"\bincome\b",
        r"\bearn(?:ed|ings)?\b",
        r"\bsalary\b",
        r"\bpaychecks?\b",
        r"\bhow much did i make\b",
    ),
    pattern_group(
        Intent.CURRENT_BALANCE,
        r"\bbalance\b",
        r"\bhow much (?:money )?(?:do i have|is) left\b",
        r"\bnet (?:cash ?flow|position|savings)\b",
        r"\bcash ?flow\b",
    ),
    pattern_group(
        Intent.SPENDING_INSIGHTS,
        r"\binsights?\b",
        r"\banaly[sz](?:e|is)\b",
        r"\boverview\b",
        r"\bsummary\b",
        r"\bspending habits\b",
    ),
    pattern_group(
        Intent.SAVE_MONEY,
        r"\bsave\b",
        r"\bsaving tips\b",
        r"\bcut back\b",
        r"\bcut costs\b",
        r"\bspend less\b",
    ),
    pattern_group(
        Intent.TOTAL_SPENDING,
        r"\bspen[dt]\b",
        r"\bspending\b",
        r"\bexpenses\b",
        r"\bexpenditures?\b",
    ),
)

_STOPWORDS = frozenset(
    {
        "the", "and", "for", "are", "was", "were", "what", "whats", "how", "much", "many",
        "did", "does", "can", "could", "would", "should", "will", "with", "this", "that",
        "these", "those", "have", "has", "had", "you", "your", "about", "from", "into",
        "show", "tell", "give", "please", "any", "all", "some", "last", "next", "month",
        "months", "week", "year", "today", "yesterday", "there", "than", "then", "them",
        "they", "its", "our", "out", "who", "why", "when", "where", "which", "also",
    }
)

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:%|percent\b)")
_MONEY_RE = re.compile(r"\$\s?(\d[\d,]*(?:\.\d+)?)|\b(\d[\d,]*(?:\.\d+)?)\s*(?:dollars|bucks)\b")
_COMPARISON_TARGET_RE = re.compile(r"\b(?:than|to|with|vs\.?|versus) (?:last|previous) month\b")
_LAST_DAYS_RE = re.compile(r"\b(?:last|past) (\d{1,3}) days\b")
_CATEGORY_SCAN_RE = re.compile(rf"\b({_CAT})\b")
_WORD_RE = re.compile(r"[a-z]+")

CONTEXT_WORD_LIMIT = 4
CONTEXT_KEYWORDS = 3
SPELLING_CUTOFF = 0.85
SPELLING_MIN_LENGTH = 5

# Words the pattern table keys on, used to repair misspellings in otherwise unmatched text
KEYWORD_VOCABULARY = frozenset(
    {
        "analyze", "balance", "budget", "budgets", "categories", "category", "compare",
        "deductions", "deductible", "expenses", "financial", "forecast", "goals", "income",
        "insights", "invest", "investment", "loans", "milestones", "overview", "partner",
        "payment", "payments", "predict", "reduce", "retirement", "salary", "savings",
        "seasonal", "spending", "subscription", "subscriptions", "summary", "trends", "wealth",
    }
    | {alias for alias in CATEGORY_ALIASES if " " not in alias}
)


def normalize(text: str) -> str:
    """Case-fold and collapse whitespace"""
    return " ".join(text.casefold().split())


def classify(text: str, table: Sequence[PatternGroup] = PATTERN_TABLE) -> Intent:
    intent, _ = _match(normalize(text), table)
    return intent


def _match(text: str, table: Sequence[PatternGroup]) -> Tuple[Intent, Optional[re.Match]]:
    for group in table:
        match = group.search(text)
        if match:
            return group.intent, match
    return Intent.UNKNOWN, None


def classify_query(
    text: str,
    as_of: date,
    history: Optional[Sequence[ChatMessage]] = None,
    table: Sequence[PatternGroup] = PATTERN_TABLE,
) -> Classification:
    """
    Resolve the intent of a query and extract its parameters.

    Short follow-ups that match nothing on their own ("and last month?") are
    retried once with keywords from the caller's recent messages appended.
    """
    normalized = normalize(text)
    intent, match = _match(normalized, table)

    if intent == Intent.UNKNOWN and history and len(normalized.split()) < CONTEXT_WORD_LIMIT:
        keywords = context_keywords(history)
        if keywords:
            enriched = f"{normalized} {' '.join(keywords)}"
            intent, match = _match(enriched, table)
            if intent != Intent.UNKNOWN:
                logger.debug("Resolved follow-up using history", extra={"keywords": keywords})
                normalized = enriched

    if intent == Intent.UNKNOWN:
        corrected = correct_spelling(normalized)
        if corrected != normalized:
            intent, match = _match(corrected, table)
            if intent != Intent.UNKNOWN:
                logger.debug("Resolved query after spelling correction", extra={"text": corrected})
                normalized = corrected

    params = extract_params(normalized, as_of, match)
    logger.debug("Classified query", extra={"intent": intent.value})
    return Classification(intent=intent, params=params, text=normalized)


def context_keywords(history: Sequence[ChatMessage], limit: int = CONTEXT_KEYWORDS) -> List[str]:
    """Meaningful words from the most recent user messages, newest first"""
    keywords: List[str] = []
    for message in reversed(history):
        if message.role != "user":
            continue
        for word in _WORD_RE.findall(normalize(message.text)):
            if len(word) >= 3 and word not in _STOPWORDS and word not in keywords:
                keywords.append(word)
                if len(keywords) == limit:
                    return keywords
    return keywords


def correct_spelling(text: str, vocabulary: frozenset = KEYWORD_VOCABULARY) -> str:
    """Replace each unrecognized word with its closest keyword, when one is close enough"""
    words = []
    for word in text.split():
        stripped = word.strip("?!.,;:")
        if len(stripped) >= SPELLING_MIN_LENGTH and stripped not in vocabulary and stripped not in _STOPWORDS:
            close = difflib.get_close_matches(stripped, sorted(vocabulary), n=1, cutoff=SPELLING_CUTOFF)
            if close:
                word = word.replace(stripped, close[0])
        words.append(word)
    return " ".join(words)


def extract_params(text: str, as_of: date, match: Optional[re.Match] = None) -> QueryParams:
    date_range, period_label = extract_date_range(text, as_of)
    amount, is_percent = extract_amount(text)
    return QueryParams(
        category=extract_category(text, match),
        amount=amount,
        is_percent=is_percent,
        strategy="snowball" if "snowball" in text else "avalanche",
        date_range=date_range,
        period_label=period_label,
    )


def extract_category(text: str, match: Optional[re.Match] = None) -> Optional[str]:
    """Category from the matched pattern's capture, else the first known category word"""
    if match is not None and match.groups():
        captured = next((g for g in match.groups() if g), None)
        if captured and captured not in _STOPWORDS and not captured.isdigit():
            return canonical_category(captured)

    found = _CATEGORY_SCAN_RE.search(text)
    if found:
        return CATEGORY_ALIASES[found.group(1)]
    return None


def extract_amount(text: str) -> Tuple[Optional[float], bool]:
    """Dollar amount or percentage mentioned in the query"""
    percent = _PERCENT_RE.search(text)
    if percent:
        return float(percent.group(1)), True

    money = _MONEY_RE.search(text)
    if money:
        raw = money.group(1) or money.group(2)
        return float(raw.replace(",", "")), False
    return None, False


def extract_date_range(text: str, as_of: date) -> Tuple[Optional[DateRange], str]:
    """
    Map a time phrase to an inclusive date range.

    Returns (None, "this month") when the query names no period; the aggregator
    then applies its default of the current calendar month. A trailing
    comparison target ("than last month") is not treated as the period.
    """
    text = _COMPARISON_TARGET_RE.sub(" ", text)

    if "yesterday" in text:
        day = as_of - timedelta(days=1)
        return DateRange(day, day), "yesterday"
    if "today" in text:
        return DateRange(as_of, as_of), "today"
    if "this week" in text:
        return DateRange(as_of - timedelta(days=as_of.weekday()), as_of), "this week"
    if "last week" in text:
        start = as_of - timedelta(days=as_of.weekday() + 7)
        return DateRange(start, start + timedelta(days=6)), "last week"

    last_days = _LAST_DAYS_RE.search(text)
    if last_days:
        days = max(int(last_days.group(1)), 1)
        return DateRange(as_of - timedelta(days=days - 1), as_of), f"the last {days} days"

    if "this month" in text:
        return DateRange(month_start(as_of), as_of), "this month"
    if "last month" in text or "previous month" in text:
        previous = add_months(month_start(as_of), -1)
        return DateRange(previous, month_end(previous)), "last month"
    if "this year" in text or "year to date" in text:
        return DateRange(as_of.replace(month=1, day=1), as_of), "this year"
    if "last year" in text:
        year = as_of.year - 1
        return DateRange(date(year, 1, 1), date(year, 12, 31)), "last year"

    return None, "this month"
