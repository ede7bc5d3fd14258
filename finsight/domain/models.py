"""Domain models - pure Python dataclasses representing financial records and engine envelopes"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from finsight.domain.exceptions import InvalidRecordError


class TransactionKind(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class LoanDirection(str, Enum):
    GIVEN = "given"  # owner lent money out
    RECEIVED = "received"  # owner borrowed money


class BudgetPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Frequency(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    def per_month(self, amount: float) -> float:
        """Normalize an amount paid at this frequency to a monthly figure"""
        return amount * _MONTHLY_FACTOR[self]


_MONTHLY_FACTOR = {
    Frequency.WEEKLY: 52 / 12,
    Frequency.BIWEEKLY: 26 / 12,
    Frequency.MONTHLY: 1.0,
    Frequency.QUARTERLY: 1 / 3,
    Frequency.YEARLY: 1 / 12,
}


class ResponseType(str, Enum):
    TEXT = "text"
    INSIGHT = "insight"
    WARNING = "warning"
    SUGGESTION = "suggestion"


class Intent(str, Enum):
    """Closed set of questions the engine knows how to answer"""

    HELP = "help"
    MONEY_TIPS = "money_tips"
    FINANCIAL_HEALTH_SCORE = "financial_health_score"
    FINANCIAL_RATIOS = "financial_ratios"
    TAX_DEDUCTIONS = "tax_deductions"
    DEBT_FREE_TIMELINE = "debt_free_timeline"
    LOAN_PAYOFF_SCENARIO = "loan_payoff_scenario"
    UPCOMING_BILLS = "upcoming_bills"
    NEXT_PAYMENT = "next_payment"
    LOAN_STATUS = "loan_status"
    SUBSCRIPTION_ANALYSIS = "subscription_analysis"
    SEASONAL_SPENDING = "seasonal_spending"
    CATEGORY_OPTIMIZATION = "category_optimization"
    WHAT_IF_REDUCE_SPENDING = "what_if_reduce_spending"
    WEALTH_PROJECTION = "wealth_projection"
    FINANCIAL_MILESTONES = "financial_milestones"
    PREDICT_SPENDING = "predict_spending"
    COMPARE_PARTNERS = "compare_partners"
    COMPARE_MONTHS = "compare_months"
    BUDGET_STATUS = "budget_status"
    SAVINGS_GOALS = "savings_goals"
    TOP_EXPENSES = "top_expenses"
    TOP_CATEGORIES = "top_categories"
    SPENDING_TRENDS = "spending_trends"
    DAILY_AVERAGE = "daily_average"
    CATEGORY_SPENDING = "category_spending"
    TOTAL_INCOME = "total_income"
    CURRENT_BALANCE = "current_balance"
    SPENDING_INSIGHTS = "spending_insights"
    SAVE_MONEY = "save_money"
    TOTAL_SPENDING = "total_spending"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Transaction:
    """Income or expense record, immutable once read"""

    id: str
    owner_id: str
    kind: TransactionKind
    amount: float
    category: str
    occurred_at: date
    description: str = ""

    def __post_init__(self):
        if self.amount < 0:
            raise InvalidRecordError(f"Transaction {self.id} has a negative amount")

    @property
    def is_expense(self) -> bool:
        return self.kind == TransactionKind.EXPENSE


@dataclass(frozen=True)
class Loan:
    """Loan given or received; interest_rate_annual is a percentage (6.0 = 6%)"""

    id: str
    owner_id: str
    direction: LoanDirection
    principal: float
    remaining_balance: float
    interest_rate_annual: Optional[float] = None
    due_date: Optional[date] = None
    installment_amount: Optional[float] = None
    installment_frequency: Optional[Frequency] = None
    description: str = ""

    def __post_init__(self):
        if not 0 <= self.remaining_balance <= self.principal:
            raise InvalidRecordError(
                f"Loan {self.id}: remaining balance must be between 0 and principal"
            )

    @property
    def is_active(self) -> bool:
        return self.remaining_balance > 0

    @property
    def annual_rate(self) -> float:
        """Annual interest rate as a fraction"""
        return (self.interest_rate_annual or 0.0) / 100

    @property
    def monthly_installment(self) -> Optional[float]:
        if not self.installment_amount:
            return None
        frequency = self.installment_frequency or Frequency.MONTHLY
        return frequency.per_month(self.installment_amount)

    @property
    def label(self) -> str:
        return self.description or f"Loan {self.id}"


@dataclass(frozen=True)
class Budget:
    id: str
    owner_id: str
    category: str
    period_amount: float
    spent_amount: float
    period: BudgetPeriod = BudgetPeriod.MONTHLY

    @property
    def is_over_budget(self) -> bool:
        return self.spent_amount > self.period_amount

    @property
    def usage_ratio(self) -> float:
        if self.period_amount <= 0:
            return 1.0 if self.spent_amount > 0 else 0.0
        return self.spent_amount / self.period_amount

    @property
    def remaining(self) -> float:
        return max(self.period_amount - self.spent_amount, 0.0)


@dataclass(frozen=True)
class SavingsGoal:
    id: str
    owner_id: str
    target_amount: float
    current_amount: float
    target_date: Optional[date] = None
    name: str = "Savings goal"

    @property
    def progress_ratio(self) -> float:
        """Unclamped progress, used for projections"""
        if self.target_amount <= 0:
            return 0.0
        return self.current_amount / self.target_amount

    @property
    def display_progress(self) -> float:
        return min(max(self.progress_ratio, 0.0), 1.0)

    @property
    def remaining(self) -> float:
        return max(self.target_amount - self.current_amount, 0.0)


@dataclass(frozen=True)
class RecurringBill:
    id: str
    owner_id: str
    amount: float
    frequency: Frequency
    next_due_date: date
    name: str = "Bill"

    @property
    def monthly_amount(self) -> float:
        return self.frequency.per_month(self.amount)


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" or "assistant"
    text: str


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window"""

    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Date range starts after it ends: {self.start} > {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class Source:
    """Record cited by a response"""

    id: str
    label: str


@dataclass
class QueryParams:
    """Parameters extracted from the query text alongside the intent"""

    category: Optional[str] = None
    amount: Optional[float] = None
    is_percent: bool = False
    strategy: str = "avalanche"
    date_range: Optional[DateRange] = None
    period_label: str = "this month"


@dataclass
class QueryContext:
    """Lives for a single request only"""

    raw_text: str
    prior_messages: List[ChatMessage] = field(default_factory=list)
    resolved_intent: Intent = Intent.UNKNOWN
    date_range: Optional[DateRange] = None


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: float
    percentage: float
    count: int


@dataclass(frozen=True)
class MonthBucket:
    year: int
    month: int
    total: float

    @property
    def label(self) -> str:
        return date(self.year, self.month, 1).strftime("%b %Y")


@dataclass
class AggregatedView:
    """Pre-aggregated slice of one owner's records for one intent"""

    owner_id: str
    as_of: date
    date_range: DateRange
    intent: Intent = Intent.UNKNOWN
    category: Optional[str] = None

    # Sums over date_range
    total_income: float = 0.0
    total_expenses: float = 0.0
    income_count: int = 0
    expense_count: int = 0

    # Previous comparable period
    previous_range: Optional[DateRange] = None
    previous_income: float = 0.0
    previous_expenses: float = 0.0
    previous_expense_categories: List[CategoryTotal] = field(default_factory=list)

    # Group-bys
    expense_categories: List[CategoryTotal] = field(default_factory=list)
    income_categories: List[CategoryTotal] = field(default_factory=list)
    monthly_series: List[MonthBucket] = field(default_factory=list)

    # Filtered lists
    transactions: List[Transaction] = field(default_factory=list)  # expenses in range
    window_transactions: List[Transaction] = field(default_factory=list)  # fixed-window expenses

    # Trailing monthly averages
    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    monthly_expense_categories: List[CategoryTotal] = field(default_factory=list)  # per-month amounts
    active_months: int = 0

    loans: List[Loan] = field(default_factory=list)
    budgets: List[Budget] = field(default_factory=list)
    goals: List[SavingsGoal] = field(default_factory=list)
    bills: List[RecurringBill] = field(default_factory=list)

    partner_id: Optional[str] = None
    # Linked partner's own view, aggregated separately over the same range
    partner_view: Optional["AggregatedView"] = None

    @property
    def net(self) -> float:
        return self.total_income - self.total_expenses

    @property
    def has_transactions(self) -> bool:
        return self.income_count + self.expense_count > 0

    @property
    def debts(self) -> List[Loan]:
        """Active loans the owner has to repay"""
        return [l for l in self.loans if l.direction == LoanDirection.RECEIVED and l.is_active]

    @property
    def liquid_savings(self) -> float:
        return sum(g.current_amount for g in self.goals)


@dataclass
class EngineResponse:
    """Stable response envelope returned to callers"""

    text: str
    type: ResponseType = ResponseType.TEXT
    quick_actions: List[str] = field(default_factory=list)
    sources: Optional[List[Source]] = None
    intent: Intent = Intent.UNKNOWN
    data: Optional[Dict[str, Any]] = None
