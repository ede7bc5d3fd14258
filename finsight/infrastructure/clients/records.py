"""Records API HTTP client - RecordStore backed by an external records service"""

import httpx
from datetime import date
from typing import Any, Dict, List, Optional
from finsight.domain.exceptions import DataUnavailable, InvalidRecordError
from finsight.domain.models import (
    Budget,
    BudgetPeriod,
    Frequency,
    Loan,
    LoanDirection,
    RecurringBill,
    SavingsGoal,
    Transaction,
    TransactionKind,
)
from finsight.config import settings


def _optional_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


class HttpRecordStore:
    """Client for the external records API"""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url or settings.records_api_base
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _get(self, owner_id: str, resource: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        GET /records/{owner_id}/{resource}.

        Raises:
            DataUnavailable: On timeout, HTTP errors, or a non-JSON body
        """
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = client.get(f"{self.base_url}/records/{owner_id}/{resource}", params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise DataUnavailable(f"Records API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise DataUnavailable(f"Records API error: {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise DataUnavailable(f"Records API unreachable: {e}") from e
            except ValueError as e:
                raise DataUnavailable(f"Invalid JSON from records API: {e}") from e

        if not isinstance(data, dict):
            raise DataUnavailable(f"Unexpected {resource} payload from records API")
        return data

    def transactions(
        self,
        owner_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        kind: Optional[TransactionKind] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        params = {}
        if start is not None:
            params["start"] = start.isoformat()
        if end is not None:
            params["end"] = end.isoformat()
        if kind is not None:
            params["kind"] = kind.value
        if category:
            params["category"] = category
        data = self._get(owner_id, "transactions", params)

        try:
            return [
                Transaction(
                    id=str(txn["id"]),
                    owner_id=owner_id,
                    kind=TransactionKind(txn["kind"]),
                    amount=float(txn["amount"]),
                    category=txn.get("category") or "",
                    occurred_at=date.fromisoformat(txn["occurred_at"]),
                    description=txn.get("description") or "",
                )
                for txn in data.get("transactions", [])
            ]
        except (KeyError, ValueError, TypeError, InvalidRecordError) as e:
            raise DataUnavailable(f"Invalid transaction data from records API: {e}") from e

    def loans(self, owner_id: str) -> List[Loan]:
        data = self._get(owner_id, "loans")
        try:
            return [
                Loan(
                    id=str(loan["id"]),
                    owner_id=owner_id,
                    direction=LoanDirection(loan["direction"]),
                    principal=float(loan["principal"]),
                    remaining_balance=float(loan["remaining_balance"]),
                    interest_rate_annual=_optional_float(loan.get("interest_rate_annual")),
                    due_date=_optional_date(loan.get("due_date")),
                    installment_amount=_optional_float(loan.get("installment_amount")),
                    installment_frequency=(
                        Frequency(loan["installment_frequency"]) if loan.get("installment_frequency") else None
                    ),
                    description=loan.get("description") or "",
                )
                for loan in data.get("loans", [])
            ]
        except (KeyError, ValueError, TypeError, InvalidRecordError) as e:
            raise DataUnavailable(f"Invalid loan data from records API: {e}") from e

    def budgets(self, owner_id: str) -> List[Budget]:
        data = self._get(owner_id, "budgets")
        try:
            return [
                Budget(
                    id=str(budget["id"]),
                    owner_id=owner_id,
                    category=budget["category"],
                    period_amount=float(budget["period_amount"]),
                    spent_amount=float(budget.get("spent_amount") or 0),
                    period=BudgetPeriod(budget.get("period") or "monthly"),
                )
                for budget in data.get("budgets", [])
            ]
        except (KeyError, ValueError, TypeError, InvalidRecordError) as e:
            raise DataUnavailable(f"Invalid budget data from records API: {e}") from e

    def savings_goals(self, owner_id: str) -> List[SavingsGoal]:
        data = self._get(owner_id, "goals")
        try:
            return [
                SavingsGoal(
                    id=str(goal["id"]),
                    owner_id=owner_id,
                    target_amount=float(goal["target_amount"]),
                    current_amount=float(goal.get("current_amount") or 0),
                    target_date=_optional_date(goal.get("target_date")),
                    name=goal.get("name") or "Savings goal",
                )
                for goal in data.get("goals", [])
            ]
        except (KeyError, ValueError, TypeError, InvalidRecordError) as e:
            raise DataUnavailable(f"Invalid goal data from records API: {e}") from e

    def recurring_bills(self, owner_id: str) -> List[RecurringBill]:
        data = self._get(owner_id, "bills")
        try:
            return [
                RecurringBill(
                    id=str(bill["id"]),
                    owner_id=owner_id,
                    amount=float(bill["amount"]),
                    frequency=Frequency(bill.get("frequency") or "monthly"),
                    next_due_date=date.fromisoformat(bill["next_due_date"]),
                    name=bill.get("name") or "Bill",
                )
                for bill in data.get("bills", [])
            ]
        except (KeyError, ValueError, TypeError, InvalidRecordError) as e:
            raise DataUnavailable(f"Invalid bill data from records API: {e}") from e

    def partner_of(self, owner_id: str) -> Optional[str]:
        data = self._get(owner_id, "partner")
        partner = data.get("partner_id")
        return str(partner) if partner else None
