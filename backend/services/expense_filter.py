"""
expense_filter.py — Expense list filtering & totals
Works on the expense collection as last fetched (no pagination); the filter
state is a plain object so views and tests can build and inject it.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from services.allocation_service import to_decimal, ZERO

ALL_STATUSES = "all"

EXPORT_COLUMNS = (
    "id",
    "date",
    "title",
    "description",
    "budget_id",
    "category_id",
    "amount",
    "currency",
    "status",
    "receipt_url",
)


@dataclass
class ExpenseFilters:
    budget_id: int | None = None
    category_id: int | None = None
    status: str = ALL_STATUSES
    search: str = ""

    def clear(self):
        """Reset every dimension to its unconstrained default."""
        self.budget_id = None
        self.category_id = None
        self.status = ALL_STATUSES
        self.search = ""

    @property
    def is_default(self) -> bool:
        return (
            self.budget_id is None
            and self.category_id is None
            and self.status == ALL_STATUSES
            and not self.search
        )


def matches(expense, filters: ExpenseFilters) -> bool:
    if filters.budget_id is not None and expense.budget_id != filters.budget_id:
        return False
    if filters.category_id is not None and expense.category_id != filters.category_id:
        return False
    if filters.status != ALL_STATUSES and expense.status != filters.status:
        return False
    if filters.search:
        needle = filters.search.lower()
        haystacks = (expense.title or "", expense.description or "")
        if not any(needle in h.lower() for h in haystacks):
            return False
    return True


def filter_expenses(expenses, filters: ExpenseFilters | None = None) -> list:
    if filters is None or filters.is_default:
        return list(expenses)
    return [e for e in expenses if matches(e, filters)]


def total_expense_amount(expenses, budget_id: int | None = None) -> Decimal:
    return sum(
        (to_decimal(e.amount) for e in expenses if budget_id is None or e.budget_id == budget_id),
        ZERO,
    )


def _budget_total(budgets, budget_id: int | None) -> Decimal | None:
    if budget_id is None:
        return sum((to_decimal(b.total_amount) for b in budgets), ZERO)
    budget = next((b for b in budgets if b.id == budget_id), None)
    return None if budget is None else to_decimal(budget.total_amount)


def remaining_budget(budgets, expenses, budget_id: int | None = None) -> Decimal:
    """Budget total minus everything recorded against it (all budgets when unscoped)."""
    total = _budget_total(budgets, budget_id)
    if total is None:
        return ZERO
    return total - total_expense_amount(expenses, budget_id)


def percent_spent(budgets, expenses, budget_id: int | None = None) -> int:
    total = _budget_total(budgets, budget_id)
    if not total:
        return 0
    pct = total_expense_amount(expenses, budget_id) / total * 100
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def export_rows(expenses, columns=EXPORT_COLUMNS) -> list[dict]:
    """Rows for an external CSV/XLSX writer, keys in ``columns`` order."""
    rows = []
    for e in expenses:
        row = {}
        for col in columns:
            value = getattr(e, col, None)
            if isinstance(value, Decimal):
                value = str(value)
            elif hasattr(value, "isoformat"):
                value = value.isoformat()
            row[col] = value
        rows.append(row)
    return rows
