"""
schemas.py — Request/response models shared by the API routes and the form
controllers. The field constraints here are the single source of truth for
budget and expense validation.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

BudgetStatus = Literal["active", "draft", "closed"]
ExpenseStatus = Literal["pending", "approved", "rejected", "reimbursed"]
CallStatus = Literal["open", "closed", "draft"]

BUDGET_STATUSES = ("active", "draft", "closed")
EXPENSE_STATUSES = ("pending", "approved", "rejected", "reimbursed")


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class _Output(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Startup calls

class StartupCallCreate(_Input):
    title: str = Field(min_length=3, max_length=300)
    description: Optional[str] = None
    status: CallStatus = "open"


class StartupCallOut(_Output):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Budgets

class CategoryIn(_Input):
    id: Optional[int] = None
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    allocated_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)


class BudgetIn(_Input):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    total_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: str = Field(min_length=1, max_length=3)
    fiscal_year: str = Field(min_length=1, max_length=10)
    status: BudgetStatus = "draft"
    categories: list[CategoryIn] = Field(min_length=1)


class BudgetStatusUpdate(_Input):
    status: BudgetStatus


class CategoryOut(_Output):
    id: int
    name: str
    description: Optional[str] = None
    allocated_amount: Decimal


class BudgetOut(_Output):
    id: int
    startup_call_id: int
    title: str
    description: Optional[str] = None
    total_amount: Decimal
    currency: str
    fiscal_year: str
    status: str
    categories: list[CategoryOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Expenses

class ExpenseIn(_Input):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: str = Field(default="USD", min_length=1, max_length=3)
    date: date_type
    category_id: Optional[int] = None
    receipt_url: Optional[str] = Field(default=None, max_length=500)


class ExpenseForm(ExpenseIn):
    """What the expense form validates: the API body plus the target budget."""
    budget_id: int


class ExpenseStatusUpdate(_Input):
    status: ExpenseStatus
    comment: Optional[str] = None


class ExpenseOut(_Output):
    id: int
    budget_id: int
    category_id: Optional[int] = None
    user_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    amount: Decimal
    currency: str
    date: date_type
    status: str
    receipt_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Notifications

class NotificationOut(_Output):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    created_at: Optional[datetime] = None


def field_errors(schema: type[BaseModel], values: dict) -> dict[str, str]:
    """
    Validate ``values`` against ``schema`` and flatten any failures into
    ``{"title": msg, "categories.0.name": msg, ...}``. Empty dict means valid.
    """
    try:
        schema.model_validate(values)
    except ValidationError as e:
        errors = {}
        for err in e.errors():
            key = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors.setdefault(key, err["msg"])
        return errors
    return {}
