"""
form_controllers.py — Budget & expense form flows
Owns what a budget/expense form does between keystrokes and the API:
field state, schema validation, allocation guard, the submit lifecycle
(editing → validating → submitting → settled) and merging the saved entity
back into the in-memory list the views render from.

Network I/O goes through a BudgetGateway, user feedback through a notifier,
so both can be swapped out in tests.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import date as date_type
from decimal import Decimal
from enum import Enum

from api_client import ApiError, BudgetGateway
from config import DEFAULT_CURRENCY
from schemas import BudgetIn, BudgetOut, ExpenseForm, ExpenseIn, ExpenseOut, field_errors
from services import allocation_service as alloc
from services.allocation_service import BudgetTemplate, CategoryDraft
from services.draft_store import DraftStore
from services.expense_filter import (
    ExpenseFilters,
    export_rows,
    filter_expenses,
    percent_spent,
    remaining_budget,
    total_expense_amount,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
BUDGET_LOCKED = "A saved expense cannot be moved to another budget"


class FormState(str, Enum):
    EDITING = "editing"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SETTLED = "settled"


# ----------------------------------------------------------------------
# Feedback & list state

@dataclass
class Toast:
    title: str
    message: str
    variant: str = "default"  # default/destructive


class ToastNotifier:
    """Collects the toasts a view would show, newest last."""

    def __init__(self):
        self.toasts: list[Toast] = []

    def notify(self, title: str, message: str, variant: str = "default") -> Toast:
        toast = Toast(title=title, message=message, variant=variant)
        self.toasts.append(toast)
        if variant == "destructive":
            logger.warning(f"{title}: {message}")
        else:
            logger.info(f"{title}: {message}")
        return toast

    @property
    def last(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None


class EntityList:
    """The list a view renders, as last fetched plus local edits."""

    def __init__(self, items=None):
        self.items = list(items or [])

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def replace_all(self, items):
        self.items = list(items)

    def get(self, entity_id):
        return next((i for i in self.items if i.id == entity_id), None)

    def upsert(self, entity, created: bool):
        """Prepend new entities; replace existing ones in place by id."""
        if not created:
            for idx, item in enumerate(self.items):
                if item.id == entity.id:
                    self.items[idx] = entity
                    return
        self.items.insert(0, entity)

    def remove(self, entity_id) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i.id != entity_id]
        return len(self.items) != before


# ----------------------------------------------------------------------
# Shared submit lifecycle

class _FormController(ABC):
    entity_name = "item"

    def __init__(self, gateway: BudgetGateway, items: EntityList, notifier: ToastNotifier, startup_call_id: int):
        self.gateway = gateway
        self.items = items
        self.notifier = notifier
        self.startup_call_id = startup_call_id
        self.state = FormState.EDITING
        self.errors: dict[str, str] = {}

    @property
    def is_submitting(self) -> bool:
        return self.state == FormState.SUBMITTING

    @property
    @abstractmethod
    def is_edit(self) -> bool:
        """True when the form edits a saved entity rather than creating one."""

    def set_field(self, name: str, value):
        if name == "categories" or not hasattr(self.values, name):
            raise AttributeError(f"Unknown field: {name}")
        setattr(self.values, name, value)
        self.errors.pop(name, None)
        self._touched()

    @abstractmethod
    def validate(self) -> dict[str, str]:
        """Field errors for the current values; empty when they can be sent."""

    @abstractmethod
    async def _persist(self):
        """Send the values through the gateway and return the saved entity."""

    def _touched(self):
        pass

    def _settled(self, entity):
        pass

    async def submit(self):
        """Validate and save. Returns the saved entity, or None if nothing was saved."""
        if self.is_submitting:
            return None

        self.state = FormState.VALIDATING
        self.errors = self.validate()
        if self.errors:
            self.state = FormState.EDITING
            return None

        created = not self.is_edit
        self.state = FormState.SUBMITTING
        try:
            entity = await self._persist()
            self.items.upsert(entity, created=created)
            self._settled(entity)
            self.state = FormState.SETTLED
        except ApiError as e:
            self.notifier.notify(
                "Error",
                e.message or f"An error occurred while saving the {self.entity_name}. Please try again.",
                "destructive",
            )
            return None
        finally:
            # Anything short of settled leaves the form editable
            if self.state == FormState.SUBMITTING:
                self.state = FormState.EDITING

        self.notifier.notify(
            f"{self.entity_name.capitalize()} {'Created' if created else 'Updated'}",
            f'{self.entity_name.capitalize()} "{entity.title}" has been saved successfully.',
        )
        return entity


# ----------------------------------------------------------------------
# Budgets

@dataclass
class BudgetFormValues:
    title: str = ""
    description: str | None = ""
    total_amount: Decimal | None = alloc.ZERO
    currency: str = DEFAULT_CURRENCY
    fiscal_year: str = field(default_factory=lambda: str(date_type.today().year))
    status: str = "draft"
    categories: list[CategoryDraft] = field(default_factory=lambda: [CategoryDraft()])

    @classmethod
    def from_budget(cls, budget: BudgetOut) -> "BudgetFormValues":
        return cls(
            title=budget.title,
            description=budget.description,
            total_amount=budget.total_amount,
            currency=budget.currency,
            fiscal_year=budget.fiscal_year,
            status=budget.status,
            categories=[
                CategoryDraft(
                    id=c.id,
                    name=c.name,
                    description=c.description,
                    allocated_amount=c.allocated_amount,
                )
                for c in budget.categories
            ] or [CategoryDraft()],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "BudgetFormValues":
        data = dict(data)
        data["categories"] = [CategoryDraft(**c) for c in data.get("categories") or [{}]]
        return cls(**data)

    def to_payload(self) -> dict:
        return asdict(self)


class BudgetFormController(_FormController):
    entity_name = "budget"

    def __init__(
        self,
        gateway: BudgetGateway,
        budgets: EntityList,
        notifier: ToastNotifier,
        startup_call_id: int,
        budget: BudgetOut | None = None,
        template: BudgetTemplate | None = None,
        total_amount=None,
        drafts: DraftStore | None = None,
    ):
        super().__init__(gateway, budgets, notifier, startup_call_id)
        self.budget = budget
        self.drafts = drafts
        self.values = BudgetFormValues.from_budget(budget) if budget else BudgetFormValues()

        saved = drafts.load(self.draft_key) if drafts else None
        if saved:
            self.values = BudgetFormValues.from_dict(saved)
            return

        if total_amount is not None:
            self.values.total_amount = alloc.to_decimal(total_amount)
        if template is not None:
            self.values.categories = self._template_categories(template)

    @property
    def is_edit(self) -> bool:
        return self.budget is not None

    @property
    def draft_key(self) -> str:
        return f"budget:{self.budget.id}" if self.budget else f"budget:new:{self.startup_call_id}"

    # ------------------------------------------------------------------
    # Derived figures

    @property
    def total_allocated(self) -> Decimal:
        return alloc.total_allocated(self.values.categories)

    @property
    def remaining(self) -> Decimal:
        return alloc.remaining(self.values.total_amount, self.total_allocated)

    @property
    def is_allocation_valid(self) -> bool:
        return alloc.is_allocation_valid(self.total_allocated, self.values.total_amount)

    @property
    def can_submit(self) -> bool:
        return not self.is_submitting and not alloc.submission_blocked(self.values.total_amount, self.total_allocated)

    # ------------------------------------------------------------------
    # Category line items

    def add_category(self):
        self.values.categories.append(CategoryDraft())
        self._touched()

    def remove_category(self, index: int) -> bool:
        """Drop a line item; the last remaining one cannot be removed."""
        if len(self.values.categories) <= 1 or not 0 <= index < len(self.values.categories):
            return False
        del self.values.categories[index]
        # Line errors are positional, so they no longer line up
        self.errors = {k: v for k, v in self.errors.items() if not k.startswith("categories.")}
        self._touched()
        return True

    def set_category_field(self, index: int, name: str, value):
        category = self.values.categories[index]
        if not hasattr(category, name) or name == "id":
            raise AttributeError(f"Unknown category field: {name}")
        setattr(category, name, value)
        self.errors.pop(f"categories.{index}.{name}", None)
        self.errors.pop("allocation", None)
        self._touched()

    def distribute_remaining(self):
        self.values.categories = alloc.distribute_remaining(self.values.categories, self.remaining)
        self.errors.pop("allocation", None)
        self._touched()

    def adjust_to_total(self):
        self.values.categories = alloc.adjust_to_total(
            self.values.categories, self.total_allocated, self.values.total_amount
        )
        self.errors.pop("allocation", None)
        self._touched()

    def _template_categories(self, template: BudgetTemplate) -> list[CategoryDraft]:
        return alloc.categories_from_template(template.weights, self.values.total_amount) or [CategoryDraft()]

    def apply_template(self, template: BudgetTemplate):
        self.values.categories = self._template_categories(template)
        self.errors = {k: v for k, v in self.errors.items() if not k.startswith("categories")}
        self._touched()

    # ------------------------------------------------------------------
    # Lifecycle hooks

    def validate(self) -> dict[str, str]:
        errors = field_errors(BudgetIn, self.values.to_payload())
        if alloc.submission_blocked(self.values.total_amount, self.total_allocated):
            errors["allocation"] = (
                f"Total allocation ({self.total_allocated}) exceeds budget amount ({self.values.total_amount})"
            )
        return errors

    async def _persist(self) -> BudgetOut:
        data = BudgetIn.model_validate(self.values.to_payload())
        if self.is_edit:
            return await self.gateway.update_budget(self.startup_call_id, self.budget.id, data)
        return await self.gateway.create_budget(self.startup_call_id, data)

    def _touched(self):
        if self.drafts is not None:
            self.drafts.schedule(self.draft_key, self.values.to_payload())

    def _settled(self, entity: BudgetOut):
        if self.drafts is not None:
            self.drafts.clear(self.draft_key)
        self.budget = entity
        self.values = BudgetFormValues.from_budget(entity)


# ----------------------------------------------------------------------
# Expenses

@dataclass
class ExpenseFormValues:
    title: str = ""
    description: str = ""
    amount: Decimal | None = alloc.ZERO
    currency: str = DEFAULT_CURRENCY
    date: date_type = field(default_factory=date_type.today)
    budget_id: int | None = None
    category_id: int | None = None
    receipt_url: str | None = None

    @classmethod
    def from_expense(cls, expense: ExpenseOut) -> "ExpenseFormValues":
        return cls(
            title=expense.title,
            description=expense.description or "",
            amount=expense.amount,
            currency=expense.currency,
            date=expense.date,
            budget_id=expense.budget_id,
            category_id=expense.category_id,
            receipt_url=expense.receipt_url,
        )

    def to_payload(self) -> dict:
        return asdict(self)


class ExpenseFormController(_FormController):
    entity_name = "expense"

    def __init__(
        self,
        gateway: BudgetGateway,
        expenses: EntityList,
        notifier: ToastNotifier,
        startup_call_id: int,
        expense: ExpenseOut | None = None,
        budget_id: int | None = None,
    ):
        super().__init__(gateway, expenses, notifier, startup_call_id)
        self.expense = expense
        self.values = ExpenseFormValues.from_expense(expense) if expense else ExpenseFormValues(budget_id=budget_id)

    @property
    def is_edit(self) -> bool:
        return self.expense is not None

    def set_field(self, name: str, value):
        if name == "budget_id" and value != self.values.budget_id:
            if self.is_edit:
                # Saved expenses stay in their budget; the edit is refused, not dropped
                self.errors["budget_id"] = BUDGET_LOCKED
                return
            # Categories belong to one budget
            self.values.category_id = None
        super().set_field(name, value)

    def validate(self) -> dict[str, str]:
        return field_errors(ExpenseForm, self.values.to_payload())

    async def _persist(self) -> ExpenseOut:
        payload = self.values.to_payload()
        budget_id = payload.pop("budget_id")
        data = ExpenseIn.model_validate(payload)
        if self.is_edit:
            return await self.gateway.update_expense(self.startup_call_id, self.expense.id, data)
        return await self.gateway.create_expense(self.startup_call_id, budget_id, data)

    def _settled(self, entity: ExpenseOut):
        self.expense = entity
        self.values = ExpenseFormValues.from_expense(entity)


# ----------------------------------------------------------------------
# Expense list

class ExpenseListController:
    """Fetches a call's budgets and expenses wholesale and derives the visible list."""

    def __init__(self, gateway: BudgetGateway, notifier: ToastNotifier, startup_call_id: int,
                 filters: ExpenseFilters | None = None):
        self.gateway = gateway
        self.notifier = notifier
        self.startup_call_id = startup_call_id
        self.filters = filters or ExpenseFilters()
        self.budgets = EntityList()
        self.expenses = EntityList()
        self.loading = False
        self.error: str | None = None
        self.pending_delete: ExpenseOut | None = None

    async def load(self) -> bool:
        """Fetch everything. A failure leaves the last data in place and offers a retry."""
        self.loading = True
        try:
            budgets = await self.gateway.list_budgets(self.startup_call_id)
            expenses = await self.gateway.list_expenses(self.startup_call_id)
        except ApiError as e:
            self.error = e.message or "Failed to load expenses"
            self.notifier.notify("Error", self.error, "destructive")
            return False
        finally:
            self.loading = False

        self.budgets.replace_all(budgets)
        self.expenses.replace_all(expenses)
        self.error = None
        return True

    retry = load

    @property
    def can_retry(self) -> bool:
        return self.error is not None

    # ------------------------------------------------------------------
    @property
    def visible(self) -> list[ExpenseOut]:
        return filter_expenses(self.expenses, self.filters)

    @property
    def total(self) -> Decimal:
        return total_expense_amount(self.expenses, self.filters.budget_id)

    @property
    def remaining(self) -> Decimal:
        return remaining_budget(self.budgets, self.expenses, self.filters.budget_id)

    @property
    def percent_spent(self) -> int:
        return percent_spent(self.budgets, self.expenses, self.filters.budget_id)

    def clear_filters(self):
        self.filters.clear()

    def category_name(self, expense: ExpenseOut) -> str:
        budget = self.budgets.get(expense.budget_id)
        if budget is None or expense.category_id is None:
            return UNCATEGORIZED
        category = next((c for c in budget.categories if c.id == expense.category_id), None)
        return category.name if category else UNCATEGORIZED

    def export_rows(self) -> list[dict]:
        return export_rows(self.visible)

    def expense_form(self, expense: ExpenseOut | None = None) -> ExpenseFormController:
        return ExpenseFormController(
            self.gateway,
            self.expenses,
            self.notifier,
            self.startup_call_id,
            expense=expense,
            budget_id=self.filters.budget_id,
        )

    # ------------------------------------------------------------------
    # Delete needs an explicit confirmation step

    def request_delete(self, expense: ExpenseOut):
        self.pending_delete = expense

    def cancel_delete(self):
        self.pending_delete = None

    async def confirm_delete(self) -> bool:
        expense = self.pending_delete
        if expense is None:
            return False
        try:
            await self.gateway.delete_expense(self.startup_call_id, expense.id)
        except ApiError as e:
            self.notifier.notify("Error", e.message or "Failed to delete expense", "destructive")
            return False

        self.pending_delete = None
        self.expenses.remove(expense.id)
        self.notifier.notify("Expense Deleted", f'Expense "{expense.title}" has been deleted.')
        return True

    # ------------------------------------------------------------------
    async def set_status(self, expense: ExpenseOut, status: str, comment: str | None = None) -> ExpenseOut | None:
        """Approver action: approve / reject / mark reimbursed."""
        try:
            updated = await self.gateway.update_expense_status(self.startup_call_id, expense.id, status, comment)
        except ApiError as e:
            self.notifier.notify("Error", e.message or "Failed to update expense status", "destructive")
            return None

        self.expenses.upsert(updated, created=False)
        self.notifier.notify(f"Expense {status.capitalize()}", f"Expense has been {status} successfully")
        return updated
