"""
expense_service.py — Expenses recorded against a budget
Handles CRUD, the admin approval workflow (with the category over-spend
check) and notifies the submitter when an admin changes the status.
"""

import logging
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import BudgetRuleError, NotFoundError
from models.budget import Budget, BudgetCategory
from models.expense import Expense
from schemas import ExpenseIn
from services.allocation_service import round_cents
from services.budget_service import BudgetService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

_NOTIFICATION_TYPES = {"approved": "success", "rejected": "error"}


class ExpenseService:
    @staticmethod
    def get_all(db: Session, call_id: int, filters: dict = None) -> list[Expense]:
        """Every expense under the call's budgets, newest first."""
        BudgetService.get_call(db, call_id)
        query = (
            db.query(Expense)
            .join(Budget, Budget.id == Expense.budget_id)
            .filter(Budget.startup_call_id == call_id)
        )
        if filters:
            if filters.get("budget_id") is not None:
                query = query.filter(Expense.budget_id == filters["budget_id"])
            if filters.get("category_id") is not None:
                query = query.filter(Expense.category_id == filters["category_id"])
            if filters.get("status") not in (None, "all"):
                query = query.filter(Expense.status == filters["status"])
        return query.order_by(Expense.date.desc(), Expense.id.desc()).all()

    @staticmethod
    def get_by_id(db: Session, call_id: int, expense_id: int) -> Expense:
        expense = (
            db.query(Expense)
            .join(Budget, Budget.id == Expense.budget_id)
            .filter(Expense.id == expense_id, Budget.startup_call_id == call_id)
            .first()
        )
        if not expense:
            raise NotFoundError("Expense not found")
        return expense

    @staticmethod
    def _check_category(db: Session, budget_id: int, category_id: int | None):
        if category_id is None:
            return
        exists = db.query(BudgetCategory).filter_by(id=category_id, budget_id=budget_id).first()
        if not exists:
            raise BudgetRuleError("Category does not belong to this budget", {"category_id": category_id})

    @staticmethod
    def create(db: Session, call_id: int, budget_id: int, user_id: int | None, data: ExpenseIn) -> Expense:
        BudgetService.get_budget(db, call_id, budget_id)
        ExpenseService._check_category(db, budget_id, data.category_id)
        try:
            expense = Expense(
                budget_id=budget_id,
                user_id=user_id,
                status="pending",
                **data.model_dump(),
            )
            db.add(expense)
            db.commit()
            db.refresh(expense)
            return expense
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to create expense in budget {budget_id}")
            raise

    @staticmethod
    def update(db: Session, call_id: int, expense_id: int, data: ExpenseIn) -> Expense:
        expense = ExpenseService.get_by_id(db, call_id, expense_id)
        ExpenseService._check_category(db, expense.budget_id, data.category_id)
        try:
            for key, value in data.model_dump().items():
                setattr(expense, key, value)
            db.commit()
            db.refresh(expense)
            return expense
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to update expense {expense_id}")
            raise

    @staticmethod
    def delete(db: Session, call_id: int, expense_id: int):
        expense = ExpenseService.get_by_id(db, call_id, expense_id)
        try:
            db.delete(expense)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to delete expense {expense_id}")
            raise

    @staticmethod
    def set_status(db: Session, call_id: int, expense_id: int, status: str, comment: str | None = None) -> Expense:
        """Admin status change; approval may not push the category past its allocation."""
        expense = ExpenseService.get_by_id(db, call_id, expense_id)

        if status == "approved" and expense.category_id is not None:
            category = db.query(BudgetCategory).filter_by(id=expense.category_id).first()
            spent = db.query(func.coalesce(func.sum(Expense.amount), 0)).filter(
                Expense.category_id == expense.category_id,
                Expense.status == "approved",
                Expense.id != expense.id,
            ).scalar()
            spent = round_cents(Decimal(str(spent)))
            if category and spent + expense.amount > category.allocated_amount:
                raise BudgetRuleError(
                    "Approving this expense would exceed the category budget",
                    {
                        "category_name": category.name,
                        "allocated_amount": str(category.allocated_amount),
                        "current_spent": str(spent),
                        "expense_amount": str(expense.amount),
                        "remaining": str(category.allocated_amount - spent),
                    },
                )

        try:
            expense.status = status
            if comment:
                note = f"[Admin {status.upper()} comment: {comment}]"
                expense.description = f"{expense.description}\n\n{note}" if expense.description else note

            if expense.user_id is not None:
                NotificationService.add(
                    db,
                    user_id=expense.user_id,
                    type=_NOTIFICATION_TYPES.get(status, "info"),
                    title=f"Expense {status.capitalize()}",
                    message=f'Your expense "{expense.title}" has been {status}'
                            + (f" with comment: {comment}." if comment else "."),
                )
            db.commit()
            db.refresh(expense)
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to change status of expense {expense_id}")
            raise

        logger.info(f"Expense {expense_id} marked {status}")
        return expense
