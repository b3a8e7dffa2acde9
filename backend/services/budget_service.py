"""
budget_service.py — Startup calls, budgets & their category line items
CRUD against the database plus the per-budget spending report. Budgets are
never hard-deleted; closing one is a status change.
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError
from models.startup_call import StartupCall
from models.budget import Budget, BudgetCategory
from models.expense import Expense
from schemas import BudgetIn, StartupCallCreate
from services.allocation_service import (
    allocation_percentage,
    is_allocation_valid,
    total_allocated,
)

logger = logging.getLogger(__name__)


class BudgetService:
    # ------------------------------------------------------------------
    # Startup calls

    @staticmethod
    def list_calls(db: Session) -> list[StartupCall]:
        return db.query(StartupCall).order_by(StartupCall.created_at.desc()).all()

    @staticmethod
    def get_call(db: Session, call_id: int) -> StartupCall:
        call = db.query(StartupCall).filter_by(id=call_id).first()
        if not call:
            raise NotFoundError("Startup call not found")
        return call

    @staticmethod
    def create_call(db: Session, data: StartupCallCreate) -> StartupCall:
        try:
            call = StartupCall(**data.model_dump())
            db.add(call)
            db.commit()
            db.refresh(call)
            return call
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create startup call")
            raise

    # ------------------------------------------------------------------
    # Budgets

    @staticmethod
    def list_budgets(db: Session, call_id: int) -> list[Budget]:
        BudgetService.get_call(db, call_id)
        return (
            db.query(Budget)
            .filter_by(startup_call_id=call_id)
            .order_by(Budget.created_at.desc(), Budget.id.desc())
            .all()
        )

    @staticmethod
    def get_budget(db: Session, call_id: int, budget_id: int) -> Budget:
        budget = db.query(Budget).filter_by(id=budget_id, startup_call_id=call_id).first()
        if not budget:
            raise NotFoundError("Budget not found")
        return budget

    @staticmethod
    def create_budget(db: Session, call_id: int, data: BudgetIn) -> Budget:
        BudgetService.get_call(db, call_id)
        try:
            budget = Budget(
                startup_call_id=call_id,
                title=data.title,
                description=data.description,
                total_amount=data.total_amount,
                currency=data.currency,
                fiscal_year=data.fiscal_year,
                status=data.status,
            )
            for position, cat in enumerate(data.categories):
                budget.categories.append(BudgetCategory(
                    name=cat.name,
                    description=cat.description,
                    allocated_amount=cat.allocated_amount,
                    position=position,
                ))
            db.add(budget)
            db.commit()
            db.refresh(budget)
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to create budget for call {call_id}")
            raise

        BudgetService._warn_if_over_allocated(budget)
        return budget

    @staticmethod
    def update_budget(db: Session, call_id: int, budget_id: int, data: BudgetIn) -> Budget:
        """Full update: scalar fields plus the category list, matched by id."""
        budget = BudgetService.get_budget(db, call_id, budget_id)
        try:
            budget.title = data.title
            budget.description = data.description
            budget.total_amount = data.total_amount
            budget.currency = data.currency
            budget.fiscal_year = data.fiscal_year
            budget.status = data.status

            existing = {c.id: c for c in budget.categories}
            kept = []
            for position, cat in enumerate(data.categories):
                row = existing.pop(cat.id, None) if cat.id is not None else None
                if row is None:
                    row = BudgetCategory(budget_id=budget.id)
                row.name = cat.name
                row.description = cat.description
                row.allocated_amount = cat.allocated_amount
                row.position = position
                kept.append(row)

            # Expenses of removed categories fall back to "Uncategorized"
            if existing:
                db.query(Expense).filter(Expense.category_id.in_(list(existing))).update(
                    {Expense.category_id: None}, synchronize_session=False
                )
            budget.categories = kept

            db.commit()
            db.refresh(budget)
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to update budget {budget_id}")
            raise

        BudgetService._warn_if_over_allocated(budget)
        return budget

    @staticmethod
    def set_status(db: Session, call_id: int, budget_id: int, status: str) -> Budget:
        budget = BudgetService.get_budget(db, call_id, budget_id)
        try:
            budget.status = status
            db.commit()
            db.refresh(budget)
            return budget
        except SQLAlchemyError:
            db.rollback()
            logger.exception(f"Failed to change status of budget {budget_id}")
            raise

    @staticmethod
    def _warn_if_over_allocated(budget: Budget):
        allocated = total_allocated(budget.categories)
        if not is_allocation_valid(allocated, budget.total_amount):
            logger.warning(
                f"Budget {budget.id} is over-allocated: {allocated} allocated of {budget.total_amount}"
            )

    # ------------------------------------------------------------------
    # Reporting

    @staticmethod
    def report(
        db: Session,
        call_id: int,
        budget_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> dict:
        """Allocated vs. spent per budget and per category, optionally date-bounded."""
        if budget_id is not None:
            budgets = [BudgetService.get_budget(db, call_id, budget_id)]
        else:
            budgets = BudgetService.list_budgets(db, call_id)

        rows = []
        for b in budgets:
            query = db.query(Expense).filter(Expense.budget_id == b.id)
            if date_from:
                query = query.filter(Expense.date >= date_from)
            if date_to:
                query = query.filter(Expense.date <= date_to)
            expenses = query.all()

            spent_by_cat: dict[int | None, Decimal] = {}
            for e in expenses:
                spent_by_cat[e.category_id] = spent_by_cat.get(e.category_id, Decimal("0")) + e.amount

            categories = []
            for c in b.categories:
                spent = spent_by_cat.pop(c.id, Decimal("0"))
                categories.append({
                    "category_id": c.id,
                    "name": c.name,
                    "allocated_amount": c.allocated_amount,
                    "spent_amount": spent,
                    "remaining": c.allocated_amount - spent,
                    "percentage_used": allocation_percentage(spent, c.allocated_amount),
                })
            uncategorized = sum(spent_by_cat.values(), Decimal("0"))

            spent_total = sum((e.amount for e in expenses), Decimal("0"))
            rows.append({
                "budget_id": b.id,
                "title": b.title,
                "status": b.status,
                "currency": b.currency,
                "total_amount": b.total_amount,
                "total_allocated": total_allocated(b.categories),
                "spent_amount": spent_total,
                "remaining": b.total_amount - spent_total,
                "percentage_used": allocation_percentage(spent_total, b.total_amount),
                "uncategorized_amount": uncategorized,
                "expense_count": len(expenses),
                "categories": categories,
            })

        total_budget = sum((r["total_amount"] for r in rows), Decimal("0"))
        total_spent = sum((r["spent_amount"] for r in rows), Decimal("0"))
        return {
            "startup_call_id": call_id,
            "date_from": date_from,
            "date_to": date_to,
            "total_budget": total_budget,
            "total_spent": total_spent,
            "remaining": total_budget - total_spent,
            "percentage_used": allocation_percentage(total_spent, total_budget),
            "budgets": rows,
        }
