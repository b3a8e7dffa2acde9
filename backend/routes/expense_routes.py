from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import ADMIN_ROLE, get_current_user, require_admin
from database import get_db
from errors import BudgetRuleError, NotFoundError
from schemas import ExpenseIn, ExpenseOut, ExpenseStatusUpdate
from services.expense_service import ExpenseService

router = APIRouter(prefix="/api/v1/startup-calls/{call_id}/budgets", tags=["Expenses"])


def _rule_error(e: BudgetRuleError) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": e.message, "details": e.details})


@router.get("/expenses", response_model=list[ExpenseOut])
async def list_expenses(
    call_id: int,
    budget_id: Optional[int] = None,
    category_id: Optional[int] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    filters = {"budget_id": budget_id, "category_id": category_id, "status": status}
    try:
        return ExpenseService.get_all(db, call_id, filters)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{budget_id}/expenses", response_model=ExpenseOut, status_code=201)
async def create_expense(
    call_id: int,
    budget_id: int,
    data: ExpenseIn,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return ExpenseService.create(db, call_id, budget_id, user["user_id"], data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BudgetRuleError as e:
        raise _rule_error(e)


@router.put("/expenses/{expense_id}", response_model=ExpenseOut)
async def update_expense(
    call_id: int,
    expense_id: int,
    data: ExpenseIn,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        expense = ExpenseService.get_by_id(db, call_id, expense_id)
        if user["role"] != ADMIN_ROLE and expense.user_id != user["user_id"]:
            raise HTTPException(status_code=403, detail="You can only edit your own expenses")
        return ExpenseService.update(db, call_id, expense_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BudgetRuleError as e:
        raise _rule_error(e)


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    call_id: int,
    expense_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        expense = ExpenseService.get_by_id(db, call_id, expense_id)
        if user["role"] != ADMIN_ROLE and expense.user_id != user["user_id"]:
            raise HTTPException(status_code=403, detail="You can only delete your own expenses")
        ExpenseService.delete(db, call_id, expense_id)
        return {"status": "success"}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/expenses/{expense_id}/status", response_model=ExpenseOut)
async def update_expense_status(
    call_id: int,
    expense_id: int,
    data: ExpenseStatusUpdate,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    try:
        return ExpenseService.set_status(db, call_id, expense_id, data.status, data.comment)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BudgetRuleError as e:
        raise _rule_error(e)
