from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import get_current_user, require_admin
from database import get_db
from errors import NotFoundError
from schemas import BudgetIn, BudgetOut, BudgetStatusUpdate
from services.budget_service import BudgetService

router = APIRouter(prefix="/api/v1/startup-calls/{call_id}/budgets", tags=["Budgets"])


@router.get("", response_model=list[BudgetOut])
async def list_budgets(call_id: int, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        return BudgetService.list_budgets(db, call_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("", response_model=BudgetOut, status_code=201)
async def create_budget(
    call_id: int,
    data: BudgetIn,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    try:
        return BudgetService.create_budget(db, call_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/report")
async def budget_report(
    call_id: int,
    budget_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    try:
        return BudgetService.report(db, call_id, budget_id, date_from, date_to)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{budget_id}", response_model=BudgetOut)
async def get_budget(call_id: int, budget_id: int, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        return BudgetService.get_budget(db, call_id, budget_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{budget_id}", response_model=BudgetOut)
async def update_budget(
    call_id: int,
    budget_id: int,
    data: BudgetIn,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    try:
        return BudgetService.update_budget(db, call_id, budget_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{budget_id}/status", response_model=BudgetOut)
async def update_budget_status(
    call_id: int,
    budget_id: int,
    data: BudgetStatusUpdate,
    db: Session = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    try:
        return BudgetService.set_status(db, call_id, budget_id, data.status)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
