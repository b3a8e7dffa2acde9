from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth import get_current_user, require_admin
from database import get_db
from errors import NotFoundError
from schemas import StartupCallCreate, StartupCallOut
from services.budget_service import BudgetService

router = APIRouter(prefix="/api/v1/startup-calls", tags=["Startup Calls"])


@router.get("", response_model=list[StartupCallOut])
async def list_calls(db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    return BudgetService.list_calls(db)


@router.post("", response_model=StartupCallOut, status_code=201)
async def create_call(data: StartupCallCreate, db: Session = Depends(get_db), admin: dict = Depends(require_admin)):
    return BudgetService.create_call(db, data)


@router.get("/{call_id}", response_model=StartupCallOut)
async def get_call(call_id: int, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        return BudgetService.get_call(db, call_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
