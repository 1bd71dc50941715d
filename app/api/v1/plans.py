"""
Subscription plan (тариф) API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_admin, require_user
from app.application.plans import AddPlanUseCase, DeletePlanUseCase, UpdatePlanUseCase, list_plans
from app.domain.dto import PlanView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.plans import PlanRepository


router = APIRouter(prefix="/api/v1/subscription", tags=["subscription"])


class PlanRequest(BaseModel):
    title: str
    price: str  # Decimal as string ("1000" / "1000,50")
    duration_days: int
    freeze_days: int = 0


@router.get("", response_model=List[PlanView], dependencies=[Depends(require_user)])
def find_all_plans(db: Session = Depends(get_db)):
    return list_plans(PlanRepository(db))


@router.post("/add", status_code=201, dependencies=[Depends(require_admin)])
def add_plan(req: PlanRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    plan_id = AddPlanUseCase(PlanRepository(db), cache).execute(
        req.title, req.price, req.duration_days, req.freeze_days,
    )
    return {"status": "OK", "id": plan_id}


@router.put("/update/{plan_id}", dependencies=[Depends(require_admin)])
def update_plan(
    plan_id: int,
    req: PlanRequest,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    UpdatePlanUseCase(PlanRepository(db), cache).execute(
        plan_id, req.title, req.price, req.duration_days, req.freeze_days,
    )
    return {"status": "OK"}


@router.delete("/delete/{plan_id}", dependencies=[Depends(require_admin)])
def delete_plan(plan_id: int, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    DeletePlanUseCase(PlanRepository(db), cache).execute(plan_id)
    return {"status": "OK"}
