"""
Single visit API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_admin, require_user
from app.application.single_visits import (
    AddSingleVisitUseCase, DeleteSingleVisitUseCase, SingleVisitReadService,
)
from app.domain.dto import SingleVisitView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.single_visits import SingleVisitRepository


router = APIRouter(prefix="/api/v1/single_visit", tags=["single_visit"])


class AddSingleVisitRequest(BaseModel):
    visit_date: str = ""
    final_price: str = ""


def _service(db: Session, cache: Cache) -> SingleVisitReadService:
    return SingleVisitReadService(SingleVisitRepository(db), cache)


@router.get("", response_model=List[SingleVisitView], dependencies=[Depends(require_user)])
def get_all_single_visits(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return _service(db, cache).get_all()


# /day and /period are declared before /{visit_id}
@router.get("/day", response_model=List[SingleVisitView], dependencies=[Depends(require_user)])
def get_single_visits_by_day(
    day: str = Query("", alias="date"),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return _service(db, cache).get_by_day(day)


@router.get("/period", response_model=List[SingleVisitView], dependencies=[Depends(require_user)])
def get_single_visits_by_period(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return _service(db, cache).get_by_period(date_from, date_to)


@router.get("/{visit_id}", response_model=SingleVisitView, dependencies=[Depends(require_user)])
def get_single_visit_by_id(visit_id: int, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return _service(db, cache).get_by_id(visit_id)


@router.post("/add", status_code=201, dependencies=[Depends(require_admin)])
def add_single_visit(req: AddSingleVisitRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    visit_id = AddSingleVisitUseCase(SingleVisitRepository(db), cache).execute(req.visit_date, req.final_price)
    return {"status": "OK", "id": visit_id}


@router.delete("/delete/{visit_id}", dependencies=[Depends(require_admin)])
def delete_single_visit(visit_id: int, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    DeleteSingleVisitUseCase(SingleVisitRepository(db), cache).execute(visit_id)
    return {"status": "OK"}
