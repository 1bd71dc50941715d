"""
Person subscription API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_admin, require_user
from app.application.person_subs import (
    AddPersonSubUseCase, ClosePersonSubUseCase, DeletePersonSubUseCase, PersonSubReadService,
)
from app.domain.dto import PersonSubView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.person_subs import PersonSubRepository
from app.infrastructure.storage.plans import PlanRepository


router = APIRouter(prefix="/api/v1/person_sub", tags=["person_sub"])


# === Request/Response models ===

class AddPersonSubRequest(BaseModel):
    number: str = ""
    person_id: int = 0
    subscription_id: int = 0
    start_date: Optional[str] = None  # YYYY-MM-DD (RFC 3339 тоже принимается)
    end_date: Optional[str] = None
    discount: Optional[str] = None
    final_price: Optional[str] = None


# === Endpoints ===

@router.get("", response_model=List[PersonSubView], dependencies=[Depends(require_user)])
def find_all_person_subs(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return PersonSubReadService(PersonSubRepository(db), cache).get_all()


@router.get("/find", response_model=List[PersonSubView], dependencies=[Depends(require_user)])
def find_person_subs_by_person_name(
    name: str = "",
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return PersonSubReadService(PersonSubRepository(db), cache).find_by_person_name(name)


@router.get("/find/id/{person_id}", response_model=List[PersonSubView], dependencies=[Depends(require_user)])
def find_person_subs_by_person_id(
    person_id: int,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return PersonSubReadService(PersonSubRepository(db), cache).find_by_person_id(person_id)


@router.get("/find/{number}", response_model=PersonSubView, dependencies=[Depends(require_user)])
def find_person_sub_by_number(number: str, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return PersonSubReadService(PersonSubRepository(db), cache).get_by_number(number)


@router.post("/add", status_code=201, dependencies=[Depends(require_admin)])
def add_person_sub(req: AddPersonSubRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    """Продать абонемент (end_date по умолчанию = start_date + длительность тарифа)"""
    number = AddPersonSubUseCase(PersonSubRepository(db), PlanRepository(db), cache).execute(
        number=req.number,
        person_id=req.person_id,
        subscription_id=req.subscription_id,
        start_date=req.start_date,
        end_date=req.end_date,
        discount=req.discount,
        final_price=req.final_price,
    )
    return {"status": "OK", "number": number}


@router.delete("/delete/{number}", dependencies=[Depends(require_admin)])
def delete_person_sub(number: str, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    DeletePersonSubUseCase(PersonSubRepository(db), cache).execute(number)
    return {"status": "OK"}


@router.post("/close/{number}", dependencies=[Depends(require_admin)])
def close_person_sub(number: str, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    ClosePersonSubUseCase(PersonSubRepository(db), cache).execute(number)
    return {"status": "OK"}
