"""
People API endpoints
"""
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_admin, require_user
from app.application.people import (
    AddPersonUseCase, DeletePersonUseCase, PeopleReadService, UpdatePersonUseCase,
)
from app.domain.dto import PersonView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.people import PersonRepository


router = APIRouter(prefix="/api/v1/people", tags=["people"])


# === Request/Response models ===

class PersonRequest(BaseModel):
    full_name: str
    phone: str


# === Endpoints ===

@router.get("", response_model=List[PersonView], dependencies=[Depends(require_user)])
def find_all_people(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return PeopleReadService(PersonRepository(db), cache).find_all()


@router.get("/find", response_model=List[PersonView], dependencies=[Depends(require_user)])
def find_person_by_name(name: str = "", db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    """Поиск по подстроке имени (без учёта регистра), максимум 20"""
    return PeopleReadService(PersonRepository(db), cache).find_by_name(name)


@router.get("/find/{person_id}", response_model=PersonView, dependencies=[Depends(require_user)])
def find_person_by_id(person_id: int, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return PeopleReadService(PersonRepository(db), cache).find_by_id(person_id)


@router.post("/add", status_code=201, dependencies=[Depends(require_admin)])
def add_person(req: PersonRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    person_id = AddPersonUseCase(PersonRepository(db), cache).execute(req.full_name, req.phone)
    return {"status": "OK", "id": person_id}


@router.put("/update/{person_id}", response_model=PersonView, dependencies=[Depends(require_admin)])
def update_person(
    person_id: int,
    req: PersonRequest,
    db: Session = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    return UpdatePersonUseCase(PersonRepository(db), cache).execute(person_id, req.full_name, req.phone)


@router.delete("/delete/{person_id}", dependencies=[Depends(require_admin)])
def delete_person(person_id: int, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    DeletePersonUseCase(PersonRepository(db), cache).execute(person_id)
    return {"status": "OK"}
