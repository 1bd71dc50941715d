"""
Subscription freeze API endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_admin, require_user
from app.application.freezes import (
    FreezeReadService, FreezeSubscriptionUseCase, UnfreezeSubscriptionUseCase,
)
from app.domain.dto import FreezeView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.freezes import FreezeRepository


router = APIRouter(prefix="/api/v1/freeze", tags=["freeze"])


class FreezeRequest(BaseModel):
    number: str = ""
    freeze_start: Optional[str] = None  # по умолчанию - сегодня


class UnfreezeRequest(BaseModel):
    number: str = ""
    unfreeze_date: Optional[str] = None


@router.get("", response_model=List[FreezeView], dependencies=[Depends(require_user)])
def get_all_active_freeze(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    return FreezeReadService(FreezeRepository(db), cache).get_all_active()


@router.post("/add", status_code=201, dependencies=[Depends(require_admin)])
def freeze_subscription(req: FreezeRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    freeze_id = FreezeSubscriptionUseCase(FreezeRepository(db), cache).execute(req.number, req.freeze_start)
    return {"status": "OK", "id": freeze_id}


@router.post("/unfreeze", dependencies=[Depends(require_admin)])
def unfreeze_subscription(req: UnfreezeRequest, db: Session = Depends(get_db), cache: Cache = Depends(get_cache)):
    UnfreezeSubscriptionUseCase(FreezeRepository(db), cache).execute(req.number, req.unfreeze_date)
    return {"status": "OK"}
