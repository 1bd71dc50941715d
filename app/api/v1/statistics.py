"""
Statistics API endpoints (все - для роли user)
"""
from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_cache, get_db, require_user
from app.application.statistics import StatisticsService
from app.domain.dto import MonthlyStat
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.statistics import StatisticsRepository


router = APIRouter(
    prefix="/api/v1/statistics",
    tags=["statistics"],
    dependencies=[Depends(require_user)],
)


def get_service(db: Session = Depends(get_db), cache: Cache = Depends(get_cache)) -> StatisticsService:
    return StatisticsService(StatisticsRepository(db), cache)


@router.get("/total_clients")
def total_clients(service: StatisticsService = Depends(get_service)):
    return {"total_clients": service.total_clients()}


@router.get("/new_clients")
def new_clients(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    service: StatisticsService = Depends(get_service),
):
    return {"new_clients": service.new_clients(date_from, date_to)}


@router.get("/total_income")
def total_income(service: StatisticsService = Depends(get_service)) -> dict[str, Decimal]:
    return {"total_income": service.total_income()}


@router.get("/income")
def income(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    service: StatisticsService = Depends(get_service),
) -> dict[str, Decimal]:
    return {"income": service.income(date_from, date_to)}


@router.get("/total_sold_subscriptions")
def total_sold_subscriptions(service: StatisticsService = Depends(get_service)):
    return {"total_sold_subscriptions": service.total_sold_subscriptions()}


@router.get("/sold_subscriptions")
def sold_subscriptions(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    service: StatisticsService = Depends(get_service),
):
    return {"sold_subscriptions": service.sold_subscriptions(date_from, date_to)}


@router.get("/monthly", response_model=List[MonthlyStat])
def monthly_statistics(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    service: StatisticsService = Depends(get_service),
):
    return service.monthly_statistics(date_from, date_to)


@router.get("/total_single_visits")
def total_single_visits(service: StatisticsService = Depends(get_service)):
    return {"total_single_visits": service.total_single_visits()}


@router.get("/single_visits")
def single_visits(
    date_from: str = Query("", alias="from"),
    date_to: str = Query("", alias="to"),
    service: StatisticsService = Depends(get_service),
):
    return {"single_visits": service.single_visits(date_from, date_to)}


@router.get("/single_visits_income")
def single_visits_income(service: StatisticsService = Depends(get_service)) -> dict[str, Decimal]:
    return {"single_visits_income": service.single_visits_income()}
