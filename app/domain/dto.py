"""
Data transfer objects shared by storage, services, cache and API
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.domain.person_subscription import SubscriptionStatus


class PersonView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone: str


class PlanView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    price: Decimal
    duration_days: int
    freeze_days: int


class PersonSubView(BaseModel):
    """Абонемент клиента вместе с именем клиента, тарифом и расходом заморозки"""
    number: str
    person_id: int
    person_name: str
    subscription_id: int
    subscription_title: str
    subscription_price: Decimal
    start_date: date
    end_date: date
    status: SubscriptionStatus
    discount: Decimal
    final_price: Decimal
    freeze_days: int
    used_freeze_days: int = 0
    remaining_freeze_days: int = 0


class FreezeView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subscription_number: str
    freeze_start: date
    freeze_end: Optional[date] = None
    days_used: int
    created_at: Optional[datetime] = None


class SingleVisitView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    visit_date: date
    final_price: Decimal


class MonthlyStat(BaseModel):
    """Агрегаты за календарный месяц (month - первое число месяца)"""
    month: date
    income: Decimal = Decimal("0")
    new_clients: int = 0
    sold_subscriptions: int = 0
    single_visits_income: Decimal = Decimal("0")
    single_visits_count: int = 0


@dataclass
class NewPersonSub:
    """Validated record ready to be inserted."""
    number: str
    person_id: int
    subscription_id: int
    subscription_price: Decimal
    start_date: date
    end_date: date
    status: SubscriptionStatus
    discount: Decimal
    final_price: Decimal
