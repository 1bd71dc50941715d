"""
Storage ports - узкие интерфейсы, которые нужны каждому сервису

SQLAlchemy-репозитории (app.infrastructure.storage) реализуют их структурно.
Мутирующие методы только делают flush; транзакцию завершает сервис через commit().
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol, Tuple

from app.domain.dto import (
    FreezeView, MonthlyStat, NewPersonSub, PersonSubView, PersonView, PlanView, SingleVisitView,
)
from app.domain.person_subscription import SubscriptionStatus


class Transactional(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class PersonSubStorage(Transactional, Protocol):
    def add(self, record: NewPersonSub) -> str: ...

    def get_by_number(self, number: str, today: date) -> PersonSubView: ...

    def get_all(self, today: date) -> List[PersonSubView]: ...

    def find_by_person_name(self, name: str, today: date) -> List[PersonSubView]: ...

    def find_by_person_id(self, person_id: int, today: date) -> List[PersonSubView]: ...

    def delete(self, number: str) -> None: ...

    def update_status(self, number: str, status: SubscriptionStatus) -> None: ...

    def person_name(self, person_id: int) -> Optional[str]: ...


class FreezeStorage(Transactional, Protocol):
    def get_state(self, number: str, today: date): ...

    def open_freeze(self, number: str, freeze_start: date) -> int: ...

    def get_open(self, number: str) -> FreezeView: ...

    def close_freeze(self, freeze_id: int, freeze_end: date, days_used: int,
                     status: Optional[SubscriptionStatus] = None) -> Tuple[int, str]: ...

    def get_all_active(self) -> List[FreezeView]: ...


class StatStorage(Protocol):
    def total_clients(self) -> int: ...

    def new_clients(self, date_from: date, date_to: date) -> int: ...

    def total_income(self) -> Decimal: ...

    def income(self, date_from: date, date_to: date) -> Decimal: ...

    def total_sold_subscriptions(self) -> int: ...

    def sold_subscriptions(self, date_from: date, date_to: date) -> int: ...

    def total_single_visits(self) -> int: ...

    def single_visits(self, date_from: date, date_to: date) -> int: ...

    def single_visits_income(self) -> Decimal: ...

    def monthly_statistics(self, date_from: date, date_to: date) -> List[MonthlyStat]: ...


class PersonStorage(Transactional, Protocol):
    def add(self, full_name: str, phone: str) -> int: ...

    def update(self, person_id: int, full_name: str, phone: str) -> PersonView: ...

    def delete(self, person_id: int) -> PersonView: ...

    def get(self, person_id: int) -> PersonView: ...

    def find_by_name(self, name: str) -> List[PersonView]: ...

    def get_all(self) -> List[PersonView]: ...


class PlanStorage(Transactional, Protocol):
    def add(self, title: str, price: Decimal, duration_days: int, freeze_days: int) -> int: ...

    def update(self, plan_id: int, title: str, price: Decimal, duration_days: int, freeze_days: int) -> None: ...

    def delete(self, plan_id: int) -> None: ...

    def get(self, plan_id: int) -> PlanView: ...

    def get_all(self) -> List[PlanView]: ...


class SingleVisitStorage(Transactional, Protocol):
    def add(self, visit_date: date, final_price: Decimal) -> int: ...

    def get(self, visit_id: int) -> SingleVisitView: ...

    def get_all(self) -> List[SingleVisitView]: ...

    def get_by_day(self, day: date) -> List[SingleVisitView]: ...

    def get_by_period(self, date_from: date, date_to: date) -> List[SingleVisitView]: ...

    def delete(self, visit_id: int) -> None: ...
