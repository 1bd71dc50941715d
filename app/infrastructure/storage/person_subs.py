"""
PersonSubscription repository (PostgreSQL / SQLite via SQLAlchemy)
"""
from collections import defaultdict
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from app.domain.dto import NewPersonSub, PersonSubView
from app.domain.person_subscription import SubscriptionStatus
from app.domain.subscription_freeze import remaining_freeze_days, used_freeze_days
from app.infrastructure.db.models import (
    PersonModel, SubscriptionPlanModel, PersonSubscriptionModel, SubscriptionFreezeModel,
)
from app.infrastructure.storage.base import Repository, integrity_kind
from app.infrastructure.storage.errors import (
    SubscriptionExistsError, SubscriptionNotFoundError, PersonNotFoundError, StorageError,
)


def _number_sort_key(view: PersonSubView):
    # numeric numbers first, highest first; then the rest alphabetically
    if view.number.isdigit():
        return (0, -int(view.number), "")
    return (1, 0, view.number)


class PersonSubRepository(Repository):
    """
    Repository для абонементов клиентов

    Все чтения возвращают PersonSubView: абонемент + имя клиента + тариф +
    использованные дни заморозки (открытый интервал считается до today).
    """

    def add(self, record: NewPersonSub) -> str:
        with self._db_errors("storage.person_subs.add"):
            if self.db.get(PersonSubscriptionModel, record.number) is not None:
                raise SubscriptionExistsError(record.number)
            row = PersonSubscriptionModel(
                number=record.number,
                person_id=record.person_id,
                subscription_id=record.subscription_id,
                subscription_price=record.subscription_price,
                start_date=record.start_date,
                end_date=record.end_date,
                status=record.status.value,
                discount=record.discount,
                final_price=record.final_price,
            )
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError as exc:
                self.db.rollback()
                kind = integrity_kind(exc)
                if kind == "unique":
                    raise SubscriptionExistsError(record.number) from exc
                if kind == "foreign_key":
                    raise PersonNotFoundError(record.person_id) from exc
                raise StorageError(f"storage.person_subs.add: {exc}") from exc
            return row.number

    def get_by_number(self, number: str, today: date) -> PersonSubView:
        with self._db_errors("storage.person_subs.get_by_number"):
            views = self._select_views(today, PersonSubscriptionModel.number == number)
        if not views:
            raise SubscriptionNotFoundError(number)
        return views[0]

    def get_all(self, today: date) -> List[PersonSubView]:
        with self._db_errors("storage.person_subs.get_all"):
            views = self._select_views(today)
        return sorted(views, key=_number_sort_key)

    def find_by_person_name(self, name: str, today: date) -> List[PersonSubView]:
        with self._db_errors("storage.person_subs.find_by_person_name"):
            exists = self.db.scalar(
                select(PersonModel.id).where(PersonModel.full_name == name).limit(1)
            )
            if exists is None:
                raise PersonNotFoundError(name)
            return self._select_views(today, PersonModel.full_name == name)

    def find_by_person_id(self, person_id: int, today: date) -> List[PersonSubView]:
        with self._db_errors("storage.person_subs.find_by_person_id"):
            if self.db.get(PersonModel, person_id) is None:
                raise PersonNotFoundError(person_id)
            return self._select_views(today, PersonSubscriptionModel.person_id == person_id)

    def delete(self, number: str) -> None:
        with self._db_errors("storage.person_subs.delete"):
            result = self.db.execute(
                delete(PersonSubscriptionModel).where(PersonSubscriptionModel.number == number)
            )
            if result.rowcount == 0:
                raise SubscriptionNotFoundError(number)

    def update_status(self, number: str, status: SubscriptionStatus) -> None:
        with self._db_errors("storage.person_subs.update_status"):
            result = self.db.execute(
                update(PersonSubscriptionModel)
                .where(PersonSubscriptionModel.number == number)
                .values(status=status.value)
            )
            if result.rowcount == 0:
                raise SubscriptionNotFoundError(number)

    def person_name(self, person_id: int) -> Optional[str]:
        with self._db_errors("storage.person_subs.person_name"):
            return self.db.scalar(select(PersonModel.full_name).where(PersonModel.id == person_id))

    # ── helpers ──────────────────────────────────────────────────────────

    def _select_views(self, today: date, *criteria) -> List[PersonSubView]:
        stmt = (
            select(
                PersonSubscriptionModel,
                PersonModel.full_name,
                SubscriptionPlanModel.title,
                SubscriptionPlanModel.freeze_days,
            )
            .join(PersonModel, PersonSubscriptionModel.person_id == PersonModel.id)
            .join(SubscriptionPlanModel, PersonSubscriptionModel.subscription_id == SubscriptionPlanModel.id)
        )
        if criteria:
            stmt = stmt.where(*criteria)
        rows = self.db.execute(stmt).all()
        if not rows:
            return []

        numbers = [ps.number for ps, _, _, _ in rows]
        used = self._used_freeze_days(numbers, today)

        return [
            PersonSubView(
                number=ps.number,
                person_id=ps.person_id,
                person_name=person_name,
                subscription_id=ps.subscription_id,
                subscription_title=title,
                subscription_price=ps.subscription_price,
                start_date=ps.start_date,
                end_date=ps.end_date,
                status=SubscriptionStatus(ps.status),
                discount=ps.discount,
                final_price=ps.final_price,
                freeze_days=freeze_days,
                used_freeze_days=used.get(ps.number, 0),
                remaining_freeze_days=remaining_freeze_days(freeze_days, used.get(ps.number, 0)),
            )
            for ps, person_name, title, freeze_days in rows
        ]

    def _used_freeze_days(self, numbers: Iterable[str], today: date) -> dict:
        numbers = list(numbers)
        intervals = defaultdict(list)
        rows = self.db.execute(
            select(
                SubscriptionFreezeModel.subscription_number,
                SubscriptionFreezeModel.freeze_start,
                SubscriptionFreezeModel.freeze_end,
            ).where(SubscriptionFreezeModel.subscription_number.in_(numbers))
        ).all()
        for number, start, end in rows:
            intervals[number].append((start, end))
        return {number: used_freeze_days(items, today) for number, items in intervals.items()}
