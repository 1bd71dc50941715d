"""
SubscriptionFreeze repository
"""
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.domain.dto import FreezeView
from app.domain.person_subscription import SubscriptionStatus
from app.domain.subscription_freeze import used_freeze_days
from app.infrastructure.db.models import (
    PersonModel, PersonSubscriptionModel, SubscriptionPlanModel, SubscriptionFreezeModel,
)
from app.infrastructure.storage.base import Repository, integrity_kind
from app.infrastructure.storage.errors import (
    SubscriptionNotFoundError, FreezeNotFoundError, OpenFreezeExistsError, StorageError,
)


@dataclass
class FreezeState:
    """Snapshot of a subscription taken before opening a freeze."""
    number: str
    person_id: int
    person_name: str
    status: SubscriptionStatus
    start_date: date
    end_date: date
    freeze_quota: int
    used_days: int
    has_open_freeze: bool


class FreezeRepository(Repository):

    def get_state(self, number: str, today: date) -> FreezeState:
        """
        Состояние абонемента для заморозки (строка абонемента блокируется до commit/rollback)
        """
        with self._db_errors("storage.freezes.get_state"):
            row = self.db.execute(
                select(PersonSubscriptionModel, SubscriptionPlanModel.freeze_days, PersonModel.full_name)
                .join(PersonModel, PersonSubscriptionModel.person_id == PersonModel.id)
                .join(SubscriptionPlanModel, PersonSubscriptionModel.subscription_id == SubscriptionPlanModel.id)
                .where(PersonSubscriptionModel.number == number)
                .with_for_update(of=PersonSubscriptionModel)
            ).first()
            if row is None:
                raise SubscriptionNotFoundError(number)
            sub, quota, person_name = row

            intervals = self.db.execute(
                select(SubscriptionFreezeModel.freeze_start, SubscriptionFreezeModel.freeze_end)
                .where(SubscriptionFreezeModel.subscription_number == number)
            ).all()

        return FreezeState(
            number=sub.number,
            person_id=sub.person_id,
            person_name=person_name,
            status=SubscriptionStatus(sub.status),
            start_date=sub.start_date,
            end_date=sub.end_date,
            freeze_quota=quota,
            used_days=used_freeze_days(intervals, today),
            has_open_freeze=any(end is None for _, end in intervals),
        )

    def open_freeze(self, number: str, freeze_start: date) -> int:
        """Insert an open interval and mark the subscription frozen (flush only)."""
        with self._db_errors("storage.freezes.open_freeze"):
            freeze = SubscriptionFreezeModel(
                subscription_number=number,
                freeze_start=freeze_start,
                freeze_end=None,
                days_used=0,
            )
            self.db.add(freeze)
            try:
                self.db.flush()
            except IntegrityError as exc:
                self.db.rollback()
                kind = integrity_kind(exc)
                if kind == "unique":
                    raise OpenFreezeExistsError(number) from exc
                if kind == "foreign_key":
                    raise SubscriptionNotFoundError(number) from exc
                raise StorageError(f"storage.freezes.open_freeze: {exc}") from exc

            sub = self.db.get(PersonSubscriptionModel, number)
            if sub is None:
                raise SubscriptionNotFoundError(number)
            sub.status = SubscriptionStatus.FROZEN.value
            self.db.flush()
            return freeze.id

    def get_open(self, number: str) -> FreezeView:
        with self._db_errors("storage.freezes.get_open"):
            freeze = self.db.scalar(
                select(SubscriptionFreezeModel)
                .where(
                    SubscriptionFreezeModel.subscription_number == number,
                    SubscriptionFreezeModel.freeze_end.is_(None),
                )
                .with_for_update()
            )
        if freeze is None:
            raise FreezeNotFoundError(number)
        return FreezeView.model_validate(freeze)

    def close_freeze(self, freeze_id: int, freeze_end: date, days_used: int,
                     status: Optional[SubscriptionStatus] = None) -> Tuple[int, str]:
        """
        Закрывает интервал заморозки. Статус абонемента меняется только если передан status.
        Returns the owner (id, name).
        """
        with self._db_errors("storage.freezes.close_freeze"):
            freeze = self.db.get(SubscriptionFreezeModel, freeze_id)
            if freeze is None or freeze.freeze_end is not None:
                raise FreezeNotFoundError(freeze_id)
            freeze.freeze_end = freeze_end
            freeze.days_used = days_used

            sub = self.db.get(PersonSubscriptionModel, freeze.subscription_number)
            if sub is None:
                raise SubscriptionNotFoundError(freeze.subscription_number)
            if status is not None:
                sub.status = status.value
            self.db.flush()
            person_name = self.db.scalar(select(PersonModel.full_name).where(PersonModel.id == sub.person_id))
            return sub.person_id, person_name

    def get_all_active(self) -> List[FreezeView]:
        """Freeze rows of currently frozen subscriptions, newest first."""
        with self._db_errors("storage.freezes.get_all_active"):
            rows = self.db.scalars(
                select(SubscriptionFreezeModel)
                .join(
                    PersonSubscriptionModel,
                    SubscriptionFreezeModel.subscription_number == PersonSubscriptionModel.number,
                )
                .where(PersonSubscriptionModel.status == SubscriptionStatus.FROZEN.value)
                .order_by(SubscriptionFreezeModel.created_at.desc(), SubscriptionFreezeModel.id.desc())
            ).all()
        return [FreezeView.model_validate(row) for row in rows]
