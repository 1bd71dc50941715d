"""
SubscriptionPlan repository
"""
from decimal import Decimal
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.domain.dto import PlanView
from app.infrastructure.db.models import SubscriptionPlanModel
from app.infrastructure.storage.base import Repository, integrity_kind
from app.infrastructure.storage.errors import PlanNotFoundError, RowReferencedError, StorageError


class PlanRepository(Repository):

    def add(self, title: str, price: Decimal, duration_days: int, freeze_days: int) -> int:
        with self._db_errors("storage.plans.add"):
            plan = SubscriptionPlanModel(
                title=title,
                price=price,
                duration_days=duration_days,
                freeze_days=freeze_days,
            )
            self.db.add(plan)
            self.db.flush()
            return plan.id

    def update(self, plan_id: int, title: str, price: Decimal, duration_days: int, freeze_days: int) -> None:
        with self._db_errors("storage.plans.update"):
            plan = self.db.get(SubscriptionPlanModel, plan_id)
            if plan is None:
                raise PlanNotFoundError(plan_id)
            plan.title = title
            plan.price = price
            plan.duration_days = duration_days
            plan.freeze_days = freeze_days
            self.db.flush()

    def delete(self, plan_id: int) -> None:
        with self._db_errors("storage.plans.delete"):
            plan = self.db.get(SubscriptionPlanModel, plan_id)
            if plan is None:
                raise PlanNotFoundError(plan_id)
            self.db.delete(plan)
            try:
                self.db.flush()
            except IntegrityError as exc:
                self.db.rollback()
                if integrity_kind(exc) == "foreign_key":
                    raise RowReferencedError(plan_id) from exc
                raise StorageError(f"storage.plans.delete: {exc}") from exc

    def get(self, plan_id: int) -> PlanView:
        with self._db_errors("storage.plans.get"):
            plan = self.db.get(SubscriptionPlanModel, plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return PlanView.model_validate(plan)

    def get_all(self) -> List[PlanView]:
        with self._db_errors("storage.plans.get_all"):
            rows = self.db.scalars(select(SubscriptionPlanModel).order_by(SubscriptionPlanModel.id)).all()
        return [PlanView.model_validate(row) for row in rows]
