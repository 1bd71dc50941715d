"""
SingleVisit repository
"""
from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import select, delete

from app.domain.dto import SingleVisitView
from app.infrastructure.db.models import SingleVisitModel
from app.infrastructure.storage.base import Repository
from app.infrastructure.storage.errors import SingleVisitNotFoundError


class SingleVisitRepository(Repository):

    def add(self, visit_date: date, final_price: Decimal) -> int:
        with self._db_errors("storage.single_visits.add"):
            visit = SingleVisitModel(visit_date=visit_date, final_price=final_price)
            self.db.add(visit)
            self.db.flush()
            return visit.id

    def get(self, visit_id: int) -> SingleVisitView:
        with self._db_errors("storage.single_visits.get"):
            visit = self.db.get(SingleVisitModel, visit_id)
        if visit is None:
            raise SingleVisitNotFoundError(visit_id)
        return SingleVisitView.model_validate(visit)

    def get_all(self) -> List[SingleVisitView]:
        return self._select("storage.single_visits.get_all")

    def get_by_day(self, day: date) -> List[SingleVisitView]:
        return self._select("storage.single_visits.get_by_day", SingleVisitModel.visit_date == day)

    def get_by_period(self, date_from: date, date_to: date) -> List[SingleVisitView]:
        return self._select(
            "storage.single_visits.get_by_period",
            SingleVisitModel.visit_date.between(date_from, date_to),
        )

    def delete(self, visit_id: int) -> None:
        with self._db_errors("storage.single_visits.delete"):
            result = self.db.execute(delete(SingleVisitModel).where(SingleVisitModel.id == visit_id))
            if result.rowcount == 0:
                raise SingleVisitNotFoundError(visit_id)

    def _select(self, op: str, *criteria) -> List[SingleVisitView]:
        with self._db_errors(op):
            stmt = select(SingleVisitModel).order_by(SingleVisitModel.visit_date.desc(), SingleVisitModel.id.desc())
            if criteria:
                stmt = stmt.where(*criteria)
            rows = self.db.scalars(stmt).all()
        return [SingleVisitView.model_validate(row) for row in rows]
