"""
Single visits - разовые посещения без абонемента
"""
import logging
from datetime import timedelta
from typing import List

from pydantic import TypeAdapter

from app.application.caching import read_through, safe_delete, safe_delete_prefix
from app.application.errors import InternalError, SingleVisitNotFound, ValidationError
from app.application.ports import SingleVisitStorage
from app.application.statistics import invalidate_statistics, parse_range
from app.domain.dto import SingleVisitView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage import errors as storage_errors
from app.utils.dates import parse_date
from app.utils.validation import parse_amount

logger = logging.getLogger(__name__)

LIST_PREFIX = "single_visits:"
ALL_KEY = "single_visits:all"
ITEM_PREFIX = "single_visit:"
VISITS_TTL = timedelta(minutes=30)

_visit = TypeAdapter(SingleVisitView)
_visits = TypeAdapter(List[SingleVisitView])


def _internal(op: str, exc: Exception) -> InternalError:
    logger.error("%s failed: %s", op, exc)
    return InternalError("Внутренняя ошибка хранилища")


def _invalidate(cache: Cache, visit_id: int) -> None:
    safe_delete_prefix(cache, LIST_PREFIX)
    safe_delete(cache, f"{ITEM_PREFIX}{visit_id}")
    invalidate_statistics(cache)


class AddSingleVisitUseCase:
    def __init__(self, storage: SingleVisitStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, visit_date, final_price) -> int:
        fields = {}
        day = None
        if visit_date is None or (isinstance(visit_date, str) and not visit_date.strip()):
            fields["visit_date"] = "обязательное поле"
        else:
            try:
                day = parse_date(visit_date)
            except ValueError:
                fields["visit_date"] = "ожидается дата в формате YYYY-MM-DD"

        price = None
        try:
            price = parse_amount(final_price)
        except ValueError as e:
            fields["final_price"] = str(e)

        if fields:
            raise ValidationError("Некорректные данные посещения", fields)

        try:
            visit_id = self.storage.add(day, price)
            self.storage.commit()
        except storage_errors.StorageError as e:
            raise _internal("single_visits.add", e) from e

        logger.info("Single visit %s added for %s", visit_id, day)
        _invalidate(self.cache, visit_id)
        return visit_id


class DeleteSingleVisitUseCase:
    def __init__(self, storage: SingleVisitStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, visit_id: int) -> None:
        try:
            self.storage.delete(visit_id)
            self.storage.commit()
        except storage_errors.SingleVisitNotFoundError:
            raise SingleVisitNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("single_visits.delete", e) from e

        logger.info("Single visit %s deleted", visit_id)
        _invalidate(self.cache, visit_id)


class SingleVisitReadService:
    def __init__(self, storage: SingleVisitStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def get_all(self) -> List[SingleVisitView]:
        return self._list(ALL_KEY, self.storage.get_all)

    def get_by_id(self, visit_id: int) -> SingleVisitView:
        try:
            return read_through(
                self.cache, f"{ITEM_PREFIX}{visit_id}", VISITS_TTL, _visit,
                lambda: self.storage.get(visit_id),
            )
        except storage_errors.SingleVisitNotFoundError:
            raise SingleVisitNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("single_visits.get_by_id", e) from e

    def get_by_day(self, day) -> List[SingleVisitView]:
        try:
            day = parse_date(day)
        except ValueError:
            raise ValidationError("Некорректная дата", {"date": "ожидается дата в формате YYYY-MM-DD"}) from None
        return self._list(f"{LIST_PREFIX}day:{day.isoformat()}", lambda: self.storage.get_by_day(day))

    def get_by_period(self, date_from, date_to) -> List[SingleVisitView]:
        start, end = parse_range(date_from, date_to)
        return self._list(
            f"{LIST_PREFIX}period:{start.isoformat()}:{end.isoformat()}",
            lambda: self.storage.get_by_period(start, end),
        )

    def _list(self, key: str, loader) -> List[SingleVisitView]:
        try:
            return read_through(self.cache, key, VISITS_TTL, _visits, loader)
        except storage_errors.StorageError as e:
            raise _internal(f"single_visits.list {key}", e) from e
