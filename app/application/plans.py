"""
Subscription plans (тарифы) use cases
"""
import logging
from decimal import Decimal
from typing import List

from app.application.errors import InternalError, PlanNotFound, ReferencedEntity, ValidationError
from app.application.ports import PlanStorage
from app.application.statistics import invalidate_statistics
from app.domain.dto import PlanView
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage import errors as storage_errors
from app.utils.validation import parse_amount

logger = logging.getLogger(__name__)


def validate_plan(title, price, duration_days, freeze_days) -> tuple[str, Decimal, int, int]:
    """
    Проверить поля тарифа

    Returns:
        (title, price, duration_days, freeze_days) в нормализованном виде

    Raises:
        ValidationError: с полем fields по каждому некорректному значению
    """
    fields = {}
    title = (title or "").strip()
    if not title:
        fields["title"] = "обязательное поле"

    amount = None
    try:
        amount = parse_amount(price)
    except ValueError as e:
        fields["price"] = str(e)

    if not isinstance(duration_days, int) or isinstance(duration_days, bool) or duration_days <= 0:
        fields["duration_days"] = "должно быть положительным целым числом"

    if freeze_days is None:
        freeze_days = 0
    if not isinstance(freeze_days, int) or isinstance(freeze_days, bool) or freeze_days < 0:
        fields["freeze_days"] = "должно быть неотрицательным целым числом"

    if fields:
        raise ValidationError("Некорректные данные тарифа", fields)
    return title, amount, duration_days, freeze_days


class AddPlanUseCase:
    def __init__(self, storage: PlanStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, title: str, price, duration_days: int, freeze_days: int = 0) -> int:
        title, price, duration_days, freeze_days = validate_plan(title, price, duration_days, freeze_days)
        try:
            plan_id = self.storage.add(title, price, duration_days, freeze_days)
            self.storage.commit()
        except storage_errors.StorageError as e:
            logger.error("plans.add failed: %s", e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        logger.info("Plan %s added (id=%s)", title, plan_id)
        invalidate_statistics(self.cache)
        return plan_id


class UpdatePlanUseCase:
    """Изменение тарифа не меняет уже проданные абонементы (subscription_price - снимок)"""

    def __init__(self, storage: PlanStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, plan_id: int, title: str, price, duration_days: int, freeze_days: int = 0) -> None:
        title, price, duration_days, freeze_days = validate_plan(title, price, duration_days, freeze_days)
        try:
            self.storage.update(plan_id, title, price, duration_days, freeze_days)
            self.storage.commit()
        except storage_errors.PlanNotFoundError:
            raise PlanNotFound() from None
        except storage_errors.StorageError as e:
            logger.error("plans.update failed: %s", e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        logger.info("Plan %s updated", plan_id)
        invalidate_statistics(self.cache)


class DeletePlanUseCase:
    def __init__(self, storage: PlanStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def execute(self, plan_id: int) -> None:
        try:
            self.storage.delete(plan_id)
            self.storage.commit()
        except storage_errors.PlanNotFoundError:
            raise PlanNotFound() from None
        except storage_errors.RowReferencedError:
            raise ReferencedEntity("Тариф используется в абонементах, удаление невозможно") from None
        except storage_errors.StorageError as e:
            logger.error("plans.delete failed: %s", e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        logger.info("Plan %s deleted", plan_id)
        invalidate_statistics(self.cache)


def list_plans(storage: PlanStorage) -> List[PlanView]:
    try:
        return storage.get_all()
    except storage_errors.StorageError as e:
        logger.error("plans.list failed: %s", e)
        raise InternalError("Внутренняя ошибка хранилища") from e
