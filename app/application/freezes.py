"""
Subscription freezes - заморозка / разморозка абонемента
"""
import logging
from datetime import date, timedelta
from typing import Callable, List

from pydantic import TypeAdapter

from app.application.caching import read_through, safe_delete_prefix
from app.application.errors import (
    FreezeAlreadyOpen, FreezeNotAllowed, FreezeNotFound, InternalError, SubscriptionNotFound,
    ValidationError,
)
from app.application.person_subs import ACTIVE_FREEZES_KEY, FREEZE_PREFIX, invalidate_person_sub
from app.application.ports import FreezeStorage
from app.application.statistics import invalidate_statistics
from app.domain.dto import FreezeView
from app.domain.person_subscription import SubscriptionStatus
from app.domain.subscription_freeze import interval_days
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage import errors as storage_errors
from app.utils.dates import local_today, parse_optional_date

logger = logging.getLogger(__name__)

FREEZE_TTL = timedelta(minutes=10)

_freezes = TypeAdapter(List[FreezeView])


def _parse_day(value, field: str, default: date) -> date:
    try:
        parsed = parse_optional_date(value)
    except ValueError:
        raise ValidationError("Некорректная дата", {field: "ожидается дата в формате YYYY-MM-DD"}) from None
    return parsed or default


def _invalidate(cache: Cache, number: str, person_id: int, person_name: str) -> None:
    safe_delete_prefix(cache, FREEZE_PREFIX)
    invalidate_person_sub(cache, number, person_id, person_name)
    invalidate_statistics(cache)


class FreezeSubscriptionUseCase:
    """
    Заморозить абонемент

    Правила:
    - абонемент существует и активен
    - у тарифа freeze_days > 0 и лимит ещё не исчерпан
    - открытой заморозки нет (дополнительно гарантирует частичный уникальный индекс)
    - freeze_start попадает в [start_date, end_date] абонемента

    Открытый интервал и статус frozen пишутся в одной транзакции.
    """

    def __init__(self, storage: FreezeStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def execute(self, number: str, freeze_start=None) -> int:
        if not number or not str(number).strip():
            raise ValidationError("Не указан номер абонемента", {"number": "обязательное поле"})
        today = self.today()
        start = _parse_day(freeze_start, "freeze_start", today)

        try:
            state = self.storage.get_state(number, today)
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            logger.error("freeze state read failed for %s: %s", number, e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        try:
            self._check(state, start)
        except Exception:
            self.storage.rollback()
            raise

        try:
            freeze_id = self.storage.open_freeze(number, start)
            self.storage.commit()
        except storage_errors.OpenFreezeExistsError:
            raise FreezeAlreadyOpen() from None
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            logger.error("freeze failed for %s: %s", number, e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        logger.info("Subscription %s frozen from %s", number, start)
        _invalidate(self.cache, number, state.person_id, state.person_name)
        return freeze_id

    @staticmethod
    def _check(state, start: date) -> None:
        if state.freeze_quota <= 0:
            raise FreezeNotAllowed()
        if state.has_open_freeze:
            raise FreezeAlreadyOpen()
        if state.status != SubscriptionStatus.ACTIVE:
            raise FreezeNotAllowed(f"Заморозить можно только активный абонемент (статус: {state.status.value})")
        if state.used_days >= state.freeze_quota:
            raise FreezeNotAllowed("Лимит дней заморозки исчерпан")
        if not state.start_date <= start <= state.end_date:
            raise ValidationError(
                "Дата заморозки вне срока абонемента",
                {"freeze_start": f"должна быть в пределах {state.start_date} - {state.end_date}"},
            )


class UnfreezeSubscriptionUseCase:
    """
    Закрыть открытую заморозку: freeze_end, days_used и статус active атомарно.
    Статус меняется только у замороженного абонемента: если его тем временем закрыли
    или пересчитали по датам, интервал закрывается, а статус остаётся прежним.
    """

    def __init__(self, storage: FreezeStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def execute(self, number: str, unfreeze_date=None) -> None:
        if not number or not str(number).strip():
            raise ValidationError("Не указан номер абонемента", {"number": "обязательное поле"})
        end = _parse_day(unfreeze_date, "unfreeze_date", self.today())

        try:
            freeze = self.storage.get_open(number)
            state = self.storage.get_state(number, end)
        except (storage_errors.FreezeNotFoundError, storage_errors.SubscriptionNotFoundError):
            self.storage.rollback()
            raise FreezeNotFound() from None
        except storage_errors.StorageError as e:
            logger.error("unfreeze read failed for %s: %s", number, e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        if end < freeze.freeze_start:
            self.storage.rollback()
            raise ValidationError(
                "Дата разморозки раньше начала заморозки",
                {"unfreeze_date": "должна быть не раньше freeze_start"},
            )

        try:
            reactivate = state.status == SubscriptionStatus.FROZEN
            person_id, person_name = self.storage.close_freeze(
                freeze.id, end, interval_days(freeze.freeze_start, end, end),
                SubscriptionStatus.ACTIVE if reactivate else None,
            )
            self.storage.commit()
        except storage_errors.FreezeNotFoundError:
            raise FreezeNotFound() from None
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            logger.error("unfreeze failed for %s: %s", number, e)
            raise InternalError("Внутренняя ошибка хранилища") from e

        if reactivate:
            logger.info("Subscription %s unfrozen on %s", number, end)
        else:
            logger.info("Freeze of %s closed on %s, status stays %s", number, end, state.status.value)
        _invalidate(self.cache, number, person_id, person_name)


class FreezeReadService:
    def __init__(self, storage: FreezeStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def get_all_active(self) -> List[FreezeView]:
        """Freeze rows of frozen subscriptions, newest first."""
        try:
            return read_through(
                self.cache, ACTIVE_FREEZES_KEY, FREEZE_TTL, _freezes, self.storage.get_all_active,
            )
        except storage_errors.StorageError as e:
            logger.error("active freezes read failed: %s", e)
            raise InternalError("Внутренняя ошибка хранилища") from e
