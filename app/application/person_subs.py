"""
Person subscriptions - жизненный цикл абонементов клиентов

Use cases (мутации) коммитят транзакцию storage и затем инвалидируют кэш:
сам ключ абонемента, общий список, ключи клиента и семейство статистики.
Чтения идут через read-through кэш.
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from pydantic import TypeAdapter

from app.application.caching import read_through, safe_delete, safe_delete_prefix
from app.application.errors import (
    ConflictError, InternalError, PersonNotFound, PlanNotFound, SubscriptionClosed,
    SubscriptionExists, SubscriptionNotFound, ValidationError,
)
from app.application.ports import PersonSubStorage, PlanStorage
from app.application.statistics import invalidate_statistics
from app.domain.dto import NewPersonSub, PersonSubView
from app.domain.person_subscription import (
    SubscriptionStatus, can_transition, compute_final_price, default_end_date,
    refreshed_status, status_for_dates,
)
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage import errors as storage_errors
from app.utils.dates import local_today, parse_optional_date
from app.utils.validation import is_blank, parse_amount

logger = logging.getLogger(__name__)

ALL_KEY = "person_subs:all"
ALL_TTL = timedelta(minutes=30)
ITEM_TTL = timedelta(minutes=10)

# Список заморозок зависит от статусов абонементов
FREEZE_PREFIX = "sub_freezed:"
ACTIVE_FREEZES_KEY = "sub_freezed:all"

_view = TypeAdapter(PersonSubView)
_views = TypeAdapter(List[PersonSubView])


def number_key(number: str) -> str:
    return f"person_sub:number:{number}"


def person_name_key(name: str) -> str:
    return f"person_sub:person:{name}"


def person_id_key(person_id: int) -> str:
    return f"person_sub:person_id:{person_id}"


def invalidate_person_sub(
    cache: Cache,
    number: Optional[str] = None,
    person_id: Optional[int] = None,
    person_name: Optional[str] = None,
) -> None:
    """Drop every cached projection that may contain the given subscription."""
    keys = [ALL_KEY]
    if number:
        keys.append(number_key(number))
    if person_id:
        keys.append(person_id_key(person_id))
    if person_name:
        keys.append(person_name_key(person_name))
    safe_delete(cache, *keys)


def _internal(op: str, exc: Exception) -> InternalError:
    logger.error("%s failed: %s", op, exc)
    return InternalError("Внутренняя ошибка хранилища")


# ============================================================================
# Mutations
# ============================================================================

class AddPersonSubUseCase:
    """
    Продать абонемент клиенту

    Example:
        >>> AddPersonSubUseCase(repo, plans, cache).execute(
        ...     number="1001", person_id=1, subscription_id=2, start_date="2026-01-01")
        '1001'
    """

    def __init__(
        self,
        storage: PersonSubStorage,
        plans: PlanStorage,
        cache: Cache,
        today: Callable[[], date] = local_today,
    ):
        self.storage = storage
        self.plans = plans
        self.cache = cache
        self.today = today

    def execute(
        self,
        number: str,
        person_id: int,
        subscription_id: int,
        start_date=None,
        end_date=None,
        discount=None,
        final_price=None,
    ) -> str:
        fields = {}
        if is_blank(number):
            fields["number"] = "обязательное поле"
        if is_blank(person_id):
            fields["person_id"] = "обязательное поле"
        if is_blank(subscription_id):
            fields["subscription_id"] = "обязательное поле"

        start = end = None
        try:
            start = parse_optional_date(start_date)
        except ValueError:
            fields["start_date"] = "ожидается дата в формате YYYY-MM-DD"
        try:
            end = parse_optional_date(end_date)
        except ValueError:
            fields["end_date"] = "ожидается дата в формате YYYY-MM-DD"

        discount_value = Decimal("0")
        if discount is not None:
            try:
                discount_value = parse_amount(discount)
            except ValueError as e:
                fields["discount"] = str(e)

        price_override = None
        if final_price is not None:
            try:
                price_override = parse_amount(final_price)
            except ValueError as e:
                fields["final_price"] = str(e)

        if fields:
            raise ValidationError("Некорректные данные абонемента", fields)

        number = str(number).strip()
        today = self.today()
        if start is None:
            start = today

        try:
            plan = self.plans.get(subscription_id)
        except storage_errors.PlanNotFoundError:
            raise PlanNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.add", e) from e

        if end is None:
            end = default_end_date(start, plan.duration_days)
        if end < start:
            raise ValidationError(
                "Дата окончания раньше даты начала",
                {"end_date": "должна быть не раньше start_date"},
            )

        record = NewPersonSub(
            number=number,
            person_id=person_id,
            subscription_id=subscription_id,
            subscription_price=plan.price,
            start_date=start,
            end_date=end,
            status=status_for_dates(start, end, today),
            discount=discount_value,
            final_price=(
                price_override if price_override is not None
                else compute_final_price(plan.price, discount_value)
            ),
        )

        try:
            self.storage.add(record)
            person_name = self.storage.person_name(person_id)
            self.storage.commit()
        except storage_errors.SubscriptionExistsError:
            raise SubscriptionExists() from None
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.add", e) from e

        logger.info("Person subscription %s added for person_id=%s", number, person_id)
        invalidate_person_sub(self.cache, number, person_id, person_name)
        invalidate_statistics(self.cache)
        return number


class DeletePersonSubUseCase:
    """
    Удалить абонемент

    Сначала читаем абонемент (чтобы узнать владельца для инвалидации кэша),
    не-найден на этом шаге допустим. Результат определяет удаление: 0 строк →
    SubscriptionNotFound, в том числе если номер удалён параллельным запросом.
    """

    def __init__(self, storage: PersonSubStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def execute(self, number: str) -> None:
        if is_blank(number):
            raise ValidationError("Не указан номер абонемента", {"number": "обязательное поле"})

        owner = None
        try:
            owner = self.storage.get_by_number(number, self.today())
        except storage_errors.SubscriptionNotFoundError:
            logger.info("Person subscription %s not found before delete", number)
        except storage_errors.StorageError as e:
            raise _internal("person_subs.delete", e) from e

        try:
            self.storage.delete(number)
            self.storage.commit()
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.delete", e) from e

        logger.info("Person subscription %s deleted", number)
        invalidate_person_sub(
            self.cache,
            number,
            owner.person_id if owner else None,
            owner.person_name if owner else None,
        )
        safe_delete_prefix(self.cache, FREEZE_PREFIX)
        invalidate_statistics(self.cache)


class ClosePersonSubUseCase:
    """Administrative terminal transition to closed."""

    def __init__(self, storage: PersonSubStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def execute(self, number: str) -> None:
        try:
            sub = self.storage.get_by_number(number, self.today())
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.close", e) from e

        if sub.status == SubscriptionStatus.CLOSED:
            raise SubscriptionClosed("Абонемент уже закрыт")
        if not can_transition(sub.status, SubscriptionStatus.CLOSED):
            raise ConflictError(f"Переход {sub.status.value} → closed недопустим")

        try:
            self.storage.update_status(number, SubscriptionStatus.CLOSED)
            self.storage.commit()
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.close", e) from e

        logger.info("Person subscription %s closed", number)
        invalidate_person_sub(self.cache, number, sub.person_id, sub.person_name)
        safe_delete_prefix(self.cache, FREEZE_PREFIX)
        invalidate_statistics(self.cache)


class UpdateStatusesUseCase:
    """
    Ежедневный пересчёт статусов по датам

    closed не трогаем; остальные: start_date > today → frozen,
    end_date < today → expired, иначе active. Пишем только изменившиеся строки.
    Ошибка storage прерывает проход и пробрасывается.
    """

    def __init__(self, storage: PersonSubStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def execute(self, today: Optional[date] = None) -> int:
        today = today or self.today()
        try:
            subs = self.storage.get_all(today)
        except storage_errors.StorageError as e:
            raise _internal("person_subs.update_statuses", e) from e

        changed = []
        try:
            for sub in subs:
                new_status = refreshed_status(sub.status, sub.start_date, sub.end_date, today)
                if new_status == sub.status:
                    continue
                self.storage.update_status(sub.number, new_status)
                changed.append(sub)
            self.storage.commit()
        except storage_errors.StorageError as e:
            self.storage.rollback()
            raise _internal("person_subs.update_statuses", e) from e

        for sub in changed:
            safe_delete(
                self.cache,
                number_key(sub.number),
                person_name_key(sub.person_name),
                person_id_key(sub.person_id),
            )
        safe_delete(self.cache, ALL_KEY)
        if changed:
            safe_delete_prefix(self.cache, FREEZE_PREFIX)
        invalidate_statistics(self.cache)

        logger.info("Status refresh for %s: %d of %d subscription(s) changed", today, len(changed), len(subs))
        return len(changed)


# ============================================================================
# Reads
# ============================================================================

class PersonSubReadService:
    def __init__(self, storage: PersonSubStorage, cache: Cache, today: Callable[[], date] = local_today):
        self.storage = storage
        self.cache = cache
        self.today = today

    def get_by_number(self, number: str) -> PersonSubView:
        try:
            return read_through(
                self.cache, number_key(number), ITEM_TTL, _view,
                lambda: self.storage.get_by_number(number, self.today()),
            )
        except storage_errors.SubscriptionNotFoundError:
            raise SubscriptionNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.get_by_number", e) from e

    def get_all(self) -> List[PersonSubView]:
        try:
            return read_through(
                self.cache, ALL_KEY, ALL_TTL, _views,
                lambda: self.storage.get_all(self.today()),
            )
        except storage_errors.StorageError as e:
            raise _internal("person_subs.get_all", e) from e

    def find_by_person_name(self, name: str) -> List[PersonSubView]:
        if is_blank(name):
            raise ValidationError("Не указано имя клиента", {"name": "обязательное поле"})
        try:
            return read_through(
                self.cache, person_name_key(name), ITEM_TTL, _views,
                lambda: self.storage.find_by_person_name(name, self.today()),
            )
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.find_by_person_name", e) from e

    def find_by_person_id(self, person_id: int) -> List[PersonSubView]:
        try:
            return read_through(
                self.cache, person_id_key(person_id), ITEM_TTL, _views,
                lambda: self.storage.find_by_person_id(person_id, self.today()),
            )
        except storage_errors.PersonNotFoundError:
            raise PersonNotFound() from None
        except storage_errors.StorageError as e:
            raise _internal("person_subs.find_by_person_id", e) from e
