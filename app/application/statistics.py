"""
Statistics service - агрегаты по продажам абонементов и разовым посещениям

Все значения кэшируются на STAT_TTL. Любая мутация абонементов, заморозок,
посещений, клиентов и тарифов вызывает invalidate_statistics(cache).
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List

from pydantic import TypeAdapter

from app.application.caching import read_through, safe_delete, safe_delete_prefix
from app.application.errors import InternalError, ValidationError
from app.application.ports import StatStorage
from app.domain.dto import MonthlyStat
from app.infrastructure.cache.base import Cache
from app.infrastructure.storage.errors import StorageError
from app.utils.dates import parse_date

logger = logging.getLogger(__name__)

STAT_TTL = timedelta(minutes=10)

TOTAL_CLIENTS_KEY = "stat:total_clients"
TOTAL_INCOME_KEY = "stat:total_income"
TOTAL_SOLD_SUBSCRIPTIONS_KEY = "stat:total_sold_subscriptions"
TOTAL_SINGLE_VISITS_KEY = "stat:total_single_visits"
SINGLE_VISITS_INCOME_KEY = "stat:single_visits_income"

# Statistics cache family: everything below is dropped together on any mutation
STAT_INVALIDATION_PREFIXES = (
    "stat:income:",
    "stat:sold_subs:",
    "stat:new_clients:",
    "stat:monthly_stats:",
    "stat:single_visits",
)
STAT_INVALIDATION_KEYS = (
    "stat:monthly_stats",
    "stat:income",
    "stat:total_clients",
    "stat:sold_subs",
    "stat:new_clients",
    "stat:total_sold_subscriptions",
    "stat:total_income",
    "stat:total_single_visits",
)

_int = TypeAdapter(int)
_money = TypeAdapter(Decimal)
_monthly = TypeAdapter(List[MonthlyStat])


def invalidate_statistics(cache: Cache) -> None:
    """Drop the whole statistics cache family; failures are logged, never raised."""
    for prefix in STAT_INVALIDATION_PREFIXES:
        safe_delete_prefix(cache, prefix)
    safe_delete(cache, *STAT_INVALIDATION_KEYS)


def range_key(name: str, date_from: date, date_to: date) -> str:
    """
    Ключ статистики за период

    Example:
        >>> range_key("income", date(2026, 1, 1), date(2026, 1, 31))
        'stat:income:2026-01-01:2026-01-31'
    """
    return f"stat:{name}:{date_from.isoformat()}:{date_to.isoformat()}"


def parse_range(date_from, date_to) -> tuple[date, date]:
    """Parse and check a [from, to] period; both bounds inclusive."""
    fields = {}
    start = end = None
    try:
        start = parse_date(date_from)
    except (TypeError, ValueError):
        fields["from"] = "ожидается дата в формате YYYY-MM-DD"
    try:
        end = parse_date(date_to)
    except (TypeError, ValueError):
        fields["to"] = "ожидается дата в формате YYYY-MM-DD"
    if fields:
        raise ValidationError("Некорректный период", fields)
    if start > end:
        raise ValidationError("Начало периода позже конца", {"from": "должно быть не позже to"})
    return start, end


class StatisticsService:
    """
    Statistics aggregation service

    Example:
        >>> service = StatisticsService(StatisticsRepository(db), cache)
        >>> service.income("2026-01-01", "2026-01-31")
        Decimal('15000.00')
    """

    def __init__(self, storage: StatStorage, cache: Cache):
        self.storage = storage
        self.cache = cache

    def total_clients(self) -> int:
        return self._cached(TOTAL_CLIENTS_KEY, _int, self.storage.total_clients)

    def new_clients(self, date_from, date_to) -> int:
        start, end = parse_range(date_from, date_to)
        return self._cached(
            range_key("new_clients", start, end), _int,
            lambda: self.storage.new_clients(start, end),
        )

    def total_income(self) -> Decimal:
        return self._cached(TOTAL_INCOME_KEY, _money, self.storage.total_income)

    def income(self, date_from, date_to) -> Decimal:
        start, end = parse_range(date_from, date_to)
        return self._cached(
            range_key("income", start, end), _money,
            lambda: self.storage.income(start, end),
        )

    def total_sold_subscriptions(self) -> int:
        return self._cached(TOTAL_SOLD_SUBSCRIPTIONS_KEY, _int, self.storage.total_sold_subscriptions)

    def sold_subscriptions(self, date_from, date_to) -> int:
        start, end = parse_range(date_from, date_to)
        return self._cached(
            range_key("sold_subs", start, end), _int,
            lambda: self.storage.sold_subscriptions(start, end),
        )

    def total_single_visits(self) -> int:
        return self._cached(TOTAL_SINGLE_VISITS_KEY, _int, self.storage.total_single_visits)

    def single_visits(self, date_from, date_to) -> int:
        start, end = parse_range(date_from, date_to)
        return self._cached(
            range_key("single_visits", start, end), _int,
            lambda: self.storage.single_visits(start, end),
        )

    def single_visits_income(self) -> Decimal:
        return self._cached(SINGLE_VISITS_INCOME_KEY, _money, self.storage.single_visits_income)

    def monthly_statistics(self, date_from, date_to) -> List[MonthlyStat]:
        """One row per calendar month in [from, to], empty months as zero rows."""
        start, end = parse_range(date_from, date_to)
        return self._cached(
            range_key("monthly_stats", start, end), _monthly,
            lambda: self.storage.monthly_statistics(start, end),
        )

    def _cached(self, key: str, adapter: TypeAdapter, loader):
        try:
            return read_through(self.cache, key, STAT_TTL, adapter, loader)
        except StorageError as e:
            logger.error("statistics query failed for %s: %s", key, e)
            raise InternalError("Не удалось получить статистику") from e
