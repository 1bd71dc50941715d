"""
PersonSubscription domain rules - статусы абонемента и переходы между ними
"""
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    Статус абонемента клиента

    - ACTIVE: абонемент действует (start_date <= today <= end_date)
    - FROZEN: ещё не начался или заморожен вручную
    - EXPIRED: end_date в прошлом
    - CLOSED: закрыт администратором, терминальный статус
    """
    ACTIVE = "active"
    FROZEN = "frozen"
    EXPIRED = "expired"
    CLOSED = "closed"


# Allowed transitions; CLOSED is terminal.
TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.ACTIVE: frozenset({
        SubscriptionStatus.FROZEN, SubscriptionStatus.EXPIRED, SubscriptionStatus.CLOSED,
    }),
    SubscriptionStatus.FROZEN: frozenset({
        SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED, SubscriptionStatus.CLOSED,
    }),
    SubscriptionStatus.EXPIRED: frozenset({
        SubscriptionStatus.ACTIVE, SubscriptionStatus.FROZEN, SubscriptionStatus.CLOSED,
    }),
    SubscriptionStatus.CLOSED: frozenset(),
}


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    if current == target:
        return True
    return target in TRANSITIONS[current]


def status_for_dates(start_date: date, end_date: date, today: date) -> SubscriptionStatus:
    """
    Статус абонемента по датам (правило ежедневного пересчёта)

    Args:
        start_date: Дата начала
        end_date: Дата окончания (включительно)
        today: Текущая календарная дата

    Returns:
        FROZEN если абонемент ещё не начался, EXPIRED если закончился, иначе ACTIVE

    Example:
        >>> status_for_dates(date(2026, 1, 1), date(2026, 1, 31), date(2026, 1, 15))
        <SubscriptionStatus.ACTIVE: 'active'>
    """
    if start_date > today:
        return SubscriptionStatus.FROZEN
    if end_date < today:
        return SubscriptionStatus.EXPIRED
    return SubscriptionStatus.ACTIVE


def refreshed_status(
    current: SubscriptionStatus,
    start_date: date,
    end_date: date,
    today: date,
) -> SubscriptionStatus:
    """Status after the daily pass; closed subscriptions are never touched."""
    if current == SubscriptionStatus.CLOSED:
        return current
    return status_for_dates(start_date, end_date, today)


def default_end_date(start_date: date, duration_days: int) -> date:
    """One billing period after start_date."""
    return start_date + timedelta(days=duration_days)


def compute_final_price(price: Decimal, discount: Decimal) -> Decimal:
    """Цена продажи: цена тарифа минус скидка в рублях, не меньше нуля"""
    final = price - discount
    if final < 0:
        return Decimal("0")
    return final
