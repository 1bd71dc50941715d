"""
Statistics queries (aggregates over person_subscriptions and single_visits)
"""
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import List

from sqlalchemy import select, func, distinct

from app.domain.dto import MonthlyStat
from app.infrastructure.db.models import (
    PersonModel, PersonSubscriptionModel, SubscriptionPlanModel, SingleVisitModel,
)
from app.infrastructure.storage.base import Repository
from app.utils.dates import iter_months, month_start


def _money(value) -> Decimal:
    # SQLite returns float/int for SUM over Numeric
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value)).quantize(Decimal("0.01"))


class StatisticsRepository(Repository):
    """
    Агрегаты статистики

    Доход = SUM(subscriptions.price - person_subscriptions.discount), период
    фильтруется по start_date абонемента (границы включительно).
    """

    def total_clients(self) -> int:
        with self._db_errors("storage.statistics.total_clients"):
            return self.db.scalar(select(func.count()).select_from(PersonModel)) or 0

    def new_clients(self, date_from: date, date_to: date) -> int:
        with self._db_errors("storage.statistics.new_clients"):
            return self.db.scalar(
                select(func.count(distinct(PersonSubscriptionModel.person_id)))
                .where(PersonSubscriptionModel.start_date.between(date_from, date_to))
            ) or 0

    def total_income(self) -> Decimal:
        with self._db_errors("storage.statistics.total_income"):
            return _money(self.db.scalar(self._income_query()))

    def income(self, date_from: date, date_to: date) -> Decimal:
        with self._db_errors("storage.statistics.income"):
            return _money(self.db.scalar(
                self._income_query()
                .where(PersonSubscriptionModel.start_date.between(date_from, date_to))
            ))

    def total_sold_subscriptions(self) -> int:
        with self._db_errors("storage.statistics.total_sold_subscriptions"):
            return self.db.scalar(select(func.count()).select_from(PersonSubscriptionModel)) or 0

    def sold_subscriptions(self, date_from: date, date_to: date) -> int:
        with self._db_errors("storage.statistics.sold_subscriptions"):
            return self.db.scalar(
                select(func.count())
                .select_from(PersonSubscriptionModel)
                .where(PersonSubscriptionModel.start_date.between(date_from, date_to))
            ) or 0

    def total_single_visits(self) -> int:
        with self._db_errors("storage.statistics.total_single_visits"):
            return self.db.scalar(select(func.count()).select_from(SingleVisitModel)) or 0

    def single_visits(self, date_from: date, date_to: date) -> int:
        with self._db_errors("storage.statistics.single_visits"):
            return self.db.scalar(
                select(func.count())
                .select_from(SingleVisitModel)
                .where(SingleVisitModel.visit_date.between(date_from, date_to))
            ) or 0

    def single_visits_income(self) -> Decimal:
        with self._db_errors("storage.statistics.single_visits_income"):
            return _money(self.db.scalar(select(func.sum(SingleVisitModel.final_price))))

    def monthly_statistics(self, date_from: date, date_to: date) -> List[MonthlyStat]:
        """
        Помесячная статистика за период

        Returns:
            Ровно одна строка на каждый календарный месяц в [date_from, date_to],
            месяцы без продаж и посещений - нулевые строки.
        """
        with self._db_errors("storage.statistics.monthly_statistics"):
            subs = self.db.execute(
                select(
                    PersonSubscriptionModel.start_date,
                    PersonSubscriptionModel.person_id,
                    SubscriptionPlanModel.price,
                    PersonSubscriptionModel.discount,
                )
                .join(SubscriptionPlanModel, PersonSubscriptionModel.subscription_id == SubscriptionPlanModel.id)
                .where(PersonSubscriptionModel.start_date.between(date_from, date_to))
            ).all()
            visits = self.db.execute(
                select(SingleVisitModel.visit_date, SingleVisitModel.final_price)
                .where(SingleVisitModel.visit_date.between(date_from, date_to))
            ).all()

        stats = {month: MonthlyStat(month=month) for month in iter_months(date_from, date_to)}
        clients = defaultdict(set)

        for start_date, person_id, price, discount in subs:
            stat = stats[month_start(start_date)]
            stat.income += _money(price) - _money(discount)
            stat.sold_subscriptions += 1
            clients[stat.month].add(person_id)

        for month, people in clients.items():
            stats[month].new_clients = len(people)

        for visit_date, final_price in visits:
            stat = stats[month_start(visit_date)]
            stat.single_visits_income += _money(final_price)
            stat.single_visits_count += 1

        return list(stats.values())

    @staticmethod
    def _income_query():
        return (
            select(func.sum(SubscriptionPlanModel.price - PersonSubscriptionModel.discount))
            .select_from(PersonSubscriptionModel)
            .join(SubscriptionPlanModel, PersonSubscriptionModel.subscription_id == SubscriptionPlanModel.id)
        )
