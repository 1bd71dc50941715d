"""
SQLAlchemy ORM models (gym domain tables)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import (
    String, DateTime, Integer, TIMESTAMP, Date, func, Numeric,
    ForeignKey, CheckConstraint, Index, text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.session import Base


class PersonModel(Base):
    """Клиент зала"""
    __tablename__ = "person"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)


class SubscriptionPlanModel(Base):
    """Тариф абонемента (цена, длительность, лимит заморозки)"""
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    freeze_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class PersonSubscriptionModel(Base):
    """
    Абонемент клиента

    number - бизнес-ключ, назначается администратором.
    subscription_price - снимок цены тарифа на момент продажи.
    """
    __tablename__ = "person_subscriptions"

    number: Mapped[str] = mapped_column(String(64), primary_key=True)
    person_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("person.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    subscription_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("subscriptions.id", ondelete="RESTRICT"), nullable=False,
    )
    subscription_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    start_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)  # inclusive
    status: Mapped[str] = mapped_column(String(16), nullable=False)  # active / frozen / expired / closed
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    final_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_person_sub_dates"),
    )


class SubscriptionFreezeModel(Base):
    """Интервал заморозки абонемента; freeze_end IS NULL - заморозка открыта"""
    __tablename__ = "subscription_freeze"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    subscription_number: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("person_subscriptions.number", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    freeze_start: Mapped[date_type] = mapped_column(Date, nullable=False)
    freeze_end: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    days_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # One open interval per subscription
        Index(
            "uq_subscription_freeze_open",
            "subscription_number",
            unique=True,
            postgresql_where=text("freeze_end IS NULL"),
            sqlite_where=text("freeze_end IS NULL"),
        ),
    )


class SingleVisitModel(Base):
    """Разовое посещение (продажа без абонемента)"""
    __tablename__ = "single_visits"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    visit_date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    final_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
