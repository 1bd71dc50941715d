"""
Tests for the person subscription lifecycle (add / delete / close / reads / status refresh)
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.application.errors import (
    InternalError, NotFoundError, PersonNotFound, PlanNotFound, SubscriptionClosed,
    SubscriptionExists, SubscriptionNotFound, ValidationError,
)
from app.application.person_subs import (
    ALL_KEY, AddPersonSubUseCase, ClosePersonSubUseCase, DeletePersonSubUseCase,
    PersonSubReadService, UpdateStatusesUseCase, number_key, person_id_key, person_name_key,
)
from app.application.statistics import TOTAL_INCOME_KEY
from app.domain.person_subscription import SubscriptionStatus
from app.infrastructure.db.models import PersonSubscriptionModel, SubscriptionFreezeModel
from app.infrastructure.storage.errors import StorageError, SubscriptionNotFoundError

TODAY = date(2026, 3, 15)


def _today():
    return TODAY


@pytest.fixture
def add_sub(person_subs_repo, plans_repo, cache):
    use_case = AddPersonSubUseCase(person_subs_repo, plans_repo, cache, today=_today)

    def _add(number, person_id, plan_id, **kwargs):
        return use_case.execute(number=number, person_id=person_id, subscription_id=plan_id, **kwargs)
    return _add


@pytest.fixture
def reads(person_subs_repo, cache):
    return PersonSubReadService(person_subs_repo, cache, today=_today)


class TestAddPersonSub:
    def test_scenario_add_then_read(self, add_sub, reads, john, monthly_plan):
        """John Doe покупает месячный абонемент на сегодня"""
        number = add_sub(
            "1001", john, monthly_plan,
            start_date=TODAY.isoformat(), end_date=(TODAY + timedelta(days=30)).isoformat(),
        )
        assert number == "1001"

        sub = reads.get_by_number("1001")
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.person_name == "John Doe"
        assert sub.subscription_title == "Monthly"
        assert sub.subscription_price == Decimal("1000")
        assert sub.start_date == TODAY
        assert sub.end_date == TODAY + timedelta(days=30)
        assert sub.discount == Decimal("0")
        assert sub.final_price == Decimal("1000")
        assert sub.freeze_days == 5
        assert sub.used_freeze_days == 0
        assert sub.remaining_freeze_days == 5

    def test_defaults_start_today_and_end_by_plan_duration(self, add_sub, reads, john, monthly_plan):
        add_sub("1002", john, monthly_plan)
        sub = reads.get_by_number("1002")
        assert sub.start_date == TODAY
        assert sub.end_date == TODAY + timedelta(days=30)

    def test_discount_reduces_final_price(self, add_sub, reads, john, monthly_plan):
        add_sub("1003", john, monthly_plan, discount="150,50")
        sub = reads.get_by_number("1003")
        assert sub.discount == Decimal("150.50")
        assert sub.final_price == Decimal("849.50")

    def test_explicit_final_price_is_kept(self, add_sub, reads, john, monthly_plan):
        add_sub("1004", john, monthly_plan, final_price="700")
        assert reads.get_by_number("1004").final_price == Decimal("700")

    def test_future_start_is_frozen(self, add_sub, reads, john, monthly_plan):
        add_sub("1005", john, monthly_plan, start_date="2026-04-01")
        assert reads.get_by_number("1005").status == SubscriptionStatus.FROZEN

    def test_past_period_is_expired(self, add_sub, reads, john, monthly_plan):
        add_sub("1006", john, monthly_plan, start_date="2026-01-01", end_date="2026-01-31")
        assert reads.get_by_number("1006").status == SubscriptionStatus.EXPIRED

    def test_rfc3339_dates_accepted(self, add_sub, reads, john, monthly_plan):
        add_sub("1007", john, monthly_plan, start_date="2026-03-10T10:00:00+03:00")
        assert reads.get_by_number("1007").start_date == date(2026, 3, 10)

    def test_missing_fields_are_reported_together(self, add_sub):
        with pytest.raises(ValidationError) as exc_info:
            add_sub("", 0, 0)
        assert set(exc_info.value.fields) == {"number", "person_id", "subscription_id"}

    def test_unparsable_date(self, add_sub, john, monthly_plan):
        with pytest.raises(ValidationError) as exc_info:
            add_sub("1008", john, monthly_plan, start_date="15.03.2026")
        assert "start_date" in exc_info.value.fields

    def test_end_before_start(self, add_sub, john, monthly_plan):
        with pytest.raises(ValidationError) as exc_info:
            add_sub("1009", john, monthly_plan, start_date="2026-03-15", end_date="2026-03-14")
        assert "end_date" in exc_info.value.fields

    def test_negative_discount(self, add_sub, john, monthly_plan):
        with pytest.raises(ValidationError) as exc_info:
            add_sub("1010", john, monthly_plan, discount="-10")
        assert "discount" in exc_info.value.fields

    def test_duplicate_number_conflicts(self, add_sub, john, monthly_plan):
        add_sub("1011", john, monthly_plan)
        with pytest.raises(SubscriptionExists):
            add_sub("1011", john, monthly_plan)

    def test_unknown_person(self, add_sub, monthly_plan):
        with pytest.raises(PersonNotFound):
            add_sub("1012", 999, monthly_plan)

    def test_unknown_plan(self, add_sub, john):
        with pytest.raises(PlanNotFound):
            add_sub("1013", john, 999)

    def test_price_snapshot_survives_plan_change(self, add_sub, reads, plans_repo, john, monthly_plan):
        add_sub("1014", john, monthly_plan)
        plans_repo.update(monthly_plan, "Monthly", Decimal("1200"), 30, 5)
        plans_repo.commit()
        reads.cache.delete(number_key("1014"))
        assert reads.get_by_number("1014").subscription_price == Decimal("1000")

    def test_add_invalidates_caches(self, add_sub, reads, cache, john, monthly_plan):
        reads.get_all()
        reads.find_by_person_id(john)
        reads.find_by_person_name("John Doe")
        cache.set(TOTAL_INCOME_KEY, b'"0"', timedelta(minutes=10))

        add_sub("1015", john, monthly_plan)

        assert cache.get(ALL_KEY) is None
        assert cache.get(person_id_key(john)) is None
        assert cache.get(person_name_key("John Doe")) is None
        assert cache.get(TOTAL_INCOME_KEY) is None
        assert [s.number for s in reads.get_all()] == ["1015"]


class TestDeletePersonSub:
    def test_scenario_delete_then_not_found(self, add_sub, reads, person_subs_repo, cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        reads.get_by_number("1001")  # warm the cache

        DeletePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        with pytest.raises(NotFoundError):
            reads.get_by_number("1001")

    def test_delete_invalidates_owner_keys(self, add_sub, reads, person_subs_repo, cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        reads.find_by_person_name("John Doe")
        reads.find_by_person_id(john)

        DeletePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        assert reads.find_by_person_name("John Doe") == []
        assert reads.find_by_person_id(john) == []

    def test_delete_missing_number(self, person_subs_repo, cache):
        with pytest.raises(SubscriptionNotFound):
            DeletePersonSubUseCase(person_subs_repo, cache, today=_today).execute("nope")

    def test_concurrently_deleted_number_is_not_found(self, add_sub, person_subs_repo, cache, john, monthly_plan):
        """Номер удалён между чтением владельца и удалением: результат - SubscriptionNotFound"""
        add_sub("1001", john, monthly_plan)

        class RacingStorage:
            def __init__(self, inner):
                self.inner = inner

            def get_by_number(self, number, today):
                view = self.inner.get_by_number(number, today)
                # another request wins the race right after our read
                self.inner.delete(number)
                self.inner.commit()
                return view

            def __getattr__(self, name):
                return getattr(self.inner, name)

        with pytest.raises(SubscriptionNotFound):
            DeletePersonSubUseCase(RacingStorage(person_subs_repo), cache, today=_today).execute("1001")

    def test_freezes_are_deleted_with_subscription(self, add_sub, person_subs_repo, freezes_repo, db_session,
                                                   cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        freezes_repo.open_freeze("1001", TODAY)
        freezes_repo.commit()

        DeletePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        remaining = db_session.query(SubscriptionFreezeModel).filter_by(subscription_number="1001").count()
        assert remaining == 0


class TestClosePersonSub:
    def test_close_sets_terminal_status(self, add_sub, reads, person_subs_repo, cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        reads.get_by_number("1001")

        ClosePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        assert reads.get_by_number("1001").status == SubscriptionStatus.CLOSED

    def test_close_twice_conflicts(self, add_sub, person_subs_repo, cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        use_case = ClosePersonSubUseCase(person_subs_repo, cache, today=_today)
        use_case.execute("1001")
        with pytest.raises(SubscriptionClosed):
            use_case.execute("1001")

    def test_close_missing(self, person_subs_repo, cache):
        with pytest.raises(SubscriptionNotFound):
            ClosePersonSubUseCase(person_subs_repo, cache, today=_today).execute("nope")


class TestReads:
    def test_get_all_orders_numeric_desc_then_other(self, add_sub, reads, john, monthly_plan):
        for number in ("9", "100", "A-1", "25", "B-2"):
            add_sub(number, john, monthly_plan)
        assert [s.number for s in reads.get_all()] == ["100", "25", "9", "A-1", "B-2"]

    def test_find_by_unknown_person_name(self, reads):
        with pytest.raises(PersonNotFound):
            reads.find_by_person_name("Nobody")

    def test_find_by_unknown_person_id(self, reads):
        with pytest.raises(PersonNotFound):
            reads.find_by_person_id(404)

    def test_person_without_subscriptions_gets_empty_list(self, reads, jane):
        assert reads.find_by_person_name("Jane Roe") == []
        assert reads.find_by_person_id(jane) == []

    def test_find_only_returns_own_subscriptions(self, add_sub, reads, john, jane, monthly_plan):
        add_sub("1", john, monthly_plan)
        add_sub("2", jane, monthly_plan)
        assert [s.number for s in reads.find_by_person_id(jane)] == ["2"]
        assert [s.number for s in reads.find_by_person_name("John Doe")] == ["1"]

    def test_read_is_served_from_cache(self, add_sub, reads, cache, db_session, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        first = reads.get_by_number("1001")
        assert cache.get(number_key("1001")) is not None

        # direct write bypasses invalidation: cached value is still served
        db_session.query(PersonSubscriptionModel).filter_by(number="1001").update({"discount": Decimal("5")})
        db_session.commit()

        assert reads.get_by_number("1001") == first

    def test_corrupt_cache_payload_falls_back_to_storage(self, add_sub, reads, cache, john, monthly_plan):
        add_sub("1001", john, monthly_plan)
        cache.set(number_key("1001"), b"{not json", timedelta(minutes=10))
        assert reads.get_by_number("1001").number == "1001"

    def test_storage_failure_is_internal_error(self, cache):
        class BrokenStorage:
            def get_all(self, today):
                raise StorageError("connection refused")

        with pytest.raises(InternalError):
            PersonSubReadService(BrokenStorage(), cache, today=_today).get_all()


class TestUpdateStatuses:
    def _insert(self, db_session, number, person_id, plan_id, start, end, status):
        db_session.add(PersonSubscriptionModel(
            number=number, person_id=person_id, subscription_id=plan_id,
            subscription_price=Decimal("1000"), start_date=start, end_date=end,
            status=status.value, discount=Decimal("0"), final_price=Decimal("1000"),
        ))
        db_session.commit()

    def test_statuses_follow_dates(self, db_session, person_subs_repo, cache, john, monthly_plan):
        self._insert(db_session, "a", john, monthly_plan, date(2026, 3, 1), date(2026, 3, 31),
                     SubscriptionStatus.EXPIRED)
        self._insert(db_session, "f", john, monthly_plan, date(2026, 4, 1), date(2026, 4, 30),
                     SubscriptionStatus.ACTIVE)
        self._insert(db_session, "e", john, monthly_plan, date(2026, 2, 1), date(2026, 3, 14),
                     SubscriptionStatus.ACTIVE)

        changed = UpdateStatusesUseCase(person_subs_repo, cache, today=_today).execute()

        assert changed == 3
        statuses = {row.number: row.status for row in db_session.query(PersonSubscriptionModel)}
        assert statuses == {"a": "active", "f": "frozen", "e": "expired"}

    def test_second_run_writes_nothing(self, db_session, person_subs_repo, cache, john, monthly_plan):
        self._insert(db_session, "e", john, monthly_plan, date(2026, 2, 1), date(2026, 3, 14),
                     SubscriptionStatus.ACTIVE)
        use_case = UpdateStatusesUseCase(person_subs_repo, cache, today=_today)

        assert use_case.execute() == 1
        assert use_case.execute() == 0

    def test_closed_rows_are_skipped(self, db_session, person_subs_repo, cache, john, monthly_plan):
        self._insert(db_session, "c", john, monthly_plan, date(2026, 3, 1), date(2026, 3, 31),
                     SubscriptionStatus.CLOSED)
        assert UpdateStatusesUseCase(person_subs_repo, cache, today=_today).execute() == 0
        assert db_session.get(PersonSubscriptionModel, "c").status == "closed"

    def test_explicit_today_overrides_clock(self, db_session, person_subs_repo, cache, john, monthly_plan):
        self._insert(db_session, "a", john, monthly_plan, date(2026, 3, 1), date(2026, 3, 31),
                     SubscriptionStatus.ACTIVE)
        changed = UpdateStatusesUseCase(person_subs_repo, cache, today=_today).execute(today=date(2026, 4, 1))
        assert changed == 1
        assert db_session.get(PersonSubscriptionModel, "a").status == "expired"

    def test_changed_rows_invalidate_caches(self, db_session, person_subs_repo, reads, cache, john, monthly_plan):
        self._insert(db_session, "e", john, monthly_plan, date(2026, 2, 1), date(2026, 3, 14),
                     SubscriptionStatus.ACTIVE)
        reads.get_by_number("e")
        reads.get_all()
        reads.find_by_person_name("John Doe")

        UpdateStatusesUseCase(person_subs_repo, cache, today=_today).execute()

        assert cache.get(number_key("e")) is None
        assert cache.get(ALL_KEY) is None
        assert cache.get(person_name_key("John Doe")) is None
        assert reads.get_by_number("e").status == SubscriptionStatus.EXPIRED

    def test_storage_error_aborts_pass(self, cache):
        class FailingStorage:
            def __init__(self):
                self.rolled_back = False

            def get_all(self, today):
                from app.domain.dto import PersonSubView
                return [PersonSubView(
                    number="x", person_id=1, person_name="X", subscription_id=1,
                    subscription_title="T", subscription_price=Decimal("1"),
                    start_date=date(2026, 1, 1), end_date=date(2026, 1, 2),
                    status=SubscriptionStatus.ACTIVE, discount=Decimal("0"),
                    final_price=Decimal("1"), freeze_days=0,
                )]

            def update_status(self, number, status):
                raise SubscriptionNotFoundError(number)

            def commit(self):
                raise AssertionError("must not commit")

            def rollback(self):
                self.rolled_back = True

        storage = FailingStorage()
        with pytest.raises(InternalError):
            UpdateStatusesUseCase(storage, cache, today=_today).execute()
        assert storage.rolled_back
