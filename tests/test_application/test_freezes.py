"""
Tests for freeze / unfreeze of person subscriptions
"""
from datetime import date, timedelta

import pytest

from app.application.errors import (
    FreezeAlreadyOpen, FreezeNotAllowed, FreezeNotFound, SubscriptionNotFound, ValidationError,
)
from app.application.freezes import (
    ACTIVE_FREEZES_KEY, FreezeReadService, FreezeSubscriptionUseCase, UnfreezeSubscriptionUseCase,
)
from app.application.person_subs import (
    AddPersonSubUseCase, ClosePersonSubUseCase, DeletePersonSubUseCase, PersonSubReadService,
    UpdateStatusesUseCase, number_key,
)
from app.domain.person_subscription import SubscriptionStatus
from app.infrastructure.db.models import PersonSubscriptionModel, SubscriptionFreezeModel

TODAY = date(2026, 3, 15)


def _today():
    return TODAY


@pytest.fixture
def sell(person_subs_repo, plans_repo, cache):
    use_case = AddPersonSubUseCase(person_subs_repo, plans_repo, cache, today=_today)

    def _sell(number, person_id, plan_id, **kwargs):
        return use_case.execute(number=number, person_id=person_id, subscription_id=plan_id, **kwargs)
    return _sell


@pytest.fixture
def freeze(freezes_repo, cache):
    return FreezeSubscriptionUseCase(freezes_repo, cache, today=_today)


@pytest.fixture
def unfreeze(freezes_repo, cache):
    return UnfreezeSubscriptionUseCase(freezes_repo, cache, today=_today)


@pytest.fixture
def subs(person_subs_repo, cache):
    return PersonSubReadService(person_subs_repo, cache, today=_today)


def _freeze_rows(db_session, number):
    return (
        db_session.query(SubscriptionFreezeModel)
        .filter(SubscriptionFreezeModel.subscription_number == number)
        .all()
    )


class TestFreeze:
    def test_freeze_opens_interval_and_sets_frozen(self, sell, freeze, subs, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)

        freeze_id = freeze.execute("1001")

        assert freeze_id > 0
        rows = _freeze_rows(db_session, "1001")
        assert len(rows) == 1
        assert rows[0].freeze_start == TODAY
        assert rows[0].freeze_end is None
        assert subs.get_by_number("1001").status == SubscriptionStatus.FROZEN

    def test_explicit_start_date(self, sell, freeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)
        freeze.execute("1001", freeze_start="2026-03-17")
        assert _freeze_rows(db_session, "1001")[0].freeze_start == date(2026, 3, 17)

    def test_plan_without_freeze_days_has_no_side_effects(self, sell, freeze, subs, db_session, john,
                                                          no_freeze_plan):
        sell("1002", john, no_freeze_plan)

        with pytest.raises(FreezeNotAllowed):
            freeze.execute("1002")

        assert _freeze_rows(db_session, "1002") == []
        assert subs.get_by_number("1002").status == SubscriptionStatus.ACTIVE

    def test_second_freeze_conflicts(self, sell, freeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)
        freeze.execute("1001")

        with pytest.raises(FreezeAlreadyOpen):
            freeze.execute("1001")
        assert len(_freeze_rows(db_session, "1001")) == 1

    def test_only_active_subscription_can_be_frozen(self, sell, freeze, john, monthly_plan):
        sell("1003", john, monthly_plan, start_date="2026-01-01", end_date="2026-01-31")
        with pytest.raises(FreezeNotAllowed):
            freeze.execute("1003")

    def test_exhausted_quota(self, sell, freeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan, start_date="2026-03-01")
        db_session.add(SubscriptionFreezeModel(
            subscription_number="1001",
            freeze_start=date(2026, 3, 2),
            freeze_end=date(2026, 3, 7),
            days_used=5,
        ))
        db_session.commit()

        with pytest.raises(FreezeNotAllowed):
            freeze.execute("1001")

    def test_unknown_subscription(self, freeze):
        with pytest.raises(SubscriptionNotFound):
            freeze.execute("nope")

    def test_blank_number(self, freeze):
        with pytest.raises(ValidationError):
            freeze.execute("  ")

    def test_bad_start_date(self, sell, freeze, john, monthly_plan):
        sell("1001", john, monthly_plan)
        with pytest.raises(ValidationError) as exc_info:
            freeze.execute("1001", freeze_start="soon")
        assert "freeze_start" in exc_info.value.fields

    def test_start_before_subscription_is_rejected(self, sell, freeze, subs, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)

        with pytest.raises(ValidationError) as exc_info:
            freeze.execute("1001", freeze_start="2026-03-10")

        assert "freeze_start" in exc_info.value.fields
        assert _freeze_rows(db_session, "1001") == []
        assert subs.get_by_number("1001").status == SubscriptionStatus.ACTIVE

    def test_start_after_subscription_end_is_rejected(self, sell, freeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan, start_date="2026-03-01", end_date="2026-03-31")

        with pytest.raises(ValidationError):
            freeze.execute("1001", freeze_start="2026-04-01")
        assert _freeze_rows(db_session, "1001") == []

    def test_start_on_last_day_is_allowed(self, sell, freeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan, start_date="2026-03-01", end_date="2026-03-31")
        freeze.execute("1001", freeze_start="2026-03-31")
        assert _freeze_rows(db_session, "1001")[0].freeze_start == date(2026, 3, 31)

    def test_freeze_invalidates_subscription_cache(self, sell, freeze, subs, cache, john, monthly_plan):
        sell("1001", john, monthly_plan)
        subs.get_by_number("1001")
        assert cache.get(number_key("1001")) is not None

        freeze.execute("1001")

        assert cache.get(number_key("1001")) is None


class TestUnfreeze:
    def test_freeze_then_unfreeze_leaves_one_closed_interval(self, sell, freeze, unfreeze, subs, db_session,
                                                            john, monthly_plan):
        sell("1001", john, monthly_plan, start_date="2026-03-01")
        freeze.execute("1001", freeze_start="2026-03-12")

        unfreeze.execute("1001")

        rows = _freeze_rows(db_session, "1001")
        assert len(rows) == 1
        assert rows[0].freeze_end == TODAY
        assert rows[0].days_used == 3

        sub = subs.get_by_number("1001")
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.used_freeze_days == 3

    def test_explicit_unfreeze_date(self, sell, freeze, unfreeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)
        freeze.execute("1001")
        unfreeze.execute("1001", unfreeze_date="2026-03-17")
        assert _freeze_rows(db_session, "1001")[0].days_used == 2

    def test_unfreeze_before_start_is_rejected(self, sell, freeze, unfreeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)
        freeze.execute("1001")

        with pytest.raises(ValidationError) as exc_info:
            unfreeze.execute("1001", unfreeze_date="2026-03-10")
        assert "unfreeze_date" in exc_info.value.fields
        assert _freeze_rows(db_session, "1001")[0].freeze_end is None

    def test_unfreeze_keeps_closed_subscription_closed(self, sell, freeze, unfreeze, subs, person_subs_repo, cache,
                                                       db_session, john, monthly_plan):
        sell("1001", john, monthly_plan)
        freeze.execute("1001")
        ClosePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        unfreeze.execute("1001", unfreeze_date="2026-03-17")

        rows = _freeze_rows(db_session, "1001")
        assert rows[0].freeze_end == date(2026, 3, 17)
        assert rows[0].days_used == 2
        assert subs.get_by_number("1001").status == SubscriptionStatus.CLOSED

    def test_nothing_to_unfreeze(self, sell, unfreeze, john, monthly_plan):
        sell("1001", john, monthly_plan)
        with pytest.raises(FreezeNotFound):
            unfreeze.execute("1001")

    def test_refreeze_after_unfreeze(self, sell, freeze, unfreeze, db_session, john, monthly_plan):
        sell("1001", john, monthly_plan, start_date="2026-03-01")
        freeze.execute("1001", freeze_start="2026-03-13")
        unfreeze.execute("1001")

        freeze.execute("1001")

        rows = _freeze_rows(db_session, "1001")
        assert len(rows) == 2
        assert sum(1 for row in rows if row.freeze_end is None) == 1

    def test_quota_counts_all_intervals(self, sell, freeze, unfreeze, john, monthly_plan):
        """5 дней лимита: 3 + 2 дня → третья заморозка запрещена"""
        sell("1001", john, monthly_plan, start_date="2026-03-01")
        freeze.execute("1001", freeze_start="2026-03-10")
        unfreeze.execute("1001", unfreeze_date="2026-03-13")
        freeze.execute("1001", freeze_start="2026-03-13")
        unfreeze.execute("1001", unfreeze_date="2026-03-15")

        with pytest.raises(FreezeNotAllowed):
            freeze.execute("1001")


class TestActiveFreezes:
    def test_lists_only_frozen_subscriptions(self, sell, freeze, unfreeze, freezes_repo, cache, john, jane,
                                             monthly_plan):
        sell("1001", john, monthly_plan)
        sell("1002", jane, monthly_plan)
        freeze.execute("1001")
        freeze.execute("1002")
        unfreeze.execute("1002")

        active = FreezeReadService(freezes_repo, cache).get_all_active()

        assert [f.subscription_number for f in active] == ["1001"]
        assert active[0].freeze_end is None

    def test_newest_first(self, sell, freeze, freezes_repo, cache, john, jane, monthly_plan):
        sell("1001", john, monthly_plan)
        sell("1002", jane, monthly_plan)
        freeze.execute("1001")
        freeze.execute("1002")

        active = FreezeReadService(freezes_repo, cache).get_all_active()

        assert [f.subscription_number for f in active] == ["1002", "1001"]

    def test_list_cache_dropped_on_freeze(self, sell, freeze, freezes_repo, cache, john, monthly_plan):
        reader = FreezeReadService(freezes_repo, cache)
        assert reader.get_all_active() == []
        assert cache.get(ACTIVE_FREEZES_KEY) is not None

        sell("1001", john, monthly_plan)
        freeze.execute("1001")

        assert cache.get(ACTIVE_FREEZES_KEY) is None
        assert len(reader.get_all_active()) == 1

    def test_frozen_status_without_interval_is_not_listed(self, db_session, freezes_repo, cache, sell, john,
                                                          monthly_plan):
        sell("1001", john, monthly_plan, start_date=(TODAY + timedelta(days=3)).isoformat())
        assert db_session.get(PersonSubscriptionModel, "1001").status == "frozen"
        assert FreezeReadService(freezes_repo, cache).get_all_active() == []

    def test_list_cache_dropped_on_delete(self, sell, freeze, freezes_repo, person_subs_repo, cache, john,
                                          monthly_plan):
        reader = FreezeReadService(freezes_repo, cache)
        sell("1001", john, monthly_plan)
        freeze.execute("1001")
        assert len(reader.get_all_active()) == 1

        DeletePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        assert cache.get(ACTIVE_FREEZES_KEY) is None
        assert reader.get_all_active() == []

    def test_list_cache_dropped_on_close(self, sell, freeze, freezes_repo, person_subs_repo, cache, john,
                                         monthly_plan):
        reader = FreezeReadService(freezes_repo, cache)
        sell("1001", john, monthly_plan)
        freeze.execute("1001")
        assert len(reader.get_all_active()) == 1

        ClosePersonSubUseCase(person_subs_repo, cache, today=_today).execute("1001")

        assert cache.get(ACTIVE_FREEZES_KEY) is None
        assert reader.get_all_active() == []

    def test_list_cache_dropped_on_status_refresh(self, sell, freeze, freezes_repo, person_subs_repo, cache, john,
                                                  monthly_plan):
        reader = FreezeReadService(freezes_repo, cache)
        sell("1001", john, monthly_plan)
        freeze.execute("1001")
        assert len(reader.get_all_active()) == 1

        changed = UpdateStatusesUseCase(person_subs_repo, cache, today=_today).execute(today=date(2026, 4, 20))

        assert changed == 1
        assert cache.get(ACTIVE_FREEZES_KEY) is None
        assert reader.get_all_active() == []
