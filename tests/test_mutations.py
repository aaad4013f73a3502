"""Tests for mark approached / mark converted."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import text

from kam_hub.portfolio import (
    AccessControl,
    NotFoundError,
    PortfolioMutations,
    PortfolioQueries,
    PreconditionError,
    QueryCache,
    StoreError,
)

from conftest import count_tracking, fetch_drive_data

FIXED_NOW = datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)


def mutations_for(role, email, engine, cache, **kwargs):
    kwargs.setdefault('atomic', False)
    return PortfolioMutations(AccessControl(role, email), cache=cache, engine=engine, **kwargs)


class TestMarkApproached:
    def test_sets_flag_and_logs_action(self, engine, mutations):
        entry = mutations.mark_approached("R1", 1, "asha@zomato.com")

        row = fetch_drive_data(engine, "R1", 1)
        assert bool(row.approached) is True
        assert bool(row.converted_stepper) is False

        assert entry.id is not None
        assert entry.action_type == "approached"
        assert count_tracking(engine, res_id="R1", drive_id=1, action_type="approached") == 1

    def test_actor_defaults_to_signed_in_user(self, engine, mutations):
        entry = mutations.mark_approached("R1", 1)

        assert entry.kam_email == "asha@zomato.com"
        assert count_tracking(engine, kam_email="asha@zomato.com") == 1

    def test_twice_is_idempotent_and_logs_twice(self, engine, mutations):
        mutations.mark_approached("R1", 1, "asha@zomato.com")
        assert bool(fetch_drive_data(engine, "R1", 1).approached) is True

        mutations.mark_approached("R1", 1, "asha@zomato.com")
        assert bool(fetch_drive_data(engine, "R1", 1).approached) is True

        assert count_tracking(engine, res_id="R1", drive_id=1, action_type="approached") == 2

    def test_updates_last_updated(self, engine, cache):
        mutations = mutations_for("kam", "asha@zomato.com", engine, cache, clock=lambda: FIXED_NOW)

        entry = mutations.mark_approached("R1", 1)

        assert fetch_drive_data(engine, "R1", 1).last_updated == FIXED_NOW.isoformat()
        assert entry.action_date == FIXED_NOW

    def test_does_not_touch_converted(self, engine, mutations):
        mutations.mark_approached("R2", 1)

        assert bool(fetch_drive_data(engine, "R2", 1).converted_stepper) is True

    def test_reflected_by_next_read(self, queries, mutations):
        before = queries.get_restaurant("R1")
        assert before.get_drive_data(5).approached is False

        mutations.mark_approached("R1", 5)

        after = queries.get_restaurant("R1")
        assert after.get_drive_data(5).approached is True

    def test_list_refreshed_after_mutation(self, queries, mutations):
        queries.list_restaurants()

        mutations.mark_approached("R1", 1)

        r1 = next(r for r in queries.list_restaurants() if r.res_id == "R1")
        assert r1.get_drive_data(1).approached is True

    def test_write_during_read_is_not_cached_as_fresh(self, monkeypatch, queries, mutations):
        load = queries._load_restaurant

        def load_with_concurrent_write(res_id):
            restaurant = load(res_id)
            mutations.mark_approached("R1", 5)
            return restaurant

        monkeypatch.setattr(queries, "_load_restaurant", load_with_concurrent_write)
        assert queries.get_restaurant("R1").get_drive_data(5).approached is False
        monkeypatch.undo()

        assert queries.get_restaurant("R1").get_drive_data(5).approached is True

    def test_separate_cache_keeps_serving_old_read(self, engine, queries):
        queries.get_restaurant("R1")

        other = mutations_for("kam", "asha@zomato.com", engine, QueryCache())
        other.mark_approached("R1", 5)

        assert queries.get_restaurant("R1").get_drive_data(5).approached is False


class TestMarkConverted:
    def test_sets_both_flags(self, engine, mutations):
        mutations.mark_converted("R1", 1, "asha@zomato.com")

        row = fetch_drive_data(engine, "R1", 1)
        assert bool(row.converted_stepper) is True
        assert bool(row.approached) is True
        assert count_tracking(engine, res_id="R1", drive_id=1, action_type="converted") == 1

    def test_invariant_holds_after_conversion(self, queries, mutations):
        mutations.mark_converted("R1", 2)
        mutations.mark_converted("R1", 5)

        for restaurant in queries.list_restaurants():
            for row in restaurant.drive_data:
                if row.converted_stepper:
                    assert row.approached

    def test_update_failure_skips_audit_insert(self, engine, mutations):
        with engine.begin() as conn:
            conn.execute(text("ALTER TABLE drive_data RENAME TO drive_data_archive"))

        with pytest.raises(StoreError):
            mutations.mark_converted("R1", 1)

        assert count_tracking(engine) == 0

    def test_missing_row_is_not_found_and_not_logged(self, engine, mutations):
        with pytest.raises(NotFoundError):
            mutations.mark_converted("R1", 3)

        assert count_tracking(engine) == 0

    def test_audit_failure_leaves_update_in_place(self, engine, mutations):
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE conversion_tracking"))

        with pytest.raises(StoreError):
            mutations.mark_converted("R1", 1)

        assert bool(fetch_drive_data(engine, "R1", 1).converted_stepper) is True

    def test_atomic_mode_rolls_back_update(self, engine, cache):
        mutations = mutations_for("kam", "asha@zomato.com", engine, cache, atomic=True)
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE conversion_tracking"))

        with pytest.raises(StoreError):
            mutations.mark_converted("R1", 1)

        assert bool(fetch_drive_data(engine, "R1", 1).converted_stepper) is False

    def test_atomic_mode_happy_path(self, engine, cache):
        mutations = mutations_for("kam", "asha@zomato.com", engine, cache, atomic=True)

        mutations.mark_converted("R1", 2)

        assert bool(fetch_drive_data(engine, "R1", 2).converted_stepper) is True
        assert count_tracking(engine, res_id="R1") == 1

    def test_failure_does_not_invalidate_cache(self, engine, queries, mutations):
        queries.get_restaurant("R1")
        with engine.begin() as conn:
            conn.execute(text("ALTER TABLE drive_data RENAME TO drive_data_archive"))

        with pytest.raises(StoreError):
            mutations.mark_converted("R1", 1)

        assert not queries.cache.is_stale(("restaurant", "R1", "asha@zomato.com"))


class TestScope:
    def test_kam_cannot_mark_other_kams_restaurant(self, engine, cache):
        bhavesh = mutations_for("kam", "bhavesh@zomato.com", engine, cache)

        with pytest.raises(NotFoundError):
            bhavesh.mark_converted("R1", 1)

        row = fetch_drive_data(engine, "R1", 1)
        assert bool(row.converted_stepper) is False
        assert bool(row.approached) is False
        assert count_tracking(engine) == 0

    def test_team_lead_can_mark_team_restaurant(self, engine, cache):
        lead = mutations_for("team_lead", "tl@zomato.com", engine, cache)

        entry = lead.mark_approached("R3", 3)

        assert bool(fetch_drive_data(engine, "R3", 3).approached) is True
        assert entry.kam_email == "tl@zomato.com"

    def test_team_lead_cannot_mark_other_team(self, engine, cache):
        lead = mutations_for("team_lead", "tl@zomato.com", engine, cache)

        with pytest.raises(NotFoundError):
            lead.mark_approached("R4", 1)

        assert bool(fetch_drive_data(engine, "R4", 1).approached) is False

    def test_admin_can_mark_any_restaurant(self, engine, cache):
        admin = mutations_for("admin", "boss@zomato.com", engine, cache)

        admin.mark_converted("R4", 1)

        assert bool(fetch_drive_data(engine, "R4", 1).converted_stepper) is True

    def test_cannot_record_action_as_someone_else(self, engine, mutations):
        with pytest.raises(PreconditionError):
            mutations.mark_approached("R1", 1, "bhavesh@zomato.com")

        assert count_tracking(engine) == 0

    def test_actor_email_comparison_ignores_case(self, engine, mutations):
        entry = mutations.mark_approached("R1", 1, "Asha@Zomato.com")

        assert entry.kam_email == "asha@zomato.com"

    def test_out_of_scope_mutation_leaves_others_cache(self, engine, cache):
        queries = PortfolioQueries(AccessControl("kam", "asha@zomato.com"), engine=engine, cache=cache)
        queries.get_restaurant("R1")

        with pytest.raises(NotFoundError):
            mutations_for("kam", "bhavesh@zomato.com", engine, cache).mark_approached("R1", 5)

        assert not cache.is_stale(("restaurant", "R1", "asha@zomato.com"))


class TestPreconditions:
    @pytest.mark.parametrize("res_id, drive_id, kam_email", [
        ("", 1, None),
        ("R1", 1, ""),
        ("R1", 0, None),
        ("R1", "abc", None),
    ])
    def test_rejected_before_any_write(self, engine, mutations, res_id, drive_id, kam_email):
        with pytest.raises(PreconditionError):
            mutations.mark_approached(res_id, drive_id, kam_email)

        assert bool(fetch_drive_data(engine, "R1", 1).approached) is False
        assert count_tracking(engine) == 0

    def test_requires_signed_in_user(self, engine, cache):
        anonymous = mutations_for("kam", "", engine, cache)

        with pytest.raises(PreconditionError):
            anonymous.mark_approached("R1", 1)

        assert count_tracking(engine) == 0
