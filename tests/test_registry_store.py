"""Tests for the registry store — proves keyed uniqueness and counter rules."""

import pytest

from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import Feedback, Recommendation, WeatherContext
from dermatrust.models.routine import RoutineTemplate, WeatherWindow
from dermatrust.registry.store import RegistryStore


def _routine(routine_id: int) -> RoutineTemplate:
    return RoutineTemplate(
        routine_id=routine_id,
        expert_id="dr-e",
        name=f"Routine {routine_id}",
        description="",
        skin_types=[],
        concerns=[],
        weather_window=WeatherWindow(-50, 50, 0, 100, 12),
    )


class TestCreation:
    def test_blank_admin_rejected(self) -> None:
        with pytest.raises(ValueError, match="blank"):
            RegistryStore(admin="")

    def test_duplicate_user_rejected(self) -> None:
        store = RegistryStore(admin="root")
        store.create_user(UserProfile("alice", "oily"))
        with pytest.raises(ValueError, match="already registered"):
            store.create_user(UserProfile("alice", "dry"))
        assert store.get_user("alice").skin_type == "oily"

    def test_duplicate_expert_rejected(self) -> None:
        store = RegistryStore(admin="root")
        store.create_expert(ExpertRecord("dr-e", "MD", 1, 80))
        with pytest.raises(ValueError, match="already verified"):
            store.create_expert(ExpertRecord("dr-e", "PhD", 2, 80))

    def test_duplicate_feedback_rejected(self) -> None:
        store = RegistryStore(admin="root")
        store.create_feedback(Feedback(1, "alice", 90, submitted_at=3))
        with pytest.raises(ValueError, match="already recorded"):
            store.create_feedback(Feedback(1, "alice", 10, submitted_at=4))

    def test_missing_lookups_return_none(self) -> None:
        store = RegistryStore(admin="root")
        assert store.get_user("nobody") is None
        assert store.get_expert("nobody") is None
        assert store.get_routine(1) is None
        assert store.get_recommendation(1) is None
        assert store.get_feedback(1) is None


class TestCounters:
    def test_counters_start_at_one(self) -> None:
        store = RegistryStore(admin="root")
        assert store.allocate_routine_id() == 1
        assert store.allocate_routine_id() == 2
        assert store.allocate_recommendation_id() == 1

    def test_counters_are_independent(self) -> None:
        store = RegistryStore(admin="root")
        store.allocate_routine_id()
        store.allocate_routine_id()
        assert store.next_recommendation_id == 1
        assert store.next_routine_id == 3

    def test_rewind_latest_only(self) -> None:
        store = RegistryStore(admin="root")
        first = store.allocate_recommendation_id()
        second = store.allocate_recommendation_id()
        with pytest.raises(ValueError):
            store.rewind_recommendation_id(first)
        store.rewind_recommendation_id(second)
        assert store.allocate_recommendation_id() == second

    def test_restore_cannot_reuse_ids(self) -> None:
        store = RegistryStore(admin="root")
        store.create_routine(_routine(4))
        with pytest.raises(ValueError, match="reuse"):
            store.restore_counters(4, 1)
        store.restore_counters(5, 1)
        assert store.allocate_routine_id() == 5


class TestListing:
    def test_routines_sorted_by_id(self) -> None:
        store = RegistryStore(admin="root")
        for rid in (3, 1, 2):
            store.create_routine(_routine(rid))
        assert [r.routine_id for r in store.all_routines()] == [1, 2, 3]

    def test_counts(self) -> None:
        store = RegistryStore(admin="root", valid_skin_types=["oily"])
        store.create_user(UserProfile("alice", "oily"))
        store.create_recommendation(
            Recommendation(1, "alice", 1, WeatherContext(20, 50, 3), recommended_at=1)
        )
        assert store.user_count == 1
        assert store.recommendation_count == 1
        assert store.valid_skin_types == ("oily",)
