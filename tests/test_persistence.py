"""Tests for persistence layer — proves event log and state store work correctly."""

import json
import pytest
from pathlib import Path

from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import Feedback, Recommendation, WeatherContext
from dermatrust.models.routine import RoutineStep, RoutineTemplate, WeatherWindow
from dermatrust.persistence.event_log import EventLog, EventKind, EventRecord
from dermatrust.persistence.state_store import StateStore
from dermatrust.registry.store import RegistryStore


# =====================================================================
# EventRecord Tests
# =====================================================================


class TestEventRecord:
    def test_create_produces_hash(self) -> None:
        event = EventRecord.create(
            event_id="E-001",
            event_kind=EventKind.USER_REGISTERED,
            actor_id="alice",
            payload={"skin_type": "oily"},
        )
        assert event.event_hash.startswith("sha256:")
        assert len(event.event_hash) == 71  # "sha256:" + 64 hex chars

    def test_deterministic_hash(self) -> None:
        e1 = EventRecord.create("E-1", EventKind.EXPERT_VERIFIED, "root", {"x": 1}, 7)
        e2 = EventRecord.create("E-1", EventKind.EXPERT_VERIFIED, "root", {"x": 1}, 7)
        assert e1.event_hash == e2.event_hash

    def test_logical_time_changes_hash(self) -> None:
        e1 = EventRecord.create("E-1", EventKind.EXPERT_VERIFIED, "root", {}, 7)
        e2 = EventRecord.create("E-1", EventKind.EXPERT_VERIFIED, "root", {}, 8)
        assert e1.event_hash != e2.event_hash


# =====================================================================
# EventLog Tests
# =====================================================================


class TestEventLog:
    def test_append_and_count(self) -> None:
        log = EventLog()
        log.append(EventRecord.create("E-1", EventKind.USER_REGISTERED, "alice", {}))
        assert log.count == 1
        assert log.last_event.event_id == "E-1"

    def test_duplicate_id_rejected(self) -> None:
        log = EventLog()
        event = EventRecord.create("E-1", EventKind.USER_REGISTERED, "alice", {})
        log.append(event)
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(event)

    def test_filter_by_kind_and_time(self) -> None:
        log = EventLog()
        log.append(EventRecord.create("E-1", EventKind.USER_REGISTERED, "a", {}, 1))
        log.append(EventRecord.create("E-2", EventKind.FEEDBACK_SUBMITTED, "a", {}, 5))
        log.append(EventRecord.create("E-3", EventKind.USER_REGISTERED, "b", {}, 9))

        assert len(log.events(kind=EventKind.USER_REGISTERED)) == 2
        assert [e.event_id for e in log.events_since(5)] == ["E-2", "E-3"]
        assert [e.event_id for e in log.events_since(5, EventKind.USER_REGISTERED)] == ["E-3"]
        assert [e.event_id for e in log.events_for_actor("a")] == ["E-1", "E-2"]

    def test_file_persistence(self, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        log1 = EventLog(storage_path=log_path)
        log1.append(EventRecord.create("E-1", EventKind.USER_REGISTERED, "alice", {"a": 1}, 1))
        log1.append(EventRecord.create("E-2", EventKind.ADMIN_CHANGED, "root", {"b": 2}, 2))

        log2 = EventLog(storage_path=log_path)
        assert log2.count == 2
        assert log2.events()[1].event_kind == EventKind.ADMIN_CHANGED

    def test_tampered_file_rejected(self, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=log_path)
        log.append(EventRecord.create("E-1", EventKind.FEEDBACK_SUBMITTED, "alice", {"rating": 10}, 1))

        record = json.loads(log_path.read_text(encoding="utf-8"))
        record["payload"]["rating"] = 100
        log_path.write_text(json.dumps(record) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=log_path)

    def test_duplicate_on_recovery_rejected(self, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=log_path)
        log.append(EventRecord.create("E-1", EventKind.USER_REGISTERED, "alice", {}, 1))
        line = log_path.read_text(encoding="utf-8")
        log_path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=log_path)


# =====================================================================
# StateStore Tests
# =====================================================================


def _populated_registry() -> RegistryStore:
    registry = RegistryStore(admin="root")
    registry.create_user(UserProfile("alice", "oily", ["acne"], ["hydration"], registered_at=2))
    registry.create_expert(ExpertRecord("dr-e", "MD, dermatology", verified_at=3, reputation_score=81))
    rid = registry.allocate_routine_id()
    registry.create_routine(RoutineTemplate(
        routine_id=rid,
        expert_id="dr-e",
        name="Humid summer",
        description="Light layers",
        skin_types=["oily"],
        concerns=["acne"],
        weather_window=WeatherWindow(15, 35, 40, 90, 8),
        steps=[RoutineStep(1, "cleanser", "Gel cleanser"), RoutineStep(2, "spf", "SPF 50")],
        created_at=4,
        rating_count=1,
        average_rating=90,
    ))
    rec_id = registry.allocate_recommendation_id()
    registry.create_recommendation(Recommendation(
        recommendation_id=rec_id,
        user_id="alice",
        routine_id=rid,
        weather=WeatherContext(25, 60, 5, timestamp=5),
        recommended_at=5,
        has_feedback=True,
    ))
    registry.create_feedback(Feedback(rec_id, "alice", 90, submitted_at=6, comments="Great"))
    return registry


class TestStateStore:
    def test_empty_store(self, tmp_path: Path) -> None:
        store = StateStore(tmp_path / "state.json")
        assert not store.has_registry()
        with pytest.raises(ValueError, match="No registry state"):
            store.load_registry()

    def test_registry_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "state.json"
        StateStore(path).save_registry(_populated_registry())

        loaded = StateStore(path).load_registry(valid_skin_types=["oily"])
        assert loaded.admin == "root"
        assert loaded.get_user("alice").concerns == ["acne"]
        assert loaded.get_expert("dr-e").reputation_score == 81

        routine = loaded.get_routine(1)
        assert routine.weather_window == WeatherWindow(15, 35, 40, 90, 8)
        assert [s.product_type for s in routine.steps] == ["cleanser", "spf"]
        assert routine.average_rating == 90

        rec = loaded.get_recommendation(1)
        assert rec.has_feedback
        assert rec.weather.timestamp == 5
        assert loaded.get_feedback(1).comments == "Great"
        assert loaded.valid_skin_types == ("oily",)

    def test_counters_survive_reload(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        StateStore(path).save_registry(_populated_registry())
        loaded = StateStore(path).load_registry()
        assert loaded.allocate_routine_id() == 2
        assert loaded.allocate_recommendation_id() == 2
