"""Tests for the reputation engine — proves expert EMA and routine mean math.

Covers:
- Expert EMA with double truncation (default) and single truncation
- Expert score bounds over long rating sequences
- Routine running mean (first rating, convergence, truncation)
- Update records carry old and new values
"""

import json
import pytest
from pathlib import Path

from dermatrust.models.profile import ExpertRecord
from dermatrust.models.routine import RoutineTemplate, WeatherWindow
from dermatrust.policy.resolver import PolicyResolver
from dermatrust.reputation.engine import ReputationEngine


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def engine(resolver: PolicyResolver) -> ReputationEngine:
    return ReputationEngine(resolver)


def _load(name: str) -> dict:
    with (CONFIG_DIR / name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _single_truncation_engine() -> ReputationEngine:
    policy = _load("runtime_policy.json")
    policy["reputation"] = {"expert_rounding": "single_truncation"}
    return ReputationEngine(PolicyResolver(_load("registry_params.json"), policy))


def _routine(count: int = 0, average: int = 0) -> RoutineTemplate:
    return RoutineTemplate(
        routine_id=1,
        expert_id="dr-e",
        name="Humid summer",
        description="Light layers",
        skin_types=["oily"],
        concerns=["acne"],
        weather_window=WeatherWindow(15, 35, 40, 90, 8),
        rating_count=count,
        average_rating=average,
    )


# ---------------------------------------------------------------------------
# Expert reputation
# ---------------------------------------------------------------------------

class TestExpertScore:
    def test_initial_score_rated_90(self, engine: ReputationEngine) -> None:
        # 9 * (80 // 10) + 90 // 10 = 72 + 9
        assert engine.expert_score(80, 90) == 81

    def test_double_truncation_drops_remainders(self, engine: ReputationEngine) -> None:
        # 9 * (87 // 10) + 59 // 10 = 72 + 5
        assert engine.expert_score(87, 59) == 77

    def test_single_truncation_mode(self) -> None:
        engine = _single_truncation_engine()
        # (9 * 87 + 59) // 10 = 842 // 10
        assert engine.expert_score(87, 59) == 84

    def test_max_inputs_stay_at_100(self, engine: ReputationEngine) -> None:
        assert engine.expert_score(100, 100) == 100

    def test_min_rating_decays_score(self, engine: ReputationEngine) -> None:
        assert engine.expert_score(80, 1) == 72

    @pytest.mark.parametrize("rating", [1, 9, 10, 50, 99, 100])
    def test_score_bounded_over_many_updates(
        self, engine: ReputationEngine, rating: int,
    ) -> None:
        score = 80
        for _ in range(200):
            score = engine.expert_score(score, rating)
            assert 0 <= score <= 100

    def test_expert_update_record(self, engine: ReputationEngine) -> None:
        expert = ExpertRecord("dr-e", "MD", verified_at=1, reputation_score=80)
        update = engine.expert_update(expert, 90)
        assert update.expert_id == "dr-e"
        assert update.old_score == 80
        assert update.new_score == 81
        # The engine never mutates its input
        assert expert.reputation_score == 80


# ---------------------------------------------------------------------------
# Routine rating
# ---------------------------------------------------------------------------

class TestRoutineAverage:
    def test_first_rating_becomes_average(self, engine: ReputationEngine) -> None:
        assert engine.routine_average(0, 0, 73) == 73

    def test_running_mean_truncates(self, engine: ReputationEngine) -> None:
        # (90 * 1 + 71) // 2 = 161 // 2
        assert engine.routine_average(90, 1, 71) == 80

    def test_constant_rating_converges_immediately(self, engine: ReputationEngine) -> None:
        routine = _routine()
        for _ in range(25):
            update = engine.routine_update(routine, 64)
            routine.rating_count = update.new_count
            routine.average_rating = update.new_average
            assert routine.average_rating == 64
        assert routine.rating_count == 25

    def test_routine_update_record(self, engine: ReputationEngine) -> None:
        routine = _routine(count=3, average=60)
        update = engine.routine_update(routine, 100)
        assert update.old_count == 3
        assert update.old_average == 60
        assert update.new_count == 4
        assert update.new_average == 70
        assert routine.rating_count == 3
