"""Tests for the routine selector — fixed mode and weather/profile mode."""

import json
import pytest
from pathlib import Path

from dermatrust.matching.selector import RoutineSelector, matches_profile
from dermatrust.models.profile import UserProfile
from dermatrust.models.recommendation import WeatherContext
from dermatrust.models.routine import RoutineTemplate, WeatherWindow
from dermatrust.policy.resolver import PolicyResolver
from dermatrust.registry.store import RegistryStore


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

ALICE = UserProfile("alice", "oily", concerns=["acne"], goals=["hydration"])
WARM = WeatherContext(temperature=25, humidity=60, uv_index=5)


def _load(name: str) -> dict:
    with (CONFIG_DIR / name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _resolver(mode: str) -> PolicyResolver:
    policy = _load("runtime_policy.json")
    policy["matching"] = {"mode": mode, "fixed_routine_id": 1}
    return PolicyResolver(_load("registry_params.json"), policy)


def _routine(
    rid: int,
    skin_types: list[str] | None = None,
    concerns: list[str] | None = None,
    window: WeatherWindow = WeatherWindow(15, 35, 40, 90, 8),
    average: int = 0,
) -> RoutineTemplate:
    return RoutineTemplate(
        routine_id=rid,
        expert_id="dr-e",
        name=f"R{rid}",
        description="",
        skin_types=skin_types if skin_types is not None else ["oily"],
        concerns=concerns if concerns is not None else ["acne"],
        weather_window=window,
        average_rating=average,
    )


@pytest.fixture
def store() -> RegistryStore:
    return RegistryStore(admin="root")


class TestFixedMode:
    def test_always_routine_one(self, store: RegistryStore) -> None:
        # Routine 1 does not fit the weather at all; fixed mode ignores that
        store.create_routine(_routine(1, window=WeatherWindow(-50, -40, 0, 10, 0)))
        store.create_routine(_routine(2, average=99))
        result = RoutineSelector(_resolver("fixed"), store).select(ALICE, WARM)
        assert result.success
        assert result.routine_id == 1

    def test_missing_routine_one(self, store: RegistryStore) -> None:
        result = RoutineSelector(_resolver("fixed"), store).select(ALICE, WARM)
        assert not result.success
        assert result.errors == ["Routine not found: 1"]

    def test_default_config_is_fixed(self, store: RegistryStore) -> None:
        selector = RoutineSelector(PolicyResolver.from_config_dir(CONFIG_DIR), store)
        assert selector.mode == "fixed"


class TestWeatherProfileMode:
    def test_picks_highest_average(self, store: RegistryStore) -> None:
        store.create_routine(_routine(1, average=70))
        store.create_routine(_routine(2, average=85))
        result = RoutineSelector(_resolver("weather_profile"), store).select(ALICE, WARM)
        assert result.routine_id == 2
        assert result.candidates == [2, 1]

    def test_tie_break_lowest_id(self, store: RegistryStore) -> None:
        store.create_routine(_routine(3, average=80))
        store.create_routine(_routine(2, average=80))
        result = RoutineSelector(_resolver("weather_profile"), store).select(ALICE, WARM)
        assert result.routine_id == 2

    def test_weather_outside_window_excluded(self, store: RegistryStore) -> None:
        store.create_routine(_routine(1, window=WeatherWindow(-10, 5, 0, 100, 12), average=99))
        store.create_routine(_routine(2, average=10))
        result = RoutineSelector(_resolver("weather_profile"), store).select(ALICE, WARM)
        assert result.routine_id == 2

    def test_no_match(self, store: RegistryStore) -> None:
        store.create_routine(_routine(1, skin_types=["dry"]))
        result = RoutineSelector(_resolver("weather_profile"), store).select(ALICE, WARM)
        assert not result.success
        assert result.errors


class TestProfileMatch:
    def test_empty_lists_match_anyone(self) -> None:
        assert matches_profile(_routine(1, skin_types=[], concerns=[]), ALICE)

    def test_concern_overlap_required(self) -> None:
        assert not matches_profile(_routine(1, concerns=["aging"]), ALICE)
        assert matches_profile(_routine(1, concerns=["aging", "acne"]), ALICE)

    def test_skin_type_required(self) -> None:
        assert not matches_profile(_routine(1, skin_types=["dry", "normal"]), ALICE)
