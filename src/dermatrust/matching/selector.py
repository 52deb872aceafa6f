"""Routine selector — resolves which routine to recommend to a user.

Two modes, chosen by runtime policy:

fixed (default):
  Always resolves to the configured routine id (1), regardless of the
  weather or the user's profile. This is the established registry
  behaviour and is kept for compatibility with existing recommendations.

weather_profile:
  Scans every routine and keeps those that
  - contain the weather context in their weather window,
  - list the user's skin type (an empty skin_types list matches any),
  - share at least one concern with the user (an empty concerns list
    matches any).
  Ranked by highest average_rating, then lowest routine_id.

Selection is deterministic and read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from dermatrust.models.profile import UserProfile
from dermatrust.models.recommendation import WeatherContext
from dermatrust.models.routine import RoutineTemplate
from dermatrust.policy.resolver import PolicyResolver
from dermatrust.registry.store import RegistryStore
from dermatrust.validation.rules import weather_in_window


@dataclass(frozen=True)
class SelectionResult:
    """Result of a routine selection attempt."""
    routine_id: Optional[int]
    errors: list[str] = field(default_factory=list)
    candidates: list[int] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.routine_id is not None


class RoutineSelector:
    """Selects a routine for a user and weather context.

    Usage:
        selector = RoutineSelector(resolver, store)
        result = selector.select(profile, weather)
        if result.success:
            routine = store.get_routine(result.routine_id)
    """

    def __init__(self, resolver: PolicyResolver, store: RegistryStore) -> None:
        self._resolver = resolver
        self._store = store

    @property
    def mode(self) -> str:
        return self._resolver.matching_mode()

    def select(self, profile: UserProfile, weather: WeatherContext) -> SelectionResult:
        if self.mode == "fixed":
            return self._select_fixed()
        return self._select_by_weather_and_profile(profile, weather)

    def _select_fixed(self) -> SelectionResult:
        routine_id = self._resolver.fixed_routine_id()
        if self._store.get_routine(routine_id) is None:
            return SelectionResult(
                routine_id=None,
                errors=[f"Routine not found: {routine_id}"],
            )
        return SelectionResult(routine_id=routine_id, candidates=[routine_id])

    def _select_by_weather_and_profile(
        self,
        profile: UserProfile,
        weather: WeatherContext,
    ) -> SelectionResult:
        candidates = [
            r for r in self._store.all_routines()
            if matches_profile(r, profile) and weather_in_window(weather, r.weather_window)
        ]
        if not candidates:
            return SelectionResult(
                routine_id=None,
                errors=[
                    f"No routine matches skin type {profile.skin_type!r} at "
                    f"{weather.temperature}C / {weather.humidity}% / UV {weather.uv_index}"
                ],
            )

        ranked = sorted(candidates, key=lambda r: (-r.average_rating, r.routine_id))
        return SelectionResult(
            routine_id=ranked[0].routine_id,
            candidates=[r.routine_id for r in ranked],
        )


def matches_profile(routine: RoutineTemplate, profile: UserProfile) -> bool:
    """True iff the routine targets the user's skin type and concerns."""
    if routine.skin_types and profile.skin_type not in routine.skin_types:
        return False
    if routine.concerns and not set(routine.concerns) & set(profile.concerns):
        return False
    return True
