"""Routine template models — expert-authored skincare routines.

A template declares who it is for (skin types, concerns), when it applies
(a weather window) and what to do (ordered steps). Templates are immutable
once submitted except for rating_count/average_rating, which the reputation
engine maintains as an integer running mean of user feedback.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class WeatherWindow:
    """Acceptable weather range for a routine.

    There is no lower bound on UV: a routine applies at any UV index up
    to max_uv_index.
    """
    min_temp: int
    max_temp: int
    min_humidity: int
    max_humidity: int
    max_uv_index: int


@dataclass(frozen=True)
class RoutineStep:
    """A single step of a routine, e.g. (1, "cleanser", "Massage 60s")."""
    order: int
    product_type: str
    instructions: str


@dataclass
class RoutineTemplate:
    """A submitted routine template keyed by its monotonic routine_id."""
    routine_id: int
    expert_id: str
    name: str
    description: str
    skin_types: list[str]
    concerns: list[str]
    weather_window: WeatherWindow
    steps: list[RoutineStep] = field(default_factory=list)
    created_at: int = 0
    rating_count: int = 0
    average_rating: int = 0
