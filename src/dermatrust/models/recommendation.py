"""Recommendation and feedback models.

A recommendation snapshots the weather context it was generated for and
moves through a two-state lifecycle:

    CREATED (has_feedback=False) -> RATED (has_feedback=True)

RATED is terminal. The only transition is made by feedback submission,
which also creates exactly one Feedback record under the same id.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class RecommendationState(str, enum.Enum):
    """Lifecycle state of a recommendation."""
    CREATED = "created"
    RATED = "rated"


@dataclass(frozen=True)
class WeatherContext:
    """Weather observed by the caller when asking for a recommendation.

    temperature is in degrees Celsius, humidity in percent, uv_index on
    the 0-12 scale. timestamp is the logical clock value at snapshot.
    """
    temperature: int
    humidity: int
    uv_index: int
    timestamp: int = 0


@dataclass
class Recommendation:
    """A routine recommended to a user for a given weather context."""
    recommendation_id: int
    user_id: str
    routine_id: int
    weather: WeatherContext
    recommended_at: int
    has_feedback: bool = False

    @property
    def state(self) -> RecommendationState:
        if self.has_feedback:
            return RecommendationState.RATED
        return RecommendationState.CREATED


@dataclass(frozen=True)
class Feedback:
    """A user's rating (1-100) of a recommendation. Never updated."""
    recommendation_id: int
    user_id: str
    rating: int
    submitted_at: int
    comments: Optional[str] = None
