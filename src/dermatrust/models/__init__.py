"""Data models — profiles, experts, routine templates, recommendations."""

from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import (
    Feedback,
    Recommendation,
    RecommendationState,
    WeatherContext,
)
from dermatrust.models.routine import RoutineStep, RoutineTemplate, WeatherWindow

__all__ = [
    "ExpertRecord",
    "Feedback",
    "Recommendation",
    "RecommendationState",
    "RoutineStep",
    "RoutineTemplate",
    "UserProfile",
    "WeatherContext",
    "WeatherWindow",
]
