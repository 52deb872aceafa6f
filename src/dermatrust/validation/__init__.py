"""Validation layer — range, shape and role checks."""

from dermatrust.validation.rules import (
    ValidationRules,
    is_admin,
    is_registered_user,
    is_verified_expert,
    weather_in_window,
)

__all__ = [
    "ValidationRules",
    "is_admin",
    "is_registered_user",
    "is_verified_expert",
    "weather_in_window",
]
