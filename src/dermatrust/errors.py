"""Closed set of failure outcomes returned by registry operations.

Every operation either succeeds or fails with exactly one ErrorCode.
Codes are non-retryable: repeating the same call against the same state
yields the same code.
"""

from __future__ import annotations

import enum


class ErrorCode(str, enum.Enum):
    """Tagged failure returned in ServiceResult.error."""
    NOT_AUTHORIZED = "not_authorized"
    USER_ALREADY_EXISTS = "user_already_exists"
    USER_NOT_FOUND = "user_not_found"
    EXPERT_ALREADY_VERIFIED = "expert_already_verified"
    EXPERT_NOT_VERIFIED = "expert_not_verified"
    ROUTINE_NOT_FOUND = "routine_not_found"
    INVALID_WEATHER_DATA = "invalid_weather_data"
    INVALID_RATING = "invalid_rating"
    RECOMMENDATION_NOT_FOUND = "recommendation_not_found"
    ALREADY_RATED = "already_rated"
    INVALID_INPUT = "invalid_input"
    STORAGE_FAILURE = "storage_failure"


class ClockRegressionError(RuntimeError):
    """Raised when the host clock moves backwards between operations."""
