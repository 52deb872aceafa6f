"""Validation rules — stateless predicates over inputs and roles.

Pure checks, no side effects. Range checks return a bool; shape checks
return a list of human-readable violations (empty list = valid). The
service layer maps a failed check to its ErrorCode before any mutation.
"""

from __future__ import annotations

from typing import Optional, Sequence

from dermatrust.models.recommendation import WeatherContext
from dermatrust.models.routine import RoutineStep, WeatherWindow
from dermatrust.policy.resolver import PolicyResolver
from dermatrust.registry.store import RegistryStore


# ----------------------------------------------------------------------
# Role checks
# ----------------------------------------------------------------------

def is_admin(store: RegistryStore, caller: str) -> bool:
    return store.admin == caller


def is_verified_expert(store: RegistryStore, caller: str) -> bool:
    return store.get_expert(caller) is not None


def is_registered_user(store: RegistryStore, caller: str) -> bool:
    return store.get_user(caller) is not None


# ----------------------------------------------------------------------
# Weather matching
# ----------------------------------------------------------------------

def weather_in_window(weather: WeatherContext, window: WeatherWindow) -> bool:
    """True iff the weather falls inside a routine's weather window.

    Non-integer readings never match.
    """
    if not all(_is_int(v) for v in (weather.temperature, weather.humidity, weather.uv_index)):
        return False
    return (
        window.min_temp <= weather.temperature <= window.max_temp
        and window.min_humidity <= weather.humidity <= window.max_humidity
        and weather.uv_index <= window.max_uv_index
    )


class ValidationRules:
    """Range and shape checks driven by the configured bounds.

    Usage:
        rules = ValidationRules(resolver)
        if not rules.valid_weather(25, 60, 5):
            ...
        errors = rules.check_profile("oily", ["acne"], ["hydration"])
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver
        self._limits = resolver.field_limits()
        self._weather = resolver.weather_bounds()
        self._rating = resolver.rating_bounds()

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------

    def valid_weather(self, temperature: int, humidity: int, uv_index: int) -> bool:
        if not (_is_int(temperature) and _is_int(humidity) and _is_int(uv_index)):
            return False
        wb = self._weather
        return (
            wb.temperature_min <= temperature <= wb.temperature_max
            and wb.humidity_min <= humidity <= wb.humidity_max
            and wb.uv_index_min <= uv_index <= wb.uv_index_max
        )

    def valid_rating(self, rating: int) -> bool:
        if not _is_int(rating):
            return False
        lo, hi = self._rating
        return lo <= rating <= hi

    # ------------------------------------------------------------------
    # Shapes
    # ------------------------------------------------------------------

    def check_profile(
        self,
        skin_type: str,
        concerns: Sequence[str],
        goals: Sequence[str],
    ) -> list[str]:
        """Check a user profile against field limits and validity lists."""
        fl = self._limits
        errors = _check_text("skin_type", skin_type, fl.skin_type_max_chars)
        errors += _check_list(
            "concerns", concerns,
            fl.profile_list_max_items, fl.profile_item_max_chars,
        )
        errors += _check_list(
            "goals", goals,
            fl.profile_list_max_items, fl.profile_item_max_chars,
        )
        if errors or not self._resolver.enforce_validity_lists():
            return errors

        if skin_type not in self._resolver.valid_skin_types():
            errors.append(f"Unknown skin type: {skin_type}")
        allowed_concerns = set(self._resolver.valid_concerns())
        errors += [f"Unknown concern: {c}" for c in concerns if c not in allowed_concerns]
        allowed_goals = set(self._resolver.valid_goals())
        errors += [f"Unknown goal: {g}" for g in goals if g not in allowed_goals]
        return errors

    def check_credentials(self, credentials: str) -> list[str]:
        return _check_text(
            "credentials", credentials, self._limits.credentials_max_chars,
        )

    def check_routine(
        self,
        name: str,
        description: str,
        skin_types: Sequence[str],
        concerns: Sequence[str],
        weather_window: WeatherWindow,
        steps: Sequence[RoutineStep],
    ) -> list[str]:
        """Check a routine template submission.

        Window bounds must be integers inside the configured weather bounds
        and ordered (min <= max). Steps are capped, their orders strictly
        ascending, and each step's text fields are length-bounded.
        """
        fl = self._limits
        errors = _check_text("name", name, fl.routine_name_max_chars)
        errors += _check_text(
            "description", description, fl.routine_description_max_chars,
        )
        errors += _check_list(
            "skin_types", skin_types,
            fl.routine_list_max_items, fl.routine_item_max_chars,
        )
        errors += _check_list(
            "concerns", concerns,
            fl.routine_list_max_items, fl.routine_item_max_chars,
        )

        errors += self._check_window(weather_window)

        if not isinstance(steps, (list, tuple)):
            errors.append("steps must be a list of routine steps")
            return errors
        if len(steps) > fl.routine_max_steps:
            errors.append(
                f"steps has {len(steps)} entries, max {fl.routine_max_steps}"
            )
        previous_order: Optional[int] = None
        for step in steps:
            if not _is_int(step.order):
                errors.append(f"step order {step.order!r} must be an integer")
                continue
            if previous_order is not None and step.order <= previous_order:
                errors.append(
                    f"step {step.order} follows step {previous_order}; "
                    f"orders must be unique and ascending"
                )
            previous_order = step.order
            errors += _check_text(
                f"step {step.order} product_type",
                step.product_type, fl.step_product_type_max_chars,
            )
            errors += _check_text(
                f"step {step.order} instructions",
                step.instructions, fl.step_instructions_max_chars,
            )
        return errors

    def _check_window(self, window: WeatherWindow) -> list[str]:
        wb = self._weather
        bounds = (
            ("min_temp", window.min_temp, wb.temperature_min, wb.temperature_max),
            ("max_temp", window.max_temp, wb.temperature_min, wb.temperature_max),
            ("min_humidity", window.min_humidity, wb.humidity_min, wb.humidity_max),
            ("max_humidity", window.max_humidity, wb.humidity_min, wb.humidity_max),
            ("max_uv_index", window.max_uv_index, wb.uv_index_min, wb.uv_index_max),
        )
        errors: list[str] = []
        for label, value, lo, hi in bounds:
            if not _is_int(value):
                errors.append(f"Weather window {label} must be an integer")
            elif not lo <= value <= hi:
                errors.append(f"Weather window {label} {value} outside [{lo}, {hi}]")
        if errors:
            return errors

        if window.min_temp > window.max_temp:
            errors.append(
                f"Weather window min_temp {window.min_temp} "
                f"exceeds max_temp {window.max_temp}"
            )
        if window.min_humidity > window.max_humidity:
            errors.append(
                f"Weather window min_humidity {window.min_humidity} "
                f"exceeds max_humidity {window.max_humidity}"
            )
        return errors

    def check_comments(self, comments: Optional[str]) -> list[str]:
        if comments is None:
            return []
        return _check_text(
            "comments", comments, self._limits.feedback_comments_max_chars,
        )


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_text(label: str, value: str, max_chars: int) -> list[str]:
    if not isinstance(value, str):
        return [f"{label} must be a string"]
    if len(value) > max_chars:
        return [f"{label} is {len(value)} chars, max {max_chars}"]
    return []


def _check_list(
    label: str,
    values: Sequence[str],
    max_items: int,
    max_chars: int,
) -> list[str]:
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        return [f"{label} must be a list of strings"]
    errors: list[str] = []
    if len(values) > max_items:
        errors.append(f"{label} has {len(values)} entries, max {max_items}")
    for i, value in enumerate(values):
        errors += _check_text(f"{label}[{i}]", value, max_chars)
    return errors
