"""Policy resolver — loads registry_params.json and runtime_policy.json
and exposes every runtime decision as a typed method call.

No magic. No defaults. If a value is missing from the config, it fails loud.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

MATCHING_MODES = ("fixed", "weather_profile")
EXPERT_ROUNDING_MODES = ("double_truncation", "single_truncation")


@dataclass(frozen=True)
class FieldLimits:
    """Maximum lengths and capacities for every bounded input field."""
    skin_type_max_chars: int
    profile_list_max_items: int
    profile_item_max_chars: int
    credentials_max_chars: int
    routine_name_max_chars: int
    routine_description_max_chars: int
    routine_list_max_items: int
    routine_item_max_chars: int
    routine_max_steps: int
    step_product_type_max_chars: int
    step_instructions_max_chars: int
    feedback_comments_max_chars: int
    validity_list_max_items: int


@dataclass(frozen=True)
class WeatherBounds:
    """Inclusive physical bounds for an observed weather context."""
    temperature_min: int
    temperature_max: int
    humidity_min: int
    humidity_max: int
    uv_index_min: int
    uv_index_max: int


@dataclass(frozen=True)
class ReputationPolicy:
    """Expert reputation EMA parameters.

    new = history_weight * old / divisor + rating_weight * rating / divisor,
    truncated as selected by `rounding`.
    """
    initial_score: int
    score_min: int
    score_max: int
    history_weight: int
    rating_weight: int
    divisor: int
    rounding: str


class PolicyResolver:
    """Loads and resolves all registry parameters and runtime policy.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        limits = resolver.field_limits()
        lo, hi = resolver.rating_bounds()
    """

    def __init__(self, params: dict[str, Any], policy: dict[str, Any]) -> None:
        self._params = params
        self._policy = policy
        self._validate_versions()
        self._validate_policy()

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load from the canonical config directory."""
        params = _load_json(config_dir / "registry_params.json")
        policy = _load_json(config_dir / "runtime_policy.json")
        return cls(params, policy)

    def _validate_versions(self) -> None:
        if "version" not in self._params:
            raise ValueError("registry_params.json missing version")
        if "version" not in self._policy:
            raise ValueError("runtime_policy.json missing version")

    def _validate_policy(self) -> None:
        mode = self.matching_mode()
        if mode not in MATCHING_MODES:
            raise ValueError(f"Unknown matching mode: {mode}")
        rounding = self._policy["reputation"]["expert_rounding"]
        if rounding not in EXPERT_ROUNDING_MODES:
            raise ValueError(f"Unknown expert rounding mode: {rounding}")
        cap = self.field_limits().validity_list_max_items
        for name in ("skin_types", "concerns", "goals"):
            entries = self._policy["validity_lists"][name]
            if len(entries) > cap:
                raise ValueError(
                    f"Validity list {name} has {len(entries)} entries, max {cap}"
                )

    # ------------------------------------------------------------------
    # Input bounds
    # ------------------------------------------------------------------

    def field_limits(self) -> FieldLimits:
        """Return the bounded-length limits for every input field."""
        fl = self._params["field_limits"]
        return FieldLimits(
            skin_type_max_chars=fl["skin_type_max_chars"],
            profile_list_max_items=fl["profile_list_max_items"],
            profile_item_max_chars=fl["profile_item_max_chars"],
            credentials_max_chars=fl["credentials_max_chars"],
            routine_name_max_chars=fl["routine_name_max_chars"],
            routine_description_max_chars=fl["routine_description_max_chars"],
            routine_list_max_items=fl["routine_list_max_items"],
            routine_item_max_chars=fl["routine_item_max_chars"],
            routine_max_steps=fl["routine_max_steps"],
            step_product_type_max_chars=fl["step_product_type_max_chars"],
            step_instructions_max_chars=fl["step_instructions_max_chars"],
            feedback_comments_max_chars=fl["feedback_comments_max_chars"],
            validity_list_max_items=fl["validity_list_max_items"],
        )

    def weather_bounds(self) -> WeatherBounds:
        """Return inclusive bounds for temperature, humidity and UV index."""
        wb = self._params["weather_bounds"]
        return WeatherBounds(
            temperature_min=wb["temperature_min"],
            temperature_max=wb["temperature_max"],
            humidity_min=wb["humidity_min"],
            humidity_max=wb["humidity_max"],
            uv_index_min=wb["uv_index_min"],
            uv_index_max=wb["uv_index_max"],
        )

    def rating_bounds(self) -> tuple[int, int]:
        """Return (min, max) inclusive feedback rating."""
        rb = self._params["rating_bounds"]
        return rb["min"], rb["max"]

    # ------------------------------------------------------------------
    # Reputation
    # ------------------------------------------------------------------

    def reputation_policy(self) -> ReputationPolicy:
        """Return the expert reputation EMA parameters."""
        rp = self._params["reputation"]
        return ReputationPolicy(
            initial_score=rp["initial_expert_score"],
            score_min=rp["score_min"],
            score_max=rp["score_max"],
            history_weight=rp["history_weight"],
            rating_weight=rp["rating_weight"],
            divisor=rp["divisor"],
            rounding=self._policy["reputation"]["expert_rounding"],
        )

    def initial_expert_score(self) -> int:
        """Return the reputation score given to a newly verified expert."""
        return self._params["reputation"]["initial_expert_score"]

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def matching_mode(self) -> str:
        """Return "fixed" or "weather_profile"."""
        return self._policy["matching"]["mode"]

    def fixed_routine_id(self) -> int:
        """Return the routine id resolved by the fixed matching mode."""
        return self._policy["matching"]["fixed_routine_id"]

    # ------------------------------------------------------------------
    # Validity lists
    # ------------------------------------------------------------------

    def enforce_validity_lists(self) -> bool:
        """Whether profile fields must appear in the validity lists."""
        return bool(self._policy["validity_lists"]["enforce"])

    def valid_skin_types(self) -> list[str]:
        return list(self._policy["validity_lists"]["skin_types"])

    def valid_concerns(self) -> list[str]:
        return list(self._policy["validity_lists"]["concerns"])

    def valid_goals(self) -> list[str]:
        return list(self._policy["validity_lists"]["goals"])


def _load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file or raise with clear path."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)
