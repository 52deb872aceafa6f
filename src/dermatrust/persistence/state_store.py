"""State store — JSON-based persistence for registry state.

Stores and recovers:
- Admin identity
- User profiles and verified experts
- Routine templates (with their running rating state)
- Recommendations and feedback
- The two id counters

This is a simple file-based store suitable for single-node deployment.
Production deployments would replace this with a database backend
while keeping the same interface.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import Feedback, Recommendation, WeatherContext
from dermatrust.models.routine import RoutineStep, RoutineTemplate, WeatherWindow
from dermatrust.registry.store import RegistryStore

logger = logging.getLogger(__name__)


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/registry_state.json"))
        store.save_registry(registry)

        # On recovery:
        if store.has_registry():
            registry = store.load_registry(valid_skin_types=..., ...)
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)
        logger.info("Loaded registry state from %s", self._path)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)

    def has_registry(self) -> bool:
        return "admin" in self._state

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save_registry(self, registry: RegistryStore) -> None:
        """Serialize the full registry to state in a single write."""
        self._state = {
            "admin": registry.admin,
            "counters": {
                "next_routine_id": registry.next_routine_id,
                "next_recommendation_id": registry.next_recommendation_id,
            },
            "users": {
                u.user_id: {
                    "user_id": u.user_id,
                    "skin_type": u.skin_type,
                    "concerns": list(u.concerns),
                    "goals": list(u.goals),
                    "registered_at": u.registered_at,
                }
                for u in registry.all_users()
            },
            "experts": {
                e.expert_id: {
                    "expert_id": e.expert_id,
                    "credentials": e.credentials,
                    "verified_at": e.verified_at,
                    "reputation_score": e.reputation_score,
                }
                for e in registry.all_experts()
            },
            # JSON object keys are strings; ids are restored to int on load.
            "routines": {
                str(r.routine_id): _routine_to_dict(r)
                for r in registry.all_routines()
            },
            "recommendations": {
                str(rec.recommendation_id): {
                    "recommendation_id": rec.recommendation_id,
                    "user_id": rec.user_id,
                    "routine_id": rec.routine_id,
                    "weather": {
                        "temperature": rec.weather.temperature,
                        "humidity": rec.weather.humidity,
                        "uv_index": rec.weather.uv_index,
                        "timestamp": rec.weather.timestamp,
                    },
                    "recommended_at": rec.recommended_at,
                    "has_feedback": rec.has_feedback,
                }
                for rec in registry.all_recommendations()
            },
            "feedback": {
                str(fb.recommendation_id): {
                    "recommendation_id": fb.recommendation_id,
                    "user_id": fb.user_id,
                    "rating": fb.rating,
                    "comments": fb.comments,
                    "submitted_at": fb.submitted_at,
                }
                for fb in registry.all_feedback()
            },
        }
        self._save()

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load_registry(
        self,
        valid_skin_types: Optional[list[str]] = None,
        valid_concerns: Optional[list[str]] = None,
        valid_goals: Optional[list[str]] = None,
    ) -> RegistryStore:
        """Deserialize the registry from state.

        Validity lists are reference data from policy and are not persisted.
        Raises ValueError if no registry has been saved.
        """
        if not self.has_registry():
            raise ValueError(f"No registry state in {self._path}")

        registry = RegistryStore(
            admin=self._state["admin"],
            valid_skin_types=valid_skin_types,
            valid_concerns=valid_concerns,
            valid_goals=valid_goals,
        )

        for data in self._state.get("users", {}).values():
            registry.create_user(UserProfile(
                user_id=data["user_id"],
                skin_type=data["skin_type"],
                concerns=list(data.get("concerns", [])),
                goals=list(data.get("goals", [])),
                registered_at=data["registered_at"],
            ))

        for data in self._state.get("experts", {}).values():
            registry.create_expert(ExpertRecord(
                expert_id=data["expert_id"],
                credentials=data["credentials"],
                verified_at=data["verified_at"],
                reputation_score=data["reputation_score"],
            ))

        for data in self._state.get("routines", {}).values():
            registry.create_routine(_routine_from_dict(data))

        for data in self._state.get("recommendations", {}).values():
            w = data["weather"]
            registry.create_recommendation(Recommendation(
                recommendation_id=data["recommendation_id"],
                user_id=data["user_id"],
                routine_id=data["routine_id"],
                weather=WeatherContext(
                    temperature=w["temperature"],
                    humidity=w["humidity"],
                    uv_index=w["uv_index"],
                    timestamp=w.get("timestamp", 0),
                ),
                recommended_at=data["recommended_at"],
                has_feedback=data.get("has_feedback", False),
            ))

        for data in self._state.get("feedback", {}).values():
            registry.create_feedback(Feedback(
                recommendation_id=data["recommendation_id"],
                user_id=data["user_id"],
                rating=data["rating"],
                submitted_at=data["submitted_at"],
                comments=data.get("comments"),
            ))

        counters = self._state.get("counters", {})
        registry.restore_counters(
            counters.get("next_routine_id", 1),
            counters.get("next_recommendation_id", 1),
        )
        return registry


def _routine_to_dict(routine: RoutineTemplate) -> dict[str, Any]:
    w = routine.weather_window
    return {
        "routine_id": routine.routine_id,
        "expert_id": routine.expert_id,
        "name": routine.name,
        "description": routine.description,
        "skin_types": list(routine.skin_types),
        "concerns": list(routine.concerns),
        "weather_window": {
            "min_temp": w.min_temp,
            "max_temp": w.max_temp,
            "min_humidity": w.min_humidity,
            "max_humidity": w.max_humidity,
            "max_uv_index": w.max_uv_index,
        },
        "steps": [
            {
                "order": s.order,
                "product_type": s.product_type,
                "instructions": s.instructions,
            }
            for s in routine.steps
        ],
        "created_at": routine.created_at,
        "rating_count": routine.rating_count,
        "average_rating": routine.average_rating,
    }


def _routine_from_dict(data: dict[str, Any]) -> RoutineTemplate:
    w = data["weather_window"]
    return RoutineTemplate(
        routine_id=data["routine_id"],
        expert_id=data["expert_id"],
        name=data["name"],
        description=data["description"],
        skin_types=list(data.get("skin_types", [])),
        concerns=list(data.get("concerns", [])),
        weather_window=WeatherWindow(
            min_temp=w["min_temp"],
            max_temp=w["max_temp"],
            min_humidity=w["min_humidity"],
            max_humidity=w["max_humidity"],
            max_uv_index=w["max_uv_index"],
        ),
        steps=[
            RoutineStep(
                order=s["order"],
                product_type=s["product_type"],
                instructions=s["instructions"],
            )
            for s in data.get("steps", [])
        ],
        created_at=data["created_at"],
        rating_count=data.get("rating_count", 0),
        average_rating=data.get("average_rating", 0),
    )
