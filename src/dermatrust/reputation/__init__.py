"""Reputation module — expert EMA and routine running-mean updates."""

from dermatrust.reputation.engine import (
    ExpertReputationUpdate,
    ReputationEngine,
    RoutineRatingUpdate,
)

__all__ = ["ExpertReputationUpdate", "ReputationEngine", "RoutineRatingUpdate"]
