"""Reputation engine — derives expert and routine reputation from feedback.

Pure computation. No side effects, no persistence, no audit events.
The service layer handles all of that; this engine only computes.

Expert reputation (integer EMA, weight 0.9 on history):
  double_truncation (default):
    new = 9 * (old // 10) + rating // 10
  single_truncation:
    new = (9 * old + rating) // 10

Double truncation loses up to 9 points per update compared with the
single-truncation form. It is the default; stored scores were computed
with it.

Routine rating (integer running mean):
  count == 0:  avg = rating
  otherwise:   avg = (avg * count + rating) // (count + 1)
"""

from __future__ import annotations

from dataclasses import dataclass

from dermatrust.models.profile import ExpertRecord
from dermatrust.models.routine import RoutineTemplate
from dermatrust.policy.resolver import PolicyResolver


def _clamp(value: int, lo: int, hi: int) -> int:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class ExpertReputationUpdate:
    """Result of applying one rating to an expert's reputation."""
    expert_id: str
    rating: int
    old_score: int
    new_score: int


@dataclass(frozen=True)
class RoutineRatingUpdate:
    """Result of folding one rating into a routine's running mean."""
    routine_id: int
    rating: int
    old_count: int
    old_average: int
    new_count: int
    new_average: int


class ReputationEngine:
    """Computes reputation updates from the current record and a new rating.

    Usage:
        engine = ReputationEngine(resolver)
        expert_update = engine.expert_update(expert, rating=90)
        routine_update = engine.routine_update(routine, rating=90)
        # The service writes new_score / new_count / new_average back.
    """

    def __init__(self, resolver: PolicyResolver) -> None:
        self._policy = resolver.reputation_policy()

    def expert_score(self, old_score: int, rating: int) -> int:
        """Return the expert score after folding in one rating."""
        p = self._policy
        if p.rounding == "single_truncation":
            new_score = (p.history_weight * old_score + p.rating_weight * rating) // p.divisor
        else:
            new_score = (
                p.history_weight * (old_score // p.divisor)
                + p.rating_weight * (rating // p.divisor)
            )
        return _clamp(new_score, p.score_min, p.score_max)

    def expert_update(self, expert: ExpertRecord, rating: int) -> ExpertReputationUpdate:
        return ExpertReputationUpdate(
            expert_id=expert.expert_id,
            rating=rating,
            old_score=expert.reputation_score,
            new_score=self.expert_score(expert.reputation_score, rating),
        )

    @staticmethod
    def routine_average(old_average: int, old_count: int, rating: int) -> int:
        """Return the integer running mean after adding one rating."""
        if old_count == 0:
            return rating
        return (old_average * old_count + rating) // (old_count + 1)

    def routine_update(self, routine: RoutineTemplate, rating: int) -> RoutineRatingUpdate:
        return RoutineRatingUpdate(
            routine_id=routine.routine_id,
            rating=rating,
            old_count=routine.rating_count,
            old_average=routine.average_rating,
            new_count=routine.rating_count + 1,
            new_average=self.routine_average(
                routine.average_rating, routine.rating_count, rating,
            ),
        )
