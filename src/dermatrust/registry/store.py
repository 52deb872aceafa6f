"""Registry store — the keyed maps behind every registry operation.

Holds five maps (users, experts, routines, recommendations, feedback),
the two monotonic id counters, the admin identity and the three
read-only validity lists. All reads are point lookups by key; there is
no range scan or secondary index apart from all_routines(), which the
weather/profile matcher uses.

Invariants enforced:
- A key is created at most once per map (create_* raises on duplicates).
- Counters start at 1 and only move forward, except rewind_* which the
  service calls to undo the allocation of an operation that was rolled
  back (the allocated id must be the most recent one).
"""

from __future__ import annotations

from typing import Optional

from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import Feedback, Recommendation
from dermatrust.models.routine import RoutineTemplate


class RegistryStore:
    """In-memory registry state.

    Thread-safety: this class is not thread-safe. The caller must
    serialise access; the service admits one operation at a time.
    """

    def __init__(
        self,
        admin: str,
        valid_skin_types: Optional[list[str]] = None,
        valid_concerns: Optional[list[str]] = None,
        valid_goals: Optional[list[str]] = None,
    ) -> None:
        if not admin:
            raise ValueError("Registry admin identity must not be blank")
        self.admin = admin
        self._users: dict[str, UserProfile] = {}
        self._experts: dict[str, ExpertRecord] = {}
        self._routines: dict[int, RoutineTemplate] = {}
        self._recommendations: dict[int, Recommendation] = {}
        self._feedback: dict[int, Feedback] = {}
        self._next_routine_id = 1
        self._next_recommendation_id = 1
        self._valid_skin_types = tuple(valid_skin_types or ())
        self._valid_concerns = tuple(valid_concerns or ())
        self._valid_goals = tuple(valid_goals or ())

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[UserProfile]:
        return self._users.get(user_id)

    def create_user(self, profile: UserProfile) -> None:
        """Insert a new profile. Raises ValueError if one already exists."""
        if profile.user_id in self._users:
            raise ValueError(f"User already registered: {profile.user_id}")
        self._users[profile.user_id] = profile

    def remove_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    def all_users(self) -> list[UserProfile]:
        return list(self._users.values())

    # ------------------------------------------------------------------
    # Experts
    # ------------------------------------------------------------------

    def get_expert(self, expert_id: str) -> Optional[ExpertRecord]:
        return self._experts.get(expert_id)

    def create_expert(self, expert: ExpertRecord) -> None:
        """Insert a verified expert. Raises ValueError if already present."""
        if expert.expert_id in self._experts:
            raise ValueError(f"Expert already verified: {expert.expert_id}")
        self._experts[expert.expert_id] = expert

    def remove_expert(self, expert_id: str) -> None:
        self._experts.pop(expert_id, None)

    def all_experts(self) -> list[ExpertRecord]:
        return list(self._experts.values())

    # ------------------------------------------------------------------
    # Routines
    # ------------------------------------------------------------------

    def get_routine(self, routine_id: int) -> Optional[RoutineTemplate]:
        return self._routines.get(routine_id)

    def create_routine(self, routine: RoutineTemplate) -> None:
        if routine.routine_id in self._routines:
            raise ValueError(f"Routine id already in use: {routine.routine_id}")
        self._routines[routine.routine_id] = routine

    def remove_routine(self, routine_id: int) -> None:
        self._routines.pop(routine_id, None)

    def all_routines(self) -> list[RoutineTemplate]:
        """Return routines in ascending routine_id order."""
        return [self._routines[rid] for rid in sorted(self._routines)]

    # ------------------------------------------------------------------
    # Recommendations and feedback
    # ------------------------------------------------------------------

    def get_recommendation(self, recommendation_id: int) -> Optional[Recommendation]:
        return self._recommendations.get(recommendation_id)

    def create_recommendation(self, recommendation: Recommendation) -> None:
        rid = recommendation.recommendation_id
        if rid in self._recommendations:
            raise ValueError(f"Recommendation id already in use: {rid}")
        self._recommendations[rid] = recommendation

    def remove_recommendation(self, recommendation_id: int) -> None:
        self._recommendations.pop(recommendation_id, None)

    def all_recommendations(self) -> list[Recommendation]:
        return [self._recommendations[rid] for rid in sorted(self._recommendations)]

    def get_feedback(self, recommendation_id: int) -> Optional[Feedback]:
        return self._feedback.get(recommendation_id)

    def create_feedback(self, feedback: Feedback) -> None:
        """Insert feedback. Raises ValueError if the id was already rated."""
        rid = feedback.recommendation_id
        if rid in self._feedback:
            raise ValueError(f"Feedback already recorded for recommendation {rid}")
        self._feedback[rid] = feedback

    def remove_feedback(self, recommendation_id: int) -> None:
        self._feedback.pop(recommendation_id, None)

    def all_feedback(self) -> list[Feedback]:
        return [self._feedback[rid] for rid in sorted(self._feedback)]

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def next_routine_id(self) -> int:
        return self._next_routine_id

    @property
    def next_recommendation_id(self) -> int:
        return self._next_recommendation_id

    def allocate_routine_id(self) -> int:
        """Return the next routine id and advance the counter."""
        rid = self._next_routine_id
        self._next_routine_id += 1
        return rid

    def allocate_recommendation_id(self) -> int:
        """Return the next recommendation id and advance the counter."""
        rid = self._next_recommendation_id
        self._next_recommendation_id += 1
        return rid

    def rewind_routine_id(self, routine_id: int) -> None:
        """Undo the most recent routine id allocation."""
        if routine_id != self._next_routine_id - 1:
            raise ValueError(
                f"Can only rewind the latest routine id "
                f"({self._next_routine_id - 1}), got {routine_id}"
            )
        self._next_routine_id = routine_id

    def rewind_recommendation_id(self, recommendation_id: int) -> None:
        """Undo the most recent recommendation id allocation."""
        if recommendation_id != self._next_recommendation_id - 1:
            raise ValueError(
                f"Can only rewind the latest recommendation id "
                f"({self._next_recommendation_id - 1}), got {recommendation_id}"
            )
        self._next_recommendation_id = recommendation_id

    def restore_counters(self, next_routine_id: int, next_recommendation_id: int) -> None:
        """Set counters on recovery. Counters may never move backwards."""
        if next_routine_id < 1 or next_recommendation_id < 1:
            raise ValueError("Id counters start at 1")
        if next_routine_id <= max(self._routines, default=0):
            raise ValueError(
                f"next_routine_id {next_routine_id} would reuse an existing id"
            )
        if next_recommendation_id <= max(self._recommendations, default=0):
            raise ValueError(
                f"next_recommendation_id {next_recommendation_id} "
                f"would reuse an existing id"
            )
        self._next_routine_id = next_routine_id
        self._next_recommendation_id = next_recommendation_id

    # ------------------------------------------------------------------
    # Validity lists
    # ------------------------------------------------------------------

    @property
    def valid_skin_types(self) -> tuple[str, ...]:
        return self._valid_skin_types

    @property
    def valid_concerns(self) -> tuple[str, ...]:
        return self._valid_concerns

    @property
    def valid_goals(self) -> tuple[str, ...]:
        return self._valid_goals

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @property
    def user_count(self) -> int:
        return len(self._users)

    @property
    def expert_count(self) -> int:
        return len(self._experts)

    @property
    def routine_count(self) -> int:
        return len(self._routines)

    @property
    def recommendation_count(self) -> int:
        return len(self._recommendations)

    @property
    def feedback_count(self) -> int:
        return len(self._feedback)
