"""Registry service — unified facade for the routine registry.

This is the primary interface for programmatic access to the registry.
It orchestrates all subsystems:
- Administration (admin transfer, expert verification)
- User profiles (register, update)
- Routine templates (expert submission)
- Recommendations (weather-triggered, routine selection)
- Feedback (single rating per recommendation, reputation updates)
- Persistence (event log, state store)

Every operation is invoked on behalf of a caller identity and returns a
ServiceResult: either success with data["value"], or failure with exactly
one ErrorCode. All preconditions are checked before any mutation. If the
audit event for a mutation cannot be recorded, every write of that
operation is rolled back and STORAGE_FAILURE is returned.

Operations are not thread-safe. The host must admit one call at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from dermatrust.clock import Clock, ManualClock
from dermatrust.errors import ClockRegressionError, ErrorCode
from dermatrust.matching.selector import RoutineSelector
from dermatrust.models.profile import ExpertRecord, UserProfile
from dermatrust.models.recommendation import Feedback, Recommendation, WeatherContext
from dermatrust.models.routine import RoutineStep, RoutineTemplate, WeatherWindow
from dermatrust.persistence.event_log import EventKind, EventLog, EventRecord
from dermatrust.persistence.state_store import StateStore
from dermatrust.policy.resolver import PolicyResolver
from dermatrust.registry.store import RegistryStore
from dermatrust.reputation.engine import ReputationEngine
from dermatrust.validation.rules import (
    ValidationRules,
    is_admin,
    is_registered_user,
    is_verified_expert,
    weather_in_window,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation.

    On failure, error holds the single tagged ErrorCode and errors holds
    human-readable detail. On success, data["value"] is the operation's
    return value.
    """
    success: bool
    error: Optional[ErrorCode] = None
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def value(self) -> Any:
        return self.data.get("value")


def _ok(value: Any, **extra: Any) -> ServiceResult:
    return ServiceResult(success=True, data={"value": value, **extra})


def _fail(code: ErrorCode, *messages: str) -> ServiceResult:
    logger.debug("Operation rejected: %s %s", code.value, "; ".join(messages))
    return ServiceResult(success=False, error=code, errors=list(messages))


class RegistryService:
    """Unified registry facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        clock = ManualClock(start=1)
        service = RegistryService(resolver, deployer="admin", clock=clock)

        service.register_user("alice", "oily", ["acne"], ["hydration"])
        service.verify_expert("admin", "dr-bob", "MD, dermatology")
        service.submit_routine_template("dr-bob", ...)
        result = service.generate_recommendation("alice", 25, 60, 5)
        service.submit_feedback("alice", result.value, 90)

    Persistence (optional):
        service = RegistryService(resolver, "admin", event_log=log, state_store=store)
        # State is persisted on each mutation and loaded on construction.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        deployer: str,
        clock: Optional[Clock] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._resolver = resolver
        self._rules = ValidationRules(resolver)
        self._reputation = ReputationEngine(resolver)
        self._clock = clock if clock is not None else ManualClock()
        self._last_time: Optional[int] = None

        # Persistence layer (optional; in-memory if not provided)
        self._event_log = event_log
        self._state_store = state_store

        valid_lists = dict(
            valid_skin_types=resolver.valid_skin_types(),
            valid_concerns=resolver.valid_concerns(),
            valid_goals=resolver.valid_goals(),
        )
        if state_store is not None and state_store.has_registry():
            self._store = state_store.load_registry(**valid_lists)
            logger.info(
                "Restored registry: %d users, %d experts, %d routines",
                self._store.user_count,
                self._store.expert_count,
                self._store.routine_count,
            )
        else:
            self._store = RegistryStore(admin=deployer, **valid_lists)
        if event_log is not None:
            self._advance_counters_past_log(event_log)

        self._selector = RoutineSelector(resolver, self._store)
        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = event_log.count if event_log is not None else 0
        # Set when a StateStore write fails after the audit event is durable.
        self._persistence_degraded: bool = False

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def set_admin(self, caller: str, new_admin: str) -> ServiceResult:
        """Transfer the admin role. Only the current admin may call this."""
        now = self._now()
        if not is_admin(self._store, caller):
            return _fail(ErrorCode.NOT_AUTHORIZED, f"{caller} is not the admin")
        if not new_admin:
            return _fail(ErrorCode.INVALID_INPUT, "New admin identity must not be blank")

        previous = self._store.admin
        self._store.admin = new_admin

        def _rollback() -> None:
            self._store.admin = previous

        return self._commit(
            EventKind.ADMIN_CHANGED, caller, now,
            {"previous_admin": previous, "new_admin": new_admin},
            rollback=_rollback,
            value=True,
        )

    def verify_expert(self, caller: str, expert: str, credentials: str) -> ServiceResult:
        """Verify an expert's credentials (admin only).

        The new expert starts at the configured initial reputation (80).
        """
        now = self._now()
        if not is_admin(self._store, caller):
            return _fail(ErrorCode.NOT_AUTHORIZED, f"{caller} is not the admin")
        if is_verified_expert(self._store, expert):
            return _fail(ErrorCode.EXPERT_ALREADY_VERIFIED, f"Expert already verified: {expert}")
        errors = self._rules.check_credentials(credentials)
        if errors:
            return _fail(ErrorCode.INVALID_INPUT, *errors)

        record = ExpertRecord(
            expert_id=expert,
            credentials=credentials,
            verified_at=now,
            reputation_score=self._resolver.initial_expert_score(),
        )
        self._store.create_expert(record)

        def _rollback() -> None:
            self._store.remove_expert(expert)

        return self._commit(
            EventKind.EXPERT_VERIFIED, caller, now,
            {"expert_id": expert, "reputation_score": record.reputation_score},
            rollback=_rollback,
            value=True,
        )

    # ------------------------------------------------------------------
    # User profiles
    # ------------------------------------------------------------------

    def register_user(
        self,
        caller: str,
        skin_type: str,
        concerns: Sequence[str],
        goals: Sequence[str],
    ) -> ServiceResult:
        """Create the caller's profile. Each identity registers once."""
        now = self._now()
        if is_registered_user(self._store, caller):
            return _fail(ErrorCode.USER_ALREADY_EXISTS, f"User already registered: {caller}")
        errors = self._rules.check_profile(skin_type, concerns, goals)
        if errors:
            return _fail(ErrorCode.INVALID_INPUT, *errors)

        self._store.create_user(UserProfile(
            user_id=caller,
            skin_type=skin_type,
            concerns=list(concerns),
            goals=list(goals),
            registered_at=now,
        ))

        def _rollback() -> None:
            self._store.remove_user(caller)

        return self._commit(
            EventKind.USER_REGISTERED, caller, now,
            {"skin_type": skin_type, "concerns": list(concerns), "goals": list(goals)},
            rollback=_rollback,
            value=True,
        )

    def update_user_profile(
        self,
        caller: str,
        skin_type: str,
        concerns: Sequence[str],
        goals: Sequence[str],
    ) -> ServiceResult:
        """Replace skin type, concerns and goals of the caller's profile."""
        now = self._now()
        profile = self._store.get_user(caller)
        if profile is None:
            return _fail(ErrorCode.USER_NOT_FOUND, f"User not found: {caller}")
        errors = self._rules.check_profile(skin_type, concerns, goals)
        if errors:
            return _fail(ErrorCode.INVALID_INPUT, *errors)

        prev = (profile.skin_type, profile.concerns, profile.goals)
        profile.skin_type = skin_type
        profile.concerns = list(concerns)
        profile.goals = list(goals)

        def _rollback() -> None:
            profile.skin_type, profile.concerns, profile.goals = prev

        return self._commit(
            EventKind.USER_UPDATED, caller, now,
            {"skin_type": skin_type, "concerns": list(concerns), "goals": list(goals)},
            rollback=_rollback,
            value=True,
        )

    # ------------------------------------------------------------------
    # Routine templates
    # ------------------------------------------------------------------

    def submit_routine_template(
        self,
        caller: str,
        name: str,
        description: str,
        skin_types: Sequence[str],
        concerns: Sequence[str],
        weather_window: WeatherWindow,
        steps: Sequence[RoutineStep],
    ) -> ServiceResult:
        """Submit a routine template (verified experts only).

        Returns the newly assigned routine id.
        """
        now = self._now()
        if not is_verified_expert(self._store, caller):
            return _fail(ErrorCode.EXPERT_NOT_VERIFIED, f"Expert not verified: {caller}")
        errors = self._rules.check_routine(
            name, description, skin_types, concerns, weather_window, steps,
        )
        if errors:
            return _fail(ErrorCode.INVALID_INPUT, *errors)

        routine_id = self._store.allocate_routine_id()
        self._store.create_routine(RoutineTemplate(
            routine_id=routine_id,
            expert_id=caller,
            name=name,
            description=description,
            skin_types=list(skin_types),
            concerns=list(concerns),
            weather_window=weather_window,
            steps=list(steps),
            created_at=now,
        ))

        def _rollback() -> None:
            self._store.remove_routine(routine_id)
            self._store.rewind_routine_id(routine_id)

        return self._commit(
            EventKind.ROUTINE_SUBMITTED, caller, now,
            {"routine_id": routine_id, "name": name, "step_count": len(steps)},
            rollback=_rollback,
            value=routine_id,
        )

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def generate_recommendation(
        self,
        caller: str,
        temperature: int,
        humidity: int,
        uv_index: int,
    ) -> ServiceResult:
        """Recommend a routine for the caller's current weather.

        Returns the new recommendation id. In the default "fixed" matching
        mode the recommended routine is always routine 1.
        """
        now = self._now()
        profile = self._store.get_user(caller)
        if profile is None:
            return _fail(ErrorCode.USER_NOT_FOUND, f"User not found: {caller}")
        if not self._rules.valid_weather(temperature, humidity, uv_index):
            return _fail(
                ErrorCode.INVALID_WEATHER_DATA,
                f"Weather out of range: temperature={temperature}, "
                f"humidity={humidity}, uv_index={uv_index}",
            )

        weather = WeatherContext(
            temperature=temperature,
            humidity=humidity,
            uv_index=uv_index,
            timestamp=now,
        )
        selection = self._selector.select(profile, weather)
        if not selection.success:
            return _fail(ErrorCode.ROUTINE_NOT_FOUND, *selection.errors)

        recommendation_id = self._store.allocate_recommendation_id()
        self._store.create_recommendation(Recommendation(
            recommendation_id=recommendation_id,
            user_id=caller,
            routine_id=selection.routine_id,
            weather=weather,
            recommended_at=now,
        ))

        def _rollback() -> None:
            self._store.remove_recommendation(recommendation_id)
            self._store.rewind_recommendation_id(recommendation_id)

        return self._commit(
            EventKind.RECOMMENDATION_CREATED, caller, now,
            {
                "recommendation_id": recommendation_id,
                "routine_id": selection.routine_id,
                "temperature": temperature,
                "humidity": humidity,
                "uv_index": uv_index,
            },
            rollback=_rollback,
            value=recommendation_id,
            routine_id=selection.routine_id,
        )

    def find_best_routine(
        self,
        caller: str,
        temperature: int,
        humidity: int,
        uv_index: int,
    ) -> ServiceResult:
        """Read-only: resolve the routine the caller would be recommended."""
        now = self._now()
        profile = self._store.get_user(caller)
        if profile is None:
            return _fail(ErrorCode.USER_NOT_FOUND, f"User not found: {caller}")

        selection = self._selector.select(
            profile,
            WeatherContext(temperature, humidity, uv_index, timestamp=now),
        )
        if not selection.success:
            return _fail(ErrorCode.ROUTINE_NOT_FOUND, *selection.errors)
        return _ok(selection.routine_id, candidates=selection.candidates)

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def submit_feedback(
        self,
        caller: str,
        recommendation_id: int,
        rating: int,
        comments: Optional[str] = None,
    ) -> ServiceResult:
        """Rate a recommendation once and update routine and expert reputation.

        Only the user the recommendation was made for may rate it.
        """
        now = self._now()
        recommendation = self._store.get_recommendation(recommendation_id)
        if recommendation is None:
            return _fail(
                ErrorCode.RECOMMENDATION_NOT_FOUND,
                f"Recommendation not found: {recommendation_id}",
            )
        if recommendation.user_id != caller:
            return _fail(
                ErrorCode.NOT_AUTHORIZED,
                f"Recommendation {recommendation_id} was not made for {caller}",
            )
        if recommendation.has_feedback:
            return _fail(
                ErrorCode.ALREADY_RATED,
                f"Recommendation {recommendation_id} already rated",
            )
        if not self._rules.valid_rating(rating):
            return _fail(ErrorCode.INVALID_RATING, f"Rating out of range: {rating}")
        errors = self._rules.check_comments(comments)
        if errors:
            return _fail(ErrorCode.INVALID_INPUT, *errors)

        routine = self._store.get_routine(recommendation.routine_id)
        if routine is None:
            return _fail(
                ErrorCode.ROUTINE_NOT_FOUND,
                f"Routine not found: {recommendation.routine_id}",
            )
        expert = self._store.get_expert(routine.expert_id)
        if expert is None:
            return _fail(
                ErrorCode.EXPERT_NOT_VERIFIED,
                f"Routine {routine.routine_id} owner is not a verified expert",
            )

        routine_update = self._reputation.routine_update(routine, rating)
        expert_update = self._reputation.expert_update(expert, rating)

        recommendation.has_feedback = True
        self._store.create_feedback(Feedback(
            recommendation_id=recommendation_id,
            user_id=caller,
            rating=rating,
            submitted_at=now,
            comments=comments,
        ))
        routine.rating_count = routine_update.new_count
        routine.average_rating = routine_update.new_average
        expert.reputation_score = expert_update.new_score

        def _rollback() -> None:
            recommendation.has_feedback = False
            self._store.remove_feedback(recommendation_id)
            routine.rating_count = routine_update.old_count
            routine.average_rating = routine_update.old_average
            expert.reputation_score = expert_update.old_score

        return self._commit(
            EventKind.FEEDBACK_SUBMITTED, caller, now,
            {
                "recommendation_id": recommendation_id,
                "routine_id": routine.routine_id,
                "rating": rating,
                "routine_average": routine_update.new_average,
                "routine_rating_count": routine_update.new_count,
                "expert_id": expert.expert_id,
                "expert_score_before": expert_update.old_score,
                "expert_score_after": expert_update.new_score,
            },
            rollback=_rollback,
            value=True,
            routine_average=routine_update.new_average,
            expert_score=expert_update.new_score,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_admin(self) -> str:
        return self._store.admin

    def is_admin(self, identity: str) -> bool:
        return is_admin(self._store, identity)

    def is_verified_expert(self, identity: str) -> bool:
        return is_verified_expert(self._store, identity)

    def is_registered_user(self, identity: str) -> bool:
        return is_registered_user(self._store, identity)

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self._store.get_user(user_id)

    def get_expert(self, expert_id: str) -> Optional[ExpertRecord]:
        return self._store.get_expert(expert_id)

    def get_routine(self, routine_id: int) -> Optional[RoutineTemplate]:
        return self._store.get_routine(routine_id)

    def get_recommendation(self, recommendation_id: int) -> Optional[Recommendation]:
        return self._store.get_recommendation(recommendation_id)

    def get_feedback(self, recommendation_id: int) -> Optional[Feedback]:
        return self._store.get_feedback(recommendation_id)

    def weather_matches_routine(
        self,
        routine_id: int,
        temperature: int,
        humidity: int,
        uv_index: int,
    ) -> Optional[bool]:
        """Whether the weather falls in a routine's window. None if no such routine."""
        routine = self._store.get_routine(routine_id)
        if routine is None:
            return None
        return weather_in_window(
            WeatherContext(temperature, humidity, uv_index),
            routine.weather_window,
        )

    def valid_skin_types(self) -> list[str]:
        return list(self._store.valid_skin_types)

    def valid_concerns(self) -> list[str]:
        return list(self._store.valid_concerns)

    def valid_goals(self) -> list[str]:
        return list(self._store.valid_goals)

    def status(self) -> dict[str, Any]:
        """Registry status summary."""
        recommendations = self._store.all_recommendations()
        return {
            "admin": self._store.admin,
            "users": self._store.user_count,
            "experts": self._store.expert_count,
            "routines": self._store.routine_count,
            "recommendations": {
                "total": len(recommendations),
                "rated": sum(1 for r in recommendations if r.has_feedback),
            },
            "feedback": self._store.feedback_count,
            "counters": {
                "next_routine_id": self._store.next_routine_id,
                "next_recommendation_id": self._store.next_recommendation_id,
            },
            "matching_mode": self._selector.mode,
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> int:
        """Read the host clock, rejecting regressions."""
        now = self._clock.now()
        if self._last_time is not None and now < self._last_time:
            raise ClockRegressionError(
                f"Clock moved backwards: {now} < {self._last_time}"
            )
        self._last_time = now
        return now

    def _commit(
        self,
        kind: EventKind,
        actor_id: str,
        now: int,
        payload: dict[str, Any],
        rollback: Callable[[], None],
        value: Any,
        **extra: Any,
    ) -> ServiceResult:
        """Record the audit event for an applied mutation, then persist.

        Fail-closed: if the audit event cannot be recorded, the mutation
        is rolled back and STORAGE_FAILURE is returned. Once the event is
        durable, a state store failure only degrades persistence. Without
        an event log the state store is the only record, so a failed
        write rolls back.
        """
        if self._event_log is None:
            err = self._safe_persist(on_rollback=rollback)
            if err:
                logger.warning("%s rolled back for %s: %s", kind.value, actor_id, err)
                return _fail(ErrorCode.STORAGE_FAILURE, err)
            logger.info("%s by %s at t=%d", kind.value, actor_id, now)
            return _ok(value, **extra)

        err = self._record_event(kind, actor_id, now, payload)
        if err:
            rollback()
            logger.warning("%s rolled back for %s: %s", kind.value, actor_id, err)
            return _fail(ErrorCode.STORAGE_FAILURE, err)

        logger.info("%s by %s at t=%d", kind.value, actor_id, now)
        warning = self._safe_persist_post_audit()
        result = _ok(value, **extra)
        if warning:
            result.data["warning"] = warning
        return result

    def _advance_counters_past_log(self, event_log: EventLog) -> None:
        """Keep id counters ahead of every id the audit log has recorded.

        The state store can lag the log after a degraded write; ids in the
        log must never be issued again.
        """
        logged_routine = max(
            (e.payload["routine_id"] for e in event_log.events(EventKind.ROUTINE_SUBMITTED)),
            default=0,
        )
        logged_recommendation = max(
            (
                e.payload["recommendation_id"]
                for e in event_log.events(EventKind.RECOMMENDATION_CREATED)
            ),
            default=0,
        )
        next_routine = max(self._store.next_routine_id, logged_routine + 1)
        next_recommendation = max(
            self._store.next_recommendation_id, logged_recommendation + 1,
        )
        if (next_routine, next_recommendation) == (
            self._store.next_routine_id, self._store.next_recommendation_id,
        ):
            return
        logger.warning(
            "State store is behind the audit log; advancing counters to "
            "routine %d, recommendation %d",
            next_routine, next_recommendation,
        )
        self._store.restore_counters(next_routine, next_recommendation)

    def _next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self,
        kind: EventKind,
        actor_id: str,
        now: int,
        payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event. Returns error string or None."""
        event_id = self._next_event_id()
        try:
            self._event_log.append(EventRecord.create(
                event_id=event_id,
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                logical_time=now,
            ))
        except (ValueError, OSError) as e:
            self._event_counter -= 1
            return f"Event log failure: {e}"
        return None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired).

        NOTE: This method can raise OSError.
        """
        if self._state_store is None:
            return
        self._state_store.save_registry(self._store)

    def _safe_persist(
        self,
        on_rollback: Optional[Callable[[], None]] = None,
    ) -> Optional[str]:
        """Persist state with fail-closed error handling (pre-audit mode).

        On failure, executes the rollback callback to undo in-memory
        mutations and returns an error string. On success, returns None.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            if on_rollback is not None:
                on_rollback()
            return f"Persistence failure: {e}"

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after the audit event has been committed.

        MUST NOT rollback in-memory state: the audit trail is already
        durable. Sets _persistence_degraded and returns a warning string.
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            logger.warning("State store write failed: %s", e)
            return (
                f"Persistence degraded: {e}; state committed in audit trail "
                f"but StateStore is stale"
            )
