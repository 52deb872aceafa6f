"""Participant models — user preference profiles and verified experts.

A user profile is created once per identity and afterwards only replaced
field-by-field in place. Expert records exist only after an admin has
verified the expert's credentials; the reputation score on the record is
owned by the reputation engine and changes only through feedback.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class UserProfile:
    """Skin preferences for one registered user.

    registered_at is the logical clock value at registration and is
    never changed by profile updates.
    """
    user_id: str
    skin_type: str
    concerns: list[str] = field(default_factory=list)
    goals: list[str] = field(default_factory=list)
    registered_at: int = 0


@dataclass
class ExpertRecord:
    """An admin-verified expert and their current reputation (0-100)."""
    expert_id: str
    credentials: str
    verified_at: int
    reputation_score: int
