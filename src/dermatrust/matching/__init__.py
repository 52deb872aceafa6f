"""Matching module — routine selection for recommendations."""

from dermatrust.matching.selector import RoutineSelector, SelectionResult, matches_profile

__all__ = ["RoutineSelector", "SelectionResult", "matches_profile"]
