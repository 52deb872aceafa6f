"""Policy layer — typed access to registry parameters and runtime policy."""

from dermatrust.policy.resolver import (
    FieldLimits,
    PolicyResolver,
    ReputationPolicy,
    WeatherBounds,
)

__all__ = ["FieldLimits", "PolicyResolver", "ReputationPolicy", "WeatherBounds"]
