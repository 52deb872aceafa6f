"""Registry module — keyed maps, id counters and admin identity."""

from dermatrust.registry.store import RegistryStore

__all__ = ["RegistryStore"]
