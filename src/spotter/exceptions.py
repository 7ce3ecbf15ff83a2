"""
Exception types for Spotter.

The progression engine itself never raises for bad training data; these
cover the collaborators around it (store, configuration).
"""


class SpotterError(Exception):
    """Base class for all Spotter errors."""


class StoreError(SpotterError):
    """A read or write against the session/PR store failed."""


class ConfigError(SpotterError, ValueError):
    """Configuration values are inconsistent or unreadable."""
