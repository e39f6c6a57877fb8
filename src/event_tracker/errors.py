"""Exceptions raised by the event tracker."""


class TrackerError(Exception):
    """Base exception for event tracker errors."""
    pass


class ConfigurationError(TrackerError, ValueError):
    """Tracker configuration is missing a required collaborator or is malformed."""
    pass
