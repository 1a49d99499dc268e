"""
Exception classes for blindrank.

Centralized location for all custom exceptions to avoid circular imports.
Scheduling and estimation never raise for well-typed input; these are for
malformed models, invalid configuration and misbehaving participants.
"""


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""
    pass


class ParticipantError(Exception):
    """Base exception for all participant-related errors."""
    pass
