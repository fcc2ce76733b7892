"""
System failure error classifications for unrecoverable errors.

These exceptions represent setup-time or infrastructure failures that
require intervention rather than a retry.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for unrecoverable system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StrategyNotImplemented(SystemFailureError):
    """The venue has no transition table for the requested sell strategy."""

    def __init__(self, message: str, strategy: Optional[str] = None,
                 venue: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.strategy = strategy
        self.venue = venue


class GovernorStateError(SystemFailureError):
    """Rate-limit session files could not be read, locked or written."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class PersistenceError(SystemFailureError):
    """Call store or other session-file persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class ConfigurationError(SystemFailureError):
    """Invalid run parameters or venue configuration."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
