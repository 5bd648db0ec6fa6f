"""Base exception classes for domain-level errors."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ConfigurationError(DomainError):
    """Raised when required configuration is absent or invalid."""

    def __init__(self, missing: list[str], message: str | None = None) -> None:
        msg = message or f"Missing required configuration: {', '.join(missing)}"
        super().__init__(msg, code="CONFIGURATION_ERROR")
        self.missing = missing


class ChannelResolutionError(DomainError):
    """Raised when the target channel cannot be resolved to a voice channel."""

    def __init__(self, channel_id: int, message: str | None = None) -> None:
        msg = message or f"Channel '{channel_id}' is not an accessible voice channel"
        super().__init__(msg, code="CHANNEL_RESOLUTION_ERROR")
        self.channel_id = channel_id


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state
