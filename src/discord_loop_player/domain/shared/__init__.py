"""
Shared Domain Kernel

Contains exceptions, messages and validators shared across the package.
"""

from discord_loop_player.domain.shared.exceptions import (
    ChannelResolutionError,
    ConfigurationError,
    DomainError,
    InvalidOperationError,
)

__all__ = [
    "ChannelResolutionError",
    "ConfigurationError",
    "DomainError",
    "InvalidOperationError",
]
