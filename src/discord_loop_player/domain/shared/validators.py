"""Shared validators for configuration and domain models.

Discord identifiers arrive as strings from the environment and as integers
from the gateway; both are checked against the snowflake range here.
"""

from discord_loop_player.domain.shared.messages import ErrorMessages


def validate_discord_snowflake(value: int) -> int:
    """Validate a Discord snowflake ID.

    Discord snowflake IDs are 64-bit unsigned integers representing unique
    identifiers for users, guilds, channels, messages, etc.

    Args:
        value: The snowflake ID to validate.

    Returns:
        The validated snowflake ID.

    Raises:
        ValueError: If the snowflake ID is invalid.
    """
    if value <= 0:
        raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
    if value >= 2**64:
        raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
    return value
