"""Centralized message constants for error messages and log templates."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"

    # Configuration Errors
    MISSING_REQUIRED_CONFIG = "Missing required configuration: %s"
    INVALID_CONFIG = "Invalid configuration: %s"
    AUDIO_FILE_NOT_FOUND = "Audio file not found: %s"
    DISCORD_LOGIN_FAILED = "Failed to login: %s"

    # Voice Errors
    CHANNEL_NOT_RESOLVED = "Channel {channel_id} could not be resolved in guild {guild_id}"
    SESSION_DESTROYED = "Cannot subscribe a sink to a destroyed voice session"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Channel Resolution
    CHANNEL_RESOLVED = "Found voice channel %s (%s). Joining..."
    CHANNEL_FETCH_FAILED = "Could not fetch channel %s: %r"
    CHANNEL_UNRESOLVED = "Provided voice channel is not accessible"
    CHANNEL_NOT_VOICE = "Provided channel %s is not a voice channel"

    # Voice Session Lifecycle
    SESSION_OPENED = "Opened voice session for channel %s in guild %s (self_deaf=%s, self_mute=%s)"
    SESSION_ALREADY_JOINED = "Voice session already active for channel %s, skipping join"
    SESSION_STATE_CHANGED = "Voice session %s -> %s"
    SESSION_CONNECTED = "Connected to voice channel %s in guild %s"
    SESSION_CONNECT_FAILED = "Voice connection to channel %s failed: %r"
    SESSION_CONNECT_TIMEOUT = "Timeout connecting to channel %s"
    SESSION_LOST = "Voice client in guild %s stopped reporting a live connection"
    SESSION_DESTROYED = "Destroyed voice session for channel %s"
    SESSION_DESTROY_ERROR = "Error while destroying voice session: %r"
    SESSION_SINK_SUBSCRIBED = "Audio sink subscribed to voice session for channel %s"

    # Reconnection
    RECONNECT_DISCONNECTED = "Voice disconnected, attempting to reconnect..."
    RECONNECT_ALREADY_RECOVERING = "Recovery already in progress, ignoring disconnect"
    RECONNECT_TRANSIENT = "Voice connection renegotiating, keeping current session"
    RECONNECT_TERMINAL = "Voice session did not recover in time, rejoining channel %s"
    RECONNECT_STALE_DESTROY_FAILED = "Ignoring error destroying stale session: %r"
    RECONNECT_REJOINED = "Rejoined voice channel %s with a fresh session"
    RECONNECT_REJOIN_FAILED = "Failed to rejoin voice channel %s"
    RECONNECT_UNHANDLED_STATE = "Voice session entered %s, no automated recovery"
    RECONNECT_FAILED = "Unexpected error during voice recovery"

    # Playback Loop
    PLAYBACK_LOOP_STARTED = "Playback loop started for %s"
    PLAYBACK_LOOP_ALREADY_STARTED = "Playback loop already running, not starting again"
    PLAYBACK_LOOP_STOPPED = "Playback loop stopped"
    PLAYBACK_SOURCE_MISSING = "Audio file not found: %s, playback loop will not run"
    PLAYBACK_STARTED = "Playback started (iteration %d)"
    PLAYBACK_TRACK_ENDED = "Track reached idle (iteration %d)"
    PLAYBACK_ITERATION_FAILED = "Playback iteration failed: %s"

    # Decoder
    DECODER_SPAWNED = "Spawned ffmpeg (pid %s) for %s"
    DECODER_SPAWN_FAILED = "ffmpeg spawn error: %r"
    DECODER_SOURCE_MISSING = "Decode source missing or unreadable: %s"
    DECODER_KILLED = "Killed ffmpeg (pid %s)"
    DECODER_KILL_ERROR = "Ignoring error killing ffmpeg (pid %s): %r"
    DECODER_STDERR = "ffmpeg: %s"

    # Audio Sink
    SINK_STATE_CHANGED = "Audio sink %s -> %s"
    SINK_ATTACHED = "Audio sink attached to voice client in guild %s"
    SINK_DETACHED = "Audio sink detached from voice client in guild %s"
    SINK_PLAY_FAILED = "Voice client refused playback: %r"
    SINK_RELAY_ERROR = "Audio relay stopped with error: %r"
    SINK_READ_ERROR = "Error reading audio resource: %r"
    SINK_RESOURCE_CLEANUP_ERROR = "Error cleaning up audio resource: %r"
    LISTENER_ERROR = "Error in state listener for %s"

    # Uptime Endpoint
    UPTIME_STARTED = "Uptime server listening on port %s"
    UPTIME_DISABLED = "Uptime server disabled (port 0)"
    UPTIME_STOPPED = "Uptime server stopped"
    UPTIME_START_FAILED = "Uptime server could not bind port %s"

    # Application Lifecycle
    BOT_STARTING = "Starting Discord Loop Player in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_SIGNAL_RECEIVED = "%s received - exiting."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_CONTAINER_INITIALIZED = "Container initialized"
    BOT_CONTAINER_INIT_FAILED = "Failed to initialize container: %s"
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Logged in as %s (%s)"
    BOT_READY_HANDLER_ERROR = "Error in ready handler"
    BOT_EVENT_ERROR = "Unhandled error in event %s"
    BOT_UNHANDLED_ERROR = "Unhandled error: %s"
