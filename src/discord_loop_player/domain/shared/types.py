"""Reusable Pydantic Annotated types for settings and domain models."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

# ── Numeric constraints ─────────────────────────────────────────────

PositiveSeconds = Annotated[float, Field(gt=0.0, le=3600.0)]
"""Delay or timeout in seconds: (0 … 3600]."""

PortNumber = Annotated[int, Field(ge=0, le=65535)]
"""TCP port; 0 disables the listener."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""


# ── Audio constraints ───────────────────────────────────────────────

SampleRate = Annotated[int, Field(ge=8000, le=192_000)]
"""PCM sample rate in Hz."""

ChannelCount = Annotated[int, Field(ge=1, le=8)]
"""Number of interleaved PCM channels."""
