"""Port interface for the external decode process."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any


@dataclass
class DecodeResult:
    """A raw PCM stream and the process producing it.

    ``process`` is ``None`` when nothing was spawned; the stream is then empty.
    """

    stream: IO[bytes]
    process: Any = None
    ok: bool = True


class AudioDecoder(ABC):
    """Spawns and owns decode processes."""

    @abstractmethod
    def source_exists(self, source_path: Path) -> bool:
        """Whether *source_path* is an existing, readable file."""
        ...

    @abstractmethod
    async def start_decode(self, source_path: Path) -> DecodeResult:
        """Start decoding *source_path* to raw PCM."""
        ...

    @abstractmethod
    def kill_decode(self, process: Any) -> None:
        """Forcefully terminate *process*; idempotent."""
        ...
