"""Strategies for recognising that the daemon finished booting."""

from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

Chunk = Union[bytes, str]


@runtime_checkable
class ReadinessDetector(Protocol):
    """
    Decides, one output chunk at a time, whether the daemon is ready.

    Implementations must judge each chunk on its own. The supervisor only
    asks until the first positive answer.
    """

    def matches(self, chunk: Chunk) -> bool:
        """Return True if this chunk signals readiness."""
        ...


class MarkerReadinessDetector:
    """Looks for a literal marker inside a single stdout chunk.

    Chunks are not buffered: a marker split across two reads is not
    recognised. This mirrors how the daemon's boot line is normally flushed
    in one write.
    """

    def __init__(self, marker: str):
        if not marker:
            raise ValueError("Readiness marker cannot be empty")
        self.marker = marker

    def matches(self, chunk: Chunk) -> bool:
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        return self.marker in chunk

    def __repr__(self) -> str:
        return f"MarkerReadinessDetector({self.marker!r})"
