"""Stream statistics reported by the engine for the diagnostics panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class StreamStats:
    """Snapshot of buffer, bitrate and resolution information for a stream."""

    buffer_seconds: Optional[float] = None
    live_bitrate: Optional[float] = None
    average_bitrate: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def quality(self) -> Optional[str]:
        """Return a ``720p`` style label, if the height is known."""

        if self.height is None:
            return None
        return f"{self.height}p"


class StreamStatsAccumulator:
    """Aggregate samples observed on the engine's property stream."""

    __slots__ = ("_buffer", "_live", "_total", "_samples", "_width", "_height")

    def __init__(self) -> None:
        self.reset()

    def push_bitrate(self, value: float) -> StreamStats:
        """Record an instantaneous bitrate sample and return a snapshot."""

        if value <= 0:
            return self.snapshot()
        self._live = value
        self._samples += 1
        self._total += value
        return self.snapshot()

    def set_buffer(self, seconds: float) -> StreamStats:
        """Record how many seconds of media are buffered ahead."""

        if seconds >= 0:
            self._buffer = seconds
        return self.snapshot()

    def set_resolution(self, width: Optional[int], height: Optional[int]) -> StreamStats:
        if isinstance(width, int) and width > 0:
            self._width = width
        if isinstance(height, int) and height > 0:
            self._height = height
        return self.snapshot()

    def reset(self) -> None:
        self._buffer: Optional[float] = None
        self._live: Optional[float] = None
        self._total: float = 0.0
        self._samples: int = 0
        self._width: Optional[int] = None
        self._height: Optional[int] = None

    def snapshot(self) -> StreamStats:
        average = None
        if self._samples:
            average = self._total / self._samples
        return StreamStats(
            buffer_seconds=self._buffer,
            live_bitrate=self._live,
            average_bitrate=average,
            width=self._width,
            height=self._height,
        )


def format_bitrate(bitrate: Optional[float]) -> str:
    """Render a bitrate value in Mbps or Kbps."""

    if bitrate is None or bitrate <= 0:
        return "-"
    if bitrate >= 1_000_000:
        return f"{bitrate / 1_000_000:.2f} Mbps"
    if bitrate >= 1_000:
        return f"{bitrate / 1_000:.1f} Kbps"
    return f"{bitrate:.0f} bps"


__all__ = ["StreamStats", "StreamStatsAccumulator", "format_bitrate"]
