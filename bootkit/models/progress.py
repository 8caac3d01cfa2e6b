"""
Transfer progress shared between the body-writing task and the polling reporter.
"""

import time
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProgressSnapshot:
    """An immutable view of a transfer at one instant."""

    filename: str
    bytes_received: int = 0
    total_bytes: int | None = None
    speed_bps: float = 0.0
    done: bool = False

    @property
    def percent(self) -> float | None:
        """Completion percentage, or None when the server sent no length."""
        if not self.total_bytes:
            return None
        return min(100.0, self.bytes_received * 100 / self.total_bytes)


@dataclass
class ProgressState:
    """
    Tracks a single transfer, including real-time speed.

    Only the writing task calls `advance` and `finish`. Every call publishes a
    fresh ProgressSnapshot by swapping one reference, so the poller reading
    `snapshot` never sees a half-applied update.
    """

    filename: str
    total_bytes: int | None = None
    _snapshot: ProgressSnapshot | None = field(default=None, repr=False)
    _received: int = field(default=0, repr=False)
    _speed_samples: list[float] = field(default_factory=list, repr=False)
    _last_sample_time: float = field(default=0.0, repr=False)
    _last_sample_bytes: int = field(default=0, repr=False)
    _speed_bps: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._last_sample_time = time.monotonic()
        self._snapshot = ProgressSnapshot(self.filename, 0, self.total_bytes)

    @property
    def snapshot(self) -> ProgressSnapshot:
        return self._snapshot

    def advance(self, nbytes: int) -> None:
        """Records `nbytes` more bytes written to disk."""
        self._received += nbytes
        now = time.monotonic()
        elapsed = now - self._last_sample_time

        # Sample speed roughly twice per second
        if elapsed > 0.5:
            self._speed_samples.append(
                (self._received - self._last_sample_bytes) / elapsed
            )
            # Keep a sliding window of the last 10 speed samples
            if len(self._speed_samples) > 10:
                self._speed_samples.pop(0)
            self._speed_bps = sum(self._speed_samples) / len(self._speed_samples)
            self._last_sample_time = now
            self._last_sample_bytes = self._received

        self._snapshot = ProgressSnapshot(
            self.filename, self._received, self.total_bytes, self._speed_bps
        )

    def finish(self) -> None:
        self._snapshot = ProgressSnapshot(
            self.filename, self._received, self.total_bytes, self._speed_bps, True
        )
