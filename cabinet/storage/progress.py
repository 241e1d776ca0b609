"""Push-style transfer progress reporting."""

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class WriteProgress:
    """Snapshot of bytes transferred so far for one key."""

    key: str
    bytes_written: int
    total_bytes: int | None = None

    @property
    def percent(self) -> float | None:
        if not self.total_bytes:
            return None
        return min(100.0, self.bytes_written * 100.0 / self.total_bytes)


ProgressSink = Callable[[WriteProgress], None]


class ProgressTracker:
    """
    Accumulates transferred byte counts and pushes snapshots to a sink.

    Instances are callable with a byte increment so they can be handed
    directly to boto's ``Callback`` hook.
    """

    def __init__(
        self,
        key: str,
        sink: ProgressSink | None = None,
        total_bytes: int | None = None,
    ):
        self.key = key
        self.sink = sink
        self.total_bytes = total_bytes
        self.bytes_written = 0

    def __call__(self, bytes_amount: int) -> None:
        self.update(bytes_amount)

    def update(self, bytes_amount: int) -> None:
        self.bytes_written += bytes_amount
        if self.sink is not None:
            self.sink(
                WriteProgress(
                    key=self.key,
                    bytes_written=self.bytes_written,
                    total_bytes=self.total_bytes,
                )
            )
