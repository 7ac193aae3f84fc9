"""Elapsed-time counter for a running test."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

__all__ = ["Timer", "format_elapsed"]

TickCallback = Callable[[int], None]


def format_elapsed(seconds: int) -> str:
    """Render whole seconds as ``MM:SS`` (minutes keep growing past 59)."""

    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class Timer:
    """Wall-clock counter sampled on a fixed interval.

    ``elapsed_seconds`` can be read at any time. Passing ``on_tick`` to
    :meth:`start` additionally runs a daemon thread that reports the elapsed
    value every ``interval`` seconds until :meth:`stop`.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.monotonic,
        interval: float = 1.0,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._clock = clock
        self.interval = interval
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self._halt = threading.Event()
        self._ticker: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._started_at is not None and self._stopped_at is None

    def start(self, on_tick: Optional[TickCallback] = None) -> None:
        self.stop()
        self._started_at = self._clock()
        self._stopped_at = None
        if on_tick is None:
            return
        self._halt = threading.Event()
        self._ticker = threading.Thread(
            target=self._run_ticker,
            args=(self._halt, on_tick),
            name="quiz-runner-timer",
            daemon=True,
        )
        self._ticker.start()

    def stop(self) -> None:
        if self.running:
            self._stopped_at = self._clock()
        self._halt.set()
        ticker, self._ticker = self._ticker, None
        if ticker is not None and ticker is not threading.current_thread():
            ticker.join(timeout=self.interval)

    def elapsed_seconds(self) -> int:
        if self._started_at is None:
            return 0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return max(0, int(end - self._started_at))

    def _run_ticker(self, halt: threading.Event, on_tick: TickCallback) -> None:
        while not halt.wait(self.interval):
            on_tick(self.elapsed_seconds())
