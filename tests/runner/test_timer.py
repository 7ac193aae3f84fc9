from __future__ import annotations

import threading

import pytest

from fixtures import FakeClock
from quiz_runner.runner.timer import Timer, format_elapsed


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "00:00"), (5, "00:05"), (65, "01:05"), (3599, "59:59"),
     (3600, "60:00"), (-3, "00:00"), (12.9, "00:12")],
)
def test_format_elapsed(seconds, expected) -> None:
    assert format_elapsed(seconds) == expected


def test_elapsed_counts_from_start_and_freezes_on_stop(
    clock: FakeClock,
) -> None:
    timer = Timer(clock=clock)
    assert timer.elapsed_seconds() == 0
    assert not timer.running

    timer.start()
    clock.advance(2.7)
    assert timer.running
    assert timer.elapsed_seconds() == 2

    timer.stop()
    clock.advance(100)
    assert not timer.running
    assert timer.elapsed_seconds() == 2


def test_restart_resets_elapsed(clock: FakeClock) -> None:
    timer = Timer(clock=clock)
    timer.start()
    clock.advance(30)

    timer.start()
    clock.advance(1)

    assert timer.elapsed_seconds() == 1


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Timer(interval=0)


def test_ticker_reports_until_stopped() -> None:
    ticks = []
    fired = threading.Event()

    def on_tick(elapsed: int) -> None:
        ticks.append(elapsed)
        fired.set()

    timer = Timer(interval=0.05)
    timer.start(on_tick)
    assert fired.wait(2.0)
    timer.stop()
    count = len(ticks)

    assert count >= 1
    assert all(isinstance(value, int) for value in ticks)
    fired.clear()
    assert not fired.wait(0.2)
    assert len(ticks) == count
