# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import time
from typing import Protocol


class Clock(Protocol):
    """An object that can tell and pass time."""

    def monotonic(self) -> float:
        """Get the current time. The absolute time need not be meaningful. Only relative
        times are well-defined so that the difference between calls represents the
        amount of time that passed, in seconds, e.g.

        >>> clock: Clock = ...
        >>> start = clock.monotonic()
        >>> end = clock.monotonic()
        >>> end - start  # elapsed time in seconds

        Invariants:
        1. The sequence obtained from successive calls must be monotonically increasing
        """

    def sleep(self, duration_sec: float) -> None:
        """Block until the given duration has passed."""


class ClockImpl:
    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, duration_sec: float) -> None:
        time.sleep(duration_sec)
