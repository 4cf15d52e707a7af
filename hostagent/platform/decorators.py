# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import time
from functools import wraps
from itertools import count
from typing import Callable, Iterable, Iterator, Optional, TypeVar, Union

from typing_extensions import ParamSpec

from hostagent.platform.clock import Clock

logger = logging.getLogger(__name__)


class Retry(Exception):
    """Raised if a retry should be attempted."""


class OutOfRetries(Exception):
    """Raised if there are no retries remaining."""


TOut_co = TypeVar("TOut_co", covariant=True)
P = ParamSpec("P")


def time_budget(
    clock: Clock,
    *,
    interval: float,
    max_duration: float,
    max_tries: Optional[int] = None,
) -> Iterator[float]:
    """A retry schedule which keeps yielding `interval` while less than
    `max_duration` seconds have passed since the schedule was created.

    If `max_tries` is given, the schedule is also cut short so that the wrapped
    function is called at most `max_tries` times in total. This keeps a tiny
    interval from spinning through a long time window.

    The start time is taken when this function is called, not when the schedule is
    first iterated, so the time spent in the first try counts against the budget.
    """
    start = clock.monotonic()

    def schedule() -> Iterator[float]:
        tries = 1
        while clock.monotonic() - start < max_duration:
            if max_tries is not None and tries >= max_tries:
                return
            tries += 1
            yield interval

    return schedule()


def retry(
    *,
    retry_schedule_factory: Callable[[], Iterable[Union[float, int]]],
    sleep: Callable[[Union[float, int]], None] = time.sleep,
) -> Callable[[Callable[P, TOut_co]], Callable[P, TOut_co]]:
    """Try a (sync) function multiple times.

    In order to signal an error should be retried, the wrapped function should raise
    `Retry`. Exceptions not derived from this type will be propagated to the caller.

    Parameters:
        retry_schedule_factory: A callable which produces an iterable object which
            yields the amount of time to sleep (in seconds) before the next
            try. The number of iterations determines the maximum number of
            times the function is called. In particular, the max number of
            times is the length of the iterable (if finite) plus 1. The factory is
            invoked once per call of the wrapped function, so time based schedules
            such as `time_budget` start counting on each call.
        sleep: The callable invoked before each retry for waiting the given amount of
            time.

    Examples:
        Run umount at most 3 times (2 retries), waiting 10 seconds between each try
        >>> @retry(retry_schedule_factory=lambda: islice(repeat(10), 2))
        ... def umount():
        ...   try:
        ...     runner.run_command("umount", "/mnt/foo")
        ...   except CmdError as e:
        ...     raise Retry() from e

    Raises:
        OutOfRetries when the retry schedule is exhausted.
    """

    def decorator(f: Callable[P, TOut_co]) -> Callable[P, TOut_co]:
        @wraps(f)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> TOut_co:
            # the schedule is only advanced after a failed try, so time based
            # schedules see the time spent in that try
            retry_schedule = iter(retry_schedule_factory())
            for try_idx in count():
                logger.debug(f"Try {try_idx} (zero-indexed)")
                try:
                    return f(*args, **kwargs)
                except Retry as e:
                    logger.debug("Got retryable exception.", exc_info=True)
                    sleep_sec = next(retry_schedule, None)
                    if sleep_sec is None:
                        raise OutOfRetries() from e

                    sleep(sleep_sec)
            raise AssertionError(
                "Illegal state. The loop is infinite and only exits by returning or raising."
            )

        return wrapper

    return decorator
