# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import time
from typing import Callable, List
from unittest.mock import call, create_autospec, MagicMock

import pytest

from hostagent.platform.decorators import OutOfRetries, Retry, retry, time_budget
from hostagent.platform.utils.shell import CmdError
from hostagent.tests.fakes import FakeClock, FakeCmdResult, FakeCmdRunner


def _umount(runner: FakeCmdRunner, target: str) -> Callable[[], str]:
    def f() -> str:
        try:
            return runner.run_command("umount", target)
        except CmdError as e:
            raise Retry() from e

    return f


class TestRetry:
    @staticmethod
    def test_first_try_succeeds() -> None:
        f = MagicMock()
        retryable_f = retry(retry_schedule_factory=lambda: [10])(f)

        rv = retryable_f("/mnt/foo", lazy=False)

        assert rv is f.return_value
        f.assert_called_once_with("/mnt/foo", lazy=False)

    @staticmethod
    def test_retries_failed_command_on_time_budget() -> None:
        clock = FakeClock()
        runner = FakeCmdRunner()
        runner.add_cmd_result("umount /mnt/foo", FakeCmdResult(error="busy"))
        runner.add_cmd_result("umount /mnt/foo", FakeCmdResult(error="busy"))
        runner.add_cmd_result("umount /mnt/foo", FakeCmdResult(stdout="done"))
        retryable_umount = retry(
            retry_schedule_factory=lambda: time_budget(
                clock, interval=5, max_duration=60
            ),
            sleep=clock.sleep,
        )(_umount(runner, "/mnt/foo"))

        rv = retryable_umount()

        assert rv == "done"
        assert runner.run_commands == [["umount", "/mnt/foo"]] * 3
        assert clock.monotonic() == 10

    @staticmethod
    def test_out_of_retries_keeps_command_error() -> None:
        clock = FakeClock()
        runner = FakeCmdRunner()
        runner.add_cmd_result(
            "umount /mnt/foo", FakeCmdResult(error="target is busy", sticky=True)
        )
        retryable_umount = retry(
            retry_schedule_factory=lambda: time_budget(
                clock, interval=1, max_duration=60, max_tries=3
            ),
            sleep=clock.sleep,
        )(_umount(runner, "/mnt/foo"))

        with pytest.raises(OutOfRetries) as excinfo:
            retryable_umount()

        assert len(runner.run_commands) == 3
        assert clock.monotonic() == 2
        retry_exc = excinfo.value.__cause__
        assert isinstance(retry_exc, Retry)
        cmd_error = retry_exc.__cause__
        assert isinstance(cmd_error, CmdError)
        assert cmd_error.cmd == ["umount", "/mnt/foo"]
        assert "target is busy" in str(cmd_error)

    @staticmethod
    @pytest.mark.parametrize(
        "side_effect, retry_schedule",
        [
            ([Retry()], []),
            ([Retry(), Retry()], [0.5]),
        ],
    )
    def test_throws_when_schedule_is_exhausted(
        side_effect: List[Exception], retry_schedule: List[float]
    ) -> None:
        stub_sleep = create_autospec(spec=time.sleep)
        f = MagicMock()
        f.side_effect = side_effect
        retryable_f = retry(
            retry_schedule_factory=lambda: retry_schedule, sleep=stub_sleep
        )(f)

        with pytest.raises(OutOfRetries):
            retryable_f("/dev/xvdb2")

        n_tries = len(retry_schedule) + 1
        assert f.call_args_list == [call("/dev/xvdb2")] * n_tries
        assert stub_sleep.call_args_list == [call(x) for x in retry_schedule]

    @staticmethod
    def test_command_error_without_retry_propagates() -> None:
        stub_sleep = create_autospec(spec=time.sleep)
        runner = FakeCmdRunner()
        runner.add_cmd_result("mount /dev/foo /mnt/foo", FakeCmdResult(error="nope"))
        retryable_mount = retry(
            retry_schedule_factory=lambda: [10], sleep=stub_sleep
        )(runner.run_command)

        with pytest.raises(CmdError, match="nope"):
            retryable_mount("mount", "/dev/foo", "/mnt/foo")

        assert runner.run_commands == [["mount", "/dev/foo", "/mnt/foo"]]
        stub_sleep.assert_not_called()


class TestTimeBudget:
    @staticmethod
    def test_stops_when_duration_is_spent() -> None:
        clock = FakeClock()
        schedule = time_budget(clock, interval=1, max_duration=3)

        sleeps = []
        for sleep_sec in schedule:
            sleeps.append(sleep_sec)
            clock.sleep(sleep_sec)

        assert sleeps == [1, 1, 1]

    @staticmethod
    @pytest.mark.parametrize(
        "max_tries, expected_retries",
        [(1, 0), (2, 1), (5, 4)],
    )
    def test_stops_after_max_tries(max_tries: int, expected_retries: int) -> None:
        clock = FakeClock()
        schedule = time_budget(
            clock, interval=0.001, max_duration=600, max_tries=max_tries
        )

        assert len(list(schedule)) == expected_retries

    @staticmethod
    def test_counts_time_before_first_iteration() -> None:
        clock = FakeClock()
        schedule = time_budget(clock, interval=1, max_duration=3)

        clock.sleep(5)

        assert list(schedule) == []

    @staticmethod
    def test_drives_retry() -> None:
        clock = FakeClock()
        f = MagicMock()
        f.side_effect = Retry()
        retryable_f = retry(
            retry_schedule_factory=lambda: time_budget(
                clock, interval=2, max_duration=5
            ),
            sleep=clock.sleep,
        )(f)

        with pytest.raises(OutOfRetries):
            retryable_f()

        # tries at t=0, 2, 4 and 6
        assert f.call_count == 4
        assert clock.monotonic() == 6
