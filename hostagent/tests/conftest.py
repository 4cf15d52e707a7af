# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import pytest

from hostagent.platform.disk.mounter import LinuxMounter, MounterConfig
from hostagent.tests.fakes import FakeClock, FakeCmdRunner, FakeFileSystem

TEST_RETRY_INTERVAL = 0.001


@pytest.fixture
def runner() -> FakeCmdRunner:
    return FakeCmdRunner()


@pytest.fixture
def fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def mounter(
    runner: FakeCmdRunner, fs: FakeFileSystem, clock: FakeClock
) -> LinuxMounter:
    return LinuxMounter(
        runner=runner,
        fs=fs,
        clock=clock,
        config=MounterConfig(unmount_retry_interval=TEST_RETRY_INTERVAL),
    )
