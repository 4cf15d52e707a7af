# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Idempotent mount, unmount and swap operations driven by the live mount table.

The mount table is read again for every decision; nothing is cached between calls
because the agent itself, or anything else on the host, may change mounts at any
time.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from hostagent.platform.clock import Clock, ClockImpl
from hostagent.platform.decorators import OutOfRetries, Retry, retry, time_budget
from hostagent.platform.disk.errors import (
    ConflictError,
    ExecutionFailure,
    MountTableReadError,
    NotMountedError,
)
from hostagent.platform.disk.mount_table import parse_mount_table, PROC_MOUNTS
from hostagent.platform.disk.swap import parse_swap_list
from hostagent.platform.utils.files import FileSystem, FileSystemImpl
from hostagent.platform.utils.shell import CmdError, CmdRunner, CmdRunnerImpl
from hostagent.schemas.disk.mount import MountEntry

logger = logging.getLogger(__name__)

READONLY_MOUNT_OPTIONS = ("-o", "ro")


class Mounter(Protocol):
    def mount(self, device: str, mount_point: str, *mount_options: str) -> None: ...

    def unmount(self, device_or_mount_point: str) -> bool: ...

    def remount(
        self, from_mount_point: str, to_mount_point: str, *mount_options: str
    ) -> None: ...

    def remount_as_readonly(self, mount_point: str) -> None: ...

    def swap_on(self, device: str) -> None: ...

    def is_mount_point(self, path: str) -> bool: ...

    def is_mounted(self, device_or_mount_point: str) -> bool: ...


@dataclass(frozen=True)
class MounterConfig:
    """Retry tuning for unmount.

    A failing umount is retried every `unmount_retry_interval` seconds until either
    `unmount_max_retry_duration` seconds have passed since the first attempt or
    `unmount_max_attempts` attempts have been made.
    """

    unmount_retry_interval: float = 1.0
    unmount_max_retry_duration: float = 600.0
    unmount_max_attempts: int = 600


@dataclass
class LinuxMounter:
    runner: CmdRunner = field(default_factory=CmdRunnerImpl)
    fs: FileSystem = field(default_factory=FileSystemImpl)
    clock: Clock = field(default_factory=ClockImpl)
    config: MounterConfig = field(default_factory=MounterConfig)

    def mount(self, device: str, mount_point: str, *mount_options: str) -> None:
        """Mount `device` at `mount_point`. A no-op if it is already mounted there.

        Raises:
            ConflictError if `device` is mounted elsewhere or another device is
            mounted at `mount_point`.
            ExecutionFailure if the mount command fails.
        """
        if not self._should_mount(device, mount_point):
            logger.debug(f"{device} is already mounted at {mount_point}")
            return

        logger.info(f"Mounting {device} at {mount_point}")
        self._run("mount", device, mount_point, *mount_options)

    def unmount(self, device_or_mount_point: str) -> bool:
        """Unmount the given device or mount point, retrying failed attempts.

        Returns:
            True if something was unmounted, False if nothing was mounted.

        Raises:
            ExecutionFailure if umount still fails once the retry budget is spent.
        """
        if not self.is_mounted(device_or_mount_point):
            logger.debug(f"{device_or_mount_point} is not mounted")
            return False

        attempts = 0
        last_error: Optional[CmdError] = None

        @retry(
            retry_schedule_factory=lambda: time_budget(
                self.clock,
                interval=self.config.unmount_retry_interval,
                max_duration=self.config.unmount_max_retry_duration,
                max_tries=self.config.unmount_max_attempts,
            ),
            sleep=self.clock.sleep,
        )
        def _umount() -> None:
            nonlocal attempts, last_error
            attempts += 1
            try:
                self.runner.run_command("umount", device_or_mount_point)
            except CmdError as e:
                last_error = e
                logger.warning(
                    f"Unmounting {device_or_mount_point} failed (attempt {attempts}): {e}"
                )
                raise Retry() from e

        logger.info(f"Unmounting {device_or_mount_point}")
        try:
            _umount()
        except OutOfRetries:
            raise ExecutionFailure(
                f"Unmounting {device_or_mount_point} failed after {attempts} attempts: {last_error}"
            ) from last_error
        return True

    def remount(
        self, from_mount_point: str, to_mount_point: str, *mount_options: str
    ) -> None:
        """Move the device mounted at `from_mount_point` to `to_mount_point`.

        Raises:
            NotMountedError if nothing is mounted at `from_mount_point`.
        """
        device = self.find_device_matching_mount_point(from_mount_point)
        if device is None:
            raise NotMountedError(f"Nothing is mounted at {from_mount_point}")

        logger.info(
            f"Remounting {device} from {from_mount_point} to {to_mount_point}"
        )
        self.unmount(from_mount_point)
        self.mount(device, to_mount_point, *mount_options)

    def remount_as_readonly(self, mount_point: str) -> None:
        self.remount(mount_point, mount_point, *READONLY_MOUNT_OPTIONS)

    def swap_on(self, device: str) -> None:
        """Enable swap on `device` unless `swapon -s` already lists it."""
        active = parse_swap_list(self._run("swapon", "-s"))
        if device in active:
            logger.debug(f"Swap is already on for {device}")
            return

        logger.info(f"Turning swap on for {device}")
        self._run("swapon", device)

    def is_mount_point(self, path: str) -> bool:
        return self._find_entry(lambda e: e.mount_point == path) is not None

    def is_mounted(self, device_or_mount_point: str) -> bool:
        return (
            self._find_entry(
                lambda e: device_or_mount_point in (e.device, e.mount_point)
            )
            is not None
        )

    def find_device_matching_mount_point(self, mount_point: str) -> Optional[str]:
        entry = self._find_entry(lambda e: e.mount_point == mount_point)
        return entry.device if entry is not None else None

    def _should_mount(self, device: str, mount_point: str) -> bool:
        entries = self._read_mount_table()

        for entry in entries:
            if entry.device != device:
                continue
            if entry.mount_point == mount_point:
                return False
            raise ConflictError(
                f"Device {device} is already mounted to {entry.mount_point}, can't mount to {mount_point}"
            )

        for entry in entries:
            if entry.mount_point == mount_point:
                raise ConflictError(
                    f"Device {entry.device} is already mounted to {mount_point}, can't mount {device}"
                )

        return True

    def _find_entry(
        self, predicate: Callable[[MountEntry], bool]
    ) -> Optional[MountEntry]:
        # first match wins
        return next(filter(predicate, self._read_mount_table()), None)

    def _read_mount_table(self) -> List[MountEntry]:
        try:
            text = self.fs.read_file_string(PROC_MOUNTS)
        except OSError as e:
            raise MountTableReadError(f"Reading {PROC_MOUNTS}") from e
        return parse_mount_table(text)

    def _run(self, cmd_name: str, *args: str) -> str:
        try:
            return self.runner.run_command(cmd_name, *args)
        except CmdError as e:
            raise ExecutionFailure(f"Shelling out to {cmd_name}: {e}") from e
