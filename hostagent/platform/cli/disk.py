# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import socket
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Literal, Optional, Protocol, runtime_checkable, Tuple

import click

from hostagent.platform.click import (
    log_folder_option,
    log_level_option,
    stdout_option,
    unmount_max_attempts_option,
    unmount_max_retry_duration_option,
    unmount_retry_interval_option,
)
from hostagent.platform.clock import Clock, ClockImpl
from hostagent.platform.disk.errors import MounterError
from hostagent.platform.disk.mounter import LinuxMounter, Mounter, MounterConfig
from hostagent.platform.utils.files import FileSystem, FileSystemImpl
from hostagent.platform.utils.monitor import init_logger
from hostagent.platform.utils.shell import CmdRunner, CmdRunnerImpl
from typeguard import typechecked

LOGGER_NAME = "hostagent"


@runtime_checkable
class CliObject(Protocol):
    @property
    def clock(self) -> Clock: ...

    @property
    def cmd_runner(self) -> CmdRunner: ...

    @property
    def file_system(self) -> FileSystem: ...


@dataclass
class CliObjectImpl:
    clock: Clock = field(default_factory=ClockImpl)
    cmd_runner: CmdRunner = field(default_factory=CmdRunnerImpl)
    file_system: FileSystem = field(default_factory=FileSystemImpl)


@contextmanager
def _as_click_exception() -> Iterator[None]:
    try:
        yield
    except MounterError as e:
        raise click.ClickException(str(e)) from e


def _mount_options(options: Optional[str]) -> Tuple[str, ...]:
    return ("-o", options) if options else ()


mount_options_option = click.option(
    "--options",
    "-o",
    default=None,
    help="Comma separated mount options passed to `mount -o`, e.g. 'ro,noatime'.",
)


@click.group()
@unmount_retry_interval_option
@unmount_max_retry_duration_option
@unmount_max_attempts_option
@log_level_option
@log_folder_option
@stdout_option
@click.pass_context
@typechecked
def disk(
    ctx: click.Context,
    unmount_retry_interval: float,
    unmount_max_retry_duration: float,
    unmount_max_attempts: int,
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    log_folder: str,
    stdout: bool,
) -> None:
    """Mount, unmount and swap operations on block devices."""
    logger, _ = init_logger(
        logger_name=LOGGER_NAME,
        log_dir=log_folder,
        log_name=socket.gethostname() + ".log",
        log_stdout=stdout,
        log_level=getattr(logging, log_level),
    )
    obj = ctx.obj if ctx.obj is not None else CliObjectImpl()
    if not isinstance(obj, CliObject):
        raise click.UsageError(f"{obj} does not implement {CliObject.__name__}")

    config = MounterConfig(
        unmount_retry_interval=unmount_retry_interval,
        unmount_max_retry_duration=unmount_max_retry_duration,
        unmount_max_attempts=unmount_max_attempts,
    )
    logger.debug(f"Using {config}")
    ctx.obj = LinuxMounter(
        runner=obj.cmd_runner,
        fs=obj.file_system,
        clock=obj.clock,
        config=config,
    )


@disk.command()
@click.argument("device")
@click.argument("mount_point")
@mount_options_option
@click.pass_obj
@typechecked
def mount(
    mounter: Mounter, device: str, mount_point: str, options: Optional[str]
) -> None:
    """Mount DEVICE at MOUNT_POINT unless it is already mounted there."""
    with _as_click_exception():
        mounter.mount(device, mount_point, *_mount_options(options))


@disk.command()
@click.argument("target")
@click.pass_obj
@typechecked
def unmount(mounter: Mounter, target: str) -> None:
    """Unmount TARGET, which is either a device or a mount point."""
    with _as_click_exception():
        did_unmount = mounter.unmount(target)
    click.echo(f"{target} unmounted" if did_unmount else f"{target} is not mounted")


@disk.command()
@click.argument("from_mount_point")
@click.argument("to_mount_point")
@mount_options_option
@click.pass_obj
@typechecked
def remount(
    mounter: Mounter,
    from_mount_point: str,
    to_mount_point: str,
    options: Optional[str],
) -> None:
    """Move the device mounted at FROM_MOUNT_POINT to TO_MOUNT_POINT."""
    with _as_click_exception():
        mounter.remount(from_mount_point, to_mount_point, *_mount_options(options))


@disk.command(name="remount-readonly")
@click.argument("mount_point")
@click.pass_obj
@typechecked
def remount_readonly(mounter: Mounter, mount_point: str) -> None:
    """Remount the device at MOUNT_POINT read-only."""
    with _as_click_exception():
        mounter.remount_as_readonly(mount_point)


@disk.command()
@click.argument("device")
@click.pass_obj
@typechecked
def swapon(mounter: Mounter, device: str) -> None:
    """Enable swap on DEVICE unless it is already active."""
    with _as_click_exception():
        mounter.swap_on(device)


@disk.command(name="is-mounted")
@click.argument("target")
@click.pass_obj
@typechecked
def is_mounted(mounter: Mounter, target: str) -> None:
    """Print whether TARGET, a device or a mount point, is mounted."""
    with _as_click_exception():
        click.echo(str(mounter.is_mounted(target)).lower())


@disk.command(name="is-mount-point")
@click.argument("path")
@click.pass_obj
@typechecked
def is_mount_point(mounter: Mounter, path: str) -> None:
    """Print whether PATH is a mount point."""
    with _as_click_exception():
        click.echo(str(mounter.is_mount_point(path)).lower())
