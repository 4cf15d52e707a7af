# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.


class MounterError(Exception):
    """Base class for errors raised by a Mounter."""


class ConflictError(MounterError):
    """The device is mounted elsewhere, or another device occupies the mount point."""


class NotMountedError(MounterError):
    """The mount point to remount is not mounted."""


class ExecutionFailure(MounterError):
    """A mount related command failed."""


class MountTableReadError(MounterError):
    """The mount table could not be read."""
