# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MountEntry:
    """A single line of /proc/mounts, see https://man7.org/linux/man-pages/man5/fstab.5.html"""

    device: str
    mount_point: str
    fs_type: Optional[str] = None
