# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from typing import List, Optional

from hostagent.schemas.disk.mount import MountEntry

PROC_MOUNTS = "/proc/mounts"


def as_mount_entry(line: str) -> Optional[MountEntry]:
    """Parse a line of the mount table. Returns None for lines with fewer than two
    fields, e.g. blank lines.
    """
    fields = line.split()
    if len(fields) < 2:
        return None
    return MountEntry(
        device=fields[0],
        mount_point=fields[1],
        fs_type=fields[2] if len(fields) > 2 else None,
    )


def parse_mount_table(text: str) -> List[MountEntry]:
    """Parse the mount table keeping the order of the lines.

    Unparseable lines are dropped so that a single noisy line does not hide the
    rest of the table.
    """
    entries = []
    for line in text.splitlines():
        entry = as_mount_entry(line)
        if entry is not None:
            entries.append(entry)
    return entries
