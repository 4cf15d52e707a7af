# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from typing import Set

SWAPON_HEADER = "Filename"


def parse_swap_list(text: str) -> Set[str]:
    """Get the active swap devices from the output of `swapon -s`, e.g.

    Filename                                Type            Size    Used    Priority
    /dev/swap                               partition       78180316        0       -1
    """
    devices = set()
    for line in text.splitlines():
        fields = line.split()
        if not fields or fields[0] == SWAPON_HEADER:
            continue
        devices.add(fields[0])
    return devices
