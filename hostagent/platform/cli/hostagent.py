# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""A single entrypoint into the host agent commands.

This file is intentionally lightweight and should not include any complex logic.
"""

import click

from hostagent._version import __version__
from hostagent.platform.cli import disk
from hostagent.platform.click import toml_config_option


@click.group(epilog=f"hostagent Version: {__version__}")
@toml_config_option("hostagent")
@click.version_option(__version__)
def main() -> None:
    """Host-resident infrastructure agent."""


main.add_command(disk.disk, name="disk")

if __name__ == "__main__":
    main()
