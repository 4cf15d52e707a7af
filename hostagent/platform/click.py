# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
from pathlib import Path
from typing import Callable, TypeVar, Union

import click
import tomli

from hostagent.platform.coerce import ensure_dict
from typeguard import typechecked
from typing_extensions import ParamSpec

logger = logging.getLogger(__name__)


log_level_option = click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default="INFO",
    show_default=True,
    help="Logging verbosity level.",
)

log_folder_option = click.option(
    "--log-folder",
    type=click.Path(file_okay=False),
    default="/var/log/hostagent",
    show_default=True,
    help="The directory where logs will be stored.",
)

stdout_option = click.option(
    "--stdout",
    is_flag=True,
    default=False,
    help="Whether to display logs to stdout.",
)

unmount_retry_interval_option = click.option(
    "--unmount-retry-interval",
    type=click.FloatRange(min=0),
    default=1.0,
    show_default=True,
    help="Seconds to wait between attempts when umount fails.",
)

unmount_max_retry_duration_option = click.option(
    "--unmount-max-retry-duration",
    type=click.FloatRange(min=0),
    default=600.0,
    show_default=True,
    help="Seconds after the first umount attempt during which failures are retried.",
)

unmount_max_attempts_option = click.option(
    "--unmount-max-attempts",
    type=click.IntRange(min=1),
    default=600,
    show_default=True,
    help="The maximum number of umount attempts, regardless of the retry duration.",
)


_Tv = TypeVar("_Tv")
_ClickCallback = Callable[[click.Context, click.Parameter, _Tv], None]


def _set_default_map(name: str) -> _ClickCallback[Path]:
    @typechecked
    def cb(ctx: click.Context, param: click.Parameter, path: Path) -> None:
        if not path.exists() or path == Path("/dev/null"):
            return

        logger.info(f"Reading config from {path}...")
        with path.open("rb") as f:
            try:
                conf = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise click.BadParameter(
                    f"{path} does not contain valid TOML.",
                    ctx=ctx,
                    param=param,
                ) from e
        try:
            default_map = ensure_dict(conf[name])
        except KeyError as e:
            raise click.BadParameter(
                f"'{name}' is not a top-level table name in {path}. Valid names: {list(conf.keys())}",
                ctx=ctx,
                param=param,
            ) from e
        logger.info(f"Loaded table '{name}'.")

        ctx.default_map = {**(ctx.default_map or {}), **default_map}

    return cb


_P = ParamSpec("_P")
_R = TypeVar("_R")


def toml_config_option(
    name: str,
    *,
    default_config_path: Union[str, Path] = "/etc/hostagent/config.toml",
) -> Callable[[Callable[_P, _R]], Callable[_P, _R]]:
    """Add a `--config` option which loads option defaults from a TOML file.

    The option is eager, so the file is read before any other option of the command
    is processed. Values come from the `name` table, and nested tables feed the
    subcommands of a group. The `hostagent` group itself takes no values, so an
    agent config only fills the `disk` subtable:

        [hostagent.disk]
        log_level = "DEBUG"
        unmount_retry_interval = 0.5
        unmount_max_attempts = 20

    `/dev/null` or a path that does not exist yields an empty table, so a host
    without `/etc/hostagent/config.toml` runs on the option defaults.

    Precedence (lowest to highest):
    * `default` argument to `click.option`
    * the context's `default_map` setting
    * the value in the config file
    * value passed at the command line

    A subcommand that sets `default_map` itself through `context_settings` does not
    receive its subtable.

    Parameters:
        name: The top-level table name holding the values for this command.
        default_config_path: The file read when `--config` is not given.
    """

    def decorator(f: Callable[_P, _R]) -> Callable[_P, _R]:
        return click.option(
            "--config",
            type=click.Path(dir_okay=False, path_type=Path),
            callback=_set_default_map(name),
            default=default_config_path,
            show_default=True,
            expose_value=False,
            is_eager=True,
            help=(
                f"Load option values from table '{name}' in the given TOML config file. "
                "A non-existent path or '/dev/null' are ignored and treated as empty tables."
            ),
        )(f)

    return decorator
