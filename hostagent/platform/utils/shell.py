# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class CmdError(Exception):
    """Raised when a command could not be run or exited with a non-zero exit code."""

    def __init__(
        self,
        cmd: List[str],
        msg: str,
        returncode: Optional[int] = None,
        output: str = "",
    ) -> None:
        super().__init__(f"Running command '{' '.join(cmd)}': {msg}")
        self.cmd = cmd
        self.returncode = returncode
        self.output = output


class CmdRunner(Protocol):
    def run_command(self, cmd_name: str, *args: str) -> str:
        """Run `cmd_name` with `args` and return its stdout.

        Raises:
            CmdError if the command is missing, timed out or exited with a non-zero
            exit code.
        """


@dataclass
class CmdRunnerImpl:
    timeout_secs: Optional[int] = None

    def run_command(self, cmd_name: str, *args: str) -> str:
        cmd = [cmd_name, *args]
        logger.debug(f"Running command '{' '.join(cmd)}'")
        try:
            result = subprocess.run(
                cmd,
                encoding="utf-8",
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout_secs,
            )
        except FileNotFoundError as e:
            path = os.environ.get("PATH", "")
            raise CmdError(
                cmd, f"Could not find executable '{cmd_name}'. Current PATH: {path}"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CmdError(cmd, f"timed out after {e.timeout} seconds") from e

        if result.returncode != 0:
            raise CmdError(
                cmd,
                f"exit status {result.returncode}, stderr: {result.stderr.strip()}",
                returncode=result.returncode,
                output=result.stdout,
            )
        return result.stdout
