# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
from typing import Protocol


class FileSystem(Protocol):
    """A low-level file reading client."""

    def read_file_string(self, path: str) -> str:
        """Get the contents of `path` as text.

        Raises:
            OSError if the file cannot be read.
        """


class FileSystemImpl:
    def read_file_string(self, path: str) -> str:
        with open(path, "r") as file:
            return file.read()
