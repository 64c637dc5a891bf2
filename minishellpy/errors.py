"""Error reporting helpers and the exception used to leave the shell."""

from __future__ import annotations

import errno as _errno
import os
from typing import TextIO

PROMPT_NAME = "minishell"


class ShellExit(Exception):
    """Raised when the shell, or a builtin, asks the process to terminate."""

    def __init__(self, status: int = 0) -> None:
        super().__init__(status)
        self.status = status


def print_error(name: str, error: int, stream: TextIO) -> None:
    """Write ``minishell: <name>: <strerror>`` to *stream*."""
    stream.write(f"{PROMPT_NAME}: {name}: {os.strerror(error)}\n")


def print_exec_error(name: str, error: int, stream: TextIO) -> None:
    """Report a failed program lookup; a missing file reads as an unknown command."""
    if error == _errno.ENOENT:
        reason = "command not found"
    else:
        reason = os.strerror(error)
    stream.write(f"{PROMPT_NAME}: {name}: {reason}\n")