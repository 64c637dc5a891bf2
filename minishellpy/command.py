"""A parsed simple command with its argument list and redirections."""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass, field
from typing import Optional

from .lexer import is_redirection, strip_quotes, tokenize

_OUTPUT_FLAGS = {
    ">": os.O_CREAT | os.O_WRONLY | os.O_TRUNC,
    ">>": os.O_CREAT | os.O_WRONLY | os.O_APPEND,
}
_FILE_MODE = 0o644


@dataclass
class Command:
    """Arguments of one command and the descriptors its redirections opened.

    ``None`` for a descriptor means the shell's own stream is used.
    """

    argv: list[str] = field(default_factory=list)
    input_fd: Optional[int] = None
    output_fd: Optional[int] = None

    def close(self) -> None:
        """Close any descriptors opened for redirections."""
        for fd in (self.input_fd, self.output_fd):
            if fd is not None:
                os.close(fd)
        self.input_fd = None
        self.output_fd = None

    def __enter__(self) -> "Command":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _split_words(tokens: list[str]) -> list[str]:
    """Collect the arguments, unquoting file names in *tokens* in place."""
    argv: list[str] = []
    for index, token in enumerate(tokens):
        follows_redirection = index > 0 and is_redirection(tokens[index - 1])
        if follows_redirection:
            tokens[index] = strip_quotes(token)
        elif not is_redirection(tokens[index]):
            argv.append(strip_quotes(tokens[index]))
    return argv


def _open_redirections(command: Command, tokens: list[str]) -> None:
    for index, token in enumerate(tokens):
        if not is_redirection(token):
            continue
        if index + 1 >= len(tokens):
            raise OSError(errno.ENOENT, "missing file name", token)
        target = tokens[index + 1]
        if token == "<":
            fd = os.open(target, os.O_RDONLY)
            if command.input_fd is not None:
                os.close(command.input_fd)
            command.input_fd = fd
        else:
            fd = os.open(target, _OUTPUT_FLAGS[token], _FILE_MODE)
            if command.output_fd is not None:
                os.close(command.output_fd)
            command.output_fd = fd


def build_command(segment: str) -> Command:
    """Parse one pipeline segment and open its redirection files.

    Files are opened left to right; a later redirection of the same
    direction replaces an earlier one. Raises OSError if a file cannot be
    opened, after closing what was already opened.
    """
    tokens = tokenize(segment)
    command = Command(argv=_split_words(tokens))
    try:
        _open_redirections(command, tokens)
    except OSError:
        command.close()
        raise
    return command