"""The interactive loop: reading lines, checking them and running them."""

from __future__ import annotations

import contextlib
import os
import signal
import sys
import threading
from typing import Iterable, Iterator, Mapping, Optional, TextIO, Union

from .builtins import exit_builtin
from .command import Command, build_command
from .environment import Environment, expand_variables
from .errors import PROMPT_NAME, ShellExit
from .executor import Executor
from .lexer import is_empty, split_unquoted
from .syntax import ShellSyntaxError, check_redirections, quotes_closed

PROMPT = f"{PROMPT_NAME}> "
SYNTAX_STATUS = 258

_Environ = Union[Mapping[str, str], Iterable[str], None]


def _interactive(stream: TextIO) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, OSError, ValueError):
        return False


def _pipe_pending(text: str, pending: bool) -> bool:
    """Track whether the text read so far ends with a ``|`` awaiting more input."""
    for ch in text:
        if not pending and ch == "|":
            pending = True
        elif pending and ch != " ":
            pending = False
    return pending


def _environment_entries(environ: _Environ) -> list[str]:
    if environ is None:
        environ = os.environ
    if isinstance(environ, Mapping):
        return [f"{name}={value}" for name, value in environ.items()]
    return list(environ)


@contextlib.contextmanager
def _prompt_signals(err: TextIO) -> Iterator[None]:
    """At the prompt, an interrupt redraws the prompt and a quit is ignored."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def on_interrupt(_signum: int, _frame: object) -> None:
        err.write("\b\b  \b\b")
        err.write("\n" + PROMPT)
        err.flush()

    def on_quit(_signum: int, _frame: object) -> None:
        err.write("\b\b  \b\b")
        err.flush()

    handlers = [(signal.SIGINT, on_interrupt)]
    quit_signal = getattr(signal, "SIGQUIT", None)
    if quit_signal is not None:
        handlers.append((quit_signal, on_quit))
    saved = {}
    for signum, handler in handlers:
        previous = signal.signal(signum, handler)
        saved[signum] = signal.SIG_DFL if previous is None else previous
    try:
        yield
    finally:
        for signum, previous in saved.items():
            signal.signal(signum, previous)


class Shell:
    """A command interpreter holding its environment and last exit status."""

    def __init__(
        self,
        environ: _Environ = None,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
    ) -> None:
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.env = Environment(_environment_entries(environ))
        self.executor = Executor(self.env, self.out, self.err)
        self.exit_code = 0

    def _run_segment(self, segment: str) -> int:
        if is_empty(segment):
            return 0
        commands: list[Command] = []
        for part in split_unquoted(segment, "|"):
            try:
                commands.append(build_command(part))
            except OSError:
                for command in commands:
                    command.close()
                self.err.write(f"{PROMPT_NAME}: Permission denied\n")
                return 1
        if len(commands) == 1:
            return self.executor.run_single(commands[0])
        return self.executor.run_pipeline(commands)

    def execute_line(self, line: str) -> int:
        """Check and run one input line; return and remember its status.

        Commands separated by ``;`` run in order, each expanded with the
        status of the one before. ShellExit from ``exit`` propagates.
        """
        if not quotes_closed(line):
            self.err.write(f"{PROMPT_NAME}: quotes wasn't close\n")
            self.exit_code = SYNTAX_STATUS
            return SYNTAX_STATUS
        try:
            check_redirections(line)
        except ShellSyntaxError as exc:
            self.err.write(f"{PROMPT_NAME}: {exc}\n")
            self.exit_code = SYNTAX_STATUS
            return SYNTAX_STATUS
        code = self.exit_code
        for segment in split_unquoted(line, ";"):
            expanded = expand_variables(segment, self.env, code)
            self.executor.exit_status = code
            code = self._run_segment(expanded)
            self.exit_code = code
        self.exit_code = code
        return code

    def _read_physical(self, stream: TextIO) -> str:
        parts: list[str] = []
        while True:
            chunk = stream.readline()
            if not chunk:
                if not parts:
                    exit_builtin([], False, self.exit_code, self.err)
                if not _interactive(stream):
                    break
                self.err.write("  \b\b")
                continue
            if chunk.endswith("\n"):
                parts.append(chunk[:-1])
                break
            parts.append(chunk)
        return "".join(parts)

    def read_line(self, stream: TextIO) -> str:
        """Read one command line, asking for more while it ends in ``|``.

        End of input on an empty line leaves the shell with ShellExit.
        """
        line = self._read_physical(stream)
        pending = _pipe_pending(line, False)
        while pending:
            self.out.write("> ")
            self.out.flush()
            more = self._read_physical(stream)
            pending = _pipe_pending(more, pending)
            line += more
        return line

    def run(self, stream: TextIO) -> int:
        """Prompt, read and execute until ``exit`` or end of input; return the status."""
        guard = _prompt_signals(self.err) if _interactive(stream) else contextlib.nullcontext()
        with guard:
            try:
                while True:
                    self.err.write(PROMPT)
                    self.err.flush()
                    line = self.read_line(stream)
                    self.execute_line(line)
                    self.out.flush()
            except ShellExit as exc:
                self.out.flush()
                self.err.flush()
                return exc.status


def main(argv: Optional[list[str]] = None) -> int:
    """Run the shell on standard input with the process environment."""
    shell = Shell(os.environ, sys.stdout, sys.stderr)
    return shell.run(sys.stdin)


if __name__ == "__main__":
    sys.exit(main())