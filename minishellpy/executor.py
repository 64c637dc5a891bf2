"""Running parsed commands: builtins in-process, programs as child processes."""

from __future__ import annotations

import contextlib
import errno
import io
import os
import signal
import subprocess
import tempfile
import threading
from typing import Iterator, Optional, Sequence, TextIO, Union

from .builtins import (
    Builtin,
    cd,
    echo,
    env_builtin,
    exit_builtin,
    export,
    lookup_builtin,
    pwd,
    unset,
)
from .command import Command
from .environment import Environment
from .errors import PROMPT_NAME, ShellExit, print_error, print_exec_error

_SIGPIPE_STATUS = 141
_SIGINT_STATUS = 130


class _SearchFailure(OSError):
    """No directory on ``PATH`` held a runnable program of the given name."""


def resolve_program(name: str, env: Environment) -> str:
    """Return the path to run for *name*.

    Names starting with ``.`` or ``/`` are used as given. Other names are
    looked up in the directories of ``PATH``. Raises FileNotFoundError when
    ``PATH`` is unset, and OSError carrying the last notable error and the
    path it concerns when no directory holds a runnable file.
    """
    if name.startswith((".", "/")):
        return name
    path_value = env.find_value("PATH")
    if path_value is None:
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
    error, shown = errno.ENOENT, name
    for directory in filter(None, path_value.split(":")):
        candidate = f"{directory}/{name}"
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
        if os.path.exists(candidate):
            error, shown = errno.EACCES, candidate
    raise _SearchFailure(error, os.strerror(error), shown)


def status_from_returncode(returncode: int) -> int:
    """Turn a child's return code into a shell status (128 + signal if killed)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def _exec_failure_status(error: int) -> int:
    if error == errno.EACCES:
        return 126
    if error == errno.ENOENT:
        return 127
    return error


def _stream_fd(stream: TextIO) -> Optional[int]:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


@contextlib.contextmanager
def _fd_for(stream: TextIO) -> Iterator[int]:
    """Yield a descriptor children may write to that ends up in *stream*."""
    fd = _stream_fd(stream)
    if fd is not None:
        stream.flush()
        yield fd
        return
    with tempfile.TemporaryFile() as spool:
        yield spool.fileno()
        spool.seek(0)
        stream.write(spool.read().decode("utf-8", errors="replace"))


@contextlib.contextmanager
def _child_signals(err: TextIO) -> Iterator[None]:
    """While children run, ignore interrupts and report quits."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def on_quit(signum: int, _frame: object) -> None:
        err.write(f"Quit: {signum}\n")

    handlers = [(signal.SIGINT, lambda _signum, _frame: None)]
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


def _write_all(fd: int, data: bytes) -> None:
    try:
        while data:
            written = os.write(fd, data)
            data = data[written:]
    except BrokenPipeError:
        pass
    finally:
        os.close(fd)


_Outcome = Union[int, "subprocess.Popen[bytes]"]


class Executor:
    """Runs commands against an environment, writing to *out* and *err*."""

    def __init__(self, env: Environment, out: TextIO, err: TextIO) -> None:
        self.env = env
        self.out = out
        self.err = err
        self.exit_status = 0

    def _dispatch(
        self,
        argv: Sequence[str],
        builtin: Builtin,
        in_pipe: bool,
        env: Environment,
        out: TextIO,
    ) -> int:
        args = list(argv[1:])
        actions = {
            Builtin.ECHO: lambda: echo(args, out),
            Builtin.PWD: lambda: pwd(out, self.err),
            Builtin.CD: lambda: cd(args, env, self.err),
            Builtin.ENV: lambda: env_builtin(env, out),
            Builtin.EXIT: lambda: exit_builtin(args, in_pipe, self.exit_status, self.err),
            Builtin.EXPORT: lambda: export(args, env, out, self.err),
            Builtin.UNSET: lambda: unset(args, env, self.err),
        }
        return actions[builtin]()

    def call_builtin(self, command: Command, builtin: Builtin, in_pipe: bool) -> int:
        """Run *builtin* with the command's arguments; output honours redirection."""
        if command.output_fd is None:
            return self._dispatch(command.argv, builtin, in_pipe, self.env, self.out)
        with open(command.output_fd, "w", closefd=False, encoding="utf-8") as stream:
            return self._dispatch(command.argv, builtin, in_pipe, self.env, stream)

    def _spawn(
        self,
        argv: Sequence[str],
        stdin: Optional[int],
        stdout: Optional[int],
        stderr: Optional[int],
    ) -> _Outcome:
        """Start a program, or report the failure and return its status."""
        name = argv[0]
        try:
            path = resolve_program(name, self.env)
        except _SearchFailure as exc:
            print_exec_error(exc.filename, exc.errno, self.err)
            return _exec_failure_status(exc.errno)
        except OSError as exc:
            print_error(name, exc.errno or 0, self.err)
            return _exec_failure_status(exc.errno or 0)
        try:
            return subprocess.Popen(
                list(argv),
                executable=path,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                env=self.env.to_dict(),
            )
        except OSError as exc:
            print_error(path, exc.errno or 0, self.err)
            return _exec_failure_status(exc.errno or 0)

    def _run_external(self, command: Command) -> int:
        with _child_signals(self.err), _fd_for(self.out) as out_fd, _fd_for(
            self.err
        ) as err_fd:
            stdout = command.output_fd if command.output_fd is not None else out_fd
            outcome = self._spawn(command.argv, command.input_fd, stdout, err_fd)
            if isinstance(outcome, int):
                return outcome
            returncode = outcome.wait()
        status = status_from_returncode(returncode)
        if status == _SIGINT_STATUS:
            self.out.write("\n")
        return status

    def run_single(self, command: Command) -> int:
        """Run one command outside a pipeline and return its status.

        Builtins change this executor's environment; ShellExit from ``exit``
        propagates. Redirection descriptors are closed afterwards.
        """
        try:
            if not command.argv:
                return 0
            name = command.argv[0]
            if not name:
                self.err.write(f"{PROMPT_NAME}: : command not found\n")
                return 127
            builtin = lookup_builtin(name)
            if builtin is not None:
                return self.call_builtin(command, builtin, False) & 0xFF
            return self._run_external(command)
        finally:
            command.close()

    def _start_stage(
        self,
        command: Command,
        stdin: Optional[int],
        stdout: int,
        stderr: int,
        writers: list[threading.Thread],
    ) -> _Outcome:
        if not command.argv:
            return 0
        name = command.argv[0]
        if not name:
            self.err.write(f"{PROMPT_NAME}: : command not found\n")
            return 127
        builtin = lookup_builtin(name)
        if builtin is None:
            return self._spawn(command.argv, stdin, stdout, stderr)
        buffer = io.StringIO()
        try:
            status = self._dispatch(command.argv, builtin, True, self.env.copy(), buffer)
        except ShellExit as exc:
            status = exc.status
        writer = threading.Thread(
            target=_write_all,
            args=(os.dup(stdout), buffer.getvalue().encode("utf-8")),
            daemon=True,
        )
        writer.start()
        writers.append(writer)
        return status & 0xFF

    def run_pipeline(self, commands: Sequence[Command]) -> int:
        """Run *commands* connected by pipes and return the pipeline's status.

        Builtins run on a copy of the environment, so they change nothing.
        The status is the last stage's that was not a broken-pipe death.
        """
        stages = list(commands)
        pipes: list[tuple[int, int]] = []
        try:
            for _ in range(len(stages) - 1):
                pipes.append(os.pipe())
        except OSError as exc:
            for read_end, write_end in pipes:
                os.close(read_end)
                os.close(write_end)
            for command in stages:
                command.close()
            self.err.write(f"{PROMPT_NAME}: fork: {os.strerror(exc.errno or 0)}\n")
            return 1

        last = len(stages) - 1
        outcomes: list[_Outcome] = []
        writers: list[threading.Thread] = []
        with _child_signals(self.err), _fd_for(self.out) as final_out, _fd_for(
            self.err
        ) as err_fd:
            try:
                for index, command in enumerate(stages):
                    if command.input_fd is not None:
                        stdin = command.input_fd
                    else:
                        stdin = pipes[index - 1][0] if index else None
                    if command.output_fd is not None:
                        stdout = command.output_fd
                    else:
                        stdout = pipes[index][1] if index < last else final_out
                    outcomes.append(
                        self._start_stage(command, stdin, stdout, err_fd, writers)
                    )
            finally:
                for read_end, write_end in pipes:
                    os.close(read_end)
                    os.close(write_end)
                for command in stages:
                    command.close()
            statuses = [
                outcome
                if isinstance(outcome, int)
                else status_from_returncode(outcome.wait())
                for outcome in outcomes
            ]
            for writer in writers:
                writer.join()

        exit_code = 0
        for status in statuses:
            if status != _SIGPIPE_STATUS:
                exit_code = status
        return exit_code