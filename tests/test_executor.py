import errno
import io
import os
import signal
import stat
import sys

import pytest

from minishellpy.builtins import Builtin
from minishellpy.command import Command, build_command
from minishellpy.environment import Environment
from minishellpy.errors import ShellExit
from minishellpy.executor import Executor, resolve_program, status_from_returncode

PY = sys.executable


def make_executor(entries=None):
    out, err = io.StringIO(), io.StringIO()
    return Executor(Environment(entries or []), out, err), out, err


def test_status_from_returncode_passthrough():
    assert status_from_returncode(0) == 0
    assert status_from_returncode(5) == 5


def test_status_from_returncode_signal():
    assert status_from_returncode(-signal.SIGINT) == 130


def test_resolve_program_direct_paths():
    env = Environment([])
    assert resolve_program("./prog", env) == "./prog"
    assert resolve_program("/bin/prog", env) == "/bin/prog"


def test_resolve_program_without_path():
    with pytest.raises(FileNotFoundError) as info:
        resolve_program("prog", Environment(["HOME=/tmp"]))
    assert info.value.errno == errno.ENOENT


def test_resolve_program_finds_executable(tmp_path):
    tool = tmp_path / "tool"
    tool.write_text("#!/bin/sh\n")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR)
    env = Environment([f"PATH=/nonexistent:{tmp_path}"])
    assert resolve_program("tool", env) == f"{tmp_path}/tool"


def test_resolve_program_missing(tmp_path):
    env = Environment([f"PATH={tmp_path}"])
    with pytest.raises(OSError) as info:
        resolve_program("nothing-here", env)
    assert info.value.errno == errno.ENOENT
    assert info.value.filename == "nothing-here"


def test_resolve_program_not_executable(tmp_path):
    data = tmp_path / "data"
    data.write_text("x")
    data.chmod(0o644)
    env = Environment([f"PATH={tmp_path}"])
    with pytest.raises(OSError) as info:
        resolve_program("data", env)
    assert info.value.errno == errno.EACCES
    assert info.value.filename == f"{tmp_path}/data"


def test_run_single_echo():
    executor, out, _ = make_executor()
    assert executor.run_single(Command(argv=["echo", "a", "b"])) == 0
    assert out.getvalue() == "a b\n"


def test_run_single_export_changes_environment():
    executor, _, _ = make_executor()
    assert executor.run_single(Command(argv=["export", "NAME=value"])) == 0
    assert executor.env.find_value("NAME") == "value"


def test_call_builtin_env():
    executor, out, _ = make_executor(["A=1", "B=2"])
    status = executor.call_builtin(Command(argv=["env"]), Builtin.ENV, False)
    assert status == 0
    assert out.getvalue() == "A=1\nB=2\n"


def test_run_single_empty_name():
    executor, _, err = make_executor()
    assert executor.run_single(Command(argv=[""])) == 127
    assert err.getvalue() == "minishell: : command not found\n"


def test_run_single_exit_raises():
    executor, _, err = make_executor()
    with pytest.raises(ShellExit) as info:
        executor.run_single(Command(argv=["exit", "7"]))
    assert info.value.status == 7
    assert err.getvalue().startswith("exit\n")


def test_run_single_exit_uses_last_status():
    executor, _, _ = make_executor()
    executor.exit_status = 5
    with pytest.raises(ShellExit) as info:
        executor.run_single(Command(argv=["exit"]))
    assert info.value.status == 5


def test_builtin_output_redirection(tmp_path):
    target = tmp_path / "f"
    executor, out, _ = make_executor()
    command = build_command(f"echo hi > {target}")
    assert executor.run_single(command) == 0
    assert target.read_text() == "hi\n"
    assert out.getvalue() == ""
    assert command.output_fd is None


def test_external_program_output():
    executor, out, _ = make_executor(list(f"{k}={v}" for k, v in os.environ.items()))
    command = Command(argv=[PY, "-c", "print('hi')"])
    assert executor.run_single(command) == 0
    assert out.getvalue() == "hi\n"


def test_external_program_exit_status():
    executor, _, _ = make_executor()
    command = Command(argv=[PY, "-c", "import sys; sys.exit(3)"])
    assert executor.run_single(command) == 3


def test_external_program_sees_environment():
    executor, out, _ = make_executor(["GREETING=hello"])
    command = Command(argv=[PY, "-c", "import os; print(os.environ['GREETING'])"])
    assert executor.run_single(command) == 0
    assert out.getvalue() == "hello\n"


def test_external_program_redirected(tmp_path):
    target = tmp_path / "out.txt"
    fd = os.open(target, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o644)
    executor, out, _ = make_executor()
    command = Command(argv=[PY, "-c", "print('to file')"], output_fd=fd)
    assert executor.run_single(command) == 0
    assert target.read_text() == "to file\n"
    assert out.getvalue() == ""


def test_external_program_input_redirected(tmp_path):
    source = tmp_path / "in.txt"
    source.write_text("abc")
    fd = os.open(source, os.O_RDONLY)
    executor, out, _ = make_executor()
    command = Command(
        argv=[PY, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
        input_fd=fd,
    )
    assert executor.run_single(command) == 0
    assert out.getvalue() == "ABC"


def test_missing_direct_path():
    executor, _, err = make_executor()
    assert executor.run_single(Command(argv=["/nonexistent/prog"])) == 127
    assert err.getvalue() == "minishell: /nonexistent/prog: No such file or directory\n"


def test_command_not_found_on_path(tmp_path):
    executor, _, err = make_executor([f"PATH={tmp_path}"])
    assert executor.run_single(Command(argv=["nothing-here"])) == 127
    assert err.getvalue() == "minishell: nothing-here: command not found\n"


def test_no_path_variable():
    executor, _, err = make_executor(["HOME=/tmp"])
    assert executor.run_single(Command(argv=["ls"])) == 127
    assert err.getvalue() == "minishell: ls: No such file or directory\n"


def test_pipeline_builtin_into_program():
    executor, out, _ = make_executor()
    commands = [
        Command(argv=["echo", "hello"]),
        Command(argv=[PY, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"]),
    ]
    assert executor.run_pipeline(commands) == 0
    assert out.getvalue() == "HELLO\n"


def test_pipeline_status_is_last_stage():
    executor, _, _ = make_executor()
    commands = [
        Command(argv=["echo", "x"]),
        Command(argv=[PY, "-c", "import sys; sys.stdin.read(); sys.exit(4)"]),
    ]
    assert executor.run_pipeline(commands) == 4


def test_pipeline_builtins_use_environment_copy():
    executor, _, _ = make_executor(["KEEP=1"])
    commands = [Command(argv=["export", "NEW=2"]), Command(argv=["unset", "KEEP"])]
    assert executor.run_pipeline(commands) == 0
    assert executor.env.entries() == ["KEEP=1"]


def test_pipeline_exit_does_not_leave():
    executor, _, err = make_executor()
    commands = [Command(argv=["echo", "a"]), Command(argv=["exit", "7"])]
    assert executor.run_pipeline(commands) == 7
    assert "exit\n" not in err.getvalue()


def test_pipeline_program_into_program():
    executor, out, _ = make_executor()
    commands = [
        Command(argv=[PY, "-c", "print('one'); print('two')"]),
        Command(argv=[PY, "-c", "import sys; print(len(sys.stdin.read().splitlines()))"]),
    ]
    assert executor.run_pipeline(commands) == 0
    assert out.getvalue() == "2\n"


def test_pipeline_closes_redirections(tmp_path):
    target = tmp_path / "f"
    executor, _, _ = make_executor()
    first = build_command("echo data")
    second = build_command(f"echo done > {target}")
    assert executor.run_pipeline([first, second]) == 0
    assert target.read_text() == "done\n"
    assert second.output_fd is None