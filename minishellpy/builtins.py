"""Commands the shell runs itself instead of starting a program."""

from __future__ import annotations

import enum
import os
from typing import Optional, Sequence, TextIO

from .environment import Environment
from .errors import PROMPT_NAME, ShellExit

_WHITESPACE = " \n\t\v\f\r"
_ULL_MODULUS = 2 ** 64
_LONG_MAX = 9223372036854775807
_LONG_MIN_MAGNITUDE = 9223372036854775808
_GETCWD_FAILURE = (
    "error retrieving current directory: getcwd:"
    "cannot access parent directories: "
)


class Builtin(enum.Enum):
    """The commands implemented inside the shell; each value is its command name."""

    def _generate_next_value_(name, start, count, last_values):  # noqa: N805
        return name.lower()

    ECHO = enum.auto()
    PWD = enum.auto()
    CD = enum.auto()
    ENV = enum.auto()
    EXIT = enum.auto()
    EXPORT = enum.auto()
    UNSET = enum.auto()


def lookup_builtin(name: str) -> Optional[Builtin]:
    """Return the builtin called *name*, or None for an external program."""
    try:
        return Builtin(name)
    except ValueError:
        return None


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_alpha(ch: str) -> bool:
    return "a" <= ch <= "z" or "A" <= ch <= "Z"


def parse_unsigned(text: str) -> int:
    """Read an unsigned 64-bit number, wrapping on overflow.

    Leading whitespace and one ``+`` are allowed; anything else that is
    not a digit, or more than 20 characters, gives 0.
    """
    rest = text.lstrip(_WHITESPACE)
    digits = rest[1:] if rest.startswith("+") else rest
    if not all(_is_digit(ch) for ch in digits) or len(rest) > 20:
        return 0
    return int(digits or "0") % _ULL_MODULUS


def is_numeric(text: str) -> bool:
    """Return True if *text* is a signed number that fits a 64-bit integer."""
    body = text[1:] if text[:1] in ("-", "+") else text
    number = parse_unsigned(body)
    if not all(_is_digit(ch) for ch in body) or len(body) > 19:
        return False
    negative = text.startswith("-")
    if negative and number > _LONG_MIN_MAGNITUDE:
        return False
    if not negative and number > _LONG_MAX:
        return False
    return True


def _identifier_ok(text: str, stop_at_append: bool) -> bool:
    if not text or not (text[0] == "_" or _is_alpha(text[0])):
        return False
    for index in range(1, len(text)):
        ch = text[index]
        if ch == "=":
            break
        if stop_at_append and text.startswith("+=", index):
            break
        if not (_is_alpha(ch) or _is_digit(ch) or ch == "-"):
            return False
    return True


def valid_identifier(text: str) -> bool:
    """Return True if the name part of *text* (before ``=``) is acceptable."""
    return _identifier_ok(text, stop_at_append=False)


def valid_export_identifier(text: str) -> bool:
    """Like valid_identifier, but the name may also end at ``+=``."""
    return _identifier_ok(text, stop_at_append=True)


def echo(args: Sequence[str], out: TextIO) -> int:
    """Print *args* separated by spaces; leading ``-n`` words drop the newline."""
    words = list(args)
    newline = not words or words[0] != "-n"
    start = 0
    if not newline:
        while start < len(words) and words[start] == "-n":
            start += 1
    out.write(" ".join(words[start:]))
    if newline:
        out.write("\n")
    return 0


def pwd(out: TextIO, err: TextIO) -> int:
    """Print the current directory."""
    try:
        current = os.getcwd()
    except OSError as exc:
        err.write(f"pwd: {_GETCWD_FAILURE}{os.strerror(exc.errno or 0)}\n")
        return 1
    out.write(current + "\n")
    return 0


def _report_chdir_failure(path: str, exc: OSError, err: TextIO) -> None:
    err.write(f"{PROMPT_NAME}: cd: {path} {os.strerror(exc.errno or 0)}\n")


def cd(args: Sequence[str], env: Environment, err: TextIO) -> int:
    """Change directory to the argument, or to ``$HOME`` without one."""
    if len(args) > 1:
        err.write(f"{PROMPT_NAME}: cd: too many arguments ")
        return 1
    try:
        previous: Optional[str] = os.getcwd()
    except OSError as exc:
        previous = None
        err.write(f"cd: {_GETCWD_FAILURE}{os.strerror(exc.errno or 0)}\n")

    if not args:
        home = env.find_value("HOME")
        if home is None:
            err.write(f"{PROMPT_NAME}: cd: HOME not set\n")
            return 1
        try:
            os.chdir(home)
        except OSError as exc:
            _report_chdir_failure(home, exc, err)
            return 1
        if previous is not None:
            env.update_value("OLDPWD", previous)
        return 0

    target = args[0]
    try:
        os.chdir(target)
    except OSError as exc:
        _report_chdir_failure(target, exc, err)
        return 1
    try:
        env.update_value("PWD", os.getcwd())
    except OSError:
        pass
    if previous is not None:
        env.update_value("OLDPWD", previous)
    return 0


def env_builtin(env: Environment, out: TextIO) -> int:
    """Print every environment entry on its own line."""
    for entry in env:
        out.write(entry + "\n")
    return 0


def _print_declarations(env: Environment, out: TextIO) -> None:
    for entry in sorted(env.entries()):
        name, has_eq, value = entry.partition("=")
        if has_eq:
            out.write(f'declare -x {name}="{value}"\n')
        else:
            out.write(f"declare -x {name}\n")


def _export_error(arg: str, err: TextIO) -> None:
    name, has_eq, _ = arg.partition("=")
    suffix = "=" if has_eq else ""
    err.write(f"{PROMPT_NAME}: export: '{name}{suffix}': not a valid identifier\n")


def _export_one(arg: str, env: Environment) -> None:
    eq = arg.find("=")
    append = arg.find("+=")
    if append < 0 or (0 <= eq < append):
        env.update_pair(arg)
        return
    name = arg[:append]
    old = env.find_value(name) or ""
    env.update_pair(f"{name}={old}{arg[append + 2:]}")


def export(args: Sequence[str], env: Environment, out: TextIO, err: TextIO) -> int:
    """Set variables; without arguments list them sorted."""
    if not args:
        _print_declarations(env, out)
        return 0
    status = 0
    for arg in args:
        if valid_export_identifier(arg):
            _export_one(arg, env)
        else:
            status = 1
            _export_error(arg, err)
    return status


def unset(args: Sequence[str], env: Environment, err: TextIO) -> int:
    """Remove the named variables."""
    status = 0
    for arg in args:
        if valid_identifier(arg):
            env.delete(arg)
        else:
            err.write(f"{PROMPT_NAME}: unset: `{arg}': not a valid identifier")
            status = 1
    return status


def _numeric_required(arg: str, err: TextIO) -> ShellExit:
    err.write(f"{PROMPT_NAME}: exit: {arg}: numeric argument required\n")
    return ShellExit(255)


def exit_builtin(
    args: Sequence[str], in_pipe: bool, exit_code: int, err: TextIO
) -> int:
    """Leave the shell by raising ShellExit.

    Returns 1 without leaving when given several arguments of which the
    first is numeric.
    """
    if not in_pipe:
        err.write("exit\n")
    if not args:
        raise ShellExit(exit_code & 0xFF)
    first = args[0]
    if len(args) == 1 and is_numeric(first):
        sign = -1 if first.startswith("-") else 1
        body = first[1:] if first[:1] in ("-", "+") else first
        number = parse_unsigned(body)
        if (sign == -1 and number > _LONG_MIN_MAGNITUDE) or (
            sign == 1 and number > _LONG_MAX
        ):
            raise _numeric_required(first, err)
        raise ShellExit((number * sign) & 0xFF)
    if is_numeric(first):
        err.write(f"{PROMPT_NAME}: exit: too many arguments\n")
        return 1
    raise _numeric_required(first, err)