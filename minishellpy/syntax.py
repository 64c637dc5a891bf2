"""Checks a command line for unclosed quotes and misplaced operators."""

from __future__ import annotations

_WHITESPACE = " \n\t\v\f\r"


class ShellSyntaxError(ValueError):
    """A token appears where the grammar does not allow it."""

    def __init__(self, token: str) -> None:
        super().__init__(f"syntax error near unexpected token '{token}'")
        self.token = token


def quotes_closed(line: str) -> bool:
    """Return True if every quote opened in *line* is closed."""
    single = double = False
    for ch in line:
        if ch == "'":
            if single:
                single = False
            elif not double:
                single = True
        elif ch == '"':
            if double:
                double = False
            elif not single:
                double = True
    return not (single or double)


def _skip_whitespace(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] in _WHITESPACE:
        pos += 1
    return pos


def _check_separator(line: str, pos: int) -> None:
    pos = _skip_whitespace(line, pos)
    rest = line[pos:]
    if rest.startswith(";;"):
        raise ShellSyntaxError(";;")
    if rest.startswith(";"):
        raise ShellSyntaxError(";")
    if rest.startswith("|"):
        raise ShellSyntaxError("|")


def _check_redirection(line: str, pos: int) -> None:
    if line[pos - 1] == ">" and pos < len(line) and line[pos] == ">":
        pos += 1
    pos = _skip_whitespace(line, pos)
    rest = line[pos:]
    if rest.startswith("<"):
        raise ShellSyntaxError("<")
    if rest.startswith(">>"):
        raise ShellSyntaxError(">>")
    if rest.startswith(">"):
        raise ShellSyntaxError(">")
    if not rest:
        raise ShellSyntaxError("newline")
    _check_separator(line, pos)


def check_redirections(line: str) -> None:
    """Raise ShellSyntaxError if *line* starts or continues with a bad operator.

    Only the first ``|``, ``;`` or redirection outside quotes is examined.
    """
    _check_separator(line, 0)
    pos = 0
    length = len(line)
    while pos < length:
        ch = line[pos]
        if ch in "'\"":
            close = line.find(ch, pos + 1)
            pos = length if close < 0 else close + 1
            if pos >= length:
                return
            ch = line[pos]
        if ch in "|;":
            _check_separator(line, pos + 1)
            return
        if ch in "<>":
            _check_redirection(line, pos + 1)
            return
        pos += 1