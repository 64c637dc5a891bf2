import pytest

from minishellpy.syntax import ShellSyntaxError, check_redirections, quotes_closed


@pytest.mark.parametrize(
    "line",
    ["echo hi", "echo 'a'", 'echo "a"', "echo \"it's\"", "echo '\"'"],
)
def test_quotes_closed(line):
    assert quotes_closed(line) is True


@pytest.mark.parametrize("line", ["echo 'a", 'echo "a', "echo 'a' \"", "'\"'\""])
def test_quotes_open(line):
    assert quotes_closed(line) is False


@pytest.mark.parametrize(
    "line,token",
    [
        (";; echo", ";;"),
        ("; echo", ";"),
        ("  | ls", "|"),
        ("echo a ;; b", ";"),
        ("echo a | | b", "|"),
        ("echo > ", "newline"),
        ("echo >", "newline"),
        ("echo > < f", "<"),
        ("echo >>> f", ">"),
        ("echo > >> f", ">>"),
        ("cat < | x", "|"),
        ("echo >> ;", ";"),
    ],
)
def test_syntax_errors(line, token):
    with pytest.raises(ShellSyntaxError) as info:
        check_redirections(line)
    assert info.value.token == token
    assert str(info.value) == f"syntax error near unexpected token '{token}'"


@pytest.mark.parametrize(
    "line",
    [
        "echo hi",
        "echo hi | cat",
        "echo hi > out",
        "echo hi >> out",
        "cat < in",
        "echo a;",
        "echo '|' ';'",
        "echo \"a\"",
    ],
)
def test_valid_lines(line):
    assert check_redirections(line) is None


def test_quoted_operator_is_ignored_until_real_one():
    with pytest.raises(ShellSyntaxError) as info:
        check_redirections("echo '>' > ;")
    assert info.value.token == ";"


def test_is_value_error():
    with pytest.raises(ValueError):
        check_redirections(";")