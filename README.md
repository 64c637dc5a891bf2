# minishellpy

A small interactive command shell. It reads command lines, expands
variables, splits them into pipelines and runs external programs or its own
built-in commands.

## Installation

```
pip install .
```

## Usage

Start the shell:

```
minishellpy
```

The prompt `minishell> ` is written to standard error. End the session with
`exit` or with end of input (Ctrl-D) on an empty line; the shell then leaves
with the status of the last command.

### What the shell understands

- `;` separates commands that run one after another. Each one is expanded
  with the status of the one before it.
- `|` connects commands into a pipeline. A line ending in `|` asks for a
  continuation line with a `> ` prompt.
- `<`, `>` and `>>` redirect input, output (truncating) and output
  (appending). New files are created with mode 0644. A file that cannot be
  opened is reported as `minishell: Permission denied` and gives status 1.
- Single quotes keep their contents literal; double quotes still allow
  `$VAR` expansion. The quote characters themselves are removed from words.
- `$NAME` expands from the environment (an unset name expands to nothing),
  `$?` gives the last exit status, and `$` followed by a digit is dropped
  together with that digit.

Unclosed quotes and misplaced `;`, `|`, `<`, `>` or `>>` are reported and
set the status to 258; nothing on such a line runs.

### Built-in commands

| Command  | Behaviour                                                     |
|----------|---------------------------------------------------------------|
| `echo`   | prints its arguments; any leading `-n` words drop the newline |
| `pwd`    | prints the current directory                                  |
| `cd`     | changes directory (to `$HOME` with no argument), updates `PWD` and `OLDPWD` |
| `env`    | lists the environment                                         |
| `export` | sets variables, `NAME+=text` appends; with no argument lists them sorted as `declare -x` lines |
| `unset`  | removes variables                                             |
| `exit`   | leaves the shell with the given status, taken modulo 256; a non-numeric argument gives 255 |

Inside a pipeline, built-ins run on a copy of the environment, so `cd`,
`export` and `unset` there change nothing afterwards.

Other commands are found through `PATH`, or run directly when the name
starts with `.` or `/`. A command that cannot be found ends with status 127;
one that cannot be run, 126. A program killed by a signal gives 128 plus the
signal number.

## Using it from Python

```python
import sys
from minishellpy.shell import Shell

shell = Shell(environ={"PATH": "/usr/bin:/bin"}, out=sys.stdout, err=sys.stderr)
status = shell.execute_line("export GREETING=hello; echo $GREETING world")
```

`Shell.execute_line(line)` checks and runs one line and returns its status.
`Shell.run(stream)` runs the prompt–read–execute loop over any text stream
and returns the exit status. `exit` raises `minishellpy.errors.ShellExit`,
which carries the status in its `status` attribute.

The pieces are usable on their own:

- `minishellpy.environment` — `Environment` and `expand_variables`
- `minishellpy.syntax` — `quotes_closed` and `check_redirections`
  (raises `ShellSyntaxError`)
- `minishellpy.lexer` — `split_unquoted`, `tokenize`, `strip_quotes`
- `minishellpy.command` — `build_command` and `Command`
- `minishellpy.builtins` — the built-in commands and `lookup_builtin`
- `minishellpy.executor` — `Executor`, `resolve_program`,
  `status_from_returncode`

## What it does not do

There is no line editing or command history, no here-documents (`<<`), no
`&&`, `||`, background jobs or job control, no subshells, no wildcard
expansion and no backslash escapes. Only the first operator of a line is
checked for syntax errors.

## Running the tests

```
pip install .[test]
pytest
```