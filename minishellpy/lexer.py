"""Splitting a command line into segments and words."""

from __future__ import annotations

from .environment import NO_QUOTE, quote_state

REDIRECTIONS = (">", "<", ">>")


def _skip_quoted(line: str, pos: int, quote: str) -> int:
    """Return the position of the quote closing the one at *pos*, or the end."""
    close = line.find(quote, pos + 1)
    return len(line) if close < 0 else close


def _skip_segment(line: str, pos: int, separator: str) -> int:
    """Move past one segment, allowing a single leading separator."""
    length = len(line)
    if pos < length and line[pos] == separator:
        pos += 1
    while pos < length and line[pos] != separator:
        if line[pos] == "'":
            pos = _skip_quoted(line, pos, "'")
        if pos < length and line[pos] == '"':
            pos = _skip_quoted(line, pos, '"')
        pos += 1
    return min(pos, length)


def _count_segments(line: str, separator: str) -> int:
    count = 0
    pos = 0
    while pos < len(line):
        pos = _skip_segment(line, pos, separator)
        count += 1
        if pos < len(line):
            pos += 1
    return count


def split_unquoted(line: str, separator: str) -> list[str]:
    """Split *line* on *separator* wherever it is not inside quotes.

    Runs of separators between segments are collapsed. A leading run of
    more than one separator yields a trailing empty segment.
    """
    length = len(line)
    pos = 0
    segments: list[str] = []
    for _ in range(_count_segments(line, separator)):
        while pos < length and line[pos] == separator:
            pos += 1
        start = pos
        while pos < length and line[pos] != separator:
            if line[pos] == "'":
                pos = _skip_quoted(line, pos, "'")
            if pos < length and line[pos] == '"':
                pos = _skip_quoted(line, pos, '"')
            pos += 1
        pos = min(pos, length)
        segments.append(line[start:pos])
    return segments


def tokenize(segment: str) -> list[str]:
    """Split one pipeline segment into words and redirection operators.

    Words are separated by spaces outside quotes; ``<``, ``>`` and ``>>``
    outside quotes form tokens of their own. Quotes are kept in the words.
    """
    tokens: list[str] = []
    rest = segment.lstrip(" ")
    status = NO_QUOTE
    i = 0
    while i < len(rest):
        ch = rest[i]
        status = quote_state(ch, status)
        if status == NO_QUOTE and ch == " ":
            tokens.append(rest[:i])
            rest = rest[i + 1:].lstrip(" ")
            i = 0
        elif status == NO_QUOTE and ch in "<>":
            width = 2 if rest.startswith(">>", i) else 1
            if i:
                tokens.append(rest[:i])
            tokens.append(rest[i:i + width])
            rest = rest[i + width:].lstrip(" ")
            i = 0
        else:
            i += 1
    if rest:
        tokens.append(rest)
    return tokens


def strip_quotes(word: str) -> str:
    """Remove the quote characters that open or close a quoted part."""
    kept: list[str] = []
    status = NO_QUOTE
    for ch in word:
        new_status = quote_state(ch, status)
        if new_status == status:
            kept.append(ch)
        status = new_status
    return "".join(kept)


def is_redirection(token: str) -> bool:
    """Return True if *token* is one of ``>``, ``<`` or ``>>``."""
    return token in REDIRECTIONS


def is_empty(text: str) -> bool:
    """Return True if *text* holds nothing but spaces and tabs."""
    return all(ch in " \t" for ch in text)