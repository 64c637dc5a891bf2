"""The shell's environment table and ``$`` variable expansion."""

from __future__ import annotations

from typing import Iterable, Iterator, Optional

NO_QUOTE = 0
DOUBLE_QUOTE = 1
SINGLE_QUOTE = 2


def _is_alpha(ch: str) -> bool:
    return "a" <= ch <= "z" or "A" <= ch <= "Z"


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _match(entry: str, key: str) -> Optional[str]:
    """Return the value of *entry* if its name matches *key*, else None.

    *key* may itself be a ``NAME=VALUE`` pair; only the name part counts.
    Entries without ``=`` match only a key that carries ``=``.
    """
    name, has_eq, value = entry.partition("=")
    key_name, key_has_eq, _ = key.partition("=")
    if key_name != name or not (has_eq or key_has_eq):
        return None
    return value if has_eq else ""


class Environment:
    """An ordered list of ``NAME=VALUE`` (or bare ``NAME``) entries."""

    def __init__(self, entries: Optional[Iterable[str]] = None) -> None:
        self._entries: list[str] = list(entries or ())

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def find_value(self, key: str) -> Optional[str]:
        """Return the value stored for *key*, or None."""
        for entry in self._entries:
            value = _match(entry, key)
            if value is not None:
                return value
        return None

    def find_index(self, key: str) -> Optional[int]:
        """Return the position of the entry for *key*, or None."""
        for index, entry in enumerate(self._entries):
            if _match(entry, key) is not None:
                return index
        return None

    def update_pair(self, pair: str) -> None:
        """Replace the entry named by *pair*, or append it."""
        index = self.find_index(pair)
        if index is None:
            self._entries.append(pair)
        else:
            self._entries[index] = pair

    def update_value(self, key: str, value: str) -> None:
        """Set *key* to *value*."""
        pair = f"{key}={value}"
        index = self.find_index(key)
        if index is None:
            self._entries.append(pair)
        else:
            self._entries[index] = pair

    def delete(self, key: str) -> None:
        """Remove the entry for *key* if there is one."""
        index = self.find_index(key)
        if index is not None:
            del self._entries[index]

    def copy(self) -> "Environment":
        return Environment(self._entries)

    def entries(self) -> list[str]:
        return list(self._entries)

    def to_dict(self) -> dict[str, str]:
        """Entries that carry a value, as a mapping for child processes."""
        result: dict[str, str] = {}
        for entry in self._entries:
            name, has_eq, value = entry.partition("=")
            if has_eq:
                result[name] = value
        return result


def quote_state(ch: str, status: int) -> int:
    """Return the quoting state after reading *ch* in state *status*."""
    if ch == '"' and status == NO_QUOTE:
        return DOUBLE_QUOTE
    if ch == "'" and status == NO_QUOTE:
        return SINGLE_QUOTE
    if (ch == '"' and status == DOUBLE_QUOTE) or (ch == "'" and status == SINGLE_QUOTE):
        return NO_QUOTE
    return status


def expand_variables(line: str, env: Environment, exit_code: int) -> str:
    """Expand ``$?`` and ``$NAME`` outside single quotes.

    ``$`` followed by a digit drops both characters; outside quotes ``$``
    directly before a quote is dropped. Substituted text is scanned again.
    """
    text = line
    i = 0
    status = NO_QUOTE
    while i < len(text):
        status = quote_state(text[i], status)
        if text[i] != "$" or status == SINGLE_QUOTE:
            i += 1
            continue
        nxt = text[i + 1] if i + 1 < len(text) else ""
        if nxt == "?":
            text = text[:i] + str(exit_code) + text[i + 2:]
        elif nxt and _is_digit(nxt):
            text = text[:i] + text[i + 2:]
        elif status == NO_QUOTE and nxt in ('"', "'") and nxt:
            text = text[:i] + text[i + 1:]
        elif nxt and (_is_alpha(nxt) or nxt == "_"):
            stop = i + 1
            while stop < len(text) and (
                _is_alpha(text[stop]) or _is_digit(text[stop]) or text[stop] == "_"
            ):
                stop += 1
            value = env.find_value(text[i + 1:stop]) or ""
            text = text[:i] + value + text[stop:]
        else:
            i += 1
    return text