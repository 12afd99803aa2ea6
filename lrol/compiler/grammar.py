"""
Value and grammar primitives for the LROL text format.

LROL documents use a deliberate subset of JSON:
- Strings are double-quoted with no escape processing (a quote cannot appear
  inside a string)
- Numbers match ``-?digits(.digits)?`` (no exponent, no leading ``+``)
- Booleans are the bare words ``true`` / ``false``
- Arrays and objects use the usual brackets with comma separators

Every recognizer works over an immutable text buffer and an explicit offset.
It returns ``(value, new_offset)`` or raises ``GrammarError`` carrying the
offset of the failure. Failures are not fatal at this layer; callers decide
how to report them.
"""

from collections.abc import Callable
from typing import Any, NamedTuple, TypeVar

T = TypeVar("T")

WHITESPACE = frozenset(" \t\r\n")

# Arrays and objects nested deeper than this are rejected
MAX_NESTING_DEPTH = 64


class GrammarError(Exception):
    """A located recognition failure."""

    def __init__(self, offset: int, message: str):
        self.offset = offset
        self.message = message
        super().__init__(f"{message} at offset {offset}")


class Member(NamedTuple):
    """An object member with the offsets of its key and value."""

    key: str
    value: Any
    key_offset: int
    value_offset: int


def position_of(text: str, offset: int) -> tuple[int, int]:
    """
    Convert an offset into a 1-based ``(line, column)`` pair.

    Lines are counted by newlines before ``offset``; the column is the
    distance from the last line start.

    Example:
        >>> position_of('{\\n  "a": x}', 9)
        (2, 8)
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def describe_value(value: Any) -> str:
    """Name the variant of a grammar value for diagnostics."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, float | int):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in WHITESPACE:
        pos += 1
    return pos


def peek(text: str, pos: int) -> str:
    """Return the character at ``pos`` or an empty string at end of input."""
    return text[pos] if pos < len(text) else ""


def expect_char(text: str, pos: int, char: str, context: str = "") -> int:
    """Require ``char`` at ``pos`` and return the offset after it."""
    found = peek(text, pos)
    if found != char:
        suffix = f" {context}" if context else ""
        if not found:
            raise GrammarError(pos, f"Expected '{char}'{suffix}, found end of input")
        raise GrammarError(pos, f"Expected '{char}'{suffix}, found '{found}'")
    return pos + 1


def parse_string(text: str, pos: int) -> tuple[str, int]:
    """Recognize a double-quoted string without escape sequences."""
    if peek(text, pos) != '"':
        raise GrammarError(pos, "Expected string")
    end = text.find('"', pos + 1)
    if end == -1:
        raise GrammarError(pos, "Unterminated string")
    return text[pos + 1 : end], end + 1


def _scan_digits(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isascii() and text[pos].isdigit():
        pos += 1
    return pos


def parse_number(text: str, pos: int) -> tuple[float, int]:
    """Recognize ``-?digits(.digits)?`` and return it as a float."""
    start = pos
    if peek(text, pos) == "-":
        pos += 1
    digits_end = _scan_digits(text, pos)
    if digits_end == pos:
        raise GrammarError(start, "Expected number")
    pos = digits_end

    # Fraction only counts when digits follow the dot
    if peek(text, pos) == ".":
        fraction_end = _scan_digits(text, pos + 1)
        if fraction_end > pos + 1:
            pos = fraction_end

    return float(text[start:pos]), pos


def parse_boolean(text: str, pos: int) -> tuple[bool, int]:
    if text.startswith("true", pos):
        return True, pos + 4
    if text.startswith("false", pos):
        return False, pos + 5
    raise GrammarError(pos, "Expected boolean")


def parse_sequence(
    text: str,
    pos: int,
    open_char: str,
    close_char: str,
    item_parser: Callable[[str, int], tuple[T, int]],
) -> tuple[list[T], int]:
    """
    Recognize ``open item (, item)* close`` with free whitespace between tokens.

    An empty sequence is allowed; a trailing comma is not.
    """
    pos = expect_char(text, pos, open_char)
    pos = skip_whitespace(text, pos)
    items: list[T] = []

    if peek(text, pos) == close_char:
        return items, pos + 1

    while True:
        item, pos = item_parser(text, pos)
        items.append(item)
        pos = skip_whitespace(text, pos)
        if peek(text, pos) == ",":
            pos = skip_whitespace(text, pos + 1)
            continue
        pos = expect_char(text, pos, close_char, f"or ',' to continue '{open_char}'")
        return items, pos


def parse_member(text: str, pos: int, depth: int = 0) -> tuple[Member, int]:
    """Recognize ``"key" : value`` inside an object opened at ``depth``."""
    key_offset = pos
    if peek(text, pos) != '"':
        raise GrammarError(pos, "Expected quoted object key")
    key, pos = parse_string(text, pos)
    pos = skip_whitespace(text, pos)
    pos = expect_char(text, pos, ":", "after object key")
    pos = skip_whitespace(text, pos)
    value_offset = pos
    value, pos = parse_value(text, pos, depth + 1)
    return Member(key, value, key_offset, value_offset), pos


def parse_members(text: str, pos: int, depth: int = 0) -> tuple[list[Member], int]:
    """Recognize an object and keep the offsets of every member."""
    return parse_sequence(text, pos, "{", "}", lambda t, p: parse_member(t, p, depth))


def parse_object(text: str, pos: int, depth: int = 0) -> tuple[dict[str, Any], int]:
    """Recognize an object; on repeated keys the last value wins."""
    members, pos = parse_members(text, pos, depth)
    return {member.key: member.value for member in members}, pos


def parse_array(text: str, pos: int, depth: int = 0) -> tuple[list[Any], int]:
    return parse_sequence(text, pos, "[", "]", lambda t, p: parse_value(t, p, depth + 1))


def parse_value(text: str, pos: int, depth: int = 0) -> tuple[Any, int]:
    """
    Dispatch on the first character to the matching recognizer.

    ``depth`` counts the arrays and objects enclosing ``pos``. Opening one
    more past ``MAX_NESTING_DEPTH`` is a ``GrammarError``.
    """
    pos = skip_whitespace(text, pos)
    char = peek(text, pos)

    if char == '"':
        return parse_string(text, pos)
    if char == "-" or (char.isascii() and char.isdigit()):
        return parse_number(text, pos)
    if char in ("t", "f"):
        return parse_boolean(text, pos)
    if char in ("[", "{") and depth >= MAX_NESTING_DEPTH:
        raise GrammarError(pos, "Nesting too deep")
    if char == "[":
        return parse_array(text, pos, depth)
    if char == "{":
        return parse_object(text, pos, depth)

    if not char:
        raise GrammarError(pos, "Expected value, found end of input")
    raise GrammarError(pos, f"Unexpected character: '{char}'")
