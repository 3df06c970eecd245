"""Escape-aware character scanning and bracket pairing.

Every reserved character appearing literally inside text or an attribute
value is written with the escape character ``^`` in front of it. The
helpers here answer "is this an unescaped occurrence of c" and build the
boundary tests and bracket matcher used by the parsers on top of that.
"""

from __future__ import annotations

from typing import overload

ESCAPE = "^"

RESERVED: tuple[str, ...] = (
    "^",
    ":",
    "{",
    "}",
    "[",
    "]",
    "(",
    ")",
    "<",
    ">",
    "=",
    ";",
)

BRACKETS: dict[str, str] = {"{": "}", "<": ">", "[": "]"}


def quote(c: str) -> str:
    """Return the escaped form of a single character."""
    return ESCAPE + c


@overload
def compile(s: str, reserved: tuple[str, ...] = ...) -> str: ...
@overload
def compile(s: None, reserved: tuple[str, ...] = ...) -> None: ...
def compile(s: str | None, reserved: tuple[str, ...] = RESERVED) -> str | None:  # noqa: A001
    """Escape every reserved character of ``s``.

    Args:
        s: Raw string, or None
        reserved: Characters to escape (defaults to the full reserved set)

    Returns:
        The escaped string, or None if ``s`` is None

    """
    if s is None:
        return None
    return "".join(quote(c) if c in reserved else c for c in s)


@overload
def decompile(s: str, reserved: tuple[str, ...] = ...) -> str: ...
@overload
def decompile(s: None, reserved: tuple[str, ...] = ...) -> None: ...
def decompile(s: str | None, reserved: tuple[str, ...] = RESERVED) -> str | None:
    """Undo :func:`compile`.

    A ``^`` followed by a reserved character is dropped; any other ``^`` is
    kept as is.
    """
    if s is None:
        return None
    out: list[str] = []
    i = 0
    while i < len(s):
        if s[i] == ESCAPE and i + 1 < len(s) and s[i + 1] in reserved:
            out.append(s[i + 1])
            i += 2
        else:
            out.append(s[i])
            i += 1
    return "".join(out)


def _escaped(s: str, i: int) -> bool:
    """Whether position i is preceded by an odd run of escape characters."""
    run = 0
    j = i - 1
    while j >= 0 and s[j] == ESCAPE:
        run += 1
        j -= 1
    return run % 2 == 1


def char_at_equals(s: str, i: int, c: str) -> bool:
    """Check for an unescaped occurrence of ``c`` at index ``i``.

    Args:
        s: String to inspect
        i: Index into ``s``; out-of-range indexes never match
        c: Single character to look for

    Returns:
        True if ``s[i] == c`` and that occurrence is not escaped

    """
    if not 0 <= i < len(s) or s[i] != c:
        return False
    if _escaped(s, i):
        return False
    # "^^" is one escaped caret, not a bare one
    return not (c == ESCAPE and i + 1 < len(s) and s[i + 1] == ESCAPE)


def char_at_equals_any(s: str, i: int, *cs: str) -> bool:
    """Check for an unescaped occurrence of any of ``cs`` at index ``i``."""
    return any(char_at_equals(s, i, c) for c in cs)


def index_of(s: str, c: str, start: int = 0) -> int:
    """Return the index of the first unescaped ``c`` from ``start``, or -1."""
    for i in range(start, len(s)):
        if char_at_equals(s, i, c):
            return i
    return -1


def last_index_of(s: str, c: str, start: int | None = None) -> int:
    """Return the index of the last unescaped ``c`` up to ``start``, or -1."""
    if start is None:
        start = len(s) - 1
    for i in range(start, -1, -1):
        if char_at_equals(s, i, c):
            return i
    return -1


def starts_with(s: str, c: str) -> bool:
    """Check that ``s`` starts with an unescaped ``c``."""
    return char_at_equals(s, 0, c)


def ends_with(s: str, c: str) -> bool:
    """Check that ``s`` ends with an unescaped ``c``."""
    return char_at_equals(s, len(s) - 1, c)


def wrapped_by(s: str, start: str, end: str | None = None) -> bool:
    """Check that ``s`` opens with ``start`` and closes with ``end``.

    ``end`` defaults to ``start``.
    """
    return starts_with(s, start) and ends_with(s, start if end is None else end)


def split(s: str, sep: str) -> list[str]:
    """Split ``s`` on every unescaped ``sep``."""
    parts: list[str] = []
    last = 0
    for i in range(len(s)):
        if char_at_equals(s, i, sep):
            parts.append(s[last:i])
            last = i + 1
    parts.append(s[last:])
    return parts


def pair_brackets(
    s: str,
    open: str,  # noqa: A002
    close: str,
    required_depth: int = 0,
) -> tuple[int, int]:
    """Find the first complete bracket pair at a given nesting depth.

    Depth starts at 0. Each unescaped ``open`` met while the depth equals
    ``required_depth`` records a provisional start, then the depth is
    incremented. Each unescaped ``close`` decrements the depth, and the pair
    is returned as soon as the depth comes back to ``required_depth``.

    Args:
        s: String to scan
        open: Opening bracket character
        close: Closing bracket character
        required_depth: Nesting depth of the pair to find

    Returns:
        ``(start, end)`` indexes of the pair; ``end`` is -1 when no pair was
        completed, in which case ``start`` is the last provisional start or -1

    Example:
        >>> pair_brackets("{a{b}c}", "{", "}")
        (0, 6)
        >>> pair_brackets("{a{b}c}", "{", "}", 1)
        (2, 4)

    """
    depth = 0
    start = -1
    for i in range(len(s)):
        if char_at_equals(s, i, open):
            if depth == required_depth:
                start = i
            depth += 1
        elif char_at_equals(s, i, close):
            depth -= 1
            if depth == required_depth:
                return start, i
    return start, -1


type Segment = tuple[str, bool]


def split_groups(s: str) -> list[Segment]:
    """Split ``s`` into its top-level bracket groups.

    Any of ``{}``, ``<>`` and ``[]`` opens a group. Text between groups (or
    after an unterminated opening bracket) is returned as residual.

    Returns:
        ``(text, is_group)`` segments in order. Whitespace-only residual is
        dropped.

    """
    segments: list[Segment] = []
    residual_start = 0
    i = 0
    while i < len(s):
        c = s[i]
        if c not in BRACKETS or not char_at_equals(s, i, c):
            i += 1
            continue
        _, end = pair_brackets(s[i:], c, BRACKETS[c])
        if end < 0:
            break
        _append_residual(segments, s[residual_start:i])
        segments.append((s[i : i + end + 1], True))
        i += end + 1
        residual_start = i
    _append_residual(segments, s[residual_start:])
    return segments


def _append_residual(segments: list[Segment], text: str) -> None:
    if text.strip():
        segments.append((text, False))


def has_unescaped(s: str, chars: tuple[str, ...] = RESERVED) -> bool:
    """Whether ``s`` contains any unescaped character out of ``chars``."""
    return any(
        char_at_equals(s, i, c)
        for i, c in enumerate(s)
        if c in chars and c != ESCAPE
    )

