#!/usr/bin/env python3
"""
NIXSAMBA SCANNER - Brace Scanner (Phase 1)
------------------------------------------
Depth-counting delimiter matcher for Nix source text. Everything that is
not code (string literals and comments) is treated as inert so that a
share path such as "/srv/{a}" or a comment like "# }" can never shift
the depth count.

Author: NixSamba Team
"""

import re
import logging
from typing import Iterator, Tuple

from nixsamba.core.errors import UnbalancedDelimiters
from nixsamba.core.models import TextSpan

logger = logging.getLogger("nixsamba.scanner")

PAIRS = {'{': '}', '[': ']', '(': ')'}
OPENERS = tuple(PAIRS.keys())
CLOSERS = tuple(PAIRS.values())

# Characters allowed inside a Nix identifier (foo-bar, foo')
_IDENT_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_'-")


def _string_end(text: str, start: int) -> int:
    """End offset of a "double quoted" literal opening at start."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '\\':
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    return n


def _indented_string_end(text: str, start: int) -> int:
    """End offset of an ''indented'' literal. ''' ''$ and ''\\ are escapes."""
    i = start + 2
    while True:
        k = text.find("''", i)
        if k == -1:
            return len(text)
        if text[k + 2:k + 3] in ("'", "$", "\\"):
            i = k + 3
            continue
        return k + 2


def _walk(text: str, start: int = 0) -> Iterator[Tuple[str, TextSpan]]:
    """
    Single left-to-right pass that classifies the text into code characters
    and inert regions. Yields ("code", span-of-one-char), ("string", span)
    or ("comment", span).
    """
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            end = _string_end(text, i)
            yield "string", TextSpan(i, end)
            i = end
        elif ch == "'" and text.startswith("''", i) and (i == 0 or text[i - 1] not in _IDENT_CHARS):
            end = _indented_string_end(text, i)
            yield "string", TextSpan(i, end)
            i = end
        elif ch == '#':
            nl = text.find('\n', i)
            end = n if nl == -1 else nl
            yield "comment", TextSpan(i, end)
            i = end
        elif ch == '/' and text.startswith('/*', i):
            close = text.find('*/', i + 2)
            end = n if close == -1 else close + 2
            yield "comment", TextSpan(i, end)
            i = end
        else:
            yield "code", TextSpan(i, i + 1)
            i += 1


def inert_spans(text: str) -> Iterator[Tuple[str, TextSpan]]:
    """Yields (kind, span) for every string literal and comment."""
    for kind, span in _walk(text):
        if kind != "code":
            yield kind, span


def iter_code(text: str, start: int = 0) -> Iterator[Tuple[int, str]]:
    """Yields (offset, char) for every code character from start onwards."""
    for kind, span in _walk(text, start):
        if kind == "code":
            yield span.start, text[span.start]


def find_matching_close(text: str, open_offset: int) -> int:
    """
    Returns the offset just past the delimiter that closes the one at
    open_offset. Only the same delimiter pair is counted.

    Raises:
        ValueError: open_offset is not an opening delimiter.
        UnbalancedDelimiters: the text ends while the block is still open.
    """
    if not 0 <= open_offset < len(text) or text[open_offset] not in PAIRS:
        raise ValueError(f"Offset {open_offset} does not point at an opening delimiter")

    opener = text[open_offset]
    closer = PAIRS[opener]
    depth = 0
    for i, ch in iter_code(text, open_offset):
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i + 1

    logger.debug("Unbalanced '%s' opened at offset %d (depth %d at EOF)", opener, open_offset, depth)
    raise UnbalancedDelimiters(
        f"No matching '{closer}' for '{opener}' opened at offset {open_offset}",
        offset=open_offset,
    )


def _blank(chars: list, lo: int, hi: int) -> None:
    for j in range(lo, hi):
        if chars[j] != '\n':
            chars[j] = ' '


def mask_inert(text: str) -> str:
    """
    Same-length copy of text with comments and string interiors replaced
    by spaces. Newlines and the string quote characters survive, so
    offsets, line numbers and regex anchors stay valid on the result.
    """
    chars = list(text)
    for kind, span in inert_spans(text):
        lo, hi = span.start, span.end
        if kind == "comment":
            _blank(chars, lo, hi)
            continue
        if text[lo] == '"':
            closed = hi - lo >= 2 and text[hi - 1] == '"'
            _blank(chars, lo + 1, hi - 1 if closed else hi)
        else:
            closed = hi - lo >= 4 and text.endswith("''", lo, hi)
            _blank(chars, lo + 2, hi - 2 if closed else hi)
    return "".join(chars)


def depth_delta(masked: str, start: int, end: int) -> int:
    """Net opened-minus-closed delimiters over masked[start:end]."""
    window = masked[start:end]
    return sum(window.count(c) for c in OPENERS) - sum(window.count(c) for c in CLOSERS)


def delimiter_balance(text: str) -> int:
    """Net delimiter balance of the code portion of text (0 when balanced)."""
    masked = mask_inert(text)
    return depth_delta(masked, 0, len(masked))


# Escapes that Nix resolves inside a "double quoted" literal
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t"}
_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)


def escape_string(value: str) -> str:
    """
    Body of a "double quoted" Nix literal that evaluates to exactly value.
    Backslashes, quotes and the `${` interpolation opener are escaped.
    """
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")


def unescape_string(body: str) -> str:
    """Inverse of escape_string for the interior of a "double quoted" literal."""
    return _ESCAPE_PATTERN.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(1)), body)
