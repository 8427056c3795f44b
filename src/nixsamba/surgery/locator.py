#!/usr/bin/env python3
"""
NIXSAMBA LOCATOR - Section & Share Entry Locator (Phase 2)
----------------------------------------------------------
Finds the byte ranges the editor operates on:

1. The `services.samba.settings = { ... }` body (dotted form), or the
   `settings = { ... }` child of a `services.samba = { ... }` block.
2. The `"name" = { ... };` entries that live directly inside it.

All regex searches run on the masked text produced by the scanner, so a
key path quoted in a string or mentioned in a comment is never matched.

Author: NixSamba Team
"""

import re
import logging
from dataclasses import dataclass
from typing import Iterator, Optional

from nixsamba.core.models import TextSpan
from nixsamba.surgery.scanner import (
    OPENERS, CLOSERS, mask_inert, find_matching_close, depth_delta, unescape_string
)

logger = logging.getLogger("nixsamba.locator")

# A key must not continue a longer attribute path (foo.services...) or identifier
_KEY_BOUNDARY = r"(?<![\w.'\"-])"

SECTION_PATTERN = re.compile(_KEY_BOUNDARY + r"services\.samba\.settings\s*=\s*\{")
SAMBA_BLOCK_PATTERN = re.compile(_KEY_BOUNDARY + r"services\.samba\s*=\s*\{")

# Group 'quoted': blanked interior of a "quoted key" (read back from the raw text)
# Group 'bare': plain identifier key such as `global` or `settings`
ENTRY_PATTERN = re.compile(
    _KEY_BOUNDARY + r"(?:\"(?P<quoted>[^\"\n]*)\"|(?P<bare>[A-Za-z_][\w'-]*))\s*=\s*\{"
)
TERMINATOR_PATTERN = re.compile(r"\s*;")

# `fileSystems."/mnt/x" = {` mount entries, same groups as ENTRY_PATTERN
MOUNT_PATTERN = re.compile(
    _KEY_BOUNDARY + r"fileSystems\.(?:\"(?P<quoted>[^\"\n]*)\"|(?P<bare>[A-Za-z_][\w'-]*))\s*=\s*\{"
)


@dataclass(frozen=True)
class EntrySpan:
    """One `key = { ... };` statement inside a block."""
    name: str
    span: TextSpan      # From the first key character through the terminator
    body: TextSpan      # The `{ ... }` value, braces included


def iter_entries(text: str, block: TextSpan, masked: Optional[str] = None,
                 pattern: "re.Pattern" = ENTRY_PATTERN) -> Iterator[EntrySpan]:
    """
    Yields every attribute-set valued entry that is a direct child of block,
    in file order. Nested blocks are skipped whole. `pattern` must expose
    the `quoted` and `bare` groups of ENTRY_PATTERN.
    """
    if masked is None:
        masked = mask_inert(text)

    pos = last = block.inner_start
    limit = block.close_offset
    depth = 0

    while pos < limit:
        match = pattern.search(masked, pos, limit)
        if not match:
            return

        depth += depth_delta(masked, last, match.start())
        last = match.start()
        if depth != 0:
            pos = match.end()
            continue

        # A quoted key's interior is fully blanked; anything else spans two strings
        if match.group("quoted") is not None and match.group("quoted").strip():
            pos = match.start() + 1
            continue

        if match.group("quoted") is not None:
            name = unescape_string(text[match.start("quoted"):match.end("quoted")])
        else:
            name = match.group("bare")

        open_at = match.end() - 1
        close_end = find_matching_close(text, open_at)
        tail = TERMINATOR_PATTERN.match(masked, close_end)
        end = tail.end() if tail else close_end

        yield EntrySpan(name=name, span=TextSpan(match.start(), end), body=TextSpan(open_at, close_end))
        pos = last = end


def locate_share(text: str, settings_body: TextSpan, name: str) -> Optional[TextSpan]:
    """
    Span of the first entry keyed exactly `name`, terminator included.
    Returns None when the share is absent.
    """
    for entry in iter_entries(text, settings_body):
        if entry.name == name:
            return entry.span
    return None


def locate_samba_block(text: str, masked: Optional[str] = None) -> Optional[TextSpan]:
    """Body span of a `services.samba = { ... }` block, if any."""
    if masked is None:
        masked = mask_inert(text)
    match = SAMBA_BLOCK_PATTERN.search(masked)
    if not match:
        return None
    open_at = match.end() - 1
    return TextSpan(open_at, find_matching_close(text, open_at))


def locate_settings_section(text: str) -> Optional[TextSpan]:
    """
    Body span (braces included) of the samba settings attribute set.

    The dotted `services.samba.settings = {` form is preferred; otherwise
    a `settings = {` entry directly inside `services.samba = { ... }` is
    accepted. None means the configuration has no settings yet.
    """
    masked = mask_inert(text)

    match = SECTION_PATTERN.search(masked)
    if match:
        open_at = match.end() - 1
        return TextSpan(open_at, find_matching_close(text, open_at))

    samba = locate_samba_block(text, masked)
    if samba is None:
        logger.debug("No services.samba key path in configuration")
        return None

    for entry in iter_entries(text, samba, masked):
        if entry.name == "settings":
            return entry.body
    logger.debug("services.samba block at offset %d has no settings child", samba.start)
    return None


def locate_top_level_attrset(text: str) -> Optional[TextSpan]:
    """
    The last `{ ... }` group at nesting depth zero. For a NixOS module
    `{ config, pkgs, ... }: { ... }` this is the configuration body.
    """
    masked = mask_inert(text)
    depth = 0
    found = None
    i = 0
    while i < len(masked):
        ch = masked[i]
        if ch == '{' and depth == 0:
            end = find_matching_close(text, i)
            found = TextSpan(i, end)
            i = end
            continue
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        i += 1
    return found
