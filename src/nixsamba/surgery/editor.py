#!/usr/bin/env python3
"""
NIXSAMBA EDITOR - The Surgeon (Phase 4)
---------------------------------------
Implements add / update / remove of share entries as pure rewrites of the
configuration text:

    (old_text, operation) -> new_text   or a typed ShareEditError

Every call re-scans the text it is given; no offsets survive between
calls. Bytes outside the managed entry are copied verbatim, new lines use
the file's own separator (LF or CRLF), and the result must have the same
delimiter balance as the input.

Author: NixSamba Team
"""

import logging
from contextlib import contextmanager
from typing import List, Optional

from nixsamba.core.errors import (
    ShareEditError, UnbalancedDelimiters, SectionMissing, ShareNotFound,
    DuplicateShare, InsertionPointNotFound
)
from nixsamba.core.models import ShareSpec, TextSpan, ShareOperation, OperationKind
from nixsamba.surgery.scanner import mask_inert, delimiter_balance
from nixsamba.surgery.locator import (
    locate_settings_section, locate_share, locate_samba_block,
    locate_top_level_attrset, iter_entries
)
from nixsamba.surgery.synthesizer import render, render_section, render_settings_attr
from nixsamba.surgery.reader import read_shares

logger = logging.getLogger("nixsamba.editor")

_HSPACE = " \t"
# Trailing whitespace of a CRLF line still counts as "nothing else on the line"
_LINE_WS = " \t\r"


def newline_of(text: str) -> str:
    """Line separator used by text: CRLF when present, LF otherwise."""
    return "\r\n" if "\r\n" in text else "\n"


def _line_start(text: str, offset: int) -> int:
    return text.rfind("\n", 0, offset) + 1


def _line_end(text: str, offset: int) -> int:
    """Offset of the next LF at or after offset (or len(text))."""
    nl = text.find("\n", offset)
    return len(text) if nl == -1 else nl


def _leading_ws(text: str, offset: int) -> str:
    """Indentation of the line that contains offset."""
    start = _line_start(text, offset)
    end = start
    while end < len(text) and text[end] in _HSPACE:
        end += 1
    return text[start:end]


def _blank_before(text: str, offset: int) -> bool:
    return text[_line_start(text, offset):offset].strip(_HSPACE) == ""


@contextmanager
def stamp_operation(name: str, share_name: Optional[str]):
    """Stamps the attempted operation onto any error raised inside."""
    try:
        yield
    except ShareEditError as e:
        if e.operation is None:
            e.operation = name
        if e.share_name is None:
            e.share_name = share_name
        logger.warning("%s of share '%s' rejected: %s", name, share_name, e.message)
        raise


class BlockSurgeon:
    """
    Layout-preserving primitives shared by the share and mount editors:
    indentation discovery, insertion before a closing brace, entry removal
    and the delimiter-balance check.
    """

    def __init__(self, indent_step: str = "  "):
        self.step = indent_step

    def _child_indent(self, text: str, block: TextSpan, masked: str) -> str:
        """
        Indentation for a new direct child of block: copy the first existing
        entry, else the first inner line, else the block's own line plus one step.
        """
        for entry in iter_entries(text, block, masked):
            if _blank_before(text, entry.span.start):
                return _leading_ws(text, entry.span.start)
            break

        close_line = _line_start(text, block.close_offset)
        pos = _line_end(text, block.start) + 1
        while pos < close_line:
            end = _line_end(text, pos)
            if masked[pos:end].strip():
                return _leading_ws(text, pos)
            pos = end + 1

        return _leading_ws(text, block.start) + self.step

    def _insert_before_close(self, text: str, block: TextSpan, rendered: str) -> str:
        """Places rendered (already indented, no trailing newline) as the last child of block."""
        nl = newline_of(text)
        close = block.close_offset
        line_start = _line_start(text, close)

        if line_start > block.start and text[line_start:close].strip(_HSPACE) == "":
            return text[:line_start] + rendered + nl + text[line_start:]

        # Closing brace shares its line with other content: break it out
        cut = close
        while cut > block.inner_start and text[cut - 1] in _HSPACE:
            cut -= 1
        return text[:cut] + nl + rendered + nl + _leading_ws(text, block.start) + text[close:]

    def _cut_entry(self, text: str, span: TextSpan) -> str:
        """
        Deletes span. An entry that owns its lines takes them and their line
        break with it; an inline entry takes one adjacent run of spaces.
        """
        line_start = _line_start(text, span.start)
        line_end = _line_end(text, span.end)
        owns_lines = (text[line_start:span.start].strip(_HSPACE) == ""
                      and text[span.end:line_end].strip(_LINE_WS) == "")

        if owns_lines:
            start, end = line_start, min(line_end + 1, len(text))
        else:
            start, end = span.start, span.end
            while end < len(text) and text[end] in _HSPACE:
                end += 1
            if end == span.end:
                while start > line_start and text[start - 1] in _HSPACE:
                    start -= 1

        return text[:start] + text[end:]

    def _replace_entry(self, text: str, parent: TextSpan, span: TextSpan, render_at) -> str:
        """
        Swaps span for render_at(indent), keeping the entry's own indentation
        (or that of its siblings when it shares a line).
        """
        if _blank_before(text, span.start):
            indent = _leading_ws(text, span.start)
        else:
            indent = self._child_indent(text, parent, mask_inert(text))
        rendered = render_at(indent)[len(indent):]
        return text[:span.start] + rendered + text[span.end:]

    def _checked(self, old_text: str, new_text: str) -> str:
        before = delimiter_balance(old_text)
        after = delimiter_balance(new_text)
        if before != after:
            raise UnbalancedDelimiters(
                f"Rewrite would change delimiter balance from {before} to {after}"
            )
        return new_text


class ShareEditor(BlockSurgeon):
    """
    Orchestrates Section Locator, Share Entry Locator and Block Synthesizer
    into the three edit operations.
    """

    def _require_section(self, text: str) -> TextSpan:
        body = locate_settings_section(text)
        if body is None:
            raise SectionMissing("Configuration has no services.samba.settings section")
        return body

    def _require_share(self, text: str, body: TextSpan, name: str) -> TextSpan:
        span = locate_share(text, body, name)
        if span is None:
            raise ShareNotFound(f"Share '{name}' not found in configuration")
        return span

    # --- Operations ---

    def add_share(self, text: str, spec: ShareSpec) -> str:
        """
        Appends spec after the existing entries. A missing settings section is
        created inside `services.samba = { ... }` when that block exists, else
        at the end of the top-level attribute set.
        """
        with stamp_operation("add", spec.name):
            masked = mask_inert(text)
            nl = newline_of(text)
            body = locate_settings_section(text)

            if body is not None:
                if locate_share(text, body, spec.name) is not None:
                    raise DuplicateShare(f"Share '{spec.name}' already exists")
                indent = self._child_indent(text, body, masked)
                new_text = self._insert_before_close(text, body, render(spec, indent, self.step, nl))
            else:
                samba = locate_samba_block(text, masked)
                if samba is not None:
                    indent = self._child_indent(text, samba, masked)
                    block = render_settings_attr(spec, indent, self.step, nl)
                    new_text = self._insert_before_close(text, samba, block)
                else:
                    top = locate_top_level_attrset(text)
                    if top is None:
                        raise InsertionPointNotFound(
                            "Could not find a top-level attribute set to add services.samba.settings to"
                        )
                    indent = self._child_indent(text, top, masked)
                    block = render_section(spec, indent, self.step, nl)
                    new_text = self._insert_before_close(text, top, block)
                logger.info("Created services.samba.settings for share '%s'", spec.name)

            return self._checked(text, new_text)

    def update_share(self, text: str, spec: ShareSpec, old_name: Optional[str] = None) -> str:
        """
        Replaces the entry named old_name (default: spec.name) with spec,
        in place. Other entries keep their position and bytes.
        """
        target = old_name or spec.name
        with stamp_operation("update", target):
            body = self._require_section(text)
            span = self._require_share(text, body, target)
            if spec.name != target and locate_share(text, body, spec.name) is not None:
                raise DuplicateShare(f"Cannot rename '{target}': share '{spec.name}' already exists")

            nl = newline_of(text)
            new_text = self._replace_entry(
                text, body, span, lambda indent: render(spec, indent, self.step, nl)
            )
            return self._checked(text, new_text)

    def remove_share(self, text: str, name: str) -> str:
        """
        Deletes the entry named name with its terminator. An entry that owns
        its lines takes them (and one line break) with it.
        """
        with stamp_operation("remove", name):
            body = self._require_section(text)
            span = self._require_share(text, body, name)
            return self._checked(text, self._cut_entry(text, span))

    def apply(self, text: str, operation: ShareOperation) -> str:
        """Dispatches a ShareOperation to the matching edit."""
        if operation.kind is OperationKind.REMOVE:
            if not operation.name:
                raise ValueError("Remove operation needs a share name")
            return self.remove_share(text, operation.name)
        if operation.spec is None:
            raise ValueError(f"{operation.kind.value} operation needs a ShareSpec")
        if operation.kind is OperationKind.ADD:
            return self.add_share(text, operation.spec)
        return self.update_share(text, operation.spec, operation.old_name)

    def list_shares(self, text: str) -> List[ShareSpec]:
        return read_shares(text)


_default_editor = ShareEditor()


def add_share(text: str, spec: ShareSpec) -> str:
    return _default_editor.add_share(text, spec)


def update_share(text: str, spec: ShareSpec, old_name: Optional[str] = None) -> str:
    return _default_editor.update_share(text, spec, old_name)


def remove_share(text: str, name: str) -> str:
    return _default_editor.remove_share(text, name)


def apply_operation(text: str, operation: ShareOperation) -> str:
    return _default_editor.apply(text, operation)
