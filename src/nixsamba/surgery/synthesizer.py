#!/usr/bin/env python3
"""
NIXSAMBA SYNTHESIZER - Block Synthesizer (Phase 3)
--------------------------------------------------
Renders a ShareSpec into the canonical share entry layout. Samba reads
booleans as yes/no, so the Nix literals true/false are never emitted.
Text fields are escaped so the literal evaluates to exactly the given
characters (`\\` and `${` included).

Author: NixSamba Team
"""

from typing import List

from nixsamba.core.models import ShareSpec
from nixsamba.surgery.scanner import escape_string

SECTION_KEY = "services.samba.settings"


def yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def quote(value: str) -> str:
    return f'"{escape_string(value)}"'


def _entry_lines(spec: ShareSpec, step: str) -> List[str]:
    return [
        f'{quote(spec.name)} = {{',
        f'{step}path = {quote(spec.path)};',
        f'{step}browseable = {yes_no(spec.browseable)};',
        f'{step}"read only" = {yes_no(spec.read_only)};',
        f'{step}"guest ok" = {yes_no(spec.guest_ok)};',
        f'{step}"force user" = {quote(spec.force_user)};',
        f'{step}"force group" = {quote(spec.force_group)};',
        "};",
    ]


def render(spec: ShareSpec, indent: str = "", step: str = "  ", newline: str = "\n") -> str:
    """
    Renders one share entry. Every line starts with `indent`; properties
    sit one `step` deeper. Lines are joined with `newline`, no trailing one.
    """
    return newline.join(indent + line for line in _entry_lines(spec, step))


def _wrap(opening: str, spec: ShareSpec, indent: str, step: str, newline: str) -> str:
    return newline.join([
        f"{indent}{opening} = {{",
        render(spec, indent + step, step, newline),
        f"{indent}}};",
    ])


def render_section(spec: ShareSpec, indent: str = "", step: str = "  ", newline: str = "\n") -> str:
    """A complete `services.samba.settings = { ... };` holding one entry."""
    return _wrap(SECTION_KEY, spec, indent, step, newline)


def render_settings_attr(spec: ShareSpec, indent: str = "", step: str = "  ", newline: str = "\n") -> str:
    """A `settings = { ... };` attribute for an existing services.samba block."""
    return _wrap("settings", spec, indent, step, newline)
