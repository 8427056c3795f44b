#!/usr/bin/env python3
"""
NIXSAMBA READER - Share Archeologist
------------------------------------
Reads the shares that already exist in the settings section back into
ShareSpec values, so front ends can list them and prefill edit forms.
Only the flat `key = value;` properties of each entry are understood;
anything else inside an entry is ignored.

Author: NixSamba Team
"""

import re
import logging
from typing import Dict, List

from nixsamba.core.errors import InvalidShareSpec
from nixsamba.core.models import ShareSpec, TextSpan
from nixsamba.surgery.scanner import mask_inert, depth_delta, unescape_string
from nixsamba.surgery.locator import locate_settings_section, iter_entries

logger = logging.getLogger("nixsamba.reader")

# Samba's own [global] section lives next to the shares but is not one
RESERVED_SECTIONS = {"global"}

# Group 1/2: quoted or bare key, Group 3/4: quoted or bare value (run on masked text)
PROPERTY_PATTERN = re.compile(
    r"(?<![\w.'\"-])(?:\"(?P<qkey>[^\"\n]*)\"|(?P<bkey>[A-Za-z_][\w'-]*))"
    r"\s*=\s*(?:\"(?P<qval>[^\"\n]*)\"|(?P<bval>[\w.+/-]+))\s*;"
)

_TRUTHY = {"yes", "true", "1"}

# Samba accepts a few spellings for the same parameter
_ALIASES = {"browsable": "browseable"}


def _group_text(text: str, match: "re.Match", quoted: str, bare: str) -> str:
    if match.group(quoted) is not None:
        return unescape_string(text[match.start(quoted):match.end(quoted)])
    return text[match.start(bare):match.end(bare)]


def normalize_key(key: str) -> str:
    key = key.strip().lower().replace("_", " ")
    return _ALIASES.get(key, key)


def parse_properties(text: str, masked: str, body: TextSpan) -> Dict[str, str]:
    """
    Flat `key = value;` pairs that sit directly inside an entry body, keyed
    by normalized name. Quoted values come back unescaped.
    """
    props = {}
    last = body.inner_start
    depth = 0
    for match in PROPERTY_PATTERN.finditer(masked, body.inner_start, body.close_offset):
        depth += depth_delta(masked, last, match.start())
        last = match.start()
        if depth != 0:
            continue
        if (match.group("qkey") or "").strip() or (match.group("qval") or "").strip():
            continue
        key = _group_text(text, match, "qkey", "bkey")
        props[normalize_key(key)] = _group_text(text, match, "qval", "bval")
    return props


class ShareReader:
    """
    Extracts ShareSpec values from the settings section of a configuration.
    """

    def read(self, text: str) -> List[ShareSpec]:
        body = locate_settings_section(text)
        if body is None:
            return []

        masked = mask_inert(text)
        shares = []
        for entry in iter_entries(text, body, masked):
            if entry.name in RESERVED_SECTIONS:
                continue
            props = parse_properties(text, masked, entry.body)
            try:
                shares.append(self._to_spec(entry.name, props))
            except InvalidShareSpec as e:
                logger.warning("Skipping unreadable share '%s': %s", entry.name, e)
        return shares

    @staticmethod
    def _flag(props: Dict[str, str], key: str, default: bool) -> bool:
        if key not in props:
            return default
        return props[key].strip().lower() in _TRUTHY

    def _to_spec(self, name: str, props: Dict[str, str]) -> ShareSpec:
        return ShareSpec(
            name=name,
            path=props.get("path", ""),
            browseable=self._flag(props, "browseable", True),
            read_only=self._flag(props, "read only", False),
            guest_ok=self._flag(props, "guest ok", False),
            force_user=props.get("force user", ""),
            force_group=props.get("force group", ""),
        )


def read_shares(text: str) -> List[ShareSpec]:
    """All shares of the settings section in file order, `global` excluded."""
    return ShareReader().read(text)
