#!/usr/bin/env python3
"""
NIXSAMBA REMOTE - Mount Surgeon
-------------------------------
Manages remote SMB shares mounted by the NixOS machine itself:

    fileSystems."/mnt/media" = {
      device = "//nas/media";
      fsType = "cifs";
      options = [ "credentials=..." "x-systemd.automount" ... "uid=..." "gid=..." ];
    };

The entries live directly in the top-level attribute set of the module and
are edited with the same offset-based surgery as the samba settings: only
the managed entry changes, every other byte is copied verbatim.

Author: NixSamba Team
"""

import re
import logging
from typing import List, Optional

from nixsamba.core.errors import ShareNotFound, DuplicateShare, InsertionPointNotFound
from nixsamba.core.models import RemoteShareSpec, TextSpan, ShareOperation, OperationKind
from nixsamba.surgery.scanner import mask_inert, depth_delta, find_matching_close, inert_spans, unescape_string
from nixsamba.surgery.locator import MOUNT_PATTERN, iter_entries, locate_top_level_attrset
from nixsamba.surgery.reader import parse_properties
from nixsamba.surgery.synthesizer import quote
from nixsamba.surgery.editor import BlockSurgeon, newline_of, stamp_operation

logger = logging.getLogger("nixsamba.remote")

# Mount behaviour shared by every managed entry: mount on first access,
# give up quickly when the server is unreachable
AUTOMOUNT_OPTIONS = (
    "x-systemd.automount",
    "noauto",
    "x-systemd.idle-timeout=300",
    "x-systemd.device-timeout=10s",
    "x-systemd.mount-timeout=10s",
)

# Only SMB mounts are listed; other fileSystems entries are left alone
REMOTE_FS_TYPES = {"cifs", "smb3"}

OPTIONS_PATTERN = re.compile(r"(?<![\w.'\"-])options\s*=\s*\[")


def mount_options(spec: RemoteShareSpec) -> List[str]:
    options = []
    if spec.credentials:
        options.append(f"credentials={spec.credentials}")
    options.extend(AUTOMOUNT_OPTIONS)
    if spec.uid:
        options.append(f"uid={spec.uid}")
    if spec.gid:
        options.append(f"gid={spec.gid}")
    return options


def render_remote(spec: RemoteShareSpec, indent: str = "", step: str = "  ", newline: str = "\n") -> str:
    """Renders one `fileSystems."<mount>" = { ... };` entry, no trailing newline."""
    lines = [
        f"fileSystems.{quote(spec.mount_point)} = {{",
        f"{step}device = {quote(spec.device)};",
        f"{step}fsType = {quote(spec.fs_type)};",
        f"{step}options = [",
    ]
    lines.extend(f"{step}{step}{quote(option)}" for option in mount_options(spec))
    lines.extend([f"{step}];", "};"])
    return newline.join(indent + line for line in lines)


def _list_strings(text: str, masked: str, body: TextSpan) -> List[str]:
    """String items of the `options = [ ... ]` list directly inside body."""
    for match in OPTIONS_PATTERN.finditer(masked, body.inner_start, body.close_offset):
        if depth_delta(masked, body.inner_start, match.start()) != 0:
            continue
        open_at = match.end() - 1
        chunk = text[open_at:find_matching_close(text, open_at)]
        return [
            unescape_string(span.slice(chunk)[1:-1])
            for kind, span in inert_spans(chunk)
            if kind == "string" and span.slice(chunk).startswith('"') and len(span) >= 2
        ]
    return []


def _option_value(options: List[str], prefix: str) -> str:
    for option in options:
        if option.startswith(prefix):
            return option[len(prefix):]
    return ""


def read_remote_shares(text: str) -> List[RemoteShareSpec]:
    """All SMB `fileSystems` entries of the top-level attribute set, in file order."""
    top = locate_top_level_attrset(text)
    if top is None:
        return []

    masked = mask_inert(text)
    shares = []
    for entry in iter_entries(text, top, masked, pattern=MOUNT_PATTERN):
        props = parse_properties(text, masked, entry.body)
        fs_type = props.get("fstype", "")
        if fs_type not in REMOTE_FS_TYPES:
            logger.debug("Skipping %s mount %s", fs_type or "untyped", entry.name)
            continue
        options = _list_strings(text, masked, entry.body)
        shares.append(RemoteShareSpec(
            mount_point=entry.name,
            device=props.get("device", ""),
            fs_type=fs_type,
            credentials=_option_value(options, "credentials="),
            uid=_option_value(options, "uid="),
            gid=_option_value(options, "gid="),
        ))
    return shares


def locate_mount(text: str, block: TextSpan, mount_point: str) -> Optional[TextSpan]:
    """Span of the first `fileSystems."<mount_point>"` entry directly inside block."""
    for entry in iter_entries(text, block, pattern=MOUNT_PATTERN):
        if entry.name == mount_point:
            return entry.span
    return None


class RemoteShareEditor(BlockSurgeon):
    """
    Add / update / remove of `fileSystems` mount entries. New entries are
    appended to the top-level attribute set of the module.
    """

    def _require_top(self, text: str) -> TextSpan:
        top = locate_top_level_attrset(text)
        if top is None:
            raise InsertionPointNotFound("Could not find a top-level attribute set for fileSystems entries")
        return top

    def _require_mount(self, text: str, top: TextSpan, mount_point: str) -> TextSpan:
        span = locate_mount(text, top, mount_point)
        if span is None:
            raise ShareNotFound(f"Remote share '{mount_point}' not found in configuration")
        return span

    def add_remote(self, text: str, spec: RemoteShareSpec) -> str:
        with stamp_operation("add", spec.mount_point):
            top = self._require_top(text)
            if locate_mount(text, top, spec.mount_point) is not None:
                raise DuplicateShare(f"Remote share '{spec.mount_point}' already exists")
            indent = self._child_indent(text, top, mask_inert(text))
            rendered = render_remote(spec, indent, self.step, newline_of(text))
            return self._checked(text, self._insert_before_close(text, top, rendered))

    def update_remote(self, text: str, spec: RemoteShareSpec, old_mount: Optional[str] = None) -> str:
        """
        Rewrites the entry of old_mount (default: spec.mount_point) in place.
        A changed mount point keeps the entry's position in the file.
        """
        target = old_mount or spec.mount_point
        with stamp_operation("update", target):
            top = self._require_top(text)
            span = self._require_mount(text, top, target)
            if spec.mount_point != target and locate_mount(text, top, spec.mount_point) is not None:
                raise DuplicateShare(
                    f"Cannot move '{target}': remote share '{spec.mount_point}' already exists"
                )
            nl = newline_of(text)
            new_text = self._replace_entry(
                text, top, span, lambda indent: render_remote(spec, indent, self.step, nl)
            )
            return self._checked(text, new_text)

    def remove_remote(self, text: str, mount_point: str) -> str:
        with stamp_operation("remove", mount_point):
            top = self._require_top(text)
            span = self._require_mount(text, top, mount_point)
            return self._checked(text, self._cut_entry(text, span))

    def apply(self, text: str, operation: ShareOperation) -> str:
        if operation.kind is OperationKind.REMOVE:
            if not operation.name:
                raise ValueError("Remove operation needs a mount point")
            return self.remove_remote(text, operation.name)
        if not isinstance(operation.spec, RemoteShareSpec):
            raise ValueError(f"{operation.kind.value} operation needs a RemoteShareSpec")
        if operation.kind is OperationKind.ADD:
            return self.add_remote(text, operation.spec)
        return self.update_remote(text, operation.spec, operation.old_name)

    def list_remotes(self, text: str) -> List[RemoteShareSpec]:
        return read_remote_shares(text)


_default_editor = RemoteShareEditor()


def add_remote(text: str, spec: RemoteShareSpec) -> str:
    return _default_editor.add_remote(text, spec)


def update_remote(text: str, spec: RemoteShareSpec, old_mount: Optional[str] = None) -> str:
    return _default_editor.update_remote(text, spec, old_mount)


def remove_remote(text: str, mount_point: str) -> str:
    return _default_editor.remove_remote(text, mount_point)
