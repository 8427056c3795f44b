#!/usr/bin/env python3
"""
NIXSAMBA CORE MODELS
--------------------
Defines the fundamental data structures used across the NixSamba engine.
These models describe a share independently of its textual rendering,
and the spans the surgery layer hands around while rewriting a file.

Author: NixSamba Team
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional, Union, Dict, Any

from nixsamba.core.errors import InvalidShareSpec

# Line breaks would split a rendered entry; quotes are never valid in share fields
_FORBIDDEN_CHARS = ('"', '\n', '\r')


@dataclass(frozen=True)
class ShareSpec:
    """
    The desired properties of a single Samba share.

    A ShareSpec is built by the caller (CLI, GUI form) and consumed by the
    Block Synthesizer. It never holds offsets or file state.
    """
    name: str                   # Unique key inside services.samba.settings
    path: str                   # Filesystem path, spaces allowed
    browseable: bool = True
    read_only: bool = False
    guest_ok: bool = False
    force_user: str = ""
    force_group: str = ""

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise InvalidShareSpec("Share name must not be empty", share_name=self.name)
        for field_name in ("name", "path", "force_user", "force_group"):
            value = getattr(self, field_name)
            if any(ch in value for ch in _FORBIDDEN_CHARS):
                raise InvalidShareSpec(
                    f"Field '{field_name}' may not contain quotes or line breaks",
                    share_name=self.name,
                )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


REMOTE_FIELDS = ("mount_point", "device", "fs_type", "credentials", "uid", "gid")


@dataclass(frozen=True)
class RemoteShareSpec:
    """
    A remote SMB share mounted through `fileSystems."<mount_point>"`.
    uid / gid end up as mount options and may be names or numeric ids.
    """
    mount_point: str            # Local mount point, also the entry key
    device: str                 # //server/share
    fs_type: str = "cifs"
    credentials: str = ""       # Path of a credentials file, empty for none
    uid: str = ""
    gid: str = ""

    def __post_init__(self):
        if not self.mount_point or not self.mount_point.strip():
            raise InvalidShareSpec("Mount point must not be empty", share_name=self.mount_point)
        for field_name in REMOTE_FIELDS:
            value = getattr(self, field_name)
            if any(ch in value for ch in _FORBIDDEN_CHARS):
                raise InvalidShareSpec(
                    f"Field '{field_name}' may not contain quotes or line breaks",
                    share_name=self.mount_point,
                )

    @property
    def name(self) -> str:
        return self.mount_point

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TextSpan:
    """
    A half-open [start, end) range into one version of the file text.

    Spans are only valid for the text they were computed from; the editor
    re-scans after every mutation.
    """
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, text: str) -> str:
        return text[self.start:self.end]

    @property
    def inner_start(self) -> int:
        """Offset just past the opening delimiter of a block span."""
        return self.start + 1

    @property
    def close_offset(self) -> int:
        """Offset of the closing delimiter of a block span."""
        return self.end - 1


AnySpec = Union[ShareSpec, RemoteShareSpec]


class OperationKind(Enum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


@dataclass(frozen=True)
class ShareOperation:
    """
    A single requested edit. `remote` selects the fileSystems mounts
    instead of the entries of the settings section.
    """
    kind: OperationKind
    spec: Optional[AnySpec] = None        # Required for ADD / UPDATE
    name: Optional[str] = None            # Required for REMOVE
    old_name: Optional[str] = None        # UPDATE only: rename source
    remote: bool = False

    @classmethod
    def add(cls, spec: AnySpec) -> "ShareOperation":
        return cls(OperationKind.ADD, spec=spec, remote=isinstance(spec, RemoteShareSpec))

    @classmethod
    def update(cls, spec: AnySpec, old_name: Optional[str] = None) -> "ShareOperation":
        return cls(OperationKind.UPDATE, spec=spec, old_name=old_name,
                   remote=isinstance(spec, RemoteShareSpec))

    @classmethod
    def remove(cls, name: str, remote: bool = False) -> "ShareOperation":
        return cls(OperationKind.REMOVE, name=name, remote=remote)

    @property
    def target(self) -> str:
        """The share name this operation looks up in the existing file."""
        if self.kind is OperationKind.REMOVE:
            return self.name or ""
        if self.kind is OperationKind.UPDATE and self.old_name:
            return self.old_name
        return self.spec.name if self.spec else ""
