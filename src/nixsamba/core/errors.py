#!/usr/bin/env python3
"""
NIXSAMBA ERRORS
---------------
Typed failures raised by the surgery layer and the engine. Every error
carries the attempted operation and share name so that a front end can
build a user-facing message without parsing strings.

Author: NixSamba Team
"""

from typing import Optional


class ShareEditError(Exception):
    """Base class for every failure of a share edit."""

    kind = "EDIT_ERROR"

    def __init__(self, message: str, operation: Optional[str] = None,
                 share_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.share_name = share_name

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class UnbalancedDelimiters(ShareEditError):
    """The text ends before an opened block is closed."""

    kind = "UNBALANCED_DELIMITERS"

    def __init__(self, message: str, offset: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.offset = offset


class SectionMissing(ShareEditError):
    kind = "SECTION_MISSING"


class ShareNotFound(ShareEditError):
    kind = "SHARE_NOT_FOUND"


class DuplicateShare(ShareEditError):
    kind = "DUPLICATE_SHARE"


class InsertionPointNotFound(ShareEditError):
    """No top-level attribute set to append a new settings section to."""

    kind = "NO_INSERTION_POINT"


class InvalidShareSpec(ShareEditError, ValueError):
    kind = "INVALID_SHARE"


class ConfigFileError(ShareEditError):
    """Reading or writing the configuration file failed."""

    kind = "CONFIG_FILE_ERROR"
