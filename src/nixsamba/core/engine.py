#!/usr/bin/env python3
"""
NIXSAMBA ENGINE - The High Orchestrator
---------------------------------------
ShareConfigEngine wraps the pure surgery layer with file I/O: it reads
the NixOS configuration, applies one share operation, and persists the
result with a backup and an atomic replace. The caller is responsible
for serializing access to the file and for privilege elevation.

Author: NixSamba Team
"""

import os
import shutil
import time
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from nixsamba.core.config import EngineSettings
from nixsamba.core.errors import ShareEditError, ConfigFileError
from nixsamba.core.models import ShareSpec, RemoteShareSpec, ShareOperation
from nixsamba.surgery.editor import ShareEditor
from nixsamba.surgery.remote import RemoteShareEditor

# Setup standardized logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("nixsamba.engine")

BACKUP_SUFFIX = ".nixsamba.backup"
TEMP_SUFFIX = ".nixsamba.tmp"


class ShareConfigEngine:
    """
    Principal orchestrator for share edits against one configuration file.
    Holds no parsed state: every call starts from the bytes on disk.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.config_path = Path(self.settings.config_path)
        self.editor = ShareEditor(indent_step=self.settings.indent_step)
        self.remote_editor = RemoteShareEditor(indent_step=self.settings.indent_step)

    def read_text(self) -> str:
        """Reads the configuration (BOM-aware)."""
        try:
            return self.config_path.read_text(encoding="utf-8-sig")
        except FileNotFoundError:
            raise ConfigFileError(f"Configuration file not found: {self.config_path}")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigFileError(f"Failed to read {self.config_path}: {e}")

    def list_shares(self) -> List[ShareSpec]:
        return self.editor.list_shares(self.read_text())

    def list_remote_shares(self) -> List[RemoteShareSpec]:
        return self.remote_editor.list_remotes(self.read_text())

    def apply(self, operation: ShareOperation, dry_run: bool = True) -> Dict[str, Any]:
        """
        Runs one operation through the editor and, unless dry_run, writes
        the rewritten text back. Always returns a report dict.
        """
        target = operation.target
        try:
            old_text = self.read_text()
            editor = self.remote_editor if operation.remote else self.editor
            new_text = editor.apply(old_text, operation)
        except ShareEditError as e:
            return self._edit_error(operation, e)
        except Exception as e:
            logger.error(f"Error applying {operation.kind.value} to '{target}': {str(e)}")
            return self._edit_error(operation, e, status="ENGINE_ERROR")

        result = {
            "config_path": str(self.config_path),
            "operation": operation.kind.value,
            "share": target,
            "scope": "remote" if operation.remote else "local",
            "status": "PREVIEW" if dry_run else "WRITTEN",
            "success": True,
            "written": False,
            "backup_created": None,
            "old_content": old_text,
            "new_content": new_text,
            "error": None,
            "timestamp": time.time(),
        }

        if dry_run:
            return result

        if self.settings.create_backups:
            backup_path = self._create_unique_backup(self.config_path)
            try:
                shutil.copy2(self.config_path, backup_path)
                result["backup_created"] = str(backup_path)
            except OSError as e:
                result["backup_warning"] = f"Backup failed: {str(e)}"

        try:
            self._atomic_write(self.config_path, new_text)
            result["written"] = True
            logger.info(f"Wrote {operation.kind.value} of share '{target}' to {self.config_path}")
        except IOError as e:
            result["status"] = "FAILED"
            result["success"] = False
            result["write_error"] = str(e)
            result["error"] = (
                f"{e}. Re-run with elevated privileges (e.g. sudo) to modify {self.config_path}."
            )

        return result

    def _atomic_write(self, target_path: Path, content: str):
        if not os.access(target_path.parent, os.W_OK):
            raise PermissionError(f"No write access to {target_path.parent}")
        temp_file = target_path.with_name(target_path.name + TEMP_SUFFIX)
        try:
            temp_file.write_text(content, encoding="utf-8")
            if target_path.exists():
                shutil.copymode(target_path, temp_file)
            os.replace(temp_file, target_path)
        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed: {str(e)}")

    def _create_unique_backup(self, target_path: Path) -> Path:
        backup_path = target_path.with_name(target_path.name + BACKUP_SUFFIX)
        counter = 1
        while backup_path.exists():
            backup_path = target_path.with_name(f"{target_path.name}-{counter}{BACKUP_SUFFIX}")
            counter += 1
        return backup_path

    def _edit_error(self, operation: ShareOperation, error: Exception,
                    status: str = "FAILED") -> Dict[str, Any]:
        return {
            "config_path": str(self.config_path),
            "operation": operation.kind.value,
            "share": operation.target,
            "scope": "remote" if operation.remote else "local",
            "status": status,
            "error_kind": getattr(error, "kind", type(error).__name__),
            "error": str(error),
            "success": False,
            "written": False,
            "backup_created": None,
            "new_content": None,
            "timestamp": time.time(),
        }
