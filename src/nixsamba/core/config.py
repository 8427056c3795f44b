#!/usr/bin/env python3
"""
NIXSAMBA SETTINGS
-----------------
Runtime knobs for the engine: which file to edit, how to indent new
blocks, and whether to keep a backup before writing.

Environment variables:
    NIXSAMBA_CONFIG: configuration file to edit
    NIXSAMBA_INDENT_STEP: one indentation level for new blocks
    NIXSAMBA_NO_BACKUP: truthy to skip the backup copy before a write

Author: NixSamba Team
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("nixsamba.config")

DEFAULT_CONFIG_PATH = "/etc/nixos/customConfig/default.nix"
ENV_CONFIG_PATH = "NIXSAMBA_CONFIG"
ENV_NO_BACKUP = "NIXSAMBA_NO_BACKUP"


class EngineSettings(BaseSettings):
    """
    Engine configuration. Keyword arguments win over the environment,
    the environment wins over the defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="NIXSAMBA_",
        case_sensitive=False,
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    config_path: Path = Field(
        default=Path(DEFAULT_CONFIG_PATH),
        validation_alias=ENV_CONFIG_PATH,
    )
    indent_step: str = "  "
    create_backups: bool = True
    # Read from NIXSAMBA_NO_BACKUP; folded into create_backups below
    no_backup: bool = False

    @field_validator("indent_step")
    @classmethod
    def _whitespace_indent(cls, value: str) -> str:
        if not value or value.strip():
            raise ValueError("indent_step must be a non-empty run of whitespace")
        return value

    @model_validator(mode="after")
    def _apply_no_backup(self) -> "EngineSettings":
        if self.no_backup and self.create_backups:
            logger.info("Backups disabled via %s", ENV_NO_BACKUP)
            self.create_backups = False
        return self

    @classmethod
    def from_env(cls, config_path: Optional[str] = None) -> "EngineSettings":
        """
        Builds settings from the environment. An explicit config_path
        (e.g. the CLI --config flag) wins over NIXSAMBA_CONFIG.
        """
        if config_path:
            return cls(config_path=Path(config_path))
        return cls()
