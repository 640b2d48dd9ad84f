"""
Logger configuration, built in code or from the environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class LoggerConfig:
    """
    Configuration for the DuoSync logger tree.

    Use LoggerConfig.from_env() at startup, or build one explicitly in tests.
    """

    # DEBUG, INFO, WARNING, ERROR, CRITICAL
    level: str = "INFO"
    # Directory for the rotating JSON log; None disables the file handler
    log_dir: Optional[str] = None
    # "duosync" -> duosync.log
    log_file_basename: str = "duosync"
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    # Logger that owns the handlers; every duosync.* module logger propagates to it
    root_name: str = "duosync"
    console: bool = True
    file_rotating: bool = True

    @classmethod
    def from_env(cls) -> "LoggerConfig":
        """
        Env:
            LOG_LEVEL, LOG_DIR, LOG_FILE_BASENAME, LOG_MAX_BYTES,
            LOG_BACKUP_COUNT, LOG_ROOT_NAME, LOG_CONSOLE, LOG_FILE_ROTATING
        """
        env = os.environ
        return cls(
            level=env.get("LOG_LEVEL", "INFO").upper(),
            log_dir=env.get("LOG_DIR") or None,
            log_file_basename=env.get("LOG_FILE_BASENAME", "duosync"),
            max_bytes=int(env.get("LOG_MAX_BYTES", str(5 * 1024 * 1024))),
            backup_count=int(env.get("LOG_BACKUP_COUNT", "5")),
            root_name=env.get("LOG_ROOT_NAME", "duosync"),
            console=env.get("LOG_CONSOLE", "true").lower() in _TRUTHY,
            file_rotating=env.get("LOG_FILE_ROTATING", "true").lower() in _TRUTHY,
        )

    def with_overrides(self, **changes: object) -> "LoggerConfig":
        """Return a copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
