"""
Reader for the Claude configuration file (~/.claude.json).

The parsed file is cached by a ConfigSession for a short time so that
building a tree does not re-read the file for every node.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from ctxmirror.services.file_system import LocalFileSystem


DEFAULT_CACHE_TTL = 5.0  # seconds

_DRIVE_PATH_RE = re.compile(r"^[A-Za-z]:[/\\]")


class ConfigErrorType(Enum):
    """Reason a configuration could not be read."""
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_PATH = "INVALID_PATH"
    ACCESS_DENIED = "ACCESS_DENIED"


class ConfigError(Exception):
    """The configuration file could not be read or parsed."""

    def __init__(self, error_type: ConfigErrorType, message: str):
        super().__init__(message)
        self.type = error_type

    def __str__(self) -> str:
        return f"{self.type.value}: {super().__str__()}"


@dataclass(frozen=True)
class ProjectEntry:
    """A project registered in the configuration."""
    path: str
    state: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ClaudeConfig:
    """Parsed configuration with its projects normalised."""
    data: dict[str, Any]
    projects: tuple[ProjectEntry, ...] = ()


def normalize_projects(data: dict[str, Any]) -> tuple[ProjectEntry, ...]:
    """
    Extract project entries from the ``projects`` value.

    Accepted shapes:
        [{"path": "/a"}, ...]
        {"name": {"path": "/a"}, ...}
        {"/a": {...}, "C:/b": {...}}   (the key is the path)
    """
    projects = data.get("projects")

    if isinstance(projects, list):
        return tuple(
            ProjectEntry(path=entry["path"])
            for entry in projects
            if isinstance(entry, dict) and isinstance(entry.get("path"), str)
        )

    if isinstance(projects, dict):
        entries = []
        for key, value in projects.items():
            if value is None:
                continue
            if isinstance(value, dict) and isinstance(value.get("path"), str):
                entries.append(ProjectEntry(path=value["path"]))
                continue
            if key.startswith(("/", "~")) or _DRIVE_PATH_RE.match(key):
                state = value if isinstance(value, dict) else {}
                entries.append(ProjectEntry(path=os.path.expanduser(key), state=state))
        return tuple(entries)

    if projects is not None:
        logging.debug(f"ConfigSession - Unrecognised projects format: {type(projects).__name__}")
    return ()


class ConfigSession:
    """
    Owns the cached configuration for one session.

    Usage:
        session = ConfigSession(environment.config_path)
        projects = session.read().projects
        session.invalidate()  # after the file changed
    """

    def __init__(
        self,
        config_path: str,
        ttl: float = DEFAULT_CACHE_TTL,
        file_system: Optional[LocalFileSystem] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config_path = config_path
        self.ttl = ttl
        self._fs = file_system or LocalFileSystem()
        self._clock = clock
        self._cached: Optional[ClaudeConfig] = None
        self._cached_at = 0.0

    def read(self) -> ClaudeConfig:
        """
        Return the configuration, from cache when still fresh.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        now = self._clock()
        if self._cached is not None and now - self._cached_at < self.ttl:
            return self._cached

        try:
            config = self._load()
        except ConfigError:
            self.invalidate()
            raise

        self._cached = config
        self._cached_at = now
        logging.debug(f"ConfigSession - Loaded {len(config.projects)} project(s) from {self.config_path}")
        return config

    def refresh(self) -> ClaudeConfig:
        """Drop the cache and read again."""
        self.invalidate()
        return self.read()

    def invalidate(self) -> None:
        self._cached = None
        self._cached_at = 0.0

    @property
    def is_cached(self) -> bool:
        return self._cached is not None

    def _load(self) -> ClaudeConfig:
        if not self.config_path:
            raise ConfigError(ConfigErrorType.INVALID_PATH, "No configuration path given")

        try:
            content = self._fs.read_text(self.config_path)
        except FileNotFoundError:
            raise ConfigError(
                ConfigErrorType.FILE_NOT_FOUND,
                f"Configuration file not found: {self.config_path}",
            )
        except PermissionError:
            raise ConfigError(
                ConfigErrorType.ACCESS_DENIED,
                f"Permission denied reading configuration file: {self.config_path}",
            )
        except (IsADirectoryError, NotADirectoryError, ValueError):
            raise ConfigError(
                ConfigErrorType.INVALID_PATH,
                f"Invalid configuration path: {self.config_path}",
            )
        except OSError as e:
            raise ConfigError(
                ConfigErrorType.ACCESS_DENIED,
                f"Failed to read configuration file {self.config_path}: {e}",
            )

        if not content.strip():
            return ClaudeConfig(data={})

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(
                ConfigErrorType.PARSE_ERROR,
                f"Invalid JSON in configuration file {self.config_path}: {e}",
            )

        if not isinstance(data, dict):
            data = {}

        return ClaudeConfig(data=data, projects=normalize_projects(data))
