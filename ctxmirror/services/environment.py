"""
Runtime environment detection.

Detected once at startup and passed to whatever needs it.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


CONFIG_FILE_NAME = ".claude.json"
CLAUDE_DIR_NAME = ".claude"


class EnvironmentType(Enum):
    """Operating environment the process runs in."""
    WINDOWS = "windows"
    WSL = "wsl"
    MACOS = "macos"
    LINUX = "linux"


def is_wsl(proc_version: str = "/proc/version") -> bool:
    """Check /proc/version for a Microsoft kernel."""
    try:
        with open(proc_version, 'r', encoding='utf-8', errors='replace') as f:
            version = f.read().lower()
    except OSError:
        return False
    return "microsoft" in version or "wsl" in version


@dataclass(frozen=True)
class Environment:
    """Where we run and where the Claude configuration lives."""
    type: EnvironmentType
    home_dir: str
    distro_name: Optional[str] = None

    @property
    def config_path(self) -> str:
        return os.path.join(self.home_dir, CONFIG_FILE_NAME)

    @property
    def claude_dir(self) -> str:
        return os.path.join(self.home_dir, CLAUDE_DIR_NAME)

    @property
    def is_windows(self) -> bool:
        return self.type == EnvironmentType.WINDOWS

    @property
    def is_wsl(self) -> bool:
        return self.type == EnvironmentType.WSL

    @classmethod
    def detect(cls, home_dir: Optional[str] = None) -> 'Environment':
        """Inspect the running process. Call once at startup."""
        env_type = cls._detect_type()

        if home_dir is None:
            if env_type == EnvironmentType.WINDOWS:
                home_dir = os.environ.get('USERPROFILE', '')
            else:
                home_dir = os.environ.get('HOME', '')
            if not home_dir:
                home_dir = str(Path.home())

        distro = os.environ.get('WSL_DISTRO_NAME') if env_type == EnvironmentType.WSL else None

        environment = cls(type=env_type, home_dir=home_dir, distro_name=distro)
        logging.debug(f"Environment - Detected {env_type.value}, home {home_dir}")
        return environment

    @staticmethod
    def _detect_type() -> EnvironmentType:
        if sys.platform == 'win32':
            return EnvironmentType.WINDOWS
        if sys.platform == 'darwin':
            return EnvironmentType.MACOS
        if is_wsl():
            return EnvironmentType.WSL
        return EnvironmentType.LINUX
