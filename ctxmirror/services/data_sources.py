"""
Data sources for the Claude configuration of one environment.

Provides access to:
- The native configuration of the running environment
- A WSL distribution's configuration seen from Windows (UNC paths)
- The Windows profile's configuration seen from WSL (/mnt paths)

Project paths are converted into the namespace the process can open.
"""

from __future__ import annotations

import getpass
import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ctxmirror.core.paths.converter import (
    WslDistroConfig,
    WslToWindowsPathConverter,
    is_wsl_unc_path,
    unc_prefix,
    windows_to_wsl,
)
from ctxmirror.services.config_reader import ConfigError, ConfigSession
from ctxmirror.services.environment import (
    CLAUDE_DIR_NAME,
    CONFIG_FILE_NAME,
    Environment,
    EnvironmentType,
)


_DRIVE_PATH_RE = re.compile(r"^[A-Za-z]:[/\\]")


class DataSource(ABC):
    """Configuration and project paths of one environment."""

    def __init__(self, config_path: str, session: Optional[ConfigSession] = None):
        self.config_path = config_path
        self.session = session or ConfigSession(config_path)

    @property
    @abstractmethod
    def environment_type(self) -> EnvironmentType:
        pass

    @property
    def instance_name(self) -> Optional[str]:
        return None

    @property
    def claude_dir(self) -> str:
        """The ``.claude`` directory next to the configuration file."""
        return os.path.join(os.path.dirname(self.config_path), CLAUDE_DIR_NAME)

    def convert_project_path(self, path: str) -> str:
        """Map a project path from the config into a local path."""
        return path

    def project_paths(self) -> list[str]:
        """
        Registered project paths, converted for local access.

        An unreadable configuration yields no projects.
        """
        try:
            config = self.session.read()
        except ConfigError as e:
            logging.warning(f"{type(self).__name__} - {e}")
            return []
        return [self.convert_project_path(p.path) for p in config.projects]

    def is_accessible(self) -> bool:
        return os.path.exists(self.config_path)

    def refresh(self) -> None:
        self.session.invalidate()

    def describe(self) -> str:
        name = f" ({self.instance_name})" if self.instance_name else ""
        return f"{self.environment_type.value}{name}: {self.config_path}"


class NativeDataSource(DataSource):
    """Configuration of the environment the process runs in."""

    def __init__(self, environment: Environment, session: Optional[ConfigSession] = None):
        super().__init__(environment.config_path, session)
        self.environment = environment

    @property
    def environment_type(self) -> EnvironmentType:
        return self.environment.type

    @property
    def instance_name(self) -> Optional[str]:
        return self.environment.distro_name


class WslFromWindowsDataSource(DataSource):
    """A WSL distribution read from a Windows host through UNC paths."""

    def __init__(
        self,
        distro_name: str,
        user: Optional[str] = None,
        use_legacy_format: bool = False,
        session: Optional[ConfigSession] = None,
    ):
        self.converter = WslToWindowsPathConverter(WslDistroConfig(distro_name, use_legacy_format))
        self.distro_name = distro_name
        self.user = user or getpass.getuser()
        config_path = self.converter.convert(f"/home/{self.user}/{CONFIG_FILE_NAME}")
        super().__init__(config_path, session)

    @property
    def environment_type(self) -> EnvironmentType:
        return EnvironmentType.WSL

    @property
    def instance_name(self) -> Optional[str]:
        return self.distro_name

    @property
    def claude_dir(self) -> str:
        return self.config_path[:-len(CONFIG_FILE_NAME)] + CLAUDE_DIR_NAME

    def convert_project_path(self, path: str) -> str:
        if path.startswith("\\\\") or not path.startswith("/"):
            return path
        return self.converter.convert(path)


class WindowsFromWslDataSource(DataSource):
    """The Windows user profile read from WSL through /mnt/<drive>."""

    def __init__(
        self,
        windows_user: str,
        drive: str = "c",
        session: Optional[ConfigSession] = None,
    ):
        self.windows_user = windows_user
        config_path = f"/mnt/{drive.lower()}/Users/{windows_user}/{CONFIG_FILE_NAME}"
        super().__init__(config_path, session)

    @property
    def environment_type(self) -> EnvironmentType:
        return EnvironmentType.WINDOWS

    @property
    def instance_name(self) -> Optional[str]:
        return self.windows_user

    def convert_project_path(self, path: str) -> str:
        if path.startswith("/mnt/"):
            return path
        if is_wsl_unc_path(path):
            return windows_to_wsl(path)
        if _DRIVE_PATH_RE.match(path):
            return windows_to_wsl(path.replace("/", "\\"))
        return path


# =============================================================================
# Discovery
# =============================================================================

@dataclass(frozen=True)
class WslInstance:
    """A distribution found from the Windows side."""
    distro_name: str
    user: str
    config_path: str
    use_legacy_format: bool


def _scan_share(
    legacy: bool,
    user: str,
    list_dir: Callable[[str], list[str]],
    exists: Callable[[str], bool],
) -> list[WslInstance]:
    root = unc_prefix("", legacy)
    try:
        names = list_dir(root)
    except OSError as e:
        logging.debug(f"WslDiscovery - Cannot list {root}: {e}")
        return []

    found = []
    for name in names:
        if name.startswith("$") or name == ".":
            continue
        config_path = f"{unc_prefix(name, legacy)}\\home\\{user}\\{CONFIG_FILE_NAME}"
        if exists(config_path):
            found.append(WslInstance(name, user, config_path, legacy))
        else:
            logging.debug(f"WslDiscovery - No configuration at {config_path}")
    return found


def discover_wsl_instances(
    user: Optional[str] = None,
    list_dir: Callable[[str], list[str]] = os.listdir,
    exists: Callable[[str], bool] = os.path.exists,
) -> list[WslInstance]:
    """
    Find distributions where `user` has a Claude configuration.

    The Linux user defaults to the current user name. Checks
    ``\\\\wsl.localhost\\`` first and only falls back to the legacy
    ``\\\\wsl$\\`` share when nothing was found.
    """
    user = user or getpass.getuser()
    instances = _scan_share(False, user, list_dir, exists)
    if instances:
        return instances
    return _scan_share(True, user, list_dir, exists)


def detect_windows_username(environ: Optional[dict[str, str]] = None) -> Optional[str]:
    """Best guess of the Windows user name from inside WSL."""
    environ = os.environ if environ is None else environ
    for var in ("WINDOWS_USER", "WINDOWS_USERNAME", "USER"):
        value = environ.get(var, "")
        if value and value != "root" and not value.startswith("/"):
            return value
    return None


def create_data_source(
    kind: str,
    environment: Environment,
    distro: Optional[str] = None,
    legacy: bool = False,
    windows_user: Optional[str] = None,
    ttl: Optional[float] = None,
    wsl_user: Optional[str] = None,
) -> DataSource:
    """
    Build the data source selected on the command line.

    Args:
        kind: ``native``, ``wsl`` (a distribution, from Windows) or
            ``windows`` (the Windows profile, from WSL)
        wsl_user: Linux user whose home holds the WSL configuration,
            defaults to the current user name
    """
    if kind == "native":
        source: DataSource = NativeDataSource(environment)
    elif kind == "wsl":
        user = wsl_user or getpass.getuser()
        if not distro:
            instances = discover_wsl_instances(user)
            if not instances:
                raise ValueError(f"No WSL distribution with a Claude configuration for user '{user}' was found")
            distro, legacy = instances[0].distro_name, instances[0].use_legacy_format
        source = WslFromWindowsDataSource(distro, user=user, use_legacy_format=legacy)
    elif kind == "windows":
        user = windows_user or detect_windows_username()
        if not user:
            raise ValueError("Cannot determine the Windows user name, pass --windows-user")
        source = WindowsFromWslDataSource(user)
    else:
        raise ValueError(f"Unknown environment: {kind}")

    if ttl is not None:
        source.session.ttl = ttl
    return source
