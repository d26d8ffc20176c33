"""
Path conversion between the WSL and Windows namespaces.

Handles:
- WSL (POSIX) paths to Windows UNC paths (\\\\wsl.localhost\\ and legacy \\\\wsl$\\)
- Windows UNC paths back to WSL paths
- Windows drive paths (C:\\...) to WSL mount paths (/mnt/c/...)

All conversions are pure and pass unrecognised input through unchanged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


MODERN_UNC_HOST = "wsl.localhost"
LEGACY_UNC_HOST = "wsl$"

_WSL_UNC_RE = re.compile(r"^\\\\wsl(?:\.localhost|\$)?\\([^\\]+)(.*)$", re.IGNORECASE | re.DOTALL)
_WSL_UNC_PREFIX_RE = re.compile(r"^\\\\wsl(?:\.localhost|\$)?\\", re.IGNORECASE)
_DRIVE_RE = re.compile(r"^([A-Za-z]):\\(.*)$", re.DOTALL)


@dataclass(frozen=True)
class WslDistroConfig:
    """Target distribution for WSL to Windows conversion."""
    distro_name: str
    use_legacy_format: bool = False


def unc_prefix(distro: str, legacy: bool = False) -> str:
    """UNC prefix for a distribution, e.g. ``\\\\wsl.localhost\\Ubuntu``."""
    host = LEGACY_UNC_HOST if legacy else MODERN_UNC_HOST
    return f"\\\\{host}\\{distro}"


def wsl_to_windows(path: str, distro: str, legacy: bool = False) -> str:
    """
    Convert an absolute WSL path to a Windows UNC path.

    Args:
        path: POSIX path inside the distribution (must start with "/")
        distro: Distribution name
        legacy: Use the ``\\\\wsl$\\`` prefix instead of ``\\\\wsl.localhost\\``

    Returns:
        The UNC path, or `path` unchanged when it is not absolute.
    """
    if not path.startswith("/"):
        return path

    normalized = path.replace("\\", "/")
    return unc_prefix(distro, legacy) + normalized.replace("/", "\\")


def windows_to_wsl(path: str) -> str:
    """
    Convert a Windows path to a WSL path.

    - ``\\\\wsl.localhost\\<distro>\\rest`` and ``\\\\wsl$\\<distro>\\rest`` -> ``/rest``
    - ``X:\\rest`` -> ``/mnt/x/rest``
    - anything else is returned unchanged
    """
    unc_match = _WSL_UNC_RE.match(path)
    if unc_match:
        return unc_match.group(2).replace("\\", "/") or "/"

    drive_match = _DRIVE_RE.match(path)
    if drive_match:
        drive = drive_match.group(1).lower()
        rest = drive_match.group(2).replace("\\", "/")
        return f"/mnt/{drive}/{rest}"

    return path


def is_wsl_unc_path(path: str) -> bool:
    """Check if a path points into a WSL distribution via UNC."""
    return _WSL_UNC_PREFIX_RE.match(path) is not None


def extract_distro(path: str) -> str | None:
    """Distribution name from a WSL UNC path, or None."""
    match = _WSL_UNC_RE.match(path)
    return match.group(1) if match else None


def is_absolute_path(path: str) -> bool:
    """True for POSIX absolute, Windows drive and UNC paths."""
    return (
        re.match(r"^[A-Z]:\\", path, re.IGNORECASE) is not None
        or path.startswith("\\\\")
        or path.startswith("/")
    )


def normalize_for_platform(path: str, platform: str) -> str:
    """Use backslashes for ``win32``, forward slashes otherwise."""
    if platform == "win32":
        return path.replace("/", "\\")
    return path.replace("\\", "/")


class WslToWindowsPathConverter:
    """Converts WSL paths of one distribution to UNC paths."""

    def __init__(self, config: WslDistroConfig):
        self.config = config

    def convert(self, path: str) -> str:
        return wsl_to_windows(path, self.config.distro_name, self.config.use_legacy_format)

    @property
    def unc_prefix(self) -> str:
        return unc_prefix(self.config.distro_name, self.config.use_legacy_format)


class WindowsToWslPathConverter:
    """Converts Windows UNC and drive paths to WSL paths."""

    def convert(self, path: str) -> str:
        return windows_to_wsl(path)

    def is_wsl_unc_path(self, path: str) -> bool:
        return is_wsl_unc_path(path)

    def extract_distro(self, path: str) -> str | None:
        return extract_distro(path)


class PathConverterFactory:
    """Factory for path converters."""

    @staticmethod
    def create_wsl_to_windows(distro_name: str, use_legacy_format: bool = False) -> WslToWindowsPathConverter:
        return WslToWindowsPathConverter(WslDistroConfig(distro_name, use_legacy_format))

    @staticmethod
    def create_windows_to_wsl() -> WindowsToWslPathConverter:
        return WindowsToWslPathConverter()
