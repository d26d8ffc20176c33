"""
Path handling module.

Provides:
- WSL <-> Windows path conversion
- Export destination calculation
"""

from ctxmirror.core.paths.converter import (
    PathConverterFactory,
    WindowsToWslPathConverter,
    WslDistroConfig,
    WslToWindowsPathConverter,
    extract_distro,
    is_absolute_path,
    is_wsl_unc_path,
    normalize_for_platform,
    unc_prefix,
    windows_to_wsl,
    wsl_to_windows,
)
from ctxmirror.core.paths.calculator import (
    ExportPathCalculator,
    split_path,
)

__all__ = [
    # Converter
    'PathConverterFactory',
    'WindowsToWslPathConverter',
    'WslDistroConfig',
    'WslToWindowsPathConverter',
    'extract_distro',
    'is_absolute_path',
    'is_wsl_unc_path',
    'normalize_for_platform',
    'unc_prefix',
    'windows_to_wsl',
    'wsl_to_windows',
    # Calculator
    'ExportPathCalculator',
    'split_path',
]
