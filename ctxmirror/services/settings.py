"""
Application settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ctxmirror.core.export.executor import MAX_WORKERS_LIMIT


DEFAULT_GITIGNORE_CONTENT = "# Ignore Claude local settings\n.settings.local.yaml\n"


class EnvironmentKind(Enum):
    """Which configuration to operate on."""
    NATIVE = "native"     # The running environment
    WSL = "wsl"           # A WSL distribution, from Windows
    WINDOWS = "windows"   # The Windows profile, from WSL

    @classmethod
    def from_string(cls, value: str) -> 'EnvironmentKind':
        """Create from string value."""
        try:
            for kind in cls:
                if kind.value == value.lower():
                    return kind
            return cls[value.upper()]
        except (KeyError, AttributeError):
            return cls.NATIVE


@dataclass
class ExportSettings:
    """Settings for export and import."""
    export_directory: str = ""
    create_gitignore: bool = True
    gitignore_content: str = DEFAULT_GITIGNORE_CONTENT
    max_workers: int = 1  # 1 copies files one at a time
    overwrite_on_import: bool = False

    # Extra listing filters for project directories
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)


@dataclass
class EnvironmentSettings:
    """Settings for environment selection and path conversion."""
    kind: EnvironmentKind = EnvironmentKind.NATIVE
    wsl_distro: str = ""
    wsl_user: str = ""  # Empty uses the current user name
    use_legacy_unc: bool = False
    windows_user: str = ""
    config_cache_ttl: float = 5.0


@dataclass
class ApplicationSettings:
    """Main application settings container."""
    export: ExportSettings = field(default_factory=ExportSettings)
    environment: EnvironmentSettings = field(default_factory=EnvironmentSettings)

    recent_export_directories: list[str] = field(default_factory=list)
    recent_limit: int = 5


class SettingsManager:
    """Manager for loading/saving application settings."""

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self._get_default_path()
        self._settings: Optional[ApplicationSettings] = None
        self._observers: list[Callable[[ApplicationSettings], None]] = []

    @staticmethod
    def _get_default_path() -> Path:
        """Get the default settings file path."""
        if os.name == 'nt':
            app_data = os.environ.get('APPDATA', os.path.expanduser('~'))
            return Path(app_data) / 'CtxMirror' / 'settings.json'
        else:
            config_home = os.environ.get('XDG_CONFIG_HOME',
                                         os.path.expanduser('~/.config'))
            return Path(config_home) / 'ctxmirror' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        """Get current settings, loading from disk if needed."""
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        """Load settings from disk. Unreadable files give defaults."""
        if not self.settings_path.exists():
            return ApplicationSettings()

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return self._from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logging.warning(f"SettingsManager - Failed to load {self.settings_path}: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        """Save settings to disk."""
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._to_dict(settings), f, indent=2)

            self._settings = settings
            self._notify_observers()
            return True

        except OSError as e:
            logging.error(f"SettingsManager - Failed to save {self.settings_path}: {e}")
            return False

    def reset(self) -> ApplicationSettings:
        """Reset to default settings."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def add_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        """Add a callback to be notified of settings changes."""
        self._observers.append(callback)

    def remove_observer(self, callback: Callable[[ApplicationSettings], None]) -> None:
        """Remove a settings change observer."""
        if callback in self._observers:
            self._observers.remove(callback)

    def _notify_observers(self) -> None:
        for callback in self._observers:
            try:
                callback(self._settings)
            except Exception as e:
                logging.warning(f"SettingsManager - Observer failed: {e}")

    def add_recent_export_directory(self, path: str) -> None:
        """Remember an export directory, most recent first."""
        settings = self.settings
        recent = settings.recent_export_directories

        if path in recent:
            recent.remove(path)
        recent.insert(0, path)

        settings.recent_export_directories = recent[:settings.recent_limit]
        settings.export.export_directory = path
        self.save()

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            return obj

        return convert(asdict(settings))

    def _from_dict(self, data: dict) -> ApplicationSettings:
        """Convert dictionary back to settings objects."""
        export_data = data.get('export', {})
        env_data = data.get('environment', {})
        defaults = ExportSettings()

        workers = int(export_data.get('max_workers', defaults.max_workers))

        export = ExportSettings(
            export_directory=export_data.get('export_directory', ''),
            create_gitignore=export_data.get('create_gitignore', True),
            gitignore_content=export_data.get('gitignore_content', DEFAULT_GITIGNORE_CONTENT),
            max_workers=max(1, min(workers, MAX_WORKERS_LIMIT)),
            overwrite_on_import=export_data.get('overwrite_on_import', False),
            include_patterns=export_data.get('include_patterns', []),
            exclude_patterns=export_data.get('exclude_patterns', []),
        )

        environment = EnvironmentSettings(
            kind=EnvironmentKind.from_string(env_data.get('kind', 'native')),
            wsl_distro=env_data.get('wsl_distro', ''),
            wsl_user=env_data.get('wsl_user', ''),
            use_legacy_unc=env_data.get('use_legacy_unc', False),
            windows_user=env_data.get('windows_user', ''),
            config_cache_ttl=float(env_data.get('config_cache_ttl', 5.0)),
        )

        return ApplicationSettings(
            export=export,
            environment=environment,
            recent_export_directories=data.get('recent_export_directories', []),
            recent_limit=data.get('recent_limit', 5),
        )
