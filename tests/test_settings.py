import json
import tempfile
import unittest
from pathlib import Path

from ctxmirror.services.settings import (
    DEFAULT_GITIGNORE_CONTENT,
    ApplicationSettings,
    EnvironmentKind,
    SettingsManager,
)


class TestSettingsManager(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "sub" / "settings.json"
        self.manager = SettingsManager(self.path)

    def tearDown(self):
        self._tmp.cleanup()

    def test_defaults_when_missing(self):
        settings = self.manager.settings
        self.assertTrue(settings.export.create_gitignore)
        self.assertEqual(settings.export.gitignore_content, DEFAULT_GITIGNORE_CONTENT)
        self.assertEqual(settings.environment.kind, EnvironmentKind.NATIVE)

    def test_round_trip(self):
        settings = ApplicationSettings()
        settings.export.max_workers = 4
        settings.export.exclude_patterns = ["*.log"]
        settings.environment.kind = EnvironmentKind.WSL
        settings.environment.wsl_distro = "Ubuntu"
        settings.environment.wsl_user = "dev"

        self.assertTrue(self.manager.save(settings))

        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(json.load(f)["environment"]["kind"], "wsl")

        loaded = SettingsManager(self.path).load()
        self.assertEqual(loaded, settings)

    def test_worker_count_clamped_on_load(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text(json.dumps({"export": {"max_workers": 50}}), encoding="utf-8")
        self.assertEqual(self.manager.load().export.max_workers, 10)

    def test_corrupt_file_gives_defaults(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{broken", encoding="utf-8")
        self.assertEqual(self.manager.load(), ApplicationSettings())

    def test_unknown_kind_falls_back(self):
        self.assertEqual(EnvironmentKind.from_string("mars"), EnvironmentKind.NATIVE)
        self.assertEqual(EnvironmentKind.from_string("WINDOWS"), EnvironmentKind.WINDOWS)

    def test_recent_directories(self):
        self.manager.settings.recent_limit = 2
        for path in ("/a", "/b", "/a", "/c"):
            self.manager.add_recent_export_directory(path)

        settings = self.manager.settings
        self.assertEqual(settings.recent_export_directories, ["/c", "/a"])
        self.assertEqual(settings.export.export_directory, "/c")

    def test_observers(self):
        seen = []
        self.manager.add_observer(seen.append)
        self.manager.reset()
        self.assertEqual(len(seen), 1)

        self.manager.remove_observer(seen.append)
        self.manager.reset()
        self.assertEqual(len(seen), 1)


if __name__ == "__main__":
    unittest.main()
