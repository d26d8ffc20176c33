import json
import os
import tempfile
import unittest

from ctxmirror.core.filters import ClaudeFileFilter
from ctxmirror.core.models import ExportFailure, ExportSetupError
from ctxmirror.services.data_sources import NativeDataSource
from ctxmirror.services.environment import Environment, EnvironmentType
from ctxmirror.services.export_service import (
    ExportImportService,
    ExportOptions,
    GitignoreDecision,
    GitignoreStatus,
    ImportOptions,
    format_failures,
)
from ctxmirror.services.file_system import LocalFileSystem
from ctxmirror.services.settings import DEFAULT_GITIGNORE_CONTENT
from ctxmirror.services.tree_provider import ClaudeTreeProvider


def write(path, content):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class ServiceTestCase(unittest.TestCase):
    """A home with a global config and one registered project."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.home = os.path.join(self._tmp.name, "home")
        self.target = os.path.join(self._tmp.name, "export")
        self.app = os.path.join(self.home, "work", "app")

        write(os.path.join(self.home, ".claude", "settings.json"), '{"theme": "dark"}')
        write(os.path.join(self.app, "CLAUDE.md"), "# App")
        write(os.path.join(self.app, "main.py"), "print()")
        write(os.path.join(self.home, ".claude.json"), json.dumps({"projects": {self.app: {}}}))

        source = NativeDataSource(Environment(EnvironmentType.LINUX, self.home))
        self.provider = ClaudeTreeProvider(source)
        self.fs = LocalFileSystem(entry_filter=ClaudeFileFilter())
        self.service = ExportImportService.create(self.provider, self.fs)

    def tearDown(self):
        self._tmp.cleanup()

    def export(self, **kwargs):
        return self.service.export(
            self.provider.get_root_nodes(),
            ExportOptions(target_directory=self.target, **kwargs),
        )


class TestExport(ServiceTestCase):
    def test_layout(self):
        summary = self.export()

        self.assertTrue(summary.result.success)
        self.assertEqual(summary.gitignore, GitignoreStatus.CREATED)
        self.assertEqual(read(os.path.join(self.target, ".gitignore")), DEFAULT_GITIGNORE_CONTENT)
        self.assertTrue(os.path.isfile(os.path.join(self.target, "global", ".claude.json")))
        self.assertEqual(read(os.path.join(self.target, "global", ".claude", "settings.json")), '{"theme": "dark"}')
        self.assertEqual(read(os.path.join(self.target, "projects", "app", "CLAUDE.md")), "# App")
        self.assertFalse(os.path.exists(os.path.join(self.target, "projects", "app", "main.py")))
        self.assertEqual(summary.exported_files, ["global/.claude.json", "projects/app/CLAUDE.md"])

    def test_plan_only(self):
        plan = self.service.plan(self.provider.get_root_nodes())
        self.assertEqual(len(plan.files_to_copy), 2)
        self.assertFalse(os.path.exists(self.target))

    def test_no_gitignore(self):
        summary = self.export(create_gitignore=False)
        self.assertIsNone(summary.gitignore)
        self.assertFalse(os.path.exists(os.path.join(self.target, ".gitignore")))

    def test_progress_messages(self):
        calls = []
        self.service.export(
            self.provider.get_root_nodes(),
            ExportOptions(target_directory=self.target),
            progress=lambda message, increment: calls.append((message, increment)),
        )
        self.assertEqual(calls[0], ("Preparing export...", 0.0))
        self.assertTrue(calls[-1][0].startswith("Export complete: 2 files"))
        self.assertAlmostEqual(sum(i for _, i in calls), 100.0)


class CancellingProvider:
    """Wraps a tree provider and cancels the service while children are listed."""

    def __init__(self, inner):
        self.inner = inner
        self.service = None
        self.armed = True

    def get_root_nodes(self):
        return self.inner.get_root_nodes()

    def get_children(self, node):
        if self.armed:
            self.armed = False
            self.service.cancel()
        return self.inner.get_children(node)


class TestCancelDuringScan(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.cancelling = CancellingProvider(self.provider)
        self.service = ExportImportService.create(self.cancelling, self.fs)
        self.cancelling.service = self.service

    def test_export_reports_cancelled(self):
        calls = []
        summary = self.service.export(
            self.provider.get_root_nodes(),
            ExportOptions(target_directory=self.target),
            progress=lambda message, increment: calls.append(message),
        )

        self.assertTrue(summary.result.cancelled)
        self.assertFalse(summary.result.success)
        self.assertEqual(summary.result.files_copied_count, 0)
        self.assertEqual(summary.exported_files, [])
        self.assertIsNone(summary.gitignore)
        self.assertFalse(os.path.exists(self.target))
        self.assertTrue(calls[-1].startswith("Export cancelled"))

    def test_next_export_runs_again(self):
        self.service.export(self.provider.get_root_nodes(), ExportOptions(target_directory=self.target))

        summary = self.service.export(self.provider.get_root_nodes(), ExportOptions(target_directory=self.target))

        self.assertFalse(summary.result.cancelled)
        self.assertEqual(summary.result.files_copied_count, 2)
        self.assertEqual(summary.gitignore, GitignoreStatus.CREATED)

    def test_import_reports_cancelled(self):
        os.makedirs(self.target)
        summary = self.service.import_(self.provider.get_root_nodes(), ImportOptions(self.target, overwrite=True))

        self.assertTrue(summary.result.cancelled)
        self.assertEqual(summary.file_count, 0)


class TestGitignore(ServiceTestCase):
    def setUp(self):
        super().setUp()
        os.makedirs(self.target)
        self.path = os.path.join(self.target, ".gitignore")

    def test_unchanged(self):
        write(self.path, DEFAULT_GITIGNORE_CONTENT)
        self.assertEqual(self.service.ensure_gitignore(self.target), GitignoreStatus.UNCHANGED)

    def test_kept_by_default(self):
        write(self.path, "mine\n")
        self.assertEqual(self.service.ensure_gitignore(self.target), GitignoreStatus.KEPT)
        self.assertEqual(read(self.path), "mine\n")

    def test_overwritten_when_resolver_agrees(self):
        write(self.path, "mine\n")
        seen = []

        def resolver(path, existing, new):
            seen.append((path, existing, new))
            return GitignoreDecision.OVERWRITE

        self.service.gitignore_resolver = resolver
        status = self.service.ensure_gitignore(self.target, "custom\n")

        self.assertEqual(status, GitignoreStatus.OVERWRITTEN)
        self.assertEqual(read(self.path), "custom\n")
        self.assertEqual(seen, [(self.path, "mine\n", "custom\n")])

    def test_failure_is_reported(self):
        blocker = os.path.join(self._tmp.name, "blocker")
        write(blocker, "")
        self.assertEqual(self.service.ensure_gitignore(blocker), GitignoreStatus.FAILED)


class TestImport(ServiceTestCase):
    def setUp(self):
        super().setUp()
        self.export()
        write(os.path.join(self.app, "CLAUDE.md"), "# Changed")

    def test_skips_existing_by_default(self):
        summary = self.service.import_(self.provider.get_root_nodes(), ImportOptions(self.target))

        self.assertEqual(summary.files_found, 2)
        self.assertEqual(summary.file_count, 0)
        self.assertIn(os.path.join(self.app, "CLAUDE.md"), summary.skipped_files)
        self.assertEqual(read(os.path.join(self.app, "CLAUDE.md")), "# Changed")

    def test_overwrite(self):
        summary = self.service.import_(self.provider.get_root_nodes(), ImportOptions(self.target, overwrite=True))

        self.assertEqual(summary.file_count, 2)
        self.assertIn(os.path.join(self.app, "CLAUDE.md"), summary.imported_files)
        self.assertEqual(read(os.path.join(self.app, "CLAUDE.md")), "# App")

    def test_restores_missing_global_files(self):
        os.remove(os.path.join(self.home, ".claude", "settings.json"))
        self.service.import_(self.provider.get_root_nodes(), ImportOptions(self.target))
        self.assertEqual(read(os.path.join(self.home, ".claude", "settings.json")), '{"theme": "dark"}')

    def test_missing_source_directory(self):
        with self.assertRaises(ExportSetupError):
            self.service.import_(
                self.provider.get_root_nodes(),
                ImportOptions(os.path.join(self._tmp.name, "nope")),
            )


class TestFormatFailures(unittest.TestCase):
    def test_limit(self):
        failures = [ExportFailure(f"/s{i}", f"/d{i}", "boom") for i in range(7)]
        text = format_failures(failures)
        self.assertEqual(len(text.splitlines()), 6)
        self.assertTrue(text.endswith("... and 2 more"))
        self.assertIn("/s0 -> /d0: boom", text)

    def test_empty(self):
        self.assertEqual(format_failures([]), "")


if __name__ == "__main__":
    unittest.main()
