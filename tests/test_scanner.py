import unittest

from ctxmirror.core.export.scanner import ExportScanner
from ctxmirror.core.models import DirEntry, Node, NodeCategory, NodeKind


class FakeLister:
    def __init__(self, listings=None, errors=()):
        self.listings = listings or {}
        self.errors = set(errors)
        self.calls = []

    def list(self, path):
        self.calls.append(path)
        if path in self.errors:
            raise PermissionError(f"denied: {path}")
        return self.listings.get(path, [])


class FakeProvider:
    def __init__(self, children):
        self.children = children
        self.calls = []

    def get_children(self, node):
        self.calls.append(node.label)
        return self.children.get(node.label, [])


def global_root():
    return Node.create(NodeKind.VIRTUAL, "Global Configuration", category=NodeCategory.GLOBAL)


def projects_root():
    return Node.create(NodeKind.VIRTUAL, "Projects", category=NodeCategory.PROJECTS)


class TestVirtualNodes(unittest.TestCase):
    def test_global_with_config_file(self):
        config = Node.create(NodeKind.FILE, "~/.claude.json", source_path="/home/u/.claude.json")
        provider = FakeProvider({"Global Configuration": [config]})
        scanner = ExportScanner(FakeLister(), provider)

        plan = scanner.scan([global_root()])

        self.assertEqual(len(plan.directories_to_create), 1)
        placeholder = plan.directories_to_create[0]
        self.assertTrue(placeholder.is_placeholder)
        self.assertEqual(placeholder.dst_relative_path, "global")

        self.assertEqual(len(plan.files_to_copy), 1)
        file = plan.files_to_copy[0]
        self.assertEqual(file.category, NodeCategory.GLOBAL)
        self.assertEqual(file.dst_relative_path, "global/.claude.json")
        self.assertEqual(file.kind, NodeKind.FILE)

    def test_provider_passed_to_scan_overrides(self):
        config = Node.create(NodeKind.FILE, "~/.claude.json", source_path="/home/u/.claude.json")
        scanner = ExportScanner(FakeLister(), FakeProvider({}))

        plan = scanner.scan([global_root()], FakeProvider({"Global Configuration": [config]}))

        self.assertEqual(len(plan.files_to_copy), 1)

    def test_no_provider_gives_placeholder_only(self):
        plan = ExportScanner(FakeLister()).scan([global_root()])

        self.assertEqual(len(plan.directories_to_create), 1)
        self.assertEqual(plan.files_to_copy, ())

    def test_virtual_never_in_files(self):
        provider = FakeProvider({"Global Configuration": [projects_root()]})
        plan = ExportScanner(FakeLister(), provider).scan([global_root()])

        self.assertEqual(plan.files_to_copy, ())
        self.assertEqual(
            [d.dst_relative_path for d in plan.directories_to_create],
            ["global", "projects"],
        )


class TestDirectoryNodes(unittest.TestCase):
    def test_directory_is_not_recursed(self):
        claude_dir = Node.create(NodeKind.DIRECTORY, "~/.claude", source_path="/home/u/.claude")
        lister = FakeLister({"/home/u/.claude": [DirEntry("settings.json", False)]})
        provider = FakeProvider({"Global Configuration": [claude_dir]})

        plan = ExportScanner(lister, provider).scan([global_root()])

        self.assertEqual(len(plan.directories_to_copy), 1)
        self.assertEqual(plan.directories_to_copy[0].dst_relative_path, "global/.claude")
        self.assertEqual(plan.files_to_copy, ())
        # Only the VIRTUAL placeholder
        self.assertEqual(len(plan.directories_to_create), 1)
        self.assertEqual(lister.calls, [])


class TestProjectNodes(unittest.TestCase):
    def setUp(self):
        self.project = Node.create(
            NodeKind.PROJECT, "proj", source_path="/work/proj", category=NodeCategory.PROJECTS
        )
        self.lister = FakeLister({
            "/work/proj": [
                DirEntry(".claude", True),
                DirEntry("CLAUDE.md", False),
                DirEntry(".mcp.json", False),
            ],
        })

    def test_project_expansion(self):
        provider = FakeProvider({"Projects": [self.project]})
        plan = ExportScanner(self.lister, provider).scan([projects_root()])

        self.assertEqual(
            [d.dst_relative_path for d in plan.directories_to_create],
            ["projects", "projects/proj"],
        )
        self.assertEqual(
            [d.dst_relative_path for d in plan.directories_to_copy],
            ["projects/proj/.claude"],
        )
        self.assertEqual(
            [f.dst_relative_path for f in plan.files_to_copy],
            ["projects/proj/CLAUDE.md", "projects/proj/.mcp.json"],
        )
        for entry in plan.files_to_copy + plan.directories_to_copy:
            self.assertEqual(entry.category, NodeCategory.PROJECTS)
            self.assertEqual(entry.project_name, "proj")

    def test_listing_error_keeps_project_root(self):
        lister = FakeLister(errors=["/work/proj"])
        plan = ExportScanner(lister).scan([self.project])

        self.assertEqual(
            [d.dst_relative_path for d in plan.directories_to_create],
            ["projects/proj"],
        )
        self.assertEqual(plan.files_to_copy, ())

    def test_order_follows_listing(self):
        lister = FakeLister({
            "/work/proj": [DirEntry("b.md", False), DirEntry("CLAUDE.md", False), DirEntry("a.md", False)],
        })
        plan = ExportScanner(lister).scan([self.project])

        self.assertEqual([f.label for f in plan.files_to_copy], ["b.md", "CLAUDE.md", "a.md"])


class TestMetadata(unittest.TestCase):
    def test_source_roots_and_timestamp(self):
        project = Node.create(NodeKind.PROJECT, "p", source_path="/p", category=NodeCategory.PROJECTS)
        plan = ExportScanner(FakeLister()).scan([global_root(), project])

        self.assertEqual(plan.metadata.source_roots, ("/p",))
        self.assertGreater(plan.metadata.timestamp, 0)

    def test_root_nodes_are_skipped(self):
        root = Node.create(NodeKind.ROOT, "root", source_path="/")
        plan = ExportScanner(FakeLister()).scan([root])

        self.assertTrue(plan.is_empty)

    def test_cancel_stops_descending(self):
        config = Node.create(NodeKind.FILE, "~/.claude.json", source_path="/home/u/.claude.json")
        scanner = ExportScanner(FakeLister())

        class CancellingProvider:
            def get_children(self, node):
                scanner.cancel()
                return [config]

        plan = scanner.scan([global_root(), projects_root()], CancellingProvider())

        self.assertEqual(len(plan.directories_to_create), 1)
        self.assertEqual(plan.files_to_copy, ())
        self.assertTrue(scanner.is_cancelled)

        # Still cancelled on the next scan until reset
        self.assertTrue(scanner.scan([global_root()]).is_empty)
        scanner.reset()
        self.assertFalse(scanner.scan([global_root()]).is_empty)

    def test_plan_is_immutable(self):
        plan = ExportScanner(FakeLister()).scan([global_root()])
        with self.assertRaises(Exception):
            plan.files_to_copy = ()


if __name__ == "__main__":
    unittest.main()
