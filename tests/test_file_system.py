import os
import tempfile
import unittest

from ctxmirror.core.filters import (
    AllowAllFilter,
    ClaudeFileFilter,
    FilterContext,
    PatternFilter,
    create_filter,
    is_inside_claude_dir,
)
from ctxmirror.services.file_system import LocalFileSystem


class TestFilters(unittest.TestCase):
    def ctx(self, name, is_directory=False, inside=False):
        return FilterContext(path=f"/p/{name}", name=name, is_directory=is_directory, inside_claude_dir=inside)

    def test_claude_filter(self):
        f = ClaudeFileFilter()
        self.assertTrue(f.include(self.ctx(".claude", is_directory=True)))
        self.assertTrue(f.include(self.ctx("CLAUDE.md")))
        self.assertTrue(f.include(self.ctx(".mcp.json")))
        self.assertFalse(f.include(self.ctx("src", is_directory=True)))
        self.assertFalse(f.include(self.ctx("README.md")))
        self.assertTrue(f.include(self.ctx("anything.txt", inside=True)))

    def test_pattern_filter_exclude_wins(self):
        f = PatternFilter(include_patterns=["*.md"], exclude_patterns=["CLAUDE.*"])
        self.assertFalse(f.include(self.ctx("CLAUDE.md")))
        self.assertTrue(f.include(self.ctx("NOTES.md")))
        self.assertTrue(f.include(self.ctx(".mcp.json")))
        self.assertFalse(f.include(self.ctx("main.py")))

    def test_pattern_filter_without_claude_filter(self):
        f = PatternFilter(include_patterns=["*.toml"], use_claude_filter=False)
        self.assertTrue(f.include(self.ctx("pyproject.toml")))
        self.assertFalse(f.include(self.ctx("CLAUDE.md")))

    def test_create_filter(self):
        self.assertIsInstance(create_filter(), ClaudeFileFilter)
        self.assertIsInstance(create_filter(use_claude_filter=False), AllowAllFilter)
        self.assertIsInstance(create_filter(exclude_patterns=["*.log"]), PatternFilter)

    def test_inside_claude_dir(self):
        self.assertTrue(is_inside_claude_dir("/home/u/.claude"))
        self.assertTrue(is_inside_claude_dir("C:\\Users\\u\\.claude\\commands"))
        self.assertFalse(is_inside_claude_dir("/home/u/.claude.json"))


class TestLocalFileSystem(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name
        self.fs = LocalFileSystem()

    def tearDown(self):
        self._tmp.cleanup()

    def touch(self, *parts, content=b""):
        path = os.path.join(self.tmp, *parts)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        return path

    def test_list_orders_directories_first(self):
        self.touch("b.txt")
        self.touch("A.txt")
        os.makedirs(os.path.join(self.tmp, "zdir"))
        os.makedirs(os.path.join(self.tmp, ".claude"))

        names = [(e.name, e.is_directory) for e in self.fs.list(self.tmp)]

        self.assertEqual(names, [(".claude", True), ("zdir", True), ("A.txt", False), ("b.txt", False)])

    def test_list_applies_filter(self):
        self.touch("CLAUDE.md")
        self.touch("main.py")
        os.makedirs(os.path.join(self.tmp, ".claude"))
        os.makedirs(os.path.join(self.tmp, "src"))

        fs = LocalFileSystem(entry_filter=ClaudeFileFilter())
        names = [e.name for e in fs.list(self.tmp)]

        self.assertEqual(names, [".claude", "CLAUDE.md"])

    def test_list_missing_directory_raises(self):
        with self.assertRaises(OSError):
            self.fs.list(os.path.join(self.tmp, "missing"))

    def test_copy_tree_merges(self):
        self.touch("src", "a.txt", content=b"new")
        self.touch("src", "sub", "b.txt", content=b"b")
        self.touch("dst", "a.txt", content=b"old")
        self.touch("dst", "keep.txt", content=b"k")
        src = os.path.join(self.tmp, "src")
        dst = os.path.join(self.tmp, "dst")

        self.fs.copy_tree(src, dst)

        self.assertEqual(self.fs.read_text(os.path.join(dst, "a.txt")), "new")
        self.assertEqual(self.fs.read_text(os.path.join(dst, "sub", "b.txt")), "b")
        self.assertTrue(os.path.exists(os.path.join(dst, "keep.txt")))

    def test_copy_tree_keeps_existing(self):
        self.touch("src", "a.txt", content=b"new")
        self.touch("src", "c.txt", content=b"c")
        self.touch("dst", "a.txt", content=b"old")
        dst = os.path.join(self.tmp, "dst")

        self.fs.copy_tree(os.path.join(self.tmp, "src"), dst, overwrite=False)

        self.assertEqual(self.fs.read_text(os.path.join(dst, "a.txt")), "old")
        self.assertEqual(self.fs.read_text(os.path.join(dst, "c.txt")), "c")

    def test_copy_tree_requires_directory(self):
        path = self.touch("file.txt")
        with self.assertRaises(NotADirectoryError):
            self.fs.copy_tree(path, os.path.join(self.tmp, "out"))

    def test_write_text_creates_parents(self):
        path = os.path.join(self.tmp, "a", "b", ".gitignore")
        written = self.fs.write_text(path, "x\n")

        self.assertEqual(written, 2)
        self.assertTrue(self.fs.is_file(path))
        self.assertFalse(self.fs.is_dir(path))
        self.assertEqual(self.fs.read_text(path), "x\n")
        self.assertEqual(os.listdir(os.path.dirname(path)), [".gitignore"])

    def test_decode_bom_and_utf8(self):
        self.assertEqual(self.fs.decode("héllo".encode("utf-8")), "héllo")
        self.assertEqual(self.fs.decode(b"\xef\xbb\xbfhi"), "hi")
        self.assertEqual(self.fs.decode(b"\xff\xfe" + "hi".encode("utf-16-le")), "hi")

    def test_decode_never_raises(self):
        self.assertIsInstance(self.fs.decode(b"\x81\x8d\x8f\x90\x9d"), str)


if __name__ == "__main__":
    unittest.main()
