"""
Entry filters for directory listings.

Decides which entries of a project directory belong to the Claude
configuration:
- ``.claude`` directories and everything inside them
- ``CLAUDE.md``, ``.claude.md``, ``.mcp.json`` and ``.claude.json`` files
- Optional user patterns (fnmatch-style) for extra includes and excludes
"""

from __future__ import annotations

import fnmatch
import re
from dataclasses import dataclass, field
from typing import Protocol


CLAUDE_DIR_NAMES = (".claude",)
CLAUDE_FILE_NAMES = ("CLAUDE.md", ".claude.md", ".mcp.json", ".claude.json")


@dataclass(frozen=True)
class FilterContext:
    """What a filter sees about one entry."""
    path: str
    name: str
    is_directory: bool
    inside_claude_dir: bool = False


class EntryFilter(Protocol):
    def include(self, context: FilterContext) -> bool: ...


def is_inside_claude_dir(path: str) -> bool:
    """True if the path is a ``.claude`` directory or lies inside one."""
    parts = re.split(r"[/\\]", path)
    return ".claude" in parts


class AllowAllFilter:
    """Includes every entry."""

    def include(self, context: FilterContext) -> bool:
        return True


class ClaudeFileFilter:
    """Includes Claude configuration files and directories only."""

    def include(self, context: FilterContext) -> bool:
        if context.inside_claude_dir:
            return True
        if context.is_directory:
            return context.name in CLAUDE_DIR_NAMES
        return context.name in CLAUDE_FILE_NAMES


@dataclass
class PatternFilter:
    """
    Claude filter extended with user patterns.

    Exclude patterns win over everything. An entry matching an include
    pattern is kept even if the Claude filter would drop it.
    """
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    use_claude_filter: bool = True

    def include(self, context: FilterContext) -> bool:
        for pattern in self.exclude_patterns:
            if fnmatch.fnmatch(context.name, pattern):
                return False

        for pattern in self.include_patterns:
            if fnmatch.fnmatch(context.name, pattern):
                return True

        if self.use_claude_filter:
            return ClaudeFileFilter().include(context)
        return not self.include_patterns


def create_filter(
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    use_claude_filter: bool = True,
) -> EntryFilter:
    """Build the filter for a set of configured patterns."""
    if not include_patterns and not exclude_patterns:
        return ClaudeFileFilter() if use_claude_filter else AllowAllFilter()
    return PatternFilter(
        include_patterns=list(include_patterns or []),
        exclude_patterns=list(exclude_patterns or []),
        use_claude_filter=use_claude_filter,
    )
