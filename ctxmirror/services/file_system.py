"""
Local filesystem service.

Handles:
- Filtered, ordered directory listings
- File and recursive directory copies
- Text reading with encoding detection
- Atomic text writes
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import chardet

from ctxmirror.core.filters import (
    AllowAllFilter,
    EntryFilter,
    FilterContext,
    is_inside_claude_dir,
)
from ctxmirror.core.models import DirEntry


class LocalFileSystem:
    """Filesystem primitives used by the scanner, executor and services."""

    def __init__(
        self,
        entry_filter: Optional[EntryFilter] = None,
        default_encoding: str = 'utf-8',
        fallback_encoding: str = 'latin-1',
    ):
        self.entry_filter = entry_filter or AllowAllFilter()
        self.default_encoding = default_encoding
        self.fallback_encoding = fallback_encoding

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------

    def list(self, path: str) -> list[DirEntry]:
        """
        List a directory: directories first, then by name.

        Raises:
            OSError: If the directory cannot be read
        """
        inside_claude = is_inside_claude_dir(path)
        entries: list[DirEntry] = []

        with os.scandir(path) as it:
            for item in it:
                try:
                    is_dir = item.is_dir()
                except OSError as e:
                    logging.debug(f"LocalFileSystem - Cannot stat {item.path}: {e}")
                    continue

                context = FilterContext(
                    path=item.path,
                    name=item.name,
                    is_directory=is_dir,
                    inside_claude_dir=inside_claude,
                )
                if self.entry_filter.include(context):
                    entries.append(DirEntry(name=item.name, is_directory=is_dir))

        entries.sort(key=lambda e: (not e.is_directory, e.name.lower(), e.name))
        return entries

    # -------------------------------------------------------------------------
    # Copy primitives
    # -------------------------------------------------------------------------

    def copy_file(self, src: str, dst: str) -> None:
        """Copy one file, preserving timestamps."""
        shutil.copy2(src, dst)

    def copy_tree(self, src: str, dst: str, overwrite: bool = True) -> None:
        """
        Copy a directory tree into `dst`, merging with existing content.

        With `overwrite` False, files already present in `dst` are kept.
        """
        if not os.path.isdir(src):
            raise NotADirectoryError(f"Not a directory: {src}")

        copy_function = shutil.copy2 if overwrite else _copy_if_missing
        shutil.copytree(src, dst, dirs_exist_ok=True, copy_function=copy_function)

    def make_dirs(self, path: str) -> None:
        if path:
            os.makedirs(path, exist_ok=True)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def is_file(self, path: str) -> bool:
        return os.path.isfile(path)

    # -------------------------------------------------------------------------
    # Text I/O
    # -------------------------------------------------------------------------

    def read_text(self, path: str) -> str:
        """
        Read a text file, detecting its encoding.

        Raises:
            OSError: If the file cannot be read
        """
        raw = Path(path).read_bytes()
        return self.decode(raw)

    def decode(self, raw: bytes) -> str:
        """Decode bytes, honouring a BOM and falling back to chardet."""
        if raw.startswith(b'\xef\xbb\xbf'):
            return raw.decode('utf-8-sig')
        if raw.startswith(b'\xff\xfe'):
            return raw[2:].decode('utf-16-le')
        if raw.startswith(b'\xfe\xff'):
            return raw[2:].decode('utf-16-be')

        try:
            return raw.decode(self.default_encoding)
        except UnicodeDecodeError:
            pass

        encoding = self._detect_encoding(raw)
        try:
            return raw.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            return raw.decode(self.fallback_encoding, errors='replace')

    def write_text(self, path: str, content: str, encoding: str = 'utf-8') -> int:
        """
        Write text atomically (temp file, then move).

        Returns bytes written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        encoded = content.encode(encoding)

        fd, temp_path = tempfile.mkstemp(dir=target.parent)
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(encoded)
            shutil.move(temp_path, target)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

        return len(encoded)

    def _detect_encoding(self, content: bytes) -> str:
        if not content:
            return self.default_encoding

        result = chardet.detect(content)

        if result['confidence'] > 0.7 and result['encoding']:
            encoding = result['encoding'].lower()
            if encoding == 'ascii':
                return 'utf-8'
            return encoding

        return self.fallback_encoding


def _copy_if_missing(src: str, dst: str) -> str:
    if os.path.exists(dst):
        logging.debug(f"LocalFileSystem - Keeping existing {dst}")
        return dst
    return shutil.copy2(src, dst)
