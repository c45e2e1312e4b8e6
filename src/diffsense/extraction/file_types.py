"""
File type classification by name and extension.
"""

from __future__ import annotations

import posixpath
import re
from typing import Dict, Tuple

from ..models import ChangeMetadata


EXTENSION_TYPES: Dict[str, str] = {
    ".js": "script",
    ".ts": "script",
    ".jsx": "script",
    ".tsx": "script",
    ".mjs": "script",
    ".cjs": "script",
    ".py": "script",
    ".html": "markup",
    ".vue": "markup",
    ".svelte": "markup",
    ".css": "style",
    ".scss": "style",
    ".less": "style",
    ".sass": "style",
    ".json": "config",
    ".yaml": "config",
    ".yml": "config",
    ".xml": "config",
    ".toml": "config",
    ".md": "doc",
    ".txt": "doc",
    ".rst": "doc",
    ".png": "image",
    ".jpg": "image",
    ".jpeg": "image",
    ".gif": "image",
    ".svg": "image",
    ".ico": "image",
}

BINARY_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".ico", ".pdf", ".zip", ".exe"})

_TEST_NAME = re.compile(r"\.(test|spec)\.[^.]+$|^test_.+\.py$|^.+_test\.py$")


def split_path(file_path: str) -> Tuple[str, str, str]:
    """Return ``(directory, filename, extension)`` of a POSIX path."""
    directory, filename = posixpath.split(file_path)
    extension = posixpath.splitext(filename)[1].lower()
    return directory, filename, extension


def is_test_filename(filename: str) -> bool:
    """True for ``*.test.*``, ``*.spec.*``, ``test_*.py`` and ``*_test.py``."""
    return bool(_TEST_NAME.search(filename))


def is_binary_path(file_path: str) -> bool:
    return split_path(file_path)[2] in BINARY_EXTENSIONS


def classify_file_type(file_path: str) -> str:
    """Classify a path as script, markup, style, config, doc, image, test or unknown.

    Test naming is checked before the extension table.
    """
    _, filename, extension = split_path(file_path)
    if is_test_filename(filename):
        return "test"
    return EXTENSION_TYPES.get(extension, "unknown")


def _count_lines(content: str) -> int:
    return len(content.split("\n"))


def build_metadata(file_path: str, old_content, new_content) -> ChangeMetadata:
    """Derive line counts and file facts for one change.

    Line counts are a naive delta of the total line counts, not a diff.
    """
    lines_added = lines_removed = 0
    if old_content and new_content:
        delta = _count_lines(new_content) - _count_lines(old_content)
        if delta >= 0:
            lines_added = delta
        else:
            lines_removed = -delta
    elif new_content:
        lines_added = _count_lines(new_content)
    elif old_content:
        lines_removed = _count_lines(old_content)

    directory, filename, extension = split_path(file_path)
    return ChangeMetadata(
        lines_added=lines_added,
        lines_removed=lines_removed,
        is_binary=extension in BINARY_EXTENSIONS,
        file_type=classify_file_type(file_path),
        extension=extension,
        filename=filename,
        directory=directory,
    )
