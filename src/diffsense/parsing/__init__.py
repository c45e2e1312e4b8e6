"""
Source parsing for the semantic analyzer.

TypeScript and JavaScript files are parsed with tree-sitter, Python files
with the standard ``ast`` module. Both produce a :class:`ModuleSurface`.
"""

from __future__ import annotations

from .python_ast import parse_python
from .surface import ImportRef, InterfaceMember, ModuleSurface, ParseError  # noqa: F401
from .typescript import parse_typescript, supports as _supports_typescript


def is_code_path(path: str) -> bool:
    """True for files the semantic analyzer can parse."""
    return _supports_typescript(path) or path.lower().endswith(".py")


def parse_source(path: str, content: str) -> ModuleSurface:
    """Parse ``content`` with the parser matching ``path``.

    Raises
    ------
    ParseError
        On syntax errors, or when no parser handles ``path``.
    """
    if path.lower().endswith(".py"):
        return parse_python(path, content)
    if _supports_typescript(path):
        return parse_typescript(path, content)
    raise ParseError(path, "no parser for this file type")
