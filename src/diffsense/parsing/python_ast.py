"""Surface extraction for Python modules using the standard ``ast`` module."""

from __future__ import annotations

import ast
from typing import List, Optional

from .surface import ImportRef, InterfaceMember, ModuleSurface, ParseError


_ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}
_INTERFACE_BASES = {"Protocol", "ABC", "TypedDict"}


def _base_name(node: ast.expr) -> str:
    if isinstance(node, ast.Subscript):
        node = node.value
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Name):
        return node.id
    return ""


def _target_names(target: ast.expr) -> List[str]:
    if isinstance(target, ast.Name):
        return [target.id]
    if isinstance(target, (ast.Tuple, ast.List)):
        names: List[str] = []
        for element in target.elts:
            names.extend(_target_names(element))
        return names
    return []


def _literal_all(node: ast.stmt) -> Optional[List[str]]:
    """Return the names of a literal ``__all__ = [...]`` assignment."""
    if isinstance(node, ast.Assign):
        targets, value = node.targets, node.value
    elif isinstance(node, ast.AnnAssign) and node.value is not None:
        targets, value = [node.target], node.value
    else:
        return None
    if not any(isinstance(t, ast.Name) and t.id == "__all__" for t in targets):
        return None
    if not isinstance(value, (ast.List, ast.Tuple)):
        return None
    return [elt.value for elt in value.elts if isinstance(elt, ast.Constant) and isinstance(elt.value, str)]


def _class_members(node: ast.ClassDef) -> List[InterfaceMember]:
    members: List[InterfaceMember] = []
    for item in node.body:
        if isinstance(item, ast.AnnAssign) and isinstance(item.target, ast.Name):
            annotation = ast.unparse(item.annotation)
            optional = item.value is not None or "Optional" in annotation or "NotRequired" in annotation or "None" in annotation
            members.append(InterfaceMember(name=item.target.id, optional=optional))
        elif isinstance(item, (ast.FunctionDef, ast.AsyncFunctionDef)) and not item.name.startswith("_"):
            members.append(InterfaceMember(name=item.name))
    return members


def _relative_specifier(node: ast.ImportFrom) -> str:
    return "." * (node.level or 0) + (node.module or "")


def parse_python(path: str, content: str) -> ModuleSurface:
    """Parse Python ``content`` into a :class:`ModuleSurface`.

    Exports are the names of a literal ``__all__`` when present, otherwise
    every public top-level name. Classes deriving from an enum base are
    enums; ``Protocol``, ``ABC`` and ``TypedDict`` subclasses are
    interfaces whose annotated attributes and public methods are members.

    Raises
    ------
    ParseError
        If the source is not valid Python or nests too deeply to parse.
    """
    try:
        tree = ast.parse(content, filename=path)
    except (RecursionError, MemoryError) as exc:
        raise ParseError(path, "source is too deeply nested to parse") from exc
    except (SyntaxError, ValueError) as exc:
        line = getattr(exc, "lineno", None)
        reason = f"syntax error near line {line}" if line else str(exc)
        raise ParseError(path, reason) from exc

    surface = ModuleSurface()
    explicit_all: Optional[List[str]] = None
    type_alias = getattr(ast, "TypeAlias", None)

    for node in tree.body:
        if isinstance(node, ast.ClassDef):
            bases = [_base_name(base) for base in node.bases]
            for base in bases:
                if base:
                    surface.heritage.append((node.name, base))
            if any(base in _ENUM_BASES for base in bases):
                surface.enums.append(node.name)
            elif any(base in _INTERFACE_BASES for base in bases):
                surface.interfaces.append(node.name)
                surface.interface_members[node.name] = _class_members(node)
            else:
                surface.classes.append(node.name)
        elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            surface.functions.append(node.name)
        elif type_alias is not None and isinstance(node, type_alias):
            surface.type_aliases.append(node.name.id)
        elif isinstance(node, ast.Import):
            for alias in node.names:
                surface.imports.append(ImportRef(alias.name, (alias.asname or alias.name,)))
        elif isinstance(node, ast.ImportFrom):
            symbols = tuple(alias.name for alias in node.names)
            surface.imports.append(ImportRef(_relative_specifier(node), symbols))
        elif isinstance(node, (ast.Assign, ast.AnnAssign)):
            names = _literal_all(node)
            if names is not None:
                explicit_all = names
                continue
            targets = node.targets if isinstance(node, ast.Assign) else [node.target]
            for target in targets:
                for name in _target_names(target):
                    if isinstance(node, ast.AnnAssign) and ast.unparse(node.annotation).endswith("TypeAlias"):
                        surface.type_aliases.append(name)
                    else:
                        surface.variables.append(name)

    if explicit_all is not None:
        surface.exports = list(explicit_all)
    else:
        surface.exports = [name for name in surface.declarations if not name.startswith("_")]
    return surface.finalize()
