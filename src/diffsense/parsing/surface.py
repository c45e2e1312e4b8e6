"""
The declaration surface of a source module.

A :class:`ModuleSurface` is what the semantic analyzer compares between
the old and new version of a file: exported names, top-level
declarations by category, imports, class heritage and interface members.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple


class ParseError(Exception):
    """Raised when a source file cannot be turned into a syntax tree."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot parse '{path}': {reason}")
        self.path = path
        self.reason = reason


@dataclass(frozen=True)
class ImportRef:
    """An import (or re-export) of ``symbols`` from ``specifier``.

    Python relative imports keep their leading dots in ``specifier``.
    """

    specifier: str
    symbols: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InterfaceMember:
    name: str
    optional: bool = False


def unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates while keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


@dataclass
class ModuleSurface:
    exports: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    interfaces: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    enums: List[str] = field(default_factory=list)
    type_aliases: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)
    imports: List[ImportRef] = field(default_factory=list)
    reexports: List[ImportRef] = field(default_factory=list)
    heritage: List[Tuple[str, str]] = field(default_factory=list)
    interface_members: Dict[str, List[InterfaceMember]] = field(default_factory=dict)
    has_jsx: bool = False

    @property
    def declarations(self) -> List[str]:
        """Every top-level declaration name, categories in a fixed order."""
        return unique(
            self.classes + self.interfaces + self.functions + self.enums + self.type_aliases + self.variables
        )

    @property
    def imported_modules(self) -> List[str]:
        return unique(ref.specifier for ref in self.imports)

    def finalize(self) -> "ModuleSurface":
        """De-duplicate the name lists in place and return ``self``."""
        for name in ("exports", "classes", "interfaces", "functions", "enums", "type_aliases", "variables"):
            setattr(self, name, unique(getattr(self, name)))
        return self
