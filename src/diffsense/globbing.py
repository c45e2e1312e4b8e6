"""
Glob matching for rule patterns and path filters.

Patterns are matched against the whole repository-relative path, one
path segment at a time: ``*`` and ``?`` never match ``/``, a ``**``
segment matches zero or more whole segments, and ``{a,b}`` expands to
alternatives. A trailing ``/`` is short for ``/**``.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable, List


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` groups into every alternative pattern.

    >>> expand_braces("**/*.{spec,test}.ts")
    ['**/*.spec.ts', '**/*.test.ts']
    """
    start = pattern.find("{")
    if start == -1:
        return [pattern]
    depth = 0
    for index in range(start, len(pattern)):
        if pattern[index] == "{":
            depth += 1
        elif pattern[index] == "}":
            depth -= 1
            if depth == 0:
                end = index
                break
    else:
        return [pattern]

    options: List[str] = []
    current = ""
    depth = 0
    for ch in pattern[start + 1:end]:
        if ch == "," and depth == 0:
            options.append(current)
            current = ""
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current += ch
    options.append(current)

    prefix, suffix = pattern[:start], pattern[end + 1:]
    expanded: List[str] = []
    for option in options:
        expanded.extend(expand_braces(prefix + option + suffix))
    return expanded


def _split(value: str) -> List[str]:
    return [part for part in value.split("/") if part and part != "."]


def _match_segments(parts: List[str], segments: List[str]) -> bool:
    if not segments:
        return not parts
    head, rest = segments[0], segments[1:]
    if head == "**":
        while rest and rest[0] == "**":
            rest = rest[1:]
        return any(_match_segments(parts[index:], rest) for index in range(len(parts) + 1))
    if not parts or not fnmatchcase(parts[0], head):
        return False
    return _match_segments(parts[1:], rest)


def _single_matches(path: str, pattern: str) -> bool:
    if pattern.endswith("/"):
        pattern += "**"
    return _match_segments(_split(path), _split(pattern))


def glob_matches(path: str, pattern: str) -> bool:
    """Return True if the repository-relative ``path`` matches ``pattern``.

    >>> glob_matches("src/x.ts", "src/**/x.ts")
    True
    >>> glob_matches("src/a/b.ts", "src/*.ts")
    False
    """
    normalized = path.replace("\\", "/")
    return any(_single_matches(normalized, p) for p in expand_braces(pattern))


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(glob_matches(path, pattern) for pattern in patterns)
