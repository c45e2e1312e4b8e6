"""Tree-sitter powered surface extraction for TypeScript and JavaScript."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterator, List, Optional

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from .surface import ImportRef, InterfaceMember, ModuleSurface, ParseError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


_GRAMMARS = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

SUPPORTED_EXTENSIONS = frozenset(_GRAMMARS)

_CLASS_TYPES = {"class_declaration", "abstract_class_declaration"}
_FUNCTION_TYPES = {"function_declaration", "generator_function_declaration", "function_signature"}
_VARIABLE_TYPES = {"lexical_declaration", "variable_declaration"}
_JSX_TYPES = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}


@lru_cache(maxsize=None)
def _get_parser(grammar: str) -> Parser:
    if grammar == "typescript":
        language = Language(tree_sitter_typescript.language_typescript())
    elif grammar == "tsx":
        language = Language(tree_sitter_typescript.language_tsx())
    else:
        language = Language(tree_sitter_javascript.language())
    return Parser(language)


def _node_text(node: Optional[Node], source_bytes: bytes) -> str:
    if node is None:
        return ""
    return source_bytes[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _string_value(node: Optional[Node], source_bytes: bytes) -> str:
    text = _node_text(node, source_bytes)
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


def _walk(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _first_error_line(root: Node) -> int:
    for node in _walk(root):
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
    return root.start_point[0] + 1


def _type_name(text: str) -> str:
    """``Base<T>`` and ``ns.Base`` both become ``Base``."""
    return text.split("<", 1)[0].strip().rsplit(".", 1)[-1]


class _SurfaceBuilder:
    """Walks the top level of a program and fills a :class:`ModuleSurface`."""

    def __init__(self, source_bytes: bytes) -> None:
        self.src = source_bytes
        self.surface = ModuleSurface()

    def text(self, node: Optional[Node]) -> str:
        return _node_text(node, self.src)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------
    def declare(self, node: Node) -> List[str]:
        """Record a top-level declaration and return the names it binds."""
        surface = self.surface
        kind = node.type
        if kind == "ambient_declaration":
            names: List[str] = []
            for child in node.named_children:
                names.extend(self.declare(child))
            return names
        if kind in _VARIABLE_TYPES:
            names = []
            for declarator in node.named_children:
                if declarator.type == "variable_declarator":
                    names.extend(self._binding_names(declarator.child_by_field_name("name")))
            surface.variables.extend(names)
            return names

        name = self.text(node.child_by_field_name("name"))
        if not name:
            return []
        if kind in _CLASS_TYPES:
            surface.classes.append(name)
            self._collect_heritage(name, node)
        elif kind == "interface_declaration":
            surface.interfaces.append(name)
            self._collect_members(name, node)
        elif kind in _FUNCTION_TYPES:
            surface.functions.append(name)
        elif kind == "enum_declaration":
            surface.enums.append(name)
        elif kind == "type_alias_declaration":
            surface.type_aliases.append(name)
        elif kind not in {"module", "internal_module"}:
            return []
        return [name]

    def _binding_names(self, node: Optional[Node]) -> List[str]:
        if node is None:
            return []
        if node.type == "identifier":
            return [self.text(node)]
        return [
            self.text(child)
            for child in _walk(node)
            if child.type in {"identifier", "shorthand_property_identifier_pattern"}
        ]

    def _collect_heritage(self, class_name: str, node: Node) -> None:
        for child in node.children:
            if child.type != "class_heritage":
                continue
            for clause in child.named_children:
                if clause.type in {"extends_clause", "implements_clause"}:
                    for base in clause.named_children:
                        if base.type in {"type_arguments", "comment"}:
                            continue
                        self.surface.heritage.append((class_name, _type_name(self.text(base))))
                else:
                    self.surface.heritage.append((class_name, _type_name(self.text(clause))))

    def _collect_members(self, interface_name: str, node: Node) -> None:
        body = node.child_by_field_name("body")
        if body is None:
            return
        members = self.surface.interface_members.setdefault(interface_name, [])
        for child in body.named_children:
            if child.type not in {"property_signature", "method_signature"}:
                continue
            name = self.text(child.child_by_field_name("name"))
            if name:
                optional = any(token.type == "?" for token in child.children)
                members.append(InterfaceMember(name=name, optional=optional))

    # ------------------------------------------------------------------
    # Imports and exports
    # ------------------------------------------------------------------
    def import_statement(self, node: Node) -> None:
        source = node.child_by_field_name("source")
        symbols: List[str] = []
        for child in node.named_children:
            if child.type == "import_require_clause":
                source = child.child_by_field_name("source")
                symbols.extend(self.text(c) for c in child.named_children if c.type == "identifier")
            elif child.type == "import_clause":
                symbols.extend(self._import_clause_symbols(child))
        if source is not None:
            self.surface.imports.append(ImportRef(_string_value(source, self.src), tuple(symbols)))

    def _import_clause_symbols(self, clause: Node) -> List[str]:
        symbols: List[str] = []
        for child in clause.named_children:
            if child.type == "identifier":
                symbols.append("default")
            elif child.type == "namespace_import":
                symbols.append("*")
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type == "import_specifier":
                        symbols.append(self.text(spec.child_by_field_name("name")))
        return symbols

    def export_statement(self, node: Node) -> None:
        surface = self.surface
        tokens = {child.type for child in node.children if not child.is_named}
        declaration = node.child_by_field_name("declaration")
        source = node.child_by_field_name("source")

        if declaration is not None:
            names = self.declare(declaration)
            surface.exports.extend(["default"] if "default" in tokens else names)
            return
        if "default" in tokens or "=" in tokens:
            surface.exports.append("default")
            return

        exported: List[str] = []
        imported: List[str] = []
        for child in node.named_children:
            if child.type == "export_clause":
                for spec in child.named_children:
                    if spec.type != "export_specifier":
                        continue
                    name = self.text(spec.child_by_field_name("name"))
                    alias = self.text(spec.child_by_field_name("alias"))
                    exported.append(alias or name)
                    imported.append(name)
            elif child.type == "namespace_export":
                alias = [self.text(c) for c in child.named_children]
                exported.extend(alias[-1:])
                imported.append("*")
        if source is not None and "*" in tokens and not imported:
            imported.append("*")

        surface.exports.extend(exported)
        if source is not None:
            surface.reexports.append(ImportRef(_string_value(source, self.src), tuple(imported)))

    def commonjs_export(self, node: Node) -> None:
        expression = node.named_children[0] if node.named_children else None
        if expression is None or expression.type != "assignment_expression":
            return
        target = self.text(expression.child_by_field_name("left"))
        if target == "module.exports":
            self.surface.exports.append("default")
        elif target.startswith("module.exports.") or target.startswith("exports."):
            self.surface.exports.append(target.rsplit(".", 1)[-1])

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def build(self, root: Node) -> ModuleSurface:
        for child in root.named_children:
            kind = child.type
            if kind == "import_statement":
                self.import_statement(child)
            elif kind == "export_statement":
                self.export_statement(child)
            elif kind == "expression_statement":
                self.commonjs_export(child)
            else:
                self.declare(child)
        self.surface.has_jsx = any(node.type in _JSX_TYPES for node in _walk(root))
        return self.surface.finalize()


def supports(path: str) -> bool:
    return any(path.lower().endswith(ext) for ext in SUPPORTED_EXTENSIONS)


def parse_typescript(path: str, content: str) -> ModuleSurface:
    """Parse TypeScript or JavaScript ``content`` into a :class:`ModuleSurface`.

    Raises
    ------
    ParseError
        If the syntax tree contains errors.
    """
    lower = path.lower()
    grammar = next((g for ext, g in _GRAMMARS.items() if lower.endswith(ext)), "typescript")
    source_bytes = content.encode("utf-8")
    tree = _get_parser(grammar).parse(source_bytes)
    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        raise ParseError(path, f"syntax error near line {line}")
    logger.debug("Parsed %s with the %s grammar", path, grammar)
    return _SurfaceBuilder(source_bytes).build(tree.root_node)
