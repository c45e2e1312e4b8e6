import unittest

from diffsense.models import (
    FILE_ADDED,
    FILE_DELETED,
    FILE_RENAMED,
    IMPLEMENTATION_CHANGED,
    INTERFACE_CHANGED,
    METHOD_ADDED,
    METHOD_REMOVED,
    ContextualizedChange,
)
from diffsense.parsing import ModuleSurface
from diffsense.semantic import SemanticAnalyzer, describe_module


def make_change(path, kind, old=None, new=None, previous_path=None):
    return ContextualizedChange(
        file_path=path, change_kind=kind, old_content=old, new_content=new, previous_path=previous_path
    )


class TestSemanticAnalyzer(unittest.TestCase):
    def setUp(self) -> None:
        self.analyzer = SemanticAnalyzer()

    def analyze_one(self, change):
        (result,) = self.analyzer.analyze([change])
        return result

    def test_added_file(self) -> None:
        result = self.analyze_one(make_change("src/user.ts", "added", new="export interface User { id: string; }\n"))
        self.assertEqual([d.kind for d in result.semantic_deltas], [FILE_ADDED])
        self.assertEqual(result.semantic_deltas[0].description, "Added interface definition: user.ts")
        self.assertEqual(result.impact, "moderate")
        self.assertTrue(result.analyzed)

    def test_interface_property_changes(self) -> None:
        old = "export interface UserDto {\n  id: string;\n  email: string;\n}\n"
        new = "export interface UserDto {\n  id: string;\n  nickname?: string;\n}\n"
        result = self.analyze_one(make_change("src/dto/user-dto.ts", "modified", old, new))

        self.assertEqual(
            [(d.kind, d.description, d.severity) for d in result.semantic_deltas],
            [
                (INTERFACE_CHANGED, "Property 'email' removed from interface UserDto", "high"),
                (INTERFACE_CHANGED, "Property 'nickname' added to interface UserDto (optional)", "low"),
            ],
        )
        self.assertEqual(result.affected_symbols, ("UserDto.email", "UserDto.nickname"))
        self.assertEqual(result.impact, "minor")
        self.assertEqual(result.summary, "Modified interface definition: user-dto.ts with 2 semantic changes")

    def test_removed_and_added_exports(self) -> None:
        old = "export function a() {}\nexport function b() {}\n"
        new = "export function a() {}\nexport function c() {}\nfunction helper() {}\n"
        result = self.analyze_one(make_change("src/util.ts", "modified", old, new))

        self.assertEqual(
            [(d.kind, d.description, d.severity) for d in result.semantic_deltas],
            [
                (METHOD_REMOVED, "Removed export: b", "breaking"),
                (METHOD_ADDED, "Added export: c", "medium"),
                (IMPLEMENTATION_CHANGED, "Added declaration: helper", "low"),
            ],
        )
        self.assertEqual(result.impact, "major")

    def test_import_changes(self) -> None:
        old = "import os\n\n\ndef run():\n    return os.getcwd()\n"
        new = "import sys\n\n\ndef run():\n    return sys.argv\n"
        result = self.analyze_one(make_change("pkg/run.py", "modified", old, new))
        self.assertEqual(
            [d.description for d in result.semantic_deltas],
            ["Added import: sys", "Removed import: os"],
        )
        self.assertEqual(result.impact, "minor")

    def test_body_only_change(self) -> None:
        old = "export function a() { return 1; }\n"
        new = "export function a() { return 2; }\n"
        result = self.analyze_one(make_change("src/a.ts", "modified", old, new))
        self.assertEqual([d.description for d in result.semantic_deltas], ["Changed implementation of a.ts"])
        self.assertEqual(result.impact, "minor")

    def test_deleted_file_with_exports_is_breaking(self) -> None:
        result = self.analyze_one(make_change("src/api.ts", "deleted", old="export const x = 1;\n"))
        self.assertEqual(result.semantic_deltas[0].kind, FILE_DELETED)
        self.assertEqual(result.semantic_deltas[0].severity, "breaking")
        self.assertEqual(result.impact, "major")

    def test_pure_rename(self) -> None:
        content = "export const x = 1;\n"
        result = self.analyze_one(make_change("src/new.ts", "renamed", content, content, previous_path="src/old.ts"))
        self.assertEqual(
            [(d.kind, d.description) for d in result.semantic_deltas],
            [(FILE_RENAMED, "Renamed from old.ts to new.ts")],
        )
        self.assertEqual(result.impact, "moderate")

    def test_rename_from_non_code_file(self) -> None:
        change = make_change(
            "src/lib/a.ts", "renamed", "plain notes\n", "export function load() {}\n", previous_path="src/lib/a.txt"
        )
        result = self.analyze_one(change)
        self.assertTrue(result.analyzed)
        self.assertEqual(self.analyzer.failures, [])
        self.assertEqual(
            [(d.kind, d.description) for d in result.semantic_deltas],
            [(FILE_RENAMED, "Renamed from a.txt to a.ts"), (METHOD_ADDED, "Added export: load")],
        )

    def test_parse_failure_keeps_change_unanalyzed(self) -> None:
        result = self.analyze_one(make_change("src/bad.ts", "modified", "export const a = 1;\n", "export function (\n"))
        self.assertFalse(result.analyzed)
        self.assertEqual(result.semantic_deltas, ())
        self.assertEqual(result.summary, "Could not parse bad.ts")
        self.assertEqual([(f.path, f.stage) for f in self.analyzer.failures], [("src/bad.ts", "semantic")])

    def test_non_code_file(self) -> None:
        result = self.analyze_one(make_change("docs/guide.md", "modified", "a", "b"))
        self.assertEqual(result.semantic_deltas, ())
        self.assertEqual(result.summary, "Modified non-code file: guide.md")
        self.assertTrue(result.analyzed)

    def test_output_matches_input_order(self) -> None:
        changes = [
            make_change("b.md", "added", new="x"),
            make_change("a.ts", "added", new="export const a = 1;\n"),
        ]
        results = self.analyzer.analyze(changes)
        self.assertEqual([r.file_path for r in results], ["b.md", "a.ts"])


class TestDescribeModule(unittest.TestCase):
    def test_labels(self) -> None:
        cases = [
            ("src/a.spec.ts", ModuleSurface(functions=["f"]), "test file"),
            ("src/a.ts", ModuleSurface(interfaces=["I"]), "interface definition"),
            ("src/a.ts", ModuleSurface(type_aliases=["T"]), "type definition"),
            ("src/a.ts", ModuleSurface(enums=["E"]), "enum definition"),
            ("src/a.ts", ModuleSurface(interfaces=["I"], classes=["C"]), "class module"),
            ("src/a.ts", ModuleSurface(functions=["f"]), "function module"),
            ("src/App.tsx", ModuleSurface(variables=["App"], has_jsx=True), "React component"),
            ("src/a.ts", ModuleSurface(variables=["x"]), "module"),
        ]
        for path, surface, expected in cases:
            with self.subTest(expected=expected):
                self.assertEqual(describe_module(path, surface), expected)


if __name__ == "__main__":
    unittest.main()
