import unittest

from diffsense.context import ContextCorrelator, DependencyGraph, determine_scope
from diffsense.context.correlator import convention_related_files, extract_hunks
from diffsense.models import Dependency, RawChange


class TestDetermineScope(unittest.TestCase):
    def test_scope_labels(self) -> None:
        cases = {
            "src/user.test.ts": "test",
            "tests/unit/a.ts": "test",
            "src/api/user.spec.ts": "test",
            "src/api/users.ts": "public",
            "src/public/index.ts": "public",
            "src/core/engine.ts": "internal",
            "docs/guide.md": "documentation",
            "examples/demo.ts": "example",
            "package.json": "configuration",
            "src/config/app.ts": "configuration",
            "src/latest.ts": "unknown",
            "README.md": "unknown",
        }
        for path, expected in cases.items():
            with self.subTest(path=path):
                self.assertEqual(determine_scope(path), expected)


class TestConventionRelatedFiles(unittest.TestCase):
    def test_implementation_maps_to_tests(self) -> None:
        self.assertEqual(
            convention_related_files("src/user.ts"),
            ["src/user.spec.ts", "src/user.test.ts", "tests/unit/user.spec.ts", "tests/unit/user.test.ts"],
        )

    def test_test_maps_to_implementation(self) -> None:
        self.assertEqual(convention_related_files("src/user.spec.ts"), ["src/user.ts"])
        self.assertEqual(convention_related_files("pkg/test_mod.py"), ["pkg/mod.py"])

    def test_python_module_maps_to_tests(self) -> None:
        self.assertEqual(
            convention_related_files("pkg/mod.py"),
            ["pkg/test_mod.py", "tests/test_mod.py", "tests/unit/test_mod.py"],
        )

    def test_other_files_have_no_counterparts(self) -> None:
        self.assertEqual(convention_related_files("README.md"), [])


class TestExtractHunks(unittest.TestCase):
    def test_single_positional_hunk(self) -> None:
        change = RawChange("a.ts", "modified", old_content="a\nb\nc", new_content="a\nx\nc\nd")
        hunks = extract_hunks(change)
        self.assertEqual(len(hunks), 1)
        hunk = hunks[0]
        self.assertEqual((hunk.old_start, hunk.old_line_count, hunk.new_start, hunk.new_line_count), (1, 3, 1, 4))
        self.assertEqual(hunk.added_lines, ("x", "d"))
        self.assertEqual(hunk.removed_lines, ("b",))

    def test_no_hunk_without_both_sides(self) -> None:
        self.assertEqual(extract_hunks(RawChange("a.ts", "added", new_content="x")), [])


class TestContextCorrelator(unittest.TestCase):
    def test_correlate_uses_graph_and_conventions(self) -> None:
        changes = [
            RawChange("src/models/user.ts", "modified", old_content="a", new_content="b"),
            RawChange("src/services/user-service.ts", "modified", old_content="c", new_content="d"),
        ]
        edge = Dependency(
            source="src/services/user-service.ts", target="src/models/user.ts", kind="import", symbols=("User",)
        )
        graph = DependencyGraph([edge])

        result = ContextCorrelator().correlate(changes, graph)

        self.assertEqual([c.file_path for c in result], [c.file_path for c in changes])
        model, service = result
        self.assertEqual(model.related_files[0], "src/services/user-service.ts")
        self.assertIn("src/models/user.spec.ts", model.related_files)
        self.assertEqual(model.dependencies, ())
        self.assertEqual(service.dependencies, (edge,))
        self.assertEqual(model.scope, "unknown")
        self.assertEqual(len(model.hunks), 1)

    def test_file_is_never_related_to_itself(self) -> None:
        change = RawChange("src/a.ts", "modified", old_content="x", new_content="y")
        graph = DependencyGraph([Dependency(source="src/a.ts", target="src/a.ts", kind="import")])
        (result,) = ContextCorrelator().correlate([change], graph)
        self.assertNotIn("src/a.ts", result.related_files)

    def test_builds_graph_from_python_sources(self) -> None:
        changes = [
            RawChange("pkg/models.py", "modified", old_content="X = 1\n", new_content="X = 2\n"),
            RawChange(
                "pkg/service.py",
                "modified",
                old_content="",
                new_content="from .models import X\n\nY = X\n",
            ),
        ]
        model, service = ContextCorrelator().correlate(changes)
        self.assertIn("pkg/service.py", model.related_files)
        self.assertEqual(service.dependencies[0].target, "pkg/models.py")
        self.assertEqual(service.dependencies[0].symbols, ("X",))


if __name__ == "__main__":
    unittest.main()
