import unittest

from diffsense.context.dependency_graph import DependencyGraph, edges_for, resolve_specifier
from diffsense.models import Dependency, RawChange
from diffsense.parsing import ImportRef, ModuleSurface


class TestDependencyGraph(unittest.TestCase):
    def test_indexes_and_deduplicates_edges(self) -> None:
        first = Dependency(source="a.ts", target="b.ts", kind="import", symbols=("B",))
        second = Dependency(source="c.ts", target="b.ts", kind="import")
        graph = DependencyGraph([first, second, first])

        self.assertEqual(len(graph), 2)
        self.assertEqual(graph.incoming("b.ts"), [first, second])
        self.assertEqual(graph.outgoing("a.ts"), [first])
        self.assertEqual(graph.dependents("b.ts"), ["a.ts", "c.ts"])
        self.assertEqual(graph.targets(), ["b.ts"])
        self.assertEqual(list(graph), [first, second])
        self.assertEqual(graph.incoming("missing.ts"), [])

    def test_build_skips_unparseable_and_non_code_files(self) -> None:
        changes = [
            RawChange("pkg/broken.py", "modified", old_content="x = 1", new_content="def (:\n"),
            RawChange("README.md", "modified", old_content="a", new_content="import x"),
            RawChange("pkg/ok.py", "added", new_content="import os\n"),
        ]
        graph = DependencyGraph.build(changes)
        self.assertEqual(list(graph), [Dependency(source="pkg/ok.py", target="os", kind="import", symbols=("os",))])


class TestResolveSpecifier(unittest.TestCase):
    def test_relative_script_imports(self) -> None:
        known = {"src/models/user.ts", "src/lib/index.ts", "src/util.ts"}
        cases = [
            ("src/services/svc.ts", "../models/user", "src/models/user.ts"),
            ("src/services/svc.ts", "../lib", "src/lib/index.ts"),
            ("src/services/svc.ts", "../util.js", "src/util.ts"),
            ("src/services/svc.ts", "./missing", "src/services/missing.ts"),
            ("src/app.js", "./missing", "src/missing.js"),
            ("src/app.ts", "react", "react"),
        ]
        for source, specifier, expected in cases:
            with self.subTest(specifier=specifier):
                self.assertEqual(resolve_specifier(source, ImportRef(specifier), known), expected)

    def test_python_imports(self) -> None:
        known = {"pkg/models.py", "pkg/sub/__init__.py", "src/pkg/helpers.py"}
        cases = [
            ("pkg/service.py", ImportRef(".models", ("X",)), "pkg/models.py"),
            ("pkg/service.py", ImportRef(".sub", ("Y",)), "pkg/sub/__init__.py"),
            ("pkg/service.py", ImportRef(".", ("models",)), "pkg/models.py"),
            ("pkg/sub/deep.py", ImportRef("..models", ("X",)), "pkg/models.py"),
            ("app.py", ImportRef("pkg.helpers", ("h",)), "src/pkg/helpers.py"),
            ("app.py", ImportRef("requests", ("get",)), "requests"),
        ]
        for source, ref, expected in cases:
            with self.subTest(specifier=ref.specifier):
                self.assertEqual(resolve_specifier(source, ref, known), expected)


class TestEdgesFor(unittest.TestCase):
    def test_heritage_edges(self) -> None:
        surface = ModuleSurface(
            classes=["Admin", "Local", "Child"],
            imports=[ImportRef("./user", ("User",))],
            heritage=[("Admin", "User"), ("Child", "Local"), ("Admin", "Auditable")],
        )
        edges = edges_for("src/admin.ts", surface, {"src/user.ts"})
        self.assertEqual(
            edges,
            [
                Dependency(source="src/admin.ts", target="src/user.ts", kind="import", symbols=("User",)),
                Dependency(source="src/admin.ts", target="src/user.ts", kind="uses", symbols=("User",)),
                Dependency(source="src/admin.ts", target="src/Auditable.ts", kind="uses", symbols=("Auditable",)),
            ],
        )

    def test_reexport_edges(self) -> None:
        surface = ModuleSurface(reexports=[ImportRef("./user", ("*",))])
        edges = edges_for("src/index.ts", surface, {"src/user.ts"})
        self.assertEqual(edges, [Dependency(source="src/index.ts", target="src/user.ts", kind="export", symbols=("*",))])


if __name__ == "__main__":
    unittest.main()
