import json
import unittest

from diffsense.models import FileFailure, ScoredChange, ScoreFactor, SemanticDelta
from diffsense.report import FORMATS, Reporter, ReportFormatError


def make_change(path, score, commit_type="fix", breaking=False, description="", analyzed=True, deltas=()):
    return ScoredChange(
        file_path=path,
        change_kind="modified",
        commit_type=commit_type,
        breaking=breaking,
        description=description,
        analyzed=analyzed,
        semantic_deltas=tuple(deltas),
        applied_rule_ids=("api-rule",) if breaking else (),
        score=score,
        score_factors=(ScoreFactor("file_type", 1, 1.0), ScoreFactor("change_kind", 1, 1.0)),
    )


REMOVED = SemanticDelta("method-removed", "Removed export: getUser", "breaking", "getUser")


class TestReporter(unittest.TestCase):
    def setUp(self) -> None:
        self.reporter = Reporter()
        self.changes = [
            make_change("src/low.ts", 1.0, description="Changed implementation of low.ts"),
            make_change("src/api/user.ts", 9.5, "feat", True, "Removed export: getUser", deltas=[REMOVED]),
            make_change("src/broken.ts", 0.0, "chore", analyzed=False),
        ]

    def test_json_report(self) -> None:
        failures = [FileFailure("src/broken.ts", "semantic", "syntax error near line 1")]
        report = json.loads(self.reporter.render(self.changes, "json", detected_count=4, failures=failures))

        self.assertEqual(
            report["summary"],
            {
                "totalChanges": 3,
                "breakdown": {"fix": 1, "feat": 1, "chore": 1},
                "analyzedFiles": 2,
                "detectedFiles": 4,
                "skippedFiles": 2,
            },
        )
        self.assertEqual([c["filePath"] for c in report["changes"]], ["src/api/user.ts", "src/low.ts", "src/broken.ts"])
        self.assertEqual(report["suggestedCommit"]["type"], "feat")
        self.assertTrue(report["suggestedCommit"]["breaking"])
        self.assertEqual(report["suggestedCommit"]["header"], "feat!: add 3 new features")
        self.assertEqual(report["failures"][0]["stage"], "semantic")
        top = report["changes"][0]
        self.assertEqual(top["semanticChanges"][0]["affectedSymbol"], "getUser")
        self.assertEqual(top["appliedRules"], ["api-rule"])

    def test_markdown_report(self) -> None:
        report = self.reporter.render(self.changes, "markdown")

        self.assertTrue(report.startswith("# DiffSense Analysis Report\n"))
        self.assertIn("_Analyzed 2 of 3 detected files._", report)
        self.assertIn("## 3 changes found", report)
        self.assertIn("### Change Types", report)
        self.assertIn("- **feat:** 1", report)
        self.assertIn("### 1 Breaking Changes Detected", report)
        self.assertIn("```\nfeat!: add 3 new features\n\nBREAKING CHANGE: Removed export: getUser\n```", report)
        self.assertIn("#### Semantic Changes\n- Removed export: getUser (breaking)", report)
        self.assertIn("could not be parsed", report)
        self.assertLess(report.index("### 1. user.ts"), report.index("### 2. low.ts"))

    def test_markdown_without_details(self) -> None:
        report = self.reporter.render(self.changes, "markdown", detailed=False)
        self.assertNotIn("#### Score Factors", report)

    def test_cli_report_lists_top_five(self) -> None:
        changes = [make_change(f"src/f{i}.ts", float(i), description=f"change {i}") for i in range(7)]
        report = self.reporter.render(changes, "cli")

        self.assertIn("=== DiffSense Analysis Report ===", report)
        self.assertIn("Analyzed 7 of 7 detected files", report)
        self.assertIn("Top 5 changes:", report)
        self.assertIn("1. f6.ts (6.00) [fix]", report)
        self.assertNotIn("f1.ts", report)
        self.assertIn("Commit suggestion: fix: fix 7 issues", report)
        self.assertNotIn("BREAKING CHANGES", report)

    def test_cli_breaking_section(self) -> None:
        report = self.reporter.render(self.changes, "cli")
        self.assertIn("BREAKING CHANGES (1):\n- src/api/user.ts: Removed export: getUser", report)

    def test_empty_reports(self) -> None:
        for fmt in FORMATS:
            with self.subTest(fmt=fmt):
                report = self.reporter.render([], fmt)
                if fmt == "json":
                    data = json.loads(report)
                    self.assertEqual(data["summary"]["totalChanges"], 0)
                    self.assertEqual(data["suggestedCommit"]["header"], "chore: no changes detected")
                else:
                    self.assertIn("No changes detected.", report)

    def test_unknown_format(self) -> None:
        with self.assertRaises(ReportFormatError):
            self.reporter.render(self.changes, "html")


if __name__ == "__main__":
    unittest.main()
