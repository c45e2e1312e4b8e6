import unittest

from diffsense.models import ClassifiedChange, CommitSuggestion
from diffsense.report import suggest_commit
from diffsense.report.suggestion import build_subject, select_commit_type, select_scope


def make_change(commit_type="chore", scope=None, breaking=False, description="", path="src/a.ts"):
    return ClassifiedChange(
        file_path=path,
        change_kind="modified",
        commit_type=commit_type,
        commit_scope=scope,
        breaking=breaking,
        description=description,
    )


class TestCommitSuggestion(unittest.TestCase):
    def test_empty_change_set(self) -> None:
        suggestion = suggest_commit([])
        self.assertEqual(suggestion, CommitSuggestion(type="chore", subject="no changes detected"))
        self.assertEqual(suggestion.header, "chore: no changes detected")

    def test_single_change_uses_description(self) -> None:
        suggestion = suggest_commit([make_change("fix", scope="auth", description="Changed implementation of login.ts")])
        self.assertEqual(suggestion.message, "fix(auth): Changed implementation of login.ts")

    def test_breaking_set(self) -> None:
        changes = [
            make_change("feat", breaking=True, description="Removed export: getUserProfile"),
            make_change("fix", description="Changed implementation of b.ts"),
            make_change("chore", breaking=True, description="Deleted file: c.ts"),
        ]
        suggestion = suggest_commit(changes)
        self.assertTrue(suggestion.breaking)
        self.assertEqual(suggestion.header, "feat!: add 3 new features")
        self.assertEqual(
            suggestion.body,
            "BREAKING CHANGE: Removed export: getUserProfile\nDeleted file: c.ts",
        )
        self.assertEqual(
            suggestion.message,
            "feat!: add 3 new features\n\nBREAKING CHANGE: Removed export: getUserProfile\nDeleted file: c.ts",
        )

    def test_select_commit_type(self) -> None:
        cases = [
            (["fix", "feat", "chore"], "feat"),
            (["chore", "refactor", "fix"], "fix"),
            (["docs", "test", "test"], "test"),
            (["docs", "test"], "docs"),
            (["chore", "perf"], "perf"),
            (["chore"], "chore"),
        ]
        for types, expected in cases:
            with self.subTest(types=types):
                self.assertEqual(select_commit_type([make_change(t) for t in types]), expected)

    def test_select_scope(self) -> None:
        cases = [
            (["auth", "auth", "ui"], "auth"),
            (["auth", "ui"], None),
            (["auth", None, None], None),
            (["auth", "auth", None], "auth"),
            ([None, None], None),
        ]
        for scopes, expected in cases:
            with self.subTest(scopes=scopes):
                self.assertEqual(select_scope([make_change(scope=s) for s in scopes]), expected)

    def test_build_subject(self) -> None:
        two = [make_change(), make_change()]
        cases = {
            "feat": "add 2 new features",
            "fix": "fix 2 issues",
            "refactor": "refactor 2 files",
            "docs": "update documentation",
            "test": "add or update tests",
            "chore": "update 2 files",
        }
        for commit_type, expected in cases.items():
            with self.subTest(commit_type=commit_type):
                self.assertEqual(build_subject(two, commit_type), expected)
        self.assertEqual(build_subject([make_change()], "chore"), "update code")


if __name__ == "__main__":
    unittest.main()
