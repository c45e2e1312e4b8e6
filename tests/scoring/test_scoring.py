import unittest

from diffsense.models import (
    IMPLEMENTATION_CHANGED,
    METHOD_REMOVED,
    ChangeMetadata,
    ClassifiedChange,
    SemanticDelta,
)
from diffsense.scoring import ScoringSystem, ScoringWeights, semantic_impact


REMOVED_EXPORT = SemanticDelta(METHOD_REMOVED, "Removed export: getUserProfile", "breaking", "getUserProfile")
INTERNAL_EDIT = SemanticDelta(IMPLEMENTATION_CHANGED, "Changed implementation of user.test.ts", "low")


def make_change(
    path="src/app.ts",
    kind="modified",
    commit_type="chore",
    scope="unknown",
    breaking=False,
    deltas=(),
    file_type="script",
    lines_added=0,
    lines_removed=0,
):
    return ClassifiedChange(
        file_path=path,
        change_kind=kind,
        metadata=ChangeMetadata(lines_added=lines_added, lines_removed=lines_removed, file_type=file_type),
        scope=scope,
        semantic_deltas=tuple(deltas),
        commit_type=commit_type,
        breaking=breaking,
    )


class TestScoringSystem(unittest.TestCase):
    def setUp(self) -> None:
        self.scorer = ScoringSystem()

    def test_test_file_with_internal_edits_scores_low(self) -> None:
        change = make_change(
            "src/user.test.ts", commit_type="test", scope="test", deltas=[INTERNAL_EDIT], file_type="test", lines_added=2
        )
        scored = self.scorer.score_change(change)

        # (2 * 0.01 + 2 * 7) * 0.5 * 1.0 / 10
        self.assertAlmostEqual(scored.score, 0.701)
        self.assertEqual(
            [(f.name, f.value, f.weight) for f in scored.score_factors],
            [
                ("file_size", 2, 0.01),
                ("semantic_impact", 2, 7.0),
                ("file_type", 1, 0.5),
                ("change_kind", 1, 1.0),
            ],
        )

    def test_breaking_public_feature_is_clamped(self) -> None:
        change = make_change(commit_type="feat", scope="public", breaking=True, deltas=[REMOVED_EXPORT])
        scored = self.scorer.score_change(change)

        self.assertEqual(scored.score, 10.0)
        self.assertEqual(
            [f.name for f in scored.score_factors],
            ["breaking_change", "public_api", "feature_addition", "semantic_impact", "file_type", "change_kind"],
        )

    def test_fix_with_change_kind_multiplier(self) -> None:
        change = make_change(kind="deleted", commit_type="fix", lines_removed=100)
        scored = self.scorer.score_change(change)
        # (5 * 5 + 100 * 0.01) * 1.0 * 1.2 / 10
        self.assertAlmostEqual(scored.score, 3.12)

    def test_empty_change_scores_zero(self) -> None:
        scored = self.scorer.score_change(make_change("README.md", file_type="doc"))
        self.assertEqual(scored.score, 0.0)
        self.assertEqual([f.name for f in scored.score_factors], ["file_type", "change_kind"])

    def test_scores_stay_in_bounds(self) -> None:
        changes = [
            make_change(breaking=True, scope="public", commit_type="feat", deltas=[REMOVED_EXPORT] * 5, lines_added=5000),
            make_change(kind="renamed", file_type="doc"),
            make_change(kind="added", commit_type="feat", lines_added=40, file_type="config"),
        ]
        for scored in self.scorer.score(changes):
            with self.subTest(path=scored.file_path, kind=scored.change_kind):
                self.assertGreaterEqual(scored.score, 0.0)
                self.assertLessEqual(scored.score, 10.0)

    def test_scoring_is_deterministic(self) -> None:
        changes = [make_change(commit_type="fix", deltas=[INTERNAL_EDIT], lines_added=3)]
        self.assertEqual(self.scorer.score(changes), ScoringSystem().score(changes))

    def test_file_size_is_capped(self) -> None:
        scored = self.scorer.score_change(make_change(lines_added=5000))
        size = next(f for f in scored.score_factors if f.name == "file_size")
        self.assertEqual(size.value, 1000)


class TestScoringWeights(unittest.TestCase):
    def test_from_mapping_merges_tables(self) -> None:
        weights = ScoringWeights.from_mapping({"breaking": 0, "file_type": {"test": 1.0}})
        self.assertEqual(weights.breaking, 0.0)
        self.assertEqual(weights.file_type["test"], 1.0)
        self.assertEqual(weights.file_type["doc"], 0.3)
        self.assertEqual(weights.feature, 6.0)

    def test_custom_weights_change_score(self) -> None:
        change = make_change(breaking=True, deltas=[REMOVED_EXPORT])
        default = ScoringSystem().score_change(change).score
        muted = ScoringSystem(ScoringWeights.from_mapping({"breaking": 0})).score_change(change).score
        self.assertLess(muted, default)

    def test_semantic_impact(self) -> None:
        self.assertEqual(semantic_impact(make_change(deltas=[REMOVED_EXPORT])), 13)
        self.assertEqual(semantic_impact(make_change(deltas=[REMOVED_EXPORT] * 3)), 20)
        self.assertEqual(semantic_impact(make_change()), 0)


if __name__ == "__main__":
    unittest.main()
