"""
Report rendering: the last pipeline stage.

:class:`Reporter` turns scored changes into a JSON, Markdown or CLI text
report. Every format states how many files were analyzed out of the
total detected and lists the changes by descending score.
"""

from __future__ import annotations

import json
import logging
import posixpath
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..models import CommitSuggestion, FileFailure, ScoredChange
from .suggestion import suggest_commit


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


FORMATS = ("json", "markdown", "cli")
TOP_CHANGES = 5


class ReportFormatError(ValueError):
    """Raised for an unknown output format."""

    pass


@dataclass(frozen=True)
class RunStats:
    """How many files were detected, analyzed and skipped in a run."""

    detected: int
    analyzed: int

    @property
    def skipped(self) -> int:
        return max(self.detected - self.analyzed, 0)

    @property
    def line(self) -> str:
        return f"Analyzed {self.analyzed} of {self.detected} detected files"


def type_breakdown(changes: Sequence[ScoredChange]) -> Dict[str, int]:
    """Commit type counts in order of first appearance."""
    return dict(Counter(change.commit_type for change in changes))


def sort_by_score(changes: Sequence[ScoredChange]) -> List[ScoredChange]:
    # sorted() is stable, so equal scores keep pipeline order
    return sorted(changes, key=lambda change: -change.score)


def _change_to_dict(change: ScoredChange) -> Dict[str, Any]:
    return {
        "filePath": change.file_path,
        "changeKind": change.change_kind,
        "score": round(change.score, 4),
        "commitType": change.commit_type,
        "commitScope": change.commit_scope,
        "breaking": change.breaking,
        "description": change.description,
        "analyzed": change.analyzed,
        "appliedRules": list(change.applied_rule_ids),
        "scoreFactors": [
            {"name": factor.name, "value": factor.value, "weight": factor.weight}
            for factor in change.score_factors
        ],
        "semanticChanges": [
            {
                "kind": delta.kind,
                "description": delta.description,
                "severity": delta.severity,
                "affectedSymbol": delta.affected_symbol,
            }
            for delta in change.semantic_deltas
        ],
    }


class Reporter:
    """Render scored changes in one of :data:`FORMATS`."""

    def render(
        self,
        changes: Sequence[ScoredChange],
        fmt: str = "markdown",
        detected_count: Optional[int] = None,
        failures: Sequence[FileFailure] = (),
        suggestion: Optional[CommitSuggestion] = None,
        detailed: bool = True,
    ) -> str:
        """Render a report.

        Parameters
        ----------
        changes : Sequence[ScoredChange]
            Output of the scoring stage.
        fmt : str
            ``json``, ``markdown`` or ``cli``.
        detected_count : Optional[int]
            Files detected by the extractor; defaults to ``len(changes)``.
        failures : Sequence[FileFailure]
            Files that were skipped or could not be parsed.
        suggestion : Optional[CommitSuggestion]
            Precomputed suggestion; derived from ``changes`` when omitted.
        detailed : bool
            Include per-change deltas, rules and factors (markdown only).

        Raises
        ------
        ReportFormatError
            If ``fmt`` is not a known format.
        """
        if fmt not in FORMATS:
            raise ReportFormatError(f"Unknown report format '{fmt}' (expected one of {', '.join(FORMATS)})")
        if suggestion is None:
            suggestion = suggest_commit(changes)
        analyzed = sum(1 for change in changes if change.analyzed)
        stats = RunStats(detected=len(changes) if detected_count is None else detected_count, analyzed=analyzed)
        logger.debug("Rendering %s report for %d changes", fmt, len(changes))

        if fmt == "json":
            return self._render_json(changes, suggestion, stats, failures)
        if fmt == "cli":
            return self._render_cli(changes, suggestion, stats, failures)
        return self._render_markdown(changes, suggestion, stats, failures, detailed)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------
    def _render_json(self, changes, suggestion, stats, failures) -> str:  # type: ignore[no-untyped-def]
        report = {
            "summary": {
                "totalChanges": len(changes),
                "breakdown": type_breakdown(changes),
                "analyzedFiles": stats.analyzed,
                "detectedFiles": stats.detected,
                "skippedFiles": stats.skipped,
            },
            "suggestedCommit": dict(suggestion.to_dict(), header=suggestion.header),
            "failures": [
                {"path": failure.path, "stage": failure.stage, "reason": failure.reason} for failure in failures
            ],
            "changes": [_change_to_dict(change) for change in sort_by_score(changes)],
        }
        return json.dumps(report, indent=2)

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------
    def _render_markdown(self, changes, suggestion, stats, failures, detailed) -> str:  # type: ignore[no-untyped-def]
        lines = ["# DiffSense Analysis Report", "", f"_{stats.line}._", ""]
        if not changes:
            lines.append("No changes detected.")
            lines.extend(self._markdown_failures(failures))
            return "\n".join(lines) + "\n"

        lines.append(f"## {len(changes)} changes found")
        lines.append("")
        lines.append("## Summary")
        lines.append("")
        lines.append("### Change Types")
        lines.append("")
        for commit_type, count in type_breakdown(changes).items():
            lines.append(f"- **{commit_type}:** {count}")

        breaking = [change for change in changes if change.breaking]
        if breaking:
            lines.append("")
            lines.append(f"### {len(breaking)} Breaking Changes Detected")
            lines.append("")
            for change in breaking:
                lines.append(f"- **{posixpath.basename(change.file_path)}:** {change.description}")

        lines.extend(["", "## Commit Suggestion", "", "```", suggestion.message, "```"])
        lines.extend(["", "## Change Details", ""])

        for index, change in enumerate(sort_by_score(changes), start=1):
            lines.append(f"### {index}. {posixpath.basename(change.file_path)}")
            lines.append(f"- **File:** {change.file_path}")
            lines.append(f"- **Change:** {change.change_kind}")
            lines.append(f"- **Score:** {change.score:.2f}")
            suffix = " (breaking)" if change.breaking else ""
            lines.append(f"- **Commit type:** {change.commit_type}{suffix}")
            if change.commit_scope:
                lines.append(f"- **Scope:** {change.commit_scope}")
            if change.description:
                lines.append(f"- **Description:** {change.description}")
            if not change.analyzed:
                lines.append("- **Note:** could not be parsed, classified from its path only")

            if detailed:
                if change.semantic_deltas:
                    lines.extend(["", "#### Semantic Changes"])
                    for delta in change.semantic_deltas:
                        lines.append(f"- {delta.description} ({delta.severity})")
                if change.applied_rule_ids:
                    lines.extend(["", "#### Applied Rules"])
                    for rule_id in change.applied_rule_ids:
                        lines.append(f"- {rule_id}")
                if change.score_factors:
                    lines.extend(["", "#### Score Factors"])
                    for factor in change.score_factors:
                        product = factor.value * factor.weight
                        lines.append(f"- {factor.name}: {factor.value:g} × {factor.weight:g} = {product:.2f}")
            lines.append("")

        lines.extend(self._markdown_failures(failures))
        return "\n".join(lines).rstrip("\n") + "\n"

    @staticmethod
    def _markdown_failures(failures: Sequence[FileFailure]) -> List[str]:
        if not failures:
            return []
        lines = ["", "## Skipped Files", ""]
        for failure in failures:
            lines.append(f"- `{failure.path}` ({failure.stage}): {failure.reason}")
        return lines

    # ------------------------------------------------------------------
    # CLI
    # ------------------------------------------------------------------
    def _render_cli(self, changes, suggestion, stats, failures) -> str:  # type: ignore[no-untyped-def]
        lines = ["=== DiffSense Analysis Report ===", "", stats.line, ""]
        if not changes:
            lines.append("No changes detected.")
        else:
            lines.append(f"{len(changes)} changes found")
            for commit_type, count in type_breakdown(changes).items():
                lines.append(f"- {commit_type}: {count}")
            lines.append("")
            lines.append(f"Commit suggestion: {suggestion.header}")

            breaking = [change for change in changes if change.breaking]
            if breaking:
                lines.append("")
                lines.append(f"BREAKING CHANGES ({len(breaking)}):")
                for change in breaking:
                    lines.append(f"- {change.file_path}: {change.description}")

            top = sort_by_score(changes)[:TOP_CHANGES]
            lines.append("")
            lines.append(f"Top {len(top)} changes:")
            for index, change in enumerate(top, start=1):
                lines.append(f"{index}. {posixpath.basename(change.file_path)} ({change.score:.2f}) [{change.commit_type}]")
                lines.append(f"   {change.description or 'No description'}")

        if failures:
            lines.append("")
            lines.append("Skipped files:")
            for failure in failures:
                lines.append(f"- {failure.path}: {failure.reason}")
        return "\n".join(lines) + "\n"
