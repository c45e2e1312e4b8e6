"""
Pipeline orchestration.

Runs the six stages in order with the loaded configuration passed
explicitly to the stages that need it:

extraction → context correlation → semantic analysis → classification →
scoring → report and suggestion.

Only :class:`~diffsense.vcs.RepositoryError` escapes a run. Per-file
problems are collected as :class:`~diffsense.models.FileFailure` entries
on the result.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .classification import RulesEngine
from .config import DiffSenseConfig, load_config
from .context import ContextCorrelator, DependencyGraph
from .extraction import ChangeExtractor, make_path_filter
from .models import AnalysisResult, FileFailure, RawChange
from .report import Reporter, suggest_commit
from .scoring import ScoringSystem, ScoringWeights
from .semantic import SemanticAnalyzer
from .vcs import GitClient


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class Pipeline:
    """The change classification pipeline bound to one configuration."""

    def __init__(self, config: Optional[DiffSenseConfig] = None) -> None:
        self.config = config or DiffSenseConfig()
        self.correlator = ContextCorrelator()
        self.analyzer = SemanticAnalyzer()
        self.rules_engine = RulesEngine(self.config.rules)
        self.scoring = ScoringSystem(ScoringWeights.from_mapping(self.config.scoring))
        self.reporter = Reporter()

    def run(
        self,
        client: GitClient,
        base_ref: str,
        head_ref: str,
        fmt: str = "markdown",
        staged: bool = False,
        detailed: bool = True,
    ) -> AnalysisResult:
        """Extract the changes between two references and process them.

        An empty ``head_ref`` analyzes the working tree. With ``staged`` the
        index is compared against ``base_ref`` and ``head_ref`` is ignored.

        Raises
        ------
        RepositoryError
            If ``client`` does not point at a repository or a reference is
            unknown.
        """
        path_filter = make_path_filter(self.config.include_only, self.config.exclude_paths)
        extractor = ChangeExtractor(client, path_filter=path_filter)
        raw_changes = extractor.extract(base_ref, head_ref, staged=staged)
        return self.process(
            raw_changes,
            fmt=fmt,
            detected_count=extractor.detected_count,
            failures=extractor.failures,
            detailed=detailed,
        )

    def process(
        self,
        raw_changes: Sequence[RawChange],
        fmt: str = "markdown",
        detected_count: Optional[int] = None,
        failures: Sequence[FileFailure] = (),
        graph: Optional[DependencyGraph] = None,
        detailed: bool = True,
    ) -> AnalysisResult:
        """Run stages two to six over already extracted changes."""
        contextualized = self.correlator.correlate(raw_changes, graph)
        semantic = self.analyzer.analyze(contextualized)
        classified = self.rules_engine.apply(semantic)
        scored = self.scoring.score(classified)

        all_failures: List[FileFailure] = list(failures) + list(self.analyzer.failures)
        detected = len(raw_changes) if detected_count is None else detected_count
        suggestion = suggest_commit(scored)
        report = self.reporter.render(
            scored,
            fmt,
            detected_count=detected,
            failures=all_failures,
            suggestion=suggestion,
            detailed=detailed,
        )
        analyzed = sum(1 for change in scored if change.analyzed)
        logger.info("Analyzed %d of %d detected files", analyzed, detected)
        return AnalysisResult(
            changes=scored,
            report=report,
            suggestion=suggestion,
            detected_count=detected,
            analyzed_count=analyzed,
            failures=all_failures,
        )


def analyze_repository(
    repo_root: Path,
    base_ref: str = "HEAD^",
    head_ref: str = "HEAD",
    fmt: str = "markdown",
    config_path: Optional[Path] = None,
    staged: bool = False,
) -> AnalysisResult:
    """Load the configuration for ``repo_root`` and run the pipeline."""
    config = load_config(repo_root, config_path)
    return Pipeline(config).run(GitClient(repo_root), base_ref, head_ref, fmt, staged=staged)
