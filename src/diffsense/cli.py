"""
Command line interface for DiffSense.

This module defines the ``main`` click group used as the entry point of
the ``diffsense`` command. ``diffsense analyze`` runs the whole pipeline
and prints (or writes) a report; ``diffsense suggest`` prints only the
suggested commit message; ``diffsense config`` creates or shows the rules
file. Status messages go to stderr so that the
report on stdout can be piped.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Optional, Tuple

import click
import yaml

from diffsense import __version__
from diffsense.config import (
    DEFAULT_CONFIG_FILENAME,
    ConfigError,
    config_to_dict,
    load_config,
    write_default_config,
)
from diffsense.models import AnalysisResult
from diffsense.pipeline import Pipeline
from diffsense.report import FORMATS
from diffsense.scoring import ScoringWeights
from diffsense.vcs import GitClient, GitError, RepositoryError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback, written to stderr."""

    def __init__(self, message: str, enabled: bool = True):
        self.message = message
        self.enabled = enabled
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        if self.enabled:
            click.echo(f"→ {self.message}...", err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        if self.enabled and exc_type is None:
            click.echo(f"  ✓ Done ({elapsed:.1f}s)", err=True)
        return False


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=True)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def configure_logging(verbose: bool) -> None:
    # force=True so that repeated invocations (tests) reconfigure handlers
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def resolve_refs(
    base: Optional[str], head: Optional[str], working_tree: bool, staged: bool = False
) -> Tuple[str, str]:
    """Apply the reference defaults.

    ``HEAD^`` and ``HEAD`` for a commit range; ``HEAD`` against the working
    tree (an empty head reference) with ``--working-tree``, and against the
    index with ``--staged``.
    """
    if staged:
        if working_tree:
            raise click.UsageError("--staged cannot be combined with --working-tree")
        if head:
            raise click.UsageError("HEAD cannot be combined with --staged")
        return base or "HEAD", ""
    if working_tree:
        if head:
            raise click.UsageError("HEAD cannot be combined with --working-tree")
        return base or "HEAD", ""
    return base or "HEAD^", head or "HEAD"


def find_repository(start: Path) -> Path:
    """Return the repository root above ``start`` or exit with EXIT_NO_REPO."""
    repo_root = GitClient.find_repo_root(start)
    if repo_root is None:
        print_error(f"No Git repository found at or above {start}.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    logger.debug("Repository root: %s", repo_root)
    return repo_root


def run_analysis(
    repo: Optional[Path],
    base: Optional[str],
    head: Optional[str],
    working_tree: bool,
    config_path: Optional[Path],
    fmt: str,
    quiet: bool = False,
    staged: bool = False,
    detailed: bool = True,
) -> AnalysisResult:
    """Load the configuration, run the pipeline and report failures.

    Raises
    ------
    click.exceptions.Exit
        With EXIT_NO_REPO for repository errors and EXIT_GENERIC_ERROR for
        Git failures.
    """
    repo_root = find_repository(repo or Path.cwd())
    base_ref, head_ref = resolve_refs(base, head, working_tree, staged)

    config = load_config(repo_root, config_path)
    if config.load_error:
        print_warning(f"Using default rules: {config.load_error}")
    elif config.source is not None and not quiet:
        print_info(f"Loaded {len(config.rules)} rules from {config.source}")

    if staged:
        target = f"staged changes against {base_ref}"
    elif not head_ref:
        target = "working tree"
    else:
        target = f"{base_ref}..{head_ref}"
    try:
        with ProgressIndicator(f"Analyzing {target}", enabled=not quiet):
            result = Pipeline(config).run(
                GitClient(repo_root), base_ref, head_ref, fmt, staged=staged, detailed=detailed
            )
    except RepositoryError as exc:
        print_error(f"Repository error: {exc}")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    for failure in result.failures:
        print_warning(f"Skipped {failure.path} ({failure.stage}): {failure.reason}")
    if not quiet:
        print_info(f"Analyzed {result.analyzed_count} of {result.detected_count} detected files")
    return result


def _handle_unexpected(func: Callable) -> Callable:
    """Turn unhandled exceptions into EXIT_GENERIC_ERROR."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException):
            raise
        except Exception as exc:
            logging.exception("Unhandled error: %s", exc)
            print_error(f"Unexpected error: {exc}")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)

    return wrapper


def _apply(func: Callable, options) -> Callable:
    for option in reversed(options):
        func = option(func)
    return func


def _repository_options(func: Callable) -> Callable:
    return _apply(
        func,
        [
            click.option(
                "--config",
                "config_path",
                type=click.Path(path_type=Path, dir_okay=False),
                help="Rules file (default: .diffsense.yml at the repository root).",
            ),
            click.option(
                "--repo",
                type=click.Path(path_type=Path, file_okay=False, exists=True),
                help="Repository to analyze (default: current directory).",
            ),
            click.option("--verbose", is_flag=True, help="Enable verbose (debug) output."),
        ],
    )


def _common_options(func: Callable) -> Callable:
    func = _repository_options(func)
    return _apply(
        func,
        [
            click.argument("base", required=False),
            click.argument("head", required=False),
            click.option("--working-tree", is_flag=True, help="Analyze the working tree, untracked files included."),
            click.option("--staged", is_flag=True, help="Analyze only the changes staged in the index."),
        ],
    )


@click.group()
@click.version_option(version=__version__, prog_name="diffsense")
def main() -> None:
    """Classify Git changes and suggest a conventional commit message."""


@main.command()
@_common_options
@click.option("--format", "fmt", type=click.Choice(FORMATS), default="cli", show_default=True, help="Report format.")
@click.option(
    "--detailed/--brief",
    default=True,
    show_default=True,
    help="Include semantic changes, applied rules and score factors per change in markdown reports.",
)
@click.option(
    "--output",
    type=click.Path(path_type=Path, dir_okay=False),
    help="Write the report to this file instead of stdout.",
)
@_handle_unexpected
def analyze(
    base: Optional[str],
    head: Optional[str],
    working_tree: bool,
    staged: bool,
    config_path: Optional[Path],
    repo: Optional[Path],
    verbose: bool,
    fmt: str,
    detailed: bool,
    output: Optional[Path],
) -> None:
    """Analyze the changes between BASE (default HEAD^) and HEAD (default HEAD)."""
    configure_logging(verbose)
    result = run_analysis(repo, base, head, working_tree, config_path, fmt, staged=staged, detailed=detailed)

    if output is not None:
        output.write_text(result.report, encoding="utf-8")
        print_success(f"Report written to {output}")
    else:
        click.echo(result.report, nl=False)


@main.command()
@_common_options
@_handle_unexpected
def suggest(
    base: Optional[str],
    head: Optional[str],
    working_tree: bool,
    staged: bool,
    config_path: Optional[Path],
    repo: Optional[Path],
    verbose: bool,
) -> None:
    """Print only the suggested commit message."""
    configure_logging(verbose)
    result = run_analysis(repo, base, head, working_tree, config_path, "json", quiet=True, staged=staged)
    click.echo(result.suggestion.message)


@main.command("config")
@click.option("--init", "init_config", is_flag=True, help="Write a default rules file at the repository root.")
@click.option("--force", is_flag=True, help="Let --init overwrite an existing rules file.")
@click.option("--show", is_flag=True, help="Print the effective configuration as YAML.")
@_repository_options
@_handle_unexpected
def config_command(
    init_config: bool,
    force: bool,
    show: bool,
    config_path: Optional[Path],
    repo: Optional[Path],
    verbose: bool,
) -> None:
    """Create or display the rules configuration."""
    configure_logging(verbose)
    if not init_config and not show:
        raise click.UsageError("Nothing to do: pass --init or --show")
    repo_root = find_repository(repo or Path.cwd())

    if init_config:
        target = config_path or repo_root / DEFAULT_CONFIG_FILENAME
        try:
            write_default_config(target, overwrite=force)
        except ConfigError as exc:
            print_error(str(exc))
            if target.exists() and not force:
                print_info("Use --force to replace it.")
            raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
        print_success(f"Wrote default rules to {target}")

    if show:
        config = load_config(repo_root, config_path)
        if config.load_error:
            print_warning(f"Using default rules: {config.load_error}")
        print_info(f"Configuration source: {config.source or 'built-in defaults'}")
        data = config_to_dict(config)
        data["scoring"] = asdict(ScoringWeights.from_mapping(config.scoring))
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


if __name__ == "__main__":  # pragma: no cover
    main()
