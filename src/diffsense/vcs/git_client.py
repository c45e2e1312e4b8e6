"""
Git client implementation for DiffSense.

This module wraps the handful of Git queries the change extractor needs:
repository and reference validation, name/status diffs between two
references, working tree status, and file contents at a reference. All
subprocess calls go through :meth:`GitClient._run` so that unit tests can
mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass
class FileChange:
    """Representation of a single changed path reported by Git."""

    path: str
    status: str  # e.g. 'M' modified, 'A' added, 'D' deleted, 'R' renamed, '?' untracked
    previous_path: Optional[str] = None


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class RepositoryError(GitError):
    """Raised when the target is not a repository or a reference is unknown.

    This error is fatal for an analysis run.
    """

    pass


class FileAccessError(Exception):
    """Raised when the content of a single file cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read '{path}': {reason}")
        self.path = path
        self.reason = reason


def _unquote(path: str) -> str:
    """Strip the C-style quoting Git applies to unusual file names."""
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return path[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    return path


def _parse_name_status(output: str) -> List[FileChange]:
    """Parse ``git diff --name-status`` output.

    Rename and copy lines carry both the old and the new path.
    """
    changes: List[FileChange] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        status = parts[0][:1]
        if status in {"R", "C"} and len(parts) >= 3:
            changes.append(FileChange(path=_unquote(parts[2]), status=status, previous_path=_unquote(parts[1])))
        elif len(parts) >= 2:
            changes.append(FileChange(path=_unquote(parts[1]), status=status))
    return changes


class GitClient:
    """Client for querying a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        RepositoryError
            If the ``git`` executable or the repository directory is missing.
        """
        full_cmd = ["git", "-c", "core.quotePath=false"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            logger.error("Unable to run git in %s: %s", self.repo_root, e)
            raise RepositoryError(f"Unable to run git in {self.repo_root}: {e}") from e

        if check and result.returncode != 0:
            logger.debug(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def ensure_repository(self) -> None:
        """Raise :class:`RepositoryError` unless ``repo_root`` is a work tree."""
        result = self._run(["rev-parse", "--is-inside-work-tree"], check=False)
        if result.returncode != 0 or result.stdout.strip() != "true":
            raise RepositoryError(f"{self.repo_root} is not a Git repository")

    def verify_ref(self, ref: str) -> None:
        """Raise :class:`RepositoryError` if ``ref`` does not name a commit."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False)
        if result.returncode != 0:
            raise RepositoryError(f"Unknown revision or reference: '{ref}'")

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------
    def diff_name_status(self, base_ref: str, head_ref: str) -> List[FileChange]:
        """List the paths changed between two references."""
        result = self._run(["diff", "--name-status", "-M", base_ref, head_ref], check=True)
        return _parse_name_status(result.stdout)

    def diff_cached_name_status(self, base_ref: str = "HEAD") -> List[FileChange]:
        """List the paths staged in the index relative to ``base_ref``."""
        result = self._run(["diff", "--cached", "--name-status", "-M", base_ref], check=True)
        return _parse_name_status(result.stdout)

    def get_changes(self) -> List[FileChange]:
        """Get the changed files of the working tree, untracked files included.

        Staged, unstaged and untracked entries are merged into one list,
        de-duplicated by path (the first entry wins).

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain", "--untracked-files=all"], check=True)
        changes: List[FileChange] = []
        seen = set()

        for line in result.stdout.splitlines():
            # Git porcelain format: XY filename
            if len(line) < 4 or not line.strip():
                continue

            status_code = line[:2]
            filename = line[3:]

            if status_code == "??":
                primary_status = "?"
            elif status_code[0] not in {" ", "?"}:
                primary_status = status_code[0]
            else:
                primary_status = status_code[1]

            previous_path = None
            if primary_status in {"R", "C"} and " -> " in filename:
                old, new = filename.split(" -> ", 1)
                previous_path, filename = _unquote(old), new
            filename = _unquote(filename)

            if filename in seen:
                continue
            seen.add(filename)
            changes.append(FileChange(path=filename, status=primary_status, previous_path=previous_path))

        return changes

    # ------------------------------------------------------------------
    # Content access
    # ------------------------------------------------------------------
    def show_file(self, ref: str, path: str) -> str:
        """Return the content of ``path`` at ``ref``.

        Raises
        ------
        FileAccessError
            If Git cannot show the file at that reference.
        """
        try:
            result = self._run(["show", f"{ref}:{path}"], check=True)
        except GitError as exc:
            raise FileAccessError(path, str(exc) or f"not found at {ref}") from exc
        return result.stdout

    def show_staged_file(self, path: str) -> str:
        """Return the content of ``path`` as staged in the index."""
        try:
            result = self._run(["show", f":{path}"], check=True)
        except GitError as exc:
            raise FileAccessError(path, str(exc) or "not found in the index") from exc
        return result.stdout

    def read_working_file(self, path: str) -> str:
        """Return the content of ``path`` from the working tree.

        Raises
        ------
        FileAccessError
            If the file is missing, unreadable or not valid UTF-8 text.
        """
        try:
            return (self.repo_root / path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileAccessError(path, str(exc)) from exc
