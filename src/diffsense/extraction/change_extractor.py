"""
Change extraction: the first pipeline stage.

Given a base and a head reference, :class:`ChangeExtractor` lists the
changed paths, loads the old and new contents of each one, and returns a
:class:`~diffsense.models.RawChange` per file. An empty head reference
means the working tree, untracked files included.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from ..globbing import matches_any
from ..models import ADDED, DELETED, MODIFIED, RENAMED, FileFailure, RawChange
from ..vcs.git_client import FileAccessError, FileChange, GitClient
from .file_types import build_metadata, is_binary_path


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


PathFilter = Callable[[str], bool]

# Git status letters mapped to change kinds; anything else is a modification
_STATUS_KINDS = {
    "A": ADDED,
    "C": ADDED,
    "?": ADDED,
    "D": DELETED,
    "R": RENAMED,
}


def make_path_filter(include_only: Iterable[str] = (), exclude_paths: Iterable[str] = ()) -> Optional[PathFilter]:
    """Build a predicate from ``include_only`` and ``exclude_paths`` globs.

    Returns ``None`` when neither list has entries.
    """
    include = tuple(include_only)
    exclude = tuple(exclude_paths)
    if not include and not exclude:
        return None

    def _accept(path: str) -> bool:
        if include and not matches_any(path, include):
            return False
        return not matches_any(path, exclude)

    return _accept


class ChangeExtractor:
    """Turn a Git reference pair into a list of raw file changes.

    Per-file read failures are logged, recorded in :attr:`failures`, and
    the file is skipped. :attr:`detected_count` counts every path that
    passed the path filter, skipped files included.
    """

    def __init__(self, client: GitClient, path_filter: Optional[PathFilter] = None) -> None:
        self.client = client
        self.path_filter = path_filter
        self.failures: List[FileFailure] = []
        self.detected_count = 0

    def extract(self, base_ref: str, head_ref: str, staged: bool = False) -> List[RawChange]:
        """Extract the changes between ``base_ref`` and ``head_ref``.

        An empty ``head_ref`` reads new contents from the working tree. With
        ``staged`` only the index is compared against ``base_ref`` and new
        contents come from the index.

        Raises
        ------
        RepositoryError
            If the client does not point at a repository or a reference is
            unknown. Nothing is extracted in that case.
        """
        self.failures = []
        self.client.ensure_repository()
        self.client.verify_ref(base_ref)
        if staged:
            entries = self.client.diff_cached_name_status(base_ref)
        elif not head_ref:
            entries = self.client.get_changes()
        else:
            self.client.verify_ref(head_ref)
            entries = self.client.diff_name_status(base_ref, head_ref)

        if self.path_filter is not None:
            entries = [entry for entry in entries if self.path_filter(entry.path)]
        self.detected_count = len(entries)
        logger.info("Detected %d changed files", len(entries))

        changes: List[RawChange] = []
        for entry in entries:
            try:
                changes.append(self._load(entry, base_ref, head_ref, staged))
            except FileAccessError as exc:
                logger.warning("Skipping %s: %s", exc.path, exc.reason)
                self.failures.append(FileFailure(path=entry.path, stage="extraction", reason=exc.reason))
        return changes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _load(self, entry: FileChange, base_ref: str, head_ref: str, staged: bool = False) -> RawChange:
        kind = _STATUS_KINDS.get(entry.status, MODIFIED)
        previous_path = entry.previous_path if kind == RENAMED else None
        old_content: Optional[str] = None
        new_content: Optional[str] = None

        if not is_binary_path(entry.path):
            if kind != ADDED:
                old_content = self.client.show_file(base_ref, previous_path or entry.path)
            if kind != DELETED:
                if staged:
                    new_content = self.client.show_staged_file(entry.path)
                elif head_ref:
                    new_content = self.client.show_file(head_ref, entry.path)
                else:
                    new_content = self.client.read_working_file(entry.path)
        else:
            logger.debug("Not loading content of binary file %s", entry.path)

        return RawChange(
            file_path=entry.path,
            change_kind=kind,
            old_content=old_content,
            new_content=new_content,
            previous_path=previous_path,
            metadata=build_metadata(entry.path, old_content, new_content),
        )
