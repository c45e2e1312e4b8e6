"""
Version control system (VCS) integration.

This package contains the Git client used by the change extractor to
list changed paths and read file contents at a reference or from the
working tree.
"""

from .git_client import FileAccessError, FileChange, GitClient, GitError, RepositoryError  # noqa: F401
