"""
Change extraction from Git references or the working tree.
"""

from .change_extractor import ChangeExtractor, make_path_filter  # noqa: F401
from .file_types import build_metadata, classify_file_type, is_test_filename  # noqa: F401
