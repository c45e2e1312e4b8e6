"""
Report rendering and commit suggestion synthesis.
"""

from .reporter import FORMATS, Reporter, ReportFormatError  # noqa: F401
from .suggestion import suggest_commit  # noqa: F401
