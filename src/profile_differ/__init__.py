"""Profile-Differ: repeat-survey elevation profile comparison.

A command-line tool for measuring elevation change along surveyed transects.
Profiles from two survey years are matched by along-track distance, differenced
point by point, and integrated to give the net change per site. Built for
channel and beach monitoring workflows.
"""

__version__ = "0.1.0"

from profile_differ.db import Database  # noqa: E402
from profile_differ.pipeline import run_pipeline  # noqa: E402
from profile_differ.pipeline.types import ProcessingConfig, ProcessingResult  # noqa: E402
from profile_differ.snapshot import (  # noqa: E402
    AnalysisSnapshot,
    SiteResult,
    SiteSelection,
    assemble_snapshot,
)

__all__ = [
    # Main pipeline
    "run_pipeline",
    "assemble_snapshot",
    # Configuration
    "ProcessingConfig",
    "ProcessingResult",
    # Results
    "AnalysisSnapshot",
    "SiteResult",
    "SiteSelection",
    # Database
    "Database",
    # Version
    "__version__",
]
