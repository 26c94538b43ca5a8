from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from profile_differ.constants import (
    DEFAULT_DECIMALS,
    DEFAULT_EARLY_YEAR,
    DEFAULT_LATE_YEAR,
)
from profile_differ.snapshot import AnalysisSnapshot, SiteSelection


@dataclass(frozen=True)
class ProcessingConfig:
    early_year: int = DEFAULT_EARLY_YEAR
    late_year: int = DEFAULT_LATE_YEAR
    decimals: int = DEFAULT_DECIMALS
    sites: tuple[str, ...] | None = None  # charted sites; None = all
    generate_report: bool = True
    write_series: bool = True


@dataclass(frozen=True)
class Workspace:
    job_id: str
    out_dir: Path
    series_dir: Path
    reports_dir: Path


@dataclass(frozen=True)
class Inputs:
    table_path: Path


@dataclass(frozen=True)
class ProcessingResult:
    job_id: str
    snapshot: AnalysisSnapshot
    selection: SiteSelection
    metrics: dict
    series_dir: Path
    reports_dir: Path
    n_records: int
    deferred_output: str | None = None
