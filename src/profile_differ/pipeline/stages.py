from __future__ import annotations

import json
import re
import warnings
from pathlib import Path

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from profile_differ.constants import MAX_DECIMALS
from profile_differ.ingest import read_records, validate_record_data, validate_table
from profile_differ.snapshot import (
    AnalysisSnapshot,
    SiteResult,
    SiteSelection,
    assemble_snapshot,
)
from profile_differ.types import ProfileRecord
from profile_differ.viz import (
    save_differences_png,
    save_integrals_png,
    save_profiles_png,
)

from .types import Inputs, ProcessingConfig, Workspace


def _safe_name(site: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", site).strip("_") or "site"


def _site_file_names(sites: tuple[str, ...]) -> dict[str, str]:
    """
    File stem for every site, unique within the job.

    Sites whose names sanitise to the same stem get a numeric suffix in
    site set order, so the first keeps the plain stem.
    """
    names: dict[str, str] = {}
    taken: set[str] = set()
    for site in sites:
        base = _safe_name(site)
        name = base
        n = 2
        while name in taken:
            name = f"{base}_{n}"
            n += 1
        taken.add(name)
        names[site] = name
    return names


def _compute_difference_metrics(values: NDArray[np.floating]) -> dict[str, float]:
    finite = np.asarray(values, dtype=float)
    finite = finite[np.isfinite(finite)]
    if finite.size == 0:
        return {}

    return {
        "mean_m": float(np.mean(finite)),
        "median_m": float(np.median(finite)),
        "std_m": float(np.std(finite)),
        "rmse_m": float(np.sqrt(np.mean(finite**2))),
        "mae_m": float(np.mean(np.abs(finite))),
        "min_m": float(np.min(finite)),
        "max_m": float(np.max(finite)),
    }


def _site_metrics(result: SiteResult) -> dict:
    metrics: dict = {
        "n_early": len(result.early_profile),
        "n_late": len(result.late_profile),
        "n_points": len(result.matched_points),
        "n_matched": result.n_matched,
        "n_unmatched": result.n_unmatched,
        "net_change_m2": result.net_change,
    }

    if result.differences:
        start = result.differences[0].dist_along
        end = result.differences[-1].dist_along
        span = end - start
        metrics.update(
            {
                "dist_start_m": start,
                "dist_end_m": end,
                "span_m": span,
                "mean_change_m": result.net_change / span if span > 0 else None,
            }
        )

    metrics["difference"] = _compute_difference_metrics(
        np.array([p.difference for p in result.differences], dtype=float)
    )
    return metrics


def _build_metrics_payload(
    snapshot: AnalysisSnapshot,
    config: ProcessingConfig,
    *,
    n_records: int | None = None,
    input_name: str | None = None,
) -> dict:
    sites = {result.site: _site_metrics(result) for result in snapshot}
    compared = [site for site, m in sites.items() if m["n_matched"] > 0]

    return {
        "survey": {
            "early_year": snapshot.early_year,
            "late_year": snapshot.late_year,
        },
        "matching": {
            "decimals": config.decimals,
            "tolerance_m": 0.5 * 10**-config.decimals,
        },
        "inputs": {
            "name": input_name,
            "n_records": n_records,
        },
        "n_sites": len(snapshot),
        "sites_compared": compared,
        "sites": sites,
    }


def _save_metrics_json(out_path: Path, payload: dict) -> None:
    out_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")


def save_metrics(
    snapshot: AnalysisSnapshot,
    ws: Workspace,
    config: ProcessingConfig,
    *,
    n_records: int | None = None,
    input_name: str | None = None,
) -> dict:
    """
    Write machine-readable per-site metrics to `reports/metrics.json`.

    This is created even when `generate_report=False` so downstream workflows can
    consume the net change per site without parsing HTML.
    """
    payload = _build_metrics_payload(
        snapshot, config, n_records=n_records, input_name=input_name
    )
    _save_metrics_json(ws.reports_dir / "metrics.json", payload)
    return payload


def make_workspace(out_dir: Path, job_id: str = "") -> Workspace:
    out_dir.mkdir(parents=True, exist_ok=True)
    series_dir = out_dir / "series"
    reports_dir = out_dir / "reports"
    series_dir.mkdir(parents=True, exist_ok=True)
    reports_dir.mkdir(parents=True, exist_ok=True)
    return Workspace(
        out_dir=out_dir,
        series_dir=series_dir,
        reports_dir=reports_dir,
        job_id=job_id,
    )


def validate_config(config: ProcessingConfig) -> None:
    if config.early_year >= config.late_year:
        raise ValueError(
            f"Earlier survey year must precede the later one "
            f"(got {config.early_year} and {config.late_year})"
        )
    if not 0 <= config.decimals <= MAX_DECIMALS:
        raise ValueError(f"decimals must be between 0 and {MAX_DECIMALS}")


def validate_inputs(inputs: Inputs) -> None:
    validate_table(str(inputs.table_path))


def load_records(inputs: Inputs) -> list[ProfileRecord]:
    return read_records(str(inputs.table_path))


def validate_data_quality(
    records: list[ProfileRecord], config: ProcessingConfig
) -> None:
    valid, msg = validate_record_data(
        records, early_year=config.early_year, late_year=config.late_year
    )
    if not valid:
        raise ValueError(f"Survey table has insufficient data: {msg}")

    ignored = sorted(
        {r.year for r in records} - {config.early_year, config.late_year}
    )
    if ignored:
        print(
            "Ignoring records from years outside the comparison: "
            + ", ".join(str(y) for y in ignored)
        )


def compute_snapshot(
    records: list[ProfileRecord], config: ProcessingConfig
) -> AnalysisSnapshot:
    snapshot = assemble_snapshot(
        records,
        early_year=config.early_year,
        late_year=config.late_year,
        decimals=config.decimals,
    )
    for result in snapshot:
        if not result.differences:
            print(
                f"Site {result.site}: no distances shared by {config.early_year} "
                f"and {config.late_year}; nothing to difference."
            )
    return snapshot


def select_sites(snapshot: AnalysisSnapshot, config: ProcessingConfig) -> SiteSelection:
    if config.sites is None:
        return SiteSelection(sites=snapshot.sites).select_all()

    unknown = [site for site in config.sites if site not in snapshot.sites]
    if unknown:
        warnings.warn(
            f"Requested sites not found in survey table: {', '.join(unknown)}",
            UserWarning,
            stacklevel=2,
        )
    known = [site for site in config.sites if site in snapshot.sites]
    return SiteSelection.of(snapshot, known)


def save_series_outputs(snapshot: AnalysisSnapshot, ws: Workspace) -> list[Path]:
    """Write per-site point, difference and integral series as CSV."""
    written: list[Path] = []
    file_names = _site_file_names(snapshot.sites)
    for result in snapshot:
        name = file_names[result.site]

        points = pd.DataFrame(
            {
                "distAlong": [p.dist_along for p in result.matched_points],
                f"elevation_{snapshot.early_year}": [
                    p.elev_early for p in result.matched_points
                ],
                f"elevation_{snapshot.late_year}": [
                    p.elev_late for p in result.matched_points
                ],
                "difference": [p.diff for p in result.matched_points],
            }
        )
        differences = pd.DataFrame(
            {
                "distAlong": [p.dist_along for p in result.differences],
                "difference": [p.difference for p in result.differences],
            }
        )
        integrals = pd.DataFrame(
            {
                "distAlong": [p.dist_along for p in result.integrals],
                "integral": [p.integral for p in result.integrals],
            }
        )

        for suffix, frame in (
            ("points", points),
            ("differences", differences),
            ("integral", integrals),
        ):
            path = ws.series_dir / f"{name}_{suffix}.csv"
            frame.to_csv(path, index=False)
            written.append(path)
    return written


def generate_report(
    snapshot: AnalysisSnapshot,
    selection: SiteSelection,
    ws: Workspace,
    config: ProcessingConfig,
    *,
    metrics: dict | None = None,
    input_name: str = "unknown",
    n_records: int = 0,
    job_id: str = "",
) -> Path:
    """Generate charts and the HTML report using Jinja2 templates."""
    from datetime import datetime

    from profile_differ import __version__
    from profile_differ.report import (
        ProcessingInfo,
        ReportData,
        ReportImage,
        SiteSummary,
        render_report,
    )

    if metrics is None:
        metrics = _build_metrics_payload(
            snapshot, config, n_records=n_records, input_name=input_name
        )

    processing = ProcessingInfo(
        input_name=input_name,
        early_year=snapshot.early_year,
        late_year=snapshot.late_year,
        decimals=config.decimals,
        tolerance=metrics["matching"]["tolerance_m"],
        n_records=n_records,
        n_sites=len(snapshot),
    )

    summaries: list[SiteSummary] = []
    for site in snapshot.sites:
        m = metrics["sites"][site]
        diff = m["difference"]
        summaries.append(
            SiteSummary(
                site=site,
                n_early=m["n_early"],
                n_late=m["n_late"],
                n_matched=m["n_matched"],
                n_unmatched=m["n_unmatched"],
                net_change=m["net_change_m2"],
                mean_difference=diff.get("mean_m"),
                min_difference=diff.get("min_m"),
                max_difference=diff.get("max_m"),
                span=m.get("span_m"),
                selected=selection.is_selected(site),
            )
        )

    images: list[ReportImage] = []
    file_names = _site_file_names(snapshot.sites)
    visible = selection.visible_results(snapshot)

    for result in visible:
        png = f"profiles_{file_names[result.site]}.png"
        save_profiles_png(
            result,
            early_year=snapshot.early_year,
            late_year=snapshot.late_year,
            out_path=ws.reports_dir / png,
        )
        images.append(ReportImage(png, f"Elevation profiles: {result.site}"))

    if visible:
        diff_png = "elevation_differences.png"
        save_differences_png(
            visible,
            sites=snapshot.sites,
            early_year=snapshot.early_year,
            late_year=snapshot.late_year,
            out_path=ws.reports_dir / diff_png,
        )
        images.append(
            ReportImage(
                diff_png,
                f"Elevation differences ({snapshot.late_year} - {snapshot.early_year})",
                "Positive values are elevation gain.",
            )
        )

        integral_png = "integrated_differences.png"
        save_integrals_png(
            visible,
            sites=snapshot.sites,
            out_path=ws.reports_dir / integral_png,
        )
        images.append(
            ReportImage(
                integral_png,
                "Integrated elevation difference",
                "Net area between the two profiles accumulated along the transect.",
            )
        )

    report_data = ReportData(
        job_id=job_id,
        generated_at=datetime.now(),
        version=__version__,
        processing=processing,
        sites=summaries,
        images=images,
    )

    return render_report(report_data, ws.reports_dir)
