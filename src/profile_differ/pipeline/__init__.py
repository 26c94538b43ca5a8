from __future__ import annotations

import os
import sys
import warnings
from contextlib import ExitStack, redirect_stderr, redirect_stdout
from io import StringIO
from pathlib import Path

from profile_differ.db import Database

from . import stages
from .types import Inputs, ProcessingConfig, ProcessingResult, Workspace

PIPELINE_STEPS = 7


def _progress_wanted(progress: bool | None) -> bool:
    if progress is not None:
        return progress
    return sys.stderr.isatty() and "PYTEST_CURRENT_TEST" not in os.environ


def _render_captured(
    caught: list[warnings.WarningMessage], stdout_text: str, stderr_text: str
) -> str | None:
    sections: list[str] = []
    if caught:
        lines = [
            warnings.formatwarning(
                wm.message, wm.category, wm.filename, wm.lineno, line=wm.line
            ).rstrip()
            for wm in caught
        ]
        sections.append("Captured warnings:\n" + "\n".join(lines))
    for label, text in (("stdout", stdout_text), ("stderr", stderr_text)):
        if text.strip():
            sections.append(f"Captured {label}:\n{text.strip()}")
    return "\n\n".join(sections) if sections else None


def run_pipeline(
    db: Database,
    job_id: str,
    table_path: Path | str,
    out_dir: Path | str,
    config: ProcessingConfig | None = None,
    *,
    progress: bool | None = None,
    defer_output: bool | None = None,
) -> ProcessingResult:
    """
    Compare the two surveys in a table and write the job's outputs.

    The job moves to "running", then to "completed" or "failed". With
    defer_output, prints and warnings from the stages are collected and
    returned on the result instead of interleaving with the progress bar;
    they go to stderr if the run fails.
    """
    config = config or ProcessingConfig()
    ws = stages.make_workspace(Path(out_dir), job_id=job_id)
    inputs = Inputs(table_path=Path(table_path))

    show_progress = _progress_wanted(progress)
    defer = show_progress if defer_output is None else defer_output
    real_stderr = sys.stderr

    pbar = None
    if show_progress:
        from tqdm.auto import tqdm

        pbar = tqdm(
            total=PIPELINE_STEPS, desc="profile-differ", unit="step", file=real_stderr
        )

    def step(label: str) -> None:
        if pbar is not None:
            pbar.set_description(label)
            pbar.update(1)

    captured_out = StringIO()
    captured_err = StringIO()
    caught: list[warnings.WarningMessage] = []
    deferred_output: str | None = None
    failed = False

    try:
        db.update_job_status(job_id, status="running")
        with ExitStack() as stack:
            if defer:
                caught = stack.enter_context(warnings.catch_warnings(record=True))
                warnings.simplefilter("default")
                stack.enter_context(redirect_stdout(captured_out))
                stack.enter_context(redirect_stderr(captured_err))
            snapshot, selection, metrics, n_records = _run_pipeline_steps(
                inputs, ws, config, step=step
            )
        db.save_site_summaries(
            job_id,
            [(result.site, result.n_matched, result.net_change) for result in snapshot],
        )
        db.update_job_status(job_id, status="completed")
    except BaseException:
        failed = True
        db.update_job_status(job_id, status="failed")
        raise
    finally:
        if pbar is not None:
            pbar.close()
        if defer:
            deferred_output = _render_captured(
                caught, captured_out.getvalue(), captured_err.getvalue()
            )
            if failed and deferred_output:
                print(deferred_output, file=real_stderr)

    return ProcessingResult(
        job_id=job_id,
        snapshot=snapshot,
        selection=selection,
        metrics=metrics,
        series_dir=ws.series_dir,
        reports_dir=ws.reports_dir,
        n_records=n_records,
        deferred_output=deferred_output,
    )


def _run_pipeline_steps(inputs: Inputs, ws: Workspace, config: ProcessingConfig, *, step):
    stages.validate_config(config)
    stages.validate_inputs(inputs)
    step("Validate inputs")

    records = stages.load_records(inputs)
    step("Load survey table")

    stages.validate_data_quality(records, config)
    step("Validate data quality")

    snapshot = stages.compute_snapshot(records, config)
    selection = stages.select_sites(snapshot, config)
    step("Align and integrate profiles")

    if config.write_series:
        stages.save_series_outputs(snapshot, ws)
    step("Write series")

    input_name = inputs.table_path.name
    metrics = stages.save_metrics(
        snapshot, ws, config, n_records=len(records), input_name=input_name
    )
    step("Write metrics")

    if config.generate_report:
        try:
            stages.generate_report(
                snapshot,
                selection,
                ws,
                config,
                metrics=metrics,
                input_name=input_name,
                n_records=len(records),
                job_id=ws.job_id,
            )
        except Exception as e:
            warnings.warn(
                f"Report generation failed: {e}. Check the matplotlib installation.",
                UserWarning,
                stacklevel=2,
            )
    step("Write report")

    return snapshot, selection, metrics, len(records)
