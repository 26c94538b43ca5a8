from __future__ import annotations

import json
import warnings

import pandas as pd
import pytest

from profile_differ.pipeline.stages import (
    _build_metrics_payload,
    _compute_difference_metrics,
    _safe_name,
    _site_file_names,
    compute_snapshot,
    make_workspace,
    save_metrics,
    save_series_outputs,
    select_sites,
    validate_config,
    validate_data_quality,
)
from profile_differ.pipeline.types import ProcessingConfig
from profile_differ.snapshot import assemble_snapshot


@pytest.fixture
def snapshot(create_records, aha_records):
    records = (
        aha_records
        + create_records("FAL", 2021, [(0, 5), (2, 5), (4, 5)])
        + create_records("FAL", 2024, [(0, 5.5), (2, 5.5), (4, 5.5), (6, 9)])
        + create_records("MID", 2021, [(0, 4)])
    )
    return assemble_snapshot(records, early_year=2021, late_year=2024)


def test_validate_config_rejects_reversed_years() -> None:
    with pytest.raises(ValueError, match="precede"):
        validate_config(ProcessingConfig(early_year=2024, late_year=2021))


def test_validate_config_rejects_same_year() -> None:
    with pytest.raises(ValueError):
        validate_config(ProcessingConfig(early_year=2024, late_year=2024))


def test_validate_config_rejects_bad_decimals() -> None:
    with pytest.raises(ValueError, match="decimals"):
        validate_config(ProcessingConfig(decimals=-1))


def test_validate_data_quality_raises_without_survey_years(create_records) -> None:
    records = create_records("AHA", 2010, [(0, 1)])

    with pytest.raises(ValueError, match="insufficient data"):
        validate_data_quality(records, ProcessingConfig())


def test_validate_data_quality_reports_ignored_years(create_records, capsys) -> None:
    records = create_records("AHA", 2021, [(0, 1)]) + create_records("AHA", 2019, [(0, 1)])

    validate_data_quality(records, ProcessingConfig())

    assert "2019" in capsys.readouterr().out


def test_compute_snapshot_reports_sites_without_overlap(create_records, capsys) -> None:
    records = create_records("MID", 2021, [(0, 4)])

    snapshot = compute_snapshot(records, ProcessingConfig())

    assert snapshot.sites == ("MID",)
    assert "Site MID" in capsys.readouterr().out


def test_compute_snapshot_uses_config_decimals(create_records) -> None:
    records = create_records("AHA", 2021, [(1.04, 1)]) + create_records("AHA", 2024, [(0.96, 2)])

    coarse = compute_snapshot(records, ProcessingConfig(decimals=1))

    assert coarse.site("AHA").n_matched == 1


def test_select_sites_defaults_to_all(snapshot) -> None:
    selection = select_sites(snapshot, ProcessingConfig())

    assert selection.ordered == ("AHA", "FAL", "MID")


def test_select_sites_warns_for_unknown(snapshot) -> None:
    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        selection = select_sites(snapshot, ProcessingConfig(sites=("FAL", "ZZZ")))

    assert selection.ordered == ("FAL",)
    assert any("ZZZ" in str(wm.message) for wm in w)


def test_compute_difference_metrics() -> None:
    import numpy as np

    metrics = _compute_difference_metrics(np.array([1.0, -1.0, np.nan]))

    assert metrics["mean_m"] == pytest.approx(0.0)
    assert metrics["rmse_m"] == pytest.approx(1.0)
    assert metrics["min_m"] == -1.0
    assert metrics["max_m"] == 1.0


def test_compute_difference_metrics_empty() -> None:
    import numpy as np

    assert _compute_difference_metrics(np.array([])) == {}


def test_metrics_payload_per_site(snapshot) -> None:
    payload = _build_metrics_payload(snapshot, ProcessingConfig(), n_records=13)

    assert payload["n_sites"] == 3
    assert payload["sites_compared"] == ["AHA", "FAL"]
    assert payload["matching"]["tolerance_m"] == pytest.approx(0.0005)

    fal = payload["sites"]["FAL"]
    assert fal["n_early"] == 3
    assert fal["n_late"] == 4
    assert fal["n_matched"] == 3
    assert fal["n_unmatched"] == 1
    assert fal["net_change_m2"] == pytest.approx(2.0)
    assert fal["span_m"] == pytest.approx(4.0)
    assert fal["mean_change_m"] == pytest.approx(0.5)

    mid = payload["sites"]["MID"]
    assert mid["n_matched"] == 0
    assert mid["difference"] == {}
    assert "span_m" not in mid


def test_save_metrics_writes_json(snapshot, temp_output_dir) -> None:
    ws = make_workspace(temp_output_dir, job_id="job")

    payload = save_metrics(snapshot, ws, ProcessingConfig(), n_records=13, input_name="s.csv")

    written = json.loads((ws.reports_dir / "metrics.json").read_text())
    assert written["inputs"] == {"name": "s.csv", "n_records": 13}
    assert written["sites"]["AHA"]["net_change_m2"] == payload["sites"]["AHA"]["net_change_m2"]


def test_save_series_outputs(snapshot, temp_output_dir) -> None:
    ws = make_workspace(temp_output_dir, job_id="job")

    written = save_series_outputs(snapshot, ws)

    assert len(written) == 9
    points = pd.read_csv(ws.series_dir / "FAL_points.csv")
    assert list(points.columns) == ["distAlong", "elevation_2021", "elevation_2024", "difference"]
    assert len(points) == 4
    assert points["elevation_2021"].isna().sum() == 1

    integral = pd.read_csv(ws.series_dir / "FAL_integral.csv")
    assert integral["integral"].tolist() == pytest.approx([0.0, 1.0, 2.0])

    mid = pd.read_csv(ws.series_dir / "MID_differences.csv")
    assert mid.empty


def test_site_file_names_are_unique() -> None:
    names = _site_file_names(("Reach A", "Reach/A", "AHA", "Reach_A"))

    assert names == {
        "Reach A": "Reach_A",
        "Reach/A": "Reach_A_2",
        "AHA": "AHA",
        "Reach_A": "Reach_A_3",
    }


def test_save_series_outputs_keeps_sites_with_clashing_names(
    create_records, temp_output_dir
) -> None:
    records = []
    for site, gain in (("Reach A", 1.0), ("Reach/A", 2.0)):
        records += create_records(site, 2021, [(0, 5), (1, 5), (2, 5)])
        records += create_records(site, 2024, [(0, 5 + gain), (1, 5 + gain), (2, 5 + gain)])
    snapshot = assemble_snapshot(records, early_year=2021, late_year=2024)
    ws = make_workspace(temp_output_dir, job_id="job")

    written = save_series_outputs(snapshot, ws)

    assert len(set(written)) == 6
    assert len(list(ws.series_dir.iterdir())) == 6
    first = pd.read_csv(ws.series_dir / "Reach_A_integral.csv")
    second = pd.read_csv(ws.series_dir / "Reach_A_2_integral.csv")
    assert first["integral"].iloc[-1] == pytest.approx(2.0)
    assert second["integral"].iloc[-1] == pytest.approx(4.0)


def test_make_workspace_creates_directories(temp_output_dir) -> None:
    ws = make_workspace(temp_output_dir / "out", job_id="abc")

    assert ws.series_dir.is_dir()
    assert ws.reports_dir.is_dir()
    assert ws.job_id == "abc"


def test_safe_name() -> None:
    assert _safe_name("AHA") == "AHA"
    assert _safe_name("Upper reach/2") == "Upper_reach_2"
    assert _safe_name("///") == "site"
