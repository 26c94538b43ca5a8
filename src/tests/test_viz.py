"""Tests for chart rendering."""

import numpy as np
import pytest

from profile_differ.snapshot import assemble_snapshot
from profile_differ.types import DifferencePoint
from profile_differ.viz import (
    SITE_PALETTE,
    _xy,
    save_differences_png,
    save_integrals_png,
    save_profiles_png,
    site_colour,
)


@pytest.fixture
def snapshot(create_records, aha_records):
    records = aha_records + create_records("MID", 2021, [(0, 4), (1, 5)])
    return assemble_snapshot(records, early_year=2021, late_year=2024)


def test_site_colour_follows_site_order():
    sites = ("AHA", "FAL", "LGR")

    assert site_colour(sites, "AHA") == SITE_PALETTE[0]
    assert site_colour(sites, "LGR") == SITE_PALETTE[2]


def test_site_colour_wraps_palette():
    sites = tuple(f"S{i}" for i in range(len(SITE_PALETTE) + 1))

    assert site_colour(sites, sites[-1]) == SITE_PALETTE[0]


def test_site_colour_unknown_site_uses_first_colour():
    assert site_colour(("AHA",), "NOPE") == SITE_PALETTE[0]


def test_xy_extracts_arrays():
    points = (
        DifferencePoint(dist_along=0.0, difference=1.5),
        DifferencePoint(dist_along=2.0, difference=-0.5),
    )

    x, y = _xy(points, "difference")

    assert np.array_equal(x, np.array([0.0, 2.0]))
    assert np.array_equal(y, np.array([1.5, -0.5]))


def test_save_profiles_png(snapshot, temp_output_dir):
    out_path = temp_output_dir / "profiles.png"

    save_profiles_png(snapshot.site("AHA"), early_year=2021, late_year=2024, out_path=out_path)

    assert out_path.exists()
    assert out_path.stat().st_size > 0
    # Matplotlib caches live under PROFILE_DIFFER_MPL_CACHE_DIR, not beside the charts
    assert sorted(p.name for p in temp_output_dir.iterdir()) == ["profiles.png"]


def test_save_profiles_png_with_missing_year(snapshot, temp_output_dir):
    out_path = temp_output_dir / "mid.png"

    save_profiles_png(snapshot.site("MID"), early_year=2021, late_year=2024, out_path=out_path)

    assert out_path.exists()


def test_save_series_pngs(snapshot, temp_output_dir):
    results = list(snapshot)
    diff_path = temp_output_dir / "diff.png"
    integral_path = temp_output_dir / "integral.png"

    save_differences_png(
        results, sites=snapshot.sites, early_year=2021, late_year=2024, out_path=diff_path
    )
    save_integrals_png(results, sites=snapshot.sites, out_path=integral_path)

    assert diff_path.exists()
    assert integral_path.exists()


def test_save_series_png_with_no_results(temp_output_dir):
    out_path = temp_output_dir / "empty.png"

    save_integrals_png([], sites=(), out_path=out_path)

    assert out_path.exists()
