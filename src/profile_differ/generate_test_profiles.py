"""
Generate sample survey tables for testing alignment, differencing and integration.

This script creates various test scenarios:
- Matching transects with known erosion/deposition
- Uneven sampling and unmatched points
- Sites surveyed in only one year
- Rounding collisions and extra survey years
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from profile_differ.constants import (
    COLUMN_DIST_ALONG,
    COLUMN_ELEVATION,
    COLUMN_SITE,
    COLUMN_YEAR,
    DEFAULT_EARLY_YEAR,
    DEFAULT_LATE_YEAR,
)


def make_survey_frame(
    site: str,
    year: int,
    dist_along: np.ndarray,
    elevation: np.ndarray,
) -> pd.DataFrame:
    """Create a survey table fragment for one site and year."""
    return pd.DataFrame(
        {
            COLUMN_SITE: site,
            COLUMN_YEAR: year,
            COLUMN_DIST_ALONG: np.round(np.asarray(dist_along, dtype=float), 4),
            COLUMN_ELEVATION: np.round(np.asarray(elevation, dtype=float), 3),
        }
    )


def _bed(dist_along: np.ndarray, *, base: float, slope: float) -> np.ndarray:
    # Gently sloping bed with riffle/pool undulation
    return base - slope * dist_along + 0.4 * np.sin(dist_along / 7.0)


def _write(frames: list[pd.DataFrame], out_path: Path, *, shuffle: bool = True) -> None:
    table = pd.concat(frames, ignore_index=True)
    if shuffle:
        table = table.sample(frac=1.0, random_state=42).reset_index(drop=True)
    table.to_csv(out_path, index=False)


def generate_scenario_1_uniform_change(out_dir: Path) -> None:
    """
    Scenario 1: Identical sampling, uniform deposition.

    Tests:
    - Every point matches
    - Constant +0.25 m difference gives integral = 0.25 * distance
    """
    x = np.arange(0.0, 100.5, 0.5)
    early = _bed(x, base=100.0, slope=0.01)
    late = early + 0.25

    _write(
        [
            make_survey_frame("AHA", DEFAULT_EARLY_YEAR, x, early),
            make_survey_frame("AHA", DEFAULT_LATE_YEAR, x, late),
        ],
        out_dir / "scenario1_uniform_change.csv",
    )
    print("Generated Scenario 1: Uniform deposition")


def generate_scenario_2_scour_and_fill(out_dir: Path) -> None:
    """
    Scenario 2: Scour upstream, fill downstream.

    Tests:
    - Sign changes in the difference series
    - Integral rising then falling
    """
    x = np.arange(0.0, 80.0, 1.0)
    early = _bed(x, base=50.0, slope=0.02)
    change = np.where(x < 40.0, -0.3, 0.45)
    late = early + change

    _write(
        [
            make_survey_frame("FAL", DEFAULT_EARLY_YEAR, x, early),
            make_survey_frame("FAL", DEFAULT_LATE_YEAR, x, late),
        ],
        out_dir / "scenario2_scour_and_fill.csv",
    )
    print("Generated Scenario 2: Scour and fill")


def generate_scenario_3_uneven_sampling(out_dir: Path) -> None:
    """
    Scenario 3: Later survey sampled more densely with small offsets.

    Tests:
    - Distances within 0.0005 m still match
    - Later-only points are kept as unmatched
    """
    rng = np.random.default_rng(7)
    early_x = np.arange(0.0, 60.0, 2.0)
    late_x = np.sort(
        np.concatenate([early_x + rng.uniform(-0.0004, 0.0004, early_x.size), early_x + 1.0])
    )
    late_x = np.clip(late_x, 0.0, None)

    _write(
        [
            make_survey_frame("LGR", DEFAULT_EARLY_YEAR, early_x, _bed(early_x, base=30.0, slope=0.01)),
            make_survey_frame("LGR", DEFAULT_LATE_YEAR, late_x, _bed(late_x, base=30.0, slope=0.01) - 0.1),
        ],
        out_dir / "scenario3_uneven_sampling.csv",
    )
    print("Generated Scenario 3: Uneven sampling")


def generate_scenario_4_single_year_site(out_dir: Path) -> None:
    """
    Scenario 4: One site surveyed only in the earlier year.

    Tests:
    - Missing year is not an error
    - Empty difference and integral series for that site
    """
    x = np.arange(0.0, 40.0, 1.0)
    _write(
        [
            make_survey_frame("MCC", DEFAULT_EARLY_YEAR, x, _bed(x, base=20.0, slope=0.01)),
            make_survey_frame("MCC", DEFAULT_LATE_YEAR, x, _bed(x, base=20.0, slope=0.01) + 0.1),
            make_survey_frame("MID", DEFAULT_EARLY_YEAR, x, _bed(x, base=12.0, slope=0.01)),
        ],
        out_dir / "scenario4_single_year_site.csv",
    )
    print("Generated Scenario 4: Single-year site")


def generate_scenario_5_collisions_and_extra_years(out_dir: Path) -> None:
    """
    Scenario 5: Duplicate rounded distances and a third survey year.

    Tests:
    - Last record per rounding bucket wins
    - Years outside the comparison are ignored
    """
    x = np.arange(0.0, 20.0, 1.0)
    early = _bed(x, base=10.0, slope=0.0)
    duplicate = make_survey_frame("AHA", DEFAULT_EARLY_YEAR, x[:5] + 0.0002, early[:5] + 1.0)

    _write(
        [
            make_survey_frame("AHA", DEFAULT_EARLY_YEAR, x, early),
            duplicate,
            make_survey_frame("AHA", DEFAULT_LATE_YEAR, x, early - 0.2),
            make_survey_frame("AHA", 2018, x, early + 0.5),
        ],
        out_dir / "scenario5_collisions_and_extra_years.csv",
        shuffle=False,
    )
    print("Generated Scenario 5: Collisions and extra years")


def generate_all_scenarios(out_dir: Path) -> None:
    """Generate all test scenarios."""
    out_dir.mkdir(parents=True, exist_ok=True)

    print("Generating test survey scenarios...")
    print("=" * 50)

    generate_scenario_1_uniform_change(out_dir)
    generate_scenario_2_scour_and_fill(out_dir)
    generate_scenario_3_uneven_sampling(out_dir)
    generate_scenario_4_single_year_site(out_dir)
    generate_scenario_5_collisions_and_extra_years(out_dir)

    print("=" * 50)
    print(f"All scenarios generated in: {out_dir}")
    print("\nGenerated files:")
    for f in sorted(out_dir.glob("*.csv")):
        print(f"  - {f.name}")


def main() -> None:
    """CLI entry point for generating test survey tables."""
    import sys

    if len(sys.argv) > 1:
        out_dir = Path(sys.argv[1])
    else:
        out_dir = Path("test_data") / "sample_profiles"

    generate_all_scenarios(out_dir)


if __name__ == "__main__":
    main()
