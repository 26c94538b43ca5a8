from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from profile_differ.snapshot import SiteResult


def _ensure_matplotlib_env() -> None:
    """
    Ensure Matplotlib uses writable cache/config locations.

    This runs at import time so it applies before Matplotlib is imported.
    """
    root = Path(os.environ.get("PROFILE_DIFFER_MPL_CACHE_DIR", Path.cwd()))
    mpl_dir = root / ".mplconfig"
    cache_dir = root / ".cache"
    mpl_dir.mkdir(parents=True, exist_ok=True)
    cache_dir.mkdir(parents=True, exist_ok=True)
    os.environ.setdefault("MPLCONFIGDIR", str(mpl_dir))
    os.environ.setdefault("XDG_CACHE_HOME", str(cache_dir))


_ensure_matplotlib_env()


try:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    _MATPLOTLIB_IMPORT_ERROR: Exception | None = None
except Exception as e:  # pragma: no cover
    matplotlib = None  # type: ignore[assignment]
    plt = None  # type: ignore[assignment]
    _MATPLOTLIB_IMPORT_ERROR = e


# Earlier survey in purple, later survey in orange
EARLY_YEAR_COLOUR = "#8884d8"
LATE_YEAR_COLOUR = "#ff7300"

SITE_PALETTE = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)


def _require_matplotlib() -> None:
    if plt is None:  # pragma: no cover
        raise RuntimeError(
            "matplotlib is required for report image generation; install it or disable report generation."
        ) from _MATPLOTLIB_IMPORT_ERROR


def site_colour(sites: Sequence[str], site: str) -> str:
    """Stable colour for a site, based on its position in the site set."""
    try:
        index = list(sites).index(site)
    except ValueError:
        index = 0
    return SITE_PALETTE[index % len(SITE_PALETTE)]


def _xy(points: Sequence, attr: str) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    x = np.array([p.dist_along for p in points], dtype=float)
    y = np.array([getattr(p, attr) for p in points], dtype=float)
    return x, y


def _style_axes(ax, *, ylabel: str) -> None:
    ax.set_xlabel("Distance Along (m)")
    ax.set_ylabel(ylabel)
    ax.grid(True, linestyle="--", linewidth=0.5, alpha=0.6)


def save_profiles_png(
    result: SiteResult,
    *,
    early_year: int,
    late_year: int,
    out_path: Path,
    title: str | None = None,
) -> None:
    _require_matplotlib()

    fig, ax = plt.subplots(figsize=(10, 4), dpi=150)

    # An empty profile draws nothing for that year
    for profile, year, colour in (
        (result.early_profile, early_year, EARLY_YEAR_COLOUR),
        (result.late_profile, late_year, LATE_YEAR_COLOUR),
    ):
        if not profile:
            continue
        x, y = _xy(profile, "elevation")
        ax.plot(x, y, color=colour, linewidth=1.2, label=f"{result.site} ({year})")

    ax.set_title(title or result.site)
    _style_axes(ax, ylabel="Elevation (m)")
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="best", fontsize=9)
    fig.tight_layout()
    fig.savefig(out_path, bbox_inches="tight")
    plt.close(fig)


def _save_site_series_png(
    results: Sequence[SiteResult],
    *,
    series: str,
    attr: str,
    sites: Sequence[str],
    out_path: Path,
    title: str,
    ylabel: str,
) -> None:
    _require_matplotlib()

    fig, ax = plt.subplots(figsize=(10, 4), dpi=150)
    for result in results:
        points = getattr(result, series)
        if not points:
            continue
        x, y = _xy(points, attr)
        ax.plot(
            x, y, color=site_colour(sites, result.site), linewidth=1.2, label=result.site
        )

    ax.axhline(0.0, color="#999999", linewidth=0.8)
    ax.set_title(title)
    _style_axes(ax, ylabel=ylabel)
    if ax.get_legend_handles_labels()[0]:
        ax.legend(loc="best", fontsize=9)
    fig.tight_layout()
    fig.savefig(out_path, bbox_inches="tight")
    plt.close(fig)


def save_differences_png(
    results: Sequence[SiteResult],
    *,
    sites: Sequence[str],
    early_year: int,
    late_year: int,
    out_path: Path,
) -> None:
    _save_site_series_png(
        results,
        series="differences",
        attr="difference",
        sites=sites,
        out_path=out_path,
        title=f"Elevation Differences ({late_year} - {early_year})",
        ylabel="Elevation Difference (m)",
    )


def save_integrals_png(
    results: Sequence[SiteResult],
    *,
    sites: Sequence[str],
    out_path: Path,
) -> None:
    _save_site_series_png(
        results,
        series="integrals",
        attr="integral",
        sites=sites,
        out_path=out_path,
        title="Integrated Elevation Difference",
        ylabel="Integrated Difference (m²)",
    )
