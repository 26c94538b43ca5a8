import math
from collections.abc import Iterable, Sequence
from dataclasses import replace

import numpy as np
from numpy.typing import NDArray

from profile_differ.constants import DEFAULT_DECIMALS
from profile_differ.types import (
    DifferencePoint,
    IntegralPoint,
    MatchedPoint,
    Profile,
    ProfileRecord,
)

type GroupKey = tuple[str, int]


def collect_sites(records: Iterable[ProfileRecord]) -> tuple[str, ...]:
    """Distinct site identifiers in order of first appearance."""
    return tuple(dict.fromkeys(record.site for record in records))


def group_records(
    records: Iterable[ProfileRecord], *, early_year: int, late_year: int
) -> dict[GroupKey, list[ProfileRecord]]:
    """
    Partition records by (site, year).

    Records surveyed in any other year are left out of the two-year comparison.
    Input order is preserved within each group.
    """
    survey_years = {early_year, late_year}
    groups: dict[GroupKey, list[ProfileRecord]] = {}
    for record in records:
        if record.year not in survey_years:
            continue
        groups.setdefault((record.site, record.year), []).append(record)
    return groups


def build_profile(group: Iterable[ProfileRecord]) -> Profile:
    """
    Sort one (site, year) group by distance along the transect.

    Returns:
        Profile: records in ascending distance; equal distances keep input order
    """
    return tuple(sorted(group, key=lambda record: record.dist_along))


def build_profiles(
    groups: dict[GroupKey, list[ProfileRecord]],
    site: str,
    *,
    early_year: int,
    late_year: int,
) -> tuple[Profile, Profile]:
    """Build the (earlier, later) profile pair for a site; a missing year gives ()."""
    early = build_profile(groups.get((site, early_year), ()))
    late = build_profile(groups.get((site, late_year), ()))
    return early, late


def distance_key(dist_along: float, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Quantise a distance to an integer matching key.

    The key is the distance in units of 10**-decimals, rounded half up, so two
    distances share a key when they agree to `decimals` places.
    """
    return int(math.floor(dist_along * 10**decimals + 0.5))


def align_profiles(
    early: Sequence[ProfileRecord],
    late: Sequence[ProfileRecord],
    *,
    decimals: int = DEFAULT_DECIMALS,
) -> tuple[MatchedPoint, ...]:
    """
    Pair the earlier and later profiles of one site by rounded distance.

    Each rounding key holds one point. A record that lands on a key already
    written by the same year replaces it (last write wins). Points seen in only
    one year are kept with the other elevation unset.

    Returns:
        tuple[MatchedPoint, ...]: all points, ascending by distance
    """
    table: dict[int, MatchedPoint] = {}

    for record in early:
        table[distance_key(record.dist_along, decimals)] = MatchedPoint(
            dist_along=record.dist_along, elev_early=record.elevation
        )

    for record in late:
        key = distance_key(record.dist_along, decimals)
        existing = table.get(key)
        if existing is None:
            table[key] = MatchedPoint(
                dist_along=record.dist_along, elev_late=record.elevation
            )
        elif existing.elev_early is None:
            table[key] = replace(existing, elev_late=record.elevation)
        else:
            table[key] = replace(
                existing,
                elev_late=record.elevation,
                diff=record.elevation - existing.elev_early,
            )

    return tuple(sorted(table.values(), key=lambda point: point.dist_along))


def matched_only(points: Iterable[MatchedPoint]) -> tuple[MatchedPoint, ...]:
    return tuple(point for point in points if point.is_matched)


def compute_differences(points: Iterable[MatchedPoint]) -> tuple[DifferencePoint, ...]:
    """
    Elevation change (later minus earlier) at every point present in both years.

    Positive values mean the surface gained elevation.
    """
    return tuple(
        DifferencePoint(
            dist_along=point.dist_along,
            difference=point.elev_late - point.elev_early,
        )
        for point in matched_only(points)
    )


def cumulative_trapezoid(
    dist_along: NDArray[np.floating], values: NDArray[np.floating]
) -> NDArray[np.floating]:
    """
    Running trapezoidal integral of `values` over irregular `dist_along`.

    The first entry is 0. Steps where the distance does not increase add no area.
    """
    if values.size == 0:
        return np.zeros(0, dtype=float)

    dx = np.clip(np.diff(dist_along), 0.0, None)
    area = (values[1:] + values[:-1]) / 2.0 * dx
    return np.concatenate(([0.0], np.cumsum(area)))


def integrate_differences(
    differences: Sequence[DifferencePoint],
) -> tuple[IntegralPoint, ...]:
    """
    Integrate the difference series along the transect.

    Returns:
        tuple[IntegralPoint, ...]: net area (m²) accumulated up to each point
    """
    dist_along = np.array([p.dist_along for p in differences], dtype=float)
    values = np.array([p.difference for p in differences], dtype=float)
    integral = cumulative_trapezoid(dist_along, values)
    return tuple(
        IntegralPoint(dist_along=float(x), integral=float(area))
        for x, area in zip(dist_along, integral)
    )
