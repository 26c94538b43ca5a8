from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from profile_differ.constants import DEFAULT_DECIMALS
from profile_differ.profiles import (
    align_profiles,
    build_profiles,
    collect_sites,
    compute_differences,
    group_records,
    integrate_differences,
)
from profile_differ.types import (
    DifferencePoint,
    IntegralPoint,
    MatchedPoint,
    Profile,
    ProfileRecord,
)


@dataclass(frozen=True)
class SiteResult:
    site: str
    early_profile: Profile
    late_profile: Profile
    matched_points: tuple[MatchedPoint, ...]
    differences: tuple[DifferencePoint, ...]
    integrals: tuple[IntegralPoint, ...]

    @property
    def n_matched(self) -> int:
        return len(self.differences)

    @property
    def n_unmatched(self) -> int:
        return len(self.matched_points) - len(self.differences)

    @property
    def net_change(self) -> float:
        """Integrated elevation change over the whole matched transect (m²)."""
        return self.integrals[-1].integral if self.integrals else 0.0


@dataclass(frozen=True)
class AnalysisSnapshot:
    early_year: int
    late_year: int
    sites: tuple[str, ...]
    results: Mapping[str, SiteResult] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def site(self, name: str) -> SiteResult:
        return self.results[name]

    def __iter__(self) -> Iterator[SiteResult]:
        return (self.results[site] for site in self.sites)

    def __len__(self) -> int:
        return len(self.sites)


def analyse_site(
    site: str,
    early_profile: Profile,
    late_profile: Profile,
    *,
    decimals: int = DEFAULT_DECIMALS,
) -> SiteResult:
    points = align_profiles(early_profile, late_profile, decimals=decimals)
    differences = compute_differences(points)
    return SiteResult(
        site=site,
        early_profile=early_profile,
        late_profile=late_profile,
        matched_points=points,
        differences=differences,
        integrals=integrate_differences(differences),
    )


def assemble_snapshot(
    records: Iterable[ProfileRecord],
    *,
    early_year: int,
    late_year: int,
    decimals: int = DEFAULT_DECIMALS,
) -> AnalysisSnapshot:
    """
    Run grouping, alignment, differencing and integration for every site.

    The snapshot is rebuilt from scratch on every call and never mutated.
    """
    records = list(records)
    sites = collect_sites(records)
    groups = group_records(records, early_year=early_year, late_year=late_year)

    results: dict[str, SiteResult] = {}
    for site in sites:
        early, late = build_profiles(
            groups, site, early_year=early_year, late_year=late_year
        )
        results[site] = analyse_site(site, early, late, decimals=decimals)

    return AnalysisSnapshot(
        early_year=early_year,
        late_year=late_year,
        sites=sites,
        results=MappingProxyType(results),
    )


@dataclass(frozen=True)
class SiteSelection:
    """
    Which sites are shown. Changing it never touches computed values.

    Selected sites are kept in the order they were switched on, which is the
    order their series are drawn in the comparison charts.
    """

    sites: tuple[str, ...]
    selected: tuple[str, ...] = ()

    @classmethod
    def initial(cls, snapshot: AnalysisSnapshot) -> SiteSelection:
        # First site only, matching what the dashboard shows on load
        return cls(sites=snapshot.sites, selected=snapshot.sites[:1])

    @classmethod
    def of(cls, snapshot: AnalysisSnapshot, sites: Iterable[str]) -> SiteSelection:
        selection = cls(sites=snapshot.sites)
        for site in dict.fromkeys(sites):
            selection = selection.toggle(site)
        return selection

    def is_selected(self, site: str) -> bool:
        return site in self.selected

    def toggle(self, site: str) -> SiteSelection:
        if site not in self.sites:
            raise KeyError(f"Unknown site: {site}")
        if site in self.selected:
            selected = tuple(s for s in self.selected if s != site)
        else:
            selected = (*self.selected, site)
        return SiteSelection(sites=self.sites, selected=selected)

    def select_all(self) -> SiteSelection:
        return SiteSelection(sites=self.sites, selected=self.sites)

    def deselect_all(self) -> SiteSelection:
        return SiteSelection(sites=self.sites)

    @property
    def ordered(self) -> tuple[str, ...]:
        return self.selected

    def visible_results(self, snapshot: AnalysisSnapshot) -> list[SiteResult]:
        return [snapshot.site(site) for site in self.ordered]
