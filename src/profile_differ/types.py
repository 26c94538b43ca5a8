from dataclasses import dataclass


@dataclass(frozen=True)
class ProfileRecord:
    site: str
    year: int
    dist_along: float  # metres along the transect
    elevation: float


type Profile = tuple[ProfileRecord, ...]


@dataclass(frozen=True)
class MatchedPoint:
    dist_along: float
    elev_early: float | None = None
    elev_late: float | None = None
    diff: float | None = None  # set only when both elevations are present

    @property
    def is_matched(self) -> bool:
        return self.elev_early is not None and self.elev_late is not None


@dataclass(frozen=True)
class DifferencePoint:
    dist_along: float
    difference: float


@dataclass(frozen=True)
class IntegralPoint:
    dist_along: float
    integral: float
