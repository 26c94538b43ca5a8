from pathlib import Path

import numpy as np
import pandas as pd

from profile_differ.constants import (
    COLUMN_DIST_ALONG,
    COLUMN_ELEVATION,
    COLUMN_SITE,
    COLUMN_YEAR,
    REQUIRED_COLUMNS,
    TABLE_SUFFIXES,
)
from profile_differ.types import ProfileRecord


class IngestError(ValueError):
    """Raised when a survey table cannot be turned into profile records."""


def _separator_for(path: Path) -> str | None:
    # None lets pandas sniff the delimiter for .txt exports
    match path.suffix.lower():
        case ".csv":
            return ","
        case ".tsv":
            return "\t"
        case _:
            return None


def _describe_rows(index: pd.Index, limit: int = 5) -> str:
    # +2: one for the header line, one for 1-based numbering
    rows = [str(int(i) + 2) for i in index[:limit]]
    more = f" (and {len(index) - limit} more)" if len(index) > limit else ""
    return ", ".join(rows) + more


def _numeric(column: pd.Series) -> pd.Series:
    # float64 so nullable extension dtypes still work with np.isfinite
    values = pd.to_numeric(column, errors="coerce")
    return pd.Series(values.to_numpy(dtype=float, na_value=np.nan), index=column.index)


def validate_table(table_path: str) -> None:
    """
    Validate a survey table before loading it.

    Args:
        table_path: Path to the delimited text file

    Raises:
        IngestError: If the file is missing, has the wrong suffix, or lacks required columns
    """
    file_path = Path(table_path)

    if not file_path.exists():
        raise IngestError("File does not exist")
    if not file_path.is_file():
        raise IngestError("File is not a file")
    if file_path.suffix.lower() not in TABLE_SUFFIXES:
        raise IngestError(
            f"File is not a delimited table (expected one of {', '.join(TABLE_SUFFIXES)})"
        )

    try:
        header = pd.read_csv(
            file_path, sep=_separator_for(file_path), engine="python", nrows=0
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise IngestError(f"Invalid survey table: {table_path} - {e}") from e

    columns = {str(c).strip() for c in header.columns}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise IngestError(f"Missing required columns: {', '.join(missing)}")


def records_from_frame(frame: pd.DataFrame) -> list[ProfileRecord]:
    """
    Convert a parsed survey table to profile records.

    Numeric columns are coerced; any row with a missing site, a non-integer year,
    a non-finite distance or elevation, or a negative distance is rejected.

    Raises:
        IngestError: naming the offending rows (1-based, counting the header)
    """
    frame = frame.rename(columns=lambda c: str(c).strip())
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise IngestError(f"Missing required columns: {', '.join(missing)}")

    site = frame[COLUMN_SITE].astype("string").str.strip()
    year = _numeric(frame[COLUMN_YEAR])
    dist_along = _numeric(frame[COLUMN_DIST_ALONG])
    elevation = _numeric(frame[COLUMN_ELEVATION])

    bad_site = site.isna() | (site == "")
    bad_year = ~np.isfinite(year) | (year != np.round(year))
    bad_dist = ~np.isfinite(dist_along) | (dist_along < 0)
    bad_elev = ~np.isfinite(elevation)

    for mask, label in (
        (bad_site, f"missing {COLUMN_SITE}"),
        (bad_year, f"non-integer {COLUMN_YEAR}"),
        (bad_dist, f"invalid {COLUMN_DIST_ALONG}"),
        (bad_elev, f"invalid {COLUMN_ELEVATION}"),
    ):
        bad_rows = frame.index[mask.fillna(True).to_numpy(dtype=bool)]
        if len(bad_rows):
            raise IngestError(f"Rows with {label}: {_describe_rows(bad_rows)}")

    return [
        ProfileRecord(site=str(s), year=int(y), dist_along=float(d), elevation=float(e))
        for s, y, d, e in zip(site, year, dist_along, elevation)
    ]


def read_records(table_path: str) -> list[ProfileRecord]:
    """
    Read a survey table into profile records.

    Returns:
        list[ProfileRecord]: one record per non-empty row, in file order
    """
    file_path = Path(table_path)
    try:
        frame = pd.read_csv(
            file_path,
            sep=_separator_for(file_path),
            engine="python",
            skip_blank_lines=True,
            dtype={COLUMN_SITE: "string"},
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise IngestError(f"Invalid survey table: {table_path} - {e}") from e
    return records_from_frame(frame)


def validate_record_data(
    records: list[ProfileRecord], *, early_year: int, late_year: int
) -> tuple[bool, str]:
    """
    Check that the records contain something to compare.

    Returns:
        Tuple of (is_valid, message).
    """
    if not records:
        return False, "no survey records"

    years = {record.year for record in records}
    in_survey = sum(1 for record in records if record.year in (early_year, late_year))
    if in_survey == 0:
        found = ", ".join(str(y) for y in sorted(years))
        return (
            False,
            f"no records for survey years {early_year} or {late_year} (found {found})",
        )

    sites = {record.site for record in records}
    return True, f"{in_survey} of {len(records)} records across {len(sites)} sites"
