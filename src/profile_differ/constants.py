"""Constants for survey years, matching precision and table columns."""

# Survey years compared by default (earlier, later)
DEFAULT_EARLY_YEAR = 2021
DEFAULT_LATE_YEAR = 2024

# Along-track distances are matched on this many decimal places (0.0005 m tolerance)
DEFAULT_DECIMALS = 3
MAX_DECIMALS = 9

# Required columns in the survey table
COLUMN_SITE = "site"
COLUMN_YEAR = "year"
COLUMN_DIST_ALONG = "distAlong"
COLUMN_ELEVATION = "elevation"
REQUIRED_COLUMNS = (COLUMN_SITE, COLUMN_YEAR, COLUMN_DIST_ALONG, COLUMN_ELEVATION)

TABLE_SUFFIXES = (".csv", ".txt", ".tsv")
