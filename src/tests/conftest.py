import os
import tempfile
import uuid
from pathlib import Path

import pandas as pd
import pytest

_repo_root = Path(__file__).resolve().parents[2]
_test_cache_root = _repo_root / ".tmp" / "test-cache"
os.environ.setdefault("PROFILE_DIFFER_MPL_CACHE_DIR", str(_test_cache_root))

from profile_differ.db import Database  # noqa: E402
from profile_differ.types import ProfileRecord  # noqa: E402


@pytest.fixture
def temp_output_dir():
    """Create a temporary output directory for each test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def make_records(
    site: str, year: int, points: list[tuple[float, float]]
) -> list[ProfileRecord]:
    """Build profile records from (distAlong, elevation) pairs."""
    return [
        ProfileRecord(site=site, year=year, dist_along=float(d), elevation=float(e))
        for d, e in points
    ]


@pytest.fixture
def create_records():
    return make_records


@pytest.fixture
def aha_records():
    """The two-point AHA example: +1 m then -1 m over one metre."""
    return make_records("AHA", 2021, [(0, 10), (1, 12)]) + make_records(
        "AHA", 2024, [(0, 11), (1, 11)]
    )


def write_survey_csv(path: Path, rows: list[dict]) -> Path:
    pd.DataFrame(rows, columns=["site", "year", "distAlong", "elevation"]).to_csv(
        path, index=False
    )
    return path


@pytest.fixture
def survey_csv(temp_output_dir):
    """A small survey table with a fully surveyed site and a single-year site."""
    rows = []
    for d in range(0, 11):
        rows.append({"site": "AHA", "year": 2021, "distAlong": float(d), "elevation": 10.0})
        rows.append({"site": "AHA", "year": 2024, "distAlong": float(d), "elevation": 10.5})
    for d in range(0, 5):
        rows.append({"site": "MID", "year": 2021, "distAlong": d * 2.0, "elevation": 4.0})
    return write_survey_csv(temp_output_dir / "survey.csv", rows)


@pytest.fixture
def db():
    """In-memory job database."""
    database = Database(":memory:")
    database.initialise()
    yield database
    database.close()


@pytest.fixture
def test_job_id():
    """Generate a unique job ID for testing."""
    return str(uuid.uuid4())


@pytest.fixture
def create_survey_csv():
    return write_survey_csv
