import sys
import uuid
from argparse import ArgumentParser
from pathlib import Path

from profile_differ.constants import (
    DEFAULT_DECIMALS,
    DEFAULT_EARLY_YEAR,
    DEFAULT_LATE_YEAR,
)
from profile_differ.db import Database
from profile_differ.pipeline import run_pipeline
from profile_differ.pipeline.types import ProcessingConfig
from profile_differ.report import format_integral

DEFAULT_DB_PATH = "profile_differ.db"


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="profile-differ",
        description="Compare repeat elevation survey profiles between two years",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a profile differencing job")
    run.add_argument("--input", required=True, help="Survey table (CSV with site, year, distAlong, elevation)")
    run.add_argument("--out", required=True, help="Output directory")
    run.add_argument("--early-year", type=int, default=DEFAULT_EARLY_YEAR, help="Earlier survey year")
    run.add_argument("--late-year", type=int, default=DEFAULT_LATE_YEAR, help="Later survey year")
    run.add_argument(
        "--decimals",
        type=int,
        default=DEFAULT_DECIMALS,
        help="Decimal places used to match distances between years",
    )
    run.add_argument("--sites", help="Comma separated sites to chart (default: all)")
    run.add_argument("--no-report", action="store_true", help="Skip charts and HTML report")
    run.add_argument("--no-series", action="store_true", help="Skip per-site CSV series")
    run.add_argument("--job-id", help="Job identifier (default: random UUID)")
    run.add_argument("--db", default=DEFAULT_DB_PATH, help="Job database path")

    status = subparsers.add_parser("status", help="Check job status")
    status.add_argument("job_id")
    status.add_argument("--db", default=DEFAULT_DB_PATH, help="Job database path")

    return parser


def parse_sites(raw: str | None) -> tuple[str, ...] | None:
    if raw is None:
        return None
    sites = tuple(dict.fromkeys(p.strip() for p in raw.split(",") if p.strip()))
    if not sites:
        raise ValueError("Invalid --sites; expected a comma separated list of site names")
    return sites


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    db = Database(args.db)
    db.initialise()
    try:
        match args.command:
            case "run":
                try:
                    sites = parse_sites(args.sites)
                except ValueError as e:
                    parser.error(str(e))

                config = ProcessingConfig(
                    early_year=args.early_year,
                    late_year=args.late_year,
                    decimals=args.decimals,
                    sites=sites,
                    generate_report=not args.no_report,
                    write_series=not args.no_series,
                )
                job_id = args.job_id or str(uuid.uuid4())
                db.create_job(job_id)

                try:
                    result = run_pipeline(
                        db, job_id, Path(args.input), Path(args.out), config
                    )
                except ValueError as e:
                    print(f"Error: {e}", file=sys.stderr)
                    return 1

                if result.deferred_output:
                    print(result.deferred_output)

                print(f"Job {job_id} completed")
                for site_result in result.snapshot:
                    print(
                        f"  {site_result.site}: {site_result.n_matched} matched points, "
                        f"net change {format_integral(site_result.net_change)}"
                    )
                if config.write_series:
                    print(f"Wrote series to {result.series_dir}")
                print(f"Wrote reports to {result.reports_dir}")
                return 0
            case "status":
                status = db.get_job_status(args.job_id)
                if status is None:
                    print(f"Job {args.job_id} not found")
                    return 1
                print(f"Job {args.job_id}: {status}")
                for site, n_matched, net_change in db.get_site_summaries(args.job_id):
                    print(
                        f"  {site}: {n_matched} matched points, "
                        f"net change {format_integral(net_change)}"
                    )
                return 0
            case _:
                print("Invalid command")
                parser.print_help()
                return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
