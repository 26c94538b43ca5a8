from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape


@dataclass
class ProcessingInfo:
    input_name: str
    early_year: int
    late_year: int
    decimals: int
    tolerance: float
    n_records: int
    n_sites: int


@dataclass
class SiteSummary:
    site: str
    n_early: int
    n_late: int
    n_matched: int
    n_unmatched: int
    net_change: float
    mean_difference: float | None = None
    min_difference: float | None = None
    max_difference: float | None = None
    span: float | None = None
    selected: bool = True


@dataclass
class ReportImage:
    filename: str
    title: str
    description: str = ""


@dataclass
class ReportData:
    job_id: str
    generated_at: datetime
    version: str
    processing: ProcessingInfo
    sites: list[SiteSummary] = field(default_factory=list)
    images: list[ReportImage] = field(default_factory=list)


def format_distance(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f} m"


def format_difference(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.3f} m"


def format_integral(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.3f} m²"


def _environment() -> Environment:
    env = Environment(
        loader=PackageLoader("profile_differ", "templates"),
        autoescape=select_autoescape(["html"]),
    )
    env.filters["distance"] = format_distance
    env.filters["difference"] = format_difference
    env.filters["integral"] = format_integral
    return env


def render_report(data: ReportData, output_dir: Path) -> Path:
    """Render the HTML report using Jinja2 templates."""
    template = _environment().get_template("report.html")
    html = template.render(
        job_id=data.job_id,
        generated_at=data.generated_at.strftime("%Y-%m-%d %H:%M:%S"),
        version=data.version,
        processing=data.processing,
        sites=data.sites,
        images=data.images,
    )

    report_path = output_dir / "report.html"
    report_path.write_text(html, encoding="utf-8")
    return report_path
