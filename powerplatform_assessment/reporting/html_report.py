"""
HTML Compliance Report — single-file HTML output.

Renders the consolidated findings through a Jinja2 template with inline CSS.
All record-derived text is escaped by the template environment, so evidence
strings such as connector or app names cannot inject markup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from ..analyzers.base import Area, Finding
from ..config import REPORT_PREFIX, REPORT_TIMESTAMP_FORMAT

logger = logging.getLogger("powerplatform_assessment.reporting")

TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "compliance_report.html.j2"

REPORT_DATE_FORMAT = "%Y-%m-%d %H:%M"


class RenderError(Exception):
    """The report could not be rendered or written to disk."""
    pass


@dataclass
class ReportMetadata:
    generated_at: datetime
    tenant_id: str
    # collector name -> "available" or the reason it was unavailable
    source_status: dict[str, str] = field(default_factory=dict)

    @property
    def report_date(self) -> str:
        return self.generated_at.strftime(REPORT_DATE_FORMAT)


def report_filename(generated_at: datetime) -> str:
    return f"{REPORT_PREFIX}_{generated_at.strftime(REPORT_TIMESTAMP_FORMAT)}.html"


def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "html.j2"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_html(
    findings: Sequence[Finding],
    summary_counts: Mapping[Area, int],
    metadata: ReportMetadata,
) -> str:
    """Render the report document. Raises RenderError on template failures."""
    try:
        template = _environment().get_template(TEMPLATE_NAME)
        return template.render(
            findings=list(findings),
            summary_counts=list(summary_counts.items()),
            total_findings=len(findings),
            report_date=metadata.report_date,
            tenant_id=metadata.tenant_id,
            source_status=sorted(metadata.source_status.items()),
        )
    except TemplateError as e:
        raise RenderError(f"Template {TEMPLATE_NAME} failed to render: {e}") from e


def export_html(
    findings: Sequence[Finding],
    summary_counts: Mapping[Area, int],
    metadata: ReportMetadata,
    output_dir: Path,
) -> Path:
    """
    Generate the HTML compliance report.

    Returns the Path to the written file.
    """
    content = render_html(findings, summary_counts, metadata)

    output_dir = Path(output_dir)
    filepath = output_dir / report_filename(metadata.generated_at)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        filepath.write_text(content, encoding="utf-8")
    except OSError as e:
        raise RenderError(f"Could not write report to {filepath}: {e}") from e

    logger.info(f"Report written to {filepath}")
    return filepath
