"""Reporting package — HTML compliance report output."""

from .html_report import RenderError, ReportMetadata, export_html, render_html, report_filename

__all__ = [
    "RenderError",
    "ReportMetadata",
    "export_html",
    "render_html",
    "report_filename",
]
