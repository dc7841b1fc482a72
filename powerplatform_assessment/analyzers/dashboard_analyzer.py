"""
Dashboard & Analytics Analyzer
Analyzes: unlabelled Power BI workspaces, empty workspaces.
"""

from __future__ import annotations

from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import Workspace


def check_sensitivity_label(ws: Workspace) -> Optional[Finding]:
    if ws.sensitivity_label:
        return None
    return Finding(
        area=Area.DASHBOARD_ANALYTICS,
        issue="Workspace without sensitivity label",
        risk=Risk.MEDIUM,
        impact="Content is not classified, so label-based protection and DLP do not apply.",
        mitigation="Apply a sensitivity label to the workspace and its content.",
        iso_control="A.5.13",
        cis_control="CIS 3.7",
        evidence=f"Workspace '{ws.name}' has no sensitivity label.",
    )


def check_empty_workspace(ws: Workspace) -> Optional[Finding]:
    if ws.report_count is None or ws.dashboard_count is None:
        return None
    if ws.report_count != 0 or ws.dashboard_count != 0:
        return None
    return Finding(
        area=Area.DASHBOARD_ANALYTICS,
        issue="Empty workspace",
        risk=Risk.LOW,
        impact="Unused workspaces keep access grants alive and clutter the tenant.",
        mitigation="Confirm the workspace is no longer needed and remove it.",
        iso_control="A.5.9",
        cis_control="CIS 3.2",
        evidence=f"Workspace '{ws.name}' contains 0 reports and 0 dashboards.",
    )


class DashboardAnalyzer(BaseAnalyzer):
    name = "dashboard_analytics"
    area = Area.DASHBOARD_ANALYTICS
    sources = ("workspaces",)
    description = "Power BI workspace classification and usage"

    def _analyze(self, sources: dict[str, SourceResult]):
        workspaces = self.records_from(sources, "workspaces")
        if workspaces is None:
            return
        self.check_each(check_sensitivity_label, workspaces)
        self.check_each(check_empty_workspace, workspaces)
