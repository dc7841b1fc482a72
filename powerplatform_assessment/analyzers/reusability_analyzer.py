"""
Component Reusability Analyzer
Analyzes: canvas apps built without a shared component library.
"""

from __future__ import annotations

from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import CanvasApp


def check_component_library(app: CanvasApp) -> Optional[Finding]:
    if app.component_library_id:
        return None
    return Finding(
        area=Area.COMPONENT_REUSABILITY,
        issue="App without component library",
        risk=Risk.MEDIUM,
        impact="Screens and controls are rebuilt per app, so fixes and branding drift apart.",
        mitigation="Move shared controls into a component library and reference it from the app.",
        iso_control="A.8.25",
        cis_control="CIS 16.11",
        evidence=f"App '{app.display_name}' does not reference a component library.",
    )


class ReusabilityAnalyzer(BaseAnalyzer):
    name = "component_reusability"
    area = Area.COMPONENT_REUSABILITY
    sources = ("apps",)
    description = "Component library adoption"

    def _analyze(self, sources: dict[str, SourceResult]):
        apps = self.records_from(sources, "apps")
        if apps is not None:
            self.check_each(check_component_library, apps)
