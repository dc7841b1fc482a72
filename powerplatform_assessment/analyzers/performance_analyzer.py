"""
Application Performance Analyzer
Analyzes: oversized canvas apps, heavily used apps.
"""

from __future__ import annotations

from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import CanvasApp


def check_screen_count(app: CanvasApp, max_screens: int = 100) -> Optional[Finding]:
    if app.screen_count is None or not app.screen_count > max_screens:
        return None
    return Finding(
        area=Area.APPLICATION_PERFORMANCE,
        issue="App with excessive screens",
        risk=Risk.MEDIUM,
        impact="Large apps load slowly and are hard to maintain and test.",
        mitigation="Split the app by business process or move logic into components.",
        iso_control="A.8.27",
        cis_control="CIS 16.1",
        evidence=f"App '{app.display_name}' has {app.screen_count} screens (threshold {max_screens}).",
    )


def check_usage_volume(app: CanvasApp, max_runs: int = 10000) -> Optional[Finding]:
    if app.total_runs is None or not app.total_runs > max_runs:
        return None
    return Finding(
        area=Area.APPLICATION_PERFORMANCE,
        issue="App with high usage volume",
        risk=Risk.MEDIUM,
        impact="Heavy usage can hit API request limits and degrade response times.",
        mitigation="Review delegation, caching and request capacity for the app.",
        iso_control="A.8.6",
        cis_control="CIS 16.12",
        evidence=f"App '{app.display_name}' recorded {app.total_runs} total runs (threshold {max_runs}).",
    )


class PerformanceAnalyzer(BaseAnalyzer):
    name = "application_performance"
    area = Area.APPLICATION_PERFORMANCE
    sources = ("apps",)
    description = "App size and usage volume"

    def _analyze(self, sources: dict[str, SourceResult]):
        apps = self.records_from(sources, "apps")
        if apps is None:
            return
        self.check_each(check_screen_count, apps, max_screens=self.config.max_app_screens)
        self.check_each(check_usage_volume, apps, max_runs=self.config.max_app_runs)
