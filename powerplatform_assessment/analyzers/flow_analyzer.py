"""
Flow Optimization Analyzer
Analyzes: high-volume flows that stopped running, custom connector usage.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import Flow


def check_unused_flow(
    flow: Flow,
    now: datetime,
    run_threshold: int = 1000,
    stale_days: int = 30,
) -> Optional[Finding]:
    """Heavy run history but nothing in the last stale_days relative to now."""
    if flow.run_count is None or flow.last_run is None:
        return None
    if not (flow.run_count > run_threshold and flow.last_run < now - timedelta(days=stale_days)):
        return None
    return Finding(
        area=Area.FLOW_OPTIMIZATION,
        issue="Unused flow with large run history",
        risk=Risk.MEDIUM,
        impact="Abandoned flows keep their connections and permissions alive and clutter monitoring.",
        mitigation="Confirm the flow owner, then turn the flow off or delete it.",
        iso_control="A.8.6",
        cis_control="CIS 2.1",
        evidence=(
            f"Flow '{flow.display_name}' has {flow.run_count} runs; "
            f"last run {flow.last_run:%Y-%m-%d}."
        ),
    )


def check_custom_connector(flow: Flow, marker: str = "custom") -> Optional[Finding]:
    match = next(
        (ref for ref in flow.connector_references if marker.lower() in ref.lower()),
        None,
    )
    if match is None:
        return None
    return Finding(
        area=Area.FLOW_OPTIMIZATION,
        issue="Flow uses a custom connector",
        risk=Risk.HIGH,
        impact="Custom connectors call arbitrary endpoints that DLP classification may not cover.",
        mitigation="Review the connector's endpoint and authentication and classify it in DLP.",
        iso_control="A.8.26",
        cis_control="CIS 16.4",
        evidence=f"Flow '{flow.display_name}' references connector '{match}'.",
    )


class FlowAnalyzer(BaseAnalyzer):
    name = "flow_optimization"
    area = Area.FLOW_OPTIMIZATION
    sources = ("flows",)
    description = "Flow activity and connector usage"

    def _analyze(self, sources: dict[str, SourceResult]):
        flows = self.records_from(sources, "flows")
        if flows is None:
            return
        self.check_each(
            check_unused_flow,
            flows,
            now=self.now,
            run_threshold=self.config.flow_run_threshold,
            stale_days=self.config.flow_stale_days,
        )
        self.check_each(check_custom_connector, flows, marker=self.config.custom_connector_marker)
