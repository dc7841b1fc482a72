"""
Flow Collector
Enumerates: cloud flows per environment, their connector references, and run history.
"""

from __future__ import annotations

import dataclasses
import logging

from .base import BaseCollector, PartialDataError
from .records import Flow, parse_timestamp
from ..config import FLOWS_ENDPOINT, FLOW_RUNS_ENDPOINT, PROCESS_API_VERSION

logger = logging.getLogger("powerplatform_assessment.collectors.flows")


class FlowCollector(BaseCollector):
    name = "flows"
    description = "Cloud flows, connector references, run history"
    session = "power_platform"

    def collect(self) -> list[Flow]:
        flows: list[Flow] = []
        for environment in self.list_environment_names():
            items = self.client.get_all_pages(
                FLOWS_ENDPOINT.format(environment=environment),
                params={"api-version": PROCESS_API_VERSION},
            )
            parsed = self.parse_records(items, Flow.from_payload, environment_name=environment)
            logger.debug(f"{len(parsed)} flows in environment {environment}")
            for flow in parsed:
                flows.append(self._with_run_history(flow))
        return flows

    def _with_run_history(self, flow: Flow) -> Flow:
        """Attach run count and last run time; a failed lookup leaves both None."""
        try:
            runs = self.sub_query(
                f"Run history for {flow.display_name}",
                FLOW_RUNS_ENDPOINT.format(environment=flow.environment_name, flow=flow.name),
                params={"api-version": PROCESS_API_VERSION, "$top": "250"},
                max_pages=self.config.max_flow_run_pages,
            )
        except PartialDataError as e:
            self.add_partial(flow.display_name, e)
            return flow

        started = [
            parse_timestamp((run.get("properties") or {}).get("startTime"))
            for run in runs
        ]
        started = [ts for ts in started if ts is not None]
        return dataclasses.replace(
            flow,
            run_count=len(runs),
            last_run=max(started) if started else None,
        )
