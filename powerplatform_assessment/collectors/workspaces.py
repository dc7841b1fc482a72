"""
Power BI Workspace Collector
Enumerates: shared workspaces, sensitivity labels, report and dashboard counts.
"""

from __future__ import annotations

import dataclasses
import logging

from .base import BaseCollector, PartialDataError
from .records import Workspace
from ..api.client import raise_if_not_found
from ..config import WORKSPACES_ENDPOINT, POWERBI_PAGE_SIZE

logger = logging.getLogger("powerplatform_assessment.collectors.workspaces")


class WorkspaceCollector(BaseCollector):
    name = "workspaces"
    description = "Power BI workspaces, sensitivity labels, reports and dashboards"
    session = "power_bi"

    def collect(self) -> list[Workspace]:
        items = self._list_workspaces()
        workspaces = self.parse_records(items, Workspace.from_payload)
        return [self._with_content_counts(ws) for ws in workspaces]

    def _list_workspaces(self) -> list[dict]:
        """The admin groups API pages with $top/$skip rather than a nextLink."""
        items: list[dict] = []
        skip = 0
        while True:
            data = self.client.get(
                WORKSPACES_ENDPOINT,
                params={
                    "$top": str(POWERBI_PAGE_SIZE),
                    "$skip": str(skip),
                    "$filter": "type eq 'Workspace'",
                },
            )
            if skip == 0:
                raise_if_not_found(data, WORKSPACES_ENDPOINT)
            page = data.get("value", [])
            items.extend(page)
            if len(page) < POWERBI_PAGE_SIZE:
                logger.debug(f"{len(items)} workspaces listed")
                return items
            skip += POWERBI_PAGE_SIZE

    def _with_content_counts(self, ws: Workspace) -> Workspace:
        """Count reports and dashboards; a failed lookup leaves its count None."""
        updates = {}
        for field_name, kind in (("report_count", "reports"), ("dashboard_count", "dashboards")):
            try:
                content = self.sub_query(
                    f"{kind.title()} for {ws.name}",
                    f"{WORKSPACES_ENDPOINT}/{ws.id}/{kind}",
                )
                updates[field_name] = len(content)
            except PartialDataError as e:
                self.add_partial(ws.name, e)
        return dataclasses.replace(ws, **updates)
