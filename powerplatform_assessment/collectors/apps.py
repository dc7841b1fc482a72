"""
Canvas App Collector
Enumerates: canvas apps per environment with component library, screen and usage data.
"""

from __future__ import annotations

import logging

from .base import BaseCollector
from .records import CanvasApp
from ..config import APPS_ENDPOINT, PROCESS_API_VERSION

logger = logging.getLogger("powerplatform_assessment.collectors.apps")


class AppCollector(BaseCollector):
    name = "apps"
    description = "Canvas apps, component libraries, screens, usage summary"
    session = "power_platform"

    def collect(self) -> list[CanvasApp]:
        apps: list[CanvasApp] = []
        for environment in self.list_environment_names():
            items = self.client.get_all_pages(
                APPS_ENDPOINT.format(environment=environment),
                params={"api-version": PROCESS_API_VERSION},
            )
            parsed = self.parse_records(items, CanvasApp.from_payload, environment_name=environment)
            logger.debug(f"{len(parsed)} canvas apps in environment {environment}")
            apps.extend(parsed)
        return apps
