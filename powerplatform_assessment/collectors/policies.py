"""
DLP Policy Collector
Enumerates: tenant and environment data-loss-prevention policies with their connector groups.
"""

from __future__ import annotations

import logging

from .base import BaseCollector
from .records import DlpPolicy
from ..config import DLP_POLICIES_ENDPOINT

logger = logging.getLogger("powerplatform_assessment.collectors.policies")


class PolicyCollector(BaseCollector):
    name = "policies"
    description = "DLP policies and their Business / Non-Business / Blocked connector groups"
    session = "power_platform"

    def collect(self) -> list[DlpPolicy]:
        items = self.client.get_all_pages(DLP_POLICIES_ENDPOINT, missing_ok=False)
        policies = self.parse_records(items, DlpPolicy.from_payload)
        logger.debug(f"{len(policies)} DLP policies parsed from {len(items)} payloads")
        return policies
