"""
User & License Collector
Enumerates: users and their assigned license SKUs via Microsoft Graph.
"""

from __future__ import annotations

from .base import BaseCollector
from .records import LicensedUser
from ..config import USERS_ENDPOINT, GRAPH_PAGE_SIZE


class LicenseCollector(BaseCollector):
    name = "licenses"
    description = "Users and assigned licenses"
    session = "graph"

    def collect(self) -> list[LicensedUser]:
        items = self.client.get_all_pages(
            USERS_ENDPOINT,
            params={
                "$select": "id,userPrincipalName,assignedLicenses",
                "$top": str(GRAPH_PAGE_SIZE),
            },
            missing_ok=False,
        )
        return self.parse_records(items, LicensedUser.from_payload)
