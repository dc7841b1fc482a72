"""
Tenant Settings Collector
Reads the Power Platform tenant governance settings (audit logging flag).
"""

from __future__ import annotations

from .base import BaseCollector
from .records import TenantSettings
from ..api.client import raise_if_not_found
from ..config import TENANT_SETTINGS_ENDPOINT, BAP_API_VERSION


class TenantSettingsCollector(BaseCollector):
    name = "tenant_settings"
    description = "Tenant-wide governance settings"
    session = "power_platform"

    def collect(self) -> list[TenantSettings]:
        # listtenantsettings is a read-only query exposed as POST
        data = self.client.post(
            TENANT_SETTINGS_ENDPOINT,
            json_body={},
            params={"api-version": BAP_API_VERSION},
        )
        raise_if_not_found(data, TENANT_SETTINGS_ENDPOINT)
        return [TenantSettings.from_payload(data)]
