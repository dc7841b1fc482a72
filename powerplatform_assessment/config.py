"""
Configuration module for the Power Platform Compliance Assessment.
Defines API endpoints, rule thresholds, and operational settings.
"""

from __future__ import annotations

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

# Well-known public client used by the Power Platform admin PowerShell modules.
DEFAULT_PUBLIC_CLIENT_ID = "1950a258-227b-4e31-a9cf-717495945fc2"
DEFAULT_AUTHORITY_TENANT = "organizations"

# Shown in the report header when the tenant id cannot be resolved.
FALLBACK_TENANT_ID = "Unknown Tenant"

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Falls back to PPA_CERT_PASSWORD, then a prompt

@dataclass
class DelegatedAuth:
    """Delegated (interactive device-code) authentication configuration."""
    tenant_id: str = DEFAULT_AUTHORITY_TENANT
    client_id: str = DEFAULT_PUBLIC_CLIENT_ID

@dataclass
class AuthConfig:
    """Authentication configuration — supports both modes."""
    mode: str = "delegated"  # "delegated" or "certificate"
    certificate: Optional[CertificateAuth] = None
    delegated: DelegatedAuth = field(default_factory=DelegatedAuth)


# ─── Admin API Endpoints ─────────────────────────────────────────────────────

BAP_BASE_URL = "https://api.bap.microsoft.com"
BAP_API_VERSION = "2021-04-01"
POWERAPPS_BASE_URL = "https://api.powerapps.com"
FLOW_BASE_URL = "https://api.flow.microsoft.com"
PROCESS_API_VERSION = "2016-11-01"
POWERBI_BASE_URL = "https://api.powerbi.com/v1.0/myorg"
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DATAVERSE_API_PATH = "api/data/v9.2"

ENVIRONMENTS_ENDPOINT = (
    f"{BAP_BASE_URL}/providers/Microsoft.BusinessAppPlatform/scopes/admin/environments"
)
DLP_POLICIES_ENDPOINT = f"{BAP_BASE_URL}/providers/PowerPlatform.Governance/v2/policies"
TENANT_SETTINGS_ENDPOINT = (
    f"{BAP_BASE_URL}/providers/Microsoft.BusinessAppPlatform/listtenantsettings"
)
FLOWS_ENDPOINT = (
    f"{FLOW_BASE_URL}/providers/Microsoft.ProcessSimple/scopes/admin/environments/{{environment}}/v2/flows"
)
FLOW_RUNS_ENDPOINT = (
    f"{FLOW_BASE_URL}/providers/Microsoft.ProcessSimple/scopes/admin/environments/{{environment}}/flows/{{flow}}/runs"
)
APPS_ENDPOINT = (
    f"{POWERAPPS_BASE_URL}/providers/Microsoft.PowerApps/scopes/admin/environments/{{environment}}/apps"
)
WORKSPACES_ENDPOINT = f"{POWERBI_BASE_URL}/admin/groups"
USERS_ENDPOINT = f"{GRAPH_BASE_URL}/users"
ORGANIZATION_ENDPOINT = f"{GRAPH_BASE_URL}/organization"

# Token audience per API host. Dataverse instances derive https://<host>/.default.
RESOURCE_SCOPES = {
    "api.bap.microsoft.com": "https://service.powerapps.com/.default",
    "api.powerapps.com": "https://service.powerapps.com/.default",
    "api.flow.microsoft.com": "https://service.flow.microsoft.com/.default",
    "api.powerbi.com": "https://analysis.windows.net/powerbi/api/.default",
    "graph.microsoft.com": "https://graph.microsoft.com/.default",
}

# The scope probed to decide whether each session is established.
SESSION_SCOPES = {
    "power_platform": RESOURCE_SCOPES["api.bap.microsoft.com"],
    "power_bi": RESOURCE_SCOPES["api.powerbi.com"],
    "graph": RESOURCE_SCOPES["graph.microsoft.com"],
}

# Rate limiting / throttling
MAX_RETRIES = 4                   # Retry count for throttled requests
INITIAL_BACKOFF_SECONDS = 2.0     # First retry delay
MAX_BACKOFF_SECONDS = 60.0        # Cap on exponential backoff
BACKOFF_MULTIPLIER = 2.0          # Exponential factor
REQUEST_TIMEOUT_SECONDS = 60.0
CONNECT_TIMEOUT_SECONDS = 30.0

# Pagination
MAX_PAGES_PER_ENDPOINT = 200      # Safety cap on pagination loops
POWERBI_PAGE_SIZE = 5000          # Admin API requires $top
GRAPH_PAGE_SIZE = 999


# ─── Collection & Rule Settings ─────────────────────────────────────────────

# Premium per-user plans checked by the licensing rule.
POWERAPPS_PER_USER_SKU = "b30411f5-fea1-4a59-9ad9-3db7c7ead579"
FLOW_PER_USER_SKU = "bc946dac-7877-4271-b2f7-99d2db13cd2c"

@dataclass
class CollectionConfig:
    """Controls for data collection and rule thresholds."""
    max_entities: int = 100                # Dataverse custom tables above this are flagged
    flow_run_threshold: int = 1000         # Run history above this ...
    flow_stale_days: int = 30              # ... with no run in this many days = unused
    custom_connector_marker: str = "custom"
    max_app_screens: int = 100
    max_app_runs: int = 10000
    premium_license_skus: tuple[str, ...] = (
        POWERAPPS_PER_USER_SKU,
        FLOW_PER_USER_SKU,
    )
    system_solutions: tuple[str, ...] = ("Default", "Active", "Basic")
    max_flow_run_pages: int = 20           # Run history is paged 250 at a time


# ─── Output Configuration ───────────────────────────────────────────────────

REPORT_PREFIX = "PowerPlatform_Compliance_Report"
REPORT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M"

@dataclass
class OutputConfig:
    """Output directory settings."""
    base_dir: str = ""

    @property
    def report_dir(self) -> Path:
        return Path(self.base_dir) if self.base_dir else Path.cwd()


# ─── Master Configuration ───────────────────────────────────────────────────

CONFIG_FILE_NAME = "assessment_config.json"

@dataclass
class AssessmentConfig:
    """Top-level configuration for the assessment run."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    collection: CollectionConfig = field(default_factory=CollectionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    tenant_id: str = ""           # Report fallback when Graph is unavailable
    verbose: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "AssessmentConfig":
        """Load configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        config = cls()
        config.tenant_id = data.get("tenant_id", "")
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "delegated")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                )
            if "delegated" in auth_data:
                d = auth_data["delegated"]
                config.auth.delegated = DelegatedAuth(
                    tenant_id=d.get("tenant_id", DEFAULT_AUTHORITY_TENANT),
                    client_id=d.get("client_id", DEFAULT_PUBLIC_CLIENT_ID),
                )
        if "collection" in data:
            for k, v in data["collection"].items():
                if hasattr(config.collection, k):
                    if isinstance(v, list):
                        v = tuple(v)
                    setattr(config.collection, k, v)
        if "output" in data:
            for k, v in data["output"].items():
                if hasattr(config.output, k):
                    setattr(config.output, k, v)
        config.verbose = data.get("verbose", False)
        return config

    def apply_environment(self, environ: Optional[dict] = None) -> "AssessmentConfig":
        """Fill tenant and client ids from PPA_* environment variables."""
        environ = os.environ if environ is None else environ
        tenant_id = environ.get("PPA_TENANT_ID", "")
        client_id = environ.get("PPA_CLIENT_ID", "")
        if tenant_id:
            self.tenant_id = tenant_id
            self.auth.delegated.tenant_id = tenant_id
        if client_id:
            self.auth.delegated.client_id = client_id
        if self.auth.certificate and not self.auth.certificate.certificate_password:
            self.auth.certificate.certificate_password = environ.get("PPA_CERT_PASSWORD", "")
        return self


def load_config(path: Optional[Path] = None, script_dir: Optional[Path] = None) -> AssessmentConfig:
    """
    Resolve configuration: explicit file, then assessment_config.json beside
    the invoking script, then defaults. Environment variables apply last.
    """
    if path is None and script_dir is not None:
        candidate = Path(script_dir) / CONFIG_FILE_NAME
        if candidate.exists():
            path = candidate
    config = AssessmentConfig.from_file(path) if path else AssessmentConfig()
    if script_dir is not None and not config.output.base_dir:
        config.output.base_dir = str(script_dir)
    return config.apply_environment()


# ─── Required Delegated Roles (Least Privilege, Read-Only) ────────────────

# Role each session needs, shown when its sign-in fails.
REQUIRED_ROLES = {
    "power_platform": "Power Platform Administrator",
    "power_bi": "Fabric Administrator",
    "graph": "Global Reader",
}
