"""
Read-only guard for every outbound admin API request.

A request is refused before it is sent when it would change tenant state,
or when it targets a host that should never receive an admin bearer token.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger("powerplatform_assessment.safety")

READ_METHODS = {"GET", "HEAD", "OPTIONS"}
WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

# Admin APIs that expose list queries as POST
READ_ONLY_POSTS = [
    re.compile(r"/Microsoft\.BusinessAppPlatform/listtenantsettings$", re.IGNORECASE),
    re.compile(r"/\$batch$"),
]

# Mutating actions, refused whatever the method
BLOCKED_ACTIONS = [
    re.compile(rf"/{action}$", re.IGNORECASE)
    for action in (
        "validateDelete",
        "modifyAppOwner",
        "modifyPermissions",
        "setPermissions",
        "stop",
        "start",
        "enable",
        "disable",
        "restore",
        "recover",
        "quarantine",
        "unquarantine",
        "updatetenantsettings",
        "AssignToCapacity",
        "assignLicense",
    )
]

ADMIN_HOSTS = {
    "api.bap.microsoft.com",
    "api.powerapps.com",
    "api.flow.microsoft.com",
    "api.powerbi.com",
    "graph.microsoft.com",
}
# Dataverse instances: <org>.crm.dynamics.com, <org>.crm4.dynamics.com, ...
DATAVERSE_HOST = re.compile(r"^[a-z0-9-]+\.crm\d*\.dynamics\.com$", re.IGNORECASE)


class SafetyViolation(Exception):
    """Raised when a request would not be read-only."""
    pass


@dataclass
class Violation:
    method: str
    url: str
    reason: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def is_admin_host(host: Optional[str]) -> bool:
    if not host:
        return False
    host = host.lower()
    return host in ADMIN_HOSTS or bool(DATAVERSE_HOST.match(host))


def refusal_reason(method: str, url: str) -> Optional[str]:
    """Why a request must not be sent, or None when it is read-only."""
    parts = urlsplit(url)
    if parts.scheme != "https":
        return "Non-HTTPS request"
    if not is_admin_host(parts.hostname):
        return f"Host {parts.hostname} is not a Power Platform admin endpoint"
    if any(pattern.search(parts.path) for pattern in BLOCKED_ACTIONS):
        return "Blocked write action"
    if method in READ_METHODS:
        return None
    if method == "POST" and any(pattern.search(parts.path) for pattern in READ_ONLY_POSTS):
        return None
    if method in WRITE_METHODS:
        return "Write HTTP method"
    return "Unsupported HTTP method"


class SafetyGuardian:
    """Checks requests and keeps an audit trail of refusals for the run."""

    def __init__(self):
        self.violations: list[Violation] = []
        self.checks_performed = 0
        self.started_at = datetime.now(timezone.utc).isoformat()

    def validate_request(self, method: str, url: str) -> bool:
        """Return True for a read-only request; raise SafetyViolation otherwise."""
        self.checks_performed += 1
        method = method.upper()
        reason = refusal_reason(method, url)
        if reason is None:
            return True

        self.violations.append(Violation(method, url, reason))
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")
        raise SafetyViolation(f"Refused {method} {url}: {reason}")

    def get_audit_record(self) -> dict:
        return {
            "mode": "READ-ONLY",
            "started_at": self.started_at,
            "checks_performed": self.checks_performed,
            "violations_detected": len(self.violations),
            "violations": [asdict(v) for v in self.violations],
            "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
        }

    @staticmethod
    def print_banner():
        print("=" * 75)
        print("  READ-ONLY POWER PLATFORM ASSESSMENT -- NO CHANGES WILL BE MADE")
        print("  * Admin APIs are read with GET and read-only list queries only")
        print("  * Environments, DLP policies, flows, apps and workspaces are untouched")
        print("  * Tokens are only sent to Power Platform, Power BI, Graph and Dataverse")
        print("=" * 75)
