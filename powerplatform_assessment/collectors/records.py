"""
Typed records for each data source.

Admin API payloads are loosely shaped; every record is validated here, at the
collector boundary, so analyzers only ever see named fields. Optional values
the API does not return (or a sub-query could not resolve) are None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .base import PartialDataError

# DLP connector group classifications
BUSINESS_GROUP = "Confidential"
NON_BUSINESS_GROUP = "General"
BLOCKED_GROUP = "Blocked"

# Location of the audit flag inside listtenantsettings
AUDIT_SETTING_PATH = ("powerPlatform", "governance", "enableAuditLogging")

_FRACTION = re.compile(r"\.(\d{6})\d+")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 API timestamp into an aware UTC datetime."""
    if not value or not isinstance(value, str):
        return None
    text = _FRACTION.sub(r".\1", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _require(item: dict, key: str, kind: str) -> str:
    value = item.get(key)
    if not value:
        raise PartialDataError(f"{kind} payload without '{key}': {str(item)[:120]}")
    return str(value)


@dataclass(frozen=True)
class DlpPolicy:
    name: str
    display_name: str
    business_connectors: tuple[str, ...] = ()
    non_business_connectors: tuple[str, ...] = ()
    blocked_connectors: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, item: dict) -> "DlpPolicy":
        name = _require(item, "name", "DLP policy")
        groups: dict[str, tuple[str, ...]] = {}
        for group in item.get("connectorGroups") or []:
            connectors = tuple(
                c.get("name") or c.get("id", "")
                for c in group.get("connectors") or []
            )
            groups[group.get("classification", "")] = connectors
        return cls(
            name=name,
            display_name=item.get("displayName") or name,
            business_connectors=groups.get(BUSINESS_GROUP, ()),
            non_business_connectors=groups.get(NON_BUSINESS_GROUP, ()),
            blocked_connectors=groups.get(BLOCKED_GROUP, ()),
        )


@dataclass(frozen=True)
class TenantSettings:
    audit_log_enabled: Optional[bool] = None

    @classmethod
    def from_payload(cls, item: dict) -> "TenantSettings":
        current: Any = item
        for key in AUDIT_SETTING_PATH:
            current = current.get(key) if isinstance(current, dict) else None
        return cls(audit_log_enabled=current if isinstance(current, bool) else None)


@dataclass(frozen=True)
class Environment:
    name: str
    display_name: str
    environment_type: Optional[str] = None
    instance_url: Optional[str] = None
    solution_count: Optional[int] = None
    entity_count: Optional[int] = None

    @property
    def is_dataverse(self) -> bool:
        return bool(self.instance_url)

    @classmethod
    def from_payload(cls, item: dict) -> "Environment":
        name = _require(item, "name", "Environment")
        props = item.get("properties") or {}
        env_type = props.get("environmentSku")
        if not env_type and props.get("isDefault"):
            env_type = "Default"
        linked = props.get("linkedEnvironmentMetadata") or {}
        return cls(
            name=name,
            display_name=props.get("displayName") or name,
            environment_type=env_type,
            instance_url=linked.get("instanceUrl") or None,
        )


@dataclass(frozen=True)
class Flow:
    name: str
    display_name: str
    environment_name: str
    run_count: Optional[int] = None
    last_run: Optional[datetime] = None
    connector_references: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, item: dict, environment_name: str) -> "Flow":
        name = _require(item, "name", "Flow")
        props = item.get("properties") or {}
        references: list[str] = []
        for key, ref in (props.get("connectionReferences") or {}).items():
            for label in (key, (ref or {}).get("displayName")):
                if label and label not in references:
                    references.append(label)
        return cls(
            name=name,
            display_name=props.get("displayName") or name,
            environment_name=environment_name,
            connector_references=tuple(references),
        )


@dataclass(frozen=True)
class CanvasApp:
    name: str
    display_name: str
    environment_name: str
    component_library_id: Optional[str] = None
    screen_count: Optional[int] = None
    total_runs: Optional[int] = None

    @classmethod
    def from_payload(cls, item: dict, environment_name: str) -> "CanvasApp":
        name = _require(item, "name", "App")
        props = item.get("properties") or {}
        usage = props.get("usageSummary") or {}
        return cls(
            name=name,
            display_name=props.get("displayName") or name,
            environment_name=environment_name,
            component_library_id=props.get("componentLibraryId") or None,
            screen_count=_optional_int(props.get("screenCount")),
            total_runs=_optional_int(usage.get("totalRuns")),
        )


@dataclass(frozen=True)
class Workspace:
    id: str
    name: str
    sensitivity_label: Optional[str] = None
    report_count: Optional[int] = None
    dashboard_count: Optional[int] = None

    @classmethod
    def from_payload(cls, item: dict) -> "Workspace":
        workspace_id = _require(item, "id", "Workspace")
        label = item.get("sensitivityLabel") or {}
        return cls(
            id=workspace_id,
            name=item.get("name") or workspace_id,
            sensitivity_label=label.get("labelId") if isinstance(label, dict) else None,
        )


@dataclass(frozen=True)
class LicensedUser:
    user_principal_name: str
    sku_ids: frozenset[str] = frozenset()

    @classmethod
    def from_payload(cls, item: dict) -> "LicensedUser":
        upn = item.get("userPrincipalName") or _require(item, "id", "User")
        return cls(
            user_principal_name=upn,
            sku_ids=frozenset(
                lic["skuId"] for lic in item.get("assignedLicenses") or [] if lic.get("skuId")
            ),
        )
