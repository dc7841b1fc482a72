from .base import (
    BaseCollector,
    Available,
    Unavailable,
    SourceResult,
    Sessions,
    PartialDataError,
)
from .policies import PolicyCollector
from .tenant_settings import TenantSettingsCollector
from .environments import EnvironmentCollector
from .flows import FlowCollector
from .apps import AppCollector
from .workspaces import WorkspaceCollector
from .licenses import LicenseCollector

ALL_COLLECTORS = [
    PolicyCollector,
    TenantSettingsCollector,
    EnvironmentCollector,
    FlowCollector,
    AppCollector,
    WorkspaceCollector,
    LicenseCollector,
]

__all__ = [
    "BaseCollector",
    "Available",
    "Unavailable",
    "SourceResult",
    "Sessions",
    "PartialDataError",
    "PolicyCollector",
    "TenantSettingsCollector",
    "EnvironmentCollector",
    "FlowCollector",
    "AppCollector",
    "WorkspaceCollector",
    "LicenseCollector",
    "ALL_COLLECTORS",
]
