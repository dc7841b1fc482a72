"""
Base analyzer class — Abstract interface for all assessment areas.
Defines the Finding data model and analyzer contract.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from ..collectors.base import Available, SourceResult
from ..config import CollectionConfig

logger = logging.getLogger("powerplatform_assessment.analyzers")


class Area(str, Enum):
    """Assessment areas, in evaluation order."""
    SECURITY_MODEL = "Security Model"
    DATA_MODEL = "Data Model & Architecture"
    FLOW_OPTIMIZATION = "Flow Optimization"
    COMPONENT_REUSABILITY = "Component Reusability"
    DASHBOARD_ANALYTICS = "Dashboard & Analytics"
    APPLICATION_PERFORMANCE = "Application Performance"
    LICENSE_HIERARCHY = "License & Hierarchy"


class Risk(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def css_class(self) -> str:
        return f"risk-{self.value.lower()}"


RISK_ORDER = [Risk.CRITICAL, Risk.HIGH, Risk.MEDIUM, Risk.LOW]


@dataclass(frozen=True)
class Finding:
    """
    A single compliance gap found during the assessment.
    Maps to ISO/IEC 27001:2022 Annex A and CIS Controls v8.
    """
    area: Area
    issue: str                           # Short description
    risk: Risk
    impact: str                          # Why this matters
    mitigation: str                      # What to do about it
    iso_control: str                     # ISO 27001 Annex A reference
    cis_control: str                     # CIS Controls reference
    evidence: str                        # Interpolated from the source record

    def to_dict(self) -> dict:
        return {
            "area": self.area.value,
            "issue": self.issue,
            "risk": self.risk.value,
            "impact": self.impact,
            "mitigation": self.mitigation,
            "iso_control": self.iso_control,
            "cis_control": self.cis_control,
            "evidence": self.evidence,
        }


@dataclass
class StepResult:
    """Findings and errors produced by one assessment area."""
    area: Area
    findings: list[Finding] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def record_label(record: Any) -> str:
    for attr in ("display_name", "name", "user_principal_name"):
        value = getattr(record, attr, None)
        if value:
            return str(value)
    return repr(record)[:80]


class BaseAnalyzer(ABC):
    """
    Abstract base class for all analyzers.
    Analyzers receive collector results for their sources and produce findings.
    """

    name: str = "base"
    area: Area = Area.SECURITY_MODEL
    sources: tuple[str, ...] = ()
    description: str = "Base analyzer"

    def __init__(self, config: Optional[CollectionConfig] = None):
        self.config = config or CollectionConfig()
        self.result = StepResult(self.area)
        self.now = datetime.now(timezone.utc)

    def analyze(self, sources: dict[str, SourceResult], now: Optional[datetime] = None) -> StepResult:
        """
        Execute analysis and return the step's findings and errors.
        Subclasses implement _analyze() with specific logic.
        """
        self.result = StepResult(self.area)
        self.now = now or datetime.now(timezone.utc)

        try:
            self._analyze(sources)
        except Exception as e:
            logger.exception(f"[{self.name}] Analysis failed: {e}")
            self.result.errors.append(f"[{self.name}] Analysis failed: {type(e).__name__}: {e}")

        logger.info(f"[{self.name}] Analysis complete — {len(self.result.findings)} findings")
        return self.result

    @abstractmethod
    def _analyze(self, sources: dict[str, SourceResult]):
        """Implement analysis logic. Add findings via self.check()/self.check_each()."""
        raise NotImplementedError

    def records_from(self, sources: dict[str, SourceResult], name: str) -> Optional[tuple]:
        """Records of an available source, or None when its checks must be skipped."""
        source = sources.get(name)
        if isinstance(source, Available):
            return source.records
        reason = source.reason if source is not None else "not collected"
        logger.info(f"[{self.name}] Skipping checks on {name}: {reason}")
        return None

    def check(self, rule: Callable[..., Optional[Finding]], subject: Any, label: str, **kwargs):
        """Apply one rule; an exception is logged and recorded, never raised."""
        try:
            finding = rule(subject, **kwargs)
        except Exception as e:
            message = f"[{self.name}] {rule.__name__} failed for {label}: {type(e).__name__}: {e}"
            logger.error(message)
            self.result.errors.append(message)
            return
        if finding is not None:
            self.result.findings.append(finding)

    def check_each(self, rule: Callable[..., Optional[Finding]], records: tuple, **kwargs):
        """Apply a per-record rule to every record in discovery order."""
        for record in records:
            self.check(rule, record, record_label(record), **kwargs)
