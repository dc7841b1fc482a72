from .base import BaseAnalyzer, Finding, Area, Risk, RISK_ORDER, StepResult
from .security_analyzer import SecurityModelAnalyzer
from .data_model_analyzer import DataModelAnalyzer
from .flow_analyzer import FlowAnalyzer
from .reusability_analyzer import ReusabilityAnalyzer
from .dashboard_analyzer import DashboardAnalyzer
from .performance_analyzer import PerformanceAnalyzer
from .license_analyzer import LicenseAnalyzer

# Evaluation order of the assessment areas
ALL_ANALYZERS = [
    SecurityModelAnalyzer,
    DataModelAnalyzer,
    FlowAnalyzer,
    ReusabilityAnalyzer,
    DashboardAnalyzer,
    PerformanceAnalyzer,
    LicenseAnalyzer,
]

__all__ = [
    "BaseAnalyzer",
    "Finding",
    "Area",
    "Risk",
    "RISK_ORDER",
    "StepResult",
    "SecurityModelAnalyzer",
    "DataModelAnalyzer",
    "FlowAnalyzer",
    "ReusabilityAnalyzer",
    "DashboardAnalyzer",
    "PerformanceAnalyzer",
    "LicenseAnalyzer",
    "ALL_ANALYZERS",
]
