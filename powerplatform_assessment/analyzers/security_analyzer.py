"""
Security Model Analyzer
Analyzes: DLP policy coverage, unclassified connectors, Default environment use,
tenant audit logging.
"""

from __future__ import annotations

import logging
from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import DlpPolicy, Environment, TenantSettings

logger = logging.getLogger("powerplatform_assessment.analyzers.security")


def check_policies_exist(policies: tuple[DlpPolicy, ...]) -> Optional[Finding]:
    """Aggregate check: the tenant has at least one DLP policy."""
    if policies:
        return None
    return Finding(
        area=Area.SECURITY_MODEL,
        issue="No DLP policies configured",
        risk=Risk.CRITICAL,
        impact=(
            "Makers can combine any business and consumer connectors, so data "
            "can move freely between corporate and external services."
        ),
        mitigation=(
            "Create a tenant-wide DLP policy that classifies connectors into "
            "Business, Non-Business and Blocked groups."
        ),
        iso_control="A.8.12",
        cis_control="CIS 3.3",
        evidence="Zero DLP policies found.",
    )


def check_policy_classification(policy: DlpPolicy) -> Optional[Finding]:
    if policy.business_connectors or policy.non_business_connectors:
        return None
    return Finding(
        area=Area.SECURITY_MODEL,
        issue="DLP policy without connector classification",
        risk=Risk.HIGH,
        impact="The policy exists but separates no connectors, so it enforces nothing.",
        mitigation="Assign connectors to the Business and Non-Business groups of the policy.",
        iso_control="A.8.12",
        cis_control="CIS 3.3",
        evidence=(
            f"Policy '{policy.display_name}' has empty Business and "
            f"Non-Business connector groups."
        ),
    )


def check_default_environment(env: Environment) -> Optional[Finding]:
    if env.environment_type != "Default":
        return None
    return Finding(
        area=Area.SECURITY_MODEL,
        issue="Default environment in use",
        risk=Risk.HIGH,
        impact=(
            "Every licensed user can build in the Default environment and it "
            "is often left outside managed DLP scope."
        ),
        mitigation=(
            "Restrict maker access to the Default environment and move "
            "production workloads into managed environments."
        ),
        iso_control="A.8.31",
        cis_control="CIS 4.1",
        evidence=f"Environment '{env.display_name}' ({env.name}) is of type Default.",
    )


def check_audit_logging(settings: TenantSettings) -> Optional[Finding]:
    # None means the setting could not be read
    if settings.audit_log_enabled is not False:
        return None
    return Finding(
        area=Area.SECURITY_MODEL,
        issue="Audit logging disabled",
        risk=Risk.CRITICAL,
        impact="Administrative and maker activity leaves no forensic trail.",
        mitigation="Enable audit logging for the tenant and retain logs per policy.",
        iso_control="A.8.15",
        cis_control="CIS 8.2",
        evidence="Tenant audit log setting is disabled.",
    )


class SecurityModelAnalyzer(BaseAnalyzer):
    name = "security_model"
    area = Area.SECURITY_MODEL
    sources = ("policies", "environments", "tenant_settings")
    description = "DLP coverage, environment isolation, audit logging"

    def _analyze(self, sources: dict[str, SourceResult]):
        policies = self.records_from(sources, "policies")
        if policies is not None:
            self.check(check_policies_exist, policies, "DLP policies")
            self.check_each(check_policy_classification, policies)

        environments = self.records_from(sources, "environments")
        if environments is not None:
            self.check_each(check_default_environment, environments)

        settings = self.records_from(sources, "tenant_settings")
        if settings:
            self.check(check_audit_logging, settings[0], "tenant settings")
            if settings[0].audit_log_enabled is None:
                logger.info(f"[{self.name}] Audit logging flag not reported; no audit check")
