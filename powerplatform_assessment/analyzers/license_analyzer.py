"""
License & Hierarchy Analyzer
Analyzes: premium per-user plan assignment.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import LicensedUser


def check_premium_licenses(users: tuple[LicensedUser, ...], skus: Iterable[str]) -> Optional[Finding]:
    """Aggregate check: at least one user holds one of the premium SKUs."""
    skus = frozenset(skus)
    if any(user.sku_ids & skus for user in users):
        return None
    return Finding(
        area=Area.LICENSE_HIERARCHY,
        issue="No premium Power Platform licenses assigned",
        risk=Risk.LOW,
        impact=(
            "Premium connectors and Dataverse workloads run without a clear "
            "licensing owner, which risks compliance gaps at true-up."
        ),
        mitigation="Assign per-user plans to makers of premium solutions or adopt pay-as-you-go.",
        iso_control="A.5.32",
        cis_control="CIS 2.2",
        evidence=f"0 of {len(users)} users hold a Power Apps or Power Automate per user license.",
    )


class LicenseAnalyzer(BaseAnalyzer):
    name = "license_hierarchy"
    area = Area.LICENSE_HIERARCHY
    sources = ("licenses",)
    description = "Premium license assignment"

    def _analyze(self, sources: dict[str, SourceResult]):
        users = self.records_from(sources, "licenses")
        if users is not None:
            self.check(check_premium_licenses, users, "users", skus=self.config.premium_license_skus)
