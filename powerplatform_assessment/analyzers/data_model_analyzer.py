"""
Data Model & Architecture Analyzer
Analyzes: Dataverse environments without solutions, table sprawl.
"""

from __future__ import annotations

from typing import Optional

from .base import Area, BaseAnalyzer, Finding, Risk
from ..collectors.base import SourceResult
from ..collectors.records import Environment


def check_solutions_deployed(env: Environment) -> Optional[Finding]:
    if not env.is_dataverse or env.solution_count is None or env.solution_count != 0:
        return None
    return Finding(
        area=Area.DATA_MODEL,
        issue="Dataverse environment without solutions",
        risk=Risk.MEDIUM,
        impact=(
            "Customisations live outside solutions, so they cannot be versioned "
            "or promoted between environments in a controlled way."
        ),
        mitigation="Package customisations in solutions and deploy them through an ALM pipeline.",
        iso_control="A.8.32",
        cis_control="CIS 16.1",
        evidence=f"Environment '{env.display_name}' has 0 solutions deployed.",
    )


def check_entity_count(env: Environment, max_entities: int = 100) -> Optional[Finding]:
    if not env.is_dataverse or env.entity_count is None or not env.entity_count > max_entities:
        return None
    return Finding(
        area=Area.DATA_MODEL,
        issue="Excessive custom tables in Dataverse",
        risk=Risk.MEDIUM,
        impact="A sprawling data model is hard to secure, document and keep performant.",
        mitigation="Review the data model, consolidate overlapping tables and retire unused ones.",
        iso_control="A.8.27",
        cis_control="CIS 3.2",
        evidence=(
            f"Environment '{env.display_name}' contains {env.entity_count} custom tables "
            f"(threshold {max_entities})."
        ),
    )


class DataModelAnalyzer(BaseAnalyzer):
    name = "data_model"
    area = Area.DATA_MODEL
    sources = ("environments",)
    description = "Dataverse solution usage and data model size"

    def _analyze(self, sources: dict[str, SourceResult]):
        environments = self.records_from(sources, "environments")
        if environments is None:
            return
        self.check_each(check_solutions_deployed, environments)
        self.check_each(check_entity_count, environments, max_entities=self.config.max_entities)
