"""
Environment Collector
Enumerates: environments, their type, and for Dataverse-backed environments
the deployed solution and custom table counts.
"""

from __future__ import annotations

import dataclasses
import logging

from .base import BaseCollector, PartialDataError
from .records import Environment
from ..config import ENVIRONMENTS_ENDPOINT, BAP_API_VERSION, DATAVERSE_API_PATH

logger = logging.getLogger("powerplatform_assessment.collectors.environments")


class EnvironmentCollector(BaseCollector):
    name = "environments"
    description = "Environments, environment types, Dataverse solutions and tables"
    session = "power_platform"

    def collect(self) -> list[Environment]:
        items = self.client.get_all_pages(
            ENVIRONMENTS_ENDPOINT,
            params={
                "api-version": BAP_API_VERSION,
                "$expand": "properties.linkedEnvironmentMetadata",
            },
            missing_ok=False,
        )
        environments = self.parse_records(items, Environment.from_payload)
        dataverse = sum(env.is_dataverse for env in environments)
        logger.debug(f"{dataverse} of {len(environments)} environments have Dataverse")
        return [self._with_dataverse_counts(env) for env in environments]

    def _with_dataverse_counts(self, env: Environment) -> Environment:
        """Resolve solution and table counts; a failed sub-query leaves its count None."""
        if not env.is_dataverse:
            return env

        api_root = f"{env.instance_url.rstrip('/')}/{DATAVERSE_API_PATH}"
        updates = {}

        try:
            solutions = self.sub_query(
                f"Solutions for {env.display_name}",
                f"{api_root}/solutions",
                params={
                    "$select": "uniquename,ismanaged",
                    "$filter": "isvisible eq true and ismanaged eq false",
                },
            )
            updates["solution_count"] = sum(
                1 for s in solutions
                if s.get("uniquename") not in self.config.system_solutions
            )
        except PartialDataError as e:
            self.add_partial(env.display_name, e)

        try:
            entities = self.sub_query(
                f"Tables for {env.display_name}",
                f"{api_root}/EntityDefinitions",
                params={
                    "$select": "LogicalName",
                    "$filter": "IsCustomEntity eq true",
                },
            )
            updates["entity_count"] = len(entities)
        except PartialDataError as e:
            self.add_partial(env.display_name, e)

        return dataclasses.replace(env, **updates)
