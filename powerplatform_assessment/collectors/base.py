"""
Base collector class — Abstract interface for all data source adapters.
Each collector returns a tagged result: Available(records) or Unavailable(reason).
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ..api.client import AdminApiClient, ConnectivityError
from ..config import CollectionConfig, ENVIRONMENTS_ENDPOINT, BAP_API_VERSION

logger = logging.getLogger("powerplatform_assessment.collectors")


class PartialDataError(Exception):
    """Raised when one record, or a sub-query for one record, cannot be resolved."""
    pass


@dataclass(frozen=True)
class Available:
    """Records returned by a collector whose data source answered."""
    collector_name: str
    records: tuple = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class Unavailable:
    """A collector that could not produce records, and why."""
    collector_name: str
    reason: str
    errors: tuple[str, ...] = ()


SourceResult = Union[Available, Unavailable]


@dataclass
class Sessions:
    """
    Platform sessions established for this run.
    A session is None when authentication for it was never completed.
    """
    power_platform: Optional[AdminApiClient] = None
    power_bi: Optional[AdminApiClient] = None
    graph: Optional[AdminApiClient] = None
    notes: dict[str, str] = field(default_factory=dict)

    def availability(self) -> dict[str, bool]:
        return {
            "power_platform": self.power_platform is not None,
            "power_bi": self.power_bi is not None,
            "graph": self.graph is not None,
        }

    def close(self):
        for client in (self.power_platform, self.power_bi, self.graph):
            if client is not None:
                client.close()


class BaseCollector(ABC):
    """
    Abstract base class for all collectors.

    Subclasses implement collect() to gather records from their admin API.
    The base class provides:
      - Session gating (no session, no calls)
      - Timing and logging
      - Error isolation: a failing source becomes Unavailable
      - Per-record partial-data handling
    """

    name: str = "base"
    description: str = "Base collector"
    session: str = "power_platform"

    def __init__(self, sessions: Sessions, config: CollectionConfig):
        self.sessions = sessions
        self.config = config
        self.errors: list[str] = []

    @property
    def client(self) -> Optional[AdminApiClient]:
        return getattr(self.sessions, self.session)

    def execute(self) -> SourceResult:
        """
        Execute the collector with timing and error handling.
        Never raises.
        """
        self.errors = []
        if self.client is None:
            reason = f"{self.session} session not established"
            logger.info(f"[{self.name}] Skipped: {reason}")
            return Unavailable(self.name, reason)

        started = time.time()
        logger.info(f"[{self.name}] Starting collection...")
        try:
            records = self.collect()
        except ConnectivityError as e:
            reason = f"{type(e).__name__}: {e}"
            self.add_error(f"Collection failed: {reason}")
            return Unavailable(self.name, reason, tuple(self.errors))
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            logger.exception(f"[{self.name}] Collection failed")
            self.errors.append(f"[{self.name}] Collection failed: {reason}")
            return Unavailable(self.name, reason, tuple(self.errors))

        duration = round(time.time() - started, 2)
        logger.info(f"[{self.name}] Completed in {duration}s — {len(records)} records")
        return Available(self.name, tuple(records), tuple(self.errors))

    @abstractmethod
    def collect(self) -> list:
        """Return the typed records for this data source."""
        raise NotImplementedError

    def add_error(self, error: str):
        self.errors.append(f"[{self.name}] {error}")
        logger.error(f"[{self.name}] {error}")

    def add_partial(self, record_name: str, error: Exception):
        """Record a per-record failure; the record's dependent checks are skipped."""
        message = f"{record_name}: {error}"
        self.errors.append(f"[{self.name}] {message}")
        logger.warning(f"[{self.name}] Partial data for {message}")

    def parse_records(self, items: list[dict], factory: Callable[..., Any], **kwargs) -> list:
        """Validate raw payloads into records, skipping malformed entries."""
        records = []
        for item in items:
            try:
                records.append(factory(item, **kwargs))
            except PartialDataError as e:
                self.add_partial("payload", e)
        return records

    def sub_query(self, description: str, url: str, params: Optional[dict] = None, **kwargs) -> list[dict]:
        """Fetch a per-record sub-query; failures surface as PartialDataError."""
        try:
            return self.client.get_all_pages(url, params=params, **kwargs)
        except ConnectivityError as e:
            raise PartialDataError(f"{description} failed: {e}") from e

    def list_environment_names(self) -> list[str]:
        """Names of all environments, used to scope per-environment listings."""
        items = self.client.get_all_pages(
            ENVIRONMENTS_ENDPOINT, params={"api-version": BAP_API_VERSION}
        )
        return [item["name"] for item in items if item.get("name")]
