"""
Finding aggregation — the single append-only collection for one run.

Findings keep insertion order (area order, then per-record discovery order).
Nothing is deduplicated or merged; the same resource may appear in several areas.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Iterator

from ..analyzers.base import Area, Finding, RISK_ORDER


class FindingCollection:
    """Ordered findings, frozen once rendering begins."""

    def __init__(self, findings: Iterable[Finding] = ()):
        self._findings: list[Finding] = list(findings)
        self._frozen = False

    def add_all(self, findings: Iterable[Finding]) -> None:
        if self._frozen:
            raise RuntimeError("Finding collection is frozen; rendering has begun")
        self._findings.extend(findings)

    def freeze(self) -> tuple[Finding, ...]:
        """Stop accepting findings and return them in insertion order."""
        self._frozen = True
        return tuple(self._findings)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def group_by_area(self) -> dict[Area, int]:
        """
        Finding count per area, highest count first.
        Ties keep the order in which the areas first produced a finding.
        """
        counts = Counter(f.area for f in self._findings)
        return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))

    def count_by_risk(self) -> dict[str, int]:
        """Finding count per risk level, most severe first."""
        counts = Counter(f.risk for f in self._findings)
        return {risk.value: counts[risk] for risk in RISK_ORDER if counts[risk]}

    def __len__(self) -> int:
        return len(self._findings)

    def __iter__(self) -> Iterator[Finding]:
        return iter(self._findings)
