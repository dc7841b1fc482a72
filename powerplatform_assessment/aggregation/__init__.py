"""Aggregation package — collects findings across assessment areas."""

from .findings import FindingCollection

__all__ = ["FindingCollection"]
