"""
Power Platform Compliance Assessment
====================================
A read-only assessment of a Microsoft Power Platform tenant against a fixed
set of governance rules, producing a single HTML compliance report.

WARNING: This tool operates in STRICT READ-ONLY mode.
         No write operations will be performed against the tenant.
"""

__version__ = "1.0.0"
__mode__ = "READ-ONLY"
