"""
Power Platform Compliance Assessment — Main Orchestrator

Usage:
    python -m powerplatform_assessment                       # full run, delegated sign-in
    python -m powerplatform_assessment --config config.json  # JSON config file
    python -m powerplatform_assessment --output-dir ./out --verbose

Each assessment area pulls the data sources it needs (each source at most once
per run), evaluates its rules, and the consolidated findings are rendered into
a single HTML report. A failing source never stops the run.

This tool is STRICTLY READ-ONLY. It will NEVER modify the tenant.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .config import (
    AssessmentConfig,
    FALLBACK_TENANT_ID,
    ORGANIZATION_ENDPOINT,
    REQUIRED_ROLES,
    SESSION_SCOPES,
    load_config,
)
from .safety.guardian import SafetyGuardian
from .auth.authenticator import Authenticator, AuthenticationError
from .api.client import AdminApiClient, ConnectivityError
from .collectors import ALL_COLLECTORS, Available, Sessions, SourceResult
from .analyzers import ALL_ANALYZERS
from .aggregation import FindingCollection
from .reporting import RenderError, ReportMetadata, export_html

logger = logging.getLogger("powerplatform_assessment")

COLLECTORS_BY_NAME = {cls.name: cls for cls in ALL_COLLECTORS}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="powerplatform-assessment",
        description="Power Platform Compliance Assessment (READ-ONLY)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to JSON configuration file (default: assessment_config.json beside the script)",
    )
    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=None,
        help="Directory for the HTML report (default: beside the invoking script; the working directory under python -m)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def invoking_script_dir(argv0: Optional[str] = None) -> Optional[Path]:
    """
    Directory of the script that started the run (run.py or the console
    script). None under `python -m`, where outputs go to the working directory.
    """
    argv0 = sys.argv[0] if argv0 is None else argv0
    if not argv0:
        return None
    script = Path(argv0).resolve()
    if not script.is_file() or script.name == "__main__.py":
        return None
    return script.parent


def build_config(args: argparse.Namespace, script_dir: Optional[Path] = None) -> AssessmentConfig:
    """Build the run configuration from the config file, CLI flags and environment."""
    config_path = None
    if args.config:
        if args.config.exists():
            config_path = args.config
        else:
            print(f"  ⚠  Config file {args.config} not found, using defaults.")

    config = load_config(config_path, script_dir=script_dir)
    if args.output_dir:
        config.output.base_dir = str(args.output_dir)
    if args.verbose:
        config.verbose = True
    return config


def connect_sessions(
    authenticator: Authenticator,
    guardian: SafetyGuardian,
    **client_kwargs: Any,
) -> Sessions:
    """
    Establish one admin API session per platform.
    A platform whose sign-in fails is left as None; its sources become unavailable.
    """
    sessions = Sessions()
    for session_name, scope in SESSION_SCOPES.items():
        try:
            authenticator.acquire_token(scope)
        except AuthenticationError as e:
            sessions.notes[session_name] = str(e)
            logger.warning(f"Session {session_name} not established: {e}")
            print(f"  ❌ {session_name}: not connected — {e}")
            print(f"      ⚠  Sign in with an account holding the {REQUIRED_ROLES[session_name]} role")
            continue
        client = AdminApiClient(
            token_provider=authenticator.acquire_token,
            guardian=guardian,
            name=session_name,
            **client_kwargs,
        )
        setattr(sessions, session_name, client)
        print(f"  ✅ {session_name}: connected")
    return sessions


def _print_source(result: SourceResult):
    if isinstance(result, Available):
        print(f"  ✅ {result.collector_name}: {len(result.records)} records")
    else:
        print(f"  ❌ {result.collector_name}: unavailable — {result.reason}")
    for error in result.errors:
        print(f"      ⚠  {error}")


def run_assessment(
    sessions: Sessions,
    config: AssessmentConfig,
    now: Optional[datetime] = None,
) -> tuple[FindingCollection, dict[str, SourceResult], list[str]]:
    """
    Walk the assessment areas in order.

    Returns:
        The finding collection, every source result keyed by collector name,
        and all errors recorded during the run.
    """
    now = now or datetime.now(timezone.utc)
    findings = FindingCollection()
    sources: dict[str, SourceResult] = {}
    errors: list[str] = []

    for cls in ALL_ANALYZERS:
        analyzer = cls(config.collection)
        print(f"\n  ▸ {analyzer.area.value}")

        for source_name in analyzer.sources:
            if source_name in sources:
                continue
            collector = COLLECTORS_BY_NAME[source_name](sessions, config.collection)
            result = collector.execute()
            sources[source_name] = result
            errors.extend(result.errors)
            _print_source(result)

        step = analyzer.analyze({name: sources[name] for name in analyzer.sources}, now=now)
        findings.add_all(step.findings)
        errors.extend(step.errors)
        print(f"  ✅ {analyzer.name}: {len(step.findings)} findings")

    return findings, sources, errors


def resolve_tenant_id(
    sessions: Sessions,
    config: AssessmentConfig,
    token_tenant_id: Optional[str] = None,
) -> str:
    """
    Tenant id for the report header, from the first source that knows it:
    Graph organization, the sign-in token's tid claim, the configured tenant,
    then the fallback label.
    """
    if sessions.graph is not None:
        try:
            payload = sessions.graph.get(ORGANIZATION_ENDPOINT)
        except ConnectivityError as e:
            logger.warning(f"Could not resolve tenant id from Graph: {e}")
            payload = {}
        organizations = payload.get("value") if isinstance(payload, dict) else None
        if isinstance(organizations, list) and organizations:
            first = organizations[0]
            if isinstance(first, dict) and isinstance(first.get("id"), str) and first["id"]:
                return first["id"]
        logger.info("Graph returned no organization id")
    return token_tenant_id or config.tenant_id or FALLBACK_TENANT_ID


def source_status(sources: dict[str, SourceResult]) -> dict[str, str]:
    return {
        name: "available" if isinstance(result, Available) else f"unavailable ({result.reason})"
        for name, result in sources.items()
    }


def main(argv: Optional[list[str]] = None, script_dir: Optional[Path] = None) -> int:
    """Entry point. Returns 0 once the report is written, 1 if it could not be rendered."""
    args = parse_args(argv)
    if script_dir is None:
        script_dir = invoking_script_dir()
    config = build_config(args, script_dir=script_dir)

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    guardian = SafetyGuardian()
    guardian.print_banner()

    print("=" * 70)
    print(f" Power Platform Compliance Assessment v{__version__}")
    print(" Mode: READ-ONLY — No tenant modifications will be made")
    print("=" * 70)

    started = datetime.now().astimezone()
    output_dir = config.output.report_dir
    print(f"\n📂 Output:  {output_dir.resolve()}")
    print(f"🔐 Auth:    {config.auth.mode}")

    # --- Authentication ---
    print("\n" + "=" * 70)
    print(" PHASE 1: AUTHENTICATION")
    print("=" * 70)
    authenticator = Authenticator(config.auth)
    sessions = connect_sessions(authenticator, guardian)

    try:
        # --- Assessment ---
        print("\n" + "=" * 70)
        print(" PHASE 2: DATA COLLECTION & ANALYSIS")
        print("=" * 70)
        findings, sources, errors = run_assessment(sessions, config)

        print(f"\n  Total findings: {len(findings)} {findings.count_by_risk()}")
        if errors:
            print(f"  Errors recorded: {len(errors)}")

        tenant_id = resolve_tenant_id(sessions, config, authenticator.tenant_id)
    finally:
        sessions.close()

    # --- Reporting ---
    print("\n" + "=" * 70)
    print(" PHASE 3: REPORT GENERATION")
    print("=" * 70 + "\n")
    summary_counts = findings.group_by_area()
    metadata = ReportMetadata(
        generated_at=started,
        tenant_id=tenant_id,
        source_status=source_status(sources),
    )
    try:
        path = export_html(findings.freeze(), summary_counts, metadata, output_dir)
    except RenderError as e:
        logger.error(f"Report rendering failed: {e}")
        print(f"  ❌ Report rendering failed: {e}")
        return 1
    print(f"  🌐 HTML:       {path}")

    audit = guardian.get_audit_record()
    print("\n" + "=" * 70)
    print(" ASSESSMENT COMPLETE")
    print("=" * 70)
    print(f"\n  Tenant:   {tenant_id}")
    print(f"  Findings: {len(findings)}")
    print(f"  Safety:   {audit['checks_performed']} requests checked, {audit['status']}")
    print(f"  Report:   {path}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
