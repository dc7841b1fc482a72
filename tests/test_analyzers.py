from datetime import timedelta

import pytest

from powerplatform_assessment.analyzers import (
    Area,
    DashboardAnalyzer,
    DataModelAnalyzer,
    FlowAnalyzer,
    LicenseAnalyzer,
    PerformanceAnalyzer,
    ReusabilityAnalyzer,
    Risk,
    SecurityModelAnalyzer,
)
from powerplatform_assessment.analyzers.data_model_analyzer import check_entity_count
from powerplatform_assessment.analyzers.flow_analyzer import check_custom_connector, check_unused_flow
from powerplatform_assessment.collectors import Available, Unavailable
from powerplatform_assessment.collectors.records import (
    CanvasApp,
    DlpPolicy,
    Environment,
    Flow,
    LicensedUser,
    TenantSettings,
    Workspace,
)
from powerplatform_assessment.config import FLOW_PER_USER_SKU

DATAVERSE_URL = "https://contoso.crm.dynamics.com/"


def available(name, *records):
    return Available(name, tuple(records))


def unavailable(name):
    return Unavailable(name, "power_platform session not established")


def security_sources(policies=None, environments=None, tenant_settings=None):
    return {
        "policies": policies or unavailable("policies"),
        "environments": environments or unavailable("environments"),
        "tenant_settings": tenant_settings or unavailable("tenant_settings"),
    }


# ─── Security Model ─────────────────────────────────────────────────────────

def test_empty_policy_collection_is_one_critical_finding(now):
    result = SecurityModelAnalyzer().analyze(security_sources(policies=available("policies")), now=now)

    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.risk == Risk.CRITICAL
    assert finding.area == Area.SECURITY_MODEL
    assert finding.evidence == "Zero DLP policies found."


def test_unavailable_policies_produce_no_zero_policy_finding(now):
    result = SecurityModelAnalyzer().analyze(security_sources(), now=now)

    assert result.findings == []
    assert result.errors == []


def test_unclassified_policy_is_one_high_finding_per_policy(now):
    policies = available(
        "policies",
        DlpPolicy("p1", "Baseline", business_connectors=("shared_sql",)),
        DlpPolicy("p2", "Empty policy"),
        DlpPolicy("p3", "Consumer only", non_business_connectors=("shared_twitter",)),
        DlpPolicy("p4", "Another empty", blocked_connectors=("shared_dropbox",)),
    )

    result = SecurityModelAnalyzer().analyze(security_sources(policies=policies), now=now)

    assert [f.risk for f in result.findings] == [Risk.HIGH, Risk.HIGH]
    assert "Empty policy" in result.findings[0].evidence
    assert "Another empty" in result.findings[1].evidence


def test_default_environment_is_flagged_once(now):
    environments = available(
        "environments",
        Environment("e1", "Contoso (default)", environment_type="Default"),
        Environment("e2", "Contoso Dev", environment_type="Sandbox"),
        Environment("e3", "Contoso Prod", environment_type="Production"),
    )

    result = SecurityModelAnalyzer().analyze(security_sources(environments=environments), now=now)

    assert len(result.findings) == 1
    assert result.findings[0].area == Area.SECURITY_MODEL
    assert "Contoso (default)" in result.findings[0].evidence


@pytest.mark.parametrize("flag, expected", [(False, 1), (True, 0), (None, 0)])
def test_audit_logging_flag(now, flag, expected):
    settings = available("tenant_settings", TenantSettings(audit_log_enabled=flag))

    result = SecurityModelAnalyzer().analyze(security_sources(tenant_settings=settings), now=now)

    assert len(result.findings) == expected
    if expected:
        assert result.findings[0].risk == Risk.CRITICAL


def test_unknown_audit_flag_is_logged(now, caplog):
    settings = available("tenant_settings", TenantSettings(audit_log_enabled=None))

    with caplog.at_level("INFO", logger="powerplatform_assessment.analyzers.security"):
        SecurityModelAnalyzer().analyze(security_sources(tenant_settings=settings), now=now)

    assert "Audit logging flag not reported" in caplog.text


# ─── Data Model & Architecture ──────────────────────────────────────────────

@pytest.mark.parametrize("count, expected", [(100, 0), (101, 1)])
def test_entity_count_threshold(now, count, expected):
    env = Environment("e1", "Contoso Dev", instance_url=DATAVERSE_URL, solution_count=3, entity_count=count)

    result = DataModelAnalyzer().analyze({"environments": available("environments", env)}, now=now)

    assert len(result.findings) == expected


def test_entity_count_threshold_is_configurable():
    env = Environment("e1", "Contoso Dev", instance_url=DATAVERSE_URL, entity_count=20)
    assert check_entity_count(env, max_entities=10) is not None
    assert check_entity_count(env, max_entities=20) is None


def test_dataverse_environment_without_solutions(now):
    environments = available(
        "environments",
        Environment("e1", "No solutions", instance_url=DATAVERSE_URL, solution_count=0, entity_count=5),
        Environment("e2", "Unknown solutions", instance_url=DATAVERSE_URL, solution_count=None),
        Environment("e3", "No Dataverse", solution_count=0),
        Environment("e4", "Has solutions", instance_url=DATAVERSE_URL, solution_count=2),
    )

    result = DataModelAnalyzer().analyze({"environments": environments}, now=now)

    assert len(result.findings) == 1
    assert result.findings[0].risk == Risk.MEDIUM
    assert "No solutions" in result.findings[0].evidence


# ─── Flow Optimization ──────────────────────────────────────────────────────

def test_flow_at_run_threshold_is_never_unused(now):
    stale = now - timedelta(days=365)
    flow = Flow("f1", "Nightly export", "env-1", run_count=1000, last_run=stale)

    assert check_unused_flow(flow, now) is None


def test_busy_flow_that_stopped_running_is_unused(now):
    stale = Flow("f1", "Nightly export", "env-1", run_count=1001, last_run=now - timedelta(days=31))
    recent = Flow("f2", "Hourly sync", "env-1", run_count=5000, last_run=now - timedelta(days=2))
    unknown = Flow("f3", "No history", "env-1", run_count=None, last_run=None)

    result = FlowAnalyzer().analyze({"flows": available("flows", stale, recent, unknown)}, now=now)

    assert len(result.findings) == 1
    assert result.findings[0].risk == Risk.MEDIUM
    assert "Nightly export" in result.findings[0].evidence


def test_custom_connector_match_is_case_insensitive():
    flow = Flow("f1", "Invoices", "env-1", connector_references=("shared_office365", "Contoso CUSTOM API"))

    finding = check_custom_connector(flow)

    assert finding is not None
    assert finding.risk == Risk.HIGH
    assert "Contoso CUSTOM API" in finding.evidence
    assert check_custom_connector(Flow("f2", "Mail", "env-1", connector_references=("shared_office365",))) is None


def test_rule_failure_is_isolated_to_its_record(now):
    broken = Flow("f1", "Broken", "env-1", connector_references=(None,))
    custom = Flow("f2", "Custom", "env-1", connector_references=("shared_custom-5fapi",))

    result = FlowAnalyzer().analyze({"flows": available("flows", broken, custom)}, now=now)

    assert len(result.findings) == 1
    assert "Custom" in result.findings[0].evidence
    assert len(result.errors) == 1
    assert "check_custom_connector" in result.errors[0]
    assert "Broken" in result.errors[0]


# ─── Component Reusability / Application Performance ───────────────────────

def test_apps_without_component_library(now):
    apps = available(
        "apps",
        CanvasApp("a1", "Inspections", "env-1", component_library_id="lib-1"),
        CanvasApp("a2", "Timesheets", "env-1"),
    )

    result = ReusabilityAnalyzer().analyze({"apps": apps}, now=now)

    assert len(result.findings) == 1
    assert result.findings[0].area == Area.COMPONENT_REUSABILITY
    assert "Timesheets" in result.findings[0].evidence


@pytest.mark.parametrize("screens, runs, expected", [
    (100, 10000, 0),
    (101, 10000, 1),
    (100, 10001, 1),
    (101, 10001, 2),
    (None, None, 0),
])
def test_app_performance_thresholds(now, screens, runs, expected):
    app = CanvasApp("a1", "Field app", "env-1", screen_count=screens, total_runs=runs)

    result = PerformanceAnalyzer().analyze({"apps": available("apps", app)}, now=now)

    assert len(result.findings) == expected
    assert all(f.area == Area.APPLICATION_PERFORMANCE for f in result.findings)


# ─── Dashboard & Analytics ──────────────────────────────────────────────────

def test_workspace_label_and_content_checks(now):
    workspaces = available(
        "workspaces",
        Workspace("w1", "Finance", sensitivity_label="label-1", report_count=3, dashboard_count=1),
        Workspace("w2", "Scratch", report_count=0, dashboard_count=0),
        Workspace("w3", "Unknown content", sensitivity_label="label-1", report_count=0, dashboard_count=None),
    )

    result = DashboardAnalyzer().analyze({"workspaces": workspaces}, now=now)

    assert [(f.issue, f.risk) for f in result.findings] == [
        ("Workspace without sensitivity label", Risk.MEDIUM),
        ("Empty workspace", Risk.LOW),
    ]


# ─── License & Hierarchy ────────────────────────────────────────────────────

def test_no_premium_licenses_is_one_low_finding(now):
    users = available(
        "licenses",
        LicensedUser("ada@contoso.com", frozenset({"e5-sku"})),
        LicensedUser("bob@contoso.com"),
    )

    result = LicenseAnalyzer().analyze({"licenses": users}, now=now)

    assert len(result.findings) == 1
    assert result.findings[0].risk == Risk.LOW
    assert result.findings[0].evidence.startswith("0 of 2 users")


def test_premium_license_holder_clears_the_check(now):
    users = available("licenses", LicensedUser("ada@contoso.com", frozenset({FLOW_PER_USER_SKU})))

    result = LicenseAnalyzer().analyze({"licenses": users}, now=now)

    assert result.findings == []


def test_unavailable_licenses_skip_the_check(now):
    result = LicenseAnalyzer().analyze({"licenses": Unavailable("licenses", "graph session not established")}, now=now)

    assert result.findings == []


# ─── Determinism ────────────────────────────────────────────────────────────

def test_same_input_and_now_give_identical_findings(now):
    flows = available(
        "flows",
        Flow("f1", "Nightly export", "env-1", run_count=2000, last_run=now - timedelta(days=90),
             connector_references=("shared_contoso_custom",)),
        Flow("f2", "Hourly sync", "env-1", run_count=10, last_run=now),
    )

    first = FlowAnalyzer().analyze({"flows": flows}, now=now).findings
    second = FlowAnalyzer().analyze({"flows": flows}, now=now).findings

    assert first == second
    assert len(first) == 2
