import pytest

from powerplatform_assessment.config import (
    DLP_POLICIES_ENDPOINT,
    ENVIRONMENTS_ENDPOINT,
    TENANT_SETTINGS_ENDPOINT,
)
from powerplatform_assessment.safety.guardian import SafetyGuardian, SafetyViolation


@pytest.mark.parametrize("method", ["GET", "get", "HEAD", "OPTIONS"])
def test_read_methods_pass(method):
    assert SafetyGuardian().validate_request(method, ENVIRONMENTS_ENDPOINT) is True


def test_tenant_settings_query_may_use_post():
    guardian = SafetyGuardian()

    assert guardian.validate_request("POST", f"{TENANT_SETTINGS_ENDPOINT}?api-version=2021-04-01") is True
    assert guardian.get_audit_record()["status"] == "CLEAN"


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
def test_writes_are_blocked(method):
    guardian = SafetyGuardian()

    with pytest.raises(SafetyViolation):
        guardian.validate_request(method, f"{DLP_POLICIES_ENDPOINT}/p1")

    record = guardian.get_audit_record()
    assert record["violations_detected"] == 1
    assert record["status"] == "VIOLATIONS_DETECTED"


def test_write_pattern_url_is_blocked_even_for_get():
    with pytest.raises(SafetyViolation):
        SafetyGuardian().validate_request("GET", f"{ENVIRONMENTS_ENDPOINT}/env-1/disable")


def test_unknown_method_is_blocked():
    with pytest.raises(SafetyViolation):
        SafetyGuardian().validate_request("TRACE", ENVIRONMENTS_ENDPOINT)


def test_audit_counts_checks():
    guardian = SafetyGuardian()
    guardian.validate_request("GET", ENVIRONMENTS_ENDPOINT)
    guardian.validate_request("GET", DLP_POLICIES_ENDPOINT)

    assert guardian.get_audit_record()["checks_performed"] == 2


@pytest.mark.parametrize("url", [
    "https://contoso-attacker.example.com/collect",
    "http://api.bap.microsoft.com/providers/Microsoft.BusinessAppPlatform/scopes/admin/environments",
    "https://crm.dynamics.com.example.net/api/data/v9.2/solutions",
])
def test_tokens_only_go_to_admin_hosts(url):
    guardian = SafetyGuardian()

    with pytest.raises(SafetyViolation):
        guardian.validate_request("GET", url)

    assert guardian.get_audit_record()["violations"][0]["url"] == url


@pytest.mark.parametrize("url", [
    "https://contoso.crm.dynamics.com/api/data/v9.2/solutions",
    "https://contoso-emea.crm4.dynamics.com/api/data/v9.2/EntityDefinitions",
])
def test_dataverse_instances_are_admin_hosts(url):
    assert SafetyGuardian().validate_request("GET", url) is True
