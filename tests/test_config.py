import json

import pytest

from powerplatform_assessment.config import (
    AssessmentConfig,
    CONFIG_FILE_NAME,
    DEFAULT_PUBLIC_CLIENT_ID,
    FLOW_PER_USER_SKU,
    POWERAPPS_PER_USER_SKU,
    OutputConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("PPA_TENANT_ID", "PPA_CLIENT_ID", "PPA_CERT_PASSWORD"):
        monkeypatch.delenv(name, raising=False)


def test_defaults_need_no_configuration():
    config = AssessmentConfig()

    assert config.auth.mode == "delegated"
    assert config.auth.delegated.client_id == DEFAULT_PUBLIC_CLIENT_ID
    assert config.collection.max_entities == 100
    assert config.collection.flow_run_threshold == 1000
    assert config.collection.flow_stale_days == 30
    assert config.collection.premium_license_skus == (POWERAPPS_PER_USER_SKU, FLOW_PER_USER_SKU)


def test_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "tenant_id": "contoso.onmicrosoft.com",
        "auth": {
            "mode": "certificate",
            "certificate": {
                "tenant_id": "t-1",
                "client_id": "c-1",
                "certificate_path": "./cert.b64",
            },
        },
        "collection": {"max_entities": 250, "system_solutions": ["Default"], "not_a_setting": 1},
        "output": {"base_dir": "/srv/reports"},
        "verbose": True,
    }), encoding="utf-8")

    config = AssessmentConfig.from_file(path)

    assert config.tenant_id == "contoso.onmicrosoft.com"
    assert config.auth.mode == "certificate"
    assert config.auth.certificate.client_id == "c-1"
    assert config.auth.certificate.certificate_path == "./cert.b64"
    assert config.collection.max_entities == 250
    assert config.collection.system_solutions == ("Default",)
    assert not hasattr(config.collection, "not_a_setting")
    assert config.output.base_dir == "/srv/reports"
    assert config.verbose is True


def test_environment_variables_fill_identity():
    config = AssessmentConfig()
    config.apply_environment({"PPA_TENANT_ID": "t-env", "PPA_CLIENT_ID": "c-env"})

    assert config.tenant_id == "t-env"
    assert config.auth.delegated.tenant_id == "t-env"
    assert config.auth.delegated.client_id == "c-env"


def test_load_config_prefers_file_beside_script(tmp_path, monkeypatch):
    (tmp_path / CONFIG_FILE_NAME).write_text(json.dumps({"tenant_id": "from-file"}), encoding="utf-8")
    monkeypatch.setenv("PPA_CLIENT_ID", "c-env")

    config = load_config(script_dir=tmp_path)

    assert config.tenant_id == "from-file"
    assert config.auth.delegated.client_id == "c-env"
    assert config.output.report_dir == tmp_path


def test_load_config_without_any_file(tmp_path):
    config = load_config(script_dir=tmp_path)

    assert config.tenant_id == ""
    assert config.output.base_dir == str(tmp_path)


def test_report_dir_defaults_to_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert OutputConfig().report_dir == tmp_path
