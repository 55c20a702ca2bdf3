"""Tests for settings loading and workflow config models."""

import pytest
from pydantic import ValidationError

from idpflows.config import (
    EntraClaimsSyncConfig,
    GateConfig,
    MappingRule,
    SamlAttributeSyncConfig,
    Settings,
    WorkflowsConfig,
)

YAML_CONFIG = """
log_level: WARNING
environment_variables:
  OKTA_CONNECTION_ID: conn_okta
workflows:
  ip_allowlist:
    allowlist: ["10.1.2.3", "64.227.0.197"]
  entra_claims_sync:
    stamp_when_empty: true
"""


class TestDefaults:
    def test_entra_defaults(self):
        config = EntraClaimsSyncConfig()
        assert config.gate.protocol == "oauth2"
        assert "microsoft" in config.gate.allowed_providers
        assert config.mapping.delimiter == ", "
        assert config.timestamp_property == "entra_last_sync"
        assert config.stamp_when_empty is False
        assert config.propagate_errors is True

    def test_saml_defaults(self):
        config = SamlAttributeSyncConfig()
        assert config.mapping.delimiter == ","
        groups = [r for r in config.mapping.rules if r.target == "groups"]
        assert groups[0].multi_valued is True

    def test_create_org_swallows_errors_by_default(self):
        assert WorkflowsConfig().create_org_on_signup.propagate_errors is False


class TestModels:
    def test_provider_allowlist_normalized(self):
        gate = GateConfig(allowed_providers=frozenset({" Microsoft ", "ENTRA"}))
        assert gate.allowed_providers == frozenset({"microsoft", "entra"})

    def test_rule_requires_alias(self):
        with pytest.raises(ValidationError):
            MappingRule(aliases=(), target="x")

    def test_config_is_frozen(self):
        config = EntraClaimsSyncConfig()
        with pytest.raises(ValidationError):
            config.stamp_when_empty = True

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            WorkflowsConfig.model_validate({"ip_allowlist": {"allow_list": []}})


class TestSettingsSources:
    def test_yaml_file_loaded(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(YAML_CONFIG)
        monkeypatch.setenv("IDPFLOWS_CONFIG_FILE", str(config_file))
        monkeypatch.delenv("IDPFLOWS_LOG_LEVEL", raising=False)

        settings = Settings()

        assert settings.log_level == "WARNING"
        assert settings.environment_variables == {"OKTA_CONNECTION_ID": "conn_okta"}
        assert settings.workflows.ip_allowlist.allowlist == ("10.1.2.3", "64.227.0.197")
        assert settings.workflows.entra_claims_sync.stamp_when_empty is True

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(YAML_CONFIG)
        monkeypatch.setenv("IDPFLOWS_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("IDPFLOWS_LOG_LEVEL", "ERROR")
        monkeypatch.setenv("IDPFLOWS_MANAGEMENT_API__CLIENT_SECRET", "s3cret")

        settings = Settings()

        assert settings.log_level == "ERROR"
        assert settings.management_api.client_secret == "s3cret"

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("IDPFLOWS_CONFIG_FILE", str(tmp_path / "missing.yaml"))

        settings = Settings()

        assert settings.workflows.ip_allowlist.allowlist == ("64.227.0.197",)
        assert settings.management_api.domain == ""
