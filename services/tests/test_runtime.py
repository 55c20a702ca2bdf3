"""Tests for host collaborator bindings."""

from unittest.mock import patch

from idpflows.config import ManagementAPIConfig, Settings
from idpflows.management_api import ManagementAPIClient
from idpflows.runtime import (
    AccessControl,
    CustomClaims,
    EnvironmentVariables,
    TokenClaims,
    create_bindings,
)


class TestEnvironmentVariables:
    def test_configured_value(self):
        env = EnvironmentVariables({"OKTA_CONNECTION_ID": "conn_1"}, use_os_environ=False)
        variable = env.get_variable("OKTA_CONNECTION_ID")
        assert variable is not None
        assert variable.value == "conn_1"

    def test_missing_value(self):
        env = EnvironmentVariables({}, use_os_environ=False)
        assert env.get_variable("OKTA_CONNECTION_ID") is None

    @patch.dict("os.environ", {"OKTA_CONNECTION_ID": "conn_env"})
    def test_falls_back_to_process_environment(self):
        env = EnvironmentVariables({})
        assert env.get_variable("OKTA_CONNECTION_ID").value == "conn_env"

    @patch.dict("os.environ", {"OKTA_CONNECTION_ID": "conn_env"})
    def test_configured_value_takes_precedence(self):
        env = EnvironmentVariables({"OKTA_CONNECTION_ID": "conn_cfg"})
        assert env.get_variable("OKTA_CONNECTION_ID").value == "conn_cfg"


class TestAccessControl:
    def test_allowed_by_default(self):
        access = AccessControl()
        assert access.denied is False
        assert access.reason is None

    def test_deny(self):
        access = AccessControl()
        access.deny_access("Access denied: nope")
        assert access.denied is True
        assert access.reason == "Access denied: nope"

    def test_first_denial_kept(self):
        access = AccessControl()
        access.deny_access("first")
        access.deny_access("second")
        assert access.reason == "first"


class TestTokenClaims:
    def test_last_write_wins(self):
        claims = CustomClaims("access_token")
        claims.set_custom_claim("idp_email", "a@example.com")
        claims.set_custom_claim("idp_email", "b@example.com")
        assert claims.as_dict() == {"idp_email": "b@example.com"}

    def test_as_dict_skips_empty_slots(self):
        tokens = TokenClaims()
        tokens.id_token.set_custom_claim("x", 1)
        assert tokens.as_dict() == {"id_token": {"x": 1}}

    def test_as_dict_returns_copy(self):
        claims = CustomClaims("access_token")
        claims.set_custom_claim("x", 1)
        claims.as_dict()["x"] = 2
        assert claims.as_dict() == {"x": 1}


class TestCreateBindings:
    def test_fresh_bindings_per_call(self):
        settings = Settings(
            management_api=ManagementAPIConfig(domain="https://tenant.example.com"),
            environment_variables={"OKTA_CONNECTION_ID": "conn_1"},
        )
        first = create_bindings(settings)
        second = create_bindings(settings)

        assert isinstance(first.management_api, ManagementAPIClient)
        assert first.env.get_variable("OKTA_CONNECTION_ID").value == "conn_1"
        assert first.access is not second.access
        assert first.tokens is not second.tokens
