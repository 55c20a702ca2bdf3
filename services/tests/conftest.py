"""
Top-level test configuration for idpflows.
"""

import os
from unittest.mock import AsyncMock

import pytest

# Ensure test-friendly defaults
os.environ.setdefault("IDPFLOWS_JSON_LOGS", "false")
os.environ.setdefault("IDPFLOWS_LOG_LEVEL", "DEBUG")
os.environ.setdefault("IDPFLOWS_CONFIG_FILE", "/nonexistent/idpflows-test-config.yaml")

from idpflows.management_api import ManagementAPIResponse  # noqa: E402
from idpflows.runtime import EnvironmentVariables, WorkflowBindings  # noqa: E402


@pytest.fixture
def mock_api() -> AsyncMock:
    """Management API stand-in; every call succeeds with an empty body by default."""
    api = AsyncMock()
    api.get.return_value = ManagementAPIResponse(status_code=200, data={})
    api.patch.return_value = ManagementAPIResponse(status_code=200, data={})
    api.post.return_value = ManagementAPIResponse(status_code=200, data={})
    api.put.return_value = ManagementAPIResponse(status_code=200, data={})
    return api


@pytest.fixture
def bindings(mock_api: AsyncMock) -> WorkflowBindings:
    return WorkflowBindings(
        management_api=mock_api,
        env=EnvironmentVariables({}, use_os_environ=False),
    )


@pytest.fixture
def saml_statement():
    """Build one SAML attribute statement from (name, values) pairs."""

    def _build(*attributes: tuple[str, list[str]]) -> dict:
        return {
            "attributes": [
                {"name": name, "values": [{"value": v} for v in values]}
                for name, values in attributes
            ]
        }

    return _build


@pytest.fixture
def saml_payload():
    def _build(
        *statements: dict,
        connection_id: str = "conn_saml",
        user_id: str | None = "kp_user_1",
        protocol: str = "saml",
    ) -> dict:
        return {
            "context": {
                "auth": {
                    "connectionId": connection_id,
                    "provider": {
                        "protocol": protocol,
                        "provider": "okta",
                        "data": {"assertion": {"attributeStatements": list(statements)}},
                    },
                },
                "user": {"id": user_id},
            }
        }

    return _build


@pytest.fixture
def oidc_payload():
    def _build(
        claims: dict | None,
        provider: str = "microsoft",
        protocol: str = "oauth2",
        user_id: str | None = "kp_user_1",
    ) -> dict:
        data = {"idToken": {"claims": claims}} if claims is not None else {}
        return {
            "context": {
                "auth": {
                    "connectionId": "conn_oidc",
                    "provider": {"protocol": protocol, "provider": provider, "data": data},
                },
                "user": {"id": user_id},
            }
        }

    return _build
