"""Tests for the management API client."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from idpflows.config import ManagementAPIConfig
from idpflows.errors import ManagementAPIError
from idpflows.management_api import ManagementAPIClient

DOMAIN = "https://tenant.example.com"


def _config(**overrides) -> ManagementAPIConfig:
    values = {"domain": DOMAIN, "client_id": "m2m_id", "client_secret": "m2m_secret"}
    values.update(overrides)
    return ManagementAPIConfig(**values)


class _Recorder:
    """httpx MockTransport handler that serves a token and records API calls."""

    def __init__(self, api_status: int = 200, api_body: dict | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.api_status = api_status
        self.api_body = api_body if api_body is not None else {"ok": True}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok_123", "expires_in": 3600})
        return httpx.Response(self.api_status, json=self.api_body)


class TestManagementAPIClient:
    async def test_client_credentials_token_request(self):
        recorder = _Recorder()
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        await client.get("business")

        token_request = recorder.requests[0]
        assert str(token_request.url) == f"{DOMAIN}/oauth2/token"
        form = parse_qs(token_request.content.decode())
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["m2m_id"]
        assert form["client_secret"] == ["m2m_secret"]
        assert form["audience"] == [f"{DOMAIN}/api"]

    async def test_custom_audience(self):
        recorder = _Recorder()
        client = ManagementAPIClient(
            _config(audience="https://custom/api"), transport=httpx.MockTransport(recorder)
        )
        await client.get("business")
        form = parse_qs(recorder.requests[0].content.decode())
        assert form["audience"] == ["https://custom/api"]

    async def test_get_returns_data(self):
        recorder = _Recorder(api_body={"business": {"name": "Acme"}})
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        resp = await client.get("business")

        assert resp.status_code == 200
        assert resp.data == {"business": {"name": "Acme"}}
        api_request = recorder.requests[1]
        assert api_request.method == "GET"
        assert str(api_request.url) == f"{DOMAIN}/api/v1/business"
        assert api_request.headers["Authorization"] == "Bearer tok_123"

    async def test_patch_sends_json_body(self):
        recorder = _Recorder()
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        await client.patch("users/kp_1/properties", {"properties": {"user_type": "employee"}})

        api_request = recorder.requests[1]
        assert api_request.method == "PATCH"
        assert api_request.url.path == "/api/v1/users/kp_1/properties"
        assert json.loads(api_request.content) == {"properties": {"user_type": "employee"}}

    async def test_put_keeps_query_string(self):
        recorder = _Recorder()
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        await client.put("users/kp_1/properties/phone_number?value=%2B15550100")

        api_request = recorder.requests[1]
        assert api_request.method == "PUT"
        assert api_request.url.params["value"] == "+15550100"

    async def test_token_reused_within_instance(self):
        recorder = _Recorder()
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        await client.get("business")
        await client.post("organization", {"name": "Acme"})

        token_calls = [r for r in recorder.requests if r.url.path == "/oauth2/token"]
        assert len(token_calls) == 1

    async def test_http_error_raises_management_api_error(self):
        recorder = _Recorder(api_status=403, api_body={"errors": ["forbidden"]})
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        with pytest.raises(ManagementAPIError) as exc_info:
            await client.patch("users/kp_1/properties", {"properties": {}})

        assert exc_info.value.status_code == 403
        assert exc_info.value.endpoint == "users/kp_1/properties"

    async def test_no_retry_on_failure(self):
        recorder = _Recorder(api_status=500)
        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(recorder))

        with pytest.raises(ManagementAPIError):
            await client.get("business")

        api_calls = [r for r in recorder.requests if r.url.path != "/oauth2/token"]
        assert len(api_calls) == 1

    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(ManagementAPIError, match="M2M token request failed"):
            await client.get("business")

    async def test_token_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(handler))

        with pytest.raises(ManagementAPIError) as exc_info:
            await client.get("business")
        assert exc_info.value.status_code == 401

    async def test_missing_credentials(self):
        client = ManagementAPIClient(_config(client_secret=""))
        with pytest.raises(ManagementAPIError, match="credentials"):
            await client.get("business")

    async def test_missing_domain(self):
        client = ManagementAPIClient(_config(domain=""))
        with pytest.raises(ManagementAPIError, match="domain"):
            await client.get("business")

    async def test_empty_response_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(204)

        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(handler))
        resp = await client.put("users/kp_1/properties/x?value=y")
        assert resp.status_code == 204
        assert resp.data is None

    async def test_non_json_success_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(200, text="OK")

        client = ManagementAPIClient(_config(), transport=httpx.MockTransport(handler))
        resp = await client.put("users/kp_1/properties/phone_number?value=1")
        assert resp.status_code == 200
        assert resp.data == "OK"
