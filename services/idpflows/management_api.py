"""Management API client.

Authenticates with M2M credentials (OAuth2 client-credentials grant) and
issues JSON requests against the tenant's management API. Each call is
independent: there are no retries and no cross-invocation caching.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from idpflows.config import ManagementAPIConfig
from idpflows.errors import ManagementAPIError
from idpflows.logging_config import get_logger

logger = get_logger(__name__)

API_PATH = "/api/v1"
TOKEN_PATH = "/oauth2/token"


@dataclass
class ManagementAPIResponse:
    """Decoded response body of a management API call."""

    status_code: int
    data: Any = None


class ManagementAPI(Protocol):
    """Call contract workflows rely on. All methods are suspension points."""

    async def get(self, endpoint: str) -> ManagementAPIResponse: ...

    async def patch(self, endpoint: str, params: dict[str, Any]) -> ManagementAPIResponse: ...

    async def post(self, endpoint: str, params: dict[str, Any]) -> ManagementAPIResponse: ...

    async def put(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> ManagementAPIResponse: ...


class ManagementAPIClient:
    """httpx implementation of the ManagementAPI contract."""

    def __init__(
        self,
        config: ManagementAPIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._access_token: str | None = None

    @property
    def domain(self) -> str:
        if not self._config.domain:
            raise ManagementAPIError("Management API domain is not configured")
        return self._config.domain.rstrip("/")

    @property
    def audience(self) -> str:
        return self._config.audience or f"{self.domain}/api"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self._config.timeout_seconds,
        )

    async def _ensure_token(self) -> str:
        """Obtain an M2M access token for this client instance."""
        if self._access_token is not None:
            return self._access_token

        if not self._config.client_id or not self._config.client_secret:
            raise ManagementAPIError("Management API M2M credentials are not configured")

        token_data = {
            "grant_type": "client_credentials",
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "audience": self.audience,
        }

        try:
            async with self._client() as client:
                resp = await client.post(f"{self.domain}{TOKEN_PATH}", data=token_data)
                resp.raise_for_status()
                token_response = resp.json()
        except httpx.HTTPStatusError as e:
            raise ManagementAPIError(
                f"M2M token request failed with status {e.response.status_code}",
                status_code=e.response.status_code,
                endpoint=TOKEN_PATH,
            ) from e
        except httpx.HTTPError as e:
            raise ManagementAPIError(f"M2M token request failed: {e}", endpoint=TOKEN_PATH) from e

        access_token = token_response.get("access_token")
        if not access_token:
            raise ManagementAPIError("No access_token in M2M token response", endpoint=TOKEN_PATH)

        self._access_token = access_token
        logger.debug("M2M access token obtained", client_id=self._config.client_id)
        return access_token

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: dict[str, Any] | None = None,
    ) -> ManagementAPIResponse:
        token = await self._ensure_token()
        url = f"{self.domain}{API_PATH}/{endpoint.lstrip('/')}"

        try:
            async with self._client() as client:
                resp = await client.request(
                    method,
                    url,
                    json=json,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ManagementAPIError(
                f"{method} {endpoint} failed with status {e.response.status_code}",
                status_code=e.response.status_code,
                endpoint=endpoint,
            ) from e
        except httpx.HTTPError as e:
            raise ManagementAPIError(f"{method} {endpoint} failed: {e}", endpoint=endpoint) from e

        data: Any = None
        if resp.content:
            try:
                data = resp.json()
            except ValueError:
                logger.debug("Non-JSON response body", method=method, endpoint=endpoint)
                data = resp.text
        logger.debug("Management API call", method=method, endpoint=endpoint, status=resp.status_code)
        return ManagementAPIResponse(status_code=resp.status_code, data=data)

    async def get(self, endpoint: str) -> ManagementAPIResponse:
        return await self._request("GET", endpoint)

    async def patch(self, endpoint: str, params: dict[str, Any]) -> ManagementAPIResponse:
        return await self._request("PATCH", endpoint, json=params)

    async def post(self, endpoint: str, params: dict[str, Any]) -> ManagementAPIResponse:
        return await self._request("POST", endpoint, json=params)

    async def put(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> ManagementAPIResponse:
        return await self._request("PUT", endpoint, json=params)
