"""Host collaborators available to a workflow invocation.

Bundles the management API client, the environment variable accessor, the
access-deny signal and the custom token claim slots. A fresh set of bindings
is created for every event.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from idpflows.config import Settings
from idpflows.logging_config import get_logger
from idpflows.management_api import ManagementAPI, ManagementAPIClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class EnvironmentVariable:
    name: str
    value: str


class EnvironmentVariables:
    """Per-tenant values looked up by name.

    Configured values take precedence over the process environment.
    """

    def __init__(
        self,
        variables: Mapping[str, str] | None = None,
        use_os_environ: bool = True,
    ) -> None:
        self._variables = dict(variables or {})
        self._use_os_environ = use_os_environ

    def get_variable(self, name: str) -> EnvironmentVariable | None:
        value = self._variables.get(name)
        if value is None and self._use_os_environ:
            value = os.environ.get(name)
        if value is None:
            return None
        return EnvironmentVariable(name=name, value=value)


class AccessControl:
    """Access-deny signal. Never calling deny_access means access is allowed."""

    def __init__(self) -> None:
        self._reason: str | None = None

    def deny_access(self, reason: str) -> None:
        """Terminate the authentication flow with a human-readable reason.

        The first denial is kept; later calls are logged and ignored.
        """
        if self._reason is not None:
            logger.debug("Access already denied", reason=self._reason, ignored=reason)
            return
        logger.warning("Access denied", reason=reason)
        self._reason = reason

    @property
    def denied(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason


class CustomClaims:
    """Write-only custom claim slots for one token. Last write wins per key."""

    def __init__(self, token_type: str) -> None:
        self.token_type = token_type
        self._claims: dict[str, Any] = {}

    def set_custom_claim(self, key: str, value: Any) -> None:
        if key in self._claims:
            logger.debug("Overwriting custom claim", token=self.token_type, claim=key)
        self._claims[key] = value

    def as_dict(self) -> dict[str, Any]:
        return dict(self._claims)


@dataclass
class TokenClaims:
    access_token: CustomClaims = field(default_factory=lambda: CustomClaims("access_token"))
    id_token: CustomClaims = field(default_factory=lambda: CustomClaims("id_token"))
    m2m_token: CustomClaims = field(default_factory=lambda: CustomClaims("m2m_token"))

    def as_dict(self) -> dict[str, dict[str, Any]]:
        """Non-empty claim sets keyed by token type."""
        return {
            slot.token_type: slot.as_dict()
            for slot in (self.access_token, self.id_token, self.m2m_token)
            if slot.as_dict()
        }


@dataclass
class WorkflowBindings:
    """Everything a workflow may touch outside its own event payload."""

    management_api: ManagementAPI
    env: EnvironmentVariables = field(default_factory=EnvironmentVariables)
    access: AccessControl = field(default_factory=AccessControl)
    tokens: TokenClaims = field(default_factory=TokenClaims)


def create_bindings(settings: Settings) -> WorkflowBindings:
    """Create fresh bindings for a single event."""
    return WorkflowBindings(
        management_api=ManagementAPIClient(settings.management_api),
        env=EnvironmentVariables(settings.environment_variables),
    )
