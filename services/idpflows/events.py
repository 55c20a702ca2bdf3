"""Authentication event payload model.

The host delivers one JSON payload per event. These models accept the host's
camelCase keys and expose the provider assertion as a tagged union over the
two forms that occur: OIDC ID token claims and SAML attribute statements.
All models are frozen; workflows only read them.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _EventModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


# --- SAML assertion shape ---


class SamlValue(_EventModel):
    value: str | None = None


class SamlAttribute(_EventModel):
    name: str | None = None
    values: list[SamlValue] | None = None


class SamlAttributeStatement(_EventModel):
    attributes: list[SamlAttribute] | None = None


# --- Assertion tagged union ---


@dataclass(frozen=True)
class ClaimsAssertion:
    """OIDC ID token claims, keyed by claim name."""

    claims: Mapping[str, Any]
    kind: Literal["claims"] = "claims"

    def has_claims(self) -> bool:
        return bool(self.claims)

    def has_attribute_statements(self) -> bool:
        return False


@dataclass(frozen=True)
class SamlAssertion:
    """SAML attribute statements, in document order."""

    attribute_statements: tuple[SamlAttributeStatement, ...]
    kind: Literal["saml"] = "saml"

    def has_claims(self) -> bool:
        return False

    def has_attribute_statements(self) -> bool:
        return bool(self.attribute_statements)


IdentityAssertion = ClaimsAssertion | SamlAssertion


# --- Event context ---


class ProviderContext(_EventModel):
    """The identity provider connection that authenticated the user."""

    protocol: str | None = None
    provider: str | None = None
    data: dict[str, Any] | None = None

    @property
    def assertion(self) -> IdentityAssertion | None:
        """The provider payload as a typed assertion, or None when neither form is present."""
        data = self.data or {}

        id_token = data.get("idToken")
        if isinstance(id_token, dict) and isinstance(id_token.get("claims"), dict):
            return ClaimsAssertion(claims=MappingProxyType(dict(id_token["claims"])))

        saml = data.get("assertion")
        if isinstance(saml, dict) and isinstance(saml.get("attributeStatements"), list):
            statements = tuple(
                SamlAttributeStatement.model_validate(statement)
                for statement in saml["attributeStatements"]
                if isinstance(statement, dict)
            )
            return SamlAssertion(attribute_statements=statements)

        return None


class AuthContext(_EventModel):
    connection_id: str | None = Field(default=None, alias="connectionId")
    is_new_user_record_created: bool = Field(default=False, alias="isNewUserRecordCreated")
    provider: ProviderContext | None = None


class UserContext(_EventModel):
    id: str | None = None


class ApplicationContext(_EventModel):
    client_id: str | None = Field(default=None, alias="clientId")


class EventContext(_EventModel):
    auth: AuthContext = Field(default_factory=AuthContext)
    user: UserContext = Field(default_factory=UserContext)
    application: ApplicationContext = Field(default_factory=ApplicationContext)


class RequestContext(_EventModel):
    ip: str | None = None


class WorkflowEvent(_EventModel):
    """One authentication-lifecycle event as delivered by the host."""

    context: EventContext = Field(default_factory=EventContext)
    request: RequestContext | None = None

    @property
    def provider(self) -> ProviderContext | None:
        return self.context.auth.provider

    @property
    def user_id(self) -> str | None:
        return self.context.user.id

    @property
    def assertion(self) -> IdentityAssertion | None:
        provider = self.provider
        return provider.assertion if provider is not None else None


def parse_event(payload: Mapping[str, Any]) -> WorkflowEvent:
    """Validate a raw host payload into a WorkflowEvent.

    Raises:
        pydantic.ValidationError: If the payload has the wrong shape.
    """
    event = WorkflowEvent.model_validate(dict(payload))
    # SAML statements are only typed on access; surface malformed ones here
    _ = event.assertion
    return event
