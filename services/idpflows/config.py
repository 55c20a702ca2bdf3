"""
Configuration management for idpflows.

Non-secret configuration loaded from YAML file, secrets from environment variables.
Every workflow receives its own immutable config section at construction time.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = "/etc/idpflows/config.yaml"


def yaml_config_settings_source() -> dict[str, Any]:
    """Load configuration from YAML file."""
    config_path = Path(os.environ.get("IDPFLOWS_CONFIG_FILE", DEFAULT_CONFIG_PATH))
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


class FrozenModel(BaseModel):
    """Base for configuration values that must not change after load."""

    model_config = ConfigDict(frozen=True, extra="forbid")


# --- Mapping Configuration Models ---


class MappingRule(FrozenModel):
    """Maps one or more source attribute names to a single output property."""

    aliases: tuple[str, ...] = Field(
        min_length=1,
        description="Source attribute/claim names, tried in order (case-insensitive)",
    )
    target: str = Field(description="Output property key")
    multi_valued: bool = Field(
        default=False,
        description="Join all values with the table delimiter instead of taking the first",
    )


class MappingTable(FrozenModel):
    """Ordered mapping rules plus the delimiter used for multi-valued rules."""

    rules: tuple[MappingRule, ...] = Field(default_factory=tuple)
    delimiter: str = Field(default=",")


def _rule(alias: str, target: str, multi_valued: bool = False) -> MappingRule:
    return MappingRule(aliases=(alias,), target=target, multi_valued=multi_valued)


ENTRA_CLAIM_RULES: tuple[MappingRule, ...] = (
    _rule("given_name", "kp_usr_first_name"),
    _rule("family_name", "kp_usr_last_name"),
    _rule("email", "kp_usr_email"),
    _rule("name", "kp_usr_display_name"),
    _rule("preferred_username", "kp_usr_username"),
    _rule("oid", "entra_object_id"),
    _rule("tid", "entra_tenant_id"),
    _rule("upn", "entra_upn"),
    _rule("unique_name", "entra_unique_name"),
    _rule("jobTitle", "job_title"),
    _rule("department", "department"),
    _rule("officeLocation", "office_location"),
    _rule("mobilePhone", "mobile_phone"),
    _rule("businessPhones", "business_phones"),
    _rule("city", "kp_usr_city"),
    _rule("ctry", "country"),
    _rule("postalCode", "postal_code"),
    _rule("state", "state"),
    _rule("streetAddress", "street_address"),
    _rule("companyName", "company_name"),
    _rule("employeeId", "employee_id"),
)

SAML_ATTRIBUTE_RULES: tuple[MappingRule, ...] = (
    _rule("phone_number", "phone_number"),
    _rule("user_type", "user_type"),
    _rule("groups", "groups", multi_valued=True),
)


# --- Gate Configuration ---


class GateConfig(FrozenModel):
    """Eligibility checks applied before a workflow does any work.

    Unset checks are skipped; every configured check must pass.
    """

    protocol: str | None = Field(
        default=None,
        description="Required authentication protocol (exact match, e.g. 'oauth2' or 'saml')",
    )
    allowed_providers: frozenset[str] | None = Field(
        default=None,
        description="Exact-match allowlist of provider names (compared lower-cased and trimmed)",
    )
    connection_id_variable: str | None = Field(
        default=None,
        description="Environment variable holding the only connection ID to accept",
    )

    @field_validator("allowed_providers")
    @classmethod
    def _normalize_providers(cls, value: frozenset[str] | None) -> frozenset[str] | None:
        if value is None:
            return None
        return frozenset(name.strip().lower() for name in value)


# --- Workflow Configuration Models ---


class WorkflowConfig(FrozenModel):
    """Settings shared by every workflow."""

    enabled: bool = Field(default=True)
    propagate_errors: bool = Field(
        default=True,
        description="Re-raise failures to the host (stop policy). False logs and swallows them.",
    )


class EntraClaimsSyncConfig(WorkflowConfig):
    """Microsoft Entra ID (OAuth2) claims to user properties."""

    gate: GateConfig = Field(
        default_factory=lambda: GateConfig(
            protocol="oauth2",
            allowed_providers=frozenset({"microsoft", "entra", "azure", "azure_ad", "azuread"}),
        )
    )
    mapping: MappingTable = Field(
        default_factory=lambda: MappingTable(rules=ENTRA_CLAIM_RULES, delimiter=", ")
    )
    groups_claim: str = Field(default="groups")
    groups_property: str | None = Field(default="entra_groups")
    timestamp_property: str | None = Field(default="entra_last_sync")
    stamp_when_empty: bool = Field(
        default=False,
        description="Write the sync timestamp even when no other property changed",
    )


class SamlAttributeSyncConfig(WorkflowConfig):
    """SAML attribute statements to user properties."""

    gate: GateConfig = Field(default_factory=lambda: GateConfig(protocol="saml"))
    mapping: MappingTable = Field(
        default_factory=lambda: MappingTable(rules=SAML_ATTRIBUTE_RULES, delimiter=",")
    )
    timestamp_property: str | None = Field(default=None)
    stamp_when_empty: bool = Field(default=False)


class OktaAttributeSyncConfig(SamlAttributeSyncConfig):
    """Okta SAML attribute sync, gated on a per-tenant connection ID."""

    gate: GateConfig = Field(
        default_factory=lambda: GateConfig(connection_id_variable="OKTA_CONNECTION_ID")
    )


class GoogleWorkspacePhoneSyncConfig(WorkflowConfig):
    """Google Workspace SAML phone attribute to a single user property."""

    gate: GateConfig = Field(
        default_factory=lambda: GateConfig(
            connection_id_variable="GOOGLE_WORKSPACE_CONNECTION_ID"
        )
    )
    attribute_name: str = Field(default="phone")
    property_key: str = Field(default="phone_number")


class IPAllowlistConfig(WorkflowConfig):
    """Post-authentication IP allowlist enforcement."""

    allowlist: tuple[str, ...] = Field(default=("64.227.0.197",))
    ip_override: str | None = Field(
        default=None,
        description="Developer test mode: use this IP instead of the detected one",
    )


class IdpTokenClaimsConfig(WorkflowConfig):
    """Copy identity provider ID token claims into custom token claims."""

    gate: GateConfig = Field(default_factory=lambda: GateConfig(protocol="oauth2"))
    claims: dict[str, str] = Field(
        default_factory=lambda: {"email": "idp_email"},
        description="IDP claim name -> custom claim key",
    )
    include_in_id_token: bool = Field(default=False)


class CreateOrgOnSignupConfig(WorkflowConfig):
    """Create an organization named after the business when a user first signs up."""

    propagate_errors: bool = Field(default=False)
    organization_properties: dict[str, Any] = Field(
        default_factory=lambda: {"company_head_count": 50}
    )


class BillingClaimsConfig(WorkflowConfig):
    """Add billing details to access and ID tokens on token generation."""

    claim_name: str = Field(default="billingDetails")


class M2MApplicationPropertiesConfig(WorkflowConfig):
    """Add application properties to M2M tokens."""

    claim_name: str = Field(default="applicationProperties")


class WorkflowsConfig(FrozenModel):
    """Configuration for every registered workflow."""

    entra_claims_sync: EntraClaimsSyncConfig = Field(default_factory=EntraClaimsSyncConfig)
    saml_attribute_sync: SamlAttributeSyncConfig = Field(default_factory=SamlAttributeSyncConfig)
    okta_attribute_sync: OktaAttributeSyncConfig = Field(default_factory=OktaAttributeSyncConfig)
    google_workspace_phone_sync: GoogleWorkspacePhoneSyncConfig = Field(
        default_factory=GoogleWorkspacePhoneSyncConfig
    )
    ip_allowlist: IPAllowlistConfig = Field(default_factory=IPAllowlistConfig)
    idp_token_claims: IdpTokenClaimsConfig = Field(default_factory=IdpTokenClaimsConfig)
    create_org_on_signup: CreateOrgOnSignupConfig = Field(default_factory=CreateOrgOnSignupConfig)
    billing_claims: BillingClaimsConfig = Field(default_factory=BillingClaimsConfig)
    m2m_application_properties: M2MApplicationPropertiesConfig = Field(
        default_factory=M2MApplicationPropertiesConfig
    )


# --- Management API Configuration ---


class ManagementAPIConfig(BaseModel):
    """Management API connection and M2M credentials."""

    domain: str = Field(
        default="",
        description="Tenant domain, e.g. https://myapp.kinde.com",
    )
    client_id: str = Field(default="", description="M2M application client ID")
    client_secret: str = Field(default="", description="M2M application client secret (from env)")
    audience: str = Field(
        default="",
        description="Token audience. Defaults to '{domain}/api'.",
    )
    timeout_seconds: float = Field(default=10.0)


# --- Main Settings ---


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="IDPFLOWS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="idpflows")
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True, description="JSON logging in production")

    # Management API
    management_api: ManagementAPIConfig = Field(default_factory=ManagementAPIConfig)

    # Values exposed to workflows through the environment variable accessor.
    # Process environment variables are consulted when a name is not listed here.
    environment_variables: dict[str, str] = Field(default_factory=dict)

    # Workflows
    workflows: WorkflowsConfig = Field(default_factory=WorkflowsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings sources: env vars override YAML config."""
        return (
            init_settings,
            env_settings,
            yaml_config_settings_source,
            dotenv_settings,
            file_secret_settings,
        )


# Global settings instance
settings = Settings()
