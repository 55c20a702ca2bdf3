"""Post-authentication workflows that sync IDP attributes into user properties.

All of them follow the same steps: gate the event, normalize the provider
assertion, resolve the mapping table, build the property batch and write it
through the management API. Nothing is written when nothing was mapped.
"""

from idpflows.auth.gate import is_eligible
from idpflows.config import (
    EntraClaimsSyncConfig,
    GoogleWorkspacePhoneSyncConfig,
    MappingRule,
    MappingTable,
    OktaAttributeSyncConfig,
    SamlAttributeSyncConfig,
)
from idpflows.errors import MissingContextError
from idpflows.events import ClaimsAssertion, SamlAssertion, WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.mapping.batch import build_property_batch
from idpflows.mapping.resolver import AttributeMapper
from idpflows.runtime import WorkflowBindings
from idpflows.services.property_service import update_user_properties, update_user_property
from idpflows.workflows.base import Workflow, WorkflowSettings, WorkflowTrigger

logger = get_logger(__name__)


def _require_user_id(event: WorkflowEvent) -> str:
    user_id = event.user_id
    if not user_id:
        logger.error("User ID is missing from event context")
        raise MissingContextError("User ID is required for property sync")
    return user_id


class EntraClaimsSyncWorkflow(Workflow):
    """Map Microsoft Entra ID token claims to user properties."""

    settings = WorkflowSettings(
        id="mapEntraIdClaims",
        name="MapEntraIdClaims",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.env", "url"),
    )

    def __init__(self, config: EntraClaimsSyncConfig) -> None:
        super().__init__(config)
        self._config: EntraClaimsSyncConfig = config
        self._mapper = AttributeMapper(config.mapping)

    def _group_extras(self, assertion: ClaimsAssertion) -> dict[str, str]:
        if not self._config.groups_property:
            return {}
        groups = assertion.claims.get(self._config.groups_claim)
        if not isinstance(groups, list):
            return {}
        return {self._config.groups_property: ", ".join(str(g) for g in groups)}

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        if not is_eligible(event, self._config.gate, bindings.env):
            return

        user_id = _require_user_id(event)
        logger.info("Processing Entra ID claims", user_id=user_id)

        assertion = event.assertion
        if not isinstance(assertion, ClaimsAssertion):
            assertion = ClaimsAssertion(claims={})

        batch = build_property_batch(
            self._mapper.map(assertion),
            self._group_extras(assertion),
            timestamp_key=self._config.timestamp_property,
            stamp_when_empty=self._config.stamp_when_empty,
        )
        if batch is None:
            logger.info("Nothing to update from claims, skipping property sync", user_id=user_id)
            return

        await update_user_properties(bindings.management_api, user_id, batch)


class SamlAttributeSyncWorkflow(Workflow):
    """Sync SAML attribute statements into user properties for any SAML connection."""

    settings = WorkflowSettings(
        id="samlAttributesSync",
        name="SamlAttributesSync",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.env", "url"),
    )

    def __init__(self, config: SamlAttributeSyncConfig) -> None:
        super().__init__(config)
        self._config: SamlAttributeSyncConfig = config
        self._mapper = AttributeMapper(config.mapping)

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        if not is_eligible(event, self._config.gate, bindings.env):
            return

        assertion = event.assertion
        if not isinstance(assertion, SamlAssertion) or not assertion.has_attribute_statements():
            logger.debug("No SAML attribute statements, skipping")
            return

        batch = build_property_batch(
            self._mapper.map(assertion),
            timestamp_key=self._config.timestamp_property,
            stamp_when_empty=self._config.stamp_when_empty,
        )
        if batch is None:
            logger.debug("No mapped SAML attributes, skipping property sync")
            return

        user_id = _require_user_id(event)
        await update_user_properties(bindings.management_api, user_id, batch)


class OktaAttributeSyncWorkflow(SamlAttributeSyncWorkflow):
    """SAML attribute sync restricted to the Okta connection configured in OKTA_CONNECTION_ID."""

    settings = WorkflowSettings(
        id="oktaAttributesSync",
        name="OktaAttributesSync",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.env", "url"),
    )

    def __init__(self, config: OktaAttributeSyncConfig) -> None:
        super().__init__(config)


class GoogleWorkspacePhoneSyncWorkflow(Workflow):
    """Copy the phone attribute from a Google Workspace SAML assertion to one user property."""

    settings = WorkflowSettings(
        id="googleWorkspacePhoneSync",
        name="GoogleWorkspacePhoneSync",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.env", "url"),
    )

    def __init__(self, config: GoogleWorkspacePhoneSyncConfig) -> None:
        super().__init__(config)
        self._config: GoogleWorkspacePhoneSyncConfig = config
        self._mapper = AttributeMapper(
            MappingTable(
                rules=(
                    MappingRule(aliases=(config.attribute_name,), target=config.property_key),
                )
            )
        )

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        if not is_eligible(event, self._config.gate, bindings.env):
            return

        assertion = event.assertion
        if not isinstance(assertion, SamlAssertion) or not assertion.has_attribute_statements():
            return

        phone = self._mapper.map(assertion).get(self._config.property_key)
        if not phone:
            logger.debug("No phone attribute in assertion", attribute=self._config.attribute_name)
            return

        user_id = _require_user_id(event)
        await update_user_property(
            bindings.management_api, user_id, self._config.property_key, phone
        )
