"""Workflows that add custom claims to issued tokens."""

import asyncio
from typing import Any

from idpflows.auth.gate import is_eligible
from idpflows.config import BillingClaimsConfig, IdpTokenClaimsConfig, M2MApplicationPropertiesConfig
from idpflows.errors import MissingContextError
from idpflows.events import ClaimsAssertion, WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.runtime import WorkflowBindings
from idpflows.workflows.base import Workflow, WorkflowSettings, WorkflowTrigger

logger = get_logger(__name__)


def _ensure_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class IdpTokenClaimsWorkflow(Workflow):
    """Carry selected IDP ID token claims over as custom access token claims.

    Pure OAuth2 providers without an ID token (e.g. GitHub) have no claims and
    are skipped.
    """

    settings = WorkflowSettings(
        id="idpTokenClaims",
        name="IdpTokenWorkflow",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.accessToken", "kinde.idToken"),
    )

    def __init__(self, config: IdpTokenClaimsConfig) -> None:
        super().__init__(config)
        self._config: IdpTokenClaimsConfig = config

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        if not is_eligible(event, self._config.gate, bindings.env):
            return

        assertion = event.assertion
        if not isinstance(assertion, ClaimsAssertion) or not assertion.has_claims():
            return

        for claim, target in self._config.claims.items():
            value = assertion.claims.get(claim)
            if not value:
                continue
            bindings.tokens.access_token.set_custom_claim(target, value)
            if self._config.include_in_id_token:
                bindings.tokens.id_token.set_custom_claim(target, value)
            logger.debug("Copied IDP claim", claim=claim, target=target)


class BillingClaimsWorkflow(Workflow):
    """Add the user's billing details (customer, entitlements, agreements) to tokens."""

    settings = WorkflowSettings(
        id="addBillingDetailsToTokens",
        name="AddBillingDetailsToTokensB2C",
        trigger=WorkflowTrigger.USER_TOKEN_GENERATION,
        bindings=("kinde.accessToken", "kinde.idToken", "kinde.env", "url"),
    )

    def __init__(self, config: BillingClaimsConfig) -> None:
        super().__init__(config)
        self._config: BillingClaimsConfig = config

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        user_id = event.user_id
        if not user_id:
            logger.warning("No user ID in event context, skipping billing claims")
            return

        api = bindings.management_api
        user_resp = await api.get(f"user?id={user_id}&expand=billing")
        user = user_resp.data or {}
        billing = user.get("billing") or {}

        customer_id = billing.get("customer_id")
        if not customer_id:
            logger.info("No billing customer ID for user, skipping", user_id=user_id)
            return

        # Both reads must succeed; either failure fails the step
        ent_resp, agr_resp = await asyncio.gather(
            api.get(f"billing/entitlements?customer_id={customer_id}"),
            api.get(f"billing/agreements?customer_id={customer_id}"),
        )

        claim = {
            "customer_id": customer_id,
            "user_billing": billing,
            "entitlements": _ensure_list((ent_resp.data or {}).get("entitlements")),
            "agreements": _ensure_list((agr_resp.data or {}).get("agreements")),
        }

        bindings.tokens.access_token.set_custom_claim(self._config.claim_name, claim)
        bindings.tokens.id_token.set_custom_claim(self._config.claim_name, claim)
        logger.info("Billing claim set on access and ID tokens", user_id=user_id)


class M2MApplicationPropertiesWorkflow(Workflow):
    """Add the calling application's properties to M2M tokens."""

    settings = WorkflowSettings(
        id="m2mTokenGeneration",
        name="M2M custom claims",
        trigger=WorkflowTrigger.M2M_TOKEN_GENERATION,
        bindings=("kinde.m2mToken", "kinde.fetch", "kinde.env", "url"),
    )

    def __init__(self, config: M2MApplicationPropertiesConfig) -> None:
        super().__init__(config)
        self._config: M2MApplicationPropertiesConfig = config

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        client_id = event.context.application.client_id
        if not client_id:
            raise MissingContextError("Application client ID is required for M2M claims")

        resp = await bindings.management_api.get(f"applications/{client_id}/properties")
        properties = (resp.data or {}).get("properties")

        bindings.tokens.m2m_token.set_custom_claim(self._config.claim_name, properties)
        logger.info("Application properties added to M2M token", client_id=client_id)
