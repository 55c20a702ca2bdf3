"""Workflow registry.

Builds every enabled workflow from its own config section, keyed by workflow ID.
"""

from idpflows.config import WorkflowsConfig
from idpflows.logging_config import get_logger
from idpflows.workflows.base import Workflow

logger = get_logger(__name__)


def build_workflows(config: WorkflowsConfig) -> dict[str, Workflow]:
    """Instantiate all enabled workflows.

    Each workflow owns the config instance it is constructed with.
    """
    from idpflows.workflows.access_control import IPAllowlistWorkflow
    from idpflows.workflows.attribute_sync import (
        EntraClaimsSyncWorkflow,
        GoogleWorkspacePhoneSyncWorkflow,
        OktaAttributeSyncWorkflow,
        SamlAttributeSyncWorkflow,
    )
    from idpflows.workflows.organizations import CreateOrgOnSignupWorkflow
    from idpflows.workflows.token_claims import (
        BillingClaimsWorkflow,
        IdpTokenClaimsWorkflow,
        M2MApplicationPropertiesWorkflow,
    )

    candidates: list[Workflow] = [
        EntraClaimsSyncWorkflow(config.entra_claims_sync),
        SamlAttributeSyncWorkflow(config.saml_attribute_sync),
        OktaAttributeSyncWorkflow(config.okta_attribute_sync),
        GoogleWorkspacePhoneSyncWorkflow(config.google_workspace_phone_sync),
        IPAllowlistWorkflow(config.ip_allowlist),
        IdpTokenClaimsWorkflow(config.idp_token_claims),
        CreateOrgOnSignupWorkflow(config.create_org_on_signup),
        BillingClaimsWorkflow(config.billing_claims),
        M2MApplicationPropertiesWorkflow(config.m2m_application_properties),
    ]

    workflows: dict[str, Workflow] = {}
    for workflow in candidates:
        if not workflow.config.enabled:
            logger.info("Workflow disabled", workflow=workflow.id)
            continue
        workflows[workflow.id] = workflow
        logger.debug("Registered workflow", workflow=workflow.id)

    logger.info("Workflows initialized", count=len(workflows))
    return workflows
