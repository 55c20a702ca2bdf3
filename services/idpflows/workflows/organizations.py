"""Create an organization for users signing up for the first time."""

from idpflows.config import CreateOrgOnSignupConfig
from idpflows.events import WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.runtime import WorkflowBindings
from idpflows.services.property_service import update_organization_properties
from idpflows.workflows.base import Workflow, WorkflowSettings, WorkflowTrigger

logger = get_logger(__name__)


class CreateOrgOnSignupWorkflow(Workflow):
    """Create an organization named after the business and seed its properties.

    Only runs when the host created a new user record for this sign-in.
    Failures are swallowed by default (``propagate_errors: false``) so a
    sign-up is never blocked by organization setup.
    """

    settings = WorkflowSettings(
        id="createOrgOnSignup",
        name="CreateOrganizationOnSignUp",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.env", "kinde.fetch", "kinde.mfa", "url"),
    )

    def __init__(self, config: CreateOrgOnSignupConfig) -> None:
        super().__init__(config)
        self._config: CreateOrgOnSignupConfig = config

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        if not event.context.auth.is_new_user_record_created:
            return

        api = bindings.management_api

        business = await api.get("business")
        business_name = business.data["business"]["name"]

        org_resp = await api.post("organization", {"name": business_name})
        org_code = org_resp.data["organization"]["code"]
        logger.info("Organization created on sign up", org_code=org_code, name=business_name)

        if self._config.organization_properties:
            await update_organization_properties(
                api, org_code, dict(self._config.organization_properties)
            )
