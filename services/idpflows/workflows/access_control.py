"""Post-authentication IP allowlist enforcement."""

from idpflows.auth.ip_allowlist import decide_access
from idpflows.config import IPAllowlistConfig
from idpflows.events import WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.runtime import WorkflowBindings
from idpflows.workflows.base import Workflow, WorkflowSettings, WorkflowTrigger

logger = get_logger(__name__)


class IPAllowlistWorkflow(Workflow):
    """Deny sign-in unless the client IP is on the configured allowlist.

    Fail-closed: an invalid allowlist or any unexpected error denies access
    instead of raising.
    """

    settings = WorkflowSettings(
        id="checkIPAgainstAllowlist",
        name="checkIPAgainstAllowlist",
        trigger=WorkflowTrigger.POST_AUTHENTICATION,
        bindings=("kinde.auth",),
    )

    def __init__(self, config: IPAllowlistConfig) -> None:
        super().__init__(config)
        self._config: IPAllowlistConfig = config

    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        raw_ip = event.request.ip if event.request is not None else None
        decision = decide_access(self._config.allowlist, raw_ip, self._config.ip_override)

        if not decision.allowed:
            bindings.access.deny_access(decision.reason or "Access denied.")
            return

        logger.info("IP check completed, access granted", client_ip=decision.client_ip)
