"""Provider/connection eligibility gate.

Decides whether an event should be processed at all, before any extraction
or outbound call. Provider names are matched against an exact allowlist;
connection IDs against a single configured value (fail-closed when unset).
"""

from idpflows.config import GateConfig
from idpflows.events import WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.runtime import EnvironmentVariables

logger = get_logger(__name__)


def protocol_matches(event: WorkflowEvent, expected: str) -> bool:
    """Exact, case-sensitive comparison of the event's authentication protocol."""
    provider = event.provider
    return provider is not None and provider.protocol == expected


def provider_allowed(event: WorkflowEvent, allowed: frozenset[str]) -> bool:
    """Exact set membership of the lower-cased, trimmed provider name."""
    provider = event.provider
    name = (provider.provider or "") if provider is not None else ""
    return name.strip().lower() in allowed


def connection_matches(
    event: WorkflowEvent,
    variable_name: str,
    env: EnvironmentVariables,
) -> bool:
    """Compare the event's connection ID with the one stored in an environment variable."""
    variable = env.get_variable(variable_name)
    expected = variable.value if variable is not None else ""
    if not expected:
        logger.debug("Connection ID variable not set", variable=variable_name)
        return False
    return event.context.auth.connection_id == expected


def is_eligible(event: WorkflowEvent, config: GateConfig, env: EnvironmentVariables) -> bool:
    """Apply every configured check. Unset checks are skipped."""
    if config.protocol is not None and not protocol_matches(event, config.protocol):
        logger.debug(
            "Protocol does not match, skipping",
            expected=config.protocol,
            protocol=event.provider.protocol if event.provider else None,
        )
        return False

    if config.allowed_providers is not None and not provider_allowed(
        event, config.allowed_providers
    ):
        logger.info(
            "Provider not in allowlist, skipping",
            provider=event.provider.provider if event.provider else None,
        )
        return False

    if config.connection_id_variable is not None and not connection_matches(
        event, config.connection_id_variable, env
    ):
        logger.debug(
            "Connection ID does not match, skipping",
            connection_id=event.context.auth.connection_id,
        )
        return False

    return True
