"""Workflow base abstraction.

Defines the interface every workflow implements, the settings it declares to
the host, and the failure-policy wrapper used to invoke it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar

import structlog

from idpflows.config import WorkflowConfig
from idpflows.events import WorkflowEvent
from idpflows.logging_config import get_logger
from idpflows.runtime import WorkflowBindings

logger = get_logger(__name__)


class WorkflowTrigger(StrEnum):
    """Authentication-lifecycle events a workflow can react to."""

    POST_AUTHENTICATION = "user:post_authentication"
    USER_TOKEN_GENERATION = "user:tokens_generation"
    M2M_TOKEN_GENERATION = "m2m:token_generation"


class FailurePolicy(StrEnum):
    """What the host does when a workflow raises.

    STOP re-raises so the host halts the flow; CONTINUE logs and returns.
    """

    STOP = "stop"
    CONTINUE = "continue"


@dataclass(frozen=True)
class WorkflowSettings:
    """Registration metadata declared by each workflow."""

    id: str
    name: str
    trigger: WorkflowTrigger
    bindings: tuple[str, ...] = field(default_factory=tuple)


class Workflow(ABC):
    """Abstract base class for all workflows."""

    settings: ClassVar[WorkflowSettings]

    def __init__(self, config: WorkflowConfig) -> None:
        self._config = config

    @property
    def id(self) -> str:
        return self.settings.id

    @property
    def config(self) -> WorkflowConfig:
        return self._config

    @property
    def failure_policy(self) -> FailurePolicy:
        return FailurePolicy.STOP if self._config.propagate_errors else FailurePolicy.CONTINUE

    @abstractmethod
    async def handle(self, event: WorkflowEvent, bindings: WorkflowBindings) -> None:
        """Process one event.

        Returning normally signals success. Raising signals failure and
        triggers the configured failure policy.
        """


async def run_workflow(
    workflow: Workflow,
    event: WorkflowEvent,
    bindings: WorkflowBindings,
) -> None:
    """Invoke a workflow, applying its error propagation setting.

    With ``propagate_errors`` the exception is logged and re-raised so the
    host can halt the flow; otherwise it is logged and suppressed.
    """
    structlog.contextvars.bind_contextvars(workflow=workflow.id)
    try:
        logger.debug("Workflow started", trigger=str(workflow.settings.trigger))
        await workflow.handle(event, bindings)
        logger.debug("Workflow completed")
    except Exception as e:
        if workflow.failure_policy is FailurePolicy.STOP:
            logger.error("Workflow failed", error=str(e), exc_info=e)
            raise
        logger.error("Workflow error suppressed", error=str(e), exc_info=e)
    finally:
        structlog.contextvars.unbind_contextvars("workflow")
