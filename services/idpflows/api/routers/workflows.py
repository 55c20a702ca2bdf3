"""Workflow endpoints.

Endpoints:
    GET  /workflows                  - list registered workflows
    POST /workflows/{workflow_id}/run - run a workflow against an event payload
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, ValidationError

from idpflows.api.dependencies import get_bindings, get_workflows
from idpflows.errors import WorkflowError
from idpflows.events import parse_event
from idpflows.logging_config import get_logger
from idpflows.runtime import WorkflowBindings
from idpflows.workflows.base import Workflow, run_workflow

router = APIRouter(prefix="/workflows", tags=["workflows"])
logger = get_logger(__name__)


class WorkflowSummary(BaseModel):
    id: str
    name: str
    trigger: str
    failure_policy: str


class AccessResult(BaseModel):
    allowed: bool
    reason: str | None = None


class WorkflowRunResult(BaseModel):
    """Outcome of one workflow invocation."""

    workflow: str
    access: AccessResult
    claims: dict[str, dict[str, Any]]


@router.get("")
async def list_workflows(
    workflows: dict[str, Workflow] = Depends(get_workflows),
) -> list[WorkflowSummary]:
    return [
        WorkflowSummary(
            id=w.settings.id,
            name=w.settings.name,
            trigger=str(w.settings.trigger),
            failure_policy=str(w.failure_policy),
        )
        for w in workflows.values()
    ]


@router.post("/{workflow_id}/run")
async def run(
    workflow_id: str,
    payload: dict[str, Any] = Body(...),
    workflows: dict[str, Workflow] = Depends(get_workflows),
    bindings: WorkflowBindings = Depends(get_bindings),
) -> WorkflowRunResult:
    """Run a workflow against one event payload.

    A workflow failure under the stop policy is reported as 422 so the host
    can halt the authentication flow.
    """
    workflow = workflows.get(workflow_id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown workflow: {workflow_id}",
        )

    try:
        event = parse_event(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid event payload: {e.error_count()} error(s)",
        ) from e

    try:
        await run_workflow(workflow, event, bindings)
    except WorkflowError as e:
        raise HTTPException(
            status_code=422,
            detail=str(e),
        ) from e
    except Exception as e:
        # Already logged by run_workflow; any re-raised failure halts the flow
        raise HTTPException(
            status_code=422,
            detail=f"Workflow failed: {type(e).__name__}: {e}",
        ) from e

    return WorkflowRunResult(
        workflow=workflow.id,
        access=AccessResult(allowed=not bindings.access.denied, reason=bindings.access.reason),
        claims=bindings.tokens.as_dict(),
    )
