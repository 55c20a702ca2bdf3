"""FastAPI dependencies for the workflow endpoints."""

from fastapi import Request

from idpflows.config import settings
from idpflows.runtime import WorkflowBindings, create_bindings
from idpflows.workflows.base import Workflow


def get_workflows(request: Request) -> dict[str, Workflow]:
    """Workflows registered on the application at startup."""
    return request.app.state.workflows


def get_bindings() -> WorkflowBindings:
    """Fresh host bindings for a single event."""
    return create_bindings(settings)
