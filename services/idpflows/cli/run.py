"""
Run a single workflow against an event payload file.

Run via: python -m idpflows.cli.run <workflow_id> <event.json>

Management API credentials and workflow config come from the usual
settings sources (IDPFLOWS_* environment variables and the YAML config file).
Prints the access decision and custom claims as JSON.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from idpflows.config import settings
from idpflows.errors import WorkflowError
from idpflows.events import parse_event
from idpflows.logging_config import configure_logging, get_logger
from idpflows.runtime import create_bindings
from idpflows.workflows import build_workflows
from idpflows.workflows.base import run_workflow

logger = get_logger("idpflows.cli.run")


async def run(workflow_id: str, event_path: Path) -> int:
    workflows = build_workflows(settings.workflows)
    workflow = workflows.get(workflow_id)
    if workflow is None:
        logger.error("Unknown workflow", workflow=workflow_id, available=sorted(workflows))
        return 2

    try:
        event = parse_event(json.loads(event_path.read_text()))
    except OSError as e:
        logger.error("Cannot read event file", path=str(event_path), error=str(e))
        return 2
    except ValueError as e:
        # json.JSONDecodeError and pydantic.ValidationError
        logger.error("Invalid event payload", path=str(event_path), error=str(e))
        return 2

    bindings = create_bindings(settings)

    try:
        await run_workflow(workflow, event, bindings)
    except WorkflowError as e:
        logger.error("Workflow failed", workflow=workflow_id, error=str(e))
        return 1
    except Exception as e:
        logger.error(
            "Workflow failed unexpectedly",
            workflow=workflow_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return 1

    result = {
        "workflow": workflow.id,
        "access": {"allowed": not bindings.access.denied, "reason": bindings.access.reason},
        "claims": bindings.tokens.as_dict(),
    }
    print(json.dumps(result, indent=2, default=str))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run an idpflows workflow against an event file")
    parser.add_argument("workflow_id", help="Workflow ID, e.g. mapEntraIdClaims")
    parser.add_argument("event", type=Path, help="Path to a JSON event payload")
    args = parser.parse_args()

    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    sys.exit(asyncio.run(run(args.workflow_id, args.event)))


if __name__ == "__main__":
    main()
