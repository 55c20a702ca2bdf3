"""Exception hierarchy for idpflows workflows."""


class WorkflowError(Exception):
    """Base exception for all workflow failures."""


class MissingContextError(WorkflowError):
    """Raised when the event lacks context a workflow cannot run without (e.g. user ID)."""


class AllowlistConfigError(WorkflowError):
    """Raised when the configured IP allowlist is empty or contains invalid entries."""


class ManagementAPIError(WorkflowError):
    """Raised when a management API call fails."""

    def __init__(self, message: str, status_code: int | None = None, endpoint: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
