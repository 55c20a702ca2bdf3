"""User and organization property writes through the management API.

Failures are logged and re-raised; the caller's failure policy decides what
happens next.
"""

from typing import Any
from urllib.parse import quote

from idpflows.errors import ManagementAPIError
from idpflows.logging_config import get_logger
from idpflows.management_api import ManagementAPI

logger = get_logger(__name__)


async def update_user_properties(
    api: ManagementAPI, user_id: str, properties: dict[str, str]
) -> None:
    """PATCH a batch of user properties."""
    try:
        await api.patch(f"users/{user_id}/properties", {"properties": properties})
    except ManagementAPIError as e:
        logger.error("Error updating user properties", user_id=user_id, error=str(e))
        raise

    logger.info("Updated user properties", user_id=user_id, count=len(properties))


async def update_user_property(api: ManagementAPI, user_id: str, key: str, value: str) -> None:
    """PUT a single user property, value passed as a query parameter."""
    endpoint = f"users/{user_id}/properties/{quote(key, safe='')}?value={quote(value, safe='')}"
    try:
        await api.put(endpoint)
    except ManagementAPIError as e:
        logger.error("Error updating user property", user_id=user_id, key=key, error=str(e))
        raise

    logger.info("Updated user property", user_id=user_id, key=key)


async def update_organization_properties(
    api: ManagementAPI, org_code: str, properties: dict[str, Any]
) -> None:
    """PATCH organization properties."""
    try:
        await api.patch(f"organizations/{org_code}/properties", {"properties": properties})
    except ManagementAPIError as e:
        logger.error("Error updating organization properties", org_code=org_code, error=str(e))
        raise

    logger.info("Updated organization properties", org_code=org_code, count=len(properties))
