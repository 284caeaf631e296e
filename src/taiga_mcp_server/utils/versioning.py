"""Version-Guarded Update Utilities

Taiga uses optimistic concurrency: every mutable resource carries an integer
``version`` and a PATCH must send the version it was based on. These helpers
read the current version immediately before each write and merge it into the
payload. The version is never cached between calls.

The read and the write are not atomic. If another writer lands in between,
Taiga rejects the PATCH and the caller sees a VersionConflictError.
"""

import logging
from typing import Any, Dict, TYPE_CHECKING

from ..models.item import ItemReference

if TYPE_CHECKING:
    from ..client import TaigaClient

logger = logging.getLogger(__name__)

DEFAULT_VERSION = 1


def extract_version(resource: Any) -> int:
    """Return the resource's integer ``version``, or 1 when missing or not a whole number."""
    version = resource.get("version") if isinstance(resource, dict) else None
    # bool is an int subclass; a True/False version is not a version
    if isinstance(version, int) and not isinstance(version, bool):
        return version
    if isinstance(version, float) and version.is_integer():
        return int(version)
    return DEFAULT_VERSION


def get_current_version(client: "TaigaClient", endpoint: str, resource_id: Any) -> int:
    """Read a resource fresh and return its version.

    Args:
        client: Taiga client
        endpoint: Endpoint family (e.g. ``/issues``)
        resource_id: Resource ID

    Returns:
        Current version, defaulting to 1 when the resource does not report one

    Raises:
        NotFoundError: If the resource doesn't exist
        PermissionError: If the resource can't be read
    """
    response = client.get(f"{endpoint}/{resource_id}")
    version = extract_version(response.data)
    logger.debug(f"{endpoint}/{resource_id} current version: {version}")
    return version


def with_version(changes: Dict[str, Any], version: int) -> Dict[str, Any]:
    """Merge field changes with the version they are based on."""
    payload = dict(changes)
    payload["version"] = version
    return payload


def versioned_update(
    client: "TaigaClient",
    endpoint: str,
    resource_id: Any,
    changes: Dict[str, Any]
) -> Dict[str, Any]:
    """Partially update a resource, guarded by its current version.

    Any ``version`` key in ``changes`` is replaced by the freshly read one.

    Args:
        client: Taiga client
        endpoint: Endpoint family (e.g. ``/epics``)
        resource_id: Resource ID
        changes: Fields to change

    Returns:
        Updated resource as returned by Taiga

    Raises:
        VersionConflictError: If the resource changed since it was read
        NotFoundError: If the resource doesn't exist
    """
    version = get_current_version(client, endpoint, resource_id)
    payload = with_version(changes, version)

    logger.info(f"Updating {endpoint}/{resource_id} at version {version}: fields={sorted(changes)}")
    response = client.patch(f"{endpoint}/{resource_id}", json=payload)
    return response.data


def versioned_item_update(
    client: "TaigaClient",
    item: ItemReference,
    changes: Dict[str, Any]
) -> Dict[str, Any]:
    """Version-guarded update of an issue, user story or task."""
    return versioned_update(client, item.endpoint, item.id, changes)
