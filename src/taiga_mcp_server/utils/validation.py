"""Taiga Identifier Validation Utilities

Helpers that turn loosely typed tool arguments (kind names, project slugs,
status names) into the IDs Taiga expects.
"""
import logging
from typing import Any, Dict, List, Optional, Union, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from ..constants import Endpoints, ItemKind
from ..models.item import ItemReference
from .errors import ValidationError, NotFoundError

if TYPE_CHECKING:
    from ..client import TaigaClient

logger = logging.getLogger(__name__)


def item_reference(item_type: Union[str, ItemKind], item_id: Any) -> ItemReference:
    """Build an ItemReference, reporting bad input as a ValidationError.

    Raises:
        ValidationError: If the kind is not issue, user_story or task, or the ID is invalid
    """
    try:
        return ItemReference(kind=item_type, id=item_id)
    except PydanticValidationError as e:
        valid = ", ".join(kind.value for kind in ItemKind)
        raise ValidationError(
            f"Invalid item reference {item_type!r} #{item_id}: expected kind in ({valid}) and a positive ID",
            details={"item_type": str(item_type), "item_id": item_id, "errors": e.errors()}
        ) from e


def is_numeric_id(identifier: Any) -> bool:
    if isinstance(identifier, bool):
        return False
    if isinstance(identifier, int):
        return True
    return isinstance(identifier, str) and identifier.strip().isdigit()


def resolve_project(client: "TaigaClient", identifier: Union[int, str]) -> Dict[str, Any]:
    """Fetch a project by numeric ID or by slug.

    Raises:
        ValidationError: If identifier is empty
        NotFoundError: If no such project exists
    """
    if identifier is None or (isinstance(identifier, str) and not identifier.strip()):
        raise ValidationError("Project identifier is required")

    if is_numeric_id(identifier):
        return client.get(f"{Endpoints.PROJECTS}/{int(identifier)}").data

    slug = identifier.strip()
    logger.debug(f"Resolving project by slug: {slug}")
    return client.get(Endpoints.PROJECT_BY_SLUG, params={"slug": slug}).data


def resolve_project_id(client: "TaigaClient", identifier: Union[int, str]) -> int:
    """Return the numeric ID for a project ID or slug."""
    if is_numeric_id(identifier):
        return int(identifier)
    project = resolve_project(client, identifier)
    if not project or "id" not in project:
        raise NotFoundError(f"Project {identifier!r} not found", details={"identifier": identifier})
    return project["id"]


def find_id_by_name(options: List[Dict[str, Any]], name: Optional[str]) -> Optional[int]:
    """Find the ID of a named option (status, priority, severity, type).

    Matching is case-insensitive. Returns None when name is empty.

    Raises:
        ValidationError: If no option has that name
    """
    if not name:
        return None

    wanted = name.strip().lower()
    for option in options or []:
        if str(option.get("name", "")).strip().lower() == wanted:
            return option.get("id")

    available = [option.get("name") for option in options or []]
    raise ValidationError(
        f"Unknown option {name!r}",
        details={"name": name, "available": available}
    )


def resolve_wiki_page_id(client: "TaigaClient", project_id: int, identifier: Union[int, str]) -> int:
    """Return the numeric ID of a wiki page given its ID or slug."""
    if is_numeric_id(identifier):
        return int(identifier)
    if not isinstance(identifier, str) or not identifier.strip():
        raise ValidationError("Wiki page identifier is required")

    page = client.get(Endpoints.WIKI_BY_SLUG, params={"slug": identifier.strip(), "project": project_id}).data
    if not page or "id" not in page:
        raise NotFoundError(
            f"Wiki page {identifier!r} not found in project {project_id}",
            details={"project": project_id, "slug": identifier}
        )
    return page["id"]


def parse_item_kind(item_type: Union[str, ItemKind]) -> ItemKind:
    """Parse an item kind name.

    Raises:
        ValidationError: If the kind is not issue, user_story or task
    """
    try:
        return ItemKind(item_type.strip().lower() if isinstance(item_type, str) else item_type)
    except ValueError as e:
        valid = ", ".join(kind.value for kind in ItemKind)
        raise ValidationError(
            f"Invalid item type {item_type!r}: expected one of ({valid})",
            details={"item_type": str(item_type)}
        ) from e
