"""Taiga Work Item Data Models

Pydantic models for referencing work items (issues, user stories, tasks) and
for the payloads used to create them.
"""

from typing import Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import ItemKind, ITEM_ENDPOINTS, HISTORY_OBJECT_TYPES, ATTACHMENT_ENDPOINTS


class ItemReference(BaseModel):
    """A (kind, id) pair identifying the work item a comment or attachment belongs to."""

    model_config = ConfigDict(frozen=True)

    kind: ItemKind = Field(description="Item kind: issue, user_story or task")
    id: int = Field(gt=0, description="Item ID")

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Union[str, ItemKind]) -> Union[str, ItemKind]:
        if isinstance(v, str) and not isinstance(v, ItemKind):
            return v.strip().lower()
        return v

    @property
    def endpoint(self) -> str:
        """Endpoint family used to read and update the item."""
        return ITEM_ENDPOINTS[self.kind]

    @property
    def history_object_type(self) -> str:
        """Object type name used by the /history API."""
        return HISTORY_OBJECT_TYPES[self.kind]

    @property
    def attachment_endpoint(self) -> str:
        return ATTACHMENT_ENDPOINTS[self.kind]

    @property
    def path(self) -> str:
        return f"{self.endpoint}/{self.id}"


class ItemCreate(BaseModel):
    """Fields shared by issue, user story and task creation."""

    model_config = ConfigDict(extra="allow")

    project: int = Field(description="Project ID")
    subject: str = Field(min_length=1, description="Item title")
    description: Optional[str] = Field(default=None, description="Item description")
    tags: Optional[List[str]] = Field(default=None, description="Tags")

    def to_payload(self) -> dict:
        """Request body without unset optional fields."""
        return self.model_dump(exclude_none=True)
