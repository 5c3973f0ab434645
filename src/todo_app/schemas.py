from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .validation import require_non_empty

TITLE_MAX_LENGTH = 255


# PUBLIC_INTERFACE
class TodoIn(BaseModel):
    """
    Schema for creating a Todo or replacing its title.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy groceries"}})

    title: str = Field(..., description="Title of the todo item")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace, then reject blank or over-long titles.
        """
        return require_non_empty(v, "title", max_length=TITLE_MAX_LENGTH)


# PUBLIC_INTERFACE
class BatchUpdateItem(BaseModel):
    """
    A single (id, title) pair of a batch request.
    """

    id: int = Field(..., description="Identifier of the todo to update")
    title: str = Field(..., description="Replacement title")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return require_non_empty(v, "title", max_length=TITLE_MAX_LENGTH)


# PUBLIC_INTERFACE
class BatchRequest(BaseModel):
    """
    Schema for the batch update/delete endpoint.

    Both lists are optional. Updates are applied in the given order, then all
    deletes are issued as one bulk operation.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "updates": [{"id": 1, "title": "Buy groceries and supplies"}],
                "deletes": [2, 3],
            }
        }
    )

    updates: Optional[List[BatchUpdateItem]] = Field(default=None, description="Ordered title replacements")
    deletes: Optional[List[int]] = Field(default=None, description="Ids to delete")

    @field_validator("deletes")
    @classmethod
    def dedupe_deletes(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        """
        Treat deletes as a set while keeping first-seen order.
        """
        if v is None:
            return v
        return list(dict.fromkeys(v))


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema of a Todo item as handed to the page.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 123,
                "title": "Buy groceries",
                "created_at": "2025-01-25T10:15:30.123456",
                "updated_at": "2025-01-26T09:00:00.000001",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Title of the todo item")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class PageObject(BaseModel):
    """
    Server-driven page payload: which client component to mount and its props.
    """

    component: str = Field(..., description="Client-side page component name")
    props: Dict[str, Any] = Field(default_factory=dict, description="Props passed to the component")
    url: str = Field(..., description="URL of the request that produced the page")
    version: str = Field(..., description="Asset version the page was rendered for")
