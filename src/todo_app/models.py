from __future__ import annotations

from datetime import datetime
from typing import TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a Todo row as held by a record store.

    Fields:
    - id: Unique integer identifier, assigned by the store and never changed
    - title: Non-empty title (trimmed on input via schemas)
    - created_at: Creation timestamp, set by the store
    - updated_at: Last update timestamp, refreshed by the store on every write
    """

    id: int
    title: str
    created_at: datetime
    updated_at: datetime
